"""Internal types passed between the capture pipeline stages."""

from dataclasses import dataclass, field
from typing import Optional, Union


@dataclass(frozen=True)
class NoWait:
    pass


@dataclass(frozen=True)
class FixedDelay:
    ms: float


@dataclass(frozen=True)
class SelectorWait:
    """Bare string wait: a selector, or a function body if it is not one."""

    value: str


@dataclass(frozen=True)
class StructuredSelectorWait:
    selector: str
    state: str = "attached"
    timeout: Optional[float] = None


@dataclass(frozen=True)
class PredicateScript:
    source: str
    polling: Union[str, float] = "raf"
    timeout: Optional[float] = None


ReadinessSpec = Union[NoWait, FixedDelay, SelectorWait, StructuredSelectorWait, PredicateScript]


@dataclass(frozen=True)
class LoadSource:
    """Where the document comes from: a real URL, or inline markup when url is None."""

    url: Optional[str] = None
    html: str = ""

    @property
    def is_inline(self) -> bool:
        return self.url is None


@dataclass(frozen=True)
class ResponseMetadata:
    url: Optional[str] = None
    status: Optional[int] = None
    status_text: Optional[str] = None
    ip: Optional[str] = None
    port: Optional[int] = None

    def to_headers(self) -> dict[str, str]:
        """Render as ``x-response-*`` headers, omitting absent fields."""
        values = {
            "x-response-url": self.url,
            "x-response-code": self.status,
            "x-response-status": self.status_text,
            "x-response-ip": self.ip,
            "x-response-port": self.port,
        }
        return {k: str(v) for k, v in values.items() if v is not None}


@dataclass(frozen=True)
class CaptureResult:
    data: Union[bytes, str]
    headers: dict[str, str] = field(default_factory=dict)
    type: str = "png"
