import re
from typing import Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

# Puppeteer-style lifecycle names still arrive from older callers
# Largest output edge accepted by resize and extend
MAX_IMAGE_DIMENSION = 16384

WAIT_UNTIL_ALIASES = {
    "networkidle0": "networkidle",
    "networkidle2": "networkidle",
}


def _check_pattern(pattern: str) -> str:
    try:
        re.compile(pattern)
    except re.error as e:
        raise ValueError(f"Invalid request pattern {pattern!r}: {e}") from e
    return pattern


class Credentials(BaseModel):
    username: str
    password: str = ""


class Cookie(BaseModel):
    name: str
    value: str
    url: Optional[str] = None
    domain: Optional[str] = None
    path: Optional[str] = None
    expires: Optional[float] = None
    httpOnly: Optional[bool] = None
    secure: Optional[bool] = None
    sameSite: Optional[Literal["Strict", "Lax", "None"]] = None

    def to_playwright(self, default_url: Optional[str]) -> dict:
        """Render as a Playwright cookie, scoping it to *default_url* when unscoped."""
        cookie = self.model_dump(exclude_none=True)
        if "url" not in cookie and "domain" not in cookie and default_url:
            cookie["url"] = default_url
        # Playwright rejects url together with domain/path
        if "url" in cookie:
            cookie.pop("domain", None)
            cookie.pop("path", None)
        return cookie


class Viewport(BaseModel):
    width: int = Field(ge=1)
    height: int = Field(ge=1)
    deviceScaleFactor: Optional[float] = Field(default=None, gt=0)


class GotoOptions(BaseModel):
    waitUntil: Literal["load", "domcontentloaded", "networkidle", "commit"] = "load"
    timeout: Optional[float] = Field(default=None, ge=0)
    referer: Optional[str] = None

    @field_validator("waitUntil", mode="before")
    @classmethod
    def translate_wait_until(cls, v):
        if isinstance(v, str):
            return WAIT_UNTIL_ALIASES.get(v, v)
        return v

    def to_kwargs(self) -> dict:
        kwargs: dict = {"wait_until": self.waitUntil}
        if self.timeout is not None:
            kwargs["timeout"] = self.timeout
        if self.referer:
            kwargs["referer"] = self.referer
        return kwargs


class MockResponse(BaseModel):
    status: int = Field(default=200, ge=100, le=599)
    headers: dict[str, str] = Field(default_factory=dict)
    contentType: Optional[str] = None
    body: str = ""


class RequestInterceptor(BaseModel):
    pattern: str
    response: MockResponse

    @field_validator("pattern")
    @classmethod
    def validate_pattern(cls, v: str) -> str:
        return _check_pattern(v)


class StyleTag(BaseModel):
    url: Optional[str] = None
    path: Optional[str] = None
    content: Optional[str] = None

    @model_validator(mode="after")
    def require_source(self):
        if not (self.url or self.path or self.content):
            raise ValueError("Tag needs one of url, path or content")
        return self


class ScriptTag(StyleTag):
    type: Optional[str] = None


class WaitForSelector(BaseModel):
    selector: str
    visible: bool = False
    hidden: bool = False
    timeout: Optional[float] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def check_state(self):
        if self.visible and self.hidden:
            raise ValueError("visible and hidden are mutually exclusive")
        return self


class WaitForFunction(BaseModel):
    fn: str
    polling: Union[Literal["raf"], float] = "raf"
    timeout: Optional[float] = Field(default=None, ge=0)


class Clip(BaseModel):
    x: float = 0
    y: float = 0
    width: float = Field(gt=0)
    height: float = Field(gt=0)


class ScreenshotOptions(BaseModel):
    type: Optional[str] = None
    quality: Optional[int] = None
    fullPage: bool = False
    omitBackground: bool = False
    clip: Optional[Clip] = None
    encoding: Literal["binary", "base64"] = "binary"

    @field_validator("type")
    @classmethod
    def validate_type(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in ("png", "jpeg"):
            raise ValueError("Invalid type. Must be png or jpeg")
        return v

    @field_validator("quality")
    @classmethod
    def validate_quality(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and (v < 0 or v > 100):
            raise ValueError("Quality must be between 0 and 100")
        return v

    @model_validator(mode="after")
    def quality_requires_jpeg(self):
        if self.quality is not None and self.type != "jpeg":
            raise ValueError("Quality is only supported for jpeg screenshots")
        return self


class Resize(BaseModel):
    width: Optional[int] = Field(default=None, ge=1, le=MAX_IMAGE_DIMENSION)
    height: Optional[int] = Field(default=None, ge=1, le=MAX_IMAGE_DIMENSION)
    fit: Literal["cover", "contain", "fill", "inside", "outside"] = "cover"

    @model_validator(mode="after")
    def require_dimension(self):
        if self.width is None and self.height is None:
            raise ValueError("Resize needs a width or a height")
        return self


class Extend(BaseModel):
    top: int = Field(default=0, ge=0, le=MAX_IMAGE_DIMENSION)
    bottom: int = Field(default=0, ge=0, le=MAX_IMAGE_DIMENSION)
    left: int = Field(default=0, ge=0, le=MAX_IMAGE_DIMENSION)
    right: int = Field(default=0, ge=0, le=MAX_IMAGE_DIMENSION)
    background: str = "black"


class ManipulationSpec(BaseModel):
    resize: Optional[Resize] = None
    extend: Optional[Extend] = None
    flip: bool = False
    flop: bool = False
    rotate: Optional[float] = None


class CaptureRequest(BaseModel):
    """Declarative description of one capture. Field names follow the JSON payload."""

    model_config = {"frozen": True}

    # Load source
    url: Optional[str] = None
    html: str = ""
    gotoOptions: GotoOptions = Field(default_factory=GotoOptions)

    # Session settings
    authenticate: Optional[Credentials] = None
    setExtraHTTPHeaders: Optional[dict[str, str]] = None
    setJavaScriptEnabled: Optional[bool] = None
    cookies: list[Cookie] = Field(default_factory=list)
    viewport: Optional[Viewport] = None
    userAgent: str = ""
    emulateMediaType: Optional[Literal["screen", "print"]] = None

    # Interception
    rejectRequestPattern: list[str] = Field(default_factory=list)
    rejectResourceTypes: list[str] = Field(default_factory=list)
    requestInterceptors: list[RequestInterceptor] = Field(default_factory=list)

    # Injection
    addStyleTag: list[StyleTag] = Field(default_factory=list)
    addScriptTag: list[ScriptTag] = Field(default_factory=list)

    # Readiness
    waitFor: Optional[Union[WaitForSelector, float, str]] = None
    waitForFunction: Optional[Union[WaitForFunction, str]] = None
    scrollPage: bool = False

    # Capture
    selector: Optional[str] = None
    options: ScreenshotOptions = Field(default_factory=ScreenshotOptions)
    manipulate: Optional[ManipulationSpec] = None

    @field_validator("rejectRequestPattern")
    @classmethod
    def validate_patterns(cls, v: list[str]) -> list[str]:
        return [_check_pattern(p) for p in v]

    @field_validator("rejectResourceTypes")
    @classmethod
    def normalize_resource_types(cls, v: list[str]) -> list[str]:
        return [t.lower() for t in v]

    @field_validator("waitFor")
    @classmethod
    def validate_wait_for(cls, v):
        if isinstance(v, (int, float)) and v < 0:
            raise ValueError("waitFor delay must not be negative")
        return v

    @property
    def needs_interception(self) -> bool:
        return bool(self.rejectRequestPattern or self.rejectResourceTypes or self.requestInterceptors)
