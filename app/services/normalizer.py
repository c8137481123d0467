from typing import Any, Mapping, Union

from app.models.capture import (
    FixedDelay,
    LoadSource,
    NoWait,
    PredicateScript,
    ReadinessSpec,
    SelectorWait,
    StructuredSelectorWait,
)
from app.models.requests import CaptureRequest, WaitForFunction, WaitForSelector


def normalize_request(raw: Union[CaptureRequest, Mapping[str, Any]]) -> CaptureRequest:
    """Validate *raw* and fill in defaults. Raises pydantic ``ValidationError``."""
    if isinstance(raw, CaptureRequest):
        return raw
    return CaptureRequest.model_validate(raw)


def resolve_load_source(request: CaptureRequest) -> LoadSource:
    # No url and no markup is not an error: it loads an empty document
    if request.url is not None:
        return LoadSource(url=request.url)
    return LoadSource(html=request.html)


def resolve_readiness(request: CaptureRequest) -> ReadinessSpec:
    """Pick the single active wait strategy. ``waitFor`` overrides ``waitForFunction``."""
    wait_for = request.waitFor
    if wait_for is not None and wait_for != "" and wait_for != 0:
        if isinstance(wait_for, WaitForSelector):
            state = "visible" if wait_for.visible else "hidden" if wait_for.hidden else "attached"
            return StructuredSelectorWait(wait_for.selector, state=state, timeout=wait_for.timeout)
        if isinstance(wait_for, str):
            return SelectorWait(wait_for)
        return FixedDelay(float(wait_for))

    wait_fn = request.waitForFunction
    if isinstance(wait_fn, WaitForFunction):
        return PredicateScript(wait_fn.fn, polling=wait_fn.polling, timeout=wait_fn.timeout)
    if wait_fn:
        return PredicateScript(wait_fn)
    return NoWait()
