"""Errors raised by the capture pipeline.

Every stage fails fast: the first error propagates to the caller with no
partial result. Retrying is left to whoever invoked the capture.
"""


class CaptureError(Exception):
    """Base class for capture pipeline failures."""

    retryable: bool = False


class NavigationError(CaptureError):
    """The page could not be loaded or request interception failed."""


class SelectorResolutionError(CaptureError):
    """The capture target selector matched no element."""

    def __init__(self, selector: str) -> None:
        self.selector = selector
        super().__init__(f"No element matches selector {selector!r}")


class ScriptEvaluationError(CaptureError):
    """An injected asset or a readiness script failed inside the page."""


class EncodingError(CaptureError):
    """Image post-processing or re-encoding failed."""
