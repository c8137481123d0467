"""Request interception for a capture page.

Two route handlers can be installed on a page:

* ``InterceptionRules`` blocks or mocks requests according to the capture
  request. Block rules always take precedence over mock rules, and within
  each group the first declared match wins.
* ``InlineDocumentRoute`` serves inline markup as the response to the first
  request (the synthetic navigation) and passes every later request on.

Playwright runs route handlers in reverse registration order, so the inline
document route, registered last, sees each request first and falls back to
the rules for everything after the document itself.
"""

import enum
import logging
import re
from dataclasses import dataclass
from typing import Iterable, Optional

from patchright.async_api import Error as PlaywrightError, Page, Route

from app.exceptions import NavigationError
from app.models.requests import CaptureRequest, MockResponse, RequestInterceptor

logger = logging.getLogger(__name__)

ROUTE_ALL = "**/*"


class Action(str, enum.Enum):
    ABORT = "abort"
    FULFILL = "fulfill"
    CONTINUE = "continue"


@dataclass(frozen=True)
class Decision:
    action: Action
    response: Optional[MockResponse] = None


CONTINUE = Decision(Action.CONTINUE)
ABORT = Decision(Action.ABORT)


class InterceptionRules:
    def __init__(
        self,
        block_patterns: Iterable[str] = (),
        blocked_types: Iterable[str] = (),
        interceptors: Iterable[RequestInterceptor] = (),
    ) -> None:
        self._block_patterns = [re.compile(p) for p in block_patterns]
        self._blocked_types = {t.lower() for t in blocked_types}
        self._mocks = [(re.compile(i.pattern), i.response) for i in interceptors]

    @classmethod
    def from_request(cls, request: CaptureRequest) -> "InterceptionRules":
        return cls(
            request.rejectRequestPattern,
            request.rejectResourceTypes,
            request.requestInterceptors,
        )

    @property
    def active(self) -> bool:
        return bool(self._block_patterns or self._blocked_types or self._mocks)

    def decide(self, url: str, resource_type: str) -> Decision:
        if resource_type.lower() in self._blocked_types:
            return ABORT
        if any(p.search(url) for p in self._block_patterns):
            return ABORT
        for pattern, response in self._mocks:
            if pattern.search(url):
                return Decision(Action.FULFILL, response)
        return CONTINUE

    async def handle(self, route: Route) -> None:
        request = route.request
        decision = self.decide(request.url, request.resource_type)
        logger.debug("%s %s (%s)", decision.action.value, request.url, request.resource_type)

        if decision.action is Action.ABORT:
            await route.abort()
        elif decision.action is Action.FULFILL:
            await fulfill(route, decision.response)
        else:
            await route.fallback()


async def fulfill(route: Route, response: MockResponse) -> None:
    kwargs: dict = {"status": response.status, "body": response.body}
    if response.headers:
        kwargs["headers"] = response.headers
    if response.contentType:
        kwargs["content_type"] = response.contentType
    await route.fulfill(**kwargs)


async def install_interception(page: Page, request: CaptureRequest) -> Optional[InterceptionRules]:
    """Install the rule handler if the request has any rules. It is never removed."""
    rules = InterceptionRules.from_request(request)
    if not rules.active:
        return None
    try:
        await page.route(ROUTE_ALL, rules.handle)
    except PlaywrightError as e:
        raise NavigationError(f"Failed to enable request interception: {e}") from e
    logger.info(
        "Request interception enabled (%d block patterns, %d blocked types, %d mocks)",
        len(request.rejectRequestPattern),
        len(request.rejectResourceTypes),
        len(request.requestInterceptors),
    )
    return rules


class InlineDocumentState(enum.Enum):
    AWAITING_FIRST = "awaiting_first"
    PASSTHROUGH = "passthrough"


class InlineDocumentRoute:
    """One-shot mock: the first request gets *html*, the rest pass through."""

    def __init__(self, html: str) -> None:
        self.html = html
        self.state = InlineDocumentState.AWAITING_FIRST

    async def handle(self, route: Route) -> None:
        if self.state is InlineDocumentState.AWAITING_FIRST:
            # Flip before awaiting so a concurrent request cannot also be served
            self.state = InlineDocumentState.PASSTHROUGH
            logger.debug("Serving inline document for %s", route.request.url)
            await route.fulfill(status=200, content_type="text/html", body=self.html)
            return
        await route.fallback()
