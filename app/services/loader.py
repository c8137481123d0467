import logging
from typing import Optional

from patchright.async_api import Error as PlaywrightError, Page, Response

from app.config import settings
from app.exceptions import NavigationError
from app.models.capture import LoadSource, ResponseMetadata
from app.models.requests import CaptureRequest
from app.services.interception import ROUTE_ALL, InlineDocumentRoute

logger = logging.getLogger(__name__)


async def load_content(page: Page, request: CaptureRequest, source: LoadSource) -> Optional[Response]:
    """Navigate to the url, or load the inline markup through a synthetic navigation."""
    goto_kwargs = request.gotoOptions.to_kwargs()

    if not source.is_inline:
        logger.info("Navigating to %s (wait_until: %s)...", source.url, goto_kwargs["wait_until"])
        try:
            return await page.goto(source.url, **goto_kwargs)
        except PlaywrightError as e:
            raise NavigationError(f"Navigation to {source.url} failed: {e}") from e

    # There is no set_content variant that waits for sub-resources, so the
    # markup is served as the response to a real navigation instead.
    inline_route = InlineDocumentRoute(source.html)
    try:
        await page.route(ROUTE_ALL, inline_route.handle)
    except PlaywrightError as e:
        raise NavigationError(f"Failed to enable request interception: {e}") from e

    logger.info("Loading inline document (%d chars)...", len(source.html))
    try:
        return await page.goto(settings.inline_document_url, **goto_kwargs)
    except PlaywrightError as e:
        raise NavigationError(f"Loading inline document failed: {e}") from e


async def response_metadata(response: Optional[Response]) -> ResponseMetadata:
    if response is None:
        return ResponseMetadata()

    server_addr = await response.server_addr()
    return ResponseMetadata(
        url=response.url[: settings.response_url_max_length],
        status=response.status,
        status_text=response.status_text,
        ip=server_addr["ipAddress"] if server_addr else None,
        port=server_addr["port"] if server_addr else None,
    )
