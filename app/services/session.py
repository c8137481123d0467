import base64
import logging
from urllib.parse import urlsplit

from patchright.async_api import CDPSession, Error as PlaywrightError, Page, Route

from app.config import settings
from app.exceptions import CaptureError
from app.models.requests import CaptureRequest, Credentials
from app.services.interception import ROUTE_ALL

logger = logging.getLogger(__name__)

DEFAULT_PORTS = {"http": 80, "https": 443}


def basic_auth_header(credentials: Credentials) -> str:
    token = base64.b64encode(f"{credentials.username}:{credentials.password}".encode()).decode()
    return f"Basic {token}"


def url_origin(url: str) -> tuple[str, str, int | None]:
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    return scheme, (parts.hostname or "").lower(), parts.port or DEFAULT_PORTS.get(scheme)


class CredentialsRoute:
    """Adds the Basic ``Authorization`` header to same-origin requests only."""

    def __init__(self, credentials: Credentials, target_url: str) -> None:
        self.header = basic_auth_header(credentials)
        self.origin = url_origin(target_url)

    async def handle(self, route: Route) -> None:
        if url_origin(route.request.url) != self.origin:
            await route.fallback()
            return
        headers = await route.request.all_headers()
        headers["authorization"] = self.header
        await route.fallback(headers=headers)


async def _cdp_session(page: Page) -> CDPSession:
    # Emulation overrides are dropped when their session detaches, so it
    # stays attached for the life of the page
    return await page.context.new_cdp_session(page)


async def configure_session(page: Page, request: CaptureRequest) -> None:
    """Apply page-wide settings. They persist on *page* after the capture returns."""
    try:
        await _apply_settings(page, request)
    except PlaywrightError as e:
        raise CaptureError(f"Failed to configure session: {e}") from e


def _has_explicit_authorization(request: CaptureRequest) -> bool:
    return any(name.lower() == "authorization" for name in request.setExtraHTTPHeaders or {})


async def _apply_settings(page: Page, request: CaptureRequest) -> None:
    # Registered before any interception rules, so it runs after them
    if request.authenticate and not _has_explicit_authorization(request):
        target_url = request.url or settings.inline_document_url
        credentials_route = CredentialsRoute(request.authenticate, target_url)
        await page.route(ROUTE_ALL, credentials_route.handle)
        logger.info("Credentials scoped to %s://%s", *credentials_route.origin[:2])

    if request.setExtraHTTPHeaders:
        logger.info("Setting %d extra HTTP headers", len(request.setExtraHTTPHeaders))
        await page.set_extra_http_headers(request.setExtraHTTPHeaders)

    cdp = None
    if request.setJavaScriptEnabled is not None:
        cdp = await _cdp_session(page)
        await cdp.send(
            "Emulation.setScriptExecutionDisabled",
            {"value": not request.setJavaScriptEnabled},
        )
        logger.info("JavaScript enabled: %s", request.setJavaScriptEnabled)

    if request.cookies:
        default_url = request.url or settings.inline_document_url
        await page.context.add_cookies([c.to_playwright(default_url) for c in request.cookies])
        logger.info("Added %d cookies", len(request.cookies))

    if request.viewport:
        viewport = request.viewport
        await page.set_viewport_size({"width": viewport.width, "height": viewport.height})
        if viewport.deviceScaleFactor is not None:
            if cdp is None:
                cdp = await _cdp_session(page)
            await cdp.send(
                "Emulation.setDeviceMetricsOverride",
                {
                    "width": viewport.width,
                    "height": viewport.height,
                    "deviceScaleFactor": viewport.deviceScaleFactor,
                    "mobile": False,
                },
            )

    if request.userAgent:
        if cdp is None:
            cdp = await _cdp_session(page)
        await cdp.send("Emulation.setUserAgentOverride", {"userAgent": request.userAgent})

    if request.emulateMediaType:
        await page.emulate_media(media=request.emulateMediaType)

    # Timing is owned by the readiness waiter, not the page
    timeout = settings.capture_session_timeout
    page.set_default_navigation_timeout(timeout)
    page.set_default_timeout(timeout)
