import asyncio
import base64
import logging
import time
from typing import Any, Mapping, Union

from patchright.async_api import Error as PlaywrightError, Page

from app.config import settings
from app.exceptions import CaptureError, SelectorResolutionError
from app.models.capture import CaptureResult
from app.models.requests import CaptureRequest, ScreenshotOptions
from app.services.browser_pool import browser_pool
from app.services.injector import inject_assets
from app.services.interception import install_interception
from app.services.loader import load_content, response_metadata
from app.services.manipulation import apply_manipulations, resolve_content_type
from app.services.normalizer import normalize_request, resolve_load_source, resolve_readiness
from app.services.readiness import scroll_through_page, wait_until_ready
from app.services.session import configure_session

logger = logging.getLogger(__name__)


def screenshot_kwargs(options: ScreenshotOptions, element: bool = False) -> dict:
    """Translate capture options into Playwright screenshot arguments."""
    kwargs: dict = {"type": options.type or "png", "omit_background": options.omitBackground}
    if options.quality is not None:
        kwargs["quality"] = options.quality
    if not element:
        kwargs["full_page"] = options.fullPage
        if options.clip:
            kwargs["clip"] = options.clip.model_dump()
    return kwargs


async def take_screenshot(page: Page, request: CaptureRequest) -> bytes:
    options = request.options
    try:
        if request.selector:
            element = await page.query_selector(request.selector)
            if element is None:
                raise SelectorResolutionError(request.selector)
            logger.info("Capturing element %r...", request.selector)
            return await element.screenshot(**screenshot_kwargs(options, element=True))

        logger.info("Capturing screenshot (full page: %s)...", options.fullPage)
        return await page.screenshot(**screenshot_kwargs(options))
    except PlaywrightError as e:
        raise CaptureError(f"Screenshot failed: {e}") from e


async def run_capture(page: Page, raw: Union[CaptureRequest, Mapping[str, Any]]) -> CaptureResult:
    """Run one capture against *page*, which stays owned by the caller."""
    request = normalize_request(raw)
    source = resolve_load_source(request)
    readiness = resolve_readiness(request)

    await configure_session(page, request)
    await install_interception(page, request)
    response = await load_content(page, request, source)
    metadata = await response_metadata(response)
    await inject_assets(page, request)

    await wait_until_ready(page, readiness)
    if request.scrollPage:
        await scroll_through_page(page)

    data = await take_screenshot(page, request)
    logger.info("Screenshot captured (%d bytes)", len(data))

    if request.manipulate:
        data = await asyncio.to_thread(
            apply_manipulations,
            data,
            request.manipulate,
            request.options.type or "png",
            request.options.quality,
        )

    payload: Union[bytes, str] = data
    if request.options.encoding == "base64":
        payload = base64.b64encode(data).decode("ascii")

    return CaptureResult(
        data=payload,
        headers=metadata.to_headers(),
        type=resolve_content_type(request.options),
    )


async def capture_screenshot(request: CaptureRequest) -> CaptureResult:
    """Capture on a fresh pooled page, bounded by the overall operation timeout."""
    overall_timeout = settings.screenshot_operation_timeout / 1000

    async def _do_capture() -> CaptureResult:
        async with browser_pool.page() as page:
            return await run_capture(page, request)

    start = time.time()
    try:
        result = await asyncio.wait_for(_do_capture(), timeout=overall_timeout)
        elapsed = int((time.time() - start) * 1000)
        logger.info("Total screenshot time: %dms", elapsed)
        return result
    except asyncio.TimeoutError:
        logger.error("Screenshot operation timed out after %ds", overall_timeout)
        raise
