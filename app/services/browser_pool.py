import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from patchright.async_api import Browser, BrowserContext, Page, async_playwright

from app.config import settings

logger = logging.getLogger(__name__)

BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--disable-extensions",
    "--disable-blink-features=AutomationControlled",
]


class BrowserPool:
    """Hands out one isolated context per capture.

    Captures install page-wide state (routes, headers, timeouts), so a page
    is never shared: each capture gets a fresh context that is closed after.
    """

    def __init__(self, max_concurrent: int = settings.screenshot_max_concurrent) -> None:
        self._playwright = None
        self._browser: Browser | None = None
        self._max_concurrent = max_concurrent
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._lock = asyncio.Lock()

    async def start(self) -> None:
        self._playwright = await async_playwright().start()
        await self._launch_browser()
        logger.info("Browser pool started (max concurrent contexts: %d)", self._max_concurrent)

    async def _launch_browser(self) -> None:
        self._browser = await self._playwright.chromium.launch(
            headless=True,
            channel="chrome",
            args=BROWSER_ARGS,
        )
        logger.info("Chrome browser launched")

    async def _close_browser(self) -> None:
        if self._browser is None:
            return
        try:
            await self._browser.close()
        except Exception as e:
            logger.debug("Browser already closed: %s", e)
        self._browser = None

    async def _ensure_browser(self) -> None:
        async with self._lock:
            if self._browser is None or not self._browser.is_connected():
                logger.warning("Browser disconnected, relaunching...")
                await self._close_browser()
                await self._launch_browser()

    async def _new_context(self) -> BrowserContext:
        return await self._browser.new_context(
            viewport={
                "width": settings.browser_viewport_width,
                "height": settings.browser_viewport_height,
            },
            user_agent=settings.browser_user_agent,
        )

    async def acquire_context(self) -> BrowserContext:
        await self._semaphore.acquire()
        try:
            for attempt in range(2):
                await self._ensure_browser()
                try:
                    return await self._new_context()
                except Exception:
                    if attempt == 0:
                        logger.warning("Context creation failed, relaunching browser...")
                        async with self._lock:
                            await self._close_browser()
                        continue
                    raise
        except Exception:
            self._semaphore.release()
            raise

    async def release_context(self, context: BrowserContext) -> None:
        try:
            await context.close()
        except Exception as e:
            logger.debug("Context already closed: %s", e)
        finally:
            self._semaphore.release()

    @asynccontextmanager
    async def page(self) -> AsyncIterator[Page]:
        context = await self.acquire_context()
        try:
            yield await context.new_page()
        finally:
            await self.release_context(context)

    async def stop(self) -> None:
        async with self._lock:
            await self._close_browser()
        if self._playwright:
            await self._playwright.stop()
            self._playwright = None
        logger.info("Browser pool stopped")


browser_pool = BrowserPool()
