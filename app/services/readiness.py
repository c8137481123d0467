import asyncio
import logging

from patchright.async_api import Error as PlaywrightError, Page

from app.config import settings
from app.exceptions import ScriptEvaluationError
from app.models.capture import (
    FixedDelay,
    NoWait,
    PredicateScript,
    ReadinessSpec,
    SelectorWait,
    StructuredSelectorWait,
)

logger = logging.getLogger(__name__)

# Querying a detached fragment has no side effects but still parses the selector
IS_SELECTOR_JS = """(selector) => {
    try {
        document.createDocumentFragment().querySelector(selector);
    } catch (e) {
        return false;
    }
    return true;
}"""

SCROLL_THROUGH_PAGE_JS = """async ({interval, threshold}) => {
    await new Promise((resolve) => {
        const step = Math.floor(window.innerHeight / 2);
        let lastY = -1;

        const scroll = () => {
            const bottom = window.scrollY + window.innerHeight;
            if (document.body.scrollHeight - bottom < threshold || window.scrollY === lastY) {
                resolve();
                return;
            }
            lastY = window.scrollY;
            window.scrollBy(0, step);
            setTimeout(scroll, interval);
        };
        scroll();
    });
    window.scrollTo(0, 0);
}"""


async def is_selector(page: Page, value: str) -> bool:
    """Return whether *value* parses as a CSS selector inside the page."""
    try:
        return bool(await page.evaluate(IS_SELECTOR_JS, value))
    except PlaywrightError as e:
        raise ScriptEvaluationError(f"Selector check failed: {e}") from e


async def wait_until_ready(page: Page, spec: ReadinessSpec) -> None:
    if isinstance(spec, NoWait):
        return

    if isinstance(spec, FixedDelay):
        logger.info("Waiting %dms...", spec.ms)
        await asyncio.sleep(spec.ms / 1000)
        return

    try:
        if isinstance(spec, StructuredSelectorWait):
            logger.info("Waiting for selector %r (state: %s)...", spec.selector, spec.state)
            kwargs: dict = {"state": spec.state}
            if spec.timeout is not None:
                kwargs["timeout"] = spec.timeout
            await page.wait_for_selector(spec.selector, **kwargs)

        elif isinstance(spec, SelectorWait):
            logger.warning(
                "Bare string waitFor is ambiguous; pass {\"selector\": ...} or waitForFunction instead"
            )
            if await is_selector(page, spec.value):
                logger.info("Waiting for selector %r...", spec.value)
                await page.wait_for_selector(spec.value, state="attached")
            else:
                logger.info("waitFor is not a selector, evaluating it as a function")
                await page.evaluate(f"({spec.value})()")

        elif isinstance(spec, PredicateScript):
            logger.info("Waiting for predicate function (polling: %s)...", spec.polling)
            kwargs = {"polling": spec.polling}
            if spec.timeout is not None:
                kwargs["timeout"] = spec.timeout
            await page.wait_for_function(spec.source, **kwargs)

        else:
            raise TypeError(f"Unknown readiness spec: {spec!r}")
    except PlaywrightError as e:
        raise ScriptEvaluationError(f"Readiness wait failed: {e}") from e


async def scroll_through_page(page: Page) -> None:
    """Scroll down in steps to trigger lazy loaders, then return to the top."""
    logger.info("Scrolling page...")
    try:
        await page.evaluate(
            SCROLL_THROUGH_PAGE_JS,
            {"interval": settings.scroll_step_interval, "threshold": settings.scroll_bottom_threshold},
        )
    except PlaywrightError as e:
        raise ScriptEvaluationError(f"Scrolling failed: {e}") from e
    await asyncio.sleep(settings.scroll_settle_delay / 1000)
