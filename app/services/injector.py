import logging

from patchright.async_api import Error as PlaywrightError, Page

from app.exceptions import ScriptEvaluationError
from app.models.requests import CaptureRequest

logger = logging.getLogger(__name__)


async def inject_assets(page: Page, request: CaptureRequest) -> None:
    """Add style tags, then script tags, each once and in declared order."""
    for index, tag in enumerate(request.addStyleTag):
        try:
            await page.add_style_tag(**tag.model_dump(exclude_none=True))
        except PlaywrightError as e:
            raise ScriptEvaluationError(f"addStyleTag[{index}] failed: {e}") from e

    for index, tag in enumerate(request.addScriptTag):
        try:
            await page.add_script_tag(**tag.model_dump(exclude_none=True))
        except PlaywrightError as e:
            raise ScriptEvaluationError(f"addScriptTag[{index}] failed: {e}") from e

    if request.addStyleTag or request.addScriptTag:
        logger.info(
            "Injected %d style tags and %d script tags",
            len(request.addStyleTag),
            len(request.addScriptTag),
        )
