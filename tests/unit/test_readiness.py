"""Unit tests for app.services.readiness."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from patchright.async_api import Error as PlaywrightError

from app.exceptions import ScriptEvaluationError
from app.models.capture import (
    FixedDelay,
    NoWait,
    PredicateScript,
    SelectorWait,
    StructuredSelectorWait,
)
from app.services.readiness import (
    IS_SELECTOR_JS,
    SCROLL_THROUGH_PAGE_JS,
    is_selector,
    scroll_through_page,
    wait_until_ready,
)


class TestIsSelector:
    @pytest.mark.asyncio
    async def test_selector_check_runs_in_page(self, page) -> None:
        page.evaluate.return_value = True
        assert await is_selector(page, "#main") is True
        page.evaluate.assert_awaited_once_with(IS_SELECTOR_JS, "#main")

    @pytest.mark.asyncio
    async def test_selector_check_is_stable(self, page) -> None:
        page.evaluate.return_value = False
        first = await is_selector(page, "() => window.ready")
        second = await is_selector(page, "() => window.ready")
        assert first is second is False

    @pytest.mark.asyncio
    async def test_selector_check_failure_is_error(self, page) -> None:
        page.evaluate = AsyncMock(side_effect=PlaywrightError("Execution context was destroyed"))
        with pytest.raises(ScriptEvaluationError):
            await is_selector(page, "#main")


class TestWaitUntilReady:
    @pytest.mark.asyncio
    async def test_no_wait_touches_nothing(self, page) -> None:
        await wait_until_ready(page, NoWait())
        page.evaluate.assert_not_awaited()
        page.wait_for_selector.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_fixed_delay_sleeps_without_evaluating(self, page) -> None:
        with patch("asyncio.sleep", new_callable=AsyncMock) as sleep:
            await wait_until_ready(page, FixedDelay(1000))

        sleep.assert_awaited_once_with(1.0)
        page.evaluate.assert_not_awaited()
        page.wait_for_selector.assert_not_awaited()
        page.wait_for_function.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_string_selector_waits_for_selector(self, page) -> None:
        page.evaluate.return_value = True
        await wait_until_ready(page, SelectorWait("#main"))

        page.wait_for_selector.assert_awaited_once_with("#main", state="attached")
        assert page.evaluate.await_count == 1

    @pytest.mark.asyncio
    async def test_string_function_is_invoked(self, page) -> None:
        page.evaluate = AsyncMock(side_effect=[False, None])
        source = "() => new Promise(r => setTimeout(r, 100))"

        await wait_until_ready(page, SelectorWait(source))

        page.wait_for_selector.assert_not_awaited()
        assert page.evaluate.await_args_list[1].args == (f"({source})()",)

    @pytest.mark.asyncio
    async def test_string_function_failure(self, page) -> None:
        page.evaluate = AsyncMock(side_effect=[False, PlaywrightError("boom")])

        with pytest.raises(ScriptEvaluationError, match="boom"):
            await wait_until_ready(page, SelectorWait("() => { throw new Error('boom') }"))

    @pytest.mark.asyncio
    async def test_structured_selector_skips_check(self, page) -> None:
        await wait_until_ready(page, StructuredSelectorWait(".ready", state="visible", timeout=5000))

        page.evaluate.assert_not_awaited()
        page.wait_for_selector.assert_awaited_once_with(".ready", state="visible", timeout=5000)

    @pytest.mark.asyncio
    async def test_predicate_script(self, page) -> None:
        await wait_until_ready(page, PredicateScript("() => window.done", polling=100))

        page.wait_for_function.assert_awaited_once_with("() => window.done", polling=100)

    @pytest.mark.asyncio
    async def test_predicate_script_with_timeout(self, page) -> None:
        await wait_until_ready(page, PredicateScript("() => window.done", timeout=2000))

        page.wait_for_function.assert_awaited_once_with("() => window.done", polling="raf", timeout=2000)

    @pytest.mark.asyncio
    async def test_selector_timeout_is_error(self, page) -> None:
        page.wait_for_selector = AsyncMock(side_effect=PlaywrightError("Timeout 5000ms exceeded"))

        with pytest.raises(ScriptEvaluationError):
            await wait_until_ready(page, StructuredSelectorWait(".never", timeout=5000))


class TestScrollThroughPage:
    @pytest.mark.asyncio
    async def test_scrolls_then_settles(self, page) -> None:
        with patch("asyncio.sleep", new_callable=AsyncMock) as sleep:
            await scroll_through_page(page)

        page.evaluate.assert_awaited_once_with(SCROLL_THROUGH_PAGE_JS, {"interval": 100, "threshold": 400})
        sleep.assert_awaited_once_with(1.0)

    @pytest.mark.asyncio
    async def test_scroll_failure(self, page) -> None:
        page.evaluate = AsyncMock(side_effect=PlaywrightError("Target closed"))
        with pytest.raises(ScriptEvaluationError):
            await scroll_through_page(page)
