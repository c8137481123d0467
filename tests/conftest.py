"""Shared fixtures: Playwright page and route fakes, generated images."""

from __future__ import annotations

import io
from unittest.mock import AsyncMock, MagicMock

import pytest
from PIL import Image

ASYNC_PAGE_METHODS = (
    "goto",
    "route",
    "set_extra_http_headers",
    "set_viewport_size",
    "emulate_media",
    "add_style_tag",
    "add_script_tag",
    "evaluate",
    "wait_for_selector",
    "wait_for_function",
    "query_selector",
    "screenshot",
)


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------


def encode_png(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture()
def png_bytes() -> bytes:
    """A 40x20 solid red PNG."""
    return encode_png(Image.new("RGB", (40, 20), "red"))


@pytest.fixture()
def marked_png() -> bytes:
    """A 4x2 white PNG with a single red pixel in the top-left corner."""
    image = Image.new("RGB", (4, 2), "white")
    image.putpixel((0, 0), (255, 0, 0))
    return encode_png(image)


# ---------------------------------------------------------------------------
# Playwright fakes
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_response():
    def _make(
        url: str = "https://example.com/",
        status: int = 200,
        status_text: str = "OK",
        server_addr: dict | None = None,
    ) -> MagicMock:
        response = MagicMock()
        response.url = url
        response.status = status
        response.status_text = status_text
        response.server_addr = AsyncMock(
            return_value=server_addr if server_addr is not None else {"ipAddress": "93.184.216.34", "port": 443}
        )
        return response

    return _make


@pytest.fixture()
def cdp_session() -> MagicMock:
    session = MagicMock()
    session.send = AsyncMock()
    return session


@pytest.fixture()
def page(png_bytes, make_response, cdp_session) -> MagicMock:
    """A Playwright ``Page`` stand-in whose calls are all recorded on ``mock_calls``."""
    page = MagicMock()
    for name in ASYNC_PAGE_METHODS:
        setattr(page, name, AsyncMock())
    page.context.add_cookies = AsyncMock()
    page.context.new_cdp_session = AsyncMock(return_value=cdp_session)
    page.goto.return_value = make_response()
    page.screenshot.return_value = png_bytes
    page.evaluate.return_value = True
    return page


@pytest.fixture()
def make_route():
    def _make(url: str, resource_type: str = "document") -> MagicMock:
        route = MagicMock()
        route.request.url = url
        route.request.resource_type = resource_type
        route.abort = AsyncMock()
        route.fulfill = AsyncMock()
        route.fallback = AsyncMock()
        route.continue_ = AsyncMock()
        return route

    return _make


def route_handler(page: MagicMock, index: int = -1):
    """Return the handler passed to the *index*-th ``page.route`` call."""
    return page.route.call_args_list[index].args[1]


@pytest.fixture()
def registered_handler():
    return route_handler
