"""HTTP tests for the screenshot route. The browser is never started."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from app.exceptions import NavigationError, SelectorResolutionError
from app.main import app
from app.models.capture import CaptureResult

CAPTURE = "app.routes.screenshot.capture_screenshot"


@pytest.fixture()
def client() -> TestClient:
    # Not used as a context manager, so the lifespan (browser pool) never runs
    return TestClient(app)


def test_health(client: TestClient) -> None:
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_screenshot_returns_image(client: TestClient) -> None:
    result = CaptureResult(
        data=b"\xff\xd8jpeg",
        headers={"x-response-code": "200", "x-response-url": "https://example.com/"},
        type="jpeg",
    )
    with patch(CAPTURE, AsyncMock(return_value=result)) as capture:
        response = client.post("/api/screenshot", json={"url": "https://example.com", "options": {"type": "jpeg"}})

    assert response.status_code == 200
    assert response.content == b"\xff\xd8jpeg"
    assert response.headers["content-type"] == "image/jpeg"
    assert response.headers["x-response-code"] == "200"
    assert capture.await_args.args[0].options.type == "jpeg"


def test_base64_is_text(client: TestClient) -> None:
    with patch(CAPTURE, AsyncMock(return_value=CaptureResult(data="aGk=", type="text"))):
        response = client.post("/api/screenshot", json={"html": "<p>hi</p>", "options": {"encoding": "base64"}})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert response.text == "aGk="


def test_private_url_rejected(client: TestClient) -> None:
    with patch(CAPTURE, AsyncMock()) as capture:
        response = client.post("/api/screenshot", json={"url": "http://127.0.0.1:8080"})

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid URL"
    capture.assert_not_awaited()


def test_invalid_body_is_400(client: TestClient) -> None:
    response = client.post("/api/screenshot", json={"url": "https://example.com", "options": {"quality": 50}})
    assert response.status_code == 400
    assert "jpeg" in response.json()["error"]


def test_timeout_is_504(client: TestClient) -> None:
    with patch(CAPTURE, AsyncMock(side_effect=asyncio.TimeoutError())):
        response = client.post("/api/screenshot", json={"url": "https://example.com"})

    assert response.status_code == 504
    assert response.json() == {"error": "Screenshot capture timed out", "timeout": True, "retryable": True}


def test_missing_element_is_422(client: TestClient) -> None:
    with patch(CAPTURE, AsyncMock(side_effect=SelectorResolutionError("#missing"))):
        response = client.post("/api/screenshot", json={"url": "https://example.com", "selector": "#missing"})

    assert response.status_code == 422
    assert "#missing" in response.json()["error"]


def test_navigation_error_is_502(client: TestClient) -> None:
    with patch(CAPTURE, AsyncMock(side_effect=NavigationError("net::ERR_NAME_NOT_RESOLVED"))):
        response = client.post("/api/screenshot", json={"url": "https://example.com"})

    assert response.status_code == 502
    assert response.json()["retryable"] is False
