import asyncio
import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response

from app.exceptions import CaptureError, SelectorResolutionError
from app.middleware.security import validate_capture_request
from app.models.requests import CaptureRequest
from app.models.responses import ErrorResponse
from app.services.screenshot_service import capture_screenshot

logger = logging.getLogger(__name__)
router = APIRouter()

CONTENT_TYPE_MAP = {
    "png": "image/png",
    "jpeg": "image/jpeg",
    "text": "text/plain",
}


def _error(status_code: int, **fields) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(**fields).model_dump(exclude_none=True),
    )


@router.post("/screenshot")
async def screenshot(request: Request, body: CaptureRequest):
    # SSRF validation
    valid, reason = validate_capture_request(body)
    if not valid:
        return _error(400, error="Invalid URL", message=reason)

    try:
        result = await capture_screenshot(body)
    except asyncio.TimeoutError:
        return _error(504, error="Screenshot capture timed out", timeout=True, retryable=True)
    except SelectorResolutionError as e:
        return _error(422, error=str(e), retryable=False)
    except CaptureError as e:
        logger.exception("Capture failed for %s", body.url or "inline document")
        return _error(502, error=str(e), retryable=e.retryable)
    except Exception as e:
        logger.exception("Screenshot error for %s", body.url or "inline document")
        return _error(500, error=str(e), retryable=False)

    return Response(
        content=result.data,
        media_type=CONTENT_TYPE_MAP.get(result.type, "application/octet-stream"),
        headers=result.headers,
    )
