from typing import Optional

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    error: str
    message: Optional[str] = None
    timeout: Optional[bool] = None
    retryable: Optional[bool] = None
