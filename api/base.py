"""Unified API response format."""

from typing import Any
from datetime import datetime

from pydantic import BaseModel, Field

from utils.timezone import now_utc

DEFAULT_SUCCESS_MESSAGE = "Request successful"


class APIErrorDetail(BaseModel):
    """Carries a list of messages (validation errors) on failure."""

    message: list[str]


class APIResponse(BaseModel):
    """
    Unified response format for all API endpoints.

    Success: {success, timestamp, message?, data?}
    Failure: {success, timestamp, statusCode, message} for a single message,
             {success, timestamp, statusCode, error: {message: [...]}} for several.

    Clients branch on `success`; the HTTP status is set to match.
    """

    success: bool
    timestamp: datetime
    status_code: int | None = Field(default=None, serialization_alias="statusCode")
    message: str | None = None
    data: Any | None = None
    error: APIErrorDetail | None = None

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def success_response(data: Any = None, message: str = DEFAULT_SUCCESS_MESSAGE) -> dict:
    """Create a success response body."""
    return APIResponse(
        success=True,
        timestamp=now_utc(),
        message=message,
        data=data,
    ).to_json()


def error_response(status_code: int, message: str | list[str]) -> dict:
    """Create an error response body."""
    if isinstance(message, list):
        response = APIResponse(
            success=False,
            timestamp=now_utc(),
            status_code=status_code,
            error=APIErrorDetail(message=message),
        )
    else:
        response = APIResponse(
            success=False,
            timestamp=now_utc(),
            status_code=status_code,
            message=message,
        )
    return response.to_json()
