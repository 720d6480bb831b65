"""API modules for HTTP interface."""

from api.base import (
    APIErrorDetail,
    APIResponse,
    success_response,
    error_response,
)
