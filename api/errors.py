"""Exception to HTTP envelope mapping, and the FastAPI handlers that use it."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse

from api.base import error_response
from auth.exceptions import AuthError, InternalError

logger = logging.getLogger(__name__)


def error_response_for(exc: Exception) -> JSONResponse:
    """
    Map any exception to the failure envelope.

    AuthError subclasses carry their own status and message. Anything else
    becomes a generic 500 so no internals leak to the client.
    """
    if isinstance(exc, AuthError):
        return JSONResponse(
            status_code=exc.status_code,
            content=error_response(exc.status_code, exc.message),
        )
    generic = InternalError()
    return JSONResponse(
        status_code=generic.status_code,
        content=error_response(generic.status_code, generic.message),
    )


def _format_validation_error(error: dict) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
    message = error.get("msg", "Invalid value")
    return f"{location}: {message}" if location else message


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the app."""

    @app.exception_handler(AuthError)
    async def auth_error_handler(request: Request, exc: AuthError):
        if exc.status_code >= 500:
            logger.error(f"{exc.code} on {request.method} {request.url.path}", exc_info=exc)
        return error_response_for(exc)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content=error_response(
                400,
                [_format_validation_error(error) for error in exc.errors()],
            ),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception")
        return error_response_for(exc)
