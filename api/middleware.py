"""Request correlation middleware."""

import logging
import re
import time
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Upstream proxies may send their own ID; accept it only if it looks like one
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9\-_.]{8,128}$")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Tags every request with a correlation ID.

    Reuses a well-formed incoming X-Request-ID (so gateway and service logs
    line up), otherwise mints a UUID. The ID is exposed as
    request.state.request_id and echoed in the response header.
    """

    async def dispatch(self, request: Request, call_next):
        incoming = request.headers.get(REQUEST_ID_HEADER, "")
        request_id = incoming if _VALID_REQUEST_ID.match(incoming) else str(uuid4())
        request.state.request_id = request_id

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        response.headers[REQUEST_ID_HEADER] = request_id
        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code} "
            f"({elapsed_ms:.1f}ms) [{request_id}]"
        )
        return response
