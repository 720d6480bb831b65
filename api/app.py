"""Application assembly: middleware, error handlers and routers."""

import logging

import psycopg2
from fastapi import FastAPI
from fastapi.responses import JSONResponse

from api.base import error_response, success_response
from api.errors import register_error_handlers
from api.middleware import RequestIDMiddleware
from auth.api import create_auth_router
from auth.config import AuthConfig
from auth.cookies import SessionCookieManager
from auth.security_middleware import AuthMiddleware
from auth.service import AuthService
from auth.tokens import TokenService
from clients.postgres_client import PostgresClient

logger = logging.getLogger(__name__)


def create_app(
    config: AuthConfig,
    auth_service: AuthService,
    token_service: TokenService,
    cookie_manager: SessionCookieManager,
    postgres: PostgresClient | None = None,
) -> FastAPI:
    """FastAPI app with auth middleware, error handlers and /auth routes.

    postgres is only used by /health; without it the check is skipped.
    """
    app = FastAPI(title=f"{config.app_name} API")

    # Last added runs first: request id is assigned before auth rejects anything
    app.add_middleware(
        AuthMiddleware,
        token_service=token_service,
        cookie_manager=cookie_manager,
    )
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)

    app.include_router(
        create_auth_router(auth_service, cookie_manager, config),
        prefix="/auth",
    )

    @app.get("/health")
    def health():
        if postgres is not None:
            try:
                postgres.ping()
            except psycopg2.Error as e:
                logger.error(f"Health check: database unreachable: {e}")
                return JSONResponse(
                    status_code=503,
                    content=error_response(503, "Database unavailable"),
                )
        return success_response({"status": "ok"}, message="Service is healthy")

    return app
