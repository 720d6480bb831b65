"""Security middleware for FastAPI - token validation and request identity."""

import logging

from fastapi import Depends, Request
from starlette.middleware.base import BaseHTTPMiddleware

from api.errors import error_response_for
from auth.cookies import SessionCookieManager
from auth.exceptions import (
    AuthError,
    InsufficientRoleError,
    MissingTokenError,
    UnauthorizedError,
)
from auth.tokens import AccessClaims, TokenService
from auth.types import UserRole

logger = logging.getLogger(__name__)


class AuthMiddleware(BaseHTTPMiddleware):
    """Middleware that validates the access token and attaches the identity.

    For every request:
    1. Takes the token from 'Authorization: Bearer', falling back to cookies
    2. Verifies it via TokenService
    3. Sets the decoded claims on request.state.identity

    Protected routes without a valid token get a 401 envelope. Public paths
    always pass through, but still get an identity when a valid token is sent.
    """

    PUBLIC_PATHS = [
        "/auth/register",
        "/auth/login",
        "/auth/verify-otp",
        "/auth/password-login",
        "/auth/verify-email",
        "/auth/resend-verification",
        "/auth/forgot-password",
        "/auth/request-password-reset",
        "/auth/reset-password",
        "/auth/logout",
        "/health",
        "/docs",
        "/openapi.json",
    ]

    def __init__(self, app, token_service: TokenService, cookie_manager: SessionCookieManager):
        super().__init__(app)
        self._token_service = token_service
        self._cookie_manager = cookie_manager

    def _is_public_path(self, path: str) -> bool:
        """Exact match, or a sub-path (/auth/verify-email/<token>)."""
        for public_path in self.PUBLIC_PATHS:
            if path == public_path or path.startswith(f"{public_path}/"):
                return True
        return False

    def _extract_token(self, request: Request) -> str:
        """
        Header first, then cookies.

        A malformed Authorization header is an error even if a cookie is set.
        """
        header = request.headers.get("Authorization")
        if header:
            return self._token_service.extract_from_header(header)

        token = self._cookie_manager.get_token_from_cookies(request.cookies)
        if not token:
            raise MissingTokenError()
        return token

    def _authenticate(self, request: Request) -> AccessClaims:
        return self._token_service.verify_access(self._extract_token(request))

    async def dispatch(self, request: Request, call_next):
        """Process request through middleware."""
        path = request.url.path
        request.state.identity = None

        if self._is_public_path(path):
            try:
                request.state.identity = self._authenticate(request)
            except AuthError:
                pass
            return await call_next(request)

        try:
            request.state.identity = self._authenticate(request)
        except UnauthorizedError as e:
            logger.debug(f"Rejected {request.method} {path}: {e.code}")
            return error_response_for(e)
        except AuthError as e:
            # Misconfiguration (no JWT secret) lands here
            logger.error(f"Auth check failed on {path}: {e.code}")
            return error_response_for(e)

        return await call_next(request)


# =============================================================================
# ROUTE DEPENDENCIES
# =============================================================================


def get_optional_identity(request: Request) -> AccessClaims | None:
    return getattr(request.state, "identity", None)


def get_identity(request: Request) -> AccessClaims:
    """Identity set by AuthMiddleware. 401 if the request isn't authenticated."""
    identity = get_optional_identity(request)
    if identity is None:
        raise MissingTokenError()
    return identity


def require_roles(*roles: UserRole):
    """
    Dependency factory restricting a route to the given roles.

    Usage:
        @router.get("/admin", dependencies=[Depends(require_roles(UserRole.ADMIN))])
    """
    allowed = set(roles)

    def check_role(identity: AccessClaims = Depends(get_identity)) -> AccessClaims:
        if identity.role not in allowed:
            logger.info(f"User {identity.id} with role {identity.role.value} denied")
            raise InsufficientRoleError()
        return identity

    return check_role
