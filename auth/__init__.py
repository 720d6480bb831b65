"""Authentication and authorization modules.

The HTTP layer (auth.api, auth.security_middleware) is imported directly by
the app factory, not re-exported here.
"""

from auth.exceptions import (
    AuthError,
    InvalidCredentialsError,
    InvalidTokenError,
    TokenExpiredError,
    UserNotFoundError,
    SessionExpiredError,
    SessionNotFoundError,
    OtpMismatchError,
    AccountInactiveError,
)
from auth.types import (
    User,
    UserRecord,
    UserRole,
    UserStatus,
    SessionUser,
)
from auth.config import AuthConfig
from auth.database import AuthDatabase
from auth.passwords import PasswordHasher, validate_strength
from auth.tokens import TokenService, TokenPurpose, AccessClaims
from auth.login_sessions import (
    LoginSessionStore,
    InMemoryLoginSessionStore,
    ValkeyLoginSessionStore,
)
from auth.cookies import SessionCookieManager
from auth.security_logger import SecurityLogger, SecurityEvent
from auth.service import AuthService, AuthResult, LoginChallenge
