"""Typed exceptions for auth failures.

Every exception carries the HTTP status and machine-readable code it maps to.
api.errors.error_response_for is the only place that turns them into responses.
"""


class AuthError(Exception):
    """Base class for authentication/authorization errors."""

    status_code = 500
    code = "AUTH_ERROR"
    default_message = "Authentication error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# =============================================================================
# STATUS FAMILIES
# =============================================================================


class BadRequestError(AuthError):
    """Malformed input, password policy violation, or mismatched pair."""

    status_code = 400
    code = "INVALID_REQUEST"
    default_message = "Invalid request"


class UnauthorizedError(AuthError):
    """Caller is not authenticated or presented a bad credential."""

    status_code = 401
    code = "NOT_AUTHENTICATED"
    default_message = "Authentication required"


class ForbiddenError(AuthError):
    """Caller is authenticated but not allowed to do this."""

    status_code = 403
    code = "FORBIDDEN"
    default_message = "Access denied"


class NotFoundError(AuthError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Resource not found"


class ConflictError(AuthError):
    status_code = 409
    code = "ALREADY_EXISTS"
    default_message = "Resource already exists"


class InternalError(AuthError):
    """
    Unexpected failure. The message is always generic.

    The original exception is chained (raise ... from) for server-side logs,
    never exposed to the client.
    """

    status_code = 500
    code = "INTERNAL_ERROR"
    default_message = "An internal error occurred"


# =============================================================================
# TOKENS
# =============================================================================


class ConfigError(InternalError):
    """Signing secret or another required setting is missing."""

    code = "CONFIG_ERROR"
    default_message = "Authentication is not configured"


class InvalidTokenError(UnauthorizedError):
    """Token signature or format is wrong."""

    code = "INVALID_TOKEN"
    default_message = "Invalid token"


class TokenExpiredError(UnauthorizedError):
    code = "TOKEN_EXPIRED"
    default_message = "Token has expired"


class WrongTokenTypeError(BadRequestError):
    """
    Token is validly signed but was minted for another purpose.

    A password-reset token presented for email verification (or the reverse).
    """

    code = "WRONG_TOKEN_TYPE"
    default_message = "Invalid token type"


class MissingTokenError(UnauthorizedError):
    code = "MISSING_TOKEN"
    default_message = "Authorization token required"


class MalformedHeaderError(UnauthorizedError):
    """Authorization header is not exactly 'Bearer <token>'."""

    code = "MALFORMED_HEADER"
    default_message = "Invalid authorization header format"


# =============================================================================
# LOGIN SESSIONS (OTP step)
# =============================================================================


class SessionNotFoundError(UnauthorizedError):
    """No pending login for this session id (never existed or already used)."""

    code = "SESSION_NOT_FOUND"
    default_message = "Invalid or expired session"


class SessionExpiredError(UnauthorizedError):
    """Pending login outlived its window and was discarded."""

    code = "SESSION_EXPIRED"
    default_message = "Verification code has expired"


class OtpMismatchError(UnauthorizedError):
    """Code did not match. The pending login stays alive until it expires."""

    code = "OTP_MISMATCH"
    default_message = "Invalid verification code"


# =============================================================================
# ACCOUNTS AND CREDENTIALS
# =============================================================================


class InvalidCredentialsError(UnauthorizedError):
    """
    Unknown email or wrong password.

    Both cases share this type so responses don't reveal which one failed.
    """

    code = "INVALID_CREDENTIALS"
    default_message = "Invalid credentials"


class AccountInactiveError(ForbiddenError):
    """Account is pending verification, inactive, or banned."""

    code = "ACCOUNT_INACTIVE"
    default_message = "Account is not active. Please verify your email."


class InsufficientRoleError(ForbiddenError):
    code = "INSUFFICIENT_ROLE"
    default_message = "Insufficient permissions"


class UserNotFoundError(NotFoundError):
    """
    No account for this email, id, or decoded token subject.

    Note: forgot-password must not surface this to the client.
    """

    code = "USER_NOT_FOUND"
    default_message = "User not found"


class EmailAlreadyRegisteredError(ConflictError):
    default_message = "A user with this email already exists"


class EmailAlreadyVerifiedError(BadRequestError):
    code = "EMAIL_ALREADY_VERIFIED"
    default_message = "Email is already verified"


class PasswordMismatchError(BadRequestError):
    code = "PASSWORD_MISMATCH"
    default_message = "Passwords do not match"


class WeakPasswordError(BadRequestError):
    """Password failed the strength policy. Carries one message per failed rule."""

    code = "WEAK_PASSWORD"

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("; ".join(errors) if errors else "Password is too weak")
