"""Authentication service - orchestrates registration, login and password flows.

Login comes in two variants, chosen by AuthConfig.login_mode and exposed
under different names so their contracts never mix:
- OTP login (begin_login + verify_otp): the password check only yields a
  pending-login handle; the access token is issued after the emailed code.
- Password login (password_login): the password check issues the token.

Business-rule failures raise AuthError subclasses. Anything else escaping an
operation is logged and re-raised as InternalError.
"""

import functools
import logging
import secrets
from dataclasses import dataclass
from urllib.parse import urlencode

from starlette.responses import Response

from auth.config import AuthConfig
from auth.cookies import SessionCookieManager
from auth.database import AuthDatabase
from auth.exceptions import (
    AccountInactiveError,
    AuthError,
    BadRequestError,
    EmailAlreadyRegisteredError,
    EmailAlreadyVerifiedError,
    InternalError,
    InvalidCredentialsError,
    OtpMismatchError,
    PasswordMismatchError,
    UserNotFoundError,
    WeakPasswordError,
)
from auth.login_sessions import LoginSessionStore
from auth.otp import generate_otp
from auth.passwords import PasswordHasher, validate_strength
from auth.security_logger import SecurityEvent, SecurityLogger
from auth.tokens import AccessClaims, TokenPurpose, TokenService
from auth.types import NewUser, RegisterRequest, User, UserRecord, UserStatus
from clients.email_client import EmailGatewayClient, EmailGatewayError

logger = logging.getLogger(__name__)

OTP_LOGIN_STATUSES = frozenset({UserStatus.ACTIVE, UserStatus.PENDING})


@dataclass
class LoginChallenge:
    """First step of OTP login: handle for the pending login."""

    session_id: str
    expires_in: int


@dataclass
class AuthResult:
    """A successful authentication. remember_token only for remember-me logins."""

    user: User
    token: str
    expires_in: int
    remember_token: str | None = None


def service_boundary(method):
    """Pass AuthError through; wrap anything unexpected as InternalError."""

    @functools.wraps(method)
    def wrapper(*args, **kwargs):
        try:
            return method(*args, **kwargs)
        except AuthError:
            raise
        except Exception as e:
            logger.exception(f"Unexpected error in AuthService.{method.__name__}")
            raise InternalError() from e

    return wrapper


class AuthService:
    """Orchestrates the authentication flows.

    Handles:
    - Registration and email verification
    - OTP login and password login
    - Token refresh and logout
    - Forgot/reset/change password
    """

    def __init__(
        self,
        config: AuthConfig,
        auth_db: AuthDatabase,
        hasher: PasswordHasher,
        token_service: TokenService,
        login_sessions: LoginSessionStore,
        cookie_manager: SessionCookieManager,
        email_client: EmailGatewayClient,
        security_logger: SecurityLogger,
    ):
        self._config = config
        self._auth_db = auth_db
        self._hasher = hasher
        self._tokens = token_service
        self._login_sessions = login_sessions
        self._cookies = cookie_manager
        self._email_client = email_client
        self._security_logger = security_logger

    # =========================================================================
    # HELPERS
    # =========================================================================

    @staticmethod
    def _normalize_email(email: str) -> str:
        return email.lower().strip()

    def _frontend_link(self, path: str, token: str) -> str:
        base = self._config.frontend_url.rstrip("/")
        return f"{base}{path}?{urlencode({'token': token})}"

    def _require_new_password(self, new_password: str, confirm_password: str) -> None:
        """Confirmation match first, then strength policy."""
        if new_password != confirm_password:
            raise PasswordMismatchError()
        strength = validate_strength(new_password)
        if not strength.is_valid:
            raise WeakPasswordError(strength.errors)

    def _send_best_effort(self, description: str, send, *args, **kwargs) -> bool:
        """
        Send a mail whose failure must not undo the operation it follows.

        Returns True if sent.
        """
        try:
            send(*args, **kwargs)
            return True
        except EmailGatewayError as e:
            logger.warning(f"Could not send {description} email: {e}")
            return False

    def _send_verification(self, email: str) -> bool:
        token = self._tokens.issue_temporary(email, TokenPurpose.EMAIL_VERIFICATION)
        return self._send_best_effort(
            "verification",
            self._email_client.send_verification_email,
            email=email,
            verification_url=self._frontend_link("/auth/verify-email", token),
        )

    @functools.cached_property
    def _dummy_hash(self) -> str:
        """Hash compared against when the email is unknown."""
        return self._hasher.hash(secrets.token_urlsafe(16))

    def _authenticate_credentials(
        self,
        email: str,
        password: str,
        allowed_statuses: frozenset[UserStatus] = frozenset({UserStatus.ACTIVE}),
    ) -> UserRecord:
        """
        Check email/password and account status.

        Unknown email and wrong password raise the same error.

        Raises:
            InvalidCredentialsError: Unknown email or wrong password.
            AccountInactiveError: Credentials fine but status not allowed.
        """
        user = self._auth_db.get_user_by_email(email)

        if user is None:
            # Unknown and known emails both pay for one bcrypt check
            self._hasher.compare(password, self._dummy_hash)
            password_ok = False
        else:
            password_ok = self._hasher.compare(password, user.password_hash)

        if not password_ok:
            self._security_logger.log(
                SecurityEvent.LOGIN_FAILED,
                email=email,
                user_id=user.id if user else None,
                details={"reason": "invalid_credentials"},
            )
            raise InvalidCredentialsError()

        if user.status not in allowed_statuses:
            self._security_logger.log(
                SecurityEvent.LOGIN_FAILED,
                email=email,
                user_id=user.id,
                details={"reason": "inactive", "status": user.status.value},
            )
            raise AccountInactiveError()

        return user

    def _complete_login(self, user: UserRecord, remember_me: bool = False) -> AuthResult:
        identity = user.to_session()
        access = self._tokens.issue_access(identity)
        remember = self._tokens.issue_remember(identity) if remember_me else None

        self._auth_db.update_last_login(user.id)
        self._security_logger.log(
            SecurityEvent.LOGIN_SUCCEEDED,
            email=user.email,
            user_id=user.id,
            details={"login_mode": self._config.login_mode, "remember_me": remember_me},
        )

        return AuthResult(
            user=user.to_public(),
            token=access.token,
            expires_in=access.expires_in,
            remember_token=remember.token if remember else None,
        )

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    @service_boundary
    def register(self, data: RegisterRequest) -> User:
        """Create a PENDING, unverified account and mail a verification link.

        Flow:
        1. Password confirmation and strength policy
        2. Reject duplicate email
        3. Hash and create account (PENDING, email not verified)
        4. Send verification and welcome emails (best-effort)

        No access token is issued: login requires an ACTIVE account.

        Raises:
            PasswordMismatchError, WeakPasswordError: Bad password input.
            EmailAlreadyRegisteredError: Email taken.
        """
        email = self._normalize_email(data.email)

        self._require_new_password(data.password, data.confirm_password)

        if self._auth_db.email_exists(email):
            raise EmailAlreadyRegisteredError()

        user = self._auth_db.create_user(
            NewUser(
                name=data.name,
                last_name=data.last_name,
                email=email,
                phone=data.phone,
                password_hash=self._hasher.hash(data.password),
            )
        )

        self._security_logger.log(
            SecurityEvent.USER_REGISTERED,
            email=user.email,
            user_id=user.id,
        )

        self._send_verification(user.email)
        self._send_best_effort(
            "welcome",
            self._email_client.send_welcome_email,
            email=user.email,
            name=user.name,
        )

        return user.to_public()

    @service_boundary
    def verify_email(self, token: str) -> User:
        """
        Mark the email verified. A PENDING account becomes ACTIVE.

        Raises:
            TokenExpiredError, InvalidTokenError, WrongTokenTypeError: Bad token.
            UserNotFoundError: No account for the token's email.
            EmailAlreadyVerifiedError: Nothing to do.
        """
        email = self._tokens.verify_temporary(token, TokenPurpose.EMAIL_VERIFICATION)

        user = self._auth_db.get_user_by_email(email)
        if user is None:
            raise UserNotFoundError()

        if user.email_verified:
            raise EmailAlreadyVerifiedError()

        self._auth_db.mark_email_verified(user.id)
        self._security_logger.log(SecurityEvent.EMAIL_VERIFIED, email=user.email, user_id=user.id)

        return self._auth_db.get_user_by_id(user.id).to_public()

    @service_boundary
    def resend_verification(self, email: str) -> None:
        """
        Mail a fresh verification link if the account exists and is unverified.

        Same outcome for every input, so it can't be used to discover which emails exist.
        """
        email = self._normalize_email(email)
        user = self._auth_db.get_user_by_email(email)

        if user is None or user.email_verified:
            return

        if self._send_verification(user.email):
            self._security_logger.log(
                SecurityEvent.VERIFICATION_RESENT,
                email=user.email,
                user_id=user.id,
            )

    # =========================================================================
    # LOGIN
    # =========================================================================

    @service_boundary
    def begin_login(self, email: str, password: str) -> LoginChallenge:
        """First step of OTP login.

        PENDING accounts may start an OTP login: the emailed code proves
        control of the mailbox, and verify_otp activates the account.

        Flow:
        1. Check credentials and status (ACTIVE or PENDING)
        2. Generate code, create pending login
        3. Email the code (required - on failure the pending login is dropped)

        Raises:
            InvalidCredentialsError: Unknown email or wrong password.
            AccountInactiveError: Account INACTIVE or BANNED.
            InternalError: Code could not be delivered.
        """
        email = self._normalize_email(email)
        user = self._authenticate_credentials(
            email, password, allowed_statuses=OTP_LOGIN_STATUSES
        )

        otp = generate_otp()
        session = self._login_sessions.create(user.id, user.email, otp)

        try:
            self._email_client.send_login_code(
                email=user.email,
                code=otp,
                expires_minutes=self._config.login_session_minutes,
            )
        except EmailGatewayError as e:
            self._login_sessions.discard(session.session_id)
            logger.error(f"Login code email failed for user {user.id}: {e}")
            raise InternalError("Could not send verification code") from e

        self._security_logger.log(SecurityEvent.LOGIN_OTP_SENT, email=user.email, user_id=user.id)

        return LoginChallenge(
            session_id=session.session_id,
            expires_in=self._config.login_session_minutes * 60,
        )

    @service_boundary
    def verify_otp(self, session_id: str, otp: str) -> AuthResult:
        """Second step of OTP login: trade the code for an access token.

        A wrong code keeps the pending login so the user can retry; only the
        right code or expiry removes it. A PENDING account is activated here,
        so tokens are only ever issued to ACTIVE accounts.

        Raises:
            SessionNotFoundError: Unknown or already used session id.
            SessionExpiredError: Pending login expired.
            OtpMismatchError: Wrong code.
            UserNotFoundError: Account deleted meanwhile.
            AccountInactiveError: Account deactivated meanwhile.
        """
        try:
            pending = self._login_sessions.consume(session_id, otp)
        except OtpMismatchError:
            self._security_logger.log(
                SecurityEvent.LOGIN_OTP_FAILED,
                details={"reason": "otp_mismatch"},
            )
            raise

        user = self._auth_db.get_user_by_id(pending.user_id)
        if user is None:
            raise UserNotFoundError()

        if user.status == UserStatus.PENDING:
            self._auth_db.mark_email_verified(user.id)
            self._security_logger.log(
                SecurityEvent.EMAIL_VERIFIED,
                email=user.email,
                user_id=user.id,
                details={"via": "login_otp"},
            )
            user = self._auth_db.get_user_by_id(user.id)
        elif not user.is_active:
            raise AccountInactiveError()

        return self._complete_login(user)

    @service_boundary
    def password_login(self, email: str, password: str, remember_me: bool = False) -> AuthResult:
        """
        Single-step login: credentials straight to access token.

        Raises:
            InvalidCredentialsError: Unknown email or wrong password.
            AccountInactiveError: Account not ACTIVE.
        """
        email = self._normalize_email(email)
        user = self._authenticate_credentials(email, password)
        return self._complete_login(user, remember_me=remember_me)

    # =========================================================================
    # SESSION
    # =========================================================================

    @service_boundary
    def get_current_user(self, user_id: int) -> User:
        user = self._auth_db.get_user_by_id(user_id)
        if user is None:
            raise UserNotFoundError()
        return user.to_public()

    @service_boundary
    def refresh_token(self, identity: AccessClaims) -> AuthResult:
        """
        Issue a brand-new access token for an authenticated identity.

        Re-reads the account so role/name changes and deactivation take effect.
        """
        user = self._auth_db.get_user_by_id(identity.id)
        if user is None:
            raise UserNotFoundError()
        if not user.is_active:
            raise AccountInactiveError()

        access = self._tokens.issue_access(user.to_session())
        self._security_logger.log(SecurityEvent.TOKEN_REFRESHED, email=user.email, user_id=user.id)

        return AuthResult(user=user.to_public(), token=access.token, expires_in=access.expires_in)

    @service_boundary
    def logout(self, user_id: int | None, response: Response | None = None) -> None:
        """Clear session cookies and record the logout.

        Tokens are stateless, so there is nothing to revoke server-side.
        Cookies are cleared even if recording the logout fails.
        """
        try:
            if user_id is not None:
                self._auth_db.update_last_logout(user_id)
                self._security_logger.log(SecurityEvent.LOGOUT, user_id=user_id)
        finally:
            if response is not None:
                self._cookies.clear_all(response)

    # =========================================================================
    # PASSWORDS
    # =========================================================================

    @service_boundary
    def forgot_password(self, email: str) -> None:
        """
        Mail a reset link if the account exists.

        Returns normally for unknown emails and for delivery failures, so the
        response never reveals whether an account exists.
        """
        email = self._normalize_email(email)
        user = self._auth_db.get_user_by_email(email)

        if user is None:
            logger.info("Password reset requested for unknown email")
            return

        token = self._tokens.issue_temporary(user.email, TokenPurpose.PASSWORD_RESET)
        self._send_best_effort(
            "password reset",
            self._email_client.send_password_reset_email,
            email=user.email,
            reset_url=self._frontend_link("/reset-password", token),
        )
        self._security_logger.log(
            SecurityEvent.PASSWORD_RESET_REQUESTED,
            email=user.email,
            user_id=user.id,
        )

    @service_boundary
    def reset_password(self, token: str, new_password: str, confirm_password: str) -> None:
        """Set a new password using a password-reset token.

        Flow:
        1. Confirmation match and strength policy (before touching the token)
        2. Verify reset token
        3. Look up account, store new hash
        4. Confirmation email (best-effort)

        Raises:
            PasswordMismatchError, WeakPasswordError: Bad password input.
            TokenExpiredError, InvalidTokenError, WrongTokenTypeError: Bad token.
            UserNotFoundError: No account for the token's email.
        """
        self._require_new_password(new_password, confirm_password)

        email = self._tokens.verify_temporary(token, TokenPurpose.PASSWORD_RESET)

        user = self._auth_db.get_user_by_email(email)
        if user is None:
            raise UserNotFoundError()

        self._auth_db.update_password(user.id, self._hasher.hash(new_password))
        self._security_logger.log(SecurityEvent.PASSWORD_RESET, email=user.email, user_id=user.id)

        self._send_best_effort(
            "password changed",
            self._email_client.send_password_changed_email,
            email=user.email,
        )

    @service_boundary
    def change_password(
        self,
        user_id: int,
        current_password: str,
        new_password: str,
        confirm_password: str,
    ) -> None:
        """Change password for an authenticated user.

        Nothing is written unless every check passes.

        Raises:
            PasswordMismatchError: new != confirmation.
            UserNotFoundError: Account gone.
            BadRequestError: Current password wrong, or new equals current.
            WeakPasswordError: New password fails policy.
        """
        if new_password != confirm_password:
            raise PasswordMismatchError()

        user = self._auth_db.get_user_by_id(user_id)
        if user is None:
            raise UserNotFoundError()

        if not self._hasher.compare(current_password, user.password_hash):
            self._security_logger.log(
                SecurityEvent.PASSWORD_CHANGE_FAILED,
                email=user.email,
                user_id=user.id,
                details={"reason": "wrong_current_password"},
            )
            raise BadRequestError("Current password is incorrect")

        if self._hasher.compare(new_password, user.password_hash):
            raise BadRequestError("New password must be different from the current one")

        strength = validate_strength(new_password)
        if not strength.is_valid:
            raise WeakPasswordError(strength.errors)

        self._auth_db.update_password(user.id, self._hasher.hash(new_password))
        self._security_logger.log(SecurityEvent.PASSWORD_CHANGED, email=user.email, user_id=user.id)

        self._send_best_effort(
            "password changed",
            self._email_client.send_password_changed_email,
            email=user.email,
        )
