"""HTTP routes for authentication.

Handlers are plain functions so FastAPI runs them in its threadpool; bcrypt
and the database client block.
"""

from fastapi import APIRouter, Depends, Response

from api.base import success_response
from api.errors import error_response_for
from auth.config import AuthConfig
from auth.cookies import SessionCookieManager
from auth.exceptions import AuthError
from auth.security_middleware import get_identity, get_optional_identity
from auth.service import AuthResult, AuthService
from auth.tokens import AccessClaims
from auth.types import (
    ChangePasswordRequest,
    EmailRequest,
    LoginRequest,
    PasswordLoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    User,
    VerifyEmailRequest,
    VerifyOtpRequest,
)


def _user_json(user: User) -> dict:
    return user.model_dump(mode="json", by_alias=True)


def create_auth_router(
    auth_service: AuthService,
    cookie_manager: SessionCookieManager,
    config: AuthConfig,
) -> APIRouter:
    """Create auth router with injected service.

    Only the routes of the configured login mode are mounted:
    - otp: POST /login (code emailed) + POST /verify-otp
    - password: POST /password-login
    """
    router = APIRouter(tags=["auth"])

    def _set_session_cookies(response: Response, result: AuthResult) -> None:
        identity = result.user.to_session()
        cookie_manager.set_auth_cookies(response, result.token, identity)
        if result.remember_token:
            cookie_manager.set_remember_me_cookies(response, result.remember_token, identity)

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    @router.post("/register", status_code=201)
    def register(body: RegisterRequest):
        """Create an account. It stays PENDING until the email is verified."""
        user = auth_service.register(body)
        return success_response(
            {"user": _user_json(user)},
            message="User registered successfully. Please check your email to verify your account.",
        )

    @router.get("/verify-email/{token}")
    def verify_email_link(token: str):
        """Target of the link in the verification email."""
        user = auth_service.verify_email(token)
        return success_response({"user": _user_json(user)}, message="Email verified successfully")

    @router.post("/verify-email")
    def verify_email(body: VerifyEmailRequest):
        user = auth_service.verify_email(body.token)
        return success_response({"user": _user_json(user)}, message="Email verified successfully")

    @router.post("/resend-verification")
    def resend_verification(body: EmailRequest):
        """Same response whether or not the email exists."""
        auth_service.resend_verification(body.email)
        return success_response(
            message="If the email is registered and not yet verified, a new verification link has been sent",
        )

    # =========================================================================
    # LOGIN
    # =========================================================================

    if config.login_mode == "otp":

        @router.post("/login")
        def login(body: LoginRequest):
            """Check credentials and email a one-time code.

            Returns the sessionId to send back with the code to /verify-otp.
            """
            challenge = auth_service.begin_login(body.email, body.password)
            return success_response(
                {"sessionId": challenge.session_id, "expiresIn": challenge.expires_in},
                message="Verification code sent to your email",
            )

        @router.post("/verify-otp")
        def verify_otp(body: VerifyOtpRequest, response: Response):
            """Trade the emailed code for an access token. Sets session cookies."""
            result = auth_service.verify_otp(body.session_id, body.otp)
            _set_session_cookies(response, result)
            return success_response(
                {
                    "token": result.token,
                    "user": _user_json(result.user),
                    "expiresIn": result.expires_in,
                },
                message="Login successful",
            )

    else:

        @router.post("/password-login")
        def password_login(body: PasswordLoginRequest, response: Response):
            """Single-step login. Sets session cookies (and the remember-me pair if asked)."""
            result = auth_service.password_login(body.email, body.password, body.remember_me)
            _set_session_cookies(response, result)
            return success_response(
                {"user": _user_json(result.user), "expiresIn": result.expires_in},
                message="Login successful",
            )

    # =========================================================================
    # SESSION
    # =========================================================================

    @router.post("/logout")
    def logout(response: Response, identity: AccessClaims | None = Depends(get_optional_identity)):
        """Clear session cookies. Works without a valid token too."""
        user_id = identity.id if identity else None
        try:
            auth_service.logout(user_id, response)
        except AuthError as e:
            # The handler-built error response doesn't carry our cookies
            failure = error_response_for(e)
            cookie_manager.clear_all(failure)
            return failure
        return success_response(message="Logged out successfully")

    @router.get("/me")
    def get_current_user(identity: AccessClaims = Depends(get_identity)):
        """Get current authenticated user from the user store."""
        user = auth_service.get_current_user(identity.id)
        return success_response({"user": _user_json(user)})

    @router.get("/check")
    def check(identity: AccessClaims = Depends(get_identity)):
        """Token still valid. Answers from the token alone, no store lookup."""
        return success_response(
            {
                "authenticated": True,
                "user": {
                    "id": identity.id,
                    "email": identity.email,
                    "role": identity.role.value,
                    "name": identity.name,
                },
                "expiresAt": identity.expires_at.isoformat(),
            }
        )

    @router.post("/refresh-token")
    def refresh_token(response: Response, identity: AccessClaims = Depends(get_identity)):
        result = auth_service.refresh_token(identity)
        _set_session_cookies(response, result)
        return success_response(
            {"user": _user_json(result.user), "expiresIn": result.expires_in},
            message="Token refreshed successfully",
        )

    # =========================================================================
    # PASSWORDS
    # =========================================================================

    def _forgot_password(body: EmailRequest):
        """Same response whether or not the email exists."""
        auth_service.forgot_password(body.email)
        return success_response(
            message="If the email exists, password reset instructions have been sent",
        )

    router.add_api_route("/forgot-password", _forgot_password, methods=["POST"])
    router.add_api_route("/request-password-reset", _forgot_password, methods=["POST"])

    @router.post("/reset-password")
    def reset_password(body: ResetPasswordRequest):
        auth_service.reset_password(body.token, body.new_password, body.confirm_password)
        return success_response(message="Password reset successfully")

    @router.post("/change-password")
    def change_password(body: ChangePasswordRequest, identity: AccessClaims = Depends(get_identity)):
        auth_service.change_password(
            identity.id,
            body.current_password,
            body.new_password,
            body.confirm_password,
        )
        return success_response(message="Password changed successfully")

    return router
