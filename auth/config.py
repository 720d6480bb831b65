"""Authentication configuration."""

import os
from typing import Literal

from pydantic import BaseModel, Field

# Token lifetimes use the "<number><unit>" form, unit one of s/m/h/d ("24h", "7d").
DURATION_PATTERN = r"^\d+[smhd]$"


class AuthConfig(BaseModel):
    """
    Authentication configuration.

    Token lifetimes are duration strings so they read the same in env files
    and in the API (expiresIn is derived from them). Everything else is in
    its natural unit.
    """

    # Signing
    jwt_secret: str = Field(
        default="",
        description="HS256 signing secret. Empty means unconfigured (fails at use).",
        repr=False,
    )
    jwt_algorithm: str = Field(default="HS256")
    access_token_expires_in: str = Field(
        default="24h",
        description="Access token lifetime",
        pattern=DURATION_PATTERN,
    )
    remember_token_expires_in: str = Field(
        default="30d",
        description="Lifetime of the token carried in remember-me cookies",
        pattern=DURATION_PATTERN,
    )
    email_verification_expires_in: str = Field(
        default="24h",
        pattern=DURATION_PATTERN,
    )
    password_reset_expires_in: str = Field(
        default="1h",
        pattern=DURATION_PATTERN,
    )

    # Login flow
    login_mode: Literal["otp", "password"] = Field(
        default="otp",
        description="otp: password then emailed code. password: single step.",
    )
    login_session_minutes: int = Field(
        default=5,
        description="How long a pending OTP login stays valid",
        ge=1,
        le=60,
    )
    login_session_backend: Literal["memory", "valkey"] = Field(
        default="memory",
        description="memory for a single instance, valkey when running several",
    )

    # Password hashing
    bcrypt_rounds: int = Field(
        default=12,
        description="bcrypt cost factor",
        ge=4,
        le=16,
    )

    # Cookies
    cookie_name: str = Field(default="transit-auth")
    session_cookie_name: str = Field(default="user-session")
    cookie_domain: str | None = Field(default=None)
    cookie_secure: bool = Field(
        default=False,
        description="Send cookies over HTTPS only. On in production.",
    )
    cookie_max_age_hours: int = Field(default=24, ge=1, le=720)
    remember_me_max_age_days: int = Field(default=30, ge=1, le=365)

    # Application
    frontend_url: str = Field(
        default="http://localhost:3000",
        description="Base URL for verification and reset links in emails",
    )
    app_name: str = Field(
        default="Transit",
        description="Application name for emails",
    )

    @classmethod
    def from_env(cls) -> "AuthConfig":
        """
        Build config from environment variables.

        Unset variables fall back to the field defaults.
        """
        env_map = {
            "JWT_SECRET": "jwt_secret",
            "JWT_EXPIRES_IN": "access_token_expires_in",
            "JWT_REFRESH_EXPIRES_IN": "remember_token_expires_in",
            "FRONTEND_URL": "frontend_url",
            "COOKIE_DOMAIN": "cookie_domain",
            "AUTH_LOGIN_MODE": "login_mode",
            "LOGIN_SESSION_BACKEND": "login_session_backend",
            "BCRYPT_ROUNDS": "bcrypt_rounds",
            "APP_NAME": "app_name",
        }
        values = {
            field: os.environ[var]
            for var, field in env_map.items()
            if os.environ.get(var)
        }
        values["cookie_secure"] = os.getenv("APP_ENV", "development") == "production"
        return cls(**values)
