"""Signed, time-limited tokens (JWT, HS256).

Three kinds share one secret and one verification routine:
- access: id/email/role/name, authorizes API calls
- email verification: {email, type="email-verification"}, 24h
- password reset: {email, type="password-reset"}, 1h

Temporary tokens are told apart only by their `type` claim, so
verify_temporary must always compare it. Skipping that check would let a
password-reset token verify an email and vice versa.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any

import jwt
from pydantic import BaseModel, EmailStr, ValidationError

from auth.config import AuthConfig
from auth.exceptions import (
    ConfigError,
    InvalidTokenError,
    MalformedHeaderError,
    MissingTokenError,
    TokenExpiredError,
    WrongTokenTypeError,
)
from auth.types import SessionUser, UserRole
from utils.timezone import from_timestamp, now_utc

logger = logging.getLogger(__name__)

_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400}
_DEFAULT_DURATION_SECONDS = 24 * 3600


def parse_duration(value: str) -> int:
    """
    Convert "<number><unit>" (s/m/h/d) to seconds.

    Unknown unit falls back to 24 hours. A non-numeric amount raises ValueError
    (AuthConfig rejects those before they get here).
    """
    amount, unit = value[:-1], value[-1:]
    if unit not in _UNIT_SECONDS:
        return _DEFAULT_DURATION_SECONDS
    return int(amount) * _UNIT_SECONDS[unit]


class TokenPurpose(str, Enum):
    EMAIL_VERIFICATION = "email-verification"
    PASSWORD_RESET = "password-reset"


@dataclass
class TokenData:
    """Signed access token plus its lifetime, for client display."""

    token: str
    expires_in: int


class AccessClaims(BaseModel):
    """Decoded access token. Attached to request.state.identity by the middleware."""

    id: int
    email: EmailStr
    role: UserRole
    name: str
    iat: int
    exp: int

    @property
    def expires_at(self) -> datetime:
        return from_timestamp(self.exp)


class TokenService:
    """Issues and verifies all token kinds. Stateless apart from config."""

    def __init__(self, config: AuthConfig):
        self._config = config
        self._ttl_by_purpose = {
            TokenPurpose.EMAIL_VERIFICATION: parse_duration(config.email_verification_expires_in),
            TokenPurpose.PASSWORD_RESET: parse_duration(config.password_reset_expires_in),
        }

    def _secret(self) -> str:
        if not self._config.jwt_secret:
            raise ConfigError("JWT secret is not configured")
        return self._config.jwt_secret

    def _sign(self, claims: dict[str, Any], ttl_seconds: int) -> str:
        now = now_utc()
        payload = {
            **claims,
            "iat": now,
            "exp": now + timedelta(seconds=ttl_seconds),
        }
        return jwt.encode(payload, self._secret(), algorithm=self._config.jwt_algorithm)

    def _identity_claims(self, identity: SessionUser) -> dict[str, Any]:
        return {
            "id": identity.id,
            "email": identity.email,
            "role": identity.role.value,
            "name": identity.name,
        }

    def issue_access(self, identity: SessionUser) -> TokenData:
        """
        Sign a fresh access token.

        Refreshing means calling this again for an already-authenticated
        identity; there is no separate refresh secret.
        """
        ttl = parse_duration(self._config.access_token_expires_in)
        token = self._sign(self._identity_claims(identity), ttl)
        return TokenData(token=token, expires_in=ttl)

    def issue_remember(self, identity: SessionUser) -> TokenData:
        """Access token with the remember-me lifetime, for the long-lived cookie pair."""
        ttl = parse_duration(self._config.remember_token_expires_in)
        token = self._sign(self._identity_claims(identity), ttl)
        return TokenData(token=token, expires_in=ttl)

    def issue_temporary(self, email: str, purpose: TokenPurpose) -> str:
        return self._sign(
            {"email": email, "type": purpose.value},
            self._ttl_by_purpose[purpose],
        )

    def verify(self, token: str) -> dict[str, Any]:
        """
        Verify signature and expiry, return raw claims.

        Raises:
            ConfigError: Secret not configured.
            TokenExpiredError: Past exp.
            InvalidTokenError: Bad signature or format.
        """
        secret = self._secret()
        try:
            return jwt.decode(token, secret, algorithms=[self._config.jwt_algorithm])
        except jwt.ExpiredSignatureError as e:
            raise TokenExpiredError() from e
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError() from e

    def verify_access(self, token: str) -> AccessClaims:
        """
        Verify an access token.

        A validly signed temporary token lacks the identity claims and is
        rejected here as invalid.
        """
        claims = self.verify(token)
        if "type" in claims:
            raise InvalidTokenError()
        try:
            return AccessClaims.model_validate(claims)
        except ValidationError as e:
            raise InvalidTokenError() from e

    def verify_temporary(self, token: str, expected: TokenPurpose) -> str:
        """
        Verify a temporary token and return its email.

        Raises:
            WrongTokenTypeError: Token was minted for a different purpose.
            (plus everything verify() raises)
        """
        claims = self.verify(token)
        if claims.get("type") != expected.value:
            logger.warning(
                f"Temporary token type mismatch: expected {expected.value}, "
                f"got {claims.get('type')}"
            )
            raise WrongTokenTypeError()
        email = claims.get("email")
        if not email:
            raise InvalidTokenError()
        return email

    @staticmethod
    def extract_from_header(header_value: str | None) -> str:
        """
        Pull the token out of an Authorization header.

        Raises:
            MissingTokenError: Header absent or empty.
            MalformedHeaderError: Not exactly "Bearer <token>".
        """
        if not header_value:
            raise MissingTokenError()
        parts = header_value.split(" ")
        if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
            raise MalformedHeaderError()
        return parts[1]

    @staticmethod
    def decode_unverified(token: str) -> dict[str, Any] | None:
        """Read claims without checking signature or expiry. Diagnostics only."""
        try:
            return jwt.decode(token, options={"verify_signature": False})
        except jwt.InvalidTokenError:
            return None
