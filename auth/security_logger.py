"""Security event logging for auth audit trail.

Append-only log to the security_events table. Every event is mirrored to the
application log at INFO so it shows up even where the table isn't queried.
"""

import logging
from enum import Enum
from typing import Any

from psycopg2.extras import Json

from clients.postgres_client import PostgresClient
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class SecurityEvent(Enum):
    """Auth security event types."""

    USER_REGISTERED = "user_registered"
    EMAIL_VERIFIED = "email_verified"
    VERIFICATION_RESENT = "verification_resent"
    LOGIN_FAILED = "login_failed"
    LOGIN_OTP_SENT = "login_otp_sent"
    LOGIN_OTP_FAILED = "login_otp_failed"
    LOGIN_SUCCEEDED = "login_succeeded"
    TOKEN_REFRESHED = "token_refreshed"
    LOGOUT = "logout"
    PASSWORD_RESET_REQUESTED = "password_reset_requested"
    PASSWORD_RESET = "password_reset"
    PASSWORD_CHANGED = "password_changed"
    PASSWORD_CHANGE_FAILED = "password_change_failed"


class SecurityLogger:
    """Append-only security event logger."""

    def __init__(self, postgres: PostgresClient):
        self._db = postgres

    def log(
        self,
        event: SecurityEvent,
        email: str | None = None,
        user_id: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Log security event to database."""
        logger.info(
            f"Security event {event.value}: user_id={user_id} email={email} details={details}"
        )
        self._db.execute(
            """INSERT INTO security_events
               (event_type, email, user_id, details, created_at)
               VALUES (%s, %s, %s, %s, %s)""",
            (
                event.value,
                email,
                user_id,
                Json(details) if details else None,
                now_utc(),
            ),
        )
