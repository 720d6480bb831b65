"""Database operations for authentication.

Owns the users table (credential records). Emails are stored lowercased and
are unique; password_hash only ever holds bcrypt output.
"""

from psycopg2 import errors as pg_errors

from auth.exceptions import EmailAlreadyRegisteredError
from auth.types import NewUser, UserRecord
from clients.postgres_client import PostgresClient
from utils.timezone import now_utc

_USER_COLUMNS = """id, name, last_name, email, phone, password_hash, role, status,
                   email_verified, created_at, updated_at, last_login_at, last_logout_at"""


class AuthDatabase:
    """Database operations for authentication."""

    def __init__(self, postgres: PostgresClient):
        self._db = postgres

    def get_user_by_email(self, email: str) -> UserRecord | None:
        """Find user by email (case-insensitive)."""
        row = self._db.fetch_one(
            f"SELECT {_USER_COLUMNS} FROM users WHERE email = lower(%s)",
            (email,),
        )
        return UserRecord.model_validate(row) if row else None

    def get_user_by_id(self, user_id: int) -> UserRecord | None:
        row = self._db.fetch_one(
            f"SELECT {_USER_COLUMNS} FROM users WHERE id = %s",
            (user_id,),
        )
        return UserRecord.model_validate(row) if row else None

    def email_exists(self, email: str) -> bool:
        row = self._db.fetch_one(
            "SELECT 1 AS found FROM users WHERE email = lower(%s)",
            (email,),
        )
        return row is not None

    def create_user(self, user: NewUser) -> UserRecord:
        """
        Insert user (email lowercased).

        Raises:
            EmailAlreadyRegisteredError: Email taken, including by a concurrent insert.
        """
        now = now_utc()
        try:
            row = self._db.fetch_one(
                f"""INSERT INTO users
                       (name, last_name, email, phone, password_hash, role, status,
                        email_verified, created_at, updated_at)
                   VALUES (%s, %s, lower(%s), %s, %s, %s, %s, %s, %s, %s)
                   RETURNING {_USER_COLUMNS}""",
                (
                    user.name,
                    user.last_name,
                    user.email,
                    user.phone,
                    user.password_hash,
                    user.role.value,
                    user.status.value,
                    user.email_verified,
                    now,
                    now,
                ),
            )
        except pg_errors.UniqueViolation as e:
            raise EmailAlreadyRegisteredError() from e
        return UserRecord.model_validate(row)

    def update_password(self, user_id: int, password_hash: str) -> bool:
        """
        Replace stored hash.

        Returns:
            True if user was found and updated, False if not found.
        """
        updated = self._db.execute(
            "UPDATE users SET password_hash = %s, updated_at = %s WHERE id = %s",
            (password_hash, now_utc(), user_id),
        )
        return updated > 0

    def mark_email_verified(self, user_id: int) -> bool:
        """Set email_verified. A PENDING account becomes ACTIVE; other statuses are kept."""
        updated = self._db.execute(
            """UPDATE users
               SET email_verified = true,
                   status = CASE WHEN status = 'PENDING' THEN 'ACTIVE' ELSE status END,
                   updated_at = %s
               WHERE id = %s""",
            (now_utc(), user_id),
        )
        return updated > 0

    def update_last_login(self, user_id: int) -> None:
        """Update last_login_at to current time."""
        self._db.execute(
            "UPDATE users SET last_login_at = %s WHERE id = %s",
            (now_utc(), user_id),
        )

    def update_last_logout(self, user_id: int) -> None:
        self._db.execute(
            "UPDATE users SET last_logout_at = %s WHERE id = %s",
            (now_utc(), user_id),
        )
