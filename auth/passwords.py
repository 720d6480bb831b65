"""Password hashing and strength policy.

bcrypt with a fixed cost factor. Hashing is CPU-bound (hundreds of ms at cost
12), so callers run it from FastAPI's threadpool, never on the event loop.
"""

import logging
import re
import secrets
import string
from dataclasses import dataclass, field
from typing import Literal

import bcrypt

from auth.exceptions import BadRequestError, InternalError

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8
# bcrypt ignores input past 72 bytes; refuse rather than truncate.
MAX_PASSWORD_BYTES = 72
SPECIAL_CHARACTERS = '!@#$%^&*(),.?":{}|<>'

_TEMPORARY_PASSWORD_ALPHABET = string.ascii_letters + string.digits + "@#$%&*"


@dataclass
class PasswordStrength:
    """Advisory result of the strength policy."""

    is_valid: bool
    errors: list[str] = field(default_factory=list)
    strength: Literal["weak", "medium", "strong"] = "weak"


class PasswordHasher:
    """One-way password hashing with bcrypt."""

    def __init__(self, rounds: int = 12):
        self._rounds = rounds

    def hash(self, password: str) -> str:
        """
        Hash password with a fresh salt.

        Raises:
            BadRequestError: Password exceeds bcrypt's 72-byte input limit.
            InternalError: bcrypt failed.
        """
        encoded = password.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            raise BadRequestError(
                f"Password must be at most {MAX_PASSWORD_BYTES} bytes long"
            )
        try:
            return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=self._rounds)).decode("utf-8")
        except ValueError as e:
            logger.error(f"Password hashing failed: {e}")
            raise InternalError("Error hashing password") from e

    def compare(self, password: str, password_hash: str) -> bool:
        """
        Check password against stored hash.

        Returns False on mismatch. Only a corrupt stored hash raises.

        Raises:
            InternalError: Stored hash is not a valid bcrypt hash.
        """
        encoded = password.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            # Could never have been hashed by hash() above
            return False
        try:
            return bcrypt.checkpw(encoded, password_hash.encode("utf-8"))
        except ValueError as e:
            logger.error(f"Password comparison failed: {e}")
            raise InternalError("Error comparing password") from e


def validate_strength(password: str) -> PasswordStrength:
    """
    Check password against the strength policy.

    One error message per failed rule. Strength is derived from how many of
    the five rules pass: fewer than 3 is weak, fewer than 5 medium.
    """
    errors = []
    score = 0

    if len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    else:
        score += 1

    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")
    else:
        score += 1

    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")
    else:
        score += 1

    if not re.search(r"\d", password):
        errors.append("Password must contain at least one number")
    else:
        score += 1

    if not any(char in SPECIAL_CHARACTERS for char in password):
        errors.append("Password must contain at least one special character")
    else:
        score += 1

    if score < 3:
        strength = "weak"
    elif score < 5:
        strength = "medium"
    else:
        strength = "strong"

    return PasswordStrength(is_valid=not errors, errors=errors, strength=strength)


def generate_temporary_password(length: int = 12) -> str:
    """Random password of letters, digits and symbols. Not guaranteed to pass the policy."""
    return "".join(secrets.choice(_TEMPORARY_PASSWORD_ALPHABET) for _ in range(length))
