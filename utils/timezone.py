"""UTC time helpers.

Every timestamp this service stores, signs or compares is timezone-aware UTC:
login session expiries, JWT iat/exp, users.last_login_at and friends.
"""

from datetime import datetime, timezone


def now_utc() -> datetime:
    """Current time in UTC. Use this instead of datetime.now()."""
    return datetime.now(timezone.utc)


def to_utc(dt: datetime) -> datetime:
    """
    Normalize an aware datetime to UTC.

    Raises ValueError for naive datetimes; guessing their zone is how expiry
    checks end up off by hours.
    """
    if dt.tzinfo is None:
        raise ValueError("Cannot convert naive datetime to UTC. Pass a timezone-aware datetime.")
    return dt.astimezone(timezone.utc)


def parse_iso(iso_string: str) -> datetime:
    """
    Parse an ISO 8601 string (as written by datetime.isoformat) into UTC.

    Raises ValueError if the string carries no offset.
    """
    dt = datetime.fromisoformat(iso_string)
    if dt.tzinfo is None:
        raise ValueError(
            f"Timestamp '{iso_string}' has no timezone offset (expected e.g. '+00:00' or 'Z')"
        )
    return to_utc(dt)


def from_timestamp(seconds: int | float) -> datetime:
    """Unix seconds (JWT iat/exp) to an aware UTC datetime."""
    return datetime.fromtimestamp(seconds, tz=timezone.utc)
