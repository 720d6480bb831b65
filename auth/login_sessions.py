"""Pending-OTP login sessions.

A login session links a random session id to the code emailed during the
first login step. The id is the only key: two logins for the same account get
two independent sessions, and completing one leaves the other alive.

Lifecycle: created after the password check, deleted on the correct code or
when found expired. A wrong code leaves the session in place so the user can
retry until it expires.
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import uuid4

from auth.config import AuthConfig
from auth.exceptions import OtpMismatchError, SessionExpiredError, SessionNotFoundError
from auth.otp import verify_otp
from clients.valkey_client import ValkeyClient
from utils.timezone import now_utc, parse_iso

logger = logging.getLogger(__name__)


@dataclass
class LoginSession:
    session_id: str
    user_id: int
    email: str
    otp: str
    created_at: datetime
    expires_at: datetime


@dataclass
class PendingLogin:
    """Identity released by a successful consume()."""

    user_id: int
    email: str


class LoginSessionStore(ABC):
    """Storage for pending logins. Implementations must be safe for concurrent use."""

    def __init__(self, config: AuthConfig):
        self._ttl = timedelta(minutes=config.login_session_minutes)

    def _new_session(self, user_id: int, email: str, otp: str) -> LoginSession:
        now = now_utc()
        return LoginSession(
            session_id=str(uuid4()),
            user_id=user_id,
            email=email,
            otp=otp,
            created_at=now,
            expires_at=now + self._ttl,
        )

    @abstractmethod
    def create(self, user_id: int, email: str, otp: str) -> LoginSession:
        """Store a pending login and return it (session_id is the handle)."""

    @abstractmethod
    def consume(self, session_id: str, otp: str) -> PendingLogin:
        """
        Verify code and release the identity. One-time use.

        Raises:
            SessionNotFoundError: Unknown id, or already consumed.
            SessionExpiredError: Past expiry. The session is deleted.
            OtpMismatchError: Wrong code. The session is kept.
        """

    @abstractmethod
    def discard(self, session_id: str) -> None:
        """Drop a pending login. Safe to call with an unknown id."""

    @abstractmethod
    def purge_expired(self) -> int:
        """Evict expired sessions. Returns count removed."""


class InMemoryLoginSessionStore(LoginSessionStore):
    """
    Process-local store for single-instance deployments.

    A restart drops every pending login. Expired sessions are swept on each
    create(), so abandoned logins don't accumulate.
    """

    def __init__(self, config: AuthConfig):
        super().__init__(config)
        self._sessions: dict[str, LoginSession] = {}
        self._lock = threading.Lock()

    def create(self, user_id: int, email: str, otp: str) -> LoginSession:
        session = self._new_session(user_id, email, otp)
        with self._lock:
            purged = self._purge_locked(session.created_at)
            self._sessions[session.session_id] = session
        if purged:
            logger.info(f"Purged {purged} expired login sessions")
        return session

    def consume(self, session_id: str, otp: str) -> PendingLogin:
        with self._lock:
            session = self._sessions.get(session_id)

            if session is None:
                raise SessionNotFoundError()

            if now_utc() > session.expires_at:
                del self._sessions[session_id]
                raise SessionExpiredError()

            if not verify_otp(session.otp, otp):
                raise OtpMismatchError()

            del self._sessions[session_id]

        return PendingLogin(user_id=session.user_id, email=session.email)

    def discard(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def _purge_locked(self, now: datetime) -> int:
        """Caller holds the lock."""
        expired = [sid for sid, s in self._sessions.items() if now > s.expires_at]
        for session_id in expired:
            del self._sessions[session_id]
        return len(expired)

    def purge_expired(self) -> int:
        with self._lock:
            purged = self._purge_locked(now_utc())
        if purged:
            logger.info(f"Purged {purged} expired login sessions")
        return purged

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


class ValkeyLoginSessionStore(LoginSessionStore):
    """
    Valkey-backed store so pending logins survive across instances.

    Keys carry a TTL matching session expiry, so purge_expired has nothing
    to do. When two requests consume the same session with the right code,
    only the one whose DELETE removes the key succeeds.
    """

    KEY_PREFIX = "login_session:"

    def __init__(self, valkey: ValkeyClient, config: AuthConfig):
        super().__init__(config)
        self._valkey = valkey

    def _key(self, session_id: str) -> str:
        return f"{self.KEY_PREFIX}{session_id}"

    def create(self, user_id: int, email: str, otp: str) -> LoginSession:
        session = self._new_session(user_id, email, otp)
        self._valkey.put_json(
            self._key(session.session_id),
            {
                "user_id": session.user_id,
                "email": session.email,
                "otp": session.otp,
                "created_at": session.created_at.isoformat(),
                "expires_at": session.expires_at.isoformat(),
            },
            ttl_seconds=int(self._ttl.total_seconds()),
        )
        return session

    def consume(self, session_id: str, otp: str) -> PendingLogin:
        key = self._key(session_id)
        data = self._valkey.get_json(key)

        if data is None:
            raise SessionNotFoundError()

        # TTL has whole-second granularity; the stored expiry is exact
        if now_utc() > parse_iso(data["expires_at"]):
            self._valkey.delete(key)
            raise SessionExpiredError()

        if not verify_otp(data["otp"], otp):
            raise OtpMismatchError()

        if not self._valkey.delete(key):
            # Another request consumed it first
            raise SessionNotFoundError()

        return PendingLogin(user_id=int(data["user_id"]), email=data["email"])

    def discard(self, session_id: str) -> None:
        self._valkey.delete(self._key(session_id))

    def purge_expired(self) -> int:
        return 0
