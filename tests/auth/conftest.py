"""Auth test fixtures - real auth components, in-memory user store, mocked email."""

from unittest.mock import Mock

import pytest

from auth.cookies import SessionCookieManager
from auth.exceptions import EmailAlreadyRegisteredError
from auth.login_sessions import InMemoryLoginSessionStore
from auth.passwords import PasswordHasher
from auth.security_logger import SecurityLogger
from auth.service import AuthService
from auth.tokens import TokenService
from auth.types import NewUser, UserRecord, UserRole, UserStatus
from clients.email_client import EmailGatewayClient
from utils.timezone import now_utc


class InMemoryAuthDatabase:
    """Stands in for AuthDatabase. Same method names and return types."""

    def __init__(self):
        self.users: dict[int, UserRecord] = {}
        self._next_id = 1

    def get_user_by_email(self, email: str) -> UserRecord | None:
        for user in self.users.values():
            if user.email == email.lower():
                return user
        return None

    def get_user_by_id(self, user_id: int) -> UserRecord | None:
        return self.users.get(user_id)

    def email_exists(self, email: str) -> bool:
        return self.get_user_by_email(email) is not None

    def create_user(self, user: NewUser) -> UserRecord:
        # Mirrors the unique index on users.email
        if self.get_user_by_email(user.email) is not None:
            raise EmailAlreadyRegisteredError()
        record = UserRecord(
            id=self._next_id,
            created_at=now_utc(),
            **user.model_dump(exclude={"email"}),
            email=user.email.lower(),
        )
        self.users[record.id] = record
        self._next_id += 1
        return record

    def _update(self, user_id: int, **fields) -> bool:
        user = self.users.get(user_id)
        if user is None:
            return False
        self.users[user_id] = user.model_copy(update={**fields, "updated_at": now_utc()})
        return True

    def update_password(self, user_id: int, password_hash: str) -> bool:
        return self._update(user_id, password_hash=password_hash)

    def mark_email_verified(self, user_id: int) -> bool:
        user = self.users.get(user_id)
        if user is None:
            return False
        status = UserStatus.ACTIVE if user.status == UserStatus.PENDING else user.status
        return self._update(user_id, email_verified=True, status=status)

    def update_last_login(self, user_id: int) -> None:
        self._update(user_id, last_login_at=now_utc())

    def update_last_logout(self, user_id: int) -> None:
        self._update(user_id, last_logout_at=now_utc())


@pytest.fixture
def users():
    return InMemoryAuthDatabase()


@pytest.fixture
def hasher(config):
    return PasswordHasher(rounds=config.bcrypt_rounds)


@pytest.fixture
def token_service(config):
    return TokenService(config)


@pytest.fixture
def login_sessions(config):
    return InMemoryLoginSessionStore(config)


@pytest.fixture
def cookie_manager(config):
    return SessionCookieManager(config)


@pytest.fixture
def mock_email_client():
    """Mock email client - every send succeeds unless a test sets side_effect."""
    return Mock(spec=EmailGatewayClient)


@pytest.fixture
def mock_security_logger():
    return Mock(spec=SecurityLogger)


@pytest.fixture
def auth_service(
    config,
    users,
    hasher,
    token_service,
    login_sessions,
    cookie_manager,
    mock_email_client,
    mock_security_logger,
):
    """Real AuthService over the in-memory store, mocked email and audit."""
    return AuthService(
        config=config,
        auth_db=users,
        hasher=hasher,
        token_service=token_service,
        login_sessions=login_sessions,
        cookie_manager=cookie_manager,
        email_client=mock_email_client,
        security_logger=mock_security_logger,
    )


@pytest.fixture
def make_user(users, hasher, strong_password):
    """Factory: store a user (ACTIVE and verified by default) with a hashed password."""

    def _make_user(
        email: str = "rider@example.com",
        password: str = strong_password,
        status: UserStatus = UserStatus.ACTIVE,
        email_verified: bool = True,
        role: UserRole = UserRole.USER,
        name: str = "Ana",
    ) -> UserRecord:
        return users.create_user(
            NewUser(
                name=name,
                last_name="Rider",
                email=email,
                password_hash=hasher.hash(password),
                role=role,
                status=status,
                email_verified=email_verified,
            )
        )

    return _make_user
