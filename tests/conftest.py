"""Shared test fixtures for the Transit auth test suite.

Nothing here talks to Postgres, Valkey or Vault: collaborators are mocked or
replaced with in-memory doubles.
"""

import pytest

from clients.vault_client import get_vault_client
from auth.config import AuthConfig


# =============================================================================
# TEST USER CONSTANTS
# =============================================================================

TEST_JWT_SECRET = "test-jwt-secret-that-is-long-enough-for-hs256"
TEST_FRONTEND_URL = "https://app.example.com"

# Passes every strength rule
STRONG_PASSWORD = "Str0ng!Pass"
OTHER_STRONG_PASSWORD = "An0ther!Pass"


@pytest.fixture(autouse=True)
def reset_vault_singleton():
    """The process-wide Vault client (and its secret cache) must not leak between tests."""
    get_vault_client.cache_clear()
    yield
    get_vault_client.cache_clear()


@pytest.fixture
def config() -> AuthConfig:
    """Test auth config. Low bcrypt cost keeps hashing fast."""
    return AuthConfig(
        jwt_secret=TEST_JWT_SECRET,
        bcrypt_rounds=4,
        frontend_url=TEST_FRONTEND_URL,
    )


@pytest.fixture
def strong_password() -> str:
    return STRONG_PASSWORD


@pytest.fixture
def other_strong_password() -> str:
    return OTHER_STRONG_PASSWORD
