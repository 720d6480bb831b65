"""Service entry point.

Run with: python main.py (or uvicorn main:build_app --factory)
"""

import logging
import os
from pathlib import Path

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI

# Load .env before anything reads env vars
load_dotenv(Path(__file__).parent / ".env")

from api.app import create_app
from auth.config import AuthConfig
from auth.cookies import SessionCookieManager
from auth.database import AuthDatabase
from auth.login_sessions import (
    InMemoryLoginSessionStore,
    LoginSessionStore,
    ValkeyLoginSessionStore,
)
from auth.passwords import PasswordHasher
from auth.security_logger import SecurityLogger
from auth.service import AuthService
from auth.tokens import TokenService
from clients.email_client import EmailGatewayClient
from clients.postgres_client import PostgresClient
from clients.valkey_client import ValkeyClient
from clients.vault_client import (
    get_database_url,
    get_email_config,
    get_jwt_secret,
    get_valkey_url,
)

logger = logging.getLogger(__name__)


def _build_login_sessions(config: AuthConfig) -> LoginSessionStore:
    if config.login_session_backend == "valkey":
        return ValkeyLoginSessionStore(ValkeyClient(get_valkey_url()), config)
    return InMemoryLoginSessionStore(config)


def build_app() -> FastAPI:
    """Wire clients and services from env + Vault and return the app."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = AuthConfig.from_env()
    if not config.jwt_secret:
        config = config.model_copy(update={"jwt_secret": get_jwt_secret()})

    postgres = PostgresClient(get_database_url())
    email_client = EmailGatewayClient(**get_email_config(), app_name=config.app_name)
    token_service = TokenService(config)
    cookie_manager = SessionCookieManager(config)

    auth_service = AuthService(
        config=config,
        auth_db=AuthDatabase(postgres),
        hasher=PasswordHasher(rounds=config.bcrypt_rounds),
        token_service=token_service,
        login_sessions=_build_login_sessions(config),
        cookie_manager=cookie_manager,
        email_client=email_client,
        security_logger=SecurityLogger(postgres),
    )

    logger.info(
        f"Auth configured: login_mode={config.login_mode}, "
        f"login_session_backend={config.login_session_backend}"
    )
    return create_app(config, auth_service, token_service, cookie_manager, postgres=postgres)


if __name__ == "__main__":
    uvicorn.run(
        "main:build_app",
        factory=True,
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "3000")),
    )
