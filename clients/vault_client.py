"""
HashiCorp Vault access for infrastructure secrets.

AppRole login, KV v2 reads. Every path is confined under 'transit/' and each
secret is read once per process.
"""

import logging
import os
from functools import lru_cache

import hvac
from hvac.exceptions import Forbidden, InvalidPath, Unauthorized, VaultError

logger = logging.getLogger(__name__)

SECRET_PREFIX = "transit"

EMAIL_FIELDS = ("gateway_url", "api_key", "hmac_secret")


class VaultClient:
    """
    AppRole-authenticated KV v2 reader.

    Settings not passed in come from VAULT_ADDR, VAULT_NAMESPACE,
    VAULT_ROLE_ID and VAULT_SECRET_ID. Missing settings or a rejected login
    fail construction.
    """

    def __init__(
        self,
        addr: str | None = None,
        namespace: str | None = None,
        role_id: str | None = None,
        secret_id: str | None = None,
    ):
        self.addr = addr or os.getenv("VAULT_ADDR")
        self.namespace = namespace or os.getenv("VAULT_NAMESPACE")
        role_id = role_id or os.getenv("VAULT_ROLE_ID")
        secret_id = secret_id or os.getenv("VAULT_SECRET_ID")

        missing = [
            name
            for name, value in (
                ("VAULT_ADDR", self.addr),
                ("VAULT_ROLE_ID", role_id),
                ("VAULT_SECRET_ID", secret_id),
            )
            if not value
        ]
        if missing:
            raise ValueError(f"Missing Vault settings: {', '.join(missing)}")

        client_kwargs = {"url": self.addr}
        if self.namespace:
            client_kwargs["namespace"] = self.namespace
        self.client = hvac.Client(**client_kwargs)
        self._secrets: dict[str, dict[str, str]] = {}

        self._login(role_id, secret_id)

    def _login(self, role_id: str, secret_id: str) -> None:
        try:
            result = self.client.auth.approle.login(role_id=role_id, secret_id=secret_id)
        except VaultError as e:
            raise PermissionError(f"Vault AppRole authentication failed: {e}") from e

        self.client.token = result["auth"]["client_token"]
        if not self.client.is_authenticated():
            raise PermissionError("Vault AppRole authentication failed: token not accepted")
        logger.info(f"Authenticated to Vault at {self.addr}")

    def read_secret(self, path: str) -> dict[str, str]:
        """
        All fields of 'transit/<path>'. Cached after the first read.

        Raises:
            PermissionError: Path missing or not readable with this role.
        """
        if path in self._secrets:
            return self._secrets[path]

        full_path = f"{SECRET_PREFIX}/{path}"
        try:
            response = self.client.secrets.kv.v2.read_secret_version(
                path=full_path, raise_on_deleted_version=True
            )
        except InvalidPath as e:
            raise PermissionError(f"Secret '{full_path}' not found in Vault") from e
        except (Unauthorized, Forbidden) as e:
            raise PermissionError(f"Access denied to secret '{full_path}'") from e

        self._secrets[path] = response["data"]["data"]
        return self._secrets[path]

    def get_secret(self, path: str, field: str) -> str:
        """Raises KeyError if the secret exists but lacks the field."""
        secret = self.read_secret(path)
        if field not in secret:
            raise KeyError(
                f"Field '{field}' not found in secret '{SECRET_PREFIX}/{path}' "
                f"(has: {', '.join(sorted(secret))})"
            )
        return secret[field]


@lru_cache(maxsize=1)
def get_vault_client() -> VaultClient:
    """Process-wide client, created on first use."""
    return VaultClient()


def get_database_url() -> str:
    return get_vault_client().get_secret("database", "url")


def get_valkey_url() -> str:
    return get_vault_client().get_secret("valkey", "url")


def get_email_config() -> dict[str, str]:
    """Email gateway settings, as keyword arguments for EmailGatewayClient."""
    client = get_vault_client()
    return {field: client.get_secret("email", field) for field in EMAIL_FIELDS}


def get_jwt_secret() -> str:
    """Token signing secret, for deployments that don't set JWT_SECRET."""
    return get_vault_client().get_secret("auth", "jwt_secret")
