"""Infrastructure clients: Vault, Postgres, Valkey and the email gateway."""

from clients.vault_client import (
    VaultClient,
    get_vault_client,
    get_database_url,
    get_valkey_url,
    get_email_config,
    get_jwt_secret,
)
from clients.postgres_client import PostgresClient
from clients.valkey_client import ValkeyClient
from clients.email_client import EmailGatewayClient, EmailGatewayError
