"""
Valkey client for short-lived shared state (pending OTP logins).

Thin layer over redis-py; Valkey speaks the same protocol. Every key is
namespaced and every value written here expires, so nothing this service
stores in Valkey can outlive its purpose.
"""

import json
import logging
from typing import Any

import redis

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "transit"


class ValkeyClient:
    """
    JSON records with mandatory TTLs under a key namespace.

    Usage:
        valkey = ValkeyClient(get_valkey_url())
        valkey.put_json("login_session:abc", {"user_id": 1}, ttl_seconds=300)
        valkey.get_json("login_session:abc")   # None once expired
    """

    def __init__(self, url: str, namespace: str = DEFAULT_NAMESPACE):
        """
        Connect and verify connectivity.

        Raises:
            redis.ConnectionError: Valkey unreachable at startup.
        """
        self._namespace = namespace
        self._client = redis.from_url(url, decode_responses=True)
        self._client.ping()
        logger.info(f"Connected to Valkey (namespace '{namespace}')")

    def _key(self, key: str) -> str:
        return f"{self._namespace}:{key}"

    def put_json(self, key: str, value: dict[str, Any], ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        self._client.set(self._key(key), json.dumps(value), ex=ttl_seconds)

    def get_json(self, key: str) -> dict[str, Any] | None:
        """
        Read a record. None if it never existed or has expired.

        Raises ValueError for a value that isn't JSON (written by something else).
        """
        raw = self._client.get(self._key(key))
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in key '{key}': {e}") from e

    def delete(self, key: str) -> bool:
        """
        True if this call removed the key.

        DEL is atomic: of several concurrent callers, exactly one sees True.
        """
        return self._client.delete(self._key(key)) == 1

    def ttl(self, key: str) -> int | None:
        """Seconds left before expiry. None if the key is gone."""
        remaining = self._client.ttl(self._key(key))
        return remaining if remaining >= 0 else None

    def ping(self) -> bool:
        """Raises redis.ConnectionError if unreachable."""
        return bool(self._client.ping())

    def close(self) -> None:
        self._client.close()
