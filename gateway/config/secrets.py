"""
Secrets provider: Vault KV v2 (OpenBao/HashiCorp) with environment fallback.

The gateway reads three secrets that must never be written to gateway.yml:
the database URL, the internal API secret shared with connector containers,
and the admin API secret.
"""

from __future__ import annotations

import logging
import os
import threading
import time

import requests

logger = logging.getLogger("whatsapp-gateway")

VAULT_TIMEOUT = 5
# Re-login this many seconds before the AppRole lease expires
LEASE_MARGIN = 60


class SecretsProvider:
    """
    Lookup order: Vault > environment variable > default.

    Vault is optional. When ``VAULT_ADDR`` is unset, or Vault cannot be
    reached at startup, every lookup goes straight to the environment.
    """

    def __init__(self) -> None:
        self.vault_addr = os.environ.get("VAULT_ADDR")
        self.vault_mount = os.environ.get("VAULT_MOUNT", "secret")
        self.vault_path = os.environ.get("VAULT_PATH", "whatsapp-gateway/control-plane")
        self._role_id = os.environ.get("VAULT_ROLE_ID")
        self._secret_id = os.environ.get("VAULT_SECRET_ID")
        self._token = os.environ.get("VAULT_TOKEN")
        self._token_expires: float = 0
        self._cache: dict[str, str] = {}
        self._cache_time: float = 0
        self._cache_ttl = 300
        self._lock = threading.Lock()
        self.use_vault = False

        if self.vault_addr:
            self._connect()

    @property
    def auth_method(self) -> str | None:
        if self._role_id and self._secret_id:
            return "approle"
        if self._token:
            return "token"
        return None

    def _connect(self) -> None:
        """Authenticate against Vault and verify the resulting token."""
        try:
            if self.auth_method == "approle":
                resp = requests.post(
                    f"{self.vault_addr}/v1/auth/approle/login",
                    json={"role_id": self._role_id, "secret_id": self._secret_id},
                    timeout=VAULT_TIMEOUT,
                )
                resp.raise_for_status()
                auth = resp.json()["auth"]
                self._token = auth["client_token"]
                self._token_expires = time.time() + auth["lease_duration"] - LEASE_MARGIN

            if not self._token:
                logger.warning("VAULT_ADDR set but no Vault credentials provided")
                return

            resp = requests.get(
                f"{self.vault_addr}/v1/auth/token/lookup-self",
                headers={"X-Vault-Token": self._token},
                timeout=VAULT_TIMEOUT,
            )
            resp.raise_for_status()
            self.use_vault = True
            logger.info(f"Vault connected: {self.vault_addr} ({self.auth_method})")
        except requests.RequestException as e:
            logger.warning(f"Vault unavailable ({e}), using environment variables")
            self.use_vault = False

    def _read_secrets(self) -> dict[str, str]:
        """Return the KV document, served from cache while fresh.

        Must be called under ``self._lock``.
        """
        if self.auth_method == "approle" and time.time() > self._token_expires:
            self._connect()

        if self._cache and time.time() - self._cache_time < self._cache_ttl:
            return self._cache

        resp = requests.get(
            f"{self.vault_addr}/v1/{self.vault_mount}/data/{self.vault_path}",
            headers={"X-Vault-Token": self._token},
            timeout=VAULT_TIMEOUT,
        )
        resp.raise_for_status()
        self._cache = resp.json().get("data", {}).get("data", {})
        self._cache_time = time.time()
        return self._cache

    def get(self, key: str, default: str | None = None) -> str | None:
        """
        Retrieve a secret.

        Args:
            key: Secret key name (``internal_api_secret`` maps to
                ``INTERNAL_API_SECRET`` in the environment)
            default: Value returned when neither source has the key

        Returns:
            Secret value or default
        """
        if self.use_vault:
            with self._lock:
                try:
                    value = self._read_secrets().get(key)
                except requests.RequestException as e:
                    logger.error(f"Error reading from Vault for key '{key}': {e}")
                    value = None
            if value:
                return value

        return os.environ.get(key.upper().replace("-", "_"), default)

    def get_status(self) -> dict:
        """Non-sensitive provider status for the health endpoint."""
        return {
            "vault_configured": bool(self.vault_addr),
            "vault_connected": self.use_vault,
            "auth_method": self.auth_method,
        }


# Global instance
secrets_provider = SecretsProvider()
