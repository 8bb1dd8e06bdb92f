"""
Custody of webhook signing secrets.

The application database only ever holds the opaque id returned by
``store()``; the plaintext lives in the vault and is read back transiently by
the delivery worker. Any backend implementing the three methods of
``SecretVault`` can be plugged in through ``WEBHOOK_VAULT_BACKEND``.
"""
from __future__ import annotations

import logging
import secrets
import threading
from functools import lru_cache
from typing import Any, Dict, Optional

import httpx
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)


class VaultError(Exception):
    """Raised when the vault cannot complete an operation."""


class SecretNotFound(VaultError):
    """The vault has no secret under the requested id."""


class SecretAccessDenied(VaultError):
    """The vault refused access to the requested secret."""


class SecretVault:
    def store(self, owner_ref: str, name: str, value: str) -> str:
        """Persist ``value`` and return its vault id. The value cannot be read back through this call."""
        raise NotImplementedError

    def read(self, vault_id: str) -> str:
        raise NotImplementedError

    def delete(self, vault_id: str) -> None:
        raise NotImplementedError


class LocalMemoryVault(SecretVault):
    """Process-local vault for development and tests."""

    def __init__(self):
        self._lock = threading.Lock()
        self._objects: Dict[str, Dict[str, str]] = {}

    def store(self, owner_ref: str, name: str, value: str) -> str:
        vault_id = f"vault_{secrets.token_hex(12)}"
        with self._lock:
            self._objects[vault_id] = {"owner_ref": owner_ref, "name": name, "value": value}
        return vault_id

    def read(self, vault_id: str) -> str:
        with self._lock:
            entry = self._objects.get(vault_id)
        if entry is None:
            raise SecretNotFound(f"Vault object {vault_id} not found.")
        return entry["value"]

    def delete(self, vault_id: str) -> None:
        with self._lock:
            if self._objects.pop(vault_id, None) is None:
                raise SecretNotFound(f"Vault object {vault_id} not found.")

    def __len__(self):
        return len(self._objects)


class WorkOSVault(SecretVault):
    """WorkOS Vault key-value objects, spoken to over its REST API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.api_key = api_key or getattr(settings, "WORKOS_API_KEY", "")
        if not self.api_key:
            raise ImproperlyConfigured("WORKOS_API_KEY must be configured to use the WorkOS vault backend.")
        self.base_url = (base_url or getattr(settings, "WORKOS_API_BASE_URL", "https://api.workos.com")).rstrip("/")
        self.timeout = timeout if timeout is not None else float(getattr(settings, "WORKOS_VAULT_TIMEOUT_SECONDS", 10))
        self._transport = transport

    def store(self, owner_ref: str, name: str, value: str) -> str:
        data = self._request(
            "POST",
            "/vault/v1/kv",
            json={"name": name, "value": value, "key_context": {"user_id": owner_ref}},
        )
        vault_id = data.get("id")
        if not vault_id:
            raise VaultError("Vault response missing object id.")
        return vault_id

    def read(self, vault_id: str) -> str:
        data = self._request("GET", f"/vault/v1/kv/{vault_id}")
        value = data.get("value")
        if not value:
            raise SecretNotFound(f"Vault object {vault_id} has no value.")
        return value

    def delete(self, vault_id: str) -> None:
        self._request("DELETE", f"/vault/v1/kv/{vault_id}")

    def _request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            with httpx.Client(base_url=self.base_url, timeout=self.timeout, transport=self._transport) as client:
                response = client.request(method, path, json=json, headers=headers)
        except httpx.HTTPError as exc:
            raise VaultError(f"Vault request failed: {exc.__class__.__name__}") from exc

        if response.status_code == 404:
            raise SecretNotFound(f"Vault object not found ({method} {path}).")
        if response.status_code in (401, 403):
            raise SecretAccessDenied(f"Vault denied access ({response.status_code}).")
        if response.is_error:
            raise VaultError(f"Vault returned HTTP {response.status_code}.")
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise VaultError("Vault returned a non-JSON response.") from exc


@lru_cache(maxsize=None)
def _load_vault(backend_path: str) -> SecretVault:
    backend = import_string(backend_path)
    logger.info("Using secret vault backend %s", backend_path)
    return backend()


def get_vault() -> SecretVault:
    return _load_vault(getattr(settings, "WEBHOOK_VAULT_BACKEND", "webhooks.vault.LocalMemoryVault"))

