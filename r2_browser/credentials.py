from __future__ import annotations
"""Single-slot persistence for bucket credentials."""
import json
import logging
from pathlib import Path
from typing import Callable

import keyring
from keyring.errors import KeyringError

from .models import BucketConfig
from .services import DEFAULT_DELETE_CONCURRENCY, BucketClient

LOGGER = logging.getLogger(__name__)

SLOT_NAME = "r2-credentials"
SECRET_FIELD = "secret_access_key"


class KeychainStore:
    """Encapsulates OS keychain access for secrets."""

    def __init__(self, service_name: str = "r2-browser"):
        self._service_name = service_name

    def get_secret(self, slot: str) -> str:
        try:
            return keyring.get_password(self._service_name, slot) or ""
        except KeyringError:
            LOGGER.warning("Unable to read secret for '%s' from the keychain", slot)
            return ""

    def set_secret(self, slot: str, secret: str) -> None:
        if not secret:
            self.delete_secret(slot)
            return
        try:
            keyring.set_password(self._service_name, slot, secret)
        except KeyringError:
            LOGGER.warning("Unable to store secret for '%s' in the keychain", slot)

    def delete_secret(self, slot: str) -> None:
        try:
            keyring.delete_password(self._service_name, slot)
        except KeyringError:
            return


class CredentialStore:
    """Persists one :class:`BucketConfig` and hands out a client for it.

    The record lives in a JSON file without its secret key, which is kept in
    the OS keychain instead.
    """

    def __init__(
        self,
        storage_path: str | Path | None = None,
        *,
        keychain: KeychainStore | None = None,
        client_factory: Callable[..., object] | None = None,
        delete_concurrency: int = DEFAULT_DELETE_CONCURRENCY,
    ):
        if storage_path is None:
            storage_path = Path.home() / ".r2_browser_credentials.json"
        self._path = Path(storage_path)
        self._keychain = keychain or KeychainStore()
        self._client_factory = client_factory
        self._delete_concurrency = delete_concurrency
        self._config: BucketConfig | None = None
        self._client: BucketClient | None = None

    @property
    def config(self) -> BucketConfig | None:
        return self._config

    @property
    def delete_concurrency(self) -> int:
        return self._delete_concurrency

    @delete_concurrency.setter
    def delete_concurrency(self, value: int) -> None:
        if value != self._delete_concurrency:
            self._client = None
        self._delete_concurrency = value

    @property
    def client(self) -> BucketClient | None:
        """Client for the current config, created on first use."""

        if self._config is None:
            return None
        if self._client is None:
            self._client = self.build_client(self._config)
        return self._client

    def build_client(self, config: BucketConfig) -> BucketClient:
        return BucketClient(
            config,
            client_factory=self._client_factory,
            delete_concurrency=self._delete_concurrency,
        )

    def load(self) -> BucketConfig | None:
        """Restore the stored config, clearing the slot if it cannot be parsed."""

        if not self._path.exists():
            return None
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            if not isinstance(data, dict):
                raise ValueError("Stored credentials must be an object")
            record = dict(data)
            plaintext_secret = record.get(SECRET_FIELD)
            if not plaintext_secret:
                record[SECRET_FIELD] = self._keychain.get_secret(SLOT_NAME)
            config = BucketConfig.from_dict(record)
        except (OSError, ValueError) as exc:
            LOGGER.warning("Discarding stored credentials in '%s': %s", self._path, exc)
            self.clear()
            return None

        if plaintext_secret:
            LOGGER.debug("Moving plaintext secret from '%s' into the keychain", self._path)
            self._keychain.set_secret(SLOT_NAME, plaintext_secret)
            self._write_record(config)
        self._set_config(config)
        return config

    def save(self, config: BucketConfig) -> None:
        self._keychain.set_secret(SLOT_NAME, config.secret_access_key)
        self._write_record(config)
        self._set_config(config)

    def clear(self) -> None:
        self._config = None
        self._client = None
        self._keychain.delete_secret(SLOT_NAME)
        try:
            self._path.unlink()
        except FileNotFoundError:
            return

    def _set_config(self, config: BucketConfig) -> None:
        if config != self._config:
            self._client = None
        self._config = config

    def _write_record(self, config: BucketConfig) -> None:
        record = config.to_dict()
        record.pop(SECRET_FIELD)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(record, indent=2), encoding="utf-8")
