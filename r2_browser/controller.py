from __future__ import annotations
"""Controller layer for the bucket browser views."""

import logging
from pathlib import Path

from .credentials import CredentialStore
from .models import BucketConfig, Entry
from .services import BucketClient, folder_key
from .ui_utils import compose_key, parent_prefix

LOGGER = logging.getLogger(__name__)


class NotConnectedError(RuntimeError):
    """Raised when a bucket operation is attempted before connecting."""


class BrowserController:
    """Tracks the current folder and routes user actions to a :class:`BucketClient`."""

    def __init__(self, store: CredentialStore | None = None, *, initial_prefix: str = ""):
        self._store = store or CredentialStore()
        self._store.load()
        self._prefix = self._normalize_prefix(initial_prefix)

    @property
    def is_connected(self) -> bool:
        return self._store.config is not None

    @property
    def config(self) -> BucketConfig | None:
        return self._store.config

    @property
    def current_prefix(self) -> str:
        return self._prefix

    def connect(self, config: BucketConfig) -> bool:
        """Check ``config`` against the backend and store it when reachable."""

        client = self._store.build_client(config)
        if not client.test_connection():
            return False
        self._store.save(config)
        self._prefix = ""
        LOGGER.debug("Connected to bucket '%s'", config.bucket_name)
        return True

    def disconnect(self) -> None:
        self._store.clear()
        self._prefix = ""

    def set_delete_concurrency(self, value: int) -> None:
        self._store.delete_concurrency = max(int(value), 1)

    def go_to(self, prefix: str) -> str:
        self._prefix = self._normalize_prefix(prefix)
        return self._prefix

    def open_folder(self, name: str) -> str:
        """Descend into the listed folder ``name``; the name is used verbatim."""

        self._prefix = folder_key(self._prefix + name)
        return self._prefix

    def go_up(self) -> str:
        self._prefix = parent_prefix(self._prefix)
        return self._prefix

    def list_entries(self) -> list[Entry]:
        return self._require_client().list(self._prefix)

    def upload_file(self, source_path: str, *, name: str | None = None, prefix: str | None = None) -> str:
        path = Path(source_path)
        key = compose_key(self._prefix if prefix is None else prefix, name or path.name)
        client = self._require_client()
        with path.open("rb") as handle:
            client.upload(key, handle)
        return key

    def create_folder(self, name: str, *, prefix: str | None = None) -> str:
        key = compose_key(self._prefix if prefix is None else prefix, name)
        return self._require_client().create_folder(key)

    def delete_entry(self, entry: Entry, *, prefix: str | None = None) -> None:
        client = self._require_client()
        key = self.key_for(entry, prefix)
        if entry.is_folder:
            client.delete_folder(key)
        else:
            client.delete_file(key)

    def download_url(self, entry: Entry, *, prefix: str | None = None) -> str:
        if entry.is_folder:
            raise ValueError("Folders cannot be downloaded")
        url = self._require_client().get_download_url(self.key_for(entry, prefix))
        entry.download_url = url
        return url

    def key_for(self, entry: Entry, prefix: str | None = None) -> str:
        """Full object key of a listed ``entry`` under ``prefix`` (default: the current folder).

        Listed names are joined verbatim so keys with surrounding spaces survive.
        """

        key = (self._prefix if prefix is None else prefix) + entry.name
        return folder_key(key) if entry.is_folder else key

    def _require_client(self) -> BucketClient:
        client = self._store.client
        if client is None:
            raise NotConnectedError("No bucket credentials configured")
        return client

    @staticmethod
    def _normalize_prefix(prefix: str) -> str:
        cleaned = prefix.strip().lstrip("/")
        return folder_key(cleaned) if cleaned else ""
