from __future__ import annotations
"""Folder-aware operations on top of a flat S3-compatible key space."""
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from datetime import datetime, timezone
import locale
import logging
import mimetypes
import os
import threading
from typing import BinaryIO, Callable, Iterator

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .models import BucketConfig, Entry

LOGGER = logging.getLogger(__name__)

DELIMITER = "/"
DOWNLOAD_URL_EXPIRY = 3600
FOLDER_CONTENT_TYPE = "application/x-directory"
DEFAULT_CONTENT_TYPE = "application/octet-stream"
DEFAULT_DELETE_CONCURRENCY = 16


class ConnectivityError(RuntimeError):
    """Raised when a request to the storage backend fails."""


def folder_key(path: str) -> str:
    """Return ``path`` with a single trailing delimiter."""

    return path if path.endswith(DELIMITER) else path + DELIMITER


def _sort_key(entry: Entry) -> tuple[str, str]:
    # Case-insensitive even under the C locale; the raw name breaks ties.
    return locale.strxfrm(entry.name.casefold()), entry.name


def _guess_content_type(file_handle: BinaryIO) -> str:
    name = getattr(file_handle, "name", None)
    if isinstance(name, str):
        guessed, _ = mimetypes.guess_type(os.path.basename(name))
        if guessed:
            return guessed
    return DEFAULT_CONTENT_TYPE


class BucketClient:
    """Translates folder operations into flat object-storage requests.

    The client holds nothing but its :class:`BucketConfig` and the lazily
    created boto3 client; every call is an independent request.
    """

    def __init__(
        self,
        config: BucketConfig,
        *,
        client_factory: Callable[..., object] | None = None,
        delete_concurrency: int = DEFAULT_DELETE_CONCURRENCY,
    ):
        self._config = config
        self._client_factory = client_factory or boto3.client
        self._delete_concurrency = max(int(delete_concurrency), 1)
        self._client = None
        self._client_lock = threading.Lock()

    @property
    def config(self) -> BucketConfig:
        return self._config

    def list(self, prefix: str = "") -> list[Entry]:
        """Return the folders and files directly below ``prefix``.

        Folders come first, then files, each group in locale order.

        Raises:
            ConnectivityError: when the listing request fails.
        """
        with self._translate_errors("Error listing objects under '%s'", prefix):
            pages = list(self._iter_pages(prefix, delimiter=DELIMITER))

        now = datetime.now(timezone.utc)
        folders: list[Entry] = []
        files: list[Entry] = []
        for page in pages:
            for common in page.get("CommonPrefixes", []):
                common_prefix = common.get("Prefix")
                if not common_prefix:
                    continue
                name = common_prefix[len(prefix):].split(DELIMITER, 1)[0]
                if name:
                    folders.append(Entry(name=name, size=0, last_modified=now, is_folder=True))
            for obj in page.get("Contents", []):
                key = obj.get("Key")
                if not key or key == prefix:
                    continue
                name = key[len(prefix):]
                if not name or name.endswith(DELIMITER):
                    continue
                files.append(
                    Entry(
                        name=name,
                        size=obj.get("Size") or 0,
                        last_modified=obj.get("LastModified") or now,
                        is_folder=False,
                    )
                )

        folders.sort(key=_sort_key)
        files.sort(key=_sort_key)
        return folders + files

    def get_download_url(self, key: str) -> str:
        """Return a GET URL for ``key`` signed for :data:`DOWNLOAD_URL_EXPIRY` seconds."""

        with self._translate_errors("Error getting download URL for '%s'", key):
            return self._get_client().generate_presigned_url(
                "get_object",
                Params={"Bucket": self._config.bucket_name, "Key": key},
                ExpiresIn=DOWNLOAD_URL_EXPIRY,
            )

    def upload(self, key: str, file_handle: BinaryIO, *, content_type: str | None = None) -> None:
        """Read ``file_handle`` fully and store it at ``key`` with a single PUT."""

        with self._translate_errors("Error uploading file to '%s'", key):
            data = file_handle.read()
            self._get_client().put_object(
                Bucket=self._config.bucket_name,
                Key=key,
                Body=data,
                ContentLength=len(data),
                ContentType=content_type or _guess_content_type(file_handle),
            )

    def create_folder(self, path: str) -> str:
        """Create the zero-byte marker that makes ``path`` show up as a folder."""

        key = folder_key(path)
        with self._translate_errors("Error creating folder '%s'", key):
            self._get_client().put_object(
                Bucket=self._config.bucket_name,
                Key=key,
                Body=b"",
                ContentType=FOLDER_CONTENT_TYPE,
            )
        return key

    def delete_file(self, key: str) -> None:
        with self._translate_errors("Error deleting file '%s'", key):
            self._delete_key(key)

    def delete_folder(self, path: str) -> int:
        """Delete every object under ``path`` and then its marker.

        Objects are deleted concurrently; if one delete fails the error is
        raised once the others finish, and nothing is restored. A missing
        marker is not an error.

        Returns:
            The number of objects removed in the bulk phase.
        """
        prefix = folder_key(path)
        with self._translate_errors("Error deleting folder '%s'", prefix):
            keys = [
                obj["Key"]
                for page in self._iter_pages(prefix)
                for obj in page.get("Contents", [])
                if obj.get("Key")
            ]
            if keys:
                self._delete_keys(keys)
        try:
            self._delete_key(prefix)
        except (BotoCoreError, ClientError) as exc:
            LOGGER.debug("Folder marker '%s' was not deleted: %s", prefix, exc)
        LOGGER.debug("Deleted %d object(s) under '%s'", len(keys), prefix)
        return len(keys)

    def test_connection(self) -> bool:
        """Return whether the bucket root can be listed; never raises."""

        try:
            self.list()
        except ConnectivityError:
            LOGGER.warning("Connection test failed for bucket '%s'", self._config.bucket_name)
            return False
        return True

    def _iter_pages(self, prefix: str, *, delimiter: str | None = None) -> Iterator[dict]:
        client = self._get_client()
        params: dict[str, str] = {"Bucket": self._config.bucket_name}
        if prefix:
            params["Prefix"] = prefix
        if delimiter:
            params["Delimiter"] = delimiter
        while True:
            response = client.list_objects_v2(**params)
            yield response
            token = response.get("NextContinuationToken")
            if not response.get("IsTruncated") or not token:
                return
            params["ContinuationToken"] = token

    def _delete_keys(self, keys: list[str]) -> None:
        workers = min(self._delete_concurrency, len(keys))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(self._delete_key, key) for key in keys]
            for future in futures:
                future.result()

    def _delete_key(self, key: str) -> None:
        self._get_client().delete_object(Bucket=self._config.bucket_name, Key=key)

    def _get_client(self):
        # boto3's default session is not safe to share while creating clients.
        with self._client_lock:
            if self._client is None:
                self._client = self._create_client()
            return self._client

    def _create_client(self):
        config = Config(
            signature_version="s3v4",
            s3={"addressing_style": "path"},
            retries={"total_max_attempts": 1},
        )
        try:
            return self._client_factory(
                "s3",
                endpoint_url=self._config.endpoint_url,
                aws_access_key_id=self._config.access_key_id,
                aws_secret_access_key=self._config.secret_access_key,
                region_name=self._config.region,
                config=config,
            )
        except ValueError as exc:
            LOGGER.exception("Invalid endpoint URL '%s'", self._config.endpoint_url)
            raise ConnectivityError(str(exc)) from exc

    @contextmanager
    def _translate_errors(self, message: str, *args: object) -> Iterator[None]:
        try:
            yield
        except (BotoCoreError, ClientError, OSError) as exc:
            LOGGER.exception(message, *args)
            raise ConnectivityError(str(exc)) from exc
