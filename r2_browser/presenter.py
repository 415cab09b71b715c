from __future__ import annotations
"""View-agnostic presenter that wraps controller operations."""
from dataclasses import replace
import logging
import threading
from typing import Callable, TypeVar

from .controller import BrowserController
from .credentials import CredentialStore
from .models import BucketConfig, Entry
from .services import ConnectivityError
from .settings import AppSettings, SettingsStorage
from .ui_utils import PackageInfo, load_package_info


T = TypeVar("T")
DispatchFn = Callable[[Callable[[], None]], None]
ErrorFn = Callable[[str], None]
DoneFn = Callable[[], None]

LOGGER = logging.getLogger(__name__)


def _format_error(exc: Exception) -> str:
    return str(exc) or exc.__class__.__name__


class BrowserPresenter:
    """Runs bucket operations in the background and returns results via callbacks."""

    def __init__(
        self,
        *,
        controller: BrowserController | None = None,
        settings_storage: SettingsStorage | None = None,
        dispatch: DispatchFn | None = None,
        run_in_background: Callable[[Callable[[], None]], None] | None = None,
    ) -> None:
        self._settings_storage = settings_storage or SettingsStorage()
        self._settings = self._settings_storage.load()
        if controller is None:
            initial_prefix = self._settings.last_prefix if self._settings.remember_last_prefix else ""
            controller = BrowserController(
                CredentialStore(delete_concurrency=self._settings.delete_concurrency),
                initial_prefix=initial_prefix,
            )
        self._controller = controller
        self._dispatch = dispatch or (lambda func: func())
        self._run_in_background = run_in_background or (
            lambda task: threading.Thread(target=task, daemon=True).start()
        )
        self._package_info = load_package_info()

    @property
    def settings(self) -> AppSettings:
        return replace(self._settings)

    @property
    def package_info(self) -> PackageInfo:
        return self._package_info

    @property
    def is_connected(self) -> bool:
        return self._controller.is_connected

    @property
    def config(self) -> BucketConfig | None:
        return self._controller.config

    @property
    def current_prefix(self) -> str:
        return self._controller.current_prefix

    def save_settings(self, settings: AppSettings) -> None:
        """Persist ``settings`` and apply them to the running session."""

        if not settings.remember_last_prefix:
            settings = replace(settings, last_prefix="")
        self._settings = settings
        self._settings_storage.save(settings)
        self._controller.set_delete_concurrency(settings.delete_concurrency)
        self._remember_prefix()

    def connect(
        self,
        *,
        config: BucketConfig,
        on_success: Callable[[bool], None],
        on_error: ErrorFn,
        on_done: DoneFn | None = None,
    ) -> None:
        LOGGER.debug("Connecting to bucket '%s' at %s", config.bucket_name, config.endpoint_url)
        self._submit(
            f"connect to bucket '{config.bucket_name}'",
            lambda: self._controller.connect(config),
            on_success,
            on_error,
            on_done,
        )

    def disconnect(self) -> None:
        self._controller.disconnect()
        self._remember_prefix()

    def list_entries(
        self,
        *,
        on_success: Callable[[list[Entry]], None],
        on_error: ErrorFn,
        on_done: DoneFn | None = None,
    ) -> None:
        prefix = self._controller.current_prefix
        LOGGER.debug("Listing entries under '%s'", prefix)
        self._remember_prefix()
        self._submit(f"list '{prefix}'", self._controller.list_entries, on_success, on_error, on_done)

    def open_folder(self, name: str) -> str:
        return self._controller.open_folder(name)

    def go_up(self) -> str:
        return self._controller.go_up()

    def go_to(self, prefix: str) -> str:
        return self._controller.go_to(prefix)

    def upload_file(
        self,
        *,
        source_path: str,
        name: str | None = None,
        on_success: Callable[[str], None],
        on_error: ErrorFn,
        on_done: DoneFn | None = None,
    ) -> None:
        prefix = self._controller.current_prefix
        self._submit(
            f"upload '{source_path}'",
            lambda: self._controller.upload_file(source_path, name=name, prefix=prefix),
            on_success,
            on_error,
            on_done,
        )

    def create_folder(
        self,
        *,
        name: str,
        on_success: Callable[[str], None],
        on_error: ErrorFn,
        on_done: DoneFn | None = None,
    ) -> None:
        prefix = self._controller.current_prefix
        self._submit(
            f"create folder '{name}'",
            lambda: self._controller.create_folder(name, prefix=prefix),
            on_success,
            on_error,
            on_done,
        )

    def delete_entry(
        self,
        *,
        entry: Entry,
        on_success: Callable[[None], None],
        on_error: ErrorFn,
        on_done: DoneFn | None = None,
    ) -> None:
        prefix = self._controller.current_prefix
        self._submit(
            f"delete '{prefix}{entry.name}'",
            lambda: self._controller.delete_entry(entry, prefix=prefix),
            on_success,
            on_error,
            on_done,
        )

    def download_url(
        self,
        *,
        entry: Entry,
        on_success: Callable[[str], None],
        on_error: ErrorFn,
    ) -> None:
        prefix = self._controller.current_prefix
        self._submit(
            f"sign download URL for '{prefix}{entry.name}'",
            lambda: self._controller.download_url(entry, prefix=prefix),
            on_success,
            on_error,
        )

    def _submit(
        self,
        description: str,
        operation: Callable[[], T],
        on_success: Callable[[T], None],
        on_error: ErrorFn,
        on_done: DoneFn | None = None,
    ) -> None:
        def task() -> None:
            try:
                result = operation()
            except ConnectivityError as exc:
                LOGGER.error("Failed to %s: %s", description, exc)
                message = _format_error(exc)
                self._dispatch(lambda: on_error(message))
            except Exception as exc:
                LOGGER.exception("Unexpected error while trying to %s", description)
                message = _format_error(exc)
                self._dispatch(lambda: on_error(message))
            else:
                self._dispatch(lambda: on_success(result))
            finally:
                if on_done:
                    self._dispatch(on_done)

        self._run_in_background(task)

    def _remember_prefix(self) -> None:
        if not self._settings.remember_last_prefix:
            return
        prefix = self._controller.current_prefix
        if prefix == self._settings.last_prefix:
            return
        self._settings = replace(self._settings, last_prefix=prefix)
        self._settings_storage.save(self._settings)
