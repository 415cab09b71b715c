from __future__ import annotations
"""Application settings persistence helpers."""

from dataclasses import dataclass
import json
import logging
from pathlib import Path

from .services import DEFAULT_DELETE_CONCURRENCY

LOGGER = logging.getLogger(__name__)


@dataclass
class AppSettings:
    """Simple container for persistent app settings."""

    delete_concurrency: int = DEFAULT_DELETE_CONCURRENCY
    remember_last_prefix: bool = False
    last_prefix: str = ""


class SettingsStorage:
    """JSON-backed persistence for :class:`AppSettings`."""

    def __init__(self, storage_path: str | Path | None = None):
        if storage_path is None:
            storage_path = Path.home() / ".r2_browser_settings.json"
        self._path = Path(storage_path)

    def load(self) -> AppSettings:
        if not self._path.exists():
            return AppSettings()
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return AppSettings()
        if not isinstance(data, dict):
            return AppSettings()

        concurrency = data.get("delete_concurrency", AppSettings.delete_concurrency)
        try:
            concurrency_value = int(concurrency)
        except (TypeError, ValueError):
            concurrency_value = AppSettings.delete_concurrency
        if concurrency_value <= 0:
            concurrency_value = AppSettings.delete_concurrency

        remember = data.get("remember_last_prefix")
        last_prefix = data.get("last_prefix")
        return AppSettings(
            delete_concurrency=concurrency_value,
            remember_last_prefix=remember if isinstance(remember, bool) else False,
            last_prefix=last_prefix if isinstance(last_prefix, str) else "",
        )

    def save(self, settings: AppSettings) -> None:
        payload = {
            "delete_concurrency": max(int(settings.delete_concurrency), 1),
            "remember_last_prefix": bool(settings.remember_last_prefix),
            "last_prefix": settings.last_prefix or "",
        }
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError:
            # Persist best-effort; ignore filesystem issues.
            LOGGER.debug("Unable to write settings to '%s'", self._path)
