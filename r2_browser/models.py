from __future__ import annotations
"""Data models for bucket configuration and folder listings."""
from dataclasses import MISSING, asdict, dataclass, fields
from datetime import datetime
from typing import Any, Optional


@dataclass(frozen=True)
class BucketConfig:
    """Connection settings for a single S3-compatible bucket."""

    access_key_id: str
    secret_access_key: str
    endpoint_url: str
    bucket_name: str
    region: str = "auto"

    def to_dict(self) -> dict[str, str]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Any) -> "BucketConfig":
        """Build a config from stored data.

        Raises:
            ValueError: when ``data`` is not a mapping or a field is missing or not a string.
        """
        if not isinstance(data, dict):
            raise ValueError("Bucket configuration must be an object")
        values: dict[str, str] = {}
        for item in fields(cls):
            value = data.get(item.name, None if item.default is MISSING else item.default)
            if not isinstance(value, str):
                raise ValueError(f"Invalid value for '{item.name}'")
            values[item.name] = value
        return cls(**values)


@dataclass
class Entry:
    """A folder or file one level below a listed prefix."""

    name: str
    size: int = 0
    last_modified: Optional[datetime] = None
    is_folder: bool = False
    download_url: Optional[str] = None
