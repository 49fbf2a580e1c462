"""Configuration loading for quotesync.

Settings are layered, later sources winning:

1. Built-in defaults
2. <home>/config.json
3. Environment variables (QUOTESYNC_BACKEND_URL, QUOTESYNC_SYNC_INTERVAL,
   QUOTESYNC_TIMEOUT, QUOTESYNC_CONFLICT_POLICY)
4. Explicit overrides passed by the caller (CLI flags)
"""

import json
import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

from quotesync.validation import sanitize_number, validate_backend_url
from quotesync.types import VALID_CONFLICT_POLICIES, ConflictPolicy
from quotesync.utils import get_quotesync_home

logger = logging.getLogger(__name__)

DEFAULT_SYNC_INTERVAL = 60.0
DEFAULT_REQUEST_TIMEOUT = 5.0

ENV_OVERRIDES = {
    "QUOTESYNC_BACKEND_URL": "backend_url",
    "QUOTESYNC_SYNC_INTERVAL": "sync_interval",
    "QUOTESYNC_TIMEOUT": "request_timeout",
    "QUOTESYNC_CONFLICT_POLICY": "conflict_policy",
}


@dataclass
class SyncConfig:
    """Resolved settings for one quotesync instance."""

    backend_url: Optional[str] = None
    data_dir: Path = field(default_factory=get_quotesync_home)
    snapshot_name: str = "records.json"
    sync_interval: float = DEFAULT_SYNC_INTERVAL  # seconds between periodic cycles
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT  # per fetch/post call
    conflict_policy: str = ConflictPolicy.KEEP_LOCAL.value
    field_map: Dict[str, str] = field(default_factory=dict)  # internal -> remote key
    records_path: str = ""  # appended to backend_url for list/create
    seed_defaults: bool = True

    @property
    def snapshot_path(self) -> Path:
        return Path(self.data_dir) / self.snapshot_name

    def validate(self) -> "SyncConfig":
        """Check values, normalizing in place. Raises ValueError."""
        if self.backend_url:
            validated = validate_backend_url(self.backend_url)
            if validated is None:
                raise ValueError(f"Invalid backend URL: {self.backend_url}")
            self.backend_url = validated
        self.sync_interval = sanitize_number(self.sync_interval, "sync_interval", min_val=0.1)
        self.request_timeout = sanitize_number(
            self.request_timeout, "request_timeout", min_val=0.1, max_val=300
        )
        if self.conflict_policy not in VALID_CONFLICT_POLICIES:
            raise ValueError(
                f"conflict_policy must be one of {sorted(VALID_CONFLICT_POLICIES)}, "
                f"got {self.conflict_policy!r}"
            )
        if not isinstance(self.field_map, dict):
            raise ValueError("field_map must be an object")
        unknown = set(self.field_map) - {"text", "category"}
        if unknown:
            raise ValueError(f"field_map has unknown fields: {sorted(unknown)}")
        self.data_dir = Path(self.data_dir).expanduser()
        return self


def _read_config_file(path: Path) -> Dict[str, Any]:
    """Read config.json, ignoring a missing or malformed file."""
    if not path.exists():
        return {}
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(f"Ignoring unreadable config file {path}: {e}")
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Ignoring config file {path}: expected a JSON object")
        return {}
    return data


def load_config(
    overrides: Optional[Dict[str, Any]] = None, home: Optional[Path] = None
) -> SyncConfig:
    """Build a validated SyncConfig from file, environment, and overrides.

    Args:
        overrides: Explicit values (None entries are ignored).
        home: Directory to read config.json from (default: quotesync home).

    Returns:
        Validated SyncConfig

    Raises:
        ValueError: If a resolved value is invalid.
    """
    overrides = {k: v for k, v in (overrides or {}).items() if v is not None}
    home = Path(overrides.get("data_dir") or home or get_quotesync_home()).expanduser()

    known = {f.name for f in fields(SyncConfig)}
    values: Dict[str, Any] = {"data_dir": home}

    for key, value in _read_config_file(home / "config.json").items():
        if key in known:
            values[key] = value
        else:
            logger.debug("Unknown config key %s ignored", key)

    for env_name, key in ENV_OVERRIDES.items():
        env_value = os.environ.get(env_name)
        if env_value:
            values[key] = env_value

    values.update({k: v for k, v in overrides.items() if k in known})
    if values.get("data_dir") is not None:
        values["data_dir"] = Path(values["data_dir"])

    return SyncConfig(**values).validate()
