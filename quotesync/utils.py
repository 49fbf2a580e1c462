"""Filesystem helpers for quotesync."""

import os
from pathlib import Path


def get_quotesync_home() -> Path:
    """Directory holding the snapshot and config.json.

    ``QUOTESYNC_DATA_DIR`` overrides the default ``~/.quotesync``.
    """
    override = os.environ.get("QUOTESYNC_DATA_DIR")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".quotesync"
