"""
quotesync - Local-first quote collection with remote synchronization.

Records live in a local JSON snapshot and reconcile with a remote
collection on demand or on a timer.
"""

from .core import QuoteSync
from .types import ChangeReport, Record

try:
    from importlib.metadata import version

    __version__ = version("quotesync")
except Exception:
    __version__ = "0.0.0"

__all__ = ["QuoteSync", "Record", "ChangeReport"]
