"""Storage and sync layer for quotesync.

- RecordStore: in-memory collection with an atomically written JSON snapshot
- RemoteGateway: fetch-all / post-one against the remote collection
- merge_records: pure reconciliation of local and remote records
- SyncEngine: cycle orchestration and periodic trigger
"""

from quotesync.types import ChangeReport, PersistenceError, Record, SyncConflict

from .merge import MergeResult, collapse_pending_duplicates, merge_records
from .record_store import RecordStore
from .remote import RemoteGateway
from .sync_engine import SyncEngine

__all__ = [
    "ChangeReport",
    "MergeResult",
    "PersistenceError",
    "Record",
    "RecordStore",
    "RemoteGateway",
    "SyncConflict",
    "SyncEngine",
    "collapse_pending_duplicates",
    "merge_records",
]
