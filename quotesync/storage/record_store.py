"""Record store for quotesync.

Owns the in-memory record collection and its persisted JSON snapshot.
Pure data access: no network. The sync engine replaces the collection
after a merge and asks the store to persist only when it changed.
"""

import json
import logging
import os
import random
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from quotesync.status import StatusSink, safe_notify
from quotesync.types import PersistenceError, Record, RecordId, new_local_id, utc_now

from .defaults import default_records

logger = logging.getLogger(__name__)


class RecordStore:
    """In-memory record collection backed by an atomically written snapshot.

    Args:
        path: Location of the JSON snapshot.
        status_sink: Receives save notifications and persistence errors.
        seed_defaults: Seed the default quotes when no snapshot exists.
    """

    def __init__(
        self,
        path: Path,
        status_sink: Optional[StatusSink] = None,
        seed_defaults: bool = True,
    ):
        self.path = Path(path).expanduser()
        self.status_sink = status_sink
        self.seed_defaults = seed_defaults
        self._records: List[Record] = []
        self._persisted: Optional[List[Dict[str, Any]]] = None
        self._lock = threading.RLock()

    # === Loading and Persistence ===

    def load(self) -> List[Record]:
        """Load records from the snapshot, or seed defaults when there is none.

        Returns:
            Copy of the loaded collection

        Raises:
            PersistenceError: If the snapshot exists but cannot be read.
        """
        if not self.path.exists():
            records = default_records() if self.seed_defaults else []
            logger.info(f"No snapshot at {self.path}, starting with {len(records)} seed records")
            with self._lock:
                self._records = records
                self._persisted = None
            return self.records

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"Cannot read snapshot {self.path}: {e}", self.path) from e

        if not isinstance(raw, list):
            raise PersistenceError(f"Snapshot {self.path} must be a JSON array", self.path)

        records = []
        for index, entry in enumerate(raw):
            if not isinstance(entry, dict):
                logger.warning("Skipping snapshot entry %d: not an object", index)
                continue
            record = Record.from_dict(entry)
            if not record.text or not record.category:
                logger.warning("Skipping snapshot entry %d: missing content", index)
                continue
            records.append(record)

        with self._lock:
            self._records = records
            self._persisted = self.snapshot()
        logger.debug(f"Loaded {len(records)} records from {self.path}")
        return self.records

    def persist(self, records: Optional[List[Record]] = None) -> None:
        """Overwrite the snapshot with the full collection.

        The file is replaced atomically, so a later load() sees either the
        old snapshot or the new one, never a partial write.

        Raises:
            PersistenceError: If the snapshot cannot be written.
        """
        with self._lock:
            if records is not None:
                self._records = list(records)
            snapshot = self.snapshot()

        try:
            self._write_atomic(snapshot)
        except OSError as e:
            message = f"Failed to save records to {self.path}: {e}"
            logger.error(message, exc_info=True)
            safe_notify(self.status_sink, message, is_error=True)
            raise PersistenceError(message, self.path) from e

        with self._lock:
            self._persisted = snapshot
        safe_notify(self.status_sink, f"Saved {len(snapshot)} records")

    def persist_if_changed(self) -> bool:
        """Persist only when the collection differs from the last saved snapshot."""
        if not self.is_dirty():
            logger.debug("Snapshot unchanged, skipping write")
            return False
        self.persist()
        return True

    def _write_atomic(self, snapshot: List[Dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(snapshot, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise

    # === Collection Access ===

    @property
    def lock(self) -> threading.RLock:
        """Held while the collection is read and replaced as one step."""
        return self._lock

    @property
    def records(self) -> List[Record]:
        """Shallow copy of the collection; records themselves are shared."""
        with self._lock:
            return list(self._records)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def snapshot(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [record.to_dict() for record in self._records]

    def is_dirty(self) -> bool:
        """True when the collection differs from what is on disk."""
        return self.snapshot() != self._persisted

    def get(self, record_id: RecordId) -> Optional[Record]:
        with self._lock:
            for record in self._records:
                if record.id == record_id:
                    return record
        return None

    def unsynced(self) -> List[Record]:
        with self._lock:
            return [record for record in self._records if not record.synced]

    def replace_all(self, records: List[Record]) -> None:
        with self._lock:
            self._records = list(records)

    def add(self, text: str, category: str) -> Record:
        """Append a new unsynced record with a local-pending id.

        Does not persist or post; the caller decides when to do that.
        """
        record = Record(
            id=new_local_id(), text=text, category=category, updated_at=utc_now(), synced=False
        )
        with self._lock:
            self._records.append(record)
        logger.debug(f"Added record {record.id}")
        return record

    def find_content(self, text: str, category: str) -> Optional[Record]:
        with self._lock:
            for record in self._records:
                if record.content == (text, category):
                    return record
        return None

    # === Views ===

    def filter(self, keyword: Optional[str] = None) -> List[Record]:
        """Records whose text or category contains the keyword, case-insensitively.

        A blank keyword matches everything.
        """
        if not keyword or not keyword.strip():
            return self.records
        needle = keyword.strip().lower()
        return [
            record
            for record in self.records
            if needle in record.text.lower() or needle in record.category.lower()
        ]

    def random_record(
        self, keyword: Optional[str] = None, rng: Optional[random.Random] = None
    ) -> Optional[Record]:
        candidates = self.filter(keyword)
        if not candidates:
            return None
        return (rng or random).choice(candidates)

    def categories(self) -> List[str]:
        return sorted({record.category for record in self.records})
