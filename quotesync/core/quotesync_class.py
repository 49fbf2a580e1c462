"""QuoteSync class: main interface for record operations.

Wires configuration, the record store, the remote gateway, and the sync
engine together, and exposes the operations the CLI and other
collaborators use.
"""

import logging
import random
from pathlib import Path
from typing import Any, Dict, List, Optional

from quotesync.config import SyncConfig, load_config
from quotesync.core.sync import SyncMixin
from quotesync.validation import ValidationMixin
from quotesync.importers import JsonImporter, export_records
from quotesync.status import LoggingStatusSink, StatusSink
from quotesync.storage import RecordStore, RemoteGateway, SyncEngine
from quotesync.types import Record

logger = logging.getLogger(__name__)


class QuoteSync(SyncMixin, ValidationMixin):
    """Local-first record collection with remote synchronization.

    Args:
        config: Resolved settings. If None, loaded from file and environment.
        status_sink: Receives progress and error notifications.
        gateway: Optional remote gateway. If None, built from config.backend_url.
        store: Optional record store. If None, built from config.snapshot_path.
    """

    def __init__(
        self,
        config: Optional[SyncConfig] = None,
        status_sink: Optional[StatusSink] = None,
        gateway: Optional[RemoteGateway] = None,
        store: Optional[RecordStore] = None,
    ):
        self.config = config or load_config()
        self.status_sink = status_sink or LoggingStatusSink()

        self._store = store or RecordStore(
            self.config.snapshot_path,
            status_sink=self.status_sink,
            seed_defaults=self.config.seed_defaults,
        )
        self._store.load()

        if gateway is None and self.config.backend_url:
            gateway = RemoteGateway(
                self.config.backend_url,
                status_sink=self.status_sink,
                timeout=self.config.request_timeout,
                field_map=self.config.field_map,
                records_path=self.config.records_path,
            )
        self._gateway = gateway
        self._engine = (
            SyncEngine(
                self._store,
                gateway,
                status_sink=self.status_sink,
                conflict_policy=self.config.conflict_policy,
            )
            if gateway is not None
            else None
        )

    @property
    def store(self) -> RecordStore:
        return self._store

    @property
    def engine(self) -> Optional[SyncEngine]:
        return self._engine

    @property
    def records(self) -> List[Record]:
        return self._store.records

    # === Writes ===

    def add(self, text: str, category: str, sync: bool = False) -> Record:
        """Add a record and save it locally.

        Args:
            text: Quote text
            category: Category (author) of the quote
            sync: Post it to the remote right away

        Raises:
            ValueError: If the content is invalid.
            PersistenceError: If the snapshot cannot be written.
        """
        text, category = self._validate_content(text, category)
        record = self._store.add(text, category)
        self._store.persist()
        if sync and self._engine is not None:
            self.push_pending()
        return record

    def import_file(
        self, path: str, dry_run: bool = False, sync: bool = False
    ) -> Dict[str, Any]:
        """Import records from a JSON file.

        Returns:
            Dict with imported/skipped counts and per-entry errors
        """
        result = JsonImporter(path).import_to(self._store, dry_run=dry_run)
        if result["imported"] and not dry_run:
            self._store.persist()
            if sync and self._engine is not None:
                result["sync"] = self.push_pending()
        return result

    def export(self, path: str, keyword: Optional[str] = None) -> int:
        """Export records (optionally filtered) to a JSON file."""
        count = export_records(self.filter(keyword), path)
        logger.info(f"Exported {count} records to {Path(path).expanduser()}")
        return count

    # === Views ===

    def filter(self, keyword: Optional[str] = None) -> List[Record]:
        return self._store.filter(self._validate_keyword(keyword))

    def random_record(
        self, keyword: Optional[str] = None, rng: Optional[random.Random] = None
    ) -> Optional[Record]:
        return self._store.random_record(self._validate_keyword(keyword), rng=rng)

    def categories(self) -> List[str]:
        return self._store.categories()
