"""
Pytest fixtures and test configuration for quotesync tests.
"""

import asyncio
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

import httpx
import pytest

from quotesync.config import SyncConfig
from quotesync.status import CollectingStatusSink
from quotesync.storage import RecordStore, RemoteGateway, SyncEngine
from quotesync.types import Record

BASE_URL = "https://quotes.example.com"


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep tests away from the real ~/.quotesync and any exported settings."""
    for name in (
        "QUOTESYNC_BACKEND_URL",
        "QUOTESYNC_SYNC_INTERVAL",
        "QUOTESYNC_TIMEOUT",
        "QUOTESYNC_CONFLICT_POLICY",
    ):
        monkeypatch.delenv(name, raising=False)
    home = tmp_path / "quotesync-home"
    monkeypatch.setenv("QUOTESYNC_DATA_DIR", str(home))
    return home


class FakeRemote:
    """In-memory remote collection served through httpx.MockTransport.

    GET returns every item; POST stores the body under the next id and
    echoes it back. Failure knobs and a per-request delay let tests
    simulate outages and slow servers. ``max_active`` records the peak
    number of requests in flight at once.
    """

    def __init__(self):
        self.items: List[Dict[str, Any]] = []
        self.next_id = 100
        self.fetch_status = 200
        self.post_status = 201
        self.fetch_error: Exception = None
        self.post_error: Exception = None
        self.fetch_body: Any = None
        self.post_body: Any = None
        self.delay = 0.0
        self.requests: List[httpx.Request] = []
        self.active = 0
        self.max_active = 0

    def add(self, record_id, text, category, updated_at=None):
        item = {"id": record_id, "text": text, "category": category}
        if updated_at:
            item["updated_at"] = updated_at
        self.items.append(item)
        return item

    @property
    def gets(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == "GET"]

    @property
    def posts(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == "POST"]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if request.method == "GET":
                return self._handle_get()
            if request.method == "POST":
                return self._handle_post(request)
            return httpx.Response(405)
        finally:
            self.active -= 1

    def _handle_get(self) -> httpx.Response:
        if self.fetch_error is not None:
            raise self.fetch_error
        if self.fetch_status != 200:
            return httpx.Response(self.fetch_status, json={"error": "unavailable"})
        if self.fetch_body is not None:
            return httpx.Response(200, content=self.fetch_body)
        return httpx.Response(200, json=list(self.items))

    def _handle_post(self, request: httpx.Request) -> httpx.Response:
        if self.post_error is not None:
            raise self.post_error
        if self.post_status >= 400:
            return httpx.Response(self.post_status, json={"error": "rejected"})
        if self.post_body is not None:
            return httpx.Response(self.post_status, content=self.post_body)
        body = json.loads(request.content)
        item = {"id": self.next_id, **body}
        self.next_id += 1
        self.items.append(item)
        return httpx.Response(self.post_status, json=item)


@pytest.fixture
def remote():
    return FakeRemote()


@pytest.fixture
def sink():
    return CollectingStatusSink()


@pytest.fixture
def http_client(remote):
    return httpx.AsyncClient(transport=httpx.MockTransport(remote.handler))


@pytest.fixture
def gateway(http_client, sink):
    return RemoteGateway(BASE_URL, status_sink=sink, client=http_client, records_path="/quotes")


@pytest.fixture
def snapshot_path(tmp_path) -> Path:
    return tmp_path / "data" / "records.json"


@pytest.fixture
def store(snapshot_path, sink):
    """Empty store with no snapshot on disk yet."""
    s = RecordStore(snapshot_path, status_sink=sink, seed_defaults=False)
    s.load()
    return s


@pytest.fixture
def engine(store, gateway, sink):
    return SyncEngine(store, gateway, status_sink=sink)


@pytest.fixture
def config(tmp_path):
    return SyncConfig(data_dir=tmp_path / "data", seed_defaults=False).validate()


@pytest.fixture
def make_record():
    """Factory for records with a fixed default timestamp."""

    def factory(record_id, text="A", category="X", synced=True, updated_at=None) -> Record:
        return Record(
            id=record_id,
            text=text,
            category=category,
            updated_at=updated_at or datetime(2024, 1, 1, tzinfo=timezone.utc),
            synced=synced,
        )

    return factory


@pytest.fixture
def write_snapshot(snapshot_path):
    """Write raw snapshot entries to the store path."""

    def writer(entries: List[Dict[str, Any]], path: Path = None) -> Path:
        target = path or snapshot_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps(entries), encoding="utf-8")
        return target

    return writer
