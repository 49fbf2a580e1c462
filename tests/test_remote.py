"""Tests for quotesync.storage.remote: RemoteGateway against a mock transport."""

import json

import httpx
import pytest

from quotesync.storage import RemoteGateway
from quotesync.types import Record, new_local_id

BASE_URL = "https://quotes.example.com"


def _pending(text="A", category="X"):
    return Record(id=new_local_id(), text=text, category=category, synced=False)


class TestConstruction:
    def test_rejects_invalid_url(self):
        with pytest.raises(ValueError, match="Invalid backend URL"):
            RemoteGateway("ftp://quotes.example.com")

    def test_rejects_plain_http_for_remote_hosts(self):
        with pytest.raises(ValueError):
            RemoteGateway("http://quotes.example.com")

    def test_allows_plain_http_for_localhost(self):
        gateway = RemoteGateway("http://localhost:8000/")
        assert gateway.base_url == "http://localhost:8000"

    def test_records_path_is_appended(self):
        gateway = RemoteGateway(BASE_URL + "/", records_path="/api/quotes")
        assert gateway.records_url == BASE_URL + "/api/quotes"

    @pytest.mark.asyncio
    async def test_aclose_leaves_injected_client_open(self, gateway, http_client):
        await gateway.aclose()
        assert not http_client.is_closed


# ============================================================================
# fetch_all
# ============================================================================


class TestFetchAll:
    @pytest.mark.asyncio
    async def test_returns_synced_records(self, gateway, remote):
        remote.add(99, "A", "X", updated_at="2024-05-01T10:00:00Z")
        remote.add(100, "B", "Y")

        records = await gateway.fetch_all()

        assert [(r.id, r.text, r.category) for r in records] == [(99, "A", "X"), (100, "B", "Y")]
        assert all(r.synced for r in records)
        assert records[0].updated_at.year == 2024
        assert records[0].has_timestamp is True
        assert records[1].has_timestamp is False
        assert gateway.last_fetch_ok
        assert remote.gets[0].url.path == "/quotes"

    @pytest.mark.asyncio
    async def test_accepts_wrapped_list(self, gateway, remote):
        remote.fetch_body = json.dumps({"data": [{"id": 1, "text": "A", "category": "X"}]})
        records = await gateway.fetch_all()
        assert [r.id for r in records] == [1]

    @pytest.mark.asyncio
    async def test_skips_malformed_items(self, gateway, remote):
        remote.fetch_body = json.dumps(
            [
                {"id": 1, "text": "A", "category": "X"},
                {"text": "no id", "category": "X"},
                {"id": 2, "text": "", "category": "X"},
                {"id": True, "text": "bool id", "category": "X"},
                "not an object",
            ]
        )
        records = await gateway.fetch_all()
        assert [r.id for r in records] == [1]
        assert gateway.last_fetch_ok

    @pytest.mark.asyncio
    async def test_http_error_status_yields_empty_and_notifies(self, gateway, remote, sink):
        remote.fetch_status = 503

        records = await gateway.fetch_all()

        assert records == []
        assert not gateway.last_fetch_ok
        assert sink.errors == ["Server returned HTTP 503 on fetch"]

    @pytest.mark.asyncio
    async def test_malformed_body_yields_empty(self, gateway, remote, sink):
        remote.fetch_body = b"<html>oops</html>"
        assert await gateway.fetch_all() == []
        assert not gateway.last_fetch_ok
        assert "malformed" in sink.errors[0]

    @pytest.mark.asyncio
    async def test_body_without_list_yields_empty(self, gateway, remote, sink):
        remote.fetch_body = json.dumps({"status": "ok"})
        assert await gateway.fetch_all() == []
        assert "did not contain a record list" in sink.errors[0]

    @pytest.mark.asyncio
    async def test_connection_error_yields_empty(self, gateway, remote, sink):
        remote.fetch_error = httpx.ConnectError("connection refused")
        assert await gateway.fetch_all() == []
        assert not gateway.last_fetch_ok
        assert sink.errors[0].startswith("Could not reach server")

    @pytest.mark.asyncio
    async def test_timeout_yields_empty(self, gateway, remote, sink):
        remote.fetch_error = httpx.ReadTimeout("too slow")
        assert await gateway.fetch_all() == []
        assert sink.errors[0].startswith("Timed out")

    @pytest.mark.asyncio
    async def test_success_after_failure_resets_flag(self, gateway, remote):
        remote.fetch_status = 500
        await gateway.fetch_all()
        remote.fetch_status = 200
        await gateway.fetch_all()
        assert gateway.last_fetch_ok


# ============================================================================
# post_one
# ============================================================================


class TestPostOne:
    @pytest.mark.asyncio
    async def test_synced_record_is_never_reposted(self, gateway, remote):
        record = Record(id=7, text="A", category="X", synced=True)

        assert await gateway.post_one(record) is True
        assert remote.requests == []

    @pytest.mark.asyncio
    async def test_success_adopts_remote_id(self, gateway, remote):
        remote.next_id = 55
        record = _pending("C", "Z")
        before = record.updated_at

        assert await gateway.post_one(record) is True

        assert record.id == 55
        assert record.synced is True
        assert record.updated_at >= before
        assert json.loads(remote.posts[0].content) == {"text": "C", "category": "Z"}

    @pytest.mark.asyncio
    async def test_http_error_keeps_record_pending(self, gateway, remote, sink):
        remote.post_status = 500
        record = _pending()
        original_id = record.id

        assert await gateway.post_one(record) is False

        assert record.id == original_id
        assert record.synced is False
        assert sink.errors == ["Could not post 'A' (HTTP 500); will retry on next sync"]

    @pytest.mark.asyncio
    async def test_network_error_keeps_record_pending(self, gateway, remote):
        remote.post_error = httpx.ConnectError("connection refused")
        record = _pending()
        assert await gateway.post_one(record) is False
        assert not record.synced

    @pytest.mark.asyncio
    async def test_response_without_id_is_a_failure(self, gateway, remote, sink):
        remote.post_body = json.dumps({"ok": True})
        record = _pending()
        assert await gateway.post_one(record) is False
        assert "response carried no id" in sink.errors[0]

    @pytest.mark.asyncio
    async def test_malformed_response_is_a_failure(self, gateway, remote):
        remote.post_body = b"created!"
        assert await gateway.post_one(_pending()) is False


class TestFieldMap:
    @pytest.mark.asyncio
    async def test_maps_fields_both_ways(self, http_client, remote):
        gateway = RemoteGateway(
            BASE_URL,
            client=http_client,
            field_map={"text": "title", "category": "body"},
        )
        remote.fetch_body = json.dumps([{"id": 1, "title": "A", "body": "X"}])

        (fetched,) = await gateway.fetch_all()
        assert fetched.content == ("A", "X")

        remote.post_body = json.dumps({"id": 2})
        await gateway.post_one(_pending("B", "Y"))
        assert json.loads(remote.posts[0].content) == {"title": "B", "body": "Y"}


class TestHealthCheck:
    @pytest.mark.asyncio
    async def test_healthy(self, gateway):
        result = await gateway.health_check()
        assert result["healthy"] is True
        assert result["latency_ms"] >= 0

    @pytest.mark.asyncio
    async def test_unhealthy_status(self, gateway, remote):
        remote.fetch_status = 502
        result = await gateway.health_check()
        assert result == {"healthy": False, "error": "HTTP 502"}

    @pytest.mark.asyncio
    async def test_unreachable(self, gateway, remote):
        remote.fetch_error = httpx.ConnectError("connection refused")
        result = await gateway.health_check()
        assert result["healthy"] is False
        assert "Connection failed" in result["error"]
