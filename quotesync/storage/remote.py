"""Remote gateway for quotesync.

Fetch-all and post-one against the remote collection endpoint. Handles the
mapping between the remote representation and internal Records. Zero store
coupling; pure HTTP logic.

Neither operation raises past this boundary: failures are logged, reported
to the status sink, and turned into an empty fetch or a False post.
"""

import logging
import time
from typing import Any, Dict, List, Optional

import httpx

from quotesync.validation import validate_backend_url
from quotesync.status import StatusSink, safe_notify
from quotesync.types import Record, parse_datetime, utc_now

logger = logging.getLogger(__name__)

# Keys under which a wrapped list response may carry the records
WRAPPED_LIST_KEYS = ("records", "data", "items", "quotes")

CONTENT_FIELDS = ("text", "category")


class RemoteGateway:
    """Client for the remote record collection.

    Args:
        base_url: Remote endpoint root; validated before use.
        status_sink: Receives fetch/post error notifications.
        timeout: Per-request timeout in seconds.
        field_map: Internal field name -> remote key (default: same names).
        client: Optional pre-built httpx.AsyncClient (not closed by the gateway).
        records_path: Path appended to base_url for list/create.
    """

    def __init__(
        self,
        base_url: str,
        status_sink: Optional[StatusSink] = None,
        timeout: float = 5.0,
        field_map: Optional[Dict[str, str]] = None,
        client: Optional[httpx.AsyncClient] = None,
        records_path: str = "",
    ):
        validated = validate_backend_url(base_url)
        if validated is None:
            raise ValueError(f"Invalid backend URL: {base_url}")
        self.base_url = validated
        self.records_url = f"{self.base_url}{records_path}"
        self.status_sink = status_sink
        self.timeout = timeout
        self.field_map = {name: name for name in CONTENT_FIELDS}
        self.field_map.update(field_map or {})
        self._client = client
        self._owns_client = client is None
        self.last_fetch_ok = True

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={"Accept": "application/json"},
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "RemoteGateway":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # === Representation Mapping ===

    def to_remote(self, record: Record) -> Dict[str, Any]:
        return {self.field_map[name]: getattr(record, name) for name in CONTENT_FIELDS}

    def from_remote(self, item: Any) -> Optional[Record]:
        """Translate one remote item, or None if it is unusable."""
        if not isinstance(item, dict):
            return None
        record_id = item.get("id")
        if record_id is None or record_id == "" or isinstance(record_id, bool):
            return None

        content = {}
        for name in CONTENT_FIELDS:
            value = item.get(self.field_map[name])
            if value is None or not str(value).strip():
                return None
            content[name] = str(value)

        updated_at = parse_datetime(item.get("updated_at") or item.get("updatedAt"))
        return Record(
            id=record_id,
            text=content["text"],
            category=content["category"],
            updated_at=updated_at or utc_now(),
            synced=True,
            has_timestamp=updated_at is not None,
        )

    def _extract_items(self, payload: Any) -> Optional[List[Any]]:
        if isinstance(payload, list):
            return payload
        if isinstance(payload, dict):
            for key in WRAPPED_LIST_KEYS:
                if isinstance(payload.get(key), list):
                    return payload[key]
        return None

    # === Operations ===

    async def fetch_all(self) -> List[Record]:
        """Fetch every remote record.

        Returns:
            Remote records marked synced, or an empty list when the remote
            could not be read. Check ``last_fetch_ok`` to tell the two apart.
        """
        self.last_fetch_ok = False
        try:
            response = await self.client.get(self.records_url, timeout=self.timeout)
        except httpx.TimeoutException:
            return self._fetch_failed(f"Timed out fetching records from {self.records_url}")
        except httpx.HTTPError as e:
            return self._fetch_failed(f"Could not reach server: {e}")

        if not response.is_success:
            return self._fetch_failed(f"Server returned HTTP {response.status_code} on fetch")

        try:
            payload = response.json()
        except ValueError as e:
            return self._fetch_failed(f"Server sent a malformed record list: {e}")

        items = self._extract_items(payload)
        if items is None:
            return self._fetch_failed("Server response did not contain a record list")

        records = []
        skipped = 0
        for item in items:
            record = self.from_remote(item)
            if record is None:
                skipped += 1
                continue
            records.append(record)
        if skipped:
            logger.warning(f"Skipped {skipped} malformed remote records")

        self.last_fetch_ok = True
        logger.debug(f"Fetched {len(records)} records from {self.records_url}")
        return records

    def _fetch_failed(self, message: str) -> List[Record]:
        logger.warning(message)
        safe_notify(self.status_sink, message, is_error=True)
        return []

    async def post_one(self, record: Record) -> bool:
        """Create one record on the remote.

        A record that is already synced is never re-posted. On success the
        record is updated in place with the remote id.

        Returns:
            True if the record is synced afterwards, False to retry later.
        """
        if record.synced:
            return True

        try:
            response = await self.client.post(
                self.records_url, json=self.to_remote(record), timeout=self.timeout
            )
            if not response.is_success:
                return self._post_failed(record, f"HTTP {response.status_code}")
            payload = response.json()
        except httpx.TimeoutException:
            return self._post_failed(record, "request timed out")
        except httpx.HTTPError as e:
            return self._post_failed(record, str(e) or type(e).__name__)
        except ValueError as e:
            return self._post_failed(record, f"malformed response: {e}")

        remote_id = payload.get("id") if isinstance(payload, dict) else None
        if remote_id is None or remote_id == "":
            return self._post_failed(record, "response carried no id")

        logger.debug(f"Posted {record.id} -> {remote_id}")
        record.id = remote_id
        record.synced = True
        record.updated_at = utc_now()
        return True

    def _post_failed(self, record: Record, reason: str) -> bool:
        snippet = record.text[:40] + "..." if len(record.text) > 40 else record.text
        message = f"Could not post '{snippet}' ({reason}); will retry on next sync"
        logger.warning(message)
        safe_notify(self.status_sink, message, is_error=True)
        return False

    async def health_check(self) -> Dict[str, Any]:
        """Test remote connectivity.

        Returns:
            Dict with keys:
            - 'healthy': bool indicating if the remote answered with 2xx
            - 'latency_ms': response time in milliseconds (if healthy)
            - 'error': error message (if not healthy)
        """
        start = time.monotonic()
        try:
            response = await self.client.get(self.records_url, timeout=self.timeout)
        except httpx.HTTPError as e:
            logger.debug("Health check failed: %s", e)
            return {"healthy": False, "error": f"Connection failed: {e}"}

        if not response.is_success:
            return {"healthy": False, "error": f"HTTP {response.status_code}"}
        return {
            "healthy": True,
            "latency_ms": round((time.monotonic() - start) * 1000, 2),
        }
