"""Synchronization operations for QuoteSync."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from quotesync.types import ChangeReport

logger = logging.getLogger(__name__)


class SyncMixin:
    """Blocking sync entry points over the async SyncEngine."""

    def _run(self, operation: Callable[[], Awaitable[Any]]) -> Any:
        """Run an engine coroutine on a fresh event loop.

        The gateway's HTTP client is bound to the loop that created it, so
        it is closed before the loop goes away.
        """

        async def runner():
            try:
                return await operation()
            finally:
                await self._gateway.aclose()

        return asyncio.run(runner())

    def _require_engine(self) -> Optional[Dict[str, Any]]:
        if self._engine is None:
            logger.debug("No backend URL configured, skipping sync")
            return {
                "attempted": False,
                "errors": ["No backend URL configured (set QUOTESYNC_BACKEND_URL)"],
                "success": False,
            }
        return None

    @staticmethod
    def _report_to_dict(report: Optional[ChangeReport]) -> Dict[str, Any]:
        if report is None:
            return {"attempted": False, "coalesced": True, "errors": [], "success": True}
        result = report.to_dict()
        result["attempted"] = True
        result["success"] = report.success
        return result

    def sync(self) -> Dict[str, Any]:
        """Run one full sync cycle against the remote.

        Returns:
            Sync results including counts and any errors
        """
        unavailable = self._require_engine()
        if unavailable:
            return unavailable
        report = self._run(self._engine.run_cycle)
        return self._report_to_dict(report)

    def push_pending(self) -> Dict[str, Any]:
        """Post unsynced records without fetching first."""
        unavailable = self._require_engine()
        if unavailable:
            return unavailable
        report = self._run(self._engine.push_pending)
        return self._report_to_dict(report)

    def get_sync_status(self, check_connection: bool = False) -> Dict[str, Any]:
        """Get current sync status.

        Args:
            check_connection: Also probe the remote (one network request)

        Returns:
            Sync status including pending count and, optionally, connectivity
        """
        last_sync = self._engine.last_sync_time if self._engine else None
        status = {
            "backend_url": self.config.backend_url,
            "total": len(self._store),
            "pending": len(self._store.unsynced()),
            "last_sync_time": last_sync.isoformat() if last_sync else None,
            "snapshot_path": str(self._store.path),
        }
        if check_connection and self._gateway is not None:
            status["connection"] = self._run(self._gateway.health_check)
        return status

    async def watch(self, interval: Optional[float] = None, cycles: Optional[int] = None) -> int:
        """Sync immediately, then every ``interval`` seconds.

        Args:
            interval: Seconds between cycles (default: config.sync_interval)
            cycles: Stop after this many completed cycles (default: run forever)

        Returns:
            Number of cycles completed
        """
        unavailable = self._require_engine()
        if unavailable:
            raise ValueError(unavailable["errors"][0])

        interval = interval or self.config.sync_interval
        engine = self._engine
        start = engine.cycles_run
        engine.start_periodic(interval, immediate=True)
        try:
            while engine.is_running and (cycles is None or engine.cycles_run - start < cycles):
                await asyncio.sleep(min(interval, 0.5))
        finally:
            await engine.stop_periodic()
            await self._gateway.aclose()
        return engine.cycles_run - start
