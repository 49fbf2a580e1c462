"""Sync engine for quotesync.

SyncEngine drives one synchronization cycle:

    fetch -> merge -> persist (if changed) -> post unsynced -> report

and owns the periodic trigger. At most one cycle runs at a time; a trigger
that arrives mid-cycle is coalesced into a single follow-up pass instead of
running in parallel. Posts are sequential and awaited so each id rewrite
lands before the next request goes out.
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional

from quotesync.status import StatusSink, safe_notify
from quotesync.types import (
    ChangeReport,
    ConflictPolicy,
    PersistenceError,
    SyncState,
    utc_now,
)

from .merge import collapse_pending_duplicates, merge_records
from .record_store import RecordStore
from .remote import RemoteGateway

logger = logging.getLogger(__name__)


class SyncEngine:
    """Sync cycle orchestration and periodic scheduling.

    Args:
        store: The record store whose collection is reconciled.
        gateway: Remote gateway for fetch and post.
        status_sink: Receives the consolidated per-cycle status message.
        conflict_policy: Passed through to the merge engine.
    """

    def __init__(
        self,
        store: RecordStore,
        gateway: RemoteGateway,
        status_sink: Optional[StatusSink] = None,
        conflict_policy: "ConflictPolicy | str" = ConflictPolicy.KEEP_LOCAL,
    ):
        self.store = store
        self.gateway = gateway
        self.status_sink = status_sink
        self.conflict_policy = ConflictPolicy(conflict_policy)
        self.state = SyncState.IDLE
        self.last_report: Optional[ChangeReport] = None
        self.last_sync_time: Optional[datetime] = None
        self.cycles_run = 0

        self._lock = asyncio.Lock()
        self._in_cycle = False
        self._rerun_requested = False
        self._periodic_task: Optional[asyncio.Task] = None
        self._cycle_task: Optional[asyncio.Task] = None

    # === Cycle ===

    @property
    def in_cycle(self) -> bool:
        return self._in_cycle

    async def run_cycle(self) -> Optional[ChangeReport]:
        """Run one full sync cycle.

        Returns:
            The report of the last pass run, or None if this trigger was
            coalesced into a cycle that was already in flight.
        """
        if self._in_cycle:
            self._rerun_requested = True
            logger.debug("Sync already in progress; trigger coalesced")
            return None

        self._in_cycle = True
        try:
            async with self._lock:
                report = await self._run_once()
                while self._rerun_requested:
                    self._rerun_requested = False
                    logger.debug("Running coalesced follow-up sync")
                    report = await self._run_once()
            return report
        finally:
            self._in_cycle = False
            self.state = SyncState.IDLE

    async def _run_once(self) -> ChangeReport:
        self.state = SyncState.FETCHING
        remote_records = await self.gateway.fetch_all()
        fetch_failed = not self.gateway.last_fetch_ok

        self.state = SyncState.MERGING
        with self.store.lock:
            result = merge_records(self.store.records, remote_records, self.conflict_policy)
            self.store.replace_all(result.records)
        report = result.report
        report.fetch_failed = fetch_failed
        if fetch_failed:
            report.errors.append("fetch failed")

        self.state = SyncState.PERSISTING
        self._persist(report)

        self.state = SyncState.POSTING
        await self._post_pending(report)
        if report.posted:
            self._persist(report)

        self.state = SyncState.REPORTING
        self._report(report)
        return report

    async def push_pending(self) -> ChangeReport:
        """Post unsynced records without fetching.

        Used right after an add or import. Waits for any in-flight cycle.
        """
        async with self._lock:
            report = ChangeReport()
            self.state = SyncState.POSTING
            try:
                await self._post_pending(report)
                if report.posted or report.collapsed:
                    self._persist(report)
            finally:
                self.state = SyncState.IDLE
            if report.posted or report.post_failures:
                safe_notify(self.status_sink, report.summary(), is_error=not report.success)
            return report

    async def _post_pending(self, report: ChangeReport) -> None:
        with self.store.lock:
            kept, collapsed = collapse_pending_duplicates(self.store.records)
            if collapsed:
                self.store.replace_all(kept)
                report.collapsed += collapsed
        for record in self.store.unsynced():
            if await self.gateway.post_one(record):
                report.posted += 1
            else:
                report.post_failures += 1

    def _persist(self, report: ChangeReport) -> None:
        """Write the snapshot if it changed. Failures are reported, not raised."""
        try:
            if self.store.persist_if_changed():
                report.persisted = True
        except PersistenceError as e:
            # The store already notified the sink; memory stays authoritative.
            logger.warning(f"Snapshot not saved this cycle, will retry: {e}")
            report.errors.append(str(e))

    def _report(self, report: ChangeReport) -> None:
        self.cycles_run += 1
        self.last_report = report
        self.last_sync_time = utc_now()
        for conflict in report.conflicts:
            safe_notify(self.status_sink, f"Conflict: {conflict.describe()}", is_error=True)
        message = f"Sync complete: {report.summary()}"
        logger.info(message)
        safe_notify(self.status_sink, message, is_error=not report.success)

    # === Periodic Trigger ===

    @property
    def is_running(self) -> bool:
        return self._periodic_task is not None and not self._periodic_task.done()

    def start_periodic(self, interval: float, immediate: bool = False) -> asyncio.Task:
        """Run a sync cycle every ``interval`` seconds.

        Starting again cancels the previous timer first, so timers never
        overlap. Must be called from within a running event loop.
        """
        if interval <= 0:
            raise ValueError(f"interval must be > 0, got {interval}")

        if self._periodic_task is not None and not self._periodic_task.done():
            logger.debug("Restarting periodic sync; cancelling previous timer")
            self._periodic_task.cancel()

        loop = asyncio.get_running_loop()
        self._periodic_task = loop.create_task(
            self._periodic_loop(interval, immediate), name="quotesync-periodic"
        )
        self._periodic_task.add_done_callback(self._on_periodic_done)
        logger.info(f"Periodic sync every {interval:g}s")
        return self._periodic_task

    async def stop_periodic(self) -> None:
        """Cancel the timer and let any cycle it started finish."""
        task, self._periodic_task = self._periodic_task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        if self._cycle_task is not None and not self._cycle_task.done():
            await self._cycle_task
        self._cycle_task = None

    async def _periodic_loop(self, interval: float, immediate: bool) -> None:
        if not immediate:
            await asyncio.sleep(interval)
        while True:
            # A cycle is never cancelled halfway; restarting the timer only
            # abandons the wait, the shielded cycle runs to completion.
            self._cycle_task = asyncio.ensure_future(self._guarded_cycle())
            await asyncio.shield(self._cycle_task)
            await asyncio.sleep(interval)

    async def _guarded_cycle(self) -> Optional[ChangeReport]:
        try:
            return await self.run_cycle()
        except Exception as e:
            logger.error(f"Periodic sync failed: {e}", exc_info=True)
            safe_notify(self.status_sink, f"Sync failed: {e}", is_error=True)
            return None

    def _on_periodic_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            logger.debug("Periodic sync timer cancelled")
        elif task.exception():
            logger.error("Periodic sync loop crashed: %s", task.exception())
