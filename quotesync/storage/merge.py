"""Merge engine for quotesync.

Reconciles the local collection with freshly fetched remote records.
``merge_records`` is a pure function: it copies the local records, never
mutates its inputs, and returns the reconciled collection plus a change
report. Posting is left to the sync engine.

Matching rules for each remote record, first hit wins:

1. Same id and same content: already in sync, mark synced.
2. Same id, different content: remote drifted, copy its content.
3. Same content on a local-pending record: the remote confirmed our
   record, adopt the remote id.
4. Same content on a record with a different established id: conflict,
   resolved per policy and always reported.
5. Nothing: a new remote record, append it.

Rules 1 and 2 run over the whole remote list before rules 3 to 5. A local
record is claimed by at most one remote record per merge.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Iterable, List, Optional, Set

from quotesync.types import ChangeReport, ConflictPolicy, Record, SyncConflict

logger = logging.getLogger(__name__)


@dataclass
class MergeResult:
    """Reconciled collection and what changed on the way."""

    records: List[Record] = field(default_factory=list)
    report: ChangeReport = field(default_factory=ChangeReport)

    @property
    def pending(self) -> List[Record]:
        """Records still waiting to be posted, in store order."""
        return [record for record in self.records if not record.synced]


def _find(
    records: List[Record], claimed: Set[int], predicate
) -> Optional[int]:
    for index, record in enumerate(records):
        if index not in claimed and predicate(record):
            return index
    return None


def _apply_remote_content(local: Record, remote: Record) -> bool:
    """Copy content fields from remote. Returns True if anything changed."""
    changed = False
    if local.text != remote.text:
        local.text = remote.text
        changed = True
    if local.category != remote.category:
        local.category = remote.category
        changed = True
    if changed:
        local.updated_at = remote.updated_at
    return changed


def _resolve_conflict(
    local: Record, remote: Record, policy: ConflictPolicy
) -> SyncConflict:
    """Handle same content under two established ids. Mutates local if remote wins.

    A remote record that carried no timestamp never wins on recency.
    """
    resolution = "kept_local"
    if (
        policy is ConflictPolicy.LAST_WRITE_WINS
        and remote.has_timestamp
        and remote.updated_at > local.updated_at
    ):
        resolution = "remote_id_adopted"

    conflict = SyncConflict(
        local_id=local.id,
        remote_id=remote.id,
        text=local.text,
        category=local.category,
        resolution=resolution,
        local_updated_at=local.updated_at,
        remote_updated_at=remote.updated_at,
    )
    logger.warning(f"Sync conflict: {conflict.describe()}")

    if resolution == "remote_id_adopted":
        local.id = remote.id
        local.synced = True
        local.updated_at = remote.updated_at
    return conflict


def collapse_pending_duplicates(records: List[Record]) -> tuple[List[Record], int]:
    """Drop local-pending records whose content is already held elsewhere.

    A pending record is redundant when an established record or an earlier
    pending record has the same content. Posting it would create a
    duplicate on the remote.
    """
    established = {record.content for record in records if not record.is_pending}
    seen_pending = set()
    kept = []
    collapsed = 0
    for record in records:
        if record.is_pending and not record.synced:
            if record.content in established or record.content in seen_pending:
                logger.debug(f"Collapsing duplicate pending record {record.id}")
                collapsed += 1
                continue
            seen_pending.add(record.content)
        kept.append(record)
    return kept, collapsed


def merge_records(
    local: Iterable[Record],
    remote: Iterable[Record],
    conflict_policy: "ConflictPolicy | str" = ConflictPolicy.KEEP_LOCAL,
) -> MergeResult:
    """Reconcile local records against remote records.

    Id matches (rules 1 and 2) are settled for every remote record before
    any content matching, so the result does not depend on the order the
    remote lists its records in.

    Args:
        local: Current local collection (not modified).
        remote: Records fetched from the remote.
        conflict_policy: How to treat same content under different established ids.

    Returns:
        MergeResult with the new collection and its change report.

    Raises:
        ValueError: If conflict_policy is not a known policy.
    """
    policy = ConflictPolicy(conflict_policy)
    merged = [replace(record) for record in local]
    report = ChangeReport()
    claimed: Set[int] = set()
    unmatched: List[Record] = []

    for remote_record in remote:
        # 1. exact match
        index = _find(
            merged,
            claimed,
            lambda r: r.id == remote_record.id and r.content_equal(remote_record),
        )
        if index is None:
            # 2. same id, content drifted
            index = _find(merged, claimed, lambda r: r.id == remote_record.id)
        if index is None:
            unmatched.append(remote_record)
            continue

        local_record = merged[index]
        if _apply_remote_content(local_record, remote_record):
            report.updated += 1
        local_record.synced = True
        claimed.add(index)

    for remote_record in unmatched:
        # 3. remote confirmed one of our pending records
        index = _find(
            merged,
            claimed,
            lambda r: r.is_pending and r.content_equal(remote_record),
        )
        if index is not None:
            local_record = merged[index]
            logger.debug(f"Remote confirmed {local_record.id} as {remote_record.id}")
            local_record.id = remote_record.id
            local_record.synced = True
            claimed.add(index)
            continue

        # 4. same content, different established identity
        index = _find(merged, claimed, lambda r: r.content_equal(remote_record))
        if index is not None:
            conflict = _resolve_conflict(merged[index], remote_record, policy)
            report.conflicts.append(conflict)
            if conflict.resolution == "remote_id_adopted":
                claimed.add(index)
            continue

        # 5. new remote record
        merged.append(replace(remote_record, synced=True))
        claimed.add(len(merged) - 1)
        report.added += 1

    merged, report.collapsed = collapse_pending_duplicates(merged)
    return MergeResult(records=merged, report=report)
