"""
Shared record types for quotesync.

All sync dataclasses live here. These are the shared vocabulary between
the record store, the remote gateway, the merge engine, and the sync engine.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

# Prefix for client-generated ids that the remote has not confirmed yet
LOCAL_ID_PREFIX = "local-"

# Legacy field names from the original quote collection format
CONTENT_ALIASES = {"quote": "text", "author": "category"}

RecordId = Union[str, int]


# === Shared Utility Functions ===


def utc_now() -> datetime:
    """Get current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class ParseDatetimeError(ValueError):
    """Structured parse failure for ISO datetime strings."""

    def __init__(self, value: str, cause: Exception):
        super().__init__(f"Invalid ISO datetime string: {value!r}")
        self.value = value
        self.cause = cause


def parse_datetime(s: Optional[str], *, strict: bool = False) -> Optional[datetime]:
    """Parse ISO datetime string.

    Naive values are assumed to be UTC. Invalid input returns None unless
    ``strict`` is set, in which case ParseDatetimeError is raised.
    """
    if not s:
        return None
    if isinstance(s, datetime):
        parsed = s
    else:
        try:
            parsed = datetime.fromisoformat(str(s).replace("Z", "+00:00"))
        except (TypeError, ValueError) as exc:
            if strict:
                raise ParseDatetimeError(str(s), exc) from exc
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def new_local_id() -> str:
    """Generate a local-pending id, unique within a store."""
    return f"{LOCAL_ID_PREFIX}{uuid.uuid4().hex[:12]}"


def is_local_id(record_id: Any) -> bool:
    """True for client-generated ids that are still waiting on the remote."""
    return isinstance(record_id, str) and record_id.startswith(LOCAL_ID_PREFIX)


class PersistenceError(OSError):
    """The durable snapshot could not be read or written."""

    def __init__(self, message: str, path: Optional[Any] = None):
        super().__init__(message)
        self.path = path


# === Enums ===


class SyncState(str, Enum):
    """Phases of one sync cycle."""

    IDLE = "idle"
    FETCHING = "fetching"
    MERGING = "merging"
    PERSISTING = "persisting"
    POSTING = "posting"
    REPORTING = "reporting"


class ConflictPolicy(str, Enum):
    """How the merge treats same-content records carrying different remote ids."""

    KEEP_LOCAL = "keep_local"  # Leave local untouched, flag the conflict
    LAST_WRITE_WINS = "last_write_wins"  # Newer updated_at decides the identity


VALID_CONFLICT_POLICIES = frozenset(p.value for p in ConflictPolicy)


# === Records ===


@dataclass
class Record:
    """The unit of synchronization."""

    id: RecordId
    text: str
    category: str
    updated_at: datetime = field(default_factory=utc_now)
    synced: bool = False
    # False when updated_at was filled in locally because the source had none
    has_timestamp: bool = field(default=True, compare=False, repr=False)

    @property
    def content(self) -> Tuple[str, str]:
        return (self.text, self.category)

    @property
    def is_pending(self) -> bool:
        """Carries a local id the remote has never confirmed."""
        return is_local_id(self.id)

    def content_equal(self, other: "Record") -> bool:
        return self.content == other.content

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "category": self.category,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "synced": self.synced,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Record":
        """Build a record from a snapshot entry.

        Entries written before sync metadata existed are assumed to be
        previously synced, stamped with the current time.
        """
        payload = dict(data)
        for legacy, canonical in CONTENT_ALIASES.items():
            if canonical not in payload and legacy in payload:
                payload[canonical] = payload[legacy]

        updated_at = parse_datetime(payload.get("updated_at") or payload.get("updatedAt"))
        synced = payload.get("synced")
        record_id = payload.get("id")
        if record_id is None or record_id == "":
            record_id = new_local_id()
            synced = False if synced is None else synced
        return cls(
            id=record_id,
            text=str(payload.get("text") or ""),
            category=str(payload.get("category") or ""),
            updated_at=updated_at or utc_now(),
            synced=True if synced is None else bool(synced),
            has_timestamp=updated_at is not None,
        )


@dataclass
class SyncConflict:
    """Same content held under two different established ids.

    The merge never silently picks a side here; it records the details
    for user visibility along with the resolution that was applied.
    """

    local_id: RecordId
    remote_id: RecordId
    text: str
    category: str
    resolution: str  # "kept_local" or "remote_id_adopted"
    local_updated_at: Optional[datetime] = None
    remote_updated_at: Optional[datetime] = None
    detected_at: datetime = field(default_factory=utc_now)

    def describe(self) -> str:
        snippet = self.text[:40] + "..." if len(self.text) > 40 else self.text
        return (
            f"'{snippet}' is local {self.local_id} but remote {self.remote_id} "
            f"({self.resolution})"
        )


@dataclass
class ChangeReport:
    """Result of one sync cycle. Not persisted."""

    added: int = 0  # Records inserted from remote
    updated: int = 0  # Local records whose content changed from remote
    posted: int = 0  # Local records accepted by the remote
    collapsed: int = 0  # Pending duplicates folded into one record
    post_failures: int = 0
    fetch_failed: bool = False
    persisted: bool = False
    conflicts: List[SyncConflict] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (
            self.added or self.updated or self.posted or self.collapsed or self.conflicts
        )

    @property
    def success(self) -> bool:
        return not self.fetch_failed and not self.post_failures and not self.errors

    @property
    def conflict_count(self) -> int:
        return len(self.conflicts)

    def summary(self) -> str:
        """One status line for the cycle."""
        parts = []
        if self.added:
            parts.append(f"{self.added} added from server")
        if self.updated:
            parts.append(f"{self.updated} updated from server")
        if self.posted:
            parts.append(f"{self.posted} posted to server")
        if self.collapsed:
            parts.append(f"{self.collapsed} duplicates merged")
        if self.conflicts:
            parts.append(f"{len(self.conflicts)} conflicts need review")
        message = ", ".join(parts) if parts else "no changes"
        if self.post_failures:
            message += f" ({self.post_failures} pending, will retry)"
        if self.fetch_failed:
            message += " (server fetch failed)"
        return message

    def to_dict(self) -> Dict[str, Any]:
        return {
            "added": self.added,
            "updated": self.updated,
            "posted": self.posted,
            "collapsed": self.collapsed,
            "post_failures": self.post_failures,
            "fetch_failed": self.fetch_failed,
            "persisted": self.persisted,
            "conflicts": [c.describe() for c in self.conflicts],
            "errors": list(self.errors),
            "summary": self.summary(),
        }
