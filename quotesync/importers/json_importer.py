"""JSON importer for quotesync.

Imports records from JSON files, including the format written by
`quotesync export`. Each entry needs non-empty ``text`` and ``category``
(the legacy ``quote``/``author`` keys are accepted too). Bad entries are
rejected one at a time; they never abort the batch.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional

from quotesync.validation import MAX_CATEGORY_LENGTH, MAX_TEXT_LENGTH, sanitize_string
from quotesync.types import CONTENT_ALIASES, Record, utc_now

if TYPE_CHECKING:
    from quotesync.storage import RecordStore

logger = logging.getLogger(__name__)

# Root keys that may wrap the entry list
ENTRY_LIST_KEYS = ("records", "quotes")


@dataclass
class JsonImportItem:
    """A validated entry ready for import."""

    text: str
    category: str


def validate_entry(entry: Any) -> JsonImportItem:
    """Check one import entry.

    Raises:
        ValueError: If the entry is not an object or lacks content.
    """
    if not isinstance(entry, dict):
        raise ValueError(f"entry must be an object, got {type(entry).__name__}")
    data = dict(entry)
    for legacy, canonical in CONTENT_ALIASES.items():
        if canonical not in data and legacy in data:
            data[canonical] = data[legacy]
    return JsonImportItem(
        text=sanitize_string(data.get("text"), "text", MAX_TEXT_LENGTH),
        category=sanitize_string(data.get("category"), "category", MAX_CATEGORY_LENGTH),
    )


def import_entries(
    store: "RecordStore",
    entries: Iterable[Any],
    skip_duplicates: bool = True,
    dry_run: bool = False,
) -> Dict[str, Any]:
    """Validate entries and add them to the store as unsynced records.

    Args:
        store: Target record store (not persisted here)
        entries: Raw entry objects
        skip_duplicates: Skip entries whose content already exists
        dry_run: Validate and count only

    Returns:
        Dict with counts of imported/skipped entries, errors, and the new records
    """
    imported = 0
    skipped = 0
    errors: List[str] = []
    added: List[Record] = []
    seen = set()

    for index, entry in enumerate(entries):
        try:
            item = validate_entry(entry)
        except ValueError as e:
            errors.append(f"entry {index}: {e}")
            continue

        content = (item.text, item.category)
        if skip_duplicates and (content in seen or store.find_content(*content)):
            skipped += 1
            continue
        seen.add(content)

        if not dry_run:
            added.append(store.add(item.text, item.category))
        imported += 1

    if errors:
        logger.warning(f"Rejected {len(errors)} import entries: {errors[:3]}")

    return {
        "imported": imported,
        "skipped": skipped,
        "errors": errors,
        "records": added,
    }


def parse_entries(content: str) -> List[Any]:
    """Parse an import document into its raw entry list.

    Raises:
        json.JSONDecodeError: If content is not valid JSON
        ValueError: If the document holds no entry list
    """
    data = json.loads(content)
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in ENTRY_LIST_KEYS:
            if isinstance(data.get(key), list):
                return data[key]
    raise ValueError("JSON must be an array of entries or an object with a 'records' array")


class JsonImporter:
    """Import records from a JSON file."""

    def __init__(self, file_path: str):
        self.file_path = Path(file_path).expanduser()
        self.entries: Optional[List[Any]] = None

    def parse(self) -> List[Any]:
        """Read and parse the file.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If the file is not a valid import document
        """
        if not self.file_path.exists():
            raise FileNotFoundError(f"File not found: {self.file_path}")
        self.entries = parse_entries(self.file_path.read_text(encoding="utf-8"))
        return self.entries

    def import_to(
        self, store: "RecordStore", dry_run: bool = False, skip_duplicates: bool = True
    ) -> Dict[str, Any]:
        if self.entries is None:
            self.parse()
        result = import_entries(
            store, self.entries or [], skip_duplicates=skip_duplicates, dry_run=dry_run
        )
        result["source"] = str(self.file_path)
        return result


def export_records(records: Iterable[Record], path: str) -> int:
    """Write records to a JSON document JsonImporter can read back.

    Returns:
        Number of records written
    """
    entries = [record.to_dict() for record in records]
    document = {
        "exported_at": utc_now().isoformat(),
        "count": len(entries),
        "records": entries,
    }
    target = Path(path).expanduser()
    target.parent.mkdir(parents=True, exist_ok=True)
    with open(target, "w", encoding="utf-8") as f:
        json.dump(document, f, indent=2)
    return len(entries)
