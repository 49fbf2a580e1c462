"""Record commands: list, random, categories, add."""

import json
import logging
from typing import TYPE_CHECKING, List

if TYPE_CHECKING:
    from quotesync import QuoteSync
    from quotesync.types import Record

logger = logging.getLogger(__name__)


def _format_record(record: "Record") -> str:
    marker = "" if record.synced else "  [pending]"
    return f'"{record.text}"\n    - {record.category}{marker}'


def _print_records(records: List["Record"], as_json: bool) -> None:
    if as_json:
        print(json.dumps([r.to_dict() for r in records], indent=2, default=str))
        return
    if not records:
        print("No quotes found.")
        return
    for record in records:
        print(_format_record(record))
    print()
    print(f"{len(records)} quotes")


def cmd_list(args, q: "QuoteSync"):
    """List quotes, optionally filtered by keyword."""
    _print_records(q.filter(args.filter), args.json)


def cmd_random(args, q: "QuoteSync"):
    """Show one random quote."""
    record = q.random_record(args.filter)
    if record is None:
        if args.filter:
            print(f"No quotes match '{args.filter}'.")
        else:
            print("No quotes yet. Add one with: quotesync add TEXT CATEGORY")
        return
    print(_format_record(record))


def cmd_categories(args, q: "QuoteSync"):
    """List distinct categories."""
    categories = q.categories()
    if getattr(args, "json", False):
        print(json.dumps(categories, indent=2))
        return
    for category in categories:
        print(f"  {category}")


def cmd_add(args, q: "QuoteSync"):
    """Add a quote locally, optionally posting it right away."""
    record = q.add(args.text, args.category, sync=args.sync)
    print(f"✓ Added quote {record.id}")
    if not record.synced:
        print("  Pending sync. Run `quotesync sync` to push it to the server.")
