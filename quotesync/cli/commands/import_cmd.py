"""Import and export commands for quotesync.

Imports JSON files in the export format (or a bare array of entries with
``text``/``category``, or the legacy ``quote``/``author`` keys).
"""

import json
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from quotesync import QuoteSync


def cmd_import(args, q: "QuoteSync"):
    """Import quotes from a JSON file."""
    try:
        result = q.import_file(args.file, dry_run=args.dry_run, sync=args.sync)
    except FileNotFoundError as e:
        print(f"✗ {e}")
        return
    except (json.JSONDecodeError, ValueError) as e:
        print(f"✗ Could not parse {args.file}: {e}")
        return

    prefix = "Would import" if args.dry_run else "Imported"
    print(f"✓ {prefix} {result['imported']} quotes from {result['source']}")
    if result["skipped"]:
        print(f"  Skipped {result['skipped']} duplicates")
    if result["errors"]:
        print(f"  ✗ {len(result['errors'])} entries rejected:")
        for error in result["errors"][:10]:
            print(f"    {error}")
        if len(result["errors"]) > 10:
            print(f"    ... and {len(result['errors']) - 10} more")

    sync_result = result.get("sync")
    if sync_result and sync_result.get("attempted"):
        print(f"  Posted {sync_result.get('posted', 0)} to server")


def cmd_export(args, q: "QuoteSync"):
    """Export quotes to a JSON file."""
    count = q.export(args.file, keyword=getattr(args, "filter", None))
    print(f"✓ Exported {count} quotes to {args.file}")
