"""
quotesync CLI - local quote collection with server sync.

Usage:
    quotesync list [--filter KEYWORD] [--json]
    quotesync random [--filter KEYWORD]
    quotesync categories [--json]
    quotesync add TEXT CATEGORY [--sync]
    quotesync import FILE [--dry-run] [--sync]
    quotesync export FILE [--filter KEYWORD]
    quotesync sync [--json]
    quotesync watch [--interval SECONDS] [--cycles N]
    quotesync status [--json] [--offline]
"""

import argparse
import logging
import sys

from quotesync import QuoteSync
from quotesync.cli.commands import (
    cmd_add,
    cmd_categories,
    cmd_export,
    cmd_import,
    cmd_list,
    cmd_random,
    cmd_status,
    cmd_sync,
    cmd_watch,
)
from quotesync.config import load_config
from quotesync.status import PrintStatusSink
from quotesync.types import PersistenceError

# Set up logging
logging.basicConfig(level=logging.WARNING)
logger = logging.getLogger(__name__)

COMMANDS = {
    "list": cmd_list,
    "random": cmd_random,
    "categories": cmd_categories,
    "add": cmd_add,
    "import": cmd_import,
    "export": cmd_export,
    "sync": cmd_sync,
    "watch": cmd_watch,
    "status": cmd_status,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quotesync",
        description="Local-first quote collection with server sync",
    )
    parser.add_argument("--backend-url", "-b", help="Server URL (overrides QUOTESYNC_BACKEND_URL)")
    parser.add_argument("--data-dir", "-d", help="Snapshot directory (default: ~/.quotesync)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    parser.add_argument("--quiet", "-q", action="store_true", help="Only print errors")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # list
    p_list = subparsers.add_parser("list", help="List quotes")
    p_list.add_argument("--filter", "-f", help="Keyword to match in text or category")
    p_list.add_argument("--json", "-j", action="store_true")

    # random
    p_random = subparsers.add_parser("random", help="Show a random quote")
    p_random.add_argument("--filter", "-f", help="Pick only among matching quotes")

    # categories
    p_categories = subparsers.add_parser("categories", help="List categories")
    p_categories.add_argument("--json", "-j", action="store_true")

    # add
    p_add = subparsers.add_parser("add", help="Add a quote")
    p_add.add_argument("text", help="Quote text")
    p_add.add_argument("category", help="Category (author)")
    p_add.add_argument("--sync", "-s", action="store_true", help="Post to the server right away")

    # import / export
    p_import = subparsers.add_parser("import", help="Import quotes from a JSON file")
    p_import.add_argument("file", help="JSON file to import")
    p_import.add_argument("--dry-run", "-n", action="store_true", help="Validate only")
    p_import.add_argument("--sync", "-s", action="store_true", help="Post imported quotes")

    p_export = subparsers.add_parser("export", help="Export quotes to a JSON file")
    p_export.add_argument("file", help="Output file")
    p_export.add_argument("--filter", "-f", help="Export only matching quotes")

    # sync
    p_sync = subparsers.add_parser("sync", help="Run one sync cycle")
    p_sync.add_argument("--json", "-j", action="store_true")

    p_watch = subparsers.add_parser("watch", help="Sync periodically until interrupted")
    p_watch.add_argument("--interval", "-i", type=float, help="Seconds between cycles")
    p_watch.add_argument("--cycles", "-c", type=int, help="Stop after N cycles")

    p_status = subparsers.add_parser("status", help="Show sync status")
    p_status.add_argument("--json", "-j", action="store_true")
    p_status.add_argument("--offline", action="store_true", help="Skip the connectivity check")

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    # Initialize QuoteSync with error handling
    try:
        config = load_config({"backend_url": args.backend_url, "data_dir": args.data_dir})
        sink = PrintStatusSink(quiet=args.quiet or getattr(args, "json", False))
        q = QuoteSync(config=config, status_sink=sink)
    except (ValueError, PersistenceError) as e:
        logger.error(f"Failed to initialize quotesync: {e}")
        print(f"✗ {e}", file=sys.stderr)
        sys.exit(1)

    # Dispatch with error handling
    try:
        COMMANDS[args.command](args, q)
    except PersistenceError as e:
        # Sink already reported the write failure
        logger.debug(f"Persistence failed: {e}")
        sys.exit(1)
    except (ValueError, TypeError) as e:
        print(f"✗ {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
