"""Sync commands for quotesync: one-shot sync, watch mode, status."""

import asyncio
import json
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from quotesync import QuoteSync

logger = logging.getLogger(__name__)


def cmd_sync(args, q: "QuoteSync"):
    """Run one sync cycle against the configured server."""
    result = q.sync()

    if args.json:
        print(json.dumps(result, indent=2, default=str))
        return

    if not result["attempted"]:
        if result.get("coalesced"):
            print("Sync already in progress; this run was merged into it.")
        else:
            for error in result["errors"]:
                print(f"✗ {error}")
        return

    # Per-cycle status is printed by the status sink; only show leftovers here
    if result["conflicts"]:
        print()
        print(f"⚠️  {len(result['conflicts'])} conflicts need review:")
        for conflict in result["conflicts"]:
            print(f"   {conflict}")


def cmd_watch(args, q: "QuoteSync"):
    """Sync now and then periodically until interrupted."""
    interval = args.interval or q.config.sync_interval
    print(f"Watching {q.config.backend_url} every {interval:g}s (Ctrl+C to stop)")
    try:
        completed = asyncio.run(q.watch(interval=interval, cycles=args.cycles))
    except KeyboardInterrupt:
        print()
        print("Stopped.")
        return
    print(f"✓ Completed {completed} sync cycles")


def cmd_status(args, q: "QuoteSync"):
    """Show local record counts and server connectivity."""
    status = q.get_sync_status(check_connection=not args.offline)

    if args.json:
        print(json.dumps(status, indent=2, default=str))
        return

    print("Sync Status")
    print("=" * 50)
    print()
    print(f"📦 Snapshot: {status['snapshot_path']}")
    print(f"   Quotes: {status['total']}")
    print(f"   Pending: {status['pending']}")
    print(f"   Last sync: {status['last_sync_time'] or 'never (this session)'}")
    print()

    if not status["backend_url"]:
        print("🔴 Backend: not configured (set QUOTESYNC_BACKEND_URL)")
        return

    connection = status.get("connection")
    if connection is None:
        print(f"⚪ Backend: {status['backend_url']} (not checked)")
    elif connection["healthy"]:
        print(f"🟢 Backend: {status['backend_url']} ({connection['latency_ms']}ms)")
    else:
        print(f"🔴 Backend: {status['backend_url']} ({connection['error']})")
