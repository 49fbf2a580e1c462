"""CLI command modules for quotesync.

Each module holds related command handlers dispatched from __main__.py.
"""

from quotesync.cli.commands.import_cmd import cmd_export, cmd_import
from quotesync.cli.commands.records import cmd_add, cmd_categories, cmd_list, cmd_random
from quotesync.cli.commands.sync import cmd_status, cmd_sync, cmd_watch

__all__ = [
    "cmd_add",
    "cmd_categories",
    "cmd_export",
    "cmd_import",
    "cmd_list",
    "cmd_random",
    "cmd_status",
    "cmd_sync",
    "cmd_watch",
]
