"""Status notifications for sync progress and errors.

The sync core reports to a ``StatusSink``: anything with a
``notify(message, is_error=False)`` method. UI and logging layers decide
what to do with the messages.
"""

import logging
import sys
from typing import List, Protocol, Tuple, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class StatusSink(Protocol):
    def notify(self, message: str, is_error: bool = False) -> None:
        ...


class LoggingStatusSink:
    """Forward notifications to the stdlib logger."""

    def __init__(self, name: str = "quotesync.status"):
        self._logger = logging.getLogger(name)

    def notify(self, message: str, is_error: bool = False) -> None:
        if is_error:
            self._logger.error(message)
        else:
            self._logger.info(message)


class PrintStatusSink:
    """Print notifications for the CLI."""

    def __init__(self, quiet: bool = False):
        self.quiet = quiet

    def notify(self, message: str, is_error: bool = False) -> None:
        if is_error:
            print(f"✗ {message}", file=sys.stderr)
        elif not self.quiet:
            print(f"✓ {message}")


class CollectingStatusSink:
    """Keep every notification, newest last."""

    def __init__(self) -> None:
        self.messages: List[Tuple[str, bool]] = []

    def notify(self, message: str, is_error: bool = False) -> None:
        self.messages.append((message, is_error))

    @property
    def errors(self) -> List[str]:
        return [message for message, is_error in self.messages if is_error]

    def clear(self) -> None:
        self.messages.clear()


def safe_notify(sink: "StatusSink | None", message: str, is_error: bool = False) -> None:
    """Deliver a notification without letting a faulty sink break sync."""
    if sink is None:
        return
    try:
        sink.notify(message, is_error)
    except Exception as e:
        logger.warning(f"Status sink failed to accept message: {e}", exc_info=True)
