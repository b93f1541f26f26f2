"""External command channel contract.

The channel is the only way the zone core mutates the world. It is
ordered per caller, at-least-once, non-batching, and rate-limited; the
reconciler paces its calls accordingly.
"""

from __future__ import annotations

import logging
import threading
from typing import Protocol

logger = logging.getLogger(__name__)


class ChannelError(Exception):
    """A command could not be delivered or was rejected by the world."""


class CommandChannel(Protocol):
    """Execute one opaque world command and return the acknowledgement text."""

    def execute(self, command: str) -> str: ...

    def close(self) -> None: ...


class RecordingChannel:
    """Channel that records commands instead of sending them.

    Used for ``--dry-run`` and whenever no live server is configured; the
    recorded list doubles as the observable world state in tests.
    """

    def __init__(self) -> None:
        self._commands: list[str] = []
        self._lock = threading.Lock()

    @property
    def commands(self) -> list[str]:
        with self._lock:
            return list(self._commands)

    def execute(self, command: str) -> str:
        with self._lock:
            self._commands.append(command)
        logger.debug("dry-run command: %s", command)
        return ""

    def clear(self) -> None:
        with self._lock:
            self._commands.clear()

    def close(self) -> None:
        """Nothing to release."""
