"""Player-position collaborator.

The game bridge writes each player's last known position to
``("players", <player>, "position")``; zonectl only reads it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

import pydantic

from zonectl.domain.geometry import Position
from zonectl.infrastructure.kv import is_key_segment

if TYPE_CHECKING:
    from zonectl.infrastructure.kv import KvStore

logger = logging.getLogger(__name__)


def position_key(player: str) -> tuple[str, ...]:
    return ("players", player, "position")


class PositionProvider(Protocol):
    def get_player_position(self, player: str) -> Position | None: ...


class StorePositionProvider:
    """Reads positions recorded in the transactional store."""

    def __init__(self, store: KvStore) -> None:
        self._store = store

    def get_player_position(self, player: str) -> Position | None:
        if not is_key_segment(player):
            return None
        entry = self._store.get(position_key(player))
        if not entry.exists:
            return None
        try:
            return Position.model_validate(entry.value)
        except pydantic.ValidationError:
            logger.warning("Ignoring malformed position record for %s", player)
            return None

    def record(self, player: str, position: Position) -> None:
        """Write a position (used by the bridge and by tests)."""
        self._store.set(position_key(player), position.model_dump())
