"""Common base for the zonectl services.

A service holds the :class:`World` it was built with and reaches every
collaborator through it. Zone lifecycle events go out through the World's
event bus after the store commit, so a plugin only ever sees changes that
have already happened.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from zonectl.plugins.hookspecs import ZONE_EVENTS

if TYPE_CHECKING:
    from zonectl.infrastructure.world import World

logger = logging.getLogger(__name__)


class BaseService:
    def __init__(self, world: World) -> None:
        self._world = world

    def _dispatch_event(self, hook_name: str, payload: dict[str, Any], warnings: list[str]) -> None:
        """Announce a committed zone change to plugins.

        Does nothing before the bus is initialized. A plugin that fails adds
        a warning to *warnings* and nothing else.

        Raises:
            ValueError: *hook_name* is not one of :data:`ZONE_EVENTS`.
        """
        if hook_name not in ZONE_EVENTS:
            msg = f"Unknown zone event {hook_name!r}"
            raise ValueError(msg)
        bus = self._world.event_bus
        if bus is None:
            return
        try:
            delivered = bus.dispatch(hook_name, payload)
        except Exception:
            logger.debug("Event bus rejected %s", hook_name, exc_info=True)
            delivered = False
        if not delivered:
            warnings.append(f"Event dispatch failed for {hook_name}")
