"""Pluggy hook specifications for zone lifecycle events.

Hooks are dispatched after the ledger commit they describe, so a plugin
always observes committed state. ``members`` lists every player of the
owning team, leader first.
"""

from __future__ import annotations

from typing import Any

import pluggy

hookspec = pluggy.HookspecMarker("zonectl")


class ZonectlHookSpec:
    """Hook specifications for the zonectl plugin system."""

    @hookspec
    def post_zone_create(
        self,
        zone_id: str,
        name: str,
        owner_group_id: str,
        members: list[str],
        created_by: str,
        center: dict[str, Any],
    ) -> None:
        """Called after a zone is committed and its protection applied."""

    @hookspec
    def post_zone_update(
        self,
        zone_id: str,
        name: str,
        field: str,
        value: Any,
        members: list[str],
        updated_by: str,
    ) -> None:
        """Called after a zone setting changes."""

    @hookspec
    def post_zone_delete_requested(
        self,
        zone_id: str,
        name: str,
        requester: str,
        expires_at: float,
    ) -> None:
        """Called when a deletion is requested and awaits confirmation."""

    @hookspec
    def post_zone_delete(
        self,
        zone_id: str,
        name: str,
        owner_group_id: str,
        members: list[str],
        deleted_by: str,
    ) -> None:
        """Called after a zone record is removed."""

    @hookspec
    def post_zone_enter(
        self,
        zone_id: str,
        name: str,
        description: str,
        color: str,
        player: str,
    ) -> None:
        """Called when a player walks into a zone other than the last one they were in."""


ZONE_EVENTS: frozenset[str] = frozenset(
    name for name in vars(ZonectlHookSpec) if name.startswith("post_zone_")
)
