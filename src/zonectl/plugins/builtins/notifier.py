"""MemberNotifier: tells team members about zone changes in game chat.

Each message is one ``tellraw`` command sent through the command channel.
A player walking into a zone gets an "Entering Zone" line of their own.
Offline members simply miss the message; the world drops it.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import pluggy

if TYPE_CHECKING:
    from zonectl.infrastructure.channel import CommandChannel

hookimpl = pluggy.HookimplMarker("zonectl")


class MemberNotifier:
    """Sends zone lifecycle notices to every member of the owning team."""

    def __init__(self, channel: CommandChannel) -> None:
        self._channel = channel

    @hookimpl
    def post_zone_create(
        self,
        zone_id: str,
        name: str,
        owner_group_id: str,
        members: list[str],
        created_by: str,
        center: dict[str, Any],
    ) -> None:
        text = f"New team zone {name} claimed by {created_by}. Use /zones tp {zone_id}"
        self._broadcast(members, text, "gold")

    @hookimpl
    def post_zone_update(
        self,
        zone_id: str,
        name: str,
        field: str,
        value: Any,
        members: list[str],
        updated_by: str,
    ) -> None:
        self._broadcast(members, f"Zone {name}: {field} set to {value} by {updated_by}", "yellow")

    @hookimpl
    def post_zone_delete(
        self,
        zone_id: str,
        name: str,
        owner_group_id: str,
        members: list[str],
        deleted_by: str,
    ) -> None:
        self._broadcast(members, f"Zone {name} has been deleted by {deleted_by}", "red")

    @hookimpl
    def post_zone_enter(
        self,
        zone_id: str,
        name: str,
        description: str,
        color: str,
        player: str,
    ) -> None:
        parts: list[dict[str, Any]] = [
            {"text": "Entering Zone: ", "color": "gold"},
            {"text": name, "color": color, "bold": True},
        ]
        if description:
            parts.append({"text": "\n" + description, "color": "gray"})
        self._channel.execute(f"tellraw {player} {json.dumps(parts)}")

    def _broadcast(self, members: list[str], text: str, color: str) -> None:
        payload = json.dumps({"text": text, "color": color})
        for member in members:
            self._channel.execute(f"tellraw {member} {payload}")
