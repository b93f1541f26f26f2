"""ZoneService: the public zone facade.

Wires the registry, ledger, reconciler, deletion workflow, and map sync
over one :class:`World`, and converts every :class:`ZoneError` raised
below it into a failed :class:`ServiceResult`.

Create pipeline: AUTHORIZE → LOCATE → VALIDATE+COMMIT → APPLY → MAP → EVENT → RESPOND

Protection is applied *after* the ledger commit. A reconciliation failure
leaves the zone committed with partial protection; the result is a
failure carrying the zone so an operator can ``reapply`` or delete it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pydantic

from zonectl.domain.errors import AuthorizationError, NotFoundError, ValidationError, ZoneError
from zonectl.infrastructure.kv import Key, is_key_segment
from zonectl.services._helpers import error_result, iso_from_epoch
from zonectl.services.base import BaseService
from zonectl.services.deletion import DeletionWorkflow
from zonectl.services.ledger import Ledger
from zonectl.services.presentation import PresentationSync
from zonectl.services.reconciler import ProtectionReconciler
from zonectl.services.registry import ZoneRegistry
from zonectl.services.result import ServiceResult
from zonectl.services.teams import TeamDirectory
from zonectl.services.telemetry import trace_span, traced

if TYPE_CHECKING:
    from zonectl.domain.geometry import Position
    from zonectl.domain.zone import Zone
    from zonectl.infrastructure.world import World


def zone_data(zone: Zone) -> dict[str, Any]:
    return zone.model_dump(mode="json")


def last_zone_key(player: str) -> Key:
    return ("player_last_zone", player)


class ZoneService(BaseService):
    """Zone lifecycle operations for players and operators."""

    def __init__(self, world: World) -> None:
        super().__init__(world)
        settings = world.settings
        self._ledger = Ledger(world.store)
        self._teams = TeamDirectory(world.store)
        self._registry = ZoneRegistry(
            world.store, self._ledger, self._teams, settings.zones, clock=world.clock
        )
        self._reconciler = ProtectionReconciler(
            world.channel, settings.zones, settings.reconciler, sleep=world.sleep
        )
        self._deletions = DeletionWorkflow(
            world.store,
            self._registry,
            self._teams,
            self._ledger,
            self._reconciler,
            world.timers,
            window=settings.deletion.confirm_window_seconds,
            clock=world.clock,
        )
        self._presentation = PresentationSync(world.markers, settings.map)

    @property
    def registry(self) -> ZoneRegistry:
        return self._registry

    @property
    def deletions(self) -> DeletionWorkflow:
        return self._deletions

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    @traced
    def create_zone(
        self,
        name: str,
        description: str,
        player: str,
        *,
        at: Position | None = None,
    ) -> ServiceResult:
        """Claim a zone centred on *at* (default: the player's position)."""
        op = "create_zone"
        warnings: list[str] = []
        try:
            team = self._teams.require_team(player)
            self._teams.require_leader(team.id, player)
            center = self._locate(player, at)
            with trace_span("registry_create"):
                zone = self._registry.create(name, description, center, team.id, player)
        except (ZoneError, pydantic.ValidationError) as exc:
            return error_result(op, exc)

        data: dict[str, Any] = {
            "zone": zone_data(zone),
            "balance": self._ledger.balance(player).amount,
        }
        try:
            with trace_span("reconcile_apply") as span:
                data["primitives"] = self._reconciler.apply(zone)
                if span:
                    span.annotate("primitives", data["primitives"])
        except ZoneError as exc:
            self._presentation.zone_created(zone, warnings)
            return error_result(op, exc, data=data, warnings=warnings)

        self._presentation.zone_created(zone, warnings)
        self._dispatch_event(
            "post_zone_create",
            {
                "zone_id": zone.id,
                "name": zone.name,
                "owner_group_id": team.id,
                "members": team.everyone,
                "created_by": player,
                "center": zone.center.model_dump(),
            },
            warnings,
        )
        return ServiceResult(ok=True, op=op, data=data, warnings=warnings)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @traced
    def zone_info(
        self,
        player: str,
        *,
        zone_id: str | None = None,
        at: Position | None = None,
    ) -> ServiceResult:
        """Describe *zone_id*, or the zone the player is standing in."""
        op = "zone_info"
        try:
            if zone_id:
                zone = self._registry.require(zone_id)
            else:
                point = self._locate(player, at)
                found = self._registry.find_containing(point)
                if found is None:
                    raise NotFoundError("You are not standing in a zone", player=player)
                zone = found
        except (ZoneError, pydantic.ValidationError) as exc:
            return error_result(op, exc)

        team = self._teams.get(zone.owner_group_id)
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "zone": zone_data(zone),
                "team": team.name if team else zone.owner_group_id,
                "is_member": bool(team and team.is_member(player)),
            },
        )

    @traced
    def list_zones(self, player: str) -> ServiceResult:
        """Zones owned by the player's team."""
        op = "list_zones"
        try:
            team = self._teams.require_team(player)
        except ZoneError as exc:
            return error_result(op, exc)
        zones = self._registry.list_by_owner(team.id)
        return ServiceResult(
            ok=True,
            op=op,
            data={"team": team.id, "zones": [zone_data(z) for z in zones], "count": len(zones)},
        )

    @traced
    def all_zones(self) -> ServiceResult:
        """Every active zone (map and feed consumers)."""
        zones = self._registry.list_all()
        return ServiceResult(
            ok=True,
            op="all_zones",
            data={"zones": [zone_data(z) for z in zones], "count": len(zones)},
        )

    @traced
    def plan(self, zone_id: str) -> ServiceResult:
        """The apply and teardown primitive lists, without issuing anything."""
        op = "plan"
        try:
            zone = self._registry.require(zone_id)
        except ZoneError as exc:
            return error_result(op, exc)
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "zone_id": zone.id,
                "apply": [p.to_dict() for p in self._reconciler.plan_apply(zone)],
                "teardown": [p.to_dict() for p in self._reconciler.plan_teardown(zone)],
            },
        )

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    @traced
    def modify_zone(self, zone_id: str, setting: str, value: Any, player: str) -> ServiceResult:
        """Change a zone's description or price (leader only)."""
        op = "modify_zone"
        warnings: list[str] = []
        try:
            zone = self._registry.update_settings(zone_id, setting, value, player)
        except ZoneError as exc:
            return error_result(op, exc)

        field = setting.strip().lower()
        if field == "description":
            try:
                with trace_span("refresh_labels"):
                    self._reconciler.refresh_labels(zone)
            except ZoneError as exc:
                warnings.append(f"Zone labels could not be refreshed: {exc.message}")
            self._presentation.zone_updated(zone, warnings)

        new_value = zone.price if field == "price" else zone.description
        team = self._teams.get(zone.owner_group_id)
        self._dispatch_event(
            "post_zone_update",
            {
                "zone_id": zone.id,
                "name": zone.name,
                "field": field,
                "value": new_value,
                "members": team.everyone if team else [],
                "updated_by": player,
            },
            warnings,
        )
        return ServiceResult(
            ok=True,
            op=op,
            data={"zone": zone_data(zone), "field": field, "value": new_value},
            warnings=warnings,
        )

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    @traced
    def request_delete(self, zone_id: str, player: str) -> ServiceResult:
        """Phase one: arm a deletion that must be confirmed within the window."""
        op = "request_delete"
        warnings: list[str] = []
        try:
            pending = self._deletions.request_delete(zone_id, player)
        except ZoneError as exc:
            return error_result(op, exc)

        zone = self._registry.get(zone_id)
        expires_at = pending.expires_at(self._deletions.window)
        self._dispatch_event(
            "post_zone_delete_requested",
            {
                "zone_id": zone_id,
                "name": zone.name if zone else zone_id,
                "requester": player,
                "expires_at": expires_at,
            },
            warnings,
        )
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "zone_id": zone_id,
                "requester": player,
                "expires_at": iso_from_epoch(expires_at),
                "window_seconds": self._deletions.window,
            },
            warnings=warnings,
        )

    @traced
    def confirm_delete(self, zone_id: str, player: str) -> ServiceResult:
        """Phase two: tear down protection and remove the zone."""
        op = "confirm_delete"
        warnings: list[str] = []
        try:
            with trace_span("deletion_confirm"):
                outcome = self._deletions.confirm_delete(zone_id, player)
        except ZoneError as exc:
            return error_result(op, exc)

        zone = outcome.zone
        self._presentation.zone_removed(zone, warnings)
        team = self._teams.get(zone.owner_group_id)
        self._dispatch_event(
            "post_zone_delete",
            {
                "zone_id": zone.id,
                "name": zone.name,
                "owner_group_id": zone.owner_group_id,
                "members": team.everyone if team else [],
                "deleted_by": player,
            },
            warnings,
        )
        data = {"zone_id": zone.id, "name": zone.name, "primitives_removed": outcome.removed}
        if outcome.teardown_error is not None:
            return error_result(op, outcome.teardown_error, data=data, warnings=warnings)
        return ServiceResult(ok=True, op=op, data=data, warnings=warnings)

    # ------------------------------------------------------------------
    # World actions
    # ------------------------------------------------------------------

    @traced
    def teleport(self, zone_id: str, player: str) -> ServiceResult:
        """Teleport a team member to their zone's waypoint."""
        op = "teleport"
        try:
            zone = self._registry.require(zone_id)
            team = self._teams.get(zone.owner_group_id)
            if team is None or not team.is_member(player):
                raise AuthorizationError(
                    f"Only members of the owning team can teleport to '{zone_id}'",
                    zone_id=zone_id,
                    player=player,
                )
            self._reconciler.teleport(zone, player)
        except ZoneError as exc:
            return error_result(op, exc)
        return ServiceResult(
            ok=True,
            op=op,
            data={"zone_id": zone.id, "player": player, "center": zone.center.model_dump()},
        )

    @traced
    def reapply_protection(self, zone_id: str, player: str) -> ServiceResult:
        """Re-run the apply sequence after a partial failure (leader only)."""
        op = "reapply_protection"
        try:
            zone = self._registry.require(zone_id)
            self._teams.require_leader(zone.owner_group_id, player)
            issued = self._reconciler.reapply(zone)
        except ZoneError as exc:
            return error_result(op, exc)
        return ServiceResult(ok=True, op=op, data={"zone_id": zone.id, "primitives": issued})

    @traced
    def player_moved(self, player: str, *, at: Position | None = None) -> ServiceResult:
        """Announce the zone a player has walked into, once per change of zone.

        The last zone entered is remembered per player; leaving every zone
        does not reset it, so re-entering the same zone stays silent.
        """
        op = "player_moved"
        warnings: list[str] = []
        try:
            if not is_key_segment(player):
                raise ValidationError(f"Invalid player name {player!r}", player=player)
            point = self._locate(player, at)
        except ZoneError as exc:
            return error_result(op, exc)

        zone = self._registry.find_containing(point)
        data: dict[str, Any] = {
            "player": player,
            "zone_id": zone.id if zone else None,
            "entered": False,
        }
        if zone is None:
            return ServiceResult(ok=True, op=op, data=data)

        store = self._world.store
        if store.get(last_zone_key(player)).value == zone.id:
            return ServiceResult(ok=True, op=op, data=data)
        store.set(last_zone_key(player), zone.id)
        data["entered"] = True

        team = self._teams.get(zone.owner_group_id)
        self._dispatch_event(
            "post_zone_enter",
            {
                "zone_id": zone.id,
                "name": zone.name,
                "description": zone.description,
                "color": team.color if team else "white",
                "player": player,
            },
            warnings,
        )
        return ServiceResult(ok=True, op=op, data=data, warnings=warnings)

    @traced
    def init_map(self) -> ServiceResult:
        """Create the zone marker set on the map server (run once it is reachable)."""
        warnings: list[str] = []
        created = self._presentation.init_marker_set(warnings)
        return ServiceResult(
            ok=True,
            op="init_map",
            data={"marker_set": self._world.settings.map.marker_set, "created": created},
            warnings=warnings,
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _locate(self, player: str, at: Position | None) -> Position:
        if at is not None:
            return at
        position = self._world.positions.get_player_position(player)
        if position is None:
            raise ValidationError(f"The position of {player} is unavailable", player=player)
        return position
