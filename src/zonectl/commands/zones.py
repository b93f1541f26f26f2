"""Command group: zone lifecycle (create, inspect, modify, delete, teleport)."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click
import pydantic

from zonectl.commands._base import ZoneGroup
from zonectl.domain.geometry import Position
from zonectl.services.zones import ZoneService

if TYPE_CHECKING:
    from zonectl.commands._context import AppContext

_AT_HELP = "Use these X Y Z coordinates instead of the player's position."


def _position(at: tuple[float, float, float] | None) -> Position | None:
    if at is None:
        return None
    x, y, z = at
    try:
        return Position(x=x, y=y, z=z)
    except pydantic.ValidationError as exc:
        raise click.BadParameter("coordinates must be finite numbers", param_hint="--at") from exc


_ZONES_EXAMPLES = """\
  zonectl -p alice zones create "North Base" --description "Our home"
  zonectl -p alice zones create "Outpost" --at 600 70 -300
  zonectl -p alice zones list
  zonectl -p alice zones delete north_base
  zonectl -p alice zones confirm-delete north_base"""


@click.group(cls=ZoneGroup, examples=_ZONES_EXAMPLES)
@click.pass_obj
def zones(app: AppContext) -> None:
    """Claim, inspect, and manage team zones."""


@zones.command(
    examples="""\
  zonectl -p alice zones create "North Base"
  zonectl -p alice zones create "North Base" --description "Our home" --at 100 64 100
  zonectl --dry-run -p alice zones create "Test Zone" --at 0 64 0"""
)
@click.argument("name")
@click.option("--description", "-d", default="", help="Shown on the zone's label.")
@click.option("--at", type=(float, float, float), default=None, help=_AT_HELP)
@click.pass_obj
def create(
    app: AppContext,
    name: str,
    description: str,
    at: tuple[float, float, float] | None,
) -> None:
    """Claim a zone centred on the player (costs the configured fee)."""
    player = app.require_player()
    center = _position(at)
    app.emit(ZoneService(app.world).create_zone(name, description, player, at=center))


@zones.command(
    name="list",
    examples="""\
  zonectl -p alice zones list
  zonectl zones list --all
  zonectl --json zones list --all""",
)
@click.option("--all", "show_all", is_flag=True, help="Every active zone, not just your team's.")
@click.pass_obj
def list_cmd(app: AppContext, show_all: bool) -> None:
    """List your team's zones."""
    svc = ZoneService(app.world)
    if show_all:
        app.emit(svc.all_zones())
    else:
        app.emit(svc.list_zones(app.require_player()))


@zones.command(
    examples="""\
  zonectl -p alice zones info
  zonectl -p alice zones info north_base
  zonectl -p alice zones info --at 120 64 90"""
)
@click.argument("zone_id", required=False)
@click.option("--at", type=(float, float, float), default=None, help=_AT_HELP)
@click.pass_obj
def info(app: AppContext, zone_id: str | None, at: tuple[float, float, float] | None) -> None:
    """Show a zone, or the zone you are standing in."""
    player = app.require_player()
    app.emit(ZoneService(app.world).zone_info(player, zone_id=zone_id, at=_position(at)))


@zones.command(
    examples="""\
  zonectl -p alice zones modify north_base price 50
  zonectl -p alice zones modify north_base price 0
  zonectl -p alice zones modify north_base description 'Keep out'"""
)
@click.argument("zone_id")
@click.argument("setting", type=click.Choice(["description", "price"], case_sensitive=False))
@click.argument("value")
@click.pass_obj
def modify(app: AppContext, zone_id: str, setting: str, value: str) -> None:
    """Change a zone's description or sale price (leader only)."""
    player = app.require_player()
    app.emit(ZoneService(app.world).modify_zone(zone_id, setting, value, player))


@zones.command(
    examples="""\
  zonectl -p alice zones delete north_base
  zonectl -p alice zones confirm-delete north_base"""
)
@click.argument("zone_id")
@click.pass_obj
def delete(app: AppContext, zone_id: str) -> None:
    """Request deletion; it must be confirmed within the window."""
    player = app.require_player()
    app.emit(ZoneService(app.world).request_delete(zone_id, player))


@zones.command(
    name="confirm-delete",
    examples="""\
  zonectl -p alice zones confirm-delete north_base""",
)
@click.argument("zone_id")
@click.pass_obj
def confirm_delete(app: AppContext, zone_id: str) -> None:
    """Confirm a pending deletion: remove protection and the zone."""
    player = app.require_player()
    app.emit(ZoneService(app.world).confirm_delete(zone_id, player))


@zones.command(
    examples="""\
  zonectl -p bob zones tp north_base"""
)
@click.argument("zone_id")
@click.pass_obj
def tp(app: AppContext, zone_id: str) -> None:
    """Teleport to one of your team's zones."""
    player = app.require_player()
    app.emit(ZoneService(app.world).teleport(zone_id, player))


@zones.command(
    examples="""\
  zonectl -p alice zones reapply north_base"""
)
@click.argument("zone_id")
@click.pass_obj
def reapply(app: AppContext, zone_id: str) -> None:
    """Re-run the protection sequence after a partial failure (leader only)."""
    player = app.require_player()
    app.emit(ZoneService(app.world).reapply_protection(zone_id, player))


@zones.command(
    examples="""\
  zonectl zones plan north_base
  zonectl --json zones plan north_base"""
)
@click.argument("zone_id")
@click.pass_obj
def plan(app: AppContext, zone_id: str) -> None:
    """Show the commands that protect a zone and the ones that remove it."""
    app.emit(ZoneService(app.world).plan(zone_id))


@zones.command(
    name="moved",
    examples="""\
  zonectl -p alice zones moved
  zonectl -p alice zones moved --at 100 64 100""",
)
@click.option("--at", type=(float, float, float), default=None, help=_AT_HELP)
@click.pass_obj
def moved(app: AppContext, at: tuple[float, float, float] | None) -> None:
    """Greet the player with the zone they just walked into, if it changed."""
    player = app.require_player()
    app.emit(ZoneService(app.world).player_moved(player, at=_position(at)))


@zones.command(
    name="init-map",
    examples="""\
  zonectl zones init-map""",
)
@click.pass_obj
def init_map(app: AppContext) -> None:
    """Create the zone marker set on the map server."""
    app.emit(ZoneService(app.world).init_map())
