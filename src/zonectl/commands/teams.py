"""Command group: team registration and lookup."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from zonectl.commands._base import ZoneGroup
from zonectl.services.teams import TeamService

if TYPE_CHECKING:
    from zonectl.commands._context import AppContext


@click.group(
    cls=ZoneGroup,
    examples="""\
  zonectl teams register red --leader alice --member bob --member carol
  zonectl teams show red""",
)
@click.pass_obj
def teams(app: AppContext) -> None:
    """Register and inspect teams."""


@teams.command(
    examples="""\
  zonectl teams register red --leader alice
  zonectl teams register blue --name "Blue Team" --leader dave --member erin --color blue"""
)
@click.argument("team_id")
@click.option("--leader", required=True, help="Player allowed to claim and delete zones.")
@click.option("--member", "members", multiple=True, help="Team member (repeatable).")
@click.option("--name", default=None, help="Display name (defaults to TEAM_ID).")
@click.option("--color", default="white", help="Chat color.")
@click.pass_obj
def register(
    app: AppContext,
    team_id: str,
    leader: str,
    members: tuple[str, ...],
    name: str | None,
    color: str,
) -> None:
    """Register a team and index its players."""
    svc = TeamService(app.world)
    app.emit(svc.register_team(team_id, leader, name=name, members=list(members), color=color))


@teams.command(
    examples="""\
  zonectl teams show red
  zonectl -p bob teams show"""
)
@click.argument("team_id", required=False)
@click.pass_obj
def show(app: AppContext, team_id: str | None) -> None:
    """Show a team (default: the acting player's team)."""
    svc = TeamService(app.world)
    if team_id:
        app.emit(svc.team_info(team_id=team_id))
    else:
        app.emit(svc.team_info(player=app.require_player()))
