"""TeamDirectory: team rosters and the leader / member checks.

Teams live at ``("teams", <id>)``; each player's team is indexed at
``("players", <player>, "team")``. Only the leader may claim, modify, or
delete the team's zones; any member may teleport to them.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pydantic

from zonectl.domain.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
    ZoneError,
)
from zonectl.domain.ids import validate_zone_id
from zonectl.domain.zone import Team
from zonectl.infrastructure.kv import Check, Key, Put, is_key_segment
from zonectl.services._helpers import error_result
from zonectl.services.base import BaseService
from zonectl.services.result import ServiceResult
from zonectl.services.telemetry import traced

if TYPE_CHECKING:
    from zonectl.infrastructure.kv import KvStore
    from zonectl.infrastructure.world import World

logger = logging.getLogger(__name__)


def team_key(team_id: str) -> Key:
    return ("teams", team_id)


def membership_key(player: str) -> Key:
    return ("players", player, "team")


class TeamDirectory:
    def __init__(self, store: KvStore) -> None:
        self._store = store

    def get(self, team_id: str) -> Team | None:
        if not is_key_segment(team_id):
            return None
        entry = self._store.get(team_key(team_id))
        if not entry.exists:
            return None
        try:
            return Team.model_validate(entry.value)
        except pydantic.ValidationError:
            logger.warning("Ignoring malformed team record %s", team_id)
            return None

    def team_of(self, player: str) -> Team | None:
        """The team *player* belongs to, or None."""
        if not is_key_segment(player):
            return None
        entry = self._store.get(membership_key(player))
        if not entry.exists:
            return None
        team = self.get(str(entry.value))
        if team is None or not team.is_member(player):
            return None
        return team

    def require_team(self, player: str) -> Team:
        team = self.team_of(player)
        if team is None:
            raise AuthorizationError(f"{player} is not in a team", player=player)
        return team

    def require_leader(self, team_id: str, player: str) -> Team:
        """Return the team if *player* leads it.

        Raises:
            NotFoundError: The team does not exist.
            AuthorizationError: *player* is not its leader.
        """
        team = self.get(team_id)
        if team is None:
            raise NotFoundError(f"Team '{team_id}' not found", team_id=team_id)
        if team.leader != player:
            raise AuthorizationError(
                f"Only the leader of team {team.name} can do this",
                team_id=team_id,
                player=player,
            )
        return team

    def register(self, team: Team) -> Team:
        """Create *team* and index every player in it, atomically.

        Raises:
            ValidationError: The team id is not a lower-case slug, or a player
                name cannot be stored.
            ConflictError: A team with this id already exists.
        """
        if not validate_zone_id(team.id):
            raise ValidationError(
                f"Team id '{team.id}' must be lower-case letters, digits and '_'",
                team_id=team.id,
            )
        bad = [player for player in team.everyone if not is_key_segment(player)]
        if bad:
            raise ValidationError(f"Invalid player name {bad[0]!r}", team_id=team.id)
        mutations = [
            Put(team_key(team.id), team.model_dump(mode="json")),
            *(Put(membership_key(player), team.id) for player in team.everyone),
        ]
        if not self._store.atomic_commit([Check(team_key(team.id), None)], mutations):
            raise ConflictError(f"Team '{team.id}' already exists", team_id=team.id)
        logger.debug("Registered team %s (%d players)", team.id, len(team.everyone))
        return team


class TeamService(BaseService):
    """Operator-facing team registration and lookup."""

    def __init__(self, world: World) -> None:
        super().__init__(world)
        self._teams = TeamDirectory(world.store)

    @traced
    def register_team(
        self,
        team_id: str,
        leader: str,
        *,
        name: str | None = None,
        members: list[str] | None = None,
        color: str = "white",
    ) -> ServiceResult:
        op = "register_team"
        try:
            team = Team(
                id=team_id,
                name=name or team_id,
                leader=leader,
                members=members or [],
                color=color,
            )
            self._teams.register(team)
        except (ZoneError, pydantic.ValidationError) as exc:
            return error_result(op, exc)
        return ServiceResult(ok=True, op=op, data={"team": team.model_dump()})

    @traced
    def team_info(self, *, team_id: str | None = None, player: str | None = None) -> ServiceResult:
        """Look a team up by id, or by one of its players."""
        op = "team_info"
        team = None
        if team_id:
            team = self._teams.get(team_id)
        elif player:
            team = self._teams.team_of(player)
        if team is None:
            missing = NotFoundError(f"Team '{team_id or player}' not found", team_id=team_id)
            return error_result(op, missing)
        return ServiceResult(
            ok=True,
            op=op,
            data={"team": team.model_dump(), "players": team.everyone},
        )
