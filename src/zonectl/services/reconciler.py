"""ProtectionReconciler: zone definition in, world primitives out.

A zone's physical protection is an ordered list of world commands derived
purely from ``(id, owner, center, half_extent)`` plus configuration, so a
restarted process can always recompute the exact primitive set for a
repair or a teardown without consulting any cache.

Apply order::

    6 gates      repeating command blocks enforcing the access rules
    1 trigger    redstone block keeping the gate stack powered
    4 corners    marker block, two posts, and a cap on each
    2 waypoints  lodestone with an end rod above it
    3 labels     name / description text displays and a glowing stand

Teardown removes every block apply placed, in the same order, then sweeps
the decorative entities around the center. Both run through a
:class:`Pacer`: the command channel is rate-limited and non-batching, so
primitives are issued one at a time with a fixed delay between them, and
the first failure aborts the rest.
"""

from __future__ import annotations

import json
import math
from collections.abc import Callable, Sequence
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any

import structlog

from zonectl.domain.errors import ReconciliationError
from zonectl.infrastructure.channel import ChannelError

if TYPE_CHECKING:
    from zonectl.config.models import ReconcilerConfig, ZonesConfig
    from zonectl.domain.geometry import Position
    from zonectl.domain.zone import Zone
    from zonectl.infrastructure.channel import CommandChannel

log = structlog.get_logger(__name__)

GATE_BLOCK = "repeating_command_block[facing=up]"
TRIGGER_BLOCK = "redstone_block"
CORNER_BLOCKS = (
    ("marker", "glowstone"),
    ("post", "oak_fence"),
    ("post", "oak_fence"),
    ("cap", "lantern[hanging=false]"),
)
WAYPOINT_BLOCKS = (
    ("lodestone", "lodestone"),
    ("beacon", "end_rod"),
)
LABEL_ENTITIES = ("text_display", "armor_stand")


@dataclass(frozen=True)
class Primitive:
    """One world side effect: a single placement, removal, or summon."""

    kind: str
    label: str
    command: str

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


@dataclass(frozen=True)
class LocalFrame:
    """Integer frame a zone's primitives are laid out in.

    The corner posts sit one block outside the square on the max sides and
    one block inside on the min sides (``origin = c - (h - 1)``,
    ``far = c + (h + 1)``), keeping the gate stack and the posts apart.
    """

    cx: int
    cy: int
    cz: int
    half: int

    @classmethod
    def of(cls, center: Position, half_extent: float) -> LocalFrame:
        return cls(
            cx=round_half_up(center.x),
            cy=round_half_up(center.y),
            cz=round_half_up(center.z),
            half=round_half_up(half_extent),
        )

    @property
    def origin_x(self) -> int:
        return self.cx - (self.half - 1)

    @property
    def origin_z(self) -> int:
        return self.cz - (self.half - 1)

    @property
    def far_x(self) -> int:
        return self.cx + (self.half + 1)

    @property
    def far_z(self) -> int:
        return self.cz + (self.half + 1)

    @property
    def gate_x(self) -> int:
        return self.origin_x + self.half

    @property
    def gate_z(self) -> int:
        return self.origin_z + self.half

    def corner_posts(self) -> list[tuple[int, int]]:
        """X/Z of the four posts, in the order they are built."""
        return [
            (self.far_x, self.origin_z),
            (self.origin_x, self.origin_z),
            (self.origin_x, self.far_z),
            (self.far_x, self.far_z),
        ]


class Pacer:
    """Issue commands one by one with a fixed delay between consecutive calls."""

    def __init__(self, delay: float, sleep: Callable[[float], None]) -> None:
        self._delay = delay
        self._sleep = sleep

    def run(
        self,
        primitives: Sequence[Primitive],
        execute: Callable[[str], Any],
        *,
        operation: str,
        zone_id: str,
    ) -> int:
        """Run *primitives* in order and return how many were issued.

        Raises:
            ReconciliationError: A command failed; later primitives were
                not sent.
        """
        for step, primitive in enumerate(primitives):
            if step and self._delay > 0:
                self._sleep(self._delay)
            try:
                execute(primitive.command)
            except (ChannelError, OSError) as exc:
                log.warning(
                    "primitive.failed",
                    operation=operation,
                    zone_id=zone_id,
                    step=step,
                    label=primitive.label,
                    error=str(exc),
                )
                raise ReconciliationError(
                    f"{operation} of zone '{zone_id}' stopped at step {step} "
                    f"({primitive.label}): {exc}",
                    operation=operation,
                    step=step,
                    label=primitive.label,
                    applied=step,
                ) from exc
            log.debug(
                "primitive.issued",
                operation=operation,
                zone_id=zone_id,
                step=step,
                label=primitive.label,
            )
        return len(primitives)


def _setblock(x: int, y: int, z: int, block: str) -> str:
    return f"setblock {x} {y} {z} {block}"


def _snbt_text(text: str, color: str) -> str:
    """A JSON text component quoted for an SNBT single-quoted string."""
    component = json.dumps({"text": text, "color": color})
    return component.replace("\\", "\\\\").replace("'", "\\'")


class ProtectionReconciler:
    """Plans and applies the primitives that protect a zone."""

    def __init__(
        self,
        channel: CommandChannel,
        zones: ZonesConfig,
        config: ReconcilerConfig,
        *,
        sleep: Callable[[float], None],
    ) -> None:
        self._channel = channel
        self._zones = zones
        self._config = config
        self._pacer = Pacer(config.pacing_seconds, sleep)

    def frame(self, zone: Zone) -> LocalFrame:
        return LocalFrame.of(zone.center, zone.half_extent)

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    def plan_apply(self, zone: Zone) -> list[Primitive]:
        f = self.frame(zone)
        return [
            *self._gates(zone, f),
            *self._corners(f, place=True),
            *self._waypoints(f, place=True),
            *self._labels(zone, f),
        ]

    def plan_teardown(self, zone: Zone) -> list[Primitive]:
        f = self.frame(zone)
        removals = [
            Primitive(p.kind, p.label, _remove_command(p.command))
            for p in self._gates(zone, f)
        ]
        return [
            *removals,
            *self._corners(f, place=False),
            *self._waypoints(f, place=False),
            *self._sweep(f),
        ]

    def _gates(self, zone: Zone, f: LocalFrame) -> list[Primitive]:
        team = zone.owner_group_id
        y0 = self._zones.world_min_y
        dy = self._zones.world_max_y - self._zones.world_min_y
        base = self._zones.gate_base_y
        inner = max(2 * f.half - 9, 0)
        edge = max(2 * f.half - 6, 0)

        def selector(x: int, z: int, dx: int, dz: int, mode: str, team_filter: str) -> str:
            return (
                f"@a[x={x},y={y0},z={z},dx={dx},dy={dy},dz={dz},"
                f"gamemode={mode},team={team_filter}]"
            )

        def gate(label: str, x: int, y: int, z: int, command: str) -> Primitive:
            payload = json.dumps(command)
            return Primitive(
                "gate",
                f"gate.{label}",
                _setblock(x, y, z, f"{GATE_BLOCK}{{auto:1b,Command:{payload}}}"),
            )

        gx, gz = f.gate_x, f.gate_z
        ox, oz = f.origin_x, f.origin_z
        # Members inside flip back to survival; outsiders crossing a border
        # strip are returned to survival, outsiders in the core go adventure.
        sel_member = selector(ox + 4, oz + 4, inner, inner, "adventure", team)
        sel_north = selector(ox, oz, edge, 2, "adventure", f"!{team}")
        sel_east = selector(f.far_x - 3, oz, 2, edge, "adventure", f"!{team}")
        sel_south = selector(ox + 3, f.far_z - 3, edge, 2, "adventure", f"!{team}")
        sel_west = selector(ox, oz + 3, 2, edge, "adventure", f"!{team}")
        sel_outsider = selector(ox + 4, oz + 4, inner, inner, "survival", f"!{team}")
        return [
            gate("center_member", gx, base, gz, f"gamemode survival {sel_member}"),
            gate("north", gx, base, gz - 1, f"gamemode survival {sel_north}"),
            gate("east", gx + 1, base, gz, f"gamemode survival {sel_east}"),
            gate("south", gx, base, gz + 1, f"gamemode survival {sel_south}"),
            gate("west", gx - 1, base, gz, f"gamemode survival {sel_west}"),
            gate("center_outsider", gx, base + 1, gz, f"gamemode adventure {sel_outsider}"),
            Primitive("trigger", "trigger", _setblock(gx, base + 2, gz, TRIGGER_BLOCK)),
        ]

    def _corners(self, f: LocalFrame, *, place: bool) -> list[Primitive]:
        primitives = []
        for n, (x, z) in enumerate(f.corner_posts(), start=1):
            for dy, (part, block) in enumerate(CORNER_BLOCKS):
                primitives.append(
                    Primitive(
                        "corner",
                        f"corner.{n}.{part}" + (f".{dy}" if part == "post" else ""),
                        _setblock(x, f.cy + dy, z, block if place else "air"),
                    )
                )
        return primitives

    def _waypoints(self, f: LocalFrame, *, place: bool) -> list[Primitive]:
        return [
            Primitive(
                "waypoint",
                f"waypoint.{part}",
                _setblock(f.cx, f.cy + dy, f.cz, block if place else "air"),
            )
            for dy, (part, block) in enumerate(WAYPOINT_BLOCKS)
        ]

    def _labels(self, zone: Zone, f: LocalFrame) -> list[Primitive]:
        name = _snbt_text(zone.name, "gold")
        description = _snbt_text(zone.description, "gray")
        display = 'billboard:"center",Tags:["zonectl"]'
        return [
            Primitive(
                "label",
                "label.name",
                f"summon text_display {f.cx} {f.cy + 3} {f.cz} {{{display},text:'{name}'}}",
            ),
            Primitive(
                "label",
                "label.description",
                f"summon text_display {f.cx} {f.cy + 2} {f.cz} {{{display},text:'{description}'}}",
            ),
            Primitive(
                "label",
                "label.stand",
                f"summon armor_stand {f.cx} {f.cy + 1} {f.cz} "
                '{Invisible:1b,Glowing:1b,Marker:1b,NoGravity:1b,Tags:["zonectl"]}',
            ),
        ]

    def _sweep(self, f: LocalFrame) -> list[Primitive]:
        radius = self._config.sweep_radius
        return [
            Primitive(
                "sweep",
                f"sweep.{entity}",
                f"kill @e[type={entity},x={f.cx},y={f.cy},z={f.cz},distance=..{radius}]",
            )
            for entity in LABEL_ENTITIES
        ]

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def apply(self, zone: Zone) -> int:
        return self._run("apply", zone, self.plan_apply(zone))

    def teardown(self, zone: Zone) -> int:
        return self._run("teardown", zone, self.plan_teardown(zone))

    def reapply(self, zone: Zone) -> int:
        """Re-run apply after a partial failure. Labels are swept first so
        they are not duplicated; block placements are idempotent."""
        f = self.frame(zone)
        return self._run("reapply", zone, [*self._sweep(f), *self.plan_apply(zone)])

    def refresh_labels(self, zone: Zone) -> int:
        """Replace the text displays after a name or description change."""
        f = self.frame(zone)
        return self._run("refresh_labels", zone, [*self._sweep(f), *self._labels(zone, f)])

    def teleport(self, zone: Zone, player: str) -> str:
        """Move *player* next to the zone's waypoint."""
        f = self.frame(zone)
        command = f"tp {player} {f.cx + 1} {f.cy} {f.cz}"
        try:
            return self._channel.execute(command)
        except (ChannelError, OSError) as exc:
            raise ReconciliationError(
                f"Teleport to zone '{zone.id}' failed: {exc}",
                operation="teleport",
                step=0,
                label="teleport",
                applied=0,
            ) from exc

    def _run(self, operation: str, zone: Zone, primitives: list[Primitive]) -> int:
        log.info("reconcile.start", operation=operation, zone_id=zone.id, total=len(primitives))
        issued = self._pacer.run(
            primitives,
            self._channel.execute,
            operation=operation,
            zone_id=zone.id,
        )
        log.info("reconcile.done", operation=operation, zone_id=zone.id, issued=issued)
        return issued


def _remove_command(place_command: str) -> str:
    """``setblock X Y Z <block>`` → ``setblock X Y Z air``."""
    verb, x, y, z, _ = place_command.split(" ", 4)
    return f"{verb} {x} {y} {z} air"
