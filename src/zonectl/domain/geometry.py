"""Zone geometry: corners, bounds, overlap, containment.

Zones are axis-aligned squares on the X-Z plane. The vertical axis is
ignored everywhere: a zone protects the whole world height band.

Corner winding is fixed so downstream code can rely on index semantics::

    [0] = (min_x, min_z)    [1] = (max_x, min_z)
    [3] = (min_x, max_z)    [2] = (max_x, max_z)
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from typing import NamedTuple

from pydantic import BaseModel, field_validator


class Position(BaseModel):
    """A point in world coordinates."""

    model_config = {"frozen": True}

    x: float
    y: float
    z: float

    @field_validator("x", "y", "z")
    @classmethod
    def _finite(cls, value: float) -> float:
        if not math.isfinite(value):
            msg = "coordinates must be finite numbers"
            raise ValueError(msg)
        return value

    def as_tuple(self) -> tuple[float, float, float]:
        return (self.x, self.y, self.z)


Corners = tuple[Position, Position, Position, Position]


class Bounds(NamedTuple):
    """Horizontal extent of a zone."""

    min_x: float
    max_x: float
    min_z: float
    max_z: float


def square_corners(center: Position, half_extent: float) -> Corners:
    """Return the four corners of the square centred on *center*.

    All corners share ``center.y``.
    """
    x, y, z = center.as_tuple()
    h = half_extent
    return (
        Position(x=x - h, y=y, z=z - h),
        Position(x=x + h, y=y, z=z - h),
        Position(x=x + h, y=y, z=z + h),
        Position(x=x - h, y=y, z=z + h),
    )


def bounds(corners: Sequence[Position]) -> Bounds:
    """Extract min/max X and Z from a corner sequence in canonical winding."""
    return Bounds(
        min_x=corners[0].x,
        max_x=corners[1].x,
        min_z=corners[0].z,
        max_z=corners[2].z,
    )


def overlaps(a: Sequence[Position], b: Sequence[Position], buffer: float) -> bool:
    """Separating-axis test on buffered bounds.

    Zones exactly *buffer* apart count as overlapping: the comparisons are
    strict, so only a gap wider than the buffer separates two claims.
    """
    ba = bounds(a)
    bb = bounds(b)
    return not (
        ba.min_x > bb.max_x + buffer
        or ba.max_x < bb.min_x - buffer
        or ba.min_z > bb.max_z + buffer
        or ba.max_z < bb.min_z - buffer
    )


def contains(point: Position, corners: Sequence[Position]) -> bool:
    """True iff *point* lies inside the zone (inclusive bounds, Y ignored)."""
    b = bounds(corners)
    return b.min_x <= point.x <= b.max_x and b.min_z <= point.z <= b.max_z
