"""Tests for zone geometry: corners, bounds, overlap, containment."""

import math

import pydantic
import pytest

from zonectl.domain.geometry import Position, bounds, contains, overlaps, square_corners

H = 128


def pos(x: float, y: float, z: float) -> Position:
    return Position(x=x, y=y, z=z)


class TestPosition:
    @pytest.mark.parametrize("bad", [math.nan, math.inf, -math.inf])
    def test_rejects_non_finite(self, bad: float) -> None:
        with pytest.raises(pydantic.ValidationError):
            Position(x=bad, y=64, z=0)

    def test_frozen(self) -> None:
        p = pos(1, 2, 3)
        with pytest.raises(pydantic.ValidationError):
            p.x = 5  # type: ignore[misc]


class TestSquareCorners:
    def test_corners_around_center(self) -> None:
        corners = square_corners(pos(100, 64, 100), H)
        assert [c.as_tuple() for c in corners] == [
            (-28, 64, -28),
            (228, 64, -28),
            (228, 64, 228),
            (-28, 64, 228),
        ]

    def test_winding(self) -> None:
        c = square_corners(pos(0, 0, 0), 10)
        assert c[0].x == c[3].x < c[1].x == c[2].x
        assert c[0].z == c[1].z < c[2].z == c[3].z

    def test_bounds(self) -> None:
        b = bounds(square_corners(pos(100, 64, 100), H))
        assert (b.min_x, b.max_x, b.min_z, b.max_z) == (-28, 228, -28, 228)


class TestContains:
    @pytest.mark.parametrize(
        "center",
        [pos(0, 0, 0), pos(100, 64, 100), pos(-5000.5, 12, 731.25), pos(1e6, -64, -1e6)],
    )
    def test_center_is_inside(self, center: Position) -> None:
        assert contains(center, square_corners(center, H))

    @pytest.mark.parametrize("dx, dz", [(H + 1, 0), (-(H + 1), 0), (0, H + 1), (0, -(H + 1))])
    def test_points_beyond_an_edge_are_outside(self, dx: float, dz: float) -> None:
        c = pos(100, 64, 100)
        assert not contains(pos(c.x + dx, c.y, c.z + dz), square_corners(c, H))

    @pytest.mark.parametrize("dx, dz", [(H - 0.001, 0), (0, -(H - 0.001)), (H, H), (-H, -H)])
    def test_points_within_or_on_edges_are_inside(self, dx: float, dz: float) -> None:
        c = pos(100, 64, 100)
        assert contains(pos(c.x + dx, c.y, c.z + dz), square_corners(c, H))

    def test_y_is_ignored(self) -> None:
        c = pos(0, 64, 0)
        assert contains(pos(5, -60, 5), square_corners(c, H))
        assert contains(pos(5, 319, 5), square_corners(c, H))


class TestOverlaps:
    def test_adjacent_claims_overlap(self) -> None:
        north = square_corners(pos(100, 64, 100), H)
        south = square_corners(pos(150, 64, 100), H)
        assert overlaps(north, south, 1)

    def test_symmetric(self) -> None:
        a = square_corners(pos(0, 64, 0), H)
        b = square_corners(pos(200, 64, 90), H)
        assert overlaps(a, b, 1) == overlaps(b, a, 1)

    def test_far_apart(self) -> None:
        a = square_corners(pos(0, 64, 0), H)
        b = square_corners(pos(1000, 64, 0), H)
        assert not overlaps(a, b, 1)

    def test_gap_exactly_buffer_counts_as_overlap(self) -> None:
        a = square_corners(pos(0, 64, 0), H)
        b = square_corners(pos(2 * H + 1, 64, 0), H)
        assert overlaps(a, b, 1)

    def test_gap_wider_than_buffer_separates(self) -> None:
        a = square_corners(pos(0, 64, 0), H)
        b = square_corners(pos(2 * H + 1.5, 64, 0), H)
        assert not overlaps(a, b, 1)

    def test_diagonal_neighbours_separated_on_one_axis(self) -> None:
        a = square_corners(pos(0, 64, 0), H)
        b = square_corners(pos(100, 64, 2 * H + 10), H)
        assert not overlaps(a, b, 1)
