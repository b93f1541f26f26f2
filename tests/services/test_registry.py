"""Tests for ZoneRegistry: creation rules, lookups, and settings updates."""

from __future__ import annotations

import itertools

import pytest

from zonectl.domain.errors import (
    AuthorizationError,
    ConflictError,
    InsufficientFundsError,
    NotFoundError,
    OverlapError,
    ValidationError,
)
from zonectl.domain.geometry import Position, overlaps
from zonectl.infrastructure.channel import RecordingChannel
from zonectl.infrastructure.world import World
from zonectl.services.ledger import Ledger
from zonectl.services.registry import ZoneRegistry
from zonectl.services.teams import TeamDirectory


def at(x: float, z: float, y: float = 64) -> Position:
    return Position(x=x, y=y, z=z)


@pytest.fixture
def ledger(world: World) -> Ledger:
    return Ledger(world.store)


@pytest.fixture
def registry(world: World, ledger: Ledger) -> ZoneRegistry:
    return ZoneRegistry(
        world.store,
        ledger,
        TeamDirectory(world.store),
        world.settings.zones,
        clock=world.clock,
    )


class TestCreate:
    def test_claim_debits_and_places_corners(self, registry: ZoneRegistry, ledger: Ledger) -> None:
        zone = registry.create("North Base", "", at(100, 100), "red", "alice")
        assert zone.id == "north_base"
        assert ledger.balance("alice").amount == 4
        assert sorted((c.x, c.y, c.z) for c in zone.corners) == [
            (-28, 64, -28),
            (-28, 64, 228),
            (228, 64, -28),
            (228, 64, 228),
        ]
        assert registry.get("north_base") == zone

    def test_overlap_rejected_without_charge(self, registry: ZoneRegistry, ledger: Ledger) -> None:
        registry.create("North Base", "", at(100, 100), "red", "alice")
        with pytest.raises(OverlapError) as excinfo:
            registry.create("South Base", "", at(150, 100), "red", "alice")
        assert excinfo.value.detail["conflicts_with"] == "north_base"
        assert registry.get("south_base") is None
        assert ledger.balance("alice").amount == 4

    def test_overlap_ignores_ownership(self, registry: ZoneRegistry) -> None:
        registry.create("North Base", "", at(100, 100), "red", "alice")
        with pytest.raises(OverlapError):
            registry.create("Blue Camp", "", at(300, 100), "blue", "dave")

    def test_adjacent_beyond_buffer_allowed(self, registry: ZoneRegistry) -> None:
        registry.create("West", "", at(0, 0), "red", "alice")
        registry.create("East", "", at(258, 0), "blue", "dave")
        assert len(registry.list_all()) == 2

    def test_insufficient_funds_fails_fast(self, registry: ZoneRegistry) -> None:
        with pytest.raises(InsufficientFundsError) as excinfo:
            registry.create("Bob Hut", "", at(5000, 5000), "red", "bob")
        assert excinfo.value.detail == {"cost": 1, "balance": 0}
        assert registry.list_all() == []

    @pytest.mark.parametrize("name", ["", "   ", "?!?"])
    def test_unusable_name(self, registry: ZoneRegistry, name: str) -> None:
        with pytest.raises(ValidationError):
            registry.create(name, "", at(0, 0), "red", "alice")

    def test_same_id_conflicts_at_commit(self, registry: ZoneRegistry, ledger: Ledger) -> None:
        registry.create("Home", "", at(0, 0), "red", "alice")
        # Far away, so only the id collides.
        with pytest.raises(ConflictError):
            registry.create("HOME!", "", at(10_000, 10_000), "blue", "dave")
        assert ledger.balance("dave").amount == 5

    def test_id_reusable_after_removal(self, registry: ZoneRegistry, ledger: Ledger) -> None:
        registry.create("Home", "", at(0, 0), "red", "alice")
        _, version = registry.get_versioned("home")  # type: ignore[misc]
        ledger.commit_delete("home", version)
        zone = registry.create("Home", "", at(0, 0), "red", "alice")
        assert zone.id == "home"

    def test_created_at_uses_clock(self, registry: ZoneRegistry) -> None:
        zone = registry.create("Home", "", at(0, 0), "red", "alice")
        assert zone.created_at.startswith("2023-11-14T22:13:20")
        assert zone.created_by == "alice"


class TestNonOverlapProperty:
    def test_pairwise_disjoint_after_mixed_sequence(
        self, registry: ZoneRegistry, ledger: Ledger
    ) -> None:
        ledger.deposit("alice", 100)
        accepted = rejected = 0
        for i, (x, z) in enumerate(itertools.product(range(0, 1200, 170), repeat=2)):
            try:
                registry.create(f"Zone {i}", "", at(x, z), "red", "alice")
                accepted += 1
            except OverlapError:
                rejected += 1
            existing = registry.list_all()
            if i % 7 == 6 and existing:
                victim = existing[0]
                _, version = registry.get_versioned(victim.id)  # type: ignore[misc]
                ledger.commit_delete(victim.id, version)

        zones = registry.list_all()
        assert accepted and rejected
        for a, b in itertools.combinations(zones, 2):
            assert not overlaps(a.corners, b.corners, 1), (a.id, b.id)


class TestLookups:
    def test_require_missing(self, registry: ZoneRegistry) -> None:
        with pytest.raises(NotFoundError):
            registry.require("atlantis")

    def test_list_by_owner_in_store_order(self, registry: ZoneRegistry) -> None:
        registry.create("B", "", at(0, 0), "red", "alice")
        registry.create("Camp", "", at(1000, 0), "blue", "dave")
        registry.create("A", "", at(2000, 0), "red", "alice")
        assert [z.id for z in registry.list_by_owner("red")] == ["b", "a"]
        assert [z.id for z in registry.list_by_owner("blue")] == ["camp"]

    def test_find_containing(self, registry: ZoneRegistry) -> None:
        registry.create("Home", "", at(100, 100), "red", "alice")
        found = registry.find_containing(at(228, 228, y=-30))
        assert found is not None and found.id == "home"
        assert registry.find_containing(at(229, 100)) is None

    def test_find_containing_first_match_on_violation(
        self, registry: ZoneRegistry, world: World
    ) -> None:
        first = registry.create("First", "", at(0, 0), "red", "alice")
        rogue = first.model_copy(update={"id": "rogue", "name": "Rogue"})
        world.store.set(("zones", "rogue"), rogue.to_record())
        assert registry.find_containing(at(1, 1)) == first

    def test_malformed_record_skipped(self, registry: ZoneRegistry, world: World) -> None:
        world.store.set(("zones", "junk"), {"id": "junk"})
        assert registry.list_all() == []
        assert registry.get("junk") is None


class TestUpdateSettings:
    def test_price_keeps_geometry(
        self, registry: ZoneRegistry, channel: RecordingChannel
    ) -> None:
        zone = registry.create("North Base", "", at(100, 100), "red", "alice")
        updated = registry.update_settings("north_base", "price", 50, "alice")
        assert updated.for_sale is True
        assert updated.price == 50
        assert updated.center == zone.center
        assert updated.corners == zone.corners
        assert registry.require("north_base") == updated
        assert channel.commands == []

    def test_price_zero_unlists(self, registry: ZoneRegistry) -> None:
        registry.create("Home", "", at(0, 0), "red", "alice")
        registry.update_settings("home", "price", "12", "alice")
        assert registry.update_settings("home", "Price", "0", "alice").for_sale is False

    def test_description(self, registry: ZoneRegistry) -> None:
        registry.create("Home", "", at(0, 0), "red", "alice")
        updated = registry.update_settings("home", "DESCRIPTION", "Keep out", "alice")
        assert updated.description == "Keep out"

    @pytest.mark.parametrize("value", ["-3", "abc", "1.5", True])
    def test_bad_price(self, registry: ZoneRegistry, value: object) -> None:
        registry.create("Home", "", at(0, 0), "red", "alice")
        with pytest.raises(ValidationError):
            registry.update_settings("home", "price", value, "alice")

    def test_unknown_setting(self, registry: ZoneRegistry) -> None:
        registry.create("Home", "", at(0, 0), "red", "alice")
        with pytest.raises(ValidationError, match="Valid settings"):
            registry.update_settings("home", "center", "0,0", "alice")

    def test_member_is_not_leader(self, registry: ZoneRegistry) -> None:
        registry.create("Home", "", at(0, 0), "red", "alice")
        with pytest.raises(AuthorizationError):
            registry.update_settings("home", "price", 5, "bob")

    def test_missing_zone(self, registry: ZoneRegistry) -> None:
        with pytest.raises(NotFoundError):
            registry.update_settings("nope", "price", 5, "alice")
