"""Races between concurrent writers on the optimistic commit path.

``RivalStore`` runs a rival operation just before the next commit it sees,
so the rival always wins and the original caller must observe a conflict
instead of overwriting it.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterator, Sequence

import pytest

from zonectl.config.settings import ZonectlSettings
from zonectl.domain.geometry import Position
from zonectl.domain.zone import Team
from zonectl.infrastructure.kv import Check, MemoryKvStore, Mutation
from zonectl.infrastructure.world import World
from zonectl.services.ledger import Ledger
from zonectl.services.teams import TeamDirectory
from zonectl.services.zones import ZoneService

WEST = Position(x=-2000, y=64, z=0)
EAST = Position(x=2000, y=64, z=0)


class RivalStore(MemoryKvStore):
    def __init__(self) -> None:
        super().__init__()
        self.rival: Callable[[], object] | None = None

    def atomic_commit(self, checks: Sequence[Check], mutations: Sequence[Mutation]) -> bool:
        rival, self.rival = self.rival, None
        if rival is not None:
            rival()
        return super().atomic_commit(checks, mutations)


@pytest.fixture
def store() -> RivalStore:
    return RivalStore()


@pytest.fixture
def rival_world(settings: ZonectlSettings, store: RivalStore) -> Iterator[World]:
    world = World(settings, store=store, sleep=lambda _: None)
    TeamDirectory(store).register(Team(id="red", name="Red", leader="alice"))
    try:
        yield world
    finally:
        world.close()


def fund(world: World, amount: int) -> Ledger:
    ledger = Ledger(world.store)
    ledger.deposit("alice", amount)
    return ledger


class TestCreateRaces:
    def test_one_coin_two_claims(self, rival_world: World, store: RivalStore) -> None:
        ledger = fund(rival_world, 1)
        service = ZoneService(rival_world)
        store.rival = lambda: service.create_zone("West Camp", "", "alice", at=WEST)

        result = service.create_zone("East Camp", "", "alice", at=EAST)

        assert result.error is not None
        assert result.error.code == "CONFLICT"
        assert [z.id for z in service.registry.list_all()] == ["west_camp"]
        assert ledger.balance("alice").amount == 0

    def test_same_id(self, rival_world: World, store: RivalStore) -> None:
        ledger = fund(rival_world, 2)
        service = ZoneService(rival_world)
        store.rival = lambda: service.create_zone("Camp", "", "alice", at=WEST)

        result = service.create_zone("Camp", "", "alice", at=EAST)

        assert result.error is not None
        assert result.error.code == "CONFLICT"
        zone = service.registry.require("camp")
        assert zone.center == WEST
        assert ledger.balance("alice").amount == 1

    def test_threads_never_overspend(self, settings: ZonectlSettings) -> None:
        world = World(settings, store=MemoryKvStore(), sleep=lambda _: None)
        TeamDirectory(world.store).register(Team(id="red", name="Red", leader="alice"))
        ledger = fund(world, 3)
        service = ZoneService(world)
        barrier = threading.Barrier(8)
        codes: list[str] = []

        def claim(n: int) -> None:
            barrier.wait()
            result = service.create_zone(
                f"Camp {n}", "", "alice", at=Position(x=n * 1000, y=64, z=0)
            )
            codes.append("OK" if result.ok else str(result.error_code))

        threads = [threading.Thread(target=claim, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        world.close()

        created = len(service.registry.list_all())
        assert codes.count("OK") == created
        assert set(codes) <= {"OK", "CONFLICT", "INSUFFICIENT_FUNDS"}
        assert ledger.balance("alice").amount == 3 - created
        assert created >= 1


class TestUpdateRaces:
    def test_concurrent_modify(self, rival_world: World, store: RivalStore) -> None:
        fund(rival_world, 1)
        service = ZoneService(rival_world)
        service.create_zone("Camp", "", "alice", at=WEST)
        store.rival = lambda: service.modify_zone("camp", "description", "rival", "alice")

        result = service.modify_zone("camp", "price", 10, "alice")

        assert result.error is not None
        assert result.error.code == "CONFLICT"
        zone = service.registry.require("camp")
        assert (zone.description, zone.price) == ("rival", 0)

    def test_modify_during_delete(self, rival_world: World, store: RivalStore) -> None:
        fund(rival_world, 1)
        service = ZoneService(rival_world)
        service.create_zone("Camp", "", "alice", at=WEST)
        service.request_delete("camp", "alice")
        store.rival = lambda: service.modify_zone("camp", "price", 5, "alice")

        result = service.confirm_delete("camp", "alice")

        assert result.error is not None
        assert result.error.code == "CONFLICT"
        assert service.registry.require("camp").price == 5
        assert service.reapply_protection("camp", "alice").ok
