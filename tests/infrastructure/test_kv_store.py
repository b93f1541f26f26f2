"""Contract tests shared by the memory and SQLite stores."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from zonectl.infrastructure.database import SqlKvStore, init_database
from zonectl.infrastructure.kv import Check, Delete, KvStore, MemoryKvStore, Put, encode_key


@pytest.fixture(params=["memory", "sqlite"])
def store(request: pytest.FixtureRequest, tmp_path: Path) -> Iterator[KvStore]:
    if request.param == "memory":
        s: KvStore = MemoryKvStore()
    else:
        s = SqlKvStore(init_database(tmp_path / "kv.db"))
    try:
        yield s
    finally:
        s.close()


class TestBasicOperations:
    def test_absent_key(self, store: KvStore) -> None:
        entry = store.get(("zones", "nowhere"))
        assert entry.value is None
        assert entry.version is None
        assert not entry.exists

    def test_set_then_get(self, store: KvStore) -> None:
        version = store.set(("zones", "a"), {"name": "A", "n": [1, 2]})
        entry = store.get(("zones", "a"))
        assert entry.value == {"name": "A", "n": [1, 2]}
        assert entry.version == version

    def test_every_write_gets_a_new_version(self, store: KvStore) -> None:
        v1 = store.set(("k",), 1)
        v2 = store.set(("k",), 1)
        assert v1 != v2

    def test_delete(self, store: KvStore) -> None:
        store.set(("k",), 1)
        store.delete(("k",))
        assert not store.get(("k",)).exists

    def test_delete_missing_is_noop(self, store: KvStore) -> None:
        store.delete(("missing",))

    def test_list_by_prefix_in_insertion_order(self, store: KvStore) -> None:
        store.set(("zones", "b"), 2)
        store.set(("zones", "a"), 1)
        store.set(("zonesx", "c"), 3)
        store.set(("teams", "red"), {})
        store.set(("zones", "b"), 22)  # update keeps position
        entries = store.list(("zones",))
        assert [e.key for e in entries] == [("zones", "b"), ("zones", "a")]
        assert [e.value for e in entries] == [22, 1]

    def test_values_are_copies(self, store: KvStore) -> None:
        value = {"members": ["bob"]}
        store.set(("teams", "red"), value)
        value["members"].append("mallory")
        fetched = store.get(("teams", "red")).value
        fetched["members"].append("eve")
        assert store.get(("teams", "red")).value == {"members": ["bob"]}


class TestAtomicCommit:
    def test_absent_check_succeeds_then_fails(self, store: KvStore) -> None:
        assert store.atomic_commit([Check(("zones", "a"), None)], [Put(("zones", "a"), 1)])
        assert not store.atomic_commit([Check(("zones", "a"), None)], [Put(("zones", "a"), 2)])
        assert store.get(("zones", "a")).value == 1

    def test_version_check(self, store: KvStore) -> None:
        version = store.set(("bal", "alice"), 5)
        assert store.atomic_commit([Check(("bal", "alice"), version)], [Put(("bal", "alice"), 4)])
        assert not store.atomic_commit(
            [Check(("bal", "alice"), version)], [Put(("bal", "alice"), 3)]
        )
        assert store.get(("bal", "alice")).value == 4

    def test_failed_check_applies_nothing(self, store: KvStore) -> None:
        store.set(("taken",), "x")
        ok = store.atomic_commit(
            [Check(("free",), None), Check(("taken",), None)],
            [Put(("free",), 1), Delete(("taken",))],
        )
        assert not ok
        assert not store.get(("free",)).exists
        assert store.get(("taken",)).exists

    def test_mixed_mutations(self, store: KvStore) -> None:
        version = store.set(("zones", "a"), 1)
        store.set(("pending", "alice", "a"), 2)
        assert store.atomic_commit(
            [Check(("zones", "a"), version)],
            [Delete(("zones", "a")), Delete(("pending", "alice", "a")), Put(("log",), "gone")],
        )
        assert not store.get(("zones", "a")).exists
        assert not store.get(("pending", "alice", "a")).exists
        assert store.get(("log",)).value == "gone"

    def test_recreated_key_never_matches_old_version(self, store: KvStore) -> None:
        old = store.set(("zones", "a"), 1)
        store.delete(("zones", "a"))
        store.set(("zones", "a"), 1)
        assert not store.atomic_commit([Check(("zones", "a"), old)], [Delete(("zones", "a"))])


class TestSqlPersistence:
    def test_survives_reopen(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "zonectl.db"
        first = SqlKvStore(init_database(path))
        version = first.set(("zones", "a"), {"name": "A"})
        first.close()

        second = SqlKvStore(init_database(path))
        try:
            entry = second.get(("zones", "a"))
            assert entry.value == {"name": "A"}
            assert entry.version == version
        finally:
            second.close()


class TestEncodeKey:
    @pytest.mark.parametrize("key", [(), ("",), ("a/b",), ("zones", "")])
    def test_rejects_bad_keys(self, key: tuple[str, ...]) -> None:
        with pytest.raises(ValueError):
            encode_key(key)

    def test_joins_segments(self) -> None:
        assert encode_key(("economy", "balances", "alice")) == "economy/balances/alice"
