"""Transactional key-value store contract and in-memory implementation.

Keys are tuples of string segments (``("zones", "north_base")``). Every
write stamps a fresh opaque version token; an :meth:`KvStore.atomic_commit`
applies its mutations only if every check still sees the version it
expects (``None`` meaning "key must be absent").

Version tokens are random, not counters, so a key that is deleted and
re-created never matches a version captured before the deletion.
"""

from __future__ import annotations

import copy
import threading
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol

Key = tuple[str, ...]

SEPARATOR = "/"


@dataclass(frozen=True)
class Entry:
    """A read result. ``version`` is None when the key is absent."""

    key: Key
    value: Any
    version: str | None

    @property
    def exists(self) -> bool:
        return self.version is not None


@dataclass(frozen=True)
class Check:
    """Precondition for an atomic commit."""

    key: Key
    version: str | None


@dataclass(frozen=True)
class Put:
    key: Key
    value: Any


@dataclass(frozen=True)
class Delete:
    key: Key


Mutation = Put | Delete


class KvStore(Protocol):
    """The store operations the zone core depends on."""

    def get(self, key: Key) -> Entry: ...

    def set(self, key: Key, value: Any) -> str: ...

    def delete(self, key: Key) -> None: ...

    def list(self, prefix: Key) -> list[Entry]: ...

    def atomic_commit(self, checks: Sequence[Check], mutations: Sequence[Mutation]) -> bool: ...

    def close(self) -> None: ...


def is_key_segment(value: object) -> bool:
    """Whether *value* can stand as one key segment (player names, ids).

    Services check caller-supplied names with this before building keys.
    """
    return isinstance(value, str) and bool(value) and SEPARATOR not in value


def encode_key(key: Key) -> str:
    """Join key segments into the flat storage form.

    Raises:
        ValueError: If the key is empty or a segment is empty or contains
            the separator.
    """
    if not key:
        msg = "key must have at least one segment"
        raise ValueError(msg)
    for segment in key:
        if not is_key_segment(segment):
            msg = f"invalid key segment: {segment!r}"
            raise ValueError(msg)
    return SEPARATOR.join(key)


def decode_key(raw: str) -> Key:
    return tuple(raw.split(SEPARATOR))


def new_version() -> str:
    return uuid.uuid4().hex


class MemoryKvStore:
    """Thread-safe in-process store. Iteration follows insertion order.

    Values are deep-copied on the way in and out so callers can never
    mutate stored state through an alias.
    """

    def __init__(self) -> None:
        self._data: dict[str, tuple[Any, str]] = {}
        self._lock = threading.RLock()

    def get(self, key: Key) -> Entry:
        raw = encode_key(key)
        with self._lock:
            stored = self._data.get(raw)
        if stored is None:
            return Entry(key=key, value=None, version=None)
        value, version = stored
        return Entry(key=key, value=copy.deepcopy(value), version=version)

    def set(self, key: Key, value: Any) -> str:
        raw = encode_key(key)
        version = new_version()
        with self._lock:
            self._data[raw] = (copy.deepcopy(value), version)
        return version

    def delete(self, key: Key) -> None:
        raw = encode_key(key)
        with self._lock:
            self._data.pop(raw, None)

    def list(self, prefix: Key) -> list[Entry]:
        start = encode_key(prefix) + SEPARATOR
        with self._lock:
            items = [(k, v) for k, v in self._data.items() if k.startswith(start)]
        return [
            Entry(key=decode_key(k), value=copy.deepcopy(value), version=version)
            for k, (value, version) in items
        ]

    def atomic_commit(self, checks: Sequence[Check], mutations: Sequence[Mutation]) -> bool:
        encoded_checks = [(encode_key(c.key), c.version) for c in checks]
        with self._lock:
            for raw, expected in encoded_checks:
                stored = self._data.get(raw)
                current = stored[1] if stored is not None else None
                if current != expected:
                    return False
            for mutation in mutations:
                raw = encode_key(mutation.key)
                if isinstance(mutation, Put):
                    self._data[raw] = (copy.deepcopy(mutation.value), new_version())
                else:
                    self._data.pop(raw, None)
        return True

    def close(self) -> None:
        """Nothing to release."""
