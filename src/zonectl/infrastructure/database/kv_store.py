"""SQLite-backed implementation of :class:`~zonectl.infrastructure.kv.KvStore`.

Values are stored as JSON text next to a random version token. Each
:meth:`SqlKvStore.atomic_commit` runs its checks and mutations inside one
``BEGIN IMMEDIATE`` transaction, so two processes racing on the same key
serialize on the SQLite write lock and exactly one sees its check hold.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, func, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from zonectl.infrastructure.database.schema import kv_entries
from zonectl.infrastructure.kv import (
    SEPARATOR,
    Check,
    Entry,
    Key,
    Mutation,
    Put,
    decode_key,
    encode_key,
    new_version,
)

if TYPE_CHECKING:
    from sqlalchemy import Connection
    from sqlalchemy.engine import Engine


class _CheckFailed(Exception):
    """Internal signal that rolls back an atomic commit."""


class SqlKvStore:
    """Versioned key-value store over a single SQLAlchemy table."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    @property
    def engine(self) -> Engine:
        return self._engine

    def get(self, key: Key) -> Entry:
        raw = encode_key(key)
        with self._engine.connect() as conn:
            row = conn.execute(
                select(kv_entries.c.value, kv_entries.c.version).where(kv_entries.c.key == raw)
            ).first()
        if row is None:
            return Entry(key=key, value=None, version=None)
        return Entry(key=key, value=json.loads(row.value), version=row.version)

    def set(self, key: Key, value: Any) -> str:
        raw = encode_key(key)
        version = new_version()
        with self._engine.begin() as conn:
            self._put(conn, raw, value, version)
        return version

    def delete(self, key: Key) -> None:
        raw = encode_key(key)
        with self._engine.begin() as conn:
            conn.execute(delete(kv_entries).where(kv_entries.c.key == raw))

    def list(self, prefix: Key) -> list[Entry]:
        start = encode_key(prefix) + SEPARATOR
        with self._engine.connect() as conn:
            rows = conn.execute(
                select(kv_entries.c.key, kv_entries.c.value, kv_entries.c.version)
                .where(func.substr(kv_entries.c.key, 1, len(start)) == start)
                .order_by(kv_entries.c.id)
            ).fetchall()
        return [
            Entry(key=decode_key(row.key), value=json.loads(row.value), version=row.version)
            for row in rows
        ]

    def atomic_commit(self, checks: Sequence[Check], mutations: Sequence[Mutation]) -> bool:
        encoded_checks = [(encode_key(c.key), c.version) for c in checks]
        try:
            with self._engine.begin() as conn:
                for raw, expected in encoded_checks:
                    current = conn.execute(
                        select(kv_entries.c.version).where(kv_entries.c.key == raw)
                    ).scalar_one_or_none()
                    if current != expected:
                        raise _CheckFailed(raw)
                for mutation in mutations:
                    raw = encode_key(mutation.key)
                    if isinstance(mutation, Put):
                        self._put(conn, raw, mutation.value, new_version())
                    else:
                        conn.execute(delete(kv_entries).where(kv_entries.c.key == raw))
        except _CheckFailed:
            return False
        return True

    def close(self) -> None:
        self._engine.dispose()

    @staticmethod
    def _put(conn: Connection, raw: str, value: Any, version: str) -> None:
        """Upsert one entry, keeping its original insertion id."""
        stmt = sqlite_insert(kv_entries).values(
            key=raw,
            value=json.dumps(value),
            version=version,
            modified=datetime.now(UTC).isoformat(),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[kv_entries.c.key],
            set_={
                "value": stmt.excluded.value,
                "version": stmt.excluded.version,
                "modified": stmt.excluded.modified,
            },
        )
        conn.execute(stmt)
