"""SQLAlchemy Core table definitions for the zonectl database.

A single versioned key-value table backs the transactional store. The
autoincrement ``id`` preserves insertion order for prefix listings; an
upsert keeps the original ``id`` so updates do not reorder entries.
"""

from __future__ import annotations

from sqlalchemy import Column, Integer, MetaData, Table, Text

metadata = MetaData()

kv_entries = Table(
    "kv_entries",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("key", Text, nullable=False, unique=True),
    Column("value", Text, nullable=False),  # JSON
    Column("version", Text, nullable=False),
    Column("modified", Text, nullable=False),
)
