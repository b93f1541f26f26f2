"""SQLite engine, schema, and the SQL-backed transactional store."""

from zonectl.infrastructure.database.engine import create_db_engine, init_database
from zonectl.infrastructure.database.kv_store import SqlKvStore
from zonectl.infrastructure.database.schema import kv_entries, metadata

__all__ = [
    "SqlKvStore",
    "create_db_engine",
    "init_database",
    "kv_entries",
    "metadata",
]
