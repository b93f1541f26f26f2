"""Database engine setup for SQLite with WAL mode.

SQLite is the default persistence layer for the transactional store: WAL
mode for concurrent readers, and every transaction opened with
``BEGIN IMMEDIATE`` so a version check and the writes that depend on it
hold the write lock together. The DB is stored at
``{root}/.zonectl/zonectl.db`` unless ``[store] path`` says otherwise.

SQLAlchemy Core (not ORM) is used: the store is a single table of
versioned JSON blobs with no object graph to manage.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Connection, Engine

from zonectl.infrastructure.database.schema import metadata


def create_db_engine(db_path: Path) -> Engine:
    """Create a SQLite engine with WAL mode and immediate transactions."""
    engine = create_engine(f"sqlite:///{db_path}", echo=False)

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn: Any, _: Any) -> None:
        # Disable pysqlite's implicit BEGIN; _begin_immediate emits our own.
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA busy_timeout=5000")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn: Connection) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def init_database(db_path: Path) -> Engine:
    """Initialize the zonectl database at *db_path*.

    Creates parent directories and all tables from :data:`schema.metadata`.
    Idempotent: safe to call on an existing database.
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = create_db_engine(db_path)
    metadata.create_all(engine)
    return engine
