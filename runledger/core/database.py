from contextlib import contextmanager
from pathlib import Path
from typing import Iterator
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, Session, create_engine
import logging

logger = logging.getLogger(__name__)

# Additive migrations: (table, column, ddl). Applied only when the column is missing.
MIGRATIONS = [
    ("runs", "trace_id", "TEXT NOT NULL DEFAULT ''"),
    ("logs", "trace_id", "TEXT NOT NULL DEFAULT ''"),
    ("artifacts", "trace_id", "TEXT NOT NULL DEFAULT ''"),
    ("artifacts", "job_key", "TEXT NOT NULL DEFAULT ''"),
    ("artifacts", "input_hash", "TEXT NOT NULL DEFAULT ''"),
]


def create_store_engine(db_path: Path) -> Engine:
    # Ensure database directory exists
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    connect_args = {"check_same_thread": False}
    return create_engine(f"sqlite:///{db_path}", connect_args=connect_args)


def create_db_and_tables(engine: Engine) -> None:
    # Import models here to ensure they are registered with SQLModel metadata
    from runledger.models import Run, LogEntry, Artifact  # noqa: F401
    SQLModel.metadata.create_all(engine)

    # Lightweight migration: add new columns to existing tables
    _run_migrations(engine)


def _table_columns(conn, table: str) -> set[str]:
    rows = conn.execute(text(f"PRAGMA table_info({table})")).fetchall()
    return {row[1] for row in rows}


def _run_migrations(engine: Engine) -> list[str]:
    """Add missing columns to existing tables (SQLite compatible).

    Checks each table's columns first, so reopening a database never
    re-applies a migration and never fails on an already-current schema.

    Returns:
        The ``table.column`` names that were added.
    """
    applied = []
    with engine.begin() as conn:
        columns_by_table: dict[str, set[str]] = {}
        for table, column, col_type in MIGRATIONS:
            if table not in columns_by_table:
                columns_by_table[table] = _table_columns(conn, table)
            if column in columns_by_table[table]:
                continue
            logger.info(f"Adding {table}.{column} column...")
            conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {column} {col_type}"))
            columns_by_table[table].add(column)
            applied.append(f"{table}.{column}")
    return applied


class Store:
    """Embedded SQLite store holding the runs, logs and artifacts tables.

    One store per ledger instance. Every logical operation uses its own short
    session, so no transaction ever spans a job body's execution.
    """

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self.engine = create_store_engine(self.db_path)
        create_db_and_tables(self.engine)
        self._closed = False

    @contextmanager
    def session(self) -> Iterator[Session]:
        # expire_on_commit=False keeps returned rows readable after the session closes
        with Session(self.engine, expire_on_commit=False) as session:
            yield session

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if not self._closed:
            self.engine.dispose()
            self._closed = True
