"""
State Store - durable storage for engineers, projects and assignments.
Every component reads from and writes to this single SQLite file.
"""

import json
import logging
import sqlite3
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from staffing import db as db_module
from staffing import safe_sql

logger = logging.getLogger(__name__)


def _encode(value: Any) -> Any:
    return json.dumps(value) if isinstance(value, dict | list) else value


class StateStore:
    """
    SQLite-backed store. Each call opens its own connection so the store
    can be shared between threads; write transactions take the database
    write lock up front (BEGIN IMMEDIATE).
    """

    def __init__(self, db_path: str | Path | None = None):
        self.db_path = str(db_path or db_module.get_db_path())
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        logger.info("StateStore initializing with DB: %s", self.db_path)
        db_module.run_startup_migrations(self.db_path)

    @contextmanager
    def _get_conn(self) -> Generator[sqlite3.Connection, None, None]:
        """Autocommitting connection context."""
        conn = db_module.connect(self.db_path)
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Serializable write transaction.

        Reads made on the yielded connection see every commit that finished
        before the transaction began, and no other writer can commit until
        this one ends. Any exception rolls everything back.
        """
        conn = db_module.connect(self.db_path)
        conn.isolation_level = None
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        finally:
            conn.close()

    # ==================== CRUD Operations ====================

    def insert(self, table: str, data: dict, conn: sqlite3.Connection | None = None) -> str:
        """Insert a row. Returns ID."""
        columns = list(data.keys())
        for col in columns:
            db_module.validate_identifier(col)
        values = [_encode(v) for v in data.values()]
        sql = safe_sql.insert(table, columns)

        if conn is not None:
            conn.execute(sql, values)
        else:
            with self._get_conn() as own:
                own.execute(sql, values)
        return data.get("id", "")

    def get(self, table: str, id: str, conn: sqlite3.Connection | None = None) -> dict | None:
        """Get a single row by ID."""
        sql = safe_sql.select(table, where="id = ?")
        if conn is not None:
            row = conn.execute(sql, [id]).fetchone()
            return dict(row) if row else None
        with self._get_conn() as own:
            row = own.execute(sql, [id]).fetchone()
            return dict(row) if row else None

    def update(self, table: str, id: str, data: dict, conn: sqlite3.Connection | None = None) -> bool:
        """Update a row."""
        if not data:
            return False

        values = [_encode(v) for v in data.values()]
        values.append(id)
        sql = safe_sql.update(table, list(data.keys()))

        if conn is not None:
            return conn.execute(sql, values).rowcount > 0
        with self._get_conn() as own:
            return own.execute(sql, values).rowcount > 0

    def delete(self, table: str, id: str, conn: sqlite3.Connection | None = None) -> bool:
        """Delete a row."""
        sql = safe_sql.delete(table)
        if conn is not None:
            return conn.execute(sql, [id]).rowcount > 0
        with self._get_conn() as own:
            return own.execute(sql, [id]).rowcount > 0

    def query(self, sql: str, params: list | None = None) -> list[dict]:
        """Execute raw query. Returns list of dicts."""
        with self._get_conn() as conn:
            rows = conn.execute(sql, params or []).fetchall()
            return [dict(row) for row in rows]


# Process-wide accessor
_store: StateStore | None = None


def get_store(db_path: str | Path | None = None) -> StateStore:
    """Get the process-wide state store, creating it on first use."""
    global _store
    if _store is None:
        _store = StateStore(db_path)
    return _store


def reset_store() -> None:
    """Forget the process-wide store (tests and CLI re-targeting)."""
    global _store
    _store = None
