"""
Centralized Database Access for the staffing engine.

Single source of truth for:
- DB path resolution
- Connection factory
- Schema convergence (delegated to schema_engine)

Schema is declared in staffing/schema. Convergence logic lives in
staffing/schema_engine. This module wires them together.
"""

import logging
import re
import sqlite3
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from staffing import paths, schema, schema_engine

logger = logging.getLogger(__name__)

# ============================================================
# SQL IDENTIFIER VALIDATION
# ============================================================

_SAFE_IDENTIFIER_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


def validate_identifier(name: str) -> str:
    """Validate that *name* is a safe SQL identifier (table or column name).

    Returns the name unchanged if valid; raises ``ValueError`` otherwise.
    """
    if not _SAFE_IDENTIFIER_RE.match(name):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return name


# ============================================================
# DB PATH RESOLUTION
# ============================================================


def get_db_path() -> Path:
    """Get the canonical DB path (STAFFING_DB or ~/.staffing/data/staffing.db)."""
    return paths.db_path()


# ============================================================
# CONNECTION FACTORY
# ============================================================


def connect(db_path: str | Path, timeout: float = 30.0) -> sqlite3.Connection:
    """Open a connection with row factory and FK enforcement."""
    conn = sqlite3.connect(str(db_path), timeout=timeout)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys=ON")
    return conn


@contextmanager
def get_connection(db_path: str | Path | None = None) -> Generator[sqlite3.Connection, None, None]:
    """
    Get a database connection with proper setup.

    Usage:
        with get_connection() as conn:
            conn.execute(...)
    """
    path = Path(db_path) if db_path else get_db_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    conn = connect(path)
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()


def get_schema_version(conn: sqlite3.Connection) -> int:
    """Get current schema version from PRAGMA user_version."""
    return conn.execute("PRAGMA user_version").fetchone()[0]


def table_exists(conn: sqlite3.Connection, table: str) -> bool:
    cursor = conn.execute("SELECT name FROM sqlite_master WHERE type='table' AND name=?", (table,))
    return cursor.fetchone() is not None


# ============================================================
# STARTUP ENTRY POINT
# ============================================================


def run_startup_migrations(db_path: str | Path | None = None) -> dict:
    """
    Converge the schema at startup. Safe to call multiple times.
    """
    path = Path(db_path) if db_path else get_db_path()
    logger.info("Resolved DB path: %s (exists: %s)", path, path.exists())

    with get_connection(path) as conn:
        version_before = get_schema_version(conn)
        results = schema_engine.converge(conn)
        results["previous_version"] = version_before

        if results["tables_created"]:
            logger.info("Tables created: %s", results["tables_created"])
        if results["columns_added"]:
            logger.info("Columns added: %s", results["columns_added"])
        if results["errors"]:
            logger.warning("Convergence errors: %s", results["errors"])

        for critical in schema.TABLES:
            if not table_exists(conn, critical):
                logger.error("MISSING %s", critical)

        logger.info(
            "Schema version %s -> %s", version_before, results.get("schema_version")
        )
    return results
