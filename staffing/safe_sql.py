"""
Centralized SQL construction with validated identifiers.

All dynamic SQL assembly lives here. Table and column names are validated
against _SAFE_IDENTIFIER_RE before interpolation. Values are always passed
as parameterized ? and never interpolated.

SQLite does not support parameterized identifiers (? works only for values,
not table/column names). Every f-string in this file is a validated-identifier
interpolation, not a user-input injection risk.
"""

# ruff: noqa: S608: all identifiers validated via _validate() before interpolation.

from __future__ import annotations

import re

_SAFE_IDENTIFIER_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


def _validate(name: str) -> str:
    """Validate that *name* is a safe SQL identifier.

    Returns the name unchanged if valid; raises ValueError otherwise.
    """
    if not _SAFE_IDENTIFIER_RE.match(name):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return name


# ────────────────────────────────────────────────────────────
# PRAGMA helpers
# ────────────────────────────────────────────────────────────


def pragma_table_info(table: str) -> str:
    """PRAGMA table_info for a validated table name."""
    return f"PRAGMA table_info([{_validate(table)}])"


def pragma_user_version_set(version: int) -> str:
    """PRAGMA user_version = N with int validation."""
    if not isinstance(version, int) or version < 0:
        raise ValueError(f"Invalid schema version: {version!r}")
    return f"PRAGMA user_version = {version}"


# ────────────────────────────────────────────────────────────
# DML: SELECT, INSERT, UPDATE, DELETE, COUNT
# ────────────────────────────────────────────────────────────


def select(
    table: str,
    columns: str = "*",
    where: str | None = None,
    order_by: str | None = None,
) -> str:
    """Build SELECT with validated table name.

    *where* is a raw WHERE clause without the keyword (e.g. ``"id = ?"``)
    and must use ``?`` for all values.
    """
    sql = f"SELECT {columns} FROM {_validate(table)}"
    if where:
        sql += f" WHERE {where}"
    if order_by:
        sql += f" ORDER BY {order_by}"
    return sql


def insert(table: str, columns: list[str]) -> str:
    """Build INSERT with validated table+column names."""
    _validate(table)
    for col in columns:
        _validate(col)
    cols = ",".join(columns)
    placeholders = ",".join(["?" for _ in columns])
    return f"INSERT INTO {table} ({cols}) VALUES ({placeholders})"


def update(table: str, set_columns: list[str], where: str = "id = ?") -> str:
    """Build UPDATE SET with validated table+column names."""
    _validate(table)
    for col in set_columns:
        _validate(col)
    sets = ",".join(f"{col} = ?" for col in set_columns)
    return f"UPDATE {table} SET {sets} WHERE {where}"


def delete(table: str, where: str = "id = ?") -> str:
    """Build DELETE with validated table name."""
    return f"DELETE FROM {_validate(table)} WHERE {where}"


# ────────────────────────────────────────────────────────────
# DDL
# ────────────────────────────────────────────────────────────


def alter_add_column(table: str, column: str, column_type: str) -> str:
    """Build ALTER TABLE ADD COLUMN with validated identifiers."""
    _validate(table)
    _validate(column)
    # column_type comes from the schema declaration, not user input
    return f"ALTER TABLE [{table}] ADD COLUMN [{column}] {column_type}"


def create_index(name: str, table: str, columns: str, where: str | None = None) -> str:
    """Build CREATE INDEX IF NOT EXISTS from a schema declaration."""
    where_clause = f" WHERE {where}" if where else ""
    return (
        f"CREATE INDEX IF NOT EXISTS [{_validate(name)}] "
        f"ON [{_validate(table)}]({columns}){where_clause}"
    )


# ────────────────────────────────────────────────────────────
# Helpers
# ────────────────────────────────────────────────────────────


def where_and(conditions: list[str]) -> str:
    """Join conditions with AND. Returns empty string if no conditions."""
    if not conditions:
        return ""
    return " AND ".join(conditions)
