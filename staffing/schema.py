"""
Declarative Schema Definition: the single source of truth.

Every table and index of the staffing database lives here. Nothing else
defines schema. The schema_engine reads this and converges any database
to match.

Adding a column = add one line here. The engine handles the rest.

Column definitions use CREATE TABLE syntax. The schema_engine knows how
to derive ALTER TABLE ADD COLUMN DDL (strips PK, adjusts NOT NULL, etc.).
"""

from collections import OrderedDict

# =============================================================================
# Schema version: bump when you change this file
# =============================================================================
SCHEMA_VERSION = 1

# =============================================================================
# Table Definitions
#
# Format: TABLES[name] = {"columns": [(col_name, col_ddl), ...]}
# =============================================================================

TABLES: dict[str, dict] = OrderedDict()

# ---------------------------------------------------------------------------
# engineers
# ---------------------------------------------------------------------------
TABLES["engineers"] = {
    "columns": [
        ("id", "TEXT PRIMARY KEY"),
        ("name", "TEXT NOT NULL"),
        ("email", "TEXT"),
        ("skills", "TEXT NOT NULL DEFAULT '[]'"),
        ("seniority", "TEXT NOT NULL DEFAULT 'mid'"),
        ("department", "TEXT"),
        ("max_capacity", "INTEGER NOT NULL DEFAULT 100 CHECK (max_capacity > 0)"),
        ("created_at", "TEXT NOT NULL DEFAULT (datetime('now'))"),
        ("updated_at", "TEXT NOT NULL DEFAULT (datetime('now'))"),
    ],
}

# ---------------------------------------------------------------------------
# projects
# ---------------------------------------------------------------------------
TABLES["projects"] = {
    "columns": [
        ("id", "TEXT PRIMARY KEY"),
        ("name", "TEXT NOT NULL"),
        ("description", "TEXT"),
        ("required_skills", "TEXT NOT NULL DEFAULT '[]'"),
        ("status", "TEXT NOT NULL DEFAULT 'planning'"),
        ("priority", "TEXT NOT NULL DEFAULT 'medium'"),
        ("team_size", "INTEGER NOT NULL DEFAULT 1"),
        ("start_date", "TEXT"),
        ("end_date", "TEXT"),
        ("manager_id", "TEXT"),
        ("created_at", "TEXT NOT NULL DEFAULT (datetime('now'))"),
        ("updated_at", "TEXT NOT NULL DEFAULT (datetime('now'))"),
    ],
}

# ---------------------------------------------------------------------------
# assignments: one durable record per commitment. Per-engineer totals are
# always recomputed from these rows, never stored.
# ---------------------------------------------------------------------------
TABLES["assignments"] = {
    "columns": [
        ("id", "TEXT PRIMARY KEY"),
        ("project_id", "TEXT NOT NULL REFERENCES projects(id)"),
        ("engineer_id", "TEXT NOT NULL REFERENCES engineers(id)"),
        (
            "allocation_percentage",
            "INTEGER NOT NULL CHECK (allocation_percentage BETWEEN 1 AND 100)",
        ),
        ("start_date", "TEXT NOT NULL"),
        ("end_date", "TEXT NOT NULL"),
        ("role", "TEXT NOT NULL DEFAULT 'Developer'"),
        ("created_at", "TEXT NOT NULL DEFAULT (datetime('now'))"),
    ],
}

# =============================================================================
# Indexes: (name, table, columns, partial WHERE or None)
# =============================================================================

INDEXES: list[tuple[str, str, str, str | None]] = [
    ("idx_assignments_engineer", "assignments", "engineer_id", None),
    ("idx_assignments_project", "assignments", "project_id", None),
    ("idx_assignments_pair", "assignments", "project_id, engineer_id", None),
    ("idx_projects_manager", "projects", "manager_id", None),
    ("idx_projects_status", "projects", "status", None),
    ("idx_engineers_department", "engineers", "department", None),
]
