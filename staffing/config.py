"""
Centralized configuration for the staffing engine.

All values that vary by deployment belong here.
Override via environment variables where marked.
"""

import os

# ============================================================
# Capacity rules
# ============================================================

DEFAULT_MAX_CAPACITY: int = 100
"""Capacity given to an engineer registered without an explicit maxCapacity."""

MIN_MAX_CAPACITY: int = 1
MAX_MAX_CAPACITY: int = 100
"""Bounds for an engineer's maxCapacity. Zero is refused so utilization is always defined."""

MIN_ALLOCATION: int = 1
MAX_ALLOCATION: int = 100
"""Bounds for a single assignment's allocationPercentage."""

DEFAULT_ROLE: str = "Developer"
"""Role label used when an assignment request carries none."""

SENIORITY_LEVELS: tuple[str, ...] = ("junior", "mid", "senior")
PROJECT_STATUSES: tuple[str, ...] = ("planning", "active", "completed", "on-hold")
PROJECT_PRIORITIES: tuple[str, ...] = ("low", "medium", "high")

AVAILABLE_RESOURCE_CEILING: float = 70.0
"""Team summary counts an engineer as an available resource at or below this utilization."""

# ============================================================
# Logging
# ============================================================

LOG_LEVEL: str = os.environ.get("STAFFING_LOG_LEVEL", "INFO")

_log_json = os.environ.get("STAFFING_LOG_JSON")
LOG_JSON: bool | None = None if _log_json is None else _log_json.lower() in ("1", "true", "yes")
"""JSON log lines. Unset means auto-detect (JSON when stderr is not a TTY)."""

# ============================================================
# API server
# ============================================================

API_HOST: str = os.environ.get("STAFFING_API_HOST", "127.0.0.1")
API_PORT: int = int(os.environ.get("STAFFING_API_PORT", "5000"))

CORS_ORIGINS: list[str] = [
    o.strip() for o in os.environ.get("STAFFING_CORS_ORIGINS", "*").split(",") if o.strip()
]
"""Comma-separated list of allowed origins; ``*`` allows all (dev default)."""
