"""
Timeline Projector - where an assignment sits in its date range.

All functions take (start, end, now) and are total for well-formed dates;
malformed or missing dates are refused by the AssignmentValidator before
they ever reach the ledger. A bare date means midnight UTC, and naive
datetimes are read as UTC.
"""

import math
from datetime import UTC, date, datetime, time, timedelta
from enum import StrEnum

COMPLETED = "Completed"
DUE_TODAY = "Due today"

_ONE_DAY = timedelta(days=1)


class AssignmentStatus(StrEnum):
    PENDING = "Pending"
    ACTIVE = "Active"
    COMPLETED = "Completed"


def to_utc_datetime(value: date | datetime | str) -> datetime:
    """Normalize a date, datetime or ISO string to an aware UTC datetime."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)
    return datetime.combine(value, time.min, tzinfo=UTC)


def _now(now: date | datetime | str | None) -> datetime:
    return to_utc_datetime(now) if now is not None else datetime.now(UTC)


def progress_percent(start, end, now=None) -> float:
    """
    Elapsed share of the assignment window.

    0 before start, 100 after end, linear in between (clamped to [0, 100]).
    """
    start_dt, end_dt, now_dt = to_utc_datetime(start), to_utc_datetime(end), _now(now)
    if now_dt < start_dt:
        return 0.0
    if now_dt > end_dt:
        return 100.0
    total = (end_dt - start_dt).total_seconds()
    if total <= 0:
        # zero-length window and now sits exactly on it
        return 100.0
    elapsed = (now_dt - start_dt).total_seconds()
    return min(100.0, max(0.0, elapsed / total * 100))


def days_remaining(end, now=None) -> int | str:
    """
    Whole days until end, rounded up.

    Returns "Completed" once the end has passed, "Due today" when the
    rounded difference is 0, otherwise the day count.
    """
    diff = to_utc_datetime(end) - _now(now)
    diff_days = math.ceil(diff / _ONE_DAY)
    if diff_days < 0:
        return COMPLETED
    if diff_days == 0:
        return DUE_TODAY
    return diff_days


def days_remaining_label(end, now=None) -> str:
    """days_remaining rendered for display ("5 days", "1 day", "Due today", "Completed")."""
    remaining = days_remaining(end, now)
    if isinstance(remaining, str):
        return remaining
    return f"{remaining} day" if remaining == 1 else f"{remaining} days"


def assignment_status(start, end, now=None) -> AssignmentStatus:
    """Derive status from the date range. Never stored; recompute per read."""
    start_dt, end_dt, now_dt = to_utc_datetime(start), to_utc_datetime(end), _now(now)
    if now_dt < start_dt:
        return AssignmentStatus.PENDING
    if now_dt > end_dt:
        return AssignmentStatus.COMPLETED
    return AssignmentStatus.ACTIVE
