"""
Capacity Truth Module

Pure derivations over committed allocations: nothing here holds state.

Objects:
- CapacitySnapshot (max / allocated / available / utilization / bucket)
- AssignmentStatus (Pending / Active / Completed, derived from dates)

Invariants:
- available == max(0, max - allocated)
- utilization == allocated / max * 100, undefined for max == 0
- bucket thresholds: >90 Overloaded, >70 High Load, >50 Moderate, else Available
"""

from .calculator import (
    BUCKET_COLORS,
    CapacitySnapshot,
    UtilizationBucket,
    available_capacity,
    bucket_color,
    capacity_snapshot,
    utilization_bucket,
    utilization_percent,
)
from .timeline import (
    COMPLETED,
    DUE_TODAY,
    AssignmentStatus,
    assignment_status,
    days_remaining,
    days_remaining_label,
    progress_percent,
    to_utc_datetime,
)

__all__ = [
    "BUCKET_COLORS",
    "COMPLETED",
    "DUE_TODAY",
    "AssignmentStatus",
    "CapacitySnapshot",
    "UtilizationBucket",
    "assignment_status",
    "available_capacity",
    "bucket_color",
    "capacity_snapshot",
    "days_remaining",
    "days_remaining_label",
    "progress_percent",
    "to_utc_datetime",
    "utilization_bucket",
    "utilization_percent",
]
