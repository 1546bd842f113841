"""
Capacity Calculator - utilization and availability from raw totals.

Tracks:
- Available capacity (max - allocated, never negative)
- Utilization percentage (allocated / max)
- Load bucket and its display color

Everything here is a pure function of its arguments, so it is safe to call
from any thread and to recompute on every read.
"""

from dataclasses import dataclass
from enum import StrEnum

from staffing.errors import DivisionUndefined


class UtilizationBucket(StrEnum):
    OVERLOADED = "Overloaded"
    HIGH_LOAD = "High Load"
    MODERATE = "Moderate"
    AVAILABLE = "Available"


# Evaluated top to bottom; first threshold exceeded wins.
BUCKET_THRESHOLDS: list[tuple[float, UtilizationBucket]] = [
    (90, UtilizationBucket.OVERLOADED),
    (70, UtilizationBucket.HIGH_LOAD),
    (50, UtilizationBucket.MODERATE),
]

BUCKET_COLORS: dict[UtilizationBucket, str] = {
    UtilizationBucket.OVERLOADED: "#f44336",
    UtilizationBucket.HIGH_LOAD: "#ff9800",
    UtilizationBucket.MODERATE: "#2196f3",
    UtilizationBucket.AVAILABLE: "#4caf50",
}


@dataclass(frozen=True)
class CapacitySnapshot:
    max_capacity: int
    total_allocated: int
    available_capacity: int
    utilization_pct: float
    bucket: UtilizationBucket

    @property
    def color(self) -> str:
        return bucket_color(self.bucket)

    @property
    def is_overloaded(self) -> bool:
        return self.bucket is UtilizationBucket.OVERLOADED


def available_capacity(max_capacity: int, total_allocated: int) -> int:
    """Capacity left to allocate, clamped at 0."""
    return max(0, max_capacity - total_allocated)


def utilization_percent(total_allocated: int, max_capacity: int) -> float:
    """
    Share of max capacity already committed, as a percentage.

    Raises:
        DivisionUndefined: if max_capacity is 0
    """
    if max_capacity == 0:
        raise DivisionUndefined("Utilization is undefined for an engineer with maxCapacity 0")
    return total_allocated / max_capacity * 100


def utilization_bucket(percent: float) -> UtilizationBucket:
    """Load tier for a utilization percentage."""
    for threshold, bucket in BUCKET_THRESHOLDS:
        if percent > threshold:
            return bucket
    return UtilizationBucket.AVAILABLE


def bucket_color(bucket: UtilizationBucket) -> str:
    return BUCKET_COLORS[bucket]


def capacity_snapshot(max_capacity: int, total_allocated: int) -> CapacitySnapshot:
    """
    All derived capacity figures for one engineer, computed together so they
    can never disagree with each other.
    """
    pct = utilization_percent(total_allocated, max_capacity)
    return CapacitySnapshot(
        max_capacity=max_capacity,
        total_allocated=total_allocated,
        available_capacity=available_capacity(max_capacity, total_allocated),
        utilization_pct=pct,
        bucket=utilization_bucket(pct),
    )
