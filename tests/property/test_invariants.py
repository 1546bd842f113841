"""
Property-based tests for core invariants using Hypothesis.

These drive the ledger and the pure calculators with random inputs:
- no sequence of assign/unassign operations pushes an engineer past maxCapacity
- removing an assignment restores exactly the capacity it took
- derived capacity figures always agree with each other
"""

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from staffing.allocation import AllocationLedger, AssignmentValidator
from staffing.capacity_truth import (
    UtilizationBucket,
    available_capacity,
    capacity_snapshot,
    progress_percent,
    utilization_bucket,
)
from staffing.entities import Registry
from staffing.errors import CapacityExceeded, ValidationError
from staffing.state_store import StateStore
from tests.fixtures import create_fixture_db

PROPERTY_SETTINGS = settings(
    max_examples=25,
    deadline=None,
    suppress_health_check=[HealthCheck.function_scoped_fixture],
)

# The autouse isolation fixture is function-scoped but holds no per-example state
PURE_SETTINGS = settings(suppress_health_check=[HealthCheck.function_scoped_fixture])


def fresh_validator(tmp_path_factory, max_capacity):
    store = StateStore(create_fixture_db(tmp_path_factory.mktemp("prop") / "p.db"))
    registry = Registry(store, AllocationLedger(store))
    registry.register_engineer("Prop", max_capacity=max_capacity, id="eng")
    for name in ("a", "b", "c"):
        registry.create_project(name, id=f"proj-{name}")
    return AssignmentValidator(registry.ledger), registry


# ============================================================================
# Ledger invariants
# ============================================================================

operations = st.lists(
    st.one_of(
        st.tuples(st.just("assign"), st.sampled_from("abc"), st.integers(-10, 120)),
        st.tuples(st.just("unassign"), st.sampled_from("abc"), st.just(0)),
    ),
    min_size=1,
    max_size=15,
)


@PROPERTY_SETTINGS
@given(max_capacity=st.integers(1, 100), ops=operations)
def test_total_never_exceeds_max_capacity(tmp_path_factory, max_capacity, ops):
    """Whatever is proposed, the committed total stays within maxCapacity."""
    validator, registry = fresh_validator(tmp_path_factory, max_capacity)
    ledger = registry.ledger
    expected = 0

    for op, project, pct in ops:
        if op == "assign":
            try:
                validator.propose_assignment("eng", f"proj-{project}", pct, "2024-01-01", "2024-02-01")
                expected += pct
            except (CapacityExceeded, ValidationError):
                pass
        else:
            found = ledger.find_assignment(f"proj-{project}", "eng")
            if found is not None:
                validator.propose_unassign(f"proj-{project}", "eng")
                expected -= found.allocation_percentage

        total = ledger.total_allocated("eng")
        assert total == expected
        assert 0 <= total <= max_capacity


@PROPERTY_SETTINGS
@given(first=st.integers(1, 60), second=st.integers(1, 40))
def test_assign_then_unassign_restores_capacity(tmp_path_factory, first, second):
    validator, registry = fresh_validator(tmp_path_factory, 100)
    validator.propose_assignment("eng", "proj-a", first, "2024-01-01", "2024-02-01")
    before = available_capacity(100, registry.ledger.total_allocated("eng"))

    validator.propose_assignment("eng", "proj-b", second, "2024-01-01", "2024-02-01")
    validator.propose_unassign("proj-b", "eng")

    assert available_capacity(100, registry.ledger.total_allocated("eng")) == before


# ============================================================================
# Pure derivations
# ============================================================================


@PURE_SETTINGS
@given(max_capacity=st.integers(1, 100), allocated=st.integers(0, 200))
def test_snapshot_figures_agree(max_capacity, allocated):
    snap = capacity_snapshot(max_capacity, allocated)
    assert snap.available_capacity == max(0, max_capacity - allocated)
    assert snap.bucket is utilization_bucket(snap.utilization_pct)
    if allocated <= max_capacity:
        assert snap.available_capacity + snap.total_allocated == max_capacity


@PURE_SETTINGS
@given(st.floats(0, 200, allow_nan=False), st.floats(0, 200, allow_nan=False))
def test_bucket_is_monotonic(a, b):
    order = [
        UtilizationBucket.AVAILABLE,
        UtilizationBucket.MODERATE,
        UtilizationBucket.HIGH_LOAD,
        UtilizationBucket.OVERLOADED,
    ]
    low, high = sorted((a, b))
    assert order.index(utilization_bucket(low)) <= order.index(utilization_bucket(high))


@PURE_SETTINGS
@given(st.integers(0, 400), st.integers(-50, 500))
def test_progress_is_clamped(length_days, offset_days):
    from datetime import date, timedelta

    start = date(2024, 1, 1)
    end = start + timedelta(days=length_days)
    now = start + timedelta(days=offset_days)
    assert 0.0 <= progress_percent(start, end, now) <= 100.0
