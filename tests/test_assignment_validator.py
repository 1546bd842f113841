"""
Tests for the AssignmentValidator: precondition order, input coercion,
the capacity boundary and the concurrent over-allocation race.
"""

import threading
from datetime import date, datetime, timedelta, timezone

import pytest

from staffing.allocation import AllocationLedger, AssignmentValidator
from staffing.errors import CapacityExceeded, NotFound, ValidationError


def propose(validator, pct, engineer_id="eng-alice", project_id="proj-billing", **kw):
    return validator.propose_assignment(
        engineer_id=engineer_id,
        project_id=project_id,
        allocation_percentage=pct,
        start_date=kw.get("start_date", "2024-01-01"),
        end_date=kw.get("end_date", "2024-03-31"),
        role=kw.get("role"),
    )


# =============================================================================
# Documented scenarios
# =============================================================================


class TestScenarios:
    def test_capacity_rejection_leaves_state_unchanged(self, team, validator, queries):
        before = queries.engineer_capacity("eng-alice")
        assert before["available_capacity"] == 100
        assert before["status"] == "Available"

        propose(validator, 80)
        after = queries.engineer_capacity("eng-alice")
        assert after["total_allocated"] == 80
        assert after["available_capacity"] == 20
        assert after["utilization_percent"] == 80.0
        assert after["status"] == "High Load"

        with pytest.raises(CapacityExceeded) as exc:
            propose(validator, 25, project_id="proj-search")
        assert exc.value.max_allowed == 20
        assert queries.engineer_capacity("eng-alice")["total_allocated"] == 80

    def test_boundary_twenty_accepted_twenty_one_rejected(self, team, validator, ledger):
        propose(validator, 80)
        with pytest.raises(CapacityExceeded) as exc:
            propose(validator, 21, project_id="proj-search")
        assert exc.value.message == "Exceeds available capacity! Maximum: 20%"
        assert ledger.total_allocated("eng-alice") == 80

        propose(validator, 20, project_id="proj-search")
        assert ledger.total_allocated("eng-alice") == 100

    def test_simultaneous_requests_only_one_wins(self, team, store):
        """Two requests of 15% against 20% available, released together."""
        for _ in range(3):
            ledger = AllocationLedger(store)
            AssignmentValidator(ledger).propose_assignment(
                "eng-carol", "proj-app", 80, "2024-01-01", "2024-06-30"
            )

            barrier = threading.Barrier(2)
            accepted, rejected = [], []

            def submit(v):
                barrier.wait()
                try:
                    accepted.append(propose(v, 15, engineer_id="eng-carol", project_id="proj-app"))
                except CapacityExceeded as e:
                    rejected.append(e)

            # One validator per thread, sharing the ledger as API requests do
            threads = [
                threading.Thread(target=submit, args=(AssignmentValidator(ledger),))
                for _ in range(2)
            ]
            for t in threads:
                t.start()
            for t in threads:
                t.join(timeout=60)

            assert len(accepted) == 1
            assert len(rejected) == 1
            assert rejected[0].max_allowed == 5
            assert ledger.total_allocated("eng-carol") == 95

            ledger.remove_project_assignments("proj-app")


# =============================================================================
# Precondition order
# =============================================================================


class TestPreconditionOrder:
    def test_missing_engineer_reported_before_bad_percentage(self, team, validator):
        with pytest.raises(NotFound) as exc:
            propose(validator, 500, engineer_id="eng-ghost")
        assert exc.value.entity == "engineer"

    def test_missing_project(self, team, validator):
        with pytest.raises(NotFound) as exc:
            propose(validator, 10, project_id="proj-ghost")
        assert exc.value.entity == "project"

    def test_range_checked_before_capacity(self, team, validator):
        # Bob only has 50, but 101 is out of range first
        with pytest.raises(ValidationError):
            propose(validator, 101, engineer_id="eng-bob")

    @pytest.mark.parametrize("pct", [0, -5, 101])
    def test_out_of_range(self, team, validator, pct):
        with pytest.raises(ValidationError) as exc:
            propose(validator, pct)
        assert exc.value.details["field"] == "allocationPercentage"

    def test_dates_checked_before_capacity(self, team, validator):
        propose(validator, 100)
        with pytest.raises(ValidationError):
            propose(validator, 10, start_date="2024-05-01", end_date="2024-04-01")

    def test_same_day_window_allowed(self, team, validator):
        a = propose(validator, 10, start_date="2024-05-01", end_date="2024-05-01")
        assert a.start_date == a.end_date

    def test_capacity_uses_engineer_max(self, team, validator):
        with pytest.raises(CapacityExceeded) as exc:
            propose(validator, 60, engineer_id="eng-bob")
        assert exc.value.max_allowed == 50


# =============================================================================
# Input coercion
# =============================================================================


class TestInputCoercion:
    def test_numeric_string_percentage(self, team, validator):
        assert propose(validator, "30").allocation_percentage == 30

    def test_integral_float_percentage(self, team, validator):
        assert propose(validator, 30.0).allocation_percentage == 30

    @pytest.mark.parametrize("pct", [30.5, "thirty", True, None, ""])
    def test_unreadable_percentage(self, team, validator, pct):
        with pytest.raises(ValidationError):
            propose(validator, pct)

    def test_unreadable_date(self, team, validator):
        with pytest.raises(ValidationError) as exc:
            propose(validator, 10, start_date="next tuesday")
        assert exc.value.details["field"] == "startDate"

    @pytest.mark.parametrize(
        "end",
        [
            "9999-12-31T23:00:00-05:00",
            datetime(9999, 12, 31, 23, tzinfo=timezone(timedelta(hours=-5))),
        ],
    )
    def test_date_overflowing_utc_is_refused(self, team, validator, ledger, end):
        with pytest.raises(ValidationError) as exc:
            propose(validator, 10, end_date=end)
        assert exc.value.details["field"] == "endDate"
        assert ledger.total_allocated("eng-alice") == 0

    def test_date_objects(self, team, validator):
        a = propose(validator, 10, start_date=date(2024, 1, 1), end_date=date(2024, 2, 1))
        assert a.start_date == "2024-01-01"

    def test_missing_ids(self, team, validator):
        with pytest.raises(ValidationError):
            propose(validator, 10, engineer_id="  ")

    def test_default_and_custom_role(self, team, validator):
        assert propose(validator, 10).role == "Developer"
        assert propose(validator, 10, role="  QA ").role == "QA"


# =============================================================================
# Removal
# =============================================================================


class TestUnassign:
    def test_unassign_restores_capacity_exactly(self, team, validator, ledger):
        propose(validator, 35)
        before = ledger.total_allocated("eng-alice")
        propose(validator, 40, project_id="proj-search")
        validator.propose_unassign("proj-search", "eng-alice")
        assert ledger.total_allocated("eng-alice") == before

    def test_unassign_removes_most_recent_of_duplicates(self, team, validator, ledger):
        propose(validator, 10)
        propose(validator, 20)
        removed = validator.propose_unassign("proj-billing", "eng-alice")
        assert removed.allocation_percentage == 20
        assert ledger.total_allocated("eng-alice") == 10

    def test_unassign_without_assignment(self, team, validator):
        with pytest.raises(NotFound) as exc:
            validator.propose_unassign("proj-billing", "eng-alice")
        assert exc.value.entity == "assignment"

    def test_remove_by_id(self, team, validator, ledger):
        a = propose(validator, 25)
        validator.propose_removal(a.id)
        assert ledger.get(a.id) is None
