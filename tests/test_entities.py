"""
Tests for the Registry: engineer and project records, capacity-safe
profile edits and cascading project deletion.
"""

import pytest

from staffing.errors import NotFound, ValidationError


def assign(registry, engineer_id, project_id, pct):
    from staffing.allocation import AssignmentValidator

    return AssignmentValidator(registry.ledger).propose_assignment(
        engineer_id, project_id, pct, "2024-01-01", "2024-06-30"
    )


class TestEngineers:
    def test_register_defaults(self, registry):
        eng = registry.register_engineer("  Dana ")
        assert eng.name == "Dana"
        assert eng.max_capacity == 100
        assert eng.seniority == "mid"
        assert registry.get_engineer(eng.id) == eng

    def test_skills_cleaned(self, registry):
        eng = registry.register_engineer("Dana", skills="python, sql,, python ")
        assert eng.skills == ["python", "sql"]
        assert registry.get_engineer(eng.id).skills == ["python", "sql"]

    @pytest.mark.parametrize("value", [0, 101, -1, True, "abc", 50.5, "101"])
    def test_max_capacity_bounds(self, registry, value):
        with pytest.raises(ValidationError) as exc:
            registry.register_engineer("Dana", max_capacity=value)
        assert exc.value.details["field"] == "maxCapacity"

    def test_name_required(self, registry):
        with pytest.raises(ValidationError):
            registry.register_engineer("   ")

    def test_unknown_seniority(self, registry):
        with pytest.raises(ValidationError):
            registry.register_engineer("Dana", seniority="principal")

    def test_find_and_list(self, team, registry):
        assert registry.find_engineer("alice").id == "eng-alice"
        assert registry.find_engineer("nobody") is None
        assert [e.name for e in registry.list_engineers()] == ["Alice", "Bob", "Carol"]
        assert [e.name for e in registry.list_engineers(department="Mobile")] == ["Carol"]

    def test_require_unknown(self, registry):
        with pytest.raises(NotFound) as exc:
            registry.require_engineer("eng-ghost")
        assert exc.value.to_dict() == {
            "message": "Engineer not found: eng-ghost",
            "error_code": "not_found",
            "entity": "engineer",
            "entityId": "eng-ghost",
        }


class TestUpdateEngineer:
    def test_profile_fields(self, team, registry):
        eng = registry.update_engineer("eng-bob", name="Robert", skills=["go", "rust"], department=None)
        assert eng.name == "Robert"
        assert eng.skills == ["go", "rust"]
        assert eng.department == "Platform"

    def test_raise_max_capacity(self, team, registry):
        assert registry.update_engineer("eng-bob", max_capacity=80).max_capacity == 80

    def test_lower_below_allocation_refused(self, team, registry):
        assign(registry, "eng-alice", "proj-billing", 60)
        with pytest.raises(ValidationError) as exc:
            registry.update_engineer("eng-alice", max_capacity=50)
        assert exc.value.details["minAllowed"] == 60
        assert registry.get_engineer("eng-alice").max_capacity == 100

    def test_lower_to_exact_allocation(self, team, registry):
        assign(registry, "eng-alice", "proj-billing", 60)
        assert registry.update_engineer("eng-alice", max_capacity=60).max_capacity == 60

    @pytest.mark.parametrize("value", ["80", 80.0, " 80 "])
    def test_max_capacity_accepts_numeric_forms(self, team, registry, value):
        assert registry.update_engineer("eng-bob", max_capacity=value).max_capacity == 80
        assert registry.register_engineer("Dana", max_capacity=value).max_capacity == 80

    def test_out_of_range_max_capacity(self, team, registry):
        with pytest.raises(ValidationError):
            registry.update_engineer("eng-alice", max_capacity=0)

    def test_unknown_field(self, team, registry):
        with pytest.raises(ValidationError):
            registry.update_engineer("eng-alice", salary=1)

    def test_unknown_engineer(self, registry):
        with pytest.raises(NotFound):
            registry.update_engineer("eng-ghost", name="x")


class TestProjects:
    def test_create_defaults(self, registry):
        proj = registry.create_project("Migration")
        assert proj.status == "planning"
        assert proj.priority == "medium"
        assert proj.team_size == 1
        assert registry.require_project(proj.id).name == "Migration"

    def test_dates_must_be_ordered(self, registry):
        with pytest.raises(ValidationError):
            registry.create_project("Migration", start_date="2024-05-01", end_date="2024-04-01")

    def test_unparsable_date(self, registry):
        with pytest.raises(ValidationError):
            registry.create_project("Migration", start_date="soon", end_date="2024-04-01")

    def test_date_overflowing_utc_is_refused(self, registry):
        with pytest.raises(ValidationError) as exc:
            registry.create_project(
                "Migration", start_date="2024-01-01", end_date="9999-12-31T23:00:00-05:00"
            )
        assert exc.value.details["field"] == "endDate"

    def test_invalid_status(self, registry):
        with pytest.raises(ValidationError):
            registry.create_project("Migration", status="done")

    def test_filters(self, team, registry):
        assert {p.name for p in registry.list_projects(manager_id="mgr-1")} == {"Billing", "Search"}
        assert [p.name for p in registry.list_projects(status="on-hold")] == ["Mobile App"]
        assert [p.name for p in registry.list_projects(priority="HIGH")] == ["Billing"]

    def test_search_over_skills_description_and_priority(self, team, registry):
        assert [p.name for p in registry.list_projects(search="elastic")] == ["Search"]
        assert [p.name for p in registry.list_projects(search="low")] == ["Mobile App"]
        assert [p.name for p in registry.list_projects(search="bill")] == ["Billing"]

    def test_stats(self, team, registry):
        assert registry.project_stats() == {
            "total": 3,
            "planning": 1,
            "active": 1,
            "completed": 0,
            "on_hold": 1,
        }
        assert registry.project_stats(manager_id="mgr-2")["total"] == 1

    def test_delete_releases_assignments(self, team, registry):
        assign(registry, "eng-alice", "proj-billing", 60)
        assign(registry, "eng-bob", "proj-billing", 20)
        assign(registry, "eng-alice", "proj-search", 10)

        removed = registry.delete_project("proj-billing")

        assert len(removed) == 2
        assert registry.get_project("proj-billing") is None
        assert registry.ledger.total_allocated("eng-alice") == 10
        assert registry.ledger.total_allocated("eng-bob") == 0

    def test_delete_unknown(self, registry):
        with pytest.raises(NotFound):
            registry.delete_project("proj-ghost")

    def test_assignment_count_follows_the_ledger(self, team, registry):
        assert registry.get_project("proj-billing").assignment_count == 0
        assign(registry, "eng-alice", "proj-billing", 30)
        assign(registry, "eng-bob", "proj-billing", 20)

        assert registry.get_project("proj-billing").assignment_count == 2
        assert registry.find_project("Billing").assignment_count == 2
        counts = {p.id: p.assignment_count for p in registry.list_projects()}
        assert counts == {"proj-billing": 2, "proj-search": 0, "proj-app": 0}

        registry.ledger.remove_assignment(registry.ledger.find_assignment("proj-billing", "eng-bob").id)
        assert registry.get_project("proj-billing").assignment_count == 1
