"""
Test configuration: puts the repo root on sys.path and isolates every test
from the user's staffing home.

Each test that needs storage gets a fresh SQLite file from
tests/fixtures/fixture_db.py.
"""

import sys
from pathlib import Path

import pytest

# Add repo root to sys.path so tests can import staffing.*, staffing_api.*, cli.*
REPO_ROOT = Path(__file__).parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from staffing.allocation import AllocationLedger, AssignmentValidator  # noqa: E402
from staffing.entities import Registry  # noqa: E402
from staffing.queries import CapacityQueries  # noqa: E402
from staffing.state_store import StateStore, reset_store  # noqa: E402
from tests.fixtures import create_fixture_db, seed_team  # noqa: E402


# =============================================================================
# ISOLATION GUARD: never resolve the real ~/.staffing database
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    monkeypatch.setenv("STAFFING_HOME", str(tmp_path / "home"))
    monkeypatch.delenv("STAFFING_DB", raising=False)
    reset_store()
    yield
    reset_store()


# =============================================================================
# ENGINE FIXTURES
# =============================================================================


@pytest.fixture
def store(tmp_path):
    return StateStore(create_fixture_db(tmp_path / "staffing_test.db"))


@pytest.fixture
def ledger(store):
    return AllocationLedger(store)


@pytest.fixture
def registry(store, ledger):
    return Registry(store, ledger)


@pytest.fixture
def validator(ledger):
    return AssignmentValidator(ledger)


@pytest.fixture
def queries(registry):
    return CapacityQueries(registry)


@pytest.fixture
def team(registry):
    """Registry holding Alice (100), Bob (50), Carol (100) and three projects."""
    return seed_team(registry)


@pytest.fixture
def client(registry):
    """TestClient wired to the per-test registry."""
    from fastapi.testclient import TestClient

    from staffing_api.server import app, get_registry

    app.dependency_overrides[get_registry] = lambda: registry
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
