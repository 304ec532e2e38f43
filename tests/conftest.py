"""
Pytest configuration and shared fixtures

Fun fact: Files named conftest.py are discovered automatically by pytest,
and their fixtures are available to every test in the same directory and
below - no imports needed!
"""

import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

import pytest

from guardianship_engine.compliance.engine import ComplianceEngine
from guardianship_engine.guardianship.repository import GuardianshipRepository
from guardianship_engine.kernel.event_store import SQLiteEventStore
from guardianship_engine.kernel.statutory_policy import StatutoryPolicy
from guardianship_engine.kernel.time import TestTimeProvider
from guardianship_engine.service import GuardianshipService


@pytest.fixture
def temp_db() -> Iterator[Path]:
    """Provide a temporary database file that's cleaned up after test"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "guardianship.db"


@pytest.fixture
def event_store(temp_db: Path) -> SQLiteEventStore:
    """Provide a fresh event store for each test"""
    return SQLiteEventStore(temp_db)


@pytest.fixture
def test_time() -> TestTimeProvider:
    """
    Provide a controllable time provider for deterministic tests

    Default time: 2025-01-15 12:00:00 UTC. Guardianships created in tests are
    appointed at this instant, so the first S.73 report falls due on
    2026-01-15 12:00 UTC.
    """
    return TestTimeProvider(datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def policy() -> StatutoryPolicy:
    """Provide the default statutory policy"""
    return StatutoryPolicy()


@pytest.fixture
def engine(test_time: TestTimeProvider, policy: StatutoryPolicy) -> ComplianceEngine:
    return ComplianceEngine(test_time, policy)


@pytest.fixture
def repository(
    event_store: SQLiteEventStore, test_time: TestTimeProvider, policy: StatutoryPolicy
) -> GuardianshipRepository:
    return GuardianshipRepository(event_store, test_time, policy)


@pytest.fixture
def service(
    temp_db: Path, test_time: TestTimeProvider, policy: StatutoryPolicy
) -> GuardianshipService:
    return GuardianshipService(temp_db, policy=policy, time_provider=test_time)
