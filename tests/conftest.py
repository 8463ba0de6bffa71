"""
Pytest configuration and shared fixtures.

Service-level tests run against a real SQLite database file in a temporary
directory so transactions, constraints and locking behave as they do in
deployment. Repository tests mock the session instead.
"""

import pytest
from datetime import datetime, timedelta

from lifesprint.database import Database
from lifesprint.services.activities import ActivityDomainService
from lifesprint.services.containers import ContainerLifecycleService

# Configure pytest-asyncio
pytest_plugins = ('pytest_asyncio',)

OWNER = "user-alice"
OTHER_OWNER = "user-bob"


class FakeClock:
    """Deterministic clock for services; advance it explicitly."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def owner():
    return OWNER


@pytest.fixture
def other_owner():
    return OTHER_OWNER


@pytest.fixture
def clock():
    """Wednesday 2026-01-07 09:30 UTC."""
    return FakeClock(datetime(2026, 1, 7, 9, 30))


@pytest.fixture
async def database(tmp_path):
    """Fresh file-backed SQLite database with all tables created."""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'lifesprint.db'}")
    assert await db.initialize()
    yield db
    await db.close()


@pytest.fixture
def container_service(database, clock):
    return ContainerLifecycleService(db=database, clock=clock)


@pytest.fixture
def activity_service(database, clock, container_service):
    return ActivityDomainService(
        db=database,
        containers=container_service,
        clock=clock,
        default_container_kind="annual",
    )


@pytest.fixture
def sample_activity_data():
    """Sample create payload."""
    return {
        "title": "Ship LifeSprint v1",
        "description": "First public release",
        "activity_type": "project",
        "is_recurring": False,
        "recurrence": "none",
    }
