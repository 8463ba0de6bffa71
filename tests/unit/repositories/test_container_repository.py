"""
Unit tests for ContainerRepository.

Covers the savepoint-guarded insert, the find-or-create retry path and the
activity count aggregation.
"""

import pytest
from unittest.mock import AsyncMock, Mock, patch
from datetime import date, datetime

from sqlalchemy.exc import IntegrityError

from lifesprint.database.repositories.containers import ContainerRepository
from lifesprint.database.models import ContainerDB
from lifesprint.database.exceptions import DatabaseConstraintError, DatabaseOperationError

NOW = datetime(2026, 1, 7, 9, 30)


@pytest.fixture
def session():
    """Mocked async session with a savepoint context manager."""
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.add = Mock()

    savepoint = AsyncMock()
    savepoint.__aenter__ = AsyncMock(return_value=savepoint)
    savepoint.__aexit__ = AsyncMock(return_value=None)
    session.begin_nested = Mock(return_value=savepoint)

    return session


@pytest.fixture
def repo():
    return ContainerRepository()


@pytest.fixture
def sample_container():
    return ContainerDB(
        id=3,
        owner_id="user-alice",
        kind="annual",
        start_date=date(2026, 1, 1),
        end_date=date(2026, 12, 31),
        status="active",
        created_at=NOW,
    )


def scalar_result(value):
    result = Mock()
    result.scalar_one_or_none = Mock(return_value=value)
    return result


# ============================================================
# CREATE TESTS
# ============================================================

@pytest.mark.asyncio
async def test_create_inside_savepoint(repo, session):
    """Test containers are inserted active, inside a SAVEPOINT."""
    result = await repo.create(
        session, "user-alice", "weekly", date(2026, 1, 5), date(2026, 1, 11), NOW, comment="Launch week"
    )

    session.begin_nested.assert_called_once()
    session.flush.assert_called_once()
    added = session.add.call_args[0][0]
    assert added is result
    assert added.status == "active"
    assert added.kind == "weekly"
    assert added.start_date == date(2026, 1, 5)
    assert added.comment == "Launch week"


@pytest.mark.asyncio
async def test_create_duplicate_period(repo, session):
    """Test a uniqueness conflict maps to DatabaseConstraintError."""
    session.flush.side_effect = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))

    with pytest.raises(DatabaseConstraintError, match="already exists"):
        await repo.create(session, "user-alice", "annual", date(2026, 1, 1), date(2026, 12, 31), NOW)


# ============================================================
# GET OR CREATE TESTS
# ============================================================

@pytest.mark.asyncio
async def test_get_or_create_returns_existing(repo, session, sample_container):
    with patch.object(repo, "find_active_for_period", AsyncMock(return_value=sample_container)), \
         patch.object(repo, "create", AsyncMock()) as mock_create:
        container, created = await repo.get_or_create_active(
            session, "user-alice", "annual", date(2026, 1, 1), date(2026, 12, 31), NOW
        )

    assert container is sample_container
    assert created is False
    mock_create.assert_not_called()


@pytest.mark.asyncio
async def test_get_or_create_inserts_when_missing(repo, session, sample_container):
    with patch.object(repo, "find_active_for_period", AsyncMock(return_value=None)), \
         patch.object(repo, "create", AsyncMock(return_value=sample_container)):
        container, created = await repo.get_or_create_active(
            session, "user-alice", "annual", date(2026, 1, 1), date(2026, 12, 31), NOW
        )

    assert container is sample_container
    assert created is True


@pytest.mark.asyncio
async def test_get_or_create_rereads_after_lost_race(repo, session, sample_container):
    """Test a concurrent insert makes us re-read instead of failing."""
    find = AsyncMock(side_effect=[None, sample_container])
    create = AsyncMock(side_effect=DatabaseConstraintError("already exists"))

    with patch.object(repo, "find_active_for_period", find), patch.object(repo, "create", create):
        container, created = await repo.get_or_create_active(
            session, "user-alice", "annual", date(2026, 1, 1), date(2026, 12, 31), NOW
        )

    assert container is sample_container
    assert created is False
    assert find.call_count == 2
    create.assert_called_once()


@pytest.mark.asyncio
async def test_get_or_create_gives_up(repo, session):
    find = AsyncMock(return_value=None)
    create = AsyncMock(side_effect=DatabaseConstraintError("already exists"))

    with patch.object(repo, "find_active_for_period", find), \
         patch.object(repo, "create", create), \
         patch("lifesprint.database.repositories.containers.settings") as mock_settings:
        mock_settings.container_create_retries = 1
        with pytest.raises(DatabaseOperationError, match="Could not resolve"):
            await repo.get_or_create_active(
                session, "user-alice", "annual", date(2026, 1, 1), date(2026, 12, 31), NOW
            )

    assert create.call_count == 2


# ============================================================
# QUERY TESTS
# ============================================================

@pytest.mark.asyncio
async def test_get_by_id_for_update(repo, session, sample_container):
    session.execute.return_value = scalar_result(sample_container)

    result = await repo.get_by_id(session, "user-alice", 3, for_update=True)

    assert result is sample_container
    statement = session.execute.call_args[0][0]
    assert statement._for_update_arg is not None


@pytest.mark.asyncio
async def test_get_activity_counts(repo, session):
    session.execute.return_value = [(3, 4, 1), (5, 2, None)]

    counts = await repo.get_activity_counts(session, [3, 5, 8])

    assert counts == {
        3: {"total": 4, "completed": 1},
        5: {"total": 2, "completed": 0},
    }
    session.execute.assert_called_once()


@pytest.mark.asyncio
async def test_get_activity_counts_no_ids(repo, session):
    assert await repo.get_activity_counts(session, []) == {}
    session.execute.assert_not_called()


@pytest.mark.asyncio
async def test_update_status(repo, session, sample_container):
    result = await repo.update(session, sample_container, {"status": "completed"})

    assert result.status == "completed"
    session.flush.assert_called_once()
