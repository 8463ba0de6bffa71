"""
Unit tests for ActivityRepository.

Repository methods receive the caller's session, so these tests hand in a
mocked AsyncSession and inspect what was added, flushed or queried.
"""

import pytest
from unittest.mock import AsyncMock, Mock
from datetime import datetime

from sqlalchemy.exc import IntegrityError

from lifesprint.database.repositories.activities import ActivityRepository
from lifesprint.database.models import ActivityTemplateDB
from lifesprint.database.exceptions import DatabaseConstraintError, DatabaseOperationError

NOW = datetime(2026, 1, 7, 9, 30)


@pytest.fixture
def session():
    """Mocked async session."""
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.add = Mock()
    return session


@pytest.fixture
def repo():
    return ActivityRepository()


@pytest.fixture
def sample_activity():
    return ActivityTemplateDB(
        id=1,
        owner_id="user-alice",
        title="Platform",
        activity_type="project",
        is_recurring=False,
        recurrence="none",
        created_at=NOW,
    )


def scalar_result(value):
    result = Mock()
    result.scalar_one_or_none = Mock(return_value=value)
    return result


def scalars_result(values):
    scalars = Mock()
    scalars.all = Mock(return_value=values)
    result = Mock()
    result.scalars = Mock(return_value=scalars)
    return result


# ============================================================
# CREATE TESTS
# ============================================================

@pytest.mark.asyncio
async def test_create_activity(repo, session):
    """Test creating an activity template."""
    result = await repo.create(
        session,
        owner_id="user-alice",
        title="Login",
        activity_type="story",
        created_at=NOW,
        description="OAuth and password",
        parent_id=4,
        is_recurring=True,
        recurrence="weekly",
    )

    session.add.assert_called_once()
    session.flush.assert_called_once()

    added = session.add.call_args[0][0]
    assert added is result
    assert added.owner_id == "user-alice"
    assert added.title == "Login"
    assert added.activity_type == "story"
    assert added.parent_id == 4
    assert added.is_recurring is True
    assert added.recurrence == "weekly"
    assert added.created_at == NOW
    assert added.archived_at is None


@pytest.mark.asyncio
async def test_create_constraint_violation(repo, session):
    """Test a foreign key failure maps to DatabaseConstraintError."""
    session.flush.side_effect = IntegrityError("INSERT", {}, Exception("FOREIGN KEY constraint failed"))

    with pytest.raises(DatabaseConstraintError):
        await repo.create(session, "user-alice", "Bad", "task", NOW, parent_id=999)


@pytest.mark.asyncio
async def test_create_unexpected_error(repo, session):
    """Test other failures map to DatabaseOperationError."""
    session.flush.side_effect = Exception("connection reset")

    with pytest.raises(DatabaseOperationError, match="Failed to create activity"):
        await repo.create(session, "user-alice", "Broken", "task", NOW)


# ============================================================
# READ TESTS
# ============================================================

@pytest.mark.asyncio
async def test_get_by_id_found(repo, session, sample_activity):
    session.execute.return_value = scalar_result(sample_activity)

    result = await repo.get_by_id(session, "user-alice", 1)

    assert result is sample_activity


@pytest.mark.asyncio
async def test_get_by_id_filters_owner_and_archived(repo, session):
    """Test the query is owner-scoped and excludes archived rows on request."""
    session.execute.return_value = scalar_result(None)

    result = await repo.get_by_id(session, "user-bob", 1, include_archived=False)

    assert result is None
    query = str(session.execute.call_args[0][0])
    assert "activity_templates.owner_id" in query
    assert "activity_templates.archived_at IS NULL" in query


@pytest.mark.asyncio
async def test_get_all(repo, session, sample_activity):
    session.execute.return_value = scalars_result([sample_activity])

    result = await repo.get_all(session, "user-alice")

    assert result == [sample_activity]
    query = str(session.execute.call_args[0][0])
    assert "ORDER BY activity_templates.created_at DESC" in query


@pytest.mark.asyncio
async def test_get_children_empty_ids_skips_query(repo, session):
    assert await repo.get_children(session, "user-alice", []) == []
    session.execute.assert_not_called()


@pytest.mark.asyncio
async def test_get_titles(repo, session):
    session.execute.return_value = [(1, "Platform"), (2, "Auth")]

    result = await repo.get_titles(session, "user-alice", {1, 2})

    assert result == {1: "Platform", 2: "Auth"}


@pytest.mark.asyncio
async def test_get_parent_id(repo, session):
    session.execute.return_value = scalar_result(7)

    assert await repo.get_parent_id(session, "user-alice", 9) == 7


# ============================================================
# UPDATE / ARCHIVE TESTS
# ============================================================

@pytest.mark.asyncio
async def test_update_sets_fields(repo, session, sample_activity):
    result = await repo.update(session, sample_activity, {"title": "Platform v2", "description": None})

    assert result.title == "Platform v2"
    assert result.description is None
    session.flush.assert_called_once()


@pytest.mark.asyncio
async def test_update_error(repo, session, sample_activity):
    session.flush.side_effect = Exception("disk full")

    with pytest.raises(DatabaseOperationError):
        await repo.update(session, sample_activity, {"title": "x"})


@pytest.mark.asyncio
async def test_archive_sets_timestamp(repo, session, sample_activity):
    await repo.archive(session, sample_activity, NOW)

    assert sample_activity.archived_at == NOW


@pytest.mark.asyncio
async def test_archive_keeps_first_timestamp(repo, session, sample_activity):
    sample_activity.archived_at = datetime(2025, 12, 1)

    await repo.archive(session, sample_activity, NOW)

    assert sample_activity.archived_at == datetime(2025, 12, 1)
    session.flush.assert_not_called()
