"""
Activity template repository.

Handles:
- Activity template CRUD, always scoped to one owner
- Parent-pointer lookups used to walk the hierarchy by id
- Child and title lookups used to hydrate activity views

Methods take the caller's session so a service operation can group
several repository calls into one transaction.
"""

import logging
from datetime import datetime
from typing import Optional, List, Dict, Any, Iterable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import ActivityTemplateDB
from ..exceptions import DatabaseConstraintError, DatabaseOperationError

logger = logging.getLogger(__name__)


class ActivityRepository:
    """Repository for activity template operations."""

    # ==================== CRUD ====================

    async def create(
        self,
        session: AsyncSession,
        owner_id: str,
        title: str,
        activity_type: str,
        created_at: datetime,
        description: Optional[str] = None,
        parent_id: Optional[int] = None,
        is_recurring: bool = False,
        recurrence: str = "none",
    ) -> ActivityTemplateDB:
        """Create a new activity template."""
        try:
            activity = ActivityTemplateDB(
                owner_id=owner_id,
                title=title,
                description=description,
                activity_type=activity_type,
                parent_id=parent_id,
                is_recurring=is_recurring,
                recurrence=recurrence,
                created_at=created_at,
            )
            session.add(activity)
            await session.flush()

            logger.info(f"Created {activity_type} activity {activity.id} for owner {owner_id}")
            return activity

        except IntegrityError as e:
            logger.error(f"Constraint violation creating activity '{title}': {e}")
            raise DatabaseConstraintError(f"Cannot create activity '{title}': constraint violation")

        except Exception as e:
            logger.error(f"CRITICAL: Activity creation failed for '{title}': {e}", exc_info=True)
            raise DatabaseOperationError(f"Failed to create activity '{title}': {e}")

    async def get_by_id(
        self,
        session: AsyncSession,
        owner_id: str,
        activity_id: int,
        include_archived: bool = True,
    ) -> Optional[ActivityTemplateDB]:
        """Get an activity owned by owner_id, or None."""
        query = select(ActivityTemplateDB).where(
            ActivityTemplateDB.id == activity_id,
            ActivityTemplateDB.owner_id == owner_id,
        )
        if not include_archived:
            query = query.where(ActivityTemplateDB.archived_at.is_(None))

        result = await session.execute(query)
        return result.scalar_one_or_none()

    async def get_all(
        self,
        session: AsyncSession,
        owner_id: str,
        include_archived: bool = False,
    ) -> List[ActivityTemplateDB]:
        """Get an owner's activities, newest first."""
        query = select(ActivityTemplateDB).where(ActivityTemplateDB.owner_id == owner_id)

        if not include_archived:
            query = query.where(ActivityTemplateDB.archived_at.is_(None))

        query = query.order_by(ActivityTemplateDB.created_at.desc(), ActivityTemplateDB.id.desc())

        result = await session.execute(query)
        return list(result.scalars().all())

    async def update(
        self,
        session: AsyncSession,
        activity: ActivityTemplateDB,
        updates: Dict[str, Any],
    ) -> ActivityTemplateDB:
        """Apply field updates to a loaded activity."""
        try:
            for field, value in updates.items():
                setattr(activity, field, value)
            await session.flush()
            return activity

        except IntegrityError as e:
            logger.error(f"Constraint violation updating activity {activity.id}: {e}")
            raise DatabaseConstraintError(f"Cannot update activity {activity.id}: constraint violation")

        except Exception as e:
            logger.error(f"CRITICAL: Activity update failed for {activity.id}: {e}", exc_info=True)
            raise DatabaseOperationError(f"Failed to update activity {activity.id}: {e}")

    async def archive(
        self,
        session: AsyncSession,
        activity: ActivityTemplateDB,
        archived_at: datetime,
    ) -> ActivityTemplateDB:
        """Soft-delete an activity. The first archive timestamp is kept."""
        if activity.archived_at is None:
            return await self.update(session, activity, {"archived_at": archived_at})
        return activity

    # ==================== HIERARCHY ====================

    async def get_parent_id(
        self,
        session: AsyncSession,
        owner_id: str,
        activity_id: int,
    ) -> Optional[int]:
        """Get the parent pointer of one activity (None for roots or unknown ids)."""
        result = await session.execute(
            select(ActivityTemplateDB.parent_id).where(
                ActivityTemplateDB.id == activity_id,
                ActivityTemplateDB.owner_id == owner_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_children(
        self,
        session: AsyncSession,
        owner_id: str,
        parent_ids: Iterable[int],
    ) -> List[ActivityTemplateDB]:
        """Get the direct children of the given activities."""
        parent_ids = list(parent_ids)
        if not parent_ids:
            return []

        result = await session.execute(
            select(ActivityTemplateDB)
            .where(
                ActivityTemplateDB.owner_id == owner_id,
                ActivityTemplateDB.parent_id.in_(parent_ids),
            )
            .order_by(ActivityTemplateDB.id)
        )
        return list(result.scalars().all())

    async def get_titles(
        self,
        session: AsyncSession,
        owner_id: str,
        activity_ids: Iterable[int],
    ) -> Dict[int, str]:
        """Map activity id -> title for the given ids."""
        activity_ids = list(activity_ids)
        if not activity_ids:
            return {}

        result = await session.execute(
            select(ActivityTemplateDB.id, ActivityTemplateDB.title).where(
                ActivityTemplateDB.owner_id == owner_id,
                ActivityTemplateDB.id.in_(activity_ids),
            )
        )
        return {row[0]: row[1] for row in result}


# Singleton
_activity_repository: Optional[ActivityRepository] = None


def get_activity_repository() -> ActivityRepository:
    """Get the activity repository singleton."""
    global _activity_repository
    if _activity_repository is None:
        _activity_repository = ActivityRepository()
    return _activity_repository
