"""
Container activity (junction) repository.

An association places one activity in one container and carries the
activity's order and completion state within that container. Orders are
dense per container: each insert takes max(order) + 1 while the container
row is locked, and ``uq_container_activities_order`` rejects duplicates.
"""

import logging
from datetime import datetime
from typing import Optional, List, Tuple, Iterable

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import ActivityTemplateDB, ContainerDB, ContainerActivityDB
from ..exceptions import DatabaseConstraintError, DatabaseOperationError

logger = logging.getLogger(__name__)


class AssociationRepository:
    """Repository for container/activity associations."""

    async def get(
        self,
        session: AsyncSession,
        container_id: int,
        activity_id: int,
    ) -> Optional[ContainerActivityDB]:
        """Get the association between a container and an activity."""
        result = await session.execute(
            select(ContainerActivityDB).where(
                ContainerActivityDB.container_id == container_id,
                ContainerActivityDB.activity_id == activity_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_next_order(self, session: AsyncSession, container_id: int) -> int:
        """max(order) + 1 within the container, or 1 when it is empty."""
        result = await session.execute(
            select(func.coalesce(func.max(ContainerActivityDB.order), 0)).where(
                ContainerActivityDB.container_id == container_id
            )
        )
        return int(result.scalar() or 0) + 1

    async def append(
        self,
        session: AsyncSession,
        container: ContainerDB,
        activity_id: int,
        added_at: datetime,
        is_rolled_over: bool = False,
    ) -> ContainerActivityDB:
        """
        Add an activity at the end of a container.

        Locks the container row before reading the current max order so
        concurrent appends to the same container cannot pick the same slot.
        """
        try:
            await session.execute(
                select(ContainerDB.id)
                .where(ContainerDB.id == container.id)
                .with_for_update()
            )

            order = await self.get_next_order(session, container.id)

            association = ContainerActivityDB(
                container_id=container.id,
                activity_id=activity_id,
                added_at=added_at,
                completed_at=None,
                order=order,
                is_rolled_over=is_rolled_over,
            )
            session.add(association)
            await session.flush()

            logger.info(
                f"Added activity {activity_id} to {container.kind} container {container.id} at position {order}"
            )
            return association

        except IntegrityError as e:
            logger.error(f"Constraint violation adding activity {activity_id} to container {container.id}: {e}")
            raise DatabaseConstraintError(
                f"Cannot add activity {activity_id} to container {container.id}: duplicate or constraint violation"
            )

        except Exception as e:
            logger.error(
                f"CRITICAL: Adding activity {activity_id} to container {container.id} failed: {e}",
                exc_info=True,
            )
            raise DatabaseOperationError(f"Failed to add activity {activity_id} to container {container.id}: {e}")

    async def set_completed_at(
        self,
        session: AsyncSession,
        association: ContainerActivityDB,
        completed_at: Optional[datetime],
    ) -> ContainerActivityDB:
        """Set (or clear, with None) the completion timestamp."""
        try:
            association.completed_at = completed_at
            await session.flush()
            return association

        except Exception as e:
            logger.error(
                f"CRITICAL: Completion update failed for activity {association.activity_id} "
                f"in container {association.container_id}: {e}",
                exc_info=True,
            )
            raise DatabaseOperationError(f"Failed to update completion: {e}")

    async def get_for_activities(
        self,
        session: AsyncSession,
        owner_id: str,
        activity_ids: Iterable[int],
    ) -> List[Tuple[ContainerActivityDB, str]]:
        """Get (association, container kind) pairs for the given activities."""
        activity_ids = list(activity_ids)
        if not activity_ids:
            return []

        result = await session.execute(
            select(ContainerActivityDB, ContainerDB.kind)
            .join(ContainerDB, ContainerDB.id == ContainerActivityDB.container_id)
            .where(
                ContainerDB.owner_id == owner_id,
                ContainerActivityDB.activity_id.in_(activity_ids),
            )
            .order_by(ContainerDB.start_date, ContainerActivityDB.container_id)
        )
        return [(row[0], row[1]) for row in result]

    async def get_for_container(
        self,
        session: AsyncSession,
        owner_id: str,
        container_id: int,
    ) -> List[Tuple[ContainerActivityDB, ActivityTemplateDB]]:
        """Get a container's associations with their activities, in order."""
        result = await session.execute(
            select(ContainerActivityDB, ActivityTemplateDB)
            .join(ActivityTemplateDB, ActivityTemplateDB.id == ContainerActivityDB.activity_id)
            .where(
                ContainerActivityDB.container_id == container_id,
                ActivityTemplateDB.owner_id == owner_id,
            )
            .order_by(ContainerActivityDB.order)
        )
        return [(row[0], row[1]) for row in result]


# Singleton
_association_repository: Optional[AssociationRepository] = None


def get_association_repository() -> AssociationRepository:
    """Get the association repository singleton."""
    global _association_repository
    if _association_repository is None:
        _association_repository = AssociationRepository()
    return _association_repository
