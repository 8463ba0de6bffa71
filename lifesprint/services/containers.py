"""
Container lifecycle service.

Owns creation and lookup of backlog containers, listing with activity
counts, and status transitions. "The current container" for a kind is the
active container whose period contains today (UTC); it is created on first
use.
"""

import logging
from datetime import date, datetime
from typing import Callable, List, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from ..database.connection import Database, get_database, session_scope
from ..database.models import ContainerDB
from ..database.repositories.associations import AssociationRepository, get_association_repository
from ..database.repositories.containers import ContainerRepository, get_container_repository
from ..models.activity import ActivityType, ContainerActivityView
from ..models.container import ContainerKind, ContainerStatus, ContainerView
from ..utils.datetime_utils import get_utc_now, to_utc_date
from .exceptions import InvalidStatusTransition
from .periods import ContainerPeriodCalculator

logger = logging.getLogger(__name__)

# Active -> Completed -> Archived; nothing moves backwards or skips a step
STATUS_TRANSITIONS = {
    ContainerStatus.ACTIVE: frozenset({ContainerStatus.COMPLETED}),
    ContainerStatus.COMPLETED: frozenset({ContainerStatus.ARCHIVED}),
    ContainerStatus.ARCHIVED: frozenset(),
}


def can_transition(current: ContainerStatus, requested: ContainerStatus) -> bool:
    return requested in STATUS_TRANSITIONS[current]


def to_container_view(container: ContainerDB, total: int = 0, completed: int = 0) -> ContainerView:
    return ContainerView(
        id=container.id,
        owner_id=container.owner_id,
        kind=ContainerKind(container.kind),
        start_date=container.start_date,
        end_date=container.end_date,
        status=ContainerStatus(container.status),
        comment=container.comment,
        created_at=container.created_at,
        archived_at=container.archived_at,
        total_activities=total,
        completed_activities=completed,
    )


class ContainerLifecycleService:
    """Create, find, list and transition containers for one owner at a time."""

    def __init__(
        self,
        db: Optional[Database] = None,
        repository: Optional[ContainerRepository] = None,
        associations: Optional[AssociationRepository] = None,
        clock: Callable[[], datetime] = get_utc_now,
    ):
        self.db = db or get_database()
        self.repository = repository or get_container_repository()
        self.associations = associations or get_association_repository()
        self.clock = clock

    # ==================== CURRENT CONTAINER ====================

    async def get_or_create_current(
        self,
        owner_id: str,
        kind: Union[ContainerKind, str],
        session: Optional[AsyncSession] = None,
    ) -> ContainerDB:
        """Active container of ``kind`` whose period contains today (UTC)."""
        today = to_utc_date(self.clock())
        return await self.get_or_create_for_date(owner_id, kind, today, session=session)

    async def get_or_create_for_date(
        self,
        owner_id: str,
        kind: Union[ContainerKind, str],
        reference_date: Union[date, datetime],
        comment: Optional[str] = None,
        session: Optional[AsyncSession] = None,
    ) -> ContainerDB:
        """
        Active container of ``kind`` for the period containing reference_date.

        Idempotent per owner, kind and period: repeated calls return the same
        container. ``comment`` only applies when a new container is created.
        """
        kind = ContainerKind(kind)
        start_date, end_date = ContainerPeriodCalculator.range(kind, reference_date)

        async with session_scope(self.db, session) as s:
            container, created = await self.repository.get_or_create_active(
                s,
                owner_id=owner_id,
                kind=kind.value,
                start_date=start_date,
                end_date=end_date,
                created_at=self.clock(),
                comment=comment,
            )

        if not created:
            logger.debug(f"Reusing {kind.value} container {container.id} for owner {owner_id}")
        return container

    # ==================== QUERIES ====================

    async def get_by_id(self, owner_id: str, container_id: int) -> Optional[ContainerView]:
        """Container with activity counts, or None if missing or not owned."""
        async with self.db.session() as session:
            container = await self.repository.get_by_id(session, owner_id, container_id)
            if not container:
                return None
            return await self._with_counts(session, container)

    async def list_for_owner(
        self,
        owner_id: str,
        kind: Optional[Union[ContainerKind, str]] = None,
        status: Optional[Union[ContainerStatus, str]] = None,
    ) -> List[ContainerView]:
        """
        All of an owner's containers, most recent period first, with counts.

        Counts for every container come from a single GROUP BY query.
        """
        kind_value = ContainerKind(kind).value if kind else None
        status_value = ContainerStatus(status).value if status else None

        async with self.db.session() as session:
            containers = await self.repository.get_all(
                session, owner_id, kind=kind_value, status=status_value
            )
            counts = await self.repository.get_activity_counts(session, [c.id for c in containers])

        views = []
        for container in containers:
            stats = counts.get(container.id, {})
            views.append(
                to_container_view(container, stats.get("total", 0), stats.get("completed", 0))
            )
        return views

    async def get_activities(
        self,
        owner_id: str,
        container_id: int,
    ) -> Optional[List[ContainerActivityView]]:
        """A container's activities in order, or None if the container is not found."""
        async with self.db.session() as session:
            container = await self.repository.get_by_id(session, owner_id, container_id)
            if not container:
                return None

            rows = await self.associations.get_for_container(session, owner_id, container_id)

        return [
            ContainerActivityView(
                activity_id=activity.id,
                title=activity.title,
                activity_type=ActivityType(activity.activity_type),
                order=association.order,
                added_at=association.added_at,
                completed_at=association.completed_at,
                is_rolled_over=association.is_rolled_over,
            )
            for association, activity in rows
        ]

    # ==================== MUTATIONS ====================

    async def update_status(
        self,
        owner_id: str,
        container_id: int,
        new_status: Union[ContainerStatus, str],
    ) -> Optional[ContainerView]:
        """
        Move a container to its next lifecycle status.

        Raises InvalidStatusTransition for anything other than
        active -> completed or completed -> archived. Returns None if the
        container is missing or not owned.
        """
        new_status = ContainerStatus(new_status)

        async with self.db.session() as session:
            container = await self.repository.get_by_id(session, owner_id, container_id)
            if not container:
                return None

            current = ContainerStatus(container.status)
            if not can_transition(current, new_status):
                logger.warning(
                    f"Rejected status change for container {container_id}: "
                    f"{current.value} -> {new_status.value}"
                )
                raise InvalidStatusTransition(container_id, current, new_status)

            updates = {"status": new_status.value}
            if new_status == ContainerStatus.ARCHIVED:
                updates["archived_at"] = self.clock()

            await self.repository.update(session, container, updates)
            logger.info(f"Container {container_id} moved {current.value} -> {new_status.value}")

            return await self._with_counts(session, container)

    async def update_comment(
        self,
        owner_id: str,
        container_id: int,
        comment: Optional[str],
    ) -> Optional[ContainerView]:
        """Set or clear a container's comment."""
        async with self.db.session() as session:
            container = await self.repository.get_by_id(session, owner_id, container_id)
            if not container:
                return None

            await self.repository.update(session, container, {"comment": comment})
            return await self._with_counts(session, container)

    async def _with_counts(self, session: AsyncSession, container: ContainerDB) -> ContainerView:
        counts = await self.repository.get_activity_counts(session, [container.id])
        stats = counts.get(container.id, {})
        return to_container_view(container, stats.get("total", 0), stats.get("completed", 0))


# Singleton
_container_service: Optional[ContainerLifecycleService] = None


def get_container_service() -> ContainerLifecycleService:
    """Get the container lifecycle service singleton."""
    global _container_service
    if _container_service is None:
        _container_service = ContainerLifecycleService()
    return _container_service
