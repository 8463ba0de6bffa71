"""
Container repository for annual / monthly / weekly / daily backlogs.

Containers are found or created per (owner, kind, period start). The
partial unique index ``uq_containers_active_period`` guarantees at most one
active container per period; ``get_or_create_active`` retries when it loses
an insert race instead of trusting its own read.
"""

import logging
from datetime import date, datetime
from typing import Optional, List, Dict, Any, Iterable, Tuple

from sqlalchemy import select, func, case
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from ..models import ContainerDB, ContainerActivityDB
from ..exceptions import DatabaseConstraintError, DatabaseOperationError
from ...utils.retry import RetryExhausted, retry_with_backoff

logger = logging.getLogger(__name__)


class ContainerRepository:
    """Repository for container operations."""

    async def create(
        self,
        session: AsyncSession,
        owner_id: str,
        kind: str,
        start_date: date,
        end_date: Optional[date],
        created_at: datetime,
        comment: Optional[str] = None,
    ) -> ContainerDB:
        """
        Insert a new active container.

        The insert runs in a SAVEPOINT so a uniqueness conflict leaves the
        surrounding transaction usable.
        """
        try:
            async with session.begin_nested():
                container = ContainerDB(
                    owner_id=owner_id,
                    kind=kind,
                    start_date=start_date,
                    end_date=end_date,
                    status="active",
                    comment=comment,
                    created_at=created_at,
                )
                session.add(container)
                await session.flush()

            logger.info(
                f"Created {kind} container {container.id} for owner {owner_id} "
                f"({start_date} - {end_date})"
            )
            return container

        except IntegrityError as e:
            logger.warning(f"Active {kind} container for {owner_id} starting {start_date} already exists: {e}")
            raise DatabaseConstraintError(
                f"Active {kind} container starting {start_date} already exists"
            )

        except Exception as e:
            logger.error(f"CRITICAL: Container creation failed for {owner_id}: {e}", exc_info=True)
            raise DatabaseOperationError(f"Failed to create {kind} container: {e}")

    async def find_active_for_period(
        self,
        session: AsyncSession,
        owner_id: str,
        kind: str,
        start_date: date,
    ) -> Optional[ContainerDB]:
        """Find the active container of this kind starting on start_date."""
        result = await session.execute(
            select(ContainerDB).where(
                ContainerDB.owner_id == owner_id,
                ContainerDB.kind == kind,
                ContainerDB.status == "active",
                ContainerDB.start_date == start_date,
            )
        )
        return result.scalar_one_or_none()

    async def get_or_create_active(
        self,
        session: AsyncSession,
        owner_id: str,
        kind: str,
        start_date: date,
        end_date: Optional[date],
        created_at: datetime,
        comment: Optional[str] = None,
    ) -> Tuple[ContainerDB, bool]:
        """
        Find the active container for a period or create it.

        Returns (container, created). A concurrent writer that inserts the
        same period first makes our insert fail; we then re-read.
        """

        async def find_or_insert() -> Tuple[ContainerDB, bool]:
            existing = await self.find_active_for_period(session, owner_id, kind, start_date)
            if existing:
                return existing, False

            container = await self.create(
                session,
                owner_id=owner_id,
                kind=kind,
                start_date=start_date,
                end_date=end_date,
                created_at=created_at,
                comment=comment,
            )
            return container, True

        try:
            return await retry_with_backoff(
                find_or_insert,
                max_retries=settings.container_create_retries,
                retry_on=(DatabaseConstraintError,),
            )
        except RetryExhausted as e:
            raise DatabaseOperationError(
                f"Could not resolve active {kind} container starting {start_date}: {e}"
            ) from e

    async def get_by_id(
        self,
        session: AsyncSession,
        owner_id: str,
        container_id: int,
        for_update: bool = False,
    ) -> Optional[ContainerDB]:
        """
        Get a container owned by owner_id, or None.

        With ``for_update`` the row stays locked until the transaction ends,
        which serializes order assignment within the container.
        """
        query = select(ContainerDB).where(
            ContainerDB.id == container_id,
            ContainerDB.owner_id == owner_id,
        )
        if for_update:
            query = query.with_for_update()

        result = await session.execute(query)
        return result.scalar_one_or_none()

    async def get_all(
        self,
        session: AsyncSession,
        owner_id: str,
        kind: Optional[str] = None,
        status: Optional[str] = None,
    ) -> List[ContainerDB]:
        """Get an owner's containers, most recent period first."""
        query = select(ContainerDB).where(ContainerDB.owner_id == owner_id)

        if kind:
            query = query.where(ContainerDB.kind == kind)
        if status:
            query = query.where(ContainerDB.status == status)

        query = query.order_by(ContainerDB.start_date.desc(), ContainerDB.id.desc())

        result = await session.execute(query)
        return list(result.scalars().all())

    async def get_activity_counts(
        self,
        session: AsyncSession,
        container_ids: Iterable[int],
    ) -> Dict[int, Dict[str, int]]:
        """
        Get total and completed activity counts per container.

        One GROUP BY query for all containers; containers without
        activities are absent from the result.
        """
        container_ids = list(container_ids)
        if not container_ids:
            return {}

        result = await session.execute(
            select(
                ContainerActivityDB.container_id,
                func.count(),
                func.sum(case((ContainerActivityDB.completed_at.is_not(None), 1), else_=0)),
            )
            .where(ContainerActivityDB.container_id.in_(container_ids))
            .group_by(ContainerActivityDB.container_id)
        )

        return {
            container_id: {"total": int(total or 0), "completed": int(completed or 0)}
            for container_id, total, completed in result
        }

    async def update(
        self,
        session: AsyncSession,
        container: ContainerDB,
        updates: Dict[str, Any],
    ) -> ContainerDB:
        """Apply field updates to a loaded container."""
        try:
            for field, value in updates.items():
                setattr(container, field, value)
            await session.flush()
            return container

        except IntegrityError as e:
            logger.error(f"Constraint violation updating container {container.id}: {e}")
            raise DatabaseConstraintError(f"Cannot update container {container.id}: constraint violation")

        except Exception as e:
            logger.error(f"CRITICAL: Container update failed for {container.id}: {e}", exc_info=True)
            raise DatabaseOperationError(f"Failed to update container {container.id}: {e}")


# Singleton
_container_repository: Optional[ContainerRepository] = None


def get_container_repository() -> ContainerRepository:
    """Get the container repository singleton."""
    global _container_repository
    if _container_repository is None:
        _container_repository = ContainerRepository()
    return _container_repository
