"""
Activity domain service.

Orchestrates activity templates and their container placements:
- Create (with hierarchy check and first placement, in one transaction)
- Read single activities or an owner's whole list, hydrated
- Partial update with hierarchy, cycle and child re-validation
- Archive (soft delete)
- Per-container completion toggling and placement into more containers

Every operation is scoped to the calling owner. Anything that is missing
or belongs to someone else is reported as "not found".
"""

import logging
from collections import defaultdict
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence, Union

from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from ..database.connection import Database, get_database
from ..database.models import ActivityTemplateDB, ContainerDB
from ..database.repositories.activities import ActivityRepository, get_activity_repository
from ..database.repositories.associations import AssociationRepository, get_association_repository
from ..database.repositories.containers import ContainerRepository, get_container_repository
from ..models.activity import (
    ActivityChild,
    ActivityType,
    ActivityView,
    ContainerAssociation,
    CreateActivityRequest,
    RecurrenceKind,
    UpdateActivityRequest,
)
from ..models.container import ContainerKind
from ..utils.datetime_utils import get_utc_now
from .containers import ContainerLifecycleService
from .exceptions import NotFoundError, NotAssociatedError
from .hierarchy import HierarchyValidator

logger = logging.getLogger(__name__)

# Fields that may be cleared by sending an explicit null
NULLABLE_FIELDS = {"description", "parent_id"}


class ActivityDomainService:
    """Activity CRUD, hierarchy enforcement, placement and completion."""

    def __init__(
        self,
        db: Optional[Database] = None,
        containers: Optional[ContainerLifecycleService] = None,
        activities: Optional[ActivityRepository] = None,
        associations: Optional[AssociationRepository] = None,
        container_repository: Optional[ContainerRepository] = None,
        clock: Callable[[], datetime] = get_utc_now,
        default_container_kind: Optional[Union[ContainerKind, str]] = None,
    ):
        self.db = db or get_database()
        self.clock = clock
        self.activities = activities or get_activity_repository()
        self.associations = associations or get_association_repository()
        self.container_repository = container_repository or get_container_repository()
        self.containers = containers or ContainerLifecycleService(
            db=self.db,
            repository=self.container_repository,
            associations=self.associations,
            clock=clock,
        )
        self.default_container_kind = ContainerKind(
            default_container_kind or settings.default_container_kind
        )

    # ==================== CREATE ====================

    async def create_activity(self, owner_id: str, request: CreateActivityRequest) -> ActivityView:
        """
        Create an activity template and place it in a container.

        Without ``container_id`` the activity goes into the owner's current
        default (annual) container, which is created if needed. The template
        and its first placement are written in one transaction.

        Raises:
            NotFoundError: parent or container missing / not owned
            HierarchyViolation: parent type not allowed for the new type
        """
        async with self.db.session() as session:
            if request.parent_id is not None:
                parent = await self.activities.get_by_id(
                    session, owner_id, request.parent_id, include_archived=False
                )
                if not parent:
                    raise NotFoundError("Parent activity", request.parent_id)

                HierarchyValidator.validate_parent(request.activity_type, parent.activity_type)

            now = self.clock()
            activity = await self.activities.create(
                session,
                owner_id=owner_id,
                title=request.title,
                description=request.description,
                activity_type=request.activity_type.value,
                parent_id=request.parent_id,
                is_recurring=request.is_recurring,
                recurrence=request.recurrence.value,
                created_at=now,
            )

            container = await self._resolve_target_container(session, owner_id, request.container_id)
            await self.associations.append(session, container, activity.id, added_at=now)

            return (await self._hydrate(session, owner_id, [activity]))[0]

    async def _resolve_target_container(
        self,
        session: AsyncSession,
        owner_id: str,
        container_id: Optional[int],
    ) -> ContainerDB:
        if container_id is None:
            return await self.containers.get_or_create_current(
                owner_id, self.default_container_kind, session=session
            )

        container = await self.container_repository.get_by_id(session, owner_id, container_id)
        if not container:
            raise NotFoundError("Container", container_id)
        return container

    # ==================== READ ====================

    async def get_activities_for_owner(self, owner_id: str) -> List[ActivityView]:
        """All non-archived activities of an owner, newest first."""
        async with self.db.session() as session:
            activities = await self.activities.get_all(session, owner_id)
            return await self._hydrate(session, owner_id, activities)

    async def get_by_id(
        self,
        owner_id: str,
        activity_id: int,
        include_archived: bool = False,
    ) -> Optional[ActivityView]:
        """
        One hydrated activity, or None.

        Archived activities are hidden unless include_archived is set,
        matching the list endpoint.
        """
        async with self.db.session() as session:
            activity = await self.activities.get_by_id(
                session, owner_id, activity_id, include_archived=include_archived
            )
            if not activity:
                return None
            return (await self._hydrate(session, owner_id, [activity]))[0]

    # ==================== UPDATE ====================

    async def update_activity(
        self,
        owner_id: str,
        activity_id: int,
        request: UpdateActivityRequest,
    ) -> Optional[ActivityView]:
        """
        Apply the fields present in ``request``.

        A type or parent change is validated in full before anything is
        written: the effective parent must exist and be an allowed parent
        type, must not be the activity or one of its descendants, and a new
        type must still be an allowed parent for every existing child.

        Returns None if the activity is missing, archived or not owned.
        """
        fields = {
            name: value
            for name, value in request.supplied().items()
            if value is not None or name in NULLABLE_FIELDS
        }

        async with self.db.session() as session:
            activity = await self.activities.get_by_id(
                session, owner_id, activity_id, include_archived=False
            )
            if not activity:
                return None

            current_type = ActivityType(activity.activity_type)
            new_type = ActivityType(fields.get("activity_type", current_type))
            type_changed = new_type != current_type
            parent_changed = "parent_id" in fields and fields["parent_id"] != activity.parent_id

            if type_changed or parent_changed:
                new_parent_id = fields["parent_id"] if parent_changed else activity.parent_id
                await self._validate_placement(
                    session, owner_id, activity, new_type, new_parent_id, parent_changed
                )

            if type_changed:
                children = await self.activities.get_children(session, owner_id, [activity.id])
                HierarchyValidator.validate_children_against_new_type(children, new_type)

            updates = {}
            for name, value in fields.items():
                if name == "parent_id" and not parent_changed:
                    continue
                if isinstance(value, (ActivityType, RecurrenceKind)):
                    value = value.value
                updates[name] = value

            if updates:
                await self.activities.update(session, activity, updates)
                logger.info(f"Updated activity {activity_id}: {sorted(updates)}")

            return (await self._hydrate(session, owner_id, [activity]))[0]

    async def _validate_placement(
        self,
        session: AsyncSession,
        owner_id: str,
        activity: ActivityTemplateDB,
        new_type: ActivityType,
        new_parent_id: Optional[int],
        parent_changed: bool,
    ) -> None:
        if new_parent_id is None:
            return

        # A newly chosen parent must be live; an existing one may since have been archived
        parent = await self.activities.get_by_id(
            session, owner_id, new_parent_id, include_archived=not parent_changed
        )
        if not parent:
            raise NotFoundError("Parent activity", new_parent_id)

        async def lookup_parent_of(activity_id: int) -> Optional[int]:
            return await self.activities.get_parent_id(session, owner_id, activity_id)

        await HierarchyValidator.detect_cycle(activity.id, new_parent_id, lookup_parent_of)
        HierarchyValidator.validate_parent(new_type, parent.activity_type)

    # ==================== ARCHIVE ====================

    async def archive_activity(self, owner_id: str, activity_id: int) -> bool:
        """
        Soft-delete an activity.

        Children and container placements are left as they are. Returns
        False if the activity is missing or not owned.
        """
        async with self.db.session() as session:
            activity = await self.activities.get_by_id(session, owner_id, activity_id)
            if not activity:
                return False

            await self.activities.archive(session, activity, self.clock())
            logger.info(f"Archived activity {activity_id} for owner {owner_id}")
            return True

    # ==================== CONTAINER PLACEMENT ====================

    async def toggle_completion(
        self,
        owner_id: str,
        activity_id: int,
        container_id: int,
        is_completed: bool,
    ) -> Optional[ActivityView]:
        """
        Mark an activity complete (or incomplete) within one container.

        Returns None if the activity is missing or not owned.

        Raises:
            NotAssociatedError: the activity is not placed in that container
        """
        async with self.db.session() as session:
            activity = await self.activities.get_by_id(
                session, owner_id, activity_id, include_archived=False
            )
            if not activity:
                return None

            container = await self.container_repository.get_by_id(session, owner_id, container_id)
            association = None
            if container:
                association = await self.associations.get(session, container_id, activity_id)
            if not association:
                logger.warning(f"Completion toggle rejected: activity {activity_id} not in container {container_id}")
                raise NotAssociatedError(activity_id, container_id)

            completed_at = self.clock() if is_completed else None
            await self.associations.set_completed_at(session, association, completed_at)

            return (await self._hydrate(session, owner_id, [activity]))[0]

    async def add_to_container(
        self,
        owner_id: str,
        activity_id: int,
        container_id: int,
        is_rolled_over: bool = False,
    ) -> Optional[ActivityView]:
        """
        Place an existing activity at the end of another container.

        Already-placed activities are left where they are. Returns None if
        the activity is missing or not owned.

        Raises:
            NotFoundError: container missing / not owned
        """
        async with self.db.session() as session:
            activity = await self.activities.get_by_id(
                session, owner_id, activity_id, include_archived=False
            )
            if not activity:
                return None

            container = await self.container_repository.get_by_id(session, owner_id, container_id)
            if not container:
                raise NotFoundError("Container", container_id)

            existing = await self.associations.get(session, container_id, activity_id)
            if not existing:
                await self.associations.append(
                    session,
                    container,
                    activity_id,
                    added_at=self.clock(),
                    is_rolled_over=is_rolled_over,
                )

            return (await self._hydrate(session, owner_id, [activity]))[0]

    # ==================== HYDRATION ====================

    async def _hydrate(
        self,
        session: AsyncSession,
        owner_id: str,
        activities: Sequence[ActivityTemplateDB],
    ) -> List[ActivityView]:
        """
        Build views for a batch of activities.

        Parent titles, children and placements are fetched with one query
        each for the whole batch.
        """
        if not activities:
            return []

        ids = [a.id for a in activities]
        parent_titles = await self.activities.get_titles(
            session, owner_id, {a.parent_id for a in activities if a.parent_id is not None}
        )

        children_by_parent: Dict[int, List[ActivityChild]] = defaultdict(list)
        for child in await self.activities.get_children(session, owner_id, ids):
            children_by_parent[child.parent_id].append(
                ActivityChild(
                    id=child.id,
                    title=child.title,
                    activity_type=ActivityType(child.activity_type),
                )
            )

        placements: Dict[int, List[ContainerAssociation]] = defaultdict(list)
        for association, kind in await self.associations.get_for_activities(session, owner_id, ids):
            placements[association.activity_id].append(
                ContainerAssociation(
                    container_id=association.container_id,
                    container_kind=ContainerKind(kind),
                    added_at=association.added_at,
                    completed_at=association.completed_at,
                    order=association.order,
                    is_rolled_over=association.is_rolled_over,
                )
            )

        return [
            ActivityView(
                id=a.id,
                owner_id=a.owner_id,
                title=a.title,
                description=a.description,
                activity_type=ActivityType(a.activity_type),
                parent_id=a.parent_id,
                parent_title=parent_titles.get(a.parent_id) if a.parent_id is not None else None,
                is_recurring=a.is_recurring,
                recurrence=RecurrenceKind(a.recurrence),
                created_at=a.created_at,
                archived_at=a.archived_at,
                containers=placements.get(a.id, []),
                children=children_by_parent.get(a.id, []),
            )
            for a in activities
        ]


# Singleton
_activity_service: Optional[ActivityDomainService] = None


def get_activity_service() -> ActivityDomainService:
    """Get the activity domain service singleton."""
    global _activity_service
    if _activity_service is None:
        _activity_service = ActivityDomainService()
    return _activity_service
