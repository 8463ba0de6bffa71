"""
Activity hierarchy rules.

Valid parents per child type:
- Project: none (always a root)
- Epic: Project
- Story: Epic, Project
- Task: Story, Epic

Activities reference their parent by id. Cycle detection walks that
parent chain one lookup at a time and keeps a visited set so a chain that
is already corrupt (contains a loop) cannot make the walk spin forever.
"""

import logging
from typing import Awaitable, Callable, Dict, Iterable, Optional, Tuple, Union

from ..models.activity import ActivityType
from .exceptions import HierarchyViolation, CircularReference, ChildHierarchyViolation

logger = logging.getLogger(__name__)

VALID_PARENTS: Dict[ActivityType, Tuple[ActivityType, ...]] = {
    ActivityType.PROJECT: (),
    ActivityType.EPIC: (ActivityType.PROJECT,),
    ActivityType.STORY: (ActivityType.EPIC, ActivityType.PROJECT),
    ActivityType.TASK: (ActivityType.STORY, ActivityType.EPIC),
}

ParentLookup = Callable[[int], Awaitable[Optional[int]]]


class HierarchyValidator:
    """Validate parent/child relationships between activities."""

    @staticmethod
    def allowed_parents(child_type: Union[ActivityType, str]) -> Tuple[ActivityType, ...]:
        return VALID_PARENTS[ActivityType(child_type)]

    @classmethod
    def validate_parent(
        cls,
        child_type: Union[ActivityType, str],
        parent_type: Union[ActivityType, str],
    ) -> None:
        """
        Raise HierarchyViolation unless parent_type may parent child_type.

        Projects accept no parent at all.
        """
        child_type = ActivityType(child_type)
        parent_type = ActivityType(parent_type)
        allowed = cls.allowed_parents(child_type)

        if parent_type not in allowed:
            raise HierarchyViolation(child_type, parent_type, allowed)

    @staticmethod
    async def detect_cycle(
        activity_id: int,
        proposed_parent_id: int,
        lookup_parent_of: ParentLookup,
    ) -> None:
        """
        Raise CircularReference if proposed_parent_id is activity_id or one of its descendants.

        Walks up from the proposed parent through lookup_parent_of until a
        root is reached.
        """
        visited = set()
        current: Optional[int] = proposed_parent_id

        while current is not None:
            if current == activity_id:
                logger.warning(f"Rejected parent {proposed_parent_id} for activity {activity_id}: cycle")
                raise CircularReference(activity_id, proposed_parent_id)

            if current in visited:
                # Existing chain already loops
                logger.error(f"Parent chain above activity {proposed_parent_id} loops at {current}")
                raise CircularReference(activity_id, proposed_parent_id)

            visited.add(current)
            current = await lookup_parent_of(current)

    @classmethod
    def validate_children_against_new_type(
        cls,
        children: Iterable,
        new_type: Union[ActivityType, str],
    ) -> None:
        """
        Check every existing child still accepts its parent after a type change.

        children are objects with id, title and activity_type. The first
        child that would become invalid aborts with ChildHierarchyViolation.
        """
        new_type = ActivityType(new_type)

        for child in children:
            child_type = ActivityType(child.activity_type)
            try:
                cls.validate_parent(child_type, new_type)
            except HierarchyViolation as e:
                raise ChildHierarchyViolation(
                    new_type=new_type,
                    child_id=child.id,
                    child_title=child.title,
                    child_type=child_type,
                    reason=str(e),
                ) from e
