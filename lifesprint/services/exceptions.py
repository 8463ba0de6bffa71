"""
Domain exceptions raised by the activity and container services.

NotFoundError covers both "does not exist" and "belongs to another owner";
callers cannot tell the two apart. DomainValidationError and its subclasses
are rejections of a request that must not be retried unchanged.
"""


class DomainError(Exception):
    """Base exception for domain rule failures."""
    pass


class NotFoundError(DomainError):
    """Entity missing or not owned by the caller."""

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class DomainValidationError(DomainError):
    """Request violates a domain rule."""
    pass


class HierarchyViolation(DomainValidationError):
    """Parent type is not allowed for the child type."""

    def __init__(self, child_type, parent_type, allowed_parents):
        self.child_type = child_type
        self.parent_type = parent_type
        self.allowed_parents = list(allowed_parents)
        allowed = ", ".join(p.label for p in self.allowed_parents) or "none"
        super().__init__(
            f"Invalid hierarchy: {child_type.label} cannot be a child of {parent_type.label}. "
            f"Valid parents for {child_type.label}: {allowed}"
        )


class CircularReference(DomainValidationError):
    """Parent assignment would make an activity its own ancestor."""

    def __init__(self, activity_id: int, parent_id: int):
        self.activity_id = activity_id
        self.parent_id = parent_id
        super().__init__(
            f"Cannot set parent of activity {activity_id} to {parent_id}: would create circular reference"
        )


class ChildHierarchyViolation(DomainValidationError):
    """Type change would leave an existing child under a disallowed parent."""

    def __init__(self, new_type, child_id: int, child_title: str, child_type, reason: str):
        self.new_type = new_type
        self.child_id = child_id
        self.child_title = child_title
        self.child_type = child_type
        super().__init__(
            f"Cannot change type to {new_type.label}: would invalidate child activity "
            f"'{child_title}' ({child_type.label}, id {child_id}). {reason}"
        )


class NotAssociatedError(DomainValidationError):
    """Activity is not placed in the given container."""

    def __init__(self, activity_id: int, container_id: int):
        self.activity_id = activity_id
        self.container_id = container_id
        super().__init__(f"Activity {activity_id} is not associated with container {container_id}")


class InvalidStatusTransition(DomainValidationError):
    """Container status change not allowed by the lifecycle."""

    def __init__(self, container_id: int, current, requested):
        self.container_id = container_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"Container {container_id} cannot move from {current.value} to {requested.value}"
        )
