"""
Repository classes for database operations.

Each repository handles owner-scoped CRUD and queries for its entity type.
"""

from .activities import ActivityRepository, get_activity_repository
from .containers import ContainerRepository, get_container_repository
from .associations import AssociationRepository, get_association_repository

__all__ = [
    "ActivityRepository",
    "get_activity_repository",
    "ContainerRepository",
    "get_container_repository",
    "AssociationRepository",
    "get_association_repository",
]
