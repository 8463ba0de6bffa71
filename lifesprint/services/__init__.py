"""
Domain services for activities and containers.

Services take an owner id on every call and run each operation in one
database transaction.
"""

from .periods import ContainerPeriodCalculator, period_range
from .hierarchy import HierarchyValidator, VALID_PARENTS
from .containers import ContainerLifecycleService, get_container_service
from .activities import ActivityDomainService, get_activity_service
from .exceptions import (
    DomainError,
    NotFoundError,
    DomainValidationError,
    HierarchyViolation,
    CircularReference,
    ChildHierarchyViolation,
    NotAssociatedError,
    InvalidStatusTransition,
)

__all__ = [
    "ContainerPeriodCalculator",
    "period_range",
    "HierarchyValidator",
    "VALID_PARENTS",
    "ContainerLifecycleService",
    "get_container_service",
    "ActivityDomainService",
    "get_activity_service",
    "DomainError",
    "NotFoundError",
    "DomainValidationError",
    "HierarchyViolation",
    "CircularReference",
    "ChildHierarchyViolation",
    "NotAssociatedError",
    "InvalidStatusTransition",
]
