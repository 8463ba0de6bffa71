"""
Database module for LifeSprint.

Handles:
- Activity templates with a parent-pointer hierarchy
- Containers (annual / monthly / weekly / daily backlogs)
- Container activities: per-container order and completion
"""

from .connection import (
    get_database,
    set_database,
    Database,
    init_database,
    close_database,
    session_scope,
)
from .models import (
    Base,
    ActivityTemplateDB,
    ContainerDB,
    ContainerActivityDB,
)

__all__ = [
    "get_database",
    "set_database",
    "Database",
    "init_database",
    "close_database",
    "session_scope",
    "Base",
    "ActivityTemplateDB",
    "ContainerDB",
    "ContainerActivityDB",
]
