"""Container data models: period kinds, lifecycle status and views."""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class ContainerKind(str, Enum):
    """Period a container (backlog) spans."""
    ANNUAL = "annual"
    MONTHLY = "monthly"
    WEEKLY = "weekly"
    DAILY = "daily"


class ContainerStatus(str, Enum):
    """Container lifecycle: active -> completed -> archived."""
    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class UpdateContainerStatusRequest(BaseModel):
    """Move a container to the next lifecycle status."""
    status: ContainerStatus


class UpdateContainerCommentRequest(BaseModel):
    """Set or clear the free-text comment on a container."""
    comment: Optional[str] = Field(None, max_length=5000)


class ContainerView(BaseModel):
    """Container with aggregate activity counts."""
    id: int
    owner_id: str
    kind: ContainerKind
    start_date: date
    end_date: Optional[date] = None
    status: ContainerStatus
    comment: Optional[str] = None
    created_at: datetime
    archived_at: Optional[datetime] = None
    total_activities: int = 0
    completed_activities: int = 0

