"""Activity data models: request payloads and hydrated views."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from .container import ContainerKind


class ActivityType(str, Enum):
    """Level of an activity in the Project > Epic > Story > Task hierarchy."""
    PROJECT = "project"
    EPIC = "epic"
    STORY = "story"
    TASK = "task"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class RecurrenceKind(str, Enum):
    """How often a recurring activity template repeats (metadata only)."""
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    ANNUAL = "annual"


def _clean_title(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    stripped = value.strip()
    if not stripped:
        raise ValueError("title cannot be empty after stripping whitespace")
    return stripped


class CreateActivityRequest(BaseModel):
    """Input for creating an activity template and its first placement."""
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = Field(None, max_length=5000)
    activity_type: ActivityType
    parent_id: Optional[int] = Field(None, gt=0)
    is_recurring: bool = False
    recurrence: RecurrenceKind = RecurrenceKind.NONE
    # When omitted the activity lands in the current annual backlog
    container_id: Optional[int] = Field(None, gt=0)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        return _clean_title(v)


class UpdateActivityRequest(BaseModel):
    """
    Partial update of an activity template.

    Only fields explicitly present in the payload are applied, so
    ``parent_id=None`` detaches the activity from its parent while an
    omitted ``parent_id`` leaves it untouched.
    """
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = Field(None, max_length=5000)
    activity_type: Optional[ActivityType] = None
    parent_id: Optional[int] = Field(None, gt=0)
    is_recurring: Optional[bool] = None
    recurrence: Optional[RecurrenceKind] = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        return _clean_title(v)

    def supplied(self) -> Dict[str, Any]:
        """Fields the caller actually sent."""
        return {name: getattr(self, name) for name in self.model_fields_set}


class ToggleCompletionRequest(BaseModel):
    """Mark an activity complete or incomplete within one container."""
    container_id: int = Field(..., gt=0)
    is_completed: bool


class AddToContainerRequest(BaseModel):
    """Place an existing activity into another container."""
    container_id: int = Field(..., gt=0)
    is_rolled_over: bool = False


class ActivityChild(BaseModel):
    """Summary of a direct child activity."""
    id: int
    title: str
    activity_type: ActivityType


class ContainerAssociation(BaseModel):
    """An activity's placement in one container."""
    container_id: int
    container_kind: ContainerKind
    added_at: datetime
    completed_at: Optional[datetime] = None
    order: int
    is_rolled_over: bool = False


class ActivityView(BaseModel):
    """Activity template hydrated with parent, children and placements."""
    id: int
    owner_id: str
    title: str
    description: Optional[str] = None
    activity_type: ActivityType
    parent_id: Optional[int] = None
    parent_title: Optional[str] = None
    is_recurring: bool = False
    recurrence: RecurrenceKind = RecurrenceKind.NONE
    created_at: datetime
    archived_at: Optional[datetime] = None
    containers: List[ContainerAssociation] = Field(default_factory=list)
    children: List[ActivityChild] = Field(default_factory=list)


class ContainerActivityView(BaseModel):
    """One row of a container's ordered activity list."""
    activity_id: int
    title: str
    activity_type: ActivityType
    order: int
    added_at: datetime
    completed_at: Optional[datetime] = None
    is_rolled_over: bool = False
