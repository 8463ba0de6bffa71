from .container import (
    ContainerKind,
    ContainerStatus,
    ContainerView,
    UpdateContainerStatusRequest,
    UpdateContainerCommentRequest,
)
from .activity import (
    ActivityType,
    RecurrenceKind,
    CreateActivityRequest,
    UpdateActivityRequest,
    ToggleCompletionRequest,
    AddToContainerRequest,
    ActivityChild,
    ContainerAssociation,
    ContainerActivityView,
    ActivityView,
)

__all__ = [
    "ContainerKind",
    "ContainerStatus",
    "ContainerView",
    "ContainerActivityView",
    "UpdateContainerStatusRequest",
    "UpdateContainerCommentRequest",
    "ActivityType",
    "RecurrenceKind",
    "CreateActivityRequest",
    "UpdateActivityRequest",
    "ToggleCompletionRequest",
    "AddToContainerRequest",
    "ActivityChild",
    "ContainerAssociation",
    "ActivityView",
]
