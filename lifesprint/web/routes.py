"""
HTTP routes for activities and containers.

The router is a thin layer over the domain services: it reads the caller's
owner id from a header set by the fronting auth layer, calls one service
operation and maps domain errors onto status codes:

- NotFoundError -> 404
- DomainValidationError (hierarchy, cycles, transitions, ...) -> 400
- database failures -> 500 with an opaque message
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Request

from config import settings
from ..database.exceptions import DatabaseError
from ..models.activity import (
    ActivityView,
    ContainerActivityView,
    AddToContainerRequest,
    CreateActivityRequest,
    ToggleCompletionRequest,
    UpdateActivityRequest,
)
from ..models.container import (
    ContainerKind,
    ContainerStatus,
    ContainerView,
    UpdateContainerCommentRequest,
    UpdateContainerStatusRequest,
)
from ..services.activities import get_activity_service
from ..services.containers import get_container_service, to_container_view
from ..services.exceptions import DomainValidationError, NotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def get_owner_id(request: Request) -> str:
    """Owner id from the configured header; 401 when absent."""
    owner_id = request.headers.get(settings.owner_header, "").strip()
    if not owner_id:
        raise HTTPException(status_code=401, detail="Missing owner identity")
    return owner_id


def _to_http_error(e: Exception) -> HTTPException:
    if isinstance(e, HTTPException):
        return e
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, DomainValidationError):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, DatabaseError):
        logger.error(f"Database failure handling request: {e}", exc_info=True)
    else:
        logger.error(f"Unexpected error handling request: {e}", exc_info=True)
    return HTTPException(status_code=500, detail="Internal server error")


# ==================== ACTIVITIES ====================

@router.post("/activities", response_model=ActivityView, status_code=201)
async def create_activity(payload: CreateActivityRequest, request: Request):
    """Create an activity and place it in a container."""
    owner_id = get_owner_id(request)
    try:
        return await get_activity_service().create_activity(owner_id, payload)
    except Exception as e:
        raise _to_http_error(e)


@router.get("/activities", response_model=List[ActivityView])
async def list_activities(request: Request):
    """List the caller's non-archived activities, newest first."""
    owner_id = get_owner_id(request)
    try:
        return await get_activity_service().get_activities_for_owner(owner_id)
    except Exception as e:
        raise _to_http_error(e)


@router.get("/activities/{activity_id}", response_model=ActivityView)
async def get_activity(activity_id: int, request: Request):
    owner_id = get_owner_id(request)
    try:
        activity = await get_activity_service().get_by_id(owner_id, activity_id)
        if not activity:
            raise NotFoundError("Activity", activity_id)
        return activity
    except Exception as e:
        raise _to_http_error(e)


@router.put("/activities/{activity_id}", response_model=ActivityView)
async def update_activity(activity_id: int, payload: UpdateActivityRequest, request: Request):
    """Partially update an activity; only fields present in the body change."""
    owner_id = get_owner_id(request)
    try:
        activity = await get_activity_service().update_activity(owner_id, activity_id, payload)
        if not activity:
            raise NotFoundError("Activity", activity_id)
        return activity
    except Exception as e:
        raise _to_http_error(e)


@router.delete("/activities/{activity_id}", status_code=204)
async def archive_activity(activity_id: int, request: Request):
    """Archive (soft-delete) an activity."""
    owner_id = get_owner_id(request)
    try:
        if not await get_activity_service().archive_activity(owner_id, activity_id):
            raise NotFoundError("Activity", activity_id)
    except Exception as e:
        raise _to_http_error(e)


@router.post("/activities/{activity_id}/completion", response_model=ActivityView)
async def toggle_completion(activity_id: int, payload: ToggleCompletionRequest, request: Request):
    """Mark an activity complete or incomplete within one container."""
    owner_id = get_owner_id(request)
    try:
        activity = await get_activity_service().toggle_completion(
            owner_id, activity_id, payload.container_id, payload.is_completed
        )
        if not activity:
            raise NotFoundError("Activity", activity_id)
        return activity
    except Exception as e:
        raise _to_http_error(e)


@router.post("/activities/{activity_id}/containers", response_model=ActivityView)
async def add_to_container(activity_id: int, payload: AddToContainerRequest, request: Request):
    """Place an activity at the end of another container."""
    owner_id = get_owner_id(request)
    try:
        activity = await get_activity_service().add_to_container(
            owner_id, activity_id, payload.container_id, is_rolled_over=payload.is_rolled_over
        )
        if not activity:
            raise NotFoundError("Activity", activity_id)
        return activity
    except Exception as e:
        raise _to_http_error(e)


# ==================== CONTAINERS ====================

@router.get("/containers", response_model=List[ContainerView])
async def list_containers(
    request: Request,
    kind: Optional[ContainerKind] = None,
    status: Optional[ContainerStatus] = None,
):
    """List the caller's containers, most recent period first."""
    owner_id = get_owner_id(request)
    try:
        return await get_container_service().list_for_owner(owner_id, kind=kind, status=status)
    except Exception as e:
        raise _to_http_error(e)


@router.get("/containers/current/{kind}", response_model=ContainerView)
async def get_current_container(kind: ContainerKind, request: Request):
    """The active container of ``kind`` for today, created on first use."""
    owner_id = get_owner_id(request)
    try:
        service = get_container_service()
        container = await service.get_or_create_current(owner_id, kind)
        view = await service.get_by_id(owner_id, container.id)
        return view or to_container_view(container)
    except Exception as e:
        raise _to_http_error(e)


@router.get("/containers/{container_id}", response_model=ContainerView)
async def get_container(container_id: int, request: Request):
    owner_id = get_owner_id(request)
    try:
        container = await get_container_service().get_by_id(owner_id, container_id)
        if not container:
            raise NotFoundError("Container", container_id)
        return container
    except Exception as e:
        raise _to_http_error(e)


@router.get("/containers/{container_id}/activities", response_model=List[ContainerActivityView])
async def get_container_activities(container_id: int, request: Request):
    """A container's activities in their container order."""
    owner_id = get_owner_id(request)
    try:
        activities = await get_container_service().get_activities(owner_id, container_id)
        if activities is None:
            raise NotFoundError("Container", container_id)
        return activities
    except Exception as e:
        raise _to_http_error(e)


@router.patch("/containers/{container_id}/status", response_model=ContainerView)
async def update_container_status(
    container_id: int,
    payload: UpdateContainerStatusRequest,
    request: Request,
):
    """Advance a container through active -> completed -> archived."""
    owner_id = get_owner_id(request)
    try:
        container = await get_container_service().update_status(owner_id, container_id, payload.status)
        if not container:
            raise NotFoundError("Container", container_id)
        return container
    except Exception as e:
        raise _to_http_error(e)


@router.patch("/containers/{container_id}/comment", response_model=ContainerView)
async def update_container_comment(
    container_id: int,
    payload: UpdateContainerCommentRequest,
    request: Request,
):
    owner_id = get_owner_id(request)
    try:
        container = await get_container_service().update_comment(owner_id, container_id, payload.comment)
        if not container:
            raise NotFoundError("Container", container_id)
        return container
    except Exception as e:
        raise _to_http_error(e)
