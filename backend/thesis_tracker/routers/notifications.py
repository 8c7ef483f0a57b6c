"""Notification inbox of the calling actor."""
from itertools import islice
from typing import List

from fastapi import APIRouter, Depends, Query

from ..auth import ActorContext, get_current_actor
from ..schemas import CountResponse, NotificationResponse
from ..services import WorkflowEngine
from .deps import get_engine

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=List[NotificationResponse])
def list_notifications(
    limit: int = Query(50, ge=1, le=500),
    actor: ActorContext = Depends(get_current_actor),
    engine: WorkflowEngine = Depends(get_engine),
):
    """Most recent first; only as many pages are fetched as ``limit`` needs."""
    return list(islice(engine.list_notifications(actor.actor_id), limit))


@router.get("/unread-count", response_model=CountResponse)
def unread_count(
    actor: ActorContext = Depends(get_current_actor),
    engine: WorkflowEngine = Depends(get_engine),
):
    return CountResponse(count=engine.unread_count(actor.actor_id))


@router.post("/mark-read/{notification_id}", response_model=NotificationResponse)
def mark_read(
    notification_id: int,
    actor: ActorContext = Depends(get_current_actor),
    engine: WorkflowEngine = Depends(get_engine),
):
    return engine.mark_read(notification_id, recipient_id=actor.actor_id)


@router.post("/mark-all-read", response_model=CountResponse)
def mark_all_read(
    actor: ActorContext = Depends(get_current_actor),
    engine: WorkflowEngine = Depends(get_engine),
):
    return CountResponse(count=engine.mark_all_read(actor.actor_id))
