"""Walk router - FastAPI endpoints for booking and running walks"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_roles
from ...cache import Cache, get_cache
from ...database import get_db
from ...models import User
from ...notifications import enqueue_notification
from .booking import BookingTransaction
from .schemas import (
    DogStatusUpdate,
    SessionResponse,
    WalkCreate,
    WalkFeedbackCreate,
    WalkResponse,
    WalkStatusUpdate,
)
from .service import WalkService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/walks", tags=["Walks"])


def get_walk_service(db: Session = Depends(get_db), cache: Cache = Depends(get_cache)) -> WalkService:
    """Dependency injection for WalkService"""
    return WalkService(db, cache)


def get_booking(db: Session = Depends(get_db), cache: Cache = Depends(get_cache)) -> BookingTransaction:
    return BookingTransaction(db, cache)


@router.post("", response_model=WalkResponse, status_code=201)
def create_walk(
    data: WalkCreate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_roles("admin", "owner")),
    booking: BookingTransaction = Depends(get_booking),
):
    """Book a walk, reserving one credit from the subscription"""
    walk = booking.create_walk(
        dog_id=data.dogId,
        walker_id=data.walkerId,
        subscription_id=data.subscriptionId,
        day=data.date,
        time_slot=data.timeSlot,
        notes=data.notes,
        user=current_user,
    )
    background_tasks.add_task(enqueue_notification, "send_booking_confirmation_task", walk_id=walk.id)
    return walk


@router.get("", response_model=list[WalkResponse])
async def list_walks(
    dog_id: Optional[int] = Query(None, alias="dogId"),
    walker_id: Optional[int] = Query(None, alias="walkerId"),
    day: Optional[date] = Query(None, alias="date"),
    status: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: WalkService = Depends(get_walk_service),
):
    """List walks visible to the current user with optional filters"""
    return service.list_walks(current_user, dog_id=dog_id, walker_id=walker_id, day=day, status=status)


@router.get("/sessions", response_model=list[SessionResponse])
async def list_sessions(
    walker_id: int = Query(..., alias="walkerId"),
    day: date = Query(..., alias="date"),
    current_user: User = Depends(require_roles("admin", "walker")),
    service: WalkService = Depends(get_walk_service),
):
    """A walker's group sessions for a day"""
    return service.list_sessions(walker_id, day)


@router.get("/{walk_id}", response_model=WalkResponse)
async def get_walk(
    walk_id: int,
    current_user: User = Depends(get_current_user),
    service: WalkService = Depends(get_walk_service),
):
    return service.get_walk(walk_id, current_user)


@router.patch("/{walk_id}/status", response_model=list[WalkResponse])
def update_walk_status(
    walk_id: int,
    data: WalkStatusUpdate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    service: WalkService = Depends(get_walk_service),
):
    """
    Start, complete or cancel a walk.

    Starting and completing apply to the whole group session.
    """
    updated = service.update_status(walk_id, data.targetStatus, current_user)
    if data.targetStatus == "cancelled":
        background_tasks.add_task(enqueue_notification, "send_cancellation_notice_task", walk_id=walk_id)
    elif data.targetStatus == "completed":
        for walk in updated:
            background_tasks.add_task(enqueue_notification, "send_walk_report_task", walk_id=walk.id)
    return updated


@router.patch("/{walk_id}/dog-status", response_model=WalkResponse)
def update_dog_status(
    walk_id: int,
    data: DogStatusUpdate,
    current_user: User = Depends(require_roles("admin", "walker")),
    service: WalkService = Depends(get_walk_service),
):
    """Mark a dog picked up, dropped off or absent"""
    return service.update_dog_status(walk_id, data.targetSubState, current_user)


@router.post("/{walk_id}/feedback", response_model=WalkResponse)
async def submit_feedback(
    walk_id: int,
    data: WalkFeedbackCreate,
    current_user: User = Depends(require_roles("admin", "walker")),
    service: WalkService = Depends(get_walk_service),
):
    """Walker's rating, comment and metrics for a completed walk"""
    return service.submit_feedback(walk_id, data, current_user)
