"""Assessment router - FastAPI endpoints for dog assessments"""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_roles
from ...database import get_db
from ...models import User
from ...notifications import enqueue_notification
from .schemas import (
    AssessmentAssign,
    AssessmentCreate,
    AssessmentFeedbackCreate,
    AssessmentResponse,
    AssessmentUpdate,
)
from .service import AssessmentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/assessments", tags=["Assessments"])


def get_assessment_service(db: Session = Depends(get_db)) -> AssessmentService:
    """Dependency injection for AssessmentService"""
    return AssessmentService(db)


@router.post("", response_model=AssessmentResponse, status_code=201)
async def request_assessment(
    data: AssessmentCreate,
    current_user: User = Depends(require_roles("admin", "owner")),
    service: AssessmentService = Depends(get_assessment_service),
):
    """Request an assessment for a dog"""
    assessment = service.request_assessment(data, current_user)
    await enqueue_notification("send_assessment_update_task", assessment_id=assessment.id)
    return assessment


@router.get("", response_model=list[AssessmentResponse])
async def list_assessments(
    status: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: AssessmentService = Depends(get_assessment_service),
):
    """Admins see every assessment, walkers their assigned ones, owners their own"""
    return service.list_assessments(current_user, status=status)


@router.get("/{assessment_id}", response_model=AssessmentResponse)
async def get_assessment(
    assessment_id: int,
    current_user: User = Depends(get_current_user),
    service: AssessmentService = Depends(get_assessment_service),
):
    return service.get_assessment(assessment_id, current_user)


@router.patch("/{assessment_id}", response_model=AssessmentResponse)
def update_assessment(
    assessment_id: int,
    data: AssessmentUpdate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_roles("admin")),
    service: AssessmentService = Depends(get_assessment_service),
):
    """Schedule, complete (with a result) or cancel an assessment"""
    assessment = service.update_assessment(assessment_id, data)
    if data.status is not None:
        background_tasks.add_task(enqueue_notification, "send_assessment_update_task", assessment_id=assessment.id)
    return assessment


@router.post("/{assessment_id}/assign", response_model=AssessmentResponse)
async def assign_walker(
    assessment_id: int,
    data: AssessmentAssign,
    current_user: User = Depends(require_roles("admin")),
    service: AssessmentService = Depends(get_assessment_service),
):
    """Assign a walker and date to a pending assessment"""
    assessment = service.assign_walker(assessment_id, data.walkerId, data.scheduledDate, data.adminNotes)
    await enqueue_notification("send_assessment_update_task", assessment_id=assessment.id)
    return assessment


@router.post("/{assessment_id}/feedback", response_model=AssessmentResponse)
async def submit_feedback(
    assessment_id: int,
    data: AssessmentFeedbackCreate,
    current_user: User = Depends(require_roles("admin", "walker")),
    service: AssessmentService = Depends(get_assessment_service),
):
    """Assigned walker's behaviour ratings and recommendations"""
    return service.submit_feedback(assessment_id, data, current_user)
