"""Assessment service - Requesting, scheduling and deciding dog assessments

An approved assessment is what makes a dog bookable.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...locks import aggregate_lock, assessment_key
from ...models import Assessment, User
from ...shared.errors import InvalidStateTransition, NotFound, PermissionDenied
from ..dogs.eligibility import BOOKABLE_ASSESSMENT_STATUSES
from ..dogs.repository import DogRepository
from ..dogs.service import ensure_owner_access
from ..walkers.repository import WalkerRepository
from . import state_machine
from .repository import AssessmentRepository
from .schemas import AssessmentCreate, AssessmentFeedbackCreate, AssessmentUpdate
from .state_machine import AssessmentState

logger = logging.getLogger(__name__)


def _state_of(assessment: Assessment) -> AssessmentState:
    return AssessmentState(
        status=assessment.status,
        result=assessment.result,
        scheduled_date=assessment.scheduled_date,
        assigned_walker_id=assessment.assigned_walker_id,
    )


class AssessmentService:
    """Service layer for assessment business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AssessmentRepository()

    def get_assessment(self, assessment_id: int, user: Optional[User] = None) -> Assessment:
        assessment = self.repo.get_assessment_by_id(self.db, assessment_id)
        if not assessment:
            raise NotFound("Assessment", assessment_id)
        if user is not None:
            ensure_assessment_access(assessment, user)
        return assessment

    def list_assessments(self, user: User, status: Optional[str] = None) -> list[Assessment]:
        if user.role == "admin":
            return self.repo.get_assessments(self.db, status=status)
        if user.role == "walker":
            if not user.walker_profile:
                return []
            return self.repo.get_assessments(self.db, status=status, walker_id=user.walker_profile.id)

        owner = DogRepository.get_owner_by_user_id(self.db, user.id)
        if not owner:
            return []
        return self.repo.get_assessments(self.db, status=status, owner_id=owner.id)

    def request_assessment(self, data: AssessmentCreate, user: User) -> Assessment:
        """Open an assessment for a dog and mark the dog pending"""
        dog = DogRepository.get_dog_by_id(self.db, data.dogId)
        if not dog:
            raise NotFound("Dog", data.dogId)
        if dog.owner_id != data.ownerId:
            raise PermissionDenied(f"Dog {dog.id} does not belong to owner {data.ownerId}")
        ensure_owner_access(dog.owner, user)

        if dog.assessment_status in BOOKABLE_ASSESSMENT_STATUSES:
            raise InvalidStateTransition(f"Dog {dog.id} does not need an assessment ({dog.assessment_status})")
        if self.repo.get_open_for_dog(self.db, dog.id):
            raise InvalidStateTransition(f"Dog {dog.id} already has an open assessment")

        try:
            assessment = self.repo.create_assessment(
                self.db,
                dog_id=dog.id,
                owner_id=dog.owner_id,
                requested_date=data.requestedDate,
                status="pending",
                admin_notes=data.notes,
            )
            dog.assessment_status = state_machine.dog_status_for(_state_of(assessment))
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(assessment)
        logger.info(f"📋 Assessment {assessment.id} requested for dog {dog.id}")
        return assessment

    def assign_walker(
        self,
        assessment_id: int,
        walker_id: int,
        scheduled_date: datetime,
        admin_notes: Optional[str] = None,
    ) -> Assessment:
        """Assign a walker and a date, moving a pending assessment to scheduled"""
        update = AssessmentUpdate(
            status="scheduled",
            scheduledDate=scheduled_date,
            assignedWalkerId=walker_id,
            adminNotes=admin_notes,
        )
        return self.update_assessment(assessment_id, update)

    def update_assessment(self, assessment_id: int, data: AssessmentUpdate) -> Assessment:
        """
        Apply an admin update.

        A status change runs through the state machine and updates the dog's
        assessment status in the same transaction. Without a status change only
        the date, walker and notes of an open assessment can change.
        """
        assessment = self.get_assessment(assessment_id)

        if data.assignedWalkerId is not None:
            if not WalkerRepository.get_walker_by_id(self.db, data.assignedWalkerId):
                raise NotFound("Walker", data.assignedWalkerId)

        with aggregate_lock(self.db, assessment_key(assessment.id)):
            try:
                self.db.refresh(assessment)
                before = _state_of(assessment)
                after = self._next_state(before, data)

                assessment.status = after.status
                assessment.result = after.result
                assessment.scheduled_date = after.scheduled_date
                assessment.assigned_walker_id = after.assigned_walker_id
                if data.resultNotes is not None:
                    assessment.result_notes = data.resultNotes
                if data.adminNotes is not None:
                    assessment.admin_notes = data.adminNotes

                if after.status != before.status:
                    if after.status == "completed":
                        assessment.completed_at = datetime.utcnow()
                    assessment.dog.assessment_status = state_machine.dog_status_for(after)

                self.db.commit()
            except Exception:
                self.db.rollback()
                raise

        self.db.refresh(assessment)
        logger.info(
            f"📋 Assessment {assessment.id} {before.status} → {assessment.status}"
            + (f" ({assessment.result})" if assessment.result else "")
        )
        return assessment

    @staticmethod
    def _next_state(state: AssessmentState, data: AssessmentUpdate) -> AssessmentState:
        if data.status is None or data.status == state.status:
            if data.result is not None:
                raise InvalidStateTransition("A result can only be given when completing an assessment")
            if data.scheduledDate is None and data.assignedWalkerId is None:
                return state
            return state_machine.reschedule(state, data.scheduledDate, data.assignedWalkerId)

        if data.status == "scheduled":
            return state_machine.schedule(state, data.scheduledDate, data.assignedWalkerId)
        if data.status == "completed":
            return state_machine.complete(state, data.result)
        if data.status == "cancelled":
            return state_machine.cancel(state)
        raise InvalidStateTransition(f"Cannot change assessment from {state.status} to {data.status}")

    def submit_feedback(self, assessment_id: int, data: AssessmentFeedbackCreate, user: User) -> Assessment:
        """Assigned walker records observations ahead of the admin's decision"""
        assessment = self.get_assessment(assessment_id)

        if user.role != "admin":
            walker = user.walker_profile
            if walker is None or assessment.assigned_walker_id != walker.id:
                raise PermissionDenied("Only the assigned walker can submit assessment feedback")
        if assessment.status != "scheduled":
            raise InvalidStateTransition(f"Feedback requires a scheduled assessment (is {assessment.status})")

        try:
            feedback = data.model_dump()
            feedback["walkerId"] = assessment.assigned_walker_id
            feedback["submittedDate"] = datetime.utcnow().isoformat()
            assessment.feedback = feedback
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(assessment)
        logger.info(f"📝 Feedback submitted for assessment {assessment.id}")
        return assessment


def ensure_assessment_access(assessment: Assessment, user: User) -> None:
    if user.role == "admin":
        return
    if user.role == "walker":
        if user.walker_profile and assessment.assigned_walker_id == user.walker_profile.id:
            return
        raise PermissionDenied("Not authorized for this assessment")
    ensure_owner_access(assessment.dog.owner, user)
