"""
Assessment state machine

pending → scheduled → completed (approved | denied)
pending | scheduled → cancelled

The dog's assessment_status mirrors the assessment: pending on request,
scheduled once booked, the result on completion and none if cancelled.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from ...shared.errors import InvalidStateTransition

ASSESSMENT_TRANSITIONS = {
    "pending": ["scheduled", "cancelled"],
    "scheduled": ["completed", "cancelled"],
    "completed": [],  # Terminal state
    "cancelled": [],  # Terminal state
}

RESULTS = ("approved", "denied")

OPEN_STATUSES = ("pending", "scheduled")


@dataclass(frozen=True)
class AssessmentState:
    status: str
    result: Optional[str] = None
    scheduled_date: Optional[datetime] = None
    assigned_walker_id: Optional[int] = None


def _check(state: AssessmentState, target: str) -> None:
    if target not in ASSESSMENT_TRANSITIONS.get(state.status, []):
        raise InvalidStateTransition(f"Cannot change assessment from {state.status} to {target}")


def schedule(
    state: AssessmentState,
    scheduled_date: Optional[datetime],
    walker_id: Optional[int] = None,
) -> AssessmentState:
    _check(state, "scheduled")
    scheduled_date = scheduled_date or state.scheduled_date
    if scheduled_date is None:
        raise InvalidStateTransition("A scheduled date is required to schedule an assessment")
    return replace(
        state,
        status="scheduled",
        scheduled_date=scheduled_date,
        assigned_walker_id=walker_id if walker_id is not None else state.assigned_walker_id,
    )


def complete(state: AssessmentState, result: Optional[str]) -> AssessmentState:
    _check(state, "completed")
    if result not in RESULTS:
        raise InvalidStateTransition("Completing an assessment requires a result of approved or denied")
    return replace(state, status="completed", result=result)


def cancel(state: AssessmentState) -> AssessmentState:
    _check(state, "cancelled")
    return replace(state, status="cancelled")


def reschedule(
    state: AssessmentState,
    scheduled_date: Optional[datetime] = None,
    walker_id: Optional[int] = None,
) -> AssessmentState:
    """Change date or walker without changing status"""
    if state.status not in OPEN_STATUSES:
        raise InvalidStateTransition(f"Cannot reschedule a {state.status} assessment")
    return replace(
        state,
        scheduled_date=scheduled_date or state.scheduled_date,
        assigned_walker_id=walker_id if walker_id is not None else state.assigned_walker_id,
    )


def dog_status_for(state: AssessmentState) -> str:
    if state.status == "completed":
        return state.result
    if state.status == "cancelled":
        return "none"
    return state.status
