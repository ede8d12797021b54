"""Assessment domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .state_machine import ASSESSMENT_TRANSITIONS, RESULTS

EXPERIENCE_LEVELS = ("beginner", "intermediate", "expert")


class AssessmentCreate(BaseModel):
    """Schema for an owner requesting an assessment"""

    dogId: int
    ownerId: int
    requestedDate: date
    notes: Optional[str] = None

    @field_validator("requestedDate")
    @classmethod
    def validate_requested_date(cls, v: date) -> date:
        if v < date.today():
            raise ValueError("requestedDate cannot be in the past")
        return v


class AssessmentUpdate(BaseModel):
    """Admin update: schedule, complete with a result, cancel, or edit notes"""

    scheduledDate: Optional[datetime] = None
    status: Optional[str] = None
    result: Optional[str] = None
    assignedWalkerId: Optional[int] = None
    resultNotes: Optional[str] = None
    adminNotes: Optional[str] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in ASSESSMENT_TRANSITIONS:
            raise ValueError(f"status must be one of: {', '.join(ASSESSMENT_TRANSITIONS)}")
        return v

    @field_validator("result")
    @classmethod
    def validate_result(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in RESULTS:
            raise ValueError("result must be 'approved' or 'denied'")
        return v


class AssessmentAssign(BaseModel):
    walkerId: int
    scheduledDate: datetime
    adminNotes: Optional[str] = None


class BehaviorRatings(BaseModel):
    socialization: int = Field(ge=1, le=5)
    leashManners: int = Field(ge=1, le=5)
    aggression: int = Field(ge=1, le=5)
    obedience: int = Field(ge=1, le=5)
    energyLevel: int = Field(ge=1, le=5)


class AssessmentFeedbackCreate(BaseModel):
    """Walker's observations from the assessment visit"""

    behaviorRatings: BehaviorRatings
    concerns: list[str] = []
    strengths: list[str] = []
    recommendations: str = ""
    suitableForGroupWalks: bool
    walkerNotes: str = ""
    recommendedWalkerExperience: str = "beginner"

    @field_validator("recommendedWalkerExperience")
    @classmethod
    def validate_experience(cls, v: str) -> str:
        if v not in EXPERIENCE_LEVELS:
            raise ValueError("recommendedWalkerExperience must be 'beginner', 'intermediate' or 'expert'")
        return v


class AssessmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    dog_id: int
    owner_id: int
    assigned_walker_id: Optional[int] = None
    requested_date: Optional[date] = None
    scheduled_date: Optional[datetime] = None
    status: str
    result: Optional[str] = None
    admin_notes: Optional[str] = None
    result_notes: Optional[str] = None
    feedback: Optional[dict] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
