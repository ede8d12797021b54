"""Walk domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ...shared.validators import validate_time_slot
from .state_machine import PICKUP_TRANSITIONS, WALK_TRANSITIONS


class WalkCreate(BaseModel):
    """Schema for booking a walk"""

    dogId: int
    walkerId: int
    subscriptionId: int
    date: date
    timeSlot: str
    notes: Optional[str] = None

    @field_validator("timeSlot")
    @classmethod
    def validate_slot(cls, v: str) -> str:
        return validate_time_slot(v)


class WalkStatusUpdate(BaseModel):
    targetStatus: str

    @field_validator("targetStatus")
    @classmethod
    def validate_target(cls, v: str) -> str:
        if v not in WALK_TRANSITIONS:
            raise ValueError(f"targetStatus must be one of: {', '.join(WALK_TRANSITIONS)}")
        return v


class DogStatusUpdate(BaseModel):
    targetSubState: str

    @field_validator("targetSubState")
    @classmethod
    def validate_target(cls, v: str) -> str:
        if v not in PICKUP_TRANSITIONS:
            raise ValueError(f"targetSubState must be one of: {', '.join(PICKUP_TRANSITIONS)}")
        return v


class WalkMetrics(BaseModel):
    distanceCovered: float = Field(ge=0)  # km
    totalTime: int = Field(ge=0)  # minutes
    poopCount: int = Field(default=0, ge=0)
    peeCount: int = Field(default=0, ge=0)
    moodRating: int = Field(ge=1, le=5)
    behaviorsObserved: list[str] = []


class WalkFeedbackCreate(BaseModel):
    """Walker's report once a walk is completed"""

    rating: int = Field(ge=1, le=5)
    comment: str = ""
    metrics: Optional[WalkMetrics] = None


class WalkResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    public_id: str
    dog_id: int
    walker_id: int
    subscription_id: int
    date: date
    time_slot: str
    duration: int
    status: str
    pickup_status: str
    credit_state: str
    notes: Optional[str] = None
    feedback: Optional[dict] = None
    metrics: Optional[dict] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class SessionResponse(BaseModel):
    walker_id: int
    date: date
    time_slot: str
    status: str
    walks: list[WalkResponse]
