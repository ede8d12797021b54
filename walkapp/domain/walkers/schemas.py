"""Walker domain schemas - Pydantic models for validation"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from ...shared.validators import validate_dog_sizes, validate_weekly_availability


class WalkerCreate(BaseModel):
    """Schema for creating a walker"""

    name: str
    email: Optional[str] = None
    bio: Optional[str] = None
    userId: Optional[int] = None
    capacityPerSlot: Optional[int] = None
    availability: Optional[dict] = None
    preferredDogSizes: Optional[list[str]] = None

    @field_validator("capacityPerSlot")
    @classmethod
    def validate_capacity(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 1:
            raise ValueError("capacityPerSlot must be at least 1")
        return v

    @field_validator("availability")
    @classmethod
    def validate_availability(cls, v: Optional[dict]) -> dict:
        return validate_weekly_availability(v)

    @field_validator("preferredDogSizes")
    @classmethod
    def validate_sizes(cls, v: Optional[list[str]]) -> list[str]:
        return validate_dog_sizes(v)


class AvailabilityUpdate(BaseModel):
    """Replace a walker's weekly windows, e.g. {"monday": [{"start": "08:00", "end": "12:00"}]}"""

    availability: dict
    capacityPerSlot: Optional[int] = None

    @field_validator("availability")
    @classmethod
    def validate_availability(cls, v: dict) -> dict:
        return validate_weekly_availability(v)

    @field_validator("capacityPerSlot")
    @classmethod
    def validate_capacity(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 1:
            raise ValueError("capacityPerSlot must be at least 1")
        return v


class WalkerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: Optional[str] = None
    bio: Optional[str] = None
    capacity_per_slot: int
    availability: dict
    preferred_dog_sizes: list[str]


class SlotOccupancy(BaseModel):
    booked: int
    capacity: int
    in_availability: bool
    available: bool


class AvailabilityResponse(BaseModel):
    walker_id: int
    date: date
    available_slots: list[str]
    slots: dict[str, SlotOccupancy]
