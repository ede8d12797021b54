"""Dog domain schemas - Pydantic models for validation"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from ...shared.validators import DOG_SIZES


class OwnerCreate(BaseModel):
    """Schema for creating an owner profile"""

    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    userId: Optional[int] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("name is required")
        return v.strip()


class OwnerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None


class DogCreate(BaseModel):
    """Schema for registering a dog"""

    ownerId: int
    name: str
    breed: Optional[str] = None
    size: Optional[str] = None
    # Admins may exempt a dog from assessment; owners always go through one
    assessmentRequired: bool = True

    @field_validator("size")
    @classmethod
    def validate_size(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        if v.lower() not in DOG_SIZES:
            raise ValueError("size must be 'small', 'medium' or 'large'")
        return v.lower()


class DogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: int
    name: str
    breed: Optional[str] = None
    size: Optional[str] = None
    assessment_status: str
    can_book: bool
