"""Subscription domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator


class PlanCreate(BaseModel):
    """Schema for creating a subscription plan"""

    name: str
    description: Optional[str] = None
    walkCredits: int
    walkDuration: int  # minutes
    validityPeriod: int  # days
    price: int  # pence

    @field_validator("walkCredits", "walkDuration", "validityPeriod")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be greater than 0")
        return v

    @field_validator("price")
    @classmethod
    def validate_price(cls, v: int) -> int:
        if v < 0:
            raise ValueError("price cannot be negative")
        return v


class PlanResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    walk_credits: int
    walk_duration: int
    validity_period: int
    price: int
    is_active: bool


class SubscriptionPurchase(BaseModel):
    """Schema for purchasing a plan"""

    ownerId: int
    planId: int


class SubscriptionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: int
    plan_id: int
    total_credits: int
    credits_used: int
    credits_remaining: int
    status: str
    purchase_date: datetime
    expiry_date: datetime
    cancelled_at: Optional[datetime] = None


class CreditTransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    walk_id: Optional[int] = None
    transaction_type: str
    amount: int
    balance_after: int
    reference: Optional[str] = None
    created_at: Optional[datetime] = None
