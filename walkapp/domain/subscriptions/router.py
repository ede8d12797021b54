"""Subscription router - FastAPI endpoints for plans and subscriptions"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_roles
from ...cache import Cache, get_cache
from ...database import get_db
from ...models import User
from .schemas import (
    CreditTransactionResponse,
    PlanCreate,
    PlanResponse,
    SubscriptionPurchase,
    SubscriptionResponse,
)
from .service import SubscriptionService, to_subscription_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/subscriptions", tags=["Subscriptions"])


def get_subscription_service(
    db: Session = Depends(get_db), cache: Cache = Depends(get_cache)
) -> SubscriptionService:
    """Dependency injection for SubscriptionService"""
    return SubscriptionService(db, cache)


@router.post("/plans", response_model=PlanResponse, status_code=201)
async def create_plan(
    data: PlanCreate,
    current_user: User = Depends(require_roles("admin")),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Create a subscription plan (admin only)"""
    return service.create_plan(data)


@router.get("/plans", response_model=list[PlanResponse])
async def list_plans(
    current_user: User = Depends(get_current_user),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """List plans currently on sale"""
    return service.list_plans()


@router.delete("/plans/{plan_id}", response_model=PlanResponse)
async def deactivate_plan(
    plan_id: int,
    current_user: User = Depends(require_roles("admin")),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Withdraw a plan from sale. Existing subscriptions are unaffected."""
    return service.deactivate_plan(plan_id)


@router.post("", response_model=SubscriptionResponse, status_code=201)
async def purchase_subscription(
    data: SubscriptionPurchase,
    current_user: User = Depends(require_roles("admin", "owner")),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Purchase a plan for an owner"""
    return to_subscription_response(service.purchase(data, current_user))


@router.get("/{subscription_id}", response_model=SubscriptionResponse)
async def get_subscription(
    subscription_id: int,
    current_user: User = Depends(get_current_user),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Get a subscription with its remaining credits"""
    return to_subscription_response(service.get_subscription(subscription_id, current_user))


@router.post("/{subscription_id}/cancel", response_model=SubscriptionResponse)
def cancel_subscription(
    subscription_id: int,
    current_user: User = Depends(require_roles("admin", "owner")),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Cancel a subscription"""
    return to_subscription_response(service.cancel(subscription_id, current_user))


@router.get("/{subscription_id}/transactions", response_model=list[CreditTransactionResponse])
async def list_transactions(
    subscription_id: int,
    current_user: User = Depends(get_current_user),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Credit ledger history for a subscription"""
    return service.list_transactions(subscription_id, current_user)
