"""Subscription service - Plans, purchases and subscription lifecycle

Credit balances are never touched here; see ledger.CreditLedger.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ...cache import Cache
from ...locks import aggregate_lock, subscription_key
from ...models import SubscriptionPlan, User, UserSubscription
from ...shared.errors import InvalidStateTransition, NotFound
from ..dogs.repository import DogRepository
from ..dogs.service import ensure_owner_access
from .repository import SubscriptionRepository
from .schemas import PlanCreate, SubscriptionPurchase

logger = logging.getLogger(__name__)

CANCELLABLE_STATUSES = ("active", "pending")


class SubscriptionService:
    """Service layer for subscription business logic"""

    def __init__(self, db: Session, cache: Optional[Cache] = None):
        self.db = db
        self.repo = SubscriptionRepository(cache)

    def create_plan(self, data: PlanCreate) -> SubscriptionPlan:
        plan = self.repo.create_plan(
            self.db,
            name=data.name,
            description=data.description,
            walk_credits=data.walkCredits,
            walk_duration=data.walkDuration,
            validity_period=data.validityPeriod,
            price=data.price,
            is_active=True,
        )
        logger.info(f"📦 Plan {plan.id} '{plan.name}' created ({plan.walk_credits} walks)")
        return plan

    def list_plans(self) -> list[dict]:
        return self.repo.get_active_plans(self.db)

    def deactivate_plan(self, plan_id: int) -> SubscriptionPlan:
        plan = self.repo.get_plan_by_id(self.db, plan_id)
        if not plan:
            raise NotFound("Plan", plan_id)
        return self.repo.set_plan_active(self.db, plan, False)

    def purchase(self, data: SubscriptionPurchase, user: User, now: Optional[datetime] = None) -> UserSubscription:
        """Buy a plan: credits come from the plan, expiry is purchase + validity days"""
        owner = DogRepository.get_owner_by_id(self.db, data.ownerId)
        if not owner:
            raise NotFound("Owner", data.ownerId)
        ensure_owner_access(owner, user)

        plan = self.repo.get_plan_by_id(self.db, data.planId)
        if not plan or not plan.is_active:
            raise NotFound("Plan", data.planId)

        now = now or datetime.utcnow()
        subscription = self.repo.create_subscription(
            self.db,
            owner_id=owner.id,
            plan_id=plan.id,
            total_credits=plan.walk_credits,
            credits_used=0,
            status="active",
            purchase_date=now,
            expiry_date=now + timedelta(days=plan.validity_period),
        )
        logger.info(
            f"✅ Subscription {subscription.id} purchased by owner {owner.id} "
            f"({plan.walk_credits} credits, expires {subscription.expiry_date:%Y-%m-%d})"
        )
        return subscription

    def get_subscription(self, subscription_id: int, user: Optional[User] = None) -> UserSubscription:
        subscription = self.repo.get_subscription_by_id(self.db, subscription_id)
        if not subscription:
            raise NotFound("Subscription", subscription_id)
        if user is not None and user.role == "owner":
            ensure_owner_access(subscription.owner, user)
        return subscription

    def cancel(self, subscription_id: int, user: User) -> UserSubscription:
        """Stop further bookings. Walks already booked keep their credits."""
        subscription = self.get_subscription(subscription_id, user)

        with aggregate_lock(self.db, subscription_key(subscription.id)):
            try:
                self.db.refresh(subscription)
                if subscription.status not in CANCELLABLE_STATUSES:
                    raise InvalidStateTransition(
                        f"Cannot cancel a subscription that is {subscription.status}"
                    )
                subscription.status = "cancelled"
                subscription.cancelled_at = datetime.utcnow()
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise

        self.db.refresh(subscription)
        logger.info(f"🛑 Subscription {subscription.id} cancelled")
        return subscription

    def list_transactions(self, subscription_id: int, user: Optional[User] = None):
        subscription = self.get_subscription(subscription_id, user)
        return self.repo.get_transactions(self.db, subscription.id)

    def expire_subscriptions(self, now: Optional[datetime] = None) -> int:
        """Mark active subscriptions past their expiry date as expired"""
        now = now or datetime.utcnow()
        expired = self.repo.get_expired_active(self.db, now)
        if not expired:
            return 0

        try:
            for subscription in expired:
                subscription.status = "expired"
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"⏰ Expired {len(expired)} subscriptions")
        return len(expired)


def to_subscription_response(subscription: UserSubscription) -> dict:
    return {
        "id": subscription.id,
        "owner_id": subscription.owner_id,
        "plan_id": subscription.plan_id,
        "total_credits": subscription.total_credits,
        "credits_used": subscription.credits_used,
        "credits_remaining": subscription.credits_remaining,
        "status": subscription.status,
        "purchase_date": subscription.purchase_date,
        "expiry_date": subscription.expiry_date,
        "cancelled_at": subscription.cancelled_at,
    }
