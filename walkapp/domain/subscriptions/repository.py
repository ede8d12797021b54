"""Subscription repository - Database operations for plans, subscriptions and credit history"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...cache import Cache, active_plans_key
from ...models import CreditTransaction, SubscriptionPlan, UserSubscription

logger = logging.getLogger(__name__)


def plan_to_dict(plan: SubscriptionPlan) -> dict:
    return {
        "id": plan.id,
        "name": plan.name,
        "description": plan.description,
        "walk_credits": plan.walk_credits,
        "walk_duration": plan.walk_duration,
        "validity_period": plan.validity_period,
        "price": plan.price,
        "is_active": plan.is_active,
    }


class SubscriptionRepository:
    """Repository for plan and subscription database operations.

    The active plan catalogue is read through the cache and invalidated on
    every plan write.
    """

    def __init__(self, cache: Optional[Cache] = None):
        self.cache = cache

    # Plans

    def get_active_plans(self, db: Session) -> list[dict]:
        if self.cache is not None:
            cached = self.cache.get(active_plans_key())
            if cached is not None:
                return cached

        plans = (
            db.query(SubscriptionPlan)
            .filter(SubscriptionPlan.is_active.is_(True))
            .order_by(SubscriptionPlan.price)
            .all()
        )
        result = [plan_to_dict(p) for p in plans]

        if self.cache is not None:
            self.cache.set(active_plans_key(), result)
        return result

    @staticmethod
    def get_plan_by_id(db: Session, plan_id: int) -> Optional[SubscriptionPlan]:
        return db.query(SubscriptionPlan).filter(SubscriptionPlan.id == plan_id).first()

    def create_plan(self, db: Session, **plan_data) -> SubscriptionPlan:
        plan = SubscriptionPlan(**plan_data)
        db.add(plan)
        db.commit()
        db.refresh(plan)
        self._invalidate_plans()
        return plan

    def set_plan_active(self, db: Session, plan: SubscriptionPlan, is_active: bool) -> SubscriptionPlan:
        plan.is_active = is_active
        db.commit()
        db.refresh(plan)
        self._invalidate_plans()
        return plan

    def _invalidate_plans(self) -> None:
        if self.cache is not None:
            self.cache.delete(active_plans_key())

    # Subscriptions

    @staticmethod
    def get_subscription_by_id(db: Session, subscription_id: int) -> Optional[UserSubscription]:
        return db.query(UserSubscription).filter(UserSubscription.id == subscription_id).first()

    @staticmethod
    def get_subscriptions_for_owner(db: Session, owner_id: int) -> list[UserSubscription]:
        return (
            db.query(UserSubscription)
            .filter(UserSubscription.owner_id == owner_id)
            .order_by(UserSubscription.purchase_date.desc())
            .all()
        )

    @staticmethod
    def create_subscription(db: Session, **subscription_data) -> UserSubscription:
        subscription = UserSubscription(**subscription_data)
        db.add(subscription)
        db.commit()
        db.refresh(subscription)
        return subscription

    @staticmethod
    def get_expired_active(db: Session, now: datetime) -> list[UserSubscription]:
        return (
            db.query(UserSubscription)
            .filter(UserSubscription.status == "active", UserSubscription.expiry_date < now)
            .all()
        )

    @staticmethod
    def get_transactions(db: Session, subscription_id: int) -> list[CreditTransaction]:
        return (
            db.query(CreditTransaction)
            .filter(CreditTransaction.subscription_id == subscription_id)
            .order_by(CreditTransaction.id)
            .all()
        )
