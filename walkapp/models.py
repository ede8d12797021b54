import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .config import WALKER_CAPACITY_PER_SLOT
from .database import Base


def generate_public_id():
    """Generate a unique public ID for secure public access"""
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    firebase_uid = Column(String(255), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=True)
    role = Column(String(20), default="owner", nullable=False)  # admin, walker, owner
    created_at = Column(DateTime, server_default=func.now())

    owner_profile = relationship("Owner", back_populates="user", uselist=False)
    walker_profile = relationship("Walker", back_populates="user", uselist=False)


class Owner(Base):
    __tablename__ = "owners"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, unique=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User", back_populates="owner_profile")
    dogs = relationship("Dog", back_populates="owner")
    subscriptions = relationship("UserSubscription", back_populates="owner")


class Dog(Base):
    __tablename__ = "dogs"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("owners.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    breed = Column(String(255), nullable=True)
    size = Column(String(20), nullable=True)  # small, medium, large
    # none → pending → scheduled → approved/denied, or not_required (exempted by admin)
    assessment_status = Column(String(20), default="none", nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    owner = relationship("Owner", back_populates="dogs")
    assessments = relationship("Assessment", back_populates="dog")
    walks = relationship("Walk", back_populates="dog")


class Walker(Base):
    __tablename__ = "walkers"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, unique=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    bio = Column(Text, nullable=True)
    capacity_per_slot = Column(Integer, default=WALKER_CAPACITY_PER_SLOT, nullable=False)
    # {"monday": [{"start": "08:00", "end": "11:00"}], ...}
    availability = Column(JSON, default=dict, nullable=False)
    preferred_dog_sizes = Column(JSON, default=list, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User", back_populates="walker_profile")
    walks = relationship("Walk", back_populates="walker")


class Assessment(Base):
    """Evaluation of a new dog, required before its first walk"""

    __tablename__ = "assessments"

    id = Column(Integer, primary_key=True, index=True)
    dog_id = Column(Integer, ForeignKey("dogs.id"), nullable=False, index=True)
    owner_id = Column(Integer, ForeignKey("owners.id"), nullable=False)
    assigned_walker_id = Column(Integer, ForeignKey("walkers.id"), nullable=True)

    requested_date = Column(Date, nullable=True)
    scheduled_date = Column(DateTime, nullable=True)

    # Status workflow: pending → scheduled → completed, pending|scheduled → cancelled
    status = Column(String(20), default="pending", nullable=False, index=True)
    result = Column(String(20), nullable=True)  # approved, denied (only when completed)

    admin_notes = Column(Text, nullable=True)
    result_notes = Column(Text, nullable=True)
    feedback = Column(JSON, nullable=True)  # Walker's behaviour ratings and recommendations

    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(
            "(status = 'completed' AND result IS NOT NULL) OR (status != 'completed' AND result IS NULL)",
            name="ck_assessment_result_only_when_completed",
        ),
    )

    dog = relationship("Dog", back_populates="assessments")
    assigned_walker = relationship("Walker")


class SubscriptionPlan(Base):
    __tablename__ = "subscription_plans"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    walk_credits = Column(Integer, nullable=False)
    walk_duration = Column(Integer, nullable=False)  # minutes per walk
    validity_period = Column(Integer, nullable=False)  # days
    price = Column(Integer, nullable=False)  # pence
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    __table_args__ = (
        CheckConstraint("walk_credits > 0", name="ck_plan_walk_credits_positive"),
        CheckConstraint("walk_duration > 0", name="ck_plan_walk_duration_positive"),
        CheckConstraint("validity_period > 0", name="ck_plan_validity_positive"),
    )


class UserSubscription(Base):
    """
    An owner's prepaid bundle of walk credits.

    CRITICAL: credits_used is ONLY modified by the CreditLedger.
    """

    __tablename__ = "user_subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("owners.id"), nullable=False, index=True)
    plan_id = Column(Integer, ForeignKey("subscription_plans.id"), nullable=False)

    total_credits = Column(Integer, nullable=False)
    credits_used = Column(Integer, default=0, nullable=False)

    status = Column(String(20), default="active", nullable=False)  # active, expired, cancelled, pending
    purchase_date = Column(DateTime, nullable=False)
    expiry_date = Column(DateTime, nullable=False)
    cancelled_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())

    __table_args__ = (
        CheckConstraint("credits_used >= 0", name="ck_subscription_credits_used_non_negative"),
        CheckConstraint("credits_used <= total_credits", name="ck_subscription_credits_within_total"),
    )

    owner = relationship("Owner", back_populates="subscriptions")
    plan = relationship("SubscriptionPlan")
    transactions = relationship("CreditTransaction", back_populates="subscription")

    @property
    def credits_remaining(self) -> int:
        return self.total_credits - self.credits_used


class CreditTransaction(Base):
    """
    Append-only audit entry for every ledger movement:
    - 'debit': a credit reserved for a walk (amount -1)
    - 'refund': a credit given back on cancellation (amount +1)
    """

    __tablename__ = "credit_transactions"

    id = Column(Integer, primary_key=True, index=True)
    subscription_id = Column(Integer, ForeignKey("user_subscriptions.id"), nullable=False, index=True)
    walk_id = Column(Integer, ForeignKey("walks.id"), nullable=True)
    transaction_type = Column(String(20), nullable=False)
    amount = Column(Integer, nullable=False)
    balance_after = Column(Integer, nullable=False)  # credits remaining after this entry
    reference = Column(String(255), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    VALID_TYPES = ["debit", "refund"]

    subscription = relationship("UserSubscription", back_populates="transactions")


class Walk(Base):
    """A booked walk for one dog with one walker in one slot"""

    __tablename__ = "walks"

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(
        String(36), unique=True, nullable=False, index=True, default=generate_public_id
    )

    dog_id = Column(Integer, ForeignKey("dogs.id"), nullable=False)
    walker_id = Column(Integer, ForeignKey("walkers.id"), nullable=False)
    subscription_id = Column(Integer, ForeignKey("user_subscriptions.id"), nullable=False)

    date = Column(Date, nullable=False)
    time_slot = Column(String(2), nullable=False)  # AM, PM
    duration = Column(Integer, nullable=False)  # minutes, from the plan

    # Status workflow: scheduled → in_progress → completed, scheduled|in_progress → cancelled
    status = Column(String(20), default="scheduled", nullable=False, index=True)
    # Per-dog session state: pending → picked_up|absent, picked_up → dropped_off|absent
    pickup_status = Column(String(20), default="pending", nullable=False)
    # Credit reservation held by this walk: reserved → released|consumed
    credit_state = Column(String(20), default="reserved", nullable=False)

    notes = Column(Text, nullable=True)

    # Written by the walker once the walk is completed
    feedback = Column(JSON, nullable=True)
    metrics = Column(JSON, nullable=True)

    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (Index("ix_walks_walker_slot", "walker_id", "date", "time_slot"),)

    dog = relationship("Dog", back_populates="walks")
    walker = relationship("Walker", back_populates="walks")
    subscription = relationship("UserSubscription")
