"""
BOOKING TRANSACTION
===================

Creates a walk as one unit of work, serialized per (walker, date, slot) and
per subscription:

1. Dog exists and passed (or is exempt from) assessment
2. Subscription is active, unexpired and belongs to the dog's owner
3. Slot is inside the walker's weekly hours, its session has not started
   and it is below capacity
4. One credit is reserved
5. The walk is persisted; if that fails the reservation is compensated

Nothing is visible to other sessions until the final commit.
"""

import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...cache import Cache
from ...locks import aggregate_lock, slot_key, subscription_key
from ...models import User, Walk
from ...shared.errors import (
    DogNotEligible,
    NoActiveSubscription,
    NotFound,
    SlotFull,
    WalkerUnavailable,
)
from ..dogs.eligibility import can_book
from ..dogs.repository import DogRepository
from ..dogs.service import ensure_owner_access
from ..subscriptions.ledger import CreditLedger, subscription_is_active
from ..subscriptions.repository import SubscriptionRepository
from ..walkers.availability import AvailabilityResolver, slot_in_availability
from ..walkers.repository import WalkerRepository
from .repository import WalkRepository

logger = logging.getLogger(__name__)


class BookingTransaction:
    def __init__(self, db: Session, cache: Optional[Cache] = None):
        self.db = db
        self.repo = WalkRepository(cache)
        self.ledger = CreditLedger(db)
        # Occupancy inside the transaction is always read from the database
        self.resolver = AvailabilityResolver(db)

    def create_walk(
        self,
        dog_id: int,
        walker_id: int,
        subscription_id: int,
        day: date,
        time_slot: str,
        notes: Optional[str] = None,
        user: Optional[User] = None,
        now: Optional[datetime] = None,
    ) -> Walk:
        """
        Book a walk and reserve its credit.

        Raises:
            NotFound, DogNotEligible, NoActiveSubscription, WalkerUnavailable,
            SlotFull, NoCreditsRemaining
        """
        now = now or datetime.utcnow()

        with aggregate_lock(self.db, slot_key(walker_id, day, time_slot), subscription_key(subscription_id)):
            try:
                walk = self._book(dog_id, walker_id, subscription_id, day, time_slot, notes, user, now)
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise

        self.db.refresh(walk)
        self.repo.invalidate_slot(walker_id, day)

        logger.info(
            f"✅ Walk {walk.id} booked: dog {dog_id} with walker {walker_id} "
            f"on {day.isoformat()} {time_slot}"
        )
        return walk

    def _book(self, dog_id, walker_id, subscription_id, day, time_slot, notes, user, now) -> Walk:
        dog = DogRepository.get_dog_by_id(self.db, dog_id)
        if not dog:
            raise NotFound("Dog", dog_id)
        if user is not None and user.role == "owner":
            ensure_owner_access(dog.owner, user)
        if not can_book(dog):
            raise DogNotEligible(
                f"Dog {dog.id} cannot be booked until its assessment is approved "
                f"(currently {dog.assessment_status})"
            )

        subscription = SubscriptionRepository.get_subscription_by_id(self.db, subscription_id)
        if not subscription:
            raise NotFound("Subscription", subscription_id)
        if subscription.owner_id != dog.owner_id:
            raise NoActiveSubscription(f"Subscription {subscription.id} does not belong to this dog's owner")
        if not subscription_is_active(subscription, now):
            raise NoActiveSubscription(f"Subscription {subscription.id} is {subscription.status} or expired")

        walker = WalkerRepository.get_walker_by_id(self.db, walker_id)
        if not walker:
            raise NotFound("Walker", walker_id)
        if not slot_in_availability(walker.availability, day, time_slot):
            raise WalkerUnavailable(f"Walker {walker.id} does not work {day.strftime('%A')} {time_slot}")

        if self.resolver.session_started(walker.id, day, time_slot):
            raise WalkerUnavailable(
                f"Walker {walker.id} has already started the {day.isoformat()} {time_slot} session"
            )

        booked = self.resolver.occupancy(walker.id, day, time_slot)
        if booked >= walker.capacity_per_slot:
            logger.info(f"🚫 Slot full for walker {walker.id} on {day.isoformat()} {time_slot} ({booked})")
            raise SlotFull(
                f"Walker {walker.id} is fully booked on {day.isoformat()} {time_slot} "
                f"({booked}/{walker.capacity_per_slot})"
            )

        reservation = self.ledger.reserve(subscription.id, now)

        try:
            walk = self.repo.create_walk(
                self.db,
                dog_id=dog.id,
                walker_id=walker.id,
                subscription_id=subscription.id,
                date=day,
                time_slot=time_slot,
                duration=subscription.plan.walk_duration,
                status="scheduled",
                pickup_status="pending",
                credit_state="reserved",
                notes=notes,
            )
            self.ledger.bind(reservation, walk)
            self.db.flush()
        except SQLAlchemyError as e:
            logger.error(f"❌ Failed to persist walk for dog {dog.id}: {str(e)}")
            self.ledger.compensate(reservation)
            raise

        return walk
