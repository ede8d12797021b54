"""
CREDIT LEDGER - ATOMIC CREDIT OPERATIONS
========================================

CRITICAL BUSINESS RULES:
1. UserSubscription.credits_used ONLY changes here
2. One credit per walk: reserve on booking, release on cancellation,
   consume on completion
3. A debit is a single conditional UPDATE, so credits_used never exceeds
   total_credits even when two bookings race on the same subscription
4. A reservation is released or consumed exactly once
5. Every movement appends a CreditTransaction

The ledger never commits; it runs inside the caller's unit of work.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from ...models import CreditTransaction, UserSubscription, Walk
from ...shared.errors import InvalidCreditRelease, NoCreditsRemaining

logger = logging.getLogger(__name__)


@dataclass
class CreditReservation:
    """One reserved credit, bound to the walk it pays for once that walk exists"""

    subscription_id: int
    walk_id: Optional[int] = None
    state: str = "reserved"  # reserved, released, consumed
    transaction_id: Optional[int] = None

    @classmethod
    def for_walk(cls, walk: Walk) -> "CreditReservation":
        return cls(subscription_id=walk.subscription_id, walk_id=walk.id, state=walk.credit_state)


def subscription_is_active(subscription: UserSubscription, now: Optional[datetime] = None) -> bool:
    """Active status and not past expiry. Credits are checked by reserve()."""
    now = now or datetime.utcnow()
    return subscription.status == "active" and now <= subscription.expiry_date


class CreditLedger:
    """Sole authority over a subscription's credit balance"""

    def __init__(self, db: Session):
        self.db = db

    def reserve(self, subscription_id: int, now: Optional[datetime] = None) -> CreditReservation:
        """
        Take one credit from the subscription.

        Raises:
            NoCreditsRemaining: no credits left, subscription not active, or expired
        """
        now = now or datetime.utcnow()

        result = self.db.execute(
            update(UserSubscription)
            .where(
                UserSubscription.id == subscription_id,
                UserSubscription.credits_used < UserSubscription.total_credits,
                UserSubscription.status == "active",
                UserSubscription.expiry_date >= now,
            )
            .values(credits_used=UserSubscription.credits_used + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.info(f"💳 No credit available on subscription {subscription_id}")
            raise NoCreditsRemaining(f"Subscription {subscription_id} has no usable credits")

        remaining = self._refresh_remaining(subscription_id)
        transaction = self._record(subscription_id, None, "debit", -1, remaining, "walk booking")

        logger.info(f"💳 Reserved credit on subscription {subscription_id} ({remaining} remaining)")
        return CreditReservation(subscription_id=subscription_id, transaction_id=transaction.id)

    def bind(self, reservation: CreditReservation, walk: Walk) -> CreditReservation:
        """Attach a fresh reservation to the walk it pays for"""
        reservation.walk_id = walk.id
        if reservation.transaction_id is not None:
            transaction = self.db.get(CreditTransaction, reservation.transaction_id)
            if transaction is not None:
                transaction.walk_id = walk.id
                transaction.reference = f"walk {walk.id} booked"
        return reservation

    def release(self, reservation: CreditReservation, reason: str = "walk cancelled") -> CreditReservation:
        """
        Give the credit back to the subscription.

        Raises:
            InvalidCreditRelease: already released, or consumed by a completed walk
        """
        self._transition_walk_credit(reservation, "released")

        result = self.db.execute(
            update(UserSubscription)
            .where(
                UserSubscription.id == reservation.subscription_id,
                UserSubscription.credits_used > 0,
            )
            .values(credits_used=UserSubscription.credits_used - 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InvalidCreditRelease(
                f"Subscription {reservation.subscription_id} has no used credits to release"
            )

        remaining = self._refresh_remaining(reservation.subscription_id)
        self._record(reservation.subscription_id, reservation.walk_id, "refund", 1, remaining, reason)

        logger.info(
            f"↩️ Released credit for walk {reservation.walk_id} on subscription "
            f"{reservation.subscription_id} ({remaining} remaining)"
        )
        return reservation

    def consume(self, reservation: CreditReservation) -> CreditReservation:
        """Mark the credit permanently spent; it can no longer be released"""
        self._transition_walk_credit(reservation, "consumed")
        logger.debug(f"Credit for walk {reservation.walk_id} consumed")
        return reservation

    def compensate(self, reservation: CreditReservation) -> CreditReservation:
        """
        Undo a reservation whose walk could not be persisted.

        The debit was only flushed, so rolling back the unit of work returns
        the credit together with its audit entry.
        """
        self.db.rollback()
        reservation.state = "released"
        logger.warning(f"↩️ Compensated credit reservation on subscription {reservation.subscription_id}")
        return reservation

    def _transition_walk_credit(self, reservation: CreditReservation, target: str) -> None:
        if reservation.walk_id is None:
            raise InvalidCreditRelease("Reservation is not bound to a walk")

        result = self.db.execute(
            update(Walk)
            .where(Walk.id == reservation.walk_id, Walk.credit_state == "reserved")
            .values(credit_state=target)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InvalidCreditRelease(
                f"Credit for walk {reservation.walk_id} was already {reservation.state}"
                if reservation.state != "reserved"
                else f"Credit for walk {reservation.walk_id} is no longer reserved"
            )

        walk = self.db.get(Walk, reservation.walk_id)
        if walk is not None:
            self.db.refresh(walk)
        reservation.state = target

    def _refresh_remaining(self, subscription_id: int) -> int:
        subscription = self.db.get(UserSubscription, subscription_id)
        self.db.refresh(subscription)
        return subscription.credits_remaining

    def _record(self, subscription_id, walk_id, transaction_type, amount, balance_after, reference):
        transaction = CreditTransaction(
            subscription_id=subscription_id,
            walk_id=walk_id,
            transaction_type=transaction_type,
            amount=amount,
            balance_after=balance_after,
            reference=reference,
        )
        self.db.add(transaction)
        self.db.flush()
        return transaction
