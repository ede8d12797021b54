from datetime import datetime, timedelta

import pytest

from walkapp.domain.subscriptions.ledger import CreditLedger, CreditReservation, subscription_is_active
from walkapp.domain.walks.booking import BookingTransaction
from walkapp.models import CreditTransaction, UserSubscription
from walkapp.shared.errors import InvalidCreditRelease, NoCreditsRemaining


def reload(db, subscription):
    db.expire_all()
    return db.get(UserSubscription, subscription.id)


def test_reserve_debits_one_credit(db, factory):
    owner = factory.owner()
    subscription = factory.subscription(owner, credits=3)

    reservation = CreditLedger(db).reserve(subscription.id)
    db.commit()

    assert reservation.state == "reserved"
    assert reload(db, subscription).credits_remaining == 2
    entry = db.query(CreditTransaction).one()
    assert (entry.transaction_type, entry.amount, entry.balance_after) == ("debit", -1, 2)


def test_reserve_with_no_credits_left(db, factory):
    owner = factory.owner()
    subscription = factory.subscription(owner, credits=2, credits_used=2)

    with pytest.raises(NoCreditsRemaining):
        CreditLedger(db).reserve(subscription.id)

    assert reload(db, subscription).credits_used == 2


@pytest.mark.parametrize("status", ["expired", "cancelled", "pending"])
def test_reserve_requires_active_status(db, factory, status):
    owner = factory.owner()
    subscription = factory.subscription(owner, status=status)

    with pytest.raises(NoCreditsRemaining):
        CreditLedger(db).reserve(subscription.id)


def test_reserve_after_expiry_date(db, factory):
    owner = factory.owner()
    subscription = factory.subscription(owner)

    with pytest.raises(NoCreditsRemaining):
        CreditLedger(db).reserve(subscription.id, now=subscription.expiry_date + timedelta(seconds=1))


def test_subscription_is_active_boundaries(factory):
    owner = factory.owner()
    subscription = factory.subscription(owner)

    assert subscription_is_active(subscription, subscription.expiry_date)
    assert not subscription_is_active(subscription, subscription.expiry_date + timedelta(days=1))


class TestRelease:
    @pytest.fixture
    def booked(self, db, factory, cache, walk_day):
        owner, dog, subscription = factory.bookable_dog(credits=2)
        walker = factory.walker()
        walk = BookingTransaction(db, cache).create_walk(dog.id, walker.id, subscription.id, walk_day, "AM")
        return walk, subscription

    def test_release_returns_credit(self, db, booked):
        walk, subscription = booked
        assert reload(db, subscription).credits_used == 1

        CreditLedger(db).release(CreditReservation.for_walk(walk))
        db.commit()

        assert reload(db, subscription).credits_used == 0
        db.refresh(walk)
        assert walk.credit_state == "released"
        types = [t.transaction_type for t in db.query(CreditTransaction).order_by(CreditTransaction.id)]
        assert types == ["debit", "refund"]

    def test_double_release_rejected(self, db, booked):
        walk, subscription = booked
        ledger = CreditLedger(db)
        ledger.release(CreditReservation.for_walk(walk))
        db.commit()

        with pytest.raises(InvalidCreditRelease):
            ledger.release(CreditReservation.for_walk(walk))
        db.rollback()

        assert reload(db, subscription).credits_used == 0

    def test_release_after_consume_rejected(self, db, booked):
        walk, subscription = booked
        ledger = CreditLedger(db)
        ledger.consume(CreditReservation.for_walk(walk))
        db.commit()

        with pytest.raises(InvalidCreditRelease):
            ledger.release(CreditReservation.for_walk(walk))
        db.rollback()

        assert reload(db, subscription).credits_used == 1

    def test_unbound_reservation_cannot_be_released(self, db, booked):
        _, subscription = booked

        with pytest.raises(InvalidCreditRelease):
            CreditLedger(db).release(CreditReservation(subscription_id=subscription.id))


def test_reserve_stamps_balance_on_each_debit(db, factory):
    owner = factory.owner()
    subscription = factory.subscription(owner, credits=2)
    ledger = CreditLedger(db)
    now = datetime.utcnow()

    ledger.reserve(subscription.id, now)
    ledger.reserve(subscription.id, now)
    db.commit()

    balances = [t.balance_after for t in db.query(CreditTransaction).order_by(CreditTransaction.id)]
    assert balances == [1, 0]
