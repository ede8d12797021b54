import pytest

from walkapp.domain.walks.booking import BookingTransaction
from walkapp.domain.walks.schemas import WalkFeedbackCreate
from walkapp.domain.walks.service import WalkService
from walkapp.models import CreditTransaction, UserSubscription, Walk
from walkapp.shared.errors import InvalidStateTransition, PermissionDenied, WalkerUnavailable


@pytest.fixture
def admin(factory):
    return factory.user(role="admin")


@pytest.fixture
def session_walks(db, factory, cache, walk_day):
    """Three dogs booked with one walker in the same AM slot"""
    walker = factory.walker()
    walks = []
    for _ in range(3):
        owner, dog, subscription = factory.bookable_dog(credits=5)
        walks.append(BookingTransaction(db, cache).create_walk(dog.id, walker.id, subscription.id, walk_day, "AM"))
    return walks


def credits_used(db, walk):
    db.expire_all()
    return db.get(UserSubscription, walk.subscription_id).credits_used


def test_group_guard_blocks_start_until_every_dog_ready(db, cache, admin, session_walks):
    service = WalkService(db, cache)
    first, second, third = session_walks

    service.update_dog_status(first.id, "picked_up", admin)
    service.update_dog_status(second.id, "absent", admin)

    with pytest.raises(InvalidStateTransition):
        service.update_status(first.id, "in_progress", admin)

    db.expire_all()
    assert {w.status for w in db.query(Walk).all()} == {"scheduled"}

    service.update_dog_status(third.id, "picked_up", admin)
    updated = service.update_status(second.id, "in_progress", admin)

    assert len(updated) == 3
    assert all(w.status == "in_progress" and w.started_at is not None for w in updated)


def test_scenario_c_complete_waits_for_drop_off(db, factory, cache, admin, walk_day):
    walker = factory.walker()
    service = WalkService(db, cache)
    walks = []
    for _ in range(2):
        owner, dog, subscription = factory.bookable_dog()
        walks.append(BookingTransaction(db, cache).create_walk(dog.id, walker.id, subscription.id, walk_day, "PM"))
    absent, present = walks

    service.update_dog_status(absent.id, "absent", admin)
    service.update_dog_status(present.id, "picked_up", admin)
    service.update_status(present.id, "in_progress", admin)

    with pytest.raises(InvalidStateTransition):
        service.update_status(present.id, "completed", admin)

    db.refresh(present)
    assert present.status == "in_progress"


def test_completion_consumes_credits(db, cache, admin, session_walks):
    service = WalkService(db, cache)
    for walk in session_walks:
        service.update_dog_status(walk.id, "picked_up", admin)
    service.update_status(session_walks[0].id, "in_progress", admin)
    for walk in session_walks:
        service.update_dog_status(walk.id, "dropped_off", admin)

    updated = service.update_status(session_walks[0].id, "completed", admin)

    assert {w.status for w in updated} == {"completed"}
    assert {w.credit_state for w in updated} == {"consumed"}
    assert all(credits_used(db, w) == 1 for w in session_walks)

    with pytest.raises(InvalidStateTransition):
        service.update_status(session_walks[0].id, "cancelled", admin)


def test_cancel_scheduled_walk_refunds(db, cache, admin, session_walks):
    walk = session_walks[0]
    assert credits_used(db, walk) == 1

    updated = WalkService(db, cache).update_status(walk.id, "cancelled", admin)

    assert [w.id for w in updated] == [walk.id]
    assert updated[0].credit_state == "released"
    assert updated[0].cancelled_at is not None
    assert credits_used(db, walk) == 0
    refund = db.query(CreditTransaction).filter(CreditTransaction.transaction_type == "refund").one()
    assert refund.walk_id == walk.id

    # The other two walks are untouched
    db.expire_all()
    assert [db.get(Walk, w.id).status for w in session_walks[1:]] == ["scheduled", "scheduled"]


def test_cancelled_walk_cannot_be_cancelled_again(db, cache, admin, session_walks):
    service = WalkService(db, cache)
    service.update_status(session_walks[0].id, "cancelled", admin)

    with pytest.raises(InvalidStateTransition):
        service.update_status(session_walks[0].id, "cancelled", admin)

    assert credits_used(db, session_walks[0]) == 0


def start_single(db, factory, cache, admin, walk_day):
    owner, dog, subscription = factory.bookable_dog()
    walk = BookingTransaction(db, cache).create_walk(dog.id, factory.walker().id, subscription.id, walk_day, "AM")
    service = WalkService(db, cache)
    service.update_dog_status(walk.id, "picked_up", admin)
    service.update_status(walk.id, "in_progress", admin)
    return walk


def test_mid_walk_cancellation_consumes_by_default(db, factory, cache, admin, walk_day):
    walk = start_single(db, factory, cache, admin, walk_day)

    updated = WalkService(db, cache, refund_on_mid_walk_cancellation=False).update_status(
        walk.id, "cancelled", admin
    )

    assert updated[0].credit_state == "consumed"
    assert credits_used(db, walk) == 1


def test_mid_walk_cancellation_refunds_when_enabled(db, factory, cache, admin, walk_day):
    walk = start_single(db, factory, cache, admin, walk_day)

    updated = WalkService(db, cache, refund_on_mid_walk_cancellation=True).update_status(
        walk.id, "cancelled", admin
    )

    assert updated[0].credit_state == "released"
    assert credits_used(db, walk) == 0


def test_refund_flag_defaults_to_config(db, cache, monkeypatch):
    from walkapp import config

    monkeypatch.setattr(config, "REFUND_ON_MID_WALK_CANCELLATION", True)

    assert WalkService(db, cache).refund_on_mid_walk_cancellation is True


def test_feedback_only_after_completion(db, factory, cache, admin, walk_day):
    walk = start_single(db, factory, cache, admin, walk_day)
    service = WalkService(db, cache)
    feedback = WalkFeedbackCreate(
        rating=5,
        comment="Great walk",
        metrics={"distanceCovered": 3.2, "totalTime": 55, "moodRating": 4},
    )

    with pytest.raises(InvalidStateTransition):
        service.submit_feedback(walk.id, feedback, admin)

    service.update_dog_status(walk.id, "dropped_off", admin)
    service.update_status(walk.id, "completed", admin)
    walk = service.submit_feedback(walk.id, feedback, admin)

    assert walk.feedback["rating"] == 5
    assert walk.metrics["distanceCovered"] == 3.2


def test_owner_may_cancel_but_not_start(db, factory, cache, walk_day):
    user = factory.user(role="owner")
    owner = factory.owner(user=user)
    dog = factory.dog(owner)
    subscription = factory.subscription(owner)
    walk = BookingTransaction(db, cache).create_walk(dog.id, factory.walker().id, subscription.id, walk_day, "AM")
    service = WalkService(db, cache)

    with pytest.raises(PermissionDenied):
        service.update_status(walk.id, "in_progress", user)

    assert service.update_status(walk.id, "cancelled", user)[0].status == "cancelled"


def test_list_sessions_groups_by_slot(db, factory, cache, walk_day, session_walks):
    walker_id = session_walks[0].walker_id
    owner, dog, subscription = factory.bookable_dog()
    BookingTransaction(db, cache).create_walk(dog.id, walker_id, subscription.id, walk_day, "PM")

    sessions = WalkService(db, cache).list_sessions(walker_id, walk_day)

    assert [(s["time_slot"], len(s["walks"]), s["status"]) for s in sessions] == [
        ("AM", 3, "scheduled"),
        ("PM", 1, "scheduled"),
    ]


def test_started_session_refuses_late_booking_and_still_completes(db, factory, cache, admin, walk_day):
    walk = start_single(db, factory, cache, admin, walk_day)
    owner, late_dog, late_subscription = factory.bookable_dog()

    with pytest.raises(WalkerUnavailable):
        BookingTransaction(db, cache).create_walk(
            late_dog.id, walk.walker_id, late_subscription.id, walk_day, "AM"
        )

    assert db.query(Walk).count() == 1
    db.refresh(late_subscription)
    assert late_subscription.credits_used == 0

    service = WalkService(db, cache)
    service.update_dog_status(walk.id, "dropped_off", admin)
    updated = service.update_status(walk.id, "completed", admin)

    assert [(w.id, w.status, w.credit_state) for w in updated] == [(walk.id, "completed", "consumed")]


def test_slot_reopens_for_a_new_session_after_completion(db, factory, cache, admin, walk_day):
    walk = start_single(db, factory, cache, admin, walk_day)
    service = WalkService(db, cache)
    service.update_dog_status(walk.id, "dropped_off", admin)
    service.update_status(walk.id, "completed", admin)

    owner, dog, subscription = factory.bookable_dog()
    later = BookingTransaction(db, cache).create_walk(dog.id, walk.walker_id, subscription.id, walk_day, "AM")

    assert later.status == "scheduled"
    service.update_dog_status(later.id, "picked_up", admin)
    assert service.update_status(later.id, "in_progress", admin)[0].status == "in_progress"
