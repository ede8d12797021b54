import inspect
from datetime import date, timedelta

import pytest


@pytest.fixture
def admin(factory):
    return factory.user(role="admin")


@pytest.fixture
def walker(factory):
    return factory.walker(capacity=2)


def as_user(client, user):
    client.user_id = user.id
    return client


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_owner_onboarding_to_first_walk(client, factory, admin, walker, walk_day):
    owner_user = factory.user(role="owner")

    as_user(client, owner_user)
    owner = client.post("/owners", json={"name": "Sam Taylor", "email": "sam@example.com"}).json()
    dog = client.post("/dogs", json={"ownerId": owner["id"], "name": "Biscuit", "size": "Small"})
    assert dog.status_code == 201
    dog = dog.json()
    assert (dog["assessment_status"], dog["can_book"], dog["size"]) == ("none", False, "small")

    as_user(client, admin)
    plan = client.post(
        "/subscriptions/plans",
        json={"name": "Starter", "walkCredits": 4, "walkDuration": 60, "validityPeriod": 30, "price": 4800},
    ).json()

    as_user(client, owner_user)
    subscription = client.post("/subscriptions", json={"ownerId": owner["id"], "planId": plan["id"]}).json()
    assert subscription["credits_remaining"] == 4

    booking = {
        "dogId": dog["id"],
        "walkerId": walker.id,
        "subscriptionId": subscription["id"],
        "date": walk_day.isoformat(),
        "timeSlot": "am",
    }
    blocked = client.post("/walks", json=booking)
    assert blocked.status_code == 409
    assert blocked.json()["error"] == "DogNotEligible"

    assessment = client.post(
        "/assessments",
        json={"dogId": dog["id"], "ownerId": owner["id"], "requestedDate": (date.today() + timedelta(days=2)).isoformat()},
    )
    assert assessment.status_code == 201
    assessment_id = assessment.json()["id"]

    as_user(client, admin)
    scheduled = client.post(
        f"/assessments/{assessment_id}/assign",
        json={"walkerId": walker.id, "scheduledDate": f"{(date.today() + timedelta(days=2)).isoformat()}T10:00:00"},
    )
    assert scheduled.json()["status"] == "scheduled"
    completed = client.patch(f"/assessments/{assessment_id}", json={"status": "completed", "result": "approved"})
    assert completed.json()["result"] == "approved"

    as_user(client, owner_user)
    assert client.get(f"/dogs/{dog['id']}").json()["can_book"] is True
    created = client.post("/walks", json=booking)
    assert created.status_code == 201
    assert created.json()["time_slot"] == "AM"
    assert client.get(f"/subscriptions/{subscription['id']}").json()["credits_remaining"] == 3

    availability = client.get(f"/walkers/{walker.id}/availability", params={"date": walk_day.isoformat()}).json()
    assert availability["slots"]["AM"]["booked"] == 1
    assert availability["available_slots"] == ["AM", "PM"]

    history = client.get(f"/subscriptions/{subscription['id']}/transactions").json()
    assert [t["transaction_type"] for t in history] == ["debit"]


def test_walk_session_over_http(client, factory, admin, walker, walk_day):
    walk_ids = []
    as_user(client, admin)
    for _ in range(2):
        owner, dog, subscription = factory.bookable_dog()
        response = client.post(
            "/walks",
            json={
                "dogId": dog.id,
                "walkerId": walker.id,
                "subscriptionId": subscription.id,
                "date": walk_day.isoformat(),
                "timeSlot": "PM",
            },
        )
        walk_ids.append(response.json()["id"])

    first, second = walk_ids
    assert client.patch(f"/walks/{first}/dog-status", json={"targetSubState": "absent"}).status_code == 200
    early = client.patch(f"/walks/{first}/status", json={"targetStatus": "in_progress"})
    assert early.status_code == 409
    assert early.json()["error"] == "InvalidStateTransition"

    client.patch(f"/walks/{second}/dog-status", json={"targetSubState": "picked_up"})
    started = client.patch(f"/walks/{first}/status", json={"targetStatus": "in_progress"})
    assert [w["status"] for w in started.json()] == ["in_progress", "in_progress"]

    sessions = client.get("/walks/sessions", params={"walkerId": walker.id, "date": walk_day.isoformat()}).json()
    assert sessions[0]["status"] == "in_progress"

    client.patch(f"/walks/{second}/dog-status", json={"targetSubState": "dropped_off"})
    done = client.patch(f"/walks/{second}/status", json={"targetStatus": "completed"})
    assert {w["credit_state"] for w in done.json()} == {"consumed"}

    feedback = client.post(f"/walks/{second}/feedback", json={"rating": 4, "comment": "Good boy"})
    assert feedback.json()["feedback"]["rating"] == 4


def test_full_slot_reports_kind(client, factory, admin, walk_day):
    full_walker = factory.walker(capacity=1)
    as_user(client, admin)
    statuses = []
    for _ in range(2):
        owner, dog, subscription = factory.bookable_dog()
        response = client.post(
            "/walks",
            json={
                "dogId": dog.id,
                "walkerId": full_walker.id,
                "subscriptionId": subscription.id,
                "date": walk_day.isoformat(),
                "timeSlot": "AM",
            },
        )
        statuses.append((response.status_code, response.json().get("error")))

    assert statuses == [(201, None), (409, "SlotFull")]


def test_role_guard(client, factory):
    as_user(client, factory.user(role="owner"))

    response = client.post("/walkers", json={"name": "Alex"})

    assert response.status_code == 403


def test_not_found_shape(client, admin):
    as_user(client, admin)

    response = client.get("/walks/12345")

    assert response.status_code == 404
    assert response.json() == {"detail": "Walk 12345 not found", "error": "NotFound"}


def test_invalid_payload(client, admin):
    as_user(client, admin)

    response = client.post(
        "/walks",
        json={"dogId": 1, "walkerId": 1, "subscriptionId": 1, "date": "2030-06-03", "timeSlot": "EVENING"},
    )

    assert response.status_code == 422
    assert response.json()["error"] == "ValidationError"


def test_walker_availability_update(client, factory, admin, walk_day):
    walker_user = factory.user(role="walker")
    own = factory.walker(user=walker_user)
    as_user(client, walker_user)

    response = client.put(
        f"/walkers/{own.id}/availability",
        json={"availability": {walk_day.strftime("%A"): [{"start": "13:00", "end": "17:00"}]}},
    )

    assert response.status_code == 200
    slots = client.get(f"/walkers/{own.id}/availability", params={"date": walk_day.isoformat()}).json()
    assert slots["available_slots"] == ["PM"]

    bad = client.put(
        f"/walkers/{own.id}/availability",
        json={"availability": {"monday": [{"start": "17:00", "end": "09:00"}]}},
    )
    assert bad.status_code == 422


def book_over_http(client, walker_id, subscription, dog, walk_day, time_slot="AM"):
    return client.post(
        "/walks",
        json={
            "dogId": dog.id,
            "walkerId": walker_id,
            "subscriptionId": subscription.id,
            "date": walk_day.isoformat(),
            "timeSlot": time_slot,
        },
    )


def test_late_booking_into_started_session(client, factory, admin, walker, walk_day):
    as_user(client, admin)
    owner, dog, subscription = factory.bookable_dog()
    walk_id = book_over_http(client, walker.id, subscription, dog, walk_day).json()["id"]
    client.patch(f"/walks/{walk_id}/dog-status", json={"targetSubState": "picked_up"})
    client.patch(f"/walks/{walk_id}/status", json={"targetStatus": "in_progress"})

    other_owner, other_dog, other_subscription = factory.bookable_dog()
    late = book_over_http(client, walker.id, other_subscription, other_dog, walk_day)

    assert late.status_code == 409
    assert late.json()["error"] == "WalkerUnavailable"

    client.patch(f"/walks/{walk_id}/dog-status", json={"targetSubState": "dropped_off"})
    done = client.patch(f"/walks/{walk_id}/status", json={"targetStatus": "completed"})
    assert done.status_code == 200
    assert [w["status"] for w in done.json()] == ["completed"]


def test_locking_routes_are_sync():
    """Routes that may wait on an aggregate lock run in the threadpool, not on the event loop"""
    from walkapp.main import app

    endpoints = {(route.path, method): route.endpoint for route in app.routes for method in getattr(route, "methods", ())}

    for key in [
        ("/walks", "POST"),
        ("/walks/{walk_id}/status", "PATCH"),
        ("/walks/{walk_id}/dog-status", "PATCH"),
        ("/assessments/{assessment_id}", "PATCH"),
        ("/subscriptions/{subscription_id}/cancel", "POST"),
    ]:
        assert not inspect.iscoroutinefunction(endpoints[key]), key


def test_notifications_sent_after_commit(client, factory, admin, walker, walk_day, monkeypatch):
    sent = []

    async def record(job_name, **payload):
        sent.append((job_name, payload))
        return True

    monkeypatch.setattr("walkapp.domain.walks.router.enqueue_notification", record)
    as_user(client, admin)
    owner, dog, subscription = factory.bookable_dog()

    walk_id = book_over_http(client, walker.id, subscription, dog, walk_day).json()["id"]
    client.patch(f"/walks/{walk_id}/status", json={"targetStatus": "cancelled"})

    assert sent == [
        ("send_booking_confirmation_task", {"walk_id": walk_id}),
        ("send_cancellation_notice_task", {"walk_id": walk_id}),
    ]
