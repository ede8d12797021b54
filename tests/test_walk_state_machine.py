from datetime import date

import pytest

from walkapp.domain.walks.state_machine import (
    DogSessionState,
    GroupSession,
    cancel_walk,
    changed_members,
    complete_session,
    set_pickup_status,
    start_session,
    transition,
)
from walkapp.shared.errors import InvalidStateTransition


def make_session(*members):
    return GroupSession(
        walker_id=1,
        date=date(2030, 6, 3),
        time_slot="AM",
        members=tuple(
            DogSessionState(walk_id=i + 1, dog_id=100 + i, status=status, pickup_status=pickup)
            for i, (status, pickup) in enumerate(members)
        ),
    )


class TestStartSession:
    def test_blocked_while_any_dog_pending(self):
        session = make_session(("scheduled", "picked_up"), ("scheduled", "absent"), ("scheduled", "pending"))

        with pytest.raises(InvalidStateTransition):
            start_session(session)

        assert all(m.status == "scheduled" for m in session.members)

    def test_all_ready_moves_every_member(self):
        session = make_session(("scheduled", "picked_up"), ("scheduled", "absent"), ("scheduled", "picked_up"))

        started = start_session(session)

        assert [m.status for m in started.members] == ["in_progress"] * 3
        assert session.status == "scheduled"
        assert started.status == "in_progress"

    def test_empty_session_cannot_start(self):
        with pytest.raises(InvalidStateTransition):
            start_session(make_session())


class TestCompleteSession:
    def test_picked_up_dog_blocks_completion(self):
        # One absent, one picked up: start succeeds, completion waits for drop-off
        session = make_session(("scheduled", "absent"), ("scheduled", "picked_up"))
        started = start_session(session)

        with pytest.raises(InvalidStateTransition):
            complete_session(started)

    def test_completes_once_dropped_off(self):
        session = make_session(("in_progress", "absent"), ("in_progress", "dropped_off"))

        completed = complete_session(session)

        assert {m.status for m in completed.members} == {"completed"}

    def test_requires_in_progress(self):
        session = make_session(("scheduled", "absent"))

        with pytest.raises(InvalidStateTransition):
            complete_session(session)


class TestPickupStatus:
    def test_pickup_then_dropoff(self):
        session = make_session(("scheduled", "pending"))
        session = set_pickup_status(session, 1, "picked_up")
        session = start_session(session)
        session = set_pickup_status(session, 1, "dropped_off")

        assert session.member(1).pickup_status == "dropped_off"

    def test_drop_off_requires_started_walk(self):
        session = make_session(("scheduled", "picked_up"))

        with pytest.raises(InvalidStateTransition):
            set_pickup_status(session, 1, "dropped_off")

    def test_pending_cannot_skip_to_dropped_off(self):
        session = make_session(("in_progress", "pending"))

        with pytest.raises(InvalidStateTransition):
            set_pickup_status(session, 1, "dropped_off")

    def test_picked_up_dog_can_become_absent_mid_walk(self):
        session = make_session(("in_progress", "picked_up"))

        assert set_pickup_status(session, 1, "absent").member(1).pickup_status == "absent"

    @pytest.mark.parametrize("terminal", ["dropped_off", "absent"])
    def test_terminal_sub_states(self, terminal):
        session = make_session(("in_progress", terminal))

        with pytest.raises(InvalidStateTransition):
            set_pickup_status(session, 1, "picked_up")


class TestCancelAndTransition:
    def test_cancel_touches_only_one_walk(self):
        session = make_session(("scheduled", "pending"), ("scheduled", "picked_up"))

        after = cancel_walk(session, 2)

        changes = changed_members(session, after)
        assert len(changes) == 1
        old, new = changes[0]
        assert (old.walk_id, old.status, new.status) == (2, "scheduled", "cancelled")

    def test_cancel_in_progress_allowed(self):
        session = make_session(("in_progress", "picked_up"))

        assert cancel_walk(session, 1).member(1).status == "cancelled"

    def test_unknown_walk_rejected(self):
        with pytest.raises(InvalidStateTransition):
            cancel_walk(make_session(("scheduled", "pending")), 99)

    def test_transition_dispatches_start(self):
        session = make_session(("scheduled", "picked_up"), ("scheduled", "absent"))

        after = transition(session, 1, "in_progress")

        assert after.status == "in_progress"

    @pytest.mark.parametrize("target", ["scheduled", "completed", "bogus"])
    def test_transition_rejects_invalid_targets_from_scheduled(self, target):
        session = make_session(("scheduled", "picked_up"))

        with pytest.raises(InvalidStateTransition):
            transition(session, 1, target)
