"""
Walk and group session state machine

Walks sharing a walker, date and slot run together as one group session.
Transitions are pure: each takes an immutable GroupSession and returns a new
one, or raises InvalidStateTransition leaving the input untouched. The
service applies the result to storage in a single transaction.

Walk status:  scheduled → in_progress → completed
              scheduled | in_progress → cancelled
Dog status:   pending → picked_up | absent
              picked_up → dropped_off | absent
"""

from dataclasses import dataclass, replace
from datetime import date

from ...shared.errors import InvalidStateTransition

WALK_TRANSITIONS = {
    "scheduled": ["in_progress", "cancelled"],
    "in_progress": ["completed", "cancelled"],
    "completed": [],  # Terminal state
    "cancelled": [],  # Terminal state
}

PICKUP_TRANSITIONS = {
    "pending": ["picked_up", "absent"],
    "picked_up": ["dropped_off", "absent"],
    "dropped_off": [],
    "absent": [],
}

# Walk status each pickup change is allowed from
PICKUP_REQUIRES_WALK_STATUS = {
    "picked_up": ("scheduled",),
    "absent": ("scheduled", "in_progress"),
    "dropped_off": ("in_progress",),
}

READY_TO_START = ("picked_up", "absent")
READY_TO_COMPLETE = ("dropped_off", "absent")

ACTIVE_STATUSES = ("scheduled", "in_progress")


@dataclass(frozen=True)
class DogSessionState:
    walk_id: int
    dog_id: int
    status: str
    pickup_status: str


@dataclass(frozen=True)
class GroupSession:
    """Active (scheduled or in progress) walks of one walker, date and slot"""

    walker_id: int
    date: date
    time_slot: str
    members: tuple[DogSessionState, ...]

    def member(self, walk_id: int) -> DogSessionState:
        for m in self.members:
            if m.walk_id == walk_id:
                return m
        raise InvalidStateTransition(f"Walk {walk_id} is not active in this session")

    def with_member(self, updated: DogSessionState) -> "GroupSession":
        return replace(
            self,
            members=tuple(updated if m.walk_id == updated.walk_id else m for m in self.members),
        )

    @property
    def status(self) -> str:
        statuses = {m.status for m in self.members}
        if not statuses:
            return "empty"
        if statuses == {"scheduled"}:
            return "scheduled"
        if statuses == {"in_progress"}:
            return "in_progress"
        return "mixed"


def validate_walk_transition(current_status: str, new_status: str) -> bool:
    return new_status in WALK_TRANSITIONS.get(current_status, [])


def start_session(session: GroupSession) -> GroupSession:
    """Move every member to in_progress once each dog is picked up or marked absent"""
    if not session.members:
        raise InvalidStateTransition("Session has no walks to start")

    for m in session.members:
        if m.status != "scheduled":
            raise InvalidStateTransition(f"Walk {m.walk_id} is {m.status}, expected scheduled")
        if m.pickup_status not in READY_TO_START:
            raise InvalidStateTransition(
                f"Dog {m.dog_id} is {m.pickup_status}; every dog must be picked up or absent"
            )

    return replace(session, members=tuple(replace(m, status="in_progress") for m in session.members))


def complete_session(session: GroupSession) -> GroupSession:
    """Move every member to completed once each dog is dropped off or marked absent"""
    if not session.members:
        raise InvalidStateTransition("Session has no walks to complete")

    for m in session.members:
        if m.status != "in_progress":
            raise InvalidStateTransition(f"Walk {m.walk_id} is {m.status}, expected in_progress")
        if m.pickup_status not in READY_TO_COMPLETE:
            raise InvalidStateTransition(
                f"Dog {m.dog_id} is {m.pickup_status}; every dog must be dropped off or absent"
            )

    return replace(session, members=tuple(replace(m, status="completed") for m in session.members))


def cancel_walk(session: GroupSession, walk_id: int) -> GroupSession:
    """Cancel one member; the rest of the session is unaffected"""
    m = session.member(walk_id)
    if not validate_walk_transition(m.status, "cancelled"):
        raise InvalidStateTransition(f"Cannot cancel walk {walk_id} from {m.status}")
    return session.with_member(replace(m, status="cancelled"))


def set_pickup_status(session: GroupSession, walk_id: int, target: str) -> GroupSession:
    """Record a dog's pickup, drop-off or absence"""
    m = session.member(walk_id)

    if target not in PICKUP_TRANSITIONS.get(m.pickup_status, []):
        raise InvalidStateTransition(f"Cannot change dog status from {m.pickup_status} to {target}")
    if m.status not in PICKUP_REQUIRES_WALK_STATUS[target]:
        raise InvalidStateTransition(f"Cannot mark dog {target} while the walk is {m.status}")

    return session.with_member(replace(m, pickup_status=target))


def transition(session: GroupSession, walk_id: int, target_status: str) -> GroupSession:
    """
    Apply a walk status change requested for ``walk_id``.

    Starting or completing acts on the whole session; cancelling acts on the
    one walk.
    """
    m = session.member(walk_id)
    if not validate_walk_transition(m.status, target_status):
        raise InvalidStateTransition(f"Cannot change walk {walk_id} from {m.status} to {target_status}")

    if target_status == "in_progress":
        return start_session(session)
    if target_status == "completed":
        return complete_session(session)
    return cancel_walk(session, walk_id)


def changed_members(before: GroupSession, after: GroupSession) -> list[tuple[DogSessionState, DogSessionState]]:
    """Pairs of (old, new) member states that differ"""
    previous = {m.walk_id: m for m in before.members}
    return [(previous[m.walk_id], m) for m in after.members if previous[m.walk_id] != m]
