"""
Walk service - Group session lifecycle, dog status and feedback

Every transition loads the session's active walks, applies a pure transition
from state_machine and writes the changed walks plus their credit side effects
in one transaction.
"""

import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy.orm import Session

from ... import config
from ...cache import Cache
from ...locks import aggregate_lock, slot_key, subscription_key
from ...models import User, Walk
from ...shared.errors import InvalidStateTransition, NotFound, PermissionDenied
from ..dogs.repository import DogRepository
from ..subscriptions.ledger import CreditLedger, CreditReservation
from .repository import WalkRepository
from .schemas import WalkFeedbackCreate
from .state_machine import (
    ACTIVE_STATUSES,
    DogSessionState,
    GroupSession,
    changed_members,
    set_pickup_status,
    transition,
)

logger = logging.getLogger(__name__)


def build_session(walks: list[Walk], walker_id: int, day: date, time_slot: str) -> GroupSession:
    return GroupSession(
        walker_id=walker_id,
        date=day,
        time_slot=time_slot,
        members=tuple(
            DogSessionState(
                walk_id=w.id, dog_id=w.dog_id, status=w.status, pickup_status=w.pickup_status
            )
            for w in walks
        ),
    )


class WalkService:
    """Service layer for walk lifecycle business logic"""

    def __init__(
        self,
        db: Session,
        cache: Optional[Cache] = None,
        refund_on_mid_walk_cancellation: Optional[bool] = None,
    ):
        self.db = db
        self.repo = WalkRepository(cache)
        self.ledger = CreditLedger(db)
        if refund_on_mid_walk_cancellation is None:
            refund_on_mid_walk_cancellation = config.REFUND_ON_MID_WALK_CANCELLATION
        self.refund_on_mid_walk_cancellation = refund_on_mid_walk_cancellation

    # Queries

    def get_walk(self, walk_id: int, user: Optional[User] = None) -> Walk:
        walk = self.repo.get_walk_by_id(self.db, walk_id)
        if not walk:
            raise NotFound("Walk", walk_id)
        if user is not None:
            ensure_walk_access(walk, user)
        return walk

    def list_walks(
        self,
        user: User,
        dog_id: Optional[int] = None,
        walker_id: Optional[int] = None,
        day: Optional[date] = None,
        status: Optional[str] = None,
    ) -> list[Walk]:
        owner_id = None
        if user.role == "owner":
            owner = DogRepository.get_owner_by_user_id(self.db, user.id)
            if not owner:
                return []
            owner_id = owner.id
        elif user.role == "walker":
            walker_id = user.walker_profile.id if user.walker_profile else -1

        return self.repo.get_walks(
            self.db, dog_id=dog_id, walker_id=walker_id, day=day, status=status, owner_id=owner_id
        )

    def list_sessions(self, walker_id: int, day: date) -> list[dict]:
        """Every walk of a walker on a day, grouped by slot"""
        walks = self.repo.get_walks(self.db, walker_id=walker_id, day=day)

        sessions: dict[str, list[Walk]] = {}
        for walk in walks:
            sessions.setdefault(walk.time_slot, []).append(walk)

        result = []
        for time_slot in sorted(sessions):
            members = sessions[time_slot]
            active = [w for w in members if w.status in ACTIVE_STATUSES]
            status = build_session(active, walker_id, day, time_slot).status
            if status == "empty":
                finished = {w.status for w in members}
                status = "completed" if "completed" in finished else "cancelled"
            result.append(
                {"walker_id": walker_id, "date": day, "time_slot": time_slot, "status": status, "walks": members}
            )
        return result

    # Lifecycle

    def update_status(self, walk_id: int, target_status: str, user: User) -> list[Walk]:
        """
        Start, complete or cancel.

        Starting and completing move the whole group session; cancelling moves
        one walk. Returns every walk whose status changed.
        """
        walk = self.get_walk(walk_id)
        ensure_status_permission(walk, target_status, user)

        walker_id, day, time_slot = walk.walker_id, walk.date, walk.time_slot

        with aggregate_lock(self.db, slot_key(walker_id, day, time_slot)):
            try:
                walks = self._load_session(walk)
                before = build_session(walks, walker_id, day, time_slot)
                after = transition(before, walk.id, target_status)
                updated = self._apply(walks, before, after)
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise

        for w in updated:
            self.db.refresh(w)
        self.repo.invalidate_slot(walker_id, day)

        logger.info(
            f"🐾 Walk {walk_id} → {target_status}: {len(updated)} walk(s) updated "
            f"in session {walker_id}/{day.isoformat()}/{time_slot}"
        )
        return updated

    def update_dog_status(self, walk_id: int, target_sub_state: str, user: User) -> Walk:
        """Record a dog's pickup, drop-off or absence within its session"""
        walk = self.get_walk(walk_id)
        ensure_walker_or_admin(walk, user)

        walker_id, day, time_slot = walk.walker_id, walk.date, walk.time_slot

        with aggregate_lock(self.db, slot_key(walker_id, day, time_slot)):
            try:
                walks = self._load_session(walk)
                before = build_session(walks, walker_id, day, time_slot)
                after = set_pickup_status(before, walk.id, target_sub_state)
                self._apply(walks, before, after)
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise

        self.db.refresh(walk)
        logger.info(f"🐕 Walk {walk.id} dog status → {target_sub_state}")
        return walk

    def submit_feedback(self, walk_id: int, data: WalkFeedbackCreate, user: User) -> Walk:
        walk = self.get_walk(walk_id)
        ensure_walker_or_admin(walk, user)

        if walk.status != "completed":
            raise InvalidStateTransition(f"Feedback can only be added to completed walks (walk is {walk.status})")

        try:
            walk.feedback = {
                "rating": data.rating,
                "comment": data.comment,
                "timestamp": datetime.utcnow().isoformat(),
            }
            if data.metrics is not None:
                walk.metrics = data.metrics.model_dump()
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(walk)
        logger.info(f"📝 Feedback recorded for walk {walk.id}")
        return walk

    def _load_session(self, walk: Walk) -> list[Walk]:
        self.db.refresh(walk)
        if walk.status not in ACTIVE_STATUSES:
            raise InvalidStateTransition(f"Walk {walk.id} is already {walk.status}")
        return self.repo.get_session_walks(self.db, walk.walker_id, walk.date, walk.time_slot)

    def _apply(self, walks: list[Walk], before: GroupSession, after: GroupSession) -> list[Walk]:
        """Write changed member states and their credit side effects"""
        by_id = {w.id: w for w in walks}
        now = datetime.utcnow()
        updated = []

        for old, new in changed_members(before, after):
            walk = by_id[new.walk_id]
            walk.pickup_status = new.pickup_status

            if new.status != old.status:
                walk.status = new.status
                if new.status == "in_progress":
                    walk.started_at = now
                elif new.status == "completed":
                    walk.completed_at = now
                    self._settle_credit(walk, refund=False)
                elif new.status == "cancelled":
                    walk.cancelled_at = now
                    refund = old.status == "scheduled" or self.refund_on_mid_walk_cancellation
                    self._settle_credit(walk, refund=refund)

            updated.append(walk)

        self.db.flush()
        return updated

    def _settle_credit(self, walk: Walk, refund: bool) -> None:
        self.db.flush()
        reservation = CreditReservation.for_walk(walk)
        with aggregate_lock(self.db, subscription_key(walk.subscription_id)):
            if refund:
                self.ledger.release(reservation, reason=f"walk {walk.id} cancelled")
            else:
                self.ledger.consume(reservation)


def ensure_walk_access(walk: Walk, user: User) -> None:
    """Owners see their dogs' walks, walkers their own, admins all"""
    if user.role == "admin":
        return
    if user.role == "walker" and walk.walker.user_id == user.id:
        return
    if user.role == "owner" and walk.dog.owner.user_id == user.id:
        return
    raise PermissionDenied("Not authorized for this walk")


def ensure_walker_or_admin(walk: Walk, user: User) -> None:
    if user.role == "admin":
        return
    if user.role == "walker" and walk.walker.user_id == user.id:
        return
    raise PermissionDenied("Only the assigned walker can update this walk")


def ensure_status_permission(walk: Walk, target_status: str, user: User) -> None:
    """Owners may cancel their own dog's walk; running the session is for the walker"""
    if target_status == "cancelled" and user.role == "owner":
        ensure_walk_access(walk, user)
        return
    ensure_walker_or_admin(walk, user)
