"""Walk repository - Database operations for walks"""

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ...cache import Cache, availability_key
from ...models import Dog, Walk
from .state_machine import ACTIVE_STATUSES


class WalkRepository:
    """Repository for walk database operations.

    Walk writes change slot occupancy, so every write drops the cached day
    view for the walker and date it touches.
    """

    def __init__(self, cache: Optional[Cache] = None):
        self.cache = cache

    @staticmethod
    def get_walk_by_id(db: Session, walk_id: int) -> Optional[Walk]:
        return db.query(Walk).filter(Walk.id == walk_id).first()

    @staticmethod
    def get_walks(
        db: Session,
        dog_id: Optional[int] = None,
        walker_id: Optional[int] = None,
        day: Optional[date] = None,
        status: Optional[str] = None,
        owner_id: Optional[int] = None,
    ) -> list[Walk]:
        query = db.query(Walk)
        if dog_id is not None:
            query = query.filter(Walk.dog_id == dog_id)
        if walker_id is not None:
            query = query.filter(Walk.walker_id == walker_id)
        if day is not None:
            query = query.filter(Walk.date == day)
        if status is not None:
            query = query.filter(Walk.status == status)
        if owner_id is not None:
            query = query.join(Dog, Dog.id == Walk.dog_id).filter(Dog.owner_id == owner_id)
        return query.order_by(Walk.date, Walk.time_slot, Walk.id).all()

    @staticmethod
    def get_session_walks(db: Session, walker_id: int, day: date, time_slot: str) -> list[Walk]:
        """Active walks making up one group session"""
        return (
            db.query(Walk)
            .filter(
                Walk.walker_id == walker_id,
                Walk.date == day,
                Walk.time_slot == time_slot,
                Walk.status.in_(ACTIVE_STATUSES),
            )
            .order_by(Walk.id)
            .all()
        )

    @staticmethod
    def create_walk(db: Session, **walk_data) -> Walk:
        """Add a walk to the current unit of work. The caller commits."""
        walk = Walk(**walk_data)
        db.add(walk)
        db.flush()
        return walk

    def invalidate_slot(self, walker_id: int, day: date) -> None:
        if self.cache is not None:
            self.cache.delete(availability_key(walker_id, day))
