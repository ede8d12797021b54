"""Walker repository - Database operations for walkers"""

from typing import Optional

from sqlalchemy.orm import Session

from ...cache import Cache
from ...models import Walker


class WalkerRepository:
    """Repository for walker database operations"""

    def __init__(self, cache: Optional[Cache] = None):
        self.cache = cache

    @staticmethod
    def get_walker_by_id(db: Session, walker_id: int) -> Optional[Walker]:
        return db.query(Walker).filter(Walker.id == walker_id).first()

    @staticmethod
    def get_walker_by_user_id(db: Session, user_id: int) -> Optional[Walker]:
        return db.query(Walker).filter(Walker.user_id == user_id).first()

    @staticmethod
    def get_walkers(db: Session) -> list[Walker]:
        return db.query(Walker).order_by(Walker.name).all()

    @staticmethod
    def create_walker(db: Session, **walker_data) -> Walker:
        walker = Walker(**walker_data)
        db.add(walker)
        db.commit()
        db.refresh(walker)
        return walker

    def update_walker(self, db: Session, walker: Walker, **updates) -> Walker:
        """Update a walker and drop every cached day view for them"""
        for key, value in updates.items():
            if value is not None and hasattr(walker, key):
                setattr(walker, key, value)

        db.commit()
        db.refresh(walker)

        if self.cache is not None:
            self.cache.delete_prefix(f"availability:{walker.id}:")
        return walker
