"""Walker service - Business logic for walkers and their availability"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ...cache import Cache
from ...config import WALKER_CAPACITY_PER_SLOT
from ...models import User, Walker
from ...shared.errors import NotFound, PermissionDenied
from ...shared.validators import validate_weekly_availability
from .availability import AvailabilityResolver
from .repository import WalkerRepository
from .schemas import AvailabilityUpdate, WalkerCreate

logger = logging.getLogger(__name__)


class WalkerService:
    """Service layer for walker business logic"""

    def __init__(self, db: Session, cache: Optional[Cache] = None):
        self.db = db
        self.repo = WalkerRepository(cache)
        self.resolver = AvailabilityResolver(db, cache)

    def get_walker(self, walker_id: int) -> Walker:
        walker = self.repo.get_walker_by_id(self.db, walker_id)
        if not walker:
            raise NotFound("Walker", walker_id)
        return walker

    def list_walkers(self) -> list[Walker]:
        return self.repo.get_walkers(self.db)

    def create_walker(self, data: WalkerCreate) -> Walker:
        walker = self.repo.create_walker(
            self.db,
            user_id=data.userId,
            name=data.name,
            email=data.email,
            bio=data.bio,
            capacity_per_slot=data.capacityPerSlot or WALKER_CAPACITY_PER_SLOT,
            availability=data.availability or validate_weekly_availability(None),
            preferred_dog_sizes=data.preferredDogSizes or [],
        )
        logger.info(f"🚶 Walker {walker.id} created (capacity {walker.capacity_per_slot}/slot)")
        return walker

    def update_availability(self, walker_id: int, data: AvailabilityUpdate, user: User) -> Walker:
        walker = self.get_walker(walker_id)
        ensure_walker_access(walker, user)

        walker = self.repo.update_walker(
            self.db,
            walker,
            availability=data.availability,
            capacity_per_slot=data.capacityPerSlot,
        )
        logger.info(f"📅 Availability updated for walker {walker.id}")
        return walker

    def get_availability(self, walker_id: int, day: date) -> dict:
        slots = self.resolver.day_view(walker_id, day)
        return {
            "walker_id": walker_id,
            "date": day,
            "available_slots": sorted(s for s, info in slots.items() if info["available"]),
            "slots": slots,
        }


def ensure_walker_access(walker: Walker, user: User) -> None:
    """Walkers may only act on their own profile; admins on any"""
    if user.role == "admin":
        return
    if user.role != "walker" or walker.user_id != user.id:
        raise PermissionDenied("Not authorized for this walker")
