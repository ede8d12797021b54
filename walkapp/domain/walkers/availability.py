"""
Availability resolver

A slot is available when the walker works the whole slot window that weekday
and fewer than ``capacity_per_slot`` active walks are booked in it. A slot whose
group session has started is closed to new bookings. Reads never persist
anything. The per-day view shown to owners may come from the cache; the
booking transaction always reads occupancy directly.
"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...cache import Cache, availability_key
from ...config import AVAILABILITY_CACHE_TTL
from ...models import Walk, Walker
from ...shared.errors import NotFound
from ...shared.validators import TIME_SLOTS, WEEKDAYS

logger = logging.getLogger(__name__)

SLOT_WINDOWS = {
    "AM": ("08:00", "11:00"),
    "PM": ("13:00", "16:00"),
}

# Walks holding a place in their slot
ACTIVE_WALK_STATUSES = ("scheduled", "in_progress")


def slot_in_availability(availability: Optional[dict], day: date, time_slot: str) -> bool:
    """True when one of the weekday's windows covers the whole slot window"""
    windows = (availability or {}).get(WEEKDAYS[day.weekday()]) or []
    slot_start, slot_end = SLOT_WINDOWS[time_slot]
    return any(w["start"] <= slot_start and w["end"] >= slot_end for w in windows)


class AvailabilityResolver:
    def __init__(self, db: Session, cache: Optional[Cache] = None):
        self.db = db
        self.cache = cache

    def occupancy(self, walker_id: int, day: date, time_slot: str) -> int:
        """Active walks booked in one slot. Never cached."""
        return (
            self.db.query(func.count(Walk.id))
            .filter(
                Walk.walker_id == walker_id,
                Walk.date == day,
                Walk.time_slot == time_slot,
                Walk.status.in_(ACTIVE_WALK_STATUSES),
            )
            .scalar()
        )

    def session_started(self, walker_id: int, day: date, time_slot: str) -> bool:
        """True once any walk in the slot is in progress"""
        return (
            self.db.query(Walk.id)
            .filter(
                Walk.walker_id == walker_id,
                Walk.date == day,
                Walk.time_slot == time_slot,
                Walk.status == "in_progress",
            )
            .first()
            is not None
        )

    def slot_occupancy(self, walker: Walker, day: date) -> dict:
        """Per-slot booked count, capacity and availability for one day"""
        rows = (
            self.db.query(Walk.time_slot, Walk.status, func.count(Walk.id))
            .filter(
                Walk.walker_id == walker.id,
                Walk.date == day,
                Walk.status.in_(ACTIVE_WALK_STATUSES),
            )
            .group_by(Walk.time_slot, Walk.status)
            .all()
        )
        booked: dict = {}
        started = set()
        for time_slot, status, count in rows:
            booked[time_slot] = booked.get(time_slot, 0) + count
            if status == "in_progress":
                started.add(time_slot)

        slots = {}
        for time_slot in TIME_SLOTS:
            count = booked.get(time_slot, 0)
            working = slot_in_availability(walker.availability, day, time_slot)
            slots[time_slot] = {
                "booked": count,
                "capacity": walker.capacity_per_slot,
                "in_availability": working,
                "available": working and time_slot not in started and count < walker.capacity_per_slot,
            }
        return slots

    def day_view(self, walker_id: int, day: date, use_cache: bool = True) -> dict:
        key = availability_key(walker_id, day)
        if use_cache and self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        walker = self.db.query(Walker).filter(Walker.id == walker_id).first()
        if not walker:
            raise NotFound("Walker", walker_id)

        slots = self.slot_occupancy(walker, day)
        if self.cache is not None:
            self.cache.set(key, slots, ttl=AVAILABILITY_CACHE_TTL)
        return slots

    def available_slots(self, walker_id: int, day: date, use_cache: bool = True) -> set[str]:
        slots = self.day_view(walker_id, day, use_cache=use_cache)
        return {time_slot for time_slot, info in slots.items() if info["available"]}
