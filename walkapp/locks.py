"""
Per-aggregate mutual exclusion

Bookings are serialized per (walker, date, slot), lifecycle transitions per
group session and ledger mutations per subscription. Each aggregate key maps
to one in-process lock; on PostgreSQL a transaction-scoped advisory lock on
the same key extends the exclusion across API workers.

Callers must commit or roll back before leaving the ``aggregate_lock`` block.
Take slot locks before subscription locks.
"""

import logging
import zlib
from contextlib import contextmanager
from threading import Lock

from sqlalchemy import text
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


class KeyedLocks:
    """Registry of one lock per aggregate key, dropped once nobody holds or waits on it"""

    def __init__(self):
        self._locks: dict[str, list] = {}  # key -> [lock, holders + waiters]
        self._guard = Lock()

    def acquire(self, key: str) -> None:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = [Lock(), 0]
                self._locks[key] = entry
            entry[1] += 1
        entry[0].acquire()

    def release(self, key: str) -> None:
        with self._guard:
            entry = self._locks[key]
            entry[0].release()
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


_registry = KeyedLocks()


def slot_key(walker_id: int, day, time_slot: str) -> str:
    return f"slot:{walker_id}:{day.isoformat()}:{time_slot}"


def subscription_key(subscription_id: int) -> str:
    return f"subscription:{subscription_id}"


def assessment_key(assessment_id: int) -> str:
    return f"assessment:{assessment_id}"


def _advisory_id(key: str) -> int:
    # pg_advisory_xact_lock takes a bigint; crc32 keeps keys stable across processes
    return zlib.crc32(key.encode("utf-8"))


@contextmanager
def aggregate_lock(db: Session, *keys: str):
    """
    Hold the locks for ``keys`` (in the given order) for the duration of the block.
    """
    acquired = []
    try:
        for key in keys:
            _registry.acquire(key)
            acquired.append(key)

            if db.get_bind().dialect.name == "postgresql":
                db.execute(text("SELECT pg_advisory_xact_lock(:lock_id)"), {"lock_id": _advisory_id(key)})

        logger.debug(f"🔒 Locked {', '.join(keys)}")
        yield
    finally:
        for key in reversed(acquired):
            _registry.release(key)
