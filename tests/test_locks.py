import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import date

import pytest

from walkapp import locks
from walkapp.locks import KeyedLocks, aggregate_lock, slot_key, subscription_key


def test_registry_forgets_released_keys():
    registry = KeyedLocks()

    registry.acquire("subscription:1")
    registry.acquire("subscription:2")
    assert len(registry) == 2

    registry.release("subscription:1")
    registry.release("subscription:2")
    assert len(registry) == 0


def test_key_kept_while_a_waiter_is_queued():
    registry = KeyedLocks()
    registry.acquire("slot:1")
    entered = threading.Event()

    def waiter():
        registry.acquire("slot:1")
        entered.set()
        registry.release("slot:1")

    thread = threading.Thread(target=waiter)
    thread.start()
    assert not entered.wait(0.1)

    registry.release("slot:1")
    thread.join(timeout=5)

    assert entered.is_set()
    assert len(registry) == 0


def test_aggregate_lock_serializes_and_cleans_up(db):
    key = slot_key(1, date(2030, 6, 3), "AM")
    inside = []
    overlaps = []

    def hold():
        with aggregate_lock(db, key, subscription_key(7)):
            inside.append(1)
            overlaps.append(len(inside))
            threading.Event().wait(0.01)
            inside.pop()

    with ThreadPoolExecutor(max_workers=4) as pool:
        list(pool.map(lambda _: hold(), range(8)))

    assert max(overlaps) == 1
    assert len(locks._registry) == 0


def test_aggregate_lock_releases_on_error(db):
    with pytest.raises(ValueError):
        with aggregate_lock(db, subscription_key(9)):
            raise ValueError("boom")

    assert len(locks._registry) == 0
