"""
Read-through cache owned by the persistence layer

Entries are key -> (value, expiry). With CACHE_BACKEND=redis every entry lives
in Redis only, so all API workers see the same invalidations; otherwise a
process-local store is used. Repositories receive a Cache instance and
invalidate the keys they touch on every write.
"""

import json
import logging
import time
from threading import Lock
from typing import Any, Optional

from fastapi import Request

from .config import CACHE_BACKEND, CACHE_DEFAULT_TTL

logger = logging.getLogger(__name__)


class Cache:
    """Redis or in-process cache with automatic JSON serialization for Redis"""

    def __init__(self, redis_client=None, default_ttl: int = CACHE_DEFAULT_TTL):
        self.redis_client = redis_client
        self.default_ttl = default_ttl
        self._entries: dict[str, tuple[Any, float]] = {}
        self._lock = Lock()

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache"""
        if self.redis_client is not None:
            try:
                raw = self.redis_client.get(key)
                if raw:
                    logger.debug(f"✅ Cache HIT: {key}")
                    return json.loads(raw)
            except Exception as e:
                logger.error(f"❌ Cache get error for {key}: {e}")
                return None
            logger.debug(f"❌ Cache MISS: {key}")
            return None

        now = time.monotonic()
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                value, expires_at = entry
                if now < expires_at:
                    logger.debug(f"✅ Cache HIT: {key}")
                    return value
                del self._entries[key]

        logger.debug(f"❌ Cache MISS: {key}")
        return None

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """Set value in cache with TTL (seconds)"""
        ttl = ttl or self.default_ttl

        if self.redis_client is not None:
            try:
                self.redis_client.setex(key, ttl, json.dumps(value))
            except Exception as e:
                logger.error(f"❌ Cache set error for {key}: {e}")
                return
        else:
            with self._lock:
                self._entries[key] = (value, time.monotonic() + ttl)

        logger.debug(f"✅ Cache SET: {key} (TTL: {ttl}s)")

    def delete(self, key: str) -> None:
        """Invalidate a single key"""
        if self.redis_client is not None:
            try:
                self.redis_client.delete(key)
            except Exception as e:
                logger.error(f"❌ Cache delete error for {key}: {e}")
                return
        else:
            with self._lock:
                self._entries.pop(key, None)

        logger.debug(f"✅ Cache DELETE: {key}")

    def delete_prefix(self, prefix: str) -> int:
        """Invalidate every key starting with prefix (e.g. 'availability:12:')"""
        if self.redis_client is not None:
            try:
                keys = list(self.redis_client.scan_iter(match=f"{prefix}*"))
                if keys:
                    self.redis_client.delete(*keys)
                return len(keys)
            except Exception as e:
                logger.error(f"❌ Cache delete prefix error for {prefix}: {e}")
                return 0

        with self._lock:
            keys = [k for k in self._entries if k.startswith(prefix)]
            for k in keys:
                del self._entries[k]
        return len(keys)


def build_cache() -> Cache:
    """Create the application cache from configuration"""
    if CACHE_BACKEND == "redis":
        try:
            from .redis_client import get_redis_client

            cache = Cache(redis_client=get_redis_client())
            logger.info("Cache using Redis")
            return cache
        except Exception as e:
            logger.warning(f"⚠️ Redis cache unavailable, using in-process cache: {e}")

    logger.info("Cache using in-process store")
    return Cache()


def get_cache(request: Request) -> Cache:
    """Dependency returning the cache created at application startup"""
    cache = getattr(request.app.state, "cache", None)
    if cache is None:
        cache = build_cache()
        request.app.state.cache = cache
    return cache


# Cache key builders


def availability_key(walker_id: int, day) -> str:
    return f"availability:{walker_id}:{day.isoformat()}"


def active_plans_key() -> str:
    return "plans:active"
