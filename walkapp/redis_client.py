"""
Redis connection shared by the cache tier and the health check
"""

import logging
import os
from typing import Optional

import redis

logger = logging.getLogger(__name__)

# Redis connection
redis_client: Optional[redis.Redis] = None


def _mask_url(redis_url: str) -> str:
    if "@" in redis_url:
        url_parts = redis_url.split("@")
        protocol = url_parts[0].split(":")[0]
        return f"{protocol}:****@{url_parts[1]}"
    return "****"


def get_redis_client() -> redis.Redis:
    """
    Get or create Redis client
    Supports both a REDIS_URL (managed Redis) and individual host settings
    """
    global redis_client

    if redis_client is None:
        logger.info("🔄 Initializing Redis connection...")

        redis_url = os.getenv("REDIS_URL")
        common_options = {
            "decode_responses": True,
            "socket_connect_timeout": 15,
            "socket_timeout": 30,
            "retry_on_timeout": True,
            "health_check_interval": 30,
            "max_connections": 20,
        }

        if redis_url:
            logger.info(f"📡 Using Redis URL connection: {_mask_url(redis_url)}")
            client = redis.from_url(redis_url, **common_options)
        else:
            redis_host = os.getenv("REDIS_HOST", "localhost")
            redis_port = int(os.getenv("REDIS_PORT", "6379"))
            redis_ssl = os.getenv("REDIS_SSL", "false").lower() == "true"
            logger.info(f"📡 Using Redis at {redis_host}:{redis_port} (SSL: {redis_ssl})")
            client = redis.Redis(
                host=redis_host,
                port=redis_port,
                password=os.getenv("REDIS_PASSWORD", None),
                db=int(os.getenv("REDIS_DB", "0")),
                ssl=redis_ssl,
                **common_options,
            )

        try:
            client.ping()
        except Exception as e:
            logger.error(f"❌ Failed to connect to Redis: {str(e)}")
            raise

        logger.info("Redis connected successfully")
        redis_client = client

    return redis_client
