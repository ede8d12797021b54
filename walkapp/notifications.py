"""
Notification hand-off

Booking, cancellation and assessment events are pushed to the ARQ worker
after the transaction that produced them has committed. Delivery is the
worker's concern; enqueueing never fails the request.
"""

import asyncio
import logging

from arq import create_pool

from . import config

logger = logging.getLogger(__name__)


async def enqueue_notification(job_name: str, **payload) -> bool:
    """Queue a notification job. Returns False when jobs are disabled or Redis is unreachable."""
    if not config.BACKGROUND_JOBS_ENABLED:
        logger.debug(f"Background jobs disabled, skipping {job_name}")
        return False

    from .worker import get_redis_settings

    try:
        pool = await asyncio.wait_for(create_pool(get_redis_settings()), timeout=10.0)
        try:
            job = await pool.enqueue_job(job_name, **payload)
        finally:
            await pool.close()
    except Exception as e:
        logger.warning(f"⚠️ Failed to enqueue {job_name}: {str(e)}")
        return False

    logger.info(f"📨 Enqueued {job_name} (job {job.job_id if job else 'duplicate'})")
    return True
