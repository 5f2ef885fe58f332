"""Periodic expiry of idle sessions.

Started as a background task from the application lifespan; each pass drops
sessions older than the configured TTL together with their bound order ids.
"""

import asyncio
from datetime import timedelta

import structlog

from sessions.store import SessionStore

logger = structlog.get_logger(__name__)


async def sweep_expired_sessions(store: SessionStore, ttl: timedelta, interval_seconds: float) -> None:
    """Run ``expire_older_than(ttl)`` every ``interval_seconds`` until cancelled."""
    logger.info("Session sweeper started", ttl_hours=ttl.total_seconds() / 3600, interval_seconds=interval_seconds)
    while True:
        await asyncio.sleep(interval_seconds)
        expired = await store.expire_older_than(ttl)
        logger.debug("Session sweep complete", expired_count=expired)
