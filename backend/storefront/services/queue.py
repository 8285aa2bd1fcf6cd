from contextlib import asynccontextmanager
from typing import AsyncIterator

import redis.asyncio as redis
from loguru import logger
from redis.asyncio.lock import Lock
from redis.exceptions import LockError

from storefront.core.config import settings


class QueuePassLock:
    """Redis lock that keeps overlapping triggers from running two passes at once.

    Ownership is checked server-side on release, so a pass whose lock expired
    mid-run cannot drop the lock a later pass has taken since.
    """

    lock_key = "storefront:webhook_queue:pass"
    _client: redis.Redis | None = None

    @classmethod
    def client(cls) -> redis.Redis:
        if cls._client is None:
            cls._client = redis.from_url(settings.redis_url, decode_responses=True)
        return cls._client

    @classmethod
    async def acquire(cls, ttl: int | None = None) -> Lock | None:
        lock = cls.client().lock(
            cls.lock_key,
            timeout=ttl or settings.webhook_queue_pass_lock_ttl,
            blocking=False,
            thread_local=False,
        )
        if await lock.acquire():
            return lock
        return None

    @classmethod
    async def release(cls, lock: Lock) -> bool:
        try:
            await lock.release()
        except LockError:
            logger.warning("Webhook queue pass lock expired before release", lock_key=cls.lock_key)
            return False
        return True

    @classmethod
    @asynccontextmanager
    async def hold(cls, ttl: int | None = None) -> AsyncIterator[bool]:
        """Yield ``True`` while holding the lock, ``False`` if another pass has it."""
        lock = await cls.acquire(ttl)
        try:
            yield lock is not None
        finally:
            if lock is not None:
                await cls.release(lock)
