"""
Per-Kennel Mutation Locks

Serialises commands that add occupancy to the same kennel so two requests
cannot both pass the capacity check and jointly oversell it. Within one
process an ``asyncio.Lock`` per kennel is enough; when Redis is configured a
Redis lock is taken as well so several API workers serialise too.
"""
import asyncio
import logging
import weakref
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any, AsyncIterator, Optional

from redis import asyncio as aioredis
from redis.exceptions import LockError
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from app import config
from app import database
from app.services.errors import ConflictError

logger = logging.getLogger(__name__)


class KennelLockManager:
    """Hands out per-kennel locks, always acquired in sorted id order"""

    def __init__(self, redis: Optional[aioredis.Redis] = None, timeout: float = None):
        self.redis = redis
        self.timeout = timeout if timeout is not None else config.KENNEL_LOCK_TIMEOUT
        self._local = weakref.WeakValueDictionary()

    def _redis_client(self) -> Optional[aioredis.Redis]:
        return self.redis if self.redis is not None else database.get_redis()

    def _local_lock(self, kennel_id: str) -> asyncio.Lock:
        lock = self._local.get(kennel_id)
        if lock is None:
            lock = asyncio.Lock()
            self._local[kennel_id] = lock
        return lock

    @asynccontextmanager
    async def _kennel_lock(self, kennel_id: str) -> AsyncIterator[None]:
        local = self._local_lock(kennel_id)
        async with local:
            client = self._redis_client()
            if client is None:
                yield
                return

            lock = client.lock(
                f"kennel-lock:{kennel_id}",
                timeout=self.timeout,
                blocking_timeout=self.timeout,
            )
            if not await lock.acquire():
                logger.warning(f"Timed out waiting for distributed lock on kennel {kennel_id}")
                raise ConflictError(
                    f"Kennel {kennel_id} is being updated by another request; try again"
                )
            try:
                yield
            finally:
                try:
                    await lock.release()
                except LockError:
                    # Lock expired while held; the version check still guards the commit
                    logger.warning(f"Distributed lock on kennel {kennel_id} expired before release")

    @asynccontextmanager
    async def hold(self, *kennel_ids: Optional[str]) -> AsyncIterator[None]:
        """Hold the locks of every given kennel for the duration of the block."""
        ordered = sorted({kennel_id for kennel_id in kennel_ids if kennel_id})
        async with AsyncExitStack() as stack:
            for kennel_id in ordered:
                await stack.enter_async_context(self._kennel_lock(kennel_id))
            yield


async def claim_version(session: AsyncSession, model: Any, instance: Any) -> None:
    """
    Optimistic check-and-bump of a row's ``version`` column.

    Issues ``UPDATE ... SET version = version + 1 WHERE id = :id AND version = :seen``
    inside the caller's transaction. If another writer committed first no row
    matches and the whole command is rejected.

    Raises:
        ConflictError: If the row changed since it was read
    """
    seen = instance.version
    stmt = (
        update(model)
        .where(model.id == instance.id, model.version == seen)
        .values(version=seen + 1)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    if result.rowcount != 1:
        logger.warning(f"Stale {model.__tablename__} row {instance.id} (version {seen})")
        raise ConflictError(
            f"{model.__name__} {instance.id} was modified by another request; "
            "re-fetch and try again"
        )
    set_committed_value(instance, "version", seen + 1)


# Global lock manager instance
_lock_manager: Optional[KennelLockManager] = None


def get_lock_manager() -> KennelLockManager:
    """Get or create global KennelLockManager instance."""
    global _lock_manager
    if _lock_manager is None:
        _lock_manager = KennelLockManager()
    return _lock_manager
