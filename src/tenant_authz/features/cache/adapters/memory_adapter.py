"""In-memory backend adapters for tenant-authz.

Used by tests and by single-process deployments without Redis. Several
MemoryPubSubChannel instances sharing one MemoryBroker behave like
separate processes connected to the same Redis server.
"""

import asyncio
import fnmatch
import logging
import time
from dataclasses import dataclass
from typing import AsyncIterator, Callable, Dict, List, Optional, Set

from ..entities.protocols import MessageHandler

logger = logging.getLogger(__name__)

_STOP = object()


@dataclass
class MemoryCacheEntry:
    """Memory cache entry with expiry."""
    value: str
    expires_at: Optional[float] = None

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at


class MemoryKeyValueBackend:
    """KeyValueBackend over a dict, with lazy expiry."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._entries: Dict[str, MemoryCacheEntry] = {}
        self._clock = clock

    def _live_entry(self, key: str) -> Optional[MemoryCacheEntry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._entries[key]
            return None
        return entry

    async def get(self, key: str) -> Optional[str]:
        entry = self._live_entry(key)
        return entry.value if entry else None

    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        expires_at = self._clock() + ttl_seconds if ttl_seconds else None
        self._entries[key] = MemoryCacheEntry(value=value, expires_at=expires_at)

    async def delete(self, *keys: str) -> int:
        deleted = 0
        for key in keys:
            if self._live_entry(key) is not None:
                del self._entries[key]
                deleted += 1
        return deleted

    async def exists(self, key: str) -> bool:
        return self._live_entry(key) is not None

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        entry = self._live_entry(key)
        if entry is None:
            return False
        entry.expires_at = self._clock() + ttl_seconds
        return True

    async def scan_iter(self, match: str, count: int = 1000) -> AsyncIterator[str]:
        # Snapshot so callers may delete while iterating
        for key in list(self._entries):
            if fnmatch.fnmatchcase(key, match) and self._live_entry(key) is not None:
                yield key

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        self._entries.clear()

    def keys(self) -> List[str]:
        """Live keys, for inspection in tests and diagnostics."""
        return [key for key in list(self._entries) if self._live_entry(key) is not None]


class MemoryBroker:
    """Process-local stand-in for a pub/sub server."""

    def __init__(self):
        self._subscriptions: Dict[str, Set[asyncio.Queue]] = {}

    def register(self, channel: str, queue: asyncio.Queue) -> None:
        self._subscriptions.setdefault(channel, set()).add(queue)

    def unregister(self, channel: str, queue: asyncio.Queue) -> None:
        queues = self._subscriptions.get(channel)
        if queues is not None:
            queues.discard(queue)
            if not queues:
                del self._subscriptions[channel]

    def publish(self, channel: str, message: str) -> int:
        queues = list(self._subscriptions.get(channel, ()))
        for queue in queues:
            queue.put_nowait(message)
        return len(queues)


class MemoryPubSubChannel:
    """PubSubChannel over a MemoryBroker.

    Each subscription gets its own queue and reader task; messages are
    handed to the handler one at a time.
    """

    def __init__(self, broker: Optional[MemoryBroker] = None):
        self.broker = broker or MemoryBroker()
        self._queues: Dict[str, asyncio.Queue] = {}
        self._readers: Dict[str, asyncio.Task] = {}
        self._accepting = False

    async def publish(self, channel: str, message: str) -> int:
        return self.broker.publish(channel, message)

    async def subscribe(self, channel: str, handler: MessageHandler) -> None:
        if channel in self._queues:
            raise ValueError(f"Already subscribed to channel '{channel}'")
        queue: asyncio.Queue = asyncio.Queue()
        self.broker.register(channel, queue)
        self._queues[channel] = queue
        self._accepting = True
        self._readers[channel] = asyncio.create_task(
            self._read_loop(channel, queue, handler), name=f"memory-pubsub-reader:{channel}"
        )
        logger.info(f"Subscribed to in-memory channel '{channel}'")

    async def _read_loop(self, channel: str, queue: asyncio.Queue, handler: MessageHandler) -> None:
        while True:
            message = await queue.get()
            try:
                if message is _STOP:
                    return
                if not self._accepting:
                    logger.debug(f"Dropping message on '{channel}' received after unsubscribe was requested")
                    continue
                await handler(message)
            except Exception as e:
                logger.error(f"Pub/sub handler failed on '{channel}': {e}")
            finally:
                queue.task_done()

    async def wait_until_idle(self) -> None:
        """Wait until every queued message has been handled."""
        await asyncio.gather(*(queue.join() for queue in self._queues.values()))

    async def unsubscribe_all(self) -> None:
        self._accepting = False
        for channel, queue in self._queues.items():
            self.broker.unregister(channel, queue)
            queue.put_nowait(_STOP)

        for task in self._readers.values():
            try:
                await task
            except asyncio.CancelledError:
                pass

        channels = list(self._queues)
        self._queues.clear()
        self._readers.clear()
        if channels:
            logger.info(f"Unsubscribed from in-memory channels {channels}")

    async def close(self) -> None:
        await self.unsubscribe_all()
