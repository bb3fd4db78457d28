"""Redis backend adapters for tenant-authz."""

import asyncio
import logging
from typing import AsyncIterator, Dict, Optional, Union

from redis.asyncio import ConnectionPool, Redis
from redis.asyncio.client import PubSub

from ..entities.protocols import MessageHandler
from ....core.exceptions.infrastructure import CacheConnectionError

logger = logging.getLogger(__name__)


def _as_text(value: Union[str, bytes]) -> str:
    return value.decode("utf-8") if isinstance(value, bytes) else value


def create_redis_client(
    redis_url: str,
    pool_size: int = 10,
    decode_responses: bool = True,
) -> Redis:
    """Create a Redis client backed by a connection pool."""
    pool = ConnectionPool.from_url(
        redis_url,
        max_connections=pool_size,
        decode_responses=decode_responses,
    )
    return Redis(connection_pool=pool)


class RedisKeyValueBackend:
    """KeyValueBackend over a redis.asyncio client."""

    def __init__(self, client: Redis):
        self._client = client

    @property
    def client(self) -> Redis:
        return self._client

    async def get(self, key: str) -> Optional[str]:
        value = await self._client.get(key)
        return None if value is None else _as_text(value)

    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        await self._client.set(key, value, ex=ttl_seconds)

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return await self._client.delete(*keys)

    async def exists(self, key: str) -> bool:
        return await self._client.exists(key) > 0

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        return bool(await self._client.expire(key, ttl_seconds))

    async def scan_iter(self, match: str, count: int = 1000) -> AsyncIterator[str]:
        async for key in self._client.scan_iter(match=match, count=count):
            yield _as_text(key)

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except Exception as e:
            raise CacheConnectionError(f"Redis ping failed: {e}") from e

    async def close(self) -> None:
        await self._client.aclose()


class RedisPubSubChannel:
    """PubSubChannel over Redis pub/sub.

    A single reader task polls the subscription and awaits each handler
    before reading the next message, so handlers never overlap.
    """

    def __init__(self, client: Redis, poll_interval: float = 1.0):
        self._client = client
        self._poll_interval = poll_interval
        self._pubsub: Optional[PubSub] = None
        self._handlers: Dict[str, MessageHandler] = {}
        self._reader_task: Optional[asyncio.Task] = None
        self._accepting = False

    async def publish(self, channel: str, message: str) -> int:
        return await self._client.publish(channel, message)

    async def subscribe(self, channel: str, handler: MessageHandler) -> None:
        if self._pubsub is None:
            self._pubsub = self._client.pubsub()
        await self._pubsub.subscribe(channel)
        self._handlers[channel] = handler
        self._accepting = True

        if self._reader_task is None or self._reader_task.done():
            self._reader_task = asyncio.create_task(self._read_loop(), name="redis-pubsub-reader")
        logger.info(f"Subscribed to Redis channel '{channel}'")

    async def _read_loop(self) -> None:
        while self._accepting:
            try:
                message = await self._pubsub.get_message(
                    ignore_subscribe_messages=True,
                    timeout=self._poll_interval,
                )
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Error reading from Redis pub/sub: {e}")
                await asyncio.sleep(self._poll_interval)
                continue

            if message is None or message.get("type") != "message":
                continue
            if not self._accepting:
                logger.debug("Dropping message received after unsubscribe was requested")
                break

            handler = self._handlers.get(_as_text(message["channel"]))
            if handler is None:
                continue
            try:
                await handler(_as_text(message["data"]))
            except Exception as e:
                logger.error(f"Pub/sub handler failed: {e}")

    async def unsubscribe_all(self) -> None:
        self._accepting = False

        if self._reader_task is not None:
            try:
                await self._reader_task
            except asyncio.CancelledError:
                pass
            self._reader_task = None

        if self._pubsub is not None:
            try:
                await self._pubsub.unsubscribe()
                await self._pubsub.aclose()
            except Exception as e:
                logger.warning(f"Error closing Redis subscription: {e}")
            self._pubsub = None

        channels = list(self._handlers)
        self._handlers.clear()
        if channels:
            logger.info(f"Unsubscribed from Redis channels {channels}")

    async def close(self) -> None:
        await self.unsubscribe_all()
