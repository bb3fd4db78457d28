"""Cache protocols for tenant-authz.

Two small seams isolate the backend: a key-value store with TTLs and key
enumeration, and a broadcast channel. Redis provides both in production;
the in-memory adapters stand in for tests and single-node deployments.
"""

from abc import abstractmethod
from typing import (
    AsyncIterator,
    Awaitable,
    Callable,
    Optional,
    Protocol,
    runtime_checkable,
)
from enum import Enum


MessageHandler = Callable[[str], Awaitable[None]]


class CacheBackend(str, Enum):
    """Supported cache backend types."""
    MEMORY = "memory"
    REDIS = "redis"


@runtime_checkable
class KeyValueBackend(Protocol):
    """Raw string key-value store with TTLs.

    Implementations raise on connectivity problems; KeyValueCache is the
    layer that turns those errors into cache misses.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Get the raw value stored under key, None when absent or expired."""
        ...

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        """Store value under key, expiring after ttl_seconds when given."""
        ...

    @abstractmethod
    async def delete(self, *keys: str) -> int:
        """Delete keys, returning how many existed."""
        ...

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Check whether key holds a live value."""
        ...

    @abstractmethod
    async def expire(self, key: str, ttl_seconds: int) -> bool:
        """Reset the TTL of an existing key."""
        ...

    @abstractmethod
    def scan_iter(self, match: str, count: int = 1000) -> AsyncIterator[str]:
        """Iterate over keys matching a glob-style pattern."""
        ...

    @abstractmethod
    async def ping(self) -> bool:
        """Check backend connectivity."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release backend connections."""
        ...


@runtime_checkable
class PubSubChannel(Protocol):
    """Broadcast primitive.

    Every subscriber of a channel, including one in the publishing
    process, receives every message published on it. Delivery is
    at-least-once and unordered across publishers.
    """

    @abstractmethod
    async def publish(self, channel: str, message: str) -> int:
        """Publish message, returning the number of receivers."""
        ...

    @abstractmethod
    async def subscribe(self, channel: str, handler: MessageHandler) -> None:
        """Deliver messages from channel to handler, one at a time."""
        ...

    @abstractmethod
    async def unsubscribe_all(self) -> None:
        """Stop accepting messages, let the in-flight handler finish, then unsubscribe."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Unsubscribe and release connections."""
        ...
