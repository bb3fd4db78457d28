"""Cache backend adapters."""

from .memory_adapter import MemoryBroker, MemoryKeyValueBackend, MemoryPubSubChannel
from .redis_adapter import RedisKeyValueBackend, RedisPubSubChannel, create_redis_client

__all__ = [
    "MemoryBroker",
    "MemoryKeyValueBackend",
    "MemoryPubSubChannel",
    "RedisKeyValueBackend",
    "RedisPubSubChannel",
    "create_redis_client",
]
