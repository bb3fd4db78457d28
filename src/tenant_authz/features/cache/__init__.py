"""Cache feature for tenant-authz.

- entities/: backend protocols (key-value store, broadcast channel)
- services/: KeyValueCache, the best-effort JSON cache used by every layer
- adapters/: Redis and in-memory implementations
"""

from .entities.protocols import CacheBackend, KeyValueBackend, PubSubChannel, MessageHandler
from .services.key_value_cache import KeyValueCache
from .adapters.memory_adapter import MemoryBroker, MemoryKeyValueBackend, MemoryPubSubChannel
from .adapters.redis_adapter import RedisKeyValueBackend, RedisPubSubChannel, create_redis_client

__all__ = [
    "CacheBackend",
    "KeyValueBackend",
    "PubSubChannel",
    "MessageHandler",
    "KeyValueCache",
    "MemoryBroker",
    "MemoryKeyValueBackend",
    "MemoryPubSubChannel",
    "RedisKeyValueBackend",
    "RedisPubSubChannel",
    "create_redis_client",
]
