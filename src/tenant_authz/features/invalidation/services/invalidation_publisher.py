"""Broadcasts cache invalidation events.

Publish failures raise CacheInvalidationError, except while the current
task is handling a received invalidation, where they are only logged.
"""

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterable, Iterator, Union

from ..entities.invalidation_event import InvalidationEvent
from ...cache.entities.keys import (
    tenant_namespace_patterns,
    tenant_slug_key,
    user_namespace_patterns,
)
from ...cache.entities.protocols import PubSubChannel
from ....config.constants import CacheChannels
from ....core.exceptions.infrastructure import CacheInvalidationError
from ....core.value_objects import TenantId, UserId

logger = logging.getLogger(__name__)

_processing_invalidation: ContextVar[bool] = ContextVar("processing_invalidation", default=False)


@contextmanager
def processing_invalidation() -> Iterator[None]:
    """Mark the current task as handling a received invalidation."""
    token = _processing_invalidation.set(True)
    try:
        yield
    finally:
        _processing_invalidation.reset(token)


class CacheInvalidationPublisher:
    """Serializes invalidation events and publishes them on one channel."""

    def __init__(self, channel: PubSubChannel, channel_name: str = CacheChannels.INVALIDATION):
        self._channel = channel
        self.channel_name = channel_name

    async def invalidate_key(self, key: str) -> int:
        return await self._publish(InvalidationEvent.for_key(key))

    async def invalidate_keys(self, keys: Iterable[str]) -> int:
        keys = [key for key in keys if key]
        if not keys:
            return 0
        return await self._publish(InvalidationEvent.for_keys(keys))

    async def invalidate_pattern(self, pattern: str) -> int:
        return await self._publish(InvalidationEvent.for_pattern(pattern))

    async def invalidate_user_permissions(
        self,
        tenant_id: Union[TenantId, str],
        user_id: Union[UserId, str],
    ) -> int:
        """Evict every decision cached for a user within a tenant."""
        receivers = 0
        for pattern in user_namespace_patterns(tenant_id, user_id):
            receivers += await self.invalidate_pattern(pattern)
        return receivers

    async def invalidate_tenant_permissions(self, tenant_id: Union[TenantId, str]) -> int:
        """Evict every decision cached within a tenant."""
        receivers = 0
        for pattern in tenant_namespace_patterns(tenant_id):
            receivers += await self.invalidate_pattern(pattern)
        return receivers

    async def invalidate_tenant_resolution(self, slug: str) -> int:
        """Evict the cached slug-to-tenant mapping."""
        return await self.invalidate_key(tenant_slug_key(slug))

    async def _publish(self, event: InvalidationEvent) -> int:
        try:
            receivers = await self._channel.publish(self.channel_name, event.to_json())
        except Exception as e:
            if _processing_invalidation.get():
                logger.error(
                    f"Failed to publish invalidation {event.describe()} while handling a received invalidation: {e}"
                )
                return 0
            logger.error(f"Failed to publish invalidation {event.describe()} on '{self.channel_name}': {e}")
            raise CacheInvalidationError(
                f"Failed to publish cache invalidation: {e}",
                details={
                    "channel": self.channel_name,
                    "type": event.type.value,
                    "keys": event.keys,
                    "pattern": event.pattern,
                },
            ) from e

        logger.info(f"Published invalidation {event.describe()} on '{self.channel_name}' ({receivers} receivers)")
        return receivers
