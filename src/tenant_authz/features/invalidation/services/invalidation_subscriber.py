"""Background consumer of cache invalidation events.

One subscriber runs per process. It evicts entries from the shared cache
for every event, including events this process published itself, so a
mutation and its local eviction always travel the same path.
"""

import asyncio
import logging
from enum import Enum
from typing import Optional

from pydantic import ValidationError

from .invalidation_publisher import processing_invalidation
from ..entities.invalidation_event import InvalidationEvent, InvalidationType
from ...cache.entities.protocols import PubSubChannel
from ...cache.services.key_value_cache import KeyValueCache
from ....config.constants import CacheChannels

logger = logging.getLogger(__name__)


class SubscriberState(str, Enum):
    """Lifecycle states of the subscriber."""
    STOPPED = "stopped"
    STARTING = "starting"
    SUBSCRIBED = "subscribed"
    PROCESSING = "processing"
    STOPPING = "stopping"


class CacheInvalidationSubscriber:
    """Receives invalidation events and evicts the matching cache entries."""

    def __init__(
        self,
        channel: PubSubChannel,
        cache: KeyValueCache,
        channel_name: str = CacheChannels.INVALIDATION,
    ):
        self._channel = channel
        self._cache = cache
        self.channel_name = channel_name
        self._state = SubscriberState.STOPPED
        self.processed_count = 0
        self.dropped_count = 0
        self.failed_count = 0

    @property
    def state(self) -> SubscriberState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state in (SubscriberState.SUBSCRIBED, SubscriberState.PROCESSING)

    async def start(self) -> None:
        """Subscribe to the invalidation channel."""
        if self._state is not SubscriberState.STOPPED:
            logger.warning(f"Invalidation subscriber already {self._state.value}, ignoring start")
            return

        self._state = SubscriberState.STARTING
        try:
            await self._channel.subscribe(self.channel_name, self.handle_message)
        except Exception:
            self._state = SubscriberState.STOPPED
            raise
        self._state = SubscriberState.SUBSCRIBED
        logger.info(f"Cache invalidation subscriber listening on '{self.channel_name}'")

    async def stop(self) -> None:
        """Stop accepting events, finish the in-flight one and unsubscribe."""
        if self._state in (SubscriberState.STOPPED, SubscriberState.STOPPING):
            return

        self._state = SubscriberState.STOPPING
        try:
            await self._channel.unsubscribe_all()
        except Exception as e:
            logger.error(f"Error unsubscribing invalidation subscriber: {e}")
        finally:
            self._state = SubscriberState.STOPPED
        logger.info(
            f"Cache invalidation subscriber stopped "
            f"(processed={self.processed_count}, dropped={self.dropped_count}, failed={self.failed_count})"
        )

    async def run(self, stop_event: asyncio.Event) -> None:
        """Run until stop_event is set or the task is cancelled."""
        if self._state is SubscriberState.STOPPED:
            await self.start()
        try:
            await stop_event.wait()
        finally:
            await self.stop()

    async def handle_message(self, payload: Optional[str]) -> None:
        """Process one received event. Never raises."""
        if self._state is SubscriberState.STOPPING:
            self.dropped_count += 1
            logger.debug("Dropping invalidation received while stopping")
            return

        if not payload:
            self.dropped_count += 1
            logger.warning("Received empty cache invalidation message")
            return

        try:
            event = InvalidationEvent.from_json(payload)
        except (ValidationError, ValueError) as e:
            self.dropped_count += 1
            logger.warning(f"Dropping malformed cache invalidation message {payload[:200]!r}: {e}")
            return

        previous_state = self._state
        self._state = SubscriberState.PROCESSING
        try:
            with processing_invalidation():
                removed = await self._apply(event)
            self.processed_count += 1
            logger.info(f"Processed invalidation {event.describe()}: {removed} entries removed")
        except Exception as e:
            self.failed_count += 1
            logger.error(f"Error processing invalidation {event.describe()}: {e}")
        finally:
            if self._state is SubscriberState.PROCESSING:
                self._state = previous_state

    async def _apply(self, event: InvalidationEvent) -> int:
        if event.type is InvalidationType.KEY:
            return int(await self._cache.remove(event.keys[0]))
        if event.type is InvalidationType.KEYS:
            return await self._cache.remove_many(event.keys)
        return await self._cache.remove_by_pattern(event.pattern)
