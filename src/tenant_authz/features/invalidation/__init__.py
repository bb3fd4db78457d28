"""Invalidation feature for tenant-authz.

Keeps per-process views of the shared decision cache coherent: writers
publish InvalidationEvents, one subscriber per process applies them.
"""

from .entities.invalidation_event import InvalidationEvent, InvalidationType
from .services.invalidation_publisher import CacheInvalidationPublisher, processing_invalidation
from .services.invalidation_subscriber import CacheInvalidationSubscriber, SubscriberState

__all__ = [
    "InvalidationEvent",
    "InvalidationType",
    "CacheInvalidationPublisher",
    "processing_invalidation",
    "CacheInvalidationSubscriber",
    "SubscriberState",
]
