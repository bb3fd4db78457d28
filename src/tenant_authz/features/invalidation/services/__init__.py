"""Invalidation services."""

from .invalidation_publisher import CacheInvalidationPublisher, processing_invalidation
from .invalidation_subscriber import CacheInvalidationSubscriber, SubscriberState

__all__ = [
    "CacheInvalidationPublisher",
    "processing_invalidation",
    "CacheInvalidationSubscriber",
    "SubscriberState",
]
