"""Invalidation entities."""

from .invalidation_event import InvalidationEvent, InvalidationType

__all__ = ["InvalidationEvent", "InvalidationType"]
