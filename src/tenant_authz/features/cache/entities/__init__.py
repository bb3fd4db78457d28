"""Cache entities and protocols."""

from .protocols import CacheBackend, KeyValueBackend, PubSubChannel, MessageHandler

__all__ = ["CacheBackend", "KeyValueBackend", "PubSubChannel", "MessageHandler"]
