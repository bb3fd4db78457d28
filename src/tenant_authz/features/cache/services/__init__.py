"""Cache services."""

from .key_value_cache import KeyValueCache

__all__ = ["KeyValueCache"]
