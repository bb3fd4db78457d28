"""Infrastructure exceptions for tenant-authz.

Errors from the key-value store, the broadcast channel and the database.
"""

from .base import AuthzError


# Cache Errors
class CacheError(AuthzError):
    """Base class for cache-related errors."""
    pass


class CacheConnectionError(CacheError):
    """Raised when cache connection fails."""
    pass


class CacheSerializationError(CacheError):
    """Raised when cache value serialization/deserialization fails."""
    pass


class CacheInvalidationError(CacheError):
    """Raised when an invalidation event could not be published."""
    pass


# Database Errors
class DatabaseError(AuthzError):
    """Raised when the authority or tenant store fails."""
    pass


# Configuration Errors
class ConfigurationError(AuthzError):
    """Raised when a required collaborator or setting is missing."""
    pass
