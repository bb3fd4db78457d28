"""Exceptions module for tenant-authz.

The exception hierarchy, organized by domain concerns and infrastructure
concerns.
"""

from .base import (
    AuthzError,
    get_http_status_code,
    create_error_response,
)
from .domain import (
    NotFoundError,
    ConflictError,
    ValidationError,
    NoTenantError,
    AuthorityProtectedError,
    PermissionDeniedError,
)
from .infrastructure import (
    CacheError,
    CacheConnectionError,
    CacheSerializationError,
    CacheInvalidationError,
    DatabaseError,
    ConfigurationError,
)

__all__ = [
    "AuthzError",
    "get_http_status_code",
    "create_error_response",
    "NotFoundError",
    "ConflictError",
    "ValidationError",
    "NoTenantError",
    "AuthorityProtectedError",
    "PermissionDeniedError",
    "CacheError",
    "CacheConnectionError",
    "CacheSerializationError",
    "CacheInvalidationError",
    "DatabaseError",
    "ConfigurationError",
]
