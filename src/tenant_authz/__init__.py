"""tenant-authz - tenant-scoped permission resolution for multi-tenant services.

Decisions are computed from authority data, cached per tenant and user,
and kept coherent across processes through pub/sub invalidation.
"""

# Initialize logging configuration on import
from .config.logging_config import setup_logging
setup_logging()

from .__version__ import __version__

from .config import AuthzSettings, CacheKeys, CacheTTL, get_settings

from .core.exceptions import (
    AuthzError,
    NotFoundError,
    ConflictError,
    ValidationError,
    NoTenantError,
    AuthorityProtectedError,
    CacheError,
    CacheInvalidationError,
    DatabaseError,
    ConfigurationError,
    get_http_status_code,
    create_error_response,
)

from .core.value_objects import TenantId, UserId

from .features.cache import (
    KeyValueBackend,
    KeyValueCache,
    MemoryKeyValueBackend,
    MemoryPubSubChannel,
    PubSubChannel,
    RedisKeyValueBackend,
    RedisPubSubChannel,
)

from .features.invalidation import (
    CacheInvalidationPublisher,
    CacheInvalidationSubscriber,
    InvalidationEvent,
    InvalidationType,
    SubscriberState,
)

from .features.tenants import (
    Tenant,
    TenantContext,
    TenantRepository,
    TenantResolutionCache,
    TenantResolver,
)

from .features.authorization import (
    Authority,
    AuthorityRepository,
    AuthorityWithPermissions,
    AuthorizationCache,
    AuthorizationManager,
    AuthorizationResolver,
    PermissionLevel,
    ResourceGrant,
    Resources,
    UserAuthority,
)

from .bootstrap import AuthorizationModule

__all__ = [
    "__version__",
    "AuthzSettings",
    "CacheKeys",
    "CacheTTL",
    "get_settings",
    "AuthzError",
    "NotFoundError",
    "ConflictError",
    "ValidationError",
    "NoTenantError",
    "AuthorityProtectedError",
    "CacheError",
    "CacheInvalidationError",
    "DatabaseError",
    "ConfigurationError",
    "get_http_status_code",
    "create_error_response",
    "TenantId",
    "UserId",
    "KeyValueBackend",
    "KeyValueCache",
    "MemoryKeyValueBackend",
    "MemoryPubSubChannel",
    "PubSubChannel",
    "RedisKeyValueBackend",
    "RedisPubSubChannel",
    "CacheInvalidationPublisher",
    "CacheInvalidationSubscriber",
    "InvalidationEvent",
    "InvalidationType",
    "SubscriberState",
    "Tenant",
    "TenantContext",
    "TenantRepository",
    "TenantResolutionCache",
    "TenantResolver",
    "Authority",
    "AuthorityRepository",
    "AuthorityWithPermissions",
    "AuthorizationCache",
    "AuthorizationManager",
    "AuthorizationResolver",
    "PermissionLevel",
    "ResourceGrant",
    "Resources",
    "UserAuthority",
    "AuthorizationModule",
]
