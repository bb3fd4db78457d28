"""Constants for tenant-authz.

Cache key formats, TTLs and pub/sub channel names shared by every
process of a deployment. Changing a key format is a breaking change for
running clusters: old and new processes would stop seeing each other's
invalidations.
"""

from typing import Final


class CacheKeys:
    """Cache key formats."""

    PERMISSION: Final[str] = "perm:{tenant_id}:{user_id}:{resource_name}:{level}"
    AUTHORITY: Final[str] = "auth:{tenant_id}:{user_id}:{authority_name}"
    TENANT_SLUG: Final[str] = "tenant:slug:{slug}"

    # Invalidation patterns
    USER_PERMISSIONS_PATTERN: Final[str] = "perm:{tenant_id}:{user_id}:*"
    USER_AUTHORITIES_PATTERN: Final[str] = "auth:{tenant_id}:{user_id}:*"
    TENANT_PERMISSIONS_PATTERN: Final[str] = "perm:{tenant_id}:*"
    TENANT_AUTHORITIES_PATTERN: Final[str] = "auth:{tenant_id}:*"


class CacheTTL:
    """Cache TTL values in seconds."""

    DEFAULT: Final[int] = 300            # 5 minutes
    PERMISSION: Final[int] = 900         # 15 minutes
    AUTHORITY: Final[int] = 900          # 15 minutes
    TENANT_RESOLUTION: Final[int] = 1800 # 30 minutes


class CacheChannels:
    """Pub/sub channel names."""

    INVALIDATION: Final[str] = "cache:invalidate"


class PatternDeletion:
    """Defaults for batched pattern deletion."""

    BATCH_SIZE: Final[int] = 100
    SCAN_COUNT: Final[int] = 1000
    BATCH_DELAY_MS: Final[int] = 0
    MAX_KEYS_PER_PATTERN: Final[int] = 10000


# Path segments that never name a tenant
RESERVED_PATH_SEGMENTS: Final[frozenset] = frozenset(
    {"api", "admin", "health", "docs", "redoc", "openapi.json"}
)
