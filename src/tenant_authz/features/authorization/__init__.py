"""Authorization feature for tenant-authz.

- entities/: permission levels, resources, authorities and protocols
- services/: AuthorizationResolver and its caching decorator
- repositories/: asyncpg authority storage
"""

from .entities import (
    Authority,
    AuthorityRepository,
    AuthorityWithPermissions,
    AuthorizationManager,
    CachedDecision,
    PermissionLevel,
    ResourceGrant,
    Resources,
    UserAuthority,
)
from .services import AuthorizationCache, AuthorizationResolver
from .repositories import AsyncPGAuthorityRepository

__all__ = [
    "Authority",
    "AuthorityRepository",
    "AuthorityWithPermissions",
    "AuthorizationManager",
    "CachedDecision",
    "PermissionLevel",
    "ResourceGrant",
    "Resources",
    "UserAuthority",
    "AuthorizationCache",
    "AuthorizationResolver",
    "AsyncPGAuthorityRepository",
]
