"""Authorization entities and protocols."""

from .permission import PermissionLevel, Resources
from .authority import (
    Authority,
    AuthorityWithPermissions,
    CachedDecision,
    ResourceGrant,
    UserAuthority,
)
from .protocols import AuthorityRepository, AuthorizationManager, LevelRef, UserRef

__all__ = [
    "PermissionLevel",
    "Resources",
    "Authority",
    "AuthorityWithPermissions",
    "CachedDecision",
    "ResourceGrant",
    "UserAuthority",
    "AuthorityRepository",
    "AuthorizationManager",
    "LevelRef",
    "UserRef",
]
