"""Cache key builders.

Tenant and user segments come first so that one glob pattern covers a
whole user or tenant namespace.
"""

from typing import List, Union

from ....config.constants import CacheKeys
from ....core.value_objects import TenantId, UserId


def permission_key(
    tenant_id: Union[TenantId, str],
    user_id: Union[UserId, str],
    resource_name: str,
    level: int,
) -> str:
    return CacheKeys.PERMISSION.format(
        tenant_id=tenant_id, user_id=user_id, resource_name=resource_name, level=int(level)
    )


def authority_key(tenant_id: Union[TenantId, str], user_id: Union[UserId, str], authority_name: str) -> str:
    return CacheKeys.AUTHORITY.format(tenant_id=tenant_id, user_id=user_id, authority_name=authority_name)


def tenant_slug_key(slug: str) -> str:
    return CacheKeys.TENANT_SLUG.format(slug=slug.lower())


def user_namespace_patterns(tenant_id: Union[TenantId, str], user_id: Union[UserId, str]) -> List[str]:
    """Patterns covering every decision cached for one user in one tenant."""
    return [
        CacheKeys.USER_PERMISSIONS_PATTERN.format(tenant_id=tenant_id, user_id=user_id),
        CacheKeys.USER_AUTHORITIES_PATTERN.format(tenant_id=tenant_id, user_id=user_id),
    ]


def tenant_namespace_patterns(tenant_id: Union[TenantId, str]) -> List[str]:
    """Patterns covering every decision cached in one tenant."""
    return [
        CacheKeys.TENANT_PERMISSIONS_PATTERN.format(tenant_id=tenant_id),
        CacheKeys.TENANT_AUTHORITIES_PATTERN.format(tenant_id=tenant_id),
    ]
