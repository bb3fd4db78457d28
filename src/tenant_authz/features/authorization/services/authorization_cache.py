"""Read-through decision cache around an AuthorizationManager.

Decisions are cached per tenant and user, so one pattern evicts a whole
user or tenant namespace. Mutations run on the wrapped manager first.
Once they succeed the affected namespace is evicted from the cache before
the call returns, and an invalidation is published for the other
processes.
"""

import logging
from typing import Awaitable, Callable, List, Mapping, Optional
from uuid import UUID

from .authorization_resolver import to_level, to_user_id
from ..entities.authority import Authority, AuthorityWithPermissions, CachedDecision
from ..entities.protocols import AuthorizationManager, LevelRef, UserRef
from ...cache.entities.keys import (
    authority_key,
    permission_key,
    tenant_namespace_patterns,
    user_namespace_patterns,
)
from ...cache.services.key_value_cache import TTL, KeyValueCache
from ...invalidation.services.invalidation_publisher import CacheInvalidationPublisher
from ...tenants.entities.protocols import TenantResolver
from ....config.constants import CacheTTL
from ....config.settings import AuthzSettings
from ....core.value_objects import TenantId, UserId

logger = logging.getLogger(__name__)


class AuthorizationCache:
    """AuthorizationManager that caches has_permission and has_authority answers."""

    def __init__(
        self,
        inner: AuthorizationManager,
        tenant_context: TenantResolver,
        cache: KeyValueCache,
        publisher: CacheInvalidationPublisher,
        permission_ttl: TTL = CacheTTL.PERMISSION,
        authority_ttl: TTL = CacheTTL.AUTHORITY,
        enabled: bool = True,
    ):
        self._inner = inner
        self._tenant_context = tenant_context
        self._cache = cache
        self._publisher = publisher
        self._permission_ttl = permission_ttl
        self._authority_ttl = authority_ttl
        self.enabled = enabled

    @classmethod
    def from_settings(
        cls,
        inner: AuthorizationManager,
        tenant_context: TenantResolver,
        cache: KeyValueCache,
        publisher: CacheInvalidationPublisher,
        settings: AuthzSettings,
    ) -> "AuthorizationCache":
        return cls(
            inner,
            tenant_context,
            cache,
            publisher,
            permission_ttl=settings.cache_ttl_permissions,
            authority_ttl=settings.cache_ttl_authority,
            enabled=settings.enable_role_caching,
        )

    @property
    def inner(self) -> AuthorizationManager:
        return self._inner

    # Cached reads

    async def has_permission(self, user_id: UserRef, resource_name: str, required_level: LevelRef) -> bool:
        user_id = to_user_id(user_id)
        level = to_level(required_level)
        if not self.enabled or not self._tenant_context.has_tenant:
            return await self._inner.has_permission(user_id, resource_name, level)

        key = permission_key(self._tenant_context.current_tenant_id, user_id, resource_name, level)
        return await self._read_through(
            key,
            self._permission_ttl,
            lambda: self._inner.has_permission(user_id, resource_name, level),
        )

    async def has_authority(self, user_id: UserRef, authority_name: str) -> bool:
        user_id = to_user_id(user_id)
        if not self.enabled or not self._tenant_context.has_tenant:
            return await self._inner.has_authority(user_id, authority_name)

        key = authority_key(self._tenant_context.current_tenant_id, user_id, authority_name)
        return await self._read_through(
            key,
            self._authority_ttl,
            lambda: self._inner.has_authority(user_id, authority_name),
        )

    async def _read_through(self, key: str, ttl: TTL, compute: Callable[[], Awaitable[bool]]) -> bool:
        decision = CachedDecision.from_cache(await self._cache.get(key))
        if decision is not None:
            return decision.result

        result = await compute()
        await self._cache.set(key, CachedDecision(result=result).to_cache(), ttl)
        return result

    # Uncached reads

    async def get_user_authorities(self, user_id: UserRef) -> List[Authority]:
        return await self._inner.get_user_authorities(user_id)

    async def get_authority_with_permissions(self, authority_id: UUID) -> Optional[AuthorityWithPermissions]:
        return await self._inner.get_authority_with_permissions(authority_id)

    async def get_all_authorities_with_permissions(self) -> List[AuthorityWithPermissions]:
        return await self._inner.get_all_authorities_with_permissions()

    # User-scoped mutations

    async def assign_authority_to_user(self, user_id: UserRef, authority_name: str) -> None:
        user_id = to_user_id(user_id)
        tenant_id = self._tenant_context.current_tenant_id
        await self._inner.assign_authority_to_user(user_id, authority_name)
        await self._evict_user(tenant_id, user_id)

    async def remove_authority_from_user(self, user_id: UserRef, authority_name: str) -> None:
        user_id = to_user_id(user_id)
        tenant_id = self._tenant_context.current_tenant_id
        await self._inner.remove_authority_from_user(user_id, authority_name)
        await self._evict_user(tenant_id, user_id)

    # Authority/resource-scoped mutations invalidate the whole tenant

    async def add_resource_permission(self, authority_name: str, resource_name: str, level: LevelRef) -> None:
        tenant_id = self._tenant_context.current_tenant_id
        await self._inner.add_resource_permission(authority_name, resource_name, level)
        await self._evict_tenant(tenant_id)

    async def remove_resource_permission(self, authority_name: str, resource_name: str) -> None:
        tenant_id = self._tenant_context.current_tenant_id
        await self._inner.remove_resource_permission(authority_name, resource_name)
        await self._evict_tenant(tenant_id)

    async def create_authority(
        self,
        name: str,
        description: Optional[str] = None,
        resource_permissions: Optional[Mapping[str, LevelRef]] = None,
    ) -> AuthorityWithPermissions:
        tenant_id = self._tenant_context.current_tenant_id
        result = await self._inner.create_authority(name, description, resource_permissions)
        await self._evict_tenant(tenant_id)
        return result

    async def update_authority(
        self,
        authority_id: UUID,
        name: Optional[str] = None,
        description: Optional[str] = None,
        resource_permissions: Optional[Mapping[str, LevelRef]] = None,
    ) -> AuthorityWithPermissions:
        tenant_id = self._tenant_context.current_tenant_id
        result = await self._inner.update_authority(authority_id, name, description, resource_permissions)
        await self._evict_tenant(tenant_id)
        return result

    async def delete_authority(self, authority_id: UUID) -> None:
        tenant_id = self._tenant_context.current_tenant_id
        await self._inner.delete_authority(authority_id)
        await self._evict_tenant(tenant_id)

    # Eviction

    async def _evict_user(self, tenant_id: TenantId, user_id: UserId) -> None:
        for pattern in user_namespace_patterns(tenant_id, user_id):
            await self._cache.remove_by_pattern(pattern)
        await self._publisher.invalidate_user_permissions(tenant_id, user_id)

    async def _evict_tenant(self, tenant_id: TenantId) -> None:
        for pattern in tenant_namespace_patterns(tenant_id):
            await self._cache.remove_by_pattern(pattern)
        await self._publisher.invalidate_tenant_permissions(tenant_id)
