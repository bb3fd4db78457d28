"""Read-through cache for slug-to-tenant resolution."""

import logging
from typing import Optional, Union
from uuid import UUID

from ..entities.protocols import TenantResolver
from ...cache.entities.keys import tenant_slug_key
from ...cache.services.key_value_cache import TTL, KeyValueCache
from ...invalidation.services.invalidation_publisher import CacheInvalidationPublisher
from ....config.constants import CacheTTL
from ....core.value_objects import TenantId

logger = logging.getLogger(__name__)


class TenantResolutionCache:
    """TenantResolver that remembers slug lookups of the resolver it wraps.

    A hit sets the tenant on the wrapped resolver without querying
    storage. Cache failures fall through to the wrapped resolver.
    """

    def __init__(
        self,
        inner: TenantResolver,
        cache: KeyValueCache,
        publisher: Optional[CacheInvalidationPublisher] = None,
        ttl: TTL = CacheTTL.TENANT_RESOLUTION,
    ):
        self._inner = inner
        self._cache = cache
        self._publisher = publisher
        self._ttl = ttl

    @property
    def inner(self) -> TenantResolver:
        return self._inner

    def set_tenant(self, tenant_id: Union[TenantId, UUID, str], tenant_slug: Optional[str] = None) -> None:
        self._inner.set_tenant(tenant_id, tenant_slug)

    def clear_tenant(self) -> None:
        self._inner.clear_tenant()

    @property
    def has_tenant(self) -> bool:
        return self._inner.has_tenant

    @property
    def current_tenant_id(self) -> TenantId:
        return self._inner.current_tenant_id

    @property
    def current_tenant_slug(self) -> Optional[str]:
        return self._inner.current_tenant_slug

    async def resolve_tenant_from_slug(self, slug: str) -> bool:
        if not slug or not slug.strip():
            return await self._inner.resolve_tenant_from_slug(slug)

        key = tenant_slug_key(slug)
        cached = await self._cache.get(key)
        tenant_id = self._cached_tenant_id(key, cached)
        if tenant_id is not None:
            self._inner.set_tenant(tenant_id, cached.get("tenant_slug") or slug)
            logger.debug(f"Tenant resolution cache hit for slug '{slug}'")
            return True

        resolved = await self._inner.resolve_tenant_from_slug(slug)
        if resolved:
            await self._cache.set(
                key,
                {
                    "tenant_id": str(self._inner.current_tenant_id),
                    "tenant_slug": self._inner.current_tenant_slug or slug,
                },
                self._ttl,
            )
        return resolved

    def _cached_tenant_id(self, key: str, cached) -> Optional[TenantId]:
        if not isinstance(cached, dict) or not cached.get("tenant_id"):
            return None
        try:
            return TenantId(cached["tenant_id"])
        except ValueError:
            logger.warning(f"Ignoring corrupt tenant resolution entry '{key}'")
            return None

    async def invalidate_tenant_cache(self, slug: str) -> None:
        """Forget the cached resolution of slug on every process."""
        if self._publisher is not None:
            await self._publisher.invalidate_tenant_resolution(slug)
        else:
            await self._cache.remove(tenant_slug_key(slug))
        logger.info(f"Invalidated tenant resolution cache for slug '{slug}'")
