"""Wiring of the authorization subsystem.

AuthorizationModule owns the process-wide pieces (cache backend, pub/sub
channel, publisher, subscriber, database pool) and builds the per-request
ones (tenant context, authorization manager) on demand.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import asyncpg

from .config.settings import AuthzSettings, get_settings
from .core.exceptions import ConfigurationError
from .features.authorization.entities.protocols import AuthorityRepository, AuthorizationManager
from .features.authorization.repositories.authority_repository import AsyncPGAuthorityRepository
from .features.authorization.services.authorization_cache import AuthorizationCache
from .features.authorization.services.authorization_resolver import AuthorizationResolver
from .features.cache.adapters.memory_adapter import MemoryKeyValueBackend, MemoryPubSubChannel
from .features.cache.adapters.redis_adapter import (
    RedisKeyValueBackend,
    RedisPubSubChannel,
    create_redis_client,
)
from .features.cache.entities.protocols import CacheBackend, KeyValueBackend, PubSubChannel
from .features.cache.services.key_value_cache import KeyValueCache
from .features.invalidation.services.invalidation_publisher import CacheInvalidationPublisher
from .features.invalidation.services.invalidation_subscriber import CacheInvalidationSubscriber
from .features.tenants.entities.protocols import TenantRepository, TenantResolver
from .features.tenants.repositories.tenant_repository import AsyncPGTenantRepository
from .features.tenants.services.tenant_context import TenantContext
from .features.tenants.services.tenant_resolution_cache import TenantResolutionCache

logger = logging.getLogger(__name__)


class AuthorizationModule:
    """Process-wide container for the authorization subsystem."""

    def __init__(
        self,
        settings: AuthzSettings,
        backend: KeyValueBackend,
        channel: PubSubChannel,
        tenant_repository: Optional[TenantRepository] = None,
        authority_repository: Optional[AuthorityRepository] = None,
    ):
        self.settings = settings
        self.backend = backend
        self.channel = channel
        self.tenant_repository = tenant_repository
        self.authority_repository = authority_repository

        self.cache = KeyValueCache.from_settings(backend, settings)
        self.publisher = CacheInvalidationPublisher(channel, settings.cache_invalidation_channel)
        self.subscriber = CacheInvalidationSubscriber(channel, self.cache, settings.cache_invalidation_channel)

        self._pool: Optional[asyncpg.Pool] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._subscriber_task: Optional[asyncio.Task] = None

    @classmethod
    def from_settings(
        cls,
        settings: Optional[AuthzSettings] = None,
        tenant_repository: Optional[TenantRepository] = None,
        authority_repository: Optional[AuthorityRepository] = None,
    ) -> "AuthorizationModule":
        """Build a module with Redis when configured, in-memory backends otherwise."""
        settings = settings or get_settings()
        if settings.is_cache_enabled:
            client = create_redis_client(
                str(settings.redis_url),
                pool_size=settings.redis_pool_size,
                decode_responses=settings.redis_decode_responses,
            )
            backend = RedisKeyValueBackend(client)
            channel = RedisPubSubChannel(client, poll_interval=settings.subscriber_poll_interval)
            backend_type = CacheBackend.REDIS
        else:
            backend = MemoryKeyValueBackend()
            channel = MemoryPubSubChannel()
            backend_type = CacheBackend.MEMORY

        logger.info(f"Authorization module using {backend_type.value} cache backend")
        return cls(settings, backend, channel, tenant_repository, authority_repository)

    # Per-request factories

    def create_tenant_context(self) -> TenantResolver:
        """New tenant context for one request, with cached slug resolution."""
        if self.tenant_repository is None:
            raise ConfigurationError("No tenant repository configured")
        return TenantResolutionCache(
            TenantContext(self.tenant_repository),
            self.cache,
            self.publisher,
            ttl=self.settings.cache_ttl_tenant,
        )

    def create_authorization_manager(self, tenant_context: TenantResolver) -> AuthorizationManager:
        """Cached authorization manager bound to a request's tenant context."""
        if self.authority_repository is None:
            raise ConfigurationError("No authority repository configured")
        resolver = AuthorizationResolver(tenant_context, self.authority_repository)
        return AuthorizationCache.from_settings(
            resolver, tenant_context, self.cache, self.publisher, self.settings
        )

    # Lifecycle

    @property
    def is_running(self) -> bool:
        return self._subscriber_task is not None and not self._subscriber_task.done()

    async def start(self) -> None:
        """Open the database pool if needed and start the invalidation subscriber."""
        if self.is_running:
            return

        await self._ensure_repositories()
        await self.subscriber.start()
        self._stop_event = asyncio.Event()
        self._subscriber_task = asyncio.create_task(
            self.subscriber.run(self._stop_event), name="cache-invalidation-subscriber"
        )
        logger.info("Authorization module started")

    async def stop(self) -> None:
        """Stop the subscriber and release connections."""
        if self._stop_event is not None:
            self._stop_event.set()
        if self._subscriber_task is not None:
            try:
                await self._subscriber_task
            except asyncio.CancelledError:
                pass
            self._subscriber_task = None
        self._stop_event = None

        await self.channel.close()
        await self.backend.close()
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
        logger.info("Authorization module stopped")

    @asynccontextmanager
    async def lifespan(self, app=None) -> AsyncIterator[None]:
        """FastAPI lifespan handler."""
        await self.start()
        try:
            yield
        finally:
            await self.stop()

    async def _ensure_repositories(self) -> None:
        if self.tenant_repository is not None and self.authority_repository is not None:
            return
        if self.settings.database_url is None:
            raise ConfigurationError(
                "Repositories were not provided and DATABASE_URL is not set"
            )

        self._pool = await asyncpg.create_pool(
            str(self.settings.database_url),
            min_size=self.settings.db_pool_min_size,
            max_size=self.settings.db_pool_max_size,
        )
        if self.tenant_repository is None:
            self.tenant_repository = AsyncPGTenantRepository(self._pool)
        if self.authority_repository is None:
            self.authority_repository = AsyncPGAuthorityRepository(self._pool)
        logger.info("Created database pool for authorization repositories")
