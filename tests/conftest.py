"""Pytest configuration and fixtures for tenant-authz tests."""

import logging
from collections import Counter
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional, Sequence, Tuple
from uuid import UUID

import pytest
import pytest_asyncio

from tenant_authz.config.logging_config import LoggingConfig
from tenant_authz.core.value_objects import TenantId, UserId
from tenant_authz.features.authorization.entities.authority import (
    Authority,
    ResourceGrant,
    UserAuthority,
)
from tenant_authz.features.authorization.entities.permission import PermissionLevel
from tenant_authz.features.authorization.services.authorization_cache import AuthorizationCache
from tenant_authz.features.authorization.services.authorization_resolver import AuthorizationResolver
from tenant_authz.features.cache.adapters.memory_adapter import (
    MemoryBroker,
    MemoryKeyValueBackend,
    MemoryPubSubChannel,
)
from tenant_authz.features.cache.services.key_value_cache import KeyValueCache
from tenant_authz.features.invalidation.services.invalidation_publisher import CacheInvalidationPublisher
from tenant_authz.features.invalidation.services.invalidation_subscriber import CacheInvalidationSubscriber
from tenant_authz.features.tenants.entities.tenant import Tenant
from tenant_authz.features.tenants.services.tenant_context import TenantContext


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class InMemoryTenantRepository:
    """TenantRepository over a list, counting lookups."""

    def __init__(self):
        self.tenants: List[Tenant] = []
        self.lookups = 0

    def add(self, slug: str, is_active: bool = True, tenant_id: Optional[TenantId] = None) -> Tenant:
        tenant = Tenant(id=tenant_id or TenantId.generate(), slug=slug, is_active=is_active)
        self.tenants.append(tenant)
        return tenant

    async def find_active_by_slug(self, slug: str) -> Optional[Tenant]:
        self.lookups += 1
        for tenant in self.tenants:
            if tenant.slug.lower() == slug.lower() and tenant.is_active:
                return tenant
        return None


class InMemoryAuthorityRepository:
    """AuthorityRepository over dicts, counting calls per method."""

    def __init__(self):
        self.authorities: Dict[UUID, Authority] = {}
        self.grants: Dict[Tuple[UUID, str], ResourceGrant] = {}
        self.assignments: Dict[Tuple[UserId, UUID], UserAuthority] = {}
        self.calls: Counter = Counter()

    # Seeding helpers

    def seed_authority(
        self,
        name: str,
        tenant_id: TenantId,
        grants: Optional[Mapping[str, PermissionLevel]] = None,
        is_system_authority: bool = False,
    ) -> Authority:
        authority = Authority(name=name, tenant_id=tenant_id, is_system_authority=is_system_authority)
        self.authorities[authority.id] = authority
        for resource_name, level in (grants or {}).items():
            self.grants[(authority.id, resource_name)] = ResourceGrant(
                authority_id=authority.id, resource_name=resource_name, permission=level, tenant_id=tenant_id
            )
        return authority

    def seed_assignment(self, user_id: UserId, authority: Authority) -> None:
        self.assignments[(user_id, authority.id)] = UserAuthority(user_id, authority.id, authority.tenant_id)

    # Reads

    async def get_authorities_for_user(self, user_id: UserId, tenant_id: TenantId) -> List[Authority]:
        self.calls["get_authorities_for_user"] += 1
        return [
            self.authorities[authority_id]
            for (assigned_user, authority_id) in self.assignments
            if assigned_user == user_id and self.authorities[authority_id].tenant_id == tenant_id
        ]

    async def get_resource_grants(self, authority_ids: Sequence[UUID], resource_name: str) -> List[ResourceGrant]:
        self.calls["get_resource_grants"] += 1
        wanted = set(authority_ids)
        return [
            grant for (authority_id, resource), grant in self.grants.items()
            if authority_id in wanted and resource == resource_name
        ]

    async def get_authority_by_name(self, name: str, tenant_id: TenantId) -> Optional[Authority]:
        self.calls["get_authority_by_name"] += 1
        for authority in self.authorities.values():
            if authority.name == name and authority.tenant_id == tenant_id:
                return authority
        return None

    async def get_authority_by_id(self, authority_id: UUID, tenant_id: TenantId) -> Optional[Authority]:
        authority = self.authorities.get(authority_id)
        if authority is None or authority.tenant_id != tenant_id:
            return None
        return authority

    async def list_authorities(self, tenant_id: TenantId) -> List[Authority]:
        return sorted(
            (a for a in self.authorities.values() if a.tenant_id == tenant_id),
            key=lambda a: a.name,
        )

    async def get_grants_for_authority(self, authority_id: UUID) -> List[ResourceGrant]:
        return sorted(
            (g for (aid, _), g in self.grants.items() if aid == authority_id),
            key=lambda g: g.resource_name,
        )

    async def user_has_authority(self, user_id: UserId, authority_id: UUID) -> bool:
        self.calls["user_has_authority"] += 1
        return (user_id, authority_id) in self.assignments

    async def count_users_with_authority(self, authority_id: UUID) -> int:
        return sum(1 for (_, aid) in self.assignments if aid == authority_id)

    # Mutations

    async def add_user_authority(self, user_id: UserId, authority_id: UUID, tenant_id: TenantId) -> bool:
        key = (user_id, authority_id)
        if key in self.assignments:
            return False
        self.assignments[key] = UserAuthority(user_id, authority_id, tenant_id)
        return True

    async def remove_user_authority(self, user_id: UserId, authority_id: UUID) -> bool:
        return self.assignments.pop((user_id, authority_id), None) is not None

    async def upsert_resource_grant(
        self,
        authority_id: UUID,
        resource_name: str,
        permission: PermissionLevel,
        tenant_id: TenantId,
    ) -> None:
        existing = self.grants.get((authority_id, resource_name))
        if existing is not None:
            existing.permission = permission
        else:
            self.grants[(authority_id, resource_name)] = ResourceGrant(
                authority_id=authority_id, resource_name=resource_name, permission=permission, tenant_id=tenant_id
            )

    async def delete_resource_grant(self, authority_id: UUID, resource_name: str) -> bool:
        return self.grants.pop((authority_id, resource_name), None) is not None

    async def replace_resource_grants(
        self,
        authority_id: UUID,
        tenant_id: TenantId,
        grants: Mapping[str, PermissionLevel],
    ) -> None:
        for key in [key for key in self.grants if key[0] == authority_id]:
            del self.grants[key]
        for resource_name, permission in grants.items():
            await self.upsert_resource_grant(authority_id, resource_name, permission, tenant_id)

    async def create_authority(self, authority: Authority) -> Authority:
        self.authorities[authority.id] = authority
        return authority

    async def update_authority(self, authority: Authority) -> Authority:
        authority.updated_at = datetime.now(timezone.utc)
        self.authorities[authority.id] = authority
        return authority

    async def delete_authority(self, authority_id: UUID) -> bool:
        for key in [key for key in self.grants if key[0] == authority_id]:
            del self.grants[key]
        return self.authorities.pop(authority_id, None) is not None


class UnavailableBackend:
    """KeyValueBackend whose every call fails like an unreachable server."""

    async def get(self, key):
        raise ConnectionError("backend unreachable")

    async def set(self, key, value, ttl_seconds=None):
        raise ConnectionError("backend unreachable")

    async def delete(self, *keys):
        raise ConnectionError("backend unreachable")

    async def exists(self, key):
        raise ConnectionError("backend unreachable")

    async def expire(self, key, ttl_seconds):
        raise ConnectionError("backend unreachable")

    async def scan_iter(self, match, count=1000):
        raise ConnectionError("backend unreachable")
        yield  # pragma: no cover

    async def ping(self):
        raise ConnectionError("backend unreachable")

    async def close(self):
        pass


@pytest.fixture(autouse=True)
def propagate_quiet_loggers(monkeypatch):
    """Let caplog see records from modules logging configures as non-propagating."""
    for name in LoggingConfig.DEFAULT_QUIET_MODULES:
        monkeypatch.setattr(logging.getLogger(name), "propagate", True)


# Identifiers

@pytest.fixture
def tenant_id():
    return TenantId.generate()


@pytest.fixture
def other_tenant_id():
    return TenantId.generate()


@pytest.fixture
def user_id():
    return UserId.generate()


@pytest.fixture
def other_user_id():
    return UserId.generate()


# Cache infrastructure

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def backend(clock):
    return MemoryKeyValueBackend(clock=clock)


@pytest.fixture
def cache(backend):
    return KeyValueCache(backend, default_ttl=300, batch_size=2, scan_count=10)


@pytest.fixture
def unavailable_cache():
    return KeyValueCache(UnavailableBackend())


@pytest.fixture
def broker():
    return MemoryBroker()


@pytest.fixture
def channel(broker):
    return MemoryPubSubChannel(broker)


@pytest.fixture
def publisher(channel):
    return CacheInvalidationPublisher(channel)


@pytest_asyncio.fixture
async def subscriber(channel, cache):
    """Running invalidation subscriber for this process."""
    subscriber = CacheInvalidationSubscriber(channel, cache)
    await subscriber.start()
    yield subscriber
    await subscriber.stop()


# Tenants

@pytest.fixture
def tenant_repository():
    return InMemoryTenantRepository()


@pytest.fixture
def tenant_context(tenant_repository, tenant_id):
    """Tenant context with tenant_id active."""
    context = TenantContext(tenant_repository)
    context.set_tenant(tenant_id, "acme")
    return context


# Authorization

@pytest.fixture
def authority_repository():
    return InMemoryAuthorityRepository()


@pytest.fixture
def developer(authority_repository, tenant_id):
    """DEVELOPER authority granting Asset=Update."""
    return authority_repository.seed_authority("DEVELOPER", tenant_id, {"Asset": PermissionLevel.UPDATE})


@pytest.fixture
def resolver(tenant_context, authority_repository):
    return AuthorizationResolver(tenant_context, authority_repository)


@pytest.fixture
def authorization_cache(resolver, tenant_context, cache, publisher):
    return AuthorizationCache(resolver, tenant_context, cache, publisher)
