"""Tests for AuthorizationCache."""

from unittest.mock import AsyncMock

import pytest

from tenant_authz.config.settings import AuthzSettings
from tenant_authz.core.exceptions import CacheInvalidationError, NotFoundError
from tenant_authz.features.authorization.entities.permission import PermissionLevel
from tenant_authz.features.authorization.entities.protocols import AuthorizationManager
from tenant_authz.features.authorization.services.authorization_cache import AuthorizationCache
from tenant_authz.features.authorization.services.authorization_resolver import AuthorizationResolver
from tenant_authz.features.invalidation.services.invalidation_publisher import CacheInvalidationPublisher
from tenant_authz.features.tenants.services.tenant_context import TenantContext


@pytest.fixture
def mock_publisher():
    return AsyncMock(spec=CacheInvalidationPublisher)


@pytest.fixture
def quiet_cache(resolver, tenant_context, cache, mock_publisher):
    """AuthorizationCache whose publisher only records calls."""
    return AuthorizationCache(resolver, tenant_context, cache, mock_publisher)


class TestCachedReads:

    def test_satisfies_manager_protocol(self, authorization_cache):
        assert isinstance(authorization_cache, AuthorizationManager)

    @pytest.mark.asyncio
    async def test_miss_then_hit(self, authorization_cache, authority_repository, developer, user_id):
        authority_repository.seed_assignment(user_id, developer)

        assert await authorization_cache.has_permission(user_id, "Asset", PermissionLevel.UPDATE) is True
        assert await authorization_cache.has_permission(user_id, "Asset", PermissionLevel.UPDATE) is True

        assert authority_repository.calls["get_authorities_for_user"] == 1

    @pytest.mark.asyncio
    async def test_negative_answers_are_cached(self, authorization_cache, authority_repository, developer, user_id):
        authority_repository.seed_assignment(user_id, developer)

        assert await authorization_cache.has_permission(user_id, "Asset", PermissionLevel.DELETE) is False
        assert await authorization_cache.has_permission(user_id, "Asset", PermissionLevel.DELETE) is False

        assert authority_repository.calls["get_authorities_for_user"] == 1

    @pytest.mark.asyncio
    async def test_permission_key_format(
        self, authorization_cache, authority_repository, backend, developer, tenant_id, user_id
    ):
        authority_repository.seed_assignment(user_id, developer)

        await authorization_cache.has_permission(str(user_id), "Asset", "update")

        assert backend.keys() == [f"perm:{tenant_id}:{user_id}:Asset:3"]

    @pytest.mark.asyncio
    async def test_authority_key_format(
        self, authorization_cache, authority_repository, backend, cache, developer, tenant_id, user_id
    ):
        authority_repository.seed_assignment(user_id, developer)

        assert await authorization_cache.has_authority(user_id, "DEVELOPER") is True
        assert await authorization_cache.has_authority(user_id, "DEVELOPER") is True

        key = f"auth:{tenant_id}:{user_id}:DEVELOPER"
        assert backend.keys() == [key]
        assert (await cache.get(key))["result"] is True
        assert authority_repository.calls["user_has_authority"] == 1

    @pytest.mark.asyncio
    async def test_levels_are_cached_separately(
        self, authorization_cache, authority_repository, backend, developer, user_id
    ):
        authority_repository.seed_assignment(user_id, developer)

        await authorization_cache.has_permission(user_id, "Asset", PermissionLevel.VIEW)
        await authorization_cache.has_permission(user_id, "Asset", PermissionLevel.DELETE)

        assert len(backend.keys()) == 2
        assert authority_repository.calls["get_authorities_for_user"] == 2

    @pytest.mark.asyncio
    async def test_foreign_cached_value_is_recomputed(
        self, authorization_cache, authority_repository, cache, developer, tenant_id, user_id
    ):
        authority_repository.seed_assignment(user_id, developer)
        await cache.set(f"perm:{tenant_id}:{user_id}:Asset:1", "not a decision")

        assert await authorization_cache.has_permission(user_id, "Asset", PermissionLevel.VIEW) is True
        assert authority_repository.calls["get_authorities_for_user"] == 1

    @pytest.mark.asyncio
    async def test_no_tenant_bypasses_cache(
        self, tenant_repository, authority_repository, cache, backend, mock_publisher, user_id
    ):
        context = TenantContext(tenant_repository)
        manager = AuthorizationCache(
            AuthorizationResolver(context, authority_repository), context, cache, mock_publisher
        )

        assert await manager.has_permission(user_id, "Asset", PermissionLevel.VIEW) is False
        assert await manager.has_authority(user_id, "DEVELOPER") is False
        assert backend.keys() == []

    @pytest.mark.asyncio
    async def test_disabled_cache_always_delegates(
        self, resolver, tenant_context, cache, backend, mock_publisher, authority_repository, developer, user_id
    ):
        authority_repository.seed_assignment(user_id, developer)
        manager = AuthorizationCache(resolver, tenant_context, cache, mock_publisher, enabled=False)

        await manager.has_permission(user_id, "Asset", PermissionLevel.VIEW)
        await manager.has_permission(user_id, "Asset", PermissionLevel.VIEW)

        assert backend.keys() == []
        assert authority_repository.calls["get_authorities_for_user"] == 2

    @pytest.mark.asyncio
    async def test_cache_outage_falls_back_to_resolver(
        self, resolver, tenant_context, unavailable_cache, mock_publisher, authority_repository, developer, user_id
    ):
        authority_repository.seed_assignment(user_id, developer)
        manager = AuthorizationCache(resolver, tenant_context, unavailable_cache, mock_publisher)

        assert await manager.has_permission(user_id, "Asset", PermissionLevel.UPDATE) is True
        assert await manager.has_permission(user_id, "Asset", PermissionLevel.DELETE) is False

    @pytest.mark.asyncio
    async def test_ttls(self, resolver, tenant_context, cache, backend, clock, mock_publisher, authority_repository,
                        developer, tenant_id, user_id):
        authority_repository.seed_assignment(user_id, developer)
        manager = AuthorizationCache(
            resolver, tenant_context, cache, mock_publisher, permission_ttl=60, authority_ttl=120
        )

        await manager.has_permission(user_id, "Asset", PermissionLevel.VIEW)
        await manager.has_authority(user_id, "DEVELOPER")
        clock.advance(61)

        assert backend.keys() == [f"auth:{tenant_id}:{user_id}:DEVELOPER"]

    def test_from_settings(self, resolver, tenant_context, cache, mock_publisher):
        settings = AuthzSettings(cache_ttl_permissions=30, cache_ttl_authority=45, enable_role_caching=False)
        manager = AuthorizationCache.from_settings(resolver, tenant_context, cache, mock_publisher, settings)

        assert manager.enabled is False
        assert manager.inner is resolver


class TestMutations:

    @pytest.mark.asyncio
    async def test_assign_publishes_user_invalidation(
        self, quiet_cache, mock_publisher, authority_repository, developer, tenant_id, user_id
    ):
        await quiet_cache.assign_authority_to_user(user_id, "DEVELOPER")

        assert (user_id, developer.id) in authority_repository.assignments
        mock_publisher.invalidate_user_permissions.assert_awaited_once_with(tenant_id, user_id)

    @pytest.mark.asyncio
    async def test_remove_publishes_user_invalidation(
        self, quiet_cache, mock_publisher, authority_repository, developer, tenant_id, user_id
    ):
        authority_repository.seed_assignment(user_id, developer)

        await quiet_cache.remove_authority_from_user(str(user_id), "DEVELOPER")

        mock_publisher.invalidate_user_permissions.assert_awaited_once_with(tenant_id, user_id)

    @pytest.mark.asyncio
    async def test_failed_mutation_publishes_nothing(self, quiet_cache, mock_publisher, user_id):
        with pytest.raises(NotFoundError):
            await quiet_cache.assign_authority_to_user(user_id, "GHOST")

        mock_publisher.invalidate_user_permissions.assert_not_awaited()
        mock_publisher.invalidate_tenant_permissions.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_grant_changes_publish_tenant_invalidation(
        self, quiet_cache, mock_publisher, developer, tenant_id
    ):
        await quiet_cache.add_resource_permission("DEVELOPER", "Schedule", PermissionLevel.VIEW)
        await quiet_cache.remove_resource_permission("DEVELOPER", "Schedule")

        assert mock_publisher.invalidate_tenant_permissions.await_count == 2
        mock_publisher.invalidate_tenant_permissions.assert_awaited_with(tenant_id)

    @pytest.mark.asyncio
    async def test_authority_administration_publishes_tenant_invalidation(
        self, quiet_cache, mock_publisher, tenant_id
    ):
        created = await quiet_cache.create_authority("OPERATOR", "Runs bots", {"BotAgent": PermissionLevel.VIEW})
        await quiet_cache.update_authority(created.authority.id, description="Runs all bots")
        await quiet_cache.delete_authority(created.authority.id)

        assert mock_publisher.invalidate_tenant_permissions.await_count == 3
        mock_publisher.invalidate_user_permissions.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_publish_failure_propagates_after_commit(
        self, resolver, tenant_context, cache, authority_repository, developer, user_id
    ):
        channel = AsyncMock()
        channel.publish = AsyncMock(side_effect=ConnectionError("broker down"))
        manager = AuthorizationCache(resolver, tenant_context, cache, CacheInvalidationPublisher(channel))

        with pytest.raises(CacheInvalidationError):
            await manager.assign_authority_to_user(user_id, "DEVELOPER")

        assert (user_id, developer.id) in authority_repository.assignments

    @pytest.mark.asyncio
    async def test_uncached_reads_delegate(self, quiet_cache, authority_repository, developer, user_id):
        authority_repository.seed_assignment(user_id, developer)

        assert [a.name for a in await quiet_cache.get_user_authorities(user_id)] == ["DEVELOPER"]
        assert (await quiet_cache.get_authority_with_permissions(developer.id)).authority is developer
        assert len(await quiet_cache.get_all_authorities_with_permissions()) == 1


class TestEvictionThroughSubscriber:

    @pytest.mark.asyncio
    async def test_assignment_evicts_stale_denial(
        self, authorization_cache, subscriber, channel, authority_repository, developer, user_id
    ):
        assert await authorization_cache.has_permission(user_id, "Asset", PermissionLevel.VIEW) is False

        await authorization_cache.assign_authority_to_user(user_id, "DEVELOPER")
        await channel.wait_until_idle()

        assert await authorization_cache.has_permission(user_id, "Asset", PermissionLevel.VIEW) is True

    @pytest.mark.asyncio
    async def test_user_invalidation_leaves_other_users(
        self, authorization_cache, subscriber, channel, backend, authority_repository, developer,
        tenant_id, user_id, other_user_id
    ):
        await authorization_cache.has_permission(user_id, "Asset", PermissionLevel.VIEW)
        await authorization_cache.has_permission(other_user_id, "Asset", PermissionLevel.VIEW)

        await authorization_cache.assign_authority_to_user(user_id, "DEVELOPER")
        await channel.wait_until_idle()

        assert backend.keys() == [f"perm:{tenant_id}:{other_user_id}:Asset:1"]

    @pytest.mark.asyncio
    async def test_grant_change_evicts_whole_tenant(
        self, authorization_cache, subscriber, channel, backend, authority_repository, developer,
        user_id, other_user_id
    ):
        authority_repository.seed_assignment(user_id, developer)
        authority_repository.seed_assignment(other_user_id, developer)
        await authorization_cache.has_permission(user_id, "Asset", PermissionLevel.DELETE)
        await authorization_cache.has_authority(other_user_id, "DEVELOPER")

        await authorization_cache.add_resource_permission("DEVELOPER", "Asset", PermissionLevel.DELETE)
        await channel.wait_until_idle()

        assert backend.keys() == []
        assert await authorization_cache.has_permission(user_id, "Asset", PermissionLevel.DELETE) is True


class TestLocalEvictionOnReturn:

    @pytest.mark.asyncio
    async def test_revoke_is_visible_immediately(
        self, quiet_cache, authority_repository, backend, developer, user_id
    ):
        authority_repository.seed_assignment(user_id, developer)
        assert await quiet_cache.has_permission(user_id, "Asset", PermissionLevel.VIEW) is True

        await quiet_cache.remove_authority_from_user(user_id, "DEVELOPER")

        assert backend.keys() == []
        assert await quiet_cache.has_permission(user_id, "Asset", PermissionLevel.VIEW) is False

    @pytest.mark.asyncio
    async def test_grant_change_evicts_tenant_before_returning(
        self, quiet_cache, authority_repository, backend, developer, tenant_id, other_tenant_id, user_id, cache
    ):
        authority_repository.seed_assignment(user_id, developer)
        await quiet_cache.has_permission(user_id, "Asset", PermissionLevel.DELETE)
        await quiet_cache.has_authority(user_id, "DEVELOPER")
        await cache.set(f"perm:{other_tenant_id}:{user_id}:Asset:1", {"result": True})

        await quiet_cache.add_resource_permission("DEVELOPER", "Asset", PermissionLevel.DELETE)

        assert backend.keys() == [f"perm:{other_tenant_id}:{user_id}:Asset:1"]
        assert await quiet_cache.has_permission(user_id, "Asset", PermissionLevel.DELETE) is True

    @pytest.mark.asyncio
    async def test_local_eviction_survives_publish_failure(
        self, resolver, tenant_context, cache, backend, authority_repository, developer, user_id
    ):
        channel = AsyncMock()
        channel.publish = AsyncMock(side_effect=ConnectionError("broker down"))
        manager = AuthorizationCache(resolver, tenant_context, cache, CacheInvalidationPublisher(channel))
        authority_repository.seed_assignment(user_id, developer)
        assert await manager.has_permission(user_id, "Asset", PermissionLevel.VIEW) is True

        with pytest.raises(CacheInvalidationError):
            await manager.remove_authority_from_user(user_id, "DEVELOPER")

        assert backend.keys() == []
        assert await manager.has_permission(user_id, "Asset", PermissionLevel.VIEW) is False

    @pytest.mark.asyncio
    async def test_cache_outage_does_not_block_mutation(
        self, resolver, tenant_context, unavailable_cache, mock_publisher, authority_repository, developer,
        tenant_id, user_id
    ):
        manager = AuthorizationCache(resolver, tenant_context, unavailable_cache, mock_publisher)

        await manager.assign_authority_to_user(user_id, "DEVELOPER")

        assert (user_id, developer.id) in authority_repository.assignments
        mock_publisher.invalidate_user_permissions.assert_awaited_once_with(tenant_id, user_id)
