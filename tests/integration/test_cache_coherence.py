"""End-to-end coherence of cached decisions across mutations and processes.

Each ``Node`` stands for one application process: its own cache, its own
pub/sub connection and its own subscriber, all sharing the authority
store and the broker.
"""

import pytest
import pytest_asyncio

from tenant_authz.features.authorization.entities.permission import PermissionLevel
from tenant_authz.features.authorization.services.authorization_cache import AuthorizationCache
from tenant_authz.features.authorization.services.authorization_resolver import AuthorizationResolver
from tenant_authz.features.cache.adapters.memory_adapter import (
    MemoryKeyValueBackend,
    MemoryPubSubChannel,
)
from tenant_authz.features.cache.services.key_value_cache import KeyValueCache
from tenant_authz.features.invalidation.services.invalidation_publisher import CacheInvalidationPublisher
from tenant_authz.features.invalidation.services.invalidation_subscriber import CacheInvalidationSubscriber
from tenant_authz.features.tenants.services.tenant_context import TenantContext


LEVELS = list(PermissionLevel)[1:]
RESOURCES = ["Asset", "Schedule", "BotAgent"]


class Node:
    """One process worth of authorization stack."""

    def __init__(self, broker, clock, tenant_repository, authority_repository, tenant_id):
        self.backend = MemoryKeyValueBackend(clock=clock)
        self.cache = KeyValueCache(self.backend, batch_size=3, scan_count=10)
        self.channel = MemoryPubSubChannel(broker)
        self.publisher = CacheInvalidationPublisher(self.channel)
        self.subscriber = CacheInvalidationSubscriber(self.channel, self.cache)
        self.tenant_context = TenantContext(tenant_repository)
        self.tenant_context.set_tenant(tenant_id)
        self.resolver = AuthorizationResolver(self.tenant_context, authority_repository)
        self.manager = AuthorizationCache(
            self.resolver, self.tenant_context, self.cache, self.publisher, permission_ttl=60, authority_ttl=60
        )

    async def start(self):
        await self.subscriber.start()

    async def stop(self):
        await self.subscriber.stop()

    async def settle(self):
        await self.channel.wait_until_idle()


@pytest_asyncio.fixture
async def make_node(broker, clock, tenant_repository, authority_repository, tenant_id):
    nodes = []

    async def factory(node_tenant_id=None):
        node = Node(broker, clock, tenant_repository, authority_repository, node_tenant_id or tenant_id)
        await node.start()
        nodes.append(node)
        return node

    yield factory
    for node in nodes:
        await node.stop()


async def settle_all(*nodes):
    for node in nodes:
        await node.settle()


async def assert_coherent(node, user_ids):
    """Every cached answer matches the uncached resolver."""
    for user_id in user_ids:
        for resource in RESOURCES:
            for level in LEVELS:
                cached = await node.manager.has_permission(user_id, resource, level)
                direct = await node.resolver.has_permission(user_id, resource, level)
                assert cached == direct, f"{user_id} {resource} {level!r}"
        for name in ("DEVELOPER", "OPERATOR"):
            assert await node.manager.has_authority(user_id, name) == await node.resolver.has_authority(user_id, name)


class TestCoherence:

    @pytest.mark.asyncio
    async def test_developer_scenario(self, make_node, authority_repository, developer, user_id):
        node = await make_node()

        assert await node.manager.has_permission(user_id, "Asset", PermissionLevel.VIEW) is False

        await node.manager.assign_authority_to_user(user_id, "DEVELOPER")

        assert await node.manager.has_permission(user_id, "Asset", PermissionLevel.VIEW) is True
        assert await node.manager.has_permission(user_id, "Asset", PermissionLevel.UPDATE) is True
        assert await node.manager.has_permission(user_id, "Asset", PermissionLevel.DELETE) is False

        await node.manager.add_resource_permission("DEVELOPER", "Asset", PermissionLevel.DELETE)
        assert await node.manager.has_permission(user_id, "Asset", PermissionLevel.DELETE) is True

        await node.manager.remove_authority_from_user(user_id, "DEVELOPER")
        assert await node.manager.has_permission(user_id, "Asset", PermissionLevel.VIEW) is False

    @pytest.mark.asyncio
    async def test_revoke_takes_effect_when_call_returns(self, make_node, developer, user_id):
        node = await make_node()
        await node.manager.assign_authority_to_user(user_id, "DEVELOPER")
        assert await node.manager.has_permission(user_id, "Asset", PermissionLevel.VIEW) is True

        await node.manager.remove_authority_from_user(user_id, "DEVELOPER")

        assert await node.manager.has_permission(user_id, "Asset", PermissionLevel.VIEW) is False
        assert await node.resolver.has_permission(user_id, "Asset", PermissionLevel.VIEW) is False

    @pytest.mark.asyncio
    async def test_new_grant_takes_effect_when_call_returns(self, make_node, user_id):
        node = await make_node()
        await node.manager.create_authority("OPERATOR")
        assert await node.manager.has_permission(user_id, "Asset", PermissionLevel.UPDATE) is False

        await node.manager.add_resource_permission("OPERATOR", "Asset", PermissionLevel.UPDATE)
        await node.manager.assign_authority_to_user(user_id, "OPERATOR")

        assert await node.manager.has_permission(user_id, "Asset", PermissionLevel.UPDATE) is True
        assert await node.manager.has_authority(user_id, "OPERATOR") is True

    @pytest.mark.asyncio
    async def test_answers_match_resolver_through_mutations(
        self, make_node, developer, tenant_id, user_id, other_user_id
    ):
        node = await make_node()
        users = [user_id, other_user_id]

        await assert_coherent(node, users)

        await node.manager.create_authority("OPERATOR", resource_permissions={"BotAgent": PermissionLevel.DELETE})
        await node.manager.assign_authority_to_user(user_id, "DEVELOPER")
        await node.manager.assign_authority_to_user(other_user_id, "OPERATOR")
        await assert_coherent(node, users)

        await node.manager.add_resource_permission("DEVELOPER", "Schedule", PermissionLevel.CREATE)
        await node.manager.remove_resource_permission("OPERATOR", "BotAgent")
        await assert_coherent(node, users)

        await node.manager.remove_authority_from_user(other_user_id, "OPERATOR")
        operator = (await node.manager.get_all_authorities_with_permissions())[-1].authority
        await node.manager.delete_authority(operator.id)
        await assert_coherent(node, users)

    @pytest.mark.asyncio
    async def test_repeated_reads_are_stable(self, make_node, authority_repository, developer, user_id):
        authority_repository.seed_assignment(user_id, developer)
        node = await make_node()

        answers = [await node.manager.has_permission(user_id, "Asset", PermissionLevel.UPDATE) for _ in range(5)]

        assert answers == [True] * 5
        assert authority_repository.calls["get_authorities_for_user"] == 1

    @pytest.mark.asyncio
    async def test_mutations_are_idempotent(self, make_node, authority_repository, developer, user_id):
        node = await make_node()

        for _ in range(2):
            await node.manager.assign_authority_to_user(user_id, "DEVELOPER")
            await node.manager.add_resource_permission("DEVELOPER", "Schedule", PermissionLevel.VIEW)

        assert len(authority_repository.assignments) == 1
        assert await node.manager.has_permission(user_id, "Schedule", PermissionLevel.VIEW) is True

    @pytest.mark.asyncio
    async def test_out_of_band_change_heals_after_ttl(
        self, make_node, authority_repository, clock, developer, user_id
    ):
        node = await make_node()
        assert await node.manager.has_permission(user_id, "Asset", PermissionLevel.VIEW) is False

        # Written straight to storage, so nothing is published
        authority_repository.seed_assignment(user_id, developer)
        assert await node.manager.has_permission(user_id, "Asset", PermissionLevel.VIEW) is False

        clock.advance(61)
        assert await node.manager.has_permission(user_id, "Asset", PermissionLevel.VIEW) is True


class TestIsolation:

    @pytest.mark.asyncio
    async def test_tenant_invalidation_leaves_other_tenants(
        self, make_node, authority_repository, developer, tenant_id, other_tenant_id, user_id
    ):
        authority_repository.seed_assignment(user_id, developer)
        foreign = authority_repository.seed_authority("DEVELOPER", other_tenant_id, {"Asset": PermissionLevel.VIEW})
        authority_repository.seed_assignment(user_id, foreign)

        node = await make_node()
        node.tenant_context.set_tenant(other_tenant_id)
        assert await node.manager.has_permission(user_id, "Asset", PermissionLevel.VIEW) is True
        node.tenant_context.set_tenant(tenant_id)
        assert await node.manager.has_permission(user_id, "Asset", PermissionLevel.VIEW) is True

        await node.manager.add_resource_permission("DEVELOPER", "Asset", PermissionLevel.DELETE)

        assert node.backend.keys() == [f"perm:{other_tenant_id}:{user_id}:Asset:1"]

    @pytest.mark.asyncio
    async def test_same_user_differs_per_tenant(
        self, make_node, authority_repository, developer, tenant_id, other_tenant_id, user_id
    ):
        authority_repository.seed_assignment(user_id, developer)
        home = await make_node()
        away = await make_node(other_tenant_id)

        assert await home.manager.has_permission(user_id, "Asset", PermissionLevel.VIEW) is True
        assert await away.manager.has_permission(user_id, "Asset", PermissionLevel.VIEW) is False


class TestAcrossProcesses:

    @pytest.mark.asyncio
    async def test_mutation_on_one_node_evicts_every_node(self, make_node, developer, user_id):
        writer = await make_node()
        reader = await make_node()

        assert await reader.manager.has_permission(user_id, "Asset", PermissionLevel.VIEW) is False
        assert reader.backend.keys()

        await writer.manager.assign_authority_to_user(user_id, "DEVELOPER")
        await settle_all(writer, reader)

        assert reader.backend.keys() == []
        assert await reader.manager.has_permission(user_id, "Asset", PermissionLevel.VIEW) is True

    @pytest.mark.asyncio
    async def test_stopped_node_keeps_stale_entries_until_ttl(self, make_node, clock, developer, user_id):
        writer = await make_node()
        reader = await make_node()
        assert await reader.manager.has_permission(user_id, "Asset", PermissionLevel.VIEW) is False

        await reader.stop()
        await writer.manager.assign_authority_to_user(user_id, "DEVELOPER")
        await writer.settle()

        assert await reader.manager.has_permission(user_id, "Asset", PermissionLevel.VIEW) is False
        clock.advance(61)
        assert await reader.manager.has_permission(user_id, "Asset", PermissionLevel.VIEW) is True
