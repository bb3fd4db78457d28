"""Authority repository implementation using asyncpg.

Expects ``authorities``, ``authority_resources`` and ``user_authorities``
tables in the configured schema, with unique (tenant_id, name),
(authority_id, resource_name) and (user_id, authority_id) constraints.
"""

import logging
from typing import List, Mapping, Optional, Sequence
from uuid import UUID

import asyncpg

from ..entities.authority import Authority, ResourceGrant
from ..entities.permission import PermissionLevel
from ...tenants.repositories.tenant_repository import validate_schema_name
from ....core.exceptions import DatabaseError
from ....core.value_objects import TenantId, UserId

logger = logging.getLogger(__name__)

_AUTHORITY_COLUMNS = "id, tenant_id, name, description, is_system_authority, created_at, updated_at"


def _authority_from_row(row: asyncpg.Record) -> Authority:
    return Authority(
        id=row["id"],
        tenant_id=TenantId(row["tenant_id"]),
        name=row["name"],
        description=row["description"],
        is_system_authority=row["is_system_authority"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _grant_from_row(row: asyncpg.Record) -> ResourceGrant:
    return ResourceGrant(
        id=row["id"],
        authority_id=row["authority_id"],
        resource_name=row["resource_name"],
        permission=PermissionLevel(row["permission"]),
        tenant_id=TenantId(row["tenant_id"]),
    )


class AsyncPGAuthorityRepository:
    """AuthorityRepository over an asyncpg pool."""

    def __init__(self, pool: asyncpg.Pool, schema: str = "public"):
        self._pool = pool
        schema = validate_schema_name(schema)
        self._authorities = f"{schema}.authorities"
        self._grants = f"{schema}.authority_resources"
        self._user_authorities = f"{schema}.user_authorities"

    async def _fetch(self, operation: str, query: str, *args) -> List[asyncpg.Record]:
        try:
            async with self._pool.acquire() as conn:
                return await conn.fetch(query, *args)
        except (asyncpg.PostgresError, OSError) as e:
            logger.error(f"Failed to {operation}: {e}")
            raise DatabaseError(f"Failed to {operation}: {e}") from e

    async def _fetchrow(self, operation: str, query: str, *args) -> Optional[asyncpg.Record]:
        try:
            async with self._pool.acquire() as conn:
                return await conn.fetchrow(query, *args)
        except (asyncpg.PostgresError, OSError) as e:
            logger.error(f"Failed to {operation}: {e}")
            raise DatabaseError(f"Failed to {operation}: {e}") from e

    async def _execute(self, operation: str, query: str, *args) -> str:
        try:
            async with self._pool.acquire() as conn:
                return await conn.execute(query, *args)
        except (asyncpg.PostgresError, OSError) as e:
            logger.error(f"Failed to {operation}: {e}")
            raise DatabaseError(f"Failed to {operation}: {e}") from e

    @staticmethod
    def _affected(status: str) -> int:
        # asyncpg returns command tags such as "DELETE 1" or "INSERT 0 1"
        try:
            return int(status.split()[-1])
        except (AttributeError, IndexError, ValueError):
            return 0

    # Reads

    async def get_authorities_for_user(self, user_id: UserId, tenant_id: TenantId) -> List[Authority]:
        query = f"""
            SELECT a.id, a.tenant_id, a.name, a.description, a.is_system_authority, a.created_at, a.updated_at
            FROM {self._authorities} a
            JOIN {self._user_authorities} ua ON ua.authority_id = a.id
            WHERE ua.user_id = $1 AND a.tenant_id = $2
            ORDER BY a.name
        """
        rows = await self._fetch("load user authorities", query, user_id.value, tenant_id.value)
        return [_authority_from_row(row) for row in rows]

    async def get_resource_grants(self, authority_ids: Sequence[UUID], resource_name: str) -> List[ResourceGrant]:
        if not authority_ids:
            return []
        query = f"""
            SELECT id, authority_id, tenant_id, resource_name, permission
            FROM {self._grants}
            WHERE authority_id = ANY($1::uuid[]) AND resource_name = $2
        """
        rows = await self._fetch("load resource grants", query, list(authority_ids), resource_name)
        return [_grant_from_row(row) for row in rows]

    async def get_authority_by_name(self, name: str, tenant_id: TenantId) -> Optional[Authority]:
        query = f"SELECT {_AUTHORITY_COLUMNS} FROM {self._authorities} WHERE name = $1 AND tenant_id = $2"
        row = await self._fetchrow("load authority by name", query, name, tenant_id.value)
        return _authority_from_row(row) if row else None

    async def get_authority_by_id(self, authority_id: UUID, tenant_id: TenantId) -> Optional[Authority]:
        query = f"SELECT {_AUTHORITY_COLUMNS} FROM {self._authorities} WHERE id = $1 AND tenant_id = $2"
        row = await self._fetchrow("load authority", query, authority_id, tenant_id.value)
        return _authority_from_row(row) if row else None

    async def list_authorities(self, tenant_id: TenantId) -> List[Authority]:
        query = f"SELECT {_AUTHORITY_COLUMNS} FROM {self._authorities} WHERE tenant_id = $1 ORDER BY name"
        rows = await self._fetch("list authorities", query, tenant_id.value)
        return [_authority_from_row(row) for row in rows]

    async def get_grants_for_authority(self, authority_id: UUID) -> List[ResourceGrant]:
        query = f"""
            SELECT id, authority_id, tenant_id, resource_name, permission
            FROM {self._grants}
            WHERE authority_id = $1
            ORDER BY resource_name
        """
        rows = await self._fetch("load authority grants", query, authority_id)
        return [_grant_from_row(row) for row in rows]

    async def user_has_authority(self, user_id: UserId, authority_id: UUID) -> bool:
        query = f"SELECT 1 FROM {self._user_authorities} WHERE user_id = $1 AND authority_id = $2"
        return await self._fetchrow("check user authority", query, user_id.value, authority_id) is not None

    async def count_users_with_authority(self, authority_id: UUID) -> int:
        query = f"SELECT count(*) AS assigned FROM {self._user_authorities} WHERE authority_id = $1"
        row = await self._fetchrow("count authority assignments", query, authority_id)
        return row["assigned"] if row else 0

    # Assignments

    async def add_user_authority(self, user_id: UserId, authority_id: UUID, tenant_id: TenantId) -> bool:
        query = f"""
            INSERT INTO {self._user_authorities} (user_id, authority_id, tenant_id)
            VALUES ($1, $2, $3)
            ON CONFLICT (user_id, authority_id) DO NOTHING
        """
        status = await self._execute("assign authority", query, user_id.value, authority_id, tenant_id.value)
        return self._affected(status) > 0

    async def remove_user_authority(self, user_id: UserId, authority_id: UUID) -> bool:
        query = f"DELETE FROM {self._user_authorities} WHERE user_id = $1 AND authority_id = $2"
        status = await self._execute("remove authority assignment", query, user_id.value, authority_id)
        return self._affected(status) > 0

    # Grants

    async def upsert_resource_grant(
        self,
        authority_id: UUID,
        resource_name: str,
        permission: PermissionLevel,
        tenant_id: TenantId,
    ) -> None:
        query = f"""
            INSERT INTO {self._grants} (authority_id, tenant_id, resource_name, permission)
            VALUES ($1, $2, $3, $4)
            ON CONFLICT (authority_id, resource_name) DO UPDATE SET permission = EXCLUDED.permission
        """
        await self._execute(
            "upsert resource grant", query, authority_id, tenant_id.value, resource_name, int(permission)
        )

    async def delete_resource_grant(self, authority_id: UUID, resource_name: str) -> bool:
        query = f"DELETE FROM {self._grants} WHERE authority_id = $1 AND resource_name = $2"
        status = await self._execute("delete resource grant", query, authority_id, resource_name)
        return self._affected(status) > 0

    async def replace_resource_grants(
        self,
        authority_id: UUID,
        tenant_id: TenantId,
        grants: Mapping[str, PermissionLevel],
    ) -> None:
        delete_query = f"DELETE FROM {self._grants} WHERE authority_id = $1"
        insert_query = f"""
            INSERT INTO {self._grants} (authority_id, tenant_id, resource_name, permission)
            VALUES ($1, $2, $3, $4)
        """
        try:
            async with self._pool.acquire() as conn:
                async with conn.transaction():
                    await conn.execute(delete_query, authority_id)
                    if grants:
                        await conn.executemany(
                            insert_query,
                            [
                                (authority_id, tenant_id.value, resource_name, int(permission))
                                for resource_name, permission in grants.items()
                            ],
                        )
        except (asyncpg.PostgresError, OSError) as e:
            logger.error(f"Failed to replace grants of authority {authority_id}: {e}")
            raise DatabaseError(f"Failed to replace resource grants: {e}") from e

    # Authorities

    async def create_authority(self, authority: Authority) -> Authority:
        query = f"""
            INSERT INTO {self._authorities} (id, tenant_id, name, description, is_system_authority, created_at)
            VALUES ($1, $2, $3, $4, $5, $6)
            RETURNING {_AUTHORITY_COLUMNS}
        """
        row = await self._fetchrow(
            "create authority",
            query,
            authority.id,
            authority.tenant_id.value,
            authority.name,
            authority.description,
            authority.is_system_authority,
            authority.created_at,
        )
        return _authority_from_row(row)

    async def update_authority(self, authority: Authority) -> Authority:
        query = f"""
            UPDATE {self._authorities}
            SET name = $2, description = $3, updated_at = now()
            WHERE id = $1
            RETURNING {_AUTHORITY_COLUMNS}
        """
        row = await self._fetchrow("update authority", query, authority.id, authority.name, authority.description)
        if row is None:
            raise DatabaseError(f"Authority {authority.id} disappeared during update")
        return _authority_from_row(row)

    async def delete_authority(self, authority_id: UUID) -> bool:
        try:
            async with self._pool.acquire() as conn:
                async with conn.transaction():
                    await conn.execute(f"DELETE FROM {self._grants} WHERE authority_id = $1", authority_id)
                    status = await conn.execute(f"DELETE FROM {self._authorities} WHERE id = $1", authority_id)
        except (asyncpg.PostgresError, OSError) as e:
            logger.error(f"Failed to delete authority {authority_id}: {e}")
            raise DatabaseError(f"Failed to delete authority: {e}") from e
        return self._affected(status) > 0
