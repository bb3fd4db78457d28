"""Tenant repository implementation using asyncpg."""

import logging
import re
from typing import Optional

import asyncpg

from ..entities.tenant import Tenant
from ....core.exceptions import DatabaseError

logger = logging.getLogger(__name__)

_SCHEMA_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def validate_schema_name(schema: str) -> str:
    """Validate schema name to prevent SQL injection."""
    if not _SCHEMA_NAME.match(schema):
        raise ValueError(f"Invalid schema name: {schema}")
    return schema


class AsyncPGTenantRepository:
    """Tenant lookups against ``{schema}.tenants``."""

    def __init__(self, pool: asyncpg.Pool, schema: str = "public"):
        self._pool = pool
        self._table = f"{validate_schema_name(schema)}.tenants"

    async def find_active_by_slug(self, slug: str) -> Optional[Tenant]:
        # Deliberately unfiltered by tenant: this query establishes the tenant
        query = f"""
            SELECT id, slug, name, is_active
            FROM {self._table}
            WHERE lower(slug) = lower($1) AND is_active = TRUE
            LIMIT 1
        """
        try:
            async with self._pool.acquire() as conn:
                row = await conn.fetchrow(query, slug)
        except (asyncpg.PostgresError, OSError) as e:
            logger.error(f"Failed to look up tenant by slug '{slug}': {e}")
            raise DatabaseError(f"Failed to look up tenant: {e}") from e

        if row is None:
            return None
        return Tenant(id=row["id"], slug=row["slug"], name=row["name"], is_active=row["is_active"])
