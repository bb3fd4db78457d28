"""Tenants feature for tenant-authz.

- entities/: Tenant, TenantRepository and TenantResolver protocols
- services/: per-request TenantContext and its resolution cache
- repositories/: asyncpg tenant lookups
"""

from .entities import Tenant, TenantRepository, TenantResolver
from .services import TenantContext, TenantResolutionCache
from .repositories import AsyncPGTenantRepository

__all__ = [
    "Tenant",
    "TenantRepository",
    "TenantResolver",
    "TenantContext",
    "TenantResolutionCache",
    "AsyncPGTenantRepository",
]
