"""Tenant entities and protocols."""

from .tenant import Tenant
from .protocols import TenantRepository, TenantResolver

__all__ = ["Tenant", "TenantRepository", "TenantResolver"]
