"""Tenant services."""

from .tenant_context import TenantContext
from .tenant_resolution_cache import TenantResolutionCache

__all__ = ["TenantContext", "TenantResolutionCache"]
