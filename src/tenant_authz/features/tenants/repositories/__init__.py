"""Tenant repositories."""

from .tenant_repository import AsyncPGTenantRepository, validate_schema_name

__all__ = ["AsyncPGTenantRepository", "validate_schema_name"]
