"""Value objects for tenant-authz."""

from .identifiers import UserId, TenantId

__all__ = ["UserId", "TenantId"]
