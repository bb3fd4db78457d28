"""FastAPI integration for tenant-authz."""

from .middleware import TenantResolutionMiddleware
from .dependencies import (
    get_authorization_manager,
    get_current_user_id,
    get_tenant_context,
    require_authority,
    require_permission,
)

__all__ = [
    "TenantResolutionMiddleware",
    "get_authorization_manager",
    "get_current_user_id",
    "get_tenant_context",
    "require_authority",
    "require_permission",
]
