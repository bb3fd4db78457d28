"""FastAPI dependencies for permission checks.

Expects TenantResolutionMiddleware to have populated the request state,
and authentication to have stored the caller on ``request.state.user_id``.
"""

import logging
from typing import Any

from fastapi import HTTPException, Request, status

from ..bootstrap import AuthorizationModule
from ..core.value_objects import UserId
from ..features.authorization.entities.permission import PermissionLevel, Resources
from ..features.authorization.entities.protocols import AuthorizationManager, LevelRef
from ..features.tenants.entities.protocols import TenantResolver

logger = logging.getLogger(__name__)


def get_tenant_context(request: Request) -> TenantResolver:
    tenant_context = getattr(request.state, "tenant_context", None)
    if tenant_context is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Tenant resolution is not configured",
        )
    return tenant_context


def get_authorization_manager(request: Request) -> AuthorizationManager:
    """Per-request cached authorization manager."""
    module: AuthorizationModule = getattr(request.state, "authz_module", None)
    if module is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Authorization is not configured",
        )
    return module.create_authorization_manager(get_tenant_context(request))


def get_current_user_id(request: Request) -> UserId:
    raw_user_id: Any = getattr(request.state, "user_id", None)
    if not raw_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    try:
        return raw_user_id if isinstance(raw_user_id, UserId) else UserId(raw_user_id)
    except ValueError:
        logger.warning(f"Rejecting request with malformed user id {raw_user_id!r}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid user identity")


def require_permission(resource_name: str, level: LevelRef):
    """Require the caller to hold level or higher on resource_name."""
    required = PermissionLevel.parse(level)

    async def dependency(request: Request) -> UserId:
        user_id = get_current_user_id(request)
        manager = get_authorization_manager(request)

        if not await manager.has_permission(user_id, resource_name, required):
            logger.warning(f"User {user_id} lacks {resource_name}={required.display_name}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=(
                    f"Access denied. You need '{required.display_name}' permission for "
                    f"'{Resources.display_name(resource_name)}' to perform this action."
                ),
            )
        return user_id

    return dependency


def require_authority(authority_name: str):
    """Require the caller to be assigned authority_name."""

    async def dependency(request: Request) -> UserId:
        user_id = get_current_user_id(request)
        manager = get_authorization_manager(request)

        if not await manager.has_authority(user_id, authority_name):
            logger.warning(f"User {user_id} lacks authority {authority_name}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. You need the '{authority_name}' authority to perform this action.",
            )
        return user_id

    return dependency
