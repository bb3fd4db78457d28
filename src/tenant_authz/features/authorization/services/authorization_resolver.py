"""Source-of-truth permission logic.

Answers every question from the authority repository, with no caching.
All lookups are scoped to the tenant active in the bound TenantResolver.
"""

import logging
from typing import Dict, List, Mapping, Optional
from uuid import UUID

from ..entities.authority import Authority, AuthorityWithPermissions
from ..entities.permission import PermissionLevel
from ..entities.protocols import AuthorityRepository, LevelRef, UserRef
from ...tenants.entities.protocols import TenantResolver
from ....core.exceptions import (
    AuthorityProtectedError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from ....core.value_objects import TenantId, UserId

logger = logging.getLogger(__name__)


def to_user_id(user_id: UserRef) -> UserId:
    return user_id if isinstance(user_id, UserId) else UserId(user_id)


def to_level(level: LevelRef) -> PermissionLevel:
    try:
        return PermissionLevel.parse(level)
    except ValueError as e:
        raise ValidationError(
            f"Invalid permission level: {level!r}. Must be between 0 and 4.",
            details={"level": str(level)},
        ) from e


class AuthorizationResolver:
    """AuthorizationManager computing answers directly from storage."""

    def __init__(self, tenant_context: TenantResolver, repository: AuthorityRepository):
        self._tenant_context = tenant_context
        self._repository = repository

    # Reads

    async def has_permission(self, user_id: UserRef, resource_name: str, required_level: LevelRef) -> bool:
        """Check whether any of the user's authorities grants required_level or higher on a resource.

        Without an active tenant there are no authorities to consult and
        the answer is False.
        """
        user_id = to_user_id(user_id)
        required = to_level(required_level)
        if not self._tenant_context.has_tenant:
            logger.warning(f"Permission check for user {user_id} on {resource_name} without an active tenant")
            return False
        tenant_id = self._tenant_context.current_tenant_id

        authorities = await self._repository.get_authorities_for_user(user_id, tenant_id)
        if not authorities:
            return False

        grants = await self._repository.get_resource_grants([a.id for a in authorities], resource_name)
        return any(grant.satisfies(required) for grant in grants)

    async def has_authority(self, user_id: UserRef, authority_name: str) -> bool:
        """Check whether the user is assigned the named authority."""
        user_id = to_user_id(user_id)
        if not self._tenant_context.has_tenant:
            logger.warning(f"Authority check for user {user_id} on {authority_name} without an active tenant")
            return False
        tenant_id = self._tenant_context.current_tenant_id

        authority = await self._repository.get_authority_by_name(authority_name, tenant_id)
        if authority is None:
            return False
        return await self._repository.user_has_authority(user_id, authority.id)

    async def get_user_authorities(self, user_id: UserRef) -> List[Authority]:
        tenant_id = self._tenant_context.current_tenant_id
        return await self._repository.get_authorities_for_user(to_user_id(user_id), tenant_id)

    async def get_authority_with_permissions(self, authority_id: UUID) -> Optional[AuthorityWithPermissions]:
        tenant_id = self._tenant_context.current_tenant_id
        authority = await self._repository.get_authority_by_id(authority_id, tenant_id)
        if authority is None:
            return None
        grants = await self._repository.get_grants_for_authority(authority.id)
        return AuthorityWithPermissions(authority=authority, grants=grants)

    async def get_all_authorities_with_permissions(self) -> List[AuthorityWithPermissions]:
        tenant_id = self._tenant_context.current_tenant_id
        result = []
        for authority in await self._repository.list_authorities(tenant_id):
            grants = await self._repository.get_grants_for_authority(authority.id)
            result.append(AuthorityWithPermissions(authority=authority, grants=grants))
        return result

    # User-scoped mutations

    async def assign_authority_to_user(self, user_id: UserRef, authority_name: str) -> None:
        """Assign the named authority; assigning twice is a no-op."""
        user_id = to_user_id(user_id)
        tenant_id = self._tenant_context.current_tenant_id
        authority = await self._require_authority(authority_name, tenant_id)

        inserted = await self._repository.add_user_authority(user_id, authority.id, tenant_id)
        if inserted:
            logger.info(f"Assigned authority '{authority_name}' to user {user_id} in tenant {tenant_id}")
        else:
            logger.debug(f"User {user_id} already holds authority '{authority_name}'")

    async def remove_authority_from_user(self, user_id: UserRef, authority_name: str) -> None:
        """Remove the named authority; removing an absent assignment is a no-op."""
        user_id = to_user_id(user_id)
        tenant_id = self._tenant_context.current_tenant_id
        authority = await self._require_authority(authority_name, tenant_id)

        removed = await self._repository.remove_user_authority(user_id, authority.id)
        if removed:
            logger.info(f"Removed authority '{authority_name}' from user {user_id} in tenant {tenant_id}")

    # Authority/resource-scoped mutations

    async def add_resource_permission(self, authority_name: str, resource_name: str, level: LevelRef) -> None:
        """Grant level on a resource, replacing any existing grant."""
        permission = to_level(level)
        self._require_resource_name(resource_name)
        tenant_id = self._tenant_context.current_tenant_id
        authority = await self._require_authority(authority_name, tenant_id)

        await self._repository.upsert_resource_grant(authority.id, resource_name, permission, tenant_id)
        logger.info(f"Set {resource_name}={permission.display_name} on authority '{authority_name}'")

    async def remove_resource_permission(self, authority_name: str, resource_name: str) -> None:
        tenant_id = self._tenant_context.current_tenant_id
        authority = await self._require_authority(authority_name, tenant_id)

        if await self._repository.delete_resource_grant(authority.id, resource_name):
            logger.info(f"Removed {resource_name} permission from authority '{authority_name}'")

    async def create_authority(
        self,
        name: str,
        description: Optional[str] = None,
        resource_permissions: Optional[Mapping[str, LevelRef]] = None,
    ) -> AuthorityWithPermissions:
        tenant_id = self._tenant_context.current_tenant_id
        name = self._require_name(name)
        grants = self._validate_grants(resource_permissions or {})

        if await self._repository.get_authority_by_name(name, tenant_id) is not None:
            raise ConflictError(f"Authority '{name}' already exists", details={"name": name})

        authority = await self._repository.create_authority(
            Authority(name=name, tenant_id=tenant_id, description=description)
        )
        if grants:
            await self._repository.replace_resource_grants(authority.id, tenant_id, grants)
        logger.info(f"Created authority '{name}' with {len(grants)} permissions in tenant {tenant_id}")

        return AuthorityWithPermissions(
            authority=authority,
            grants=await self._repository.get_grants_for_authority(authority.id),
        )

    async def update_authority(
        self,
        authority_id: UUID,
        name: Optional[str] = None,
        description: Optional[str] = None,
        resource_permissions: Optional[Mapping[str, LevelRef]] = None,
    ) -> AuthorityWithPermissions:
        """Update name, description and, when given, replace all grants."""
        tenant_id = self._tenant_context.current_tenant_id
        authority = await self._require_authority_by_id(authority_id, tenant_id)
        if authority.is_system_authority:
            raise AuthorityProtectedError(
                f"System authority '{authority.name}' cannot be modified",
                details={"authority_id": str(authority_id)},
            )

        grants = self._validate_grants(resource_permissions) if resource_permissions is not None else None

        if name is not None:
            name = self._require_name(name)
            if name != authority.name:
                existing = await self._repository.get_authority_by_name(name, tenant_id)
                if existing is not None and existing.id != authority.id:
                    raise ConflictError(f"Authority '{name}' already exists", details={"name": name})
                authority.name = name
        if description is not None:
            authority.description = description

        authority = await self._repository.update_authority(authority)
        if grants is not None:
            await self._repository.replace_resource_grants(authority.id, tenant_id, grants)
        logger.info(f"Updated authority '{authority.name}' in tenant {tenant_id}")

        return AuthorityWithPermissions(
            authority=authority,
            grants=await self._repository.get_grants_for_authority(authority.id),
        )

    async def delete_authority(self, authority_id: UUID) -> None:
        tenant_id = self._tenant_context.current_tenant_id
        authority = await self._require_authority_by_id(authority_id, tenant_id)
        if authority.is_system_authority:
            raise AuthorityProtectedError(
                f"System authority '{authority.name}' cannot be deleted",
                details={"authority_id": str(authority_id)},
            )

        assigned = await self._repository.count_users_with_authority(authority.id)
        if assigned:
            raise ConflictError(
                f"Authority '{authority.name}' is assigned to {assigned} users and cannot be deleted",
                details={"authority_id": str(authority_id), "assigned_users": assigned},
            )

        await self._repository.delete_authority(authority.id)
        logger.info(f"Deleted authority '{authority.name}' from tenant {tenant_id}")

    # Helpers

    async def _require_authority(self, authority_name: str, tenant_id: TenantId) -> Authority:
        authority = await self._repository.get_authority_by_name(authority_name, tenant_id)
        if authority is None:
            raise NotFoundError(
                f"Authority '{authority_name}' not found",
                details={"authority_name": authority_name, "tenant_id": str(tenant_id)},
            )
        return authority

    async def _require_authority_by_id(self, authority_id: UUID, tenant_id: TenantId) -> Authority:
        authority = await self._repository.get_authority_by_id(authority_id, tenant_id)
        if authority is None:
            raise NotFoundError(
                f"Authority with ID {authority_id} not found",
                details={"authority_id": str(authority_id), "tenant_id": str(tenant_id)},
            )
        return authority

    @staticmethod
    def _require_name(name: str) -> str:
        if not name or not name.strip():
            raise ValidationError("Authority name must not be empty")
        return name.strip()

    @staticmethod
    def _require_resource_name(resource_name: str) -> None:
        if not resource_name or not resource_name.strip():
            raise ValidationError("Resource name must not be empty")

    def _validate_grants(self, resource_permissions: Mapping[str, LevelRef]) -> Dict[str, PermissionLevel]:
        grants = {}
        for resource_name, level in resource_permissions.items():
            self._require_resource_name(resource_name)
            grants[resource_name] = to_level(level)
        return grants
