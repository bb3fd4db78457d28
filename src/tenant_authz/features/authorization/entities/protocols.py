"""Authorization protocols for tenant-authz.

AuthorityRepository is the persistence contract; AuthorizationManager is
the capability both AuthorizationResolver and its caching decorator
implement.
"""

from abc import abstractmethod
from typing import List, Mapping, Optional, Protocol, Sequence, Union, runtime_checkable
from uuid import UUID

from .authority import Authority, AuthorityWithPermissions, ResourceGrant
from .permission import PermissionLevel
from ....core.value_objects import TenantId, UserId

UserRef = Union[UserId, UUID, str]
LevelRef = Union[PermissionLevel, int, str]


@runtime_checkable
class AuthorityRepository(Protocol):
    """Storage of authorities, resource grants and user assignments."""

    @abstractmethod
    async def get_authorities_for_user(self, user_id: UserId, tenant_id: TenantId) -> List[Authority]:
        """Authorities assigned to a user within a tenant."""
        ...

    @abstractmethod
    async def get_resource_grants(self, authority_ids: Sequence[UUID], resource_name: str) -> List[ResourceGrant]:
        """Grants on one resource held by any of the given authorities."""
        ...

    @abstractmethod
    async def get_authority_by_name(self, name: str, tenant_id: TenantId) -> Optional[Authority]:
        ...

    @abstractmethod
    async def get_authority_by_id(self, authority_id: UUID, tenant_id: TenantId) -> Optional[Authority]:
        ...

    @abstractmethod
    async def list_authorities(self, tenant_id: TenantId) -> List[Authority]:
        ...

    @abstractmethod
    async def get_grants_for_authority(self, authority_id: UUID) -> List[ResourceGrant]:
        ...

    @abstractmethod
    async def user_has_authority(self, user_id: UserId, authority_id: UUID) -> bool:
        ...

    @abstractmethod
    async def add_user_authority(self, user_id: UserId, authority_id: UUID, tenant_id: TenantId) -> bool:
        """Insert the assignment unless present; True if a row was inserted."""
        ...

    @abstractmethod
    async def remove_user_authority(self, user_id: UserId, authority_id: UUID) -> bool:
        """Delete the assignment if present; True if a row was deleted."""
        ...

    @abstractmethod
    async def count_users_with_authority(self, authority_id: UUID) -> int:
        ...

    @abstractmethod
    async def upsert_resource_grant(
        self,
        authority_id: UUID,
        resource_name: str,
        permission: PermissionLevel,
        tenant_id: TenantId,
    ) -> None:
        ...

    @abstractmethod
    async def delete_resource_grant(self, authority_id: UUID, resource_name: str) -> bool:
        ...

    @abstractmethod
    async def replace_resource_grants(
        self,
        authority_id: UUID,
        tenant_id: TenantId,
        grants: Mapping[str, PermissionLevel],
    ) -> None:
        """Replace every grant of an authority with the given ones."""
        ...

    @abstractmethod
    async def create_authority(self, authority: Authority) -> Authority:
        ...

    @abstractmethod
    async def update_authority(self, authority: Authority) -> Authority:
        ...

    @abstractmethod
    async def delete_authority(self, authority_id: UUID) -> bool:
        """Delete an authority and its grants."""
        ...


@runtime_checkable
class AuthorizationManager(Protocol):
    """Permission decisions and authority administration for the active tenant."""

    @abstractmethod
    async def has_permission(self, user_id: UserRef, resource_name: str, required_level: LevelRef) -> bool:
        ...

    @abstractmethod
    async def has_authority(self, user_id: UserRef, authority_name: str) -> bool:
        ...

    @abstractmethod
    async def get_user_authorities(self, user_id: UserRef) -> List[Authority]:
        ...

    @abstractmethod
    async def assign_authority_to_user(self, user_id: UserRef, authority_name: str) -> None:
        ...

    @abstractmethod
    async def remove_authority_from_user(self, user_id: UserRef, authority_name: str) -> None:
        ...

    @abstractmethod
    async def add_resource_permission(self, authority_name: str, resource_name: str, level: LevelRef) -> None:
        ...

    @abstractmethod
    async def remove_resource_permission(self, authority_name: str, resource_name: str) -> None:
        ...

    @abstractmethod
    async def create_authority(
        self,
        name: str,
        description: Optional[str] = None,
        resource_permissions: Optional[Mapping[str, LevelRef]] = None,
    ) -> AuthorityWithPermissions:
        ...

    @abstractmethod
    async def update_authority(
        self,
        authority_id: UUID,
        name: Optional[str] = None,
        description: Optional[str] = None,
        resource_permissions: Optional[Mapping[str, LevelRef]] = None,
    ) -> AuthorityWithPermissions:
        ...

    @abstractmethod
    async def delete_authority(self, authority_id: UUID) -> None:
        ...

    @abstractmethod
    async def get_authority_with_permissions(self, authority_id: UUID) -> Optional[AuthorityWithPermissions]:
        ...

    @abstractmethod
    async def get_all_authorities_with_permissions(self) -> List[AuthorityWithPermissions]:
        ...
