"""Tenant protocols for tenant-authz."""

from abc import abstractmethod
from typing import Optional, Protocol, Union, runtime_checkable
from uuid import UUID

from .tenant import Tenant
from ....core.value_objects import TenantId


@runtime_checkable
class TenantRepository(Protocol):
    """Tenant lookups that run before any tenant is known."""

    @abstractmethod
    async def find_active_by_slug(self, slug: str) -> Optional[Tenant]:
        """Find an active tenant by slug, case-insensitively.

        Must not apply tenant row-level filtering: it is the query that
        establishes the tenant in the first place.
        """
        ...


@runtime_checkable
class TenantResolver(Protocol):
    """Holds the active tenant for one unit of work."""

    @abstractmethod
    def set_tenant(self, tenant_id: Union[TenantId, UUID, str], tenant_slug: Optional[str] = None) -> None:
        ...

    @abstractmethod
    def clear_tenant(self) -> None:
        ...

    @property
    @abstractmethod
    def has_tenant(self) -> bool:
        ...

    @property
    @abstractmethod
    def current_tenant_id(self) -> TenantId:
        """Active tenant id; raises NoTenantError when none is set."""
        ...

    @property
    @abstractmethod
    def current_tenant_slug(self) -> Optional[str]:
        ...

    @abstractmethod
    async def resolve_tenant_from_slug(self, slug: str) -> bool:
        """Make the tenant with this slug active; False if unknown or inactive."""
        ...
