"""Per-request tenant context."""

import logging
from typing import Optional, Union
from uuid import UUID

from ..entities.protocols import TenantRepository
from ....core.exceptions import NoTenantError
from ....core.utils.locks import ReadWriteLock
from ....core.value_objects import TenantId

logger = logging.getLogger(__name__)


class TenantContext:
    """The tenant active for one unit of work, usually one request.

    Never shared between requests.
    """

    def __init__(self, repository: TenantRepository):
        self._repository = repository
        self._lock = ReadWriteLock()
        self._tenant_id: Optional[TenantId] = None
        self._tenant_slug: Optional[str] = None

    def set_tenant(self, tenant_id: Union[TenantId, UUID, str], tenant_slug: Optional[str] = None) -> None:
        if not isinstance(tenant_id, TenantId):
            tenant_id = TenantId(tenant_id)
        with self._lock.write_locked():
            self._tenant_id = tenant_id
            self._tenant_slug = tenant_slug

    def clear_tenant(self) -> None:
        with self._lock.write_locked():
            self._tenant_id = None
            self._tenant_slug = None

    @property
    def has_tenant(self) -> bool:
        with self._lock.read_locked():
            return self._tenant_id is not None

    @property
    def current_tenant_id(self) -> TenantId:
        with self._lock.read_locked():
            if self._tenant_id is None:
                raise NoTenantError()
            return self._tenant_id

    @property
    def current_tenant_slug(self) -> Optional[str]:
        with self._lock.read_locked():
            return self._tenant_slug

    async def resolve_tenant_from_slug(self, slug: str) -> bool:
        """Look up an active tenant by slug and make it current.

        Leaves the context untouched when no active tenant matches.
        Repository errors propagate.
        """
        if not slug or not slug.strip():
            return False

        tenant = await self._repository.find_active_by_slug(slug)
        if tenant is None or not tenant.is_active:
            logger.debug(f"No active tenant found for slug '{slug}'")
            return False

        self.set_tenant(tenant.id, tenant.slug)
        logger.debug(f"Resolved tenant '{tenant.slug}' -> {tenant.id}")
        return True
