"""Authority domain entities."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from .permission import PermissionLevel
from ....core.value_objects import TenantId, UserId


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Authority:
    """A named role scoped to one tenant."""
    name: str
    tenant_id: TenantId
    id: UUID = field(default_factory=uuid4)
    description: Optional[str] = None
    is_system_authority: bool = False
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValueError("Authority name must be a non-empty string")
        if not isinstance(self.tenant_id, TenantId):
            self.tenant_id = TenantId(self.tenant_id)


@dataclass
class ResourceGrant:
    """Permission level an authority holds on a named resource."""
    authority_id: UUID
    resource_name: str
    permission: PermissionLevel
    tenant_id: TenantId
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self):
        self.permission = PermissionLevel.parse(self.permission)
        if not isinstance(self.tenant_id, TenantId):
            self.tenant_id = TenantId(self.tenant_id)

    def satisfies(self, required: PermissionLevel) -> bool:
        return self.permission.satisfies(required)


@dataclass(frozen=True)
class UserAuthority:
    """Assignment of a user to an authority."""
    user_id: UserId
    authority_id: UUID
    tenant_id: TenantId


@dataclass
class AuthorityWithPermissions:
    """An authority together with all its resource grants."""
    authority: Authority
    grants: List[ResourceGrant] = field(default_factory=list)

    def permission_for(self, resource_name: str) -> PermissionLevel:
        for grant in self.grants:
            if grant.resource_name == resource_name:
                return grant.permission
        return PermissionLevel.NO_ACCESS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": str(self.authority.id),
            "name": self.authority.name,
            "description": self.authority.description,
            "is_system_authority": self.authority.is_system_authority,
            "permissions": [
                {
                    "resource_name": grant.resource_name,
                    "permission": int(grant.permission),
                    "permission_description": grant.permission.description,
                }
                for grant in self.grants
            ],
        }


@dataclass(frozen=True)
class CachedDecision:
    """A memoized permission or membership answer."""
    result: bool
    cached_at: datetime = field(default_factory=_utc_now)

    def to_cache(self) -> Dict[str, Any]:
        return {"result": self.result, "cached_at": self.cached_at.isoformat()}

    @classmethod
    def from_cache(cls, value: Any) -> Optional["CachedDecision"]:
        """Rebuild a decision from a cached value, None if it is not one."""
        if not isinstance(value, dict) or not isinstance(value.get("result"), bool):
            return None
        try:
            cached_at = datetime.fromisoformat(value["cached_at"])
        except (KeyError, TypeError, ValueError):
            cached_at = _utc_now()
        return cls(result=value["result"], cached_at=cached_at)
