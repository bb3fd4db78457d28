"""Tenant domain entity."""

from dataclasses import dataclass
from typing import Optional

from ....core.value_objects import TenantId


@dataclass
class Tenant:
    """An isolated organizational scope, addressed by its URL slug."""
    id: TenantId
    slug: str
    is_active: bool = True
    name: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.id, TenantId):
            self.id = TenantId(self.id)
        if not self.slug or not self.slug.strip():
            raise ValueError("Tenant slug must be a non-empty string")
