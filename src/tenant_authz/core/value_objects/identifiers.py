"""Value objects for identifiers in tenant-authz.

Immutable wrappers around UUIDs. Their string form is what goes into
cache keys, so it must stay the canonical lowercase hyphenated UUID.
"""

from uuid import UUID, uuid4
from dataclasses import dataclass
from typing import Union


def _coerce_uuid(value: Union[UUID, str], label: str) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (ValueError, TypeError, AttributeError):
        raise ValueError(f"{label} must be a valid UUID, got: {value!r}")


@dataclass(frozen=True)
class UserId:
    """User identifier value object."""
    value: UUID

    def __post_init__(self):
        object.__setattr__(self, 'value', _coerce_uuid(self.value, "UserId"))

    @classmethod
    def generate(cls) -> 'UserId':
        """Generate a new random UserId."""
        return cls(uuid4())

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class TenantId:
    """Tenant identifier value object."""
    value: UUID

    def __post_init__(self):
        object.__setattr__(self, 'value', _coerce_uuid(self.value, "TenantId"))

    @classmethod
    def generate(cls) -> 'TenantId':
        """Generate a new random TenantId."""
        return cls(uuid4())

    def __str__(self) -> str:
        return str(self.value)
