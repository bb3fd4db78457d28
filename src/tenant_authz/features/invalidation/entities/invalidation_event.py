"""Invalidation event wire model.

Serialized as ``{"type", "keys", "pattern", "timestamp"}`` and published
on the invalidation channel. Consumers treat every event as an idempotent
delete, so duplicates and reordering are harmless.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class InvalidationType(str, Enum):
    """What an invalidation event evicts."""
    KEY = "Key"
    KEYS = "Keys"
    PATTERN = "Pattern"


# Numeric form used by publishers that serialize enums by ordinal
_ORDINAL_TYPES = {0: InvalidationType.KEY, 1: InvalidationType.KEYS, 2: InvalidationType.PATTERN}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class InvalidationEvent(BaseModel):
    """A request to evict cache entries on every process."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    type: InvalidationType
    keys: Optional[List[str]] = None
    pattern: Optional[str] = None
    timestamp: datetime = Field(default_factory=_utc_now)

    @field_validator("type", mode="before")
    @classmethod
    def _accept_ordinal_type(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return _ORDINAL_TYPES.get(value, value)
        return value

    @model_validator(mode="after")
    def _check_payload(self) -> "InvalidationEvent":
        if self.type in (InvalidationType.KEY, InvalidationType.KEYS):
            if not self.keys or not all(self.keys):
                raise ValueError(f"{self.type.value} invalidation requires non-empty keys")
        elif not self.pattern:
            raise ValueError("Pattern invalidation requires a pattern")
        return self

    @classmethod
    def for_key(cls, key: str) -> "InvalidationEvent":
        return cls(type=InvalidationType.KEY, keys=[key])

    @classmethod
    def for_keys(cls, keys: List[str]) -> "InvalidationEvent":
        return cls(type=InvalidationType.KEYS, keys=list(keys))

    @classmethod
    def for_pattern(cls, pattern: str) -> "InvalidationEvent":
        return cls(type=InvalidationType.PATTERN, pattern=pattern)

    def to_json(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_json(cls, payload: str) -> "InvalidationEvent":
        return cls.model_validate_json(payload)

    def describe(self) -> str:
        """Short human-readable summary for logs."""
        if self.type is InvalidationType.PATTERN:
            return f"Pattern '{self.pattern}'"
        if self.type is InvalidationType.KEY:
            return f"Key '{self.keys[0]}'"
        return f"Keys ({len(self.keys)})"
