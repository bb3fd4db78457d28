"""Permission levels and well-known resources."""

from enum import IntEnum
from typing import Dict, Final, Union


class PermissionLevel(IntEnum):
    """Ordinal permission level; a grant satisfies every level at or below it."""
    NO_ACCESS = 0
    VIEW = 1
    CREATE = 2
    UPDATE = 3
    DELETE = 4

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    def satisfies(self, required: "PermissionLevel") -> bool:
        return self >= required

    @classmethod
    def is_valid(cls, value: object) -> bool:
        try:
            cls.parse(value)
        except ValueError:
            return False
        return True

    @classmethod
    def parse(cls, value: Union["PermissionLevel", int, str]) -> "PermissionLevel":
        """Coerce an int, a member name or a display name to a level.

        Raises:
            ValueError: if value does not name a level
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise ValueError(f"Invalid permission level: {value!r}")
        if isinstance(value, int):
            return cls(value)
        if isinstance(value, str):
            normalized = value.strip().upper().replace(" ", "_")
            if normalized.isdigit():
                return cls(int(normalized))
            if normalized in cls.__members__:
                return cls[normalized]
        raise ValueError(f"Invalid permission level: {value!r}")


_DESCRIPTIONS: Dict[PermissionLevel, str] = {
    PermissionLevel.NO_ACCESS: "No Access",
    PermissionLevel.VIEW: "View Only",
    PermissionLevel.CREATE: "View & Create",
    PermissionLevel.UPDATE: "View, Create & Update (includes Execute)",
    PermissionLevel.DELETE: "Full Administrative Access",
}

_DISPLAY_NAMES: Dict[PermissionLevel, str] = {
    PermissionLevel.NO_ACCESS: "No Access",
    PermissionLevel.VIEW: "View",
    PermissionLevel.CREATE: "Create",
    PermissionLevel.UPDATE: "Update",
    PermissionLevel.DELETE: "Delete",
}


class Resources:
    """Resource names of the orchestration platform."""

    BOT_AGENT: Final[str] = "BotAgent"
    ASSET: Final[str] = "Asset"
    AUTOMATION_PACKAGE: Final[str] = "AutomationPackage"
    EXECUTION: Final[str] = "Execution"
    SCHEDULE: Final[str] = "Schedule"
    USER: Final[str] = "User"
    ORGANIZATION_UNIT: Final[str] = "OrganizationUnit"

    DISPLAY_NAMES: Final[Dict[str, str]] = {
        BOT_AGENT: "Bot Agent",
        ASSET: "Asset",
        AUTOMATION_PACKAGE: "Automation Package",
        EXECUTION: "Execution",
        SCHEDULE: "Schedule",
        USER: "User",
        ORGANIZATION_UNIT: "Organization Unit",
    }

    @classmethod
    def all(cls) -> list:
        return list(cls.DISPLAY_NAMES)

    @classmethod
    def display_name(cls, resource_name: str) -> str:
        return cls.DISPLAY_NAMES.get(resource_name, resource_name)
