"""Configuration module for tenant-authz."""

from .constants import (
    CacheKeys,
    CacheTTL,
    CacheChannels,
    PatternDeletion,
    RESERVED_PATH_SEGMENTS,
)
from .logging_config import (
    setup_logging,
    get_logger,
    LogLevel,
    LogVerbosity,
    LogFormat,
    LoggingConfig,
)
from .settings import AuthzSettings, get_settings

__all__ = [
    "CacheKeys",
    "CacheTTL",
    "CacheChannels",
    "PatternDeletion",
    "RESERVED_PATH_SEGMENTS",
    "setup_logging",
    "get_logger",
    "LogLevel",
    "LogVerbosity",
    "LogFormat",
    "LoggingConfig",
    "AuthzSettings",
    "get_settings",
]
