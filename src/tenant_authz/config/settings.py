"""
Configuration for tenant-authz.

Environment-driven settings covering the Redis backend, the decision and
tenant-resolution caches, the invalidation channel and batched pattern
deletion.
"""
from typing import Optional
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, PostgresDsn, RedisDsn

from .constants import CacheChannels, CacheTTL, PatternDeletion


class AuthzSettings(BaseSettings):
    """Settings for permission resolution and cache coherence."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    app_name: str = Field(default="tenant-authz")
    environment: str = Field(default="development")

    # Redis Cache Configuration
    redis_url: Optional[RedisDsn] = Field(default=None)
    redis_pool_size: int = Field(default=10, ge=1)
    redis_decode_responses: bool = Field(default=True)

    # Database Configuration
    database_url: Optional[PostgresDsn] = Field(default=None)
    db_pool_min_size: int = Field(default=1, ge=1)
    db_pool_max_size: int = Field(default=10, ge=1)

    # Decision cache
    enable_role_caching: bool = Field(default=True)
    cache_ttl_default: int = Field(default=CacheTTL.DEFAULT, gt=0)
    cache_ttl_permissions: int = Field(default=CacheTTL.PERMISSION, gt=0)
    cache_ttl_authority: int = Field(default=CacheTTL.AUTHORITY, gt=0)
    cache_ttl_tenant: int = Field(default=CacheTTL.TENANT_RESOLUTION, gt=0)

    # Invalidation
    cache_invalidation_channel: str = Field(default=CacheChannels.INVALIDATION, min_length=1)
    subscriber_poll_interval: float = Field(default=1.0, gt=0)

    # Batched pattern deletion
    cache_batch_size: int = Field(default=PatternDeletion.BATCH_SIZE, ge=1)
    cache_scan_count: int = Field(default=PatternDeletion.SCAN_COUNT, ge=1)
    cache_batch_delay_ms: int = Field(default=PatternDeletion.BATCH_DELAY_MS, ge=0)
    cache_max_keys_per_pattern: int = Field(default=PatternDeletion.MAX_KEYS_PER_PATTERN, ge=1)

    # Logging
    log_level: str = Field(default="INFO")
    log_verbosity: str = Field(default="NORMAL")
    log_format: str = Field(default="simple")

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def is_cache_enabled(self) -> bool:
        """Check if Redis caching is configured."""
        return self.redis_url is not None


@lru_cache()
def get_settings() -> AuthzSettings:
    """Get cached settings instance."""
    return AuthzSettings()
