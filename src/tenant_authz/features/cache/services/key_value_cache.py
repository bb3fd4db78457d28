"""Typed access to the shared key-value store.

Values are stored as JSON. Every operation swallows backend failures
after logging them: a broken cache must look like an empty cache to
callers, never like an error.
"""

import asyncio
import json
import math
import logging
import time
from datetime import timedelta
from typing import Any, Iterable, Optional, Union

from ..entities.protocols import KeyValueBackend
from ....config.constants import CacheTTL, PatternDeletion
from ....config.settings import AuthzSettings

logger = logging.getLogger(__name__)

TTL = Union[int, float, timedelta]


class KeyValueCache:
    """Best-effort JSON cache over a KeyValueBackend."""

    def __init__(
        self,
        backend: KeyValueBackend,
        default_ttl: TTL = CacheTTL.DEFAULT,
        batch_size: int = PatternDeletion.BATCH_SIZE,
        scan_count: int = PatternDeletion.SCAN_COUNT,
        batch_delay_ms: int = PatternDeletion.BATCH_DELAY_MS,
        max_keys_per_pattern: int = PatternDeletion.MAX_KEYS_PER_PATTERN,
    ):
        self._backend = backend
        self.default_ttl = self._to_seconds(default_ttl)
        self.batch_size = max(1, batch_size)
        self.scan_count = max(1, scan_count)
        self.batch_delay_ms = max(0, batch_delay_ms)
        self.max_keys_per_pattern = max(1, max_keys_per_pattern)

    @classmethod
    def from_settings(cls, backend: KeyValueBackend, settings: AuthzSettings) -> "KeyValueCache":
        """Create a cache configured from settings."""
        return cls(
            backend,
            default_ttl=settings.cache_ttl_default,
            batch_size=settings.cache_batch_size,
            scan_count=settings.cache_scan_count,
            batch_delay_ms=settings.cache_batch_delay_ms,
            max_keys_per_pattern=settings.cache_max_keys_per_pattern,
        )

    @property
    def backend(self) -> KeyValueBackend:
        return self._backend

    @staticmethod
    def _to_seconds(ttl: TTL) -> int:
        if isinstance(ttl, timedelta):
            ttl = ttl.total_seconds()
        # Sub-second TTLs round up so they never mean "no expiry"
        return max(1, math.ceil(ttl))

    async def get(self, key: str) -> Optional[Any]:
        """Get a cached value, None on miss, decode failure or backend error."""
        try:
            raw = await self._backend.get(key)
        except Exception as e:
            logger.warning(f"Cache read failed for key '{key}', treating as miss: {e}")
            return None

        if raw is None:
            logger.debug(f"Cache miss: {key}")
            return None

        try:
            value = json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.warning(f"Undecodable cache value for key '{key}', treating as miss: {e}")
            return None

        logger.debug(f"Cache hit: {key}")
        return value

    async def set(self, key: str, value: Any, ttl: Optional[TTL] = None) -> bool:
        """Store a value, returning False when it could not be written."""
        try:
            payload = json.dumps(value, default=str)
        except (TypeError, ValueError) as e:
            logger.warning(f"Cannot serialize value for key '{key}': {e}")
            return False

        ttl_seconds = self.default_ttl if ttl is None else self._to_seconds(ttl)
        try:
            await self._backend.set(key, payload, ttl_seconds)
        except Exception as e:
            logger.warning(f"Cache write failed for key '{key}': {e}")
            return False

        logger.debug(f"Cached {key} (ttl={ttl_seconds}s)")
        return True

    async def remove(self, key: str) -> bool:
        """Remove a single key, returning True if it existed."""
        try:
            return await self._backend.delete(key) > 0
        except Exception as e:
            logger.warning(f"Cache delete failed for key '{key}': {e}")
            return False

    async def remove_many(self, keys: Iterable[str]) -> int:
        """Remove several keys, returning how many existed."""
        keys = [key for key in keys if key]
        if not keys:
            return 0
        try:
            return await self._backend.delete(*keys)
        except Exception as e:
            logger.warning(f"Cache delete failed for {len(keys)} keys: {e}")
            return 0

    async def exists(self, key: str) -> bool:
        try:
            return await self._backend.exists(key)
        except Exception as e:
            logger.warning(f"Cache exists check failed for key '{key}': {e}")
            return False

    async def refresh(self, key: str, ttl: TTL) -> bool:
        """Reset the TTL of an existing key."""
        try:
            return await self._backend.expire(key, self._to_seconds(ttl))
        except Exception as e:
            logger.warning(f"Cache refresh failed for key '{key}': {e}")
            return False

    async def remove_by_pattern(self, pattern: str) -> int:
        """Remove every key matching a glob pattern.

        Keys are enumerated with SCAN and deleted in batches, optionally
        pausing between batches to spare the backend. Enumeration stops
        after ``max_keys_per_pattern`` keys.

        Returns:
            Number of keys deleted before completion or failure
        """
        started = time.perf_counter()
        deleted = 0
        scanned = 0
        batches = 0
        batch = []

        logger.info(f"Removing cache keys matching '{pattern}'")
        try:
            async for key in self._backend.scan_iter(match=pattern, count=self.scan_count):
                if scanned >= self.max_keys_per_pattern:
                    logger.error(
                        f"Pattern '{pattern}' reached the limit of {self.max_keys_per_pattern} keys, "
                        f"remaining keys may serve stale decisions until they expire"
                    )
                    break
                batch.append(key)
                scanned += 1

                if len(batch) >= self.batch_size:
                    deleted += await self._backend.delete(*batch)
                    batches += 1
                    batch = []
                    logger.debug(f"Pattern '{pattern}': batch {batches} done, {deleted} keys deleted so far")
                    if self.batch_delay_ms:
                        await asyncio.sleep(self.batch_delay_ms / 1000)

            if batch:
                deleted += await self._backend.delete(*batch)
                batches += 1
        except Exception as e:
            logger.warning(f"Pattern removal for '{pattern}' failed after deleting {deleted} keys: {e}")
            return deleted

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            f"Removed {deleted} cache keys matching '{pattern}' "
            f"in {batches} batches ({elapsed_ms:.1f}ms)"
        )
        return deleted

    async def health_check(self) -> bool:
        """Check backend connectivity."""
        try:
            return await self._backend.ping()
        except Exception as e:
            logger.warning(f"Cache health check failed: {e}")
            return False
