"""Utilities for tenant-authz."""

from .locks import ReadWriteLock

__all__ = ["ReadWriteLock"]
