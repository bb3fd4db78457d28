"""Authorization repositories."""

from .authority_repository import AsyncPGAuthorityRepository

__all__ = ["AsyncPGAuthorityRepository"]
