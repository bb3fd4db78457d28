"""Authorization services."""

from .authorization_resolver import AuthorizationResolver
from .authorization_cache import AuthorizationCache

__all__ = ["AuthorizationResolver", "AuthorizationCache"]
