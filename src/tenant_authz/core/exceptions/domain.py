"""Domain exceptions for tenant-authz."""

from .base import AuthzError


class NotFoundError(AuthzError):
    """Raised when a named authority, tenant or grant does not exist."""
    pass


class ConflictError(AuthzError):
    """Raised when a change would break a uniqueness or reference rule."""
    pass


class ValidationError(AuthzError):
    """Raised when input validation fails."""
    pass


class NoTenantError(AuthzError):
    """Raised when tenant-scoped work runs without an active tenant."""

    def __init__(self, message: str = "No active tenant in the current context", **kwargs):
        super().__init__(message, **kwargs)


class AuthorityProtectedError(AuthzError):
    """Raised when modifying or deleting a system authority."""
    pass


class PermissionDeniedError(AuthzError):
    """Raised by the API layer when a permission check fails."""
    pass
