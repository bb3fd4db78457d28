"""HTTP status code mapping for exceptions."""

from typing import Dict, Type

from .base import AuthzError
from .domain import (
    NotFoundError,
    ConflictError,
    ValidationError,
    NoTenantError,
    AuthorityProtectedError,
    PermissionDeniedError,
)
from .infrastructure import CacheError, ConfigurationError, DatabaseError


# Most specific classes first; lookup walks the MRO
HTTP_STATUS_MAP: Dict[Type[Exception], int] = {
    # 400 Bad Request
    NoTenantError: 400,

    # 403 Forbidden
    PermissionDeniedError: 403,
    AuthorityProtectedError: 403,

    # 404 Not Found
    NotFoundError: 404,

    # 409 Conflict
    ConflictError: 409,

    # 422 Unprocessable Entity
    ValidationError: 422,

    # 503 Service Unavailable
    CacheError: 503,
    DatabaseError: 503,

    # 500 Internal Server Error
    ConfigurationError: 500,
    AuthzError: 500,
}


def get_http_status_code(exception: Exception) -> int:
    """Get HTTP status code for an exception.

    Args:
        exception: The exception instance

    Returns:
        HTTP status code, 500 for anything unmapped
    """
    for exc_type in type(exception).__mro__:
        if exc_type in HTTP_STATUS_MAP:
            return HTTP_STATUS_MAP[exc_type]
    return 500
