"""Root exception of tenant-authz and its HTTP rendering.

Errors carry a stable ``error_code`` (the class name unless given) and a
``details`` mapping with the identifiers involved: tenant, authority,
resource, channel. The API layer renders them with
``create_error_response`` and picks the status with
``get_http_status_code``.
"""

from typing import Any, Dict, Mapping, Optional


class AuthzError(Exception):
    """Base exception for all tenant-authz errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Mapping[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or type(self).__name__
        # Copied so callers can't mutate the error after raising it
        self.details: Dict[str, Any] = dict(details) if details else {}

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, details={self.details!r})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.error_code,
            "message": self.message,
            "details": self.details,
            "type": type(self).__name__,
        }


def get_http_status_code(exception: Exception) -> int:
    """HTTP status for any exception; 500 when unmapped."""
    # Imported late: http_mapping imports the subclasses of AuthzError
    from .http_mapping import get_http_status_code as lookup_status_code
    return lookup_status_code(exception)


def create_error_response(exception: AuthzError) -> Dict[str, Any]:
    """Body of an error response, ``{"error": {code, message, details, type}}``."""
    return {"error": exception.to_dict()}
