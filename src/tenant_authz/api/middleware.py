"""Tenant resolution middleware.

Routes are addressed as ``/{tenant_slug}/...``. Each request gets a fresh
tenant context on ``request.state.tenant_context``; the first path
segment is resolved to an active tenant before the route runs.
"""

import logging
from typing import Iterable, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from ..bootstrap import AuthorizationModule
from ..config.constants import RESERVED_PATH_SEGMENTS
from ..core.exceptions import AuthzError, NotFoundError, create_error_response

logger = logging.getLogger(__name__)


class TenantResolutionMiddleware(BaseHTTPMiddleware):
    """Resolve the tenant slug of every request."""

    def __init__(
        self,
        app,
        module: AuthorizationModule,
        reserved_segments: Optional[Iterable[str]] = None,
    ):
        super().__init__(app)
        self.module = module
        self.reserved_segments = frozenset(
            segment.lower() for segment in (reserved_segments or RESERVED_PATH_SEGMENTS)
        )

    def extract_tenant_slug(self, path: str) -> Optional[str]:
        """First path segment, unless it is reserved."""
        segments = [segment for segment in path.split("/") if segment]
        if not segments:
            return None
        slug = segments[0]
        if slug.lower() in self.reserved_segments:
            return None
        return slug

    async def dispatch(self, request: Request, call_next):
        tenant_context = self.module.create_tenant_context()
        tenant_context.clear_tenant()
        request.state.tenant_context = tenant_context
        request.state.authz_module = self.module

        slug = self.extract_tenant_slug(request.url.path)
        if slug is None:
            return await call_next(request)

        try:
            resolved = await tenant_context.resolve_tenant_from_slug(slug)
        except Exception as e:
            logger.error(f"Error resolving tenant '{slug}': {e}")
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content=create_error_response(AuthzError("An error occurred while resolving the tenant")),
            )

        if not resolved:
            logger.warning(f"Tenant '{slug}' not found or inactive")
            return JSONResponse(
                status_code=status.HTTP_404_NOT_FOUND,
                content=create_error_response(
                    NotFoundError(f"Tenant '{slug}' not found or inactive.", details={"slug": slug})
                ),
            )

        logger.debug(f"Request {request.method} {request.url.path} bound to tenant {tenant_context.current_tenant_id}")
        return await call_next(request)
