"""
Shared HTTP dependencies.

Request context is taken from headers and threaded explicitly into every
service call. ``ServiceResult`` failures are mapped onto HTTP status
codes in exactly one place (``unwrap``).
"""

from __future__ import annotations

from typing import Annotated, Any, Optional

from fastapi import Depends, Header, HTTPException, Request

from workledger.app.core.container import Services
from workledger.app.core.context import RequestContext
from workledger.app.schemas.results import ServiceResult

# Engine error code -> HTTP status.
STATUS_BY_CODE = {
    "not_found": 404,
    "schema_validation_error": 422,
    "field_validation_error": 422,
    "duplicate_name": 409,
    "conflict": 409,
    "template_locked": 423,
    "template_in_use": 409,
    "invalid_state": 409,
    "incompatible_layout": 422,
    "permission_denied": 403,
    "store_error": 502,
}


# =============================================================================
# Dependency providers
# =============================================================================


def get_context(
    x_organization_id: Annotated[
        Optional[str],
        Header(description="Current organization id"),
    ] = None,
    x_user_id: Annotated[
        Optional[str],
        Header(description="Acting user id"),
    ] = None,
    x_permissions: Annotated[
        Optional[str],
        Header(description="Comma-separated permission keys"),
    ] = None,
) -> RequestContext:
    permissions = frozenset(
        p.strip() for p in (x_permissions or "").split(",") if p.strip()
    )
    return RequestContext(
        organization_id=x_organization_id or None,
        user_id=x_user_id or None,
        permissions=permissions,
    )


def get_services(request: Request) -> Services:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise RuntimeError("services not initialized")
    return services


def unwrap(result: ServiceResult) -> Any:
    """Return the payload of a successful result or raise HTTPException."""
    if result.success:
        return result.data
    raise HTTPException(
        status_code=STATUS_BY_CODE.get(result.code or "", 500),
        detail=result.as_dict(),
    )


Context = Annotated[RequestContext, Depends(get_context)]
ServicesDep = Annotated[Services, Depends(get_services)]
