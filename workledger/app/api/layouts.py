"""
Layout endpoints, including JSON bundle export/import.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Query
from pydantic import BaseModel, Field

from workledger.app.api.deps import Context, ServicesDep, unwrap
from workledger.app.layouts.validator import validate_layout_schema
from workledger.app.schemas.layout import ReportLayout
from workledger.app.schemas.results import ValidationResult

router = APIRouter(tags=["Layouts"])


class CloneRequest(BaseModel):
    new_name: str = Field(..., min_length=1)


@router.get("", response_model=List[ReportLayout], summary="List layouts")
def list_layouts(
    ctx: Context,
    services: ServicesDep,
    compatible_category: Optional[str] = None,
    search: Optional[str] = None,
    include_inactive: bool = False,
) -> List[ReportLayout]:
    return unwrap(
        services.layouts.list(
            ctx,
            compatible_category=compatible_category,
            search=search,
            include_inactive=include_inactive,
        )
    )


@router.post("", response_model=ReportLayout, status_code=201, summary="Create a layout")
def create_layout(
    ctx: Context,
    services: ServicesDep,
    payload: Dict[str, Any] = Body(...),
) -> ReportLayout:
    return unwrap(services.layouts.create(ctx, payload))


@router.post(
    "/validate",
    response_model=ValidationResult,
    summary="Validate a layout schema without persisting it",
)
def validate_layout(payload: Dict[str, Any] = Body(...)) -> ValidationResult:
    return validate_layout_schema(payload)


# ---------------------------------------------------------------------------
# Export / import (declared before /{key} so the literals win)
# ---------------------------------------------------------------------------


@router.get("/export", summary="Export layouts as a checksummed JSON bundle")
def export_layouts(
    ctx: Context,
    services: ServicesDep,
    ids: Optional[List[str]] = Query(default=None),
) -> Dict[str, Any]:
    return unwrap(services.layouts.export_layouts(ctx, ids))


@router.post(
    "/import",
    response_model=List[ReportLayout],
    status_code=201,
    summary="Import a layout bundle (all-or-nothing)",
)
def import_layouts(
    ctx: Context,
    services: ServicesDep,
    bundle: Dict[str, Any] = Body(...),
) -> List[ReportLayout]:
    return unwrap(services.layouts.import_bundle(ctx, bundle))


# ---------------------------------------------------------------------------
# Item
# ---------------------------------------------------------------------------


@router.get("/{key}", response_model=ReportLayout, summary="Get a layout by id or slug")
def get_layout(key: str, ctx: Context, services: ServicesDep) -> ReportLayout:
    return unwrap(services.layouts.get(ctx, key))


@router.patch("/{key}", response_model=ReportLayout, summary="Update a layout")
def update_layout(
    key: str,
    ctx: Context,
    services: ServicesDep,
    changes: Dict[str, Any] = Body(...),
) -> ReportLayout:
    return unwrap(services.layouts.update(ctx, key, changes))


@router.delete("/{key}", response_model=ReportLayout, summary="Deactivate a layout")
def deactivate_layout(key: str, ctx: Context, services: ServicesDep) -> ReportLayout:
    return unwrap(services.layouts.deactivate(ctx, key))


@router.post(
    "/{key}/clone",
    response_model=ReportLayout,
    status_code=201,
    summary="Clone a layout",
)
def clone_layout(
    key: str,
    body: CloneRequest,
    ctx: Context,
    services: ServicesDep,
) -> ReportLayout:
    return unwrap(services.layouts.clone(ctx, key, body.new_name))
