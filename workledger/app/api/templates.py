"""
Template endpoints.

Thin HTTP adapter over ``TemplateRegistry``. Structural validation,
locking, cloning and delete pre-checks all live in the registry; routes
only translate ``ServiceResult`` failures into HTTP errors.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Query
from pydantic import BaseModel, Field

from workledger.app.api.deps import Context, ServicesDep, unwrap
from workledger.app.layouts.generator import GeneratedLayout, generate_layout
from workledger.app.schemas.layout import PageConfig
from workledger.app.schemas.results import ValidationResult
from workledger.app.schemas.template import Template
from workledger.app.templates.registry import blank_template, summarize
from workledger.app.templates.validator import validate_template_schema

router = APIRouter(tags=["Templates"])


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class CloneRequest(BaseModel):
    new_name: str = Field(..., min_length=1)


class LockRequest(BaseModel):
    locked: bool


# ---------------------------------------------------------------------------
# Collection
# ---------------------------------------------------------------------------


@router.get("", response_model=List[Template], summary="List visible templates")
def list_templates(
    ctx: Context,
    services: ServicesDep,
    industry: Optional[str] = None,
    contract_category: Optional[str] = None,
    is_public: Optional[bool] = None,
) -> List[Template]:
    return unwrap(
        services.templates.list(
            ctx,
            industry=industry,
            contract_category=contract_category,
            is_public=is_public,
        )
    )


@router.post("", response_model=Template, status_code=201, summary="Create a template")
def create_template(
    ctx: Context,
    services: ServicesDep,
    payload: Dict[str, Any] = Body(...),
) -> Template:
    return unwrap(services.templates.create(ctx, payload))


@router.get("/blank", summary="Blank template skeleton for authoring tools")
def get_blank_template() -> Dict[str, Any]:
    return blank_template()


@router.post(
    "/validate",
    response_model=ValidationResult,
    summary="Validate a template without persisting it",
)
def validate_template(payload: Dict[str, Any] = Body(...)) -> ValidationResult:
    return validate_template_schema(payload)


# ---------------------------------------------------------------------------
# Item
# ---------------------------------------------------------------------------


@router.get("/{key}", response_model=Template, summary="Get a template by id or slug")
def get_template(key: str, ctx: Context, services: ServicesDep) -> Template:
    return unwrap(services.templates.get(ctx, key))


@router.patch("/{key}", response_model=Template, summary="Update an unlocked template")
def update_template(
    key: str,
    ctx: Context,
    services: ServicesDep,
    changes: Dict[str, Any] = Body(...),
    expected_revision: Optional[int] = Query(
        default=None,
        description="Reject the update unless the stored revision matches",
    ),
) -> Template:
    return unwrap(
        services.templates.update(
            ctx, key, changes, expected_revision=expected_revision
        )
    )


@router.delete("/{key}", summary="Soft-delete a template")
def delete_template(key: str, ctx: Context, services: ServicesDep) -> Dict[str, Any]:
    return unwrap(services.templates.delete(ctx, key))


@router.post(
    "/{key}/clone",
    response_model=Template,
    status_code=201,
    summary="Clone a template into an editable copy",
)
def clone_template(
    key: str,
    body: CloneRequest,
    ctx: Context,
    services: ServicesDep,
) -> Template:
    return unwrap(services.templates.clone(ctx, key, body.new_name))


@router.put("/{key}/lock", response_model=Template, summary="Lock or unlock a template")
def lock_template(
    key: str,
    body: LockRequest,
    ctx: Context,
    services: ServicesDep,
) -> Template:
    return unwrap(services.templates.set_locked(ctx, key, body.locked))


@router.get("/{key}/summary", summary="Section and field counts")
def template_summary(key: str, ctx: Context, services: ServicesDep) -> Dict[str, Any]:
    return summarize(unwrap(services.templates.get(ctx, key)))


@router.post(
    "/{key}/generate-layout",
    response_model=GeneratedLayout,
    summary="Preview a layout generated from the template",
)
def preview_generated_layout(
    key: str,
    ctx: Context,
    services: ServicesDep,
) -> GeneratedLayout:
    template = unwrap(services.templates.get(ctx, key))
    settings = services.settings
    return generate_layout(
        template,
        page=PageConfig(
            size=settings.default_page_size,
            orientation=settings.default_orientation,
        ),
    )
