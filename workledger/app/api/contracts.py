"""
Contract, contract-template and contract-layout assignment endpoints.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body
from pydantic import BaseModel

from workledger.app.api.deps import Context, ServicesDep, unwrap
from workledger.app.schemas.entry import (
    AssignedLayout,
    Contract,
    ContractLayoutAssignment,
    ContractStatus,
    ContractTemplateAssignment,
)
from workledger.app.schemas.layout import ReportLayout

router = APIRouter(tags=["Contracts"])


class StatusRequest(BaseModel):
    status: ContractStatus


class AssignRequest(BaseModel):
    template_id: str
    label: Optional[str] = None
    is_default: bool = False


class LabelRequest(BaseModel):
    label: Optional[str] = None


class LayoutAssignRequest(BaseModel):
    layout_id: str
    notes: Optional[str] = None


# ---------------------------------------------------------------------------
# Contracts
# ---------------------------------------------------------------------------


@router.get("", response_model=List[Contract], summary="List contracts")
def list_contracts(ctx: Context, services: ServicesDep) -> List[Contract]:
    return unwrap(services.contracts.list(ctx))


@router.post("", response_model=Contract, status_code=201, summary="Register a contract")
def register_contract(
    ctx: Context,
    services: ServicesDep,
    payload: Dict[str, Any] = Body(...),
) -> Contract:
    return unwrap(services.contracts.register(ctx, payload))


@router.get("/{contract_id}", response_model=Contract, summary="Get a contract")
def get_contract(contract_id: str, ctx: Context, services: ServicesDep) -> Contract:
    return unwrap(services.contracts.get(ctx, contract_id))


@router.put("/{contract_id}/status", response_model=Contract, summary="Change contract status")
def set_contract_status(
    contract_id: str,
    body: StatusRequest,
    ctx: Context,
    services: ServicesDep,
) -> Contract:
    return unwrap(services.contracts.set_status(ctx, contract_id, body.status))


# ---------------------------------------------------------------------------
# Assignments
# ---------------------------------------------------------------------------


@router.get(
    "/{contract_id}/templates",
    response_model=List[ContractTemplateAssignment],
    summary="Templates assigned to a contract",
)
def list_assignments(
    contract_id: str,
    ctx: Context,
    services: ServicesDep,
) -> List[ContractTemplateAssignment]:
    return unwrap(services.assignments.list(ctx, contract_id))


@router.post(
    "/{contract_id}/templates",
    response_model=ContractTemplateAssignment,
    status_code=201,
    summary="Assign a template to a contract",
)
def add_assignment(
    contract_id: str,
    body: AssignRequest,
    ctx: Context,
    services: ServicesDep,
) -> ContractTemplateAssignment:
    return unwrap(
        services.assignments.add(
            ctx,
            contract_id,
            body.template_id,
            label=body.label,
            is_default=body.is_default,
        )
    )


@router.delete(
    "/assignments/{assignment_id}",
    summary="Remove an assignment (promotes a new default if needed)",
)
def remove_assignment(
    assignment_id: str,
    ctx: Context,
    services: ServicesDep,
) -> Dict[str, Any]:
    promoted = unwrap(services.assignments.remove(ctx, assignment_id))
    return {
        "removed": assignment_id,
        "promoted_default": promoted.id if promoted is not None else None,
    }


@router.put(
    "/assignments/{assignment_id}/default",
    response_model=ContractTemplateAssignment,
    summary="Make an assignment the contract default",
)
def set_default_assignment(
    assignment_id: str,
    ctx: Context,
    services: ServicesDep,
) -> ContractTemplateAssignment:
    return unwrap(services.assignments.set_default(ctx, assignment_id))


@router.patch(
    "/assignments/{assignment_id}",
    response_model=ContractTemplateAssignment,
    summary="Rename an assignment",
)
def update_assignment_label(
    assignment_id: str,
    body: LabelRequest,
    ctx: Context,
    services: ServicesDep,
) -> ContractTemplateAssignment:
    return unwrap(services.assignments.update_label(ctx, assignment_id, body.label))


# ---------------------------------------------------------------------------
# Layouts
# ---------------------------------------------------------------------------


@router.get(
    "/{contract_id}/layouts",
    response_model=List[AssignedLayout],
    summary="Layouts assigned to a contract",
)
def list_contract_layouts(
    contract_id: str,
    ctx: Context,
    services: ServicesDep,
) -> List[AssignedLayout]:
    return unwrap(services.contract_layouts.list(ctx, contract_id))


@router.get(
    "/{contract_id}/layouts/default",
    response_model=Optional[ReportLayout],
    summary="Default layout of a contract",
)
def get_contract_default_layout(
    contract_id: str,
    ctx: Context,
    services: ServicesDep,
) -> Optional[ReportLayout]:
    return unwrap(services.contract_layouts.get_default(ctx, contract_id))


@router.get(
    "/{contract_id}/layouts/available",
    response_model=List[ReportLayout],
    summary="Compatible layouts not yet assigned to a contract",
)
def list_available_layouts(
    contract_id: str,
    ctx: Context,
    services: ServicesDep,
) -> List[ReportLayout]:
    return unwrap(services.contract_layouts.available(ctx, contract_id))


@router.post(
    "/{contract_id}/layouts",
    response_model=ContractLayoutAssignment,
    status_code=201,
    summary="Assign a layout to a contract",
)
def assign_contract_layout(
    contract_id: str,
    body: LayoutAssignRequest,
    ctx: Context,
    services: ServicesDep,
) -> ContractLayoutAssignment:
    return unwrap(
        services.contract_layouts.assign(ctx, contract_id, body.layout_id, notes=body.notes)
    )


@router.post(
    "/{contract_id}/layouts/initialize",
    response_model=ContractLayoutAssignment,
    status_code=201,
    summary="Assign the starter layout to a new contract",
)
def initialize_contract_layouts(
    contract_id: str,
    ctx: Context,
    services: ServicesDep,
) -> ContractLayoutAssignment:
    return unwrap(services.contract_layouts.initialize_contract(ctx, contract_id))


@router.put(
    "/{contract_id}/layouts/{layout_id}/default",
    response_model=ContractLayoutAssignment,
    summary="Make a layout the contract default",
)
def set_contract_default_layout(
    contract_id: str,
    layout_id: str,
    ctx: Context,
    services: ServicesDep,
) -> ContractLayoutAssignment:
    return unwrap(services.contract_layouts.set_default(ctx, contract_id, layout_id))


@router.delete(
    "/{contract_id}/layouts/{layout_id}",
    response_model=ContractLayoutAssignment,
    summary="Remove a layout from a contract",
)
def remove_contract_layout(
    contract_id: str,
    layout_id: str,
    ctx: Context,
    services: ServicesDep,
) -> ContractLayoutAssignment:
    return unwrap(services.contract_layouts.remove(ctx, contract_id, layout_id))
