"""
Work entry endpoints.
"""

from datetime import date
from typing import Any, Dict, List, Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field

from workledger.app.api.deps import Context, ServicesDep, unwrap
from workledger.app.schemas.entry import EntryStatus, WorkEntry

router = APIRouter(tags=["Work Entries"])


class DraftRequest(BaseModel):
    contract_id: str
    template_id: str
    data: Dict[str, Any] = Field(default_factory=dict)
    entry_date: Optional[date] = None


class UpdateRequest(BaseModel):
    data: Dict[str, Any]
    entry_date: Optional[date] = None


class RejectRequest(BaseModel):
    reason: Optional[str] = None


@router.get("", response_model=List[WorkEntry], summary="List work entries")
def list_entries(
    ctx: Context,
    services: ServicesDep,
    contract_id: Optional[str] = None,
    status: Optional[EntryStatus] = None,
) -> List[WorkEntry]:
    return unwrap(services.entries.list(ctx, contract_id=contract_id, status=status))


@router.post("", response_model=WorkEntry, status_code=201, summary="Create a draft entry")
def create_entry(body: DraftRequest, ctx: Context, services: ServicesDep) -> WorkEntry:
    return unwrap(
        services.entries.create_draft(
            ctx,
            body.contract_id,
            body.template_id,
            body.data,
            entry_date=body.entry_date,
        )
    )


@router.get("/{entry_id}", response_model=WorkEntry, summary="Get a work entry")
def get_entry(entry_id: str, ctx: Context, services: ServicesDep) -> WorkEntry:
    return unwrap(services.entries.get(ctx, entry_id))


@router.put("/{entry_id}", response_model=WorkEntry, summary="Replace a draft's values")
def update_entry(
    entry_id: str,
    body: UpdateRequest,
    ctx: Context,
    services: ServicesDep,
) -> WorkEntry:
    return unwrap(
        services.entries.update(ctx, entry_id, body.data, entry_date=body.entry_date)
    )


@router.post("/{entry_id}/submit", response_model=WorkEntry, summary="Submit a draft")
def submit_entry(entry_id: str, ctx: Context, services: ServicesDep) -> WorkEntry:
    return unwrap(services.entries.submit(ctx, entry_id))


@router.post("/{entry_id}/approve", response_model=WorkEntry, summary="Approve an entry")
def approve_entry(entry_id: str, ctx: Context, services: ServicesDep) -> WorkEntry:
    return unwrap(services.entries.approve(ctx, entry_id))


@router.post("/{entry_id}/reject", response_model=WorkEntry, summary="Reject an entry")
def reject_entry(
    entry_id: str,
    body: RejectRequest,
    ctx: Context,
    services: ServicesDep,
) -> WorkEntry:
    return unwrap(services.entries.reject(ctx, entry_id, body.reason))


@router.delete("/{entry_id}", summary="Soft-delete a draft entry")
def delete_entry(entry_id: str, ctx: Context, services: ServicesDep) -> Dict[str, Any]:
    return unwrap(services.entries.delete(ctx, entry_id))
