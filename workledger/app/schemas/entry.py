"""
Contract, assignment and work entry models.

Contracts are owned by an external collaborator; the engine only reads
their status (for delete pre-checks) and their attributes (as the prefill
source of the form interpreter).

Work entries hold a flat value map keyed by ``"<section_id>.<field_id>"``.
An entry pins the schema of its template as it was when the entry was
created, together with the template revision, so that historical entries
keep rendering against the fields they were collected with.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from workledger.app.schemas.layout import ReportLayout
from workledger.app.schemas.template import FieldsSchema


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid4())


# ---------------------------------------------------------------------------
# Contracts
# ---------------------------------------------------------------------------


class ContractStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ARCHIVED = "archived"


# A contract in one of these states still depends on its templates.
NON_TERMINAL_CONTRACT_STATUSES = frozenset(
    {ContractStatus.ACTIVE, ContractStatus.SUSPENDED}
)


class Contract(BaseModel):
    """
    Contract as seen by the engine.

    Unknown attributes are retained: any of them may be addressed by a
    field's ``prefill_from`` path.
    """

    id: str = Field(default_factory=_new_id)
    contract_number: Optional[str] = None
    contract_name: str
    client_name: Optional[str] = None
    contract_category: Optional[str] = None
    status: ContractStatus = ContractStatus.ACTIVE
    organization_id: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    model_config = ConfigDict(extra="allow")

    @property
    def is_non_terminal(self) -> bool:
        return self.status in NON_TERMINAL_CONTRACT_STATUSES


class ContractTemplateAssignment(BaseModel):
    """Junction row linking one contract to one accepted template."""

    id: str = Field(default_factory=_new_id)
    contract_id: str
    template_id: str = Field(..., description="Template primary id")
    custom_label: Optional[str] = None
    is_default: bool = False
    sort_order: int = 0
    assigned_by: Optional[str] = None
    assigned_at: datetime = Field(default_factory=_utcnow)


class ContractLayoutAssignment(BaseModel):
    """Junction row linking one contract to one report layout it may use."""

    id: str = Field(default_factory=_new_id)
    contract_id: str
    layout_id: str = Field(..., description="Layout primary id")
    notes: Optional[str] = None
    is_default: bool = False
    assigned_by: Optional[str] = None
    assigned_at: datetime = Field(default_factory=_utcnow)


class AssignedLayout(BaseModel):
    """A layout assignment joined with the layout it points at."""

    assignment: ContractLayoutAssignment
    layout: ReportLayout


# ---------------------------------------------------------------------------
# Work entries
# ---------------------------------------------------------------------------


class EntryStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


class WorkEntry(BaseModel):
    id: str = Field(default_factory=_new_id)
    contract_id: str
    template_id: str
    organization_id: Optional[str] = None
    created_by: Optional[str] = None

    entry_date: date = Field(default_factory=date.today)
    data: Dict[str, Any] = Field(default_factory=dict)
    status: EntryStatus = EntryStatus.DRAFT

    schema_snapshot: Optional[FieldsSchema] = Field(
        None,
        description="Template schema in effect when the entry was created",
    )
    template_revision: Optional[int] = None

    submitted_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    rejection_reason: Optional[str] = None

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    deleted_at: Optional[datetime] = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
