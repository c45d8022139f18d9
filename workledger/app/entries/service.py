"""
Work entry lifecycle.

    draft --submit--> submitted --approve--> approved
                      submitted --reject---> rejected

- entries are created against a contract AND one of its assigned
  templates; the template schema and revision in effect at creation are
  pinned on the entry
- only the owner may edit, and only while the entry is a draft
- submit re-runs the full submit-time validation against the pinned
  schema; field errors block the transition, never further editing
- approve/reject require ``work_entries.approve``
- delete is a soft delete of drafts belonging to the caller's organization
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from workledger.app.contracts.assignments import AssignmentService
from workledger.app.contracts.service import ContractService
from workledger.app.core.boundary import service_boundary
from workledger.app.core.context import PERM_ENTRIES_APPROVE, RequestContext
from workledger.app.core.errors import (
    EntryStateError,
    FieldValidationError,
    NotFoundError,
    PermissionDeniedError,
)
from workledger.app.forms.interpreter import FormSession, validate_values
from workledger.app.schemas.entry import EntryStatus, WorkEntry
from workledger.app.schemas.template import FieldsSchema
from workledger.app.stores.base import Stores
from workledger.app.templates.registry import TemplateRegistry

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WorkEntryService:
    def __init__(
        self,
        stores: Stores,
        templates: TemplateRegistry,
        contracts: ContractService,
        assignments: AssignmentService,
    ) -> None:
        self._stores = stores
        self._templates = templates
        self._contracts = contracts
        self._assignments = assignments

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def load(self, ctx: RequestContext, entry_id: str) -> WorkEntry:
        entry = self._stores.entries.get(entry_id)
        if (
            entry is None
            or entry.is_deleted
            or (
                entry.organization_id is not None
                and ctx.organization_id is not None
                and entry.organization_id != ctx.organization_id
            )
        ):
            raise NotFoundError("Work entry", entry_id)
        return entry

    def schema_for(self, ctx: RequestContext, entry: WorkEntry) -> Optional[FieldsSchema]:
        """Pinned snapshot, else the template's current schema, else None."""
        if entry.schema_snapshot is not None:
            return entry.schema_snapshot
        try:
            return self._templates.load(ctx, entry.template_id).fields_schema
        except NotFoundError:
            return None

    def _editable(self, ctx: RequestContext, entry_id: str) -> WorkEntry:
        entry = self.load(ctx, entry_id)
        if entry.created_by != ctx.user_id:
            raise PermissionDeniedError(
                message="Only the owner of a work entry may change it"
            )
        if entry.status != EntryStatus.DRAFT:
            raise EntryStateError(
                f"Work entry is {entry.status.value}; only drafts can be changed"
            )
        return entry

    def _transition(self, entry: WorkEntry, **changes: Any) -> WorkEntry:
        changes["updated_at"] = _utcnow()
        stored = self._stores.entries.save(entry.model_copy(update=changes))
        logger.info("Work entry id=%s status=%s", stored.id, stored.status.value)
        return stored

    def _reviewable(self, ctx: RequestContext, entry_id: str) -> WorkEntry:
        if not ctx.can(PERM_ENTRIES_APPROVE):
            raise PermissionDeniedError(PERM_ENTRIES_APPROVE)
        entry = self.load(ctx, entry_id)
        if entry.status != EntryStatus.SUBMITTED:
            raise EntryStateError(
                f"Work entry is {entry.status.value}; only submitted entries can be reviewed"
            )
        return entry

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    @service_boundary("entries.create_draft")
    def create_draft(
        self,
        ctx: RequestContext,
        contract_id: str,
        template_id: str,
        data: Optional[Mapping[str, Any]] = None,
        entry_date: Optional[date] = None,
    ) -> WorkEntry:
        contract = self._contracts.load(ctx, contract_id)
        template = self._templates.load(ctx, template_id)

        if self._assignments.find(contract.id, template.id) is None:
            raise NotFoundError(
                "Assignment", f"template {template.template_id} on contract {contract.id}"
            )

        session = FormSession(template, contract=contract, initial_data=data or {})

        entry = WorkEntry(
            contract_id=contract.id,
            template_id=template.id,
            organization_id=ctx.organization_id or contract.organization_id,
            created_by=ctx.user_id,
            entry_date=entry_date or date.today(),
            data=session.values,
            schema_snapshot=template.fields_schema.model_copy(deep=True),
            template_revision=template.revision,
        )
        stored = self._stores.entries.save(entry)
        logger.info(
            "Work entry drafted id=%s template=%s revision=%s",
            stored.id,
            template.template_id,
            template.revision,
        )
        return stored

    @service_boundary("entries.get")
    def get(self, ctx: RequestContext, entry_id: str) -> WorkEntry:
        return self.load(ctx, entry_id)

    @service_boundary("entries.list")
    def list(
        self,
        ctx: RequestContext,
        *,
        contract_id: Optional[str] = None,
        status: Optional[EntryStatus] = None,
    ) -> List[WorkEntry]:
        entries = [
            e
            for e in self._stores.entries.list()
            if not e.is_deleted
            and (
                e.organization_id is None
                or ctx.organization_id is None
                or e.organization_id == ctx.organization_id
            )
        ]
        if contract_id is not None:
            entries = [e for e in entries if e.contract_id == contract_id]
        if status is not None:
            entries = [e for e in entries if e.status == EntryStatus(status)]
        return sorted(entries, key=lambda e: (e.entry_date, e.created_at), reverse=True)

    @service_boundary("entries.update")
    def update(
        self,
        ctx: RequestContext,
        entry_id: str,
        data: Mapping[str, Any],
        entry_date: Optional[date] = None,
    ) -> WorkEntry:
        entry = self._editable(ctx, entry_id)
        changes: Dict[str, Any] = {"data": dict(data), "updated_at": _utcnow()}
        if entry_date is not None:
            changes["entry_date"] = entry_date
        return self._stores.entries.save(entry.model_copy(update=changes))

    @service_boundary("entries.submit")
    def submit(self, ctx: RequestContext, entry_id: str) -> WorkEntry:
        entry = self._editable(ctx, entry_id)

        schema = self.schema_for(ctx, entry)
        if schema is not None:
            errors = validate_values(schema, entry.data)
            if errors:
                raise FieldValidationError(errors)

        return self._transition(
            entry, status=EntryStatus.SUBMITTED, submitted_at=_utcnow()
        )

    @service_boundary("entries.approve")
    def approve(self, ctx: RequestContext, entry_id: str) -> WorkEntry:
        entry = self._reviewable(ctx, entry_id)
        return self._transition(
            entry,
            status=EntryStatus.APPROVED,
            approved_at=_utcnow(),
            approved_by=ctx.user_id,
        )

    @service_boundary("entries.reject")
    def reject(
        self,
        ctx: RequestContext,
        entry_id: str,
        reason: Optional[str] = None,
    ) -> WorkEntry:
        entry = self._reviewable(ctx, entry_id)
        return self._transition(
            entry,
            status=EntryStatus.REJECTED,
            rejection_reason=reason,
        )

    @service_boundary("entries.delete")
    def delete(self, ctx: RequestContext, entry_id: str) -> Dict[str, Any]:
        entry = self.load(ctx, entry_id)
        if ctx.organization_id is not None and entry.organization_id != ctx.organization_id:
            raise PermissionDeniedError(
                message="Only the performing organization can delete its own entries"
            )
        if entry.status != EntryStatus.DRAFT:
            raise EntryStateError("Only draft work entries can be deleted")

        now = _utcnow()
        self._stores.entries.save(
            entry.model_copy(update={"deleted_at": now, "updated_at": now})
        )
        logger.info("Work entry soft-deleted id=%s", entry.id)
        return {"id": entry.id, "deleted": True}
