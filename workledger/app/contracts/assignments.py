"""
Contract-template assignments.

A contract accepts one or more templates through assignment rows. Each
row carries an optional custom label, a sort position and a default
flag.

Invariants maintained here:
- at most one default assignment per contract
- the first assignment of a contract becomes its default
- removing the default promotes the remaining assignment with the
  lowest ``sort_order``, or leaves none when no assignment remains
- a template is assigned to a given contract at most once
"""

from __future__ import annotations

import logging
from typing import List, Optional

from workledger.app.contracts.service import ContractService
from workledger.app.core.boundary import service_boundary
from workledger.app.core.context import RequestContext
from workledger.app.core.errors import ConflictError, NotFoundError
from workledger.app.schemas.entry import ContractTemplateAssignment
from workledger.app.stores.base import Stores
from workledger.app.templates.registry import TemplateRegistry

logger = logging.getLogger(__name__)


def _ordering(a: ContractTemplateAssignment):
    return (a.sort_order, a.assigned_at, a.id)


class AssignmentService:
    def __init__(
        self,
        stores: Stores,
        templates: TemplateRegistry,
        contracts: ContractService,
    ) -> None:
        self._stores = stores
        self._templates = templates
        self._contracts = contracts

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def for_contract(self, contract_id: str) -> List[ContractTemplateAssignment]:
        rows = [
            a for a in self._stores.assignments.list() if a.contract_id == contract_id
        ]
        return sorted(rows, key=_ordering)

    def find(
        self, contract_id: str, template_id: str
    ) -> Optional[ContractTemplateAssignment]:
        return next(
            (a for a in self.for_contract(contract_id) if a.template_id == template_id),
            None,
        )

    def _load(self, ctx: RequestContext, assignment_id: str) -> ContractTemplateAssignment:
        row = self._stores.assignments.get(assignment_id)
        if row is None:
            raise NotFoundError("Assignment", assignment_id)
        # Scope check through the owning contract.
        self._contracts.load(ctx, row.contract_id)
        return row

    def _make_default(self, contract_id: str, assignment_id: str) -> None:
        for row in self.for_contract(contract_id):
            should_be_default = row.id == assignment_id
            if row.is_default != should_be_default:
                self._stores.assignments.save(
                    row.model_copy(update={"is_default": should_be_default})
                )

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    @service_boundary("assignments.list")
    def list(self, ctx: RequestContext, contract_id: str) -> List[ContractTemplateAssignment]:
        self._contracts.load(ctx, contract_id)
        return self.for_contract(contract_id)

    @service_boundary("assignments.get_default")
    def get_default(
        self, ctx: RequestContext, contract_id: str
    ) -> Optional[ContractTemplateAssignment]:
        self._contracts.load(ctx, contract_id)
        return next((a for a in self.for_contract(contract_id) if a.is_default), None)

    @service_boundary("assignments.add")
    def add(
        self,
        ctx: RequestContext,
        contract_id: str,
        template_id: str,
        label: Optional[str] = None,
        is_default: bool = False,
    ) -> ContractTemplateAssignment:
        contract = self._contracts.load(ctx, contract_id)
        template = self._templates.load(ctx, template_id)

        existing = self.for_contract(contract.id)
        if any(a.template_id == template.id for a in existing):
            raise ConflictError("This template is already assigned to this contract.")

        row = self._stores.assignments.save(
            ContractTemplateAssignment(
                contract_id=contract.id,
                template_id=template.id,
                custom_label=label or None,
                is_default=False,
                sort_order=len(existing),
                assigned_by=ctx.user_id,
            )
        )
        if is_default or not existing:
            self._make_default(contract.id, row.id)
            row = self._stores.assignments.get(row.id)

        logger.info(
            "Template %s assigned to contract %s (default=%s)",
            template.id,
            contract.id,
            row.is_default,
        )
        return row

    @service_boundary("assignments.remove")
    def remove(self, ctx: RequestContext, assignment_id: str) -> Optional[ContractTemplateAssignment]:
        """
        Delete an assignment. Returns the newly promoted default, if any.
        """
        row = self._load(ctx, assignment_id)
        self._stores.assignments.delete(row.id)

        promoted: Optional[ContractTemplateAssignment] = None
        if row.is_default:
            remaining = self.for_contract(row.contract_id)
            if remaining:
                self._make_default(row.contract_id, remaining[0].id)
                promoted = self._stores.assignments.get(remaining[0].id)
                logger.info("Promoted assignment %s to default", promoted.id)

        logger.info("Assignment %s removed", row.id)
        return promoted

    @service_boundary("assignments.set_default")
    def set_default(self, ctx: RequestContext, assignment_id: str) -> ContractTemplateAssignment:
        row = self._load(ctx, assignment_id)
        self._make_default(row.contract_id, row.id)
        return self._stores.assignments.get(row.id)

    @service_boundary("assignments.update_label")
    def update_label(
        self,
        ctx: RequestContext,
        assignment_id: str,
        label: Optional[str],
    ) -> ContractTemplateAssignment:
        row = self._load(ctx, assignment_id)
        return self._stores.assignments.save(
            row.model_copy(update={"custom_label": (label or "").strip() or None})
        )
