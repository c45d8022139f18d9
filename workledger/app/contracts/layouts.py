"""
Contract-layout assignments.

A contract lists the report layouts it may be rendered with, and marks
one of them as its default.

Invariants maintained here:
- only layouts compatible with the contract's category can be assigned
- a layout is assigned to a given contract at most once
- the first layout assigned to a contract becomes its default
- at most one default per contract
- the default layout and the last remaining layout cannot be removed
"""

from __future__ import annotations

import logging
from typing import List, Optional

from workledger.app.contracts.service import ContractService
from workledger.app.core.boundary import service_boundary
from workledger.app.core.config import Settings
from workledger.app.core.context import RequestContext
from workledger.app.core.errors import (
    ConflictError,
    IncompatibleLayoutError,
    NotFoundError,
)
from workledger.app.layouts.registry import LayoutRegistry
from workledger.app.schemas.entry import (
    AssignedLayout,
    Contract,
    ContractLayoutAssignment,
)
from workledger.app.schemas.layout import ReportLayout
from workledger.app.stores.base import Stores

logger = logging.getLogger(__name__)


class ContractLayoutService:
    def __init__(
        self,
        stores: Stores,
        layouts: LayoutRegistry,
        contracts: ContractService,
        settings: Settings,
    ) -> None:
        self._stores = stores
        self._layouts = layouts
        self._contracts = contracts
        self._settings = settings

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def for_contract(self, contract_id: str) -> List[ContractLayoutAssignment]:
        rows = [
            a
            for a in self._stores.layout_assignments.list()
            if a.contract_id == contract_id
        ]
        return sorted(rows, key=lambda a: a.assigned_at)

    def _find(
        self, contract_id: str, layout: ReportLayout
    ) -> Optional[ContractLayoutAssignment]:
        return next(
            (a for a in self.for_contract(contract_id) if a.layout_id == layout.id),
            None,
        )

    def _make_default(self, contract_id: str, assignment_id: str) -> None:
        for row in self.for_contract(contract_id):
            should_be_default = row.id == assignment_id
            if row.is_default != should_be_default:
                self._stores.layout_assignments.save(
                    row.model_copy(update={"is_default": should_be_default})
                )

    def _assign(
        self,
        ctx: RequestContext,
        contract: Contract,
        layout_key: str,
        notes: Optional[str],
    ) -> ContractLayoutAssignment:
        layout = self._layouts.load(ctx, layout_key, include_inactive=False)
        if not layout.is_compatible_with(contract.contract_category):
            raise IncompatibleLayoutError(layout.layout_id, contract.contract_category)

        existing = self.for_contract(contract.id)
        if any(a.layout_id == layout.id for a in existing):
            raise ConflictError("Layout already assigned to this contract.")

        row = self._stores.layout_assignments.save(
            ContractLayoutAssignment(
                contract_id=contract.id,
                layout_id=layout.id,
                notes=(notes or "").strip() or None,
                assigned_by=ctx.user_id,
            )
        )
        if not existing:
            self._make_default(contract.id, row.id)
            row = self._stores.layout_assignments.get(row.id)

        logger.info(
            "Layout %s assigned to contract %s (default=%s)",
            layout.layout_id,
            contract.id,
            row.is_default,
        )
        return row

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    @service_boundary("contract_layouts.list")
    def list(self, ctx: RequestContext, contract_id: str) -> List[AssignedLayout]:
        self._contracts.load(ctx, contract_id)
        assigned: List[AssignedLayout] = []
        for row in self.for_contract(contract_id):
            layout = self._stores.layouts.get(row.layout_id)
            if layout is None:
                logger.warning(
                    "Contract %s references missing layout %s", contract_id, row.layout_id
                )
                continue
            assigned.append(AssignedLayout(assignment=row, layout=layout))
        return assigned

    @service_boundary("contract_layouts.get_default")
    def get_default(self, ctx: RequestContext, contract_id: str) -> Optional[ReportLayout]:
        self._contracts.load(ctx, contract_id)
        row = next((a for a in self.for_contract(contract_id) if a.is_default), None)
        if row is None:
            return None
        return self._stores.layouts.get(row.layout_id)

    @service_boundary("contract_layouts.available")
    def available(self, ctx: RequestContext, contract_id: str) -> List[ReportLayout]:
        """Active, visible, compatible layouts not yet assigned to the contract."""
        contract = self._contracts.load(ctx, contract_id)
        assigned = {a.layout_id for a in self.for_contract(contract.id)}
        layouts = [
            item
            for item in self._stores.layouts.list()
            if item.is_active
            and item.id not in assigned
            and ctx.sees(is_public=item.is_public, organization_id=item.organization_id)
            and item.is_compatible_with(contract.contract_category)
        ]
        return sorted(layouts, key=lambda l: l.layout_name.lower())

    @service_boundary("contract_layouts.assign")
    def assign(
        self,
        ctx: RequestContext,
        contract_id: str,
        layout_key: str,
        notes: Optional[str] = None,
    ) -> ContractLayoutAssignment:
        contract = self._contracts.load(ctx, contract_id)
        return self._assign(ctx, contract, layout_key, notes)

    @service_boundary("contract_layouts.remove")
    def remove(
        self, ctx: RequestContext, contract_id: str, layout_key: str
    ) -> ContractLayoutAssignment:
        self._contracts.load(ctx, contract_id)
        layout = self._layouts.load(ctx, layout_key)
        row = self._find(contract_id, layout)
        if row is None:
            raise NotFoundError("Layout assignment", layout_key)
        if row.is_default:
            raise ConflictError(
                "Cannot remove the default layout. Set another layout as default first."
            )
        if len(self.for_contract(contract_id)) == 1:
            raise ConflictError(
                "Cannot remove the last layout. A contract must keep at least one layout."
            )

        self._stores.layout_assignments.delete(row.id)
        logger.info("Layout %s removed from contract %s", layout.layout_id, contract_id)
        return row

    @service_boundary("contract_layouts.set_default")
    def set_default(
        self, ctx: RequestContext, contract_id: str, layout_key: str
    ) -> ContractLayoutAssignment:
        self._contracts.load(ctx, contract_id)
        layout = self._layouts.load(ctx, layout_key)
        row = self._find(contract_id, layout)
        if row is None:
            raise NotFoundError("Layout assignment", layout_key)
        self._make_default(contract_id, row.id)
        return self._stores.layout_assignments.get(row.id)

    @service_boundary("contract_layouts.initialize")
    def initialize_contract(
        self, ctx: RequestContext, contract_id: str
    ) -> ContractLayoutAssignment:
        """Assign the configured starter layout to a new contract as its default."""
        contract = self._contracts.load(ctx, contract_id)
        layout_key = self._settings.initial_contract_layout
        try:
            self._layouts.load(ctx, layout_key, include_inactive=False)
        except NotFoundError:
            logger.warning(
                "Initial layout %s not found; contract %s left without layouts",
                layout_key,
                contract.id,
            )
            raise

        row = self._assign(ctx, contract, layout_key, "Auto-assigned on contract creation")
        self._make_default(contract.id, row.id)
        return self._stores.layout_assignments.get(row.id)
