"""
Contract directory.

Contracts are owned by an external system; this service exposes the
small surface the engine needs: registering a contract snapshot, reading
it back (organization scoped) and recording status changes, which drive
the template delete pre-check.
"""

from __future__ import annotations

import logging
from typing import Any, List, Mapping

from workledger.app.core.boundary import build_or_raise, service_boundary
from workledger.app.core.context import RequestContext
from workledger.app.core.errors import NotFoundError
from workledger.app.schemas.entry import Contract, ContractStatus
from workledger.app.stores.base import Stores

logger = logging.getLogger(__name__)


class ContractService:
    def __init__(self, stores: Stores) -> None:
        self._stores = stores

    def load(self, ctx: RequestContext, contract_id: str) -> Contract:
        contract = self._stores.contracts.get(contract_id)
        if contract is None or (
            contract.organization_id is not None
            and ctx.organization_id is not None
            and contract.organization_id != ctx.organization_id
        ):
            raise NotFoundError("Contract", contract_id)
        return contract

    @service_boundary("contracts.register")
    def register(self, ctx: RequestContext, data: Mapping[str, Any]) -> Contract:
        payload = dict(data)
        payload.setdefault("organization_id", ctx.organization_id)
        contract = build_or_raise(Contract, payload, subject="Contract")
        stored = self._stores.contracts.save(contract)
        logger.info("Contract registered id=%s status=%s", stored.id, stored.status.value)
        return stored

    @service_boundary("contracts.get")
    def get(self, ctx: RequestContext, contract_id: str) -> Contract:
        return self.load(ctx, contract_id)

    @service_boundary("contracts.list")
    def list(self, ctx: RequestContext) -> List[Contract]:
        contracts = [
            c
            for c in self._stores.contracts.list()
            if c.organization_id is None
            or ctx.organization_id is None
            or c.organization_id == ctx.organization_id
        ]
        return sorted(contracts, key=lambda c: c.contract_name.lower())

    @service_boundary("contracts.set_status")
    def set_status(
        self,
        ctx: RequestContext,
        contract_id: str,
        status: ContractStatus,
    ) -> Contract:
        contract = self.load(ctx, contract_id)
        stored = self._stores.contracts.save(
            contract.model_copy(update={"status": ContractStatus(status)})
        )
        logger.info("Contract id=%s status=%s", stored.id, stored.status.value)
        return stored
