"""
Service wiring.

Builds the registries and services over one set of stores. The HTTP
entrypoint wires in-memory stores; embedding applications pass their
own ``Stores`` implementation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from workledger.app.contracts.assignments import AssignmentService
from workledger.app.contracts.layouts import ContractLayoutService
from workledger.app.contracts.service import ContractService
from workledger.app.core.config import Settings, get_settings
from workledger.app.entries.service import WorkEntryService
from workledger.app.layouts.registry import LayoutRegistry
from workledger.app.reports.assembler import ReportService
from workledger.app.stores.base import Stores
from workledger.app.stores.memory import memory_stores
from workledger.app.templates.registry import TemplateRegistry


@dataclass(frozen=True)
class Services:
    settings: Settings
    templates: TemplateRegistry
    layouts: LayoutRegistry
    contracts: ContractService
    assignments: AssignmentService
    contract_layouts: ContractLayoutService
    entries: WorkEntryService
    reports: ReportService


def build_services(
    stores: Optional[Stores] = None,
    settings: Optional[Settings] = None,
) -> Services:
    stores = stores or memory_stores()
    settings = settings or get_settings()

    templates = TemplateRegistry(stores)
    layouts = LayoutRegistry(stores)
    contracts = ContractService(stores)
    assignments = AssignmentService(stores, templates, contracts)
    contract_layouts = ContractLayoutService(stores, layouts, contracts, settings)
    entries = WorkEntryService(stores, templates, contracts, assignments)
    reports = ReportService(templates, layouts, entries, settings)

    return Services(
        settings=settings,
        templates=templates,
        layouts=layouts,
        contracts=contracts,
        assignments=assignments,
        contract_layouts=contract_layouts,
        entries=entries,
        reports=reports,
    )
