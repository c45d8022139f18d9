"""
Persistence collaborator interfaces.

The engine is not a persistence layer. Registries and services talk to
storage exclusively through these protocols; implementations may be a
database, a remote API, or the in-memory repositories used by the
application wiring and tests.

Implementations must:
- return copies, never shared mutable instances
- raise ``StoreError`` (or any exception, which the service boundary
  normalizes) on transport failure
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Protocol, TypeVar

from workledger.app.schemas.entry import (
    Contract,
    ContractLayoutAssignment,
    ContractTemplateAssignment,
    WorkEntry,
)
from workledger.app.schemas.layout import ReportLayout
from workledger.app.schemas.template import Template

T = TypeVar("T")


class Repository(Protocol[T]):
    """Keyed collection of persisted records."""

    def get(self, key: str) -> Optional[T]:
        ...

    def list(self) -> List[T]:
        ...

    def save(self, item: T) -> T:
        ...

    def delete(self, key: str) -> None:
        ...


@dataclass(frozen=True)
class Stores:
    """Bundle of repositories handed to the services at wiring time."""

    templates: Repository[Template]
    layouts: Repository[ReportLayout]
    contracts: Repository[Contract]
    assignments: Repository[ContractTemplateAssignment]
    layout_assignments: Repository[ContractLayoutAssignment]
    entries: Repository[WorkEntry]
