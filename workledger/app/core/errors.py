"""
Exception hierarchy for the WorkLedger engine.

Every failure raised inside the engine derives from ``WorkLedgerError``.
Registries and services catch these at their public boundary and
normalize them into ``ServiceResult`` objects; nothing crosses that
boundary as an uncaught exception.

Three error families carry structured payloads:

- ``SchemaValidationError``  complete, ordered list of structural
  violations found in a template or layout (author time).
- ``FieldValidationError``   path-keyed map of per-field submission
  errors (use time). Blocks submission only, never editing.
- ``ResolutionError``       a layout block that cannot be resolved
  (unknown block type, malformed binding rule). Raised and caught
  inside report assembly only; it degrades to an ``UnresolvedBlock``
  placeholder and never aborts the document.
"""

from __future__ import annotations

from typing import Dict, List, Optional


class WorkLedgerError(Exception):
    """Base class for all engine errors."""

    code: str = "workledger_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class SchemaValidationError(WorkLedgerError):
    """Raised when a template or layout fails structural validation."""

    code = "schema_validation_error"

    def __init__(self, errors: List[str], *, subject: str = "Schema") -> None:
        self.errors = list(errors)
        super().__init__(
            f"{subject} validation failed: {', '.join(self.errors)}"
        )


class FieldValidationError(WorkLedgerError):
    """Raised when submitted form values fail submit-time validation."""

    code = "field_validation_error"

    def __init__(self, errors: Dict[str, str]) -> None:
        self.errors = dict(errors)
        super().__init__(
            f"{len(self.errors)} field(s) failed validation"
        )


class NotFoundError(WorkLedgerError):
    code = "not_found"

    def __init__(self, resource: str, identifier: str) -> None:
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} not found: {identifier}")


class DuplicateTemplateError(WorkLedgerError):
    """A template with the same derived or supplied template_id exists."""

    code = "duplicate_name"

    def __init__(self, template_id: str) -> None:
        self.template_id = template_id
        super().__init__(
            "A template with this ID already exists. Try a different name."
        )


class TemplateLockedError(WorkLedgerError):
    code = "template_locked"

    def __init__(self, template_id: str) -> None:
        self.template_id = template_id
        super().__init__(
            "This template is locked and cannot be edited. Clone it instead."
        )


class TemplateInUseError(WorkLedgerError):
    code = "template_in_use"

    def __init__(self, active_contracts: int) -> None:
        self.active_contracts = active_contracts
        super().__init__(
            f"Cannot delete: {active_contracts} active contract(s) use this "
            "template. Archive or reassign them first."
        )


class ConflictError(WorkLedgerError):
    """Optimistic concurrency or uniqueness conflict."""

    code = "conflict"


class IncompatibleLayoutError(WorkLedgerError):
    """A layout does not list the contract's category as compatible."""

    code = "incompatible_layout"

    def __init__(self, layout_id: str, category: Optional[str]) -> None:
        self.layout_id = layout_id
        self.category = category
        super().__init__(
            f"Layout {layout_id} is not compatible with contract category {category}"
        )


class EntryStateError(WorkLedgerError):
    """A work entry transition or edit is not allowed in its current state."""

    code = "invalid_state"


class PermissionDeniedError(WorkLedgerError):
    code = "permission_denied"

    def __init__(self, permission: Optional[str] = None, message: Optional[str] = None) -> None:
        self.permission = permission
        super().__init__(
            message or f"Missing permission: {permission}"
        )


class StoreError(WorkLedgerError):
    """Failure reported by an external persistence collaborator."""

    code = "store_error"


class ResolutionError(WorkLedgerError):
    """A layout section could not be resolved into a document block."""

    code = "unresolved_block"

    def __init__(self, section_id: str, block_type: str, reason: str) -> None:
        self.section_id = section_id
        self.block_type = block_type
        self.reason = reason
        super().__init__(f"Section {section_id} ({block_type}): {reason}")
