"""
Boundary result shapes.

``ServiceResult`` is the only shape returned across the service
boundary: ``{success, data | error}``. ``ValidationResult`` is the
pure output of structural validators.
"""

from __future__ import annotations

from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class ValidationResult(BaseModel):
    is_valid: bool
    errors: List[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_errors(cls, errors: List[str]) -> "ValidationResult":
        return cls(is_valid=not errors, errors=list(errors))


class ServiceResult(BaseModel, Generic[T]):
    """
    Normalized outcome of a registry/service operation.

    Exactly one of ``data`` (on success) or ``error`` (on failure) is
    meaningful. ``errors`` carries structured detail when available:
    a list of schema violations, or a path-keyed field error map.
    ``code`` mirrors the originating ``WorkLedgerError.code``.
    """

    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    code: Optional[str] = None
    errors: Optional[Any] = None

    @classmethod
    def ok(cls, data: Any = None) -> "ServiceResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(
        cls,
        error: str,
        *,
        code: Optional[str] = None,
        errors: Optional[Any] = None,
    ) -> "ServiceResult":
        return cls(success=False, error=error, code=code, errors=errors)

    def as_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)
