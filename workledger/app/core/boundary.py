"""
Service boundary normalization.

Public registry/service methods are wrapped with ``service_boundary`` so
that engine errors and external store failures surface uniformly as
``ServiceResult(success=False, error=...)``. No component throws across
this boundary.
"""

from __future__ import annotations

import functools
import logging
from typing import Any, Callable, Mapping, Type, TypeVar

from pydantic import BaseModel, ValidationError

from workledger.app.core.errors import (
    FieldValidationError,
    SchemaValidationError,
    WorkLedgerError,
)
from workledger.app.schemas.results import ServiceResult

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])
M = TypeVar("M", bound=BaseModel)


def to_failure(exc: WorkLedgerError) -> ServiceResult:
    """Convert a known engine error into a failed ServiceResult."""
    errors: Any = None
    if isinstance(exc, (SchemaValidationError, FieldValidationError)):
        errors = exc.errors
    return ServiceResult.fail(exc.message, code=exc.code, errors=errors)


def service_boundary(operation: str) -> Callable[[F], F]:
    """
    Wrap a method so that it always returns a ServiceResult.

    - return values become ``ServiceResult.ok(value)``
      (a returned ServiceResult is passed through untouched)
    - ``WorkLedgerError`` becomes a failure carrying its code/detail
    - any other exception is logged with traceback and normalized
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> ServiceResult:
            try:
                value = func(*args, **kwargs)
            except WorkLedgerError as exc:
                logger.info("%s rejected: %s", operation, exc.message)
                return to_failure(exc)
            except Exception as exc:
                logger.exception("%s failed unexpectedly", operation)
                return ServiceResult.fail(str(exc), code="internal_error")

            if isinstance(value, ServiceResult):
                return value
            return ServiceResult.ok(value)

        return wrapper  # type: ignore[return-value]

    return decorator


def build_or_raise(model: Type[M], data: Mapping[str, Any], *, subject: str) -> M:
    """
    Construct a model from raw input, reporting pydantic type errors as a
    ``SchemaValidationError`` so they surface like structural violations.
    """
    try:
        return model.model_validate(dict(data))
    except ValidationError as exc:
        errors = [
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in exc.errors()
        ]
        raise SchemaValidationError(errors, subject=subject) from exc
