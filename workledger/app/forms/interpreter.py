"""
Dynamic form interpreter.

Turns a declarative template schema into a live data-collection session:

    FormSession(template, contract, initial_data, observer)
        -> values   flat map keyed by "<section_id>.<field_id>"
        -> errors   path-keyed submit-time validation errors
        -> observer notified with the complete map on every change

Initialization runs exactly once, in document order. For every field not
already present in the initial data, a default is resolved by priority:

1. literal ``default_value`` (the sentinel ``"now"`` is rendered per type)
2. ``prefill_from``, a dot-path into the contract, when non-empty
3. type zero-value (checkbox -> False, photo -> [], signature -> None)

All computed defaults are merged in ONE batch and reported ONCE.

The interpreter performs no I/O. Persistence/autosave belongs to the
observer. Conditional visibility and calculated fields are evaluated by
the rendering collaborator.
"""

from __future__ import annotations

import logging
import math
import re
from datetime import datetime
from typing import Any, Callable, Dict, Mapping, Optional, Protocol, Union
from urllib.parse import urlparse

from pydantic import BaseModel

from workledger.app.core.errors import FieldValidationError
from workledger.app.schemas.template import (
    NOW_SENTINEL,
    FieldsSchema,
    FieldType,
    Template,
    TemplateField,
)

logger = logging.getLogger(__name__)

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

_MISSING = object()

# Rendering of the "now" sentinel per field type.
_NOW_FORMATS = {
    FieldType.DATE: "%Y-%m-%d",
    FieldType.DATETIME: "%Y-%m-%dT%H:%M",
    FieldType.MONTH: "%Y-%m",
}

_ZERO_VALUES: Dict[FieldType, Callable[[], Any]] = {
    FieldType.CHECKBOX: lambda: False,
    FieldType.PHOTO: list,
    FieldType.SIGNATURE: lambda: None,
}

Clock = Callable[[], datetime]
SchemaSource = Union[Template, FieldsSchema]
ContractSource = Union[Mapping[str, Any], BaseModel, None]


# ---------------------------------------------------------------------------
# Observer
# ---------------------------------------------------------------------------


class FormObserver(Protocol):
    """Receives the complete value map after every change."""

    def on_change(self, values: Dict[str, Any]) -> None:
        ...


class NullObserver:
    """No-op observer used when nothing listens to the session."""

    def on_change(self, values: Dict[str, Any]) -> None:
        return


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def _schema_of(source: SchemaSource) -> FieldsSchema:
    return source.fields_schema if isinstance(source, Template) else source


def is_empty(value: Any) -> bool:
    """Unset, null, empty string or empty collection."""
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) == 0
    return False


def resolve_contract_path(contract: ContractSource, path: str) -> Any:
    """
    Look up a dot-path in the contract. The leading ``contract.`` segment
    is optional. Missing segments resolve to ``None``; never raises.
    """
    if contract is None or not path:
        return None
    current: Any = (
        contract.model_dump(mode="json") if isinstance(contract, BaseModel) else contract
    )
    if path.startswith("contract."):
        path = path[len("contract."):]
    for segment in path.split("."):
        if isinstance(current, Mapping):
            current = current.get(segment)
        else:
            return None
        if current is None:
            return None
    return current


def _default_for(
    field: TemplateField,
    contract: ContractSource,
    now: datetime,
) -> Any:
    """Resolve a single field's default, or ``_MISSING`` when none applies."""
    literal = field.default_value
    if literal is not None and literal != "":
        if literal == NOW_SENTINEL:
            fmt = _NOW_FORMATS.get(field.field_type)
            if fmt is not None:
                return now.strftime(fmt)
        else:
            return literal

    if field.prefill_from:
        prefilled = resolve_contract_path(contract, field.prefill_from)
        if not is_empty(prefilled):
            return prefilled

    zero = _ZERO_VALUES.get(field.field_type)
    if zero is not None:
        return zero()
    return _MISSING


def compute_defaults(
    template: SchemaSource,
    contract: ContractSource = None,
    existing: Optional[Mapping[str, Any]] = None,
    *,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Defaults for every field not already present in ``existing``."""
    existing = existing or {}
    now = now or datetime.now()
    defaults: Dict[str, Any] = {}
    for _, field, path in _schema_of(template).iter_fields():
        if path in existing:
            continue
        value = _default_for(field, contract, now)
        if value is not _MISSING:
            defaults[path] = value
    return defaults


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    raw = value if isinstance(value, (int, float)) else str(value).strip()
    try:
        number = float(raw)
    except (OverflowError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _fmt_bound(bound: float) -> str:
    return str(int(bound)) if float(bound).is_integer() else str(bound)


def _valid_url(value: str) -> bool:
    parsed = urlparse(value)
    return bool(parsed.scheme) and bool(parsed.netloc)


def _field_error(field: TemplateField, value: Any) -> Optional[str]:
    if is_empty(value):
        return f"{field.field_name} is required" if field.required else None

    if field.format == "email" and not _EMAIL_RE.match(str(value)):
        return "Invalid email format"
    if field.format == "url" and not _valid_url(str(value)):
        return "Invalid URL format"

    if field.field_type == FieldType.NUMBER:
        number = _as_number(value)
        if number is None:
            return "Must be a number"
        if field.min is not None and number < field.min:
            return f"Must be at least {_fmt_bound(field.min)}"
        if field.max is not None and number > field.max:
            return f"Must be at most {_fmt_bound(field.max)}"
    return None


def validate_values(template: SchemaSource, values: Mapping[str, Any]) -> Dict[str, str]:
    """
    Full submit-time validation. Never partial, never mutates ``values``.

    Returns a path-keyed error map; an empty map means submission may
    proceed.
    """
    errors: Dict[str, str] = {}
    for _, field, path in _schema_of(template).iter_fields():
        message = _field_error(field, values.get(path))
        if message is not None:
            errors[path] = message
    return errors


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


class FormSession:
    """
    A live, validated data-collection session over one template.

    Not shared between callers; each form instance owns its session.
    """

    def __init__(
        self,
        template: SchemaSource,
        contract: ContractSource = None,
        initial_data: Optional[Mapping[str, Any]] = None,
        observer: Optional[FormObserver] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._template = template
        self._contract = contract
        self._observer: FormObserver = observer or NullObserver()
        self._clock: Clock = clock or datetime.now
        self._values: Dict[str, Any] = dict(initial_data or {})
        self._errors: Dict[str, str] = {}
        self._initialize()

    def _initialize(self) -> None:
        defaults = compute_defaults(
            self._template,
            self._contract,
            self._values,
            now=self._clock(),
        )
        if not defaults:
            return
        self._values.update(defaults)
        logger.debug("Form initialized with %d default(s)", len(defaults))
        self._notify()

    def _notify(self) -> None:
        self._observer.on_change(dict(self._values))

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def values(self) -> Dict[str, Any]:
        return dict(self._values)

    @property
    def errors(self) -> Dict[str, str]:
        return dict(self._errors)

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def set_value(self, path: str, value: Any) -> None:
        self._values[path] = value
        self._errors.pop(path, None)
        self._notify()

    def update(self, changes: Mapping[str, Any]) -> None:
        """Apply several edits as one change notification."""
        if not changes:
            return
        for path, value in changes.items():
            self._values[path] = value
            self._errors.pop(path, None)
        self._notify()

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def validate(self) -> Dict[str, str]:
        self._errors = validate_values(self._template, self._values)
        return dict(self._errors)

    @property
    def is_valid(self) -> bool:
        return not self.validate()

    def submit(self, handler: Callable[[Dict[str, Any]], Any]) -> Any:
        """
        Validate, then hand the value map to ``handler``.

        Raises ``FieldValidationError`` (carrying the error map) when any
        field fails; the handler is not called in that case.
        """
        errors = self.validate()
        if errors:
            logger.info("Form submission blocked by %d field error(s)", len(errors))
            raise FieldValidationError(errors)
        return handler(dict(self._values))
