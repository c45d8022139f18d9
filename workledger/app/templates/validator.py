"""
Template structural validation.

``validate_template_schema`` walks the complete template structure and
collects EVERY violation instead of stopping at the first one. It is a
pure function: identical input always yields an identical, identically
ordered error list, and the input is never modified.

Checks performed, in document order:
- template_id / template_name present
- fields_schema.sections present, a list, and non-empty
- every section has section_id, section_name and a non-empty fields list
- section ids unique within the template
- every field has field_id, field_name and a known field_type
- field ids unique within their section
- select/radio fields declare at least one option
- numeric min does not exceed max
"""

from __future__ import annotations

from typing import Any, List, Mapping, Union

from pydantic import BaseModel

from workledger.app.schemas.results import ValidationResult
from workledger.app.schemas.template import FIELD_TYPE_VALUES, OPTION_FIELD_TYPES

_OPTION_TYPE_VALUES = frozenset(t.value for t in OPTION_FIELD_TYPES)


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _as_mapping(template: Union[Mapping[str, Any], BaseModel]) -> Mapping[str, Any]:
    if isinstance(template, BaseModel):
        return template.model_dump(mode="json")
    return template


def _type_value(raw: Any) -> Any:
    return getattr(raw, "value", raw)


def _validate_field(
    field: Any,
    s_label: str,
    f_index: int,
    seen_field_ids: set,
    errors: List[str],
) -> None:
    if not isinstance(field, Mapping):
        errors.append(f"Section {s_label}, Field {f_index} must be an object")
        return

    field_id = field.get("field_id")
    field_name = field.get("field_name")
    field_type = _type_value(field.get("field_type"))
    f_label = f'"{field_name}"' if not _blank(field_name) else str(f_index)

    if _blank(field_id):
        errors.append(f"Section {s_label}, Field {f_index} missing field_id")
    elif field_id in seen_field_ids:
        errors.append(f'Section {s_label}: duplicate field_id "{field_id}"')
    else:
        seen_field_ids.add(field_id)

    if _blank(field_name):
        errors.append(f"Section {s_label}, Field {f_index}: field_name is required")

    if _blank(field_type):
        errors.append(f"Section {s_label}, Field {f_label}: field_type is required")
        return

    if field_type not in FIELD_TYPE_VALUES:
        errors.append(f'Field {f_label}: unknown field_type "{field_type}"')
        return

    if field_type in _OPTION_TYPE_VALUES:
        options = field.get("options")
        if not isinstance(options, list) or not options:
            errors.append(
                f"Field {f_label} ({field_type}) needs at least one option"
            )

    low, high = field.get("min"), field.get("max")
    if isinstance(low, (int, float)) and isinstance(high, (int, float)) and low > high:
        errors.append(f"Field {f_label}: min ({low}) exceeds max ({high})")


def _validate_section(
    section: Any,
    s_index: int,
    seen_section_ids: set,
    errors: List[str],
) -> None:
    if not isinstance(section, Mapping):
        errors.append(f"Section {s_index} must be an object")
        return

    section_id = section.get("section_id")
    section_name = section.get("section_name")
    s_label = f'"{section_name}"' if not _blank(section_name) else str(s_index)

    if _blank(section_id):
        errors.append(f"Section {s_index} missing section_id")
    elif section_id in seen_section_ids:
        errors.append(f'Duplicate section_id "{section_id}"')
    else:
        seen_section_ids.add(section_id)

    if _blank(section_name):
        errors.append(f"Section {s_index}: section_name is required")

    fields = section.get("fields")
    if not isinstance(fields, list):
        errors.append(f"Section {s_label} missing fields array")
        return
    if not fields:
        errors.append(f"Section {s_label} has no fields")
        return

    seen_field_ids: set = set()
    for f_index, field in enumerate(fields, start=1):
        _validate_field(field, s_label, f_index, seen_field_ids, errors)


def validate_template_schema(
    template: Union[Mapping[str, Any], BaseModel],
) -> ValidationResult:
    """
    Validate a raw template mapping (or model) and collect all violations.

    Section and field positions in messages are 1-based.
    """
    data = _as_mapping(template)
    errors: List[str] = []

    if _blank(data.get("template_id")):
        errors.append("Missing template_id")
    if _blank(data.get("template_name")):
        errors.append("Missing template_name")

    schema = data.get("fields_schema")
    if not isinstance(schema, Mapping):
        errors.append("Missing fields_schema")
        return ValidationResult.from_errors(errors)

    sections = schema.get("sections")
    if not isinstance(sections, list):
        errors.append("fields_schema.sections must be an array")
        return ValidationResult.from_errors(errors)
    if not sections:
        errors.append("Template must have at least one section")
        return ValidationResult.from_errors(errors)

    seen_section_ids: set = set()
    for s_index, section in enumerate(sections, start=1):
        _validate_section(section, s_index, seen_section_ids, errors)

    return ValidationResult.from_errors(errors)
