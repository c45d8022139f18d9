"""
Layout schema contract.

A layout schema is valid iff it declares a page configuration (size,
orientation, margins) and a non-empty ordered list of sections, each
with a unique ``section_id`` and a ``block_type`` drawn from the closed
block enumeration.

Like template validation, every violation is collected; the function is
pure and never mutates its input.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Union

from pydantic import BaseModel

from workledger.app.schemas.layout import (
    BLOCK_TYPE_VALUES,
    MARGIN_SIDES,
    PAGE_ORIENTATIONS,
    PAGE_SIZES,
)
from workledger.app.schemas.results import ValidationResult

_OBJECT_KEYS = ("content", "options", "binding_rules")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _validate_page(page: Any, errors: List[str]) -> None:
    if not isinstance(page, Mapping):
        errors.append("Missing required field: page")
        return

    size = page.get("size")
    if size is None:
        errors.append("Missing page.size")
    elif size not in PAGE_SIZES:
        errors.append(f"Invalid page.size: {size} (must be: {', '.join(PAGE_SIZES)})")

    orientation = page.get("orientation")
    if orientation is None:
        errors.append("Missing page.orientation")
    elif orientation not in PAGE_ORIENTATIONS:
        errors.append(
            f"Invalid page.orientation: {orientation} "
            f"(must be: {', '.join(PAGE_ORIENTATIONS)})"
        )

    margins = page.get("margins")
    if not isinstance(margins, Mapping):
        errors.append("Missing page.margins")
        return
    for side in MARGIN_SIDES:
        value = margins.get(side)
        if not _is_number(value) or value < 0:
            errors.append(f"Invalid page.margins.{side}: must be a non-negative number")


def validate_layout_schema(
    schema: Union[Mapping[str, Any], BaseModel, None],
) -> ValidationResult:
    if isinstance(schema, BaseModel):
        schema = schema.model_dump(mode="json")
    if not isinstance(schema, Mapping):
        return ValidationResult.from_errors(["Missing layout_schema"])

    errors: List[str] = []
    _validate_page(schema.get("page"), errors)

    sections = schema.get("sections")
    if not isinstance(sections, list):
        errors.append("Missing or invalid field: sections (must be array)")
        return ValidationResult.from_errors(errors)
    if not sections:
        errors.append("Layout must have at least one section")
        return ValidationResult.from_errors(errors)

    seen: set = set()
    for idx, section in enumerate(sections, start=1):
        if not isinstance(section, Mapping):
            errors.append(f"Section {idx}: must be an object")
            continue

        section_id = section.get("section_id")
        if not section_id:
            errors.append(f"Section {idx}: missing section_id")
        elif section_id in seen:
            errors.append(f'Section {idx}: duplicate section_id "{section_id}"')
        else:
            seen.add(section_id)

        block_type = section.get("block_type")
        if not block_type:
            errors.append(f"Section {idx}: missing block_type")
        elif block_type not in BLOCK_TYPE_VALUES:
            errors.append(f"Section {idx}: invalid block_type: {block_type}")

        for key in _OBJECT_KEYS:
            if key in section and not isinstance(section[key], Mapping):
                errors.append(f"Section {idx}: {key} must be an object")

    return ValidationResult.from_errors(errors)
