"""
Displayable field resolution for work entries.

An entry's fields are resolved from its schema (section-grouped, labelled
with the schema's field names) whenever a schema is available. When the
entry's template link is gone, labels and types are derived from the raw
stored keys instead:

    "site_info.unit_serial_no" -> label "Unit Serial No", type "text"

Only fields that are both SELECTED and carry DATA are returned. Empty
values (None, "", empty collection) are not data.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Tuple

from workledger.app.forms.interpreter import is_empty
from workledger.app.schemas.document import EntrySelection, ResolvedField, ResolvedSection
from workledger.app.schemas.template import FieldsSchema

FALLBACK_SECTION_ID = "general"


def humanize_key(key: str) -> str:
    """Last path segment, underscores to spaces, title-cased words."""
    segment = key.split(".")[-1].replace("_", " ")
    return " ".join(word[:1].upper() + word[1:] for word in segment.split(" "))


def guess_field_type(key: str, value: Any) -> str:
    lowered = key.lower()
    if "photo" in lowered or "image" in lowered:
        return "photo"
    if "signature" in lowered:
        return "signature"
    if isinstance(value, bool):
        return "checkbox"
    if isinstance(value, (int, float)):
        return "number"
    return "text"


def _split_key(key: str) -> Tuple[str, str]:
    if "." in key:
        section_id, field_id = key.split(".", 1)
        return section_id, field_id
    return FALLBACK_SECTION_ID, key


def _from_schema(
    schema: FieldsSchema,
    data: Mapping[str, Any],
    selection: EntrySelection,
) -> List[ResolvedSection]:
    sections: List[ResolvedSection] = []
    for section in schema.sections:
        fields = []
        for field in section.fields:
            path = f"{section.section_id}.{field.field_id}"
            value = data.get(path)
            if not selection.includes(path) or is_empty(value):
                continue
            fields.append(
                ResolvedField(
                    path=path,
                    section_id=section.section_id,
                    field_id=field.field_id,
                    label=field.field_name,
                    field_type=field.field_type.value,
                    value=value,
                )
            )
        if fields:
            sections.append(
                ResolvedSection(
                    section_id=section.section_id,
                    section_name=section.section_name,
                    fields=fields,
                )
            )
    return sections


def _from_raw_keys(
    data: Mapping[str, Any],
    selection: EntrySelection,
) -> List[ResolvedSection]:
    grouped: Dict[str, List[ResolvedField]] = {}
    for key, value in data.items():
        if not selection.includes(key) or is_empty(value):
            continue
        section_id, field_id = _split_key(key)
        grouped.setdefault(section_id, []).append(
            ResolvedField(
                path=key,
                section_id=section_id,
                field_id=field_id,
                label=humanize_key(key),
                field_type=guess_field_type(key, value),
                value=value,
            )
        )
    return [
        ResolvedSection(
            section_id=section_id,
            section_name=humanize_key(section_id),
            fields=fields,
        )
        for section_id, fields in grouped.items()
    ]


def resolve_entry_fields(
    schema: Optional[FieldsSchema],
    data: Mapping[str, Any],
    selection: Optional[EntrySelection] = None,
) -> Tuple[List[ResolvedSection], bool]:
    """
    Return ``(sections, used_fallback)`` for one entry.

    Section and field order follow schema declaration order; in fallback
    mode they follow the stored key order.
    """
    selection = selection or EntrySelection()
    if schema is not None and schema.sections:
        return _from_schema(schema, data, selection), False
    return _from_raw_keys(data, selection), True
