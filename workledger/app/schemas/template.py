"""
Template schema model.

A template is a declarative description of a data-collection form:
an ordered list of sections, each holding an ordered list of typed
fields. Field values collected against a template are addressed by the
flat path ``"<section_id>.<field_id>"``.

These models describe the persisted JSON shape. Structural validation
(collecting every violation) is performed on the raw mapping by
``workledger.app.templates.validator`` BEFORE these models are built.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterator, List, Literal, Optional, Tuple
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Enumerations (closed sets)
# ---------------------------------------------------------------------------


class FieldType(str, Enum):
    TEXT = "text"
    TEXTAREA = "textarea"
    NUMBER = "number"
    DATE = "date"
    DATETIME = "datetime"
    MONTH = "month"
    SELECT = "select"
    RADIO = "radio"
    CHECKBOX = "checkbox"
    PHOTO = "photo"
    SIGNATURE = "signature"
    FILE = "file"
    CALCULATED = "calculated"


FIELD_TYPE_VALUES = frozenset(t.value for t in FieldType)

# Field types that must declare at least one option.
OPTION_FIELD_TYPES = frozenset({FieldType.SELECT, FieldType.RADIO})


class SectionLayout(str, Enum):
    SINGLE_COLUMN = "single_column"
    TWO_COLUMN = "two_column"
    CHECKLIST = "checklist"


NOW_SENTINEL = "now"


def field_path(section_id: str, field_id: str) -> str:
    return f"{section_id}.{field_id}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Schema nodes
# ---------------------------------------------------------------------------


class TemplateField(BaseModel):
    """Single data-entry unit."""

    field_id: str
    field_name: str
    field_type: FieldType
    required: bool = False

    default_value: Any = Field(
        None,
        description="Literal default, or the sentinel 'now' for date-like fields",
    )

    prefill_from: Optional[str] = Field(
        None,
        description="Dot-path into the external contract object",
    )

    show_if: Optional[Dict[str, Any]] = Field(
        None,
        description="Conditional visibility, evaluated by the rendering collaborator",
    )

    options: List[Any] = Field(default_factory=list)

    min: Optional[float] = None
    max: Optional[float] = None
    format: Optional[Literal["email", "url"]] = None

    placeholder: Optional[str] = None
    description: Optional[str] = None
    formula: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class TemplateSection(BaseModel):
    section_id: str
    section_name: str
    layout: SectionLayout = SectionLayout.SINGLE_COLUMN
    required: bool = False
    description: Optional[str] = None
    fields: List[TemplateField] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")


class FieldsSchema(BaseModel):
    sections: List[TemplateSection] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")

    def iter_fields(self) -> Iterator[Tuple[TemplateSection, TemplateField, str]]:
        """Yield ``(section, field, path)`` in document order."""
        for section in self.sections:
            for field in section.fields:
                yield section, field, field_path(section.section_id, field.field_id)


# ---------------------------------------------------------------------------
# Template (persisted aggregate)
# ---------------------------------------------------------------------------


class Template(BaseModel):
    """
    Persisted template.

    ``revision`` is an engine-managed optimistic concurrency token; it is
    distinct from the human ``version`` label.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    template_id: str
    template_name: str

    industry: Optional[str] = None
    contract_category: Optional[str] = None
    report_type: Optional[str] = None
    version: str = "1.0"

    is_locked: bool = False
    is_public: bool = True
    organization_id: Optional[str] = None
    created_by: Optional[str] = None

    fields_schema: FieldsSchema
    validation_rules: Dict[str, Any] = Field(default_factory=dict)
    pdf_layout: Dict[str, Any] = Field(default_factory=dict)

    revision: int = 1
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    deleted_at: Optional[datetime] = None

    model_config = ConfigDict(extra="ignore")

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def iter_fields(self) -> Iterator[Tuple[TemplateSection, TemplateField, str]]:
        return self.fields_schema.iter_fields()
