"""
Assembled report document model.

The report assembler produces a generic, ordered block list per selected
entry. Blocks are a closed tagged union discriminated by ``kind``; a
layout section that cannot be resolved (unknown block type, malformed
binding rule) becomes an explicit ``UnresolvedBlock`` carrying the
offending identifiers so the renderer can show a visible placeholder.

Rendering these blocks into PDF/HTML is performed by an external
document-rendering collaborator.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from workledger.app.schemas.layout import PageConfig


# ---------------------------------------------------------------------------
# Resolved entry fields
# ---------------------------------------------------------------------------


class ResolvedField(BaseModel):
    """A displayable value taken from a work entry."""

    path: str
    section_id: str
    field_id: str
    label: str
    field_type: str
    value: Any = None

    model_config = ConfigDict(frozen=True)


class ResolvedSection(BaseModel):
    section_id: str
    section_name: str
    fields: List[ResolvedField] = Field(default_factory=list)


class MetricCard(BaseModel):
    label: str
    value: Any
    unit: Optional[str] = None


class ChecklistItem(BaseModel):
    label: str
    value: Any
    checked: bool


# ---------------------------------------------------------------------------
# Blocks
# ---------------------------------------------------------------------------


class _BlockBase(BaseModel):
    section_id: str
    options: Dict[str, Any] = Field(default_factory=dict)


class HeaderBlock(_BlockBase):
    kind: Literal["header"] = "header"
    title: str
    subtitle: Optional[str] = None
    show_logo: bool = True
    fields: List[ResolvedField] = Field(default_factory=list)


class DetailEntryBlock(_BlockBase):
    kind: Literal["detail_entry"] = "detail_entry"
    title: Optional[str] = None
    columns: int = 2
    fields: List[ResolvedField] = Field(default_factory=list)


class TextSectionBlock(_BlockBase):
    kind: Literal["text_section"] = "text_section"
    title: Optional[str] = None
    text: str


class ChecklistBlock(_BlockBase):
    kind: Literal["checklist"] = "checklist"
    title: Optional[str] = None
    items: List[ChecklistItem] = Field(default_factory=list)


class TableBlock(_BlockBase):
    kind: Literal["table"] = "table"
    title: Optional[str] = None
    columns: List[str] = Field(default_factory=list)
    rows: List[List[Any]] = Field(default_factory=list)


class PhotoGridBlock(_BlockBase):
    kind: Literal["photo_grid"] = "photo_grid"
    title: Optional[str] = None
    field_path: Optional[str] = None
    photos: List[Any] = Field(default_factory=list)


class SignatureBoxBlock(_BlockBase):
    kind: Literal["signature_box"] = "signature_box"
    title: Optional[str] = None
    signatures: List[ResolvedField] = Field(default_factory=list)


class MetricsCardsBlock(_BlockBase):
    kind: Literal["metrics_cards"] = "metrics_cards"
    title: Optional[str] = None
    metrics: List[MetricCard] = Field(default_factory=list)


class UnresolvedBlock(_BlockBase):
    """Placeholder for a layout section that could not be resolved."""

    kind: Literal["unresolved"] = "unresolved"
    block_type: str
    reason: str
    binding_rules: Dict[str, Any] = Field(default_factory=dict)


ReportBlock = Annotated[
    Union[
        HeaderBlock,
        DetailEntryBlock,
        TextSectionBlock,
        ChecklistBlock,
        TableBlock,
        PhotoGridBlock,
        SignatureBoxBlock,
        MetricsCardsBlock,
        UnresolvedBlock,
    ],
    Field(discriminator="kind"),
]


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class EntryDocument(BaseModel):
    entry_id: str
    template_id: str
    template_name: Optional[str] = None
    entry_date: Optional[date] = None
    status: Optional[str] = None
    include_logo: bool = True
    used_fallback_fields: bool = Field(
        False,
        description="True when field labels were derived from raw keys",
    )
    sections: List[ResolvedSection] = Field(default_factory=list)
    blocks: List[ReportBlock] = Field(default_factory=list)

    def populated_blocks(self) -> List[Any]:
        return [b for b in self.blocks if b.kind != "unresolved"]


class ReportDocument(BaseModel):
    layout_id: str
    layout_name: str
    title: Optional[str] = None
    page: PageConfig
    entries: List[EntryDocument] = Field(default_factory=list)
    generated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    def populated_block_count(self) -> int:
        return sum(len(e.populated_blocks()) for e in self.entries)


# ---------------------------------------------------------------------------
# Report generation request (ephemeral)
# ---------------------------------------------------------------------------


class EntrySelection(BaseModel):
    """
    Per-entry field inclusion.

    A path absent from ``fields`` is included; only an explicit ``False``
    excludes it. ``include_logo`` is independent of field selection.
    """

    fields: Dict[str, bool] = Field(default_factory=dict)
    include_logo: bool = True

    def includes(self, path: str) -> bool:
        return self.fields.get(path, True) is not False


class PageOptions(BaseModel):
    size: Optional[Literal["A4", "A3", "Letter"]] = None
    orientation: Optional[Literal["portrait", "landscape"]] = None


class ReportRequest(BaseModel):
    entry_ids: List[str] = Field(..., min_length=1)
    layout_id: str
    selections: Dict[str, EntrySelection] = Field(default_factory=dict)
    page: Optional[PageOptions] = None
    title: Optional[str] = None

    model_config = ConfigDict(extra="forbid")

    def selection_for(self, entry_id: str) -> EntrySelection:
        return self.selections.get(entry_id) or EntrySelection()
