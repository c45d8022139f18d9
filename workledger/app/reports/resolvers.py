"""
Block resolvers.

One resolver per block type, registered in ``BLOCK_RESOLVERS``. A
resolver receives the parsed binding rule plus the entry's resolved
fields and returns either a populated block or ``None`` when the block
has no data for this entry. ``None`` means the block is OMITTED, never
rendered empty.

Adding a block type means adding a ``BlockType`` member and one entry in
``BLOCK_RESOLVERS``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional

from workledger.app.core.errors import ResolutionError
from workledger.app.forms.interpreter import is_empty
from workledger.app.reports.bindings import (
    AutoExtractAll,
    BindingRule,
    BlockDefault,
    FilterByField,
    Metrics,
    SectionFields,
    SourcePath,
)
from workledger.app.reports.fields import guess_field_type, humanize_key
from workledger.app.schemas.document import (
    ChecklistBlock,
    ChecklistItem,
    DetailEntryBlock,
    EntrySelection,
    HeaderBlock,
    MetricCard,
    MetricsCardsBlock,
    PhotoGridBlock,
    ResolvedField,
    ResolvedSection,
    SignatureBoxBlock,
    TableBlock,
    TextSectionBlock,
)
from workledger.app.schemas.entry import WorkEntry
from workledger.app.schemas.layout import BlockType, LayoutSection

MEDIA_TYPES = frozenset({"photo", "signature"})

_CHECKED_WORDS = frozenset({"yes", "y", "true", "pass", "ok", "done", "checked", "completed"})

ENTRY_PREFIX = "entry."


@dataclass(frozen=True)
class BlockContext:
    section: LayoutSection
    rule: BindingRule
    entry: WorkEntry
    sections: List[ResolvedSection]
    selection: EntrySelection
    template_name: Optional[str] = None

    @property
    def title(self) -> Optional[str]:
        return self.section.content.get("title")

    def all_fields(self) -> List[ResolvedField]:
        return [f for s in self.sections for f in s.fields]

    def section_fields(self, section_id: str) -> List[ResolvedField]:
        for section in self.sections:
            if section.section_id == section_id:
                return list(section.fields)
        return []

    def read_source(self, path: str) -> Any:
        """
        Read a scalar from the raw entry. ``entry.<attr>`` reads entry
        metadata; anything else is a value-map key subject to selection.
        """
        if path.startswith(ENTRY_PREFIX):
            value = getattr(self.entry, path[len(ENTRY_PREFIX):], None)
            return getattr(value, "value", value)
        if not self.selection.includes(path):
            return None
        return self.entry.data.get(path)

    def unsupported(self, reason: str) -> ResolutionError:
        return ResolutionError(self.section.section_id, self.section.block_type, reason)


# ---------------------------------------------------------------------------
# Shared extraction
# ---------------------------------------------------------------------------


def _source_field(ctx: BlockContext, path: str) -> List[ResolvedField]:
    value = ctx.read_source(path)
    if is_empty(value):
        return []
    known = next((f for f in ctx.all_fields() if f.path == path), None)
    if known is not None:
        return [known]
    section_id, _, field_id = path.rpartition(".")
    return [
        ResolvedField(
            path=path,
            section_id=section_id,
            field_id=field_id or path,
            label=humanize_key(path),
            field_type=guess_field_type(path, value),
            value=value,
        )
    ]


def extract_fields(ctx: BlockContext) -> Optional[List[ResolvedField]]:
    """
    Fields selected by the binding rule, or ``None`` for the block-type
    default (empty rule).
    """
    rule = ctx.rule
    if isinstance(rule, BlockDefault):
        return None
    if isinstance(rule, AutoExtractAll):
        return ctx.section_fields(rule.template_section)
    if isinstance(rule, SectionFields):
        fields = ctx.section_fields(rule.template_section)
        if rule.fields is None:
            return fields
        wanted = set(rule.fields)
        return [f for f in fields if f.field_id in wanted or f.path in wanted]
    if isinstance(rule, FilterByField):
        return [f for f in ctx.all_fields() if rule.field in (f.field_id, f.path)]
    if isinstance(rule, SourcePath):
        return _source_field(ctx, rule.source)
    raise ctx.unsupported(f"'{rule.kind}' binding is not supported by this block type")


def _non_media(fields: List[ResolvedField]) -> List[ResolvedField]:
    return [f for f in fields if f.field_type not in MEDIA_TYPES]


def _is_checked(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    return str(value).strip().lower() in _CHECKED_WORDS


def _columns(options: Mapping[str, Any], default: int = 2) -> int:
    try:
        columns = int(options.get("columns", default))
    except (TypeError, ValueError):
        return default
    return columns if columns > 0 else default


def _display(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return value


# ---------------------------------------------------------------------------
# Resolvers
# ---------------------------------------------------------------------------


def resolve_header(ctx: BlockContext) -> Optional[HeaderBlock]:
    fields = extract_fields(ctx)
    show_logo = bool(ctx.section.options.get("show_logo", True)) and ctx.selection.include_logo
    return HeaderBlock(
        section_id=ctx.section.section_id,
        options=dict(ctx.section.options),
        title=ctx.title or ctx.template_name or "Work Report",
        subtitle=ctx.section.content.get("subtitle"),
        show_logo=show_logo,
        fields=_non_media(fields or []),
    )


def resolve_detail_entry(ctx: BlockContext) -> Optional[DetailEntryBlock]:
    fields = extract_fields(ctx)
    if fields is None:
        fields = ctx.all_fields()
    fields = _non_media(fields)
    if not fields:
        return None

    title = ctx.title
    if title is None and isinstance(ctx.rule, (AutoExtractAll, SectionFields)):
        title = next(
            (s.section_name for s in ctx.sections if s.section_id == ctx.rule.template_section),
            None,
        )
    return DetailEntryBlock(
        section_id=ctx.section.section_id,
        options=dict(ctx.section.options),
        title=title,
        columns=_columns(ctx.section.options),
        fields=fields,
    )


def resolve_text_section(ctx: BlockContext) -> Optional[TextSectionBlock]:
    fields = extract_fields(ctx)
    if fields is None:
        text = ctx.section.content.get("text") or "\n\n".join(
            str(f.value) for f in ctx.all_fields() if f.field_type == "textarea"
        )
    else:
        text = "\n\n".join(str(_display(f.value)) for f in _non_media(fields))
    if not text:
        return None
    return TextSectionBlock(
        section_id=ctx.section.section_id,
        options=dict(ctx.section.options),
        title=ctx.title,
        text=text,
    )


def resolve_checklist(ctx: BlockContext) -> Optional[ChecklistBlock]:
    fields = extract_fields(ctx)
    if fields is None:
        fields = [f for f in ctx.all_fields() if f.field_type == "checkbox"]
    items = [
        ChecklistItem(label=f.label, value=f.value, checked=_is_checked(f.value))
        for f in _non_media(fields)
    ]
    if not items:
        return None
    return ChecklistBlock(
        section_id=ctx.section.section_id,
        options=dict(ctx.section.options),
        title=ctx.title,
        items=items,
    )


def resolve_table(ctx: BlockContext) -> Optional[TableBlock]:
    fields = extract_fields(ctx)
    if fields is None:
        fields = ctx.all_fields()
    rows = [[f.label, _display(f.value)] for f in _non_media(fields)]
    if not rows:
        return None
    return TableBlock(
        section_id=ctx.section.section_id,
        options=dict(ctx.section.options),
        title=ctx.title,
        columns=list(ctx.section.content.get("columns") or ["Field", "Value"]),
        rows=rows,
    )


def resolve_photo_grid(ctx: BlockContext) -> Optional[PhotoGridBlock]:
    fields = extract_fields(ctx)
    if fields is None:
        fields = [f for f in ctx.all_fields() if f.field_type == "photo"]
    elif not isinstance(ctx.rule, FilterByField):
        fields = [f for f in fields if f.field_type == "photo"]

    photos: List[Any] = []
    for field in fields:
        if isinstance(field.value, (list, tuple)):
            photos.extend(field.value)
        else:
            photos.append(field.value)
    if not photos:
        return None
    return PhotoGridBlock(
        section_id=ctx.section.section_id,
        options=dict(ctx.section.options),
        title=ctx.title,
        field_path=fields[0].path if len(fields) == 1 else None,
        photos=photos,
    )


def resolve_signature_box(ctx: BlockContext) -> Optional[SignatureBoxBlock]:
    fields = extract_fields(ctx)
    if fields is None:
        fields = [f for f in ctx.all_fields() if f.field_type == "signature"]
    if not fields:
        return None
    return SignatureBoxBlock(
        section_id=ctx.section.section_id,
        options=dict(ctx.section.options),
        title=ctx.title,
        signatures=fields,
    )


def _metric_value(value: Any) -> Optional[Any]:
    if isinstance(value, bool) or is_empty(value):
        return None
    return value


def resolve_metrics_cards(ctx: BlockContext) -> Optional[MetricsCardsBlock]:
    cards: List[MetricCard] = []
    if isinstance(ctx.rule, Metrics):
        for metric in ctx.rule.metrics:
            value = _metric_value(ctx.read_source(metric.source))
            if value is not None:
                cards.append(MetricCard(label=metric.label, value=value, unit=metric.unit))
    else:
        fields = extract_fields(ctx)
        if fields is None:
            fields = [f for f in ctx.all_fields() if f.field_type == "number"]
        cards = [
            MetricCard(label=f.label, value=f.value)
            for f in _non_media(fields)
            if _metric_value(f.value) is not None
        ]
    if not cards:
        return None
    return MetricsCardsBlock(
        section_id=ctx.section.section_id,
        options=dict(ctx.section.options),
        title=ctx.title,
        metrics=cards,
    )


BLOCK_RESOLVERS: Dict[str, Callable[[BlockContext], Optional[Any]]] = {
    BlockType.HEADER.value: resolve_header,
    BlockType.DETAIL_ENTRY.value: resolve_detail_entry,
    BlockType.TEXT_SECTION.value: resolve_text_section,
    BlockType.CHECKLIST.value: resolve_checklist,
    BlockType.TABLE.value: resolve_table,
    BlockType.PHOTO_GRID.value: resolve_photo_grid,
    BlockType.SIGNATURE_BOX.value: resolve_signature_box,
    BlockType.METRICS_CARDS.value: resolve_metrics_cards,
}


# ---------------------------------------------------------------------------
# Conditional visibility
# ---------------------------------------------------------------------------


def should_show(condition: Optional[Mapping[str, Any]], entry: WorkEntry) -> bool:
    """
    Evaluate a layout section ``show_if``. Supported operators are
    ``equals``, ``exists`` and ``has_items``; anything else shows the block.
    """
    if not condition or not condition.get("field"):
        return True
    value = entry.data.get(condition["field"])

    if "equals" in condition:
        return value == condition["equals"]
    if "exists" in condition:
        exists = value is not None
        return exists if condition["exists"] else not exists
    if "has_items" in condition:
        has_items = isinstance(value, list) and len(value) > 0
        return has_items if condition["has_items"] else not has_items
    return True
