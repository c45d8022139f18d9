"""
Report assembly.

Takes N selected work entries, a per-entry field selection and one
layout, and produces a ``ReportDocument``: one ordered block list per
entry, handed to an external document-rendering collaborator.

Ordering guarantees (independent of I/O completion order):
- entries appear in selection order
- blocks appear in layout declaration order
- fields inside a block follow schema declaration order

Degradation rules:
- a block with no data for an entry is omitted
- an unknown block type or malformed binding rule becomes an
  ``UnresolvedBlock`` placeholder; the rest of the document is delivered
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Union

from pydantic import ValidationError

from workledger.app.core.boundary import build_or_raise, service_boundary
from workledger.app.core.config import Settings, get_settings
from workledger.app.core.context import RequestContext
from workledger.app.core.errors import NotFoundError, ResolutionError, SchemaValidationError
from workledger.app.entries.service import WorkEntryService
from workledger.app.layouts.registry import LayoutRegistry
from workledger.app.reports.bindings import parse_binding
from workledger.app.reports.fields import resolve_entry_fields
from workledger.app.reports.resolvers import BLOCK_RESOLVERS, BlockContext, should_show
from workledger.app.schemas.document import (
    EntryDocument,
    EntrySelection,
    ReportDocument,
    ReportRequest,
    UnresolvedBlock,
)
from workledger.app.schemas.entry import WorkEntry
from workledger.app.schemas.layout import LayoutSection, PageConfig, ReportLayout
from workledger.app.schemas.template import FieldsSchema
from workledger.app.templates.registry import TemplateRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EntrySource:
    """An entry together with the schema it is rendered against."""

    entry: WorkEntry
    schema: Optional[FieldsSchema]
    template_name: Optional[str] = None


# ---------------------------------------------------------------------------
# Pure assembly
# ---------------------------------------------------------------------------


def _unresolved(section: LayoutSection, reason: str) -> UnresolvedBlock:
    return UnresolvedBlock(
        section_id=section.section_id,
        options=dict(section.options),
        block_type=section.block_type,
        reason=reason,
        binding_rules=dict(section.binding_rules),
    )


def _resolve_section(
    section: LayoutSection,
    source: EntrySource,
    sections,
    selection: EntrySelection,
) -> Optional[Any]:
    resolver = BLOCK_RESOLVERS.get(section.block_type)
    if resolver is None:
        logger.warning(
            "Unresolved layout section %s: unknown block type %s",
            section.section_id,
            section.block_type,
        )
        return _unresolved(section, f"unknown block type: {section.block_type}")

    try:
        ctx = BlockContext(
            section=section,
            rule=parse_binding(section),
            entry=source.entry,
            sections=sections,
            selection=selection,
            template_name=source.template_name,
        )
        return resolver(ctx)
    except ResolutionError as exc:
        logger.warning("Unresolved layout section %s: %s", section.section_id, exc.reason)
        return _unresolved(section, exc.reason)
    except (ValidationError, ValueError, TypeError) as exc:
        logger.warning(
            "Unresolved layout section %s: invalid content or options: %s",
            section.section_id,
            exc,
        )
        return _unresolved(section, "invalid content or options")


def assemble_entry(
    layout: ReportLayout,
    source: EntrySource,
    selection: Optional[EntrySelection] = None,
) -> EntryDocument:
    selection = selection or EntrySelection()
    entry = source.entry
    sections, used_fallback = resolve_entry_fields(source.schema, entry.data, selection)

    blocks = []
    for section in layout.layout_schema.sections:
        if not should_show(section.show_if, entry):
            continue
        block = _resolve_section(section, source, sections, selection)
        if block is not None:
            blocks.append(block)

    return EntryDocument(
        entry_id=entry.id,
        template_id=entry.template_id,
        template_name=source.template_name,
        entry_date=entry.entry_date,
        status=entry.status.value,
        include_logo=selection.include_logo,
        used_fallback_fields=used_fallback,
        sections=sections,
        blocks=blocks,
    )


def assemble_report(
    layout: ReportLayout,
    sources: List[EntrySource],
    request: ReportRequest,
) -> ReportDocument:
    page = layout.layout_schema.page
    if request.page is not None:
        page = PageConfig(
            size=request.page.size or page.size,
            orientation=request.page.orientation or page.orientation,
            margins=page.margins,
        )

    return ReportDocument(
        layout_id=layout.layout_id,
        layout_name=layout.layout_name,
        title=request.title,
        page=page,
        entries=[
            assemble_entry(layout, source, request.selection_for(source.entry.id))
            for source in sources
        ],
    )


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class ReportService:
    def __init__(
        self,
        templates: TemplateRegistry,
        layouts: LayoutRegistry,
        entries: WorkEntryService,
        settings: Optional[Settings] = None,
    ) -> None:
        self._templates = templates
        self._layouts = layouts
        self._entries = entries
        self._settings = settings or get_settings()

    def _fetch(self, ctx: RequestContext, entry_id: str) -> EntrySource:
        entry = self._entries.load(ctx, entry_id)
        try:
            template_name = self._templates.load(ctx, entry.template_id).template_name
        except NotFoundError:
            template_name = None
        return EntrySource(
            entry=entry,
            schema=self._entries.schema_for(ctx, entry),
            template_name=template_name,
        )

    def fetch_entries(self, ctx: RequestContext, entry_ids: List[str]) -> List[EntrySource]:
        """Parallel fan-out; results come back in ``entry_ids`` order."""
        workers = min(self._settings.report_fetch_workers, len(entry_ids)) or 1
        with ThreadPoolExecutor(max_workers=workers) as pool:
            return list(pool.map(lambda eid: self._fetch(ctx, eid), entry_ids))

    @service_boundary("reports.generate")
    def generate(
        self,
        ctx: RequestContext,
        request: Union[ReportRequest, Mapping[str, Any]],
    ) -> ReportDocument:
        if not isinstance(request, ReportRequest):
            request = build_or_raise(ReportRequest, request, subject="Report request")

        entry_ids = list(dict.fromkeys(request.entry_ids))
        limit = self._settings.max_report_entries
        if len(entry_ids) > limit:
            raise SchemaValidationError(
                [f"At most {limit} entries can be included in one report"],
                subject="Report request",
            )

        layout = self._layouts.load(ctx, request.layout_id, include_inactive=False)
        sources = self.fetch_entries(ctx, entry_ids)
        document = assemble_report(layout, sources, request)

        logger.info(
            "Report assembled layout=%s entries=%d blocks=%d",
            layout.layout_id,
            len(document.entries),
            document.populated_block_count(),
        )
        return document
