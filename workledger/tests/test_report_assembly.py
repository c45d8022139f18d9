import time

from workledger.app.layouts.generator import generate_layout
from workledger.app.reports.assembler import EntrySource, assemble_entry
from workledger.app.reports.fields import guess_field_type, humanize_key, resolve_entry_fields
from workledger.app.schemas.document import EntrySelection
from workledger.app.schemas.entry import WorkEntry
from workledger.app.schemas.layout import ReportLayout
from workledger.app.schemas.template import Template
from workledger.tests.fixtures.builders import (
    fresh_services,
    layout_payload,
    layout_schema,
    member_ctx,
    seed_contract_with_template,
    visit_template_payload,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

FULL_DATA = {
    "site_info.customer_name": "Acme",
    "site_info.visit_date": "2024-03-05",
    "work_done.summary": "Replaced filters",
    "work_done.hours": 2,
    "work_done.ok_to_close": True,
    "evidence.photos": ["p1.jpg", "p2.jpg"],
    "sign_off.technician_signature": "sig.png",
}


def _template() -> Template:
    payload = visit_template_payload()
    payload["template_id"] = "pmc-visit-v1"
    return Template.model_validate(payload)


def _entry(data: dict, entry_id: str = "e1") -> WorkEntry:
    return WorkEntry(id=entry_id, contract_id="c1", template_id="t1", data=data)


def _layout(*sections: dict) -> ReportLayout:
    return ReportLayout(
        layout_id="test_layout",
        layout_name="Test Layout",
        layout_schema=layout_schema(*sections),
    )


def _source(data: dict, schema=True, entry_id: str = "e1") -> EntrySource:
    return EntrySource(
        entry=_entry(data, entry_id),
        schema=_template().fields_schema if schema else None,
        template_name="PMC Visit Report",
    )


HEADER = {
    "section_id": "header",
    "block_type": "header",
    "binding_rules": {"mode": "auto_extract_all", "template_section": "site_info"},
}
DETAILS = {
    "section_id": "work",
    "block_type": "detail_entry",
    "binding_rules": {"mode": "auto_extract_all", "template_section": "work_done"},
}
PHOTOS = {
    "section_id": "photos",
    "block_type": "photo_grid",
    "content": {"title": "Photos"},
    "binding_rules": {"filter_by_field": "photos"},
}
SIGNATURES = {"section_id": "signatures", "block_type": "signature_box"}


def _kinds(document) -> list:
    return [block.kind for block in document.blocks]


# ---------------------------------------------------------------------------
# Field resolution
# ---------------------------------------------------------------------------

def test_schema_labels_and_order():
    sections, fallback = resolve_entry_fields(_template().fields_schema, FULL_DATA)

    assert fallback is False
    assert [s.section_id for s in sections] == [
        "site_info",
        "work_done",
        "evidence",
        "sign_off",
    ]
    assert [f.label for f in sections[1].fields] == ["Summary", "Hours", "OK To Close"]


def test_fallback_labels_from_raw_keys():
    data = {"site_info.unit_serial_no": "X-9", "inspector_photo": ["a.jpg"], "count": 3}

    sections, fallback = resolve_entry_fields(None, data)

    assert fallback is True
    assert [(s.section_id, s.section_name) for s in sections] == [
        ("site_info", "Site Info"),
        ("general", "General"),
    ]
    assert sections[0].fields[0].label == "Unit Serial No"
    assert [f.field_type for f in sections[1].fields] == ["photo", "number"]


def test_type_guessing():
    assert humanize_key("a.b_c_d") == "B C D"
    assert guess_field_type("client_signature", "x") == "signature"
    assert guess_field_type("done", False) == "checkbox"
    assert guess_field_type("hours", 1.5) == "number"
    assert guess_field_type("note", "x") == "text"


def test_empty_values_are_not_data():
    data = {"site_info.customer_name": "", "evidence.photos": [], "work_done.summary": None}

    sections, _ = resolve_entry_fields(_template().fields_schema, data)

    assert sections == []


# ---------------------------------------------------------------------------
# Block assembly
# ---------------------------------------------------------------------------

def test_full_entry_populates_every_block_in_layout_order():
    layout = _layout(HEADER, DETAILS, PHOTOS, SIGNATURES)

    document = assemble_entry(layout, _source(FULL_DATA))

    assert _kinds(document) == ["header", "detail_entry", "photo_grid", "signature_box"]
    header, details, photos, signatures = document.blocks
    assert header.title == "PMC Visit Report"
    assert [f.path for f in header.fields] == [
        "site_info.customer_name",
        "site_info.visit_date",
    ]
    assert details.title == "Work Done"
    assert photos.photos == ["p1.jpg", "p2.jpg"]
    assert signatures.signatures[0].value == "sig.png"


def test_photo_block_present_only_for_entry_with_photos():
    layout = _layout(HEADER, PHOTOS)
    with_photos = assemble_entry(layout, _source(FULL_DATA, entry_id="e1"))
    without = dict(FULL_DATA)
    without["evidence.photos"] = []
    without_photos = assemble_entry(layout, _source(without, entry_id="e2"))

    populated = [
        block
        for document in (with_photos, without_photos)
        for block in document.blocks
        if block.kind == "photo_grid"
    ]

    assert len(populated) == 1
    assert _kinds(without_photos) == ["header"]


def test_sparse_entry_omits_blocks_instead_of_rendering_them_empty():
    layout = _layout(HEADER, DETAILS, PHOTOS, SIGNATURES)

    document = assemble_entry(layout, _source({"site_info.customer_name": "Acme"}))

    assert _kinds(document) == ["header"]


def test_deselecting_fields_never_adds_content():
    layout = _layout(HEADER, DETAILS, PHOTOS, SIGNATURES)
    selection = EntrySelection(
        fields={"evidence.photos": False, "work_done.summary": False}
    )

    everything = assemble_entry(layout, _source(FULL_DATA))
    reduced = assemble_entry(layout, _source(FULL_DATA), selection)

    def paths(document):
        found = set()
        for block in document.blocks:
            for attr in ("fields", "signatures"):
                found.update(f.path for f in getattr(block, attr, []))
        return found

    assert paths(reduced) <= paths(everything)
    assert "work_done.summary" not in paths(reduced)
    assert "photo_grid" not in _kinds(reduced)


def test_logo_toggle_is_independent_of_fields():
    layout = _layout(HEADER)

    document = assemble_entry(
        layout, _source(FULL_DATA), EntrySelection(include_logo=False)
    )

    assert document.blocks[0].show_logo is False
    assert document.include_logo is False
    assert document.blocks[0].fields


def test_unknown_block_and_malformed_rule_become_placeholders():
    layout = _layout(
        HEADER,
        {"section_id": "legacy", "block_type": "gantt_chart"},
        {
            "section_id": "broken",
            "block_type": "detail_entry",
            "binding_rules": {"mode": "extract_everything"},
        },
        {
            "section_id": "odd",
            "block_type": "table",
            "binding_rules": {"columns_from": "x"},
        },
        DETAILS,
    )

    document = assemble_entry(layout, _source(FULL_DATA))

    assert _kinds(document) == [
        "header",
        "unresolved",
        "unresolved",
        "unresolved",
        "detail_entry",
    ]
    legacy = document.blocks[1]
    assert legacy.section_id == "legacy"
    assert legacy.block_type == "gantt_chart"
    assert document.blocks[2].reason == "unknown binding mode: extract_everything"
    assert len(document.populated_blocks()) == 2


def test_bad_content_or_options_degrade_to_placeholders():
    layout = _layout(
        {**HEADER, "content": {"title": 42}},
        {**DETAILS, "section_id": "wide", "options": {"columns": "wide"}},
        {**DETAILS, "section_id": "narrow", "options": {"columns": "1"}},
        PHOTOS,
    )

    document = assemble_entry(layout, _source(FULL_DATA))

    assert _kinds(document) == ["unresolved", "detail_entry", "detail_entry", "photo_grid"]
    assert document.blocks[0].reason == "invalid content or options"
    assert document.blocks[1].columns == 2
    assert document.blocks[2].columns == 1


def test_missing_template_section_target_is_omitted_not_unresolved():
    layout = _layout(
        {
            "section_id": "ghost",
            "block_type": "detail_entry",
            "binding_rules": {"mode": "auto_extract_all", "template_section": "nowhere"},
        }
    )

    document = assemble_entry(layout, _source(FULL_DATA))

    assert document.blocks == []


def test_source_and_metrics_bindings():
    layout = _layout(
        {
            "section_id": "summary",
            "block_type": "text_section",
            "binding_rules": {"source": "work_done.summary"},
        },
        {
            "section_id": "kpis",
            "block_type": "metrics_cards",
            "binding_rules": {
                "metrics": [
                    {"label": "Hours", "source": "work_done.hours", "unit": "h"},
                    {"label": "Status", "source": "entry.status"},
                    {"label": "Missing", "source": "work_done.nothing"},
                ]
            },
        },
    )

    document = assemble_entry(layout, _source(FULL_DATA))
    text, metrics = document.blocks

    assert text.text == "Replaced filters"
    assert [(m.label, m.value, m.unit) for m in metrics.metrics] == [
        ("Hours", 2, "h"),
        ("Status", "draft", None),
    ]


def test_checklist_and_table_defaults():
    layout = _layout(
        {"section_id": "checks", "block_type": "checklist"},
        {
            "section_id": "grid",
            "block_type": "table",
            "binding_rules": {"template_section": "work_done", "fields": ["hours"]},
        },
    )

    document = assemble_entry(layout, _source(FULL_DATA))
    checklist, table = document.blocks

    assert [(i.label, i.checked) for i in checklist.items] == [("OK To Close", True)]
    assert table.rows == [["Hours", 2]]


def test_show_if_gates_blocks_per_entry():
    gated = dict(PHOTOS, show_if={"field": "work_done.ok_to_close", "equals": False})
    layout = _layout(HEADER, gated)

    document = assemble_entry(layout, _source(FULL_DATA))

    assert _kinds(document) == ["header"]


def test_fallback_entry_still_renders():
    layout = _layout(HEADER, SIGNATURES, {"section_id": "all", "block_type": "table"})

    document = assemble_entry(layout, _source(FULL_DATA, schema=False))

    assert document.used_fallback_fields is True
    assert _kinds(document) == ["header", "signature_box", "table"]
    assert document.blocks[1].signatures[0].label == "Technician Signature"


# ---------------------------------------------------------------------------
# Report service
# ---------------------------------------------------------------------------

def _seeded_report_world():
    services = fresh_services(report_fetch_workers=4)
    ctx = member_ctx()
    contract, template = seed_contract_with_template(services, ctx)
    layout = services.layouts.create(
        ctx, layout_payload("Visit Layout", HEADER, DETAILS, PHOTOS)
    ).data
    return services, ctx, contract, template, layout


def test_generate_report_for_two_entries():
    services, ctx, contract, template, layout = _seeded_report_world()
    with_photos = services.entries.create_draft(ctx, contract.id, template.id, FULL_DATA).data
    no_photos = services.entries.create_draft(
        ctx, contract.id, template.id, {"work_done.summary": "Inspection only"}
    ).data

    result = services.reports.generate(
        ctx,
        {"entry_ids": [with_photos.id, no_photos.id], "layout_id": layout.layout_id},
    )

    assert result.success is True
    document = result.data
    assert [e.entry_id for e in document.entries] == [with_photos.id, no_photos.id]
    photo_blocks = [
        b for e in document.entries for b in e.blocks if b.kind == "photo_grid"
    ]
    assert len(photo_blocks) == 1
    assert "photo_grid" not in _kinds(document.entries[1])


def test_generate_preserves_selection_order_under_uneven_latency():
    services, ctx, contract, template, layout = _seeded_report_world()
    ids = [
        services.entries.create_draft(
            ctx, contract.id, template.id, {"work_done.summary": f"visit {n}"}
        ).data.id
        for n in range(6)
    ]
    requested = list(reversed(ids))
    original_fetch = services.reports._fetch

    def slow_first(ctx_, entry_id):
        if entry_id == requested[0]:
            time.sleep(0.05)
        return original_fetch(ctx_, entry_id)

    services.reports._fetch = slow_first
    document = services.reports.generate(
        ctx, {"entry_ids": requested, "layout_id": layout.id}
    ).data

    assert [e.entry_id for e in document.entries] == requested


def test_generate_rejects_unknown_entries_and_inactive_layouts():
    services, ctx, contract, template, layout = _seeded_report_world()
    entry = services.entries.create_draft(ctx, contract.id, template.id, FULL_DATA).data

    missing = services.reports.generate(
        ctx, {"entry_ids": [entry.id, "nope"], "layout_id": layout.id}
    )
    services.layouts.deactivate(ctx, layout.id)
    inactive = services.reports.generate(
        ctx, {"entry_ids": [entry.id], "layout_id": layout.id}
    )

    assert missing.code == "not_found"
    assert inactive.code == "not_found"


def test_generate_enforces_entry_limit_and_request_shape():
    services = fresh_services(max_report_entries=2)
    ctx = member_ctx()

    too_many = services.reports.generate(
        ctx, {"entry_ids": ["a", "b", "c"], "layout_id": "x"}
    )
    empty = services.reports.generate(ctx, {"entry_ids": [], "layout_id": "x"})

    assert too_many.code == "schema_validation_error"
    assert empty.code == "schema_validation_error"


def test_page_override_and_title():
    services, ctx, contract, template, layout = _seeded_report_world()
    entry = services.entries.create_draft(ctx, contract.id, template.id, FULL_DATA).data

    document = services.reports.generate(
        ctx,
        {
            "entry_ids": [entry.id],
            "layout_id": layout.id,
            "page": {"orientation": "landscape"},
            "title": "March visits",
        },
    ).data

    assert document.page.orientation == "landscape"
    assert document.page.size == "A4"
    assert document.title == "March visits"


def test_generated_photo_grids_stay_with_their_own_section():
    payload = visit_template_payload()
    payload["template_id"] = "before-after-v1"
    payload["fields_schema"]["sections"] = [
        {
            "section_id": "site",
            "section_name": "Site",
            "fields": [{"field_id": "name", "field_name": "Name", "field_type": "text"}],
        },
        {
            "section_id": "before",
            "section_name": "Before",
            "fields": [{"field_id": "photos", "field_name": "Before", "field_type": "photo"}],
        },
        {
            "section_id": "after",
            "section_name": "After",
            "fields": [{"field_id": "photos", "field_name": "After", "field_type": "photo"}],
        },
    ]
    template = Template.model_validate(payload)
    generated = generate_layout(template)
    layout = ReportLayout(
        layout_id="before_after",
        layout_name="Before/After",
        layout_schema=generated.layout_schema,
    )
    source = EntrySource(
        entry=_entry(
            {"site.name": "Plant 4", "before.photos": ["b1.jpg"], "after.photos": ["a1.jpg"]}
        ),
        schema=template.fields_schema,
    )

    document = assemble_entry(layout, source)

    grids = [block.photos for block in document.blocks if block.kind == "photo_grid"]
    assert grids == [["b1.jpg"], ["a1.jpg"]]
