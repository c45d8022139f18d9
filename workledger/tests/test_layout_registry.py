import copy

from workledger.app.layouts.generator import generate_layout
from workledger.tests.fixtures.builders import (
    OTHER_ORG,
    fresh_services,
    layout_payload,
    member_ctx,
    visit_template_payload,
)


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------

def test_create_assigns_unique_slugs():
    services = fresh_services()
    ctx = member_ctx()

    first = services.layouts.create(ctx, layout_payload("Visit Layout")).data
    second = services.layouts.create(ctx, layout_payload("Visit Layout")).data

    assert first.layout_id == "visit_layout"
    assert second.layout_id == "visit_layout_2"
    assert first.created_by == "user-1"


def test_invalid_layout_is_rejected_before_write():
    services = fresh_services()
    ctx = member_ctx()
    payload = layout_payload("Broken")
    payload["layout_schema"]["sections"][0]["block_type"] = "carousel"

    result = services.layouts.create(ctx, payload)

    assert result.code == "schema_validation_error"
    assert result.errors == ["Section 1: invalid block_type: carousel"]
    assert services.layouts.list(ctx).data == []


def test_get_by_slug_and_update_revalidates():
    services = fresh_services()
    ctx = member_ctx()
    created = services.layouts.create(ctx, layout_payload("Visit Layout")).data

    fetched = services.layouts.get(ctx, "visit_layout").data
    bad = services.layouts.update(
        ctx, created.id, {"layout_schema": {"page": {}, "sections": []}}
    )
    good = services.layouts.update(ctx, created.id, {"description": "Updated"})

    assert fetched.id == created.id
    assert bad.code == "schema_validation_error"
    assert good.data.description == "Updated"
    assert good.data.layout_id == created.layout_id


def test_deactivated_layouts_leave_default_listing():
    services = fresh_services()
    ctx = member_ctx()
    created = services.layouts.create(ctx, layout_payload()).data

    services.layouts.deactivate(ctx, created.id)

    assert services.layouts.list(ctx).data == []
    assert [l.id for l in services.layouts.list(ctx, include_inactive=True).data] == [
        created.id
    ]


def test_list_filters_by_category_and_search():
    services = fresh_services()
    ctx = member_ctx()
    services.layouts.create(ctx, layout_payload("Visit Layout"))
    other = layout_payload("Emergency Callout")
    other["compatible_template_types"] = ["emergency-on-call"]
    services.layouts.create(ctx, other)

    pmc = services.layouts.list(ctx, compatible_category="pmc").data
    found = services.layouts.list(ctx, search="callout").data

    assert [l.layout_name for l in pmc] == ["Visit Layout"]
    assert [l.layout_name for l in found] == ["Emergency Callout"]


def test_clone_is_private_to_the_caller_organization():
    services = fresh_services()
    owner = member_ctx()
    original = services.layouts.create(owner, layout_payload()).data

    clone = services.layouts.clone(owner, original.id, "").data

    assert clone.layout_name == "Visit Layout (Copy)"
    assert clone.is_public is False
    assert services.layouts.get(member_ctx(organization_id=OTHER_ORG), clone.id).code == (
        "not_found"
    )


def test_generated_layout_can_be_committed():
    services = fresh_services()
    ctx = member_ctx()
    template = services.templates.create(ctx, visit_template_payload()).data

    generated = generate_layout(template)
    stored = services.layouts.create(ctx, generated.as_create_payload())

    assert stored.success is True
    assert stored.data.layout_name == "PMC Visit - Layout"
    assert len(stored.data.layout_schema.sections) == 4


# ---------------------------------------------------------------------------
# Export / import
# ---------------------------------------------------------------------------

def test_export_import_roundtrip_into_another_organization():
    services = fresh_services()
    ctx = member_ctx()
    services.layouts.create(ctx, layout_payload("Visit Layout"))

    bundle = services.layouts.export_layouts(ctx).data
    other = member_ctx(organization_id=OTHER_ORG)
    imported = services.layouts.import_bundle(other, bundle)

    assert bundle["format_version"] == "1.0"
    assert bundle["checksum"].startswith("SHA-256:")
    assert imported.success is True
    assert imported.data[0].organization_id == OTHER_ORG
    assert imported.data[0].layout_id == "visit_layout_2"


def test_tampered_bundle_is_rejected_without_writes():
    services = fresh_services()
    ctx = member_ctx()
    services.layouts.create(ctx, layout_payload("Visit Layout"))
    bundle = services.layouts.export_layouts(ctx).data

    tampered = copy.deepcopy(bundle)
    tampered["layouts"][0]["layout_name"] = "Evil Layout"
    result = services.layouts.import_bundle(ctx, tampered)

    assert result.code == "schema_validation_error"
    assert result.errors == ["Checksum mismatch: bundle contents were modified"]
    assert len(services.layouts.list(ctx, include_inactive=True).data) == 1


def test_bundle_with_invalid_schema_is_rejected_atomically():
    services = fresh_services()
    ctx = member_ctx()
    services.layouts.create(ctx, layout_payload("First"))
    services.layouts.create(ctx, layout_payload("Second"))
    bundle = services.layouts.export_layouts(ctx).data

    bundle["layouts"][1]["layout_schema"]["sections"] = []
    bundle["checksum"] = services.layouts._bundle_checksum(bundle["layouts"])
    result = services.layouts.import_bundle(ctx, bundle)

    assert result.errors == ["Layout 2: Layout must have at least one section"]
    assert len(services.layouts.list(ctx).data) == 2


def test_bundle_with_mistyped_field_writes_nothing():
    services = fresh_services()
    ctx = member_ctx()
    services.layouts.create(ctx, layout_payload("First"))
    services.layouts.create(ctx, layout_payload("Second"))
    bundle = services.layouts.export_layouts(ctx).data

    bundle["layouts"][1]["compatible_template_types"] = "pmc"
    bundle["checksum"] = services.layouts._bundle_checksum(bundle["layouts"])
    result = services.layouts.import_bundle(ctx, bundle)

    assert result.success is False
    assert result.errors == [
        "Layout 2: compatible_template_types: Input should be a valid list"
    ]
    assert len(services.layouts.list(ctx, include_inactive=True).data) == 2


def test_unsupported_bundle_version():
    services = fresh_services()

    result = services.layouts.import_bundle(
        member_ctx(),
        {"format_version": "9", "layouts": [{}], "checksum": "x"},
    )

    assert result.errors == ["Unsupported bundle format_version: 9"]
