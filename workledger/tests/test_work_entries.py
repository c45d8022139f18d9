from datetime import date

from workledger.tests.fixtures.builders import (
    OTHER_ORG,
    contract_payload,
    fresh_services,
    member_ctx,
    reviewer_ctx,
    seed_contract_with_template,
    visit_template_payload,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

COMPLETE = {
    "site_info.customer_name": "Acme",
    "work_done.summary": "Replaced filters",
    "work_done.hours": 2,
}


def _drafted(data=None):
    services = fresh_services()
    ctx = member_ctx()
    contract, template = seed_contract_with_template(services, ctx)
    entry = services.entries.create_draft(ctx, contract.id, template.id, data).data
    return services, ctx, entry, template


# ---------------------------------------------------------------------------
# Drafting
# ---------------------------------------------------------------------------

def test_draft_is_initialized_from_contract_and_pins_schema():
    services, ctx, entry, template = _drafted()

    assert entry.status.value == "draft"
    assert entry.created_by == "user-1"
    assert entry.data["site_info.customer_name"] == "Acme"
    assert entry.data["evidence.photos"] == []
    assert entry.template_revision == template.revision
    assert entry.schema_snapshot == template.fields_schema


def test_draft_requires_an_assignment():
    services = fresh_services()
    ctx = member_ctx()
    template = services.templates.create(ctx, visit_template_payload()).data
    contract = services.contracts.register(ctx, contract_payload()).data

    result = services.entries.create_draft(ctx, contract.id, template.id)

    assert result.code == "not_found"


def test_pinned_schema_survives_template_edits():
    services, ctx, entry, template = _drafted(COMPLETE)
    schema = template.fields_schema.model_dump(mode="json")
    schema["sections"][0]["fields"].append(
        {
            "field_id": "po_number",
            "field_name": "PO Number",
            "field_type": "text",
            "required": True,
        }
    )
    services.templates.update(ctx, template.id, {"fields_schema": schema})

    submitted = services.entries.submit(ctx, entry.id)

    assert submitted.success is True


# ---------------------------------------------------------------------------
# Editing
# ---------------------------------------------------------------------------

def test_only_owner_may_edit():
    services, ctx, entry, _ = _drafted()

    other_user = member_ctx(user_id="user-2")
    result = services.entries.update(other_user, entry.id, COMPLETE)

    assert result.code == "permission_denied"


def test_update_replaces_values_and_date():
    services, ctx, entry, _ = _drafted()

    updated = services.entries.update(
        ctx, entry.id, COMPLETE, entry_date=date(2024, 1, 2)
    ).data

    assert updated.data == COMPLETE
    assert updated.entry_date == date(2024, 1, 2)


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

def test_submit_runs_full_validation():
    services, ctx, entry, _ = _drafted({"work_done.hours": 30})

    result = services.entries.submit(ctx, entry.id)

    assert result.code == "field_validation_error"
    assert result.errors == {
        "work_done.summary": "Summary is required",
        "work_done.hours": "Must be at most 24",
    }
    assert services.entries.get(ctx, entry.id).data.status.value == "draft"


def test_submitted_entry_is_frozen_for_editing():
    services, ctx, entry, _ = _drafted(COMPLETE)
    services.entries.submit(ctx, entry.id)

    result = services.entries.update(ctx, entry.id, {})

    assert result.code == "invalid_state"


def test_approval_requires_permission_and_submitted_state():
    services, ctx, entry, _ = _drafted(COMPLETE)

    too_early = services.entries.approve(reviewer_ctx(), entry.id)
    services.entries.submit(ctx, entry.id)
    no_permission = services.entries.approve(ctx, entry.id)
    approved = services.entries.approve(reviewer_ctx(), entry.id)

    assert too_early.code == "invalid_state"
    assert no_permission.code == "permission_denied"
    assert approved.data.status.value == "approved"
    assert approved.data.approved_by == "reviewer-1"
    assert approved.data.approved_at is not None


def test_reject_records_reason():
    services, ctx, entry, _ = _drafted(COMPLETE)
    services.entries.submit(ctx, entry.id)

    rejected = services.entries.reject(reviewer_ctx(), entry.id, "Missing photos").data

    assert rejected.status.value == "rejected"
    assert rejected.rejection_reason == "Missing photos"


def test_delete_soft_deletes_drafts_only():
    services, ctx, entry, _ = _drafted(COMPLETE)
    second = services.entries.create_draft(
        ctx, entry.contract_id, entry.template_id, COMPLETE
    ).data
    services.entries.submit(ctx, second.id)

    deleted = services.entries.delete(ctx, entry.id)
    refused = services.entries.delete(ctx, second.id)

    assert deleted.data == {"id": entry.id, "deleted": True}
    assert refused.code == "invalid_state"
    assert services.entries.get(ctx, entry.id).code == "not_found"
    assert [e.id for e in services.entries.list(ctx).data] == [second.id]


def test_entries_are_scoped_to_organization():
    services, ctx, entry, _ = _drafted()

    outsider = member_ctx(organization_id=OTHER_ORG)

    assert services.entries.get(outsider, entry.id).code == "not_found"
    assert services.entries.list(outsider).data == []


def test_list_filters_by_status():
    services, ctx, entry, _ = _drafted(COMPLETE)
    services.entries.submit(ctx, entry.id)

    submitted = services.entries.list(ctx, status="submitted").data
    drafts = services.entries.list(ctx, status="draft").data

    assert [e.id for e in submitted] == [entry.id]
    assert drafts == []
