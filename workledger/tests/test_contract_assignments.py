from workledger.tests.fixtures.builders import (
    OTHER_ORG,
    contract_payload,
    fresh_services,
    member_ctx,
    visit_template_payload,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _world(template_count: int = 3):
    services = fresh_services()
    ctx = member_ctx()
    contract = services.contracts.register(ctx, contract_payload()).data
    templates = [
        services.templates.create(ctx, visit_template_payload(f"Visit {n}")).data
        for n in range(template_count)
    ]
    return services, ctx, contract, templates


def _defaults(services, ctx, contract_id):
    return [
        a.template_id
        for a in services.assignments.list(ctx, contract_id).data
        if a.is_default
    ]


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

def test_first_assignment_becomes_default():
    services, ctx, contract, templates = _world()

    first = services.assignments.add(ctx, contract.id, templates[0].id).data
    second = services.assignments.add(ctx, contract.id, templates[1].id).data

    assert first.is_default is True
    assert second.is_default is False
    assert second.sort_order == 1
    assert _defaults(services, ctx, contract.id) == [templates[0].id]


def test_new_default_clears_the_previous_one():
    services, ctx, contract, templates = _world()
    services.assignments.add(ctx, contract.id, templates[0].id)

    services.assignments.add(ctx, contract.id, templates[1].id, is_default=True)

    assert _defaults(services, ctx, contract.id) == [templates[1].id]


def test_assign_by_template_slug_and_reject_duplicates():
    services, ctx, contract, templates = _world(1)

    first = services.assignments.add(ctx, contract.id, templates[0].template_id)
    again = services.assignments.add(ctx, contract.id, templates[0].id)

    assert first.data.template_id == templates[0].id
    assert again.code == "conflict"
    assert again.error == "This template is already assigned to this contract."


def test_removing_default_promotes_lowest_sort_order():
    services, ctx, contract, templates = _world()
    rows = [
        services.assignments.add(ctx, contract.id, t.id).data for t in templates
    ]

    promoted = services.assignments.remove(ctx, rows[0].id).data

    assert promoted.id == rows[1].id
    assert _defaults(services, ctx, contract.id) == [templates[1].id]


def test_removing_last_assignment_leaves_no_default():
    services, ctx, contract, templates = _world(1)
    row = services.assignments.add(ctx, contract.id, templates[0].id).data

    result = services.assignments.remove(ctx, row.id)

    assert result.success is True
    assert result.data is None
    assert services.assignments.get_default(ctx, contract.id).data is None


def test_set_default_and_label():
    services, ctx, contract, templates = _world(2)
    services.assignments.add(ctx, contract.id, templates[0].id)
    row = services.assignments.add(ctx, contract.id, templates[1].id).data

    services.assignments.set_default(ctx, row.id)
    labelled = services.assignments.update_label(ctx, row.id, "  Night shift  ").data

    assert services.assignments.get_default(ctx, contract.id).data.id == row.id
    assert labelled.custom_label == "Night shift"


def test_contracts_of_other_organizations_are_invisible():
    services, ctx, contract, templates = _world(1)

    outsider = member_ctx(organization_id=OTHER_ORG)
    result = services.assignments.add(outsider, contract.id, templates[0].id)

    assert result.code == "not_found"
