from datetime import datetime

from workledger.app.core.config import Settings
from workledger.app.core.container import Services, build_services
from workledger.app.core.context import PERM_ENTRIES_APPROVE, RequestContext
from workledger.app.stores.memory import memory_stores


# ------------------------------------------------------------------
# Request contexts
# ------------------------------------------------------------------

ORG = "org-acme"
OTHER_ORG = "org-globex"


def member_ctx(user_id: str = "user-1", organization_id: str = ORG) -> RequestContext:
    return RequestContext(organization_id=organization_id, user_id=user_id)


def reviewer_ctx(user_id: str = "reviewer-1", organization_id: str = ORG) -> RequestContext:
    return RequestContext(
        organization_id=organization_id,
        user_id=user_id,
        permissions=frozenset({PERM_ENTRIES_APPROVE}),
    )


# ------------------------------------------------------------------
# Services
# ------------------------------------------------------------------

def fresh_services(**settings_overrides) -> Services:
    """Services over empty in-memory stores and explicit settings."""
    return build_services(memory_stores(), Settings(**settings_overrides))


def fixed_clock(moment: datetime):
    return lambda: moment


# ------------------------------------------------------------------
# Template payloads
#
# Maintenance-visit template used across the suite:
#   site_info   customer_name (text, required, prefilled), visit_date ("now")
#   work_done   summary (textarea, required), hours (number 0..24),
#               ok_to_close (checkbox)
#   evidence    photos (photo)
#   sign_off    technician_signature (signature)
# ------------------------------------------------------------------

def visit_template_payload(name: str = "PMC Visit Report", **overrides) -> dict:
    payload = {
        "template_name": name,
        "industry": "maintenance",
        "contract_category": "pmc",
        "report_type": "visit",
        "fields_schema": {
            "sections": [
                {
                    "section_id": "site_info",
                    "section_name": "Site Information",
                    "fields": [
                        {
                            "field_id": "customer_name",
                            "field_name": "Customer Name",
                            "field_type": "text",
                            "required": True,
                            "prefill_from": "contract.client_name",
                        },
                        {
                            "field_id": "visit_date",
                            "field_name": "Visit Date",
                            "field_type": "date",
                            "default_value": "now",
                        },
                    ],
                },
                {
                    "section_id": "work_done",
                    "section_name": "Work Done",
                    "fields": [
                        {
                            "field_id": "summary",
                            "field_name": "Summary",
                            "field_type": "textarea",
                            "required": True,
                        },
                        {
                            "field_id": "hours",
                            "field_name": "Hours",
                            "field_type": "number",
                            "min": 0,
                            "max": 24,
                        },
                        {
                            "field_id": "ok_to_close",
                            "field_name": "OK To Close",
                            "field_type": "checkbox",
                        },
                    ],
                },
                {
                    "section_id": "evidence",
                    "section_name": "Evidence",
                    "fields": [
                        {
                            "field_id": "photos",
                            "field_name": "Site Photos",
                            "field_type": "photo",
                        },
                    ],
                },
                {
                    "section_id": "sign_off",
                    "section_name": "Sign Off",
                    "fields": [
                        {
                            "field_id": "technician_signature",
                            "field_name": "Technician Signature",
                            "field_type": "signature",
                        },
                    ],
                },
            ]
        },
    }
    payload.update(overrides)
    return payload


def minimal_template_payload(name: str = "Simple Log") -> dict:
    return {
        "template_name": name,
        "contract_category": "custom",
        "fields_schema": {
            "sections": [
                {
                    "section_id": "section1",
                    "section_name": "Main",
                    "fields": [
                        {
                            "field_id": "textfield",
                            "field_name": "Text",
                            "field_type": "text",
                            "required": True,
                        },
                        {
                            "field_id": "photo",
                            "field_name": "Photo",
                            "field_type": "photo",
                        },
                    ],
                }
            ]
        },
    }


def contract_payload(**overrides) -> dict:
    payload = {
        "contract_number": "C-1001",
        "contract_name": "Tower A Maintenance",
        "client_name": "Acme",
        "contract_category": "pmc",
        "status": "active",
    }
    payload.update(overrides)
    return payload


# ------------------------------------------------------------------
# Layout payloads
# ------------------------------------------------------------------

def layout_schema(*sections: dict, size: str = "A4") -> dict:
    return {
        "page": {
            "size": size,
            "orientation": "portrait",
            "margins": {"top": 20, "left": 20, "right": 20, "bottom": 20},
        },
        "sections": list(sections),
    }


def layout_payload(name: str = "Visit Layout", *sections: dict) -> dict:
    if not sections:
        sections = (
            {
                "section_id": "header",
                "block_type": "header",
                "content": {"title": "Visit"},
                "binding_rules": {"mode": "auto_extract_all", "template_section": "site_info"},
            },
        )
    return {
        "layout_name": name,
        "description": "Layout used by tests",
        "compatible_template_types": ["pmc"],
        "layout_schema": layout_schema(*sections),
    }


# ------------------------------------------------------------------
# Seeded world
# ------------------------------------------------------------------

def seed_contract_with_template(services: Services, ctx: RequestContext):
    """Register a contract, create the visit template and assign it."""
    template = services.templates.create(ctx, visit_template_payload()).data
    contract = services.contracts.register(ctx, contract_payload()).data
    services.assignments.add(ctx, contract.id, template.id)
    return contract, template
