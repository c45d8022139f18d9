import httpx
import pytest

from workledger.app.main import create_app
from workledger.tests.fixtures.builders import (
    ORG,
    fresh_services,
    layout_payload,
    visit_template_payload,
)

pytestmark = pytest.mark.anyio

HEADERS = {"X-Organization-Id": ORG, "X-User-Id": "user-1"}


def _client() -> httpx.AsyncClient:
    app = create_app(fresh_services())
    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://workledger.test",
    )


async def test_generated_layout_preview_can_be_committed():
    async with _client() as client:
        template = (
            await client.post("/templates", json=visit_template_payload(), headers=HEADERS)
        ).json()
        preview = (
            await client.post(
                f"/templates/{template['template_id']}/generate-layout",
                headers=HEADERS,
            )
        ).json()

        created = await client.post(
            "/layouts",
            json={
                "layout_name": preview["suggested_name"],
                "description": preview["suggested_description"],
                "compatible_template_types": preview["compatible_template_types"],
                "layout_schema": preview["layout_schema"],
            },
            headers=HEADERS,
        )

    assert created.status_code == 201
    assert created.json()["layout_id"] == "pmc_visit_layout"


async def test_layout_listing_is_organization_scoped():
    async with _client() as client:
        private = layout_payload("Private Layout")
        private["is_public"] = False
        await client.post("/layouts", json=private, headers=HEADERS)

        own = await client.get("/layouts", headers=HEADERS)
        foreign = await client.get(
            "/layouts",
            headers={"X-Organization-Id": "org-other", "X-User-Id": "user-9"},
        )

    assert [l["layout_name"] for l in own.json()] == ["Private Layout"]
    assert foreign.json() == []
