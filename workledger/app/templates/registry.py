"""
Template registry.

Owns the lifecycle of persisted templates on top of a ``Repository``:
creation (with deterministic ``template_id`` derivation), lookup,
listing, optimistic-revision updates, locking, cloning and status-aware
soft deletion.

Every public operation returns a ``ServiceResult``. Structural
validation runs BEFORE any write; a rejected template never reaches the
store, so partial writes cannot occur.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional
from uuid import uuid4

from workledger.app.core.boundary import build_or_raise, service_boundary
from workledger.app.core.context import RequestContext
from workledger.app.core.errors import (
    ConflictError,
    DuplicateTemplateError,
    NotFoundError,
    SchemaValidationError,
    TemplateInUseError,
    TemplateLockedError,
)
from workledger.app.schemas.entry import Contract
from workledger.app.schemas.template import Template
from workledger.app.stores.base import Stores
from workledger.app.templates.validator import validate_template_schema

logger = logging.getLogger(__name__)

# Keys never taken from caller-supplied update payloads.
PROTECTED_KEYS = frozenset(
    {
        "id",
        "template_id",
        "created_at",
        "created_by",
        "deleted_at",
        "revision",
        "is_locked",
        "updated_at",
    }
)

# Keys that change the structure and therefore require re-validation.
STRUCTURAL_KEYS = frozenset({"fields_schema", "template_name"})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# template_id derivation
# ---------------------------------------------------------------------------


def generate_template_id(data: Mapping[str, Any]) -> str:
    """
    Derive a stable, human-readable slug: ``<category>-<name>-v<version>``.

    >>> generate_template_id({"template_name": "Daily Log!", "contract_category": "PMC"})
    'pmc-daily-log-v1'
    """
    category = re.sub(
        r"[^a-z0-9]", "-", str(data.get("contract_category") or "custom").lower()
    )
    name = re.sub(r"[^a-z0-9\s]", "", str(data.get("template_name") or "template").lower())
    name = re.sub(r"\s+", "-", name.strip())[:40]
    suffix = f"v{data.get('version') or '1'}"
    return f"{category}-{name}-{suffix}"


def _build_template(data: Mapping[str, Any]) -> Template:
    return build_or_raise(Template, data, subject="Template")


def _ensure_valid(data: Mapping[str, Any]) -> None:
    result = validate_template_schema(data)
    if not result.is_valid:
        raise SchemaValidationError(result.errors, subject="Template")


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class TemplateRegistry:
    def __init__(self, stores: Stores) -> None:
        self._stores = stores

    # ------------------------------------------------------------------
    # Internal lookups (raise; used by other services)
    # ------------------------------------------------------------------

    def load(self, ctx: RequestContext, key: str) -> Template:
        """Resolve by primary id first, then by ``template_id`` slug."""
        store = self._stores.templates
        template = store.get(key)
        if template is None:
            template = next(
                (t for t in store.list() if t.template_id == key and not t.is_deleted),
                None,
            )
        if (
            template is None
            or template.is_deleted
            or not ctx.sees(
                is_public=template.is_public,
                organization_id=template.organization_id,
            )
        ):
            raise NotFoundError("Template", key)
        return template

    def contracts_using(self, template_id: str) -> List[Contract]:
        """Contracts holding an assignment to the given template id."""
        contract_ids = {
            a.contract_id
            for a in self._stores.assignments.list()
            if a.template_id == template_id
        }
        contracts = [self._stores.contracts.get(cid) for cid in sorted(contract_ids)]
        return [c for c in contracts if c is not None]

    def _slug_taken(self, template_id: str) -> bool:
        return any(t.template_id == template_id for t in self._stores.templates.list())

    def _save(self, template: Template) -> Template:
        """Persist a mutation, bumping the revision token."""
        return self._stores.templates.save(
            template.model_copy(
                update={"updated_at": _utcnow(), "revision": template.revision + 1}
            )
        )

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    @service_boundary("templates.create")
    def create(self, ctx: RequestContext, data: Mapping[str, Any]) -> Template:
        payload = dict(data)
        payload["template_id"] = payload.get("template_id") or generate_template_id(payload)

        _ensure_valid(payload)

        if self._slug_taken(payload["template_id"]):
            raise DuplicateTemplateError(payload["template_id"])

        for key in PROTECTED_KEYS - {"template_id"}:
            payload.pop(key, None)

        payload.setdefault("organization_id", ctx.organization_id)
        payload["created_by"] = ctx.user_id
        payload["is_locked"] = False
        payload["revision"] = 1
        payload["version"] = payload.get("version") or "1.0"

        template = _build_template(payload)
        stored = self._stores.templates.save(template)
        logger.info(
            "Template created id=%s template_id=%s", stored.id, stored.template_id
        )
        return stored

    @service_boundary("templates.get")
    def get(self, ctx: RequestContext, key: str) -> Template:
        return self.load(ctx, key)

    @service_boundary("templates.list")
    def list(
        self,
        ctx: RequestContext,
        *,
        industry: Optional[str] = None,
        contract_category: Optional[str] = None,
        is_public: Optional[bool] = None,
    ) -> List[Template]:
        templates = [
            t
            for t in self._stores.templates.list()
            if not t.is_deleted
            and ctx.sees(is_public=t.is_public, organization_id=t.organization_id)
        ]
        if industry is not None:
            templates = [t for t in templates if t.industry == industry]
        if contract_category is not None:
            templates = [t for t in templates if t.contract_category == contract_category]
        if is_public is not None:
            templates = [t for t in templates if t.is_public == is_public]
        return sorted(templates, key=lambda t: (t.template_name.lower(), t.template_id))

    @service_boundary("templates.update")
    def update(
        self,
        ctx: RequestContext,
        key: str,
        changes: Mapping[str, Any],
        *,
        expected_revision: Optional[int] = None,
    ) -> Template:
        existing = self.load(ctx, key)
        if existing.is_locked:
            raise TemplateLockedError(existing.template_id)

        if expected_revision is not None and expected_revision != existing.revision:
            raise ConflictError(
                f"Template was modified concurrently "
                f"(expected revision {expected_revision}, found {existing.revision})"
            )

        safe = {k: v for k, v in changes.items() if k not in PROTECTED_KEYS}
        merged = existing.model_dump(mode="json")
        merged.update(safe)

        if STRUCTURAL_KEYS & safe.keys():
            _ensure_valid(merged)

        stored = self._save(_build_template(merged))
        logger.info(
            "Template updated id=%s revision=%s", stored.id, stored.revision
        )
        return stored

    @service_boundary("templates.delete")
    def delete(self, ctx: RequestContext, key: str) -> Dict[str, Any]:
        existing = self.load(ctx, key)
        if existing.is_locked:
            raise TemplateLockedError(existing.template_id)

        active = [c for c in self.contracts_using(existing.id) if c.is_non_terminal]
        if active:
            raise TemplateInUseError(len(active))

        self._save(existing.model_copy(update={"deleted_at": _utcnow()}))
        logger.info("Template soft-deleted id=%s", existing.id)
        return {"id": existing.id, "deleted": True}

    @service_boundary("templates.clone")
    def clone(self, ctx: RequestContext, key: str, new_name: str) -> Template:
        original = self.load(ctx, key)

        name = (new_name or "").strip()
        if not name:
            raise SchemaValidationError(
                ["A new name is required to clone a template"], subject="Clone"
            )
        if name == original.template_name:
            raise SchemaValidationError(
                ["Clone name must differ from the original template name"],
                subject="Clone",
            )

        source = original.model_dump(mode="json")
        clone_data = {
            "template_name": name,
            "industry": source["industry"],
            "contract_category": source["contract_category"],
            "report_type": source["report_type"],
            "fields_schema": source["fields_schema"],
            "validation_rules": source["validation_rules"],
            "pdf_layout": source["pdf_layout"],
            "version": "1.0",
            "is_public": source["is_public"],
            "organization_id": source["organization_id"],
        }
        # create() is itself a boundary; unwrap its result here.
        result = self.create(ctx, clone_data)
        if not result.success:
            return result
        logger.info("Template cloned from=%s to=%s", original.id, result.data.id)
        return result

    @service_boundary("templates.set_locked")
    def set_locked(self, ctx: RequestContext, key: str, locked: bool) -> Template:
        existing = self.load(ctx, key)
        if existing.is_locked == locked:
            return existing
        stored = self._save(existing.model_copy(update={"is_locked": locked}))
        logger.info("Template id=%s locked=%s", stored.id, locked)
        return stored

    def toggle_lock(self, ctx: RequestContext, key: str):
        current = self.get(ctx, key)
        if not current.success:
            return current
        return self.set_locked(ctx, key, not current.data.is_locked)


# ---------------------------------------------------------------------------
# Authoring helpers
# ---------------------------------------------------------------------------


def field_paths(template: Template) -> List[str]:
    """All value-map keys of a template, in document order."""
    return [path for _, _, path in template.iter_fields()]


def summarize(template: Template) -> Dict[str, Any]:
    sections = template.fields_schema.sections
    by_type: Dict[str, int] = {}
    for _, field, _ in template.iter_fields():
        by_type[field.field_type.value] = by_type.get(field.field_type.value, 0) + 1
    return {
        "sections": len(sections),
        "fields": sum(len(s.fields) for s in sections),
        "required_fields": sum(
            1 for _, f, _ in template.iter_fields() if f.required
        ),
        "by_type": by_type,
    }


def _short_id() -> str:
    return uuid4().hex[:8]


def blank_field(index: int = 0) -> Dict[str, Any]:
    return {
        "field_id": f"field_{_short_id()}_{index}",
        "field_name": "",
        "field_type": "text",
        "required": False,
        "placeholder": "",
        "description": "",
        "default_value": "",
        "options": [],
        "prefill_from": "",
        "show_if": None,
        "formula": "",
    }


def blank_section(index: int = 0) -> Dict[str, Any]:
    return {
        "section_id": f"section_{_short_id()}_{index}",
        "section_name": "",
        "description": "",
        "required": False,
        "layout": "single_column",
        "fields": [],
    }


def blank_template() -> Dict[str, Any]:
    return {
        "template_name": "",
        "industry": "maintenance",
        "contract_category": "custom",
        "report_type": "",
        "version": "1.0",
        "is_public": True,
        "fields_schema": {"sections": [blank_section(0)]},
        "validation_rules": {},
        "pdf_layout": {},
    }
