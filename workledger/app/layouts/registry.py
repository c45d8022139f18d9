"""
Layout registry.

CRUD for report layouts plus JSON export/import bundles. Every layout
schema is validated against the layout schema contract before it is
written; import bundles are verified (checksum, then every layout's
schema) before the FIRST write, so an import is all-or-nothing.

Deletion is soft: ``deactivate`` flips ``is_active`` so historical
reports generated with the layout stay reproducible.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

from workledger.app.core.boundary import build_or_raise, service_boundary
from workledger.app.core.context import RequestContext
from workledger.app.core.errors import NotFoundError, SchemaValidationError
from workledger.app.layouts.validator import validate_layout_schema
from workledger.app.schemas.layout import ReportLayout, layout_slug
from workledger.app.stores.base import Stores
from workledger.app.utils.hashing import canonical_json_bytes, compute_checksum

logger = logging.getLogger(__name__)

BUNDLE_FORMAT_VERSION = "1.0"

PROTECTED_KEYS = frozenset({"id", "layout_id", "created_at", "created_by", "updated_at"})

# Fields carried by an export bundle; identity and ownership are not.
EXPORTED_KEYS = (
    "layout_name",
    "description",
    "compatible_template_types",
    "layout_schema",
    "version",
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _ensure_valid(schema: Any, *, subject: str = "Layout") -> None:
    result = validate_layout_schema(schema)
    if not result.is_valid:
        raise SchemaValidationError(result.errors, subject=subject)


class LayoutRegistry:
    def __init__(self, stores: Stores) -> None:
        self._stores = stores

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def load(
        self,
        ctx: RequestContext,
        key: str,
        *,
        include_inactive: bool = True,
    ) -> ReportLayout:
        """Resolve by primary id first, then by ``layout_id`` slug."""
        store = self._stores.layouts
        layout = store.get(key) or next(
            (item for item in store.list() if item.layout_id == key), None
        )
        if (
            layout is None
            or (not include_inactive and not layout.is_active)
            or not ctx.sees(
                is_public=layout.is_public,
                organization_id=layout.organization_id,
            )
        ):
            raise NotFoundError("Layout", key)
        return layout

    def _unique_layout_id(self, name: str, taken: Set[str]) -> str:
        base = layout_slug(name)
        candidate, n = base, 2
        while candidate in taken:
            candidate = f"{base}_{n}"
            n += 1
        taken.add(candidate)
        return candidate

    def _build(
        self,
        ctx: RequestContext,
        data: Mapping[str, Any],
        taken: Set[str],
    ) -> ReportLayout:
        """Validate and construct a layout without writing it."""
        payload = {k: v for k, v in data.items() if k not in PROTECTED_KEYS}

        name = str(payload.get("layout_name") or "").strip()
        errors: List[str] = [] if name else ["Missing layout_name"]
        result = validate_layout_schema(payload.get("layout_schema"))
        errors.extend(result.errors)
        if errors:
            raise SchemaValidationError(errors, subject="Layout")

        payload["layout_name"] = name
        payload["layout_id"] = self._unique_layout_id(name, taken)
        payload["created_by"] = ctx.user_id
        payload.setdefault("organization_id", ctx.organization_id)

        return build_or_raise(ReportLayout, payload, subject="Layout")

    def _insert(self, ctx: RequestContext, data: Mapping[str, Any]) -> ReportLayout:
        taken = {item.layout_id for item in self._stores.layouts.list()}
        return self._stores.layouts.save(self._build(ctx, data, taken))

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    @service_boundary("layouts.create")
    def create(self, ctx: RequestContext, data: Mapping[str, Any]) -> ReportLayout:
        stored = self._insert(ctx, data)
        logger.info("Layout created id=%s layout_id=%s", stored.id, stored.layout_id)
        return stored

    @service_boundary("layouts.get")
    def get(self, ctx: RequestContext, key: str) -> ReportLayout:
        return self.load(ctx, key)

    @service_boundary("layouts.list")
    def list(
        self,
        ctx: RequestContext,
        *,
        compatible_category: Optional[str] = None,
        search: Optional[str] = None,
        include_inactive: bool = False,
    ) -> List[ReportLayout]:
        layouts = [
            item
            for item in self._stores.layouts.list()
            if (include_inactive or item.is_active)
            and ctx.sees(is_public=item.is_public, organization_id=item.organization_id)
        ]
        if compatible_category is not None:
            layouts = [l for l in layouts if l.is_compatible_with(compatible_category)]
        if search:
            needle = search.lower()
            layouts = [
                l
                for l in layouts
                if needle in l.layout_name.lower()
                or needle in (l.description or "").lower()
            ]
        return sorted(layouts, key=lambda l: l.created_at, reverse=True)

    @service_boundary("layouts.update")
    def update(
        self,
        ctx: RequestContext,
        key: str,
        changes: Mapping[str, Any],
    ) -> ReportLayout:
        existing = self.load(ctx, key)
        safe = {k: v for k, v in changes.items() if k not in PROTECTED_KEYS}

        if "layout_schema" in safe:
            _ensure_valid(safe["layout_schema"])
        if "layout_name" in safe and not str(safe["layout_name"] or "").strip():
            raise SchemaValidationError(["Missing layout_name"], subject="Layout")

        merged = existing.model_dump(mode="json")
        merged.update(safe)
        merged["updated_at"] = _utcnow()

        stored = self._stores.layouts.save(
            build_or_raise(ReportLayout, merged, subject="Layout")
        )
        logger.info("Layout updated id=%s", stored.id)
        return stored

    @service_boundary("layouts.deactivate")
    def deactivate(self, ctx: RequestContext, key: str) -> ReportLayout:
        existing = self.load(ctx, key)
        stored = self._stores.layouts.save(
            existing.model_copy(update={"is_active": False, "updated_at": _utcnow()})
        )
        logger.info("Layout deactivated id=%s", stored.id)
        return stored

    @service_boundary("layouts.clone")
    def clone(self, ctx: RequestContext, key: str, new_name: str) -> ReportLayout:
        original = self.load(ctx, key)
        name = (new_name or "").strip() or f"{original.layout_name} (Copy)"

        source = original.model_dump(mode="json")
        stored = self._insert(
            ctx,
            {
                "layout_name": name,
                "description": source["description"],
                "compatible_template_types": source["compatible_template_types"],
                "layout_schema": source["layout_schema"],
                "is_public": False,
                "organization_id": ctx.organization_id,
            },
        )
        logger.info("Layout cloned from=%s to=%s", original.id, stored.id)
        return stored

    # ------------------------------------------------------------------
    # Export / import
    # ------------------------------------------------------------------

    @staticmethod
    def _bundle_checksum(layouts: List[Dict[str, Any]]) -> str:
        return compute_checksum(canonical_json_bytes(layouts))

    @service_boundary("layouts.export")
    def export_layouts(
        self,
        ctx: RequestContext,
        keys: Optional[Iterable[str]] = None,
    ) -> Dict[str, Any]:
        if keys is None:
            selected = [
                item
                for item in self._stores.layouts.list()
                if item.is_active
                and ctx.sees(is_public=item.is_public, organization_id=item.organization_id)
            ]
            selected.sort(key=lambda l: l.layout_id)
        else:
            selected = [self.load(ctx, key) for key in keys]

        exported = [
            {k: v for k, v in item.model_dump(mode="json").items() if k in EXPORTED_KEYS}
            for item in selected
        ]
        return {
            "format_version": BUNDLE_FORMAT_VERSION,
            "exported_at": _utcnow().isoformat(),
            "layouts": exported,
            "checksum": self._bundle_checksum(exported),
        }

    @service_boundary("layouts.import")
    def import_bundle(
        self,
        ctx: RequestContext,
        bundle: Mapping[str, Any],
    ) -> List[ReportLayout]:
        layouts = bundle.get("layouts")
        if not isinstance(layouts, list) or not layouts:
            raise SchemaValidationError(
                ["Invalid bundle: missing layouts"], subject="Import"
            )

        if bundle.get("format_version") != BUNDLE_FORMAT_VERSION:
            raise SchemaValidationError(
                [f"Unsupported bundle format_version: {bundle.get('format_version')}"],
                subject="Import",
            )

        checksum = bundle.get("checksum")
        if checksum != self._bundle_checksum(layouts):
            raise SchemaValidationError(
                ["Checksum mismatch: bundle contents were modified"],
                subject="Import",
            )

        taken = {item.layout_id for item in self._stores.layouts.list()}
        errors: List[str] = []
        prepared: List[ReportLayout] = []
        for idx, item in enumerate(layouts, start=1):
            if not isinstance(item, Mapping):
                errors.append(f"Layout {idx}: must be an object")
                continue
            try:
                prepared.append(
                    self._build(
                        ctx,
                        {
                            **{k: v for k, v in item.items() if k in EXPORTED_KEYS},
                            "is_public": False,
                            "organization_id": ctx.organization_id,
                        },
                        taken,
                    )
                )
            except SchemaValidationError as exc:
                errors.extend(f"Layout {idx}: {err}" for err in exc.errors)
        if errors:
            raise SchemaValidationError(errors, subject="Import")

        imported = [self._stores.layouts.save(layout) for layout in prepared]
        logger.info("Imported %d layout(s)", len(imported))
        return imported
