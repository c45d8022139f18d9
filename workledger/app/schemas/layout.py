"""
Report layout schema model.

A layout is a page configuration plus an ordered list of blocks. Each
block declares its type, literal content overrides, rendering options
and the binding rules describing where runtime data for the block comes
from.

The block type set is FROZEN. Adding a block type means adding an enum
member here AND a resolver entry in ``workledger.app.reports.resolvers``.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


class BlockType(str, Enum):
    HEADER = "header"
    DETAIL_ENTRY = "detail_entry"
    TEXT_SECTION = "text_section"
    CHECKLIST = "checklist"
    TABLE = "table"
    PHOTO_GRID = "photo_grid"
    SIGNATURE_BOX = "signature_box"
    METRICS_CARDS = "metrics_cards"


BLOCK_TYPE_VALUES = frozenset(t.value for t in BlockType)

PAGE_SIZES = ("A4", "A3", "Letter")
PAGE_ORIENTATIONS = ("portrait", "landscape")
MARGIN_SIDES = ("top", "left", "right", "bottom")


class PageMargins(BaseModel):
    top: float = 20
    left: float = 20
    right: float = 20
    bottom: float = 20

    model_config = ConfigDict(frozen=True)


class PageConfig(BaseModel):
    size: Literal["A4", "A3", "Letter"] = "A4"
    orientation: Literal["portrait", "landscape"] = "portrait"
    margins: PageMargins = Field(default_factory=PageMargins)

    model_config = ConfigDict(frozen=True)


class LayoutSection(BaseModel):
    """
    One block of a layout.

    ``block_type`` is kept as a plain string so that layouts which bypass
    author-time validation (e.g. legacy rows) still load; unknown types
    are resolved into placeholders at assembly time.
    """

    section_id: str
    block_type: str
    content: Dict[str, Any] = Field(default_factory=dict)
    options: Dict[str, Any] = Field(default_factory=dict)
    binding_rules: Dict[str, Any] = Field(default_factory=dict)
    show_if: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(extra="allow")


class LayoutSchema(BaseModel):
    page: PageConfig = Field(default_factory=PageConfig)
    sections: List[LayoutSection] = Field(default_factory=list)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReportLayout(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    layout_id: str
    layout_name: str
    description: Optional[str] = None
    compatible_template_types: List[str] = Field(default_factory=list)
    layout_schema: LayoutSchema

    is_public: bool = True
    is_active: bool = True
    organization_id: Optional[str] = None
    version: str = "1.0"
    created_by: Optional[str] = None

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    model_config = ConfigDict(extra="ignore")

    def is_compatible_with(self, category: Optional[str]) -> bool:
        if not self.compatible_template_types or category is None:
            return True
        return category in self.compatible_template_types


def layout_slug(name: str) -> str:
    """Lowercase, underscore-separated slug used for ``layout_id``."""
    slug = re.sub(r"[^a-z0-9]+", "_", name.lower())
    return slug.strip("_") or "layout"
