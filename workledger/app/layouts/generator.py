"""
Layout generator.

Pure, deterministic mapping from a template schema to a suggested layout:

- ``header``        first block, seeded with the template name and bound
                    (auto_extract_all) to the first template section
- ``detail_entry``  one per later section that is not photo-dominated and
                    has regular fields; auto_extract_all to that section
- ``photo_grid``    one per photo field, grouped after the detail blocks,
                    bound with filter_by_field
- ``signature_box`` single trailing block when any signature field exists

The output carries no timestamps or random identifiers: calling the
generator twice on the same template yields identical results.
Generation and persistence are decoupled; callers preview the result
(summary, suggested name) and commit it through the layout registry.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from workledger.app.core.errors import SchemaValidationError
from workledger.app.schemas.layout import (
    BlockType,
    LayoutSchema,
    LayoutSection,
    PageConfig,
)
from workledger.app.schemas.template import FieldType, Template, TemplateSection, field_path

AUTO_EXTRACT_ALL = "auto_extract_all"

_REGULAR_EXCLUDED = frozenset({FieldType.PHOTO, FieldType.SIGNATURE})


class GenerationSummary(BaseModel):
    total_sections: int
    block_counts: Dict[str, int]
    has_header: bool
    has_signatures: bool

    model_config = ConfigDict(frozen=True)


class GeneratedLayout(BaseModel):
    generated_from: str
    template_name: str
    suggested_name: str
    suggested_description: str
    compatible_template_types: List[str] = Field(default_factory=list)
    layout_schema: LayoutSchema
    summary: GenerationSummary

    def as_create_payload(self) -> Dict[str, object]:
        """Shape accepted by ``LayoutRegistry.create``."""
        return {
            "layout_name": self.suggested_name,
            "description": self.suggested_description,
            "compatible_template_types": list(self.compatible_template_types),
            "layout_schema": self.layout_schema.model_dump(mode="json"),
        }


# ---------------------------------------------------------------------------
# Naming
# ---------------------------------------------------------------------------


def suggest_layout_name(template: Template) -> str:
    name = re.sub(r"template", "", template.template_name, count=1, flags=re.IGNORECASE)
    name = re.sub(r"report", "", name, count=1, flags=re.IGNORECASE)
    name = re.sub(r"\s+", " ", name).strip(" -")
    return f"{name or template.template_name} - Layout"


def suggest_layout_description(template: Template) -> str:
    count = len(template.fields_schema.sections)
    return (
        f"Auto-generated layout for {template.template_name}. "
        f"Contains {count} sections with proper field bindings."
    )


# ---------------------------------------------------------------------------
# Block builders
# ---------------------------------------------------------------------------


def _is_photo_dominated(section: TemplateSection) -> bool:
    if not section.fields:
        return False
    photos = sum(1 for f in section.fields if f.field_type == FieldType.PHOTO)
    return photos * 2 > len(section.fields)


def _header_block(template: Template, first: TemplateSection) -> LayoutSection:
    return LayoutSection(
        section_id="header",
        block_type=BlockType.HEADER.value,
        content={"title": template.template_name},
        options={"show_logo": True},
        binding_rules={"mode": AUTO_EXTRACT_ALL, "template_section": first.section_id},
    )


def _detail_block(section: TemplateSection) -> LayoutSection:
    has_textarea = any(f.field_type == FieldType.TEXTAREA for f in section.fields)
    return LayoutSection(
        section_id=f"{section.section_id}_block",
        block_type=BlockType.DETAIL_ENTRY.value,
        content={"title": section.section_name},
        options={"columns": 1 if has_textarea else 2},
        binding_rules={"mode": AUTO_EXTRACT_ALL, "template_section": section.section_id},
    )


def _photo_block(section: TemplateSection, field_id: str, title: str) -> LayoutSection:
    return LayoutSection(
        section_id=f"{section.section_id}_{field_id}_photos",
        block_type=BlockType.PHOTO_GRID.value,
        content={"title": title or "Photos"},
        options={"columns": 2, "show_timestamps": True, "show_captions": True},
        binding_rules={"filter_by_field": field_path(section.section_id, field_id)},
    )


def _signature_block() -> LayoutSection:
    return LayoutSection(
        section_id="signatures",
        block_type=BlockType.SIGNATURE_BOX.value,
        content={"title": "Signatures & Acknowledgment"},
        options={"layout": "two_column"},
        binding_rules={},
    )


# ---------------------------------------------------------------------------
# Generator
# ---------------------------------------------------------------------------


def generate_layout(
    template: Template,
    *,
    page: Optional[PageConfig] = None,
) -> GeneratedLayout:
    sections = template.fields_schema.sections
    if not sections:
        raise SchemaValidationError(
            ["Template has no sections to generate a layout from"],
            subject="Layout generation",
        )

    blocks: List[LayoutSection] = [_header_block(template, sections[0])]
    photo_blocks: List[LayoutSection] = []
    has_signature = False

    for index, section in enumerate(sections):
        regular = [f for f in section.fields if f.field_type not in _REGULAR_EXCLUDED]

        if index > 0 and regular and not _is_photo_dominated(section):
            blocks.append(_detail_block(section))

        for field in section.fields:
            if field.field_type == FieldType.PHOTO:
                photo_blocks.append(_photo_block(section, field.field_id, field.field_name))
            elif field.field_type == FieldType.SIGNATURE:
                has_signature = True

    blocks.extend(photo_blocks)
    if has_signature:
        blocks.append(_signature_block())

    counts: Dict[str, int] = {}
    for block in blocks:
        counts[block.block_type] = counts.get(block.block_type, 0) + 1

    return GeneratedLayout(
        generated_from=template.template_id,
        template_name=template.template_name,
        suggested_name=suggest_layout_name(template),
        suggested_description=suggest_layout_description(template),
        compatible_template_types=(
            [template.contract_category] if template.contract_category else []
        ),
        layout_schema=LayoutSchema(page=page or PageConfig(), sections=blocks),
        summary=GenerationSummary(
            total_sections=len(blocks),
            block_counts=counts,
            has_header=True,
            has_signatures=has_signature,
        ),
    )
