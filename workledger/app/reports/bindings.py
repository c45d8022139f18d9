"""
Binding rule variants.

A layout section's ``binding_rules`` mapping is parsed into exactly one
closed variant:

    {}                                                -> BlockDefault
    {"mode": "auto_extract_all", "template_section": s} -> AutoExtractAll
    {"template_section": s, "fields": [...]}          -> SectionFields
    {"filter_by_field": f}                            -> FilterByField
    {"source": "section.field"}                       -> SourcePath
    {"metrics": [{"label", "source", "unit"}]}        -> Metrics

Anything else is malformed and raises ``ResolutionError``; the assembler
turns that into an ``UnresolvedBlock`` placeholder.
"""

from __future__ import annotations

from typing import Any, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from workledger.app.core.errors import ResolutionError
from workledger.app.schemas.layout import LayoutSection

AUTO_EXTRACT_ALL = "auto_extract_all"


class BlockDefault(BaseModel):
    kind: Literal["default"] = "default"


class AutoExtractAll(BaseModel):
    kind: Literal["auto_extract_all"] = "auto_extract_all"
    template_section: str = Field(..., min_length=1)


class SectionFields(BaseModel):
    kind: Literal["template_section"] = "template_section"
    template_section: str = Field(..., min_length=1)
    fields: Optional[List[str]] = None


class FilterByField(BaseModel):
    kind: Literal["filter_by_field"] = "filter_by_field"
    field: str = Field(..., min_length=1)


class SourcePath(BaseModel):
    kind: Literal["source"] = "source"
    source: str = Field(..., min_length=1)


class MetricSpec(BaseModel):
    label: str = Field(..., min_length=1)
    source: str = Field(..., min_length=1)
    unit: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class Metrics(BaseModel):
    kind: Literal["metrics"] = "metrics"
    metrics: List[MetricSpec] = Field(..., min_length=1)


BindingRule = Union[
    BlockDefault,
    AutoExtractAll,
    SectionFields,
    FilterByField,
    SourcePath,
    Metrics,
]


def _build(section: LayoutSection, model: type, **data: Any) -> BindingRule:
    try:
        return model(**data)
    except ValidationError as exc:
        detail = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'rule'}: {err['msg']}"
            for err in exc.errors()
        )
        raise ResolutionError(
            section.section_id,
            section.block_type,
            f"malformed binding rule ({detail})",
        ) from exc


def parse_binding(section: LayoutSection) -> BindingRule:
    rules: Mapping[str, Any] = section.binding_rules

    if not rules:
        return BlockDefault()

    if "mode" in rules:
        if rules["mode"] != AUTO_EXTRACT_ALL:
            raise ResolutionError(
                section.section_id,
                section.block_type,
                f"unknown binding mode: {rules['mode']}",
            )
        return _build(section, AutoExtractAll, template_section=rules.get("template_section"))

    if "filter_by_field" in rules:
        return _build(section, FilterByField, field=rules["filter_by_field"])

    if "metrics" in rules:
        return _build(section, Metrics, metrics=rules["metrics"])

    if "source" in rules:
        return _build(section, SourcePath, source=rules["source"])

    if "template_section" in rules:
        return _build(
            section,
            SectionFields,
            template_section=rules["template_section"],
            fields=rules.get("fields"),
        )

    raise ResolutionError(
        section.section_id,
        section.block_type,
        f"unrecognized binding rule keys: {', '.join(sorted(rules))}",
    )
