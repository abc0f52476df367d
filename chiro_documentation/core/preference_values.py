"""
Preference Value Payloads

Every learned provider preference carries a JSON value whose shape depends on
its category. Rather than an open dictionary, each category has its own
pydantic model, so the draft engine and the learner agree on an explicit,
validated contract:

    terminology → TerminologyValue  {"replacements": {original: replacement}}
    style       → StyleValue        {"enabled", "useBulletPoints", "useNumberedLists", "frequency"}
    format      → FormatValue       {"template"}
    template    → TemplateValue     {"template", "sections"}
    phrases     → PhrasesValue      {"phrases", "closingPhrase"}
    depth       → DepthValue        {"level", "avgWordCount", "sectionCounts"}

The camelCase aliases are the persisted wire keys; Python code uses the
snake_case attribute names.

Usage:
    from chiro_documentation.core.preference_values import parse_preference_value

    value = parse_preference_value(
        PreferenceCategory.STYLE, {"useBulletPoints": True, "enabled": True}
    )
    value.use_bullet_points  # True

Author: Shubham Singh
Date: October 2026
"""

from typing import Any, Dict, List, Mapping, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from chiro_documentation.core.enums import DocumentationDepth, PreferenceCategory
from chiro_documentation.core.exceptions import PayloadValidationError


# =============================================================================
# STAGE 1: BASE PAYLOAD
# =============================================================================


class PreferenceValueBase(BaseModel):
    """Common configuration for all preference payloads."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    def to_payload(self) -> Dict[str, Any]:
        """Serialize with the persisted camelCase keys, omitting unset options."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# =============================================================================
# STAGE 2: CATEGORY VARIANTS
# =============================================================================


class TerminologyValue(PreferenceValueBase):
    """Word/phrase replacements the provider consistently makes."""

    replacements: Dict[str, str] = Field(
        default_factory=dict, description="Map of AI wording to provider wording"
    )


class StyleValue(PreferenceValueBase):
    """Formatting habits (bullets, numbered lists) and how often they occur."""

    enabled: bool = Field(default=False, description="Whether the style is switched on")
    use_bullet_points: Optional[bool] = Field(default=None, alias="useBulletPoints")
    use_numbered_lists: Optional[bool] = Field(default=None, alias="useNumberedLists")
    frequency: Optional[float] = Field(
        default=None, ge=0.0, le=1.0, description="Share of notes using the style"
    )


class FormatValue(PreferenceValueBase):
    """Section-level template for a specific section format."""

    template: Optional[str] = None


class TemplateValue(PreferenceValueBase):
    """Whole-note template with optional per-section bodies."""

    template: Optional[str] = None
    sections: Dict[str, str] = Field(default_factory=dict)


class PhrasesValue(PreferenceValueBase):
    """Phrases the provider likes to add, plus an optional closing line for the plan."""

    phrases: List[str] = Field(default_factory=list)
    closing_phrase: Optional[str] = Field(default=None, alias="closingPhrase")

    @field_validator("phrases")
    @classmethod
    def strip_empty_phrases(cls, v: List[str]) -> List[str]:
        return [p for p in v if p and p.strip()]


class DepthValue(PreferenceValueBase):
    """Typical documentation length derived from historical notes."""

    level: DocumentationDepth
    avg_word_count: int = Field(default=0, ge=0, alias="avgWordCount")
    section_counts: Dict[str, int] = Field(default_factory=dict, alias="sectionCounts")


PreferenceValue = Union[
    TerminologyValue, StyleValue, FormatValue, TemplateValue, PhrasesValue, DepthValue
]

VALUE_TYPES: Mapping[PreferenceCategory, Type[PreferenceValueBase]] = {
    PreferenceCategory.TERMINOLOGY: TerminologyValue,
    PreferenceCategory.STYLE: StyleValue,
    PreferenceCategory.FORMAT: FormatValue,
    PreferenceCategory.TEMPLATE: TemplateValue,
    PreferenceCategory.PHRASES: PhrasesValue,
    PreferenceCategory.DEPTH: DepthValue,
}


# =============================================================================
# STAGE 3: PARSING
# =============================================================================


def parse_preference_value(
    category: Union[PreferenceCategory, str], payload: Union[PreferenceValueBase, Mapping[str, Any]]
) -> PreferenceValue:
    """
    Validate a raw payload against the variant for its category.

    Args:
        category: Preference category (enum or its string value)
        payload: Raw mapping (camelCase or snake_case keys) or an existing model

    Returns:
        The typed payload for the category

    Raises:
        PayloadValidationError: If the category is unknown or the payload
            does not match the variant's shape
    """
    try:
        category = PreferenceCategory(category)
    except ValueError:
        raise PayloadValidationError("preference", f"unknown category {category!r}")

    value_type = VALUE_TYPES[category]
    if isinstance(payload, value_type):
        return payload
    if isinstance(payload, PreferenceValueBase):
        payload = payload.to_payload()

    try:
        return value_type.model_validate(dict(payload))
    except (ValidationError, TypeError, ValueError) as e:
        raise PayloadValidationError(category.value, str(e)) from e
