"""
Style Application - Provider Preferences Applied to a SOAP Draft

This module rewrites an AI-generated SOAP draft using a provider's learned
preferences and reports how many of them could be applied.

Dispatch by category:
    terminology → case-insensitive replacement in every section
    style       → `useBulletPoints` turns a prose plan into bullets
    format      → recorded when a template is present (no text change)
    phrases     → `closingPhrase` appended to the plan after a blank line
    template / depth → considered but never applied

Match score:
    min(1.0, applied_count / number_of_preferences_considered)

    Several matching pairs in one terminology preference each count once,
    so the raw ratio can exceed 1. Unlike the raw ratio, the stored score
    is capped at 1.0 to stay inside the [0, 1] range of
    `StyleApplication.match_score`.

Known quirks kept on purpose:
    - A terminology pair only counts (and is tagged) when the ORIGINAL
      subjective section contains it, case-sensitively. The replacement
      itself still runs case-insensitively over all four sections.

Author: Shubham Singh
Date: October 2026
"""

import re
from typing import List, Sequence

from loguru import logger

from chiro_documentation.core.enums import PreferenceCategory, SoapSection
from chiro_documentation.core.models import ProviderPreference, SoapContent, StyleApplication
from chiro_documentation.core.preference_values import (
    FormatValue,
    PhrasesValue,
    StyleValue,
    TerminologyValue,
)

# Sentence boundary used when splitting a plan into bullets
SENTENCE_BREAK = re.compile(r"\. (?=[A-Z])")

BULLET_MARKER = "•"
LIST_MARKERS = (BULLET_MARKER, "-")


def apply_provider_style(
    content: SoapContent, preferences: Sequence[ProviderPreference]
) -> StyleApplication:
    """
    Apply preferences in the given order and score the result.

    Args:
        content: Draft sections as returned by the SOAP-generation capability
        preferences: Preferences to consider, usually sorted by confidence

    Returns:
        StyleApplication with the rewritten sections, match score and the
        tags of the elements that were applied

    Example:
        >>> prefs = [closing_phrase_pref]  # {"closingPhrase": "Call with questions."}
        >>> result = apply_provider_style(SoapContent(plan="Adjust L5."), prefs)
        >>> result.content.plan
        'Adjust L5.\\n\\nCall with questions.'
        >>> result.match_score, result.applied_elements
        (1.0, ['phrases:closing'])
    """
    working = content
    applied_elements: List[str] = []
    applied_count = 0

    for pref in preferences:
        value = pref.value

        if pref.category == PreferenceCategory.TERMINOLOGY and isinstance(value, TerminologyValue):
            for original, replacement in value.replacements.items():
                if not original:
                    continue
                if content.subjective and original in content.subjective:
                    applied_count += 1
                    applied_elements.append(f"terminology:{pref.key}")
                working = _replace_everywhere(working, content, original, replacement)

        elif pref.category == PreferenceCategory.STYLE and isinstance(value, StyleValue):
            if pref.key == "useBulletPoints" and value.enabled:
                bulleted = _as_bullets(working.plan)
                if bulleted is not None:
                    working = working.with_section(SoapSection.PLAN, bulleted)
                    applied_count += 1
                    applied_elements.append("style:bulletPoints")

        elif pref.category == PreferenceCategory.FORMAT and isinstance(value, FormatValue):
            if value.template:
                applied_count += 1
                applied_elements.append(f"format:{_format_target(pref.key)}")

        elif pref.category == PreferenceCategory.PHRASES and isinstance(value, PhrasesValue):
            if value.closing_phrase and content.plan:
                working = working.with_section(
                    SoapSection.PLAN, f"{working.plan}\n\n{value.closing_phrase}"
                )
                applied_count += 1
                applied_elements.append("phrases:closing")

    total = len(preferences)
    match_score = min(1.0, applied_count / total) if total else 0.0

    logger.debug(
        f"Style applied | Preferences: {total} | Applied: {applied_count} | "
        f"Score: {match_score:.2f}"
    )
    return StyleApplication(
        content=working, match_score=match_score, applied_elements=applied_elements
    )


def _replace_everywhere(
    working: SoapContent, original_content: SoapContent, original: str, replacement: str
) -> SoapContent:
    """Replace in each section whose original text contains the term (case-sensitive test)."""
    pattern = re.compile(re.escape(original), re.IGNORECASE)
    for section, source_text in original_content.items():
        if source_text and original in source_text:
            current = working.get(section) or source_text
            working = working.with_section(section, pattern.sub(lambda _m: replacement, current))
    return working


def _as_bullets(plan):
    if not plan or any(marker in plan for marker in LIST_MARKERS):
        return None
    sentences = SENTENCE_BREAK.split(plan)
    if len(sentences) <= 1:
        return None
    return "\n".join(f"{BULLET_MARKER} {s.strip()}" for s in sentences)


def _format_target(key: str) -> str:
    # "objectiveFormat" -> "objective"
    return key[: -len("Format")] if key.endswith("Format") and key != "Format" else key
