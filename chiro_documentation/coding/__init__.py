"""
Coding Layer - Billing Code Suggestions

Submodules:
    risk.py        → Deterministic specificity / coding-risk / modifier heuristics
    code_ranker.py → Suggestion batches, confidence blending, provider decisions

Dependency Rule:
    This layer depends on: core, clients (capabilities), repository
    This layer is used by: compliance (region counting), pipeline

Author: Shubham Singh
Date: October 2026
"""

from chiro_documentation.coding.code_ranker import CodeSuggestionRanker
from chiro_documentation.coding.risk import (
    CodingTables,
    assess_coding_risk,
    blend_confidence,
    check_code_specificity,
    count_spinal_regions,
    extract_relevant_text,
    suggest_modifiers,
)

__all__ = [
    "CodeSuggestionRanker",
    "CodingTables",
    "assess_coding_risk",
    "blend_confidence",
    "check_code_specificity",
    "count_spinal_regions",
    "extract_relevant_text",
    "suggest_modifiers",
]
