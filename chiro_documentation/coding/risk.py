"""
Coding Risk Heuristics - Deterministic Checks on Suggested Codes

Pure functions over a code and the SOAP text it was suggested for. None of
them call the AI capability; they re-check what the model proposed against
what the documentation actually says.

Checks:
    count_spinal_regions    → Region count from keywords and C/T/L/S notation
    check_code_specificity  → Known unspecified ICD-10 codes and alternatives
    assess_coding_risk      → Up/down-coding flags and audit-risk level
    suggest_modifiers       → 50 / 59 / GP / AT modifiers for CPT codes
    extract_relevant_text   → First supporting sentence for a code
    blend_confidence        → Model confidence blended with acceptance history

CMT tiers (chiropractic manipulative treatment):
    98940 → 1-2 regions | 98941 → 3-4 regions | 98942 → 5+ regions

    Fewer regions than the billed tier's minimum → upcoding risk
    (high for the top tier, medium otherwise; the lowest tier never upcodes).
    Enough regions for the next tier up → downcoding risk (low).

Author: Shubham Singh
Date: October 2026
"""

import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

from chiro_documentation.core.constants import (
    BILATERAL_PROCEDURE_CODES,
    CMT_MINIMUM_REGIONS,
    CODE_KEYWORDS,
    COMPLEX_DOCUMENTATION_MIN_CHARS,
    COMPLEXITY_KEYWORDS,
    DISTINCT_SERVICE_KEYWORDS,
    HIGH_COMPLEXITY_EM_CODE,
    MODIFIER_TEXTS,
    SPINAL_REGIONS,
    SUPPORTING_TEXT_MAX_CHARS,
    THERAPY_CODE_PREFIXES,
    UNSPECIFIED_CODES,
)
from chiro_documentation.core.enums import AuditRiskLevel, CodeType, SuggestionStatus
from chiro_documentation.core.models import (
    AcceptanceStats,
    AlternativeCode,
    CodeSuggestion,
    CodingRisk,
    ModifierSuggestion,
    SpecificityIssue,
)

MODEL_WEIGHT = 0.7
HISTORY_WEIGHT = 0.3

SENTENCE_SPLIT = re.compile(r"[.!?]+")

# Level notation raises the region count to at least the given floor.
REGION_NOTATION_FLOORS: Tuple[Tuple[re.Pattern, Tuple[str, ...], int], ...] = (
    (re.compile(r"\bc\d"), ("c-spine",), 1),
    (re.compile(r"\bt\d"), ("t-spine",), 2),
    (re.compile(r"\bl\d"), ("l-spine",), 3),
    (re.compile(r"\bs\d"), ("sacrum", "si joint"), 4),
)


# =============================================================================
# STAGE 1: INJECTABLE TABLES
# =============================================================================


@dataclass(frozen=True)
class CodingTables:
    """Lookup data the heuristics read; tests can pass smaller tables."""

    unspecified_codes: Mapping[str, Tuple[str, Tuple[Tuple[str, str, str], ...]]]
    code_keywords: Mapping[str, Tuple[str, ...]]
    spinal_regions: Tuple[str, ...]
    cmt_minimum_regions: Mapping[str, int]
    bilateral_codes: Tuple[str, ...]
    therapy_prefixes: Tuple[str, ...]
    modifier_texts: Mapping[str, Tuple[str, str]]

    @classmethod
    def default(cls) -> "CodingTables":
        return cls(
            unspecified_codes=UNSPECIFIED_CODES,
            code_keywords=CODE_KEYWORDS,
            spinal_regions=SPINAL_REGIONS,
            cmt_minimum_regions=CMT_MINIMUM_REGIONS,
            bilateral_codes=BILATERAL_PROCEDURE_CODES,
            therapy_prefixes=THERAPY_CODE_PREFIXES,
            modifier_texts=MODIFIER_TEXTS,
        )


# =============================================================================
# STAGE 2: DOCUMENTATION SIGNALS
# =============================================================================


def count_spinal_regions(text: str, regions: Iterable[str] = SPINAL_REGIONS) -> int:
    """
    Count distinct spinal regions named in the text.

    Each region keyword counts once. Level notation (C5, T4, L5, S1) or the
    region shorthand then raises the count to a floor: C → 1, T → 2, L → 3,
    S → 4. The floors are minimums, not additions.

    Example:
        >>> count_spinal_regions("Cervical and lumbar restrictions")
        2
        >>> count_spinal_regions("Adjusted L5")
        3
    """
    lowered = (text or "").lower()
    count = sum(1 for region in regions if region in lowered)
    for pattern, phrases, floor in REGION_NOTATION_FLOORS:
        if pattern.search(lowered) or any(p in lowered for p in phrases):
            count = max(count, floor)
    return count


def extract_relevant_text(
    soap_text: str, code: str, tables: Optional[CodingTables] = None
) -> Optional[str]:
    """First sentence mentioning one of the code's keywords, capped at 200 chars."""
    tables = tables or CodingTables.default()
    keywords = tables.code_keywords.get(code)
    if not keywords:
        return None

    for sentence in SENTENCE_SPLIT.split(soap_text or ""):
        lowered = sentence.lower()
        if any(keyword in lowered for keyword in keywords):
            return sentence.strip()[:SUPPORTING_TEXT_MAX_CHARS]
    return None


# =============================================================================
# STAGE 3: CODE CHECKS
# =============================================================================


def check_code_specificity(
    code: str, code_type: Union[CodeType, str], tables: Optional[CodingTables] = None
) -> Optional[SpecificityIssue]:
    """Return the specificity issue for a known unspecified ICD-10 code, else None."""
    if CodeType(code_type) != CodeType.ICD10:
        return None
    tables = tables or CodingTables.default()
    entry = tables.unspecified_codes.get(code)
    if entry is None:
        return None

    issue, alternatives = entry
    return SpecificityIssue(
        issue=issue,
        alternatives=[AlternativeCode(code=c, description=d, reason=r) for c, d, r in alternatives],
    )


def assess_coding_risk(
    code: str,
    soap_text: str,
    code_type: Union[CodeType, str],
    description: str = "",
    tables: Optional[CodingTables] = None,
) -> CodingRisk:
    """
    Flag codes the documentation does not support at the billed level.

    CPT:
        CMT codes are compared against the region count (see module docs).
        99215 with under 500 characters and no "complex"/"multiple" wording
        is high-risk upcoding.
    ICD-10:
        A code whose code or description says "acute" needs "acute" in the
        text. A "chronic" code with "acute" but no "chronic" in the text is
        medium-risk upcoding.
    """
    tables = tables or CodingTables.default()
    lowered = (soap_text or "").lower()
    upcoding = False
    downcoding = False
    audit = AuditRiskLevel.LOW

    if CodeType(code_type) == CodeType.CPT:
        tiers = sorted(tables.cmt_minimum_regions.items(), key=lambda item: item[1])
        tier_codes = [tier_code for tier_code, _ in tiers]
        if code in tier_codes:
            position = tier_codes.index(code)
            minimum = tiers[position][1]
            regions = count_spinal_regions(lowered, tables.spinal_regions)
            is_top = position == len(tiers) - 1

            if position > 0 and regions < minimum:
                upcoding = True
                audit = AuditRiskLevel.HIGH if is_top else AuditRiskLevel.MEDIUM
            elif not is_top and regions >= tiers[position + 1][1]:
                downcoding = True
                audit = AuditRiskLevel.LOW

        if code == HIGH_COMPLEXITY_EM_CODE:
            if (
                not any(word in lowered for word in COMPLEXITY_KEYWORDS)
                and len(lowered) < COMPLEX_DOCUMENTATION_MIN_CHARS
            ):
                upcoding = True
                audit = AuditRiskLevel.HIGH

    elif CodeType(code_type) == CodeType.ICD10:
        implied = f"{code} {description}".lower()
        if "acute" in implied and "acute" not in lowered:
            upcoding = True
            audit = AuditRiskLevel.MEDIUM
        if "chronic" in implied and "acute" in lowered and "chronic" not in lowered:
            upcoding = True
            audit = AuditRiskLevel.MEDIUM

    return CodingRisk(upcoding_risk=upcoding, downcoding_risk=downcoding, audit_risk=audit)


def suggest_modifiers(
    cpt_code: str, soap_text: str, tables: Optional[CodingTables] = None
) -> List[ModifierSuggestion]:
    """
    Modifiers a CPT code likely needs, in the order 50, 59, GP, AT.

        50 → bilateral-capable code and text says bilateral (or left and right)
        59 → text says separate or distinct
        GP → therapy-family code (971xx, 989xx)
        AT → CMT code
    """
    tables = tables or CodingTables.default()
    lowered = (soap_text or "").lower()
    modifiers: List[str] = []

    if cpt_code in tables.bilateral_codes:
        if "bilateral" in lowered or ("left" in lowered and "right" in lowered):
            modifiers.append("50")
    if any(word in lowered for word in DISTINCT_SERVICE_KEYWORDS):
        modifiers.append("59")
    if cpt_code.startswith(tuple(tables.therapy_prefixes)):
        modifiers.append("GP")
    if cpt_code in tables.cmt_minimum_regions:
        modifiers.append("AT")

    suggestions = []
    for modifier in modifiers:
        description, reason = tables.modifier_texts[modifier]
        suggestions.append(
            ModifierSuggestion(modifier=modifier, description=description, reason=reason)
        )
    return suggestions


# =============================================================================
# STAGE 4: PROVIDER HISTORY
# =============================================================================


def blend_confidence(model_confidence: float, history: Optional[AcceptanceStats]) -> float:
    """
    Blend model confidence with the provider's acceptance rate for the code.

    adjusted = 0.7 * model + 0.3 * accepted / (accepted + rejected)

    Example:
        >>> round(blend_confidence(0.8, AcceptanceStats(accepted=3, rejected=1)), 3)
        0.785
    """
    if history is None or history.rate is None:
        return model_confidence
    return MODEL_WEIGHT * model_confidence + HISTORY_WEIGHT * history.rate


def build_acceptance_history(suggestions: Iterable[CodeSuggestion]) -> Dict[str, AcceptanceStats]:
    """
    Tally decided suggestions by "{type}:{code}".

    ACCEPTED and MODIFIED count as accepted, REJECTED as rejected; PENDING
    suggestions are ignored.
    """
    counts: Dict[str, List[int]] = {}
    for suggestion in suggestions:
        if suggestion.is_accepted:
            counts.setdefault(suggestion.history_key, [0, 0])[0] += 1
        elif suggestion.status == SuggestionStatus.REJECTED:
            counts.setdefault(suggestion.history_key, [0, 0])[1] += 1

    return {
        key: AcceptanceStats(accepted=accepted, rejected=rejected)
        for key, (accepted, rejected) in counts.items()
    }
