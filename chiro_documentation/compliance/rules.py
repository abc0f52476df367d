"""
Compliance Rules - Deterministic Documentation Checks

This module holds the rule-based half of a compliance run. Every check is
a pure function of the note text and the injected rule tables; none of them
call the AI capability and none of them raise on malformed input (an empty
section simply produces the matching issue, or nothing).

Checks:
    1. Required elements  → MISSING_SECTION / MISSING_ELEMENT
    2. Medical necessity  → MEDICAL_NECESSITY / MISSING_GOALS
    3. Payer requirements → PAYER_REQUIREMENT
    4. Cloned note        → CLONED_NOTE (Jaccard word-set similarity)
    5. Code documentation → CODE_DOCUMENTATION (CMT regions, high-level E/M)

Scoring:
    compliance score = 100 - 25 per CRITICAL - 15 per ERROR
                           - 5 per WARNING - 1 per INFO   (floor 0)

Pipeline Position:
    CodeSuggestionRanker → [ComplianceChecks] → ComplianceEngine
                            ^^^^^^^^^^^^^^^^^^
                            You are here

Author: Shubham Singh
Date: October 2026
"""

from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from chiro_documentation.coding.risk import count_spinal_regions
from chiro_documentation.core.constants import (
    AUDIT_RISK_WEIGHTS,
    CMT_MINIMUM_REGIONS,
    COMPLIANCE_TIPS,
    CRITICAL_ELEMENTS,
    ELEMENT_EXAMPLES,
    ELEMENT_SUGGESTIONS,
    ELEMENT_VARIATIONS,
    GOAL_KEYWORDS,
    HIGH_LEVEL_EM_CODES,
    MEDICAL_NECESSITY_KEYWORDS,
    MEDICAL_NECESSITY_SUGGESTED_TEXT,
    PAYER_REQUIREMENTS,
    REQUIRED_ELEMENTS,
    SEVERITY_SCORE_DEDUCTIONS,
    SPINAL_REGIONS,
    TREATMENT_GOALS_SUGGESTED_TEXT,
)
from chiro_documentation.core.enums import (
    ComplianceIssueType,
    EncounterType,
    IssueSeverity,
    PayerType,
    SoapSection,
)
from chiro_documentation.core.models import ComplianceIssue, SoapContent

MIN_SECTION_CHARS = 10
MIN_CLONE_COMPARE_CHARS = 50
HIGH_LEVEL_EM_MIN_WORDS = 200

CMS_GUIDELINES = "CMS Documentation Guidelines"

# Keyword groups a high-level E/M note must each hit at least once.
EM_KEYWORD_GROUPS: Tuple[Tuple[str, ...], ...] = (
    ("history", "hx"),
    ("examination", "exam", "findings"),
    ("diagnosis", "assessment", "differential"),
)


# =============================================================================
# STAGE 1: INJECTABLE TABLES
# =============================================================================


@dataclass(frozen=True)
class ComplianceRules:
    """
    Static rule data for the compliance checks.

    What it does:
        Bundles every lookup table the checks read so a test (or a
        payer-specific deployment) can substitute smaller tables without
        touching module globals.

    Example:
        >>> rules = ComplianceRules.default()
        >>> rules.required_elements["DISCHARGE"]["assessment"]
        ('treatment outcomes', 'goal achievement')
    """

    required_elements: Mapping[str, Mapping[str, Tuple[str, ...]]]
    critical_elements: Mapping[str, Tuple[str, ...]]
    element_variations: Mapping[str, Tuple[str, ...]]
    necessity_keywords: Tuple[str, ...]
    goal_keywords: Tuple[str, ...]
    payer_requirements: Mapping[str, Tuple[str, Tuple[Tuple[str, str, str, bool], ...]]]
    audit_weights: Mapping[str, int]
    severity_deductions: Mapping[str, int]
    element_suggestions: Mapping[str, str]
    element_examples: Mapping[str, str]
    tips: Mapping[str, Tuple[str, ...]]
    spinal_regions: Tuple[str, ...]
    cmt_minimum_regions: Mapping[str, int]
    high_level_em_codes: Tuple[str, ...]

    @classmethod
    def default(cls) -> "ComplianceRules":
        return cls(
            required_elements=REQUIRED_ELEMENTS,
            critical_elements=CRITICAL_ELEMENTS,
            element_variations=ELEMENT_VARIATIONS,
            necessity_keywords=MEDICAL_NECESSITY_KEYWORDS,
            goal_keywords=GOAL_KEYWORDS,
            payer_requirements=PAYER_REQUIREMENTS,
            audit_weights=AUDIT_RISK_WEIGHTS,
            severity_deductions=SEVERITY_SCORE_DEDUCTIONS,
            element_suggestions=ELEMENT_SUGGESTIONS,
            element_examples=ELEMENT_EXAMPLES,
            tips=COMPLIANCE_TIPS,
            spinal_regions=SPINAL_REGIONS,
            cmt_minimum_regions=CMT_MINIMUM_REGIONS,
            high_level_em_codes=HIGH_LEVEL_EM_CODES,
        )


# =============================================================================
# STAGE 2: SCORING HELPERS
# =============================================================================


def jaccard_similarity(first: str, second: str) -> float:
    """
    Word-set Jaccard similarity of two texts (case-insensitive).

    Example:
        >>> jaccard_similarity("a b c", "a b d")
        0.5
    """
    words_first = set(first.lower().split())
    words_second = set(second.lower().split())
    union = words_first | words_second
    if not union:
        return 0.0
    return len(words_first & words_second) / len(union)


def map_ai_severity(raw: Optional[str]) -> IssueSeverity:
    """Normalize a backend severity: error/critical → ERROR, warning → WARNING, else INFO."""
    value = (raw or "").lower()
    if value in ("error", "critical"):
        return IssueSeverity.ERROR
    if value == "warning":
        return IssueSeverity.WARNING
    return IssueSeverity.INFO


def compliance_score(
    issues: Iterable[ComplianceIssue], rules: Optional[ComplianceRules] = None
) -> int:
    """
    100 minus the severity deductions of every issue, floored at 0.

    Example:
        One CRITICAL and one WARNING → 100 - 25 - 5 = 70
    """
    deductions = (rules or ComplianceRules.default()).severity_deductions
    score = 100 - sum(deductions.get(issue.severity.value, 0) for issue in issues)
    return max(0, score)


def _humanize(encounter_type: EncounterType) -> str:
    return encounter_type.value.replace("_", " ").lower()


def _capitalize(text: str) -> str:
    return text[:1].upper() + text[1:]


# =============================================================================
# STAGE 3: RULE-BASED CHECKS
# =============================================================================


class ComplianceChecks:
    """
    Deterministic compliance checks over one SOAP note.

    What it does:
        Runs the five rule-based checks against the injected tables and
        returns plain ComplianceIssue lists. Persistence, audit-risk totals
        and the AI pass live in ComplianceEngine.

    Example:
        >>> checks = ComplianceChecks()
        >>> issues = checks.check_medical_necessity(SoapContent(plan="Adjust C5"))
        >>> issues[0].severity
        <IssueSeverity.CRITICAL: 'CRITICAL'>
    """

    def __init__(self, rules: Optional[ComplianceRules] = None):
        self.rules = rules or ComplianceRules.default()

    # -------------------------------------------------------------------------
    # 3.1 Element matching
    # -------------------------------------------------------------------------

    def variations(self, element: str) -> Tuple[str, ...]:
        """Accepted spellings of an element; the element itself when unlisted."""
        return self.rules.element_variations.get(element.lower(), (element,))

    def has_element(self, text: str, element: str) -> bool:
        lowered = text.lower()
        return any(variation.lower() in lowered for variation in self.variations(element))

    def is_critical(self, element: str, encounter_type: EncounterType) -> bool:
        critical = self.rules.critical_elements.get(encounter_type.value, ())
        return any(c.lower() in element.lower() for c in critical)

    def tips_for(self, encounter_type: Union[EncounterType, str, None]) -> List[str]:
        encounter = EncounterType.coerce(encounter_type)
        tips = self.rules.tips.get(encounter.value) or self.rules.tips.get(
            EncounterType.FOLLOW_UP.value, ()
        )
        return list(tips)

    # -------------------------------------------------------------------------
    # 3.2 Required elements
    # -------------------------------------------------------------------------

    def check_required_elements(
        self, content: SoapContent, encounter_type: Union[EncounterType, str]
    ) -> List[ComplianceIssue]:
        """
        Per-section presence and required-element checks.

        A section under 10 characters yields one MISSING_SECTION issue
        (ERROR for assessment and plan) and its elements are not checked.
        Otherwise each required element missing all of its variations
        yields a MISSING_ELEMENT issue, ERROR when critical for the
        encounter type.
        """
        encounter = EncounterType.coerce(encounter_type)
        table = self.rules.required_elements.get(encounter.value) or self.rules.required_elements[
            EncounterType.FOLLOW_UP.value
        ]
        issues: List[ComplianceIssue] = []

        for section, text in content.items():
            required = table.get(section.value, ())
            body = (text or "").strip()

            if len(body) < MIN_SECTION_CHARS:
                is_core = section in (SoapSection.ASSESSMENT, SoapSection.PLAN)
                issues.append(
                    ComplianceIssue(
                        issue_type=ComplianceIssueType.MISSING_SECTION,
                        severity=IssueSeverity.ERROR if is_core else IssueSeverity.WARNING,
                        title=f"Missing {_capitalize(section.value)} Section",
                        description=(
                            f"The {section.value} section is missing or too brief for a "
                            f"{_humanize(encounter)} encounter."
                        ),
                        section=section.value,
                        requirement_source=CMS_GUIDELINES,
                        suggestion=(
                            f"Add detailed {section.value} documentation including: "
                            f"{', '.join(required)}."
                        ),
                        audit_risk_impact=15,
                        denial_risk=0.6 if section == SoapSection.ASSESSMENT else 0.3,
                    )
                )
                continue

            for element in required:
                if self.has_element(body, element):
                    continue
                critical = self.is_critical(element, encounter)
                issues.append(
                    ComplianceIssue(
                        issue_type=ComplianceIssueType.MISSING_ELEMENT,
                        severity=IssueSeverity.ERROR if critical else IssueSeverity.WARNING,
                        title=f"Missing: {_capitalize(element)}",
                        description=(
                            f"The {section.value} section should document {element} for a "
                            f"{_humanize(encounter)} encounter."
                        ),
                        section=section.value,
                        field_path=element,
                        requirement_source=CMS_GUIDELINES,
                        suggestion=self.rules.element_suggestions.get(
                            element.lower(),
                            f"Add documentation of {element} to the {section.value} section.",
                        ),
                        example_fix=self.rules.element_examples.get(element.lower(), ""),
                        audit_risk_impact=15 if critical else 8,
                        denial_risk=0.4 if critical else 0.2,
                    )
                )

        return issues

    # -------------------------------------------------------------------------
    # 3.3 Medical necessity
    # -------------------------------------------------------------------------

    def check_medical_necessity(
        self,
        content: SoapContent,
        encounter_type: Union[EncounterType, str] = EncounterType.FOLLOW_UP,
    ) -> List[ComplianceIssue]:
        """
        Necessity keywords across the whole note, plus treatment goals.

        0 keyword matches → CRITICAL (auto-fixable)
        1 keyword match   → WARNING
        No goal keyword   → MISSING_GOALS ERROR (auto-fixable), except DISCHARGE
        """
        full_text = content.combined_text.lower()
        found = [kw for kw in self.rules.necessity_keywords if kw.lower() in full_text]
        issues: List[ComplianceIssue] = []

        if not found:
            issues.append(
                ComplianceIssue(
                    issue_type=ComplianceIssueType.MEDICAL_NECESSITY,
                    severity=IssueSeverity.CRITICAL,
                    title="Missing Medical Necessity Documentation",
                    description=(
                        "The note does not clearly establish medical necessity for treatment. "
                        "This is required for insurance reimbursement."
                    ),
                    requirement_source="CMS/Payer Guidelines",
                    suggestion=(
                        "Document specific functional limitations, impact on daily activities, "
                        "and expected improvement with treatment."
                    ),
                    example_fix=(
                        'Example: "Patient reports difficulty with daily activities including '
                        "dressing, driving, and work duties due to cervical pain. Treatment is "
                        'medically necessary to restore function and reduce disability."'
                    ),
                    auto_fixable=True,
                    suggested_text=MEDICAL_NECESSITY_SUGGESTED_TEXT,
                    audit_risk_impact=25,
                    denial_risk=0.7,
                )
            )
        elif len(found) < 2:
            issues.append(
                ComplianceIssue(
                    issue_type=ComplianceIssueType.MEDICAL_NECESSITY,
                    severity=IssueSeverity.WARNING,
                    title="Weak Medical Necessity Documentation",
                    description=(
                        "Medical necessity documentation could be strengthened with additional "
                        "functional impact details."
                    ),
                    requirement_source="CMS/Payer Guidelines",
                    suggestion="Add more specific functional limitations and treatment goals.",
                    audit_risk_impact=10,
                    denial_risk=0.3,
                )
            )

        if EncounterType.coerce(encounter_type) != EncounterType.DISCHARGE:
            if not any(kw in full_text for kw in self.rules.goal_keywords):
                issues.append(
                    ComplianceIssue(
                        issue_type=ComplianceIssueType.MISSING_GOALS,
                        severity=IssueSeverity.ERROR,
                        title="Missing Treatment Goals",
                        description="The note should include specific, measurable treatment goals.",
                        section=SoapSection.PLAN.value,
                        requirement_source=CMS_GUIDELINES,
                        suggestion=(
                            'Add measurable goals such as: "Goal: Reduce pain from 7/10 to 3/10 '
                            'and restore cervical ROM to 80% of normal within 4 weeks."'
                        ),
                        auto_fixable=True,
                        suggested_text=TREATMENT_GOALS_SUGGESTED_TEXT,
                        audit_risk_impact=12,
                        denial_risk=0.4,
                    )
                )

        return issues

    # -------------------------------------------------------------------------
    # 3.4 Payer requirements
    # -------------------------------------------------------------------------

    def check_payer_requirements(
        self, content: SoapContent, payer_type: Union[PayerType, str]
    ) -> List[ComplianceIssue]:
        """Missing payer requirement → CRITICAL when the payer marks it critical, else WARNING."""
        payer_key = str(getattr(payer_type, "value", payer_type)).upper()
        entry = self.rules.payer_requirements.get(payer_key)
        if entry is None:
            return []

        payer_name, requirements = entry
        issues: List[ComplianceIssue] = []
        for element, section, description, critical in requirements:
            text = content.get(SoapSection(section)) or ""
            if self.has_element(text, element):
                continue
            issues.append(
                ComplianceIssue(
                    issue_type=ComplianceIssueType.PAYER_REQUIREMENT,
                    severity=IssueSeverity.CRITICAL if critical else IssueSeverity.WARNING,
                    title=f"{payer_name}: Missing {element}",
                    description=description,
                    section=section,
                    requirement_source=payer_name,
                    payer_specific=payer_key,
                    suggestion=(
                        f"Add documentation of {element} in the {section} section for "
                        f"{payer_name} compliance."
                    ),
                    audit_risk_impact=20 if critical else 10,
                    denial_risk=0.6 if critical else 0.3,
                )
            )
        return issues

    # -------------------------------------------------------------------------
    # 3.5 Cloned note
    # -------------------------------------------------------------------------

    def check_cloned_note(
        self,
        content: SoapContent,
        prior_notes: Sequence[SoapContent],
        threshold: float = 0.85,
        lookback: int = 5,
    ) -> List[ComplianceIssue]:
        """
        Compare the objective section against recent prior notes.

        Both objectives must exceed 50 characters. Only similarity strictly
        above the threshold counts, and at most one issue is raised.
        """
        current = (content.objective or "").strip()
        if len(current) <= MIN_CLONE_COMPARE_CHARS:
            return []

        for prior in list(prior_notes)[:lookback]:
            previous = (prior.objective or "").strip()
            if len(previous) <= MIN_CLONE_COMPARE_CHARS:
                continue
            similarity = jaccard_similarity(current, previous)
            if similarity > threshold:
                return [
                    ComplianceIssue(
                        issue_type=ComplianceIssueType.CLONED_NOTE,
                        severity=IssueSeverity.WARNING,
                        title="Possible Cloned Documentation",
                        description=(
                            f"The objective section appears very similar "
                            f"({int(similarity * 100 + 0.5)}% match) to a previous encounter "
                            f"note. This may indicate cloned documentation."
                        ),
                        section=SoapSection.OBJECTIVE.value,
                        requirement_source="OIG Audit Guidelines",
                        suggestion=(
                            "Ensure documentation is unique to this encounter and reflects "
                            "current findings. Modify cloned sections to reflect visit-specific "
                            "observations."
                        ),
                        audit_risk_impact=25,
                        denial_risk=0.5,
                    )
                ]
        return []

    # -------------------------------------------------------------------------
    # 3.6 Code documentation
    # -------------------------------------------------------------------------

    def check_code_documentation(
        self, content: SoapContent, accepted_codes: Iterable[str]
    ) -> List[ComplianceIssue]:
        """
        Check that the note supports the accepted billing codes.

        CMT codes above the lowest tier need at least their minimum region
        count (ERROR otherwise). High-level E/M codes need 200+ words and
        one keyword from each of the history/exam/decision-making groups
        (WARNING otherwise).
        """
        full_text = content.combined_text.lower()
        tiers = sorted(self.rules.cmt_minimum_regions.items(), key=lambda item: item[1])
        tier_codes = [code for code, _ in tiers]
        issues: List[ComplianceIssue] = []

        for code in accepted_codes:
            if code in tier_codes:
                position = tier_codes.index(code)
                minimum = tiers[position][1]
                if position == 0:
                    continue
                regions = count_spinal_regions(full_text, self.rules.spinal_regions)
                if regions >= minimum:
                    continue
                is_top = position == len(tiers) - 1
                alternatives = " or ".join(
                    f"{lower} ({_tier_label(tiers, i)} regions)"
                    for i, (lower, _) in reversed(list(enumerate(tiers[:position])))
                )
                issues.append(
                    ComplianceIssue(
                        issue_type=ComplianceIssueType.CODE_DOCUMENTATION,
                        severity=IssueSeverity.ERROR,
                        title=f"Insufficient Documentation for {code}",
                        description=(
                            f"Code {code} ({_tier_label(tiers, position)} regions CMT) requires "
                            f"documentation of at least {minimum} spinal regions. "
                            f"Only {regions} regions documented."
                        ),
                        requirement_source="CPT Guidelines",
                        suggestion=(
                            f"Document all spinal regions treated. Consider using {alternatives} "
                            f"if fewer regions were treated."
                        ),
                        audit_risk_impact=20 if is_top else 15,
                        denial_risk=0.5 if is_top else 0.4,
                    )
                )

            elif code.startswith("992") and code in self.rules.high_level_em_codes:
                word_count = len(full_text.split())
                groups_met = all(
                    any(keyword in full_text for keyword in group) for group in EM_KEYWORD_GROUPS
                )
                if word_count < HIGH_LEVEL_EM_MIN_WORDS or not groups_met:
                    issues.append(
                        ComplianceIssue(
                            issue_type=ComplianceIssueType.CODE_DOCUMENTATION,
                            severity=IssueSeverity.WARNING,
                            title=f"Documentation May Not Support {code}",
                            description=(
                                f"Higher-level E/M code {code} typically requires comprehensive "
                                f"documentation including detailed history, examination, and "
                                f"medical decision-making."
                            ),
                            requirement_source="CPT E/M Guidelines",
                            suggestion=(
                                "Ensure documentation includes: detailed history of present "
                                "illness, comprehensive examination findings, and documented "
                                "medical decision-making complexity."
                            ),
                            audit_risk_impact=15,
                            denial_risk=0.35,
                        )
                    )

        return issues


def _tier_label(tiers: List[Tuple[str, int]], position: int) -> str:
    """'1-2', '3-4', '5+' style label for a CMT tier."""
    minimum = tiers[position][1]
    if position == len(tiers) - 1:
        return f"{minimum}+"
    return f"{minimum}-{tiers[position + 1][1] - 1}"
