"""
Compliance Engine - Documentation Audit, Billing Gate and Issue Resolution

This module runs a full compliance pass over a SOAP note and owns the
lifecycle of the issues it finds.

Two-Phase Check:
    1. Rule-based checks (compliance/rules.py), free and deterministic
    2. AI compliance review, passed through with normalized severities

    Every finding from both phases is stored. There is no deduplication
    across runs: checking twice appends a second batch.

Audit Risk (uncapped internally, capped at 100 when reported):
    +10 per ERROR among required-element issues
    +20 if medical necessity or goals produced an ERROR/CRITICAL
    +10 per CRITICAL payer issue
    +25 if the note looks cloned
    +15 if code documentation produced an ERROR

Issue Lifecycle:
    open ──► resolved (resolve / auto_fix)
         └─► resolved + dismissed (dismiss)

Pipeline Position:
    CodeSuggestionRanker → [ComplianceEngine] → billing
                            ^^^^^^^^^^^^^^^^
                            You are here

Author: Shubham Singh
Date: October 2026
"""

import time
from collections import Counter
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Union

from loguru import logger

from chiro_documentation.clients.capabilities import ComplianceCapability
from chiro_documentation.compliance.rules import (
    ComplianceChecks,
    ComplianceRules,
    compliance_score,
    map_ai_severity,
)
from chiro_documentation.core.config import EngineConfiguration
from chiro_documentation.core.enums import (
    ComplianceIssueType,
    EncounterType,
    IssueSeverity,
    PayerType,
    SoapSection,
)
from chiro_documentation.core.exceptions import BadRequestError, NotFoundError
from chiro_documentation.core.models import (
    BillingGateDecision,
    ClinicalNote,
    ComplianceIssue,
    ComplianceReport,
    SoapContent,
)
from chiro_documentation.repository.record_store import DocumentationStore

AUDIT_RISK_CAP = 100
BILLING_BLOCK_RISK = 50
REVIEW_RISK = 30
REVIEW_WARNING_COUNT = 2
AI_TITLE_MAX_CHARS = 100

AUTO_FIX_RESOLUTION = "Auto-fix applied"

# CRITICAL first when listing issues.
SEVERITY_ORDER = {
    IssueSeverity.CRITICAL: 0,
    IssueSeverity.ERROR: 1,
    IssueSeverity.WARNING: 2,
    IssueSeverity.INFO: 3,
}


class ComplianceEngine:
    """
    Checks notes for documentation compliance and gates billing.

    What it does:
        Runs the deterministic checks and the AI review, scores the result,
        stores every issue, and answers the read-only pre-billing gate from
        whatever issues remain unresolved.

    Example:
        >>> engine = ComplianceEngine(store, ai_service)
        >>> report = engine.check("enc-1", content, EncounterType.FOLLOW_UP)
        >>> report.compliance_score
        70
        >>> engine.pre_billing_gate("enc-1").can_proceed
        False
    """

    def __init__(
        self,
        store: DocumentationStore,
        checker: ComplianceCapability,
        config: Optional[EngineConfiguration] = None,
        rules: Optional[ComplianceRules] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._store = store
        self._checker = checker
        self._config = config or EngineConfiguration()
        self._checks = ComplianceChecks(rules)
        self._clock = clock

        logger.info(
            f"ComplianceEngine initialized | "
            f"Clone threshold: {self._config.cloned_note_threshold} | "
            f"Lookback: {self._config.cloned_note_lookback}"
        )

    @property
    def rules(self) -> ComplianceRules:
        return self._checks.rules

    @property
    def _provider_name(self) -> str:
        return getattr(self._checker, "provider_name", type(self._checker).__name__)

    # =========================================================================
    # STAGE 1: COMPLIANCE RUN
    # =========================================================================

    def check(
        self,
        encounter_id: str,
        content: Optional[SoapContent] = None,
        encounter_type: Union[EncounterType, str] = EncounterType.FOLLOW_UP,
        payer_type: Optional[Union[PayerType, str]] = None,
        include_payer_specific: bool = True,
        accepted_codes: Optional[Iterable[str]] = None,
        prior_notes: Optional[Sequence[SoapContent]] = None,
        pre_billing_gate: bool = False,
    ) -> ComplianceReport:
        """
        Run every check against a note and store the findings.

        Args:
            content: Note to check; defaults to the encounter's clinical note
            accepted_codes: Codes to verify against the documentation;
                defaults to the encounter's ACCEPTED/MODIFIED suggestions
            prior_notes: The patient's earlier notes, most recent first
            pre_billing_gate: Report whether these findings block billing

        Returns:
            ComplianceReport with score, capped audit risk and stored issues

        Raises:
            BadRequestError: If there is no note content
            AIServiceError: If the AI compliance review fails
        """
        start = time.perf_counter()
        encounter = EncounterType.coerce(encounter_type)

        # ---------------------------------------------------------------------
        # STAGE 1.1: Resolve inputs
        # ---------------------------------------------------------------------
        if content is None:
            note = self._store.get_clinical_note(encounter_id)
            content = note.content if note else SoapContent()
        if content.is_empty:
            raise BadRequestError(
                "No SOAP note found for this encounter", context={"encounter_id": encounter_id}
            )

        if accepted_codes is None:
            accepted_codes = [
                suggestion.final_code
                for suggestion in self._store.list_suggestions(encounter_id=encounter_id)
                if suggestion.is_accepted
            ]

        # ---------------------------------------------------------------------
        # STAGE 1.2: Rule-based checks
        # ---------------------------------------------------------------------
        weights = self.rules.audit_weights
        issues: List[ComplianceIssue] = []
        audit_risk = 0

        missing = self._checks.check_required_elements(content, encounter)
        issues.extend(missing)
        audit_risk += _count(missing, IssueSeverity.ERROR) * weights["missing_element_error"]

        necessity = self._checks.check_medical_necessity(content, encounter)
        issues.extend(necessity)
        if _count(necessity, IssueSeverity.ERROR, IssueSeverity.CRITICAL):
            audit_risk += weights["insufficient_medical_necessity"]

        if include_payer_specific and payer_type:
            payer = self._checks.check_payer_requirements(content, payer_type)
            issues.extend(payer)
            audit_risk += _count(payer, IssueSeverity.CRITICAL) * weights["critical_payer_issue"]

        cloned = self._checks.check_cloned_note(
            content,
            prior_notes or [],
            threshold=self._config.cloned_note_threshold,
            lookback=self._config.cloned_note_lookback,
        )
        issues.extend(cloned)
        if cloned:
            audit_risk += weights["cloned_note"]

        code_issues = self._checks.check_code_documentation(content, accepted_codes)
        issues.extend(code_issues)
        if _count(code_issues, IssueSeverity.ERROR):
            audit_risk += weights["high_code_complexity"]

        # ---------------------------------------------------------------------
        # STAGE 1.3: AI review
        # ---------------------------------------------------------------------
        ai_result = self._checker.check_compliance(content, encounter)
        for finding in ai_result.issues:
            issues.append(
                ComplianceIssue(
                    issue_type=ComplianceIssueType.AI_DETECTED,
                    severity=map_ai_severity(finding.severity),
                    title=finding.message[:AI_TITLE_MAX_CHARS],
                    description=finding.message,
                    section=finding.section,
                    suggestion=finding.suggestion,
                )
            )

        # ---------------------------------------------------------------------
        # STAGE 1.4: Score, gate and persist
        # ---------------------------------------------------------------------
        score = compliance_score(issues, self.rules)
        has_critical = _count(issues, IssueSeverity.CRITICAL) > 0
        has_errors = _count(issues, IssueSeverity.ERROR) > 0
        blocked = pre_billing_gate and (
            has_critical or (has_errors and audit_risk > BILLING_BLOCK_RISK)
        )
        block_reason = None
        if blocked:
            block_reason = (
                "Critical compliance issues must be resolved before billing"
                if has_critical
                else "High audit risk - review errors before billing"
            )

        now = self._clock()
        for issue in issues:
            issue.encounter_id = encounter_id
            issue.ai_model_used = self._provider_name
            issue.created_at = now
        self._store.add_issues(issues)

        report = ComplianceReport(
            encounter_id=encounter_id,
            compliance_score=score,
            audit_risk_score=min(audit_risk, AUDIT_RISK_CAP),
            issues=issues,
            billing_blocked=blocked,
            billing_block_reason=block_reason,
            processing_time_ms=int((time.perf_counter() - start) * 1000),
        )

        if blocked:
            logger.warning(f"Billing blocked | Encounter: {encounter_id} | Reason: {block_reason}")
        logger.info(
            f"Compliance checked | Encounter: {encounter_id} | Score: {score} | "
            f"Audit risk: {report.audit_risk_score} | Issues: {len(issues)}"
        )
        return report

    # =========================================================================
    # STAGE 2: BILLING GATE
    # =========================================================================

    def pre_billing_gate(self, encounter_id: str) -> BillingGateDecision:
        """
        Decide from unresolved issues whether billing may proceed.

        can_proceed    → no unresolved CRITICAL and no unresolved ERROR
        requires_review → any ERROR, more than 2 WARNINGs, or summed
                          audit-risk impact above 30
        """
        unresolved = [i for i in self._store.list_issues(encounter_id) if not i.resolved]
        critical = _count(unresolved, IssueSeverity.CRITICAL)
        errors = _count(unresolved, IssueSeverity.ERROR)
        warnings = _count(unresolved, IssueSeverity.WARNING)
        impact = sum(issue.audit_risk_impact or 0 for issue in unresolved)

        if critical:
            reason = "Critical compliance issues must be resolved"
        elif errors:
            reason = "Compliance errors should be addressed"
        else:
            reason = None

        return BillingGateDecision(
            can_proceed=not critical and errors == 0,
            requires_review=errors > 0 or warnings > REVIEW_WARNING_COUNT or impact > REVIEW_RISK,
            blocked_reason=reason,
            unresolved_count=len(unresolved),
            critical_count=critical,
            error_count=errors,
            warning_count=warnings,
            audit_risk_score=min(impact, AUDIT_RISK_CAP),
        )

    # =========================================================================
    # STAGE 3: ISSUE RESOLUTION
    # =========================================================================

    def resolve(
        self, issue_id: str, resolution: str, resolved_by: Optional[str] = None
    ) -> ComplianceIssue:
        return self._close(self._get_open(issue_id), resolution, resolved_by, dismissed=False)

    def dismiss(
        self, issue_id: str, resolution: str, resolved_by: Optional[str] = None
    ) -> ComplianceIssue:
        """Close an issue without fixing it."""
        return self._close(self._get_open(issue_id), resolution, resolved_by, dismissed=True)

    def auto_fix(
        self,
        issue_id: str,
        section: Optional[Union[SoapSection, str]] = None,
        resolved_by: Optional[str] = None,
    ) -> ClinicalNote:
        """
        Append an issue's suggested text to the encounter's clinical note.

        The target section is `section`, else the issue's own section, else
        plan. The text is appended after a blank line.

        Raises:
            NotFoundError: If the issue does not exist or is not auto-fixable
            BadRequestError: If there is no suggested text, no clinical note,
                or the issue is already resolved
        """
        issue = self._store.get_issue(issue_id)
        if issue is None or not issue.auto_fixable:
            raise NotFoundError("compliance_issue", issue_id, "Auto-fixable compliance issue not found")
        self._require_open(issue)
        if not issue.suggested_text:
            raise BadRequestError("No suggested fix text available", context={"issue_id": issue_id})

        note = self._store.get_clinical_note(issue.encounter_id) if issue.encounter_id else None
        if note is None:
            raise BadRequestError(
                "No SOAP note found to apply fix", context={"encounter_id": issue.encounter_id}
            )

        target = SoapSection(section or issue.section or SoapSection.PLAN)
        current = note.content.get(target) or ""
        note.content = note.content.with_section(target, f"{current}\n\n{issue.suggested_text}")
        note.updated_at = self._clock()
        self._store.save_clinical_note(note)

        self._close(issue, AUTO_FIX_RESOLUTION, resolved_by, dismissed=False)
        logger.info(f"Auto-fix applied | Issue: {issue_id} | Section: {target.value}")
        return note

    # =========================================================================
    # STAGE 4: QUERIES
    # =========================================================================

    def get_issue(self, issue_id: str) -> ComplianceIssue:
        issue = self._store.get_issue(issue_id)
        if issue is None:
            raise NotFoundError("compliance_issue", issue_id, "Compliance issue not found")
        return issue

    def list_issues(
        self,
        encounter_id: str,
        include_resolved: bool = False,
        severity: Optional[Union[IssueSeverity, str]] = None,
    ) -> List[ComplianceIssue]:
        """Issues for an encounter, CRITICAL first, newest first within a severity."""
        issues = self._store.list_issues(encounter_id)
        if not include_resolved:
            issues = [i for i in issues if not i.resolved]
        if severity is not None:
            issues = [i for i in issues if i.severity == IssueSeverity(severity)]
        issues = sorted(issues, key=lambda i: i.created_at, reverse=True)
        return sorted(issues, key=lambda i: SEVERITY_ORDER[i.severity])

    def compliance_tips(
        self, encounter_type: Optional[Union[EncounterType, str]] = None
    ) -> List[str]:
        """General documentation tips for an encounter type (FOLLOW_UP fallback)."""
        return self._checks.tips_for(encounter_type)

    def statistics(self, encounter_ids: Iterable[str]) -> Dict[str, Any]:
        """Issue counts, resolution rate and the five most common issue types."""
        issues = [i for eid in encounter_ids for i in self._store.list_issues(eid)]
        resolved = sum(1 for i in issues if i.resolved)
        impacts = [i.audit_risk_impact for i in issues if i.audit_risk_impact]
        common = Counter(i.issue_type.value for i in issues).most_common(5)

        return {
            "total_issues": len(issues),
            "resolved_issues": resolved,
            "resolution_rate": resolved / len(issues) if issues else 0.0,
            "critical_count": _count(issues, IssueSeverity.CRITICAL),
            "error_count": _count(issues, IssueSeverity.ERROR),
            "warning_count": _count(issues, IssueSeverity.WARNING),
            "average_audit_risk": sum(impacts) / len(impacts) if impacts else 0.0,
            "common_issue_types": [{"type": t, "count": c} for t, c in common],
        }

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _get_open(self, issue_id: str) -> ComplianceIssue:
        issue = self.get_issue(issue_id)
        self._require_open(issue)
        return issue

    @staticmethod
    def _require_open(issue: ComplianceIssue) -> None:
        if issue.resolved:
            raise BadRequestError(
                "Compliance issue is already resolved", context={"issue_id": issue.id}
            )

    def _close(
        self,
        issue: ComplianceIssue,
        resolution: str,
        resolved_by: Optional[str],
        dismissed: bool,
    ) -> ComplianceIssue:
        issue.resolved = True
        issue.resolution = resolution
        issue.was_dismissed = dismissed
        issue.resolved_at = self._clock()
        issue.resolved_by = resolved_by
        self._store.save_issue(issue)

        logger.info(
            f"Compliance issue closed | Issue: {issue.id} | "
            f"Severity: {issue.severity.value} | Dismissed: {dismissed}"
        )
        return issue


def _count(issues: Iterable[ComplianceIssue], *severities: IssueSeverity) -> int:
    return sum(1 for issue in issues if issue.severity in severities)
