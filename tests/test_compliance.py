from dataclasses import replace
from datetime import timedelta

import pytest

from chiro_documentation.compliance.compliance_engine import ComplianceEngine
from chiro_documentation.compliance.rules import (
    ComplianceChecks,
    ComplianceRules,
    compliance_score,
    jaccard_similarity,
    map_ai_severity,
)
from chiro_documentation.core.constants import TREATMENT_GOALS_SUGGESTED_TEXT
from chiro_documentation.core.enums import (
    CodeType,
    ComplianceIssueType,
    EncounterType,
    IssueSeverity,
    PayerType,
    SoapSection,
    SuggestionStatus,
)
from chiro_documentation.core.exceptions import BadRequestError, NotFoundError
from chiro_documentation.core.models import (
    AIComplianceFinding,
    ClinicalNote,
    CodeSuggestion,
    ComplianceIssue,
    SoapContent,
)

from conftest import FakeAIService

COMMON_FINDINGS = " ".join(f"finding{i}" for i in range(17))


def issue(severity, impact=0, resolved=False, encounter_id="enc-1", **kwargs):
    return ComplianceIssue(
        issue_type=kwargs.pop("issue_type", ComplianceIssueType.MISSING_ELEMENT),
        severity=IssueSeverity(severity),
        title=kwargs.pop("title", f"{severity} issue"),
        description="",
        encounter_id=encounter_id,
        audit_risk_impact=impact,
        resolved=resolved,
        **kwargs,
    )


# ---- scoring helpers ----


def test_jaccard_similarity():
    assert jaccard_similarity("a b c", "a b d") == 0.5
    assert jaccard_similarity("Neck PAIN", "neck pain") == 1.0
    assert jaccard_similarity("", "") == 0.0


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("error", IssueSeverity.ERROR),
        ("CRITICAL", IssueSeverity.ERROR),
        ("warning", IssueSeverity.WARNING),
        ("info", IssueSeverity.INFO),
        ("something else", IssueSeverity.INFO),
        (None, IssueSeverity.INFO),
    ],
)
def test_map_ai_severity(raw, expected):
    assert map_ai_severity(raw) == expected


def test_compliance_score_deductions_and_floor():
    assert compliance_score([issue("CRITICAL"), issue("WARNING")]) == 70
    assert compliance_score([issue("ERROR"), issue("INFO")]) == 84
    assert compliance_score([issue("CRITICAL")] * 5) == 0
    assert compliance_score([]) == 100


# ---- required elements ----


def test_compliant_note_has_no_rule_issues(compliant_note):
    checks = ComplianceChecks()
    assert checks.check_required_elements(compliant_note, EncounterType.FOLLOW_UP) == []
    assert checks.check_medical_necessity(compliant_note, EncounterType.FOLLOW_UP) == []


def test_brief_section_is_missing(compliant_note):
    checks = ComplianceChecks()
    content = compliant_note.with_section(SoapSection.PLAN, "Adjust.")

    issues = checks.check_required_elements(content, "FOLLOW_UP")

    assert len(issues) == 1
    assert issues[0].issue_type == ComplianceIssueType.MISSING_SECTION
    assert issues[0].severity == IssueSeverity.ERROR
    assert issues[0].title == "Missing Plan Section"


def test_brief_subjective_is_only_a_warning(compliant_note):
    content = compliant_note.with_section(SoapSection.SUBJECTIVE, None)
    issues = ComplianceChecks().check_required_elements(content, EncounterType.FOLLOW_UP)
    assert [(i.section, i.severity) for i in issues] == [("subjective", IssueSeverity.WARNING)]


def test_missing_elements_use_critical_table(compliant_note):
    content = compliant_note.with_section(
        SoapSection.SUBJECTIVE, "Patient feels better overall today."
    )
    issues = ComplianceChecks().check_required_elements(content, EncounterType.FOLLOW_UP)

    assert [(i.field_path, i.severity) for i in issues] == [
        ("progress", IssueSeverity.ERROR),
        ("pain level", IssueSeverity.WARNING),
        ("functional status", IssueSeverity.WARNING),
    ]
    assert issues[0].audit_risk_impact == 15
    assert issues[1].suggestion == "Include numeric pain rating (0-10 scale) and location."


# ---- medical necessity ----


def test_no_necessity_and_no_goals():
    issues = ComplianceChecks().check_medical_necessity(SoapContent(plan="Adjust C5"))
    assert [(i.issue_type, i.severity) for i in issues] == [
        (ComplianceIssueType.MEDICAL_NECESSITY, IssueSeverity.CRITICAL),
        (ComplianceIssueType.MISSING_GOALS, IssueSeverity.ERROR),
    ]
    assert all(i.auto_fixable for i in issues)
    assert issues[1].suggested_text == TREATMENT_GOALS_SUGGESTED_TEXT


def test_single_necessity_keyword_is_weak():
    issues = ComplianceChecks().check_medical_necessity(
        SoapContent(plan="Prognosis good. Goal: walk.")
    )
    assert [i.severity for i in issues] == [IssueSeverity.WARNING]
    assert not issues[0].auto_fixable


def test_discharge_does_not_need_goals():
    content = SoapContent(plan="Discharged. Prognosis good and daily activities normal.")
    assert ComplianceChecks().check_medical_necessity(content, EncounterType.DISCHARGE) == []


# ---- payer requirements ----


def test_medicare_requirements(compliant_note):
    issues = ComplianceChecks().check_payer_requirements(compliant_note, PayerType.MEDICARE)

    assert [(i.field_path, i.title, i.severity) for i in issues] == [
        (None, "Medicare: Missing medical necessity", IssueSeverity.CRITICAL),
        (None, "Medicare: Missing functional improvement", IssueSeverity.CRITICAL),
        (None, "Medicare: Missing active treatment", IssueSeverity.CRITICAL),
        (None, "Medicare: Missing x-ray findings", IssueSeverity.WARNING),
    ]
    assert {i.payer_specific for i in issues} == {"MEDICARE"}


def test_unknown_payer_has_no_requirements(compliant_note):
    assert ComplianceChecks().check_payer_requirements(compliant_note, "self_pay") == []


# ---- cloned notes ----


def test_clone_threshold_is_strict():
    current = SoapContent(objective=f"{COMMON_FINDINGS} extra1")
    prior = SoapContent(objective=f"{COMMON_FINDINGS} prior1 prior2")
    assert jaccard_similarity(current.objective, prior.objective) == pytest.approx(0.85)

    assert ComplianceChecks().check_cloned_note(current, [prior]) == []


def test_clone_above_threshold_is_flagged_once():
    current = SoapContent(objective=f"{COMMON_FINDINGS} shared extra1")
    prior = SoapContent(objective=f"{COMMON_FINDINGS} shared prior1")

    issues = ComplianceChecks().check_cloned_note(current, [prior, prior])

    assert len(issues) == 1
    assert issues[0].severity == IssueSeverity.WARNING
    assert "(90% match)" in issues[0].description


def test_clone_lookback_and_short_objectives():
    clone = SoapContent(objective=f"{COMMON_FINDINGS} shared")
    other = SoapContent(objective="Completely different objective findings recorded on this visit today.")
    checks = ComplianceChecks()

    assert checks.check_cloned_note(clone, [other] * 5 + [clone], lookback=5) == []
    assert checks.check_cloned_note(clone, [other] * 4 + [clone], lookback=5) != []
    assert checks.check_cloned_note(SoapContent(objective="ROM reduced."), [clone]) == []


# ---- code documentation ----


def test_cmt_code_needs_region_count():
    content = SoapContent(objective="Cervical and lumbar adjustments.")
    checks = ComplianceChecks()

    issues = checks.check_code_documentation(content, ["98941"])
    assert len(issues) == 1
    assert issues[0].severity == IssueSeverity.ERROR
    assert "at least 3 spinal regions" in issues[0].description
    assert issues[0].description.endswith("Only 2 regions documented.")
    assert "98940 (1-2 regions)" in issues[0].suggestion

    top = checks.check_code_documentation(content, ["98942"])[0]
    assert "98941 (3-4 regions) or 98940 (1-2 regions)" in top.suggestion
    assert top.audit_risk_impact == 20

    assert checks.check_code_documentation(content, ["98940"]) == []


def test_high_level_em_needs_comprehensive_note():
    checks = ComplianceChecks()
    short = SoapContent(assessment="Neck pain.")
    assert [i.severity for i in checks.check_code_documentation(short, ["99214"])] == [
        IssueSeverity.WARNING
    ]
    assert checks.check_code_documentation(short, ["99213"]) == []

    thorough = SoapContent(
        subjective="History of neck pain. " + "detail " * 200,
        objective="Examination findings include restriction.",
        assessment="Diagnosis cervicalgia.",
    )
    assert checks.check_code_documentation(thorough, ["99215"]) == []


def test_tips_fall_back_to_follow_up():
    rules = replace(ComplianceRules.default(), tips={"FOLLOW_UP": ("Compare to last visit",)})
    checks = ComplianceChecks(rules)
    assert checks.tips_for(EncounterType.DISCHARGE) == ["Compare to last visit"]
    assert checks.tips_for(None) == ["Compare to last visit"]


# ---- engine ----


@pytest.fixture
def engine(store, clock, config):
    return ComplianceEngine(store, FakeAIService(), config=config, clock=clock)


def test_compliant_note_scores_full(engine, compliant_note):
    report = engine.check("enc-1", compliant_note, EncounterType.FOLLOW_UP)
    assert report.compliance_score == 100
    assert report.audit_risk_score == 0
    assert report.issues == []
    assert not report.billing_blocked


def test_check_reads_clinical_note_by_default(store, engine, compliant_note):
    store.save_clinical_note(ClinicalNote(encounter_id="enc-1", content=compliant_note))
    assert engine.check("enc-1").compliance_score == 100

    with pytest.raises(BadRequestError):
        engine.check("enc-2")


def test_accepted_codes_default_to_stored_decisions(store, engine, compliant_note):
    store.add_suggestions(
        [
            CodeSuggestion(
                encounter_id="enc-1",
                code_type=CodeType.CPT,
                code="98942",
                description="CMT 5+ regions",
                status=SuggestionStatus.ACCEPTED,
            ),
            CodeSuggestion(
                encounter_id="enc-1",
                code_type=CodeType.CPT,
                code="98941",
                description="CMT 3-4 regions",
            ),
        ]
    )

    report = engine.check("enc-1", compliant_note)

    assert [i.title for i in report.issues] == ["Insufficient Documentation for 98942"]
    assert report.compliance_score == 85
    assert report.audit_risk_score == 15


def test_ai_findings_are_normalized(store, clock, config, compliant_note):
    ai = FakeAIService(
        findings=[
            AIComplianceFinding(severity="critical", message="Plan lacks frequency", section="plan"),
            AIComplianceFinding(severity="info", message="x" * 150),
        ]
    )
    engine = ComplianceEngine(store, ai, config=config, clock=clock)

    report = engine.check("enc-1", compliant_note)

    assert [(i.issue_type, i.severity) for i in report.issues] == [
        (ComplianceIssueType.AI_DETECTED, IssueSeverity.ERROR),
        (ComplianceIssueType.AI_DETECTED, IssueSeverity.INFO),
    ]
    assert len(report.issues[1].title) == 100
    assert report.compliance_score == 84
    assert {i.ai_model_used for i in report.issues} == {"fake"}
    assert {i.encounter_id for i in report.issues} == {"enc-1"}
    assert len(store.list_issues("enc-1")) == 2


def test_critical_issue_blocks_only_when_gating(engine):
    content = SoapContent(plan="Adjust C5 today.")

    report = engine.check("enc-1", content)
    assert not report.billing_blocked

    gated = engine.check("enc-1", content, pre_billing_gate=True)
    assert gated.billing_blocked
    assert gated.billing_block_reason == "Critical compliance issues must be resolved before billing"
    # Runs are not deduplicated
    assert len(engine.list_issues("enc-1")) == 2 * len(report.issues)


def test_high_audit_risk_errors_block(engine, compliant_note):
    objective = "Cervical flexion 40 degrees with palpation tenderness at C5 and C6."
    content = replace(
        compliant_note,
        subjective="Pain level 3/10. Functional status improved for daily activities.",
        objective=objective,
    )

    report = engine.check(
        "enc-1",
        content,
        accepted_codes=["98942"],
        prior_notes=[SoapContent(objective=objective)],
        pre_billing_gate=True,
    )

    assert report.audit_risk_score == 60
    assert report.compliance_score == 50
    assert report.billing_blocked
    assert report.billing_block_reason == "High audit risk - review errors before billing"


def test_payer_checks_respect_toggle(engine, compliant_note):
    report = engine.check("enc-1", compliant_note, payer_type="MEDICARE")
    assert report.audit_risk_score == 30

    skipped = engine.check(
        "enc-2", compliant_note, payer_type="MEDICARE", include_payer_specific=False
    )
    assert skipped.issues == []


@pytest.mark.parametrize(
    "issues,can_proceed,requires_review,reason",
    [
        ([], True, False, None),
        ([("ERROR", 0, False)], False, True, "Compliance errors should be addressed"),
        ([("CRITICAL", 0, False)], False, False, "Critical compliance issues must be resolved"),
        ([("CRITICAL", 25, True)], True, False, None),
        ([("WARNING", 0, False)] * 3, True, True, None),
        ([("WARNING", 20, False)] * 2, True, True, None),
        ([("WARNING", 10, False)] * 2, True, False, None),
    ],
)
def test_pre_billing_gate(store, engine, issues, can_proceed, requires_review, reason):
    store.add_issues([issue(severity, impact, resolved) for severity, impact, resolved in issues])

    decision = engine.pre_billing_gate("enc-1")

    assert decision.can_proceed is can_proceed
    assert decision.requires_review is requires_review
    assert decision.blocked_reason == reason


def test_gate_caps_audit_risk(store, engine):
    store.add_issues([issue("WARNING", 40) for _ in range(3)])
    assert engine.pre_billing_gate("enc-1").audit_risk_score == 100


def test_resolve_and_dismiss(store, engine, clock):
    first, second = issue("ERROR"), issue("WARNING")
    store.add_issues([first, second])

    resolved = engine.resolve(first.id, "Added ROM degrees", resolved_by="dr-1")
    assert resolved.resolved and not resolved.was_dismissed
    assert resolved.resolved_at == clock.now
    assert resolved.resolved_by == "dr-1"
    with pytest.raises(BadRequestError):
        engine.resolve(first.id, "again")

    dismissed = engine.dismiss(second.id, "Not applicable")
    assert dismissed.resolved and dismissed.was_dismissed
    assert engine.pre_billing_gate("enc-1").can_proceed

    with pytest.raises(NotFoundError):
        engine.resolve("missing", "x")


def test_auto_fix_appends_suggested_text(store, engine):
    store.save_clinical_note(
        ClinicalNote(encounter_id="enc-1", content=SoapContent(plan="Adjust C5 today."))
    )
    report = engine.check("enc-1")
    goals = next(i for i in report.issues if i.issue_type == ComplianceIssueType.MISSING_GOALS)
    necessity = next(
        i for i in report.issues if i.issue_type == ComplianceIssueType.MEDICAL_NECESSITY
    )

    note = engine.auto_fix(goals.id)
    assert note.content.plan == f"Adjust C5 today.\n\n{TREATMENT_GOALS_SUGGESTED_TEXT}"
    assert engine.get_issue(goals.id).resolution == "Auto-fix applied"

    note = engine.auto_fix(necessity.id, section="assessment")
    assert note.content.assessment.startswith("\n\nTreatment is medically necessary")

    with pytest.raises(BadRequestError):
        engine.auto_fix(goals.id)

    missing_section = next(
        i for i in report.issues if i.issue_type == ComplianceIssueType.MISSING_SECTION
    )
    with pytest.raises(NotFoundError):
        engine.auto_fix(missing_section.id)


def test_auto_fix_requires_note_and_text(store, engine):
    no_note = issue("ERROR", encounter_id="enc-9", auto_fixable=True, suggested_text="Goal: walk.")
    no_text = issue("ERROR", auto_fixable=True)
    store.add_issues([no_note, no_text])

    with pytest.raises(BadRequestError):
        engine.auto_fix(no_note.id)
    with pytest.raises(BadRequestError):
        engine.auto_fix(no_text.id)


def test_list_issues_orders_by_severity_then_recency(store, engine, clock):
    old_warning = issue("WARNING", title="old", created_at=clock.now)
    critical = issue("CRITICAL", created_at=clock.now)
    new_warning = issue("WARNING", title="new", created_at=clock.now + timedelta(minutes=5))
    closed = issue("ERROR", resolved=True, created_at=clock.now)
    store.add_issues([old_warning, critical, new_warning, closed])

    assert [i.id for i in engine.list_issues("enc-1")] == [
        critical.id,
        new_warning.id,
        old_warning.id,
    ]
    assert engine.list_issues("enc-1", include_resolved=True)[1].id == closed.id
    assert [i.title for i in engine.list_issues("enc-1", severity="WARNING")] == ["new", "old"]


def test_statistics(store, engine):
    store.add_issues(
        [
            issue("CRITICAL", 25, issue_type=ComplianceIssueType.MEDICAL_NECESSITY),
            issue("ERROR", 15, resolved=True),
            issue("WARNING", 0, encounter_id="enc-2"),
        ]
    )

    stats = engine.statistics(["enc-1", "enc-2", "enc-3"])

    assert stats["total_issues"] == 3
    assert stats["resolved_issues"] == 1
    assert stats["resolution_rate"] == pytest.approx(1 / 3)
    assert (stats["critical_count"], stats["error_count"], stats["warning_count"]) == (1, 1, 1)
    assert stats["average_audit_risk"] == pytest.approx(20)
    assert stats["common_issue_types"][0] == {"type": "MISSING_ELEMENT", "count": 2}
