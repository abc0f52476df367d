import pytest

from chiro_documentation.coding.code_ranker import CodeSuggestionRanker
from chiro_documentation.coding.risk import (
    assess_coding_risk,
    blend_confidence,
    build_acceptance_history,
    check_code_specificity,
    count_spinal_regions,
    extract_relevant_text,
    suggest_modifiers,
)
from chiro_documentation.core.enums import (
    AuditRiskLevel,
    CodeFlagType,
    CodeType,
    EncounterType,
    SuggestionStatus,
)
from chiro_documentation.core.exceptions import BadRequestError, NotFoundError
from chiro_documentation.core.models import AcceptanceStats, CodeSuggestion

from conftest import FakeAIService, candidate

TWO_REGION_NOTE = "Cervical and lumbar restrictions. Adjustment performed."
FIVE_REGION_NOTE = "Cervical, thoracic, lumbar, sacral and pelvic regions adjusted."


# ---- risk heuristics ----


@pytest.mark.parametrize(
    "text,expected",
    [
        ("Cervical and lumbar restrictions", 2),
        ("Adjusted L5", 3),
        ("C5 fixation only", 1),
        ("Cervical, thoracic and S1 listing", 4),
        ("No spinal findings", 0),
        (FIVE_REGION_NOTE, 5),
    ],
)
def test_count_spinal_regions(text, expected):
    assert count_spinal_regions(text) == expected


@pytest.mark.parametrize(
    "code,text,upcoding,downcoding,audit",
    [
        ("98942", TWO_REGION_NOTE, True, False, AuditRiskLevel.HIGH),
        ("98941", TWO_REGION_NOTE, True, False, AuditRiskLevel.MEDIUM),
        ("98940", TWO_REGION_NOTE, False, False, AuditRiskLevel.LOW),
        ("98940", "Cervical, thoracic and lumbar adjusted", False, True, AuditRiskLevel.LOW),
        ("98941", FIVE_REGION_NOTE, False, True, AuditRiskLevel.LOW),
        ("98942", FIVE_REGION_NOTE, False, False, AuditRiskLevel.LOW),
        ("99215", "Short visit.", True, False, AuditRiskLevel.HIGH),
        ("99215", "Complex case with multiple conditions.", False, False, AuditRiskLevel.LOW),
    ],
)
def test_cpt_risk(code, text, upcoding, downcoding, audit):
    risk = assess_coding_risk(code, text, CodeType.CPT)
    assert (risk.upcoding_risk, risk.downcoding_risk, risk.audit_risk) == (
        upcoding,
        downcoding,
        audit,
    )


def test_icd_acute_and_chronic_risk():
    acute = assess_coding_risk("M54.2", "Neck pain for years.", CodeType.ICD10, "Acute cervicalgia")
    assert acute.upcoding_risk and acute.audit_risk == AuditRiskLevel.MEDIUM

    chronic = assess_coding_risk(
        "G89.29", "Acute flare of neck pain.", CodeType.ICD10, "Other chronic pain"
    )
    assert chronic.upcoding_risk

    supported = assess_coding_risk(
        "G89.29", "Chronic neck pain with acute flare.", CodeType.ICD10, "Other chronic pain"
    )
    assert not supported.upcoding_risk


def test_specificity_only_for_known_icd_codes():
    issue = check_code_specificity("M54.50", CodeType.ICD10)
    assert issue is not None
    assert [a.code for a in issue.alternatives] == ["M54.51", "M54.59"]

    assert check_code_specificity("M54.50", CodeType.CPT) is None
    assert check_code_specificity("M99.03", CodeType.ICD10) is None


def test_modifiers_in_order():
    text = "Bilateral therapeutic exercise performed as a separate service."
    assert [m.modifier for m in suggest_modifiers("97110", text)] == ["50", "59", "GP"]
    assert [m.modifier for m in suggest_modifiers("98941", "Adjustment")] == ["GP", "AT"]
    assert suggest_modifiers("99213", "Routine visit") == []


def test_extract_relevant_text():
    text = "Patient doing well. Lumbar stiffness persists after sitting! Plan unchanged."
    assert extract_relevant_text(text, "M54.50") == "Lumbar stiffness persists after sitting"
    assert extract_relevant_text(text, "Z00.00") is None


def test_blend_confidence():
    assert blend_confidence(0.8, AcceptanceStats(accepted=3, rejected=1)) == pytest.approx(0.785)
    assert blend_confidence(0.8, None) == 0.8
    assert blend_confidence(0.8, AcceptanceStats()) == 0.8


def test_build_acceptance_history_ignores_pending():
    def suggestion(code, status):
        return CodeSuggestion(
            encounter_id="enc", code_type=CodeType.CPT, code=code, description="", status=status
        )

    history = build_acceptance_history(
        [
            suggestion("98941", SuggestionStatus.ACCEPTED),
            suggestion("98941", SuggestionStatus.MODIFIED),
            suggestion("98941", SuggestionStatus.REJECTED),
            suggestion("98940", SuggestionStatus.PENDING),
        ]
    )
    assert history == {"CPT:98941": AcceptanceStats(accepted=2, rejected=1)}


# ---- ranker ----


@pytest.fixture
def coder():
    return FakeAIService(
        icd10=[candidate("M54.50", 0.9, "Low back pain, unspecified"), candidate("M99.03", 0.8)],
        cpt=[candidate("98941", 0.8), candidate("99213", 0.85)],
    )


def test_suggest_scores_and_orders_batch(store, clock, coder):
    ranker = CodeSuggestionRanker(store, coder, clock=clock)
    batch = ranker.suggest("enc-1", TWO_REGION_NOTE, EncounterType.FOLLOW_UP, provider_id="dr-1")

    assert [(s.code_type, s.code, s.rank) for s in batch] == [
        (CodeType.ICD10, "M54.50", 1),
        (CodeType.ICD10, "M99.03", 2),
        (CodeType.CPT, "98941", 1),
        (CodeType.CPT, "99213", 2),
    ]
    low_back, _, cmt, _ = batch
    assert not low_back.specificity_ok
    assert low_back.alternatives
    assert low_back.modifiers == []
    assert cmt.upcoding_risk
    assert cmt.audit_risk == AuditRiskLevel.MEDIUM
    assert [m.modifier for m in cmt.modifiers] == ["GP", "AT"]
    assert cmt.relevant_text == "Adjustment performed"
    assert all(s.status == SuggestionStatus.PENDING for s in batch)
    assert len(store.list_suggestions(encounter_id="enc-1")) == 4


def test_suggest_requires_text(store, coder):
    ranker = CodeSuggestionRanker(store, coder)
    with pytest.raises(BadRequestError):
        ranker.suggest("enc-1", "  ")
    assert coder.coding_calls == []


def test_suggest_options_disable_checks(store, coder):
    ranker = CodeSuggestionRanker(store, coder)
    batch = ranker.suggest(
        "enc-1", TWO_REGION_NOTE, optimize_specificity=False, include_modifiers=False
    )
    assert all(s.specificity_ok for s in batch)
    assert all(s.modifiers == [] for s in batch)


def test_provider_history_blends_confidence(store, coder):
    ranker = CodeSuggestionRanker(store, coder)
    first = ranker.suggest("enc-1", TWO_REGION_NOTE, provider_id="dr-1")
    by_code = {s.code: s for s in first}
    ranker.accept(by_code["99213"].id)

    second = ranker.suggest("enc-2", TWO_REGION_NOTE, provider_id="dr-1")
    em = next(s for s in second if s.code == "99213")
    assert em.confidence == pytest.approx(0.7 * 0.85 + 0.3 * 1.0)

    # Explicit history takes precedence
    third = ranker.suggest(
        "enc-3",
        TWO_REGION_NOTE,
        provider_id="dr-1",
        historical_acceptance={"CPT:99213": AcceptanceStats(accepted=0, rejected=2)},
    )
    em = next(s for s in third if s.code == "99213")
    assert em.confidence == pytest.approx(0.7 * 0.85)


def test_decisions_are_one_way(store, coder):
    ranker = CodeSuggestionRanker(store, coder)
    batch = ranker.suggest("enc-1", TWO_REGION_NOTE)

    accepted = ranker.accept(batch[0].id)
    assert accepted.status == SuggestionStatus.ACCEPTED
    with pytest.raises(BadRequestError):
        ranker.reject(batch[0].id)

    modified = ranker.modify(batch[0].id, " m54.51 ", reason="vertebrogenic")
    assert modified.status == SuggestionStatus.MODIFIED
    assert modified.final_code == "M54.51"

    rejected = ranker.reject(batch[1].id, reason="not supported")
    assert rejected.status == SuggestionStatus.REJECTED
    with pytest.raises(BadRequestError):
        ranker.modify(batch[1].id, "M99.01")
    with pytest.raises(BadRequestError):
        ranker.modify(batch[2].id, "")

    with pytest.raises(NotFoundError):
        ranker.accept("missing")


def test_accept_all_by_type(store, coder):
    ranker = CodeSuggestionRanker(store, coder)
    batch = ranker.suggest("enc-1", TWO_REGION_NOTE)
    ranker.reject(batch[0].id)

    assert ranker.accept_all("enc-1", CodeType.CPT) == 2
    assert ranker.accept_all("enc-1") == 1
    assert ranker.list_suggestions("enc-1", status=SuggestionStatus.PENDING) == []


def test_flags(store, coder):
    ranker = CodeSuggestionRanker(store, coder)
    batch = ranker.suggest("enc-1", FIVE_REGION_NOTE)
    em = next(s for s in batch if s.code == "99213")

    flagged = ranker.flag(em.id, CodeFlagType.DOWNCODING, note="could be 99214")
    assert flagged.downcoding_risk
    assert flagged.audit_risk == AuditRiskLevel.MEDIUM

    flagged = ranker.flag(em.id, "upcoding")
    assert flagged.upcoding_risk
    assert flagged.audit_risk == AuditRiskLevel.HIGH
    assert [f["type"] for f in flagged.flags] == ["downcoding", "upcoding"]


def test_queries_and_statistics(store, coder):
    ranker = CodeSuggestionRanker(store, coder)
    batch = ranker.suggest("enc-1", TWO_REGION_NOTE, provider_id="dr-1")
    ranker.accept(batch[0].id)
    ranker.modify(batch[2].id, "98940")
    ranker.reject(batch[3].id)

    cpt = ranker.list_suggestions("enc-1", code_type="CPT")
    assert [s.code for s in cpt] == ["98941", "99213"]

    history = ranker.acceptance_history("dr-1")
    assert history["ICD10:M54.50"] == AcceptanceStats(accepted=1, rejected=0)
    assert history["CPT:99213"] == AcceptanceStats(accepted=0, rejected=1)

    stats = ranker.statistics()
    assert stats.total_suggestions == 4
    assert stats.accepted_count == 1
    assert stats.modified_count == 1
    assert stats.rejected_count == 1
    assert stats.acceptance_rate == 50.0
    assert stats.icd10_count == 2 and stats.cpt_count == 2
    assert stats.flagged_count == 1

    assert ranker.top_codes(CodeType.CPT, provider_id="dr-1") == [
        ("98941", "Description for 98941", 1)
    ]
