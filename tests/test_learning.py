import pytest

from chiro_documentation.core.enums import (
    DocumentationDepth,
    PreferenceCategory,
    PreferenceSource,
)
from chiro_documentation.core.exceptions import (
    BadRequestError,
    NotFoundError,
    PayloadValidationError,
)
from chiro_documentation.core.models import SoapContent
from chiro_documentation.generation.draft_engine import DraftNoteEngine
from chiro_documentation.learning.edit_analysis import (
    analyze_edit,
    analyze_historical_style,
    detect_added_phrases,
    detect_style_change,
    detect_terminology_changes,
)
from chiro_documentation.learning.preference_learner import PreferenceLearner

HISTORICAL_NOTE = SoapContent(
    subjective="- Pt reports improvement today. Pain 3/10.",
    plan="- Adjust C5\n- Pt will follow up in one week.",
)


@pytest.fixture
def learner(store, clock):
    return PreferenceLearner(store, clock=clock)


# ---- edit detectors ----


def test_terminology_pairs_by_length():
    assert detect_terminology_changes("Patient has back pain", "Patient has lumbar pain") == [
        ("back", "lumbar")
    ]
    # Short words are ignored and distant lengths do not pair
    assert detect_terminology_changes("Pt has LBP", "Patient has lumbosacral pain") == []


@pytest.mark.parametrize(
    "original,edited,expected",
    [
        ("Adjust C5. Ice.", "• Adjust C5\n• Ice", ("useBulletPoints", True)),
        ("- Adjust C5\n- Ice", "Adjust C5 and ice.", ("useBulletPoints", False)),
        ("Adjust C5. Ice.", "1. Adjust C5\n2. Ice", ("useNumberedLists", True)),
        ("Adjust C5.", "Adjust C5 and C6.", None),
    ],
)
def test_detect_style_change(original, edited, expected):
    result = detect_style_change(original, edited)
    if expected is None:
        assert result is None
    else:
        key, value = result
        assert (key, value.enabled) == expected


def test_detect_added_phrases_includes_closing_sentence():
    phrases = detect_added_phrases("Adjust C5.", "Adjust C5. Will follow up in one week.")
    assert "Will follow up in one week" in phrases
    assert len(phrases) <= 5


def test_analyze_edit_ignores_unchanged_or_empty_text():
    assert analyze_edit("plan", "Same text.", "Same text.") == []
    assert analyze_edit("plan", "", "New text here.") == []


def test_analyze_edit_reports_each_detector_once():
    observations = analyze_edit(
        "plan",
        "Adjust back region today",
        "- Adjust lumbar region today\n- Return in one week.",
    )
    assert [(o.category, o.key) for o in observations] == [
        (PreferenceCategory.TERMINOLOGY, "plan_replacements"),
        (PreferenceCategory.STYLE, "useBulletPoints"),
        (PreferenceCategory.PHRASES, "plan_additions"),
    ]


# ---- historical analysis ----


def test_historical_style_analysis():
    observations = analyze_historical_style([HISTORICAL_NOTE] * 3)

    assert [o.key for o in observations] == [
        "useBulletPoints",
        "abbreviation_preferences",
        "documentation_depth",
        "common_closing_phrases",
        "common_opening_phrases",
    ]
    style, terminology, depth, closings, openings = (o.value for o in observations)
    assert style.frequency == 1.0
    assert terminology.replacements == {"patient": "pt"}
    assert depth.level == DocumentationDepth.BRIEF
    assert depth.section_counts == {"subjective": 7, "plan": 11}
    assert depth.avg_word_count == 18
    assert closings.phrases == ["will follow up in one week."]
    assert openings.phrases == ["- pt reports improvement today"]


def test_abbreviations_need_three_uses():
    observations = analyze_historical_style([HISTORICAL_NOTE] * 2 + [SoapContent(plan="Adjust.")])
    assert "abbreviation_preferences" not in [o.key for o in observations]


# ---- learner ----


def test_upsert_reinforces_existing_key(learner, clock):
    first = learner.set_preference("dr-1", "phrases", "closing", {"closingPhrase": "Call us."})
    assert first.confidence == 0.5
    assert first.source == PreferenceSource.EXPLICIT_SETTING

    learner.remove(first.id)
    clock.advance(10)
    second = learner.upsert("dr-1", "phrases", "closing", {"closingPhrase": "Call the office."})

    assert second.id == first.id
    assert second.confidence == pytest.approx(0.55)
    assert second.learned_from == 2
    assert second.is_active
    assert second.source == PreferenceSource.EDIT_TRACKING
    assert second.value.closing_phrase == "Call the office."
    assert [e["closingPhrase"] for e in second.examples] == ["Call us.", "Call the office."]
    assert second.updated_at == clock.now


def test_examples_window(learner):
    for i in range(12):
        pref = learner.upsert("dr-1", "phrases", "closing", {"closingPhrase": f"Line {i}"})
    assert len(pref.examples) == 10
    assert pref.examples[0]["closingPhrase"] == "Line 2"
    assert pref.confidence == 1.0


def test_upsert_validates_payload(learner):
    with pytest.raises(PayloadValidationError):
        learner.upsert("dr-1", "depth", "documentation_depth", {"level": "enormous"})


def test_track_edit_and_feedback(learner):
    prefs = learner.track_edit(
        "dr-1", "plan", "Continue care.", "Continue care. Will follow up in one week."
    )
    assert [p.category for p in prefs] == [PreferenceCategory.PHRASES]

    assert learner.record_feedback(prefs[0].id, accepted=True) == (pytest.approx(0.55), 1.0)
    confidence, rate = learner.record_feedback(prefs[0].id, accepted=False)
    assert confidence == pytest.approx(0.45)
    assert rate == 0.5


def test_feedback_is_bounded(learner):
    pref = learner.set_preference("dr-1", "style", "useBulletPoints", {"enabled": True})
    for _ in range(6):
        confidence, _ = learner.record_feedback(pref.id, accepted=False)
    assert confidence == pytest.approx(0.1)

    for _ in range(20):
        confidence, _ = learner.record_feedback(pref.id, accepted=True)
    assert confidence == 1.0

    with pytest.raises(NotFoundError):
        learner.record_feedback("missing", accepted=True)


def test_track_draft_edits(store, clock, fake_ai, learner):
    engine = DraftNoteEngine(store, fake_ai, clock=clock)
    draft = engine.generate("enc-1", "transcript", provider_id="dr-1")
    engine.edit(draft.id, {"plan": f"{fake_ai.soap.plan} Will follow up in two weeks."})

    prefs = learner.track_draft_edits(engine.get_draft(draft.id))
    assert [(p.category, p.key) for p in prefs] == [(PreferenceCategory.PHRASES, "plan_additions")]

    anonymous = engine.generate("enc-2", "transcript")
    with pytest.raises(BadRequestError):
        learner.track_draft_edits(anonymous)


def test_learn_from_history(learner):
    with pytest.raises(BadRequestError):
        learner.learn_from_history("dr-1", [HISTORICAL_NOTE] * 2)

    prefs = learner.learn_from_history("dr-1", [HISTORICAL_NOTE] * 3)
    assert len(prefs) == 5
    assert {p.source for p in prefs} == {PreferenceSource.STYLE_ANALYSIS}


def test_remove_and_list(learner):
    low = learner.set_preference("dr-1", "phrases", "opening", {"phrases": ["Pt reports"]})
    high = learner.set_preference("dr-1", "phrases", "closing", {"closingPhrase": "Call us."})
    learner.record_feedback(high.id, accepted=True)
    depth = learner.set_preference("dr-1", "depth", "documentation_depth", {"level": "brief"})
    learner.set_preference("dr-2", "style", "useBulletPoints", {"enabled": True})

    assert [p.id for p in learner.list_preferences("dr-1")] == [depth.id, high.id, low.id]
    assert [p.id for p in learner.list_preferences("dr-1", category="depth")] == [depth.id]

    learner.remove(low.id)
    assert low.id not in [p.id for p in learner.list_preferences("dr-1")]
    assert low.id in [p.id for p in learner.list_preferences("dr-1", active_only=False)]

    learner.remove(depth.id, permanent=True)
    with pytest.raises(NotFoundError):
        learner.get_preference(depth.id)


def test_statistics(learner):
    assert learner.statistics("dr-1").average_confidence is None

    closing = learner.set_preference("dr-1", "phrases", "closing", {"closingPhrase": "Call us."})
    learner.set_preference("dr-1", "style", "useBulletPoints", {"enabled": True})
    learner.record_feedback(closing.id, accepted=True)
    learner.record_feedback(closing.id, accepted=False)

    stats = learner.statistics("dr-1")
    assert stats.total_preferences == 2
    assert stats.active_preferences == 2
    assert stats.by_category == {"phrases": 1, "style": 1}
    assert stats.total_applied == 2
    assert stats.total_accepted == 1
    assert stats.acceptance_rate == 0.5
