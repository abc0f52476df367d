"""
Edit Analysis - Preference Observations from Edits and Past Notes

Pure text heuristics that turn provider behaviour into PreferenceObservation
objects. The learner decides what to persist; nothing here touches storage.

Single edit (analyze_edit), three independent detectors:
    terminology → word-frequency diff, removed/added words paired by length
    style       → bullet or numbered-list markers appearing/disappearing
    phrases     → new sentences plus newly matched closing phrases (max 5)

Historical notes (analyze_historical_style):
    style       → bullet / numbered usage in more than half of all sections
    terminology → abbreviation vs. full-form usage counts
    depth       → brief / standard / detailed / comprehensive by total words
    phrases     → plan closings and subjective openings used in 30%+ of notes

Known weakness:
    Terminology pairing only compares word lengths (within 3 characters),
    so "cervical" → "thoracic" and "tenderness" → "improving" are both
    possible pairs. The first length match wins.

Author: Shubham Singh
Date: October 2026
"""

import re
from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple, Union

from chiro_documentation.core.constants import (
    ABBREVIATION_PAIRS,
    CLOSING_PHRASE_PATTERNS,
    DEPTH_TIER_LIMITS,
)
from chiro_documentation.core.enums import DocumentationDepth, PreferenceCategory, SoapSection
from chiro_documentation.core.models import PreferenceObservation, SoapContent
from chiro_documentation.core.preference_values import (
    DepthValue,
    PhrasesValue,
    StyleValue,
    TerminologyValue,
)

BULLET_LINE = re.compile(r"^\s*[•\-*]", re.MULTILINE)
NUMBERED_LINE = re.compile(r"^\s*\d+[.)]", re.MULTILINE)
SENTENCE_END = re.compile(r"[.!?]\s+")
PLAN_DIRECTIVE = re.compile(
    r"(?:will|should|recommend|advised|instructed)[^.!?]*[.!?]", re.IGNORECASE
)

MIN_TERM_CHARS = 4
PAIR_LENGTH_TOLERANCE = 3
MIN_PHRASE_CHARS = 10
MAX_ADDED_PHRASES = 5
STYLE_MAJORITY = 0.5
ABBREVIATION_MIN_USES = 3
PHRASE_NOTE_SHARE = 0.3
MAX_CLOSING_PHRASES = 5
MAX_OPENING_PHRASES = 3
MAX_OPENING_CHARS = 100


# =============================================================================
# STAGE 1: INJECTABLE TABLES
# =============================================================================


@dataclass(frozen=True)
class LearningTables:
    """Pattern and pair tables used by the detectors."""

    closing_phrase_patterns: Tuple[str, ...]
    abbreviation_pairs: Tuple[Tuple[str, str], ...]
    depth_tiers: Tuple[Tuple[str, int], ...]

    @classmethod
    def default(cls) -> "LearningTables":
        return cls(
            closing_phrase_patterns=CLOSING_PHRASE_PATTERNS,
            abbreviation_pairs=ABBREVIATION_PAIRS,
            depth_tiers=DEPTH_TIER_LIMITS,
        )


# =============================================================================
# STAGE 2: SINGLE-EDIT DETECTORS
# =============================================================================


def detect_terminology_changes(original: str, edited: str) -> List[Tuple[str, str]]:
    """
    Pair words the edit removed with words it added.

    Only words longer than 3 characters are considered. Each removed word
    takes the first still-unpaired added word within 3 characters of its
    length.

    Example:
        >>> detect_terminology_changes("Patient has back pain", "Patient has lumbar pain")
        [('back', 'lumbar')]
    """
    before = Counter(original.lower().split())
    after = Counter(edited.lower().split())

    removed = [w for w, n in before.items() if after.get(w, 0) < n and len(w) >= MIN_TERM_CHARS]
    added = [w for w, n in after.items() if n > before.get(w, 0) and len(w) >= MIN_TERM_CHARS]

    changes: List[Tuple[str, str]] = []
    for word in removed:
        for candidate in added:
            if abs(len(word) - len(candidate)) <= PAIR_LENGTH_TOLERANCE:
                changes.append((word, candidate))
                added.remove(candidate)
                break
    return changes


def detect_style_change(original: str, edited: str) -> Optional[Tuple[str, StyleValue]]:
    """
    Return (key, value) when list formatting changed.

    Bullets added   → ("useBulletPoints", enabled)
    Bullets removed → ("useBulletPoints", disabled)
    Numbers added   → ("useNumberedLists", enabled)
    """
    had_bullets = bool(BULLET_LINE.search(original))
    has_bullets = bool(BULLET_LINE.search(edited))
    if has_bullets and not had_bullets:
        return "useBulletPoints", StyleValue(enabled=True, use_bullet_points=True)
    if had_bullets and not has_bullets:
        return "useBulletPoints", StyleValue(enabled=False, use_bullet_points=False)

    if NUMBERED_LINE.search(edited) and not NUMBERED_LINE.search(original):
        return "useNumberedLists", StyleValue(enabled=True, use_numbered_lists=True)
    return None


def detect_added_phrases(
    original: str, edited: str, tables: Optional[LearningTables] = None
) -> List[str]:
    """New sentences (over 10 chars) and newly matched closing-phrase sentences, max 5."""
    tables = tables or LearningTables.default()
    known = {s.strip().lower() for s in SENTENCE_END.split(original)}

    phrases = [
        sentence
        for sentence in (s.strip() for s in SENTENCE_END.split(edited))
        if len(sentence) > MIN_PHRASE_CHARS and sentence.lower() not in known
    ]

    for pattern in tables.closing_phrase_patterns:
        regex = re.compile(pattern, re.IGNORECASE)
        if regex.search(original):
            continue
        match = regex.search(edited)
        if match is None:
            continue
        index = match.start()
        start = edited.rfind(".", 0, index + 1) + 1
        end = edited.find(".", index)
        if end > start:
            phrases.append(edited[start:end].strip())

    return list(dict.fromkeys(phrases))[:MAX_ADDED_PHRASES]


def analyze_edit(
    section: Union[SoapSection, str],
    original: str,
    edited: str,
    reason: Optional[str] = None,
    tables: Optional[LearningTables] = None,
) -> List[PreferenceObservation]:
    """
    Run the three edit detectors on one section edit.

    Each detector yields at most one observation. An empty side or an
    unchanged text yields nothing. `reason` is accepted for the caller's
    audit trail and does not influence detection.
    """
    if not original or not edited or original == edited:
        return []

    name = SoapSection(section).value
    observations: List[PreferenceObservation] = []

    changes = detect_terminology_changes(original, edited)
    if changes:
        observations.append(
            PreferenceObservation(
                category=PreferenceCategory.TERMINOLOGY,
                key=f"{name}_replacements",
                value=TerminologyValue(replacements=dict(changes)),
                description=f"Learned terminology preferences from {name} edits",
            )
        )

    style = detect_style_change(original, edited)
    if style is not None:
        key, value = style
        observations.append(
            PreferenceObservation(
                category=PreferenceCategory.STYLE,
                key=key,
                value=value,
                description=f"Learned {name} formatting preference",
            )
        )

    phrases = detect_added_phrases(original, edited, tables)
    if phrases:
        observations.append(
            PreferenceObservation(
                category=PreferenceCategory.PHRASES,
                key=f"{name}_additions",
                value=PhrasesValue(phrases=phrases),
                description=f"Learned preferred phrases for {name}",
            )
        )

    return observations


# =============================================================================
# STAGE 3: HISTORICAL STYLE ANALYSIS
# =============================================================================


def analyze_historical_style(
    notes: Sequence[SoapContent], tables: Optional[LearningTables] = None
) -> List[PreferenceObservation]:
    """
    Bootstrap preferences from a provider's past notes.

    Returns style, terminology, depth and phrase observations in that
    order. Depth is always reported; the others only when their thresholds
    are met. Callers enforce the minimum note count.
    """
    tables = tables or LearningTables.default()
    observations: List[PreferenceObservation] = []
    observations.extend(_style_patterns(notes))
    observations.extend(_terminology_patterns(notes, tables))
    observations.append(_documentation_depth(notes, tables))
    observations.extend(_phrase_patterns(notes))
    return observations


def _style_patterns(notes: Sequence[SoapContent]) -> List[PreferenceObservation]:
    sections = [text for note in notes for _, text in note.items() if text]
    if not sections:
        return []

    observations = []
    bullets = sum(1 for text in sections if BULLET_LINE.search(text)) / len(sections)
    numbered = sum(1 for text in sections if NUMBERED_LINE.search(text)) / len(sections)

    if bullets > STYLE_MAJORITY:
        observations.append(
            PreferenceObservation(
                category=PreferenceCategory.STYLE,
                key="useBulletPoints",
                value=StyleValue(enabled=True, use_bullet_points=True, frequency=bullets),
                description="Prefers bullet point formatting",
            )
        )
    if numbered > STYLE_MAJORITY:
        observations.append(
            PreferenceObservation(
                category=PreferenceCategory.STYLE,
                key="useNumberedLists",
                value=StyleValue(enabled=True, use_numbered_lists=True, frequency=numbered),
                description="Prefers numbered list formatting",
            )
        )
    return observations


def _terminology_patterns(
    notes: Sequence[SoapContent], tables: LearningTables
) -> List[PreferenceObservation]:
    texts = [note.combined_text.lower() for note in notes]
    replacements: Dict[str, str] = {}

    for abbreviation, full in tables.abbreviation_pairs:
        pattern = re.compile(rf"\b{re.escape(abbreviation)}\b", re.IGNORECASE)
        abbreviated = sum(1 for text in texts if pattern.search(text))
        spelled_out = sum(1 for text in texts if full.lower() in text)

        if abbreviated > spelled_out and abbreviated >= ABBREVIATION_MIN_USES:
            replacements[full] = abbreviation
        elif spelled_out > abbreviated and spelled_out >= ABBREVIATION_MIN_USES:
            replacements[abbreviation] = full

    if not replacements:
        return []
    return [
        PreferenceObservation(
            category=PreferenceCategory.TERMINOLOGY,
            key="abbreviation_preferences",
            value=TerminologyValue(replacements=replacements),
            description="Learned abbreviation vs full form preferences",
        )
    ]


def _documentation_depth(
    notes: Sequence[SoapContent], tables: LearningTables
) -> PreferenceObservation:
    section_counts: Dict[str, int] = {}
    for section in SoapSection.ordered():
        counts = [len(text.split()) for text in (n.get(section) for n in notes) if text]
        if counts:
            section_counts[section.value] = int(sum(counts) / len(counts) + 0.5)

    total = sum(section_counts.values())
    level = DocumentationDepth.COMPREHENSIVE
    for name, limit in tables.depth_tiers:
        if total < limit:
            level = DocumentationDepth(name)
            break

    return PreferenceObservation(
        category=PreferenceCategory.DEPTH,
        key="documentation_depth",
        value=DepthValue(level=level, avg_word_count=total, section_counts=section_counts),
        description=f"Documentation depth: {level.value} (avg {total} words)",
    )


def _phrase_patterns(notes: Sequence[SoapContent]) -> List[PreferenceObservation]:
    threshold = max(2, len(notes) * PHRASE_NOTE_SHARE)
    observations = []

    closings: Counter = Counter()
    for note in notes:
        if note.plan:
            closings.update(m.lower().strip() for m in PLAN_DIRECTIVE.findall(note.plan))
    common_closings = _frequent(closings, threshold, MAX_CLOSING_PHRASES)
    if common_closings:
        observations.append(
            PreferenceObservation(
                category=PreferenceCategory.PHRASES,
                key="common_closing_phrases",
                value=PhrasesValue(phrases=common_closings),
                description="Commonly used closing phrases",
            )
        )

    openings: Counter = Counter()
    for note in notes:
        if note.subjective:
            first = re.split(r"[.!?]", note.subjective)[0].lower().strip()
            if MIN_PHRASE_CHARS < len(first) < MAX_OPENING_CHARS:
                openings[first] += 1
    common_openings = _frequent(openings, threshold, MAX_OPENING_PHRASES)
    if common_openings:
        observations.append(
            PreferenceObservation(
                category=PreferenceCategory.PHRASES,
                key="common_opening_phrases",
                value=PhrasesValue(phrases=common_openings),
                description="Commonly used opening phrases in subjective",
            )
        )

    return observations


def _frequent(counts: Counter, threshold: float, limit: int) -> List[str]:
    ranked = sorted(
        ((phrase, n) for phrase, n in counts.items() if n >= threshold),
        key=lambda item: item[1],
        reverse=True,
    )
    return [phrase for phrase, _ in ranked[:limit]]
