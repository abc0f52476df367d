"""
Preference Learner - Confidence-Weighted Provider Preferences

This module persists what edit_analysis observes and keeps each
preference's confidence in step with how the provider reacts to it.

Confidence Rules:
    new preference          → 0.5, learned_from = 1
    same (category, key)    → +0.05 (ceiling 1.0), learned_from + 1,
                              value replaced, reactivated
    feedback accepted       → +0.05 (ceiling 1.0)
    feedback rejected       → -0.10 (floor 0.1)

Sources:
    edit_tracking    → track_edit / track_draft_edits
    style_analysis   → learn_from_history (3+ notes)
    explicit_setting → set_preference

Pipeline Position:
    DraftNoteEngine.edit → [PreferenceLearner] → DraftNoteEngine.generate
                            ^^^^^^^^^^^^^^^^^
                            You are here

Author: Shubham Singh
Date: October 2026
"""

import threading
from collections import Counter
from datetime import datetime
from typing import Any, Callable, List, Mapping, Optional, Sequence, Tuple, Union

from loguru import logger

from chiro_documentation.core.constants import (
    MIN_NOTES_FOR_STYLE_ANALYSIS,
    PREFERENCE_EXAMPLE_WINDOW,
)
from chiro_documentation.core.enums import PreferenceCategory, PreferenceSource, SoapSection
from chiro_documentation.core.exceptions import BadRequestError, NotFoundError
from chiro_documentation.core.models import (
    DraftNote,
    LearningStats,
    PreferenceObservation,
    ProviderPreference,
    SoapContent,
)
from chiro_documentation.core.preference_values import (
    PreferenceValueBase,
    parse_preference_value,
)
from chiro_documentation.learning.edit_analysis import (
    LearningTables,
    analyze_edit,
    analyze_historical_style,
)
from chiro_documentation.repository.record_store import DocumentationStore

INITIAL_CONFIDENCE = 0.5
CONFIDENCE_STEP_UP = 0.05
CONFIDENCE_STEP_DOWN = 0.10
CONFIDENCE_CEILING = 1.0
CONFIDENCE_FLOOR = 0.1


class PreferenceLearner:
    """
    Learns and maintains per-provider documentation preferences.

    What it does:
        Upserts observations keyed by (provider, category, key), records
        accept/reject feedback, and answers preference queries for the
        draft engine.

    Example:
        >>> learner = PreferenceLearner(store)
        >>> prefs = learner.track_edit("dr-1", "plan", "Continue care.",
        ...                            "Continue care. Will follow up in one week.")
        >>> learner.record_feedback(prefs[0].id, accepted=True)
        (0.55, 1.0)
    """

    def __init__(
        self,
        store: DocumentationStore,
        tables: Optional[LearningTables] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._store = store
        self._tables = tables or LearningTables.default()
        self._clock = clock
        self._upsert_lock = threading.Lock()
        logger.info("PreferenceLearner initialized")

    # =========================================================================
    # STAGE 1: UPSERT
    # =========================================================================

    def upsert(
        self,
        provider_id: str,
        category: Union[PreferenceCategory, str],
        key: str,
        value: Union[PreferenceValueBase, Mapping[str, Any]],
        source: Union[PreferenceSource, str] = PreferenceSource.EDIT_TRACKING,
        description: Optional[str] = None,
    ) -> ProviderPreference:
        """
        Create a preference or reinforce the existing one for the same key.

        Raises:
            PayloadValidationError: If the value does not fit the category
        """
        category = PreferenceCategory(category)
        source = PreferenceSource(source)
        parsed = parse_preference_value(category, value)
        payload = parsed.to_payload()

        with self._upsert_lock:
            existing = self._store.find_preference(provider_id, category, key)
            if existing is not None:
                existing.value = parsed
                existing.examples = (existing.examples + [payload])[-PREFERENCE_EXAMPLE_WINDOW:]
                existing.learned_from += 1
                existing.confidence = min(CONFIDENCE_CEILING, existing.confidence + CONFIDENCE_STEP_UP)
                existing.source = source
                existing.is_active = True
                existing.updated_at = self._clock()
                self._store.save_preference(existing)
                logger.debug(
                    f"Preference reinforced | Provider: {provider_id} | "
                    f"{category.value}:{key} | Confidence: {existing.confidence:.2f}"
                )
                return existing

            created = ProviderPreference(
                provider_id=provider_id,
                category=category,
                key=key,
                value=parsed,
                description=description,
                source=source,
                confidence=INITIAL_CONFIDENCE,
                learned_from=1,
                examples=[payload],
                updated_at=self._clock(),
            )
            self._store.save_preference(created)
            logger.debug(f"Preference created | Provider: {provider_id} | {category.value}:{key}")
            return created

    def _upsert_all(
        self,
        provider_id: str,
        observations: Sequence[PreferenceObservation],
        source: PreferenceSource,
    ) -> List[ProviderPreference]:
        return [
            self.upsert(
                provider_id, obs.category, obs.key, obs.value, source, description=obs.description
            )
            for obs in observations
        ]

    # =========================================================================
    # STAGE 2: LEARNING SOURCES
    # =========================================================================

    def track_edit(
        self,
        provider_id: str,
        section: Union[SoapSection, str],
        original: str,
        edited: str,
        reason: Optional[str] = None,
    ) -> List[ProviderPreference]:
        """Learn from one section edit."""
        observations = analyze_edit(section, original, edited, reason, self._tables)
        saved = self._upsert_all(provider_id, observations, PreferenceSource.EDIT_TRACKING)
        if saved:
            logger.info(
                f"Learned from edit | Provider: {provider_id} | Section: {SoapSection(section).value} | "
                f"Preferences: {len(saved)}"
            )
        return saved

    def track_draft_edits(
        self, draft: DraftNote, provider_id: Optional[str] = None
    ) -> List[ProviderPreference]:
        """
        Learn from every recorded section edit on a draft.

        Raises:
            BadRequestError: If no provider is given and the draft has none
        """
        provider_id = provider_id or draft.provider_id
        if not provider_id:
            raise BadRequestError(
                "Provider is required to learn from draft edits", context={"draft_id": draft.id}
            )

        observations: List[PreferenceObservation] = []
        for section, edit in draft.edits.items():
            if edit.original and edit.edited:
                observations.extend(analyze_edit(section, edit.original, edit.edited, None, self._tables))

        saved = self._upsert_all(provider_id, observations, PreferenceSource.EDIT_TRACKING)
        logger.info(
            f"Learned from draft | Draft: {draft.id} | Provider: {provider_id} | "
            f"Categories: {sorted({o.category.value for o in observations})}"
        )
        return saved

    def learn_from_history(
        self, provider_id: str, notes: Sequence[SoapContent]
    ) -> List[ProviderPreference]:
        """
        Bootstrap preferences from the provider's past notes.

        Raises:
            BadRequestError: If fewer than 3 notes are given
        """
        if len(notes) < MIN_NOTES_FOR_STYLE_ANALYSIS:
            raise BadRequestError(
                f"Not enough notes to analyze (minimum {MIN_NOTES_FOR_STYLE_ANALYSIS} required)",
                context={"provider_id": provider_id, "note_count": len(notes)},
            )

        observations = analyze_historical_style(notes, self._tables)
        saved = self._upsert_all(provider_id, observations, PreferenceSource.STYLE_ANALYSIS)
        logger.info(
            f"Style analysis complete | Provider: {provider_id} | Notes: {len(notes)} | "
            f"Preferences: {len(saved)}"
        )
        return saved

    def set_preference(
        self,
        provider_id: str,
        category: Union[PreferenceCategory, str],
        key: str,
        value: Union[PreferenceValueBase, Mapping[str, Any]],
        description: Optional[str] = None,
    ) -> ProviderPreference:
        """Explicitly configure a preference."""
        return self.upsert(
            provider_id, category, key, value, PreferenceSource.EXPLICIT_SETTING, description
        )

    # =========================================================================
    # STAGE 3: FEEDBACK AND REMOVAL
    # =========================================================================

    def record_feedback(self, preference_id: str, accepted: bool) -> Tuple[float, float]:
        """
        Adjust confidence after the provider kept or undid an applied preference.

        Returns:
            (new confidence, times_accepted / times_applied)
        """
        pref = self._get(preference_id)
        pref.times_applied += 1
        if accepted:
            pref.times_accepted += 1
            pref.confidence = min(CONFIDENCE_CEILING, pref.confidence + CONFIDENCE_STEP_UP)
        else:
            pref.times_rejected += 1
            pref.confidence = max(CONFIDENCE_FLOOR, pref.confidence - CONFIDENCE_STEP_DOWN)
        pref.updated_at = self._clock()
        self._store.save_preference(pref)

        rate = pref.times_accepted / pref.times_applied if pref.times_applied else 0.0
        logger.debug(
            f"Preference feedback | {pref.key} | Accepted: {accepted} | "
            f"Confidence: {pref.confidence:.2f}"
        )
        return pref.confidence, rate

    def remove(self, preference_id: str, permanent: bool = False) -> None:
        """Deactivate a preference, or delete it when `permanent`."""
        pref = self._get(preference_id)
        if permanent:
            self._store.delete_preference(preference_id)
        else:
            pref.is_active = False
            pref.updated_at = self._clock()
            self._store.save_preference(pref)
        logger.info(f"Preference removed | Id: {preference_id} | Permanent: {permanent}")

    # =========================================================================
    # STAGE 4: QUERIES
    # =========================================================================

    def get_preference(self, preference_id: str) -> ProviderPreference:
        return self._get(preference_id)

    def list_preferences(
        self,
        provider_id: str,
        category: Optional[Union[PreferenceCategory, str]] = None,
        active_only: bool = True,
    ) -> List[ProviderPreference]:
        """Preferences sorted by category, then by confidence (highest first)."""
        prefs = self._store.list_preferences(provider_id)
        if category is not None:
            prefs = [p for p in prefs if p.category == PreferenceCategory(category)]
        if active_only:
            prefs = [p for p in prefs if p.is_active]
        return sorted(prefs, key=lambda p: (p.category.value, -p.confidence))

    def statistics(self, provider_id: str) -> LearningStats:
        prefs = self._store.list_preferences(provider_id)
        applied = sum(p.times_applied for p in prefs)
        accepted = sum(p.times_accepted for p in prefs)

        return LearningStats(
            total_preferences=len(prefs),
            active_preferences=sum(1 for p in prefs if p.is_active),
            by_category=dict(Counter(p.category.value for p in prefs)),
            average_confidence=sum(p.confidence for p in prefs) / len(prefs) if prefs else None,
            total_applied=applied,
            total_accepted=accepted,
            acceptance_rate=accepted / applied if applied else None,
        )

    def _get(self, preference_id: str) -> ProviderPreference:
        pref = self._store.get_preference(preference_id)
        if pref is None:
            raise NotFoundError("preference", preference_id, "Preference not found")
        return pref
