"""
Draft Note Engine - SOAP Draft Lifecycle with Style Matching

This module turns a completed transcript into a reviewable SOAP draft and
guards the draft's review lifecycle until it is materialized into the
encounter's clinical note.

Lifecycle:
    generate ──► PENDING_REVIEW ──► EDITED / APPROVED / REJECTED ──► APPLIED
                       ▲                        │                (terminal)
                       └──── regenerate ◄───────┘

    `apply` requires APPROVED or EDITED. Nothing moves out of APPLIED.

Why Separate from Style Application:
    1. style.py is a pure function over content and preferences
    2. This class owns persistence, timing and provenance
    3. The same style function serves the preview operation

Pipeline Position:
    TranscriptionSessionManager → [DraftNoteEngine] → CodeSuggestionRanker
                                   ^^^^^^^^^^^^^^^
                                   You are here

Author: Shubham Singh
Date: October 2026
"""

import time
from dataclasses import replace
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from loguru import logger

from chiro_documentation.clients.capabilities import SoapGenerationCapability
from chiro_documentation.core.config import EngineConfiguration
from chiro_documentation.core.enums import DraftStatus, EncounterType, SoapSection
from chiro_documentation.core.exceptions import BadRequestError, NotFoundError
from chiro_documentation.core.models import (
    ClinicalNote,
    DraftNote,
    DraftStats,
    PatientInfo,
    ProviderPreference,
    SectionEdit,
    SoapContent,
    SoapGenerationContext,
    StyleApplication,
)
from chiro_documentation.generation.style import apply_provider_style
from chiro_documentation.repository.record_store import DocumentationStore

ADDITIONAL_CONTEXT_LABEL = "[Additional Provider Notes]"


class DraftNoteEngine:
    """
    Generates, reviews and applies AI SOAP drafts.

    What it does:
        Calls the SOAP-generation capability, applies the provider's
        confident preferences, stores the draft with provenance, and enforces
        the review transitions.

    Confidence:
        Every section confidence equals the model's single reported
        confidence. Sections are not assessed independently.

    Example:
        >>> engine = DraftNoteEngine(store, ai_service)
        >>> draft = engine.generate("enc-1", transcript, provider_id="dr-1")
        >>> engine.approve(draft.id, reviewer_id="dr-1")
        >>> note = engine.apply(draft.id)
    """

    def __init__(
        self,
        store: DocumentationStore,
        generator: SoapGenerationCapability,
        config: Optional[EngineConfiguration] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._store = store
        self._generator = generator
        self._config = config or EngineConfiguration()
        self._clock = clock

        logger.info(
            f"DraftNoteEngine initialized | "
            f"Style threshold: {self._config.style_confidence_threshold}"
        )

    @property
    def _provider_name(self) -> str:
        return getattr(self._generator, "provider_name", type(self._generator).__name__)

    # =========================================================================
    # STAGE 1: GENERATION
    # =========================================================================

    def generate(
        self,
        encounter_id: str,
        transcription: str,
        patient_info: Optional[PatientInfo] = None,
        chief_complaint: Optional[str] = None,
        encounter_type: Union[EncounterType, str] = EncounterType.FOLLOW_UP,
        previous_visit: Optional[SoapContent] = None,
        provider_id: Optional[str] = None,
        transcription_id: Optional[str] = None,
        preferences: Optional[Sequence[ProviderPreference]] = None,
        include_style_matching: bool = True,
    ) -> DraftNote:
        """
        Generate a PENDING_REVIEW draft from a transcript.

        STAGE 1.1: Build the generation context
        STAGE 1.2: Call the SOAP-generation capability
        STAGE 1.3: Apply preferences (confidence >= threshold, highest first)
        STAGE 1.4: Persist with confidences and provenance

        Args:
            preferences: Explicit preferences to consider; when omitted they
                are loaded for `provider_id` from the store

        Raises:
            BadRequestError: If the transcript is empty
            AIServiceError: If the capability call fails
        """
        if not transcription or not transcription.strip():
            raise BadRequestError(
                "No completed transcription found for this encounter",
                context={"encounter_id": encounter_id},
            )

        started = time.perf_counter()

        # STAGE 1.1: Build the generation context
        context = SoapGenerationContext(
            transcription=transcription,
            encounter_type=EncounterType.coerce(encounter_type),
            chief_complaint=chief_complaint,
            patient_info=patient_info or PatientInfo(),
            previous_visit=previous_visit,
        )

        # STAGE 1.2: Call the capability
        suggestion = self._generator.generate_soap(context)
        content = suggestion.content

        # STAGE 1.3: Apply preferences
        style: Optional[StyleApplication] = None
        if include_style_matching:
            candidates = (
                preferences
                if preferences is not None
                else self._load_preferences(provider_id)
            )
            considered = self._confident(candidates, self._config.style_confidence_threshold)
            if considered:
                style = apply_provider_style(content, considered)
                content = style.content

        # STAGE 1.4: Persist
        draft = DraftNote(
            encounter_id=encounter_id,
            transcription_id=transcription_id,
            provider_id=provider_id,
            status=DraftStatus.PENDING_REVIEW,
            content=content,
            section_confidence={s.value: suggestion.confidence for s in SoapSection.ordered()},
            overall_confidence=suggestion.confidence,
            style_match_score=style.match_score if style else 0.0,
            style_elements=list(style.applied_elements) if style else [],
            ai_model_used=self._provider_name,
            processing_time_ms=int((time.perf_counter() - started) * 1000),
            generation_context=context,
            created_at=self._clock(),
        )
        self._store.save_draft(draft)

        logger.info(
            f"Draft generated | Draft: {draft.id} | Encounter: {encounter_id} | "
            f"Confidence: {draft.overall_confidence:.2f} | "
            f"Style score: {draft.style_match_score:.2f} | "
            f"Time: {draft.processing_time_ms}ms"
        )
        return draft

    def regenerate(
        self,
        draft_id: str,
        additional_context: Optional[str] = None,
        focus_areas: Optional[Iterable[Union[SoapSection, str]]] = None,
    ) -> DraftNote:
        """
        Re-run generation and replace only the focused sections.

        The stored transcript gets the provider's extra notes appended. Style
        is not re-applied. Sections outside `focus_areas` (default: all four)
        keep their current text and confidence.

        Raises:
            NotFoundError: If the draft does not exist
            BadRequestError: If the draft is APPLIED or has no stored context
        """
        draft = self._get(draft_id)
        self._require_not_applied(draft, "regenerate")
        if draft.generation_context is None or not draft.generation_context.transcription:
            raise BadRequestError(
                "Original transcription not found", context={"draft_id": draft_id}
            )

        started = time.perf_counter()
        transcript = draft.generation_context.transcription
        if additional_context:
            transcript = f"{transcript}\n\n{ADDITIONAL_CONTEXT_LABEL}: {additional_context}"
        context = replace(draft.generation_context, transcription=transcript)

        suggestion = self._generator.generate_soap(context)

        sections = self._focus_sections(focus_areas)
        content = draft.content
        for section in sections:
            content = content.with_section(section, suggestion.content.get(section))
            draft.section_confidence[section.value] = suggestion.confidence

        draft.content = content
        draft.overall_confidence = suggestion.confidence
        draft.status = DraftStatus.PENDING_REVIEW
        draft.ai_model_used = self._provider_name
        draft.processing_time_ms = int((time.perf_counter() - started) * 1000)
        self._store.save_draft(draft)

        logger.info(
            f"Draft regenerated | Draft: {draft_id} | "
            f"Sections: {[s.value for s in sections]} | "
            f"Extra context: {'provided' if additional_context else 'none'}"
        )
        return draft

    # =========================================================================
    # STAGE 2: REVIEW TRANSITIONS
    # =========================================================================

    def edit(
        self,
        draft_id: str,
        section_edits: Mapping[Union[SoapSection, str], str],
        reason: Optional[str] = None,
    ) -> DraftNote:
        """
        Record provider edits to one or more sections.

        Only sections whose new text differs from the stored text are
        recorded. A call that changes nothing leaves the draft untouched
        (no status change, no edit count, no reason appended).

        Raises:
            NotFoundError: If the draft does not exist
            BadRequestError: If the draft is APPLIED or a section name is unknown
        """
        draft = self._get(draft_id)
        self._require_not_applied(draft, "edit")

        edited_at = self._clock()
        updates = [(self._section(raw), text) for raw, text in section_edits.items()]
        new_edits: Dict[str, SectionEdit] = {}
        content = draft.content
        for section, text in updates:
            if text is None:
                continue
            original = content.get(section)
            if text == original:
                continue
            new_edits[section.value] = SectionEdit(
                original=original, edited=text, edited_at=edited_at
            )
            content = content.with_section(section, text)
        changed = list(new_edits)

        if not changed:
            logger.debug(f"Draft edit ignored, nothing changed | Draft: {draft_id}")
            return draft

        draft.edits.update(new_edits)
        draft.content = content
        if reason:
            draft.edit_reasons.append(reason)
        draft.edit_count += 1
        draft.status = DraftStatus.EDITED
        self._store.save_draft(draft)

        logger.info(
            f"Draft edited | Draft: {draft_id} | Sections: {changed} | "
            f"Edit count: {draft.edit_count}"
        )
        return draft

    def approve(
        self, draft_id: str, reviewer_id: Optional[str] = None, notes: Optional[str] = None
    ) -> DraftNote:
        return self._review(draft_id, DraftStatus.APPROVED, reviewer_id, notes)

    def reject(
        self, draft_id: str, reason: str, reviewer_id: Optional[str] = None
    ) -> DraftNote:
        return self._review(draft_id, DraftStatus.REJECTED, reviewer_id, reason)

    def apply(self, draft_id: str) -> ClinicalNote:
        """
        Materialize an APPROVED or EDITED draft into the encounter's clinical note.

        All four sections of the existing note are overwritten (or a new note
        is created) and the draft becomes APPLIED.

        Raises:
            NotFoundError: If the draft does not exist
            BadRequestError: If the draft is not APPROVED or EDITED
        """
        draft = self._get(draft_id)
        if not draft.status.can_apply:
            raise BadRequestError(
                "Draft note must be approved or edited before applying",
                context={"draft_id": draft_id, "status": draft.status.value},
            )

        now = self._clock()
        note = self._store.get_clinical_note(draft.encounter_id)
        action = "updated" if note is not None else "created"
        note = ClinicalNote(
            encounter_id=draft.encounter_id,
            content=replace(draft.content),
            updated_at=now,
        )
        self._store.save_clinical_note(note)

        draft.status = DraftStatus.APPLIED
        draft.applied_at = now
        self._store.save_draft(draft)

        logger.info(
            f"Draft applied | Draft: {draft_id} | Encounter: {draft.encounter_id} | "
            f"Clinical note {action}"
        )
        return note

    # =========================================================================
    # STAGE 3: PREFERENCE PREVIEW
    # =========================================================================

    def apply_preferences_to_content(
        self, provider_id: str, content: SoapContent, preview: bool = False
    ) -> StyleApplication:
        """
        Run style application over arbitrary content.

        Uses the provider's active preferences at the (lower) preview
        threshold. Unless `preview` is set, every preference whose key or
        category shows up in an applied element counts as applied once more.
        """
        considered = self._confident(
            self._load_preferences(provider_id), self._config.preview_confidence_threshold
        )
        if not considered:
            return StyleApplication(content=content, match_score=0.0, applied_elements=[])

        result = apply_provider_style(content, considered)

        if not preview:
            for pref in considered:
                if any(
                    pref.key in element or pref.category.value in element
                    for element in result.applied_elements
                ):
                    pref.times_applied += 1
                    self._store.save_preference(pref)

        merged = SoapContent(
            **{
                section.value: result.content.get(section) or content.get(section)
                for section in SoapSection.ordered()
            }
        )
        return StyleApplication(
            content=merged,
            match_score=result.match_score,
            applied_elements=list(result.applied_elements),
        )

    # =========================================================================
    # STAGE 4: QUERIES
    # =========================================================================

    def get_draft(self, draft_id: str) -> DraftNote:
        return self._get(draft_id)

    def list_drafts(
        self,
        encounter_id: str,
        status: Optional[DraftStatus] = None,
        limit: int = 10,
    ) -> List[DraftNote]:
        """Drafts for an encounter, newest first."""
        drafts = [
            d
            for d in self._store.list_drafts(encounter_id)
            if status is None or d.status == DraftStatus(status)
        ]
        drafts.sort(key=lambda d: d.created_at, reverse=True)
        return drafts[:limit]

    def statistics(self) -> DraftStats:
        drafts = self._store.list_drafts()
        total = len(drafts)
        approved = sum(
            1 for d in drafts if d.status in (DraftStatus.APPROVED, DraftStatus.APPLIED)
        )
        rejected = sum(1 for d in drafts if d.status == DraftStatus.REJECTED)
        return DraftStats(
            total_drafts=total,
            approved_count=approved,
            rejected_count=rejected,
            acceptance_rate=round(approved / total * 100, 1) if total else 0.0,
            average_confidence=(
                sum(d.overall_confidence for d in drafts) / total if total else 0.0
            ),
            average_edits=sum(d.edit_count for d in drafts) / total if total else 0.0,
        )

    # =========================================================================
    # STAGE 5: HELPERS
    # =========================================================================

    def _review(
        self,
        draft_id: str,
        status: DraftStatus,
        reviewer_id: Optional[str],
        notes: Optional[str],
    ) -> DraftNote:
        draft = self._get(draft_id)
        self._require_not_applied(draft, status.value.lower())

        draft.status = status
        draft.reviewer_id = reviewer_id
        draft.reviewed_at = self._clock()
        draft.review_notes = notes
        self._store.save_draft(draft)

        logger.info(f"Draft reviewed | Draft: {draft_id} | Status: {status.value}")
        return draft

    def _get(self, draft_id: str) -> DraftNote:
        draft = self._store.get_draft(draft_id)
        if draft is None:
            raise NotFoundError("draft", draft_id, "Draft note not found")
        return draft

    @staticmethod
    def _require_not_applied(draft: DraftNote, action: str) -> None:
        if draft.status.is_terminal:
            raise BadRequestError(
                f"Cannot {action} a draft that has already been applied",
                context={"draft_id": draft.id},
            )

    def _load_preferences(self, provider_id: Optional[str]) -> List[ProviderPreference]:
        if not provider_id:
            return []
        return self._store.list_preferences(provider_id)

    @staticmethod
    def _confident(
        preferences: Iterable[ProviderPreference], threshold: float
    ) -> List[ProviderPreference]:
        """Active preferences at or above the threshold, highest confidence first."""
        kept = [p for p in preferences if p.is_active and p.confidence >= threshold]
        return sorted(kept, key=lambda p: p.confidence, reverse=True)

    @staticmethod
    def _section(value: Union[SoapSection, str]) -> SoapSection:
        try:
            return SoapSection(getattr(value, "value", value))
        except ValueError:
            raise BadRequestError(
                f"Unknown SOAP section: {value}",
                context={"allowed": ", ".join(s.value for s in SoapSection)},
            )

    @classmethod
    def _focus_sections(
        cls, focus_areas: Optional[Iterable[Union[SoapSection, str]]]
    ) -> List[SoapSection]:
        requested = {cls._section(area) for area in (focus_areas or [])}
        if not requested:
            return SoapSection.ordered()
        return [s for s in SoapSection.ordered() if s in requested]
