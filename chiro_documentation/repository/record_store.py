"""
Documentation Record Store - Persistence Boundary

The engines read and write whole records (sessions, drafts, clinical notes,
code suggestions, compliance issues, preferences) through this interface and
never own storage themselves.

Architecture:
    DocumentationStore (Protocol)
    └── InMemoryDocumentationStore  → Process-local store for tests and demos

Atomic session start:
    `create_session` is the one operation with a concurrency contract: the
    check for an active (RECORDING/PAUSED) session and the insert must be
    observably atomic per encounter. A database-backed store must implement
    it with a unique partial index or a transactional check, because several
    server processes may race. The in-memory store uses a lock.

Pipeline Position:
    Engines → [DocumentationStore] → backing storage
               ^^^^^^^^^^^^^^^^^^
               You are here

Author: Shubham Singh
Date: October 2026
"""

import threading
from typing import Dict, List, Optional, Protocol, runtime_checkable

from loguru import logger

from chiro_documentation.core.enums import PreferenceCategory
from chiro_documentation.core.exceptions import ConflictError
from chiro_documentation.core.models import (
    ClinicalNote,
    CodeSuggestion,
    ComplianceIssue,
    DraftNote,
    ProviderPreference,
    TranscriptionSession,
)


# =============================================================================
# STAGE 1: STORE PROTOCOL (INTERFACE)
# =============================================================================


@runtime_checkable
class DocumentationStore(Protocol):
    """
    Protocol defining the persistence boundary for the documentation core.

    Required Methods:
        Sessions     → create_session (atomic), get/save/list, find_active_session
        Drafts       → get_draft, save_draft, list_drafts
        Notes        → get_clinical_note, save_clinical_note
        Suggestions  → add_suggestions, get/save_suggestion, list_suggestions
        Issues       → add_issues, get/save_issue, list_issues
        Preferences  → get/find/save/delete_preference, list_preferences
    """

    # -- sessions -------------------------------------------------------------
    def create_session(self, session: TranscriptionSession) -> TranscriptionSession:
        """
        Insert a session unless the encounter already has an active one.

        Raises:
            ConflictError: If a RECORDING or PAUSED session exists for the encounter
        """
        ...

    def get_session(self, session_id: str) -> Optional[TranscriptionSession]:
        ...

    def save_session(self, session: TranscriptionSession) -> None:
        ...

    def find_active_session(self, encounter_id: str) -> Optional[TranscriptionSession]:
        ...

    def list_sessions(self, encounter_id: Optional[str] = None) -> List[TranscriptionSession]:
        ...

    # -- drafts and clinical notes ----------------------------------------------
    def get_draft(self, draft_id: str) -> Optional[DraftNote]:
        ...

    def save_draft(self, draft: DraftNote) -> None:
        ...

    def list_drafts(self, encounter_id: Optional[str] = None) -> List[DraftNote]:
        ...

    def get_clinical_note(self, encounter_id: str) -> Optional[ClinicalNote]:
        ...

    def save_clinical_note(self, note: ClinicalNote) -> None:
        ...

    # -- code suggestions -------------------------------------------------------
    def add_suggestions(self, suggestions: List[CodeSuggestion]) -> None:
        ...

    def get_suggestion(self, suggestion_id: str) -> Optional[CodeSuggestion]:
        ...

    def save_suggestion(self, suggestion: CodeSuggestion) -> None:
        ...

    def list_suggestions(
        self, encounter_id: Optional[str] = None, provider_id: Optional[str] = None
    ) -> List[CodeSuggestion]:
        ...

    # -- compliance issues ------------------------------------------------------
    def add_issues(self, issues: List[ComplianceIssue]) -> None:
        ...

    def get_issue(self, issue_id: str) -> Optional[ComplianceIssue]:
        ...

    def save_issue(self, issue: ComplianceIssue) -> None:
        ...

    def list_issues(self, encounter_id: str) -> List[ComplianceIssue]:
        ...

    # -- preferences ------------------------------------------------------------
    def get_preference(self, preference_id: str) -> Optional[ProviderPreference]:
        ...

    def find_preference(
        self, provider_id: str, category: PreferenceCategory, key: str
    ) -> Optional[ProviderPreference]:
        ...

    def save_preference(self, preference: ProviderPreference) -> None:
        ...

    def delete_preference(self, preference_id: str) -> bool:
        ...

    def list_preferences(self, provider_id: str) -> List[ProviderPreference]:
        ...


# =============================================================================
# STAGE 2: IN-MEMORY IMPLEMENTATION
# =============================================================================


class InMemoryDocumentationStore:
    """
    Process-local DocumentationStore.

    What it does:
        Keeps every record in insertion-ordered dictionaries guarded by one
        re-entrant lock. Records are stored by reference; engines mutate a
        record and then save it.

    When to use:
        - Unit and end-to-end tests
        - The demo / smoke-test pipeline

    Example:
        >>> store = InMemoryDocumentationStore()
        >>> store.create_session(TranscriptionSession(encounter_id="enc-1"))
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._sessions: Dict[str, TranscriptionSession] = {}
        self._drafts: Dict[str, DraftNote] = {}
        self._notes: Dict[str, ClinicalNote] = {}
        self._suggestions: Dict[str, CodeSuggestion] = {}
        self._issues: Dict[str, ComplianceIssue] = {}
        self._preferences: Dict[str, ProviderPreference] = {}
        logger.debug("InMemoryDocumentationStore initialized")

    # =========================================================================
    # STAGE 2.1: SESSIONS
    # =========================================================================

    def create_session(self, session: TranscriptionSession) -> TranscriptionSession:
        with self._lock:
            active = self.find_active_session(session.encounter_id)
            if active is not None:
                raise ConflictError(
                    "Active transcription session already exists for this encounter",
                    context={"encounter_id": session.encounter_id, "session_id": active.id},
                )
            self._sessions[session.id] = session
            return session

    def get_session(self, session_id: str) -> Optional[TranscriptionSession]:
        with self._lock:
            return self._sessions.get(session_id)

    def save_session(self, session: TranscriptionSession) -> None:
        with self._lock:
            self._sessions[session.id] = session

    def find_active_session(self, encounter_id: str) -> Optional[TranscriptionSession]:
        with self._lock:
            for session in self._sessions.values():
                if session.encounter_id == encounter_id and session.is_active:
                    return session
            return None

    def list_sessions(self, encounter_id: Optional[str] = None) -> List[TranscriptionSession]:
        with self._lock:
            return [
                s
                for s in self._sessions.values()
                if encounter_id is None or s.encounter_id == encounter_id
            ]

    # =========================================================================
    # STAGE 2.2: DRAFTS AND CLINICAL NOTES
    # =========================================================================

    def get_draft(self, draft_id: str) -> Optional[DraftNote]:
        with self._lock:
            return self._drafts.get(draft_id)

    def save_draft(self, draft: DraftNote) -> None:
        with self._lock:
            self._drafts[draft.id] = draft

    def list_drafts(self, encounter_id: Optional[str] = None) -> List[DraftNote]:
        with self._lock:
            return [
                d
                for d in self._drafts.values()
                if encounter_id is None or d.encounter_id == encounter_id
            ]

    def get_clinical_note(self, encounter_id: str) -> Optional[ClinicalNote]:
        with self._lock:
            return self._notes.get(encounter_id)

    def save_clinical_note(self, note: ClinicalNote) -> None:
        with self._lock:
            self._notes[note.encounter_id] = note

    # =========================================================================
    # STAGE 2.3: CODE SUGGESTIONS
    # =========================================================================

    def add_suggestions(self, suggestions: List[CodeSuggestion]) -> None:
        with self._lock:
            for suggestion in suggestions:
                self._suggestions[suggestion.id] = suggestion

    def get_suggestion(self, suggestion_id: str) -> Optional[CodeSuggestion]:
        with self._lock:
            return self._suggestions.get(suggestion_id)

    def save_suggestion(self, suggestion: CodeSuggestion) -> None:
        with self._lock:
            self._suggestions[suggestion.id] = suggestion

    def list_suggestions(
        self, encounter_id: Optional[str] = None, provider_id: Optional[str] = None
    ) -> List[CodeSuggestion]:
        with self._lock:
            return [
                s
                for s in self._suggestions.values()
                if (encounter_id is None or s.encounter_id == encounter_id)
                and (provider_id is None or s.provider_id == provider_id)
            ]

    # =========================================================================
    # STAGE 2.4: COMPLIANCE ISSUES
    # =========================================================================

    def add_issues(self, issues: List[ComplianceIssue]) -> None:
        with self._lock:
            for issue in issues:
                self._issues[issue.id] = issue

    def get_issue(self, issue_id: str) -> Optional[ComplianceIssue]:
        with self._lock:
            return self._issues.get(issue_id)

    def save_issue(self, issue: ComplianceIssue) -> None:
        with self._lock:
            self._issues[issue.id] = issue

    def list_issues(self, encounter_id: str) -> List[ComplianceIssue]:
        with self._lock:
            return [i for i in self._issues.values() if i.encounter_id == encounter_id]

    # =========================================================================
    # STAGE 2.5: PREFERENCES
    # =========================================================================

    def get_preference(self, preference_id: str) -> Optional[ProviderPreference]:
        with self._lock:
            return self._preferences.get(preference_id)

    def find_preference(
        self, provider_id: str, category: PreferenceCategory, key: str
    ) -> Optional[ProviderPreference]:
        with self._lock:
            for pref in self._preferences.values():
                if pref.provider_id == provider_id and pref.category == category and pref.key == key:
                    return pref
            return None

    def save_preference(self, preference: ProviderPreference) -> None:
        with self._lock:
            self._preferences[preference.id] = preference

    def delete_preference(self, preference_id: str) -> bool:
        with self._lock:
            return self._preferences.pop(preference_id, None) is not None

    def list_preferences(self, provider_id: str) -> List[ProviderPreference]:
        with self._lock:
            return [p for p in self._preferences.values() if p.provider_id == provider_id]
