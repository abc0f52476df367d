"""
Enumerations for Clinical Documentation Automation

This module defines all enumeration types used throughout the documentation
core. Enums provide:
    1. Type safety for lifecycle states and categories
    2. IDE autocomplete support
    3. Stable string values that round-trip through the persistence boundary

Enumeration Categories:
    SessionStatus / TranscriptionMode / SpeakerRole → Transcription lifecycle
    SoapSection / DraftStatus                       → Draft-note lifecycle
    PreferenceCategory / PreferenceSource           → Preference learning
    CodeType / SuggestionStatus / AuditRiskLevel    → Billing-code suggestions
    IssueSeverity / ComplianceIssueType             → Compliance findings
    EncounterType / PayerType                       → Rule-table selectors

Author: Shubham Singh
Date: October 2026
"""

from enum import Enum
from typing import List, Optional


# =============================================================================
# STAGE 1: TRANSCRIPTION ENUMERATIONS
# =============================================================================
# A session moves RECORDING -> (PAUSED <-> RECORDING) -> COMPLETED.


class SessionStatus(str, Enum):
    """
    Lifecycle states of a transcription session.

    What it does:
        Tracks where a recording is in its lifecycle so that chunk ingestion,
        pause/resume and stop can guard their legal source states.

    Active vs. terminal:
        Active:   RECORDING, PAUSED  (at most one per encounter)
        Terminal: COMPLETED          (only true success state)
        FAILED is reserved for storage compatibility; errors are raised to
        the caller instead of being recorded as a state.
    """

    RECORDING = "RECORDING"
    PAUSED = "PAUSED"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_active(self) -> bool:
        """Whether the session still occupies the encounter's active slot."""
        return self in (SessionStatus.RECORDING, SessionStatus.PAUSED)


class TranscriptionMode(str, Enum):
    """How the recording was started (room listening vs. provider dictation)."""

    AMBIENT = "AMBIENT"
    DICTATION = "DICTATION"


class SpeakerRole(str, Enum):
    """Speaker attributed to a transcript segment."""

    PROVIDER = "provider"
    PATIENT = "patient"
    UNKNOWN = "unknown"


# =============================================================================
# STAGE 2: DRAFT NOTE ENUMERATIONS
# =============================================================================


class SoapSection(str, Enum):
    """
    The four sections of a SOAP note, in document order.

    Example:
        >>> SoapSection.ordered()[0]
        <SoapSection.SUBJECTIVE: 'subjective'>
    """

    SUBJECTIVE = "subjective"
    OBJECTIVE = "objective"
    ASSESSMENT = "assessment"
    PLAN = "plan"

    @classmethod
    def ordered(cls) -> List["SoapSection"]:
        """Return sections in S-O-A-P order."""
        return [cls.SUBJECTIVE, cls.OBJECTIVE, cls.ASSESSMENT, cls.PLAN]


class DraftStatus(str, Enum):
    """
    Review lifecycle of an AI-generated draft note.

    Transitions:
        GENERATING -> PENDING_REVIEW
        PENDING_REVIEW / EDITED / APPROVED / REJECTED -> EDITED | APPROVED | REJECTED
        APPROVED | EDITED -> APPLIED (terminal)
    """

    GENERATING = "GENERATING"
    PENDING_REVIEW = "PENDING_REVIEW"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    EDITED = "EDITED"
    APPLIED = "APPLIED"

    @property
    def is_terminal(self) -> bool:
        return self is DraftStatus.APPLIED

    @property
    def can_apply(self) -> bool:
        return self in (DraftStatus.APPROVED, DraftStatus.EDITED)


# =============================================================================
# STAGE 3: PREFERENCE ENUMERATIONS
# =============================================================================


class PreferenceCategory(str, Enum):
    """
    Category of a learned provider preference.

    Each category has its own payload shape (see core/preference_values.py).
    """

    TERMINOLOGY = "terminology"
    STYLE = "style"
    FORMAT = "format"
    TEMPLATE = "template"
    PHRASES = "phrases"
    DEPTH = "depth"


class PreferenceSource(str, Enum):
    """Where a preference observation came from."""

    EDIT_TRACKING = "edit_tracking"
    EXPLICIT_SETTING = "explicit_setting"
    STYLE_ANALYSIS = "style_analysis"


class DocumentationDepth(str, Enum):
    """Depth tier derived from the average total word count of a provider's notes."""

    BRIEF = "brief"
    STANDARD = "standard"
    DETAILED = "detailed"
    COMPREHENSIVE = "comprehensive"


# =============================================================================
# STAGE 4: BILLING CODE ENUMERATIONS
# =============================================================================


class CodeType(str, Enum):
    """Billing code systems handled by the ranker."""

    ICD10 = "ICD10"
    CPT = "CPT"
    MODIFIER = "MODIFIER"


class SuggestionStatus(str, Enum):
    """Provider decision on a code suggestion (one transition out of PENDING)."""

    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    MODIFIED = "MODIFIED"


class AuditRiskLevel(str, Enum):
    """Heuristic audit-risk level attached to a code suggestion."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class CodeFlagType(str, Enum):
    """Manual flags a reviewer can raise on a suggestion."""

    UPCODING = "upcoding"
    DOWNCODING = "downcoding"
    AUDIT = "audit"


# =============================================================================
# STAGE 5: COMPLIANCE ENUMERATIONS
# =============================================================================


class IssueSeverity(str, Enum):
    """
    Severity of a compliance issue.

    Score deductions: CRITICAL 25, ERROR 15, WARNING 5, INFO 1.
    """

    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ComplianceIssueType(str, Enum):
    """Taxonomy of compliance findings."""

    MISSING_SECTION = "MISSING_SECTION"
    MISSING_ELEMENT = "MISSING_ELEMENT"
    MEDICAL_NECESSITY = "MEDICAL_NECESSITY"
    MISSING_GOALS = "MISSING_GOALS"
    PAYER_REQUIREMENT = "PAYER_REQUIREMENT"
    CLONED_NOTE = "CLONED_NOTE"
    CODE_DOCUMENTATION = "CODE_DOCUMENTATION"
    AI_DETECTED = "AI_DETECTED"


class EncounterType(str, Enum):
    """
    Encounter types that select the required-element tables.

    Unknown values fall back to FOLLOW_UP (see `coerce`).
    """

    INITIAL_EVAL = "INITIAL_EVAL"
    FOLLOW_UP = "FOLLOW_UP"
    RE_EVALUATION = "RE_EVALUATION"
    DISCHARGE = "DISCHARGE"

    @classmethod
    def coerce(cls, value: Optional[str]) -> "EncounterType":
        """Map a raw value to an EncounterType, defaulting to FOLLOW_UP."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            return cls.FOLLOW_UP


class PayerType(str, Enum):
    """Payers with documented chiropractic requirements."""

    MEDICARE = "MEDICARE"
    BLUE_CROSS = "BLUE_CROSS"
    UNITED = "UNITED"
    AETNA = "AETNA"
    WORKERS_COMP = "WORKERS_COMP"
    AUTO_PIP = "AUTO_PIP"
