"""
Domain Models for Clinical Documentation Automation

This module defines the records the documentation core reads and writes at
the persistence boundary, plus the small value objects exchanged with the AI
capability layer. All models are dataclasses designed for:
    1. Type safety and IDE support
    2. Serialization to/from JSON (to_dict / from_dict)
    3. Clear domain semantics (lifecycle guards live in the engines)

Model Hierarchy:
    SOAP content
        SoapContent              → Four nullable section texts
        ClinicalNote             → The encounter's single materialized note
    Transcription
        TranscriptSegment        → One speaker-attributed chunk of text
        TranscriptionSession     → Recording lifecycle record
        TranscriptionResult      → Capability output for one audio chunk
    Draft notes
        PatientInfo / SoapGenerationContext / SoapSuggestion
        SectionEdit / DraftNote / StyleApplication / DraftStats
    Billing codes
        CodeCandidate / CodeCandidates → Capability output
        AlternativeCode / SpecificityIssue / ModifierSuggestion / CodingRisk
        AcceptanceStats / CodeSuggestion / CodeStats
    Compliance
        AIComplianceFinding / AIComplianceResult → Capability output
        ComplianceIssue / ComplianceReport / BillingGateDecision
    Preferences
        ProviderPreference / PreferenceObservation

Usage:
    from chiro_documentation.core.models import SoapContent

    soap = SoapContent(subjective="Neck pain 6/10.", plan="Adjust C5.")
    soap.to_text()

Author: Shubham Singh
Date: October 2026
"""

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from chiro_documentation.core.enums import (
    AuditRiskLevel,
    CodeType,
    ComplianceIssueType,
    DraftStatus,
    EncounterType,
    IssueSeverity,
    PreferenceCategory,
    PreferenceSource,
    SessionStatus,
    SoapSection,
    SpeakerRole,
    SuggestionStatus,
    TranscriptionMode,
)
from chiro_documentation.core.preference_values import PreferenceValue, parse_preference_value


def new_id() -> str:
    """Generate a record identifier."""
    return uuid.uuid4().hex


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


# =============================================================================
# STAGE 1: SOAP CONTENT
# =============================================================================


@dataclass
class SoapContent:
    """
    The four sections of a SOAP note, each independently nullable.

    What it does:
        Holds section text and offers section-keyed access so engines can
        loop over `SoapSection.ordered()` instead of naming fields.

    Example:
        >>> soap = SoapContent(subjective="Low back pain 7/10.")
        >>> soap.get(SoapSection.SUBJECTIVE)
        'Low back pain 7/10.'
        >>> soap.is_empty
        False
    """

    subjective: Optional[str] = None
    objective: Optional[str] = None
    assessment: Optional[str] = None
    plan: Optional[str] = None

    def get(self, section: SoapSection) -> Optional[str]:
        return getattr(self, SoapSection(section).value)

    def with_section(self, section: SoapSection, text: Optional[str]) -> "SoapContent":
        """Return a copy with one section replaced."""
        return replace(self, **{SoapSection(section).value: text})

    def items(self) -> List[Tuple[SoapSection, Optional[str]]]:
        return [(section, self.get(section)) for section in SoapSection.ordered()]

    @property
    def is_empty(self) -> bool:
        return not any(text for _, text in self.items())

    @property
    def combined_text(self) -> str:
        """Non-empty sections joined by a single space."""
        return " ".join(text for _, text in self.items() if text)

    def to_text(self) -> str:
        """
        Render as labelled blocks for prompts and coding.

        Example:
            "SUBJECTIVE:\\nNeck pain.\\n\\nPLAN:\\nAdjust C5."
        """
        blocks = [
            f"{section.value.upper()}:\n{text}" for section, text in self.items() if text
        ]
        return "\n\n".join(blocks)

    def to_dict(self) -> Dict[str, Any]:
        return {section.value: text for section, text in self.items()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SoapContent":
        return cls(
            subjective=data.get("subjective"),
            objective=data.get("objective"),
            assessment=data.get("assessment"),
            plan=data.get("plan"),
        )


@dataclass
class ClinicalNote:
    """The single clinical note materialized for an encounter by `apply`."""

    encounter_id: str
    content: SoapContent = field(default_factory=SoapContent)
    updated_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "encounter_id": self.encounter_id,
            **self.content.to_dict(),
            "updated_at": _iso(self.updated_at),
        }


# =============================================================================
# STAGE 2: TRANSCRIPTION MODELS
# =============================================================================


@dataclass(frozen=True)
class TranscriptionResult:
    """Output of the transcription capability for one audio chunk."""

    text: str
    confidence: float


@dataclass(frozen=True)
class TranscriptSegment:
    """
    One speaker-attributed chunk of transcript.

    Times are approximations derived from the chunk index and the fixed
    chunk duration, not measured audio offsets.
    """

    speaker: SpeakerRole
    text: str
    start_time: float
    end_time: float
    confidence: float
    chunk_index: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "speaker": self.speaker.value,
            "text": self.text,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "confidence": self.confidence,
            "chunk_index": self.chunk_index,
        }


@dataclass
class TranscriptionSession:
    """
    Recording lifecycle record for one encounter.

    What it does:
        Accumulates segments, the speaker-tagged transcript, the running
        accuracy and the set of detected medical terms while a recording
        moves RECORDING -> (PAUSED <-> RECORDING) -> COMPLETED.

    Attributes:
        accuracy: Two-point running average of chunk confidences
            (None until the first chunk arrives)
        medical_terms: Detected vocabulary, first-seen order, no duplicates
        corrected_terms: {"original", "corrected"} pairs from provider edits
        audio_duration: Whole seconds between start and stop
        processing_ms: audio_duration * 1000 (approximation)
    """

    # -------------------------------------------------------------------------
    # 2.1 Identity
    # -------------------------------------------------------------------------
    encounter_id: str
    id: str = field(default_factory=new_id)

    # -------------------------------------------------------------------------
    # 2.2 Lifecycle
    # -------------------------------------------------------------------------
    status: SessionStatus = SessionStatus.RECORDING
    mode: TranscriptionMode = TranscriptionMode.AMBIENT
    language: str = "en-US"
    started_at: datetime = field(default_factory=datetime.now)
    ended_at: Optional[datetime] = None

    # -------------------------------------------------------------------------
    # 2.3 Speakers and Segments
    # -------------------------------------------------------------------------
    speaker_labels: Dict[str, str] = field(default_factory=dict)
    speaker_count: int = 2
    segments: List[TranscriptSegment] = field(default_factory=list)
    full_transcript: str = ""

    # -------------------------------------------------------------------------
    # 2.4 Quality
    # -------------------------------------------------------------------------
    accuracy: Optional[float] = None
    medical_terms: List[str] = field(default_factory=list)
    corrected_terms: List[Dict[str, str]] = field(default_factory=list)

    # -------------------------------------------------------------------------
    # 2.5 Timing
    # -------------------------------------------------------------------------
    audio_duration: Optional[int] = None
    processing_ms: Optional[int] = None

    @property
    def is_active(self) -> bool:
        return self.status.is_active

    @property
    def segment_count(self) -> int:
        return len(self.segments)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "encounter_id": self.encounter_id,
            "status": self.status.value,
            "mode": self.mode.value,
            "language": self.language,
            "speaker_labels": dict(self.speaker_labels),
            "speaker_count": self.speaker_count,
            "segments": [s.to_dict() for s in self.segments],
            "full_transcript": self.full_transcript,
            "accuracy": self.accuracy,
            "medical_terms": list(self.medical_terms),
            "corrected_terms": list(self.corrected_terms),
            "started_at": _iso(self.started_at),
            "ended_at": _iso(self.ended_at),
            "audio_duration": self.audio_duration,
            "processing_ms": self.processing_ms,
        }


@dataclass(frozen=True)
class TranscriptionStats:
    """Aggregate figures over a set of sessions."""

    total_sessions: int
    completed_sessions: int
    average_duration: Optional[float]
    average_accuracy: Optional[float]


# =============================================================================
# STAGE 3: DRAFT NOTE MODELS
# =============================================================================


@dataclass(frozen=True)
class PatientInfo:
    """Minimal patient context passed to SOAP generation."""

    name: Optional[str] = None
    age: Optional[int] = None
    gender: Optional[str] = None

    def describe(self) -> str:
        parts = [self.name or "Unknown"]
        if self.age is not None:
            parts.append(f"{self.age} years old")
        if self.gender:
            parts.append(self.gender)
        return ", ".join(parts)


@dataclass
class SoapGenerationContext:
    """Everything the SOAP-generation capability is given for one draft."""

    transcription: str
    encounter_type: EncounterType = EncounterType.FOLLOW_UP
    chief_complaint: Optional[str] = None
    patient_info: PatientInfo = field(default_factory=PatientInfo)
    previous_visit: Optional[SoapContent] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transcription": self.transcription,
            "encounter_type": self.encounter_type.value,
            "chief_complaint": self.chief_complaint,
            "patient_info": {
                "name": self.patient_info.name,
                "age": self.patient_info.age,
                "gender": self.patient_info.gender,
            },
            "previous_visit": self.previous_visit.to_dict() if self.previous_visit else None,
        }


@dataclass(frozen=True)
class SoapSuggestion:
    """Output of the SOAP-generation capability: sections plus one confidence."""

    content: SoapContent
    confidence: float


@dataclass(frozen=True)
class SectionEdit:
    """Provenance of a provider edit to one section."""

    original: Optional[str]
    edited: str
    edited_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "original": self.original,
            "edited": self.edited,
            "edited_at": _iso(self.edited_at),
        }


@dataclass(frozen=True)
class StyleApplication:
    """Result of applying provider preferences to a SOAP draft."""

    content: SoapContent
    match_score: float
    applied_elements: List[str]


@dataclass(frozen=True)
class DraftStats:
    """Review outcome figures over all drafts in the store."""

    total_drafts: int
    approved_count: int
    rejected_count: int
    acceptance_rate: float
    average_confidence: float
    average_edits: float


@dataclass
class DraftNote:
    """
    AI-generated SOAP draft under provider review.

    What it does:
        Holds the draft sections with their confidences, the style-match
        outcome, and an audit trail of provider edits. Status transitions
        are guarded by DraftNoteEngine; APPLIED is terminal.

    Attributes:
        section_confidence: Per-section confidence (all equal the model's
            single reported confidence)
        edits: Map of section name to the latest SectionEdit
        generation_context: Kept so `regenerate` can re-run the same request
    """

    # -------------------------------------------------------------------------
    # 3.1 Identity
    # -------------------------------------------------------------------------
    encounter_id: str
    id: str = field(default_factory=new_id)
    transcription_id: Optional[str] = None
    provider_id: Optional[str] = None
    status: DraftStatus = DraftStatus.GENERATING

    # -------------------------------------------------------------------------
    # 3.2 Content and Confidence
    # -------------------------------------------------------------------------
    content: SoapContent = field(default_factory=SoapContent)
    section_confidence: Dict[str, float] = field(default_factory=dict)
    overall_confidence: float = 0.0

    # -------------------------------------------------------------------------
    # 3.3 Style Matching
    # -------------------------------------------------------------------------
    style_match_score: float = 0.0
    style_elements: List[str] = field(default_factory=list)

    # -------------------------------------------------------------------------
    # 3.4 Edit Tracking
    # -------------------------------------------------------------------------
    edit_count: int = 0
    edits: Dict[str, SectionEdit] = field(default_factory=dict)
    edit_reasons: List[str] = field(default_factory=list)

    # -------------------------------------------------------------------------
    # 3.5 Review
    # -------------------------------------------------------------------------
    reviewer_id: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    review_notes: Optional[str] = None

    # -------------------------------------------------------------------------
    # 3.6 Provenance
    # -------------------------------------------------------------------------
    ai_model_used: Optional[str] = None
    processing_time_ms: int = 0
    generation_context: Optional[SoapGenerationContext] = None
    created_at: datetime = field(default_factory=datetime.now)
    applied_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "encounter_id": self.encounter_id,
            "transcription_id": self.transcription_id,
            "provider_id": self.provider_id,
            "status": self.status.value,
            **self.content.to_dict(),
            "section_confidence": dict(self.section_confidence),
            "overall_confidence": self.overall_confidence,
            "style_match_score": self.style_match_score,
            "style_elements": list(self.style_elements),
            "edit_count": self.edit_count,
            "edits": {k: v.to_dict() for k, v in self.edits.items()},
            "edit_reasons": list(self.edit_reasons),
            "reviewer_id": self.reviewer_id,
            "reviewed_at": _iso(self.reviewed_at),
            "review_notes": self.review_notes,
            "ai_model_used": self.ai_model_used,
            "processing_time_ms": self.processing_time_ms,
            "created_at": _iso(self.created_at),
            "applied_at": _iso(self.applied_at),
        }


# =============================================================================
# STAGE 4: BILLING CODE MODELS
# =============================================================================


@dataclass(frozen=True)
class CodeCandidate:
    """One code proposed by the coding capability."""

    code: str
    description: str
    confidence: float
    rationale: str = ""
    is_chiro_common: bool = False


@dataclass(frozen=True)
class CodeCandidates:
    """ICD-10 and CPT candidate lists in the model's order."""

    icd10: List[CodeCandidate] = field(default_factory=list)
    cpt: List[CodeCandidate] = field(default_factory=list)


@dataclass(frozen=True)
class AlternativeCode:
    code: str
    description: str
    reason: str

    def to_dict(self) -> Dict[str, str]:
        return {"code": self.code, "description": self.description, "reason": self.reason}


@dataclass(frozen=True)
class SpecificityIssue:
    issue: str
    alternatives: List[AlternativeCode]


@dataclass(frozen=True)
class ModifierSuggestion:
    modifier: str
    description: str
    reason: str

    def to_dict(self) -> Dict[str, str]:
        return {"modifier": self.modifier, "description": self.description, "reason": self.reason}


@dataclass(frozen=True)
class CodingRisk:
    """Outcome of the deterministic up/down-coding heuristic."""

    upcoding_risk: bool = False
    downcoding_risk: bool = False
    audit_risk: AuditRiskLevel = AuditRiskLevel.LOW


@dataclass(frozen=True)
class CodeStats:
    """Decision figures over all code suggestions in the store."""

    total_suggestions: int
    accepted_count: int
    rejected_count: int
    modified_count: int
    acceptance_rate: float
    average_confidence: float
    icd10_count: int
    cpt_count: int
    flagged_count: int


@dataclass(frozen=True)
class AcceptanceStats:
    """A provider's historical decisions on one code."""

    accepted: int = 0
    rejected: int = 0

    @property
    def total(self) -> int:
        return self.accepted + self.rejected

    @property
    def rate(self) -> Optional[float]:
        """Acceptance ratio, or None with no history."""
        return self.accepted / self.total if self.total else None


@dataclass
class CodeSuggestion:
    """
    A ranked, risk-scored billing code suggestion awaiting provider decision.

    Transitions once out of PENDING (ACCEPTED, REJECTED or MODIFIED). Later
    mutations are limited to a recorded modified code and reviewer flags.
    """

    # -------------------------------------------------------------------------
    # 4.1 Identity
    # -------------------------------------------------------------------------
    encounter_id: str
    code_type: CodeType
    code: str
    description: str
    id: str = field(default_factory=new_id)
    provider_id: Optional[str] = None

    # -------------------------------------------------------------------------
    # 4.2 Ranking
    # -------------------------------------------------------------------------
    reasoning: str = ""
    confidence: float = 0.0
    rank: int = 0

    # -------------------------------------------------------------------------
    # 4.3 Validation
    # -------------------------------------------------------------------------
    code_valid: bool = True
    is_chiro_common: bool = False
    specificity_ok: bool = True
    specificity_issue: Optional[str] = None
    alternatives: List[AlternativeCode] = field(default_factory=list)
    modifiers: List[ModifierSuggestion] = field(default_factory=list)

    # -------------------------------------------------------------------------
    # 4.4 Risk
    # -------------------------------------------------------------------------
    upcoding_risk: bool = False
    downcoding_risk: bool = False
    audit_risk: AuditRiskLevel = AuditRiskLevel.LOW
    relevant_text: Optional[str] = None

    # -------------------------------------------------------------------------
    # 4.5 Decision
    # -------------------------------------------------------------------------
    status: SuggestionStatus = SuggestionStatus.PENDING
    modified_code: Optional[str] = None
    modify_reason: Optional[str] = None
    decided_at: Optional[datetime] = None
    flags: List[Dict[str, Any]] = field(default_factory=list)

    # -------------------------------------------------------------------------
    # 4.6 Provenance
    # -------------------------------------------------------------------------
    ai_model_used: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def is_accepted(self) -> bool:
        """ACCEPTED and MODIFIED both count as the provider keeping a code."""
        return self.status in (SuggestionStatus.ACCEPTED, SuggestionStatus.MODIFIED)

    @property
    def final_code(self) -> str:
        return self.modified_code or self.code

    @property
    def history_key(self) -> str:
        return f"{self.code_type.value}:{self.code}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "encounter_id": self.encounter_id,
            "provider_id": self.provider_id,
            "code_type": self.code_type.value,
            "code": self.code,
            "description": self.description,
            "reasoning": self.reasoning,
            "confidence": self.confidence,
            "rank": self.rank,
            "code_valid": self.code_valid,
            "is_chiro_common": self.is_chiro_common,
            "specificity_ok": self.specificity_ok,
            "specificity_issue": self.specificity_issue,
            "alternatives": [a.to_dict() for a in self.alternatives],
            "modifiers": [m.to_dict() for m in self.modifiers],
            "upcoding_risk": self.upcoding_risk,
            "downcoding_risk": self.downcoding_risk,
            "audit_risk": self.audit_risk.value,
            "relevant_text": self.relevant_text,
            "status": self.status.value,
            "modified_code": self.modified_code,
            "modify_reason": self.modify_reason,
            "decided_at": _iso(self.decided_at),
            "flags": list(self.flags),
            "ai_model_used": self.ai_model_used,
            "created_at": _iso(self.created_at),
        }


# =============================================================================
# STAGE 5: COMPLIANCE MODELS
# =============================================================================


@dataclass(frozen=True)
class AIComplianceFinding:
    """One issue reported by the compliance-AI capability (raw severity)."""

    severity: str
    message: str
    section: Optional[str] = None
    suggestion: Optional[str] = None
    category: Optional[str] = None


@dataclass(frozen=True)
class AIComplianceResult:
    is_compliant: bool
    score: float
    issues: List[AIComplianceFinding] = field(default_factory=list)


@dataclass
class ComplianceIssue:
    """
    A single finding from a compliance run.

    Only the resolution fields change after creation.

    Attributes:
        audit_risk_impact: Points this issue adds to the unresolved-impact sum
        denial_risk: Estimated claim-denial probability in [0, 1]
    """

    # -------------------------------------------------------------------------
    # 5.1 Classification
    # -------------------------------------------------------------------------
    issue_type: ComplianceIssueType
    severity: IssueSeverity
    title: str
    description: str
    encounter_id: Optional[str] = None
    id: str = field(default_factory=new_id)

    # -------------------------------------------------------------------------
    # 5.2 Location and Source
    # -------------------------------------------------------------------------
    section: Optional[str] = None
    field_path: Optional[str] = None
    requirement_source: Optional[str] = None
    payer_specific: Optional[str] = None

    # -------------------------------------------------------------------------
    # 5.3 Remediation
    # -------------------------------------------------------------------------
    suggestion: Optional[str] = None
    example_fix: Optional[str] = None
    auto_fixable: bool = False
    suggested_text: Optional[str] = None

    # -------------------------------------------------------------------------
    # 5.4 Risk
    # -------------------------------------------------------------------------
    audit_risk_impact: int = 0
    denial_risk: float = 0.0

    # -------------------------------------------------------------------------
    # 5.5 Resolution
    # -------------------------------------------------------------------------
    resolved: bool = False
    resolution: Optional[str] = None
    was_dismissed: bool = False
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None

    ai_model_used: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "encounter_id": self.encounter_id,
            "issue_type": self.issue_type.value,
            "severity": self.severity.value,
            "title": self.title,
            "description": self.description,
            "section": self.section,
            "field_path": self.field_path,
            "requirement_source": self.requirement_source,
            "payer_specific": self.payer_specific,
            "suggestion": self.suggestion,
            "example_fix": self.example_fix,
            "auto_fixable": self.auto_fixable,
            "suggested_text": self.suggested_text,
            "audit_risk_impact": self.audit_risk_impact,
            "denial_risk": self.denial_risk,
            "resolved": self.resolved,
            "resolution": self.resolution,
            "was_dismissed": self.was_dismissed,
            "resolved_at": _iso(self.resolved_at),
            "resolved_by": self.resolved_by,
            "ai_model_used": self.ai_model_used,
        }


@dataclass
class ComplianceReport:
    """Outcome of one `check` run."""

    encounter_id: Optional[str]
    compliance_score: int
    audit_risk_score: int
    issues: List[ComplianceIssue] = field(default_factory=list)
    billing_blocked: bool = False
    billing_block_reason: Optional[str] = None
    processing_time_ms: int = 0

    def count(self, severity: IssueSeverity) -> int:
        return sum(1 for issue in self.issues if issue.severity == severity)

    @property
    def summary(self) -> Dict[str, int]:
        return {
            "total_issues": len(self.issues),
            "critical": self.count(IssueSeverity.CRITICAL),
            "errors": self.count(IssueSeverity.ERROR),
            "warnings": self.count(IssueSeverity.WARNING),
            "info": self.count(IssueSeverity.INFO),
        }


@dataclass(frozen=True)
class BillingGateDecision:
    """Read-only billing decision over an encounter's unresolved issues."""

    can_proceed: bool
    requires_review: bool
    blocked_reason: Optional[str]
    unresolved_count: int
    critical_count: int
    error_count: int
    warning_count: int
    audit_risk_score: int


# =============================================================================
# STAGE 6: PREFERENCE MODELS
# =============================================================================


@dataclass
class ProviderPreference:
    """
    A confidence-weighted documentation preference for one provider.

    Invariants:
        - (provider_id, category, key) is unique
        - 0.1 <= confidence <= 1.0
        - examples holds at most the last 10 observed values
    """

    provider_id: str
    category: PreferenceCategory
    key: str
    value: PreferenceValue
    id: str = field(default_factory=new_id)
    description: Optional[str] = None
    source: PreferenceSource = PreferenceSource.EDIT_TRACKING

    # -------------------------------------------------------------------------
    # 6.1 Learning Counters
    # -------------------------------------------------------------------------
    confidence: float = 0.5
    learned_from: int = 1
    times_applied: int = 0
    times_accepted: int = 0
    times_rejected: int = 0
    examples: List[Dict[str, Any]] = field(default_factory=list)

    is_active: bool = True
    updated_at: datetime = field(default_factory=datetime.now)

    @property
    def acceptance_rate(self) -> Optional[float]:
        decided = self.times_accepted + self.times_rejected
        return self.times_accepted / decided if decided else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "provider_id": self.provider_id,
            "category": self.category.value,
            "key": self.key,
            "value": self.value.to_payload(),
            "description": self.description,
            "source": self.source.value,
            "confidence": self.confidence,
            "learned_from": self.learned_from,
            "times_applied": self.times_applied,
            "times_accepted": self.times_accepted,
            "times_rejected": self.times_rejected,
            "examples": list(self.examples),
            "is_active": self.is_active,
            "updated_at": _iso(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProviderPreference":
        category = PreferenceCategory(data["category"])
        return cls(
            id=data.get("id") or new_id(),
            provider_id=data["provider_id"],
            category=category,
            key=data["key"],
            value=parse_preference_value(category, data.get("value") or {}),
            description=data.get("description"),
            source=PreferenceSource(data.get("source", PreferenceSource.EDIT_TRACKING.value)),
            confidence=data.get("confidence", 0.5),
            learned_from=data.get("learned_from", 1),
            times_applied=data.get("times_applied", 0),
            times_accepted=data.get("times_accepted", 0),
            times_rejected=data.get("times_rejected", 0),
            examples=list(data.get("examples", [])),
            is_active=data.get("is_active", True),
        )


@dataclass(frozen=True)
class PreferenceObservation:
    """A preference inferred from an edit or from historical notes."""

    category: PreferenceCategory
    key: str
    value: PreferenceValue
    description: str


@dataclass(frozen=True)
class LearningStats:
    """Per-provider preference statistics."""

    total_preferences: int
    active_preferences: int
    by_category: Dict[str, int]
    average_confidence: Optional[float]
    total_applied: int
    total_accepted: int
    acceptance_rate: Optional[float]
