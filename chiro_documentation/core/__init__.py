"""
Core Layer - Domain Models, Enums, Tables and Configuration

This layer contains the side-effect-free foundation of the documentation
core: records exchanged at the persistence boundary, lifecycle enums,
immutable lookup tables, typed preference payloads and configuration.

Submodules:
    models.py            → Records (TranscriptionSession, DraftNote, CodeSuggestion, ...)
    enums.py             → Lifecycle and category enums
    preference_values.py → Per-category preference payloads (pydantic)
    constants.py         → Immutable lookup tables
    config.py            → Configuration dataclass
    exceptions.py        → Domain-specific exceptions

Dependency Rule:
    This layer depends on NOTHING else in the package.
    All other layers may depend on this layer.

Author: Shubham Singh
Date: October 2026
"""

from chiro_documentation.core.config import EngineConfiguration
from chiro_documentation.core.enums import (
    AuditRiskLevel,
    CodeFlagType,
    CodeType,
    ComplianceIssueType,
    DocumentationDepth,
    DraftStatus,
    EncounterType,
    IssueSeverity,
    PayerType,
    PreferenceCategory,
    PreferenceSource,
    SessionStatus,
    SoapSection,
    SpeakerRole,
    SuggestionStatus,
    TranscriptionMode,
)
from chiro_documentation.core.exceptions import (
    AIContentFilteredError,
    AIRateLimitError,
    AIServiceError,
    BadRequestError,
    ConfigurationError,
    ConflictError,
    DocumentationError,
    InternalError,
    NotFoundError,
    PayloadValidationError,
)
from chiro_documentation.core.models import (
    ClinicalNote,
    CodeSuggestion,
    ComplianceIssue,
    ComplianceReport,
    DraftNote,
    PatientInfo,
    ProviderPreference,
    SoapContent,
    TranscriptionSession,
)
from chiro_documentation.core.preference_values import parse_preference_value

__all__ = [
    # Models
    "ClinicalNote",
    "CodeSuggestion",
    "ComplianceIssue",
    "ComplianceReport",
    "DraftNote",
    "PatientInfo",
    "ProviderPreference",
    "SoapContent",
    "TranscriptionSession",
    "parse_preference_value",
    # Enums
    "AuditRiskLevel",
    "CodeFlagType",
    "CodeType",
    "ComplianceIssueType",
    "DocumentationDepth",
    "DraftStatus",
    "EncounterType",
    "IssueSeverity",
    "PayerType",
    "PreferenceCategory",
    "PreferenceSource",
    "SessionStatus",
    "SoapSection",
    "SpeakerRole",
    "SuggestionStatus",
    "TranscriptionMode",
    # Configuration
    "EngineConfiguration",
    # Exceptions
    "DocumentationError",
    "ConfigurationError",
    "NotFoundError",
    "ConflictError",
    "BadRequestError",
    "PayloadValidationError",
    "InternalError",
    "AIServiceError",
    "AIRateLimitError",
    "AIContentFilteredError",
]
