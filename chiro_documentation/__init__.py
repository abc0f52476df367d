"""
Chiropractic Documentation Core

The documentation backbone of a chiropractic practice system: ambient visit
transcription, AI-drafted SOAP notes styled to each provider, ranked billing
code suggestions, pre-billing compliance checks and provider preference
learning.

Architecture Overview:
    chiro_documentation/
    ├── core/           → Domain models, enums, tables, configuration (Layer 0 - Pure)
    ├── repository/     → Record store protocol + in-memory store (Layer 1 - Infrastructure)
    ├── clients/        → AI capabilities, LLM clients, mock backend (Layer 1 - Infrastructure)
    ├── transcription/  → Recording session state machine (Layer 2 - Business Logic)
    ├── generation/     → Draft notes and provider style (Layer 2 - Business Logic)
    ├── coding/         → Code ranking and audit risk (Layer 2 - Business Logic)
    ├── compliance/     → Compliance checks and billing gate (Layer 2 - Business Logic)
    ├── learning/       → Provider preference learning (Layer 2 - Business Logic)
    └── pipeline.py     → Main orchestrator (Layer 3 - Public API)

Quick Start:
    from chiro_documentation import DocumentationPipeline

    pipeline = DocumentationPipeline.from_environment()
    session = pipeline.transcription.start("enc-1")

Author: Shubham Singh
Date: October 2026
"""

__version__ = "1.0.0"
__author__ = "Shubham Singh"

# =============================================================================
# PUBLIC API EXPORTS
# =============================================================================

# Main Entry Point
from chiro_documentation.pipeline import DocumentationPipeline, configure_logging

# Core Models
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

# Enums
from chiro_documentation.core.enums import (
    CodeType,
    DraftStatus,
    EncounterType,
    IssueSeverity,
    PreferenceCategory,
    SessionStatus,
    SuggestionStatus,
)

# Configuration
from chiro_documentation.core.config import EngineConfiguration

# Exceptions
from chiro_documentation.core.exceptions import (
    BadRequestError,
    ConflictError,
    DocumentationError,
    NotFoundError,
)

__all__ = [
    # Main Entry Point (use this!)
    "DocumentationPipeline",
    "configure_logging",
    # Core Models
    "ClinicalNote",
    "CodeSuggestion",
    "ComplianceIssue",
    "ComplianceReport",
    "DraftNote",
    "PatientInfo",
    "ProviderPreference",
    "SoapContent",
    "TranscriptionSession",
    # Enums
    "CodeType",
    "DraftStatus",
    "EncounterType",
    "IssueSeverity",
    "PreferenceCategory",
    "SessionStatus",
    "SuggestionStatus",
    # Configuration
    "EngineConfiguration",
    # Exceptions
    "DocumentationError",
    "NotFoundError",
    "ConflictError",
    "BadRequestError",
]
