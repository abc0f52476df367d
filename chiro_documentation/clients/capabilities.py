"""
AI Capability Protocols

The documentation engines never talk to a model SDK directly. They consume
four narrow capabilities, each defined here as a runtime-checkable Protocol:

    TranscriptionCapability   transcribe(audio_base64, mime_type) → TranscriptionResult
    SoapGenerationCapability  generate_soap(context) → SoapSuggestion
    CodingCapability          suggest_codes(soap_text, encounter_type) → CodeCandidates
    ComplianceCapability      check_compliance(content, encounter_type) → AIComplianceResult

`DocumentationAIService` combines all four with a `provider_name` accessor,
which engines store next to every generated artifact for provenance.

Implementations:
    LLMDocumentationService  (clients/ai_service.py)   OpenAI / Gemini backed
    MockDocumentationService (clients/mock_service.py) deterministic demo backend

Author: Shubham Singh
Date: October 2026
"""

from typing import Protocol, runtime_checkable

from chiro_documentation.core.enums import EncounterType
from chiro_documentation.core.models import (
    AIComplianceResult,
    CodeCandidates,
    SoapContent,
    SoapGenerationContext,
    SoapSuggestion,
    TranscriptionResult,
)


# =============================================================================
# STAGE 1: SINGLE CAPABILITIES
# =============================================================================


@runtime_checkable
class TranscriptionCapability(Protocol):
    def transcribe(self, audio_base64: str, mime_type: str = "audio/webm") -> TranscriptionResult:
        """
        Transcribe one base64-encoded audio chunk.

        Raises:
            AIServiceError: If the backend fails
        """
        ...


@runtime_checkable
class SoapGenerationCapability(Protocol):
    def generate_soap(self, context: SoapGenerationContext) -> SoapSuggestion:
        """Generate SOAP sections plus one overall confidence."""
        ...


@runtime_checkable
class CodingCapability(Protocol):
    def suggest_codes(self, soap_text: str, encounter_type: EncounterType) -> CodeCandidates:
        """Propose ICD-10 and CPT candidates in ranked order."""
        ...


@runtime_checkable
class ComplianceCapability(Protocol):
    def check_compliance(
        self, content: SoapContent, encounter_type: EncounterType
    ) -> AIComplianceResult:
        """Review a note and report issues with raw (backend) severities."""
        ...


# =============================================================================
# STAGE 2: COMBINED SERVICE
# =============================================================================


@runtime_checkable
class DocumentationAIService(
    TranscriptionCapability,
    SoapGenerationCapability,
    CodingCapability,
    ComplianceCapability,
    Protocol,
):
    """
    Protocol for a full AI backend.

    What it does:
        Bundles the four capabilities behind one object so the pipeline
        can inject a single backend into every engine.

    Required Properties:
        provider_name → Human-readable backend name stored for provenance
    """

    @property
    def provider_name(self) -> str:
        ...
