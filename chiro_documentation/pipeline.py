"""
Documentation Pipeline - Main Orchestrator

This is the PUBLIC API entry point for the documentation core. It builds the
AI backend from configuration, wires one record store through every engine,
and offers the one cross-engine step the engines do not own themselves:
turning a completed transcription session into a draft.

Architecture Diagram:
    ┌──────────────────────────────────────────────────────────────────────┐
    │                        DocumentationPipeline                         │
    ├──────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  ┌─────────────┐   ┌─────────────┐   ┌─────────────┐   ┌───────────┐ │
    │  │Transcription│ → │ Draft notes │ → │ Code ranker │ → │Compliance │ │
    │  └─────────────┘   └──────▲──────┘   └─────────────┘   └───────────┘ │
    │                           │                                          │
    │                    ┌──────┴──────┐                                   │
    │                    │ Preferences │                                   │
    │                    └─────────────┘                                   │
    │                                                                      │
    │          one DocumentationStore  ·  one DocumentationAIService       │
    └──────────────────────────────────────────────────────────────────────┘

Usage:
    from chiro_documentation import DocumentationPipeline

    pipeline = DocumentationPipeline.from_environment()
    session = pipeline.transcription.start("enc-1")
    ...
    draft = pipeline.generate_draft_from_session(session.id, provider_id="dr-1")

Author: Shubham Singh
Date: October 2026
"""

import sys
from typing import Optional, Union

from loguru import logger

from chiro_documentation.clients.ai_service import LLMDocumentationService
from chiro_documentation.clients.capabilities import DocumentationAIService
from chiro_documentation.clients.gemini_client import GeminiClient
from chiro_documentation.clients.mock_service import MockDocumentationService
from chiro_documentation.clients.openai_client import OpenAIClient
from chiro_documentation.coding.code_ranker import CodeSuggestionRanker
from chiro_documentation.compliance.compliance_engine import ComplianceEngine
from chiro_documentation.core.config import SUPPORTED_PROVIDERS, EngineConfiguration
from chiro_documentation.core.enums import EncounterType, SessionStatus
from chiro_documentation.core.exceptions import BadRequestError, ConfigurationError
from chiro_documentation.core.models import DraftNote, PatientInfo, SoapContent
from chiro_documentation.generation.draft_engine import DraftNoteEngine
from chiro_documentation.learning.preference_learner import PreferenceLearner
from chiro_documentation.repository.record_store import (
    DocumentationStore,
    InMemoryDocumentationStore,
)
from chiro_documentation.transcription.session_manager import TranscriptionSessionManager


def configure_logging(level: str = "INFO") -> None:
    """Replace loguru's default sink with a single stderr sink at `level`."""
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


# =============================================================================
# STAGE 1: PIPELINE CLASS
# =============================================================================


class DocumentationPipeline:
    """
    Facade over the five documentation engines.

    What it does:
        Creates the AI backend and store (unless injected), builds every
        engine on top of them, and exposes the engines as properties.

    How it works:
        STAGE 1: Resolve the AI service from `config.ai_provider`
        STAGE 2: Build the engines around one shared store
        STAGE 3: generate_draft_from_session() bridges transcription and drafts

    Example:
        >>> pipeline = DocumentationPipeline(EngineConfiguration())
        >>> session = pipeline.transcription.start("enc-1")
        >>> pipeline.transcription.ingest_chunk(session.id, audio_b64, 0)
        >>> pipeline.transcription.stop(session.id)
        >>> draft = pipeline.generate_draft_from_session(session.id)
    """

    def __init__(
        self,
        config: EngineConfiguration,
        store: Optional[DocumentationStore] = None,
        ai_service: Optional[DocumentationAIService] = None,
    ):
        """
        Initialize the pipeline with configuration and optional overrides.

        Args:
            config: Engine configuration
            store: Optional store override (defaults to in-memory)
            ai_service: Optional AI backend override (for testing)
        """
        # =====================================================================
        # STAGE 1.1: SHARED DEPENDENCIES
        # =====================================================================
        self._config = config
        self._store = store if store is not None else InMemoryDocumentationStore()
        self._ai = ai_service if ai_service is not None else self._create_ai_service(config)

        # =====================================================================
        # STAGE 1.2: ENGINES
        # =====================================================================
        self._transcription = TranscriptionSessionManager(self._store, self._ai, config)
        self._drafts = DraftNoteEngine(self._store, self._ai, config)
        self._codes = CodeSuggestionRanker(self._store, self._ai)
        self._compliance = ComplianceEngine(self._store, self._ai, config)
        self._preferences = PreferenceLearner(self._store)

        logger.info(
            f"DocumentationPipeline initialized | "
            f"Provider: {config.ai_provider} | Backend: {self._ai.provider_name}"
        )

    # =========================================================================
    # STAGE 2: CROSS-ENGINE OPERATIONS
    # =========================================================================

    def generate_draft_from_session(
        self,
        session_id: str,
        patient_info: Optional[PatientInfo] = None,
        chief_complaint: Optional[str] = None,
        encounter_type: Union[EncounterType, str] = EncounterType.FOLLOW_UP,
        previous_visit: Optional[SoapContent] = None,
        provider_id: Optional[str] = None,
        include_style_matching: bool = True,
    ) -> DraftNote:
        """
        Generate a draft from a COMPLETED session's transcript.

        Raises:
            NotFoundError: If the session does not exist
            BadRequestError: If the session is not completed or has no transcript
        """
        session = self._transcription.get_session(session_id)
        if session.status != SessionStatus.COMPLETED or not session.full_transcript.strip():
            raise BadRequestError(
                "No completed transcription found for this encounter",
                context={"session_id": session_id, "status": session.status.value},
            )

        return self._drafts.generate(
            encounter_id=session.encounter_id,
            transcription=session.full_transcript,
            patient_info=patient_info,
            chief_complaint=chief_complaint,
            encounter_type=encounter_type,
            previous_visit=previous_visit,
            provider_id=provider_id,
            transcription_id=session.id,
            include_style_matching=include_style_matching,
        )

    # =========================================================================
    # STAGE 3: FACTORY METHODS
    # =========================================================================

    @classmethod
    def from_environment(cls, env_file: Optional[str] = None) -> "DocumentationPipeline":
        """
        Create a pipeline from environment configuration.

        Raises:
            ConfigurationError: If required settings are missing or invalid
        """
        config = EngineConfiguration.from_environment(env_file=env_file, validate_on_load=True)
        return cls(config)

    @staticmethod
    def _create_ai_service(config: EngineConfiguration) -> DocumentationAIService:
        """Create the AI backend named by `config.ai_provider`."""
        if config.ai_provider == "mock":
            return MockDocumentationService()

        if config.ai_provider == "openai":
            if not config.openai_api_key:
                raise ConfigurationError(
                    "OpenAI API key required", context={"setting": "OPENAI_API_KEY"}
                )
            return LLMDocumentationService(
                OpenAIClient(
                    api_key=config.openai_api_key,
                    model_name=config.openai_model,
                    transcription_model=config.openai_transcription_model,
                    rate_limit_delay=config.rate_limit_delay,
                    max_attempts=config.max_attempts,
                )
            )

        if config.ai_provider == "gemini":
            if not config.gemini_api_key:
                raise ConfigurationError(
                    "Gemini API key required", context={"setting": "GEMINI_API_KEY"}
                )
            return LLMDocumentationService(
                GeminiClient(
                    api_key=config.gemini_api_key,
                    model_name=config.gemini_model,
                    rate_limit_delay=config.rate_limit_delay,
                    max_attempts=config.max_attempts,
                )
            )

        raise ConfigurationError(
            f"Unsupported AI provider: {config.ai_provider}",
            context={"supported": ", ".join(SUPPORTED_PROVIDERS)},
        )

    # =========================================================================
    # STAGE 4: PROPERTIES
    # =========================================================================

    @property
    def config(self) -> EngineConfiguration:
        return self._config

    @property
    def store(self) -> DocumentationStore:
        return self._store

    @property
    def ai_service(self) -> DocumentationAIService:
        return self._ai

    @property
    def transcription(self) -> TranscriptionSessionManager:
        return self._transcription

    @property
    def drafts(self) -> DraftNoteEngine:
        return self._drafts

    @property
    def codes(self) -> CodeSuggestionRanker:
        return self._codes

    @property
    def compliance(self) -> ComplianceEngine:
        return self._compliance

    @property
    def preferences(self) -> PreferenceLearner:
        return self._preferences


# =============================================================================
# STAGE 5: SMOKE TEST
# =============================================================================

if __name__ == "__main__":
    import base64

    print("\n--- Documentation Pipeline Smoke Test (mock backend) ---\n")

    try:
        config = EngineConfiguration(ai_provider="mock")
        configure_logging(config.log_level)
        pipeline = DocumentationPipeline(config)
        audio = base64.b64encode(b"demo-audio").decode("ascii")

        print("1. Recording session...")
        session = pipeline.transcription.start("enc-demo")
        pipeline.transcription.ingest_chunk(session.id, audio, 0)
        pipeline.transcription.ingest_chunk(session.id, audio, 1)
        session = pipeline.transcription.stop(session.id)
        print(f"   - Segments: {session.segment_count} | Accuracy: {session.accuracy:.2f}")

        print("\n2. Generating and applying draft...")
        draft = pipeline.generate_draft_from_session(session.id, provider_id="dr-demo")
        pipeline.drafts.approve(draft.id, reviewer_id="dr-demo")
        note = pipeline.drafts.apply(draft.id)
        print(f"   - Draft {draft.id} applied | Confidence: {draft.overall_confidence:.2f}")

        print("\n3. Suggesting codes...")
        suggestions = pipeline.codes.suggest("enc-demo", note.content.to_text())
        for suggestion in suggestions:
            print(
                f"   * {suggestion.code_type.value} {suggestion.code} | "
                f"Confidence: {suggestion.confidence:.2f} | Risk: {suggestion.audit_risk.value}"
            )
        pipeline.codes.accept_all("enc-demo")

        print("\n4. Checking compliance...")
        report = pipeline.compliance.check("enc-demo", pre_billing_gate=True)
        gate = pipeline.compliance.pre_billing_gate("enc-demo")
        print(f"   - Score: {report.compliance_score} | Audit risk: {report.audit_risk_score}")
        print(f"   - Issues: {report.summary}")
        print(f"   - Billing can proceed: {gate.can_proceed}")

        print("\n[OK] SMOKE TEST PASSED")

    except Exception as e:
        print(f"\n[FAIL] SMOKE TEST FAILED: {e}")
        import traceback

        traceback.print_exc()
        sys.exit(1)
