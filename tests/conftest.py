"""Shared fixtures and fake AI backends for the documentation core tests."""

from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Tuple, Union

import pytest

from chiro_documentation.clients.mock_service import MockDocumentationService
from chiro_documentation.core.config import EngineConfiguration
from chiro_documentation.core.enums import EncounterType
from chiro_documentation.core.models import (
    AIComplianceFinding,
    AIComplianceResult,
    CodeCandidate,
    CodeCandidates,
    SoapContent,
    SoapGenerationContext,
    SoapSuggestion,
    TranscriptionResult,
)
from chiro_documentation.repository.record_store import InMemoryDocumentationStore


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = datetime(2026, 10, 1, 9, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


class FakeAIService:
    """
    Scriptable stand-in for all four AI capabilities.

    Transcription results are consumed in order; an Exception in the list is
    raised instead of returned.
    """

    def __init__(
        self,
        transcripts: Sequence[Union[Tuple[str, float], Exception]] = (),
        soap: Optional[SoapContent] = None,
        soap_confidence: float = 0.8,
        icd10: Sequence[CodeCandidate] = (),
        cpt: Sequence[CodeCandidate] = (),
        findings: Sequence[AIComplianceFinding] = (),
    ):
        self._transcripts = list(transcripts)
        self.soap = soap or SoapContent(
            subjective="Patient reports neck pain 6/10.",
            objective="Cervical ROM reduced. Palpation tenderness C5.",
            assessment="Cervical segmental dysfunction.",
            plan="Adjust C5. Ice at home. Return in one week.",
        )
        self.soap_confidence = soap_confidence
        self.icd10 = list(icd10)
        self.cpt = list(cpt)
        self.findings = list(findings)
        self.soap_contexts: List[SoapGenerationContext] = []
        self.coding_calls: List[Tuple[str, EncounterType]] = []

    @property
    def provider_name(self) -> str:
        return "fake"

    def transcribe(self, audio_base64: str, mime_type: str = "audio/webm") -> TranscriptionResult:
        if not self._transcripts:
            raise RuntimeError("no scripted transcript left")
        item = self._transcripts.pop(0)
        if isinstance(item, Exception):
            raise item
        text, confidence = item
        return TranscriptionResult(text=text, confidence=confidence)

    def generate_soap(self, context: SoapGenerationContext) -> SoapSuggestion:
        self.soap_contexts.append(context)
        return SoapSuggestion(content=self.soap, confidence=self.soap_confidence)

    def suggest_codes(self, soap_text: str, encounter_type: EncounterType) -> CodeCandidates:
        self.coding_calls.append((soap_text, encounter_type))
        return CodeCandidates(icd10=list(self.icd10), cpt=list(self.cpt))

    def check_compliance(
        self, content: SoapContent, encounter_type: EncounterType
    ) -> AIComplianceResult:
        return AIComplianceResult(
            is_compliant=not self.findings, score=100, issues=list(self.findings)
        )


def candidate(code: str, confidence: float = 0.9, description: str = "") -> CodeCandidate:
    return CodeCandidate(
        code=code,
        description=description or f"Description for {code}",
        confidence=confidence,
        rationale="test rationale",
        is_chiro_common=True,
    )


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def store() -> InMemoryDocumentationStore:
    return InMemoryDocumentationStore()


@pytest.fixture
def config() -> EngineConfiguration:
    return EngineConfiguration(ai_provider="mock", rate_limit_delay=0.0)


@pytest.fixture
def mock_ai() -> MockDocumentationService:
    return MockDocumentationService()


@pytest.fixture
def fake_ai() -> FakeAIService:
    return FakeAIService()


@pytest.fixture
def compliant_note() -> SoapContent:
    """A follow-up note that passes every deterministic check."""
    return SoapContent(
        subjective=(
            "Patient reports progress since last visit. Pain level 3/10. "
            "Functional status improved for daily activities."
        ),
        objective=(
            "Examination findings: cervical flexion 40 degrees. Palpation shows mild "
            "tenderness at C5."
        ),
        assessment=(
            "Good response to treatment. Modified assessment: cervical segmental "
            "dysfunction improving. Prognosis good."
        ),
        plan=(
            "Continued treatment with CMT. No modifications needed. Progress notes "
            "updated. Goal: restore full rotation within two weeks."
        ),
    )
