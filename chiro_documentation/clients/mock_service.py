"""
Mock Documentation Service - Deterministic Demo Backend

A DocumentationAIService that needs no API key and always returns the same
output for the same input. It is the default backend (AI_PROVIDER=mock) and
drives the pipeline smoke run. Every generated text is prefixed with
"[DEMO]" so demo output is never mistaken for real documentation.

Author: Shubham Singh
Date: October 2026
"""

from typing import List

from loguru import logger

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

DEMO_TRANSCRIPT = (
    "[DEMO] Patient reports low back pain for the past two weeks. Pain is described as a "
    "dull ache, rated 6 out of 10. Pain worsens with prolonged sitting and improves with "
    "movement. No radiating symptoms reported. Patient states they tried over-the-counter "
    "ibuprofen with minimal relief."
)

DEMO_OBJECTIVE = (
    "[DEMO] Vitals: BP 120/80, HR 72 bpm.\n"
    "Posture: Forward head posture noted.\n"
    "ROM: Lumbar flexion 60%, extension 40%.\n"
    "Palpation: Tenderness at L4-L5.\n"
    "Orthopedic tests: Kemp's positive on right."
)

DEMO_PLAN = (
    "[DEMO] 1. CMT to lumbar spine\n"
    "2. Therapeutic exercises for core stability\n"
    "3. Patient education on ergonomics\n"
    "4. Follow-up in 3-5 days"
)


class MockDocumentationService:
    """
    Keyword-driven demo implementation of all four capabilities.

    Behavior:
        transcribe        → fixed low-back-pain transcript, confidence 0.92
        generate_soap     → transcript-based subjective, fixed O/A/P, confidence 0.75
        suggest_codes     → M54.50 / M54.2 by keyword (M99.01 fallback);
                            99203 for initial evals else 99213; always 98941
        check_compliance  → section-length findings with a 100-point score
    """

    TRANSCRIPTION_CONFIDENCE = 0.92
    SOAP_CONFIDENCE = 0.75

    def __init__(self):
        logger.info("MockDocumentationService initialized | Demo mode")

    @property
    def provider_name(self) -> str:
        return "Mock (Demo Mode)"

    def transcribe(self, audio_base64: str, mime_type: str = "audio/webm") -> TranscriptionResult:
        return TranscriptionResult(text=DEMO_TRANSCRIPT, confidence=self.TRANSCRIPTION_CONFIDENCE)

    def generate_soap(self, context: SoapGenerationContext) -> SoapSuggestion:
        subjective = "[DEMO] "
        if context.transcription:
            subjective += context.transcription
        elif context.chief_complaint:
            subjective += f"Patient presents with {context.chief_complaint}."

        content = SoapContent(
            subjective=subjective,
            objective=DEMO_OBJECTIVE,
            assessment=(
                "[DEMO] 1. Lumbar segmental dysfunction (M99.03)\n"
                "2. Low back pain (M54.5)\n"
                f"Chief complaint: {context.chief_complaint or 'as noted'}."
            ),
            plan=DEMO_PLAN,
        )
        return SoapSuggestion(content=content, confidence=self.SOAP_CONFIDENCE)

    def suggest_codes(self, soap_text: str, encounter_type: EncounterType) -> CodeCandidates:
        text = soap_text.lower()
        icd10: List[CodeCandidate] = []
        cpt: List[CodeCandidate] = []

        if "low back" in text or "lumbar" in text:
            icd10.append(
                CodeCandidate(
                    code="M54.50",
                    description="[DEMO] Low back pain, unspecified",
                    confidence=0.9,
                    rationale="Patient presents with low back pain symptoms",
                    is_chiro_common=True,
                )
            )
        if "neck" in text or "cervical" in text:
            icd10.append(
                CodeCandidate(
                    code="M54.2",
                    description="[DEMO] Cervicalgia",
                    confidence=0.88,
                    rationale="Patient presents with neck pain symptoms",
                    is_chiro_common=True,
                )
            )
        if not icd10:
            icd10.append(
                CodeCandidate(
                    code="M99.01",
                    description="[DEMO] Segmental dysfunction of cervical region",
                    confidence=0.7,
                    rationale="Common chiropractic finding",
                    is_chiro_common=True,
                )
            )

        if EncounterType.coerce(encounter_type) is EncounterType.INITIAL_EVAL:
            cpt.append(
                CodeCandidate(
                    code="99203",
                    description="[DEMO] Office visit, new patient, low complexity",
                    confidence=0.85,
                    rationale="New patient evaluation",
                    is_chiro_common=True,
                )
            )
        else:
            cpt.append(
                CodeCandidate(
                    code="99213",
                    description="[DEMO] Office visit, established patient",
                    confidence=0.85,
                    rationale="Established patient follow-up",
                    is_chiro_common=True,
                )
            )
        cpt.append(
            CodeCandidate(
                code="98941",
                description="[DEMO] CMT, 3-4 spinal regions",
                confidence=0.9,
                rationale="Spinal manipulation performed",
                is_chiro_common=True,
            )
        )
        return CodeCandidates(icd10=icd10, cpt=cpt)

    def check_compliance(
        self, content: SoapContent, encounter_type: EncounterType
    ) -> AIComplianceResult:
        # (section, minimum length, severity, message, suggestion, deduction)
        checks = (
            ("subjective", 20, "error", "[DEMO] Subjective section is missing or too brief",
             "Include patient's chief complaint and history", 20),
            ("objective", 30, "error", "[DEMO] Objective section is incomplete",
             "Include ROM, palpation findings, and orthopedic tests", 25),
            ("assessment", 20, "error", "[DEMO] Assessment section is missing",
             "Include diagnosis codes and clinical impression", 20),
            ("plan", 20, "warning", "[DEMO] Plan section needs more detail",
             "Include treatment plan and follow-up recommendations", 10),
        )

        issues: List[AIComplianceFinding] = []
        score = 100
        for section, min_length, severity, message, suggestion, deduction in checks:
            text = getattr(content, section)
            if not text or len(text.strip()) < min_length:
                issues.append(
                    AIComplianceFinding(
                        severity=severity,
                        message=message,
                        section=section,
                        suggestion=suggestion,
                        category="Documentation",
                    )
                )
                score -= deduction

        score = max(0, score)
        is_compliant = score >= 70 and not any(i.severity == "error" for i in issues)
        return AIComplianceResult(is_compliant=is_compliant, score=score, issues=issues)
