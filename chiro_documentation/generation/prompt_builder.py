"""
Prompt Builder - Chiropractic Documentation Prompts

This module constructs the system and user prompts sent to the LLM backend
for the three text capabilities:
    1. SOAP draft generation from a transcript
    2. ICD-10 / CPT code suggestion from SOAP text
    3. Compliance review of a SOAP note

Every prompt asks for a bare JSON object; the response schemas in
clients/response_schemas.py describe the expected shapes.

Pipeline Position:
    Transcript → [PromptBuilder] → LLMDocumentationService → DraftNoteEngine
                  ^^^^^^^^^^^^^
                  You are here

Author: Shubham Singh
Date: October 2026
"""

from typing import Tuple

from chiro_documentation.core.enums import EncounterType
from chiro_documentation.core.models import SoapContent, SoapGenerationContext


# =============================================================================
# STAGE 1: SYSTEM PROMPTS
# =============================================================================

JSON_ONLY_RULE = "IMPORTANT: Respond ONLY with valid JSON, no markdown code blocks."

SOAP_SYSTEM_PROMPT = f"""You are a medical documentation assistant for a chiropractic practice.
Generate professional SOAP notes based on the provided patient information.
Focus on musculoskeletal conditions, spinal health, and chiropractic care.
Be thorough but concise. Use proper medical terminology.

{JSON_ONLY_RULE}"""

CODING_SYSTEM_PROMPT = f"""You are a medical coding specialist for chiropractic practices.
Analyze SOAP notes and suggest appropriate ICD-10-CM and CPT codes.
Focus on codes commonly used in chiropractic care.
Provide rationale for each suggestion and confidence level.

{JSON_ONLY_RULE}"""

COMPLIANCE_SYSTEM_PROMPT = f"""You are a healthcare compliance auditor specializing in chiropractic documentation.
Review SOAP notes for completeness, compliance, and best practices.
Check for proper documentation of medical necessity, treatment rationale, and follow-up plans.

{JSON_ONLY_RULE}"""


# =============================================================================
# STAGE 2: RESPONSE SHAPES
# =============================================================================

SOAP_RESPONSE_SHAPE = """{
  "subjective": "Patient's reported symptoms and history",
  "objective": "Physical examination findings (use [brackets] for items needing exam)",
  "assessment": "Clinical impression and diagnosis",
  "plan": "Treatment plan, recommendations, and follow-up",
  "confidence": 0.0-1.0
}"""

CODING_RESPONSE_SHAPE = """{
  "icd10": [
    { "code": "M54.50", "description": "...", "confidence": 0.9, "rationale": "...", "isChiroCommon": true }
  ],
  "cpt": [
    { "code": "98941", "description": "...", "confidence": 0.85, "rationale": "...", "isChiroCommon": true }
  ]
}"""

CODING_HINTS = """Include common chiropractic codes:
- ICD-10: M54.x (back pain), M99.x (somatic dysfunction), M62.x (muscle disorders)
- CPT: 98940-98942 (CMT), 97110-97140 (therapeutic procedures), 99213-99215 (E/M)"""

COMPLIANCE_RESPONSE_SHAPE = """{
  "isCompliant": boolean,
  "score": number (0-100),
  "issues": [
    {
      "severity": "error" | "warning" | "info",
      "category": "string",
      "message": "string",
      "section": "subjective" | "objective" | "assessment" | "plan" | "general",
      "suggestion": "string"
    }
  ]
}"""


# =============================================================================
# STAGE 3: PROMPT BUILDER CLASS
# =============================================================================


class PromptBuilder:
    """
    Constructs (system_prompt, user_prompt) pairs for the LLM backend.

    What it does:
        Renders generation context, SOAP text and encounter type into the
        fixed prompt templates above.

    Why it exists:
        1. Centralizes prompt logic for maintainability
        2. Enables testing prompts without making LLM calls

    Example:
        >>> builder = PromptBuilder()
        >>> system, user = builder.build_soap_prompt(context)
    """

    def build_soap_prompt(self, context: SoapGenerationContext) -> Tuple[str, str]:
        """
        Build the SOAP generation prompt.

        STAGE 3.1: Patient and encounter header
        STAGE 3.2: Transcript and previous visit blocks
        STAGE 3.3: Response shape
        """
        patient = context.patient_info
        age = f"{patient.age} year old" if patient.age is not None else "age unknown"
        lines = [
            "Generate a SOAP note for the following patient encounter:",
            "",
            f"Patient: {patient.name or 'Unknown'}, {age} {patient.gender or ''}".rstrip(),
            f"Encounter Type: {self._encounter_label(context.encounter_type)}",
            f"Chief Complaint: {context.chief_complaint or 'Not specified'}",
            "",
        ]

        if context.transcription:
            lines.extend(["Provider Notes/Transcription:", context.transcription, ""])

        if context.previous_visit:
            prev = context.previous_visit
            lines.extend(
                [
                    "Previous Visit Summary:",
                    f"S: {prev.subjective or 'N/A'}",
                    f"O: {prev.objective or 'N/A'}",
                    f"A: {prev.assessment or 'N/A'}",
                    f"P: {prev.plan or 'N/A'}",
                    "",
                ]
            )

        lines.extend(["Respond with JSON containing these fields:", SOAP_RESPONSE_SHAPE])
        return SOAP_SYSTEM_PROMPT, "\n".join(lines)

    def build_coding_prompt(self, soap_text: str, encounter_type: EncounterType) -> Tuple[str, str]:
        """Build the code suggestion prompt."""
        user_prompt = (
            f"Analyze this {self._encounter_label(encounter_type)} SOAP note and suggest "
            f"billing codes:\n\n{soap_text}\n\n"
            f"Respond with JSON:\n{CODING_RESPONSE_SHAPE}\n\n{CODING_HINTS}"
        )
        return CODING_SYSTEM_PROMPT, user_prompt

    def build_compliance_prompt(
        self, content: SoapContent, encounter_type: EncounterType
    ) -> Tuple[str, str]:
        """Build the compliance review prompt; absent sections render as [MISSING]."""
        sections = "\n\n".join(
            f"{section.value.upper()}: {text or '[MISSING]'}" for section, text in content.items()
        )
        user_prompt = (
            f"Review this {self._encounter_label(encounter_type)} SOAP note for compliance:\n\n"
            f"{sections}\n\n"
            f"Respond with JSON:\n{COMPLIANCE_RESPONSE_SHAPE}\n\n"
            "Check for: required elements, medical necessity, treatment justification, "
            "pain scale, functional assessments, follow-up recommendations."
        )
        return COMPLIANCE_SYSTEM_PROMPT, user_prompt

    @staticmethod
    def _encounter_label(encounter_type: EncounterType) -> str:
        return EncounterType.coerce(encounter_type).value
