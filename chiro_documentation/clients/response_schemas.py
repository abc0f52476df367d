"""
Response Schemas for LLM JSON Output

pydantic models describing the JSON objects the prompts ask for. Parsed
responses are converted into the core dataclasses with `to_domain()`, so
nothing downstream touches raw model output.

Author: Shubham Singh
Date: October 2026
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from chiro_documentation.core.models import (
    AIComplianceFinding,
    AIComplianceResult,
    CodeCandidate,
    CodeCandidates,
    SoapContent,
    SoapSuggestion,
)


class _LenientModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# =============================================================================
# STAGE 1: SOAP RESPONSE
# =============================================================================


class SoapResponse(_LenientModel):
    subjective: str = ""
    objective: str = ""
    assessment: str = ""
    plan: str = ""
    confidence: float = Field(default=0.92, ge=0.0, le=1.0)

    def to_domain(self) -> SoapSuggestion:
        return SoapSuggestion(
            content=SoapContent(
                subjective=self.subjective,
                objective=self.objective,
                assessment=self.assessment,
                plan=self.plan,
            ),
            confidence=self.confidence,
        )


# =============================================================================
# STAGE 2: CODING RESPONSE
# =============================================================================


class CodeCandidateResponse(_LenientModel):
    code: str
    description: str = ""
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    rationale: str = ""
    is_chiro_common: bool = Field(default=False, alias="isChiroCommon")

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        return v.strip().upper()

    def to_domain(self) -> CodeCandidate:
        return CodeCandidate(
            code=self.code,
            description=self.description,
            confidence=self.confidence,
            rationale=self.rationale,
            is_chiro_common=self.is_chiro_common,
        )


class CodingResponse(_LenientModel):
    icd10: List[CodeCandidateResponse] = Field(default_factory=list)
    cpt: List[CodeCandidateResponse] = Field(default_factory=list)

    def to_domain(self) -> CodeCandidates:
        return CodeCandidates(
            icd10=[c.to_domain() for c in self.icd10],
            cpt=[c.to_domain() for c in self.cpt],
        )


# =============================================================================
# STAGE 3: COMPLIANCE RESPONSE
# =============================================================================


class ComplianceFindingResponse(_LenientModel):
    severity: str = "info"
    message: str
    category: Optional[str] = None
    section: Optional[str] = None
    suggestion: Optional[str] = None


class ComplianceResponse(_LenientModel):
    is_compliant: bool = Field(default=False, alias="isCompliant")
    score: float = 0
    issues: List[ComplianceFindingResponse] = Field(default_factory=list)

    def to_domain(self) -> AIComplianceResult:
        return AIComplianceResult(
            is_compliant=self.is_compliant,
            score=self.score,
            issues=[
                AIComplianceFinding(
                    severity=issue.severity,
                    message=issue.message,
                    section=issue.section,
                    suggestion=issue.suggestion,
                    category=issue.category,
                )
                for issue in self.issues
            ],
        )
