"""
LLM-backed Documentation Service

Implements the DocumentationAIService protocol on top of any raw model
client (OpenAIClient, GeminiClient): prompts come from PromptBuilder,
responses are parsed as JSON and validated against the pydantic response
schemas before being returned as core dataclasses.

Failure policy:
    Any transport, parsing or schema failure raises AIServiceError. There is
    no fallback to demo output; callers decide whether a failure is fatal.

Author: Shubham Singh
Date: October 2026
"""

import base64
import binascii
import json
from typing import Optional, Type, TypeVar

from loguru import logger
from pydantic import BaseModel, ValidationError

from chiro_documentation.clients.llm_client import LLMClientProtocol
from chiro_documentation.clients.response_schemas import (
    ComplianceResponse,
    CodingResponse,
    SoapResponse,
)
from chiro_documentation.core.enums import EncounterType
from chiro_documentation.core.exceptions import AIServiceError
from chiro_documentation.core.models import (
    AIComplianceResult,
    CodeCandidates,
    SoapContent,
    SoapGenerationContext,
    SoapSuggestion,
    TranscriptionResult,
)
from chiro_documentation.generation.prompt_builder import PromptBuilder

SchemaT = TypeVar("SchemaT", bound=BaseModel)


def strip_markdown_fences(text: str) -> str:
    """Remove a surrounding ```json ... ``` block if the model added one."""
    text = text.strip()
    if text.startswith("```json"):
        text = text.replace("```json", "", 1)
    elif text.startswith("```"):
        text = text.replace("```", "", 1)
    if text.rstrip().endswith("```"):
        text = text.rstrip()[:-3]
    return text.strip()


class LLMDocumentationService:
    """
    Documentation AI backend built on a raw LLM client.

    What it does:
        Maps each documentation capability onto a prompt/parse round trip
        against the wrapped client.

    Example:
        >>> service = LLMDocumentationService(OpenAIClient(api_key="..."))
        >>> suggestion = service.generate_soap(context)
        >>> suggestion.confidence
        0.9
    """

    def __init__(self, client: LLMClientProtocol, prompt_builder: Optional[PromptBuilder] = None):
        self._client = client
        self._prompts = prompt_builder or PromptBuilder()
        logger.info(
            f"LLMDocumentationService initialized | Provider: {client.provider_name} | "
            f"Model: {client.model_name}"
        )

    @property
    def provider_name(self) -> str:
        return self._client.provider_name

    # =========================================================================
    # STAGE 1: CAPABILITIES
    # =========================================================================

    def transcribe(self, audio_base64: str, mime_type: str = "audio/webm") -> TranscriptionResult:
        try:
            audio_bytes = base64.b64decode(audio_base64, validate=True)
        except (binascii.Error, ValueError) as e:
            raise AIServiceError(
                "Audio chunk is not valid base64", provider=self.provider_name, original_error=e
            ) from e
        return self._client.transcribe(audio_bytes, mime_type)

    def generate_soap(self, context: SoapGenerationContext) -> SoapSuggestion:
        system_prompt, prompt = self._prompts.build_soap_prompt(context)
        raw = self._client.generate(prompt, system_prompt=system_prompt)
        return self._parse(raw, SoapResponse).to_domain()

    def suggest_codes(self, soap_text: str, encounter_type: EncounterType) -> CodeCandidates:
        system_prompt, prompt = self._prompts.build_coding_prompt(soap_text, encounter_type)
        raw = self._client.generate(prompt, system_prompt=system_prompt)
        return self._parse(raw, CodingResponse).to_domain()

    def check_compliance(
        self, content: SoapContent, encounter_type: EncounterType
    ) -> AIComplianceResult:
        system_prompt, prompt = self._prompts.build_compliance_prompt(content, encounter_type)
        raw = self._client.generate(prompt, system_prompt=system_prompt)
        return self._parse(raw, ComplianceResponse).to_domain()

    # =========================================================================
    # STAGE 2: PARSING
    # =========================================================================

    def _parse(self, raw: str, schema: Type[SchemaT]) -> SchemaT:
        text = strip_markdown_fences(raw)
        try:
            return schema.model_validate(json.loads(text))
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse {schema.__name__} JSON: {e}")
            logger.debug(f"Raw response: {raw}")
            raise AIServiceError(
                f"{self.provider_name} returned invalid JSON",
                provider=self.provider_name,
                original_error=e,
            ) from e
        except ValidationError as e:
            logger.error(f"{schema.__name__} did not match expected shape: {e}")
            raise AIServiceError(
                f"{self.provider_name} response did not match {schema.__name__}",
                provider=self.provider_name,
                original_error=e,
            ) from e
