"""
Clients Layer - AI Capability Abstractions

This layer hides the model providers (OpenAI, Gemini, demo mock) behind the
four documentation capabilities the engines consume.

Submodules:
    capabilities.py     → Capability protocols and the combined service protocol
    llm_client.py       → Raw client protocol and base implementation
    openai_client.py    → OpenAI implementation (chat + audio transcription)
    gemini_client.py    → Google Gemini implementation (text + inline audio)
    response_schemas.py → pydantic schemas for JSON responses
    ai_service.py       → LLM-backed DocumentationAIService
    mock_service.py     → Deterministic demo DocumentationAIService

Author: Shubham Singh
Date: October 2026
"""

from chiro_documentation.clients.ai_service import LLMDocumentationService
from chiro_documentation.clients.capabilities import (
    CodingCapability,
    ComplianceCapability,
    DocumentationAIService,
    SoapGenerationCapability,
    TranscriptionCapability,
)
from chiro_documentation.clients.gemini_client import GeminiClient
from chiro_documentation.clients.llm_client import BaseLLMClient, LLMClientProtocol
from chiro_documentation.clients.mock_service import MockDocumentationService
from chiro_documentation.clients.openai_client import OpenAIClient

__all__ = [
    "CodingCapability",
    "ComplianceCapability",
    "DocumentationAIService",
    "SoapGenerationCapability",
    "TranscriptionCapability",
    "LLMClientProtocol",
    "BaseLLMClient",
    "GeminiClient",
    "OpenAIClient",
    "LLMDocumentationService",
    "MockDocumentationService",
]
