"""
Gemini Client - Google Gemini API Implementation

This module provides the concrete implementation of BaseLLMClient for
Google's Gemini API. Gemini models accept inline audio, so the same model
serves both text prompts and chunk transcription.

Author: Shubham Singh
Date: October 2026
"""

from typing import Any, Optional

from loguru import logger

from chiro_documentation.clients.llm_client import BaseLLMClient
from chiro_documentation.core.exceptions import (
    AIContentFilteredError,
    AIRateLimitError,
    AIServiceError,
)
from chiro_documentation.core.models import TranscriptionResult

TRANSCRIPTION_PROMPT = (
    "Transcribe this audio accurately. Return only the transcribed text, nothing else."
)

# Gemini reports no per-request confidence for transcription.
GEMINI_TRANSCRIPTION_CONFIDENCE = 0.93

# Permissive safety settings; clinical content trips default filters.
SAFETY_SETTINGS = [
    {"category": "HARM_CATEGORY_HARASSMENT", "threshold": "BLOCK_NONE"},
    {"category": "HARM_CATEGORY_HATE_SPEECH", "threshold": "BLOCK_NONE"},
    {"category": "HARM_CATEGORY_SEXUALLY_EXPLICIT", "threshold": "BLOCK_NONE"},
    {"category": "HARM_CATEGORY_DANGEROUS_CONTENT", "threshold": "BLOCK_NONE"},
]


# =============================================================================
# STAGE 1: GEMINI CLIENT IMPLEMENTATION
# =============================================================================


class GeminiClient(BaseLLMClient):
    """
    Google Gemini API client for text generation and audio transcription.

    Supported Models:
        - gemini-1.5-flash (fast, cost-effective)
        - gemini-1.5-pro (higher quality)

    Example:
        >>> client = GeminiClient(api_key="...", model_name="gemini-1.5-flash")
        >>> text = client.generate("Return JSON ...")
    """

    def __init__(
        self,
        api_key: str,
        model_name: str = "gemini-1.5-flash",
        rate_limit_delay: float = 0.5,
        max_attempts: int = 1,
        json_response: bool = True,
        model: Optional[Any] = None,
    ):
        """
        Initialize Gemini client.

        STAGE 1.1: Initialize base class
        STAGE 1.2: Configure Gemini SDK

        Args:
            api_key: Google API key (Gemini)
            model_name: Model to use (default: gemini-1.5-flash)
            rate_limit_delay: Seconds between API calls
            max_attempts: Attempts per call
            json_response: Ask for application/json text responses
            model: Pre-built GenerativeModel (used instead of constructing one)
        """
        # =====================================================================
        # STAGE 1.1: INITIALIZE BASE CLASS
        # =====================================================================
        super().__init__(
            api_key=api_key,
            model_name=model_name,
            rate_limit_delay=rate_limit_delay,
            max_attempts=max_attempts,
        )
        self._json_response = json_response

        # =====================================================================
        # STAGE 1.2: CONFIGURE GEMINI SDK
        # =====================================================================
        self._model = model
        if self._model is None:
            self._initialize_client()

        logger.info(f"GeminiClient initialized | Model: {model_name}")

    def _initialize_client(self) -> None:
        """Configure the SDK and build the model with safety settings."""
        try:
            import google.generativeai as genai

            genai.configure(api_key=self._api_key)
            self._model = genai.GenerativeModel(
                model_name=self._model_name,
                safety_settings=SAFETY_SETTINGS,
            )

        except ImportError:
            raise AIServiceError(
                "google-generativeai package not installed. "
                "Install with: pip install google-generativeai",
                provider="gemini",
            )
        except Exception as e:
            raise AIServiceError(
                f"Failed to initialize Gemini client: {e}", provider="gemini", original_error=e
            )

    # =========================================================================
    # STAGE 2: API CALL IMPLEMENTATION
    # =========================================================================

    def _call_api(self, prompt: str, system_prompt: Optional[str]) -> str:
        """
        Make the text generation call.

        Raises:
            AIServiceError: If API call fails
            AIRateLimitError: If rate limited
            AIContentFilteredError: If content was filtered
        """
        full_prompt = f"{system_prompt}\n\n{prompt}" if system_prompt else prompt
        kwargs = {}
        if self._json_response:
            kwargs["generation_config"] = {"response_mime_type": "application/json"}

        try:
            response = self._model.generate_content(full_prompt, **kwargs)
            return self._extract_text(response)
        except AIServiceError:
            raise
        except Exception as e:
            raise self._translate_error(e)

    def _call_transcription_api(self, audio_bytes: bytes, mime_type: str) -> TranscriptionResult:
        """Send inline audio with a transcription instruction."""
        try:
            response = self._model.generate_content(
                [{"mime_type": mime_type, "data": audio_bytes}, TRANSCRIPTION_PROMPT]
            )
            text = self._extract_text(response)
        except AIServiceError:
            raise
        except Exception as e:
            raise self._translate_error(e)

        return TranscriptionResult(text=text.strip(), confidence=GEMINI_TRANSCRIPTION_CONFIDENCE)

    @staticmethod
    def _extract_text(response: Any) -> str:
        feedback = getattr(response, "prompt_feedback", None)
        if feedback is not None and getattr(feedback, "block_reason", None):
            raise AIContentFilteredError(provider="gemini", reason=str(feedback.block_reason))

        if response.text:
            return response.text

        if response.candidates:
            candidate = response.candidates[0]
            if candidate.content and candidate.content.parts:
                return candidate.content.parts[0].text

        raise AIServiceError("Gemini returned empty response", provider="gemini")

    @staticmethod
    def _translate_error(e: Exception) -> AIServiceError:
        error_str = str(e).lower()

        if "rate" in error_str or "quota" in error_str or "429" in error_str:
            return AIRateLimitError(provider="gemini", original_error=e)

        if "blocked" in error_str or "safety" in error_str:
            return AIContentFilteredError(provider="gemini", reason=str(e))

        return AIServiceError(f"Gemini API error: {e}", provider="gemini", original_error=e)

    # =========================================================================
    # STAGE 3: PROPERTIES
    # =========================================================================

    @property
    def provider_name(self) -> str:
        return "gemini"
