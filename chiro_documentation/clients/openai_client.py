"""
OpenAI Client - OpenAI API Implementation

This module provides the concrete implementation of BaseLLMClient for
OpenAI's API: chat completions (JSON mode) for SOAP, coding and compliance
prompts, and the audio transcription endpoint for recorded chunks.

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

# The transcription endpoint reports no confidence; this is the fixed value
# recorded for every OpenAI-transcribed chunk.
OPENAI_TRANSCRIPTION_CONFIDENCE = 0.95


# =============================================================================
# STAGE 1: OPENAI CLIENT IMPLEMENTATION
# =============================================================================


class OpenAIClient(BaseLLMClient):
    """
    OpenAI API client for text generation and audio transcription.

    What it does:
        Sends prompts to a chat model and audio chunks to a transcription
        model via the openai library, translating SDK errors into the
        AIServiceError family.

    Supported Models:
        - gpt-4o-mini (default, cost-effective)
        - gpt-4o (high quality)
        - whisper-1 (transcription)

    Example:
        >>> client = OpenAIClient(api_key="...", model_name="gpt-4o-mini")
        >>> text = client.generate("Return JSON ...", system_prompt="You are ...")
    """

    def __init__(
        self,
        api_key: str,
        model_name: str = "gpt-4o-mini",
        transcription_model: str = "whisper-1",
        rate_limit_delay: float = 0.5,
        max_attempts: int = 1,
        json_response: bool = True,
        sdk_client: Optional[Any] = None,
    ):
        """
        Initialize OpenAI client.

        STAGE 1.1: Initialize base class
        STAGE 1.2: Configure OpenAI SDK

        Args:
            api_key: OpenAI API key
            model_name: Chat model (default: gpt-4o-mini)
            transcription_model: Audio model (default: whisper-1)
            rate_limit_delay: Seconds between API calls
            max_attempts: Attempts per call
            json_response: Request JSON-object responses from the chat model
            sdk_client: Pre-built SDK client (used instead of constructing one)
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
        self._transcription_model = transcription_model
        self._json_response = json_response

        # =====================================================================
        # STAGE 1.2: CONFIGURE OPENAI SDK
        # =====================================================================
        self._client = sdk_client
        if self._client is None:
            self._initialize_client()

        logger.info(
            f"OpenAIClient initialized | Model: {model_name} | "
            f"Transcription: {transcription_model}"
        )

    def _initialize_client(self) -> None:
        """Create the SDK client. Lazy import keeps openai optional at module load."""
        try:
            from openai import OpenAI

            self._client = OpenAI(api_key=self._api_key)

        except ImportError:
            raise AIServiceError(
                "openai package not installed. Install with: pip install openai",
                provider="openai",
            )
        except Exception as e:
            raise AIServiceError(
                f"Failed to initialize OpenAI client: {e}", provider="openai", original_error=e
            )

    # =========================================================================
    # STAGE 2: API CALL IMPLEMENTATION
    # =========================================================================

    def _call_api(self, prompt: str, system_prompt: Optional[str]) -> str:
        """
        Make the chat completion call.

        Raises:
            AIServiceError: If API call fails
            AIRateLimitError: If rate limited
            AIContentFilteredError: If content was filtered
        """
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        request = {
            "model": self._model_name,
            "messages": messages,
            "temperature": 0.3,
            "max_tokens": 4096,
        }
        if self._json_response:
            request["response_format"] = {"type": "json_object"}

        try:
            response = self._client.chat.completions.create(**request)

            if response.choices and len(response.choices) > 0:
                message = response.choices[0].message
                if message.content:
                    return message.content

            raise AIServiceError("OpenAI returned empty response", provider="openai")

        except AIServiceError:
            raise

        except Exception as e:
            raise self._translate_error(e)

    def _call_transcription_api(self, audio_bytes: bytes, mime_type: str) -> TranscriptionResult:
        """Send one audio chunk to the transcription endpoint."""
        extension = mime_type.split("/")[-1].split(";")[0] or "webm"
        try:
            response = self._client.audio.transcriptions.create(
                model=self._transcription_model,
                file=(f"audio.{extension}", audio_bytes, mime_type),
            )
        except Exception as e:
            raise self._translate_error(e)

        text = getattr(response, "text", None)
        if text is None:
            raise AIServiceError("OpenAI returned no transcription text", provider="openai")
        return TranscriptionResult(text=text.strip(), confidence=OPENAI_TRANSCRIPTION_CONFIDENCE)

    @staticmethod
    def _translate_error(e: Exception) -> AIServiceError:
        """Map SDK exceptions to domain errors by message content."""
        error_str = str(e).lower()

        if "rate" in error_str or "quota" in error_str or "429" in error_str:
            return AIRateLimitError(provider="openai", original_error=e)

        if "content_filter" in error_str or "policy" in error_str:
            return AIContentFilteredError(provider="openai", reason=str(e))

        return AIServiceError(f"OpenAI API error: {e}", provider="openai", original_error=e)

    # =========================================================================
    # STAGE 3: PROPERTIES
    # =========================================================================

    @property
    def provider_name(self) -> str:
        return "openai"
