"""
LLM Client Protocol and Base Implementation

This module defines the interface for raw model clients and provides a base
class with common functionality (rate limiting, attempt loop, metrics).

Protocol Pattern:
    - LLMClientProtocol defines the interface
    - BaseLLMClient provides common implementation
    - Concrete clients (GeminiClient, OpenAIClient) extend base

A raw client knows how to send text (and audio) to one provider. Turning
that into SOAP drafts, code candidates or compliance findings is the job
of LLMDocumentationService (clients/ai_service.py).

Author: Shubham Singh
Date: October 2026
"""

import time
from abc import ABC, abstractmethod
from typing import Callable, Optional, Protocol, TypeVar, runtime_checkable

from loguru import logger

from chiro_documentation.core.exceptions import (
    AIContentFilteredError,
    AIRateLimitError,
    AIServiceError,
)
from chiro_documentation.core.models import TranscriptionResult

T = TypeVar("T")


# =============================================================================
# STAGE 1: LLM CLIENT PROTOCOL
# =============================================================================


@runtime_checkable
class LLMClientProtocol(Protocol):
    """
    Protocol defining the interface for raw model clients.

    Required Methods:
        generate(prompt, system_prompt) → Generate text from prompt
        transcribe(audio_bytes, mime_type) → Transcribe an audio chunk

    Properties:
        model_name → Name of the model being used
        provider_name → Name of the provider (gemini, openai)
    """

    def generate(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        ...

    def transcribe(self, audio_bytes: bytes, mime_type: str) -> TranscriptionResult:
        ...

    @property
    def model_name(self) -> str:
        ...

    @property
    def provider_name(self) -> str:
        ...


# =============================================================================
# STAGE 2: BASE LLM CLIENT (ABSTRACT)
# =============================================================================


class BaseLLMClient(ABC):
    """
    Abstract base class for model clients with common functionality.

    What it does:
        Provides rate limiting, the attempt loop, error wrapping and metrics
        so concrete implementations only translate requests into SDK calls.

    What subclasses must implement:
        - _call_api(prompt, system_prompt): Text completion call
        - _call_transcription_api(audio_bytes, mime_type): Audio call
        - provider_name: Property returning provider name

    Attempts:
        AI calls are single-shot by default (max_attempts=1). Raising
        max_attempts retries transient errors; content-filter errors are
        never retried.
    """

    def __init__(
        self,
        api_key: str,
        model_name: str,
        rate_limit_delay: float = 0.5,
        max_attempts: int = 1,
    ):
        """
        Initialize base LLM client.

        Args:
            api_key: API key for the provider
            model_name: Name of model to use
            rate_limit_delay: Seconds to wait between API calls
            max_attempts: Total attempts per call (1 = no retry)
        """
        # =====================================================================
        # STAGE 2.1: STORE CONFIGURATION
        # =====================================================================
        self._api_key = api_key
        self._model_name = model_name
        self._rate_limit_delay = rate_limit_delay
        self._max_attempts = max(1, max_attempts)

        # =====================================================================
        # STAGE 2.2: TRACKING STATE
        # =====================================================================
        self._last_call_time: Optional[float] = None
        self._total_calls = 0
        self._failed_calls = 0

    # =========================================================================
    # STAGE 3: PUBLIC API
    # =========================================================================

    def generate(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        """
        Generate text from prompt with rate limiting.

        Raises:
            AIServiceError: If every attempt fails
        """
        return self._run("generation", lambda: self._call_api(prompt, system_prompt))

    def transcribe(self, audio_bytes: bytes, mime_type: str) -> TranscriptionResult:
        """
        Transcribe one audio chunk.

        Raises:
            AIServiceError: If every attempt fails
        """
        return self._run(
            "transcription", lambda: self._call_transcription_api(audio_bytes, mime_type)
        )

    def _run(self, operation: str, call: Callable[[], T]) -> T:
        """
        Shared attempt loop.

        Algorithm:
            1. Apply rate limiting (wait if needed)
            2. Call the API, retrying transient errors up to max_attempts
            3. Track metrics
        """
        last_error: Optional[Exception] = None

        for attempt in range(1, self._max_attempts + 1):
            self._apply_rate_limit()
            try:
                result = call()
                self._total_calls += 1
                return result

            except AIContentFilteredError:
                self._failed_calls += 1
                raise

            except AIRateLimitError as e:
                last_error = e
                self._failed_calls += 1
                if attempt < self._max_attempts:
                    wait_time = e.retry_after or (2**attempt)
                    logger.warning(
                        f"Rate limited by {self.provider_name}, "
                        f"waiting {wait_time}s (attempt {attempt})"
                    )
                    time.sleep(wait_time)

            except AIServiceError as e:
                last_error = e
                self._failed_calls += 1
                logger.warning(
                    f"{operation} call failed (attempt {attempt}/{self._max_attempts}): {e}"
                )

            except Exception as e:
                last_error = e
                self._failed_calls += 1
                logger.error(f"Unexpected error in {operation} call: {e}")

        if isinstance(last_error, AIServiceError) and self._max_attempts == 1:
            raise last_error
        raise AIServiceError(
            f"{operation.capitalize()} failed after {self._max_attempts} attempt(s)",
            provider=self.provider_name,
            original_error=last_error,
        )

    # =========================================================================
    # STAGE 4: ABSTRACT METHODS
    # =========================================================================

    @abstractmethod
    def _call_api(self, prompt: str, system_prompt: Optional[str]) -> str:
        """Make the text completion call. Must be implemented by subclasses."""
        ...

    @abstractmethod
    def _call_transcription_api(self, audio_bytes: bytes, mime_type: str) -> TranscriptionResult:
        """Make the audio transcription call. Must be implemented by subclasses."""
        ...

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name (e.g., 'gemini', 'openai')."""
        ...

    # =========================================================================
    # STAGE 5: COMMON IMPLEMENTATION
    # =========================================================================

    @property
    def model_name(self) -> str:
        return self._model_name

    def _apply_rate_limit(self) -> None:
        """Apply rate limiting between API calls."""
        if self._last_call_time is not None:
            elapsed = time.time() - self._last_call_time
            if elapsed < self._rate_limit_delay:
                time.sleep(self._rate_limit_delay - elapsed)

        self._last_call_time = time.time()

    # =========================================================================
    # STAGE 6: METRICS
    # =========================================================================

    @property
    def total_calls(self) -> int:
        """Total number of successful API calls."""
        return self._total_calls

    @property
    def failed_calls(self) -> int:
        """Number of failed API calls."""
        return self._failed_calls

    @property
    def success_rate(self) -> float:
        """Percentage of successful calls."""
        total = self._total_calls + self._failed_calls
        if total == 0:
            return 100.0
        return (self._total_calls / total) * 100
