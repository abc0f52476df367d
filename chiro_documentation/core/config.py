"""
Configuration for the Clinical Documentation Core

This module defines the configuration dataclass used to initialize the
documentation engines and the AI backend they call. Configuration is:
    1. Loaded from environment variables (with .env support)
    2. Validated at startup to fail fast on misconfiguration
    3. Treated as read-only once the pipeline is built

Configuration Hierarchy:
    EngineConfiguration (main config)
    ├── AI Settings (provider, API keys, model names, rate limits)
    ├── Transcription Settings (language, chunk duration)
    ├── Draft Settings (style / preview confidence thresholds)
    ├── Compliance Settings (cloned-note threshold and lookback)
    └── Logging Settings (level)

Usage:
    from chiro_documentation.core.config import EngineConfiguration

    # Load from environment
    config = EngineConfiguration.from_environment()

    # Or configure programmatically
    config = EngineConfiguration(ai_provider="openai", openai_api_key="sk-...")

Author: Shubham Singh
Date: October 2026
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from chiro_documentation.core.exceptions import ConfigurationError


SUPPORTED_PROVIDERS = ("mock", "openai", "gemini")


# =============================================================================
# STAGE 1: DEFAULT VALUES
# =============================================================================


class ConfigDefaults:
    """Default configuration values."""

    # -------------------------------------------------------------------------
    # 1.1 AI Provider Defaults
    # -------------------------------------------------------------------------
    DEFAULT_AI_PROVIDER = "mock"
    DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
    DEFAULT_OPENAI_TRANSCRIPTION_MODEL = "whisper-1"
    DEFAULT_GEMINI_MODEL = "gemini-1.5-flash"
    DEFAULT_RATE_LIMIT_DELAY = 0.5  # seconds between API calls
    DEFAULT_MAX_ATTEMPTS = 1  # AI calls are single-shot

    # -------------------------------------------------------------------------
    # 1.2 Transcription Defaults
    # -------------------------------------------------------------------------
    DEFAULT_LANGUAGE = "en-US"
    DEFAULT_CHUNK_DURATION = 5  # seconds of audio per chunk

    # -------------------------------------------------------------------------
    # 1.3 Draft / Preference Defaults
    # -------------------------------------------------------------------------
    DEFAULT_STYLE_CONFIDENCE_THRESHOLD = 0.5
    DEFAULT_PREVIEW_CONFIDENCE_THRESHOLD = 0.3

    # -------------------------------------------------------------------------
    # 1.4 Compliance Defaults
    # -------------------------------------------------------------------------
    DEFAULT_CLONED_NOTE_THRESHOLD = 0.85
    DEFAULT_CLONED_NOTE_LOOKBACK = 5

    DEFAULT_LOG_LEVEL = "INFO"


# =============================================================================
# STAGE 2: CONFIGURATION DATACLASS
# =============================================================================


@dataclass
class EngineConfiguration:
    """
    Configuration for the documentation engines and AI backend.

    What it does:
        Encapsulates every tunable parameter of the documentation core so the
        pipeline facade can wire engines from one object.

    Why it exists:
        1. Single source of truth for all configuration
        2. Validated at startup to fail fast on errors
        3. Supports both environment and programmatic configuration

    Example:
        >>> config = EngineConfiguration.from_environment()
        >>> config.ai_provider
        'mock'
    """

    # -------------------------------------------------------------------------
    # 2.1 AI Provider Configuration
    # -------------------------------------------------------------------------
    ai_provider: str = ConfigDefaults.DEFAULT_AI_PROVIDER
    """Which AI backend to use: 'mock', 'openai' or 'gemini'."""

    openai_api_key: Optional[str] = None
    """OpenAI API key. Required if using OpenAI provider."""

    openai_model: str = ConfigDefaults.DEFAULT_OPENAI_MODEL
    """OpenAI chat model used for SOAP, coding and compliance prompts."""

    openai_transcription_model: str = ConfigDefaults.DEFAULT_OPENAI_TRANSCRIPTION_MODEL
    """OpenAI audio model used for chunk transcription."""

    gemini_api_key: Optional[str] = None
    """Google Gemini API key. Required if using Gemini provider."""

    gemini_model: str = ConfigDefaults.DEFAULT_GEMINI_MODEL
    """Gemini model name (e.g., 'gemini-1.5-flash', 'gemini-1.5-pro')."""

    rate_limit_delay: float = ConfigDefaults.DEFAULT_RATE_LIMIT_DELAY
    """Delay between API calls in seconds (rate limiting)."""

    max_attempts: int = ConfigDefaults.DEFAULT_MAX_ATTEMPTS
    """Attempts per AI call; 1 means no retry."""

    # -------------------------------------------------------------------------
    # 2.2 Transcription Configuration
    # -------------------------------------------------------------------------
    default_language: str = ConfigDefaults.DEFAULT_LANGUAGE
    """Language recorded on sessions started without an explicit one."""

    chunk_duration_seconds: int = ConfigDefaults.DEFAULT_CHUNK_DURATION
    """Fixed chunk length used to derive segment start/end times."""

    # -------------------------------------------------------------------------
    # 2.3 Draft Configuration
    # -------------------------------------------------------------------------
    style_confidence_threshold: float = ConfigDefaults.DEFAULT_STYLE_CONFIDENCE_THRESHOLD
    """Minimum preference confidence applied during draft generation."""

    preview_confidence_threshold: float = ConfigDefaults.DEFAULT_PREVIEW_CONFIDENCE_THRESHOLD
    """Minimum preference confidence applied in style previews."""

    # -------------------------------------------------------------------------
    # 2.4 Compliance Configuration
    # -------------------------------------------------------------------------
    cloned_note_threshold: float = ConfigDefaults.DEFAULT_CLONED_NOTE_THRESHOLD
    """Jaccard similarity above which an objective section counts as cloned."""

    cloned_note_lookback: int = ConfigDefaults.DEFAULT_CLONED_NOTE_LOOKBACK
    """Number of prior notes compared in the cloned-note check."""

    log_level: str = ConfigDefaults.DEFAULT_LOG_LEVEL

    # -------------------------------------------------------------------------
    # 2.5 Validation Methods
    # -------------------------------------------------------------------------

    def validate(self) -> None:
        """
        Validate configuration parameters.

        Checks:
            1. Provider is known and has its API key
            2. Thresholds lie in [0, 1]
            3. Counts and durations are positive

        Raises:
            ConfigurationError: If configuration is invalid
        """
        if self.ai_provider not in SUPPORTED_PROVIDERS:
            raise ConfigurationError(
                f"Unknown AI provider: {self.ai_provider}",
                context={"setting": "AI_PROVIDER", "supported": ", ".join(SUPPORTED_PROVIDERS)},
            )

        if self.ai_provider == "openai" and not self.openai_api_key:
            raise ConfigurationError(
                "OpenAI API key required when using OpenAI provider",
                context={"setting": "OPENAI_API_KEY", "provider": "openai"},
            )

        if self.ai_provider == "gemini" and not self.gemini_api_key:
            raise ConfigurationError(
                "Gemini API key required when using Gemini provider",
                context={"setting": "GEMINI_API_KEY", "provider": "gemini"},
            )

        for name in (
            "style_confidence_threshold",
            "preview_confidence_threshold",
            "cloned_note_threshold",
        ):
            value = getattr(self, name)
            if not (0.0 <= value <= 1.0):
                raise ConfigurationError(
                    f"{name} must be 0-1, got {value}", context={"setting": name.upper()}
                )

        if self.chunk_duration_seconds <= 0:
            raise ConfigurationError(
                f"Chunk duration must be positive, got {self.chunk_duration_seconds}",
                context={"setting": "CHUNK_DURATION_SECONDS"},
            )

        if self.max_attempts < 1 or self.cloned_note_lookback < 1:
            raise ConfigurationError(
                "AI attempts and cloned-note lookback must be at least 1",
                context={
                    "max_attempts": self.max_attempts,
                    "cloned_note_lookback": self.cloned_note_lookback,
                },
            )

    # -------------------------------------------------------------------------
    # 2.6 Factory Methods
    # -------------------------------------------------------------------------

    @classmethod
    def from_environment(
        cls, env_file: Optional[str] = None, validate_on_load: bool = True
    ) -> "EngineConfiguration":
        """
        Load configuration from environment variables.

        STAGE 1: Load .env file (if specified or found)
        STAGE 2: Read environment variables
        STAGE 3: Convert to typed configuration
        STAGE 4: Validate configuration (optional)

        Args:
            env_file: Path to .env file (optional, auto-detected if not provided)
            validate_on_load: Whether to validate after loading

        Raises:
            ConfigurationError: If required settings are missing or invalid
        """
        # STAGE 1: Load .env file
        if env_file:
            load_dotenv(env_file)
        else:
            for location in (Path.cwd() / ".env", Path.cwd() / "chiro_documentation" / ".env"):
                if location.exists():
                    load_dotenv(location)
                    break

        # STAGE 2: Read environment variables
        gemini_key = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")

        # STAGE 3: Create configuration
        try:
            config = cls(
                ai_provider=os.getenv("AI_PROVIDER", ConfigDefaults.DEFAULT_AI_PROVIDER).lower(),
                openai_api_key=os.getenv("OPENAI_API_KEY"),
                openai_model=os.getenv("OPENAI_MODEL", ConfigDefaults.DEFAULT_OPENAI_MODEL),
                openai_transcription_model=os.getenv(
                    "OPENAI_TRANSCRIPTION_MODEL",
                    ConfigDefaults.DEFAULT_OPENAI_TRANSCRIPTION_MODEL,
                ),
                gemini_api_key=gemini_key,
                gemini_model=os.getenv("GEMINI_MODEL", ConfigDefaults.DEFAULT_GEMINI_MODEL),
                rate_limit_delay=float(
                    os.getenv("RATE_LIMIT_DELAY", ConfigDefaults.DEFAULT_RATE_LIMIT_DELAY)
                ),
                max_attempts=int(os.getenv("AI_MAX_ATTEMPTS", ConfigDefaults.DEFAULT_MAX_ATTEMPTS)),
                default_language=os.getenv(
                    "TRANSCRIPTION_LANGUAGE", ConfigDefaults.DEFAULT_LANGUAGE
                ),
                chunk_duration_seconds=int(
                    os.getenv("CHUNK_DURATION_SECONDS", ConfigDefaults.DEFAULT_CHUNK_DURATION)
                ),
                style_confidence_threshold=float(
                    os.getenv(
                        "STYLE_CONFIDENCE_THRESHOLD",
                        ConfigDefaults.DEFAULT_STYLE_CONFIDENCE_THRESHOLD,
                    )
                ),
                preview_confidence_threshold=float(
                    os.getenv(
                        "PREVIEW_CONFIDENCE_THRESHOLD",
                        ConfigDefaults.DEFAULT_PREVIEW_CONFIDENCE_THRESHOLD,
                    )
                ),
                cloned_note_threshold=float(
                    os.getenv(
                        "CLONED_NOTE_THRESHOLD", ConfigDefaults.DEFAULT_CLONED_NOTE_THRESHOLD
                    )
                ),
                cloned_note_lookback=int(
                    os.getenv("CLONED_NOTE_LOOKBACK", ConfigDefaults.DEFAULT_CLONED_NOTE_LOOKBACK)
                ),
                log_level=os.getenv("LOG_LEVEL", ConfigDefaults.DEFAULT_LOG_LEVEL).upper(),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid numeric setting: {e}") from e

        # STAGE 4: Validate
        if validate_on_load:
            config.validate()

        return config

    def to_dict(self) -> dict:
        """Convert configuration to dictionary (for logging/debugging)."""
        return {
            "ai_provider": self.ai_provider,
            "openai_model": self.openai_model,
            "openai_transcription_model": self.openai_transcription_model,
            "gemini_model": self.gemini_model,
            "openai_api_key": "***" if self.openai_api_key else None,
            "gemini_api_key": "***" if self.gemini_api_key else None,
            "rate_limit_delay": self.rate_limit_delay,
            "max_attempts": self.max_attempts,
            "default_language": self.default_language,
            "chunk_duration_seconds": self.chunk_duration_seconds,
            "style_confidence_threshold": self.style_confidence_threshold,
            "preview_confidence_threshold": self.preview_confidence_threshold,
            "cloned_note_threshold": self.cloned_note_threshold,
            "cloned_note_lookback": self.cloned_note_lookback,
            "log_level": self.log_level,
        }
