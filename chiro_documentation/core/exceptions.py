"""
Domain Exceptions for Clinical Documentation Automation

This module defines all custom exceptions used by the documentation core.
The hierarchy mirrors the error taxonomy callers translate into transport
status codes:
    1. NotFound / Conflict / BadRequest are client faults (non-retryable)
    2. Internal covers failures of a required AI capability call
    3. Configuration errors are raised at startup

Exception Hierarchy:
    DocumentationError (base)
    ├── ConfigurationError        → Invalid configuration
    ├── NotFoundError             → Referenced record absent
    ├── ConflictError             → Duplicate active transcription session
    ├── BadRequestError           → Illegal state transition / missing input
    │   └── PayloadValidationError → Malformed preference value or AI payload
    └── InternalError             → Required capability failure
        └── AIServiceError        → AI backend call failed
            ├── AIRateLimitError
            └── AIContentFilteredError

Usage:
    from chiro_documentation.core.exceptions import NotFoundError

    try:
        draft = engine.get_draft("missing")
    except NotFoundError as e:
        logger.error(f"Draft not found: {e.identifier}")

Author: Shubham Singh
Date: October 2026
"""

from typing import Optional


# =============================================================================
# STAGE 1: BASE EXCEPTION
# =============================================================================


class DocumentationError(Exception):
    """
    Base exception for all documentation-core errors.

    What it does:
        Provides a common base class for all domain-specific exceptions,
        enabling catch-all handling while preserving specific error types.

    Attributes:
        message: Human-readable error description
        context: Dictionary of additional context for debugging
    """

    def __init__(self, message: str, context: Optional[dict] = None):
        self.message = message
        self.context = context or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format message with context for display."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} [{context_str}]"
        return self.message


# =============================================================================
# STAGE 2: CONFIGURATION ERRORS
# =============================================================================


class ConfigurationError(DocumentationError):
    """
    Error in engine configuration.

    When raised:
        - Missing API key for the selected AI provider
        - Unknown provider name
        - Thresholds outside [0, 1]

    Example:
        >>> raise ConfigurationError(
        ...     "OpenAI API key required when using OpenAI provider",
        ...     context={"setting": "OPENAI_API_KEY"}
        ... )
    """

    pass


# =============================================================================
# STAGE 3: CLIENT-FACING ERRORS
# =============================================================================
# Raised for problems the caller must fix by changing the request.


class NotFoundError(DocumentationError):
    """
    Referenced record does not exist (or is not in the expected state).

    Attributes:
        entity: Kind of record (session, draft, suggestion, issue, preference)
        identifier: The id that was looked up
    """

    def __init__(self, entity: str, identifier: str, message: Optional[str] = None):
        self.entity = entity
        self.identifier = identifier
        super().__init__(
            message or f"{entity.capitalize()} not found",
            context={"entity": entity, "id": identifier},
        )


class ConflictError(DocumentationError):
    """
    The request collides with existing state.

    When raised:
        - Starting a transcription session while another is RECORDING or
          PAUSED for the same encounter
    """

    pass


class BadRequestError(DocumentationError):
    """
    Illegal state transition or missing prerequisite.

    When raised:
        - Applying a draft that is not APPROVED or EDITED
        - Generating a SOAP draft without a transcript
        - Stopping an already COMPLETED session
        - Auto-fixing an issue without suggested text
    """

    pass


class PayloadValidationError(BadRequestError):
    """
    A structured payload did not match its expected shape.

    Attributes:
        payload_type: Name of the expected payload variant
        errors: Validation messages reported by the schema
    """

    def __init__(self, payload_type: str, errors: str):
        self.payload_type = payload_type
        self.errors = errors
        super().__init__(
            f"Invalid {payload_type} payload",
            context={"payload_type": payload_type, "errors": errors},
        )


# =============================================================================
# STAGE 4: INTERNAL / AI CAPABILITY ERRORS
# =============================================================================


class InternalError(DocumentationError):
    """
    A required external capability failed.

    When raised:
        - Chunk transcription failed during ingest
        - Any AI call on a path with no partial-failure policy
    """

    pass


class AIServiceError(InternalError):
    """
    Error from an AI backend call.

    What it does:
        Wraps errors from the underlying provider SDK (OpenAI, Gemini) with
        the provider name so callers can log provenance.

    Attributes:
        provider: The AI provider (openai, gemini, mock)
        original_error: The wrapped original exception
    """

    def __init__(self, message: str, provider: str, original_error: Optional[Exception] = None):
        self.provider = provider
        self.original_error = original_error
        super().__init__(
            message,
            context={
                "provider": provider,
                "original_error": str(original_error) if original_error else None,
            },
        )


class AIRateLimitError(AIServiceError):
    """
    AI provider rate limit exceeded.

    Attributes:
        retry_after: Seconds to wait before retrying (if known)
    """

    def __init__(
        self,
        provider: str,
        retry_after: Optional[int] = None,
        original_error: Optional[Exception] = None,
    ):
        self.retry_after = retry_after
        super().__init__(
            f"Rate limit exceeded for {provider}", provider=provider, original_error=original_error
        )
        self.context["retry_after"] = retry_after


class AIContentFilteredError(AIServiceError):
    """AI response was withheld by the provider's safety filters."""

    def __init__(self, provider: str, reason: Optional[str] = None):
        super().__init__(
            f"Content filtered by {provider} safety settings: {reason or 'unknown reason'}",
            provider=provider,
        )
        self.reason = reason
