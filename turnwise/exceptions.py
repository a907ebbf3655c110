"""
Turnwise Custom Exceptions

Provides the exception hierarchy for the turnwise turn-taking layer.
None of these escape the public session operations during normal running:
missing capabilities degrade to no-ops, rejected content is dropped, and
synthesis errors are folded into end-of-playback. They exist so the
configuration loader and the internal state machines can fail loudly on
genuine programming or setup errors.

Exception Hierarchy:
    TurnwiseError (base)
    ├── ConfigurationError
    ├── CapabilityUnavailableError
    ├── SpeechError
    │   └── SynthesisError
    └── ConversationError
        └── InvalidTransitionError
"""

from typing import Any, Optional


class TurnwiseError(Exception):
    """Base exception for all turnwise errors.

    Attributes:
        message: Human-readable error description
        details: Optional dict with additional error context
    """

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(TurnwiseError):
    """Error in configuration file or settings.

    Raised by the loader when a file is missing, unparsable, or structurally
    invalid. Individual bad session fields never raise; they fall back to
    their defaults.
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_file: Optional[str] = None,
    ) -> None:
        details = {}
        if config_key:
            details["config_key"] = config_key
        if config_file:
            details["config_file"] = config_file
        super().__init__(message, details)
        self.config_key = config_key
        self.config_file = config_file


class CapabilityUnavailableError(TurnwiseError):
    """A host capability (speech synthesis, recognition) is not present."""

    def __init__(self, message: str, capability: Optional[str] = None) -> None:
        details = {}
        if capability:
            details["capability"] = capability
        super().__init__(message, details)
        self.capability = capability


# =============================================================================
# Speech Errors
# =============================================================================

class SpeechError(TurnwiseError):
    """Base class for speech output errors."""
    pass


class SynthesisError(SpeechError):
    """The synthesis engine reported an error for an utterance.

    Carried to the pipeline's error handler and logged; the pipeline treats
    it as end-of-playback and does not retry.
    """

    def __init__(
        self,
        message: str,
        request_text: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> None:
        details = {}
        if request_text:
            details["text"] = request_text[:40]
        if reason:
            details["reason"] = reason
        super().__init__(message, details)
        self.request_text = request_text
        self.reason = reason


# =============================================================================
# Conversation Errors
# =============================================================================

class ConversationError(TurnwiseError):
    """Base class for conversation state errors."""
    pass


class InvalidTransitionError(ConversationError):
    """A state machine was asked to make a transition it does not allow."""

    def __init__(self, from_state: str, to_state: str) -> None:
        super().__init__(
            f"Invalid transition from {from_state} to {to_state}",
            {"from": from_state, "to": to_state},
        )
        self.from_state = from_state
        self.to_state = to_state
