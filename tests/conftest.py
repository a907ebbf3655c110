"""
Pytest Fixtures for Turnwise Testing.

Shared fixtures for unit and end-to-end tests. Fixtures are available to
every test module under tests/ automatically.

Usage:
    def test_go_word(controller, make_config, sink):
        config = make_config(conversation={"go_word": "send"})
        controller.start(config)
        ...
"""

import logging
from typing import Any, Callable, Dict, Optional

import pytest

from tests.fixtures.mock_speech import MockSpeechEngine
from tests.fixtures.sinks import RecordingSink
from turnwise.config import TurnwiseConfig
from turnwise.conversation import ConversationController
from turnwise.indicators import StatusIndicator
from turnwise.voice_session import VoiceSession
from turnwise.wake_word import WakeWordDetector

# Short enough to keep timer tests fast, long enough to be distinguishable
# from scheduling jitter.
FAST_PAUSE_MS = 80


# =============================================================================
# Configuration Fixtures
# =============================================================================

@pytest.fixture
def make_config() -> Callable[..., TurnwiseConfig]:
    """
    Provide a factory for TurnwiseConfig.

    Each keyword names a section and takes a dict of overrides:
        make_config(conversation={"pause_length_ms": 50}, wake={"enabled": True})
    """
    def _make(
        conversation: Optional[Dict[str, Any]] = None,
        wake: Optional[Dict[str, Any]] = None,
        voice: Optional[Dict[str, Any]] = None,
    ) -> TurnwiseConfig:
        return TurnwiseConfig.model_validate({
            "conversation": conversation or {},
            "wake": wake or {},
            "voice": voice or {},
        })

    return _make


@pytest.fixture
def config() -> TurnwiseConfig:
    """Provide a default configuration."""
    return TurnwiseConfig()


@pytest.fixture
def fast_config(make_config) -> TurnwiseConfig:
    """Provide a configuration with a short pause timer."""
    return make_config(conversation={"pause_length_ms": FAST_PAUSE_MS})


# =============================================================================
# Collaborator Fixtures
# =============================================================================

@pytest.fixture
def sink() -> RecordingSink:
    """Provide a dispatch sink that records messages."""
    return RecordingSink()


@pytest.fixture
def mock_engine() -> MockSpeechEngine:
    """
    Provide a MockSpeechEngine.

    Starts utterances automatically; tests finish them by hand.
    """
    engine = MockSpeechEngine()
    yield engine
    engine.reset()


@pytest.fixture
def indicator() -> StatusIndicator:
    """Provide a fresh status indicator."""
    return StatusIndicator()


@pytest.fixture
def detector() -> WakeWordDetector:
    """Provide a wake word detector with no timeout callback."""
    return WakeWordDetector()


@pytest.fixture
def controller(sink, indicator) -> ConversationController:
    """
    Provide an idle ConversationController wired to the recording sink.

    Async tests that arm timers shut it down before returning.
    """
    return ConversationController(send=sink, indicator=indicator)


@pytest.fixture
def make_session(mock_engine, sink, indicator) -> Callable[..., VoiceSession]:
    """Provide a factory for VoiceSession using the shared mocks."""
    def _make(settings: TurnwiseConfig, **kwargs) -> VoiceSession:
        kwargs.setdefault("indicator", indicator)
        session = VoiceSession(mock_engine, send=sink, settings=settings, **kwargs)
        return session

    return _make


# =============================================================================
# Logging Isolation
# =============================================================================

@pytest.fixture(autouse=True)
def reset_turnwise_logging():
    """Undo any setup_logging() a test performed."""
    yield
    root_logger = logging.getLogger("turnwise")
    for handler in list(root_logger.handlers):
        handler.close()
        root_logger.removeHandler(handler)
    root_logger.setLevel(logging.NOTSET)
