"""
Turnwise Turn-Taking State Machine

Decides, one transcript at a time, when the user has finished a message.

Conversation flow (multi-sentence mode):
    transcript -> end phrase?   -> flush buffer, leave conversation
               -> go-word?      -> send buffer + remainder, leave conversation
               -> otherwise     -> buffer it, (re)arm pause timer
    pause timer fires           -> send buffer, leave conversation

"Leave conversation" means returning to passive wake-phrase listening when
persistent listening is on, and to idle otherwise.

Usage:
    from turnwise.conversation import ConversationController

    controller = ConversationController(send=backend.send)
    controller.start(config)
    decision = controller.process_transcript("turn off the lights", config)
    decision = controller.process_transcript("go", config)
    # decision.dispatch is True, decision.payload == "turn off the lights "
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional

from turnwise.config import TurnwiseConfig
from turnwise.indicators import IndicatorState, StatusIndicator
from turnwise.logging_config import get_logger, log_exception
from turnwise.phrases import append_fragment, contains_phrase, has_go_word, remove_go_word
from turnwise.timers import TimerSlot
from turnwise.wake_word import WakeWordDetector

__all__ = [
    "ConversationMode",
    "ConversationSession",
    "TranscriptDecision",
    "ConversationController",
    "helper_text",
]

logger = get_logger("conversation")


class ConversationMode(Enum):
    """Top-level mode of a conversation session."""
    IDLE = "idle"
    PASSIVE_LISTENING = "passive_listening"
    ACTIVE_CONVERSATION = "active_conversation"


_MODE_INDICATORS = {
    ConversationMode.IDLE: IndicatorState.IDLE,
    ConversationMode.PASSIVE_LISTENING: IndicatorState.PASSIVE,
    ConversationMode.ACTIVE_CONVERSATION: IndicatorState.CONVERSATION,
}


@dataclass
class ConversationSession:
    """Mutable state of one user interaction."""
    mode: ConversationMode = ConversationMode.IDLE
    buffer: str = ""
    sentence_count: int = 0
    pause_timer: TimerSlot = field(default_factory=lambda: TimerSlot("pause"))

    def clear_buffer(self) -> None:
        self.buffer = ""
        self.sentence_count = 0


@dataclass(frozen=True)
class TranscriptDecision:
    """Result of processing one transcript."""
    dispatch: bool
    payload: str = ""


class ConversationController:
    """
    Owns a ConversationSession and applies the turn-taking rules to it.

    Messages completed by a go-word, single-sentence mode, or an inactive
    session are returned to the caller in a TranscriptDecision. Messages
    completed asynchronously (pause timer, end-phrase flush) are delivered
    through the send callback.
    """

    def __init__(
        self,
        send: Optional[Callable[[str], Any]] = None,
        detector: Optional[WakeWordDetector] = None,
        indicator: Optional[StatusIndicator] = None,
        session: Optional[ConversationSession] = None,
        settings_provider: Optional[Callable[[], TurnwiseConfig]] = None,
    ):
        """
        Initialize conversation controller.

        Args:
            send: Dispatch sink for messages completed off the return path
            detector: Wake word detector used for persistent listening
            indicator: Status indicator to keep in step with the mode
            session: Existing session state (a fresh one if None)
            settings_provider: Returns the current settings when a pause
                               timer fires (the settings it was armed with if None)
        """
        self.send = send
        self.detector = detector or WakeWordDetector()
        self.indicator = indicator
        self.session = session or ConversationSession()
        self.settings_provider = settings_provider

        if self.detector.on_timeout is None:
            self.detector.on_timeout = self._on_wake_timeout

    # =========================================================================
    # Read-only status
    # =========================================================================

    @property
    def mode(self) -> ConversationMode:
        return self.session.mode

    @property
    def is_active(self) -> bool:
        return self.session.mode is ConversationMode.ACTIVE_CONVERSATION

    @property
    def pause_pending(self) -> bool:
        """Whether the pause timer is armed."""
        return self.session.pause_timer.pending

    def get_buffer(self) -> str:
        """Buffered, unsent text (trimmed)."""
        return self.session.buffer.strip()

    def get_status(self) -> Dict[str, Any]:
        """Snapshot of the session for indicator rendering."""
        return {
            "mode": self.session.mode.value,
            "in_conversation": self.is_active,
            "buffer": self.session.buffer,
            "sentence_count": self.session.sentence_count,
            "waiting_for_silence": self.pause_pending,
            "waiting_for_wake": self.detector.is_listening,
        }

    # =========================================================================
    # Transitions
    # =========================================================================

    def _enter(self, mode: ConversationMode) -> None:
        """Move to a new mode, cancelling every timer tied to the old state.

        All mode changes go through here so no pause or wake timer can fire
        against state that has already been replaced.
        """
        old = self.session.mode
        self.session.pause_timer.cancel()
        self.detector.stop_passive_listening()
        self.session.clear_buffer()
        self.session.mode = mode

        if self.indicator:
            self.indicator.set_base_state(_MODE_INDICATORS[mode])

        if old is not mode:
            logger.info(f"Conversation: {old.value} -> {mode.value}")

    def start(self, settings: TurnwiseConfig) -> bool:
        """
        Begin an active conversation.

        Returns:
            False if conversations are disabled or one is already running
            (the running buffer is left untouched)
        """
        if not settings.conversation.enabled:
            logger.warning("Conversations are disabled in settings")
            return False

        if self.is_active:
            logger.warning("Already in conversation")
            return False

        self._enter(ConversationMode.ACTIVE_CONVERSATION)
        logger.debug(helper_text(settings))
        return True

    def end(self) -> bool:
        """
        End the active conversation and go idle.

        Returns:
            False if no conversation was active
        """
        if not self.is_active:
            return False

        self._enter(ConversationMode.IDLE)
        return True

    def restart_passive_listening(self, settings: TurnwiseConfig) -> bool:
        """
        Clear conversation state and go back to waiting for the wake phrase.

        Returns:
            True once passive listening is armed
        """
        self._enter(ConversationMode.PASSIVE_LISTENING)
        self.detector.start_passive_listening(settings)
        return True

    def begin_passive_listening(self, settings: TurnwiseConfig) -> bool:
        """
        Arm wake-phrase listening from idle.

        Returns:
            False if a conversation is active or conversations are disabled
            (a wake phrase could never start one)
        """
        if self.is_active:
            logger.warning("Cannot listen for wake phrase during a conversation")
            return False
        if not settings.conversation.enabled:
            logger.warning("Conversations are disabled, not listening for wake phrase")
            return False
        return self.restart_passive_listening(settings)

    def settle_after_refused_wake(self, settings: TurnwiseConfig) -> None:
        """Leave the wake handoff when the conversation could not start.

        The detector has already disarmed itself, so listening is re-armed
        in persistent mode and the session goes idle otherwise.
        """
        if settings.wake.persistent_listening:
            self.restart_passive_listening(settings)
        else:
            self._enter(ConversationMode.IDLE)

    def _conclude_turn(self, settings: TurnwiseConfig) -> None:
        if settings.wake.persistent_listening:
            self.restart_passive_listening(settings)
        else:
            self.end()

    # =========================================================================
    # Transcript processing
    # =========================================================================

    def process_transcript(self, transcript: str, settings: TurnwiseConfig) -> TranscriptDecision:
        """
        Apply the turn-taking rules to one transcript.

        Args:
            transcript: Recognized text
            settings: Current configuration

        Returns:
            TranscriptDecision; dispatch=True carries the message in payload
        """
        if not self.is_active:
            # Standalone message outside any conversation
            return TranscriptDecision(True, transcript)

        conversation = settings.conversation
        session = self.session

        if contains_phrase(transcript, conversation.end_phrase):
            logger.info("End conversation phrase detected")
            pending = session.buffer
            session.clear_buffer()
            session.pause_timer.cancel()
            if pending.strip():
                self._send(pending)
            self._conclude_turn(settings)
            return TranscriptDecision(False)

        if not conversation.multi_sentence_mode:
            session.buffer = transcript
            payload = session.buffer
            self._conclude_turn(settings)
            return TranscriptDecision(True, payload)

        if has_go_word(transcript, conversation.go_word):
            remainder = remove_go_word(transcript, conversation.go_word)
            payload = append_fragment(session.buffer, remainder)
            if not payload.strip():
                logger.debug("Go-word with nothing buffered, still listening")
                return TranscriptDecision(False)
            session.pause_timer.cancel()
            session.clear_buffer()
            logger.info("Go-word detected, sending message")
            self._conclude_turn(settings)
            return TranscriptDecision(True, payload)

        session.buffer = append_fragment(session.buffer, transcript)
        session.sentence_count += 1
        logger.debug(f"Buffered sentence {session.sentence_count}: '{transcript}'")
        logger.debug(
            f"Waiting for '{conversation.go_word}' or "
            f"{conversation.pause_length_ms}ms of silence"
        )
        session.pause_timer.arm(
            conversation.pause_length_ms / 1000,
            lambda: self._on_pause_elapsed(settings),
        )
        return TranscriptDecision(False)

    def _on_pause_elapsed(self, settings: TurnwiseConfig) -> None:
        if self.settings_provider is not None:
            settings = self.settings_provider()
        if not self.is_active or not self.session.buffer.strip():
            logger.debug("Pause elapsed with nothing buffered")
            return

        message = self.session.buffer
        self.session.clear_buffer()
        logger.info("Pause detected, sending message")
        self._send(message)
        self._conclude_turn(settings)

    def _on_wake_timeout(self) -> None:
        if self.session.mode is ConversationMode.PASSIVE_LISTENING:
            self._enter(ConversationMode.IDLE)

    def _send(self, message: str) -> None:
        text = message.strip()
        if not text:
            return
        if self.send is None:
            logger.warning(f"No dispatch sink, dropping message: '{text[:50]}'")
            return
        try:
            self.send(text)
        except Exception as e:
            log_exception(logger, "Dispatch sink failed", e)

    def shutdown(self) -> None:
        """Cancel all timers and go idle regardless of mode."""
        self._enter(ConversationMode.IDLE)


def helper_text(settings: TurnwiseConfig) -> str:
    """User-facing explanation of the current conversation mode."""
    conversation = settings.conversation
    if conversation.multi_sentence_mode:
        text = (
            f"Multi-sentence mode: say multiple sentences, then say "
            f"\"{conversation.go_word}\" to send, or pause for "
            f"{conversation.pause_length_ms}ms to auto-send."
        )
    else:
        text = "Single-sentence mode: each sentence is sent immediately after recognition."
    return f"{text} Say \"{conversation.end_phrase}\" to end the conversation."
