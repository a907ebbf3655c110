"""
Turnwise Voice Session

Host-facing coordinator that wires the wake word detector, the turn-taking
state machine and the speech output pipeline into one owned session.

Session Flow:
    transcript -> (passive) wake detector -> start conversation
               -> (active/idle) turn-taking rules -> send(message)
    backend reply -> handle_response() -> speech pipeline
    playback start/end -> pause/resume wake listening

While the assistant is speaking, wake-phrase listening is suspended so its
own voice cannot wake it; it resumes when playback ends.

Usage:
    session = VoiceSession(engine, send=backend.send, settings=config)
    session.begin_listening()
    session.handle_transcript("hey bot what's for dinner")
    ...
    session.handle_response(reply_text)
"""

from __future__ import annotations

import asyncio
import concurrent.futures
from typing import Any, Callable, Dict, Optional

from turnwise.config import TurnwiseConfig
from turnwise.conversation import (
    ConversationController,
    ConversationMode,
    TranscriptDecision,
)
from turnwise.indicators import StatusIndicator
from turnwise.logging_config import get_logger, log_exception
from turnwise.speech import PlaybackPhase, SpeechEngine, SpeechOutputPipeline, SpeechRequest
from turnwise.wake_word import WakeWordDetector

__all__ = ["VoiceSession"]

logger = get_logger("voice_session")


class VoiceSession:
    """One user interaction: conversation state, wake listening and speech."""

    def __init__(
        self,
        engine: Optional[SpeechEngine],
        send: Callable[[str], Any],
        settings: Optional[TurnwiseConfig] = None,
        indicator: Optional[StatusIndicator] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        engine_threaded: bool = False,
    ):
        """
        Initialize voice session.

        Args:
            engine: Speech synthesis engine (None if the host has none)
            send: Dispatch sink for completed user messages
            settings: Configuration (defaults if None)
            indicator: Status indicator (a new one if None)
            loop: Event loop the session runs on; required for
                  submit_transcript_threadsafe and engine_threaded
            engine_threaded: Engine reports lifecycle signals from another
                             thread and they must be marshalled onto loop
        """
        self.settings = settings or TurnwiseConfig()
        self.send = send
        self.indicator = indicator or StatusIndicator()
        self._loop = loop

        self.detector = WakeWordDetector()
        self.controller = ConversationController(
            send=self._dispatch,
            detector=self.detector,
            indicator=self.indicator,
            settings_provider=lambda: self.settings,
        )
        self.speech = SpeechOutputPipeline(
            engine,
            indicator=self.indicator,
            loop=loop if engine_threaded else None,
        )
        self.speech.register_callback(self._on_playback)

    # =========================================================================
    # Settings and status
    # =========================================================================

    def update_settings(self, settings: TurnwiseConfig) -> None:
        """Swap in re-read settings; applies from the next event on."""
        self.settings = settings

    @property
    def mode(self) -> ConversationMode:
        return self.controller.mode

    def status(self) -> Dict[str, Any]:
        """Read-only status for indicator rendering."""
        status = self.controller.get_status()
        status.update({
            "playing": self.speech.is_playing,
            "speech_available": self.speech.available,
            "wake_suspended": self.detector.is_suspended,
            "indicator": self.indicator.state.value,
        })
        return status

    # =========================================================================
    # Conversation control
    # =========================================================================

    def begin_listening(self) -> bool:
        """Wait for the wake phrase if enabled, otherwise start a conversation."""
        if self.settings.wake.enabled or self.settings.wake.persistent_listening:
            return self.controller.begin_passive_listening(self.settings)
        return self.controller.start(self.settings)

    def start_conversation(self) -> bool:
        """Explicitly start a conversation (e.g. a push-to-talk button)."""
        return self.controller.start(self.settings)

    def end_conversation(self) -> bool:
        return self.controller.end()

    def handle_transcript(self, transcript: str) -> TranscriptDecision:
        """
        Route one recognized transcript.

        Args:
            transcript: Recognized text

        Returns:
            The decision made for this transcript; a dispatched payload has
            already been passed to send
        """
        if not transcript or not transcript.strip():
            return TranscriptDecision(False)

        settings = self.settings

        if self.controller.mode is ConversationMode.PASSIVE_LISTENING:
            result = self.detector.process_candidate(transcript, settings)
            if not result.detected:
                return TranscriptDecision(False)

            if not self.controller.start(settings):
                self.controller.settle_after_refused_wake(settings)
                return TranscriptDecision(False)

            if not result.cleaned_transcript:
                return TranscriptDecision(False)
            transcript = result.cleaned_transcript

        decision = self.controller.process_transcript(transcript, settings)
        if decision.dispatch:
            self._dispatch(decision.payload)
        return decision

    def submit_transcript_threadsafe(self, transcript: str) -> concurrent.futures.Future:
        """
        Hand a transcript over from a foreign thread (e.g. a recognizer).

        The transcript is processed on the session's event loop, in arrival
        order with every other transcript, timer and playback event.

        Returns:
            Future resolving to the TranscriptDecision
        """
        if self._loop is None:
            raise RuntimeError("VoiceSession has no event loop for threadsafe submission")

        async def _handle() -> TranscriptDecision:
            return self.handle_transcript(transcript)

        return asyncio.run_coroutine_threadsafe(_handle(), self._loop)

    def handle_response(self, text: str) -> Optional[SpeechRequest]:
        """Backend reply; spoken when auto_start_response is on."""
        if not self.settings.conversation.auto_start_response:
            return None
        return self.speech.speak(text, self.settings)

    def shutdown(self) -> None:
        """Stop playback, cancel all timers and go idle."""
        self.speech.stop()
        self.controller.shutdown()
        logger.info("Voice session shut down")

    # =========================================================================
    # Internals
    # =========================================================================

    def _dispatch(self, message: str) -> None:
        text = message.strip()
        if not text:
            return
        logger.info(f"Dispatching message: '{text[:50]}'")
        try:
            self.send(text)
        except Exception as e:
            log_exception(logger, "Dispatch sink failed", e)

    def _on_playback(self, phase: PlaybackPhase, request: SpeechRequest) -> None:
        if phase is PlaybackPhase.PLAYING:
            self.detector.suspend()
        else:
            self.detector.resume(self.settings)
