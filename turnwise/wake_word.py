"""
Turnwise Wake Word Detector

Passive-mode phrase matcher. While armed, each recognized transcript is
checked for the configured wake phrase; a hit disarms listening and hands the
rest of the utterance back to the caller so a command spoken in the same
breath ("hey bot what's for dinner") is not lost.

When persistent listening is off, arming also starts a timeout. If nothing
wakes the detector within wake.timeout_seconds it disarms itself and reports
the timeout through the on_timeout callback. The timeout is informational,
not an error.

While the assistant itself is speaking the detector can be suspended: it
stays armed but ignores every candidate, and its timeout restarts from zero
once it is resumed.
"""

from __future__ import annotations

from typing import Callable, NamedTuple, Optional

from turnwise.config import TurnwiseConfig
from turnwise.logging_config import get_logger
from turnwise.phrases import contains_phrase, strip_phrase
from turnwise.timers import TimerSlot

__all__ = ["WakeWordDetector", "WakeWordResult"]

logger = get_logger("wake_word")


class WakeWordResult(NamedTuple):
    """Outcome of checking one transcript for the wake phrase."""
    detected: bool
    cleaned_transcript: str


class WakeWordDetector:
    """
    Detect the wake phrase in transcribed text.

    Matching is a case-insensitive substring test, so "Hey Bot please" wakes
    a detector configured with "hey bot". The phrase is removed from the
    original-case transcript wherever it occurs.
    """

    def __init__(self, on_timeout: Optional[Callable[[], None]] = None):
        """
        Initialize wake word detector.

        Args:
            on_timeout: Called after the wake timeout disarms listening
        """
        self.on_timeout = on_timeout
        self._listening = False
        self._suspended = False
        self._timeout_timer = TimerSlot("wake-timeout")

    @property
    def is_listening(self) -> bool:
        """Whether passive listening is armed."""
        return self._listening

    @property
    def is_suspended(self) -> bool:
        """Whether candidates are being ignored during playback."""
        return self._suspended

    @property
    def timeout_pending(self) -> bool:
        """Whether a wake timeout is currently armed."""
        return self._timeout_timer.pending

    def start_passive_listening(self, settings: TurnwiseConfig) -> None:
        """
        Arm passive listening.

        Re-arming while already listening restarts the timeout.

        Args:
            settings: Current configuration (wake section is read)
        """
        self._listening = True
        self._timeout_timer.cancel()

        if settings.wake.persistent_listening:
            logger.info(f"Listening for '{settings.wake.phrase}' (persistent)")
            return

        if self._suspended:
            logger.debug("Wake timeout deferred until resumed")
            return

        self._timeout_timer.arm(settings.wake.timeout_seconds, self._on_timeout)
        logger.info(
            f"Listening for '{settings.wake.phrase}' "
            f"(timeout {settings.wake.timeout_seconds}s)"
        )

    def stop_passive_listening(self) -> None:
        """Disarm listening and cancel any pending timeout. Idempotent."""
        was_listening = self._listening
        self._listening = False
        self._timeout_timer.cancel()
        if was_listening:
            logger.debug("Passive listening stopped")

    def suspend(self) -> None:
        """Ignore candidates until resume(). Listening stays armed."""
        if self._suspended:
            return
        self._suspended = True
        self._timeout_timer.cancel()
        logger.debug("Wake listening suspended")

    def resume(self, settings: TurnwiseConfig) -> None:
        """Accept candidates again, restarting the timeout if still listening."""
        if not self._suspended:
            return
        self._suspended = False
        logger.debug("Wake listening resumed")
        if self._listening:
            self.start_passive_listening(settings)

    def process_candidate(self, transcript: str, settings: TurnwiseConfig) -> WakeWordResult:
        """
        Check a transcript for the wake phrase.

        Args:
            transcript: Recognized text
            settings: Current configuration (wake.phrase is read)

        Returns:
            WakeWordResult(detected, cleaned_transcript). On a miss, or when
            not listening, the transcript comes back unchanged.
        """
        if not self._listening or self._suspended:
            return WakeWordResult(False, transcript)

        if not contains_phrase(transcript, settings.wake.phrase):
            logger.debug(f"Wake phrase not in: '{transcript[:50]}'")
            return WakeWordResult(False, transcript)

        self.stop_passive_listening()
        cleaned = strip_phrase(transcript, settings.wake.phrase)
        logger.info(f"Wake phrase detected, remainder: '{cleaned}'")
        return WakeWordResult(True, cleaned)

    def is_wake_word_only(self, transcript: str, settings: TurnwiseConfig) -> bool:
        """Check if text is just the wake phrase with nothing else said."""
        return (
            contains_phrase(transcript, settings.wake.phrase)
            and not strip_phrase(transcript, settings.wake.phrase)
        )

    def _on_timeout(self) -> None:
        if not self._listening:
            return
        self._listening = False
        logger.info("No wake phrase heard before timeout, listening stopped")
        if self.on_timeout:
            self.on_timeout()
