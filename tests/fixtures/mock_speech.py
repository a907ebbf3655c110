"""
Mock Speech Synthesis Engine for Testing.

Simulates a host synthesis capability for unit and end-to-end testing.
Lifecycle signals can be fired automatically or driven by hand, so tests
decide exactly when an utterance starts, finishes or fails.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from turnwise.speech import SpeechRequest, Voice

logger = logging.getLogger("turnwise.fixtures.MockSpeechEngine")


@dataclass
class SpokenUtterance:
    """One speak() call as seen by the engine."""
    request: SpeechRequest
    on_start: Callable[[], None]
    on_end: Callable[[], None]
    on_error: Callable[[str], None]

    @property
    def text(self) -> str:
        return self.request.sanitized_text


class MockSpeechEngine:
    """
    Mock synthesis engine.

    Features:
    - Records every utterance and cancel() call
    - Optional automatic start/end signalling
    - Manual start/finish/fail of the latest utterance
    - Error injection for speak() and voice enumeration
    - Optional on_end report for cancelled utterances
    """

    DEFAULT_VOICES = [
        Voice(name="Samantha Female", lang="en-US"),
        Voice(name="Daniel Male", lang="en-GB"),
        Voice(name="Alex", lang="en-US"),
        Voice(name="Karen Woman", lang="en-AU"),
    ]

    def __init__(
        self,
        voices: Optional[List[Voice]] = None,
        auto_start: bool = True,
        auto_end: bool = False,
        end_on_cancel: bool = False,
    ):
        """
        Initialize mock engine.

        Args:
            voices: Voices to report (DEFAULT_VOICES if None)
            auto_start: Fire on_start as soon as speak() is called
            auto_end: Fire on_end right after on_start
            end_on_cancel: Report on_end for the in-flight utterance on cancel()
        """
        self.voices = list(self.DEFAULT_VOICES if voices is None else voices)
        self.auto_start = auto_start
        self.auto_end = auto_end
        self.end_on_cancel = end_on_cancel

        self.utterances: List[SpokenUtterance] = []
        self.cancel_count = 0
        self.call_log: List[str] = []

        self._inject_speak_error = False
        self._inject_voices_error = False

    @property
    def spoken_texts(self) -> List[str]:
        return [u.text for u in self.utterances]

    @property
    def last(self) -> Optional[SpokenUtterance]:
        return self.utterances[-1] if self.utterances else None

    # Engine interface
    def list_voices(self) -> List[Voice]:
        if self._inject_voices_error:
            raise RuntimeError("Mock: Simulated voice enumeration failure")
        return list(self.voices)

    def speak(self, request, on_start, on_end, on_error) -> None:
        self.call_log.append("speak")
        if self._inject_speak_error:
            raise RuntimeError("Mock: Simulated synthesis failure")

        utterance = SpokenUtterance(request, on_start, on_end, on_error)
        self.utterances.append(utterance)
        logger.info(f"MockSpeechEngine speaking: '{request.sanitized_text[:50]}'")

        if self.auto_start:
            on_start()
            if self.auto_end:
                on_end()

    def cancel(self) -> None:
        self.call_log.append("cancel")
        self.cancel_count += 1
        if self.end_on_cancel and self.utterances:
            self.utterances[-1].on_end()

    # Manual signalling
    def start(self, index: int = -1) -> None:
        """Fire on_start for an utterance (latest by default)."""
        self.utterances[index].on_start()

    def finish(self, index: int = -1) -> None:
        """Fire on_end for an utterance (latest by default)."""
        self.utterances[index].on_end()

    def fail(self, reason: str = "synthesis-failed", index: int = -1) -> None:
        """Fire on_error for an utterance (latest by default)."""
        self.utterances[index].on_error(reason)

    # Error injection
    def inject_speak_error(self, enable: bool = True):
        """Enable/disable speak() error injection."""
        self._inject_speak_error = enable

    def inject_voices_error(self, enable: bool = True):
        """Enable/disable list_voices() error injection."""
        self._inject_voices_error = enable

    def reset(self):
        """Reset mock to initial state."""
        self.utterances.clear()
        self.call_log.clear()
        self.cancel_count = 0
        self._inject_speak_error = False
        self._inject_voices_error = False
