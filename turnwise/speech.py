"""
Turnwise Speech Output Pipeline

Turns backend replies into spoken output through a host-supplied synthesis
engine, one utterance at a time.

Pipeline Flow:
    raw text -> strip tags -> strip emoji -> collapse whitespace -> trim
             -> length check (500 chars) -> voice params -> engine.speak()

Playback is single-flight: a new speak() cancels whatever is in flight
before the new request is handed to the engine, and lifecycle signals from
a superseded request are ignored. Each request moves through a small closed
state machine:

    IDLE -> PLAYING -> ENDED
      |        |
      |        +----> ERRORED
      +-> ENDED (cancelled before start) / ERRORED

Synthesis is best-effort. A missing engine degrades to a logged no-op and
engine errors are logged and treated as end of playback.
"""

from __future__ import annotations

import asyncio
import itertools
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Tuple

from turnwise.config import TurnwiseConfig, VoiceSettings
from turnwise.exceptions import CapabilityUnavailableError, InvalidTransitionError, SynthesisError
from turnwise.indicators import StatusIndicator
from turnwise.logging_config import get_logger

__all__ = [
    "MAX_SPEECH_CHARS",
    "TONE_PRESETS",
    "SAMPLE_TEXT",
    "PlaybackPhase",
    "Voice",
    "VoiceOption",
    "VoiceParams",
    "SpeechRequest",
    "PlaybackState",
    "SpeechEngine",
    "SpeechOutputPipeline",
    "sanitize_text",
    "strip_emoji",
    "tone_adjustments",
    "build_voice_params",
    "group_voices_by_label",
    "format_voice_option",
]

logger = get_logger("speech")

# Longer text (recipes, lists) is not worth synthesizing.
MAX_SPEECH_CHARS = 500

# tone -> (pitch, rate)
TONE_PRESETS: Dict[str, Tuple[float, float]] = {
    "natural": (1.0, 1.0),
    "warm": (1.1, 0.95),
    "professional": (1.0, 1.0),
    "energetic": (1.2, 1.1),
}
NEUTRAL_TONE = (1.0, 1.0)

SAMPLE_TEXT = (
    "Hi there! This is how I will sound when I answer you. "
    "You can change my voice, speed, pitch and tone until it feels right."
)

_TAG_PATTERN = re.compile(r"<[^>]*>")
_WHITESPACE_PATTERN = re.compile(r"\s+")

# Pictographic code points (emoji and the symbol blocks they live in),
# plus the joiners and selectors that glue them together.
_EMOJI_PATTERN = re.compile(
    "["
    "\U0001F000-\U0001FAFF"  # mahjong .. symbols & pictographs extended-A
    "\U00002600-\U000027BF"  # misc symbols, dingbats
    "\U00002B05-\U00002B07\U00002B1B\U00002B1C\U00002B50\U00002B55"
    "\U0000231A\U0000231B\U00002328\U000023CF\U000023E9-\U000023F3\U000023F8-\U000023FA"
    "\U00002194-\U00002199\U000021A9\U000021AA"
    "\U000025AA\U000025AB\U000025B6\U000025C0\U000025FB-\U000025FE"
    "\U0000203C\U00002049\U00002122\U00002139\U000024C2"
    "\U000000A9\U000000AE"
    "\U00003030\U0000303D\U00003297\U00003299"
    "\U0000200D\U000020E3\U0000FE0E\U0000FE0F"
    "]",
    flags=re.UNICODE,
)


# =============================================================================
# Data Classes
# =============================================================================


class PlaybackPhase(Enum):
    """Lifecycle phase of a single speech request."""
    IDLE = "idle"
    PLAYING = "playing"
    ENDED = "ended"
    ERRORED = "errored"


_TERMINAL_PHASES = frozenset({PlaybackPhase.ENDED, PlaybackPhase.ERRORED})

_ALLOWED_TRANSITIONS = {
    PlaybackPhase.IDLE: {PlaybackPhase.PLAYING, PlaybackPhase.ENDED, PlaybackPhase.ERRORED},
    PlaybackPhase.PLAYING: {PlaybackPhase.ENDED, PlaybackPhase.ERRORED},
    PlaybackPhase.ENDED: set(),
    PlaybackPhase.ERRORED: set(),
}


@dataclass(frozen=True)
class Voice:
    """A voice offered by the synthesis engine."""
    name: str
    lang: str = ""


@dataclass(frozen=True)
class VoiceOption:
    """A voice as presented in a selection list, keyed by engine index."""
    index: int
    name: str
    lang: str


@dataclass(frozen=True)
class VoiceParams:
    """Resolved synthesis parameters for one request."""
    rate: float = 1.0
    pitch: float = 1.0
    volume: float = 1.0
    tone_id: str = "natural"
    voice_index: int = 0
    lang: str = "en-US"


_request_ids = itertools.count(1)


@dataclass
class SpeechRequest:
    """One utterance handed to the engine."""
    raw_text: str
    sanitized_text: str
    voice_params: VoiceParams
    voice: Optional[Voice] = None
    phase: PlaybackPhase = PlaybackPhase.IDLE
    error: Optional[str] = None
    request_id: int = field(default_factory=lambda: next(_request_ids))

    @property
    def is_terminal(self) -> bool:
        return self.phase in _TERMINAL_PHASES

    def transition(self, phase: PlaybackPhase) -> None:
        """Move to a new phase, rejecting moves the lifecycle does not allow."""
        if phase not in _ALLOWED_TRANSITIONS[self.phase]:
            raise InvalidTransitionError(self.phase.value, phase.value)
        self.phase = phase


@dataclass
class PlaybackState:
    """What the pipeline is playing right now."""
    is_playing: bool = False
    current_request: Optional[SpeechRequest] = None


class SpeechEngine(Protocol):
    """Host synthesis capability.

    speak() must eventually call exactly one of on_end / on_error, usually
    after on_start. cancel() stops any utterance in progress; an engine may
    or may not report on_end for a cancelled utterance.
    """

    def list_voices(self) -> Sequence[Voice]:
        ...

    def speak(
        self,
        request: SpeechRequest,
        on_start: Callable[[], None],
        on_end: Callable[[], None],
        on_error: Callable[[str], None],
    ) -> None:
        ...

    def cancel(self) -> None:
        ...


PlaybackCallback = Callable[[PlaybackPhase, SpeechRequest], None]


# =============================================================================
# Text and voice helpers
# =============================================================================


def strip_emoji(text: str) -> str:
    """Remove emoji and pictographic symbols."""
    return _EMOJI_PATTERN.sub("", text)


def sanitize_text(text: str) -> str:
    """Prepare text for synthesis: drop markup and emoji, normalize spacing."""
    if not text:
        return ""
    cleaned = _TAG_PATTERN.sub(" ", text)
    cleaned = strip_emoji(cleaned)
    cleaned = _WHITESPACE_PATTERN.sub(" ", cleaned)
    return cleaned.strip()


def tone_adjustments(tone: Optional[str]) -> Tuple[float, float]:
    """Map a tone name to (pitch, rate); unknown tones are neutral."""
    return TONE_PRESETS.get((tone or "").lower(), NEUTRAL_TONE)


def build_voice_params(voice: VoiceSettings) -> VoiceParams:
    """Resolve voice settings into the parameters sent to the engine.

    A tone, when set, decides pitch and rate; otherwise the explicit
    pitch and rate settings are used.
    """
    if voice.tone:
        pitch, rate = tone_adjustments(voice.tone)
    else:
        pitch, rate = voice.pitch, voice.rate

    return VoiceParams(
        rate=rate or 1.0,
        pitch=pitch or 1.0,
        volume=voice.volume,
        tone_id=voice.tone,
        voice_index=voice.voice_index,
        lang=voice.lang,
    )


def group_voices_by_label(voices: Sequence[Voice]) -> Dict[str, List[VoiceOption]]:
    """
    Partition voices into female / male / neutral buckets by name.

    Matching is case-insensitive on the display name. Female keywords are
    checked first since "FEMALE" contains "MALE" and "WOMAN" contains "MAN".
    Order within each bucket follows the input order.
    """
    grouped: Dict[str, List[VoiceOption]] = {"female": [], "male": [], "neutral": []}

    for index, voice in enumerate(voices):
        name_upper = voice.name.upper()
        option = VoiceOption(index=index, name=voice.name, lang=voice.lang)

        if any(key in name_upper for key in ("FEMALE", "WOMAN", "GIRL")):
            grouped["female"].append(option)
        elif any(key in name_upper for key in ("MALE", "MAN", "BOY")):
            grouped["male"].append(option)
        else:
            grouped["neutral"].append(option)

    return grouped


def format_voice_option(option: VoiceOption) -> str:
    """Display label for a voice option."""
    return f"{option.name} ({option.lang})"


# =============================================================================
# Speech Output Pipeline
# =============================================================================


class SpeechOutputPipeline:
    """
    Single-flight speech output.

    Owns the engine's "currently speaking" slot: at most one request is
    current, and only the current request's lifecycle signals change state.
    """

    def __init__(
        self,
        engine: Optional[SpeechEngine],
        indicator: Optional[StatusIndicator] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        """
        Initialize speech pipeline.

        Args:
            engine: Synthesis engine, or None when the host has none
            indicator: Status indicator for the speaking overlay
            loop: Event loop to marshal engine callbacks onto, for engines
                  that report lifecycle signals from their own threads
        """
        self.engine = engine
        self.indicator = indicator
        self._loop = loop
        self._state = PlaybackState()
        self._voices: List[Voice] = []
        self._callbacks: List[PlaybackCallback] = []
        self._unavailable_logged = False

        if engine is None:
            self._log_unavailable()
        else:
            self.refresh_voices()

    # =========================================================================
    # Status
    # =========================================================================

    @property
    def available(self) -> bool:
        return self.engine is not None

    @property
    def is_playing(self) -> bool:
        return self._state.is_playing

    @property
    def current_request(self) -> Optional[SpeechRequest]:
        return self._state.current_request

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def voices(self) -> List[Voice]:
        return list(self._voices)

    def register_callback(self, callback: PlaybackCallback) -> None:
        """Register callback(phase, request) for playback lifecycle changes."""
        self._callbacks.append(callback)

    # =========================================================================
    # Voices
    # =========================================================================

    def refresh_voices(self) -> List[Voice]:
        """Re-enumerate engine voices (engines may load them lazily)."""
        if self.engine is None:
            self._voices = []
            return []
        try:
            self._voices = list(self.engine.list_voices())
        except Exception as e:
            logger.warning(f"Could not enumerate voices: {e}")
            self._voices = []
        return list(self._voices)

    def select_voice(self, voice_index: int) -> Optional[Voice]:
        """Voice at voice_index, or None to let the engine use its default."""
        if not self._voices:
            self.refresh_voices()
        if 0 <= voice_index < len(self._voices):
            return self._voices[voice_index]
        return None

    def voices_by_label(self) -> Dict[str, List[VoiceOption]]:
        return group_voices_by_label(self._voices)

    # =========================================================================
    # Playback
    # =========================================================================

    def speak(self, text: str, settings: TurnwiseConfig) -> Optional[SpeechRequest]:
        """
        Speak text, preempting anything already playing.

        Args:
            text: Raw text (may contain markup and emoji)
            settings: Current configuration (voice section is read)

        Returns:
            The request handed to the engine, or None if nothing was spoken
        """
        if not settings.voice.enabled or not text:
            return None

        if self.engine is None:
            self._log_unavailable()
            return None

        self._cancel_current()

        sanitized = sanitize_text(text)
        if not sanitized:
            logger.debug("Nothing left to speak after sanitizing")
            return None

        if len(sanitized) > MAX_SPEECH_CHARS:
            logger.info(
                f"Text too long for speech synthesis "
                f"({len(sanitized)} > {MAX_SPEECH_CHARS} chars), skipped"
            )
            return None

        params = build_voice_params(settings.voice)
        request = SpeechRequest(
            raw_text=text,
            sanitized_text=sanitized,
            voice_params=params,
            voice=self.select_voice(params.voice_index),
        )
        self._state.current_request = request
        logger.debug(f"Speaking request {request.request_id}: '{sanitized[:50]}'")

        try:
            self.engine.speak(
                request,
                on_start=lambda: self._deliver(self._handle_start, request),
                on_end=lambda: self._deliver(self._handle_end, request),
                on_error=lambda reason: self._deliver(self._handle_error, request, reason),
            )
        except Exception as e:
            self._handle_error(request, str(e))

        return request

    def play_sample(self, settings: TurnwiseConfig, text: Optional[str] = None) -> Optional[SpeechRequest]:
        """Speak a sample sentence with the current voice settings."""
        return self.speak(text or SAMPLE_TEXT, settings)

    def stop(self) -> None:
        """Cancel playback and clear state. Safe to call when idle."""
        if self.engine is not None:
            try:
                self.engine.cancel()
            except Exception as e:
                logger.warning(f"Engine cancel failed: {e}")
        self._finish_current(PlaybackPhase.ENDED)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def _cancel_current(self) -> None:
        try:
            self.engine.cancel()
        except Exception as e:
            logger.warning(f"Engine cancel failed: {e}")
        if self._state.current_request is not None:
            logger.debug(f"Request {self._state.current_request.request_id} preempted")
        self._finish_current(PlaybackPhase.ENDED)

    def _deliver(self, handler: Callable[..., None], *args: Any) -> None:
        if self._loop is None:
            handler(*args)
        else:
            self._loop.call_soon_threadsafe(handler, *args)

    def _is_current(self, request: SpeechRequest) -> bool:
        return self._state.current_request is request and not request.is_terminal

    def _handle_start(self, request: SpeechRequest) -> None:
        if not self._is_current(request) or request.phase is not PlaybackPhase.IDLE:
            return
        request.transition(PlaybackPhase.PLAYING)
        self._state.is_playing = True
        if self.indicator:
            self.indicator.show_speaking()
        self._notify(PlaybackPhase.PLAYING, request)

    def _handle_end(self, request: SpeechRequest) -> None:
        if not self._is_current(request):
            return
        self._finish_current(PlaybackPhase.ENDED)

    def _handle_error(self, request: SpeechRequest, reason: str) -> None:
        if not self._is_current(request):
            return
        error = SynthesisError(
            "Speech synthesis error", request_text=request.sanitized_text, reason=reason
        )
        logger.error(str(error))
        request.error = reason
        self._finish_current(PlaybackPhase.ERRORED)

    def _finish_current(self, phase: PlaybackPhase) -> None:
        request = self._state.current_request
        was_playing = self._state.is_playing

        self._state.is_playing = False
        self._state.current_request = None

        if was_playing and self.indicator:
            self.indicator.clear_speaking()

        if request is not None and not request.is_terminal:
            request.transition(phase)
            self._notify(phase, request)

    def _notify(self, phase: PlaybackPhase, request: SpeechRequest) -> None:
        for callback in self._callbacks:
            try:
                callback(phase, request)
            except Exception as e:
                logger.warning(f"Playback callback error: {e}")

    def _log_unavailable(self) -> None:
        if not self._unavailable_logged:
            error = CapabilityUnavailableError(
                "Speech synthesis not supported by host, speech disabled",
                capability="speech_synthesis",
            )
            logger.warning(str(error))
            self._unavailable_logged = True
