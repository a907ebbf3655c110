"""
Turnwise - Turn-taking control for voice conversations

Decides from a stream of recognized speech fragments when a user's message
is complete and should go to a conversational backend, and plays the
synthesized reply one utterance at a time.

Architecture:
    - Wake word detector: passive wake-phrase listening with timeout
    - Conversation controller: go-word, pause timer, end phrase, loop-back
    - Speech output pipeline: sanitizing, voice selection, single-flight playback
    - Voice session: owns one of each and routes host events between them
"""

__version__ = "0.1.0"

# Version tuple for programmatic comparison
VERSION_INFO = (0, 1, 0)

from turnwise.exceptions import TurnwiseError

from turnwise.config import TurnwiseConfig, load_config

from turnwise.conversation import (
    ConversationController,
    ConversationMode,
    ConversationSession,
    TranscriptDecision,
)
from turnwise.wake_word import WakeWordDetector, WakeWordResult
from turnwise.speech import (
    PlaybackPhase,
    SpeechOutputPipeline,
    SpeechRequest,
    Voice,
    group_voices_by_label,
)
from turnwise.voice_session import VoiceSession
