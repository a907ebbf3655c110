"""
Turnwise Test Fixtures Package.

Provides stand-ins for host capabilities so the turn-taking layer can be
tested without a microphone, speaker or conversational backend.

Available fixtures:
- MockSpeechEngine: Simulates a speech synthesis engine
- RecordingSink: Collects dispatched messages

Usage:
    from tests.fixtures import MockSpeechEngine

    def test_speak(config):
        engine = MockSpeechEngine()
        pipeline = SpeechOutputPipeline(engine)
        pipeline.speak("hello", config)
        assert engine.spoken_texts == ["hello"]
"""

from tests.fixtures.mock_speech import MockSpeechEngine, SpokenUtterance
from tests.fixtures.sinks import RecordingSink

__all__ = [
    "MockSpeechEngine",
    "SpokenUtterance",
    "RecordingSink",
]
