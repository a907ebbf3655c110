"""
Unit tests for turnwise configuration system.

Tests defaults, per-field fallback, configuration loading, and
environment variable overrides.
"""

import logging
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

from turnwise.config import (
    ConversationSettings,
    TurnwiseConfig,
    VoiceSettings,
    WakeWordSettings,
    get_config_paths,
    load_config,
)
from turnwise.exceptions import ConfigurationError


class TestConversationSettings:
    """Tests for ConversationSettings."""

    def test_default_values(self) -> None:
        """Test ConversationSettings has the documented defaults."""
        settings = ConversationSettings()
        assert settings.enabled is True
        assert settings.go_word == "go"
        assert settings.pause_length_ms == 2000
        assert settings.end_phrase == "end conversation"
        assert settings.multi_sentence_mode is True
        assert settings.auto_start_response is True

    def test_phrases_normalized(self) -> None:
        """Test phrases are trimmed and lowercased."""
        settings = ConversationSettings(go_word="  SEND ", end_phrase="Stop Talking")
        assert settings.go_word == "send"
        assert settings.end_phrase == "stop talking"

    def test_empty_go_word_falls_back(self) -> None:
        """Test an empty go-word falls back to the default."""
        settings = ConversationSettings(go_word="   ")
        assert settings.go_word == "go"

    def test_non_numeric_pause_falls_back(self) -> None:
        """Test a non-numeric pause length falls back to the default."""
        settings = ConversationSettings(pause_length_ms="soon")
        assert settings.pause_length_ms == 2000

    def test_non_positive_pause_falls_back(self) -> None:
        """Test zero and negative pause lengths fall back to the default."""
        assert ConversationSettings(pause_length_ms=0).pause_length_ms == 2000
        assert ConversationSettings(pause_length_ms=-5).pause_length_ms == 2000

    def test_numeric_string_accepted(self) -> None:
        """Test numeric strings are coerced."""
        assert ConversationSettings(pause_length_ms="1500").pause_length_ms == 1500

    def test_fallback_only_affects_bad_field(self) -> None:
        """Test one bad field does not reset the others."""
        settings = ConversationSettings(pause_length_ms="x", go_word="send")
        assert settings.pause_length_ms == 2000
        assert settings.go_word == "send"

    def test_fallback_logs_warning(self, caplog) -> None:
        """Test falling back to a default is logged."""
        with caplog.at_level(logging.WARNING, logger="turnwise"):
            ConversationSettings(pause_length_ms="soon")
        assert "pause_length_ms" in caplog.text

    def test_unknown_fields_ignored(self) -> None:
        """Test unknown keys are ignored rather than rejected."""
        settings = ConversationSettings(colour="blue")
        assert not hasattr(settings, "colour")


class TestWakeWordSettings:
    """Tests for WakeWordSettings."""

    def test_default_values(self) -> None:
        """Test WakeWordSettings has the documented defaults."""
        settings = WakeWordSettings()
        assert settings.enabled is False
        assert settings.phrase == "hey bot"
        assert settings.timeout_seconds == 10
        assert settings.persistent_listening is False

    def test_phrase_normalized(self) -> None:
        """Test the wake phrase is stored lowercased."""
        assert WakeWordSettings(phrase="Hey Computer").phrase == "hey computer"

    def test_bad_timeout_falls_back(self) -> None:
        """Test an invalid timeout falls back to the default."""
        assert WakeWordSettings(timeout_seconds=0).timeout_seconds == 10
        assert WakeWordSettings(timeout_seconds="never").timeout_seconds == 10


class TestVoiceSettings:
    """Tests for VoiceSettings."""

    def test_default_values(self) -> None:
        """Test VoiceSettings has the documented defaults."""
        settings = VoiceSettings()
        assert settings.enabled is True
        assert settings.voice_index == 0
        assert settings.rate == 1.0
        assert settings.pitch == 1.0
        assert settings.volume == 1.0
        assert settings.tone == "natural"
        assert settings.lang == "en-US"

    def test_out_of_range_values_fall_back(self) -> None:
        """Test out-of-range numbers fall back to defaults."""
        settings = VoiceSettings(rate=0, pitch=5.0, volume=1.5)
        assert settings.rate == 1.0
        assert settings.pitch == 1.0
        assert settings.volume == 1.0

    def test_tone_lowercased(self) -> None:
        """Test tone names are normalized."""
        assert VoiceSettings(tone=" Warm ").tone == "warm"

    def test_empty_tone_allowed(self) -> None:
        """Test an empty tone is kept (explicit pitch/rate are used)."""
        assert VoiceSettings(tone="").tone == ""


class TestTurnwiseConfig:
    """Tests for the root TurnwiseConfig."""

    def test_default_sections(self) -> None:
        """Test all sections are present with defaults."""
        config = TurnwiseConfig()
        assert config.conversation == ConversationSettings()
        assert config.wake == WakeWordSettings()
        assert config.voice == VoiceSettings()
        assert config.log_level == "INFO"
        assert config.log_file is None

    def test_log_level_uppercased(self) -> None:
        """Test log level is case-insensitive."""
        assert TurnwiseConfig(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level_rejected(self) -> None:
        """Test an unknown log level is a validation error."""
        with pytest.raises(ValueError):
            TurnwiseConfig(log_level="LOUD")

    def test_sections_from_dict(self) -> None:
        """Test nested sections validate from plain dicts."""
        config = TurnwiseConfig.model_validate({
            "conversation": {"go_word": "send", "pause_length_ms": 500},
            "wake": {"enabled": True},
        })
        assert config.conversation.go_word == "send"
        assert config.conversation.pause_length_ms == 500
        assert config.wake.enabled is True
        assert config.voice.tone == "natural"


class TestConfigPaths:
    """Tests for configuration discovery."""

    def test_discovery_order(self) -> None:
        """Test local file comes before user and system files."""
        paths = get_config_paths()
        assert paths[0] == Path("./turnwise.yaml")
        assert paths[1] == Path.home() / ".turnwise" / "config.yaml"
        assert paths[2] == Path("/etc/turnwise/config.yaml")


class TestLoadConfig:
    """Tests for load_config."""

    def test_load_explicit_file(self, tmp_path) -> None:
        """Test loading an explicit YAML file."""
        path = tmp_path / "turnwise.yaml"
        path.write_text(yaml.safe_dump({
            "conversation": {"go_word": "Send", "pause_length_ms": 1200},
            "wake": {"phrase": "Hey Computer", "persistent_listening": True},
            "voice": {"tone": "warm"},
            "log_level": "debug",
        }))

        config = load_config(path)
        assert config.conversation.go_word == "send"
        assert config.conversation.pause_length_ms == 1200
        assert config.wake.phrase == "hey computer"
        assert config.wake.persistent_listening is True
        assert config.voice.tone == "warm"
        assert config.log_level == "DEBUG"

    def test_missing_file_raises(self, tmp_path) -> None:
        """Test an explicit missing file raises ConfigurationError."""
        with pytest.raises(ConfigurationError, match="not found"):
            load_config(tmp_path / "missing.yaml")

    def test_invalid_yaml_raises(self, tmp_path) -> None:
        """Test unparsable YAML raises ConfigurationError."""
        path = tmp_path / "broken.yaml"
        path.write_text("conversation: [unclosed")
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_config(path)

    def test_non_mapping_raises(self, tmp_path) -> None:
        """Test a top-level list is rejected."""
        path = tmp_path / "list.yaml"
        path.write_text("- one\n- two\n")
        with pytest.raises(ConfigurationError, match="validation failed"):
            load_config(path)

    def test_malformed_section_raises(self, tmp_path) -> None:
        """Test a section that is not a mapping is rejected."""
        path = tmp_path / "section.yaml"
        path.write_text("conversation: nope\n")
        with pytest.raises(ConfigurationError, match="validation failed"):
            load_config(path)

    def test_empty_file_gives_defaults(self, tmp_path) -> None:
        """Test an empty file yields the default configuration."""
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path) == TurnwiseConfig()

    def test_bad_field_in_file_falls_back(self, tmp_path) -> None:
        """Test a bad field value in a file falls back instead of failing."""
        path = tmp_path / "turnwise.yaml"
        path.write_text("conversation:\n  pause_length_ms: -1\n  go_word: send\n")
        config = load_config(path)
        assert config.conversation.pause_length_ms == 2000
        assert config.conversation.go_word == "send"

    def test_no_file_found_gives_defaults(self, tmp_path) -> None:
        """Test discovery with no files present yields defaults."""
        with patch("turnwise.config.get_config_paths", return_value=[tmp_path / "nope.yaml"]):
            assert load_config() == TurnwiseConfig()

    def test_discovers_first_existing_file(self, tmp_path) -> None:
        """Test discovery uses the first existing path."""
        first = tmp_path / "first.yaml"
        second = tmp_path / "second.yaml"
        second.write_text("conversation:\n  go_word: second\n")
        first.write_text("conversation:\n  go_word: first\n")

        with patch("turnwise.config.get_config_paths", return_value=[first, second]):
            assert load_config().conversation.go_word == "first"


class TestEnvOverrides:
    """Tests for environment variable overrides."""

    @pytest.fixture(autouse=True)
    def no_config_files(self, tmp_path):
        with patch("turnwise.config.get_config_paths", return_value=[tmp_path / "none.yaml"]):
            yield

    def test_env_override_string(self, monkeypatch) -> None:
        """Test environment variable overrides a string value."""
        monkeypatch.setenv("TURNWISE_CONVERSATION_GO_WORD", "Send")
        assert load_config().conversation.go_word == "send"

    def test_env_override_int(self, monkeypatch) -> None:
        """Test environment variable overrides an integer value."""
        monkeypatch.setenv("TURNWISE_CONVERSATION_PAUSE_LENGTH_MS", "750")
        assert load_config().conversation.pause_length_ms == 750

    def test_env_override_bool(self, monkeypatch) -> None:
        """Test environment variable overrides a boolean value."""
        monkeypatch.setenv("TURNWISE_WAKE_PERSISTENT_LISTENING", "true")
        assert load_config().wake.persistent_listening is True

    def test_env_override_top_level(self, monkeypatch) -> None:
        """Test environment variable overrides the log level."""
        monkeypatch.setenv("TURNWISE_LOG_LEVEL", "warning")
        assert load_config().log_level == "WARNING"

    def test_env_beats_file(self, monkeypatch, tmp_path) -> None:
        """Test environment overrides take precedence over the file."""
        path = tmp_path / "turnwise.yaml"
        path.write_text("voice:\n  tone: warm\n")
        monkeypatch.setenv("TURNWISE_VOICE_TONE", "energetic")
        assert load_config(path).voice.tone == "energetic"

    def test_bad_env_value_falls_back(self, monkeypatch) -> None:
        """Test an invalid override falls back to the default."""
        monkeypatch.setenv("TURNWISE_WAKE_TIMEOUT_SECONDS", "forever")
        assert load_config().wake.timeout_seconds == 10
