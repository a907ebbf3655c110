"""
Turnwise Configuration

Settings models for the turn-taking layer, loaded from YAML with
environment variable overrides.

Session settings are deliberately forgiving: a missing, empty, non-numeric
or out-of-range value in any single field falls back to that field's
documented default (with a warning) instead of rejecting the whole file.
Only structurally broken documents raise ConfigurationError.

Usage:
    from turnwise.config import load_config

    config = load_config()                     # auto-discover or defaults
    config = load_config("/path/to/turnwise.yaml")

Environment overrides use TURNWISE_<SECTION>_<FIELD>, for example
TURNWISE_CONVERSATION_GO_WORD=send or TURNWISE_WAKE_PERSISTENT_LISTENING=true.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Annotated, Any, Literal, Optional

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    ValidationError,
    ValidationInfo,
    field_validator,
)

from turnwise.exceptions import ConfigurationError
from turnwise.logging_config import get_logger

__all__ = [
    "ConversationSettings",
    "WakeWordSettings",
    "VoiceSettings",
    "TurnwiseConfig",
    "ENV_PREFIX",
    "get_config_paths",
    "load_config",
]

logger = get_logger("config")

ENV_PREFIX = "TURNWISE"

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

# Phrases are matched case-insensitively, so they are stored normalized.
Phrase = Annotated[
    str, StringConstraints(strip_whitespace=True, to_lower=True, min_length=1)
]


class _SettingsSection(BaseModel):
    """Base for session settings sections with per-field default fallback."""

    model_config = ConfigDict(extra="ignore")

    @field_validator("*", mode="wrap")
    @classmethod
    def _fall_back_to_default(cls, value: Any, handler, info: ValidationInfo) -> Any:
        try:
            return handler(value)
        except ValidationError as exc:
            field_info = cls.model_fields[info.field_name]
            default = field_info.get_default(call_default_factory=True)
            logger.warning(
                f"Invalid value {value!r} for {cls.__name__}.{info.field_name}, "
                f"using default {default!r} ({exc.errors()[0]['msg']})"
            )
            return default


class ConversationSettings(_SettingsSection):
    """Turn-taking behaviour for an active conversation."""

    enabled: bool = True
    go_word: Phrase = "go"
    pause_length_ms: int = Field(default=2000, gt=0)
    end_phrase: Phrase = "end conversation"
    multi_sentence_mode: bool = True
    auto_start_response: bool = True


class WakeWordSettings(_SettingsSection):
    """Passive wake-phrase listening."""

    enabled: bool = False
    phrase: Phrase = "hey bot"
    timeout_seconds: float = Field(default=10, gt=0)
    persistent_listening: bool = False


class VoiceSettings(_SettingsSection):
    """Speech output parameters."""

    enabled: bool = True
    voice_index: int = 0
    rate: float = Field(default=1.0, gt=0.0, le=10.0)
    pitch: float = Field(default=1.0, ge=0.0, le=2.0)
    volume: float = Field(default=1.0, ge=0.0, le=1.0)
    tone: Annotated[str, StringConstraints(strip_whitespace=True, to_lower=True)] = "natural"
    lang: str = "en-US"


class TurnwiseConfig(BaseModel):
    """Root configuration.

    The three session sections are re-read by every operation, so a host
    may swap in a new TurnwiseConfig between transcripts.
    """

    model_config = ConfigDict(extra="ignore")

    conversation: ConversationSettings = Field(default_factory=ConversationSettings)
    wake: WakeWordSettings = Field(default_factory=WakeWordSettings)
    voice: VoiceSettings = Field(default_factory=VoiceSettings)

    log_level: LogLevel = "INFO"
    log_file: Optional[str] = None

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value


# =============================================================================
# Loading
# =============================================================================

_SECTIONS = ("conversation", "wake", "voice")
_TOP_LEVEL_FIELDS = ("log_level", "log_file")


def get_config_paths() -> list[Path]:
    """Return config file locations in discovery order."""
    return [
        Path("./turnwise.yaml"),
        Path.home() / ".turnwise" / "config.yaml",
        Path("/etc/turnwise/config.yaml"),
    ]


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Invalid YAML: {e}", config_file=str(path)
        ) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            "Configuration validation failed: top level must be a mapping",
            config_file=str(path),
        )
    return data


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay TURNWISE_* environment variables onto raw config data."""
    merged = dict(data)

    for name in _TOP_LEVEL_FIELDS:
        env_name = f"{ENV_PREFIX}_{name.upper()}"
        if env_name in os.environ:
            merged[name] = os.environ[env_name]

    for section in _SECTIONS:
        model = TurnwiseConfig.model_fields[section].annotation
        section_data = merged.get(section)
        if section_data is None:
            section_data = {}
        elif isinstance(section_data, dict):
            section_data = dict(section_data)
        else:
            # Leave malformed sections for validation to reject.
            continue

        for field_name in model.model_fields:
            env_name = f"{ENV_PREFIX}_{section.upper()}_{field_name.upper()}"
            if env_name in os.environ:
                section_data[field_name] = os.environ[env_name]
                logger.debug(f"Config override from {env_name}")

        if section_data:
            merged[section] = section_data

    return merged


def load_config(path: Optional[str | Path] = None) -> TurnwiseConfig:
    """Load configuration from YAML, discovery paths, and the environment.

    Args:
        path: Explicit config file. Must exist when given.

    Returns:
        Validated TurnwiseConfig

    Raises:
        ConfigurationError: File missing, invalid YAML, or structurally invalid
    """
    data: dict[str, Any] = {}
    source: Optional[Path] = None

    if path is not None:
        source = Path(path)
        if not source.exists():
            raise ConfigurationError(
                f"Configuration file not found: {source}", config_file=str(source)
            )
    else:
        for candidate in get_config_paths():
            if candidate.exists():
                source = candidate
                break

    if source is not None:
        data = _read_yaml(source)
        logger.info(f"Loaded configuration from {source}")

    data = _apply_env_overrides(data)

    try:
        return TurnwiseConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(
            f"Configuration validation failed: {e}",
            config_file=str(source) if source else None,
        ) from e
