"""
Status indicator for turnwise sessions.

Tracks what a host should currently show the user: idle, waiting for the
wake phrase, in a conversation, or speaking. It renders nothing itself;
hosts subscribe with register_callback and draw whatever they like (a
terminal line, an LED, a web badge). With no subscribers, changes are
logged at debug level.

Speaking is an overlay: it is shown on top of the conversation state and
clearing it reveals whatever conversation state is current underneath.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, List

from turnwise.logging_config import get_logger

__all__ = ["IndicatorState", "StatusIndicator"]

logger = get_logger("indicators")


class IndicatorState(Enum):
    """What the indicator is showing."""
    IDLE = "idle"
    PASSIVE = "passive"
    CONVERSATION = "conversation"
    SPEAKING = "speaking"


IndicatorCallback = Callable[[IndicatorState, IndicatorState], None]


class StatusIndicator:
    """Render-agnostic indicator driven by the conversation and speech layers."""

    def __init__(self):
        self._base_state = IndicatorState.IDLE
        self._speaking = False
        self._callbacks: List[IndicatorCallback] = []

    @property
    def state(self) -> IndicatorState:
        """The state currently on display."""
        return IndicatorState.SPEAKING if self._speaking else self._base_state

    @property
    def base_state(self) -> IndicatorState:
        """The conversation state underneath any speaking overlay."""
        return self._base_state

    @property
    def is_speaking(self) -> bool:
        return self._speaking

    def register_callback(self, callback: IndicatorCallback) -> None:
        """Register callback(old_state, new_state) for display changes."""
        self._callbacks.append(callback)

    def set_base_state(self, state: IndicatorState) -> None:
        """Show a conversation state (anything except SPEAKING)."""
        if state is IndicatorState.SPEAKING:
            raise ValueError("Use show_speaking() for the speaking overlay")
        old = self.state
        self._base_state = state
        self._notify(old)

    def show_speaking(self) -> None:
        """Turn the speaking overlay on."""
        old = self.state
        self._speaking = True
        self._notify(old)

    def clear_speaking(self) -> None:
        """Turn the speaking overlay off."""
        old = self.state
        self._speaking = False
        self._notify(old)

    def _notify(self, old: IndicatorState) -> None:
        new = self.state
        if old == new:
            return

        if not self._callbacks:
            logger.debug(f"Indicator {old.value} -> {new.value}")
            return

        for callback in self._callbacks:
            try:
                callback(old, new)
            except Exception as e:
                logger.warning(f"Indicator callback error: {e}")
