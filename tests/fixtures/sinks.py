"""
Dispatch sinks for testing.

A RecordingSink stands in for the conversational backend: it collects
every message handed to it and can be told to fail.
"""

from typing import List


class RecordingSink:
    """Callable sink that records dispatched messages."""

    def __init__(self):
        self.messages: List[str] = []
        self._fail = False

    def __call__(self, message: str) -> None:
        if self._fail:
            raise ConnectionError("Mock: backend unreachable")
        self.messages.append(message)

    @property
    def last(self) -> str:
        return self.messages[-1]

    def inject_failure(self, enable: bool = True):
        """Enable/disable sink failure."""
        self._fail = enable

    def clear(self):
        self.messages.clear()
