"""
Turnwise Console Host

Runs a voice session in a terminal so the turn-taking rules can be tried
without a microphone or speaker: each line typed on stdin is treated as a
recognized transcript, dispatched messages go to an echo backend, and
"speech" is printed by a console engine that takes time proportional to the
text length to finish speaking.

Usage:
    turnwise                                # Run with discovered config
    turnwise --config /path/to/turnwise.yaml
    turnwise --log-level DEBUG
    turnwise --dry-run                      # Validate config and exit

Entry Points:
    - CLI: `turnwise` command (via pyproject.toml)
    - Direct: `python -m turnwise.main`
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Callable, List, Optional, Sequence

from turnwise import __version__
from turnwise.config import TurnwiseConfig, load_config
from turnwise.conversation import helper_text
from turnwise.exceptions import ConfigurationError, TurnwiseError
from turnwise.indicators import IndicatorState
from turnwise.logging_config import get_logger, setup_logging
from turnwise.speech import SpeechRequest, Voice
from turnwise.voice_session import VoiceSession

__all__ = ["main", "async_main", "create_parser", "ConsoleSpeechEngine", "EchoBackend"]

logger = get_logger("main")

# Seconds of simulated speech per character
CONSOLE_SECONDS_PER_CHAR = 0.03


# =============================================================================
# Argument Parser
# =============================================================================


def create_parser() -> argparse.ArgumentParser:
    """Create command-line argument parser."""
    parser = argparse.ArgumentParser(
        prog="turnwise",
        description="Turnwise voice turn-taking console",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-c",
        "--config",
        type=str,
        metavar="PATH",
        help="Path to configuration file (default: auto-discover)",
    )
    parser.add_argument(
        "-l",
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Set logging level (overrides config file)",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        metavar="PATH",
        help="Path to log file (default: console only)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate configuration and exit",
    )

    return parser


# =============================================================================
# Console collaborators
# =============================================================================


class ConsoleSpeechEngine:
    """Speech engine that prints instead of synthesizing audio."""

    def __init__(self, write: Callable[[str], None] = print):
        self._write = write
        self._end_handle: Optional[asyncio.TimerHandle] = None

    def list_voices(self) -> List[Voice]:
        return [Voice(name="Console", lang="en-US")]

    def speak(self, request: SpeechRequest, on_start, on_end, on_error) -> None:
        loop = asyncio.get_running_loop()
        self._write(f"[speaking] {request.sanitized_text}")
        on_start()
        duration = len(request.sanitized_text) * CONSOLE_SECONDS_PER_CHAR / request.voice_params.rate
        self._end_handle = loop.call_later(duration, on_end)

    def cancel(self) -> None:
        if self._end_handle is not None:
            self._end_handle.cancel()
            self._end_handle = None


class EchoBackend:
    """Stand-in conversational backend that echoes each message back."""

    def __init__(self, write: Callable[[str], None] = print):
        self._write = write
        self.session: Optional[VoiceSession] = None

    def send(self, message: str) -> None:
        self._write(f"[sent] {message}")
        if self.session is not None:
            asyncio.get_running_loop().call_soon(
                self.session.handle_response, f"You said: {message}"
            )


# =============================================================================
# Main Entry Points
# =============================================================================


def _print_indicator(old: IndicatorState, new: IndicatorState) -> None:
    print(f"[{new.value}]")


async def _read_lines(loop: asyncio.AbstractEventLoop):
    while True:
        line = await loop.run_in_executor(None, sys.stdin.readline)
        if not line:
            return
        yield line.rstrip("\n")


async def async_main(config: TurnwiseConfig) -> int:
    """Run the console session until stdin closes.

    Returns:
        Exit code (0 for success)
    """
    loop = asyncio.get_running_loop()
    backend = EchoBackend()
    session = VoiceSession(
        ConsoleSpeechEngine(),
        send=backend.send,
        settings=config,
        loop=loop,
    )
    backend.session = session
    session.indicator.register_callback(_print_indicator)

    print(helper_text(config))
    if config.wake.enabled or config.wake.persistent_listening:
        print(f"Say \"{config.wake.phrase}\" to start.")
    session.begin_listening()

    try:
        async for line in _read_lines(loop):
            if line.strip() == "/status":
                print(session.status())
                continue
            if line.strip() == "/start":
                session.begin_listening()
                continue
            session.handle_transcript(line)
    finally:
        session.shutdown()

    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the turnwise console.

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(log_level=args.log_level or "INFO", log_file=args.log_file)

    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    if args.log_level is None:
        setup_logging(log_level=config.log_level, log_file=args.log_file or config.log_file)

    if args.dry_run:
        logger.info("Dry run mode - configuration valid, exiting")
        print("Configuration is valid")
        return 0

    try:
        return asyncio.run(async_main(config))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except TurnwiseError as e:
        logger.error(f"Turnwise error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
