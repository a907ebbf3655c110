"""
Phrase matching helpers.

Pure functions over transcript strings. Nothing here mutates shared state;
callers pass the configured phrase and get a fresh string or bool back.

Matching rules:
    - go-word: whole token, case-insensitive (split on whitespace)
    - end phrase / wake phrase: substring of the lowercased, trimmed text
"""

import re

__all__ = [
    "normalize",
    "contains_phrase",
    "has_go_word",
    "remove_go_word",
    "strip_phrase",
    "append_fragment",
]


def normalize(text: str) -> str:
    """Lowercase and trim a transcript for matching."""
    return (text or "").lower().strip()


def contains_phrase(transcript: str, phrase: str) -> bool:
    """Check for a case-insensitive substring match of phrase in transcript."""
    needle = normalize(phrase)
    if not needle:
        return False
    return needle in normalize(transcript)


def has_go_word(transcript: str, go_word: str) -> bool:
    """Check whether go_word appears as a whole whitespace-delimited token.

    "go" matches "ok go" but not "going" or "ago".
    """
    word = normalize(go_word)
    if not word:
        return False
    return word in normalize(transcript).split()


def remove_go_word(transcript: str, go_word: str) -> str:
    """Remove the first whitespace token equal to go_word, preserving case.

    Tokens that only contain the word ("go-kart", "go,") are kept.
    """
    word = normalize(go_word)
    tokens = transcript.split()
    for index, token in enumerate(tokens):
        if token.lower() == word:
            del tokens[index]
            break
    return " ".join(tokens)


def strip_phrase(transcript: str, phrase: str) -> str:
    """Remove every case-insensitive occurrence of phrase and trim the result."""
    needle = normalize(phrase)
    if not needle:
        return transcript.strip()
    return re.sub(re.escape(needle), "", transcript, flags=re.IGNORECASE).strip()


def append_fragment(buffer: str, fragment: str) -> str:
    """Join a new fragment onto the buffer with a single separating space."""
    if not buffer:
        return fragment
    return f"{buffer} {fragment}"
