"""
Transcript text normalization (pure functions).

- correct_wake_word: fixes the recognizer's habitual spelling of the wake word
- finalize_transcript: trim, strip bracketed annotations, collapse
  degenerate repetition, trim again
- contains_phrase: case-insensitive substring match against a phrase list
"""

from __future__ import annotations

import re
from typing import Iterable

from ambient_voice.constants import REPETITION_COLLAPSE_MIN, WAKE_WORD_HOMOPHONES


_BRACKETED = re.compile(r"\[.*?\]|\{.*?\}")

# Whitespace/comma separated words: "no no no no no no"
_REPEATED_WORD = re.compile(
    r"\b([^,\s]+)(?:[\s,]+\1\b){%d,}" % (REPETITION_COLLAPSE_MIN - 1),
    re.IGNORECASE,
)

# Multi-word or unseparated non-digit units, e.g. "thank you thank you ...",
# CJK text or "hahahahahaha"
_REPEATED_UNIT = re.compile(r"(\D+?)(?:[\s,]*\1){%d,}" % (REPETITION_COLLAPSE_MIN - 1), re.DOTALL)


def correct_wake_word(text: str) -> str:
    """Replace the first occurrence of each homophone spelling."""
    for wrong, right in WAKE_WORD_HOMOPHONES:
        text = text.replace(wrong, right, 1)
    return text


def remove_bracketed(text: str) -> str:
    return _BRACKETED.sub("", text)


def collapse_repetitions(text: str) -> str:
    """Reduce any run of >= 6 consecutive repeats to a single occurrence."""
    text = _REPEATED_WORD.sub(r"\1", text)
    return _REPEATED_UNIT.sub(r"\1", text)


def finalize_transcript(text: str) -> str:
    text = text.strip()
    if not text:
        return ""
    text = remove_bracketed(text)
    text = collapse_repetitions(text)
    return text.strip()


def contains_phrase(text: str, phrases: Iterable[str]) -> bool:
    lowered = text.lower()
    return any(p.lower() in lowered for p in phrases)
