"""
Chat backend contract.

Purpose:
- Keep the dialogue session (ordered role/text turns)
- Stream a completion for the newest user utterance as text deltas

Rules:
- No retries, no chunking, no TTS knowledge.
- The stream may raise; the completion stream adapter turns that into a
  CompletionError event.
- Cancellation is cooperative: closing/cancelling the consuming task must
  stop the stream.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncIterator

from ambient_voice.storage.records import Role


class ChatBackend(ABC):

    @abstractmethod
    def append_session(self, role: Role, text: str) -> None:
        """Record one turn in the chat session."""
        raise NotImplementedError

    @abstractmethod
    def open_completion_stream(self, text: str) -> AsyncIterator[str]:
        """
        Stream the assistant reply to `text` as incremental deltas.

        `text` has already been appended to the session by the caller.
        """
        raise NotImplementedError
