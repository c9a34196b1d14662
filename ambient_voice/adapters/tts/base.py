"""
Speech synthesizer contract.

Key invariants:
- Text arrives pre-chunked by the dialogue reducer. Synthesizers never
  chunk on their own.
- Output is PCM16 LE mono 16 kHz bytes, yielded incrementally. Conversion
  from the provider's native format is the synthesizer's job.
- No run ids, no queues, no framing. The playback controller owns those.
- Cancellation is cooperative: cancelling the consuming task stops the stream.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncIterator


class SynthesizerUnavailable(RuntimeError):
    """Raised when a synthesizer's model or credentials cannot be loaded."""


class SpeechSynthesizer(ABC):

    @property
    @abstractmethod
    def is_available(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    def stream(self, text: str) -> AsyncIterator[bytes]:
        """
        Synthesize `text`.

        Yields PCM16 chunks of arbitrary (even) length. Raises on provider
        failure; the caller logs and drops the chunk.
        """
        raise NotImplementedError
