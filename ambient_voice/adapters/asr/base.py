"""
Speech recognizer contracts.

Two capabilities, both segment-at-a-time (the VAD already endpointed):
- StreamingRecognizer: on-device, always preferred outside active dialog
- CloudRecognizer: remote speech service, used in active dialog when available

Contract for both:
- recognize/process a complete padded segment, return its text ("" if none)
- may raise on transient failure; the RecognitionOrchestrator contains it
- no run IDs, no events, no cleanup: the orchestrator owns those

Constructors raise RecognizerUnavailable when the backend cannot be set up.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np


class RecognizerUnavailable(RuntimeError):
    """Raised when a recognizer backend cannot be initialized."""


class StreamingRecognizer(ABC):

    @abstractmethod
    async def process_audio(self, samples: np.ndarray) -> str:
        """Decode float32 mono 16 kHz samples to text."""
        raise NotImplementedError


class CloudRecognizer(ABC):

    @property
    @abstractmethod
    def is_available(self) -> bool:
        """False when credentials are missing; checked before every call."""
        raise NotImplementedError

    @abstractmethod
    async def recognize(self, samples: np.ndarray) -> str:
        """Transcribe float32 mono 16 kHz samples remotely."""
        raise NotImplementedError
