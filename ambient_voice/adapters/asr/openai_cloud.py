"""
Cloud recognizer backed by the OpenAI transcription API.

Segments are encoded as 16 kHz PCM16 WAV in memory (soundfile) and sent as
one request. Availability is simply "an API key was configured".
"""

from __future__ import annotations

import io
from typing import Any

import numpy as np
import soundfile as sf

from ambient_voice.adapters.asr.base import CloudRecognizer
from ambient_voice.constants import AUDIO_SAMPLE_RATE_HZ


def encode_wav(samples: np.ndarray, sample_rate_hz: int = AUDIO_SAMPLE_RATE_HZ) -> bytes:
    buf = io.BytesIO()
    sf.write(buf, np.asarray(samples, dtype=np.float32), sample_rate_hz, format="WAV", subtype="PCM_16")
    return buf.getvalue()


class OpenAICloudRecognizer(CloudRecognizer):

    def __init__(
        self,
        *,
        client: Any,
        api_key: str | None,
        model: str = "whisper-1",
        language: str = "en",
    ) -> None:
        """
        Args:
            client:
                openai.AsyncOpenAI instance (or compatible).
            api_key:
                Configured key; None disables the recognizer.
        """
        self._client = client
        self._api_key = api_key
        self._model = model
        self._language = language

    @property
    def is_available(self) -> bool:
        return bool(self._api_key) and self._client is not None

    async def recognize(self, samples: np.ndarray) -> str:
        response = await self._client.audio.transcriptions.create(
            model=self._model,
            file=("segment.wav", encode_wav(samples), "audio/wav"),
            language=self._language,
        )
        return str(getattr(response, "text", "") or "")
