"""
Audio primitives.

Pure data containers only.
No behavior beyond derived views, no queues, no timing logic.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import numpy as np

from ambient_voice.constants import AUDIO_SAMPLE_RATE_HZ


class AudioSource(str, Enum):
    MICROPHONE = "microphone"
    WEARABLE = "wearable"


@dataclass(frozen=True)
class AudioFrame:
    """
    Raw mono PCM16 chunk as it entered the pipeline.

    source:
        Producer that delivered the chunk.

    pcm_bytes:
        PCM16 little-endian mono samples at AUDIO_SAMPLE_RATE_HZ.
        Wearable frames are decoder output, not the raw BLE packet.

    ts_ms:
        Wall-clock timestamp when the chunk was received.
        Observability only.
    """
    source: AudioSource
    pcm_bytes: bytes
    ts_ms: int


@dataclass(frozen=True)
class IngestChunk:
    """Float32 samples handed from the ingest adapter to segmentation."""
    source: AudioSource
    samples: np.ndarray
    ts_ms: int


@dataclass(frozen=True)
class SpeechSegment:
    """
    One VAD-delimited utterance, silence-padded at both ends.

    samples:
        Padded float32 samples (recognition input).

    speech_start / speech_end:
        Bounds of the unpadded speech inside `samples`.
    """
    samples: np.ndarray
    speech_start: int
    speech_end: int
    ts_ms: int
    sample_rate_hz: int = AUDIO_SAMPLE_RATE_HZ

    @property
    def speech(self) -> np.ndarray:
        """Unpadded speech (speaker-embedding input)."""
        return self.samples[self.speech_start:self.speech_end]

    @property
    def speech_duration_s(self) -> float:
        return (self.speech_end - self.speech_start) / self.sample_rate_hz
