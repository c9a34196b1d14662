"""
Fixed audio cues.

A cue is loaded from a WAV file when configured (any rate, mixed to mono,
resampled to 16 kHz) and otherwise synthesized as a short sine tone.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

import numpy as np
import soundfile as sf

from ambient_voice.audio.pcm import float32_to_pcm16le, resample
from ambient_voice.constants import (
    AUDIO_SAMPLE_RATE_HZ,
    CUE_EXIT_TONE_HZ,
    CUE_EXIT_TONE_MS,
    CUE_INTERRUPTION_TONE_HZ,
    CUE_INTERRUPTION_TONE_MS,
    CUE_TONE_AMPLITUDE,
)
from ambient_voice.observability.logger import log_component


class AudioCue(str, Enum):
    EXIT_DIALOG = "exit_dialog"
    INTERRUPTION = "interruption"


_TONES: dict[AudioCue, tuple[float, int]] = {
    AudioCue.EXIT_DIALOG: (CUE_EXIT_TONE_HZ, CUE_EXIT_TONE_MS),
    AudioCue.INTERRUPTION: (CUE_INTERRUPTION_TONE_HZ, CUE_INTERRUPTION_TONE_MS),
}


def tone(frequency_hz: float, duration_ms: int, sample_rate_hz: int = AUDIO_SAMPLE_RATE_HZ) -> np.ndarray:
    """Sine tone with 5 ms linear fade-in/out."""
    n = int(sample_rate_hz * duration_ms / 1000)
    t = np.arange(n, dtype=np.float32) / sample_rate_hz
    wave = CUE_TONE_AMPLITUDE * np.sin(2.0 * np.pi * frequency_hz * t)

    fade = min(n // 2, int(sample_rate_hz * 0.005))
    if fade > 0:
        ramp = np.linspace(0.0, 1.0, fade, dtype=np.float32)
        wave[:fade] *= ramp
        wave[n - fade:] *= ramp[::-1]
    return wave.astype(np.float32)


def load_cue_wav(path: str | Path) -> np.ndarray:
    data, rate = sf.read(str(path), dtype="float32", always_2d=True)
    mono = data.mean(axis=1)
    return resample(mono, src_rate_hz=int(rate), dst_rate_hz=AUDIO_SAMPLE_RATE_HZ)


class CueLibrary:
    """PCM16 bytes for every cue, resolved once at startup."""

    def __init__(self, paths: dict[AudioCue, str | None] | None = None) -> None:
        self._pcm: dict[AudioCue, bytes] = {}
        paths = paths or {}
        for cue, (freq, ms) in _TONES.items():
            samples = None
            path = paths.get(cue)
            if path:
                try:
                    samples = load_cue_wav(path)
                except (OSError, RuntimeError) as e:
                    log_component("cues", "CUE_LOAD_FAILED", cue=cue.value, path=path, error=str(e))
            if samples is None:
                samples = tone(freq, ms)
            self._pcm[cue] = float32_to_pcm16le(samples)

    def pcm(self, cue: AudioCue) -> bytes:
        return self._pcm[cue]
