"""
Voice-activity capabilities.

A capability classifies streaming audio as speech/silence and buffers
completed speech segments until the caller pops them.

Two implementations:
- SileroVoiceActivity: on-device silero model through sherpa-onnx
- EnergyVoiceActivity: RMS-energy threshold detector, deterministic,
  used when no model is configured and in tests
"""

from __future__ import annotations

from collections import deque
from typing import Deque, Protocol

import numpy as np

from ambient_voice.constants import (
    AUDIO_SAMPLE_RATE_HZ,
    ENERGY_VAD_HANGOVER_WINDOWS,
    ENERGY_VAD_RMS_THRESHOLD,
    ENERGY_VAD_START_WINDOWS,
    VAD_BUFFER_S,
    VAD_MAX_SPEECH_S,
    VAD_MIN_SILENCE_S,
    VAD_MIN_SPEECH_S,
    VAD_NUM_THREADS,
    VAD_WINDOW_SAMPLES,
)


class VoiceActivityUnavailable(RuntimeError):
    """Raised when the VAD model cannot be loaded."""


class VoiceActivity(Protocol):
    """
    Capability contract consumed by the SegmentationEngine.

    min_window:
        Smallest segment (in samples) the capability can meaningfully
        produce. Shorter segments are discarded by the caller.
    """

    min_window: int

    def accept_waveform(self, samples: np.ndarray) -> None: ...

    def is_speech_active(self) -> bool: ...

    def has_pending_segment(self) -> bool: ...

    def pop_segment(self) -> np.ndarray: ...

    def clear(self) -> None: ...


class SileroVoiceActivity:
    """
    sherpa-onnx silero VAD.

    The model import happens here so that the rest of the pipeline can run
    without sherpa-onnx model files.
    """

    def __init__(
        self,
        *,
        model_path: str,
        sample_rate_hz: int = AUDIO_SAMPLE_RATE_HZ,
        min_silence_s: float = VAD_MIN_SILENCE_S,
        min_speech_s: float = VAD_MIN_SPEECH_S,
        max_speech_s: float = VAD_MAX_SPEECH_S,
        buffer_s: float = VAD_BUFFER_S,
    ) -> None:
        try:
            import sherpa_onnx  # pylint: disable=import-outside-toplevel

            config = sherpa_onnx.VadModelConfig()
            config.silero_vad.model = model_path
            config.silero_vad.min_silence_duration = min_silence_s
            config.silero_vad.min_speech_duration = min_speech_s
            config.silero_vad.max_speech_duration = max_speech_s
            config.silero_vad.window_size = VAD_WINDOW_SAMPLES
            config.sample_rate = sample_rate_hz
            config.num_threads = VAD_NUM_THREADS

            self._vad = sherpa_onnx.VoiceActivityDetector(
                config, buffer_size_in_seconds=buffer_s
            )
        except Exception as exc:  # pylint: disable=broad-exception-caught
            raise VoiceActivityUnavailable(f"{type(exc).__name__}: {exc}") from exc

        self.min_window = VAD_WINDOW_SAMPLES

    def accept_waveform(self, samples: np.ndarray) -> None:
        self._vad.accept_waveform(samples)

    def is_speech_active(self) -> bool:
        return bool(self._vad.is_speech_detected())

    def has_pending_segment(self) -> bool:
        return not self._vad.empty()

    def pop_segment(self) -> np.ndarray:
        samples = np.asarray(self._vad.front.samples, dtype=np.float32)
        self._vad.pop()
        return samples

    def clear(self) -> None:
        self._vad.clear()


class EnergyVoiceActivity:
    """
    Energy-based segmenting VAD.

    Audio is analysed in fixed windows. Speech starts after `start_windows`
    consecutive windows at or above the RMS threshold and ends after
    `hangover_windows` consecutive windows below it; the speech windows
    (including the start run, excluding the trailing silence) become one
    pending segment.
    """

    def __init__(
        self,
        *,
        threshold: float = ENERGY_VAD_RMS_THRESHOLD,
        window: int = VAD_WINDOW_SAMPLES,
        start_windows: int = ENERGY_VAD_START_WINDOWS,
        hangover_windows: int = ENERGY_VAD_HANGOVER_WINDOWS,
    ) -> None:
        if window <= 0 or start_windows <= 0 or hangover_windows <= 0:
            raise ValueError("window, start_windows and hangover_windows must be > 0")

        self._threshold = threshold
        self._window = window
        self._start_windows = start_windows
        self._hangover_windows = hangover_windows

        self.min_window = window

        self._carry = np.zeros(0, dtype=np.float32)
        self._candidate: list[np.ndarray] = []
        self._speech: list[np.ndarray] = []
        self._silent_run = 0
        self._active = False
        self._segments: Deque[np.ndarray] = deque()

    def accept_waveform(self, samples: np.ndarray) -> None:
        buf = np.concatenate((self._carry, np.asarray(samples, dtype=np.float32)))
        whole = (buf.size // self._window) * self._window
        for offset in range(0, whole, self._window):
            self._observe(buf[offset:offset + self._window])
        self._carry = buf[whole:]

    def is_speech_active(self) -> bool:
        return self._active

    def has_pending_segment(self) -> bool:
        return bool(self._segments)

    def pop_segment(self) -> np.ndarray:
        return self._segments.popleft()

    def clear(self) -> None:
        self._carry = np.zeros(0, dtype=np.float32)
        self._candidate = []
        self._speech = []
        self._silent_run = 0
        self._active = False
        self._segments.clear()

    def _observe(self, window: np.ndarray) -> None:
        rms = float(np.sqrt(np.mean(np.square(window))))
        loud = rms >= self._threshold

        if not self._active:
            if loud:
                self._candidate.append(window)
                if len(self._candidate) >= self._start_windows:
                    self._active = True
                    self._speech = self._candidate
                    self._candidate = []
                    self._silent_run = 0
            else:
                self._candidate = []
            return

        if loud:
            self._silent_run = 0
            self._speech.append(window)
            return

        self._silent_run += 1
        self._speech.append(window)
        if self._silent_run >= self._hangover_windows:
            speech = self._speech[: len(self._speech) - self._silent_run]
            self._segments.append(np.concatenate(speech))
            self._speech = []
            self._silent_run = 0
            self._active = False
