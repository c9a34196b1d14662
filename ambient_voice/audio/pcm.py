"""PCM conversion utilities."""

from __future__ import annotations

import numpy as np
from scipy import signal


def pcm16le_to_float32(pcm_bytes: bytes) -> np.ndarray:
    """
    Convert PCM16 little-endian mono bytes to float32 in [-1.0, 1.0).

    No resampling. No channel mixing.
    """
    if len(pcm_bytes) % 2 != 0:
        # Truncated sample; caller should treat as malformed frame upstream.
        pcm_bytes = pcm_bytes[: len(pcm_bytes) - 1]

    audio_i16 = np.frombuffer(pcm_bytes, dtype="<i2")
    return audio_i16.astype(np.float32) / 32768.0


def float32_to_pcm16le(samples: np.ndarray) -> bytes:
    """
    Convert float samples to PCM16 little-endian bytes.

    Values outside [-1.0, 1.0] are clipped, not wrapped.
    """
    clipped = np.clip(np.asarray(samples, dtype=np.float32), -1.0, 1.0)
    return np.round(clipped * 32767.0).astype("<i2").tobytes()


def resample(samples: np.ndarray, *, src_rate_hz: int, dst_rate_hz: int) -> np.ndarray:
    """Polyphase resampling between integer sample rates."""
    if src_rate_hz == dst_rate_hz:
        return np.asarray(samples, dtype=np.float32)

    g = np.gcd(src_rate_hz, dst_rate_hz)
    out = signal.resample_poly(samples, dst_rate_hz // g, src_rate_hz // g)
    return out.astype(np.float32)


class StreamingResampler:
    """
    Rational-ratio resampler for audio that arrives in pieces.

    Same filter design as `resample` (Kaiser-windowed FIR, upsample,
    filter, decimate), but the filter state and the decimation phase are
    carried between calls, so piece boundaries add no samples and no edge
    transients. The output is advanced by the filter's group delay; call
    `flush()` once at end of stream to release the tail.

    N input samples produce ceil(N * up / down) output samples in total.
    """

    def __init__(self, *, src_rate_hz: int, dst_rate_hz: int, half_taps_per_phase: int = 10) -> None:
        g = int(np.gcd(src_rate_hz, dst_rate_hz))
        self._up = dst_rate_hz // g
        self._down = src_rate_hz // g

        rate = max(self._up, self._down)
        numtaps = 2 * half_taps_per_phase * rate + 1
        self._taps = signal.firwin(numtaps, 1.0 / rate, window=("kaiser", 5.0)) * self._up
        self._zi = np.zeros(numtaps - 1)
        self._delay = (numtaps - 1) // 2
        self._skip = self._delay
        self._phase = 0

    def process(self, samples: np.ndarray) -> np.ndarray:
        x = np.asarray(samples, dtype=np.float64)
        upsampled = np.zeros(x.size * self._up)
        upsampled[:: self._up] = x
        return self._filter(upsampled)

    def flush(self) -> np.ndarray:
        return self._filter(np.zeros(self._delay))

    def _filter(self, upsampled: np.ndarray) -> np.ndarray:
        if upsampled.size == 0:
            return np.zeros(0, dtype=np.float32)

        filtered, self._zi = signal.lfilter(self._taps, 1.0, upsampled, zi=self._zi)

        if self._skip:
            n = min(self._skip, filtered.size)
            filtered = filtered[n:]
            self._skip -= n

        out = filtered[self._phase :: self._down]
        self._phase = (self._phase - filtered.size) % self._down
        return out.astype(np.float32)
