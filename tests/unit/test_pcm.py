"""
PCM helper guarantees:
- PCM16 <-> float32 conversion clips instead of wrapping
- StreamingResampler output does not depend on how the input is split
- N input samples become exactly ceil(N * up / down) output samples
"""

# pylint: disable=missing-function-docstring

import numpy as np
import pytest

from ambient_voice.audio.pcm import (
    StreamingResampler,
    float32_to_pcm16le,
    pcm16le_to_float32,
)


def sine(n: int, rate_hz: int, freq_hz: float = 440.0) -> np.ndarray:
    t = np.arange(n) / rate_hz
    return (0.5 * np.sin(2 * np.pi * freq_hz * t)).astype(np.float32)


def run(resampler: StreamingResampler, pieces: list[np.ndarray]) -> np.ndarray:
    out = [resampler.process(p) for p in pieces]
    out.append(resampler.flush())
    return np.concatenate(out)


def test_pcm16_conversion_clips():
    pcm = float32_to_pcm16le(np.array([2.0, -2.0, 0.0], dtype=np.float32))

    assert np.frombuffer(pcm, dtype="<i2").tolist() == [32767, -32767, 0]
    assert pcm16le_to_float32(pcm + b"\x01")[2] == 0.0


@pytest.mark.parametrize("n", [2400, 24000, 2401, 7])
def test_output_length_is_exact(n: int):
    resampler = StreamingResampler(src_rate_hz=24000, dst_rate_hz=16000)

    out = run(resampler, [np.zeros(n, dtype=np.float32)])

    assert out.size == -(-n * 2 // 3)


def test_split_input_matches_whole_input():
    samples = sine(24000, 24000)
    whole = run(StreamingResampler(src_rate_hz=24000, dst_rate_hz=16000), [samples])

    # Uneven pieces, none a multiple of the decimation factor
    cuts = list(range(0, samples.size, 2400 + 1)) + [samples.size]
    pieces = [samples[a:b] for a, b in zip(cuts, cuts[1:])]
    split = run(StreamingResampler(src_rate_hz=24000, dst_rate_hz=16000), pieces)

    assert split.size == whole.size == 16000
    np.testing.assert_allclose(split, whole, atol=1e-5)


def test_resampled_sine_keeps_amplitude_and_continuity():
    out = run(StreamingResampler(src_rate_hz=24000, dst_rate_hz=16000), [sine(24000, 24000)])

    middle = out[1000:-1000]
    assert abs(np.max(np.abs(middle)) - 0.5) < 0.03
    # A 440 Hz sine at 0.5 moves at most ~0.087 per 16 kHz sample
    assert np.max(np.abs(np.diff(out))) < 0.1
