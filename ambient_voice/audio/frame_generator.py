"""
PCM frame splitting utilities (pure).

Purpose:
- Convert synthesized PCM (arbitrary length) into fixed-size 20 ms PCM16
  frames for transport over the websocket binary protocol.

Invariants:
- PCM16 signed, little-endian
- Mono
- 16 kHz
- Bytes per frame = AUDIO_BYTES_PER_FRAME_PCM
"""

from __future__ import annotations

from ambient_voice.constants import (
    AUDIO_BYTES_PER_FRAME_PCM,
    AUDIO_CHANNELS,
    AUDIO_FRAME_MS,
    AUDIO_SAMPLE_RATE_HZ,
    AUDIO_SAMPLE_WIDTH_BYTES,
)


def frame_size_bytes(
    *,
    sample_rate_hz: int = AUDIO_SAMPLE_RATE_HZ,
    frame_duration_ms: int = AUDIO_FRAME_MS,
    channels: int = AUDIO_CHANNELS,
    sample_width_bytes: int = AUDIO_SAMPLE_WIDTH_BYTES,
) -> int:
    """
    Raises:
        ValueError if any parameter is non-positive.
    """
    if sample_rate_hz <= 0:
        raise ValueError("sample_rate_hz must be > 0")
    if frame_duration_ms <= 0:
        raise ValueError("frame_duration_ms must be > 0")
    if channels <= 0:
        raise ValueError("channels must be > 0")
    if sample_width_bytes <= 0:
        raise ValueError("sample_width_bytes must be > 0")

    samples_per_frame = (sample_rate_hz * frame_duration_ms) // 1000
    return samples_per_frame * channels * sample_width_bytes


def split_pcm_into_frames(
    pcm_bytes: bytes,
    *,
    pad_final: bool = False,
    bytes_per_frame: int = AUDIO_BYTES_PER_FRAME_PCM,
) -> tuple[list[bytes], bytes]:
    """
    Split raw PCM16 bytes into fixed-size frames.

    Returns:
        (frames, remainder). With pad_final=True a non-empty remainder is
        zero-padded into one last frame and the returned remainder is b"".

    Raises:
        ValueError if bytes_per_frame is not positive.
    """
    if bytes_per_frame <= 0:
        raise ValueError("bytes_per_frame must be > 0")

    if not pcm_bytes:
        return [], b""

    whole = len(pcm_bytes) // bytes_per_frame
    end = whole * bytes_per_frame
    frames = [
        pcm_bytes[offset : offset + bytes_per_frame]
        for offset in range(0, end, bytes_per_frame)
    ]
    remainder = pcm_bytes[end:]

    if pad_final and remainder:
        frames.append(remainder + b"\x00" * (bytes_per_frame - len(remainder)))
        remainder = b""

    return frames, remainder


def bytes_to_frame_count(num_bytes: int, *, bytes_per_frame: int = AUDIO_BYTES_PER_FRAME_PCM) -> int:
    """Number of whole frames represented by num_bytes (floor division)."""
    if num_bytes <= 0:
        return 0
    if bytes_per_frame <= 0:
        raise ValueError("bytes_per_frame must be > 0")
    return num_bytes // bytes_per_frame
