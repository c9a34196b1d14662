"""
Binary websocket framing between the host process and the pipeline.

Host → Pipeline (ingest):
    1 byte   source tag (0x01 microphone PCM16, 0x02 wearable packet)
    N bytes  payload (PCM16 LE mono 16 kHz, or one 244-byte wearable packet)

Pipeline → Host (synthesized speech):
    4 bytes  seq_num (u32, little-endian)
    4 bytes  run_id  (u32, little-endian)
    640 bytes PCM16 audio (one 20 ms frame)

Usage example:

    frame = decode_ingest_frame(payload)
    if frame.source is AudioSource.WEARABLE:
        pipeline.submit_wearable(frame.payload)

    payload = encode_s2c_frame(
        sequence_num=seq,
        run_id=playback_run_id,
        pcm_bytes=frame_bytes,
    )
"""

from __future__ import annotations

import struct
from dataclasses import dataclass

from ambient_voice.audio.frames import AudioSource
from ambient_voice.constants import (
    AUDIO_BYTES_PER_FRAME_PCM,
    AUDIO_SAMPLE_WIDTH_BYTES,
    INGEST_FRAME_SOURCE_MICROPHONE,
    INGEST_FRAME_SOURCE_WEARABLE,
    S2C_FRAME_BYTES_TOTAL,
    SEQ_NUM_MAX,
    SEQ_NUM_START,
    WEARABLE_PACKET_BYTES,
)


# -------------------------
# Exceptions
# -------------------------

class BinaryProtocolError(Exception):
    """Base class for binary protocol errors."""


class IngestFrameError(BinaryProtocolError):
    """
    Raised when a host ingest frame is empty, carries an unknown source
    tag, or has a payload of the wrong shape for its source.
    """


class InvalidFrameLength(BinaryProtocolError):
    """Raised when an outbound PCM frame does not match the frame size."""


class InvalidSequenceNumber(BinaryProtocolError):
    """Raised when a sequence number or run_id is outside the valid range."""


# -------------------------
# Low-level helpers
# -------------------------

def _u32_le(value: int) -> bytes:
    return struct.pack("<I", value)


def next_seq(prev: int) -> int:
    """Return the sequence number after `prev`, with u32 wraparound."""
    if prev >= SEQ_NUM_MAX:
        return SEQ_NUM_START
    return prev + 1


# -------------------------
# Host → Pipeline (ingest)
# -------------------------

_SOURCE_TAGS: dict[int, AudioSource] = {
    INGEST_FRAME_SOURCE_MICROPHONE: AudioSource.MICROPHONE,
    INGEST_FRAME_SOURCE_WEARABLE: AudioSource.WEARABLE,
}


@dataclass(frozen=True)
class IngestFrame:
    source: AudioSource
    payload: bytes


def decode_ingest_frame(data: bytes) -> IngestFrame:
    """
    Split a tagged ingest frame into (source, payload).

    Wearable payload length is NOT validated here beyond being non-empty;
    the PacketDecoder owns the 244-byte rule so that malformed packets are
    logged at the decoder boundary.
    """
    if len(data) < 2:
        raise IngestFrameError(f"ingest frame too short: {len(data)} bytes")

    source = _SOURCE_TAGS.get(data[0])
    if source is None:
        raise IngestFrameError(f"unknown ingest source tag 0x{data[0]:02X}")

    payload = data[1:]
    if source is AudioSource.MICROPHONE and len(payload) % AUDIO_SAMPLE_WIDTH_BYTES:
        raise IngestFrameError(f"odd microphone payload length {len(payload)}")

    return IngestFrame(source=source, payload=payload)


def encode_ingest_frame(source: AudioSource, payload: bytes) -> bytes:
    """Inverse of decode_ingest_frame (host side, tooling, tests)."""
    tag = (
        INGEST_FRAME_SOURCE_MICROPHONE
        if source is AudioSource.MICROPHONE
        else INGEST_FRAME_SOURCE_WEARABLE
    )
    if source is AudioSource.WEARABLE and len(payload) != WEARABLE_PACKET_BYTES:
        raise IngestFrameError(
            f"wearable payload length {len(payload)} != {WEARABLE_PACKET_BYTES}"
        )
    return bytes([tag]) + payload


# -------------------------
# Pipeline → Host (speech)
# -------------------------

def encode_s2c_frame(
    *,
    sequence_num: int,
    run_id: int,
    pcm_bytes: bytes,
) -> bytes:
    """
    Encode one outbound speech frame.
    """
    if sequence_num < SEQ_NUM_START or sequence_num > SEQ_NUM_MAX:
        raise InvalidSequenceNumber(f"Invalid seq_num: {sequence_num}")

    # run_ids start at 1; 0 is internal-only
    if run_id < 1:
        raise InvalidSequenceNumber(f"Invalid run_id: {run_id}")

    if len(pcm_bytes) != AUDIO_BYTES_PER_FRAME_PCM:
        raise InvalidFrameLength(
            f"PCM length {len(pcm_bytes)} != {AUDIO_BYTES_PER_FRAME_PCM}"
        )

    payload = _u32_le(sequence_num) + _u32_le(run_id) + pcm_bytes

    if len(payload) != S2C_FRAME_BYTES_TOTAL:
        raise InvalidFrameLength(
            f"S2C frame length {len(payload)} != {S2C_FRAME_BYTES_TOTAL}"
        )

    return payload
