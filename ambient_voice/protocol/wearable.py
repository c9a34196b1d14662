"""
Wearable BLE packet format.

Wire format (244 bytes total):
    byte[0]      class marker
    bytes[1:241] three 80-byte codec sub-frames (audio packets only)
    bytes[241:]  unused

Markers:
    0xFF, 0xFE  audio (two firmware variants, identical payload layout)
    0x01        heartbeat-on  (bone-conduction path active)
    0x00        heartbeat-off

Heartbeat packets carry no payload; bytes after the marker are ignored.
This module is pure: classification and slicing only, no codec math.
"""

from __future__ import annotations

from enum import Enum

from ambient_voice.constants import (
    MARKER_AUDIO_A,
    MARKER_AUDIO_B,
    MARKER_HEARTBEAT_OFF,
    MARKER_HEARTBEAT_ON,
    WEARABLE_PACKET_BYTES,
    WEARABLE_PAYLOAD_OFFSET,
    WEARABLE_SUBFRAME_BYTES,
    WEARABLE_SUBFRAMES_PER_PACKET,
)


# -------------------------
# Exceptions
# -------------------------

class WearableProtocolError(Exception):
    """Base class for wearable packet errors."""


class InvalidPacketLength(WearableProtocolError):
    """
    Raised when a packet is not exactly WEARABLE_PACKET_BYTES long.

    The packet is unsafe to interpret and must be dropped without
    touching decoder state.
    """


class UnknownPacketMarker(WearableProtocolError):
    """Raised when byte[0] is none of the four known class markers."""


# -------------------------
# Classification
# -------------------------

class PacketClass(str, Enum):
    AUDIO = "audio"
    HEARTBEAT_ON = "heartbeat_on"
    HEARTBEAT_OFF = "heartbeat_off"


_MARKERS: dict[int, PacketClass] = {
    MARKER_AUDIO_A: PacketClass.AUDIO,
    MARKER_AUDIO_B: PacketClass.AUDIO,
    MARKER_HEARTBEAT_ON: PacketClass.HEARTBEAT_ON,
    MARKER_HEARTBEAT_OFF: PacketClass.HEARTBEAT_OFF,
}


def classify_packet(packet: bytes) -> PacketClass:
    """
    Return the class of a wearable packet.

    Raises:
        InvalidPacketLength if len(packet) != 244
        UnknownPacketMarker if byte[0] is not a known marker
    """
    if len(packet) != WEARABLE_PACKET_BYTES:
        raise InvalidPacketLength(
            f"wearable packet length {len(packet)} != {WEARABLE_PACKET_BYTES}"
        )

    marker = packet[0]
    try:
        return _MARKERS[marker]
    except KeyError:
        raise UnknownPacketMarker(f"unknown packet marker 0x{marker:02X}") from None


def iter_subframes(packet: bytes) -> list[bytes]:
    """
    Slice the three codec sub-frames out of an audio packet.

    Caller must have classified the packet as AUDIO first.
    """
    return [
        packet[
            WEARABLE_PAYLOAD_OFFSET + i * WEARABLE_SUBFRAME_BYTES :
            WEARABLE_PAYLOAD_OFFSET + (i + 1) * WEARABLE_SUBFRAME_BYTES
        ]
        for i in range(WEARABLE_SUBFRAMES_PER_PACKET)
    ]


def build_packet(marker: int, payload: bytes = b"") -> bytes:
    """
    Assemble a 244-byte packet, zero-padding the payload.

    Used by capture tooling and tests to fabricate device traffic.
    """
    body = payload[: WEARABLE_PACKET_BYTES - 1]
    return bytes([marker]) + body + b"\x00" * (WEARABLE_PACKET_BYTES - 1 - len(body))
