"""
Wearable packet decoder.

Responsibilities:
- Validate and classify 244-byte wearable packets
- Reconstruct float samples from the three codec sub-frames
- Accumulate samples across packets and emit fixed 512-sample PCM16 batches
- Track the bone-conduction heartbeat with an off-debounce

Non-responsibilities:
- No BLE transport handling
- No resampling (the device already delivers 16 kHz)
- No thread safety: one decoder per pipeline, calls serialized by the owner

Invariants:
- A rejected packet (wrong length, unknown marker) mutates nothing
- Every reconstructed sample is emitted exactly once, in order;
  samples beyond the last full batch stay in the accumulator
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from ambient_voice.audio.pcm import float32_to_pcm16le
from ambient_voice.audio.transforms import CodecTransforms, default_transforms
from ambient_voice.constants import (
    BONE_CONDUCTION_INITIAL,
    DECODER_BATCH_SAMPLES,
    HEARTBEAT_OFF_DEBOUNCE_MS,
)
from ambient_voice.observability.logger import log_component
from ambient_voice.protocol.wearable import (
    PacketClass,
    WearableProtocolError,
    classify_packet,
    iter_subframes,
)


_COMPONENT = "packet_decoder"


@dataclass(frozen=True)
class DecodedAudioChunks:
    """
    Outcome of decoding one packet.

    packet_class:
        None when the packet was rejected.

    chunks:
        Zero or more PCM16 LE batches of exactly DECODER_BATCH_SAMPLES samples.

    bone_conduction_changed:
        New heartbeat value when this packet flipped it, else None.
    """
    packet_class: PacketClass | None
    chunks: tuple[bytes, ...] = ()
    bone_conduction_changed: bool | None = None

    @property
    def rejected(self) -> bool:
        return self.packet_class is None


@dataclass
class DecoderStats:
    packets_audio: int = 0
    packets_heartbeat: int = 0
    packets_rejected: int = 0
    samples_reconstructed: int = 0
    samples_emitted: int = 0


class PacketDecoder:
    """
    Stateful decoder for one wearable stream.

    State:
    - reconstruction accumulator (float32 samples not yet batched)
    - bone-conduction flag and the timestamp of the last heartbeat-on
    """

    def __init__(
        self,
        *,
        transforms: CodecTransforms | None = None,
        batch_samples: int = DECODER_BATCH_SAMPLES,
        bone_conduction_active: bool = BONE_CONDUCTION_INITIAL,
    ) -> None:
        if batch_samples <= 0:
            raise ValueError("batch_samples must be > 0")

        self._transforms = transforms or default_transforms()
        self._batch_samples = batch_samples
        self._accumulator = np.zeros(0, dtype=np.float32)

        self.bone_conduction_active = bone_conduction_active
        self._last_heartbeat_on_ms: int | None = None

        self.stats = DecoderStats()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def pending_samples(self) -> int:
        """Samples reconstructed but not yet emitted."""
        return int(self._accumulator.size)

    def decode(self, packet: bytes, *, ts_ms: int) -> DecodedAudioChunks:
        """
        Decode one packet received at `ts_ms`.

        Never raises for malformed input: rejections are logged and
        returned as an empty result.
        """
        try:
            packet_class = classify_packet(packet)
        except WearableProtocolError as e:
            self.stats.packets_rejected += 1
            log_component(
                _COMPONENT,
                "WEARABLE_PACKET_REJECTED",
                reason=type(e).__name__,
                error=str(e),
                length=len(packet),
            )
            return DecodedAudioChunks(packet_class=None)

        if packet_class is PacketClass.HEARTBEAT_ON:
            return self._heartbeat_on(ts_ms)

        if packet_class is PacketClass.HEARTBEAT_OFF:
            return self._heartbeat_off(ts_ms)

        return self._audio(packet)

    def reset(self) -> None:
        """Drop partially accumulated samples (device reconnect)."""
        self._accumulator = np.zeros(0, dtype=np.float32)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _audio(self, packet: bytes) -> DecodedAudioChunks:
        reconstructed = [
            self._transforms.reconstruct(sub) for sub in iter_subframes(packet)
        ]
        samples = np.concatenate(reconstructed)

        self.stats.packets_audio += 1
        self.stats.samples_reconstructed += samples.size

        self._accumulator = np.concatenate((self._accumulator, samples))

        chunks: list[bytes] = []
        while self._accumulator.size >= self._batch_samples:
            batch = self._accumulator[: self._batch_samples]
            self._accumulator = self._accumulator[self._batch_samples:]
            chunks.append(float32_to_pcm16le(batch))
            self.stats.samples_emitted += self._batch_samples

        return DecodedAudioChunks(packet_class=PacketClass.AUDIO, chunks=tuple(chunks))

    def _heartbeat_on(self, ts_ms: int) -> DecodedAudioChunks:
        self.stats.packets_heartbeat += 1
        self._last_heartbeat_on_ms = ts_ms

        if self.bone_conduction_active:
            return DecodedAudioChunks(packet_class=PacketClass.HEARTBEAT_ON)

        self.bone_conduction_active = True
        log_component(_COMPONENT, "BONE_CONDUCTION_CHANGED", active=True)
        return DecodedAudioChunks(
            packet_class=PacketClass.HEARTBEAT_ON,
            bone_conduction_changed=True,
        )

    def _heartbeat_off(self, ts_ms: int) -> DecodedAudioChunks:
        self.stats.packets_heartbeat += 1

        if not self.bone_conduction_active:
            return DecodedAudioChunks(packet_class=PacketClass.HEARTBEAT_OFF)

        # No heartbeat-on seen yet counts as "long ago"
        if self._last_heartbeat_on_ms is not None:
            since_on_ms = ts_ms - self._last_heartbeat_on_ms
            if since_on_ms <= HEARTBEAT_OFF_DEBOUNCE_MS:
                return DecodedAudioChunks(packet_class=PacketClass.HEARTBEAT_OFF)

        self.bone_conduction_active = False
        log_component(_COMPONENT, "BONE_CONDUCTION_CHANGED", active=False)
        return DecodedAudioChunks(
            packet_class=PacketClass.HEARTBEAT_OFF,
            bone_conduction_changed=False,
        )

