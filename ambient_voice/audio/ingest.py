"""
Audio ingest adapter.

Normalizes the two inbound producers into one float32 stream:
- microphone: PCM16 LE mono 16 kHz chunks from the host
- wearable:   244-byte BLE packets, decoded into PCM16 batches

Contract:
- Conversion to float32 is synchronous, per chunk.
- Producers never wait on segmentation or recognition: chunks are placed on
  the IngestQueue and the call returns immediately.
- Every raw PCM chunk is mirrored to the diagnostic sink (when configured)
  before the recording gate is applied.
- Both entry points must be called from the pipeline's event loop. That is
  what serializes access to the PacketDecoder accumulator.

Non-responsibilities:
- No VAD, no segmentation
- No host event delivery (bone-conduction edges are handed to a callback)
"""

from __future__ import annotations

from typing import Callable

from ambient_voice.audio.frames import AudioFrame, AudioSource, IngestChunk
from ambient_voice.audio.packet_decoder import PacketDecoder
from ambient_voice.audio.pcm import pcm16le_to_float32
from ambient_voice.audio.queues import IngestQueue
from ambient_voice.observability.logger import log_component, now_ms
from ambient_voice.session.state import PipelineState


DiagnosticSink = Callable[[AudioFrame], None]

_COMPONENT = "audio_ingest"


class AudioIngestAdapter:

    def __init__(
        self,
        *,
        decoder: PacketDecoder,
        queue: IngestQueue,
        state: PipelineState,
        on_bone_conduction: Callable[[bool], None] | None = None,
        diagnostic_sink: DiagnosticSink | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._decoder = decoder
        self._queue = queue
        self._state = state
        self._on_bone_conduction = on_bone_conduction
        self._diagnostic_sink = diagnostic_sink
        self._clock = clock

        self._state.bone_conduction_active = decoder.bone_conduction_active

    # ------------------------------------------------------------------
    # Producers
    # ------------------------------------------------------------------

    def submit_microphone(self, pcm_bytes: bytes) -> bool:
        """
        Accept one microphone chunk.

        Returns True if the chunk reached the segmentation queue.
        """
        if not self._state.microphone_enabled:
            return False
        return self._accept(AudioSource.MICROPHONE, pcm_bytes, self._clock())

    def submit_wearable(self, packet: bytes) -> int:
        """
        Accept one wearable packet.

        Returns the number of decoded batches that reached the queue.
        """
        ts_ms = self._clock()
        result = self._decoder.decode(packet, ts_ms=ts_ms)

        if result.bone_conduction_changed is not None:
            self._state.bone_conduction_active = result.bone_conduction_changed
            if self._on_bone_conduction is not None:
                self._on_bone_conduction(result.bone_conduction_changed)

        accepted = 0
        for pcm in result.chunks:
            if self._accept(AudioSource.WEARABLE, pcm, ts_ms):
                accepted += 1
        return accepted

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _accept(self, source: AudioSource, pcm_bytes: bytes, ts_ms: int) -> bool:
        if not pcm_bytes:
            return False

        if self._diagnostic_sink is not None:
            try:
                self._diagnostic_sink(
                    AudioFrame(source=source, pcm_bytes=pcm_bytes, ts_ms=ts_ms)
                )
            except (OSError, RuntimeError) as e:
                # Disabled after the first write failure
                log_component(_COMPONENT, "DIAGNOSTIC_SINK_ERROR", error=str(e))
                self._diagnostic_sink = None

        if not self._state.recording_enabled:
            return False

        chunk = IngestChunk(
            source=source,
            samples=pcm16le_to_float32(pcm_bytes),
            ts_ms=ts_ms,
        )
        if not self._queue.enqueue(chunk):
            log_component(
                _COMPONENT,
                "INGEST_CHUNK_DROPPED",
                source=source.value,
                reason="overflow",
                queue=self._queue.snapshot(),
            )
            return False
        return True
