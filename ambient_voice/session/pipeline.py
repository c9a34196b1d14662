"""
Pipeline: owner of every component of one ambient voice pipeline.

One Pipeline == one host connection. Nothing is shared between instances.

Data flow:
    microphone PCM / wearable packets
        -> AudioIngestAdapter (PacketDecoder, float32 conversion, gating)
        -> IngestQueue
        -> consumer task
        -> SegmentationEngine (VoiceActivity)
        -> per segment, strictly in order:
             RecognitionOrchestrator
             SpeakerAttributor (embedding in a worker thread)
             EnrollmentFlow (while enrolling) or DialogueRuntime

Serialization:
- Ingest entry points are synchronous and must be called on the event loop.
- Only the consumer task touches the SegmentationEngine.
- Segments are processed one at a time; recognition may suspend the loop.

Failure containment:
- Any exception while processing a segment is logged and the segment is
  skipped. The consumer task keeps running.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Coroutine
from uuid import uuid4

import numpy as np

from ambient_voice.adapters.asr.base import CloudRecognizer, StreamingRecognizer
from ambient_voice.adapters.llm.base import ChatBackend
from ambient_voice.adapters.tts.base import SpeechSynthesizer
from ambient_voice.audio.cues import CueLibrary
from ambient_voice.audio.diagnostics import WavDiagnosticSink
from ambient_voice.audio.frames import SpeechSegment
from ambient_voice.audio.ingest import AudioIngestAdapter, DiagnosticSink
from ambient_voice.audio.packet_decoder import PacketDecoder
from ambient_voice.audio.playback import AudioSink, PlaybackController
from ambient_voice.audio.queues import IngestQueue
from ambient_voice.audio.segmentation import SegmentationEngine
from ambient_voice.audio.transforms import CodecTransforms
from ambient_voice.audio.vad import VoiceActivity
from ambient_voice.constants import (
    INGEST_QUEUE_MAX_S,
    RECOGNIZER_TIMEOUT_S_DEFAULT,
    SUMMARY_CHECK_INTERVAL_S,
)
from ambient_voice.observability.logger import log_component, now_ms
from ambient_voice.orchestrator.events import (
    BargeIn,
    EnrollmentStarted,
    EventType,
    RecordingStopped,
    UtteranceFinalized,
)
from ambient_voice.orchestrator.runtime import DialogueRuntime
from ambient_voice.recognition.orchestrator import RecognitionOrchestrator, RecognitionResult
from ambient_voice.session import host_events
from ambient_voice.session.control import (
    ControlMessage,
    ControlSignal,
    ControlSignalError,
    parse_control_message,
)
from ambient_voice.session.host_events import HostEventSink
from ambient_voice.session.state import PipelineState
from ambient_voice.session.summary import DialogueSummaryTracker, Summarizer
from ambient_voice.speaker.attributor import SpeakerAttributor
from ambient_voice.speaker.enrollment import EnrollmentFlow
from ambient_voice.speaker.extractor import EmbeddingExtractor
from ambient_voice.speaker.profiles import InMemorySpeakerProfileStore, SpeakerProfileStore
from ambient_voice.storage.records import InMemoryRecordStore, RecordStore


_COMPONENT = "pipeline"


def _new_pipeline_id() -> str:
    return f"pipe_{uuid4().hex[:12]}"


class Pipeline:

    def __init__(
        self,
        *,
        host_sink: HostEventSink,
        audio_sink: AudioSink,
        vad: VoiceActivity,
        streaming_recognizer: StreamingRecognizer | None = None,
        cloud_recognizer: CloudRecognizer | None = None,
        extractor: EmbeddingExtractor | None = None,
        chat_backend: ChatBackend | None = None,
        cloud_synthesizer: SpeechSynthesizer | None = None,
        local_synthesizer: SpeechSynthesizer | None = None,
        profiles: SpeakerProfileStore | None = None,
        records: RecordStore | None = None,
        transforms: CodecTransforms | None = None,
        cues: CueLibrary | None = None,
        diagnostic_sink: DiagnosticSink | None = None,
        summarizer: Summarizer | None = None,
        cloud_available: bool = False,
        recognizer_timeout_s: float = RECOGNIZER_TIMEOUT_S_DEFAULT,
        summary_interval_s: float = SUMMARY_CHECK_INTERVAL_S,
        pipeline_id: str | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.pipeline_id = pipeline_id or _new_pipeline_id()
        self._host_sink = host_sink
        self._clock = clock
        self._summary_interval_s = summary_interval_s
        self._diagnostic_sink = diagnostic_sink

        self.state = PipelineState(cloud_available=cloud_available)
        self.records: RecordStore = records if records is not None else InMemoryRecordStore(clock=clock)
        self.profiles: SpeakerProfileStore = (
            profiles if profiles is not None else InMemorySpeakerProfileStore()
        )

        # Ingest
        self.decoder = PacketDecoder(transforms=transforms)
        self.queue = IngestQueue(max_depth_s=INGEST_QUEUE_MAX_S)
        self.ingest = AudioIngestAdapter(
            decoder=self.decoder,
            queue=self.queue,
            state=self.state,
            on_bone_conduction=self._on_bone_conduction,
            diagnostic_sink=diagnostic_sink,
            clock=clock,
        )

        # Segmentation
        self.segmentation = SegmentationEngine(
            vad=vad,
            state=self.state,
            on_segment=self._on_segment,
            on_speech_changed=self._on_speech_changed,
            on_barge_in=self._on_barge_in,
            clock=clock,
        )

        # Recognition / speakers
        self.recognition = RecognitionOrchestrator(
            streaming=streaming_recognizer,
            cloud=cloud_recognizer,
            state=self.state,
            emit_host=host_sink,
            timeout_s=recognizer_timeout_s,
            pipeline_id=self.pipeline_id,
        )
        self.attributor = SpeakerAttributor(
            extractor=extractor,
            profiles=self.profiles,
            records=self.records,
        )
        self.enrollment = EnrollmentFlow(profiles=self.profiles)

        # Dialogue
        # Without an in-process summarizer, closed windows go to the host
        self.summary = DialogueSummaryTracker(
            summarizer=summarizer if summarizer is not None else self._announce_summary_window,
            clock=clock,
        )
        self.playback = PlaybackController(
            audio_sink=audio_sink,
            host_sink=host_sink,
            state=self.state,
            cues=cues or CueLibrary(),
            cloud=cloud_synthesizer,
            local=local_synthesizer,
        )
        self.runtime = DialogueRuntime(
            state=self.state,
            records=self.records,
            host_sink=host_sink,
            playback=self.playback,
            chat_backend=chat_backend,
            clear_pending_segments=self.segmentation.clear,
            summary=self.summary,
            pipeline_id=self.pipeline_id,
        )

        self._consumer: asyncio.Task[None] | None = None
        self._summary_timer: asyncio.Task[None] | None = None
        self._background: set[asyncio.Task[None]] = set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        if self._consumer is not None:
            return
        self._consumer = asyncio.create_task(self._consume())
        self._summary_timer = asyncio.create_task(self._summary_loop())
        log_component(
            _COMPONENT,
            "PIPELINE_STARTED",
            pipeline_id=self.pipeline_id,
            state=self.state.snapshot(),
        )

    async def stop(self) -> None:
        for task in (self._consumer, self._summary_timer, *self._background):
            if task is None:
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._consumer = None
        self._summary_timer = None
        self._background.clear()

        await self.runtime.shutdown()
        if isinstance(self._diagnostic_sink, WavDiagnosticSink):
            self._diagnostic_sink.close()

        log_component(
            _COMPONENT,
            "PIPELINE_STOPPED",
            pipeline_id=self.pipeline_id,
            queue=self.queue.snapshot(),
            decoder=vars(self.decoder.stats),
        )

    # ------------------------------------------------------------------
    # Ingest entry points (event loop only)
    # ------------------------------------------------------------------

    def submit_microphone(self, pcm_bytes: bytes) -> bool:
        return self.ingest.submit_microphone(pcm_bytes)

    def submit_wearable(self, packet: bytes) -> int:
        return self.ingest.submit_wearable(packet)

    async def drain(self) -> int:
        """
        Run every queued chunk through segmentation now.

        Used when no consumer task is running (tests, offline replay).
        Returns the number of chunks processed.
        """
        processed = 0
        while True:
            chunk = self.queue.dequeue()
            if chunk is None:
                return processed
            await self._process_chunk(chunk.samples)
            processed += 1

    # ------------------------------------------------------------------
    # Control signals
    # ------------------------------------------------------------------

    async def handle_control_text(self, payload: str | bytes) -> bool:
        """Parse and apply one control message. Returns False if rejected."""
        try:
            message = parse_control_message(payload)
        except ControlSignalError as e:
            log_component(
                _COMPONENT,
                "CONTROL_SIGNAL_REJECTED",
                pipeline_id=self.pipeline_id,
                error=str(e),
            )
            return False
        await self.handle_control(message)
        return True

    async def handle_control(self, message: ControlMessage) -> None:
        signal = message.signal

        if signal is ControlSignal.START_RECORDING:
            self.state.recording_enabled = True

        elif signal is ControlSignal.STOP_RECORDING:
            self.state.recording_enabled = False
            self.queue.clear()
            await self.segmentation.clear()
            await self.runtime.handle_event(
                RecordingStopped(event_type=EventType.RECORDING_STOPPED, ts_ms=self._clock())
            )

        elif signal is ControlSignal.START_MICROPHONE:
            self.state.microphone_enabled = True

        elif signal is ControlSignal.STOP_MICROPHONE:
            self.state.microphone_enabled = False

        elif signal is ControlSignal.BEGIN_ENROLLMENT:
            await self.runtime.handle_event(
                EnrollmentStarted(event_type=EventType.ENROLLMENT_STARTED, ts_ms=self._clock())
            )
            self.enrollment.start()
            self.state.enrollment_in_progress = True
            self.state.enrollment_step = self.enrollment.step

        elif signal is ControlSignal.ENROLLMENT_DONE:
            self.enrollment.abort()
            self.state.enrollment_in_progress = False

        elif signal is ControlSignal.DEVICE_CONNECT:
            self.state.device_id = message.device_id
            self.state.microphone_enabled = False
            self.decoder.reset()

        log_component(
            _COMPONENT,
            "CONTROL_SIGNAL_APPLIED",
            pipeline_id=self.pipeline_id,
            signal=signal.value,
            state=self.state.snapshot(),
        )
        await self._host_sink(host_events.ack(signal.value))

    # ------------------------------------------------------------------
    # Consumer
    # ------------------------------------------------------------------

    async def _consume(self) -> None:
        while True:
            chunk = await self.queue.get()
            await self._process_chunk(chunk.samples)

    async def _process_chunk(self, samples: np.ndarray) -> None:
        try:
            await self.segmentation.process_chunk(samples)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_component(
                _COMPONENT,
                "INGEST_LOOP_ERROR",
                pipeline_id=self.pipeline_id,
                error=f"{type(exc).__name__}: {exc}",
            )

    async def _summary_loop(self) -> None:
        while True:
            await asyncio.sleep(self._summary_interval_s)
            await self.summary.check()

    async def _announce_summary_window(self, start_ts_ms: int, end_ts_ms: int) -> None:
        await self._host_sink(host_events.summary_window(start_ts_ms, end_ts_ms))

    # ------------------------------------------------------------------
    # Segment handling
    # ------------------------------------------------------------------

    async def _on_segment(self, segment: SpeechSegment) -> None:
        generation = self.enrollment.generation
        try:
            result = await self.recognition.recognize(segment)

            if self.state.enrollment_in_progress:
                await self._enroll(result, segment, generation)
                return

            if result.empty:
                return

            embedding = await asyncio.to_thread(self.attributor.embed, segment.speech)
            speaker = self.attributor.identify(embedding)

            await self.runtime.handle_event(
                UtteranceFinalized(
                    event_type=EventType.UTTERANCE_FINALIZED,
                    ts_ms=segment.ts_ms,
                    text=result.text,
                    speaker=speaker,
                )
            )
        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_component(
                _COMPONENT,
                "SEGMENT_PROCESSING_ERROR",
                pipeline_id=self.pipeline_id,
                error=f"{type(exc).__name__}: {exc}",
                speech_s=round(segment.speech_duration_s, 3),
            )

    async def _enroll(self, result: RecognitionResult, segment: SpeechSegment, generation: int) -> None:
        if result.empty:
            log_component(
                _COMPONENT,
                "ENROLLMENT_SEGMENT_SKIPPED",
                pipeline_id=self.pipeline_id,
                reason="empty_text",
            )
            return

        embedding = await asyncio.to_thread(self.attributor.embed, segment.speech)

        # Aborted or restarted while this segment was in flight: discard
        if not self.enrollment.in_progress or self.enrollment.generation != generation:
            log_component(
                _COMPONENT,
                "ENROLLMENT_SEGMENT_SKIPPED",
                pipeline_id=self.pipeline_id,
                reason="stale_attempt",
            )
            return

        outcome = self.enrollment.submit(result.text, embedding)
        self.state.enrollment_in_progress = self.enrollment.in_progress
        self.state.enrollment_step = self.enrollment.step

        await self._host_sink(host_events.enrollment(outcome.to_payload()))

    # ------------------------------------------------------------------
    # Segmentation callbacks
    # ------------------------------------------------------------------

    async def _on_speech_changed(self, active: bool) -> None:
        if active:
            self.summary.record_speech(self._clock())
        await self._host_sink(host_events.speech_detected(active))

    async def _on_barge_in(self) -> None:
        dialogue = self.runtime.state
        if not (
            self.playback.is_speaking
            or (dialogue.completion_open and not dialogue.speech_muted)
        ):
            return
        await self.runtime.handle_event(
            BargeIn(event_type=EventType.BARGE_IN, ts_ms=self._clock())
        )

    def _on_bone_conduction(self, active: bool) -> None:
        self._spawn(self._host_sink(host_events.bone_conduction(active)))

    def _spawn(self, coro: Coroutine[object, object, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

