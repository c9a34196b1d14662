"""
Recognition orchestrator.

For each dispatched segment:
1. Route: cloud recognizer when in active dialog and cloud is available,
   otherwise the on-device streaming recognizer.
2. Call it under a bounded timeout. Timeouts and exceptions become "".
3. Apply the wake-word homophone correction.
4. Emit an intermediate (isFinal=false) transcript for non-empty text.
5. Finalize: strip brackets, collapse repetition, trim.

The final transcript event is emitted by the dialogue runtime once the
speaker is known and any wake transition has been applied, so that the
event carries the post-transition dialog mode.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum

from ambient_voice.adapters.asr.base import CloudRecognizer, StreamingRecognizer
from ambient_voice.audio.frames import SpeechSegment
from ambient_voice.constants import RECOGNIZER_TIMEOUT_S_DEFAULT
from ambient_voice.observability.logger import log_component
from ambient_voice.observability.metrics import timed
from ambient_voice.recognition.cleanup import correct_wake_word, finalize_transcript
from ambient_voice.session import host_events
from ambient_voice.session.host_events import HostEventSink
from ambient_voice.session.state import PipelineState


_COMPONENT = "recognition"


class RecognitionRoute(str, Enum):
    CLOUD = "cloud"
    ON_DEVICE = "on_device"
    NONE = "none"


@dataclass(frozen=True)
class RecognitionResult:
    route: RecognitionRoute
    raw_text: str
    text: str

    @property
    def empty(self) -> bool:
        return not self.text


class RecognitionOrchestrator:

    def __init__(
        self,
        *,
        streaming: StreamingRecognizer | None,
        cloud: CloudRecognizer | None,
        state: PipelineState,
        emit_host: HostEventSink,
        timeout_s: float = RECOGNIZER_TIMEOUT_S_DEFAULT,
        pipeline_id: str | None = None,
    ) -> None:
        if timeout_s <= 0:
            raise ValueError("timeout_s must be > 0")

        self._streaming = streaming
        self._cloud = cloud
        self._state = state
        self._emit_host = emit_host
        self._timeout_s = timeout_s
        self._pipeline_id = pipeline_id

    def select_route(self) -> RecognitionRoute:
        if (
            self._state.in_dialog
            and self._state.cloud_available
            and self._cloud is not None
            and self._cloud.is_available
        ):
            return RecognitionRoute.CLOUD
        if self._streaming is not None:
            return RecognitionRoute.ON_DEVICE
        return RecognitionRoute.NONE

    async def recognize(self, segment: SpeechSegment) -> RecognitionResult:
        route = self.select_route()
        raw = await self._call(route, segment)

        normalized = correct_wake_word(raw)
        if normalized.strip():
            await self._emit_host(
                host_events.transcript(
                    normalized,
                    is_final=False,
                    dialog_mode=self._state.dialog_mode,
                )
            )

        return RecognitionResult(route=route, raw_text=raw, text=self._finalize(normalized))

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _call(self, route: RecognitionRoute, segment: SpeechSegment) -> str:
        if route is RecognitionRoute.NONE:
            log_component(_COMPONENT, "RECOGNIZER_UNAVAILABLE", route=route.value)
            return ""

        try:
            with timed(
                f"{route.value}_recognition_latency",
                pipeline_id=self._pipeline_id,
                dialog_mode=self._state.dialog_mode.value,
                details={"speech_s": round(segment.speech_duration_s, 3)},
            ):
                if route is RecognitionRoute.CLOUD:
                    assert self._cloud is not None
                    coro = self._cloud.recognize(segment.samples)
                else:
                    assert self._streaming is not None
                    coro = self._streaming.process_audio(segment.samples)
                text = await asyncio.wait_for(coro, timeout=self._timeout_s)
        except asyncio.TimeoutError:
            log_component(
                _COMPONENT,
                "RECOGNIZER_TIMEOUT",
                route=route.value,
                timeout_s=self._timeout_s,
            )
            return ""
        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_component(
                _COMPONENT,
                "RECOGNIZER_FAILED",
                route=route.value,
                error=f"{type(exc).__name__}: {exc}",
            )
            return ""

        return text or ""

    @staticmethod
    def _finalize(text: str) -> str:
        try:
            return finalize_transcript(text)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_component(
                _COMPONENT,
                "TRANSCRIPT_CLEANUP_FAILED",
                error=f"{type(exc).__name__}: {exc}",
            )
            return text.strip()
