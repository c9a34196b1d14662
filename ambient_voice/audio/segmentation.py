"""
Segmentation engine.

Wraps a VoiceActivity capability and turns the inbound float stream into
padded SpeechSegments.

Per chunk:
1. Feed the capability.
2. If speech is detected while in active dialog with bone conduction
   active, signal barge-in.
3. Emit a speech-detected event only when the detection flag changes.
4. Drain every pending segment in FIFO order: drop segments shorter than
   the capability's minimum window, pad the rest with silence and dispatch
   them one at a time (each dispatch is awaited before the next).

Not internally synchronized. The Pipeline's single consumer task is the
only caller.
"""

from __future__ import annotations

from typing import Awaitable, Callable

import numpy as np

from ambient_voice.audio.frames import SpeechSegment
from ambient_voice.audio.vad import VoiceActivity
from ambient_voice.constants import AUDIO_SAMPLE_RATE_HZ, SEGMENT_SILENCE_PADDING_S
from ambient_voice.observability.logger import log_component, now_ms
from ambient_voice.session.state import PipelineState


SegmentHandler = Callable[[SpeechSegment], Awaitable[None]]
SpeechChangedHandler = Callable[[bool], Awaitable[None]]
BargeInHandler = Callable[[], Awaitable[None]]

_COMPONENT = "segmentation"


def pad_with_silence(samples: np.ndarray, padding: int) -> np.ndarray:
    """Return `samples` with `padding` zero samples on both sides."""
    silence = np.zeros(padding, dtype=np.float32)
    return np.concatenate((silence, np.asarray(samples, dtype=np.float32), silence))


class SegmentationEngine:

    def __init__(
        self,
        *,
        vad: VoiceActivity,
        state: PipelineState,
        on_segment: SegmentHandler,
        on_speech_changed: SpeechChangedHandler | None = None,
        on_barge_in: BargeInHandler | None = None,
        padding_s: float = SEGMENT_SILENCE_PADDING_S,
        sample_rate_hz: int = AUDIO_SAMPLE_RATE_HZ,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._vad = vad
        self._state = state
        self._on_segment = on_segment
        self._on_speech_changed = on_speech_changed
        self._on_barge_in = on_barge_in
        self._padding = int(round(padding_s * sample_rate_hz))
        self._sample_rate_hz = sample_rate_hz
        self._clock = clock

        self._speech_detected = False

        self.segments_dispatched = 0
        self.segments_dropped = 0

    @property
    def speech_detected(self) -> bool:
        return self._speech_detected

    async def process_chunk(self, samples: np.ndarray) -> int:
        """
        Run one chunk through the capability.

        Returns the number of segments dispatched.
        """
        self._vad.accept_waveform(samples)

        active = self._vad.is_speech_active()

        if (
            active
            and self._state.in_dialog
            and self._state.bone_conduction_active
            and self._on_barge_in is not None
        ):
            await self._on_barge_in()

        if active != self._speech_detected:
            self._speech_detected = active
            if self._on_speech_changed is not None:
                await self._on_speech_changed(active)

        return await self._drain()

    async def clear(self) -> None:
        """
        Discard buffered audio and every pending segment.

        A detection flag that was set is reported as a change to False.
        """
        self._vad.clear()
        if self._speech_detected:
            self._speech_detected = False
            if self._on_speech_changed is not None:
                await self._on_speech_changed(False)

    async def _drain(self) -> int:
        dispatched = 0
        while self._vad.has_pending_segment():
            speech = self._vad.pop_segment()

            if speech.size < self._vad.min_window:
                self.segments_dropped += 1
                log_component(
                    _COMPONENT,
                    "SEGMENT_DROPPED",
                    reason="below_min_window",
                    samples=int(speech.size),
                    min_window=self._vad.min_window,
                )
                continue

            segment = SpeechSegment(
                samples=pad_with_silence(speech, self._padding),
                speech_start=self._padding,
                speech_end=self._padding + speech.size,
                ts_ms=self._clock(),
                sample_rate_hz=self._sample_rate_hz,
            )
            self.segments_dispatched += 1
            dispatched += 1
            await self._on_segment(segment)

        return dispatched
