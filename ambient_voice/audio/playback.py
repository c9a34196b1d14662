"""
Playback controller.

Single owner of outbound audio. Speech chunks and cues are queued and
played one at a time by one worker task, so playback never overlaps.

Playback runs:
- Every frame is sent with the current playback run id and a sequence
  number that restarts at SEQ_NUM_START for each run.
- stop() discards queued items, cancels the worker mid-item, bumps the run
  id and tells the host to flush whatever it already buffered.
- Items queued under an older run id are skipped.

Synthesizer selection (per speech item):
- cloud synthesizer when cloud is available for this pipeline
- otherwise the on-device synthesizer
- otherwise the item is dropped with a log record
"""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass
from typing import Awaitable, Callable, Deque

from ambient_voice.adapters.tts.base import SpeechSynthesizer
from ambient_voice.audio.cues import AudioCue, CueLibrary
from ambient_voice.audio.frame_generator import split_pcm_into_frames
from ambient_voice.constants import SEQ_NUM_START
from ambient_voice.observability.logger import log_component
from ambient_voice.observability.metrics import timed
from ambient_voice.protocol.binary import encode_s2c_frame, next_seq
from ambient_voice.session import host_events
from ambient_voice.session.host_events import HostEventSink
from ambient_voice.session.state import PipelineState


AudioSink = Callable[[bytes], Awaitable[None]]

_COMPONENT = "playback"


@dataclass(frozen=True)
class _PlaybackItem:
    run_id: int
    text: str | None = None
    cue: AudioCue | None = None
    completion_run_id: int | None = None


class PlaybackController:

    def __init__(
        self,
        *,
        audio_sink: AudioSink,
        host_sink: HostEventSink,
        state: PipelineState,
        cues: CueLibrary,
        cloud: SpeechSynthesizer | None = None,
        local: SpeechSynthesizer | None = None,
    ) -> None:
        self._audio_sink = audio_sink
        self._host_sink = host_sink
        self._state = state
        self._cues = cues
        self._cloud = cloud
        self._local = local

        self._queue: Deque[_PlaybackItem] = deque()
        self._worker: asyncio.Task[None] | None = None
        self._run_id = 1
        self._seq = SEQ_NUM_START
        self._current: _PlaybackItem | None = None

        self.frames_sent = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def run_id(self) -> int:
        return self._run_id

    @property
    def is_playing(self) -> bool:
        """True while an item is being played or waits in the queue."""
        return self._current is not None or bool(self._queue)

    @property
    def is_speaking(self) -> bool:
        """True while synthesized speech (not a cue) is playing or queued."""
        if self._current is not None and self._current.text is not None:
            return True
        return any(item.text is not None for item in self._queue)

    def speak(self, *, text: str, completion_run_id: int | None = None) -> None:
        if not text.strip():
            return
        self._enqueue(
            _PlaybackItem(run_id=self._run_id, text=text, completion_run_id=completion_run_id)
        )

    def play_cue(self, cue: AudioCue) -> None:
        self._enqueue(_PlaybackItem(run_id=self._run_id, cue=cue))

    async def stop(self, reason: str) -> bool:
        """
        Stop current playback and drop everything queued.

        Returns True if anything was playing or queued.
        """
        was_playing = self.is_playing
        stopped_run_id = self._run_id

        self._drain_queue()
        await self._cancel_worker()

        self._run_id = next_seq(self._run_id)
        self._seq = SEQ_NUM_START

        if was_playing:
            await self._host_sink(host_events.playback_stop(stopped_run_id))

        log_component(
            _COMPONENT,
            "PLAYBACK_STOPPED",
            reason=reason,
            run_id=stopped_run_id,
            was_playing=was_playing,
        )
        return was_playing

    async def interrupt(self) -> bool:
        """
        Barge-in: stop speech if any is playing, then play the interruption cue.

        Returns True if speech was stopped.
        """
        if not self.is_speaking:
            return False
        await self.stop("barge_in")
        self.play_cue(AudioCue.INTERRUPTION)
        return True

    async def close(self) -> None:
        self._drain_queue()
        await self._cancel_worker()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _enqueue(self, item: _PlaybackItem) -> None:
        self._queue.append(item)
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._run_worker())

    def _drain_queue(self) -> None:
        self._queue.clear()

    async def _cancel_worker(self) -> None:
        task = self._worker
        self._worker = None
        self._current = None
        if task is None or task.done():
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run_worker(self) -> None:
        try:
            while self._queue:
                item = self._queue.popleft()
                if item.run_id != self._run_id:
                    continue

                self._current = item
                try:
                    await self._play(item)
                finally:
                    self._current = None
        except asyncio.CancelledError:
            # stop() cancels mid-item
            pass

    async def _play(self, item: _PlaybackItem) -> None:
        if item.cue is not None:
            await self._send_pcm(self._cues.pcm(item.cue), item.run_id, final=True)
            log_component(_COMPONENT, "CUE_PLAYED", cue=item.cue.value, run_id=item.run_id)
            return

        assert item.text is not None
        synthesizer = self._select_synthesizer()
        if synthesizer is None:
            log_component(
                _COMPONENT,
                "TTS_UNAVAILABLE",
                completion_run_id=item.completion_run_id,
                text_len=len(item.text),
            )
            return

        carry = b""
        try:
            with timed(
                "tts_chunk_duration",
                details={
                    "synthesizer": type(synthesizer).__name__,
                    "completion_run_id": item.completion_run_id,
                },
            ):
                async for pcm in synthesizer.stream(item.text):
                    carry = await self._send_pcm(carry + pcm, item.run_id, final=False)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_component(
                _COMPONENT,
                "TTS_FAILED",
                synthesizer=type(synthesizer).__name__,
                completion_run_id=item.completion_run_id,
                error=f"{type(exc).__name__}: {exc}",
            )
            return

        await self._send_pcm(carry, item.run_id, final=True)

    def _select_synthesizer(self) -> SpeechSynthesizer | None:
        if (
            self._state.cloud_available
            and self._cloud is not None
            and self._cloud.is_available
        ):
            return self._cloud
        if self._local is not None and self._local.is_available:
            return self._local
        return None

    async def _send_pcm(self, pcm: bytes, run_id: int, *, final: bool) -> bytes:
        """Send every whole frame; return the unsent remainder."""
        frames, remainder = split_pcm_into_frames(pcm, pad_final=final)
        for frame in frames:
            payload = encode_s2c_frame(
                sequence_num=self._seq,
                run_id=run_id,
                pcm_bytes=frame,
            )
            self._seq = next_seq(self._seq)
            self.frames_sent += 1
            await self._audio_sink(payload)
        return remainder
