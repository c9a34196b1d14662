"""
PlaybackController guarantees:
- Outbound frames are 8-byte header + one 20 ms PCM frame
- Sequence numbers restart per run; run ids change on stop
- stop() tells the host to flush only when something was playing
- Barge-in interrupts speech and plays the interruption cue, never a cue alone
- Cloud synthesizer only when cloud is available; otherwise on-device
"""

# pylint: disable=missing-function-docstring

import asyncio
import json
import struct
from typing import Any, AsyncIterator

import pytest

from ambient_voice.adapters.tts.base import SpeechSynthesizer
from ambient_voice.audio.cues import AudioCue, CueLibrary
from ambient_voice.audio.playback import PlaybackController
from ambient_voice.constants import AUDIO_BYTES_PER_FRAME_PCM, S2C_FRAME_BYTES_TOTAL
from ambient_voice.observability import logger
from ambient_voice.session.state import PipelineState


class FakeSynth(SpeechSynthesizer):
    def __init__(self, chunks: list[bytes], *, available: bool = True, hang: bool = False,
                 error: Exception | None = None) -> None:
        self.chunks = chunks
        self.available = available
        self.hang = hang
        self.error = error
        self.texts: list[str] = []

    @property
    def is_available(self) -> bool:
        return self.available

    async def stream(self, text: str) -> AsyncIterator[bytes]:
        self.texts.append(text)
        for c in self.chunks:
            await asyncio.sleep(0)
            yield c
        if self.error is not None:
            raise self.error
        if self.hang:
            await asyncio.Event().wait()


@pytest.fixture(autouse=True)
def log_lines(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, Any]]:
    captured: list[dict[str, Any]] = []
    monkeypatch.setattr(logger, "_print", lambda line: captured.append(json.loads(line)))
    return captured


def make(*, cloud: SpeechSynthesizer | None = None, local: SpeechSynthesizer | None = None,
         cloud_available: bool = False):
    frames: list[bytes] = []
    host: list[dict[str, Any]] = []

    async def audio_sink(data: bytes) -> None:
        frames.append(data)

    async def host_sink(event: dict[str, Any]) -> None:
        host.append(event)

    controller = PlaybackController(
        audio_sink=audio_sink,
        host_sink=host_sink,
        state=PipelineState(cloud_available=cloud_available),
        cues=CueLibrary(),
        cloud=cloud,
        local=local,
    )
    return controller, frames, host


def header(frame: bytes) -> tuple[int, int]:
    return struct.unpack("<II", frame[:8])


async def drain(controller: PlaybackController) -> None:
    async def wait() -> None:
        while controller.is_playing:
            await asyncio.sleep(0.001)

    await asyncio.wait_for(wait(), timeout=1.0)


# ---------------------------------------------------------------------
# Framing
# ---------------------------------------------------------------------

def test_speech_is_framed_with_carry_and_padding():
    # 1.5 frames then 1 frame: carry joins chunks, final half frame is padded
    pcm = b"\x01\x00" * (AUDIO_BYTES_PER_FRAME_PCM // 2)
    local = FakeSynth([pcm + pcm[: AUDIO_BYTES_PER_FRAME_PCM // 2], pcm])
    controller, frames, _ = make(local=local)

    async def scenario() -> None:
        controller.speak(text="hello", completion_run_id=1)
        assert controller.is_speaking
        await drain(controller)

    asyncio.run(scenario())

    assert len(frames) == 3
    assert all(len(f) == S2C_FRAME_BYTES_TOTAL for f in frames)
    assert [header(f) for f in frames] == [(1, 1), (2, 1), (3, 1)]
    assert frames[-1][8 + AUDIO_BYTES_PER_FRAME_PCM // 2:] == b"\x00" * (AUDIO_BYTES_PER_FRAME_PCM // 2)
    assert controller.frames_sent == 3


def test_blank_text_is_not_queued():
    controller, _, _ = make(local=FakeSynth([b"\x00\x00"]))

    controller.speak(text="   ")

    assert not controller.is_playing


def test_cue_plays_whole_frames():
    controller, frames, _ = make()

    async def scenario() -> None:
        controller.play_cue(AudioCue.EXIT_DIALOG)
        assert controller.is_playing
        assert not controller.is_speaking
        await drain(controller)

    asyncio.run(scenario())

    # 160 ms tone = 8 frames
    assert len(frames) == 8


# ---------------------------------------------------------------------
# Synthesizer selection
# ---------------------------------------------------------------------

def test_cloud_preferred_when_available():
    cloud, local = FakeSynth([b"\x00\x00"]), FakeSynth([b"\x00\x00"])
    controller, _, _ = make(cloud=cloud, local=local, cloud_available=True)

    async def scenario() -> None:
        controller.speak(text="hi")
        await drain(controller)

    asyncio.run(scenario())

    assert cloud.texts == ["hi"]
    assert local.texts == []


@pytest.mark.parametrize("cloud_available,cloud_ready", [(False, True), (True, False)])
def test_local_used_without_cloud(cloud_available: bool, cloud_ready: bool):
    cloud = FakeSynth([b"\x00\x00"], available=cloud_ready)
    local = FakeSynth([b"\x00\x00"])
    controller, _, _ = make(cloud=cloud, local=local, cloud_available=cloud_available)

    async def scenario() -> None:
        controller.speak(text="hi")
        await drain(controller)

    asyncio.run(scenario())

    assert local.texts == ["hi"]
    assert cloud.texts == []


def test_no_synthesizer_drops_text(log_lines: list[dict[str, Any]]):
    controller, frames, _ = make()

    async def scenario() -> None:
        controller.speak(text="hi")
        await drain(controller)

    asyncio.run(scenario())

    assert frames == []
    assert any(e["event_type"] == "TTS_UNAVAILABLE" for e in log_lines)


def test_synthesizer_failure_is_logged_and_next_item_plays(log_lines: list[dict[str, Any]]):
    local = FakeSynth([], error=RuntimeError("tts down"))
    controller, frames, _ = make(local=local)

    async def scenario() -> None:
        controller.speak(text="first")
        controller.play_cue(AudioCue.EXIT_DIALOG)
        await drain(controller)

    asyncio.run(scenario())

    assert any(e["event_type"] == "TTS_FAILED" for e in log_lines)
    assert len(frames) == 8


# ---------------------------------------------------------------------
# Stop / interrupt
# ---------------------------------------------------------------------

def test_stop_flushes_host_and_bumps_run_id():
    pcm = b"\x00" * AUDIO_BYTES_PER_FRAME_PCM
    controller, frames, host = make(local=FakeSynth([pcm], hang=True))

    async def scenario() -> None:
        controller.speak(text="long answer")
        controller.speak(text="queued")
        while not frames:
            await asyncio.sleep(0.001)
        assert await controller.stop("exit_phrase") is True
        assert not controller.is_playing

        controller.play_cue(AudioCue.EXIT_DIALOG)
        await drain(controller)

    asyncio.run(scenario())

    assert host == [{"type": "playback_stop", "runId": 1}]
    assert controller.run_id == 2
    assert header(frames[0]) == (1, 1)
    # cue frames use the new run id and restart the sequence
    assert header(frames[1]) == (1, 2)


def test_stop_when_idle_sends_nothing():
    controller, _, host = make()

    stopped = asyncio.run(controller.stop("recording_stopped"))

    assert stopped is False
    assert host == []


def test_interrupt_stops_speech_and_plays_cue():
    pcm = b"\x00" * AUDIO_BYTES_PER_FRAME_PCM
    controller, frames, host = make(local=FakeSynth([pcm], hang=True))

    async def scenario() -> None:
        controller.speak(text="talking")
        while not frames:
            await asyncio.sleep(0.001)
        assert await controller.interrupt() is True
        await drain(controller)

    asyncio.run(scenario())

    assert host == [{"type": "playback_stop", "runId": 1}]
    # 1 speech frame, then the 90 ms interruption cue padded to 5 frames
    assert len(frames) == 6
    assert {header(f)[1] for f in frames[1:]} == {2}


def test_interrupt_without_speech_does_nothing():
    controller, frames, host = make()

    async def scenario() -> bool:
        controller.play_cue(AudioCue.EXIT_DIALOG)
        result = await controller.interrupt()
        await drain(controller)
        return result

    assert asyncio.run(scenario()) is False
    assert host == []
    assert len(frames) == 8
