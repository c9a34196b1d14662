"""
SegmentationEngine guarantees:
- Segments shorter than the capability's min window are dropped
  and never reach the segment handler
- Dispatched segments are silence-padded on both sides
- Pending segments are dispatched in FIFO order, one at a time
- speech-detected callback fires only on changes
- Barge-in fires only in active dialog with bone conduction active
"""

# pylint: disable=missing-function-docstring

import asyncio
from collections import deque
from typing import Any

import numpy as np
import pytest

from ambient_voice.audio import segmentation as segmentation_mod
from ambient_voice.audio.frames import SpeechSegment
from ambient_voice.audio.segmentation import SegmentationEngine, pad_with_silence
from ambient_voice.orchestrator.enums.dialog_mode import DialogMode
from ambient_voice.session.state import PipelineState


class FakeVad:
    def __init__(self, *, min_window: int = 512) -> None:
        self.min_window = min_window
        self.active = False
        self.pending: deque[np.ndarray] = deque()
        self.accepted = 0
        self.cleared = 0

    def accept_waveform(self, samples: np.ndarray) -> None:
        self.accepted += samples.size

    def is_speech_active(self) -> bool:
        return self.active

    def has_pending_segment(self) -> bool:
        return bool(self.pending)

    def pop_segment(self) -> np.ndarray:
        return self.pending.popleft()

    def clear(self) -> None:
        self.cleared += 1
        self.pending.clear()
        self.active = False


@pytest.fixture(autouse=True)
def quiet_logs(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, Any]]:
    captured: list[dict[str, Any]] = []

    def fake_log_component(component: str, event_type: str, **fields: Any) -> None:
        captured.append({"component": component, "event_type": event_type, **fields})

    monkeypatch.setattr(segmentation_mod, "log_component", fake_log_component)
    return captured


def make_engine(vad: FakeVad, state: PipelineState | None = None):
    segments: list[SpeechSegment] = []
    speech_changes: list[bool] = []
    barge_ins: list[int] = []

    async def on_segment(segment: SpeechSegment) -> None:
        segments.append(segment)

    async def on_speech_changed(active: bool) -> None:
        speech_changes.append(active)

    async def on_barge_in() -> None:
        barge_ins.append(1)

    engine = SegmentationEngine(
        vad=vad,
        state=state or PipelineState(),
        on_segment=on_segment,
        on_speech_changed=on_speech_changed,
        on_barge_in=on_barge_in,
        padding_s=0.1,
        clock=lambda: 99,
    )
    return engine, segments, speech_changes, barge_ins


CHUNK = np.zeros(512, dtype=np.float32)


# ---------------------------------------------------------------------
# Segment dispatch
# ---------------------------------------------------------------------

def test_short_segment_is_dropped(quiet_logs: list[dict[str, Any]]):
    vad = FakeVad(min_window=512)
    vad.pending.append(np.ones(511, dtype=np.float32))
    engine, segments, _, _ = make_engine(vad)

    dispatched = asyncio.run(engine.process_chunk(CHUNK))

    assert dispatched == 0
    assert segments == []
    assert engine.segments_dropped == 1
    assert quiet_logs[-1]["event_type"] == "SEGMENT_DROPPED"


def test_segment_is_padded_with_silence():
    vad = FakeVad()
    speech = np.full(1000, 0.25, dtype=np.float32)
    vad.pending.append(speech)
    engine, segments, _, _ = make_engine(vad)

    asyncio.run(engine.process_chunk(CHUNK))

    (segment,) = segments
    assert segment.speech_start == 1600
    assert segment.speech_end == 2600
    assert segment.samples.size == 1600 + 1000 + 1600
    assert np.array_equal(segment.speech, speech)
    assert not segment.samples[:1600].any()
    assert not segment.samples[-1600:].any()
    assert segment.ts_ms == 99
    assert segment.speech_duration_s == pytest.approx(1000 / 16000)


def test_segments_dispatched_in_order():
    vad = FakeVad()
    vad.pending.extend(
        [np.full(600, i, dtype=np.float32) for i in (1, 2, 3)]
    )
    engine, segments, _, _ = make_engine(vad)

    dispatched = asyncio.run(engine.process_chunk(CHUNK))

    assert dispatched == 3
    assert [s.speech[0] for s in segments] == [1, 2, 3]


def test_pad_with_silence():
    out = pad_with_silence(np.ones(3, dtype=np.float32), 2)

    assert out.tolist() == [0, 0, 1, 1, 1, 0, 0]


# ---------------------------------------------------------------------
# Speech-detected edges / barge-in
# ---------------------------------------------------------------------

def test_speech_changed_fires_only_on_edges():
    vad = FakeVad()
    engine, _, changes, _ = make_engine(vad)

    async def scenario() -> None:
        vad.active = True
        await engine.process_chunk(CHUNK)
        await engine.process_chunk(CHUNK)
        vad.active = False
        await engine.process_chunk(CHUNK)

    asyncio.run(scenario())

    assert changes == [True, False]


@pytest.mark.parametrize(
    "mode,bone,expected",
    [
        (DialogMode.ACTIVE_DIALOG, True, 1),
        (DialogMode.ACTIVE_DIALOG, False, 0),
        (DialogMode.AMBIENT, True, 0),
    ],
)
def test_barge_in_gating(mode: DialogMode, bone: bool, expected: int):
    vad = FakeVad()
    vad.active = True
    state = PipelineState(dialog_mode=mode, bone_conduction_active=bone)
    engine, _, _, barge_ins = make_engine(vad, state)

    asyncio.run(engine.process_chunk(CHUNK))

    assert len(barge_ins) == expected


def test_clear_resets_detection():
    vad = FakeVad()
    engine, _, changes, _ = make_engine(vad)

    async def scenario() -> None:
        vad.active = True
        await engine.process_chunk(CHUNK)
        await engine.clear()
        vad.active = True
        await engine.process_chunk(CHUNK)

    asyncio.run(scenario())

    assert vad.cleared == 1
    assert changes == [True, False, True]


def test_clear_during_speech_reports_speech_ended():
    vad = FakeVad()
    engine, _, changes, _ = make_engine(vad)

    async def scenario() -> None:
        vad.active = True
        await engine.process_chunk(CHUNK)
        await engine.clear()
        # VAD now reports silence, which must not produce a second edge
        await engine.process_chunk(CHUNK)

    asyncio.run(scenario())

    assert changes == [True, False]
    assert engine.speech_detected is False


def test_clear_while_silent_emits_nothing():
    vad = FakeVad()
    engine, _, changes, _ = make_engine(vad)

    asyncio.run(engine.clear())

    assert changes == []
    assert vad.cleared == 1
