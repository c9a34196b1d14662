# pylint: disable=missing-module-docstring,missing-function-docstring

from typing import Any

import numpy as np
import pytest

from ambient_voice.audio import ingest as ingest_mod
from ambient_voice.audio.frames import AudioFrame, AudioSource
from ambient_voice.audio.ingest import AudioIngestAdapter
from ambient_voice.audio.packet_decoder import PacketDecoder
from ambient_voice.audio.queues import IngestQueue
from ambient_voice.constants import MARKER_AUDIO_A, MARKER_HEARTBEAT_OFF
from ambient_voice.protocol.wearable import build_packet
from ambient_voice.session.state import PipelineState


@pytest.fixture
def logs(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, Any]]:
    captured: list[dict[str, Any]] = []

    def fake_log_component(component: str, event_type: str, **fields: Any) -> None:
        captured.append({"component": component, "event_type": event_type, **fields})

    monkeypatch.setattr(ingest_mod, "log_component", fake_log_component)
    return captured


def make_adapter(
    *,
    state: PipelineState | None = None,
    queue: IngestQueue | None = None,
    **kwargs: Any,
) -> tuple[AudioIngestAdapter, IngestQueue, PipelineState]:
    state = state or PipelineState()
    if queue is None:
        queue = IngestQueue(max_depth_s=10.0)
    adapter = AudioIngestAdapter(
        decoder=PacketDecoder(),
        queue=queue,
        state=state,
        clock=lambda: 1234,
        **kwargs,
    )
    return adapter, queue, state


def pcm(samples: int, value: int = 1000) -> bytes:
    return np.full(samples, value, dtype="<i2").tobytes()


# ---------------------------------------------------------------------
# Microphone
# ---------------------------------------------------------------------

def test_microphone_chunk_is_normalized_and_queued():
    adapter, queue, _ = make_adapter()

    assert adapter.submit_microphone(pcm(320, 16384)) is True

    chunk = queue.dequeue()
    assert chunk is not None
    assert chunk.source is AudioSource.MICROPHONE
    assert chunk.ts_ms == 1234
    assert chunk.samples.dtype == np.float32
    assert np.allclose(chunk.samples, 0.5)


def test_microphone_disabled_drops_chunk():
    adapter, queue, state = make_adapter()
    state.microphone_enabled = False

    assert adapter.submit_microphone(pcm(320)) is False
    assert len(queue) == 0


def test_recording_disabled_still_feeds_diagnostics():
    seen: list[AudioFrame] = []
    adapter, queue, state = make_adapter(diagnostic_sink=seen.append)
    state.recording_enabled = False

    assert adapter.submit_microphone(pcm(320)) is False

    assert len(queue) == 0
    assert len(seen) == 1
    assert seen[0].source is AudioSource.MICROPHONE


def test_diagnostic_failure_disables_sink(logs: list[dict[str, Any]]):
    calls = {"n": 0}

    def failing_sink(_frame: AudioFrame) -> None:
        calls["n"] += 1
        raise OSError("disk full")

    adapter, queue, _ = make_adapter(diagnostic_sink=failing_sink)

    adapter.submit_microphone(pcm(320))
    adapter.submit_microphone(pcm(320))

    assert calls["n"] == 1
    assert len(queue) == 2
    assert [e["event_type"] for e in logs] == ["DIAGNOSTIC_SINK_ERROR"]


def test_overflow_is_logged(logs: list[dict[str, Any]]):
    small = IngestQueue(max_depth_s=0.03)
    adapter, queue, _ = make_adapter(queue=small)
    assert queue is small

    assert adapter.submit_microphone(pcm(320)) is True
    assert adapter.submit_microphone(pcm(320)) is False

    assert logs[-1]["event_type"] == "INGEST_CHUNK_DROPPED"
    assert logs[-1]["reason"] == "overflow"
    assert small.drops.overflow == 1


# ---------------------------------------------------------------------
# Wearable
# ---------------------------------------------------------------------

def test_wearable_packets_become_batches():
    adapter, queue, _ = make_adapter()
    packet = build_packet(MARKER_AUDIO_A, np.full(120, 500, dtype="<i2").tobytes())

    accepted = [adapter.submit_wearable(packet) for _ in range(4)]

    assert accepted == [0, 1, 1, 1]
    assert len(queue) == 3
    chunk = queue.dequeue()
    assert chunk is not None
    assert chunk.source is AudioSource.WEARABLE
    assert chunk.samples.size == 512


def test_wearable_ignores_microphone_gate():
    adapter, queue, state = make_adapter()
    state.microphone_enabled = False
    packet = build_packet(MARKER_AUDIO_A)

    for _ in range(4):
        adapter.submit_wearable(packet)

    assert len(queue) == 3


def test_bone_conduction_edge_updates_state_and_callback():
    edges: list[bool] = []
    adapter, _, state = make_adapter(on_bone_conduction=edges.append)
    assert state.bone_conduction_active is True

    adapter.submit_wearable(build_packet(MARKER_HEARTBEAT_OFF))

    assert edges == [False]
    assert state.bone_conduction_active is False


def test_malformed_wearable_packet_is_dropped():
    adapter, queue, _ = make_adapter()

    assert adapter.submit_wearable(b"\xff" * 100) == 0
    assert len(queue) == 0
