# pylint: disable=missing-module-docstring,missing-function-docstring

import pytest

from ambient_voice.orchestrator.commands import LogEvent
from ambient_voice.orchestrator.events import (
    BargeIn,
    CompletionDelta,
    CompletionDone,
    CompletionError,
    EnrollmentStarted,
    Event,
    EventType,
    RecordingStopped,
    UtteranceFinalized,
)
from ambient_voice.orchestrator.reducer import reduce
from ambient_voice.orchestrator.state import DialogueState
from ambient_voice.storage.records import Role


EVENTS: list[Event] = [
    UtteranceFinalized(event_type=EventType.UTTERANCE_FINALIZED, ts_ms=123, text="hello", speaker=Role.USER),
    UtteranceFinalized(event_type=EventType.UTTERANCE_FINALIZED, ts_ms=123, text="  ", speaker=Role.USER),
    CompletionDelta(event_type=EventType.COMPLETION_DELTA, ts_ms=123, run_id=9, delta="x"),
    CompletionDone(event_type=EventType.COMPLETION_DONE, ts_ms=123, run_id=9),
    CompletionError(event_type=EventType.COMPLETION_ERROR, ts_ms=123, run_id=9, reason="boom"),
    BargeIn(event_type=EventType.BARGE_IN, ts_ms=123),
    EnrollmentStarted(event_type=EventType.ENROLLMENT_STARTED, ts_ms=123),
    RecordingStopped(event_type=EventType.RECORDING_STOPPED, ts_ms=123),
]


@pytest.mark.parametrize("event", EVENTS, ids=lambda e: e.event_type.value)
def test_reducer_emits_logevent_with_required_fields(event: Event):
    _, commands = reduce(DialogueState(), event)

    log_events = [c for c in commands if isinstance(c, LogEvent)]
    assert log_events, "Reducer must emit at least one LogEvent"

    payload = log_events[0].event

    assert payload["ts_ms"] == 123
    assert payload["component"] == "dialogue"
    assert payload["event_type"] == event.event_type.value
    assert "mode" in payload
    assert "decision" in payload
    assert "completion_run_id" in payload
    assert "completion_open" in payload
    assert isinstance(payload["details"], dict)


@pytest.mark.parametrize("event", EVENTS, ids=lambda e: e.event_type.value)
def test_logs_come_after_side_effects(event: Event):
    _, commands = reduce(DialogueState(), event)

    kinds = [isinstance(c, LogEvent) for c in commands]
    assert kinds == sorted(kinds)
