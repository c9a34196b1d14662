"""
Pure dialogue reducer.

(state, event) -> (new_state, commands)

Rules:
- Pure: no side effects, no IO, no clocks.
- Deterministic: output depends only on inputs.
- Total: every event is handled or explicitly ignored (logged).

Modes:
    AMBIENT --(user utterance with a wake phrase)--> ACTIVE_DIALOG
    ACTIVE_DIALOG --(user utterance with an exit phrase)--> AMBIENT
        clear pending segments, cancel the open completion,
        stop playback, play the exit cue once

At most one completion is open. Opening a new one cancels the previous
first. Completion events for any other run_id are stale and ignored.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Sequence

from ambient_voice.audio.cues import AudioCue
from ambient_voice.constants import EXIT_PHRASES, WAKE_PHRASES
from ambient_voice.orchestrator.chunking import drain_chunks
from ambient_voice.orchestrator.commands import (
    AppendSession,
    CancelCompletion,
    ClearPendingSegments,
    Command,
    InterruptPlayback,
    LogEvent,
    OpenCompletion,
    PersistTurn,
    PlayCue,
    SendJSONToHost,
    Speak,
    StopPlayback,
)
from ambient_voice.orchestrator.enums.dialog_mode import DialogMode
from ambient_voice.orchestrator.events import (
    BargeIn,
    CompletionDelta,
    CompletionDone,
    CompletionError,
    EnrollmentStarted,
    Event,
    RecordingStopped,
    UtteranceFinalized,
)
from ambient_voice.orchestrator.state import DialogueState
from ambient_voice.recognition.cleanup import contains_phrase
from ambient_voice.session import host_events
from ambient_voice.storage.records import RecordCategory, Role


Result = tuple[DialogueState, tuple[Command, ...]]


def reduce(
    state: DialogueState,
    event: Event,
    *,
    wake_phrases: Sequence[str] = WAKE_PHRASES,
    exit_phrases: Sequence[str] = EXIT_PHRASES,
) -> Result:
    if isinstance(event, UtteranceFinalized):
        return _on_utterance(state, event, wake_phrases, exit_phrases)
    if isinstance(event, CompletionDelta):
        return _on_delta(state, event)
    if isinstance(event, CompletionDone):
        return _on_done(state, event)
    if isinstance(event, CompletionError):
        return _on_error(state, event)
    if isinstance(event, BargeIn):
        return _on_barge_in(state, event)
    if isinstance(event, (EnrollmentStarted, RecordingStopped)):
        return _on_leave_dialog(state, event)

    return state, (_log(state, event, "ignore", {"reason": "unhandled_event"}),)


# =============================================================================
# Utterances
# =============================================================================

def _on_utterance(
    state: DialogueState,
    event: UtteranceFinalized,
    wake_phrases: Sequence[str],
    exit_phrases: Sequence[str],
) -> Result:
    text = event.text.strip()
    if not text:
        return state, (_log(state, event, "ignore", {"reason": "empty_text"}),)

    was_active = state.mode is DialogMode.ACTIVE_DIALOG
    new_state = state
    commands: list[Command] = []
    logs: list[Command] = []

    if (
        event.speaker is Role.USER
        and not was_active
        and contains_phrase(text, wake_phrases)
    ):
        new_state = replace(new_state, mode=DialogMode.ACTIVE_DIALOG)
        logs.append(_state_changed(state, new_state, event, "wake_phrase"))

    commands.append(
        SendJSONToHost(
            host_events.transcript(
                text,
                is_final=True,
                dialog_mode=new_state.mode,
                speaker=event.speaker.value,
            )
        )
    )

    if event.speaker is not Role.USER:
        commands += [
            PersistTurn(role=Role.OTHERS, text=text, category=RecordCategory.DEFAULT),
            AppendSession(role=Role.OTHERS, text=text),
        ]
        logs.append(_log(new_state, event, "persist_others"))
        return new_state, _logs_last(tuple(commands + logs))

    if new_state.mode is DialogMode.AMBIENT:
        commands += [
            PersistTurn(role=Role.USER, text=text, category=RecordCategory.DEFAULT),
            AppendSession(role=Role.USER, text=text),
        ]
        logs.append(_log(new_state, event, "persist_ambient"))
        return new_state, _logs_last(tuple(commands + logs))

    commands += [
        PersistTurn(role=Role.USER, text=text, category=RecordCategory.DIALOGUE),
        AppendSession(role=Role.USER, text=text),
    ]

    if was_active and contains_phrase(text, exit_phrases):
        exited = _close_completion(replace(new_state, mode=DialogMode.AMBIENT))
        if new_state.completion_open:
            commands.append(CancelCompletion(run_id=new_state.completion_run_id))
        commands += [
            ClearPendingSegments(),
            StopPlayback(reason="exit_phrase"),
            PlayCue(cue=AudioCue.EXIT_DIALOG),
        ]
        logs.append(_state_changed(new_state, exited, event, "exit_phrase"))
        return exited, _logs_last(tuple(commands + logs))

    if new_state.completion_open:
        commands.append(CancelCompletion(run_id=new_state.completion_run_id))
        logs.append(
            _log(new_state, event, "cancel_previous_completion",
                 {"run_id": new_state.completion_run_id})
        )

    run_id = new_state.completion_run_id + 1
    opened = replace(
        _close_completion(new_state),
        completion_run_id=run_id,
        completion_open=True,
    )
    commands.append(OpenCompletion(run_id=run_id, text=text))
    logs.append(_log(opened, event, "open_completion", {"run_id": run_id}))
    return opened, _logs_last(tuple(commands + logs))


# =============================================================================
# Completion stream
# =============================================================================

def _is_live(state: DialogueState, run_id: int) -> bool:
    return state.completion_open and run_id == state.completion_run_id


def _on_delta(state: DialogueState, event: CompletionDelta) -> Result:
    if not _is_live(state, event.run_id):
        return state, (_log(state, event, "ignore", {"reason": "stale_run_id", "run_id": event.run_id}),)

    if not event.delta:
        return state, ()

    reply = state.reply_text + event.delta
    commands: list[Command] = [
        SendJSONToHost(
            host_events.completion(reply, is_finished=False, delta=event.delta)
        )
    ]

    if state.speech_muted:
        return replace(state, reply_text=reply), tuple(commands)

    chunks, remainder = drain_chunks(state.speech_buffer + event.delta)
    commands += [Speak(run_id=event.run_id, text=c) for c in chunks]

    return replace(state, reply_text=reply, speech_buffer=remainder), tuple(commands)


def _on_done(state: DialogueState, event: CompletionDone) -> Result:
    if not _is_live(state, event.run_id):
        return state, (_log(state, event, "ignore", {"reason": "stale_run_id", "run_id": event.run_id}),)

    commands: list[Command] = []
    if not state.speech_muted and state.speech_buffer.strip():
        commands.append(Speak(run_id=event.run_id, text=state.speech_buffer.strip()))

    reply = state.reply_text
    commands.append(
        SendJSONToHost(host_events.completion(reply, is_finished=True, delta=""))
    )
    if reply.strip():
        commands += [
            PersistTurn(role=Role.ASSISTANT, text=reply, category=RecordCategory.DIALOGUE),
            AppendSession(role=Role.ASSISTANT, text=reply),
        ]

    new_state = _close_completion(state)
    commands.append(
        _log(new_state, event, "completion_done",
             {"run_id": event.run_id, "reply_len": len(reply)})
    )
    return new_state, tuple(commands)


def _on_error(state: DialogueState, event: CompletionError) -> Result:
    if not _is_live(state, event.run_id):
        return state, (_log(state, event, "ignore", {"reason": "stale_run_id", "run_id": event.run_id}),)

    new_state = _close_completion(state)
    return new_state, (
        _log(new_state, event, "completion_failed",
             {"run_id": event.run_id, "reason": event.reason}),
    )


# =============================================================================
# Playback / control
# =============================================================================

def _on_barge_in(state: DialogueState, event: BargeIn) -> Result:
    if state.mode is not DialogMode.ACTIVE_DIALOG:
        return state, (_log(state, event, "ignore", {"reason": "not_in_dialog"}),)

    new_state = replace(state, speech_muted=state.completion_open, speech_buffer="")
    return new_state, (
        InterruptPlayback(),
        _log(new_state, event, "barge_in",
             {"run_id": state.completion_run_id, "muted": new_state.speech_muted}),
    )


def _on_leave_dialog(state: DialogueState, event: Event) -> Result:
    commands: list[Command] = []
    if state.completion_open:
        commands.append(CancelCompletion(run_id=state.completion_run_id))

    new_state = _close_completion(replace(state, mode=DialogMode.AMBIENT))
    commands.append(StopPlayback(reason=event.event_type.value.lower()))

    if state.mode is not new_state.mode:
        commands.append(_state_changed(state, new_state, event, event.event_type.value.lower()))
    else:
        commands.append(_log(new_state, event, "stop_playback"))
    return new_state, tuple(commands)


# =============================================================================
# Helpers
# =============================================================================

def _close_completion(state: DialogueState) -> DialogueState:
    return replace(
        state,
        completion_open=False,
        reply_text="",
        speech_buffer="",
        speech_muted=False,
    )


def _state_changed(
    old: DialogueState,
    new: DialogueState,
    event: Event,
    source: str,
) -> LogEvent:
    return _log(
        new,
        event,
        "state_changed",
        {"from_mode": old.mode.value, "to_mode": new.mode.value, "source": source},
    )


def _log(
    state: DialogueState,
    event: Event,
    decision: str,
    details: dict[str, Any] | None = None,
) -> LogEvent:
    return LogEvent(
        event={
            "ts_ms": event.ts_ms,
            "component": "dialogue",
            "mode": state.mode.value,
            "event_type": event.event_type.value,
            "decision": decision,
            "completion_run_id": state.completion_run_id,
            "completion_open": state.completion_open,
            "details": details or {},
        }
    )


def _logs_last(commands: tuple[Command, ...]) -> tuple[Command, ...]:
    non_logs: list[Command] = []
    logs: list[Command] = []
    state_change_logs: list[Command] = []

    for command in commands:
        if isinstance(command, LogEvent):
            if command.event.get("decision") == "state_changed":
                state_change_logs.append(command)
            else:
                logs.append(command)
        else:
            non_logs.append(command)

    return tuple(non_logs + logs + state_change_logs)
