"""
Outbound host event payloads.

Every event is a JSON-serializable dict with a "type" discriminator plus
the camelCase fields the host application consumes.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable

from ambient_voice.orchestrator.enums.dialog_mode import DialogMode


HostEvent = dict[str, Any]
HostEventSink = Callable[[HostEvent], Awaitable[None]]


def speech_detected(active: bool) -> HostEvent:
    return {"type": "speech_detected", "speechDetected": active}


def transcript(
    text: str,
    *,
    is_final: bool,
    dialog_mode: DialogMode,
    speaker: str | None = None,
) -> HostEvent:
    event: HostEvent = {
        "type": "transcript",
        "text": text,
        "isFinal": is_final,
        "dialogMode": dialog_mode is DialogMode.ACTIVE_DIALOG,
    }
    if speaker is not None:
        event["speaker"] = speaker
    return event


def completion(partial_reply_text: str, *, is_finished: bool, delta: str) -> HostEvent:
    return {
        "type": "completion",
        "partialReplyText": partial_reply_text,
        "isFinished": is_finished,
        "delta": delta,
    }


def enrollment(payload: dict[str, Any]) -> HostEvent:
    return {"type": "enrollment", **payload}


def bone_conduction(active: bool) -> HostEvent:
    return {"type": "bone_conduction", "boneConductionActive": active}


def ack(signal: str) -> HostEvent:
    return {"type": "ack", "signal": signal}


def playback_stop(run_id: int) -> HostEvent:
    return {"type": "playback_stop", "runId": run_id}


def summary_window(start_ts_ms: int, end_ts_ms: int) -> HostEvent:
    return {"type": "summary_window", "startTsMs": start_ts_ms, "endTsMs": end_ts_ms}
