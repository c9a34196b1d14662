"""
Side-effect command definitions for the dialogue runtime.

Rules:
- Commands are declarative requests for side effects.
- Commands are emitted by the reducer and executed by the runtime.
- No behavior, no async, no I/O, no clocks.
Invariant:
    All concrete Command subclasses MUST be frozen dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from ambient_voice.audio.cues import AudioCue
from ambient_voice.storage.records import RecordCategory, Role


class CommandType(str, Enum):
    """
    Canonical command types emitted by the reducer.

    Stable discriminants used for logging and runtime dispatch.
    """

    # Persistence / chat session
    PERSIST_TURN = "PERSIST_TURN"
    APPEND_SESSION = "APPEND_SESSION"

    # Chat completion
    OPEN_COMPLETION = "OPEN_COMPLETION"
    CANCEL_COMPLETION = "CANCEL_COMPLETION"

    # Playback
    SPEAK = "SPEAK"
    STOP_PLAYBACK = "STOP_PLAYBACK"
    INTERRUPT_PLAYBACK = "INTERRUPT_PLAYBACK"
    PLAY_CUE = "PLAY_CUE"

    # Segmentation
    CLEAR_PENDING_SEGMENTS = "CLEAR_PENDING_SEGMENTS"

    # Host
    SEND_JSON_TO_HOST = "SEND_JSON_TO_HOST"

    # Observability
    LOG_EVENT = "LOG_EVENT"


class Command:
    """
    Base command type.

    command_type is an explicit discriminant and must never be inferred
    from Python type identity.
    """

    command_type: CommandType


@dataclass(frozen=True)
class PersistTurn(Command):
    role: Role
    text: str
    category: RecordCategory
    command_type: CommandType = CommandType.PERSIST_TURN


@dataclass(frozen=True)
class AppendSession(Command):
    role: Role
    text: str
    command_type: CommandType = CommandType.APPEND_SESSION


@dataclass(frozen=True)
class OpenCompletion(Command):
    """Open a streaming completion for `text`; the chat session already holds it."""
    run_id: int
    text: str
    command_type: CommandType = CommandType.OPEN_COMPLETION


@dataclass(frozen=True)
class CancelCompletion(Command):
    """Cancel immediately; no partial flush."""
    run_id: int
    command_type: CommandType = CommandType.CANCEL_COMPLETION


@dataclass(frozen=True)
class Speak(Command):
    run_id: int
    text: str
    command_type: CommandType = CommandType.SPEAK


@dataclass(frozen=True)
class StopPlayback(Command):
    reason: str
    command_type: CommandType = CommandType.STOP_PLAYBACK


@dataclass(frozen=True)
class InterruptPlayback(Command):
    """Stop speech if any is playing, then play the interruption cue."""
    command_type: CommandType = CommandType.INTERRUPT_PLAYBACK


@dataclass(frozen=True)
class PlayCue(Command):
    cue: AudioCue
    command_type: CommandType = CommandType.PLAY_CUE


@dataclass(frozen=True)
class ClearPendingSegments(Command):
    command_type: CommandType = CommandType.CLEAR_PENDING_SEGMENTS


@dataclass(frozen=True)
class SendJSONToHost(Command):
    data: dict[str, Any]
    command_type: CommandType = CommandType.SEND_JSON_TO_HOST


@dataclass(frozen=True)
class LogEvent(Command):
    event: dict[str, Any]
    command_type: CommandType = CommandType.LOG_EVENT
