"""
Event definitions for the dialogue reducer.

Rules:
- Events describe facts that have occurred.
- Events carry data only (no behavior).
- No clocks, no async, no side effects.

Completion events carry run_id for stale gating.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ambient_voice.storage.records import Role


class EventType(str, Enum):
    """
    Canonical event types understood by the reducer.

    Every event type must be explicitly handled or explicitly ignored.
    """

    # Recognition
    UTTERANCE_FINALIZED = "UTTERANCE_FINALIZED"

    # Chat completion
    COMPLETION_DELTA = "COMPLETION_DELTA"
    COMPLETION_DONE = "COMPLETION_DONE"
    COMPLETION_ERROR = "COMPLETION_ERROR"

    # Audio
    BARGE_IN = "BARGE_IN"

    # Host control
    ENROLLMENT_STARTED = "ENROLLMENT_STARTED"
    RECORDING_STOPPED = "RECORDING_STOPPED"


@dataclass(frozen=True)
class Event:
    """
    Base event type.

    event_type: discriminant
    ts_ms: timestamp provided by the source (or fake in tests)
    """

    event_type: EventType
    ts_ms: int


@dataclass(frozen=True)
class UtteranceFinalized(Event):
    """Cleaned, non-empty final transcript with its attributed speaker."""
    text: str
    speaker: Role


@dataclass(frozen=True)
class CompletionDelta(Event):
    run_id: int
    delta: str


@dataclass(frozen=True)
class CompletionDone(Event):
    run_id: int


@dataclass(frozen=True)
class CompletionError(Event):
    run_id: int
    reason: str


@dataclass(frozen=True)
class BargeIn(Event):
    """User speech detected while the assistant may be speaking."""


@dataclass(frozen=True)
class EnrollmentStarted(Event):
    pass


@dataclass(frozen=True)
class RecordingStopped(Event):
    pass
