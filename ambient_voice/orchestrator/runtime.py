"""
Runtime execution shell for the dialogue state machine.

Responsibilities:
- Own the authoritative DialogueState
- Call the pure reducer
- Execute commands with side effects (record store, chat session,
  completion stream, playback, host events, logging)
- Mirror the dialogue mode into PipelineState for the audio path

Guarantees:
- The reducer is called exactly once per incoming event
- Events are serialized by an asyncio.Lock; commands run in emitted order
- State is updated before any side effect executes
- Events raised while executing commands (e.g. a completion that cannot be
  opened) are queued and reduced after the current batch, never re-entrantly
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Awaitable, Callable, Deque

from ambient_voice.adapters.llm.base import ChatBackend
from ambient_voice.adapters.llm.streaming import CompletionStreamAdapter
from ambient_voice.audio.playback import PlaybackController
from ambient_voice.observability.logger import log_component, log_event, now_ms
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
from ambient_voice.orchestrator.events import CompletionError, Event, EventType
from ambient_voice.orchestrator.reducer import reduce
from ambient_voice.orchestrator.state import DialogueState
from ambient_voice.session.host_events import HostEventSink
from ambient_voice.session.state import PipelineState
from ambient_voice.session.summary import DialogueSummaryTracker
from ambient_voice.storage.records import RecordStore


_COMPONENT = "dialogue_runtime"


class DialogueRuntime:

    def __init__(
        self,
        *,
        state: PipelineState,
        records: RecordStore,
        host_sink: HostEventSink,
        playback: PlaybackController,
        chat_backend: ChatBackend | None,
        clear_pending_segments: Callable[[], Awaitable[None]],
        summary: DialogueSummaryTracker | None = None,
        pipeline_id: str | None = None,
        initial_state: DialogueState | None = None,
        completion_factory: Callable[..., CompletionStreamAdapter] = CompletionStreamAdapter,
    ) -> None:
        self._pipeline_state = state
        self._records = records
        self._host_sink = host_sink
        self._playback = playback
        self._chat_backend = chat_backend
        self._clear_pending_segments = clear_pending_segments
        self._summary = summary
        self._pipeline_id = pipeline_id

        self._state = initial_state or DialogueState()
        self._lock = asyncio.Lock()
        self._pending: Deque[Event] = deque()

        self._completions: CompletionStreamAdapter | None = None
        if chat_backend is not None:
            self._completions = completion_factory(
                emit_event=self.handle_event,
                backend=chat_backend,
                pipeline_id=pipeline_id,
            )

        self._pipeline_state.dialog_mode = self._state.mode

    @property
    def state(self) -> DialogueState:
        """Current immutable dialogue state. Read-only for callers."""
        return self._state

    async def handle_event(self, event: Event) -> None:
        """
        Single entry point for every event affecting dialogue state.

        Callers: the pipeline (utterances, barge-in, control signals) and the
        completion stream adapter (deltas, done, error).
        """
        async with self._lock:
            self._pending.append(event)
            while self._pending:
                await self._reduce_and_execute(self._pending.popleft())

    async def shutdown(self) -> None:
        if self._completions is not None:
            await self._completions.close()
        await self._playback.close()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _reduce_and_execute(self, event: Event) -> None:
        new_state, commands = reduce(self._state, event)
        self._state = new_state
        self._pipeline_state.dialog_mode = new_state.mode

        for cmd in commands:
            await self._execute_command(cmd)

    async def _execute_command(self, cmd: Command) -> None:
        """Execute a single command with side effects."""

        if isinstance(cmd, LogEvent):
            log_event({**cmd.event, "pipeline_id": self._pipeline_id})

        elif isinstance(cmd, PersistTurn):
            turn = self._records.insert(cmd.role, cmd.text, cmd.category)
            if self._summary is not None:
                self._summary.record_turn(cmd.text, turn.ts_ms)

        elif isinstance(cmd, AppendSession):
            if self._chat_backend is not None:
                self._chat_backend.append_session(cmd.role, cmd.text)

        elif isinstance(cmd, OpenCompletion):
            if self._completions is None:
                self._pending.append(
                    CompletionError(
                        event_type=EventType.COMPLETION_ERROR,
                        ts_ms=now_ms(),
                        run_id=cmd.run_id,
                        reason="chat_backend_unavailable",
                    )
                )
                return
            self._completions.start_completion(run_id=cmd.run_id, text=cmd.text)

        elif isinstance(cmd, CancelCompletion):
            if self._completions is not None:
                await self._completions.cancel(cmd.run_id)

        elif isinstance(cmd, Speak):
            self._playback.speak(text=cmd.text, completion_run_id=cmd.run_id)

        elif isinstance(cmd, StopPlayback):
            await self._playback.stop(cmd.reason)

        elif isinstance(cmd, InterruptPlayback):
            await self._playback.interrupt()

        elif isinstance(cmd, PlayCue):
            self._playback.play_cue(cmd.cue)

        elif isinstance(cmd, ClearPendingSegments):
            await self._clear_pending_segments()

        elif isinstance(cmd, SendJSONToHost):
            await self._host_sink(cmd.data)

        else:
            log_component(
                _COMPONENT,
                "COMMAND_NOT_HANDLED",
                command_type=type(cmd).__name__,
                pipeline_id=self._pipeline_id,
            )

