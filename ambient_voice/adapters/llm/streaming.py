"""
Completion stream adapter.

Drives ChatBackend.open_completion_stream for one run_id at a time and turns
the stream into dialogue events:
- CompletionDelta per non-empty delta
- exactly one terminal CompletionDone or CompletionError,
  unless the run is cancelled (then zero terminal events)

Design notes:
- Each run is an asyncio.Task keyed by run_id.
- start_completion returns immediately.
- cancel(run_id) is idempotent and waits for the task to finish.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from ambient_voice.adapters.llm.base import ChatBackend
from ambient_voice.observability.logger import now_ms
from ambient_voice.observability.metrics import timed
from ambient_voice.orchestrator.events import (
    CompletionDelta,
    CompletionDone,
    CompletionError,
    Event,
    EventType,
)


class CompletionStreamAdapter:

    def __init__(
        self,
        *,
        emit_event: Callable[[Event], Awaitable[None]],
        backend: ChatBackend,
        pipeline_id: str | None = None,
    ) -> None:
        self._emit_event = emit_event
        self._backend = backend
        self._pipeline_id = pipeline_id

        self._active_tasks: dict[int, asyncio.Task[None]] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def active_run_ids(self) -> tuple[int, ...]:
        return tuple(self._active_tasks)

    def start_completion(self, *, run_id: int, text: str) -> None:
        if run_id in self._active_tasks:
            return

        task = asyncio.create_task(self._run_stream(run_id, text))
        self._active_tasks[run_id] = task

        def _cleanup(_: asyncio.Task[None]) -> None:
            self._active_tasks.pop(run_id, None)

        task.add_done_callback(_cleanup)

    async def cancel(self, run_id: int) -> None:
        """
        Cancel a run.

        Silent if run_id is unknown or already finished.
        """
        task = self._active_tasks.get(run_id)
        if task is None:
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def close(self) -> None:
        for run_id in list(self._active_tasks):
            await self.cancel(run_id)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _run_stream(self, run_id: int, text: str) -> None:
        try:
            with timed(
                "completion_stream_duration",
                pipeline_id=self._pipeline_id,
                details={"run_id": run_id},
            ):
                async for delta in self._backend.open_completion_stream(text):
                    await self._emit_event(
                        CompletionDelta(
                            event_type=EventType.COMPLETION_DELTA,
                            ts_ms=now_ms(),
                            run_id=run_id,
                            delta=delta,
                        )
                    )

            await self._emit_event(
                CompletionDone(
                    event_type=EventType.COMPLETION_DONE,
                    ts_ms=now_ms(),
                    run_id=run_id,
                )
            )

        except asyncio.CancelledError:
            # Expected when a newer utterance or an exit phrase cancels the run
            pass

        except Exception as exc:  # pylint: disable=broad-exception-caught
            await self._emit_event(
                CompletionError(
                    event_type=EventType.COMPLETION_ERROR,
                    ts_ms=now_ms(),
                    run_id=run_id,
                    reason=f"{type(exc).__name__}: {exc}",
                )
            )
