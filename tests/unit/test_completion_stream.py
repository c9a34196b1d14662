# pylint: disable=missing-module-docstring,missing-function-docstring

import asyncio
from typing import AsyncIterator

from ambient_voice.adapters.llm.base import ChatBackend
from ambient_voice.adapters.llm.streaming import CompletionStreamAdapter
from ambient_voice.orchestrator.events import (
    CompletionDelta,
    CompletionDone,
    CompletionError,
    Event,
)
from ambient_voice.storage.records import Role


class ScriptedChat(ChatBackend):
    def __init__(self, deltas: list[str], *, hang: bool = False, error: Exception | None = None) -> None:
        self.deltas = deltas
        self.hang = hang
        self.error = error

    def append_session(self, role: Role, text: str) -> None:
        pass

    async def open_completion_stream(self, text: str) -> AsyncIterator[str]:
        for d in self.deltas:
            yield d
        if self.error is not None:
            raise self.error
        if self.hang:
            await asyncio.Event().wait()


def run_adapter(chat: ChatBackend, *, cancel_after_first: bool = False) -> list[Event]:
    events: list[Event] = []

    async def scenario() -> None:
        first = asyncio.Event()

        async def emit(event: Event) -> None:
            events.append(event)
            first.set()

        adapter = CompletionStreamAdapter(emit_event=emit, backend=chat)
        adapter.start_completion(run_id=4, text="hi")
        assert adapter.active_run_ids == (4,)

        if cancel_after_first:
            await first.wait()
            await adapter.cancel(4)
        else:
            await asyncio.sleep(0.05)

        await adapter.close()
        assert adapter.active_run_ids == ()

    asyncio.run(scenario())
    return events


def test_deltas_then_single_done():
    events = run_adapter(ScriptedChat(["a", "b"]))

    assert [type(e) for e in events] == [CompletionDelta, CompletionDelta, CompletionDone]
    assert all(e.run_id == 4 for e in events)  # type: ignore[attr-defined]
    assert [e.delta for e in events[:2]] == ["a", "b"]  # type: ignore[attr-defined]


def test_error_is_single_terminal_event():
    events = run_adapter(ScriptedChat(["a"], error=ValueError("bad")))

    assert [type(e) for e in events] == [CompletionDelta, CompletionError]
    assert events[-1].reason == "ValueError: bad"  # type: ignore[attr-defined]


def test_cancelled_run_emits_no_terminal_event():
    events = run_adapter(ScriptedChat(["a"], hang=True), cancel_after_first=True)

    assert [type(e) for e in events] == [CompletionDelta]


def test_cancel_unknown_run_is_silent():
    async def scenario() -> None:
        async def emit(_: Event) -> None:
            pass

        adapter = CompletionStreamAdapter(emit_event=emit, backend=ScriptedChat([]))
        await adapter.cancel(99)

    asyncio.run(scenario())
