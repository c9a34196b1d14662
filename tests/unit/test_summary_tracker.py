# pylint: disable=missing-module-docstring,missing-function-docstring

import asyncio

from ambient_voice.session.summary import DialogueSummaryTracker


def test_empty_tracker_is_never_due():
    tracker = DialogueSummaryTracker(clock=lambda: 0)

    assert tracker.due(10**9) is False
    assert asyncio.run(tracker.check(10**9)) is None


def test_idle_window_closes_after_min_chars():
    calls: list[tuple[int, int]] = []

    async def summarize(start: int, end: int) -> None:
        calls.append((start, end))

    tracker = DialogueSummaryTracker(summarizer=summarize, min_chars=10, idle_ms=1000)
    tracker.record_turn("a" * 6, ts_ms=100)
    tracker.record_turn("b" * 6, ts_ms=200)

    assert asyncio.run(tracker.check(1100)) is None

    window = asyncio.run(tracker.check(1200))

    assert window is not None
    assert (window.start_ts_ms, window.end_ts_ms, window.chars) == (100, 200, 12)
    assert calls == [(100, 200)]
    assert tracker.chars == 0


def test_recent_speech_postpones_idle_close():
    tracker = DialogueSummaryTracker(min_chars=1, idle_ms=1000)
    tracker.record_turn("hello", ts_ms=0)
    tracker.record_speech(ts_ms=900)

    assert tracker.due(1500) is False
    assert tracker.due(1900) is True


def test_max_chars_closes_immediately():
    tracker = DialogueSummaryTracker(max_chars=10, idle_ms=10**9)
    tracker.record_turn("x" * 10, ts_ms=5)

    assert tracker.due(5) is True


def test_summarizer_failure_still_closes_window():
    async def failing(start: int, end: int) -> None:
        raise RuntimeError("llm down")

    tracker = DialogueSummaryTracker(summarizer=failing, max_chars=1)
    tracker.record_turn("hi", ts_ms=1)

    window = asyncio.run(tracker.check(2))

    assert window is not None
    assert tracker.chars == 0
