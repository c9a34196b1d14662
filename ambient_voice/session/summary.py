"""
Dialogue summary tracker.

Groups persisted turns into windows and decides when a window is ready to
be summarized. Summarization itself is delegated to an optional callback
that receives the window's (start_ts_ms, end_ts_ms).

A window closes on a periodic check when:
- it holds at least max_chars characters, or
- it holds at least min_chars characters and nobody has spoken for idle_ms.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable

from ambient_voice.constants import SUMMARY_IDLE_MS, SUMMARY_MAX_CHARS, SUMMARY_MIN_CHARS
from ambient_voice.observability.logger import log_component, now_ms


Summarizer = Callable[[int, int], Awaitable[None]]

_COMPONENT = "summary"


@dataclass(frozen=True)
class SummaryWindow:
    start_ts_ms: int
    end_ts_ms: int
    chars: int


class DialogueSummaryTracker:

    def __init__(
        self,
        *,
        summarizer: Summarizer | None = None,
        min_chars: int = SUMMARY_MIN_CHARS,
        max_chars: int = SUMMARY_MAX_CHARS,
        idle_ms: int = SUMMARY_IDLE_MS,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._summarizer = summarizer
        self._min_chars = min_chars
        self._max_chars = max_chars
        self._idle_ms = idle_ms
        self._clock = clock

        self._start_ts_ms: int | None = None
        self._last_ts_ms: int | None = None
        self._last_speech_ms: int | None = None
        self._chars = 0

    @property
    def chars(self) -> int:
        return self._chars

    def record_turn(self, text: str, ts_ms: int | None = None) -> None:
        ts = self._clock() if ts_ms is None else ts_ms
        if self._start_ts_ms is None:
            self._start_ts_ms = ts
        self._last_ts_ms = ts
        self._last_speech_ms = ts
        self._chars += len(text)

    def record_speech(self, ts_ms: int | None = None) -> None:
        self._last_speech_ms = self._clock() if ts_ms is None else ts_ms

    def due(self, now: int) -> bool:
        if self._start_ts_ms is None:
            return False
        if self._chars >= self._max_chars:
            return True
        if self._chars < self._min_chars:
            return False
        last = self._last_speech_ms if self._last_speech_ms is not None else self._start_ts_ms
        return now - last >= self._idle_ms

    async def check(self, now: int | None = None) -> SummaryWindow | None:
        """
        Close the current window if due and hand it to the summarizer.

        Returns the closed window, or None.
        """
        ts = self._clock() if now is None else now
        if not self.due(ts):
            return None

        assert self._start_ts_ms is not None
        window = SummaryWindow(
            start_ts_ms=self._start_ts_ms,
            end_ts_ms=self._last_ts_ms if self._last_ts_ms is not None else ts,
            chars=self._chars,
        )
        self._start_ts_ms = None
        self._last_ts_ms = None
        self._chars = 0

        log_component(
            _COMPONENT,
            "SUMMARY_WINDOW_CLOSED",
            start_ts_ms=window.start_ts_ms,
            end_ts_ms=window.end_ts_ms,
            chars=window.chars,
        )

        if self._summarizer is not None:
            try:
                await self._summarizer(window.start_ts_ms, window.end_ts_ms)
            except Exception as exc:  # pylint: disable=broad-exception-caught
                log_component(
                    _COMPONENT,
                    "SUMMARY_FAILED",
                    error=f"{type(exc).__name__}: {exc}",
                )
        return window
