"""
Timing helpers for observability.

Responsibilities:
- Measure durations using monotonic time
- Emit one METRIC_TIMER record per measurement via observability.logger
- Never aggregate

Prefer the `timed()` context manager to avoid leaked timers.
"""

from __future__ import annotations

import time
import uuid
from contextlib import contextmanager
from typing import Any, Iterator

from ambient_voice.observability.logger import log_event, now_ms


# timer_id -> (metric_name, start_time_ns)
_active_timers: dict[str, tuple[str, int]] = {}


def start_timer(name: str) -> str:
    """
    Start a monotonic timer.

    Returns:
        Opaque timer id. Callers MUST call stop_timer() in a finally block
        unless they use `timed()`.
    """
    timer_id = f"timer_{uuid.uuid4().hex[:12]}"
    _active_timers[timer_id] = (name, time.monotonic_ns())
    return timer_id


def stop_timer(
    timer_id: str,
    *,
    pipeline_id: str | None = None,
    dialog_mode: str | None = None,
    details: dict[str, Any] | None = None,
) -> int | None:
    """
    Stop a timer and emit a metric record.

    Returns:
        duration_ms if the timer existed, else None
    """
    entry = _active_timers.pop(timer_id, None)
    if entry is None:
        return None

    name, start_ns = entry
    duration_ms = (time.monotonic_ns() - start_ns) // 1_000_000

    log_event({
        "ts_ms": now_ms(),
        "event_type": "METRIC_TIMER",
        "metric": name,
        "value_ms": duration_ms,
        "pipeline_id": pipeline_id,
        "dialog_mode": dialog_mode,
        "details": details or {},
    })

    return duration_ms


@contextmanager
def timed(
    name: str,
    *,
    pipeline_id: str | None = None,
    dialog_mode: str | None = None,
    details: dict[str, Any] | None = None,
) -> Iterator[None]:
    """
    Measure the enclosed block.

    The metric is emitted exactly once, also when the block raises.

    Usage:
        with timed("cloud_recognition_latency", pipeline_id=pid):
            text = await recognizer.recognize(samples)
    """
    timer_id = start_timer(name)
    try:
        yield
    finally:
        stop_timer(
            timer_id,
            pipeline_id=pipeline_id,
            dialog_mode=dialog_mode,
            details=details,
        )
