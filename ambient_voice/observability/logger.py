"""
JSONL event logger.

- Write one JSON object per line
- Output to stdout
- No buffering, no batching
- Never raise: unserializable events degrade to an error record
"""

from __future__ import annotations

import json
import sys
import time
from typing import Any, Callable, Mapping


# ------------------------------------------------------------------
# Explicit output sink (patchable in tests)
# ------------------------------------------------------------------

def _stdout_print(line: str) -> None:
    sys.stdout.write(line + "\n")
    sys.stdout.flush()

_print: Callable[[str], None] = _stdout_print


def now_ms() -> int:
    """Wall-clock timestamp used on every record."""
    return int(time.time() * 1000)


def log_event(event: Mapping[str, Any]) -> None:
    """
    Write a single JSONL event to the sink.

    Non-ASCII text (transcripts, enrollment phrases) is written as-is.
    """
    try:
        line = json.dumps(event, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        fallback = {
            "ts_ms": event.get("ts_ms"),
            "event_type": "LOGGER_SERIALIZATION_ERROR",
            "error": str(e),
            "original_event_repr": repr(event),
        }
        line = json.dumps(fallback, ensure_ascii=False, separators=(",", ":"))

    _print(line)


def log_component(component: str, event_type: str, **fields: Any) -> None:
    """
    Convenience wrapper for imperative components (decoder, engines, adapters).

    The dialogue reducer does not use this; it emits LogEvent commands.
    """
    record: dict[str, Any] = {
        "ts_ms": now_ms(),
        "event_type": event_type,
        "component": component,
    }
    record.update(fields)
    log_event(record)
