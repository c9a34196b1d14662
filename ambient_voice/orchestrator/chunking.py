"""
Pure speakable-chunk splitting for streamed completion text.

Deterministic function over the current reply buffer. No timers: the
reducer flushes whatever remains when the completion finishes.

Triggers, in order:
A. Sentence boundary: send up to and including the first boundary.
D. Hard cap: must send; backtrack within the lookback window to a break.
B. Size: once the buffer is long enough, split at the last natural break.
"""

from __future__ import annotations

from dataclasses import dataclass

from ambient_voice.constants import (
    TTS_HARD_CAP_CHARS,
    TTS_LOOKBACK_CHARS,
    TTS_MIN_CHUNK_LEN_CHARS,
    TTS_PREFERRED_BREAK_CHARS,
    TTS_SENTENCE_BREAK_CHARS,
    TTS_SIZE_TRIGGER_CHARS,
    TTS_WHITESPACE_BREAK_CHARS,
)


@dataclass(frozen=True)
class ChunkDecision:
    """
    Result of a chunking evaluation.

    If send is False, all other fields are undefined and must be ignored.
    """
    send: bool
    send_text: str | None = None
    remainder: str | None = None
    forced_mid_word: bool = False


def evaluate_chunk(*, buffer: str) -> ChunkDecision:
    if not buffer or not buffer.strip():
        return ChunkDecision(send=False)

    boundary = _split_at_sentence_boundary(buffer)
    if boundary is not None:
        return boundary

    if len(buffer) >= TTS_HARD_CAP_CHARS:
        return _split_with_backtrack(buffer)

    if len(buffer) >= TTS_SIZE_TRIGGER_CHARS:
        split = _split_at_last_break(buffer)
        if split is not None:
            return split
        return ChunkDecision(send=True, send_text=buffer.lstrip(), remainder="")

    return ChunkDecision(send=False)


def drain_chunks(buffer: str) -> tuple[list[str], str]:
    """
    Apply evaluate_chunk until it stops sending.

    Returns (chunks_to_speak, remaining_buffer).
    """
    chunks: list[str] = []
    while True:
        decision = evaluate_chunk(buffer=buffer)
        if not decision.send or decision.send_text is None:
            return chunks, buffer
        chunks.append(decision.send_text)
        buffer = decision.remainder or ""


# =============================================================================
# Helpers
# =============================================================================

def _split_at_sentence_boundary(buffer: str) -> ChunkDecision | None:
    indexes = [buffer.find(ch) for ch in TTS_SENTENCE_BREAK_CHARS]
    found = [i for i in indexes if i != -1]
    if not found:
        return None

    split_idx = min(found) + 1
    head = buffer[:split_idx]
    if not head.strip():
        return None

    return ChunkDecision(
        send=True,
        send_text=head.lstrip(),
        remainder=buffer[split_idx:],
    )


def _split_at_last_break(buffer: str) -> ChunkDecision | None:
    last_space_idx = None

    for i in range(len(buffer) - 1, TTS_MIN_CHUNK_LEN_CHARS - 2, -1):
        ch = buffer[i]
        if ch in TTS_PREFERRED_BREAK_CHARS:
            return ChunkDecision(
                send=True,
                send_text=buffer[: i + 1].lstrip(),
                remainder=buffer[i + 1:],
            )
        if ch in TTS_WHITESPACE_BREAK_CHARS and last_space_idx is None:
            last_space_idx = i

    if last_space_idx is None:
        return None

    return ChunkDecision(
        send=True,
        send_text=buffer[: last_space_idx + 1].lstrip(),
        remainder=buffer[last_space_idx + 1:],
    )


def _split_with_backtrack(buffer: str) -> ChunkDecision:
    cap = TTS_HARD_CAP_CHARS
    lookback_start = max(0, cap - TTS_LOOKBACK_CHARS)

    last_space_idx = None
    for i in range(cap - 1, lookback_start - 1, -1):
        ch = buffer[i]
        if ch in TTS_PREFERRED_BREAK_CHARS and i + 1 >= TTS_MIN_CHUNK_LEN_CHARS:
            return ChunkDecision(
                send=True,
                send_text=buffer[: i + 1].lstrip(),
                remainder=buffer[i + 1:],
            )
        if ch in TTS_WHITESPACE_BREAK_CHARS and last_space_idx is None:
            last_space_idx = i

    if last_space_idx is not None:
        return ChunkDecision(
            send=True,
            send_text=buffer[: last_space_idx + 1].lstrip(),
            remainder=buffer[last_space_idx + 1:],
        )

    return ChunkDecision(
        send=True,
        send_text=buffer[:cap],
        remainder=buffer[cap:],
        forced_mid_word=True,
    )
