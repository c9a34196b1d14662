"""
Bounded ingest queue with canonical depth measurement.

Requirements:
- Depth measured in seconds of audio (not chunk count)
- Explicit drop behavior with distinguishable counters
- Producers never block: enqueue is synchronous and O(1)
- A single asynchronous consumer awaits new chunks

Drop rules:
- normal: drop the NEW chunk if it would exceed max_depth_s (overflow)
- clear(): drop everything queued (counted as flushed, not as drops)
"""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass
from typing import Deque, Optional

from ambient_voice.audio.frames import IngestChunk
from ambient_voice.constants import AUDIO_SAMPLE_RATE_HZ


@dataclass
class DropCounters:
    overflow: int = 0
    flushed: int = 0


class IngestQueue:
    """
    FIFO of IngestChunk shared by all producers of one pipeline.

    Must be used from the event loop thread; producers in other threads
    hand chunks over with loop.call_soon_threadsafe.
    """

    def __init__(
        self,
        *,
        max_depth_s: float,
        sample_rate_hz: int = AUDIO_SAMPLE_RATE_HZ,
    ) -> None:
        if max_depth_s <= 0:
            raise ValueError("max_depth_s must be > 0")

        self._max_depth_s = max_depth_s
        self._sample_rate_hz = sample_rate_hz
        self._chunks: Deque[IngestChunk] = deque()
        self._queued_samples = 0
        self._ready = asyncio.Event()
        self.drops = DropCounters()

    # -------------------------
    # Core queue operations
    # -------------------------

    def enqueue(self, chunk: IngestChunk) -> bool:
        """
        Enqueue a chunk.

        Returns:
            True if enqueued
            False if dropped
        """
        added_s = chunk.samples.size / self._sample_rate_hz
        if self.depth_seconds() + added_s > self._max_depth_s:
            self.drops.overflow += 1
            return False

        self._chunks.append(chunk)
        self._queued_samples += chunk.samples.size
        self._ready.set()
        return True

    def dequeue(self) -> Optional[IngestChunk]:
        """Pop the oldest chunk, or None if empty."""
        if not self._chunks:
            return None
        chunk = self._chunks.popleft()
        self._queued_samples -= chunk.samples.size
        if not self._chunks:
            self._ready.clear()
        return chunk

    async def get(self) -> IngestChunk:
        """Wait for and pop the oldest chunk."""
        while True:
            chunk = self.dequeue()
            if chunk is not None:
                return chunk
            await self._ready.wait()

    def clear(self) -> None:
        self.drops.flushed += len(self._chunks)
        self._chunks.clear()
        self._queued_samples = 0
        self._ready.clear()

    # -------------------------
    # Introspection helpers
    # -------------------------

    def __len__(self) -> int:
        return len(self._chunks)

    def depth_seconds(self) -> float:
        return self._queued_samples / self._sample_rate_hz

    def snapshot(self) -> dict[str, float | int]:
        """Lightweight snapshot for logging."""
        return {
            "chunks": len(self._chunks),
            "depth_s": self.depth_seconds(),
            "dropped_overflow": self.drops.overflow,
            "flushed": self.drops.flushed,
        }
