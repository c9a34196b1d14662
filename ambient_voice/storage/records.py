"""
Dialogue record store.

The long-term persistence engine is an external collaborator; the pipeline
only needs two operations:
- insert(role, text, category)
- recent_speaker_ratio(limit): user share among the last `limit`
  user/others records, used by adaptive speaker thresholds

InMemoryRecordStore is the implementation used by the server
bootstrap and by tests.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Deque, Protocol

from ambient_voice.observability.logger import now_ms


class Role(str, Enum):
    USER = "user"
    OTHERS = "others"
    ASSISTANT = "assistant"


class RecordCategory(str, Enum):
    DEFAULT = "default"
    DIALOGUE = "dialogue"


@dataclass(frozen=True)
class DialogueTurn:
    role: Role
    text: str
    category: RecordCategory
    ts_ms: int


class RecordStore(Protocol):

    def insert(self, role: Role, text: str, category: RecordCategory) -> DialogueTurn: ...

    def recent_speaker_ratio(self, limit: int) -> float | None: ...


class InMemoryRecordStore:
    """
    Bounded in-memory store.

    Keeps the most recent `max_records` turns; older ones are forgotten.
    """

    def __init__(
        self,
        *,
        max_records: int = 10_000,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._records: Deque[DialogueTurn] = deque(maxlen=max_records)
        self._clock = clock

    def insert(self, role: Role, text: str, category: RecordCategory) -> DialogueTurn:
        turn = DialogueTurn(role=role, text=text, category=category, ts_ms=self._clock())
        self._records.append(turn)
        return turn

    def recent(self, limit: int) -> list[DialogueTurn]:
        if limit <= 0:
            return []
        return list(self._records)[-limit:]

    def recent_speaker_ratio(self, limit: int) -> float | None:
        """
        Fraction of user turns among user+others turns in the last `limit`
        records. Assistant turns count toward the window but not the ratio.

        Returns None when the window holds no user or others turns.
        """
        window = self.recent(limit)
        users = sum(1 for t in window if t.role is Role.USER)
        others = sum(1 for t in window if t.role is Role.OTHERS)
        if users + others == 0:
            return None
        return users / (users + others)

    def __len__(self) -> int:
        return len(self._records)
