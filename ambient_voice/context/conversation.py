"""
Chat session context.

Responsibilities:
- Store ordered user/others/assistant turns
- Enforce truncation rules:
  - Max MAX_CONTEXT_TURNS turns OR MAX_CONTEXT_CHARS characters
  - Drop oldest turns until constraints are satisfied
  - Allow a single oversized turn (with warning)
- Serialize for chat-completion APIs, which only know user/assistant roles

Non-responsibilities:
- No persistence (the record store owns history)
- No orchestration decisions
"""

from __future__ import annotations

from dataclasses import dataclass

from ambient_voice.constants import MAX_CONTEXT_CHARS, MAX_CONTEXT_TURNS
from ambient_voice.observability.logger import log_component
from ambient_voice.storage.records import Role


OTHERS_PREFIX = "[others] "


@dataclass(frozen=True)
class Turn:
    """Single conversation turn."""
    role: Role
    text: str
    turn_id: int


class ConversationContext:
    """
    Mutable chat context owned by the chat backend.

    Invariants:
    - Turns are stored in chronological order
    - turn_id is monotonic
    """

    def __init__(
        self,
        *,
        max_turns: int = MAX_CONTEXT_TURNS,
        max_chars: int = MAX_CONTEXT_CHARS,
    ) -> None:
        self._turns: list[Turn] = []
        self._next_turn_id = 1
        self._max_turns = max_turns
        self._max_chars = max_chars

    def add_turn(self, role: Role, text: str) -> None:
        """Add a turn and enforce truncation rules."""
        self._turns.append(Turn(role=role, text=text, turn_id=self._next_turn_id))
        self._next_turn_id += 1
        self._truncate()

    @property
    def turns(self) -> tuple[Turn, ...]:
        return tuple(self._turns)

    def serialize(self) -> list[dict[str, str]]:
        """
        Role/content list.

        Bystander speech is sent as a user message with an [others] prefix.
        """
        out: list[dict[str, str]] = []
        for t in self._turns:
            if t.role is Role.ASSISTANT:
                out.append({"role": "assistant", "content": t.text})
            elif t.role is Role.OTHERS:
                out.append({"role": "user", "content": OTHERS_PREFIX + t.text})
            else:
                out.append({"role": "user", "content": t.text})
        return out

    def clear(self) -> None:
        self._turns.clear()

    def _truncate(self) -> None:
        while self._violates_limits():
            # If only one turn remains, allow it even if oversized
            if len(self._turns) == 1:
                log_component(
                    "conversation",
                    "CONTEXT_SINGLE_TURN_OVERSIZED",
                    turn_id=self._turns[0].turn_id,
                    char_count=len(self._turns[0].text),
                )
                break

            dropped = self._turns.pop(0)
            log_component(
                "conversation",
                "CONTEXT_TURN_DROPPED",
                turn_id=dropped.turn_id,
                role=dropped.role.value,
                char_count=len(dropped.text),
            )

    def _violates_limits(self) -> bool:
        if len(self._turns) > self._max_turns:
            return True
        return sum(len(t.text) for t in self._turns) > self._max_chars
