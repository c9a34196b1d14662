"""
Authoritative dialogue state container.

Rules:
- Pure data model, frozen.
- Contains ALL state the reducer may ever need.
- No behavior, no derived logic.
"""

from __future__ import annotations

from dataclasses import dataclass

from ambient_voice.orchestrator.enums.dialog_mode import DialogMode


@dataclass(frozen=True)
class DialogueState:
    mode: DialogMode = DialogMode.AMBIENT

    # Last completion run started; 0 = none yet. Never reused.
    completion_run_id: int = 0
    completion_open: bool = False

    # Reply accumulated for the open completion
    reply_text: str = ""

    # Reply text not yet handed to TTS
    speech_buffer: str = ""

    # Set by barge-in: remaining deltas of this run are not spoken
    speech_muted: bool = False
