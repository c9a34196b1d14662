"""
Dialogue mode enumeration.

Rules:
- No behavior, no helper methods.
- Transitions are defined exclusively in the dialogue reducer.
"""

from __future__ import annotations

from enum import Enum


class DialogMode(str, Enum):
    """
    AMBIENT:
        Everything heard is transcribed and persisted; the assistant is silent.

    ACTIVE_DIALOG:
        User turns are answered by streaming chat completions spoken via TTS.
    """

    AMBIENT = "ambient"
    ACTIVE_DIALOG = "active_dialog"
