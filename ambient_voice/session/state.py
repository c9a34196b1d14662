"""
Per-pipeline mutable state.

Owned by one Pipeline instance and shared by reference with the components
that read it (ingest gating, barge-in checks, recognizer routing).

Writers:
- dialog_mode:              dialogue runtime (mirrors reducer state)
- enrollment_*:             enrollment control signals / EnrollmentFlow
- bone_conduction_active:   ingest adapter (decoder heartbeat edges)
- recording / microphone:   host control signals
"""

from __future__ import annotations

from dataclasses import dataclass

from ambient_voice.constants import BONE_CONDUCTION_INITIAL
from ambient_voice.orchestrator.enums.dialog_mode import DialogMode


@dataclass
class PipelineState:
    recording_enabled: bool = True
    microphone_enabled: bool = True
    dialog_mode: DialogMode = DialogMode.AMBIENT
    enrollment_in_progress: bool = False
    enrollment_step: int = 0
    bone_conduction_active: bool = BONE_CONDUCTION_INITIAL
    cloud_available: bool = False
    device_id: str | None = None

    @property
    def in_dialog(self) -> bool:
        return self.dialog_mode is DialogMode.ACTIVE_DIALOG

    def snapshot(self) -> dict[str, object]:
        return {
            "recording_enabled": self.recording_enabled,
            "microphone_enabled": self.microphone_enabled,
            "dialog_mode": self.dialog_mode.value,
            "enrollment_in_progress": self.enrollment_in_progress,
            "enrollment_step": self.enrollment_step,
            "bone_conduction_active": self.bone_conduction_active,
            "cloud_available": self.cloud_available,
            "device_id": self.device_id,
        }
