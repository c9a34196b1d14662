"""
Inbound host control signals.

Wire format (websocket text frame):
    {"signal": "<name>", ...}

device_connect additionally carries "deviceId".
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any


class ControlSignal(str, Enum):
    START_RECORDING = "start_recording"
    STOP_RECORDING = "stop_recording"
    START_MICROPHONE = "start_microphone"
    STOP_MICROPHONE = "stop_microphone"
    BEGIN_ENROLLMENT = "begin_enrollment"
    ENROLLMENT_DONE = "enrollment_done"
    DEVICE_CONNECT = "device_connect"


class ControlSignalError(ValueError):
    """Raised for control messages that are not valid JSON objects or name no known signal."""


@dataclass(frozen=True)
class ControlMessage:
    signal: ControlSignal
    device_id: str | None = None


def parse_control_message(payload: str | bytes) -> ControlMessage:
    """
    Raises:
        ControlSignalError on malformed JSON, an unknown signal, or a
        device_connect without a deviceId.
    """
    try:
        data: Any = json.loads(payload)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ControlSignalError(f"invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ControlSignalError("control message must be a JSON object")

    name = data.get("signal")
    try:
        signal = ControlSignal(name)
    except ValueError as e:
        raise ControlSignalError(f"unknown signal: {name!r}") from e

    device_id = data.get("deviceId")
    if signal is ControlSignal.DEVICE_CONNECT:
        if not isinstance(device_id, str) or not device_id:
            raise ControlSignalError("device_connect requires a non-empty deviceId")
        return ControlMessage(signal=signal, device_id=device_id)

    return ControlMessage(signal=signal)
