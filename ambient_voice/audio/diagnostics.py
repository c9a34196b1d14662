"""
Raw audio diagnostic sink.

Mirrors every inbound PCM16 chunk, per source, into a WAV file so field
captures can be replayed offline. Runs regardless of the recording gate.
"""

from __future__ import annotations

import time
from pathlib import Path

import numpy as np
import soundfile as sf

from ambient_voice.audio.frames import AudioFrame, AudioSource
from ambient_voice.constants import AUDIO_CHANNELS, AUDIO_SAMPLE_RATE_HZ
from ambient_voice.observability.logger import log_component


class WavDiagnosticSink:
    """
    One open WAV file per audio source, created lazily.

    Not thread-safe; called from the ingest adapter only.
    """

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory)
        self._files: dict[AudioSource, sf.SoundFile] = {}
        self._stamp = time.strftime("%Y%m%d-%H%M%S")

    def __call__(self, frame: AudioFrame) -> None:
        self.write(frame)

    def write(self, frame: AudioFrame) -> None:
        handle = self._files.get(frame.source)
        if handle is None:
            handle = self._open(frame.source)
        handle.write(np.frombuffer(frame.pcm_bytes, dtype="<i2"))

    def close(self) -> None:
        for handle in self._files.values():
            handle.close()
        self._files.clear()

    def _open(self, source: AudioSource) -> sf.SoundFile:
        self._directory.mkdir(parents=True, exist_ok=True)
        path = self._directory / f"{source.value}-{self._stamp}.wav"
        handle = sf.SoundFile(
            path,
            mode="w",
            samplerate=AUDIO_SAMPLE_RATE_HZ,
            channels=AUDIO_CHANNELS,
            subtype="PCM_16",
        )
        self._files[source] = handle
        log_component("diagnostics", "DIAGNOSTIC_WAV_OPENED", path=str(path))
        return handle
