"""
On-device speech synthesizer (sherpa-onnx VITS).

Generation is blocking and runs in a worker thread. The whole chunk is
synthesized at once; chunks are short (see orchestrator.chunking).
"""

from __future__ import annotations

import asyncio
from typing import Any, AsyncIterator

from ambient_voice.adapters.tts.base import SpeechSynthesizer, SynthesizerUnavailable
from ambient_voice.audio.pcm import float32_to_pcm16le, resample
from ambient_voice.constants import AUDIO_SAMPLE_RATE_HZ


class SherpaSpeechSynthesizer(SpeechSynthesizer):

    def __init__(
        self,
        *,
        model_path: str,
        tokens_path: str,
        data_dir: str | None = None,
        speaker_id: int = 0,
        speed: float = 1.0,
        num_threads: int = 2,
    ) -> None:
        try:
            import sherpa_onnx  # pylint: disable=import-outside-toplevel

            config = sherpa_onnx.OfflineTtsConfig(
                model=sherpa_onnx.OfflineTtsModelConfig(
                    vits=sherpa_onnx.OfflineTtsVitsModelConfig(
                        model=model_path,
                        tokens=tokens_path,
                        data_dir=data_dir or "",
                    ),
                    num_threads=num_threads,
                    provider="cpu",
                ),
            )
            self._tts: Any = sherpa_onnx.OfflineTts(config)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            raise SynthesizerUnavailable(f"{type(exc).__name__}: {exc}") from exc

        self._speaker_id = speaker_id
        self._speed = speed

    @property
    def is_available(self) -> bool:
        return True

    async def stream(self, text: str) -> AsyncIterator[bytes]:
        pcm = await asyncio.to_thread(self._generate, text)
        if pcm:
            yield pcm

    def _generate(self, text: str) -> bytes:
        audio = self._tts.generate(text, sid=self._speaker_id, speed=self._speed)
        if len(audio.samples) == 0:
            return b""
        samples = resample(
            audio.samples,
            src_rate_hz=int(audio.sample_rate),
            dst_rate_hz=AUDIO_SAMPLE_RATE_HZ,
        )
        return float32_to_pcm16le(samples)
