"""
On-device streaming recognizer (sherpa-onnx online paraformer).

The engine is fed one whole segment followed by a short silence tail so the
final tokens are flushed. Decoding is blocking and runs in a worker thread.
"""

from __future__ import annotations

import asyncio

import numpy as np

from ambient_voice.adapters.asr.base import RecognizerUnavailable, StreamingRecognizer
from ambient_voice.constants import (
    AUDIO_SAMPLE_RATE_HZ,
    STREAMING_TAIL_PADDING_S,
    VAD_NUM_THREADS,
)


class SherpaStreamingRecognizer(StreamingRecognizer):

    def __init__(
        self,
        *,
        encoder_path: str,
        decoder_path: str,
        tokens_path: str,
        sample_rate_hz: int = AUDIO_SAMPLE_RATE_HZ,
        num_threads: int = VAD_NUM_THREADS,
    ) -> None:
        try:
            import sherpa_onnx  # pylint: disable=import-outside-toplevel

            self._recognizer = sherpa_onnx.OnlineRecognizer.from_paraformer(
                tokens=tokens_path,
                encoder=encoder_path,
                decoder=decoder_path,
                num_threads=num_threads,
                sample_rate=sample_rate_hz,
                feature_dim=80,
                decoding_method="greedy_search",
            )
        except Exception as exc:  # pylint: disable=broad-exception-caught
            raise RecognizerUnavailable(f"{type(exc).__name__}: {exc}") from exc

        self._sample_rate_hz = sample_rate_hz
        self._tail = np.zeros(int(STREAMING_TAIL_PADDING_S * sample_rate_hz), dtype=np.float32)

    async def process_audio(self, samples: np.ndarray) -> str:
        # transcribe is blocking; we run it in a thread.
        return await asyncio.to_thread(self._decode, samples)

    def _decode(self, samples: np.ndarray) -> str:
        stream = self._recognizer.create_stream()
        stream.accept_waveform(self._sample_rate_hz, np.asarray(samples, dtype=np.float32))
        stream.accept_waveform(self._sample_rate_hz, self._tail)
        stream.input_finished()

        while self._recognizer.is_ready(stream):
            self._recognizer.decode_stream(stream)

        return str(self._recognizer.get_result(stream))
