"""
OpenAI speech synthesizer.

Streams raw 24 kHz PCM16 from the speech endpoint and resamples it to
16 kHz as it arrives. Odd trailing bytes are carried into the next network
chunk so samples never straddle a boundary; the resampler carries its
filter state so chunk edges are seamless.
"""

from __future__ import annotations

from typing import Any, AsyncIterator

from ambient_voice.adapters.tts.base import SpeechSynthesizer
from ambient_voice.audio.pcm import StreamingResampler, float32_to_pcm16le, pcm16le_to_float32
from ambient_voice.constants import AUDIO_SAMPLE_RATE_HZ, CLOUD_TTS_SAMPLE_RATE_HZ


PROVIDER_CHUNK_SIZE = 4800  # 100 ms at 24 kHz PCM16


class OpenAISpeechSynthesizer(SpeechSynthesizer):

    def __init__(
        self,
        *,
        client: Any,
        api_key: str | None,
        model: str = "tts-1",
        voice: str = "nova",
    ) -> None:
        self._client = client
        self._api_key = api_key
        self._model = model
        self._voice = voice

    @property
    def is_available(self) -> bool:
        return self._client is not None and bool(self._api_key)

    async def stream(self, text: str) -> AsyncIterator[bytes]:
        resampler = StreamingResampler(
            src_rate_hz=CLOUD_TTS_SAMPLE_RATE_HZ,
            dst_rate_hz=AUDIO_SAMPLE_RATE_HZ,
        )
        async with self._client.audio.speech.with_streaming_response.create(
            model=self._model,
            voice=self._voice,
            input=text,
            response_format="pcm",
        ) as response:
            carry = b""
            async for chunk in response.iter_bytes(PROVIDER_CHUNK_SIZE):
                data = carry + chunk
                if len(data) % 2 == 1:
                    carry = data[-1:]
                    data = data[:-1]
                else:
                    carry = b""

                if not data:
                    continue
                out = resampler.process(pcm16le_to_float32(data))
                if out.size:
                    yield float32_to_pcm16le(out)

        tail = resampler.flush()
        if tail.size:
            yield float32_to_pcm16le(tail)
