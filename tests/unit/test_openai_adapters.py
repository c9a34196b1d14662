# pylint: disable=missing-module-docstring,missing-function-docstring

import asyncio
import io
from contextlib import asynccontextmanager
from types import SimpleNamespace
from typing import Any, AsyncIterator

import numpy as np
import soundfile as sf

from ambient_voice.adapters.asr.openai_cloud import OpenAICloudRecognizer, encode_wav
from ambient_voice.adapters.tts.openai_tts import OpenAISpeechSynthesizer


# ---------------------------------------------------------------------
# Speech synthesis
# ---------------------------------------------------------------------

class FakeStreamingResponse:
    def __init__(self, pieces: list[bytes]) -> None:
        self.pieces = pieces

    async def iter_bytes(self, chunk_size: int) -> AsyncIterator[bytes]:
        for p in self.pieces:
            yield p


def speech_client(pieces: list[bytes], seen: dict[str, Any]) -> Any:
    @asynccontextmanager
    async def create(**kwargs: Any):
        seen.update(kwargs)
        yield FakeStreamingResponse(pieces)

    return SimpleNamespace(
        audio=SimpleNamespace(
            speech=SimpleNamespace(with_streaming_response=SimpleNamespace(create=create))
        )
    )


def test_tts_requests_raw_pcm_and_resamples_to_16k():
    seen: dict[str, Any] = {}
    # 2400 samples @ 24 kHz = 100 ms, split at an odd byte offset
    pcm = np.zeros(2400, dtype="<i2").tobytes()
    client = speech_client([pcm[:1001], pcm[1001:]], seen)
    synth = OpenAISpeechSynthesizer(client=client, api_key="k", voice="alloy")

    async def collect() -> list[bytes]:
        return [c async for c in synth.stream("hello")]

    out = asyncio.run(collect())

    assert seen["response_format"] == "pcm"
    assert seen["voice"] == "alloy"
    assert seen["input"] == "hello"
    assert all(len(c) % 2 == 0 for c in out)
    # 100 ms @ 16 kHz
    assert sum(len(c) for c in out) // 2 == 1600


def test_tts_stream_split_at_odd_offsets_keeps_exact_length():
    seen: dict[str, Any] = {}
    # 1 s of a 24 kHz sine, delivered in 4801-byte pieces
    t = np.arange(24000) / 24000
    pcm = np.round(0.5 * np.sin(2 * np.pi * 440 * t) * 32767).astype("<i2").tobytes()
    pieces = [pcm[i : i + 4801] for i in range(0, len(pcm), 4801)]
    synth = OpenAISpeechSynthesizer(client=speech_client(pieces, seen), api_key="k")

    async def collect() -> list[bytes]:
        return [c async for c in synth.stream("hello")]

    out = np.frombuffer(b"".join(asyncio.run(collect())), dtype="<i2").astype(np.float32) / 32768.0

    assert out.size == 16000
    # no clicks at piece boundaries
    assert np.max(np.abs(np.diff(out))) < 0.1


def test_tts_unavailable_without_key():
    assert OpenAISpeechSynthesizer(client=object(), api_key=None).is_available is False
    assert OpenAISpeechSynthesizer(client=None, api_key="k").is_available is False


# ---------------------------------------------------------------------
# Cloud recognition
# ---------------------------------------------------------------------

def test_encode_wav_is_16k_pcm16():
    data = encode_wav(np.zeros(1600, dtype=np.float32))

    info = sf.info(io.BytesIO(data))
    assert info.samplerate == 16000
    assert info.frames == 1600
    assert info.subtype == "PCM_16"


def test_cloud_recognizer_sends_wav_and_returns_text():
    seen: dict[str, Any] = {}

    async def create(**kwargs: Any) -> Any:
        seen.update(kwargs)
        return SimpleNamespace(text="hello there")

    client = SimpleNamespace(audio=SimpleNamespace(transcriptions=SimpleNamespace(create=create)))
    recognizer = OpenAICloudRecognizer(client=client, api_key="k", language="zh")

    text = asyncio.run(recognizer.recognize(np.zeros(1600, dtype=np.float32)))

    assert text == "hello there"
    assert seen["language"] == "zh"
    name, payload, mime = seen["file"]
    assert (name, mime) == ("segment.wav", "audio/wav")
    assert payload[:4] == b"RIFF"


def test_cloud_recognizer_availability():
    assert OpenAICloudRecognizer(client=object(), api_key="").is_available is False
    assert OpenAICloudRecognizer(client=object(), api_key="k").is_available is True
