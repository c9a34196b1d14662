"""
Speaker embedding extractor adapters.

Contract:
- embed(samples) is synchronous and may be slow; callers run it in a
  worker thread.
- embed() may raise. Turning failures into sentinel embeddings is the
  SpeakerAttributor's job, not the extractor's.
- Constructors raise ExtractorUnavailable when the model cannot be loaded.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np

from ambient_voice.constants import AUDIO_SAMPLE_RATE_HZ, VAD_NUM_THREADS


class ExtractorUnavailable(RuntimeError):
    """Raised when the speaker-embedding model cannot be initialized."""


class EmbeddingExtractor(ABC):

    @property
    @abstractmethod
    def dim(self) -> int:
        """Length of every vector returned by embed()."""

    @abstractmethod
    def embed(self, samples: np.ndarray) -> np.ndarray:
        """Return the embedding of float32 mono samples, or an empty array."""


class SherpaEmbeddingExtractor(EmbeddingExtractor):
    """sherpa-onnx speaker embedding model (e.g. 3D-Speaker ERes2Net)."""

    def __init__(
        self,
        *,
        model_path: str,
        sample_rate_hz: int = AUDIO_SAMPLE_RATE_HZ,
        num_threads: int = VAD_NUM_THREADS,
    ) -> None:
        try:
            import sherpa_onnx  # pylint: disable=import-outside-toplevel

            config = sherpa_onnx.SpeakerEmbeddingExtractorConfig(
                model=model_path,
                num_threads=num_threads,
                debug=False,
                provider="cpu",
            )
            self._extractor = sherpa_onnx.SpeakerEmbeddingExtractor(config)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            raise ExtractorUnavailable(f"{type(exc).__name__}: {exc}") from exc

        self._sample_rate_hz = sample_rate_hz

    @property
    def dim(self) -> int:
        return int(self._extractor.dim)

    def embed(self, samples: np.ndarray) -> np.ndarray:
        stream = self._extractor.create_stream()
        stream.accept_waveform(
            sample_rate=self._sample_rate_hz,
            waveform=np.asarray(samples, dtype=np.float32),
        )
        stream.input_finished()

        if not self._extractor.is_ready(stream):
            return np.zeros(0, dtype=np.float32)

        return np.asarray(self._extractor.compute(stream), dtype=np.float32)
