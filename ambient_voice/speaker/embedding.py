"""
Speaker embedding value type and pure vector math.

Everything here is deterministic and side-effect free:
- same vector in, same quality verdict out
- cosine similarity is symmetric and bounded to [-1, 1]
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import numpy as np

from ambient_voice.constants import (
    COSINE_NORM_EPSILON,
    QUALITY_MIN_MAGNITUDE,
    QUALITY_MIN_VARIANCE,
    SPEAKER_EMBEDDING_DIM,
)


class EmbeddingOutcome(str, Enum):
    """
    How an embedding was obtained.

    Anything other than OK means the vector is the zero sentinel.
    """
    OK = "ok"
    UNAVAILABLE = "unavailable"
    EXTRACTION_FAILED = "extraction_failed"
    EMPTY = "empty"


@dataclass(frozen=True)
class SpeakerEmbedding:
    vector: np.ndarray
    outcome: EmbeddingOutcome = EmbeddingOutcome.OK

    @property
    def degraded(self) -> bool:
        return self.outcome is not EmbeddingOutcome.OK

    @property
    def dim(self) -> int:
        return int(self.vector.size)


def zero_embedding(
    outcome: EmbeddingOutcome,
    dim: int = SPEAKER_EMBEDDING_DIM,
) -> SpeakerEmbedding:
    """Deterministic sentinel returned on any extraction problem."""
    return SpeakerEmbedding(vector=np.zeros(dim, dtype=np.float32), outcome=outcome)


def passes_quality_gate(vector: np.ndarray) -> bool:
    """
    False when the vector is too small or too flat to identify anyone.

    magnitude: L2 norm
    variance:  population variance of the components
    """
    v = np.asarray(vector, dtype=np.float64)
    if v.size == 0:
        return False

    magnitude = float(np.sqrt(np.sum(v * v)))
    if magnitude < QUALITY_MIN_MAGNITUDE:
        return False

    variance = float(np.var(v))
    return variance >= QUALITY_MIN_VARIANCE


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """
    Cosine similarity in [-1, 1].

    Exactly -1.0 when lengths differ or either norm is below epsilon.
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)

    if va.shape != vb.shape:
        return -1.0

    norm_a = float(np.linalg.norm(va))
    norm_b = float(np.linalg.norm(vb))
    if norm_a < COSINE_NORM_EPSILON or norm_b < COSINE_NORM_EPSILON:
        return -1.0

    similarity = float(np.dot(va, vb)) / (norm_a * norm_b)
    return max(-1.0, min(1.0, similarity))
