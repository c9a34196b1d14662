# pylint: disable=missing-module-docstring,missing-function-docstring

import numpy as np
import pytest

from ambient_voice.speaker.embedding import (
    EmbeddingOutcome,
    cosine_similarity,
    passes_quality_gate,
    zero_embedding,
)


# ---------------------------------------------------------------------
# Cosine similarity
# ---------------------------------------------------------------------

def test_identical_vectors_score_one():
    v = np.array([0.3, -0.2, 0.9], dtype=np.float32)

    assert cosine_similarity(v, v) == pytest.approx(1.0)


def test_opposite_vectors_score_minus_one():
    v = np.array([1.0, 2.0, 3.0])

    assert cosine_similarity(v, -v) == pytest.approx(-1.0)


def test_length_mismatch_is_minus_one():
    assert cosine_similarity(np.ones(3), np.ones(4)) == -1.0


def test_zero_norm_is_minus_one():
    assert cosine_similarity(np.zeros(3), np.ones(3)) == -1.0
    assert cosine_similarity(np.ones(3), np.zeros(3)) == -1.0


def test_similarity_is_symmetric_and_bounded():
    rng = np.random.default_rng(7)
    for _ in range(20):
        a = rng.normal(size=16)
        b = rng.normal(size=16)
        s = cosine_similarity(a, b)
        assert s == cosine_similarity(b, a)
        assert -1.0 <= s <= 1.0


# ---------------------------------------------------------------------
# Quality gate
# ---------------------------------------------------------------------

def test_quality_gate_rejects_zero_and_flat_vectors():
    assert passes_quality_gate(np.zeros(512)) is False
    assert passes_quality_gate(np.full(512, 0.5)) is False
    assert passes_quality_gate(np.zeros(0)) is False


def test_quality_gate_accepts_varied_vector():
    v = np.tile([0.5, -0.5], 256)

    assert passes_quality_gate(v) is True


def test_quality_gate_is_deterministic():
    v = np.random.default_rng(1).normal(size=512) * 0.05
    verdicts = {passes_quality_gate(v) for _ in range(5)}

    assert len(verdicts) == 1


# ---------------------------------------------------------------------
# Sentinel
# ---------------------------------------------------------------------

def test_zero_embedding_is_degraded_sentinel():
    e = zero_embedding(EmbeddingOutcome.EXTRACTION_FAILED, dim=8)

    assert e.degraded
    assert e.dim == 8
    assert not e.vector.any()
    assert not passes_quality_gate(e.vector)
