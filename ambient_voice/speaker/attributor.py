"""
Speaker attribution.

Responsibilities:
- Turn a segment's unpadded speech into a SpeakerEmbedding, never raising
- Quality-gate embeddings
- Decide user vs others against the enrolled primary user, with a threshold
  that adapts to who has been talking recently

Defaults (availability over precision):
- no enrolled primary user  -> others
- embedding fails the gate  -> user
"""

from __future__ import annotations

from collections import deque
from typing import Deque

import numpy as np

from ambient_voice.constants import (
    SIMILARITY_HISTORY_MAX,
    SPEAKER_EMBEDDING_DIM,
    THRESHOLD_BASELINE,
    THRESHOLD_HISTORY_LIMIT,
    THRESHOLD_USER_DOMINANT,
    THRESHOLD_USER_SPARSE,
    USER_RATIO_HIGH,
    USER_RATIO_LOW,
)
from ambient_voice.observability.logger import log_component
from ambient_voice.speaker.embedding import (
    EmbeddingOutcome,
    SpeakerEmbedding,
    cosine_similarity,
    passes_quality_gate,
    zero_embedding,
)
from ambient_voice.speaker.extractor import EmbeddingExtractor
from ambient_voice.speaker.profiles import SpeakerProfileStore, primary_user
from ambient_voice.storage.records import RecordStore, Role


_COMPONENT = "speaker_attributor"


def threshold_for_ratio(user_ratio: float | None) -> float:
    """
    Map the recent user share to a similarity threshold.

    A user-dominated history raises the bar, a sparse one lowers it.
    """
    if user_ratio is None:
        return THRESHOLD_BASELINE
    if user_ratio > USER_RATIO_HIGH:
        return THRESHOLD_USER_DOMINANT
    if user_ratio < USER_RATIO_LOW:
        return THRESHOLD_USER_SPARSE
    return THRESHOLD_BASELINE


class SpeakerAttributor:

    def __init__(
        self,
        *,
        extractor: EmbeddingExtractor | None,
        profiles: SpeakerProfileStore,
        records: RecordStore,
        history_limit: int = THRESHOLD_HISTORY_LIMIT,
    ) -> None:
        self._extractor = extractor
        self._profiles = profiles
        self._records = records
        self._history_limit = history_limit
        self._dim = extractor.dim if extractor is not None else SPEAKER_EMBEDDING_DIM

        self.user_similarities: Deque[float] = deque(maxlen=SIMILARITY_HISTORY_MAX)
        self.others_similarities: Deque[float] = deque(maxlen=SIMILARITY_HISTORY_MAX)

    @property
    def available(self) -> bool:
        return self._extractor is not None

    @property
    def profiles(self) -> SpeakerProfileStore:
        return self._profiles

    # ------------------------------------------------------------------
    # Embedding
    # ------------------------------------------------------------------

    def embed(self, samples: np.ndarray) -> SpeakerEmbedding:
        """
        Extract an embedding. Blocking; run in a worker thread.

        Every failure mode is returned as a degraded outcome carrying the
        zero sentinel of the expected dimension.
        """
        if self._extractor is None:
            return zero_embedding(EmbeddingOutcome.UNAVAILABLE, self._dim)

        try:
            vector = self._extractor.embed(samples)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_component(
                _COMPONENT,
                "EMBEDDING_EXTRACTION_FAILED",
                error=f"{type(exc).__name__}: {exc}",
            )
            return zero_embedding(EmbeddingOutcome.EXTRACTION_FAILED, self._dim)

        if vector.size == 0:
            log_component(_COMPONENT, "EMBEDDING_EMPTY", samples=int(np.size(samples)))
            return zero_embedding(EmbeddingOutcome.EMPTY, self._dim)

        return SpeakerEmbedding(vector=vector, outcome=EmbeddingOutcome.OK)

    # ------------------------------------------------------------------
    # Identification
    # ------------------------------------------------------------------

    @staticmethod
    def quality_gate(embedding: SpeakerEmbedding) -> bool:
        return passes_quality_gate(embedding.vector)

    def adaptive_threshold(self) -> float:
        ratio = self._records.recent_speaker_ratio(self._history_limit)
        return threshold_for_ratio(ratio)

    def identify(self, embedding: SpeakerEmbedding) -> Role:
        profile = primary_user(self._profiles)
        if profile is None:
            log_component(_COMPONENT, "SPEAKER_IDENTIFIED", speaker=Role.OTHERS.value, reason="no_profile")
            return Role.OTHERS

        if not self.quality_gate(embedding):
            log_component(
                _COMPONENT,
                "SPEAKER_IDENTIFIED",
                speaker=Role.USER.value,
                reason="quality_gate_failed",
                outcome=embedding.outcome.value,
            )
            return Role.USER

        threshold = self.adaptive_threshold()
        similarity = cosine_similarity(embedding.vector, profile.embedding)
        speaker = Role.USER if similarity >= threshold else Role.OTHERS

        if speaker is Role.USER:
            self.user_similarities.append(similarity)
        else:
            self.others_similarities.append(similarity)

        log_component(
            _COMPONENT,
            "SPEAKER_IDENTIFIED",
            speaker=speaker.value,
            reason="similarity",
            similarity=round(similarity, 4),
            threshold=threshold,
        )
        return speaker
