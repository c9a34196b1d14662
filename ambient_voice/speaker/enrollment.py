"""
Voiceprint enrollment flow.

States:
    idle
    awaiting phrase n   (0 <= n < len(phrases))

start() removes any primary-user profile and moves to phrase 0.
Each finalized utterance is compared (edit-distance similarity) to the
expected phrase:
- similarity >= threshold: the utterance's embedding becomes the primary
  user profile, n advances, SUCCESS (or COMPLETED after the last phrase)
- otherwise: FAILURE carrying the similarity, n unchanged
abort() returns to idle at any time.
"""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from ambient_voice.constants import (
    ENROLLMENT_PHRASES,
    ENROLLMENT_TEXT_SIMILARITY_MIN,
    PRIMARY_USER_NAME,
    SPEAKER_MODEL_TAG,
)
from ambient_voice.observability.logger import log_component
from ambient_voice.speaker.embedding import EmbeddingOutcome, SpeakerEmbedding
from ambient_voice.speaker.profiles import (
    EnrolledSpeaker,
    SpeakerProfileStore,
    remove_primary_user,
)


_COMPONENT = "enrollment"


# =============================================================================
# Text similarity
# =============================================================================

def normalize_phrase(text: str) -> str:
    """Lowercase and drop whitespace and punctuation (ASCII and CJK)."""
    return "".join(
        ch for ch in text.lower()
        if not ch.isspace() and not unicodedata.category(ch).startswith("P")
    )


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance (insert, delete, substitute all cost 1)."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (ca != cb),
            ))
        previous = current
    return previous[-1]


def text_similarity(spoken: str, expected: str) -> float:
    """1 - distance / longer length, on normalized text. Two empties are equal."""
    a = normalize_phrase(spoken)
    b = normalize_phrase(expected)
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - edit_distance(a, b) / longest


# =============================================================================
# Outcomes
# =============================================================================

class EnrollmentStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(frozen=True)
class EnrollmentOutcome:
    status: EnrollmentStatus
    step: int | None = None
    similarity: float | None = None
    message: str | None = None

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {"enrollmentStatus": self.status.value}
        if self.step is not None:
            payload["step"] = self.step
        if self.similarity is not None:
            payload["similarity"] = round(self.similarity, 4)
        if self.message is not None:
            payload["message"] = self.message
        return payload


# =============================================================================
# Flow
# =============================================================================

class EnrollmentFlow:

    def __init__(
        self,
        *,
        profiles: SpeakerProfileStore,
        phrases: Sequence[str] = ENROLLMENT_PHRASES,
        threshold: float = ENROLLMENT_TEXT_SIMILARITY_MIN,
        model_tag: str = SPEAKER_MODEL_TAG,
    ) -> None:
        if not phrases:
            raise ValueError("phrases must not be empty")

        self._profiles = profiles
        self._phrases = tuple(phrases)
        self._threshold = threshold
        self._model_tag = model_tag

        self._in_progress = False
        self._step = 0
        self._generation = 0

    @property
    def in_progress(self) -> bool:
        return self._in_progress

    @property
    def step(self) -> int:
        return self._step

    @property
    def generation(self) -> int:
        """Bumped by every start() and abort(); identifies one enrollment attempt."""
        return self._generation

    @property
    def phrases(self) -> tuple[str, ...]:
        return self._phrases

    @property
    def expected_phrase(self) -> str | None:
        if not self._in_progress:
            return None
        return self._phrases[self._step]

    def start(self) -> None:
        remove_primary_user(self._profiles)
        self._generation += 1
        self._step = 0
        self._in_progress = True
        log_component(_COMPONENT, "ENROLLMENT_STARTED", phrases=len(self._phrases))

    def abort(self) -> None:
        if self._in_progress:
            log_component(_COMPONENT, "ENROLLMENT_ABORTED", step=self._step)
        self._generation += 1
        self._in_progress = False

    def submit(self, text: str, embedding: SpeakerEmbedding) -> EnrollmentOutcome:
        """
        Consume one finalized utterance.

        Never raises; problems come back as ERROR outcomes with the step
        unchanged.
        """
        if not self._in_progress:
            return EnrollmentOutcome(EnrollmentStatus.ERROR, message="enrollment not started")

        if embedding.outcome is EmbeddingOutcome.UNAVAILABLE:
            return EnrollmentOutcome(
                EnrollmentStatus.ERROR, message="voiceprint model not initialized"
            )
        if embedding.degraded:
            return EnrollmentOutcome(
                EnrollmentStatus.ERROR, message="invalid voiceprint features"
            )

        similarity = text_similarity(text, self._phrases[self._step])
        log_component(
            _COMPONENT,
            "ENROLLMENT_PHRASE_SCORED",
            step=self._step,
            text=text,
            similarity=round(similarity, 4),
        )

        if similarity < self._threshold:
            return EnrollmentOutcome(EnrollmentStatus.FAILURE, similarity=similarity)

        remove_primary_user(self._profiles)
        self._profiles.add(
            EnrolledSpeaker(
                name=PRIMARY_USER_NAME,
                embedding=embedding.vector,
                model=self._model_tag,
            )
        )
        self._step += 1

        if self._step >= len(self._phrases):
            self._in_progress = False
            log_component(_COMPONENT, "ENROLLMENT_COMPLETED", steps=self._step)
            return EnrollmentOutcome(EnrollmentStatus.COMPLETED, step=self._step)

        return EnrollmentOutcome(EnrollmentStatus.SUCCESS, step=self._step)
