# pylint: disable=missing-module-docstring,missing-function-docstring

from pathlib import Path
from typing import Any

import numpy as np
import pytest

from ambient_voice.constants import PRIMARY_USER_NAME
from ambient_voice.speaker.embedding import EmbeddingOutcome, SpeakerEmbedding, zero_embedding
from ambient_voice.speaker.enrollment import (
    EnrollmentFlow,
    EnrollmentStatus,
    edit_distance,
    normalize_phrase,
    text_similarity,
)
from ambient_voice.speaker import profiles as profiles_mod
from ambient_voice.speaker.profiles import (
    EnrolledSpeaker,
    InMemorySpeakerProfileStore,
    primary_user,
)


PHRASES = ("就这么开始吧", "hello there buddy")
VOICE = SpeakerEmbedding(
    vector=np.tile(np.array([0.5, -0.5], dtype=np.float32), 4),
    outcome=EmbeddingOutcome.OK,
)


def make_flow() -> tuple[EnrollmentFlow, InMemorySpeakerProfileStore]:
    profiles = InMemorySpeakerProfileStore()
    return EnrollmentFlow(profiles=profiles, phrases=PHRASES), profiles


# ---------------------------------------------------------------------
# Text similarity
# ---------------------------------------------------------------------

def test_normalize_drops_punctuation_and_case():
    assert normalize_phrase("Hello, There!") == "hellothere"
    assert normalize_phrase("就这么开始吧。") == "就这么开始吧"


def test_edit_distance():
    assert edit_distance("kitten", "sitting") == 3
    assert edit_distance("", "abc") == 3
    assert edit_distance("same", "same") == 0


def test_text_similarity_bounds():
    assert text_similarity("就这么开始吧！", "就这么开始吧") == 1.0
    assert text_similarity("", "") == 1.0
    assert text_similarity("abc", "xyz") == 0.0


# ---------------------------------------------------------------------
# Flow
# ---------------------------------------------------------------------

def test_start_removes_existing_primary_user():
    flow, profiles = make_flow()
    profiles.add(EnrolledSpeaker(name=PRIMARY_USER_NAME, embedding=VOICE.vector, model="x"))
    profiles.add(EnrolledSpeaker(name="main_user", embedding=VOICE.vector, model="x"))

    flow.start()

    assert primary_user(profiles) is None
    assert flow.in_progress
    assert flow.step == 0
    assert flow.expected_phrase == PHRASES[0]


def test_matching_phrase_advances_and_stores_profile():
    flow, profiles = make_flow()
    flow.start()

    outcome = flow.submit("就这么开始吧", VOICE)

    assert outcome.status is EnrollmentStatus.SUCCESS
    assert outcome.step == 1
    profile = primary_user(profiles)
    assert profile is not None
    assert np.array_equal(profile.embedding, VOICE.vector)


def test_mismatched_phrase_fails_without_advancing():
    flow, profiles = make_flow()
    flow.start()

    outcome = flow.submit("completely different words", VOICE)

    assert outcome.status is EnrollmentStatus.FAILURE
    assert outcome.similarity is not None and outcome.similarity < 0.5
    assert flow.step == 0
    assert primary_user(profiles) is None


def test_last_phrase_completes_flow():
    flow, _ = make_flow()
    flow.start()
    flow.submit("就这么开始吧", VOICE)

    outcome = flow.submit("Hello there, buddy.", VOICE)

    assert outcome.status is EnrollmentStatus.COMPLETED
    assert outcome.to_payload() == {"enrollmentStatus": "completed", "step": 2}
    assert not flow.in_progress
    assert flow.expected_phrase is None


@pytest.mark.parametrize(
    "outcome,message",
    [
        (EmbeddingOutcome.UNAVAILABLE, "voiceprint model not initialized"),
        (EmbeddingOutcome.EXTRACTION_FAILED, "invalid voiceprint features"),
        (EmbeddingOutcome.EMPTY, "invalid voiceprint features"),
    ],
)
def test_degraded_embedding_is_error(outcome: EmbeddingOutcome, message: str):
    flow, profiles = make_flow()
    flow.start()

    result = flow.submit("就这么开始吧", zero_embedding(outcome, dim=8))

    assert result.status is EnrollmentStatus.ERROR
    assert result.message == message
    assert flow.step == 0
    assert primary_user(profiles) is None


def test_submit_when_idle_is_error():
    flow, _ = make_flow()

    assert flow.submit("就这么开始吧", VOICE).status is EnrollmentStatus.ERROR


def test_abort_returns_to_idle():
    flow, _ = make_flow()
    flow.start()

    flow.abort()

    assert not flow.in_progress
    assert flow.submit("就这么开始吧", VOICE).status is EnrollmentStatus.ERROR


def test_empty_phrase_list_is_rejected():
    with pytest.raises(ValueError):
        EnrollmentFlow(profiles=InMemorySpeakerProfileStore(), phrases=())


# ---------------------------------------------------------------------
# Profile persistence
# ---------------------------------------------------------------------

def test_profiles_persist_to_json(tmp_path: Path):
    path = tmp_path / "profiles.json"
    store = InMemorySpeakerProfileStore(path)
    store.add(EnrolledSpeaker(name=PRIMARY_USER_NAME, embedding=VOICE.vector, model="m"))

    reloaded = InMemorySpeakerProfileStore(path)

    profile = reloaded.get(PRIMARY_USER_NAME)
    assert profile is not None
    assert profile.model == "m"
    assert np.allclose(profile.embedding, VOICE.vector)
    assert reloaded.list_names() == [PRIMARY_USER_NAME]


def test_unreadable_profile_file_starts_empty(tmp_path: Path):
    path = tmp_path / "profiles.json"
    path.write_text("{not json", encoding="utf-8")

    assert InMemorySpeakerProfileStore(path).list_names() == []


@pytest.mark.parametrize(
    "content",
    [
        '{"name": "user", "embedding": [0.5]}',
        '[{"embedding": [0.5, -0.5]}]',
        '[{"name": "user"}]',
        '["user"]',
        '[{"name": "user", "embedding": ["loud"]}]',
    ],
)
def test_malformed_profile_file_starts_empty(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, content: str):
    captured: list[dict[str, Any]] = []

    def fake_log_component(component: str, event_type: str, **fields: Any) -> None:
        captured.append({"component": component, "event_type": event_type, **fields})

    monkeypatch.setattr(profiles_mod, "log_component", fake_log_component)
    path = tmp_path / "profiles.json"
    path.write_text(content, encoding="utf-8")

    store = InMemorySpeakerProfileStore(path)

    assert store.list_names() == []
    assert [e["event_type"] for e in captured] == ["PROFILE_LOAD_FAILED"]


def test_each_start_and_abort_is_a_new_attempt():
    flow, _ = make_flow()
    before = flow.generation

    flow.start()
    started = flow.generation
    flow.abort()
    aborted = flow.generation
    flow.start()

    assert before < started < aborted < flow.generation
