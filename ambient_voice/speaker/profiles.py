"""
Enrolled speaker profiles.

Exactly one profile is authoritative for self/other discrimination: the
one registered under PRIMARY_USER_NAME. Older installs used
"main_user"; it is still read as the primary user and removed on
re-enrollment.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import numpy as np

from ambient_voice.constants import LEGACY_PRIMARY_USER_NAMES, PRIMARY_USER_NAME
from ambient_voice.observability.logger import log_component


@dataclass(frozen=True)
class EnrolledSpeaker:
    name: str
    embedding: np.ndarray
    model: str


class SpeakerProfileStore(Protocol):

    def add(self, speaker: EnrolledSpeaker) -> None: ...

    def remove(self, name: str) -> bool: ...

    def list_names(self) -> list[str]: ...

    def get(self, name: str) -> EnrolledSpeaker | None: ...


class InMemorySpeakerProfileStore:
    """
    Dict-backed profile store.

    With `path`, profiles are written to a JSON file on every change and
    loaded back at construction.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self._path = Path(path) if path is not None else None
        self._profiles: dict[str, EnrolledSpeaker] = {}
        if self._path is not None and self._path.exists():
            self._load()

    def add(self, speaker: EnrolledSpeaker) -> None:
        self._profiles[speaker.name] = speaker
        self._save()

    def remove(self, name: str) -> bool:
        removed = self._profiles.pop(name, None) is not None
        if removed:
            self._save()
        return removed

    def list_names(self) -> list[str]:
        return list(self._profiles)

    def get(self, name: str) -> EnrolledSpeaker | None:
        return self._profiles.get(name)

    def _save(self) -> None:
        if self._path is None:
            return
        payload = [
            {"name": s.name, "model": s.model, "embedding": s.embedding.tolist()}
            for s in self._profiles.values()
        ]
        self._path.write_text(json.dumps(payload), encoding="utf-8")

    def _load(self) -> None:
        assert self._path is not None
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
            if not isinstance(payload, list):
                raise TypeError(f"expected a list of profiles, got {type(payload).__name__}")
            loaded: dict[str, EnrolledSpeaker] = {}
            for item in payload:
                loaded[item["name"]] = EnrolledSpeaker(
                    name=str(item["name"]),
                    embedding=np.asarray(item["embedding"], dtype=np.float32),
                    model=item.get("model", ""),
                )
        except (OSError, KeyError, TypeError, ValueError) as e:
            log_component(
                "speaker_profiles",
                "PROFILE_LOAD_FAILED",
                path=str(self._path),
                error=f"{type(e).__name__}: {e}",
            )
            return
        self._profiles.update(loaded)


def primary_user(store: SpeakerProfileStore) -> EnrolledSpeaker | None:
    """Return the authoritative primary-user profile, if enrolled."""
    for name in (PRIMARY_USER_NAME, *LEGACY_PRIMARY_USER_NAMES):
        speaker = store.get(name)
        if speaker is not None:
            return speaker
    return None


def remove_primary_user(store: SpeakerProfileStore) -> None:
    for name in (PRIMARY_USER_NAME, *LEGACY_PRIMARY_USER_NAMES):
        store.remove(name)
