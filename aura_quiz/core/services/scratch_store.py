"""Scratch storage for answers given before a quiz is submitted."""

from __future__ import annotations

from collections.abc import Mapping
from threading import Lock
from typing import Protocol

from aura_quiz.constants.quiz_constants import SCRATCH_KEY_TEMPLATE


class ScratchStore(Protocol):
    """Key-value storage of in-progress answers, scoped by quiz."""

    def get(self, quiz_id: str) -> dict[str, object]: ...

    def put(self, quiz_id: str, answers: Mapping[str, object]) -> None: ...

    def delete(self, quiz_id: str) -> None: ...


class InMemoryScratchStore:
    """Scratch storage for one respondent, kept in process memory."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._entries: dict[str, dict[str, object]] = {}

    def get(self, quiz_id: str) -> dict[str, object]:
        with self._lock:
            return dict(self._entries.get(scratch_key(quiz_id), {}))

    def put(self, quiz_id: str, answers: Mapping[str, object]) -> None:
        with self._lock:
            self._entries[scratch_key(quiz_id)] = dict(answers)

    def delete(self, quiz_id: str) -> None:
        with self._lock:
            self._entries.pop(scratch_key(quiz_id), None)

    def has_entry(self, quiz_id: str) -> bool:
        with self._lock:
            return scratch_key(quiz_id) in self._entries


def scratch_key(quiz_id: str) -> str:
    return SCRATCH_KEY_TEMPLATE.format(quiz_id=quiz_id)
