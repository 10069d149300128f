"""
Mithaq — In-progress questionnaire state.

A ``ResponseStore`` belongs to exactly one session and is never persisted
as-is; ``CompatibilityService.submit_questionnaire`` turns a snapshot of it
into a completed ``CompatibilityResponse``.  Single writer only: the store
does no locking.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from app.schemas.catalog import QuestionCatalog
from app.schemas.compatibility import CompatibilityResponse, ResponseValue


class ResponseStore:
    """Answers collected so far, keyed by question id."""

    def __init__(self, catalog: QuestionCatalog) -> None:
        self.catalog = catalog
        self._responses: dict[str, ResponseValue] = {}

    @property
    def responses(self) -> Mapping[str, ResponseValue]:
        return MappingProxyType(self._responses)

    @property
    def answered_count(self) -> int:
        return len(self._responses)

    def save_response(self, question_id: str, value: ResponseValue) -> None:
        """Insert or replace the answer for *question_id*."""
        self._responses[question_id] = value

    def remove_response(self, question_id: str) -> None:
        self._responses.pop(question_id, None)

    def progress_fraction(self) -> float:
        """Answered / total catalog questions, 0.0 for an empty catalog."""
        total = self.catalog.total_questions
        if total == 0:
            return 0.0
        # Answers to questions outside the catalog do not count.
        answered = len(self.catalog.question_ids.intersection(self._responses))
        return answered / total

    @property
    def progress_percentage(self) -> float:
        return self.progress_fraction() * 100

    def is_complete(self) -> bool:
        return self.catalog.question_ids.issubset(self._responses)

    def reset(self) -> None:
        self._responses.clear()

    def snapshot(self) -> dict[str, ResponseValue]:
        """Copy of the current answers, safe to hand to another owner."""
        return dict(self._responses)

    def load(self, response: CompatibilityResponse) -> None:
        """Replace the in-progress answers with a completed response."""
        self._responses.clear()
        self._responses.update(response.responses)
