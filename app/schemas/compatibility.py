"""
Mithaq — Compatibility domain values.

Answers, completed responses, derived scores and persisted reports.  All
models are frozen: a completed response or report is replaced, never
patched in place.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from app.exceptions import InvalidResponse


# ──────────────────────────────────────────────────────────────────────────────
# Answers: closed tagged union
# ──────────────────────────────────────────────────────────────────────────────

class SingleAnswer(BaseModel):
    """One selected option (single_choice, yes_no, scale)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["single"] = "single"
    option_id: str


class MultipleAnswer(BaseModel):
    """A set of selected options (multiple_choice)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["multiple"] = "multiple"
    option_ids: frozenset[str] = frozenset()


ResponseValue = Annotated[
    Union[SingleAnswer, MultipleAnswer], Field(discriminator="kind")
]


def answer_to_wire(value: SingleAnswer | MultipleAnswer) -> str | list[str]:
    """Encode an answer as a bare string or a sorted list of strings."""
    if isinstance(value, SingleAnswer):
        return value.option_id
    return sorted(value.option_ids)


def answer_from_wire(raw: object) -> SingleAnswer | MultipleAnswer:
    """Decode the bare string / list-of-strings form back into an answer."""
    if isinstance(raw, str):
        return SingleAnswer(option_id=raw)
    if isinstance(raw, (list, tuple, set, frozenset)) and all(
        isinstance(item, str) for item in raw
    ):
        return MultipleAnswer(option_ids=frozenset(raw))
    raise InvalidResponse(
        f"Answer must be a string or a list of strings, got {type(raw).__name__}"
    )


# ──────────────────────────────────────────────────────────────────────────────
# Completed questionnaire
# ──────────────────────────────────────────────────────────────────────────────

class CompatibilityResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    responses: dict[str, ResponseValue]  # question_id -> answer
    completed_at: datetime


# ──────────────────────────────────────────────────────────────────────────────
# Derived score
# ──────────────────────────────────────────────────────────────────────────────

class CompatibilityScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id_1: str
    user_id_2: str
    overall_score: float
    category_scores: dict[str, float]
    breakdown: dict[str, float] = Field(default_factory=dict)
    calculated_at: datetime
    compatibility_level: str = ""
    level_description: str = ""
    level_color: str = ""


# ──────────────────────────────────────────────────────────────────────────────
# Family feedback
# ──────────────────────────────────────────────────────────────────────────────

class FeedbackStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class FamilyFeedback(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    report_id: str
    family_member_name: str
    relationship: str
    feedback: str
    created_at: datetime
    approval_status: FeedbackStatus = FeedbackStatus.PENDING


# ──────────────────────────────────────────────────────────────────────────────
# Report
# ──────────────────────────────────────────────────────────────────────────────

class CompatibilityReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    user_id_1: str
    user_id_2: str
    scores: CompatibilityScore
    generated_at: datetime
    family_feedback: list[FamilyFeedback] | None = None
    is_shared: bool = False
    shared_with: list[str] = Field(default_factory=list)
    shared_at: datetime | None = None
