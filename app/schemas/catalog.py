"""
Mithaq — Question catalog schema.

The catalog is a versioned, read-only document of weighted categories,
each holding an ordered list of questions.  It is parsed once at process
start and shared across every scoring call.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterator

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class QuestionType(str, Enum):
    SINGLE_CHOICE = "single_choice"
    MULTIPLE_CHOICE = "multiple_choice"
    SCALE = "scale"
    YES_NO = "yes_no"


class QuestionOption(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    text: str = ""
    value: float  # conventionally 0.0-1.0


class Question(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    text: str = ""
    type: QuestionType
    options: tuple[QuestionOption, ...]
    is_required: bool = True  # display hint only; completeness counts every question

    @field_validator("options")
    @classmethod
    def _option_ids_unique(
        cls, v: tuple[QuestionOption, ...]
    ) -> tuple[QuestionOption, ...]:
        ids = [o.id for o in v]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Duplicate option ids: {sorted(ids)}")
        return v

    def option_value(self, option_id: str) -> float | None:
        """Return the declared value of *option_id*, or None if unknown."""
        for option in self.options:
            if option.id == option_id:
                return option.value
        return None


class Category(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    description: str = ""
    weight: float = Field(ge=0.0)
    questions: tuple[Question, ...] = Field(min_length=1)


class QuestionCatalog(BaseModel):
    """Versioned collection of categories.

    Weights are expected to sum to 1.0 so that ``overall_score`` lands in
    [0, 100]; this is checked (and logged) by the loader, never enforced.
    """

    model_config = ConfigDict(frozen=True)

    version: str = "1"
    categories: tuple[Category, ...] = ()

    @model_validator(mode="after")
    def _ids_unique(self) -> "QuestionCatalog":
        category_ids = [c.id for c in self.categories]
        if len(category_ids) != len(set(category_ids)):
            raise ValueError("Duplicate category ids in catalog")
        question_ids = [q.id for q in self.iter_questions()]
        if len(question_ids) != len(set(question_ids)):
            raise ValueError("Duplicate question ids in catalog")
        return self

    def iter_questions(self) -> Iterator[Question]:
        for category in self.categories:
            yield from category.questions

    @property
    def question_ids(self) -> frozenset[str]:
        return frozenset(q.id for q in self.iter_questions())

    @property
    def total_questions(self) -> int:
        return sum(len(c.questions) for c in self.categories)

    @property
    def weight_sum(self) -> float:
        return sum(c.weight for c in self.categories)

    def get_question(self, question_id: str) -> Question | None:
        for question in self.iter_questions():
            if question.id == question_id:
                return question
        return None
