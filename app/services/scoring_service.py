"""
Mithaq — Compatibility scoring engine.

Turns two completed questionnaires into a 0-100 compatibility score with a
per-category breakdown.  Pure and synchronous: no I/O, no shared mutable
state, so a single instance can serve concurrent callers.

3-step calculation pipeline:
  1. Question similarity, chosen by question type:
       single_choice / yes_no / scale:  1 - |value_a - value_b|  (floor 0)
       multiple_choice:                 |A ∩ B| / |A ∪ B|  (Jaccard)
     Missing answers are skipped; malformed answers score 0.0.
  2. Category score:  mean of the compared questions (0.0 if none)
  3. Overall score:   sum(category_score × weight) × 100

Weights are not re-normalised; the catalog is expected to sum to 1.0.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Mapping

import structlog

from app.schemas.catalog import Category, Question, QuestionCatalog, QuestionType
from app.schemas.compatibility import (
    CompatibilityResponse,
    CompatibilityScore,
    MultipleAnswer,
    ResponseValue,
    SingleAnswer,
)

logger = structlog.get_logger("mithaq.scoring_service")

Comparator = Callable[[Question, ResponseValue, ResponseValue], float]


# ──────────────────────────────────────────────────────────────────────────────
# Per-type comparison strategies
# ──────────────────────────────────────────────────────────────────────────────

def _invalid(question: Question, reason: str) -> float:
    logger.debug(
        "scoring.invalid_comparison",
        question_id=question.id,
        question_type=question.type.value,
        reason=reason,
    )
    return 0.0


def compare_by_value(
    question: Question, answer_a: ResponseValue, answer_b: ResponseValue
) -> float:
    """Value-distance similarity for single-option answers."""
    if not isinstance(answer_a, SingleAnswer) or not isinstance(answer_b, SingleAnswer):
        return _invalid(question, "expected_single_answer")

    value_a = question.option_value(answer_a.option_id)
    value_b = question.option_value(answer_b.option_id)
    if value_a is None or value_b is None:
        return _invalid(question, "unknown_option")

    if answer_a.option_id == answer_b.option_id:
        return 1.0
    return max(0.0, 1.0 - abs(value_a - value_b))


def compare_by_overlap(
    question: Question, answer_a: ResponseValue, answer_b: ResponseValue
) -> float:
    """Jaccard similarity of two selections; two empty selections agree."""
    if not isinstance(answer_a, MultipleAnswer) or not isinstance(answer_b, MultipleAnswer):
        return _invalid(question, "expected_multiple_answer")

    union = answer_a.option_ids | answer_b.option_ids
    if not union:
        return 1.0
    intersection = answer_a.option_ids & answer_b.option_ids
    return len(intersection) / len(union)


COMPARATORS: dict[QuestionType, Comparator] = {
    QuestionType.SINGLE_CHOICE: compare_by_value,
    QuestionType.YES_NO: compare_by_value,
    QuestionType.SCALE: compare_by_value,
    QuestionType.MULTIPLE_CHOICE: compare_by_overlap,
}


class ScoringService:
    """Score two completed responses against a question catalog.

    The catalog is injected so the same engine can score against a test
    catalog or a newer catalog version.
    """

    # ── Compatibility level bands (lower bound, level, description, color) ──
    LEVEL_BANDS: list[tuple[float, str, str, str]] = [
        (
            90.0,
            "Excellent Match",
            "Exceptional compatibility across all Islamic values and lifestyle preferences",
            "green",
        ),
        (
            80.0,
            "Strong Match",
            "Strong alignment in key areas of Islamic practice and values",
            "green",
        ),
        (
            70.0,
            "Good Match",
            "Good compatibility with minor differences in some areas",
            "blue",
        ),
        (
            60.0,
            "Moderate Match",
            "Moderate compatibility with some areas requiring discussion",
            "blue",
        ),
        (
            50.0,
            "Fair Match",
            "Fair compatibility that may need compromise and understanding",
            "yellow",
        ),
        (
            40.0,
            "Low Compatibility",
            "Significant differences that may require careful consideration",
            "yellow",
        ),
    ]
    LOWEST_LEVEL: tuple[str, str, str] = (
        "Low Compatibility",
        "Significant differences that may require careful consideration",
        "red",
    )

    def __init__(self, catalog: QuestionCatalog) -> None:
        self.catalog = catalog

    # ── Public API ──────────────────────────────────────────────────

    @staticmethod
    def compare_question(
        question: Question,
        answer_a: ResponseValue | None,
        answer_b: ResponseValue | None,
    ) -> float | None:
        """Similarity in [0, 1] for one question.

        Returns ``None`` when either side did not answer, so the question
        is left out of aggregation rather than counted as a mismatch.
        """
        if answer_a is None or answer_b is None:
            return None
        return COMPARATORS[question.type](question, answer_a, answer_b)

    def category_score(
        self,
        category: Category,
        responses_a: Mapping[str, ResponseValue],
        responses_b: Mapping[str, ResponseValue],
    ) -> float:
        """Mean similarity over the questions both users answered."""
        total = 0.0
        compared = 0
        for question in category.questions:
            score = self.compare_question(
                question,
                responses_a.get(question.id),
                responses_b.get(question.id),
            )
            if score is None:
                continue
            total += score
            compared += 1

        if compared == 0:
            return 0.0
        return total / compared

    def calculate_compatibility(
        self,
        response_a: CompatibilityResponse,
        response_b: CompatibilityResponse,
        calculated_at: datetime | None = None,
    ) -> CompatibilityScore:
        """Main entry point.  Aggregate every catalog category into a
        weighted overall score.

        Returns
        -------
        CompatibilityScore
            ``overall_score`` = Σ(category_score × weight) × 100, the raw
            ``category_scores`` map, and a breakdown with ``<id>_score`` and
            ``<id>_weighted`` entries per category.
        """
        category_scores: dict[str, float] = {}
        breakdown: dict[str, float] = {}
        total_weighted = 0.0

        for category in self.catalog.categories:
            score = self.category_score(
                category, response_a.responses, response_b.responses
            )
            weighted = score * category.weight
            category_scores[category.id] = score
            breakdown[f"{category.id}_score"] = score
            breakdown[f"{category.id}_weighted"] = weighted
            total_weighted += weighted

        overall_score = total_weighted * 100
        level, description, color = self.compatibility_level(overall_score)

        logger.info(
            "scoring.calculate_done",
            user_id_1=response_a.user_id,
            user_id_2=response_b.user_id,
            overall_score=round(overall_score, 4),
            compatibility_level=level,
            catalog_version=self.catalog.version,
        )

        return CompatibilityScore(
            user_id_1=response_a.user_id,
            user_id_2=response_b.user_id,
            overall_score=overall_score,
            category_scores=category_scores,
            breakdown=breakdown,
            calculated_at=calculated_at or datetime.now(timezone.utc),
            compatibility_level=level,
            level_description=description,
            level_color=color,
        )

    def compatibility_level(self, overall_score: float) -> tuple[str, str, str]:
        """Classify an overall score into (level, description, color).

        Bands
        -----
        >= 90 Excellent, >= 80 Strong, >= 70 Good, >= 60 Moderate,
        >= 50 Fair, otherwise Low (yellow from 40, red below).
        """
        for lower_bound, level, description, color in self.LEVEL_BANDS:
            if overall_score >= lower_bound:
                return level, description, color
        return self.LOWEST_LEVEL
