"""Shared pytest fixtures for Mithaq tests."""
import uuid
from datetime import datetime, timezone

import pytest

from app.catalog import DEFAULT_CATALOG_PATH, load_catalog
from app.exceptions import ReportNotFound
from app.schemas.catalog import QuestionCatalog
from app.schemas.compatibility import (
    CompatibilityResponse,
    MultipleAnswer,
    SingleAnswer,
)
from app.services.scoring_service import ScoringService


def _scale_question(question_id):
    return {
        "id": question_id,
        "text": question_id,
        "type": "scale",
        "options": [
            {"id": "v00", "value": 0.0},
            {"id": "v03", "value": 0.3},
            {"id": "v06", "value": 0.6},
            {"id": "v08", "value": 0.8},
            {"id": "v10", "value": 1.0},
        ],
    }


@pytest.fixture
def two_category_catalog():
    """Two categories weighted 0.5/0.5, one scale question each."""
    return QuestionCatalog.model_validate(
        {
            "version": "test",
            "categories": [
                {"id": "cat_a", "name": "A", "weight": 0.5, "questions": [_scale_question("qa")]},
                {"id": "cat_b", "name": "B", "weight": 0.5, "questions": [_scale_question("qb")]},
            ],
        }
    )


@pytest.fixture
def mixed_catalog():
    """One category per question type, weights summing to 1.0."""
    return QuestionCatalog.model_validate(
        {
            "version": "mixed",
            "categories": [
                {
                    "id": "faith",
                    "weight": 0.4,
                    "questions": [
                        {
                            "id": "prayer",
                            "type": "single_choice",
                            "options": [
                                {"id": "always", "value": 1.0},
                                {"id": "mostly", "value": 0.75},
                                {"id": "sometimes", "value": 0.5},
                            ],
                        },
                        {
                            "id": "halal",
                            "type": "yes_no",
                            "options": [
                                {"id": "yes", "value": 1.0},
                                {"id": "no", "value": 0.0},
                            ],
                        },
                    ],
                },
                {
                    "id": "lifestyle",
                    "weight": 0.6,
                    "questions": [
                        {
                            "id": "hobbies",
                            "type": "multiple_choice",
                            "options": [
                                {"id": "reading", "value": 1.0},
                                {"id": "travel", "value": 1.0},
                                {"id": "sports", "value": 1.0},
                                {"id": "cooking", "value": 1.0},
                            ],
                        },
                    ],
                },
            ],
        }
    )


@pytest.fixture
def bundled_catalog():
    return load_catalog(DEFAULT_CATALOG_PATH)


@pytest.fixture
def scoring_service(two_category_catalog):
    return ScoringService(two_category_catalog)


def make_response(user_id, answers):
    """Build a completed response from ``{question_id: option_id | [option_ids]}``."""
    responses = {}
    for question_id, raw in answers.items():
        if isinstance(raw, str):
            responses[question_id] = SingleAnswer(option_id=raw)
        else:
            responses[question_id] = MultipleAnswer(option_ids=frozenset(raw))
    return CompatibilityResponse(
        user_id=user_id,
        responses=responses,
        completed_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


@pytest.fixture
def sample_user_id():
    return str(uuid.uuid4())


@pytest.fixture
def sample_user_id_b():
    return str(uuid.uuid4())


class InMemoryCompatibilityRepository:
    """Dict-backed stand-in for ``SqlCompatibilityRepository``."""

    def __init__(self):
        self.responses = {}
        self.reports = {}

    async def save_response(self, response):
        self.responses[response.user_id] = response

    async def fetch_response(self, user_id):
        return self.responses.get(user_id)

    async def has_completed_questionnaire(self, user_id):
        return user_id in self.responses

    async def delete_response(self, user_id):
        self.responses.pop(user_id, None)

    async def save_report(self, report):
        self.reports[report.id] = report

    async def fetch_reports(self, user_id):
        found = [
            r for r in self.reports.values()
            if user_id in (r.user_id_1, r.user_id_2)
        ]
        return sorted(found, key=lambda r: r.generated_at, reverse=True)

    async def fetch_report(self, report_id):
        return self.reports.get(report_id)

    async def delete_report(self, report_id):
        self.reports.pop(report_id, None)

    async def share_report(self, report_id, target_user_id):
        report = self._require(report_id)
        shared_with = list(report.shared_with)
        if target_user_id not in shared_with:
            shared_with.append(target_user_id)
        self.reports[report_id] = report.model_copy(
            update={
                "is_shared": True,
                "shared_with": shared_with,
                "shared_at": datetime.now(timezone.utc),
            }
        )

    async def add_family_feedback(self, report_id, feedback):
        report = self._require(report_id)
        self.reports[report_id] = report.model_copy(
            update={"family_feedback": [*(report.family_feedback or []), feedback]}
        )

    async def update_feedback_status(self, report_id, feedback_id, status):
        report = self._require(report_id)
        entries = [
            f.model_copy(update={"approval_status": status}) if f.id == feedback_id else f
            for f in report.family_feedback or []
        ]
        self.reports[report_id] = report.model_copy(update={"family_feedback": entries})

    def _require(self, report_id):
        if report_id not in self.reports:
            raise ReportNotFound(report_id)
        return self.reports[report_id]


@pytest.fixture
def memory_repository():
    return InMemoryCompatibilityRepository()


@pytest.fixture
def response_factory():
    return make_response
