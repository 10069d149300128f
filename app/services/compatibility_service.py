"""
Mithaq — Compatibility report lifecycle.

Orchestrates questionnaire submission and report generation around the
pure ``ScoringService``:

  submit_questionnaire   ResponseStore snapshot -> completed response -> repository
  generate_report        fetch both responses (concurrently) -> score -> report -> repository
  share_report           Generated -> Shared (one-way), delegated to the repository

Repository errors propagate unchanged and nothing is retried here.  The
service keeps no per-pair state: two concurrent ``generate_report`` calls
for the same pair create two reports, so callers that need single-flight
behaviour must provide it.
"""

from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, timezone

import structlog

from app.exceptions import ReportNotFound, ResponsesNotFound
from app.repositories.compatibility_repository import CompatibilityRepository
from app.schemas.compatibility import (
    CompatibilityReport,
    CompatibilityResponse,
    CompatibilityScore,
    FamilyFeedback,
    FeedbackStatus,
    ResponseValue,
)
from app.services.analytics_service import Analytics, NullAnalytics, safe_track
from app.services.response_store import ResponseStore
from app.services.scoring_service import ScoringService

logger = structlog.get_logger("mithaq.compatibility_service")


class CompatibilityService:
    """Report service for the compatibility questionnaire.

    Dependencies are injected at construction so that the service can be
    tested with fakes and wired through FastAPI's dependency graph.
    """

    def __init__(
        self,
        repository: CompatibilityRepository,
        scoring_service: ScoringService,
        analytics: Analytics | None = None,
    ) -> None:
        self.repository = repository
        self.scoring_service = scoring_service
        self.analytics = analytics or NullAnalytics()

    # ── Questionnaire ─────────────────────────────────────────────────────

    def save_answer(
        self, store: ResponseStore, question_id: str, value: ResponseValue
    ) -> None:
        """Record one answer in the session's store and track progress."""
        store.save_response(question_id, value)
        safe_track(
            self.analytics,
            "compatibility_question_answered",
            {
                "question_id": question_id,
                "progress": f"{store.progress_percentage:.1f}",
            },
        )

    def reset_questionnaire(self, store: ResponseStore) -> None:
        store.reset()
        safe_track(self.analytics, "compatibility_questionnaire_reset")

    async def submit_questionnaire(
        self, user_id: str, store: ResponseStore
    ) -> CompatibilityResponse:
        """Persist the store's current answers as the user's completed
        response.

        The store is left untouched, so the caller may keep editing and
        submit again; each submission replaces the stored snapshot.
        """
        log = logger.bind(user_id=user_id)
        response = CompatibilityResponse(
            user_id=user_id,
            responses=store.snapshot(),
            completed_at=datetime.now(timezone.utc),
        )

        await self.repository.save_response(response)

        log.info(
            "questionnaire_submitted",
            answers=len(response.responses),
            is_complete=store.is_complete(),
        )
        safe_track(
            self.analytics,
            "compatibility_questionnaire_completed",
            {"user_id": user_id, "total_questions": str(len(response.responses))},
        )
        return response

    async def load_user_response(
        self, user_id: str, store: ResponseStore
    ) -> CompatibilityResponse | None:
        """Seed *store* from the user's completed response, if any."""
        response = await self.repository.fetch_response(user_id)
        if response is not None:
            store.load(response)
        logger.info(
            "user_response_loaded", user_id=user_id, found=response is not None
        )
        return response

    # ── Scoring ───────────────────────────────────────────────────────────

    def calculate_compatibility(
        self,
        response_a: CompatibilityResponse,
        response_b: CompatibilityResponse,
    ) -> CompatibilityScore:
        score = self.scoring_service.calculate_compatibility(response_a, response_b)
        safe_track(
            self.analytics,
            "compatibility_score_calculated",
            {
                "user1_id": response_a.user_id,
                "user2_id": response_b.user_id,
                "overall_score": f"{score.overall_score:.2f}",
                "compatibility_level": score.compatibility_level,
            },
        )
        return score

    async def fetch_pair_responses(
        self, user_id_1: str, user_id_2: str
    ) -> tuple[CompatibilityResponse, CompatibilityResponse]:
        """Fetch both users' completed responses concurrently.

        Raises ``ResponsesNotFound`` naming every user without one.
        """
        response_1, response_2 = await asyncio.gather(
            self.repository.fetch_response(user_id_1),
            self.repository.fetch_response(user_id_2),
        )

        missing = [
            user_id
            for user_id, response in ((user_id_1, response_1), (user_id_2, response_2))
            if response is None
        ]
        if missing:
            logger.info("pair_responses_missing", missing_user_ids=missing)
            raise ResponsesNotFound(missing)
        return response_1, response_2

    # ── Reports ───────────────────────────────────────────────────────────

    async def generate_report(
        self, user_id_1: str, user_id_2: str
    ) -> CompatibilityReport:
        """Score two users' completed responses and persist a new report.

        Raises
        ------
        ResponsesNotFound
            Either user has no completed response.  Nothing is saved.
        """
        log = logger.bind(user_id_1=user_id_1, user_id_2=user_id_2)
        log.info("report_generation_start")

        response_1, response_2 = await self.fetch_pair_responses(user_id_1, user_id_2)
        score = self.calculate_compatibility(response_1, response_2)

        report = CompatibilityReport(
            id=str(uuid.uuid4()),
            user_id_1=user_id_1,
            user_id_2=user_id_2,
            scores=score,
            generated_at=datetime.now(timezone.utc),
            family_feedback=None,
            is_shared=False,
        )

        await self.repository.save_report(report)

        log.info(
            "report_generation_complete",
            report_id=report.id,
            overall_score=round(score.overall_score, 2),
        )
        safe_track(
            self.analytics,
            "compatibility_report_generated",
            {
                "report_id": report.id,
                "user1_id": user_id_1,
                "user2_id": user_id_2,
                "overall_score": f"{score.overall_score:.2f}",
            },
        )
        return report

    async def fetch_reports(self, user_id: str) -> list[CompatibilityReport]:
        reports = await self.repository.fetch_reports(user_id)
        safe_track(
            self.analytics,
            "compatibility_reports_loaded",
            {"user_id": user_id, "report_count": str(len(reports))},
        )
        return reports

    async def fetch_report(self, report_id: str) -> CompatibilityReport:
        report = await self.repository.fetch_report(report_id)
        if report is None:
            raise ReportNotFound(report_id)
        return report

    async def share_report(self, report_id: str, target_user_id: str) -> None:
        """Mark a report shared with *target_user_id*.

        No authorization check happens here; the repository (or whatever
        sits in front of it) owns that decision.
        """
        await self.repository.share_report(report_id, target_user_id)
        safe_track(
            self.analytics,
            "compatibility_report_shared",
            {"report_id": report_id, "shared_with": target_user_id},
        )

    # ── Family feedback ───────────────────────────────────────────────────

    async def add_family_feedback(
        self,
        report_id: str,
        family_member_name: str,
        relationship: str,
        feedback: str,
    ) -> FamilyFeedback:
        entry = FamilyFeedback(
            id=str(uuid.uuid4()),
            report_id=report_id,
            family_member_name=family_member_name,
            relationship=relationship,
            feedback=feedback,
            created_at=datetime.now(timezone.utc),
            approval_status=FeedbackStatus.PENDING,
        )
        await self.repository.add_family_feedback(report_id, entry)
        safe_track(
            self.analytics,
            "compatibility_family_feedback_added",
            {"report_id": report_id, "relationship": relationship},
        )
        return entry

    async def update_feedback_status(
        self, report_id: str, feedback_id: str, status: FeedbackStatus
    ) -> None:
        await self.repository.update_feedback_status(report_id, feedback_id, status)
