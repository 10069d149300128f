"""
Mithaq — Compatibility persistence.

``CompatibilityRepository`` is the storage contract the compatibility
service depends on.  ``SqlCompatibilityRepository`` implements it on the
async SQLAlchemy engine.

Every call runs in its own session and a single transaction, so a
cancelled or failed call leaves nothing half-written.  Driver errors are
re-raised as ``PersistenceFailure`` (reads) or ``SaveFailed`` (writes);
no retries happen here.

Answers are stored the way clients send them: a bare option id for
single-option questions, a list of option ids for multiple choice.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Protocol

import structlog
from pydantic import ValidationError
from sqlalchemy import delete, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.database import get_session_factory
from app.exceptions import InvalidResponse, PersistenceFailure, ReportNotFound, SaveFailed
from app.models.compatibility import (
    CompatibilityReportRecord,
    CompatibilityResponseRecord,
)
from app.schemas.compatibility import (
    CompatibilityReport,
    CompatibilityResponse,
    FamilyFeedback,
    FeedbackStatus,
    answer_from_wire,
    answer_to_wire,
)

logger = structlog.get_logger("mithaq.compatibility_repository")


class CompatibilityRepository(Protocol):
    """Storage contract for completed responses and reports."""

    async def save_response(self, response: CompatibilityResponse) -> None: ...

    async def fetch_response(self, user_id: str) -> CompatibilityResponse | None: ...

    async def has_completed_questionnaire(self, user_id: str) -> bool: ...

    async def delete_response(self, user_id: str) -> None: ...

    async def save_report(self, report: CompatibilityReport) -> None: ...

    async def fetch_reports(self, user_id: str) -> list[CompatibilityReport]: ...

    async def fetch_report(self, report_id: str) -> CompatibilityReport | None: ...

    async def delete_report(self, report_id: str) -> None: ...

    async def share_report(self, report_id: str, target_user_id: str) -> None: ...

    async def add_family_feedback(
        self, report_id: str, feedback: FamilyFeedback
    ) -> None: ...

    async def update_feedback_status(
        self, report_id: str, feedback_id: str, status: FeedbackStatus
    ) -> None: ...


class SqlCompatibilityRepository:
    """``CompatibilityRepository`` backed by the async SQLAlchemy engine."""

    def __init__(
        self, session_factory: async_sessionmaker[AsyncSession] | None = None
    ) -> None:
        self._session_factory = session_factory or get_session_factory()

    @asynccontextmanager
    async def _transaction(
        self, operation: str, *, write: bool
    ) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    yield session
        except SQLAlchemyError as exc:
            logger.error(
                "repository_operation_failed",
                operation=operation,
                error=str(exc),
            )
            error_cls = SaveFailed if write else PersistenceFailure
            raise error_cls(f"{operation} failed: {exc}") from exc

    # ── Responses ─────────────────────────────────────────────────────────

    async def save_response(self, response: CompatibilityResponse) -> None:
        record = CompatibilityResponseRecord(
            user_id=response.user_id,
            responses={
                question_id: answer_to_wire(value)
                for question_id, value in response.responses.items()
            },
            completed_at=response.completed_at,
            updated_at=datetime.now(timezone.utc),
        )
        async with self._transaction("save_response", write=True) as session:
            await session.merge(record)

        logger.info(
            "response_saved",
            user_id=response.user_id,
            answers=len(response.responses),
        )

    async def fetch_response(self, user_id: str) -> CompatibilityResponse | None:
        async with self._transaction("fetch_response", write=False) as session:
            record = await session.get(CompatibilityResponseRecord, user_id)
            if record is None:
                return None
            return self._decode_response(record)

    async def has_completed_questionnaire(self, user_id: str) -> bool:
        async with self._transaction(
            "has_completed_questionnaire", write=False
        ) as session:
            stmt = select(CompatibilityResponseRecord.user_id).where(
                CompatibilityResponseRecord.user_id == user_id
            )
            result = await session.execute(stmt)
            return result.scalar_one_or_none() is not None

    async def delete_response(self, user_id: str) -> None:
        async with self._transaction("delete_response", write=True) as session:
            await session.execute(
                delete(CompatibilityResponseRecord).where(
                    CompatibilityResponseRecord.user_id == user_id
                )
            )
        logger.info("response_deleted", user_id=user_id)

    # ── Reports ───────────────────────────────────────────────────────────

    async def save_report(self, report: CompatibilityReport) -> None:
        record = CompatibilityReportRecord(
            id=report.id,
            user_id_1=report.user_id_1,
            user_id_2=report.user_id_2,
            scores=report.scores.model_dump(mode="json"),
            generated_at=report.generated_at,
            is_shared=report.is_shared,
            shared_with=list(report.shared_with),
            shared_at=report.shared_at,
            family_feedback=(
                [f.model_dump(mode="json") for f in report.family_feedback]
                if report.family_feedback is not None
                else None
            ),
        )
        async with self._transaction("save_report", write=True) as session:
            session.add(record)

        logger.info("report_saved", report_id=report.id)

    async def fetch_reports(self, user_id: str) -> list[CompatibilityReport]:
        """Reports where *user_id* is either party, newest first."""
        async with self._transaction("fetch_reports", write=False) as session:
            stmt = (
                select(CompatibilityReportRecord)
                .where(
                    or_(
                        CompatibilityReportRecord.user_id_1 == user_id,
                        CompatibilityReportRecord.user_id_2 == user_id,
                    )
                )
                .order_by(CompatibilityReportRecord.generated_at.desc())
            )
            result = await session.execute(stmt)
            records = result.scalars().all()

        reports: list[CompatibilityReport] = []
        for record in records:
            try:
                reports.append(self._decode_report(record))
            except InvalidResponse:
                logger.warning("report_decode_skipped", report_id=record.id)
        return reports

    async def fetch_report(self, report_id: str) -> CompatibilityReport | None:
        async with self._transaction("fetch_report", write=False) as session:
            record = await session.get(CompatibilityReportRecord, report_id)
            if record is None:
                return None
            return self._decode_report(record)

    async def delete_report(self, report_id: str) -> None:
        async with self._transaction("delete_report", write=True) as session:
            await session.execute(
                delete(CompatibilityReportRecord).where(
                    CompatibilityReportRecord.id == report_id
                )
            )
        logger.info("report_deleted", report_id=report_id)

    async def share_report(self, report_id: str, target_user_id: str) -> None:
        async with self._transaction("share_report", write=True) as session:
            record = await self._get_report_for_update(session, report_id)
            recipients = list(record.shared_with or [])
            if target_user_id not in recipients:
                recipients.append(target_user_id)
            record.is_shared = True
            record.shared_with = recipients
            record.shared_at = datetime.now(timezone.utc)

        logger.info(
            "report_shared", report_id=report_id, shared_with=target_user_id
        )

    # ── Family feedback ───────────────────────────────────────────────────

    async def add_family_feedback(
        self, report_id: str, feedback: FamilyFeedback
    ) -> None:
        async with self._transaction("add_family_feedback", write=True) as session:
            record = await self._get_report_for_update(session, report_id)
            record.family_feedback = [
                *(record.family_feedback or []),
                feedback.model_dump(mode="json"),
            ]

        logger.info(
            "family_feedback_added", report_id=report_id, feedback_id=feedback.id
        )

    async def update_feedback_status(
        self, report_id: str, feedback_id: str, status: FeedbackStatus
    ) -> None:
        """Set one entry's approval status; unknown feedback ids are ignored."""
        async with self._transaction(
            "update_feedback_status", write=True
        ) as session:
            record = await self._get_report_for_update(session, report_id)
            entries = [dict(entry) for entry in record.family_feedback or []]
            for entry in entries:
                if entry.get("id") == feedback_id:
                    entry["approval_status"] = status.value
                    record.family_feedback = entries
                    break
            else:
                logger.info(
                    "feedback_status_noop",
                    report_id=report_id,
                    feedback_id=feedback_id,
                )
                return

        logger.info(
            "feedback_status_updated",
            report_id=report_id,
            feedback_id=feedback_id,
            status=status.value,
        )

    # ── Internal helpers ──────────────────────────────────────────────────

    @staticmethod
    async def _get_report_for_update(
        session: AsyncSession, report_id: str
    ) -> CompatibilityReportRecord:
        stmt = (
            select(CompatibilityReportRecord)
            .where(CompatibilityReportRecord.id == report_id)
            .with_for_update()
        )
        result = await session.execute(stmt)
        record = result.scalar_one_or_none()
        if record is None:
            raise ReportNotFound(report_id)
        return record

    @staticmethod
    def _decode_response(record: CompatibilityResponseRecord) -> CompatibilityResponse:
        if not isinstance(record.responses, dict):
            raise InvalidResponse(f"Stored responses for {record.user_id} are corrupt")

        responses = {}
        for question_id, raw in record.responses.items():
            try:
                responses[question_id] = answer_from_wire(raw)
            except InvalidResponse:
                logger.warning(
                    "answer_decode_skipped",
                    user_id=record.user_id,
                    question_id=question_id,
                )

        return CompatibilityResponse(
            user_id=record.user_id,
            responses=responses,
            completed_at=record.completed_at,
        )

    @staticmethod
    def _decode_report(record: CompatibilityReportRecord) -> CompatibilityReport:
        try:
            return CompatibilityReport.model_validate(
                {
                    "id": record.id,
                    "user_id_1": record.user_id_1,
                    "user_id_2": record.user_id_2,
                    "scores": record.scores,
                    "generated_at": record.generated_at,
                    "family_feedback": record.family_feedback,
                    "is_shared": record.is_shared,
                    "shared_with": record.shared_with or [],
                    "shared_at": record.shared_at,
                }
            )
        except ValidationError as exc:
            raise InvalidResponse(f"Stored report {record.id} is corrupt") from exc
