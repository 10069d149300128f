"""
Mithaq — Reports API

Compatibility report endpoints:
  - generate a new report for a user pair
  - list a user's reports / read one report
  - share a report with another user (one-way)
  - attach family feedback and record its approval status

Access control is not enforced here; it belongs to the gateway in front
of this service.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Query, status

from app.api.deps import get_compatibility_service
from app.schemas.compatibility import CompatibilityReport, FamilyFeedback
from app.schemas.report import (
    FamilyFeedbackCreate,
    FeedbackStatusUpdate,
    ReportCreate,
    ShareReportRequest,
)
from app.services.compatibility_service import CompatibilityService

logger = structlog.get_logger("mithaq.api.reports")

router = APIRouter()


# ──────────────────────────────────────────────────────────────────────────────
# POST / — Generate a report for two users
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "",
    response_model=CompatibilityReport,
    status_code=status.HTTP_201_CREATED,
    summary="Generate a compatibility report for a user pair",
)
async def create_report(
    payload: ReportCreate,
    service: CompatibilityService = Depends(get_compatibility_service),
) -> CompatibilityReport:
    """Score both users' completed questionnaires and store a new report.

    Returns 404 when either user has not completed the questionnaire.
    Every call creates a new report, even for a pair that already has one.
    """
    return await service.generate_report(payload.user_id_1, payload.user_id_2)


# ──────────────────────────────────────────────────────────────────────────────
# GET / — Reports involving a user
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "",
    response_model=list[CompatibilityReport],
    summary="List compatibility reports for a user",
)
async def list_reports(
    user_id: str = Query(min_length=1),
    service: CompatibilityService = Depends(get_compatibility_service),
) -> list[CompatibilityReport]:
    reports = await service.fetch_reports(user_id)
    logger.info("list_reports", user_id=user_id, count=len(reports))
    return reports


@router.get(
    "/{report_id}",
    response_model=CompatibilityReport,
    summary="Get one compatibility report",
)
async def get_report(
    report_id: str,
    service: CompatibilityService = Depends(get_compatibility_service),
) -> CompatibilityReport:
    return await service.fetch_report(report_id)


# ──────────────────────────────────────────────────────────────────────────────
# POST /{report_id}/share — Share with another user
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "/{report_id}/share",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Share a report with another user",
)
async def share_report(
    report_id: str,
    payload: ShareReportRequest,
    service: CompatibilityService = Depends(get_compatibility_service),
) -> None:
    await service.share_report(report_id, payload.target_user_id)


# ──────────────────────────────────────────────────────────────────────────────
# Family feedback
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "/{report_id}/feedback",
    response_model=FamilyFeedback,
    status_code=status.HTTP_201_CREATED,
    summary="Attach family feedback to a report",
)
async def add_feedback(
    report_id: str,
    payload: FamilyFeedbackCreate,
    service: CompatibilityService = Depends(get_compatibility_service),
) -> FamilyFeedback:
    return await service.add_family_feedback(
        report_id,
        family_member_name=payload.family_member_name,
        relationship=payload.relationship,
        feedback=payload.feedback,
    )


@router.patch(
    "/{report_id}/feedback/{feedback_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Approve or reject a family feedback entry",
)
async def update_feedback_status(
    report_id: str,
    feedback_id: str,
    payload: FeedbackStatusUpdate,
    service: CompatibilityService = Depends(get_compatibility_service),
) -> None:
    await service.update_feedback_status(report_id, feedback_id, payload.status)
