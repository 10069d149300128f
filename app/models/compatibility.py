"""
Mithaq — Completed questionnaire and compatibility report tables.
"""

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Index, String, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests).
JSONType = JSON().with_variant(JSONB(), "postgresql")


class CompatibilityResponseRecord(Base):
    """One completed questionnaire per user; re-submission overwrites."""

    __tablename__ = "compatibility_responses"

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    responses: Mapped[dict] = mapped_column(
        JSONType, nullable=False, comment="question_id -> option id or list of option ids"
    )
    completed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return (
            f"<CompatibilityResponseRecord user={self.user_id} "
            f"answers={len(self.responses or {})}>"
        )


class CompatibilityReportRecord(Base):
    __tablename__ = "compatibility_reports"
    __table_args__ = (
        Index("ix_compatibility_reports_user_id_1", "user_id_1"),
        Index("ix_compatibility_reports_user_id_2", "user_id_2"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id_1: Mapped[str] = mapped_column(String(128), nullable=False)
    user_id_2: Mapped[str] = mapped_column(String(128), nullable=False)
    scores: Mapped[dict] = mapped_column(
        JSONType, nullable=False, comment="Embedded CompatibilityScore"
    )
    generated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    is_shared: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false", nullable=False
    )
    shared_with: Mapped[list] = mapped_column(
        JSONType, default=list, nullable=False, comment="Recipient user ids"
    )
    shared_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    family_feedback: Mapped[list | None] = mapped_column(
        JSONType, nullable=True, comment="List of FamilyFeedback entries"
    )

    def __repr__(self) -> str:
        return (
            f"<CompatibilityReportRecord {self.user_id_1} <-> {self.user_id_2} "
            f"shared={self.is_shared}>"
        )
