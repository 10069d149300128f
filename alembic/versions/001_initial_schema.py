"""Initial schema — compatibility responses and reports.

Revision ID: 001_initial
Revises:
Create Date: 2024-01-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── 1. compatibility_responses ──────────────────────────────────
    op.create_table(
        "compatibility_responses",
        sa.Column("user_id", sa.String(128), primary_key=True),
        sa.Column(
            "responses",
            postgresql.JSONB,
            nullable=False,
            comment="question_id -> option id or list of option ids",
        ),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )

    # ── 2. compatibility_reports ────────────────────────────────────
    op.create_table(
        "compatibility_reports",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id_1", sa.String(128), nullable=False),
        sa.Column("user_id_2", sa.String(128), nullable=False),
        sa.Column(
            "scores",
            postgresql.JSONB,
            nullable=False,
            comment="Embedded CompatibilityScore",
        ),
        sa.Column("generated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "is_shared",
            sa.Boolean,
            server_default="false",
            nullable=False,
        ),
        sa.Column(
            "shared_with",
            postgresql.JSONB,
            nullable=False,
            comment="Recipient user ids",
        ),
        sa.Column("shared_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "family_feedback",
            postgresql.JSONB,
            nullable=True,
            comment="List of FamilyFeedback entries",
        ),
    )
    op.create_index(
        "ix_compatibility_reports_user_id_1",
        "compatibility_reports",
        ["user_id_1"],
    )
    op.create_index(
        "ix_compatibility_reports_user_id_2",
        "compatibility_reports",
        ["user_id_2"],
    )


def downgrade() -> None:
    op.drop_index("ix_compatibility_reports_user_id_2", table_name="compatibility_reports")
    op.drop_index("ix_compatibility_reports_user_id_1", table_name="compatibility_reports")
    op.drop_table("compatibility_reports")
    op.drop_table("compatibility_responses")
