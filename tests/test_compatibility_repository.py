"""Tests for SqlCompatibilityRepository against a throwaway SQLite database."""
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.database import Base, build_engine
from app.exceptions import PersistenceFailure, ReportNotFound, SaveFailed
from app.models import CompatibilityResponseRecord
from app.repositories.compatibility_repository import SqlCompatibilityRepository
from app.schemas.compatibility import (
    CompatibilityReport,
    CompatibilityScore,
    FamilyFeedback,
    FeedbackStatus,
    MultipleAnswer,
    SingleAnswer,
)


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'mithaq.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
def repository(session_factory):
    return SqlCompatibilityRepository(session_factory)


def _report(report_id, user_id_1="user_a", user_id_2="user_b", generated_at=None):
    generated_at = generated_at or datetime(2024, 1, 1, tzinfo=timezone.utc)
    return CompatibilityReport(
        id=report_id,
        user_id_1=user_id_1,
        user_id_2=user_id_2,
        scores=CompatibilityScore(
            user_id_1=user_id_1,
            user_id_2=user_id_2,
            overall_score=75.0,
            category_scores={"cat_a": 0.8, "cat_b": 0.7},
            breakdown={"cat_a_score": 0.8, "cat_a_weighted": 0.4},
            calculated_at=generated_at,
            compatibility_level="Good Match",
            level_description="Good compatibility with minor differences in some areas",
            level_color="blue",
        ),
        generated_at=generated_at,
    )


def _feedback(feedback_id, report_id):
    return FamilyFeedback(
        id=feedback_id,
        report_id=report_id,
        family_member_name="Fatima",
        relationship="mother",
        feedback="Alhamdulillah, a good match.",
        created_at=datetime(2024, 1, 2, tzinfo=timezone.utc),
    )


class TestResponses:

    @pytest.mark.asyncio
    async def test_save_and_fetch(self, repository, response_factory):
        response = response_factory("user_a", {"qa": "v08", "hobbies": ["travel", "reading"]})
        await repository.save_response(response)

        loaded = await repository.fetch_response("user_a")

        assert loaded.user_id == "user_a"
        assert loaded.responses["qa"] == SingleAnswer(option_id="v08")
        assert loaded.responses["hobbies"] == MultipleAnswer(option_ids=frozenset({"travel", "reading"}))

    @pytest.mark.asyncio
    async def test_answers_stored_in_wire_form(self, repository, session_factory, response_factory):
        await repository.save_response(response_factory("user_a", {"qa": "v08", "hobbies": ["travel", "reading"]}))

        async with session_factory() as session:
            record = await session.get(CompatibilityResponseRecord, "user_a")

        assert record.responses == {"qa": "v08", "hobbies": ["reading", "travel"]}

    @pytest.mark.asyncio
    async def test_resubmission_overwrites(self, repository, response_factory):
        await repository.save_response(response_factory("user_a", {"qa": "v08"}))
        await repository.save_response(response_factory("user_a", {"qb": "v03"}))

        loaded = await repository.fetch_response("user_a")
        assert set(loaded.responses) == {"qb"}

    @pytest.mark.asyncio
    async def test_fetch_missing_returns_none(self, repository):
        assert await repository.fetch_response("nobody") is None
        assert await repository.has_completed_questionnaire("nobody") is False

    @pytest.mark.asyncio
    async def test_has_completed_and_delete(self, repository, response_factory):
        await repository.save_response(response_factory("user_a", {"qa": "v08"}))
        assert await repository.has_completed_questionnaire("user_a") is True

        await repository.delete_response("user_a")
        assert await repository.fetch_response("user_a") is None

    @pytest.mark.asyncio
    async def test_malformed_stored_answer_is_skipped(self, repository, session_factory):
        async with session_factory() as session:
            async with session.begin():
                session.add(
                    CompatibilityResponseRecord(
                        user_id="user_a",
                        responses={"qa": "v08", "broken": 42},
                        completed_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
                        updated_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
                    )
                )

        loaded = await repository.fetch_response("user_a")
        assert set(loaded.responses) == {"qa"}


class TestReports:

    @pytest.mark.asyncio
    async def test_save_and_fetch(self, repository):
        await repository.save_report(_report("r1"))

        loaded = await repository.fetch_report("r1")

        assert loaded.id == "r1"
        assert loaded.scores.overall_score == 75.0
        assert loaded.scores.category_scores == {"cat_a": 0.8, "cat_b": 0.7}
        assert loaded.is_shared is False
        assert loaded.family_feedback is None

    @pytest.mark.asyncio
    async def test_fetch_reports_newest_first_for_either_party(self, repository):
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        await repository.save_report(_report("old", generated_at=base))
        await repository.save_report(_report("new", "user_c", "user_a", generated_at=base + timedelta(days=1)))
        await repository.save_report(_report("other", "user_c", "user_d", generated_at=base))

        reports = await repository.fetch_reports("user_a")

        assert [r.id for r in reports] == ["new", "old"]

    @pytest.mark.asyncio
    async def test_duplicate_report_id_fails_to_save(self, repository):
        await repository.save_report(_report("r1"))
        with pytest.raises(SaveFailed):
            await repository.save_report(_report("r1"))

    @pytest.mark.asyncio
    async def test_delete_report(self, repository):
        await repository.save_report(_report("r1"))
        await repository.delete_report("r1")
        assert await repository.fetch_report("r1") is None

    @pytest.mark.asyncio
    async def test_share_report(self, repository):
        await repository.save_report(_report("r1"))

        await repository.share_report("r1", "user_c")
        await repository.share_report("r1", "user_c")
        await repository.share_report("r1", "user_d")

        shared = await repository.fetch_report("r1")
        assert shared.is_shared is True
        assert shared.shared_with == ["user_c", "user_d"]
        assert shared.shared_at is not None

    @pytest.mark.asyncio
    async def test_share_unknown_report(self, repository):
        with pytest.raises(ReportNotFound):
            await repository.share_report("missing", "user_c")


class TestFamilyFeedback:

    @pytest.mark.asyncio
    async def test_add_and_approve(self, repository):
        await repository.save_report(_report("r1"))
        await repository.add_family_feedback("r1", _feedback("f1", "r1"))
        await repository.add_family_feedback("r1", _feedback("f2", "r1"))

        await repository.update_feedback_status("r1", "f2", FeedbackStatus.APPROVED)

        entries = (await repository.fetch_report("r1")).family_feedback
        assert [(f.id, f.approval_status) for f in entries] == [
            ("f1", FeedbackStatus.PENDING),
            ("f2", FeedbackStatus.APPROVED),
        ]

    @pytest.mark.asyncio
    async def test_unknown_feedback_id_is_a_noop(self, repository):
        await repository.save_report(_report("r1"))
        await repository.add_family_feedback("r1", _feedback("f1", "r1"))

        await repository.update_feedback_status("r1", "nope", FeedbackStatus.REJECTED)

        entries = (await repository.fetch_report("r1")).family_feedback
        assert entries[0].approval_status == FeedbackStatus.PENDING

    @pytest.mark.asyncio
    async def test_feedback_on_unknown_report(self, repository):
        with pytest.raises(ReportNotFound):
            await repository.add_family_feedback("missing", _feedback("f1", "missing"))


class TestStorageFailures:

    @pytest_asyncio.fixture
    async def bare_repository(self, tmp_path):
        """Repository over a database with no tables."""
        engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}")
        yield SqlCompatibilityRepository(async_sessionmaker(engine, expire_on_commit=False))
        await engine.dispose()

    @pytest.mark.asyncio
    async def test_read_failure(self, bare_repository):
        with pytest.raises(PersistenceFailure) as exc_info:
            await bare_repository.fetch_response("user_a")
        assert not isinstance(exc_info.value, SaveFailed)

    @pytest.mark.asyncio
    async def test_write_failure(self, bare_repository):
        with pytest.raises(SaveFailed):
            await bare_repository.save_report(_report("r1"))
