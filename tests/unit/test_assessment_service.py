"""Assessment record store tests.

Round trips run against an in-memory SQLite database; storage failures are
simulated with mocked sessions.
"""

from collections.abc import Callable
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pydantic
import pytest
from sqlalchemy import update
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from sdq_tracker.core.config.settings import Settings, settings
from sdq_tracker.domain.assessment.models import AnalysisType, AssessmentCorrection
from sdq_tracker.domain.sdq.exceptions import (
    AssessmentNotFoundError,
    AssessmentValidationError,
    CorruptRecordError,
    InconsistentResultError,
    StorageUnavailableError,
    ValidationError,
)
from sdq_tracker.domain.sdq.scoring import (
    CategoryScores,
    Interpretation,
    InterpretationThresholds,
    ScoringResult,
    score,
)
from sdq_tracker.infrastructure.database.models import AssessmentResultORM
from sdq_tracker.services.assessment_service import AssessmentRecordStore
from sdq_tracker.services.scoring_service import ScoringService, thresholds_from_settings


def _connection_error() -> OperationalError:
    return OperationalError("SELECT 1", {}, Exception("connection refused"))


@pytest.fixture
def store(db_session: AsyncSession, clock: Callable[[], datetime]) -> AssessmentRecordStore:
    return AssessmentRecordStore(db_session, thresholds=InterpretationThresholds(), clock=clock)


class TestCreate:
    """AssessmentRecordStore.create tests."""

    async def test_stores_and_returns_result(
        self, store: AssessmentRecordStore, all_ones: dict[int, int]
    ) -> None:
        # Given
        scoring_result = score(all_ones)

        # When
        result = await store.create(
            child_id="child-1",
            scoring_result=scoring_result,
            analysis_type=AnalysisType.SDQ,
            notes="After school",
        )

        # Then
        assert result.id
        assert result.child_id == "child-1"
        assert result.scoring_result == scoring_result
        assert result.analysis_type == AnalysisType.SDQ
        assert result.notes == "After school"
        assert result.created_at == datetime(2025, 1, 15, 9, 0, tzinfo=timezone.utc)

    async def test_round_trip_matches_scoring(
        self, store: AssessmentRecordStore, max_difficulty: dict[int, int]
    ) -> None:
        """A stored result reads back with exactly the scores computed before storing."""
        # Given
        scoring_result = score(max_difficulty)

        # When
        created = await store.create("child-1", scoring_result, "combined", image_ref="s3://faces/1.jpg")
        history = await store.list_by_child("child-1")

        # Then
        assert len(history) == 1
        stored = history[0]
        assert stored.id == created.id
        assert stored.category_scores == scoring_result.category_scores
        assert stored.total_difficulty == scoring_result.total_difficulty
        assert stored.percentage == scoring_result.percentage
        assert stored.interpretation == scoring_result.interpretation
        assert stored.facial_image_ref == "s3://faces/1.jpg"
        assert stored.analysis_type == AnalysisType.COMBINED
        assert stored.created_at == created.created_at

    async def test_accepts_analysis_type_string(
        self, store: AssessmentRecordStore, all_ones: dict[int, int]
    ) -> None:
        result = await store.create("child-1", score(all_ones), "facial", confidence=0.82)

        assert result.analysis_type == AnalysisType.FACIAL
        assert result.confidence == 0.82

    @pytest.mark.parametrize("child_id", ["", "   "])
    async def test_blank_child_id_is_rejected(
        self, store: AssessmentRecordStore, all_ones: dict[int, int], child_id: str
    ) -> None:
        with pytest.raises(AssessmentValidationError, match="child_id"):
            await store.create(child_id, score(all_ones), AnalysisType.SDQ)

    async def test_unknown_analysis_type_is_rejected(
        self, store: AssessmentRecordStore, all_ones: dict[int, int]
    ) -> None:
        with pytest.raises(ValidationError, match="analysis_type"):
            await store.create("child-1", score(all_ones), "voice")

    async def test_out_of_range_confidence_is_rejected(
        self, store: AssessmentRecordStore, all_ones: dict[int, int]
    ) -> None:
        with pytest.raises(AssessmentValidationError, match="confidence"):
            await store.create("child-1", score(all_ones), AnalysisType.FACIAL, confidence=1.5)

    async def test_inconsistent_interpretation_is_rejected(
        self, store: AssessmentRecordStore, all_ones: dict[int, int]
    ) -> None:
        # Given: 50% labelled as normal
        scored = score(all_ones)
        tampered = scored.model_copy(update={"interpretation": Interpretation.NORMAL})

        # When & Then
        with pytest.raises(InconsistentResultError) as exc_info:
            await store.create("child-1", tampered, AnalysisType.SDQ)

        assert list(exc_info.value.mismatches) == ["interpretation"]
        assert await store.list_by_child("child-1") == []

    async def test_total_including_prosocial_is_rejected(self, store: AssessmentRecordStore) -> None:
        # Given
        scores = CategoryScores(emotional=2, conduct=2, hyperactivity=2, peer=2, prosocial=4)
        tampered = ScoringResult(
            category_scores=scores,
            total_difficulty=12,
            percentage=30.0,
            interpretation=Interpretation.CLINICAL,
        )

        # When & Then
        with pytest.raises(InconsistentResultError) as exc_info:
            await store.create("child-1", tampered, AnalysisType.SDQ)

        assert set(exc_info.value.mismatches) == {"total_difficulty", "percentage"}

    async def test_stale_percentage_is_rejected(self, store: AssessmentRecordStore) -> None:
        scores = CategoryScores(emotional=1, conduct=0, hyperactivity=0, peer=0, prosocial=0)
        tampered = ScoringResult(
            category_scores=scores,
            total_difficulty=1,
            percentage=2.6,
            interpretation=Interpretation.NORMAL,
        )

        with pytest.raises(InconsistentResultError, match="percentage"):
            await store.create("child-1", tampered, AnalysisType.SDQ)

    async def test_same_child_can_have_many_results(
        self, store: AssessmentRecordStore, all_ones: dict[int, int]
    ) -> None:
        first = await store.create("child-1", score(all_ones), AnalysisType.SDQ)
        second = await store.create("child-1", score(all_ones), AnalysisType.SDQ)

        assert first.id != second.id
        assert len(await store.list_by_child("child-1")) == 2


class TestQueries:
    """History query tests."""

    async def test_list_by_child_is_newest_first(
        self,
        store: AssessmentRecordStore,
        all_ones: dict[int, int],
        no_difficulty: dict[int, int],
        max_difficulty: dict[int, int],
    ) -> None:
        # Given
        oldest = await store.create("child-1", score(no_difficulty), AnalysisType.SDQ)
        middle = await store.create("child-1", score(all_ones), AnalysisType.SDQ)
        await store.create("child-2", score(all_ones), AnalysisType.SDQ)
        newest = await store.create("child-1", score(max_difficulty), AnalysisType.SDQ)

        # When
        history = await store.list_by_child("child-1")

        # Then
        assert [r.id for r in history] == [newest.id, middle.id, oldest.id]
        assert history[0].created_at > history[1].created_at > history[2].created_at

    async def test_list_by_child_without_records_is_empty(self, store: AssessmentRecordStore) -> None:
        assert await store.list_by_child("nobody") == []

    async def test_get_most_recent(
        self,
        store: AssessmentRecordStore,
        all_ones: dict[int, int],
        max_difficulty: dict[int, int],
    ) -> None:
        await store.create("child-1", score(all_ones), AnalysisType.SDQ)
        newest = await store.create("child-1", score(max_difficulty), AnalysisType.COMBINED)

        result = await store.get_most_recent("child-1")

        assert result is not None
        assert result.id == newest.id
        assert result.interpretation == Interpretation.CLINICAL

    async def test_get_most_recent_without_records_is_none(
        self, store: AssessmentRecordStore
    ) -> None:
        assert await store.get_most_recent("nobody") is None

    async def test_list_by_type(self, store: AssessmentRecordStore, all_ones: dict[int, int]) -> None:
        sdq = await store.create("child-1", score(all_ones), AnalysisType.SDQ)
        await store.create("child-1", score(all_ones), AnalysisType.FACIAL)

        results = await store.list_by_type("child-1", "sdq")

        assert [r.id for r in results] == [sdq.id]

    async def test_get_by_id(self, store: AssessmentRecordStore, all_ones: dict[int, int]) -> None:
        created = await store.create("child-1", score(all_ones), AnalysisType.SDQ)

        assert await store.get_by_id(created.id) == created
        assert await store.get_by_id("missing") is None

    async def test_stale_stored_fields_are_recomputed_on_read(
        self,
        store: AssessmentRecordStore,
        db_session: AsyncSession,
        all_ones: dict[int, int],
    ) -> None:
        # Given: derived columns overwritten behind the store's back
        created = await store.create("child-1", score(all_ones), AnalysisType.SDQ)
        await db_session.execute(
            update(AssessmentResultORM)
            .where(AssessmentResultORM.id == created.id)
            .values(total_difficulty=3, percentage=7.5, interpretation="Within Normal Range")
        )
        await db_session.commit()

        # When
        result = await store.get_by_id(created.id)

        # Then
        assert result is not None
        assert result.total_difficulty == 20
        assert result.percentage == 50.0
        assert result.interpretation == Interpretation.CLINICAL


class TestCorrect:
    """Explicit correction flow tests."""

    async def test_new_scores_recompute_derived_fields(
        self, store: AssessmentRecordStore, all_ones: dict[int, int]
    ) -> None:
        # Given
        created = await store.create("child-1", score(all_ones), AnalysisType.SDQ)
        corrected_scores = CategoryScores(
            emotional=1, conduct=1, hyperactivity=2, peer=1, prosocial=8
        )

        # When
        corrected = await store.correct(
            created.id, AssessmentCorrection(category_scores=corrected_scores)
        )
        stored = await store.get_by_id(created.id)

        # Then
        assert corrected.total_difficulty == 5
        assert corrected.percentage == 12.5
        assert corrected.interpretation == Interpretation.NORMAL
        assert stored == corrected
        assert stored.child_id == created.child_id
        assert stored.created_at == created.created_at

    async def test_notes_only_keeps_scores(
        self, store: AssessmentRecordStore, all_ones: dict[int, int]
    ) -> None:
        created = await store.create("child-1", score(all_ones), AnalysisType.SDQ, notes="draft")

        corrected = await store.correct(created.id, AssessmentCorrection(notes="reviewed"))

        assert corrected.notes == "reviewed"
        assert corrected.scoring_result == created.scoring_result

    async def test_notes_can_be_cleared(
        self, store: AssessmentRecordStore, all_ones: dict[int, int]
    ) -> None:
        created = await store.create("child-1", score(all_ones), AnalysisType.SDQ, notes="draft")

        await store.correct(created.id, AssessmentCorrection(notes=None))

        stored = await store.get_by_id(created.id)
        assert stored is not None
        assert stored.notes is None

    async def test_scores_cannot_be_cleared(
        self, store: AssessmentRecordStore, all_ones: dict[int, int]
    ) -> None:
        created = await store.create("child-1", score(all_ones), AnalysisType.SDQ)

        with pytest.raises(AssessmentValidationError, match="category_scores"):
            await store.correct(created.id, AssessmentCorrection(category_scores=None))

    async def test_unknown_id_is_not_found(self, store: AssessmentRecordStore) -> None:
        with pytest.raises(AssessmentNotFoundError):
            await store.correct("missing", AssessmentCorrection(notes="x"))

    def test_derived_fields_cannot_be_supplied(self) -> None:
        with pytest.raises(pydantic.ValidationError, match="Extra inputs"):
            AssessmentCorrection.model_validate({"percentage": 10.0})


class TestDelete:
    """Explicit deletion tests."""

    async def test_delete_removes_result(
        self, store: AssessmentRecordStore, all_ones: dict[int, int]
    ) -> None:
        created = await store.create("child-1", score(all_ones), AnalysisType.SDQ)

        assert await store.delete(created.id) is True
        assert await store.get_by_id(created.id) is None
        assert await store.delete(created.id) is False


class TestStorageFailures:
    """Persistence failures surface as StorageUnavailableError."""

    @pytest.fixture
    def failing_session(self) -> AsyncMock:
        session = AsyncMock()
        session.add = MagicMock()
        session.execute.side_effect = _connection_error()
        session.flush.side_effect = _connection_error()
        return session

    async def test_create_failure_names_operation(
        self, failing_session: AsyncMock, all_ones: dict[int, int]
    ) -> None:
        # Given
        store = AssessmentRecordStore(failing_session, thresholds=InterpretationThresholds())

        # When & Then
        with pytest.raises(StorageUnavailableError) as exc_info:
            await store.create("child-1", score(all_ones), AnalysisType.SDQ)

        assert exc_info.value.operation == "create"
        assert isinstance(exc_info.value.__cause__, OperationalError)
        failing_session.rollback.assert_awaited_once()
        failing_session.commit.assert_not_awaited()

    @pytest.mark.parametrize(
        ("operation", "args"),
        [
            ("list_by_child", ("child-1",)),
            ("get_most_recent", ("child-1",)),
            ("list_by_type", ("child-1", "sdq")),
            ("get_by_id", ("result-1",)),
            ("delete", ("result-1",)),
        ],
    )
    async def test_query_failures_name_operation(
        self, failing_session: AsyncMock, operation: str, args: tuple
    ) -> None:
        store = AssessmentRecordStore(failing_session, thresholds=InterpretationThresholds())

        with pytest.raises(StorageUnavailableError) as exc_info:
            await getattr(store, operation)(*args)

        assert exc_info.value.operation == operation

    async def test_timeout_is_wrapped(self) -> None:
        session = AsyncMock()
        session.execute.side_effect = TimeoutError("timed out")
        store = AssessmentRecordStore(session, thresholds=InterpretationThresholds())

        with pytest.raises(StorageUnavailableError, match="list_by_child"):
            await store.list_by_child("child-1")

    async def test_failure_is_not_retried(self, failing_session: AsyncMock) -> None:
        store = AssessmentRecordStore(failing_session, thresholds=InterpretationThresholds())

        with pytest.raises(StorageUnavailableError):
            await store.list_by_child("child-1")

        assert failing_session.execute.await_count == 1

    async def test_validation_happens_before_storage(self, failing_session: AsyncMock) -> None:
        store = AssessmentRecordStore(failing_session, thresholds=InterpretationThresholds())

        with pytest.raises(AssessmentValidationError):
            await store.list_by_child("")

        failing_session.execute.assert_not_awaited()


class TestConfiguredThresholds:
    """Scoring and storing agree on thresholds when settings override them."""

    async def test_library_score_then_create_ignores_settings(
        self,
        db_session: AsyncSession,
        monkeypatch: pytest.MonkeyPatch,
        mild_difficulty: dict[int, int],
    ) -> None:
        # Given: a deployment configured with tighter bands
        monkeypatch.setattr(settings, "sdq_borderline_threshold", 10.0)
        monkeypatch.setattr(settings, "sdq_clinical_threshold", 12.0)
        store = AssessmentRecordStore(db_session)

        # When
        scoring_result = score(mild_difficulty)
        created = await store.create("child-1", scoring_result, AnalysisType.SDQ)

        # Then
        assert scoring_result.percentage == 10.0
        assert created.interpretation == Interpretation.NORMAL
        assert (await store.get_by_id(created.id)).interpretation == Interpretation.NORMAL

    async def test_configured_service_and_store_round_trip(
        self, db_session: AsyncSession, mild_difficulty: dict[int, int]
    ) -> None:
        # Given
        config = Settings(sdq_borderline_threshold=10.0, sdq_clinical_threshold=12.0)
        service = ScoringService(config=config)
        store = AssessmentRecordStore(db_session, thresholds=thresholds_from_settings(config))

        # When
        scoring_result = service.score(mild_difficulty)
        created = await store.create("child-1", scoring_result, AnalysisType.SDQ)
        history = await store.list_by_child("child-1")

        # Then
        assert scoring_result.interpretation == Interpretation.BORDERLINE
        assert created.interpretation == Interpretation.BORDERLINE
        assert [r.interpretation for r in history] == [Interpretation.BORDERLINE]

    async def test_mismatched_thresholds_are_inconsistent(
        self, db_session: AsyncSession, mild_difficulty: dict[int, int]
    ) -> None:
        store = AssessmentRecordStore(
            db_session, thresholds=InterpretationThresholds(borderline=10.0, clinical=12.0)
        )

        with pytest.raises(InconsistentResultError) as exc_info:
            await store.create("child-1", score(mild_difficulty), AnalysisType.SDQ)

        assert set(exc_info.value.mismatches) == {"interpretation"}


class TestCorruptRecords:
    """Rows that no longer parse surface as CorruptRecordError."""

    @pytest.mark.parametrize(
        "values",
        [
            {
                "sdq_scores": {
                    "emotional": 11,
                    "conduct": 1,
                    "hyperactivity": 1,
                    "peer": 1,
                    "prosocial": 5,
                }
            },
            {"sdq_scores": {"emotional": 1}},
            {"analysis_type": "unknown"},
        ],
    )
    async def test_unreadable_row_names_result(
        self,
        store: AssessmentRecordStore,
        db_session: AsyncSession,
        all_ones: dict[int, int],
        values: dict,
    ) -> None:
        # Given
        created = await store.create("child-1", score(all_ones), AnalysisType.SDQ)
        await db_session.execute(
            update(AssessmentResultORM)
            .where(AssessmentResultORM.id == created.id)
            .values(**values)
        )
        await db_session.commit()

        # When & Then
        with pytest.raises(CorruptRecordError) as exc_info:
            await store.get_by_id(created.id)

        assert exc_info.value.result_id == created.id

    async def test_history_with_unreadable_row_fails(
        self,
        store: AssessmentRecordStore,
        db_session: AsyncSession,
        all_ones: dict[int, int],
    ) -> None:
        created = await store.create("child-1", score(all_ones), AnalysisType.SDQ)
        await db_session.execute(
            update(AssessmentResultORM)
            .where(AssessmentResultORM.id == created.id)
            .values(analysis_type="unknown")
        )
        await db_session.commit()

        with pytest.raises(CorruptRecordError, match=created.id):
            await store.list_by_child("child-1")
