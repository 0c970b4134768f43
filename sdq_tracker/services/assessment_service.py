"""Assessment record store.

Owns the create/read lifecycle of persisted SDQ assessment results for a
child. Derived fields (total difficulty, percentage, interpretation) are
checked against a recomputation before anything is written and recomputed
again on every read.
"""

import logging
import math
import uuid
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sdq_tracker.domain.assessment.models import (
    AnalysisType,
    AssessmentCorrection,
    AssessmentResult,
)
from sdq_tracker.domain.sdq.exceptions import (
    AssessmentNotFoundError,
    AssessmentValidationError,
    CorruptRecordError,
    InconsistentResultError,
    StorageUnavailableError,
)
from sdq_tracker.domain.sdq.scoring import (
    DEFAULT_THRESHOLDS,
    CategoryScores,
    InterpretationThresholds,
    ScoringResult,
    derive_result,
)
from sdq_tracker.infrastructure.database.assessment_repository import (
    AssessmentRepository,
    Document,
)

logger = logging.getLogger(__name__)

STORAGE_ERRORS = (SQLAlchemyError, OSError, TimeoutError)

PERCENTAGE_TOLERANCE = 1e-9


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AssessmentRecordStore:
    """Create and query assessment results scoped to a child.

    Each operation is a single round trip to the database. Storage failures
    are raised as StorageUnavailableError; nothing is retried here.
    """

    def __init__(
        self,
        session: AsyncSession,
        thresholds: InterpretationThresholds | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize the store.

        Args:
            session: Async database session
            thresholds: Interpretation thresholds, defaults to DEFAULT_THRESHOLDS
            clock: Source of creation timestamps
        """
        self._session = session
        self.repository = AssessmentRepository(session)
        self.thresholds = thresholds or DEFAULT_THRESHOLDS
        self._clock = clock

    async def create(
        self,
        child_id: str,
        scoring_result: ScoringResult,
        analysis_type: AnalysisType | str,
        notes: str | None = None,
        image_ref: str | None = None,
        confidence: float | None = None,
    ) -> AssessmentResult:
        """Persist a scored questionnaire for a child.

        Args:
            child_id: Child id (partition key)
            scoring_result: Output of the scoring engine
            analysis_type: facial, sdq or combined
            notes: Free-text notes
            image_ref: Facial image URL or reference
            confidence: Confidence of the analysis (0.0-1.0)

        Returns:
            The stored result with its assigned id and creation time

        Raises:
            AssessmentValidationError: child_id, analysis_type or confidence is invalid
            InconsistentResultError: Derived fields do not match the category scores
            StorageUnavailableError: The database could not be reached
        """
        child_id = self._require_child_id(child_id)
        analysis_type = self._parse_analysis_type(analysis_type)
        self._check_confidence(confidence)
        self._check_consistency(scoring_result)

        result = AssessmentResult(
            id=str(uuid.uuid4()),
            child_id=child_id,
            facial_image_ref=image_ref,
            category_scores=scoring_result.category_scores,
            total_difficulty=scoring_result.total_difficulty,
            percentage=scoring_result.percentage,
            interpretation=scoring_result.interpretation,
            analysis_type=analysis_type,
            notes=notes,
            confidence=confidence,
            created_at=self._clock(),
        )

        async with self._storage_operation("create"):
            await self.repository.insert(self._to_document(result))
            await self._session.commit()

        logger.info(
            "[ASSESSMENT_STORE] Assessment result created",
            extra={
                "result_id": result.id,
                "child_id": child_id,
                "analysis_type": analysis_type.value,
                "total_difficulty": result.total_difficulty,
                "interpretation": result.interpretation.value,
            },
        )
        return result

    async def list_by_child(self, child_id: str) -> list[AssessmentResult]:
        """All results for a child, newest first. Empty when there are none."""
        child_id = self._require_child_id(child_id)
        async with self._storage_operation("list_by_child"):
            documents = await self.repository.query_by_field(
                "child_id", child_id, order_by="created_at"
            )
        return [self._to_domain(document) for document in documents]

    async def list_by_type(
        self,
        child_id: str,
        analysis_type: AnalysisType | str,
    ) -> list[AssessmentResult]:
        """Results of one analysis type for a child, newest first."""
        child_id = self._require_child_id(child_id)
        analysis_type = self._parse_analysis_type(analysis_type)
        async with self._storage_operation("list_by_type"):
            documents = await self.repository.query_by_fields(
                {"child_id": child_id, "analysis_type": analysis_type.value},
                order_by="created_at",
            )
        return [self._to_domain(document) for document in documents]

    async def get_most_recent(self, child_id: str) -> AssessmentResult | None:
        """Newest result for a child, or None when the child has none."""
        child_id = self._require_child_id(child_id)
        async with self._storage_operation("get_most_recent"):
            documents = await self.repository.query_by_field(
                "child_id", child_id, order_by="created_at", limit=1
            )
        return self._to_domain(documents[0]) if documents else None

    async def get_by_id(self, result_id: str) -> AssessmentResult | None:
        async with self._storage_operation("get_by_id"):
            document = await self.repository.get(result_id)
        return self._to_domain(document) if document else None

    async def correct(
        self,
        result_id: str,
        correction: AssessmentCorrection,
    ) -> AssessmentResult:
        """Apply an explicit correction to a stored result.

        Changed category scores recompute total difficulty, percentage and
        interpretation together. The child, id and creation time never change.

        Raises:
            AssessmentNotFoundError: No result with this id
            AssessmentValidationError: A required field is cleared
            StorageUnavailableError: The database could not be reached
        """
        changes = correction.model_fields_set
        for field in ("category_scores", "analysis_type"):
            if field in changes and getattr(correction, field) is None:
                raise AssessmentValidationError(field, "cannot be cleared")

        async with self._storage_operation("correct"):
            document = await self.repository.get(result_id)
            if document is None:
                raise AssessmentNotFoundError(result_id)
            current = self._to_domain(document)

            updates: dict[str, Any] = {}
            category_scores = current.category_scores
            if correction.category_scores is not None:
                category_scores = correction.category_scores
            derived = derive_result(category_scores, self.thresholds)
            updates.update(
                sdq_scores=category_scores.as_dict(),
                total_difficulty=derived.total_difficulty,
                percentage=derived.percentage,
                interpretation=derived.interpretation.value,
            )
            if "analysis_type" in changes:
                updates["analysis_type"] = correction.analysis_type.value
            for field in ("notes", "facial_image_ref", "confidence"):
                if field in changes:
                    updates[field] = getattr(correction, field)

            await self.repository.update(result_id, updates)
            await self._session.commit()

        corrected = current.model_copy(
            update={
                "category_scores": category_scores,
                "total_difficulty": derived.total_difficulty,
                "percentage": derived.percentage,
                "interpretation": derived.interpretation,
                "analysis_type": correction.analysis_type or current.analysis_type,
                **{
                    field: updates[field]
                    for field in ("notes", "facial_image_ref", "confidence")
                    if field in updates
                },
            }
        )
        logger.info(
            "[ASSESSMENT_STORE] Assessment result corrected",
            extra={"result_id": result_id, "fields": sorted(changes)},
        )
        return corrected

    async def delete(self, result_id: str) -> bool:
        """Explicitly delete a result. Returns whether it existed."""
        async with self._storage_operation("delete"):
            deleted = await self.repository.delete(result_id)
            await self._session.commit()
        return deleted

    # =========================================================================
    # Validation
    # =========================================================================

    def _require_child_id(self, child_id: str) -> str:
        if not isinstance(child_id, str) or not child_id.strip():
            raise AssessmentValidationError("child_id", "must be a non-empty string")
        return child_id.strip()

    def _parse_analysis_type(self, analysis_type: AnalysisType | str) -> AnalysisType:
        try:
            return AnalysisType(analysis_type)
        except ValueError as e:
            allowed = ", ".join(t.value for t in AnalysisType)
            raise AssessmentValidationError(
                "analysis_type", f"{analysis_type!r} is not one of {allowed}"
            ) from e

    def _check_confidence(self, confidence: float | None) -> None:
        if confidence is not None and not 0.0 <= confidence <= 1.0:
            raise AssessmentValidationError("confidence", "must be between 0.0 and 1.0")

    def _check_consistency(self, scoring_result: ScoringResult) -> None:
        expected = derive_result(scoring_result.category_scores, self.thresholds)
        mismatches: dict[str, tuple[object, object]] = {}

        if scoring_result.total_difficulty != expected.total_difficulty:
            mismatches["total_difficulty"] = (
                scoring_result.total_difficulty,
                expected.total_difficulty,
            )
        if not math.isclose(
            scoring_result.percentage,
            expected.percentage,
            rel_tol=0.0,
            abs_tol=PERCENTAGE_TOLERANCE,
        ):
            mismatches["percentage"] = (scoring_result.percentage, expected.percentage)
        if scoring_result.interpretation != expected.interpretation:
            mismatches["interpretation"] = (
                scoring_result.interpretation.value,
                expected.interpretation.value,
            )

        if mismatches:
            logger.warning(
                "[ASSESSMENT_STORE] Rejected inconsistent scoring result",
                extra={"mismatches": list(mismatches)},
            )
            raise InconsistentResultError(mismatches)

    # =========================================================================
    # Mapping
    # =========================================================================

    @asynccontextmanager
    async def _storage_operation(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except STORAGE_ERRORS as e:
            logger.error(
                "[ASSESSMENT_STORE] Storage failure",
                extra={"operation": operation, "error": str(e)},
            )
            await self._rollback(operation)
            raise StorageUnavailableError(operation, e) from e

    async def _rollback(self, operation: str) -> None:
        try:
            await self._session.rollback()
        except STORAGE_ERRORS as e:
            logger.warning(
                "[ASSESSMENT_STORE] Rollback failed",
                extra={"operation": operation, "error": str(e)},
            )

    def _to_document(self, result: AssessmentResult) -> Document:
        return {
            "id": result.id,
            "child_id": result.child_id,
            "facial_image_ref": result.facial_image_ref,
            "sdq_scores": result.category_scores.as_dict(),
            "total_difficulty": result.total_difficulty,
            "percentage": result.percentage,
            "interpretation": result.interpretation.value,
            "analysis_type": result.analysis_type.value,
            "notes": result.notes,
            "confidence": result.confidence,
            "created_at": result.created_at,
        }

    def _to_domain(self, document: Document) -> AssessmentResult:
        try:
            return self._parse_document(document)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.error(
                "[ASSESSMENT_STORE] Stored result is unreadable",
                extra={"result_id": document.get("id"), "error": str(e)},
            )
            raise CorruptRecordError(str(document.get("id")), e) from e

    def _parse_document(self, document: Document) -> AssessmentResult:
        category_scores = CategoryScores.model_validate(document["sdq_scores"])
        derived = derive_result(category_scores, self.thresholds)

        if (
            document["total_difficulty"] != derived.total_difficulty
            or document["interpretation"] != derived.interpretation.value
            or not math.isclose(
                document["percentage"],
                derived.percentage,
                rel_tol=0.0,
                abs_tol=PERCENTAGE_TOLERANCE,
            )
        ):
            logger.warning(
                "[ASSESSMENT_STORE] Stored derived fields are stale, serving recomputed values",
                extra={"result_id": document["id"]},
            )

        created_at = document["created_at"]
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)

        return AssessmentResult(
            id=document["id"],
            child_id=document["child_id"],
            facial_image_ref=document["facial_image_ref"],
            category_scores=category_scores,
            total_difficulty=derived.total_difficulty,
            percentage=derived.percentage,
            interpretation=derived.interpretation,
            analysis_type=AnalysisType(document["analysis_type"]),
            notes=document["notes"],
            confidence=document["confidence"],
            created_at=created_at,
        )
