"""Shared API dependencies and error translation."""

from fastapi import Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from sdq_tracker.domain.sdq.exceptions import (
    AnswerValidationError,
    AssessmentNotFoundError,
    AssessmentValidationError,
    CorruptRecordError,
    IncompleteAnswersError,
    InconsistentResultError,
    SdqError,
    StorageUnavailableError,
    ValidationError,
)
from sdq_tracker.infrastructure.database.connection import get_db
from sdq_tracker.services.assessment_service import AssessmentRecordStore
from sdq_tracker.services.scoring_service import ScoringService, thresholds_from_settings


def get_scoring_service() -> ScoringService:
    return ScoringService()


def get_record_store(db: AsyncSession = Depends(get_db)) -> AssessmentRecordStore:
    return AssessmentRecordStore(db, thresholds=thresholds_from_settings())


def to_http_exception(error: SdqError) -> HTTPException:
    """Translate a screening error into an HTTP error response."""
    if isinstance(error, IncompleteAnswersError):
        return HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail={
                "error": "incomplete_answers",
                "message": str(error),
                "missing_item_ids": error.missing_ids,
            },
        )
    if isinstance(error, AnswerValidationError):
        return HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail={
                "error": "invalid_answer",
                "message": str(error),
                "item_id": error.item_id,
                "value": error.value,
            },
        )
    if isinstance(error, AssessmentValidationError):
        return HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail={"error": "invalid_field", "message": str(error), "field": error.field},
        )
    if isinstance(error, ValidationError):
        return HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail={"error": "validation_error", "message": str(error)},
        )
    if isinstance(error, InconsistentResultError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "error": "inconsistent_result",
                "message": str(error),
                "fields": sorted(error.mismatches),
            },
        )
    if isinstance(error, AssessmentNotFoundError):
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "not_found", "message": str(error)},
        )
    if isinstance(error, StorageUnavailableError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "error": "storage_unavailable",
                "message": "Assessment storage is temporarily unavailable. Please try again.",
                "operation": error.operation,
            },
        )
    if isinstance(error, CorruptRecordError):
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "corrupt_record",
                "message": "Stored assessment result is unreadable.",
                "result_id": error.result_id,
            },
        )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"error": "internal_error", "message": str(error)},
    )
