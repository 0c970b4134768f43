"""Assessment result API router.

Stores scored questionnaires and serves each child's assessment history.
"""

import logging

from fastapi import APIRouter, Depends, Response, status

from sdq_tracker.api.dependencies import (
    get_record_store,
    get_scoring_service,
    to_http_exception,
)
from sdq_tracker.core.models.api import (
    AssessmentCreateDTO,
    AssessmentListResponseDTO,
    AssessmentResponseDTO,
)
from sdq_tracker.domain.assessment.models import AnalysisType, AssessmentCorrection
from sdq_tracker.domain.sdq.exceptions import AssessmentNotFoundError, SdqError
from sdq_tracker.services.assessment_service import AssessmentRecordStore
from sdq_tracker.services.scoring_service import ScoringService

router = APIRouter(tags=["assessments"])

logger = logging.getLogger(__name__)


@router.post(
    "/assessments",
    response_model=AssessmentResponseDTO,
    status_code=status.HTTP_201_CREATED,
    summary="Store an assessment result",
    description="Scores the answers (or checks a supplied result) and stores it for the child.",
)
async def create_assessment(
    request: AssessmentCreateDTO,
    store: AssessmentRecordStore = Depends(get_record_store),
    scoring: ScoringService = Depends(get_scoring_service),
) -> AssessmentResponseDTO:
    """Store an assessment result.

    Raises:
        HTTPException: 422 - invalid input, 409 - inconsistent result,
            503 - storage unavailable
    """
    try:
        scoring_result = (
            scoring.score(request.answers)
            if request.answers is not None
            else request.scoring_result
        )
        result = await store.create(
            child_id=request.child_id,
            scoring_result=scoring_result,
            analysis_type=request.analysis_type,
            notes=request.notes,
            image_ref=request.facial_image_ref,
            confidence=request.confidence,
        )
    except SdqError as e:
        logger.info(
            "[API] Assessment creation failed",
            extra={"child_id": request.child_id, "error": str(e)},
        )
        raise to_http_exception(e) from e

    return AssessmentResponseDTO.from_domain(result)


@router.get(
    "/assessments/{result_id}",
    response_model=AssessmentResponseDTO,
    summary="Get an assessment result",
)
async def get_assessment(
    result_id: str,
    store: AssessmentRecordStore = Depends(get_record_store),
) -> AssessmentResponseDTO:
    try:
        result = await store.get_by_id(result_id)
        if result is None:
            raise AssessmentNotFoundError(result_id)
    except SdqError as e:
        raise to_http_exception(e) from e

    return AssessmentResponseDTO.from_domain(result)


@router.patch(
    "/assessments/{result_id}",
    response_model=AssessmentResponseDTO,
    summary="Correct an assessment result",
    description="Explicit correction; derived fields are recomputed from the scores.",
)
async def correct_assessment(
    result_id: str,
    correction: AssessmentCorrection,
    store: AssessmentRecordStore = Depends(get_record_store),
) -> AssessmentResponseDTO:
    try:
        result = await store.correct(result_id, correction)
    except SdqError as e:
        raise to_http_exception(e) from e

    return AssessmentResponseDTO.from_domain(result)


@router.delete(
    "/assessments/{result_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an assessment result",
)
async def delete_assessment(
    result_id: str,
    store: AssessmentRecordStore = Depends(get_record_store),
) -> Response:
    try:
        deleted = await store.delete(result_id)
        if not deleted:
            raise AssessmentNotFoundError(result_id)
    except SdqError as e:
        raise to_http_exception(e) from e

    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/children/{child_id}/assessments",
    response_model=AssessmentListResponseDTO,
    summary="Assessment history",
    description="All results for the child, newest first.",
)
async def list_child_assessments(
    child_id: str,
    analysis_type: AnalysisType | None = None,
    store: AssessmentRecordStore = Depends(get_record_store),
) -> AssessmentListResponseDTO:
    try:
        if analysis_type is None:
            results = await store.list_by_child(child_id)
        else:
            results = await store.list_by_type(child_id, analysis_type)
    except SdqError as e:
        raise to_http_exception(e) from e

    return AssessmentListResponseDTO(
        child_id=child_id,
        results=[AssessmentResponseDTO.from_domain(result) for result in results],
        total=len(results),
    )


@router.get(
    "/children/{child_id}/assessments/latest",
    response_model=AssessmentResponseDTO | None,
    summary="Most recent assessment",
    description="Newest result for the child, or null when there is none.",
)
async def get_latest_assessment(
    child_id: str,
    store: AssessmentRecordStore = Depends(get_record_store),
) -> AssessmentResponseDTO | None:
    try:
        result = await store.get_most_recent(child_id)
    except SdqError as e:
        raise to_http_exception(e) from e

    return AssessmentResponseDTO.from_domain(result) if result else None
