"""SDQ questionnaire and scoring API router."""

import logging

from fastapi import APIRouter, Depends

from sdq_tracker.api.dependencies import get_scoring_service, to_http_exception
from sdq_tracker.core.models.api import (
    AnswersDTO,
    ProgressResponseDTO,
    QuestionnaireResponseDTO,
    ScoringResponseDTO,
)
from sdq_tracker.domain.sdq.exceptions import SdqError
from sdq_tracker.services.scoring_service import ScoringService

router = APIRouter(prefix="/sdq", tags=["sdq"])

logger = logging.getLogger(__name__)


@router.get(
    "/questionnaire",
    response_model=QuestionnaireResponseDTO,
    summary="SDQ questionnaire",
    description="Returns the 25 SDQ items grouped by category.",
)
async def get_questionnaire(
    service: ScoringService = Depends(get_scoring_service),
) -> QuestionnaireResponseDTO:
    return QuestionnaireResponseDTO.from_groups(service.questionnaire())


@router.post(
    "/progress",
    response_model=ProgressResponseDTO,
    summary="Questionnaire progress",
    description="Counts answered items and fully answered categories.",
)
async def get_progress(
    request: AnswersDTO,
    service: ScoringService = Depends(get_scoring_service),
) -> ProgressResponseDTO:
    return ProgressResponseDTO.from_domain(service.progress(request.answers))


@router.post(
    "/score",
    response_model=ScoringResponseDTO,
    summary="Score SDQ answers",
    description="Scores a complete answer set without storing it.",
)
async def score_answers(
    request: AnswersDTO,
    service: ScoringService = Depends(get_scoring_service),
) -> ScoringResponseDTO:
    """Score a questionnaire.

    Args:
        request: Answers keyed by item id
        service: Scoring service

    Returns:
        Category scores, total difficulty, percentage and interpretation

    Raises:
        HTTPException: 422 - unanswered items or invalid answer values
    """
    try:
        result = service.score(request.answers)
    except SdqError as e:
        logger.info("[API] SDQ scoring rejected", extra={"error": str(e)})
        raise to_http_exception(e) from e

    return ScoringResponseDTO.from_domain(result)
