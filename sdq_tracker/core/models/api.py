"""API request/response models (DTOs)."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, model_validator

from sdq_tracker.domain.assessment.models import AnalysisType, AssessmentResult
from sdq_tracker.domain.sdq.models import (
    ANSWER_LABELS,
    CATEGORY_LABELS,
    QuestionnaireItem,
    QuestionnaireProgress,
    SdqCategory,
)
from sdq_tracker.domain.sdq.scoring import (
    CategoryScores,
    ConcernLevel,
    Interpretation,
    ScoringResult,
)


class AnswersDTO(BaseModel):
    """Questionnaire answers keyed by item id."""

    # Values are passed through unconverted; the scoring engine rejects
    # anything that is not exactly 0, 1 or 2.
    answers: dict[int, Any] = Field(
        ...,
        description="Raw answers (0 Not True, 1 Somewhat True, 2 Certainly True)",
        examples=[{"1": 2, "2": 0, "3": 1}],
    )


class QuestionnaireGroupDTO(BaseModel):
    category: SdqCategory
    label: str
    items: list[QuestionnaireItem]


class QuestionnaireResponseDTO(BaseModel):
    """Questionnaire items grouped by category."""

    groups: list[QuestionnaireGroupDTO]
    answer_labels: dict[int, str] = Field(default_factory=lambda: dict(ANSWER_LABELS))
    total_items: int

    @classmethod
    def from_groups(
        cls, groups: dict[SdqCategory, list[QuestionnaireItem]]
    ) -> "QuestionnaireResponseDTO":
        return cls(
            groups=[
                QuestionnaireGroupDTO(
                    category=category, label=CATEGORY_LABELS[category], items=items
                )
                for category, items in groups.items()
            ],
            total_items=sum(len(items) for items in groups.values()),
        )


class ProgressResponseDTO(BaseModel):
    answered: int
    total: int
    remaining: int
    is_complete: bool
    completed_categories: list[SdqCategory]

    @classmethod
    def from_domain(cls, progress: QuestionnaireProgress) -> "ProgressResponseDTO":
        return cls(
            answered=progress.answered,
            total=progress.total,
            remaining=progress.remaining,
            is_complete=progress.is_complete,
            completed_categories=progress.completed_categories,
        )


class ScoringResponseDTO(BaseModel):
    """Scored questionnaire with the per-category breakdown."""

    category_scores: CategoryScores
    total_difficulty: int
    percentage: float
    interpretation: Interpretation
    category_concerns: dict[SdqCategory, ConcernLevel]
    prosocial_percentage: float

    @classmethod
    def from_domain(cls, result: ScoringResult) -> "ScoringResponseDTO":
        return cls(
            category_scores=result.category_scores,
            total_difficulty=result.total_difficulty,
            percentage=result.percentage,
            interpretation=result.interpretation,
            category_concerns=result.category_concerns(),
            prosocial_percentage=result.prosocial_percentage,
        )


class AssessmentCreateDTO(BaseModel):
    """Assessment creation request.

    Carries either raw answers, scored on the server, or a scoring result
    computed earlier by the client (checked for consistency before storing).
    """

    child_id: str = Field(..., min_length=1, description="Child id")
    analysis_type: AnalysisType = Field(default=AnalysisType.SDQ)
    answers: dict[int, Any] | None = Field(None, description="Raw answers to score")
    scoring_result: ScoringResult | None = Field(None, description="Previously computed result")
    notes: str | None = Field(None, description="Free-text notes")
    facial_image_ref: str | None = Field(None, description="Facial image URL or reference")
    confidence: float | None = Field(None, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _one_source(self) -> "AssessmentCreateDTO":
        if (self.answers is None) == (self.scoring_result is None):
            raise ValueError("Provide exactly one of 'answers' or 'scoring_result'")
        return self


class AssessmentResponseDTO(BaseModel):
    """Stored assessment result."""

    id: str
    child_id: str
    facial_image_ref: str | None
    category_scores: CategoryScores
    total_difficulty: int
    percentage: float
    interpretation: Interpretation
    analysis_type: AnalysisType
    notes: str | None
    confidence: float | None
    created_at: datetime

    @classmethod
    def from_domain(cls, result: AssessmentResult) -> "AssessmentResponseDTO":
        return cls.model_validate(result.model_dump())


class AssessmentListResponseDTO(BaseModel):
    child_id: str
    results: list[AssessmentResponseDTO]
    total: int


class HealthCheckResponse(BaseModel):
    """Health check response.

    Defines the shape of the service status endpoint.
    """

    status: str = Field(default="healthy", description="Service status")
    version: str = Field(description="Application version")
    service: str = Field(description="Service name")
    database: str = Field(default="connected", description="Assessment database status")
