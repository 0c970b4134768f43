"""Assessment result domain models.

An assessment result is a scored SDQ questionnaire (optionally paired with a
facial analysis) persisted against a child.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from sdq_tracker.domain.sdq.scoring import (
    MAX_TOTAL_DIFFICULTY,
    CategoryScores,
    Interpretation,
    ScoringResult,
)


class AnalysisType(str, Enum):
    """Kind of analysis that produced the result."""

    FACIAL = "facial"
    SDQ = "sdq"
    COMBINED = "combined"


class AssessmentResult(BaseModel):
    """Persisted assessment result."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Result id")
    child_id: str = Field(..., min_length=1, description="Child id")
    facial_image_ref: str | None = Field(None, description="Facial image URL or reference")
    category_scores: CategoryScores = Field(..., description="SDQ category scores")
    total_difficulty: int = Field(..., ge=0, le=MAX_TOTAL_DIFFICULTY)
    percentage: float = Field(..., ge=0.0, le=100.0)
    interpretation: Interpretation
    analysis_type: AnalysisType
    notes: str | None = Field(None, description="Free-text notes")
    confidence: float | None = Field(None, ge=0.0, le=1.0, description="Analysis confidence")
    created_at: datetime = Field(..., description="Creation time (UTC)")

    @property
    def scoring_result(self) -> ScoringResult:
        return ScoringResult(
            category_scores=self.category_scores,
            total_difficulty=self.total_difficulty,
            percentage=self.percentage,
            interpretation=self.interpretation,
        )


class AssessmentCorrection(BaseModel):
    """Explicit correction of a stored result.

    Derived fields are not accepted; when scores change they are recomputed.
    """

    model_config = ConfigDict(extra="forbid")

    category_scores: CategoryScores | None = None
    analysis_type: AnalysisType | None = None
    notes: str | None = None
    facial_image_ref: str | None = None
    confidence: float | None = Field(None, ge=0.0, le=1.0)
