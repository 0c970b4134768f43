"""Assessment result domain models."""

from sdq_tracker.domain.assessment.models import (
    AnalysisType,
    AssessmentCorrection,
    AssessmentResult,
)

__all__ = [
    "AnalysisType",
    "AssessmentCorrection",
    "AssessmentResult",
]
