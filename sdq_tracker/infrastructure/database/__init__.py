"""Assessment result persistence."""

from sdq_tracker.infrastructure.database.assessment_repository import AssessmentRepository
from sdq_tracker.infrastructure.database.models import AssessmentResultORM, Base

__all__ = [
    "AssessmentRepository",
    "AssessmentResultORM",
    "Base",
]
