"""Service layer.

Provides service modules for business logic processing.
"""

from sdq_tracker.services.assessment_service import AssessmentRecordStore
from sdq_tracker.services.scoring_service import ScoringService, thresholds_from_settings

__all__ = [
    "AssessmentRecordStore",
    "ScoringService",
    "thresholds_from_settings",
]
