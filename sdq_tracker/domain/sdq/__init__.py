"""SDQ questionnaire and scoring domain."""

from sdq_tracker.domain.sdq.exceptions import (
    AnswerValidationError,
    AssessmentNotFoundError,
    AssessmentValidationError,
    CorruptRecordError,
    IncompleteAnswersError,
    InconsistentResultError,
    QuestionnaireConfigError,
    SdqError,
    StorageUnavailableError,
    ValidationError,
)
from sdq_tracker.domain.sdq.models import (
    ANSWER_LABELS,
    CATEGORY_LABELS,
    DIFFICULTY_CATEGORIES,
    SDQ_ITEMS,
    AnswerSet,
    QuestionnaireItem,
    QuestionnaireProgress,
    SdqCategory,
    items_by_category,
    load_questionnaire,
    questionnaire_progress,
)
from sdq_tracker.domain.sdq.scoring import (
    CategoryScores,
    ConcernLevel,
    Interpretation,
    InterpretationThresholds,
    MissingAnswerPolicy,
    ScoringResult,
    classify,
    concern_level,
    derive_result,
    difficulty_percentage,
    reverse_score,
    score,
)

__all__ = [
    "ANSWER_LABELS",
    "CATEGORY_LABELS",
    "DIFFICULTY_CATEGORIES",
    "SDQ_ITEMS",
    "AnswerSet",
    "AnswerValidationError",
    "AssessmentNotFoundError",
    "AssessmentValidationError",
    "CorruptRecordError",
    "CategoryScores",
    "ConcernLevel",
    "IncompleteAnswersError",
    "InconsistentResultError",
    "Interpretation",
    "InterpretationThresholds",
    "MissingAnswerPolicy",
    "QuestionnaireConfigError",
    "QuestionnaireItem",
    "QuestionnaireProgress",
    "ScoringResult",
    "SdqCategory",
    "SdqError",
    "StorageUnavailableError",
    "ValidationError",
    "classify",
    "concern_level",
    "derive_result",
    "difficulty_percentage",
    "items_by_category",
    "load_questionnaire",
    "questionnaire_progress",
    "reverse_score",
    "score",
]
