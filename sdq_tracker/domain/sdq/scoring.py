"""SDQ scoring engine.

Turns a complete answer set into category scores, a total difficulty score,
a difficulty percentage, and an interpretation band. Every function here is
pure: no I/O, no shared mutable state, same inputs give the same result.
"""

import logging
from collections.abc import Iterable
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from sdq_tracker.domain.sdq.exceptions import (
    AnswerValidationError,
    IncompleteAnswersError,
)
from sdq_tracker.domain.sdq.models import (
    ANSWER_LABELS,
    DIFFICULTY_CATEGORIES,
    ITEMS_PER_CATEGORY,
    SDQ_ITEMS,
    AnswerSet,
    QuestionnaireItem,
    SdqCategory,
)

logger = logging.getLogger(__name__)

MAX_ITEM_SCORE = 2
MAX_CATEGORY_SCORE = MAX_ITEM_SCORE * ITEMS_PER_CATEGORY
MAX_TOTAL_DIFFICULTY = MAX_CATEGORY_SCORE * len(DIFFICULTY_CATEGORIES)

# Concern level cut-offs for a single category score (inclusive upper bounds)
LOW_CONCERN_MAX = 2
MODERATE_CONCERN_MAX = 5


class Interpretation(str, Enum):
    """Clinical-risk band derived from the difficulty percentage."""

    NORMAL = "Within Normal Range"
    BORDERLINE = "Borderline Range"
    CLINICAL = "Clinical Range"


class ConcernLevel(str, Enum):
    """Per-category concern level shown in the result breakdown."""

    LOW = "Low concern"
    MODERATE = "Moderate concern"
    HIGH = "High concern"


class MissingAnswerPolicy(str, Enum):
    """What to do with questionnaire items that have no answer."""

    REJECT = "reject"
    ZERO = "zero"


class InterpretationThresholds(BaseModel):
    """Lower bounds (in percent) of the Borderline and Clinical bands."""

    model_config = ConfigDict(frozen=True)

    borderline: float = Field(default=15.0, ge=0.0, le=100.0)
    clinical: float = Field(default=20.0, ge=0.0, le=100.0)

    @model_validator(mode="after")
    def _check_order(self) -> "InterpretationThresholds":
        if self.borderline >= self.clinical:
            raise ValueError("borderline threshold must be lower than clinical threshold")
        return self


DEFAULT_THRESHOLDS = InterpretationThresholds()


class CategoryScores(BaseModel):
    """Summed effective scores per SDQ category."""

    model_config = ConfigDict(frozen=True)

    emotional: int = Field(..., ge=0, le=MAX_CATEGORY_SCORE)
    conduct: int = Field(..., ge=0, le=MAX_CATEGORY_SCORE)
    hyperactivity: int = Field(..., ge=0, le=MAX_CATEGORY_SCORE)
    peer: int = Field(..., ge=0, le=MAX_CATEGORY_SCORE)
    prosocial: int = Field(..., ge=0, le=MAX_CATEGORY_SCORE)

    def get(self, category: SdqCategory) -> int:
        return getattr(self, category.value)

    def total_difficulty(self) -> int:
        """Sum of the four difficulty categories (prosocial excluded)."""
        return sum(self.get(category) for category in DIFFICULTY_CATEGORIES)

    def as_dict(self) -> dict[str, int]:
        return {category.value: self.get(category) for category in SdqCategory}


class ScoringResult(BaseModel):
    """Outcome of scoring one complete answer set."""

    model_config = ConfigDict(frozen=True)

    category_scores: CategoryScores
    total_difficulty: int = Field(..., ge=0, le=MAX_TOTAL_DIFFICULTY)
    percentage: float = Field(..., ge=0.0, le=100.0)
    interpretation: Interpretation

    @property
    def prosocial_percentage(self) -> float:
        return self.category_scores.prosocial * 100 / MAX_CATEGORY_SCORE

    def category_concerns(self) -> dict[SdqCategory, ConcernLevel]:
        """Concern level of each difficulty category."""
        return {
            category: concern_level(self.category_scores.get(category))
            for category in DIFFICULTY_CATEGORIES
        }


def reverse_score(raw: int) -> int:
    """Invert a reverse-scored answer: 0 and 2 swap, 1 stays put."""
    return MAX_ITEM_SCORE - raw


def classify(
    percentage: float,
    thresholds: InterpretationThresholds | None = None,
) -> Interpretation:
    """Map a difficulty percentage to its interpretation band.

    Each band includes its lower bound and excludes its upper bound, so with
    the default thresholds exactly 15.0 is Borderline and 20.0 is Clinical.
    """
    thresholds = thresholds or DEFAULT_THRESHOLDS
    if percentage < thresholds.borderline:
        return Interpretation.NORMAL
    if percentage < thresholds.clinical:
        return Interpretation.BORDERLINE
    return Interpretation.CLINICAL


def concern_level(category_score: int) -> ConcernLevel:
    if category_score <= LOW_CONCERN_MAX:
        return ConcernLevel.LOW
    if category_score <= MODERATE_CONCERN_MAX:
        return ConcernLevel.MODERATE
    return ConcernLevel.HIGH


def difficulty_percentage(total_difficulty: int) -> float:
    """Total difficulty as an unrounded percentage of the maximum."""
    return total_difficulty * 100 / MAX_TOTAL_DIFFICULTY


def derive_result(
    category_scores: CategoryScores,
    thresholds: InterpretationThresholds | None = None,
) -> ScoringResult:
    """Recompute every derived field from category scores alone."""
    total = category_scores.total_difficulty()
    percentage = difficulty_percentage(total)
    return ScoringResult(
        category_scores=category_scores,
        total_difficulty=total,
        percentage=percentage,
        interpretation=classify(percentage, thresholds),
    )


def _check_answer_value(item: QuestionnaireItem, value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value not in ANSWER_LABELS:
        raise AnswerValidationError(item.id, value)
    return value


def score(
    answers: AnswerSet,
    items: Iterable[QuestionnaireItem] = SDQ_ITEMS,
    *,
    missing_policy: MissingAnswerPolicy = MissingAnswerPolicy.REJECT,
    thresholds: InterpretationThresholds | None = None,
) -> ScoringResult:
    """Score a questionnaire answer set.

    Args:
        answers: Raw answers keyed by item id, each 0, 1 or 2
        items: Questionnaire definition
        missing_policy: REJECT raises on unanswered items, ZERO counts them as 0
        thresholds: Interpretation band thresholds

    Returns:
        Category scores, total difficulty, percentage and interpretation

    Raises:
        AnswerValidationError: An answer is outside {0, 1, 2}
        IncompleteAnswersError: Items are unanswered under the REJECT policy
    """
    items = tuple(items)

    for item in items:
        if item.id in answers:
            _check_answer_value(item, answers[item.id])

    missing = [item.id for item in items if item.id not in answers]
    if missing:
        if missing_policy == MissingAnswerPolicy.REJECT:
            raise IncompleteAnswersError(missing)
        logger.warning(
            "[SDQ_SCORING] Unanswered items scored as 0",
            extra={"missing_ids": missing},
        )

    totals = {category: 0 for category in SdqCategory}
    for item in items:
        raw = answers.get(item.id, 0)
        totals[item.category] += reverse_score(raw) if item.reverse else raw

    category_scores = CategoryScores(
        **{category.value: total for category, total in totals.items()}
    )
    return derive_result(category_scores, thresholds)
