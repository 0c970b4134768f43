"""SDQ scoring service - application layer."""

from sdq_tracker.core.config.settings import Settings, settings
from sdq_tracker.domain.sdq.models import (
    SDQ_ITEMS,
    AnswerSet,
    QuestionnaireItem,
    QuestionnaireProgress,
    SdqCategory,
    items_by_category,
    questionnaire_progress,
)
from sdq_tracker.domain.sdq.scoring import (
    InterpretationThresholds,
    MissingAnswerPolicy,
    ScoringResult,
    score,
)


def thresholds_from_settings(config: Settings = settings) -> InterpretationThresholds:
    """Interpretation thresholds configured for this deployment."""
    return InterpretationThresholds(
        borderline=config.sdq_borderline_threshold,
        clinical=config.sdq_clinical_threshold,
    )


class ScoringService:
    """Scores questionnaires with the configured thresholds and missing-answer policy."""

    def __init__(
        self,
        items: tuple[QuestionnaireItem, ...] = SDQ_ITEMS,
        config: Settings = settings,
    ) -> None:
        self.items = items
        self.thresholds = thresholds_from_settings(config)
        self.missing_policy = MissingAnswerPolicy(config.sdq_missing_answer_policy)

    def score(self, answers: AnswerSet) -> ScoringResult:
        """Score a complete answer set.

        Raises:
            AnswerValidationError: An answer is outside {0, 1, 2}
            IncompleteAnswersError: Items are unanswered and the policy rejects them
        """
        return score(
            answers,
            self.items,
            missing_policy=self.missing_policy,
            thresholds=self.thresholds,
        )

    def progress(self, answers: AnswerSet) -> QuestionnaireProgress:
        return questionnaire_progress(answers, self.items)

    def questionnaire(self) -> dict[SdqCategory, list[QuestionnaireItem]]:
        return items_by_category(self.items)
