"""SDQ questionnaire domain models.

Defines the 25-item Strengths and Difficulties Questionnaire, its five
categories, and the answer scale used by parents filling it in.
"""

from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Any

import pydantic
from pydantic import BaseModel, ConfigDict, Field

from sdq_tracker.domain.sdq.exceptions import QuestionnaireConfigError


class SdqCategory(str, Enum):
    """SDQ scale categories."""

    EMOTIONAL = "emotional"
    CONDUCT = "conduct"
    HYPERACTIVITY = "hyperactivity"
    PEER = "peer"
    PROSOCIAL = "prosocial"


# Prosocial measures strength and never contributes to total difficulty.
DIFFICULTY_CATEGORIES: tuple[SdqCategory, ...] = (
    SdqCategory.EMOTIONAL,
    SdqCategory.CONDUCT,
    SdqCategory.HYPERACTIVITY,
    SdqCategory.PEER,
)

CATEGORY_LABELS: dict[SdqCategory, str] = {
    SdqCategory.EMOTIONAL: "Emotional Symptoms",
    SdqCategory.CONDUCT: "Conduct Problems",
    SdqCategory.HYPERACTIVITY: "Hyperactivity/Inattention",
    SdqCategory.PEER: "Peer Relationship Issues",
    SdqCategory.PROSOCIAL: "Prosocial Behavior",
}

ANSWER_LABELS: dict[int, str] = {
    0: "Not True",
    1: "Somewhat True",
    2: "Certainly True",
}

ITEMS_PER_CATEGORY = 5

AnswerSet = Mapping[int, int]


class QuestionnaireItem(BaseModel):
    """A single immutable questionnaire item."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., ge=1, description="Unique item id")
    text: str = Field(..., min_length=1, description="Prompt shown to the parent")
    category: SdqCategory = Field(..., description="Scale the item contributes to")
    reverse: bool = Field(default=False, description="Positively phrased, reverse-scored")


class QuestionnaireProgress(BaseModel):
    """How far a parent has got through the questionnaire."""

    answered: int = Field(..., ge=0)
    total: int = Field(..., ge=0)
    completed_categories: list[SdqCategory] = Field(default_factory=list)

    @property
    def remaining(self) -> int:
        return self.total - self.answered

    @property
    def is_complete(self) -> bool:
        return self.answered == self.total


def load_questionnaire(
    definitions: Iterable[QuestionnaireItem | Mapping[str, Any]],
) -> tuple[QuestionnaireItem, ...]:
    """Build and validate a questionnaire definition.

    Args:
        definitions: Items or raw item mappings

    Returns:
        Immutable tuple of validated items

    Raises:
        QuestionnaireConfigError: Unknown category tag, duplicate item id,
            or a category without exactly five items
    """
    items: list[QuestionnaireItem] = []
    for definition in definitions:
        if isinstance(definition, QuestionnaireItem):
            items.append(definition)
            continue
        try:
            items.append(QuestionnaireItem.model_validate(definition))
        except pydantic.ValidationError as e:
            raise QuestionnaireConfigError(
                f"Invalid questionnaire item {dict(definition)!r}: {e}"
            ) from e

    seen: set[int] = set()
    for item in items:
        if item.id in seen:
            raise QuestionnaireConfigError(f"Duplicate questionnaire item id {item.id}")
        seen.add(item.id)

    for category in SdqCategory:
        count = sum(1 for item in items if item.category == category)
        if count != ITEMS_PER_CATEGORY:
            raise QuestionnaireConfigError(
                f"Category '{category.value}' has {count} items, "
                f"expected {ITEMS_PER_CATEGORY}"
            )

    return tuple(items)


def items_by_category(
    items: Iterable[QuestionnaireItem],
) -> dict[SdqCategory, list[QuestionnaireItem]]:
    """Group items by category, in category order."""
    groups: dict[SdqCategory, list[QuestionnaireItem]] = {c: [] for c in SdqCategory}
    for item in items:
        groups[item.category].append(item)
    return groups


def questionnaire_progress(
    answers: AnswerSet,
    items: Iterable[QuestionnaireItem],
) -> QuestionnaireProgress:
    """Count answered items and fully answered categories.

    Answers for ids outside the questionnaire are not counted.
    """
    items = tuple(items)
    answered = sum(1 for item in items if item.id in answers)
    completed = [
        category
        for category, group in items_by_category(items).items()
        if group and all(item.id in answers for item in group)
    ]
    return QuestionnaireProgress(
        answered=answered,
        total=len(items),
        completed_categories=completed,
    )


SDQ_ITEMS: tuple[QuestionnaireItem, ...] = load_questionnaire(
    [
        {"id": 1, "text": "My child is generally considerate of other people's feelings", "category": "prosocial"},
        {"id": 2, "text": "My child is often restless and finds it hard to sit still for long", "category": "hyperactivity"},
        {"id": 3, "text": "My child frequently mentions headaches, stomach aches or feeling sick", "category": "emotional"},
        {"id": 4, "text": "My child likes to share with others (toys, snacks, etc.)", "category": "prosocial"},
        {"id": 5, "text": "My child tends to lose their temper easily", "category": "conduct"},
        {"id": 6, "text": "My child often prefers to play alone or keep to themselves", "category": "peer"},
        {"id": 7, "text": "My child usually follows instructions and does what is requested", "category": "conduct", "reverse": True},
        {"id": 8, "text": "My child seems to have many worries or often appears anxious", "category": "emotional"},
        {"id": 9, "text": "My child is quick to help if someone else is hurt or upset", "category": "prosocial"},
        {"id": 10, "text": "My child is constantly fidgeting or squirming", "category": "hyperactivity"},
        {"id": 11, "text": "My child has at least one good friend they connect with", "category": "peer", "reverse": True},
        {"id": 12, "text": "My child often gets into arguments or fights with other children", "category": "conduct"},
        {"id": 13, "text": "My child often seems unhappy, downhearted, or tearful", "category": "emotional"},
        {"id": 14, "text": "Other children generally like and enjoy being with my child", "category": "peer", "reverse": True},
        {"id": 15, "text": "My child is easily distracted and finds it hard to stay focused", "category": "hyperactivity"},
        {"id": 16, "text": "My child is nervous in new situations or easily loses confidence", "category": "emotional"},
        {"id": 17, "text": "My child is kind and gentle with younger children", "category": "prosocial"},
        {"id": 18, "text": "My child sometimes struggles with being honest or tries to cheat", "category": "conduct"},
        {"id": 19, "text": "My child is sometimes picked on or treated unkindly by others", "category": "peer"},
        {"id": 20, "text": "My child frequently offers to help out at home or school", "category": "prosocial"},
        {"id": 21, "text": "My child usually thinks things through before acting", "category": "hyperactivity", "reverse": True},
        {"id": 22, "text": "My child sometimes takes things that don't belong to them", "category": "conduct"},
        {"id": 23, "text": "My child gets along better with adults than with other children", "category": "peer"},
        {"id": 24, "text": "My child has many fears and is easily frightened", "category": "emotional"},
        {"id": 25, "text": "My child finishes what they start and has a good attention span", "category": "hyperactivity", "reverse": True},
    ]
)
