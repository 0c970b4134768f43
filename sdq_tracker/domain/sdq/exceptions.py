"""SDQ screening errors.

Scoring errors are raised synchronously by the scoring engine; storage errors
are raised by the assessment record store with the failing operation attached.
"""


class SdqError(Exception):
    """Base error for the screening subsystem."""

    pass


class QuestionnaireConfigError(SdqError):
    """Questionnaire definition is malformed (fatal at load time)."""

    pass


class ValidationError(SdqError):
    """Malformed input. Recoverable by the caller re-prompting."""

    pass


class AnswerValidationError(ValidationError):
    """An answer value is outside the allowed response set."""

    def __init__(self, item_id: int, value: object) -> None:
        self.item_id = item_id
        self.value = value
        super().__init__(
            f"Item {item_id} has invalid answer {value!r}; expected one of 0, 1, 2"
        )


class AssessmentValidationError(ValidationError):
    """A required assessment field is missing or malformed."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(f"{field}: {message}")


class IncompleteAnswersError(SdqError):
    """The answer set does not cover every questionnaire item."""

    def __init__(self, missing_ids: list[int]) -> None:
        self.missing_ids = list(missing_ids)
        super().__init__(
            f"{len(self.missing_ids)} item(s) unanswered: "
            + ", ".join(str(item_id) for item_id in self.missing_ids)
        )


class InconsistentResultError(SdqError):
    """Derived fields do not match a recomputation from the category scores."""

    def __init__(self, mismatches: dict[str, tuple[object, object]]) -> None:
        self.mismatches = mismatches
        details = ", ".join(
            f"{name} (supplied={supplied!r}, expected={expected!r})"
            for name, (supplied, expected) in mismatches.items()
        )
        super().__init__(f"Scoring result is inconsistent: {details}")


class AssessmentNotFoundError(SdqError):
    """No assessment result exists with the given id."""

    def __init__(self, result_id: str) -> None:
        self.result_id = result_id
        super().__init__(f"Assessment result {result_id} not found")


class StorageUnavailableError(SdqError):
    """The persistence layer failed; the caller decides whether to retry."""

    def __init__(self, operation: str, cause: BaseException | None = None) -> None:
        self.operation = operation
        self.cause = cause
        message = f"Assessment storage unavailable during {operation}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class CorruptRecordError(SdqError):
    """A stored assessment result cannot be read back as a valid result."""

    def __init__(self, result_id: str, cause: BaseException | None = None) -> None:
        self.result_id = result_id
        self.cause = cause
        message = f"Assessment result {result_id} is unreadable"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)
