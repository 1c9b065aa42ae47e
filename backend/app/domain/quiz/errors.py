from __future__ import annotations

import enum


class QuizErrorCode(str, enum.Enum):
    quiz_not_in_progress = "QUIZ_NOT_IN_PROGRESS"
    quiz_expired = "QUIZ_EXPIRED"
    quiz_not_expired = "QUIZ_NOT_EXPIRED"

    question_not_in_quiz = "QUESTION_NOT_IN_QUIZ"
    question_already_answered = "QUESTION_ALREADY_ANSWERED"
    invalid_options = "INVALID_OPTIONS"
    invalid_answer = "INVALID_ANSWER"
    invalid_question_reference = "INVALID_QUESTION_REFERENCE"
    out_of_order_answer = "OUT_OF_ORDER_ANSWER"

    incomplete_quiz = "INCOMPLETE_QUIZ"

    invalid_question_count = "INVALID_QUESTION_COUNT"
    question_count_mismatch = "QUESTION_COUNT_MISMATCH"
    duplicate_question = "DUPLICATE_QUESTION"
    invalid_time_limit = "INVALID_TIME_LIMIT"


class QuizDomainError(Exception):
    code: QuizErrorCode

    def __init__(self, message: str, code: QuizErrorCode):
        super().__init__(message)
        self.message = message
        self.code = code


class InvalidQuestionCountError(QuizDomainError):
    def __init__(self, message: str | None = None):
        super().__init__(message or "Invalid question count", QuizErrorCode.invalid_question_count)


class InvalidTimeLimitError(QuizDomainError):
    def __init__(self, message: str | None = None):
        super().__init__(message or "Time limit must be at least 60 seconds", QuizErrorCode.invalid_time_limit)


class QuestionCountMismatchError(QuizDomainError):
    def __init__(self, expected: int, actual: int):
        super().__init__(
            f"Question count mismatch: expected {expected}, got {actual}",
            QuizErrorCode.question_count_mismatch,
        )
        self.expected = expected
        self.actual = actual


class DuplicateQuestionError(QuizDomainError):
    def __init__(self):
        super().__init__("Duplicate question detected", QuizErrorCode.duplicate_question)


class QuizNotInProgressError(QuizDomainError):
    def __init__(self):
        super().__init__("Quiz is not in progress", QuizErrorCode.quiz_not_in_progress)


class QuizExpiredError(QuizDomainError):
    def __init__(self):
        super().__init__("Quiz has expired", QuizErrorCode.quiz_expired)


class QuizNotExpiredError(QuizDomainError):
    def __init__(self):
        super().__init__("Quiz has not expired yet", QuizErrorCode.quiz_not_expired)


class QuestionNotInQuizError(QuizDomainError):
    def __init__(self, message: str | None = None):
        super().__init__(message or "Question is not part of this quiz", QuizErrorCode.question_not_in_quiz)


class QuestionAlreadyAnsweredError(QuizDomainError):
    def __init__(self):
        super().__init__("Question already answered", QuizErrorCode.question_already_answered)


class OutOfOrderAnswerError(QuizDomainError):
    def __init__(self, expected_index: int, actual_index: int):
        super().__init__(
            f"Expected question at index {expected_index}, got {actual_index}",
            QuizErrorCode.out_of_order_answer,
        )
        self.expected_index = expected_index
        self.actual_index = actual_index


class InvalidOptionsError(QuizDomainError):
    def __init__(self, invalid_options: list[str]):
        super().__init__(f"Invalid options: {', '.join(invalid_options)}", QuizErrorCode.invalid_options)
        self.invalid_options = list(invalid_options)


class InvalidAnswerError(QuizDomainError):
    def __init__(self, details: str):
        super().__init__(f"Invalid answer: {details}", QuizErrorCode.invalid_answer)


class InvalidQuestionReferenceError(QuizDomainError):
    def __init__(self):
        super().__init__(
            "Question reference does not match the question ID",
            QuizErrorCode.invalid_question_reference,
        )


class IncompleteQuizError(QuizDomainError):
    def __init__(self, unanswered_count: int):
        super().__init__(
            f"Cannot complete quiz with {unanswered_count} unanswered questions",
            QuizErrorCode.incomplete_quiz,
        )
        self.unanswered_count = unanswered_count


# Raised, never returned: corrupted data or concurrent writers.


class InvalidQuestionOrderError(ValueError):
    pass


class OptimisticLockError(Exception):
    pass


class ActiveSessionConflictError(Exception):
    pass


class EventMappingError(Exception):
    pass


class QuizRepositoryError(Exception):
    def __init__(self, operation: str, cause: str):
        super().__init__(f"Quiz repository {operation} failed: {cause}")
        self.operation = operation
