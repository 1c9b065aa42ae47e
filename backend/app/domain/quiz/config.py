from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from app.domain.quiz.errors import InvalidQuestionCountError, InvalidTimeLimitError, QuizDomainError
from app.domain.quiz.exam_types import Category, Difficulty, ExamType
from app.domain.quiz.result import Err, Ok, Result

MIN_QUESTION_COUNT = 1
MAX_QUESTION_COUNT = 100
MIN_TIME_LIMIT_SECONDS = 60
DEFAULT_FALLBACK_LIMIT_SECONDS = 4 * 60 * 60


@dataclass(frozen=True)
class QuizConfig:
    exam_type: ExamType
    category: Category | None
    question_count: int
    time_limit: int | None  # seconds
    difficulty: Difficulty
    enforce_sequential_answering: bool
    require_all_answers: bool
    auto_complete_when_all_answered: bool
    fallback_limit_seconds: int

    @classmethod
    def create(
        cls,
        *,
        exam_type: ExamType,
        question_count: int,
        category: Category | None = None,
        time_limit: int | None = None,
        difficulty: Difficulty = Difficulty.MIXED,
        enforce_sequential_answering: bool = False,
        require_all_answers: bool = False,
        auto_complete_when_all_answered: bool = True,
        fallback_limit_seconds: int | None = None,
    ) -> Result[QuizConfig, QuizDomainError]:
        if question_count < MIN_QUESTION_COUNT or question_count > MAX_QUESTION_COUNT:
            return Err(
                InvalidQuestionCountError(
                    f"Question count must be between {MIN_QUESTION_COUNT} and {MAX_QUESTION_COUNT}"
                )
            )

        if time_limit is not None and time_limit < MIN_TIME_LIMIT_SECONDS:
            return Err(InvalidTimeLimitError())

        fallback = DEFAULT_FALLBACK_LIMIT_SECONDS if fallback_limit_seconds is None else fallback_limit_seconds
        if fallback < MIN_TIME_LIMIT_SECONDS:
            return Err(InvalidTimeLimitError("Fallback limit must be at least 60 seconds"))

        return Ok(
            cls(
                exam_type=ExamType(exam_type),
                category=Category(category) if category is not None else None,
                question_count=int(question_count),
                time_limit=int(time_limit) if time_limit is not None else None,
                difficulty=Difficulty(difficulty),
                enforce_sequential_answering=bool(enforce_sequential_answering),
                require_all_answers=bool(require_all_answers),
                auto_complete_when_all_answered=bool(auto_complete_when_all_answered),
                fallback_limit_seconds=int(fallback),
            )
        )

    @property
    def effective_limit_seconds(self) -> int:
        return self.time_limit if self.time_limit else self.fallback_limit_seconds

    def to_dto(self) -> dict[str, Any]:
        return {
            "exam_type": self.exam_type.value,
            "category": self.category.value if self.category is not None else None,
            "question_count": self.question_count,
            "time_limit": self.time_limit,
            "difficulty": self.difficulty.value,
            "enforce_sequential_answering": self.enforce_sequential_answering,
            "require_all_answers": self.require_all_answers,
            "auto_complete_when_all_answered": self.auto_complete_when_all_answered,
            "fallback_limit_seconds": self.fallback_limit_seconds,
        }

    @classmethod
    def from_dto(cls, dto: dict[str, Any]) -> QuizConfig:
        # Trusted persisted data: no bounds checks. Flags missing from older
        # snapshots fall back to the defaults they had when they were written.
        category = dto.get("category")
        return cls(
            exam_type=ExamType(dto["exam_type"]),
            category=Category(category) if category else None,
            question_count=int(dto["question_count"]),
            time_limit=dto.get("time_limit"),
            difficulty=Difficulty(dto.get("difficulty") or Difficulty.MIXED.value),
            enforce_sequential_answering=bool(dto.get("enforce_sequential_answering", False)),
            require_all_answers=bool(dto.get("require_all_answers", False)),
            auto_complete_when_all_answered=bool(dto.get("auto_complete_when_all_answered", True)),
            fallback_limit_seconds=int(dto.get("fallback_limit_seconds") or DEFAULT_FALLBACK_LIMIT_SECONDS),
        )
