from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Union

from app.domain.quiz.ids import AnswerId, OptionId, QuestionId, QuizSessionId, UserId


class QuizEventType(str, enum.Enum):
    started = "quiz.started"
    answer_submitted = "quiz.answer_submitted"
    completed = "quiz.completed"
    expired = "quiz.expired"


# Payloads are the permanent source of truth. New fields must be optional so
# older rows keep replaying.


@dataclass(frozen=True)
class QuizStartedPayload:
    user_id: UserId
    question_ids: tuple[QuestionId, ...]
    config_snapshot: dict[str, Any]
    started_at: datetime

    @property
    def question_count(self) -> int:
        return len(self.question_ids)


@dataclass(frozen=True)
class AnswerSubmittedPayload:
    answer_id: AnswerId
    question_id: QuestionId
    selected_option_ids: tuple[OptionId, ...]
    answered_at: datetime


@dataclass(frozen=True)
class QuizCompletedPayload:
    answered_count: int
    total_count: int
    completed_at: datetime


@dataclass(frozen=True)
class QuizExpiredPayload:
    expired_at: datetime


QuizEventPayload = Union[QuizStartedPayload, AnswerSubmittedPayload, QuizCompletedPayload, QuizExpiredPayload]

PAYLOAD_TYPES: dict[QuizEventType, type] = {
    QuizEventType.started: QuizStartedPayload,
    QuizEventType.answer_submitted: AnswerSubmittedPayload,
    QuizEventType.completed: QuizCompletedPayload,
    QuizEventType.expired: QuizExpiredPayload,
}

EVENT_ID_NAMESPACE = uuid.UUID("4b8f1d23-2196-4f1c-8ff0-03162b57c824")


def deterministic_event_id(session_id: QuizSessionId, version: int, event_sequence: int) -> str:
    return str(uuid.uuid5(EVENT_ID_NAMESPACE, f"{session_id}:{version}:{event_sequence}"))


@dataclass(frozen=True)
class QuizEvent:
    aggregate_id: QuizSessionId
    version: int
    event_type: QuizEventType
    payload: QuizEventPayload
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    event_sequence: int = 1

    def __post_init__(self) -> None:
        expected = PAYLOAD_TYPES[QuizEventType(self.event_type)]
        if not isinstance(self.payload, expected):
            raise TypeError(f"{self.event_type} expects {expected.__name__}, got {type(self.payload).__name__}")
        if self.version < 1:
            raise ValueError("event version must be positive")
        if self.event_sequence < 1:
            raise ValueError("event sequence must be positive")

    @property
    def event_id(self) -> str:
        return deterministic_event_id(self.aggregate_id, self.version, self.event_sequence)
