"""Translation between domain events and `quiz_session_events` rows.

Payloads are validated with pydantic on the way back in. Unknown keys are
ignored and later additions must carry defaults, so rows written by older
releases keep replaying.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from app.domain.quiz.errors import EventMappingError
from app.domain.quiz.events import (
    AnswerSubmittedPayload,
    QuizCompletedPayload,
    QuizEvent,
    QuizEventType,
    QuizExpiredPayload,
    QuizStartedPayload,
)
from app.domain.quiz.ids import AnswerId, OptionId, QuestionId, QuizSessionId, UserId
from app.models.quiz_session import QuizSessionEvent


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class _PayloadModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class QuizStartedRecord(_PayloadModel):
    user_id: str
    question_ids: list[str] = Field(min_length=1)
    config_snapshot: dict[str, Any]
    started_at: datetime

    @field_validator("started_at")
    @classmethod
    def normalize_started_at(cls, v: datetime) -> datetime:
        return _utc(v)


class AnswerSubmittedRecord(_PayloadModel):
    answer_id: str
    question_id: str
    selected_option_ids: list[str]
    answered_at: datetime

    @field_validator("answered_at")
    @classmethod
    def normalize_answered_at(cls, v: datetime) -> datetime:
        return _utc(v)


class QuizCompletedRecord(_PayloadModel):
    answered_count: int = Field(ge=0)
    total_count: int = Field(gt=0)
    completed_at: datetime

    @field_validator("completed_at")
    @classmethod
    def normalize_completed_at(cls, v: datetime) -> datetime:
        return _utc(v)


class QuizExpiredRecord(_PayloadModel):
    expired_at: datetime

    @field_validator("expired_at")
    @classmethod
    def normalize_expired_at(cls, v: datetime) -> datetime:
        return _utc(v)


def _started(p: QuizStartedRecord) -> QuizStartedPayload:
    return QuizStartedPayload(
        user_id=UserId.of(p.user_id),
        question_ids=tuple(QuestionId.of(q) for q in p.question_ids),
        config_snapshot=dict(p.config_snapshot),
        started_at=p.started_at,
    )


def _answer(p: AnswerSubmittedRecord) -> AnswerSubmittedPayload:
    return AnswerSubmittedPayload(
        answer_id=AnswerId.of(p.answer_id),
        question_id=QuestionId.of(p.question_id),
        selected_option_ids=tuple(OptionId.of(o) for o in p.selected_option_ids),
        answered_at=p.answered_at,
    )


def _completed(p: QuizCompletedRecord) -> QuizCompletedPayload:
    return QuizCompletedPayload(answered_count=p.answered_count, total_count=p.total_count, completed_at=p.completed_at)


def _expired(p: QuizExpiredRecord) -> QuizExpiredPayload:
    return QuizExpiredPayload(expired_at=p.expired_at)


MAPPERS = {
    QuizEventType.started.value: (QuizStartedRecord, _started),
    QuizEventType.answer_submitted.value: (AnswerSubmittedRecord, _answer),
    QuizEventType.completed.value: (QuizCompletedRecord, _completed),
    QuizEventType.expired.value: (QuizExpiredRecord, _expired),
}


def payload_to_json(event: QuizEvent) -> dict[str, Any]:
    p = event.payload
    if isinstance(p, QuizStartedPayload):
        record: _PayloadModel = QuizStartedRecord(
            user_id=str(p.user_id),
            question_ids=[str(q) for q in p.question_ids],
            config_snapshot=dict(p.config_snapshot),
            started_at=p.started_at,
        )
    elif isinstance(p, AnswerSubmittedPayload):
        record = AnswerSubmittedRecord(
            answer_id=str(p.answer_id),
            question_id=str(p.question_id),
            selected_option_ids=[str(o) for o in p.selected_option_ids],
            answered_at=p.answered_at,
        )
    elif isinstance(p, QuizCompletedPayload):
        record = QuizCompletedRecord(answered_count=p.answered_count, total_count=p.total_count, completed_at=p.completed_at)
    elif isinstance(p, QuizExpiredPayload):
        record = QuizExpiredRecord(expired_at=p.expired_at)
    else:
        raise EventMappingError(f"unsupported payload type {type(p).__name__}")
    return record.model_dump(mode="json")


def to_row(event: QuizEvent) -> QuizSessionEvent:
    return QuizSessionEvent(
        session_id=uuid.UUID(str(event.aggregate_id)),
        version=int(event.version),
        event_sequence=int(event.event_sequence),
        event_type=QuizEventType(event.event_type).value,
        payload=payload_to_json(event),
        occurred_at=event.occurred_at,
    )


def to_domain_events(rows: Iterable[QuizSessionEvent]) -> list[QuizEvent]:
    events: list[QuizEvent] = []
    for row in rows:
        entry = MAPPERS.get(str(row.event_type))
        if entry is None:
            raise EventMappingError(f"QuizSession {row.session_id}: unsupported event type {row.event_type!r}")
        model, build = entry

        try:
            parsed = model.model_validate(row.payload or {})
        except ValidationError as e:
            raise EventMappingError(f"QuizSession {row.session_id}: invalid payload for {row.event_type!r}") from e

        events.append(
            QuizEvent(
                aggregate_id=QuizSessionId.of(str(row.session_id)),
                version=int(row.version),
                event_type=QuizEventType(row.event_type),
                payload=build(parsed),
                occurred_at=_utc(row.occurred_at),
                event_sequence=int(row.event_sequence),
            )
        )

    events.sort(key=lambda e: (e.version, e.event_sequence))
    return events
