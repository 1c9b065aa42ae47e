import json
import uuid
from datetime import datetime, timezone

import pytest

from app.domain.quiz.clock import FixedClock
from app.domain.quiz.config import QuizConfig
from app.domain.quiz.errors import EventMappingError
from app.domain.quiz.events import AnswerSubmittedPayload, QuizEventType, QuizStartedPayload
from app.domain.quiz.exam_types import ExamType
from app.domain.quiz.ids import OptionId, QuestionId, UserId
from app.domain.quiz.question_reference import QuestionReference
from app.domain.quiz.session import QuizSession
from app.models.quiz_session import QuizSessionEvent
from app.services.quiz_event_mapper import payload_to_json, to_domain_events, to_row


T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
USER = UserId.of(str(uuid.uuid4()))


def _session_with_answer() -> QuizSession:
    clock = FixedClock(T0)
    cfg = QuizConfig.create(exam_type=ExamType.CCNA, question_count=2).unwrap()
    qids = [QuestionId.of(str(uuid.uuid4())) for _ in range(2)]
    s = QuizSession.start_new(USER, cfg, qids, clock).unwrap()
    opt = OptionId.of(str(uuid.uuid4()))
    s.submit_answer(qids[0], [opt], QuestionReference(qids[0], [opt]), clock).unwrap()
    return s


def test_payloads_serialize_to_plain_json():
    s = _session_with_answer()
    for e in s.uncommitted_events:
        doc = payload_to_json(e)
        assert json.loads(json.dumps(doc)) == doc

    started = payload_to_json(s.uncommitted_events[0])
    assert started["user_id"] == str(USER)
    assert started["config_snapshot"]["exam_type"] == "CCNA"
    assert started["started_at"].startswith("2026-03-02T09:00:00")


def test_rows_map_back_to_equivalent_events():
    s = _session_with_answer()
    rows = [to_row(e) for e in s.uncommitted_events]
    assert [(r.version, r.event_sequence) for r in rows] == [(1, 1), (2, 1)]
    assert rows[1].event_type == "quiz.answer_submitted"

    events = to_domain_events(reversed(rows))
    assert [e.version for e in events] == [1, 2]

    started = events[0].payload
    assert isinstance(started, QuizStartedPayload)
    assert started.user_id == USER
    assert started.started_at == T0
    assert started.question_ids == s.uncommitted_events[0].payload.question_ids

    answered = events[1].payload
    assert isinstance(answered, AnswerSubmittedPayload)
    assert answered == s.uncommitted_events[1].payload


def _row(event_type: str, payload: dict, version: int = 1) -> QuizSessionEvent:
    return QuizSessionEvent(
        session_id=uuid.uuid4(),
        version=version,
        event_sequence=1,
        event_type=event_type,
        payload=payload,
        occurred_at=datetime(2026, 3, 2, 9, 0),
    )


def test_unknown_fields_are_ignored_and_naive_times_read_as_utc():
    row = _row("quiz.expired", {"expired_at": "2026-03-02T10:00:00", "reason": "sweep"})
    [e] = to_domain_events([row])
    assert e.event_type == QuizEventType.expired
    assert e.payload.expired_at == datetime(2026, 3, 2, 10, 0, tzinfo=timezone.utc)
    assert e.occurred_at.tzinfo is not None


def test_unknown_event_type_is_rejected():
    with pytest.raises(EventMappingError):
        to_domain_events([_row("quiz.paused", {})])


def test_invalid_payload_is_rejected():
    with pytest.raises(EventMappingError):
        to_domain_events([_row("quiz.completed", {"answered_count": 1})])

    with pytest.raises(EventMappingError):
        to_domain_events(
            [
                _row(
                    "quiz.started",
                    {"user_id": "u", "question_ids": [], "config_snapshot": {}, "started_at": "2026-03-02T09:00:00Z"},
                )
            ]
        )
