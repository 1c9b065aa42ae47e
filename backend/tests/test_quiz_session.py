from datetime import datetime, timedelta, timezone

import pytest

from app.domain.quiz.clock import FixedClock
from app.domain.quiz.config import QuizConfig
from app.domain.quiz.errors import (
    DuplicateQuestionError,
    IncompleteQuizError,
    InvalidAnswerError,
    InvalidOptionsError,
    InvalidQuestionReferenceError,
    OutOfOrderAnswerError,
    QuestionAlreadyAnsweredError,
    QuestionCountMismatchError,
    QuestionNotInQuizError,
    QuizExpiredError,
    QuizNotExpiredError,
    QuizNotInProgressError,
)
from app.domain.quiz.events import QuizEventType
from app.domain.quiz.exam_types import ExamType
from app.domain.quiz.ids import OptionId, QuestionId, UserId
from app.domain.quiz.question_reference import QuestionReference
from app.domain.quiz.session import QuizSession
from app.domain.quiz.state import Completed, Expired, InProgress, QuizStatus


T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
USER = UserId.of("5c3b5c0e-8a53-4a43-9a0e-2f1f0b0a0001")


def qid(i: int) -> QuestionId:
    return QuestionId.of(f"q{i}")


def ref(i: int) -> QuestionReference:
    return QuestionReference(qid(i), [OptionId.of(f"q{i}-a"), OptionId.of(f"q{i}-b"), OptionId.of(f"q{i}-c")])


def opt(i: int, letter: str = "a") -> list[OptionId]:
    return [OptionId.of(f"q{i}-{letter}")]


def start(clock, n: int = 3, **config) -> QuizSession:
    cfg = QuizConfig.create(exam_type=ExamType.CCNA, question_count=n, **config).unwrap()
    session = QuizSession.start_new(USER, cfg, [qid(i) for i in range(n)], clock).unwrap()
    return session


def answer(session: QuizSession, i: int, clock, letter: str = "a"):
    return session.submit_answer(qid(i), opt(i, letter), ref(i), clock)


@pytest.fixture()
def clock():
    return FixedClock(T0)


def test_start_records_started_event(clock):
    s = start(clock)

    assert s.status == QuizStatus.IN_PROGRESS
    assert isinstance(s.state, InProgress)
    assert s.version == 1
    assert s.started_at == T0
    assert s.get_question_ids() == [qid(0), qid(1), qid(2)]

    events = s.uncommitted_events
    assert len(events) == 1
    e = events[0]
    assert e.event_type == QuizEventType.started
    assert (e.version, e.event_sequence) == (1, 1)
    assert e.aggregate_id == s.id
    assert e.payload.user_id == USER
    assert e.payload.question_count == 3
    assert e.payload.config_snapshot["question_count"] == 3


def test_start_rejects_count_mismatch(clock):
    cfg = QuizConfig.create(exam_type=ExamType.CCNA, question_count=3).unwrap()
    r = QuizSession.start_new(USER, cfg, [qid(0), qid(1)], clock)
    assert isinstance(r.error, QuestionCountMismatchError)
    assert (r.error.expected, r.error.actual) == (3, 2)


def test_start_rejects_duplicate_questions(clock):
    cfg = QuizConfig.create(exam_type=ExamType.CCNA, question_count=2).unwrap()
    r = QuizSession.start_new(USER, cfg, [qid(0), qid(0)], clock)
    assert isinstance(r.error, DuplicateQuestionError)


def test_submit_answer_bumps_version_once(clock):
    s = start(clock)
    s.mark_changes_as_committed()

    clock.advance(seconds=30)
    assert answer(s, 1, clock).ok

    assert s.version == 2
    assert s.get_answered_question_count() == 1
    assert s.get_answer(qid(1)).answered_at == T0 + timedelta(seconds=30)
    [e] = s.uncommitted_events
    assert e.event_type == QuizEventType.answer_submitted
    assert (e.version, e.event_sequence) == (2, 1)


def test_answering_last_question_auto_completes_under_same_version(clock):
    s = start(clock)
    for i in range(3):
        assert answer(s, i, clock).ok

    assert s.status == QuizStatus.COMPLETED
    assert s.completed_at == T0
    assert s.version == 4

    last_two = s.uncommitted_events[-2:]
    assert [e.event_type for e in last_two] == [QuizEventType.answer_submitted, QuizEventType.completed]
    assert [(e.version, e.event_sequence) for e in last_two] == [(4, 1), (4, 2)]
    assert last_two[1].payload.answered_count == 3
    assert last_two[1].payload.total_count == 3


def test_no_auto_complete_when_disabled(clock):
    s = start(clock, auto_complete_when_all_answered=False)
    for i in range(3):
        assert answer(s, i, clock).ok
    assert s.status == QuizStatus.IN_PROGRESS


def test_require_all_answers_also_auto_completes(clock):
    s = start(clock, auto_complete_when_all_answered=False, require_all_answers=True)
    for i in range(3):
        assert answer(s, i, clock).ok
    assert s.status == QuizStatus.COMPLETED


def test_question_not_in_quiz(clock):
    s = start(clock)
    r = s.submit_answer(qid(9), opt(9), ref(9), clock)
    assert isinstance(r.error, QuestionNotInQuizError)


def test_duplicate_answer_rejected(clock):
    s = start(clock)
    assert answer(s, 0, clock).ok
    r = answer(s, 0, clock, "b")
    assert isinstance(r.error, QuestionAlreadyAnsweredError)
    assert s.get_answer(qid(0)).selected_option_ids == tuple(opt(0))


def test_sequential_answering_enforced(clock):
    s = start(clock, enforce_sequential_answering=True)
    r = answer(s, 1, clock)
    assert isinstance(r.error, OutOfOrderAnswerError)
    assert (r.error.expected_index, r.error.actual_index) == (0, 1)

    assert answer(s, 0, clock).ok
    assert answer(s, 1, clock).ok
    assert s.current_question_index == 2


def test_reference_for_another_question_rejected(clock):
    s = start(clock)
    r = s.submit_answer(qid(0), opt(0), ref(1), clock)
    assert isinstance(r.error, InvalidQuestionReferenceError)


def test_unknown_options_rejected(clock):
    s = start(clock)
    r = s.submit_answer(qid(0), [OptionId.of("q0-a"), OptionId.of("nope")], ref(0), clock)
    assert isinstance(r.error, InvalidOptionsError)
    assert r.error.invalid_options == ["nope"]
    assert s.get_answered_question_count() == 0


def test_empty_selection_rejected(clock):
    s = start(clock)
    r = s.submit_answer(qid(0), [], ref(0), clock)
    assert isinstance(r.error, InvalidAnswerError)


def test_failed_command_records_nothing(clock):
    s = start(clock)
    s.mark_changes_as_committed()
    answer(s, 9, clock)
    assert not s.has_uncommitted_events()
    assert s.version == 1


def test_answer_rejected_at_deadline(clock):
    s = start(clock, time_limit=600)
    assert s.expires_at == T0 + timedelta(seconds=600)

    clock.advance(seconds=599)
    assert answer(s, 0, clock).ok

    s.mark_changes_as_committed()
    version = s.version

    clock.advance(seconds=1)
    r = answer(s, 1, clock)
    assert isinstance(r.error, QuizExpiredError)
    # Still in progress until expire runs.
    assert s.status == QuizStatus.IN_PROGRESS
    assert s.version == version
    assert not s.has_uncommitted_events()

    assert s.expire(clock).ok
    r = answer(s, 1, clock)
    assert isinstance(r.error, QuizNotInProgressError)


def test_completion_time_never_precedes_start(clock):
    s = start(clock, n=1)
    clock.advance(seconds=-30)
    assert answer(s, 0, clock).ok

    assert s.status == QuizStatus.COMPLETED
    assert s.completed_at == s.started_at
    assert s.uncommitted_events[-1].payload.completed_at == s.started_at

    manual = start(FixedClock(T0), n=2)
    assert manual.complete(clock).ok
    assert manual.completed_at >= manual.started_at


def test_fallback_limit_applies_without_time_limit(clock):
    s = start(clock, fallback_limit_seconds=3600)
    assert s.expires_at == T0 + timedelta(hours=1)
    assert not s.is_expired(T0 + timedelta(minutes=59))
    assert s.is_expired(T0 + timedelta(hours=1))


def test_manual_complete(clock):
    s = start(clock)
    assert answer(s, 0, clock).ok
    clock.advance(minutes=5)

    assert s.complete(clock).ok
    assert isinstance(s.state, Completed)
    assert s.completed_at == T0 + timedelta(minutes=5)
    assert s.uncommitted_events[-1].event_type == QuizEventType.completed


def test_complete_requires_all_answers_when_configured(clock):
    s = start(clock, require_all_answers=True)
    assert answer(s, 0, clock).ok
    r = s.complete(clock)
    assert isinstance(r.error, IncompleteQuizError)
    assert r.error.unanswered_count == 2


def test_complete_after_deadline_fails(clock):
    s = start(clock, time_limit=60)
    clock.advance(seconds=61)
    assert isinstance(s.complete(clock).error, QuizExpiredError)


def test_terminal_session_rejects_commands(clock):
    s = start(clock, n=1)
    assert answer(s, 0, clock).ok
    assert s.status == QuizStatus.COMPLETED

    assert isinstance(s.complete(clock).error, QuizNotInProgressError)
    assert isinstance(s.expire(clock).error, QuizNotInProgressError)
    assert isinstance(answer(s, 0, clock).error, QuizNotInProgressError)


def test_expire_before_deadline_fails(clock):
    s = start(clock, time_limit=600)
    assert isinstance(s.expire(clock).error, QuizNotExpiredError)


def test_expire_after_deadline(clock):
    s = start(clock, time_limit=600)
    clock.advance(seconds=600)

    assert s.expire(clock).ok
    assert isinstance(s.state, Expired)
    assert s.expired_at == T0 + timedelta(seconds=600)
    assert s.completed_at is None
    assert s.uncommitted_events[-1].event_type == QuizEventType.expired


def test_check_and_expire(clock):
    s = start(clock, time_limit=600)
    assert s.check_and_expire(clock).unwrap() is False
    assert s.version == 1

    clock.advance(minutes=20)
    assert s.check_and_expire(clock).unwrap() is True
    assert s.status == QuizStatus.EXPIRED
    assert s.check_and_expire(clock).unwrap() is False
    assert s.version == 2


def test_answers_are_returned_as_copy(clock):
    s = start(clock)
    assert answer(s, 0, clock).ok
    answers = s.get_answers()
    answers.clear()
    assert s.get_answered_question_count() == 1


def test_event_ids_are_deterministic(clock):
    s = start(clock)
    e = s.uncommitted_events[0]
    assert e.event_id == s.uncommitted_events[0].event_id
    assert answer(s, 0, clock).ok
    assert s.uncommitted_events[1].event_id != e.event_id
