from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta

from app.domain.quiz.aggregate_root import AggregateRoot
from app.domain.quiz.answer import Answer
from app.domain.quiz.clock import Clock
from app.domain.quiz.config import MAX_QUESTION_COUNT, QuizConfig
from app.domain.quiz.errors import (
    DuplicateQuestionError,
    IncompleteQuizError,
    InvalidOptionsError,
    InvalidQuestionCountError,
    InvalidQuestionReferenceError,
    OutOfOrderAnswerError,
    QuestionAlreadyAnsweredError,
    QuestionCountMismatchError,
    QuestionNotInQuizError,
    QuizDomainError,
    QuizExpiredError,
    QuizNotExpiredError,
    QuizNotInProgressError,
)
from app.domain.quiz.events import (
    AnswerSubmittedPayload,
    QuizCompletedPayload,
    QuizEvent,
    QuizEventType,
    QuizExpiredPayload,
    QuizStartedPayload,
)
from app.domain.quiz.ids import OptionId, QuestionId, QuizSessionId, UserId
from app.domain.quiz.question_order import QuestionOrder
from app.domain.quiz.question_reference import QuestionReference
from app.domain.quiz.result import Err, Ok, Result
from app.domain.quiz.state import Completed, Expired, InProgress, QuizStatus, SessionState


class QuizSession(AggregateRoot):
    """Quiz session lifecycle: InProgress -> Completed | Expired.

    Commands return a Result and never raise for business-rule violations.
    State is only ever changed through commands (which record events) or
    through `_apply` during replay.
    """

    def __init__(
        self,
        session_id: QuizSessionId,
        user_id: UserId,
        config: QuizConfig,
        question_order: QuestionOrder,
        started_at: datetime,
    ):
        super().__init__()
        self._id = session_id
        self._user_id = user_id
        self._config = config
        self._question_order = question_order
        self._answers: dict[QuestionId, Answer] = {}
        self._started_at = started_at
        self._state: SessionState = InProgress()

    @classmethod
    def create_for_replay(cls, session_id: QuizSessionId) -> QuizSession:
        # Everything except the id is rebuilt by load_from_history().
        instance = cls.__new__(cls)
        AggregateRoot.__init__(instance)
        instance._id = session_id
        instance._answers = {}
        instance._state = InProgress()
        return instance

    @classmethod
    def start_new(
        cls,
        user_id: UserId,
        config: QuizConfig,
        question_ids: Sequence[QuestionId],
        clock: Clock,
    ) -> Result[QuizSession, QuizDomainError]:
        if len(question_ids) != config.question_count:
            return Err(QuestionCountMismatchError(config.question_count, len(question_ids)))

        if len(set(question_ids)) != len(question_ids):
            return Err(DuplicateQuestionError())

        if len(question_ids) > MAX_QUESTION_COUNT:
            return Err(InvalidQuestionCountError(f"Question count exceeds maximum limit of {MAX_QUESTION_COUNT}"))

        now = clock.now()
        session = cls(QuizSessionId.generate(), user_id, config, QuestionOrder.create(question_ids), now)

        version = session._increment_version()
        session._add_event(
            QuizEvent(
                aggregate_id=session.id,
                version=version,
                event_type=QuizEventType.started,
                payload=QuizStartedPayload(
                    user_id=user_id,
                    question_ids=tuple(question_ids),
                    config_snapshot=config.to_dto(),
                    started_at=now,
                ),
                occurred_at=now,
            )
        )
        return Ok(session)

    # -- commands ---------------------------------------------------------

    def submit_answer(
        self,
        question_id: QuestionId,
        selected_option_ids: Sequence[OptionId],
        question_reference: QuestionReference,
        clock: Clock,
    ) -> Result[None, QuizDomainError]:
        if not isinstance(self._state, InProgress):
            return Err(QuizNotInProgressError())

        now = clock.now()
        if self.is_expired(now):
            return Err(QuizExpiredError())

        if not self._question_order.has(question_id):
            return Err(QuestionNotInQuizError())

        if question_id in self._answers:
            return Err(QuestionAlreadyAnsweredError())

        if self._config.enforce_sequential_answering:
            expected_index = self._first_unanswered_index()
            actual_index = self._question_order.get_index(question_id)
            if actual_index != expected_index:
                return Err(OutOfOrderAnswerError(expected_index, actual_index))

        if question_reference.id != question_id:
            return Err(InvalidQuestionReferenceError())

        invalid = [str(oid) for oid in selected_option_ids if not question_reference.has_option(oid)]
        if invalid:
            return Err(InvalidOptionsError(invalid))

        created = Answer.create(question_id, selected_option_ids, now)
        if not created.ok:
            return Err(created.error)
        answer = created.value
        self._answers[question_id] = answer

        # One version covers the answer and any completion it triggers.
        version = self._increment_version()
        self._add_event(
            QuizEvent(
                aggregate_id=self._id,
                version=version,
                event_type=QuizEventType.answer_submitted,
                payload=AnswerSubmittedPayload(
                    answer_id=answer.id,
                    question_id=question_id,
                    selected_option_ids=answer.selected_option_ids,
                    answered_at=now,
                ),
                occurred_at=now,
            )
        )

        if self._should_auto_complete():
            completed_at = self._not_before_start(now)
            self._state = Completed(completed_at=completed_at)
            self._add_event(self._completed_event(version, completed_at))

        return Ok()

    def complete(self, clock: Clock) -> Result[None, QuizDomainError]:
        if not isinstance(self._state, InProgress):
            return Err(QuizNotInProgressError())

        now = clock.now()
        if self.is_expired(now):
            return Err(QuizExpiredError())

        if self._config.require_all_answers:
            unanswered = self._question_order.size - len(self._answers)
            if unanswered > 0:
                return Err(IncompleteQuizError(unanswered))

        completed_at = self._not_before_start(now)
        self._state = Completed(completed_at=completed_at)
        version = self._increment_version()
        self._add_event(self._completed_event(version, completed_at))
        return Ok()

    def expire(self, clock: Clock) -> Result[None, QuizDomainError]:
        if not isinstance(self._state, InProgress):
            return Err(QuizNotInProgressError())

        now = clock.now()
        if not self.is_expired(now):
            return Err(QuizNotExpiredError())

        self._perform_expiration(now)
        return Ok()

    def check_and_expire(self, clock: Clock) -> Result[bool, QuizDomainError]:
        """Expire if due. Terminal sessions are left untouched and report False."""
        if not isinstance(self._state, InProgress):
            return Ok(False)

        now = clock.now()
        if not self.is_expired(now):
            return Ok(False)

        self._perform_expiration(now)
        return Ok(True)

    # -- queries ------------------------------------------------------------

    @property
    def id(self) -> QuizSessionId:
        return self._id

    @property
    def user_id(self) -> UserId:
        return self._user_id

    @property
    def config(self) -> QuizConfig:
        return self._config

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def status(self) -> QuizStatus:
        return self._state.status

    @property
    def started_at(self) -> datetime:
        return self._started_at

    @property
    def completed_at(self) -> datetime | None:
        if isinstance(self._state, Completed):
            return self._state.completed_at
        return None

    @property
    def expired_at(self) -> datetime | None:
        if isinstance(self._state, Expired):
            return self._state.expired_at
        return None

    @property
    def expires_at(self) -> datetime:
        return self._started_at + timedelta(seconds=self._config.effective_limit_seconds)

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def get_question_ids(self) -> list[QuestionId]:
        return self._question_order.get_all_ids()

    def get_question_index(self, question_id: QuestionId) -> int:
        return self._question_order.get_index(question_id)

    def get_answers(self) -> dict[QuestionId, Answer]:
        return dict(self._answers)

    def get_answer(self, question_id: QuestionId) -> Answer | None:
        return self._answers.get(question_id)

    def get_answered_question_count(self) -> int:
        return len(self._answers)

    @property
    def current_question_index(self) -> int:
        index = self._first_unanswered_index()
        return self._question_order.size if index < 0 else index

    @property
    def question_count(self) -> int:
        return self._question_order.size

    # -- internals ----------------------------------------------------------

    def _first_unanswered_index(self) -> int:
        for index, qid in enumerate(self._question_order.get_all_ids()):
            if qid not in self._answers:
                return index
        return -1

    def _should_auto_complete(self) -> bool:
        if len(self._answers) != self._question_order.size:
            return False
        return self._config.auto_complete_when_all_answered or self._config.require_all_answers

    def _completed_event(self, version: int, now: datetime) -> QuizEvent:
        return QuizEvent(
            aggregate_id=self._id,
            version=version,
            event_type=QuizEventType.completed,
            payload=QuizCompletedPayload(
                answered_count=len(self._answers),
                total_count=self._question_order.size,
                completed_at=now,
            ),
            occurred_at=now,
        )

    def _not_before_start(self, now: datetime) -> datetime:
        # Terminal timestamps never precede started_at, even under clock skew.
        return max(now, self._started_at)

    def _perform_expiration(self, now: datetime) -> None:
        now = self._not_before_start(now)
        self._state = Expired(expired_at=now)
        version = self._increment_version()
        self._add_event(
            QuizEvent(
                aggregate_id=self._id,
                version=version,
                event_type=QuizEventType.expired,
                payload=QuizExpiredPayload(expired_at=now),
                occurred_at=now,
            )
        )

    def _apply(self, event: QuizEvent) -> None:
        # Replay trusts history: no business rule is re-checked here.
        payload = event.payload
        if isinstance(payload, QuizStartedPayload):
            self._user_id = payload.user_id
            self._question_order = QuestionOrder.from_persistence(payload.question_ids)
            self._config = QuizConfig.from_dto(payload.config_snapshot)
            self._started_at = payload.started_at
            self._state = InProgress()
        elif isinstance(payload, AnswerSubmittedPayload):
            self._answers[payload.question_id] = Answer.from_event_replay(
                payload.answer_id,
                payload.question_id,
                payload.selected_option_ids,
                payload.answered_at,
            )
        elif isinstance(payload, QuizCompletedPayload):
            self._state = Completed(completed_at=payload.completed_at)
        elif isinstance(payload, QuizExpiredPayload):
            self._state = Expired(expired_at=payload.expired_at)
        else:
            raise TypeError(f"unsupported event payload: {type(payload).__name__}")
