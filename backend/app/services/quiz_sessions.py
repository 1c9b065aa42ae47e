from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session

from app.core.config import settings
from app.domain.quiz.clock import Clock, FixedClock, SystemClock
from app.domain.quiz.config import QuizConfig
from app.domain.quiz.errors import OptimisticLockError, QuizRepositoryError
from app.domain.quiz.exam_types import Category, Difficulty, ExamType
from app.domain.quiz.ids import OptionId, QuestionId, QuizSessionId, UserId
from app.domain.quiz.session import QuizSession
from app.domain.quiz.state import QuizStatus
from app.services.progress import ProgressUpdate, apply_quiz_result, get_user, study_minutes_between
from app.services.question_catalog import QuestionCatalog
from app.services.quiz_repository import SqlAlchemyQuizRepository
from app.services.scoring import AnswerResult, ScoreSummary, build_answer_results, calculate_score_summary


log = logging.getLogger(__name__)


class QuizSessionError(Exception):
    code = "QUIZ_SESSION_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class SessionNotFoundError(QuizSessionError):
    code = "SESSION_NOT_FOUND"

    def __init__(self, session_id):
        super().__init__(f"Quiz session not found: {session_id}")


class SessionAccessDeniedError(QuizSessionError):
    code = "FORBIDDEN"

    def __init__(self):
        super().__init__("Session belongs to different user")


class UserNotFoundError(QuizSessionError):
    code = "USER_NOT_FOUND"

    def __init__(self, user_id):
        super().__init__(f"User not found: {user_id}")


class QuestionNotFoundError(QuizSessionError):
    code = "QUESTION_NOT_FOUND"

    def __init__(self, question_id):
        super().__init__(f"Question not found: {question_id}")


class InsufficientQuestionsError(QuizSessionError):
    code = "INSUFFICIENT_QUESTIONS"

    def __init__(self, requested: int, available: int):
        super().__init__(f"Not enough questions available: requested {requested}, found {available}")
        self.requested = requested
        self.available = available


class ActiveSessionError(QuizSessionError):
    code = "ACTIVE_SESSION_EXISTS"

    def __init__(self, session_id):
        super().__init__(f"An active quiz session already exists: {session_id}")
        self.session_id = str(session_id)


class QuizNotCompletedError(QuizSessionError):
    code = "QUIZ_NOT_COMPLETED"

    def __init__(self, session_id, status: QuizStatus):
        super().__init__(f"Quiz session {session_id} must be COMPLETED but is {status.value}")


@dataclass(frozen=True)
class CompletionSummary:
    final_score: int
    completed_at: datetime
    progress: ProgressUpdate


@dataclass(frozen=True)
class AnswerOutcome:
    session: QuizSession
    question_id: QuestionId
    completion: CompletionSummary | None


@dataclass(frozen=True)
class QuizResults:
    session: QuizSession
    score: ScoreSummary
    answers: list[AnswerResult]


@dataclass(frozen=True)
class SweepReport:
    scanned: int
    expired: int
    conflicts: int
    failed: int


class QuizSessionService:
    """Quiz session use cases on top of one SQLAlchemy session.

    Nothing here commits except `expire_due_sessions`, which commits per
    session; HTTP handlers commit once the use case returns.
    """

    def __init__(self, db: Session, *, clock: Clock | None = None):
        self.db = db
        self.clock = clock or SystemClock()
        self.sessions = SqlAlchemyQuizRepository(db)
        self.catalog = QuestionCatalog(db)

    def _load_owned(self, session_id: str, user_id: str) -> QuizSession:
        session = self.sessions.find_by_id(QuizSessionId.of(str(session_id)))
        if session is None:
            raise SessionNotFoundError(session_id)
        if session.user_id != UserId.of(str(user_id)):
            raise SessionAccessDeniedError()
        return session

    def start_quiz(
        self,
        *,
        user_id: str,
        exam_type: ExamType,
        question_count: int,
        category: Category | None = None,
        difficulty: Difficulty = Difficulty.MIXED,
        time_limit: int | None = None,
        enforce_sequential_answering: bool = False,
        require_all_answers: bool = False,
        auto_complete_when_all_answered: bool = True,
    ) -> QuizSession:
        created = QuizConfig.create(
            exam_type=exam_type,
            question_count=question_count,
            category=category,
            time_limit=time_limit,
            difficulty=difficulty,
            enforce_sequential_answering=enforce_sequential_answering,
            require_all_answers=require_all_answers,
            auto_complete_when_all_answered=auto_complete_when_all_answered,
            fallback_limit_seconds=int(settings.quiz_fallback_limit_seconds),
        )
        if not created.ok:
            raise created.error
        config = created.value

        uid = UserId.of(str(user_id))
        active = self.sessions.find_active_by_user(uid)
        if active is not None:
            # A lapsed session the sweep has not reached yet must not block a new one.
            if not active.check_and_expire(self.clock).unwrap():
                raise ActiveSessionError(active.id)
            self.sessions.save(active)
            log.info("expired lapsed session before start session_id=%s user_id=%s", active.id, uid)

        question_ids = self.catalog.select_question_ids(
            exam_type=config.exam_type,
            category=config.category,
            difficulty=config.difficulty,
            count=config.question_count,
        )
        if len(question_ids) < config.question_count:
            raise InsufficientQuestionsError(config.question_count, len(question_ids))

        started = QuizSession.start_new(uid, config, question_ids, self.clock)
        if not started.ok:
            raise started.error
        session = started.value

        self.sessions.save(session)
        log.info("quiz started session_id=%s user_id=%s questions=%s", session.id, uid, session.question_count)
        return session

    def submit_answer(
        self,
        *,
        session_id: str,
        user_id: str,
        question_id: str,
        selected_option_ids: Sequence[str],
    ) -> AnswerOutcome:
        session = self._load_owned(session_id, user_id)

        qid = QuestionId.of(str(question_id))
        reference = self.catalog.get_question_reference(qid)
        if reference is None:
            raise QuestionNotFoundError(qid)

        submitted = session.submit_answer(qid, [OptionId.of(str(o)) for o in selected_option_ids], reference, self.clock)
        if not submitted.ok:
            raise submitted.error

        self.sessions.save(session)

        completion = None
        if session.status == QuizStatus.COMPLETED:
            completion = self._record_completion(session)
        return AnswerOutcome(session=session, question_id=qid, completion=completion)

    def complete_quiz(self, *, session_id: str, user_id: str) -> tuple[QuizSession, CompletionSummary]:
        session = self._load_owned(session_id, user_id)

        completed = session.complete(self.clock)
        if not completed.ok:
            raise completed.error

        self.sessions.save(session)
        return session, self._record_completion(session)

    def get_results(self, *, session_id: str, user_id: str) -> QuizResults:
        session = self._load_owned(session_id, user_id)
        return self._score(session)

    def expire_session(self, *, session_id: str, user_id: str | None = None) -> QuizSession:
        if user_id is None:
            session = self.sessions.find_by_id(QuizSessionId.of(str(session_id)))
            if session is None:
                raise SessionNotFoundError(session_id)
        else:
            session = self._load_owned(session_id, user_id)

        expired = session.expire(self.clock)
        if not expired.ok:
            raise expired.error

        self.sessions.save(session)
        return session

    def expire_due_sessions(self, *, now: datetime | None = None, limit: int | None = None) -> SweepReport:
        at = now or self.clock.now()
        batch = int(limit if limit is not None else settings.quiz_expiry_sweep_batch_size)
        clock = FixedClock(at)

        due = self.sessions.find_expired_sessions(at, batch)
        expired = conflicts = failed = 0
        for session in due:
            if not session.check_and_expire(clock).unwrap():
                continue
            try:
                self.sessions.save(session)
                self.db.commit()
                expired += 1
            except OptimisticLockError:
                # Someone else moved this session on; the next sweep sees its new state.
                conflicts += 1
            except QuizRepositoryError:
                log.exception("failed to expire quiz session session_id=%s", session.id)
                failed += 1

        report = SweepReport(scanned=len(due), expired=expired, conflicts=conflicts, failed=failed)
        log.info(
            "quiz expiry sweep scanned=%s expired=%s conflicts=%s failed=%s",
            report.scanned,
            report.expired,
            report.conflicts,
            report.failed,
        )
        return report

    def _score(self, session: QuizSession) -> QuizResults:
        details = self.catalog.get_multiple_question_details(session.get_question_ids())
        answers, correct = build_answer_results(session, details)
        return QuizResults(session=session, score=calculate_score_summary(correct, session.question_count), answers=answers)

    def _record_completion(self, session: QuizSession) -> CompletionSummary:
        if session.status != QuizStatus.COMPLETED or session.completed_at is None:
            raise QuizNotCompletedError(session.id, session.status)

        user = get_user(self.db, session.user_id)
        if user is None:
            raise UserNotFoundError(session.user_id)

        results = self._score(session)
        progress = apply_quiz_result(
            user,
            correct_answers=results.score.correct_answers,
            total_questions=results.score.total_questions,
            study_minutes=study_minutes_between(session.started_at, session.completed_at),
            now=session.completed_at,
        )
        self.db.flush()
        log.info(
            "quiz completed session_id=%s user_id=%s score=%s xp_gained=%s",
            session.id,
            session.user_id,
            results.score.percentage,
            progress.experience_gained,
        )
        return CompletionSummary(final_score=results.score.percentage, completed_at=session.completed_at, progress=progress)
