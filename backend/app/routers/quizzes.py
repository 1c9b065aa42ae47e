from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.rate_limit import rate_limit
from app.core.security import get_current_user
from app.db.session import get_db
from app.domain.quiz.clock import Clock, SystemClock
from app.domain.quiz.errors import ActiveSessionConflictError, OptimisticLockError, QuizDomainError, QuizErrorCode
from app.domain.quiz.session import QuizSession
from app.models.user import User
from app.schemas.quiz import (
    AnswerOptionOut,
    AnswerResultOut,
    ProgressUpdateOut,
    QuizAnswerRequest,
    QuizAnswerResponse,
    QuizCompleteResponse,
    QuizResultsResponse,
    QuizStartRequest,
    QuizStartResponse,
    ScoreSummaryOut,
)
from app.services.quiz_sessions import (
    ActiveSessionError,
    CompletionSummary,
    InsufficientQuestionsError,
    QuestionNotFoundError,
    QuizNotCompletedError,
    QuizSessionError,
    QuizSessionService,
    SessionAccessDeniedError,
    SessionNotFoundError,
    UserNotFoundError,
)

router = APIRouter(prefix="/quizzes", tags=["quizzes"])


_CONFLICT_CODES = {
    QuizErrorCode.quiz_not_in_progress,
    QuizErrorCode.quiz_expired,
    QuizErrorCode.quiz_not_expired,
    QuizErrorCode.question_already_answered,
    QuizErrorCode.out_of_order_answer,
    QuizErrorCode.incomplete_quiz,
}

_STATUS_BY_ERROR: dict[type[QuizSessionError], int] = {
    SessionNotFoundError: 404,
    QuestionNotFoundError: 404,
    UserNotFoundError: 404,
    SessionAccessDeniedError: 403,
    ActiveSessionError: 409,
    QuizNotCompletedError: 409,
    InsufficientQuestionsError: 422,
}


def get_clock() -> Clock:
    return SystemClock()


def _http_error(e: Exception) -> HTTPException:
    if isinstance(e, QuizDomainError):
        status = 409 if e.code in _CONFLICT_CODES else 422
        return HTTPException(status_code=status, detail={"error_code": e.code.value, "error_message": e.message})

    if isinstance(e, QuizSessionError):
        status = _STATUS_BY_ERROR.get(type(e), 400)
        return HTTPException(status_code=status, detail={"error_code": e.code, "error_message": e.message})

    if isinstance(e, OptimisticLockError):
        return HTTPException(
            status_code=409,
            detail={
                "error_code": "CONCURRENT_MODIFICATION",
                "error_message": "The quiz session was modified concurrently. Please retry.",
                "retryable": True,
            },
        )

    # ActiveSessionConflictError: lost the race on the one-active-session index.
    return HTTPException(
        status_code=409,
        detail={"error_code": ActiveSessionError.code, "error_message": "An active quiz session already exists"},
    )


def _progress_out(c: CompletionSummary | None) -> ProgressUpdateOut | None:
    if c is None:
        return None
    return ProgressUpdateOut(
        final_score=c.final_score,
        previous_level=c.progress.previous_level,
        new_level=c.progress.new_level,
        experience_gained=c.progress.experience_gained,
    )


def _start_response(session: QuizSession) -> QuizStartResponse:
    return QuizStartResponse(
        session_id=str(session.id),
        config=session.config.to_dto(),
        question_ids=[str(q) for q in session.get_question_ids()],
        started_at=session.started_at,
        expires_at=session.expires_at,
        state=session.status,
        current_question_index=session.current_question_index,
        total_questions=session.question_count,
    )


_HANDLED = (QuizDomainError, QuizSessionError, OptimisticLockError, ActiveSessionConflictError)


@router.post(
    "/start",
    response_model=QuizStartResponse,
    dependencies=[rate_limit(key_prefix="quiz_start", limit=10, window_seconds=60)],
)
def start_quiz(
    body: QuizStartRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    service = QuizSessionService(db, clock=clock)
    try:
        session = service.start_quiz(
            user_id=str(user.id),
            exam_type=body.exam_type,
            question_count=body.question_count,
            category=body.category,
            difficulty=body.difficulty,
            time_limit=body.time_limit,
            enforce_sequential_answering=body.enforce_sequential_answering,
            require_all_answers=body.require_all_answers,
            auto_complete_when_all_answered=body.auto_complete_when_all_answered,
        )
    except _HANDLED as e:
        raise _http_error(e) from e

    db.commit()
    return _start_response(session)


@router.post(
    "/{session_id}/answers",
    response_model=QuizAnswerResponse,
    dependencies=[rate_limit(key_prefix="quiz_answer", limit=120, window_seconds=60)],
)
def submit_answer(
    session_id: str,
    body: QuizAnswerRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    service = QuizSessionService(db, clock=clock)
    try:
        outcome = service.submit_answer(
            session_id=session_id,
            user_id=str(user.id),
            question_id=body.question_id,
            selected_option_ids=body.selected_option_ids,
        )
    except _HANDLED as e:
        raise _http_error(e) from e

    db.commit()

    session = outcome.session
    answer = session.get_answer(outcome.question_id)
    return QuizAnswerResponse(
        session_id=str(session.id),
        question_id=str(outcome.question_id),
        selected_option_ids=[str(o) for o in answer.selected_option_ids],
        submitted_at=answer.answered_at,
        state=session.status,
        auto_completed=outcome.completion is not None,
        current_question_index=session.current_question_index,
        total_questions=session.question_count,
        questions_answered=session.get_answered_question_count(),
        progress_update=_progress_out(outcome.completion),
    )


@router.post("/{session_id}/complete", response_model=QuizCompleteResponse)
def complete_quiz(
    session_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    service = QuizSessionService(db, clock=clock)
    try:
        session, completion = service.complete_quiz(session_id=session_id, user_id=str(user.id))
    except _HANDLED as e:
        raise _http_error(e) from e

    db.commit()
    return QuizCompleteResponse(
        session_id=str(session.id),
        final_score=completion.final_score,
        completed_at=completion.completed_at,
        progress_update=_progress_out(completion),
    )


@router.get("/{session_id}/results", response_model=QuizResultsResponse)
def get_results(
    session_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    service = QuizSessionService(db, clock=clock)
    try:
        results = service.get_results(session_id=session_id, user_id=str(user.id))
    except _HANDLED as e:
        raise _http_error(e) from e

    session = results.session
    score = results.score
    return QuizResultsResponse(
        session_id=str(session.id),
        state=session.status,
        started_at=session.started_at,
        completed_at=session.completed_at,
        expired_at=session.expired_at,
        config=session.config.to_dto(),
        score=ScoreSummaryOut(
            correct_answers=score.correct_answers,
            total_questions=score.total_questions,
            percentage=score.percentage,
            passed=score.passed,
            passing_percentage=score.passing_percentage,
        ),
        answers=[
            AnswerResultOut(
                question_id=str(a.question_id),
                question_text=a.question_text,
                selected_option_ids=[str(o) for o in a.selected_option_ids],
                correct_option_ids=[str(o) for o in a.correct_option_ids],
                is_correct=a.is_correct,
                submitted_at=a.submitted_at,
                options=[
                    AnswerOptionOut(id=str(o.id), text=o.text, is_correct=o.is_correct, was_selected=o.was_selected)
                    for o in a.options
                ],
            )
            for a in results.answers
        ],
    )
