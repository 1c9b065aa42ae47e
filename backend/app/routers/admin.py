from __future__ import annotations

from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.queue import fetch_job
from app.core.security import require_roles
from app.db.session import get_db
from app.models.quiz import Question, QuestionStatus
from app.models.user import User, UserRole
from app.schemas.admin import QuestionStats, QuizSessionStats, QuizStatsResponse, SystemInfo, UserStats
from app.services.quiz_repository import SqlAlchemyQuizRepository

router = APIRouter(prefix="/admin", tags=["admin"])

ACTIVE_USER_WINDOW_DAYS = 30


@router.get("/quiz-stats", response_model=QuizStatsResponse)
def quiz_stats(
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(UserRole.admin)),
):
    now = datetime.now(timezone.utc)
    since = now - timedelta(days=ACTIVE_USER_WINDOW_DAYS)

    total_users = int(db.scalar(select(func.count(User.id))) or 0)
    active_users = int(db.scalar(select(func.count(User.id)).where(User.last_activity_at >= since)) or 0)
    average_level = float(db.scalar(select(func.avg(User.level))) or 0.0)
    total_xp = int(db.scalar(select(func.coalesce(func.sum(User.xp), 0))) or 0)

    total_questions = int(db.scalar(select(func.count(Question.id))) or 0)
    pending_questions = int(
        db.scalar(select(func.count(Question.id)).where(Question.status == QuestionStatus.pending)) or 0
    )

    repo = SqlAlchemyQuizRepository(db)
    return QuizStatsResponse(
        users=UserStats(total=total_users, active=active_users, average_level=round(average_level, 2)),
        quizzes=QuizSessionStats(total=repo.count_total_sessions(), active_sessions=repo.count_active_sessions()),
        questions=QuestionStats(total=total_questions, pending=pending_questions),
        system=SystemInfo(total_experience=total_xp, timestamp=now),
    )


@router.get("/jobs/{job_id}")
def job_status(
    job_id: str,
    _: User = Depends(require_roles(UserRole.admin)),
):
    job = fetch_job(job_id)
    if job is None:
        return {
            "id": str(job_id),
            "status": "missing",
            "enqueued_at": None,
            "started_at": None,
            "ended_at": None,
            "meta": None,
            "result": None,
            "error": "job not found",
        }

    status = job.get_status(refresh=True)

    error_summary = None
    if status == "failed":
        latest = job.latest_result()
        if latest is not None and latest.exc_string:
            error_summary = latest.exc_string.strip().splitlines()[-1][:500]

    return {
        "id": job.id,
        "status": status,
        "enqueued_at": job.enqueued_at.isoformat() if job.enqueued_at else None,
        "started_at": job.started_at.isoformat() if job.started_at else None,
        "ended_at": job.ended_at.isoformat() if job.ended_at else None,
        "meta": dict(job.meta or {}),
        "result": job.return_value() if status == "finished" else None,
        "error": error_summary,
    }
