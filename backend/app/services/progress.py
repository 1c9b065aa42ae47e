from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Session

from app.models.user import User

XP_PER_CORRECT_ANSWER = 10


@dataclass(frozen=True)
class ProgressUpdate:
    previous_level: int
    new_level: int
    experience_gained: int


def _recompute_level(xp: int) -> int:
    if xp < 0:
        xp = 0
    return (xp // 100) + 1


def _as_uuid(value) -> uuid.UUID | None:
    if value is None:
        return None
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def _apply_streak_on_activity(user: User, *, now: datetime) -> None:
    last_ts = user.last_activity_at
    if last_ts is None:
        user.streak = 1
        user.last_activity_at = now
        return

    # SQLite hands datetimes back naive; everything is stored as UTC.
    if last_ts.tzinfo is None:
        last_ts = last_ts.replace(tzinfo=timezone.utc)

    last_day = last_ts.astimezone(timezone.utc).date()
    today = now.astimezone(timezone.utc).date()
    if last_day == today:
        user.streak = max(1, int(user.streak or 0))
    elif last_day == (today - timedelta(days=1)):
        user.streak = int(user.streak or 0) + 1
    else:
        user.streak = 1
    user.last_activity_at = now


def get_user(db: Session, user_id) -> User | None:
    uid = _as_uuid(user_id)
    if uid is None:
        return None
    return db.get(User, uid)


def apply_quiz_result(
    user: User,
    *,
    correct_answers: int,
    total_questions: int,
    study_minutes: int,
    now: datetime,
) -> ProgressUpdate:
    previous_level = int(user.level or 1)
    correct = min(max(0, int(correct_answers)), max(0, int(total_questions)))
    gained = correct * XP_PER_CORRECT_ANSWER

    user.xp = int(user.xp or 0) + gained
    user.level = _recompute_level(int(user.xp or 0))
    user.quizzes_completed = int(user.quizzes_completed or 0) + 1
    user.study_minutes = int(user.study_minutes or 0) + max(0, int(study_minutes))
    _apply_streak_on_activity(user, now=now)

    return ProgressUpdate(previous_level=previous_level, new_level=int(user.level), experience_gained=gained)


def study_minutes_between(started_at: datetime, finished_at: datetime | None) -> int:
    if finished_at is None:
        return 0
    seconds = (finished_at - started_at).total_seconds()
    if seconds <= 0:
        return 0
    return int(-(-seconds // 60))
