from __future__ import annotations

from datetime import datetime, timezone
import logging

from rq import get_current_job

from app.core.config import settings
from app.db.session import SessionLocal
from app.services.quiz_sessions import QuizSessionService


log = logging.getLogger(__name__)


def expire_quiz_sessions_job(*, limit: int | None = None) -> dict:
    """Expire IN_PROGRESS sessions whose deadline has passed.

    Safe to run repeatedly and concurrently: a session another writer got to
    first is counted as a conflict and left alone.
    """

    job = get_current_job()

    batch = int(limit if limit is not None else settings.quiz_expiry_sweep_batch_size)
    now = datetime.now(timezone.utc)

    with SessionLocal() as db:
        report = QuizSessionService(db).expire_due_sessions(now=now, limit=batch)

    out = {
        "ok": True,
        "now": now.isoformat(),
        "limit": batch,
        "scanned": report.scanned,
        "expired": report.expired,
        "conflicts": report.conflicts,
        "failed": report.failed,
    }

    if job is not None:
        meta = dict(job.meta or {})
        meta.update(out)
        job.meta = meta
        job.save_meta()

    log.info(
        "expire_quiz_sessions_job: limit=%s scanned=%s expired=%s conflicts=%s failed=%s",
        batch,
        report.scanned,
        report.expired,
        report.conflicts,
        report.failed,
    )

    return out
