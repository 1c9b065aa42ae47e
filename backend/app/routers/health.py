import hmac

from fastapi import APIRouter, HTTPException, Request
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings
from app.core.queue import get_queue
from app.core.redis_client import get_redis
from app.db import session as db_session
from app.services.quiz_expiry_jobs import expire_quiz_sessions_job

router = APIRouter(tags=["health"])

EXPIRY_SWEEP_LOCK_KEY = "locks:quiz_expiry_sweep"


def _require_cron_secret(request: Request) -> None:
    secret = str(settings.cron_secret or "").strip()
    if not secret:
        raise HTTPException(status_code=404, detail="not found")

    provided = str(request.headers.get("x-cron-secret") or "").strip()
    if not provided or not hmac.compare_digest(provided, secret):
        raise HTTPException(status_code=403, detail="forbidden")


def enqueue_expiry_sweep() -> dict:
    """Enqueue one sweep unless another was enqueued within the interval."""
    interval_seconds = max(60, int(settings.quiz_expiry_sweep_interval_minutes) * 60)
    lock_ttl = max(60, interval_seconds - 5)

    r = get_redis()
    acquired = r.set(EXPIRY_SWEEP_LOCK_KEY, "1", nx=True, ex=int(lock_ttl))
    if not acquired:
        return {"ok": True, "enqueued": False, "reason": "locked"}

    q = get_queue(str(settings.rq_queue_default))
    job = q.enqueue(
        expire_quiz_sessions_job,
        limit=int(settings.quiz_expiry_sweep_batch_size),
        job_timeout=60 * 10,
        result_ttl=60 * 60,
        failure_ttl=60 * 60,
    )
    return {"ok": True, "enqueued": True, "job_id": str(job.id)}


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/health/live")
def live():
    return {"status": "live"}


@router.get("/health/ready")
def ready():
    try:
        with db_session.SessionLocal() as db:
            db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        raise HTTPException(status_code=503, detail="db not ready") from e

    try:
        get_redis().ping()
    except RedisError as e:
        raise HTTPException(status_code=503, detail="redis not ready") from e

    return {"status": "ready"}


@router.post("/health/cron/expire-sessions")
def cron_expire_sessions(request: Request):
    _require_cron_secret(request)
    return enqueue_expiry_sweep()
