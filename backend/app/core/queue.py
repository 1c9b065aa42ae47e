from __future__ import annotations

import redis
from rq import Queue
from rq.exceptions import NoSuchJobError
from rq.job import Job

from app.core.config import settings


def _connection() -> redis.Redis:
    return redis.Redis.from_url(settings.redis_url)


def get_queue(name: str | None = None) -> Queue:
    eff = str(name or "").strip() or str(settings.rq_queue_default)
    return Queue(name=eff, connection=_connection())


def fetch_job(job_id: str) -> Job | None:
    try:
        return Job.fetch(job_id, connection=_connection())
    except NoSuchJobError:
        return None
