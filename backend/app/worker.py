from __future__ import annotations

import logging
import os

import redis
from rq import Queue, Worker

from app.core.config import settings


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    conn = redis.Redis.from_url(settings.redis_url)
    raw = str(os.getenv("RQ_WORKER_QUEUES") or "").strip()
    if raw:
        names = [q.strip() for q in raw.split(",") if q.strip()]
    else:
        names = [str(settings.rq_queue_default)]

    worker = Worker([Queue(name, connection=conn) for name in names], connection=conn)
    worker.work()


if __name__ == "__main__":
    main()
