import os
import sys
import tempfile
import time
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from jose import jwt

backend_dir = Path(__file__).resolve().parents[1]
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

# A file database, so separate connections (and the concurrency tests) see
# each other's commits. Must be set before app.db.session builds the engine.
_db_dir = tempfile.mkdtemp(prefix="quizcore-tests-")
os.environ["DATABASE_URL"] = f"sqlite+pysqlite:///{_db_dir}/test.db"
os.environ["APP_ENV"] = "test"
os.environ["CORS_ALLOW_ORIGINS"] = "http://testserver"

from app.core.config import settings
from app.db import session as session_module
from app.db.base import Base
from app.domain.quiz.clock import FixedClock
from app.domain.quiz.exam_types import Category, Difficulty, ExamType
from app.main import create_app

# Import models so that they are registered in Base.metadata before create_all.
from app.models.quiz import Question, QuestionOption, QuestionStatus
from app.models.quiz_session import QuizSessionEvent, QuizSessionSnapshot  # noqa: F401
from app.models.user import User, UserRole


class _MemoryRedis:
    def __init__(self):
        self._data: dict[str, tuple[str, float | None]] = {}

    def ping(self):
        return True

    def _now(self) -> float:
        return time.time()

    def _get_entry(self, key: str):
        v = self._data.get(key)
        if not v:
            return None
        value, exp = v
        if exp is not None and exp <= self._now():
            self._data.pop(key, None)
            return None
        return value, exp

    def get(self, key: str):
        entry = self._get_entry(key)
        return entry[0] if entry else None

    def set(self, key: str, value: str, ex: int | None = None, nx: bool = False):
        if nx and self._get_entry(key) is not None:
            return None
        exp = (self._now() + int(ex)) if ex else None
        self._data[key] = (value, exp)
        return True

    def delete(self, key: str):
        self._data.pop(key, None)
        return 1

    def incr(self, key: str):
        cur = self.get(key)
        n = int(cur or 0) + 1
        _, exp = self._data.get(key, ("", None))
        self._data[key] = (str(n), exp)
        return n

    def expire(self, key: str, seconds: int):
        entry = self._get_entry(key)
        if not entry:
            return False
        value, _ = entry
        self._data[key] = (value, self._now() + int(seconds))
        return True

    def ttl(self, key: str):
        entry = self._get_entry(key)
        if not entry:
            return -2
        _, exp = entry
        if exp is None:
            return -1
        return max(0, int(exp - self._now()))

    def flushall(self):
        self._data.clear()


Base.metadata.create_all(bind=session_module.engine)


# Stub Redis at import time (rate limiting + scheduler locks).
_mem_redis = _MemoryRedis()
import app.core.redis_client as redis_client_module

redis_client_module.get_redis = lambda: _mem_redis

import app.core.rate_limit as rate_limit_module
rate_limit_module.get_redis = lambda: _mem_redis

import app.routers.health as health_router_module
health_router_module.get_redis = lambda: _mem_redis

import app.routers.quizzes as quizzes_router_module


T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _clean_state():
    yield
    _mem_redis.flushall()
    with session_module.engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture()
def redis_stub():
    return _mem_redis


@pytest.fixture()
def clock():
    return FixedClock(T0)


@pytest.fixture()
def app(clock):
    app = create_app()
    app.dependency_overrides[quizzes_router_module.get_clock] = lambda: clock
    return app


@pytest.fixture()
def client(app):
    return TestClient(app)


@pytest.fixture()
def db():
    with session_module.SessionLocal() as session:
        yield session


def _make_user(role: UserRole = UserRole.user) -> User:
    with session_module.SessionLocal() as s:
        u = User(name=f"test_{uuid.uuid4().hex[:8]}", role=role)
        s.add(u)
        s.commit()
        s.refresh(u)
        s.expunge(u)
        return u


@pytest.fixture()
def user():
    return _make_user(UserRole.user)


@pytest.fixture()
def other_user():
    return _make_user(UserRole.user)


@pytest.fixture()
def admin_user():
    return _make_user(UserRole.admin)


def create_access_token(*, user_id: str, role: str | None = None, minutes: int | None = None) -> str:
    """Mint a token the way the upstream auth service does."""
    now = datetime.now(timezone.utc)
    ttl = int(minutes if minutes is not None else settings.jwt_access_token_minutes)
    claims: dict[str, object] = {
        "sub": str(user_id),
        "iss": str(settings.jwt_issuer),
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=ttl)).timestamp()),
    }
    if role:
        claims["role"] = role
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def auth_headers(u: User) -> dict[str, str]:
    token = create_access_token(user_id=str(u.id), role=u.role.value)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def user_headers(user):
    return auth_headers(user)


@pytest.fixture()
def admin_headers(admin_user):
    return auth_headers(admin_user)


def seed_questions(
    count: int = 5,
    *,
    exam_type: ExamType = ExamType.CCNA,
    category: Category | None = Category.ROUTING,
    difficulty: Difficulty = Difficulty.INTERMEDIATE,
    status: QuestionStatus = QuestionStatus.active,
    correct_positions: tuple[int, ...] = (0,),
) -> list[dict]:
    """Insert `count` four-option questions.

    Returns plain dicts: {"id", "option_ids", "correct_ids"} with string ids.
    """
    out: list[dict] = []
    with session_module.SessionLocal() as s:
        for i in range(count):
            q = Question(
                exam_type=exam_type,
                category=category,
                difficulty=difficulty,
                status=status,
                text=f"Question {i + 1}",
                explanation=None,
            )
            q.options = [
                QuestionOption(position=p, text=f"Option {p + 1}", is_correct=p in correct_positions)
                for p in range(4)
            ]
            s.add(q)
            s.flush()
            out.append(
                {
                    "id": str(q.id),
                    "option_ids": [str(o.id) for o in q.options],
                    "correct_ids": [str(o.id) for o in q.options if o.is_correct],
                }
            )
        s.commit()
    return out


@pytest.fixture()
def questions():
    return seed_questions(5)
