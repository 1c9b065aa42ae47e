from __future__ import annotations

import abc
from datetime import datetime

from app.domain.quiz.ids import QuizSessionId, UserId
from app.domain.quiz.session import QuizSession


class QuizRepository(abc.ABC):
    @abc.abstractmethod
    def find_by_id(self, session_id: QuizSessionId) -> QuizSession | None:
        """Load the full event stream and replay it, or None if there is none."""

    @abc.abstractmethod
    def save(self, session: QuizSession) -> None:
        """Append uncommitted events atomically.

        Raises OptimisticLockError when another writer already appended at the
        same version; nothing from the batch is persisted in that case.
        """

    @abc.abstractmethod
    def find_expired_sessions(self, now: datetime, limit: int) -> list[QuizSession]:
        ...

    @abc.abstractmethod
    def find_active_by_user(self, user_id: UserId) -> QuizSession | None:
        ...
