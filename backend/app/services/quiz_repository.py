from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.quiz.errors import ActiveSessionConflictError, OptimisticLockError, QuizRepositoryError
from app.domain.quiz.ids import QuizSessionId, UserId
from app.domain.quiz.repository import QuizRepository
from app.domain.quiz.session import QuizSession
from app.domain.quiz.state import QuizStatus
from app.models.quiz_session import QuizSessionEvent, QuizSessionSnapshot
from app.services.quiz_event_mapper import to_domain_events, to_row


log = logging.getLogger(__name__)


def _as_uuid(value) -> uuid.UUID | None:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class SqlAlchemyQuizRepository(QuizRepository):
    """Event-sourced QuizSession store.

    Writes append to `quiz_session_events` and refresh the session's row in
    `quiz_session_snapshots` inside the caller's transaction; committing is
    left to the caller. Reads always rebuild the aggregate from events, the
    snapshot table only narrows down which sessions to load.
    """

    def __init__(self, db: Session):
        self.db = db

    def find_by_id(self, session_id: QuizSessionId) -> QuizSession | None:
        sid = _as_uuid(session_id)
        if sid is None:
            return None

        rows = list(
            self.db.scalars(
                select(QuizSessionEvent)
                .where(QuizSessionEvent.session_id == sid)
                .order_by(QuizSessionEvent.version, QuizSessionEvent.event_sequence)
            )
        )
        if not rows:
            log.debug("quiz session not found session_id=%s", sid)
            return None

        session = QuizSession.create_for_replay(QuizSessionId.of(str(sid)))
        session.load_from_history(to_domain_events(rows))
        log.debug("quiz session loaded session_id=%s events=%s version=%s", sid, len(rows), session.version)
        return session

    def save(self, session: QuizSession) -> None:
        events = session.uncommitted_events
        if not events:
            log.debug("no events to persist session_id=%s", session.id)
            return

        sid = uuid.UUID(str(session.id))
        self.db.add_all([to_row(e) for e in events])
        try:
            self.db.flush()
        except IntegrityError as e:
            self.db.rollback()
            log.warning(
                "optimistic lock conflict session_id=%s versions=%s",
                sid,
                sorted({ev.version for ev in events}),
            )
            raise OptimisticLockError(
                f"Concurrent modification detected for session {sid}. Another writer already advanced it."
            ) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            log.error("failed to append quiz session events session_id=%s error=%s", sid, e)
            raise QuizRepositoryError("save", str(e)) from e

        self._write_snapshot(session)
        try:
            self.db.flush()
        except IntegrityError as e:
            self.db.rollback()
            log.warning("active session conflict owner_id=%s session_id=%s", session.user_id, sid)
            raise ActiveSessionConflictError(f"User {session.user_id} already has an active quiz session") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            log.error("failed to write quiz session snapshot session_id=%s error=%s", sid, e)
            raise QuizRepositoryError("save", str(e)) from e

        session.mark_changes_as_committed()
        log.info("quiz session saved session_id=%s events=%s version=%s", sid, len(events), session.version)

    def _write_snapshot(self, session: QuizSession) -> None:
        sid = uuid.UUID(str(session.id))
        snap = self.db.get(QuizSessionSnapshot, sid)
        if snap is None:
            snap = QuizSessionSnapshot(session_id=sid, owner_id=uuid.UUID(str(session.user_id)))
            self.db.add(snap)

        snap.state = session.status
        snap.question_count = session.question_count
        snap.answered_count = session.get_answered_question_count()
        snap.started_at = session.started_at
        snap.expires_at = session.expires_at
        snap.completed_at = session.completed_at or session.expired_at
        snap.version = session.version
        snap.config = session.config.to_dto()
        snap.question_order = [str(q) for q in session.get_question_ids()]
        snap.updated_at = datetime.now(timezone.utc)

    def find_expired_sessions(self, now: datetime, limit: int) -> list[QuizSession]:
        ids = list(
            self.db.scalars(
                select(QuizSessionSnapshot.session_id)
                .where(
                    QuizSessionSnapshot.state == QuizStatus.IN_PROGRESS,
                    QuizSessionSnapshot.expires_at <= now,
                )
                .order_by(QuizSessionSnapshot.expires_at)
                .limit(int(limit))
            )
        )

        sessions: list[QuizSession] = []
        for sid in ids:
            session = self.find_by_id(QuizSessionId.of(str(sid)))
            if session is not None:
                sessions.append(session)
        return sessions

    def find_active_by_user(self, user_id: UserId) -> QuizSession | None:
        uid = _as_uuid(user_id)
        if uid is None:
            return None

        sid = self.db.scalar(
            select(QuizSessionSnapshot.session_id)
            .where(
                QuizSessionSnapshot.owner_id == uid,
                QuizSessionSnapshot.state == QuizStatus.IN_PROGRESS,
            )
            .limit(1)
        )
        if sid is None:
            return None
        return self.find_by_id(QuizSessionId.of(str(sid)))

    def count_total_sessions(self) -> int:
        return int(self.db.scalar(select(func.count(func.distinct(QuizSessionEvent.session_id)))) or 0)

    def count_active_sessions(self) -> int:
        return int(
            self.db.scalar(
                select(func.count(QuizSessionSnapshot.session_id)).where(
                    QuizSessionSnapshot.state == QuizStatus.IN_PROGRESS
                )
            )
            or 0
        )
