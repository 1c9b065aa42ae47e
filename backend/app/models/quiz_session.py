import uuid
from datetime import datetime

from sqlalchemy import JSON, CheckConstraint, DateTime, Enum, ForeignKey, Index, Integer, String, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.domain.quiz.state import QuizStatus

JsonDocument = JSON().with_variant(JSONB(), "postgresql")


class QuizSessionEvent(Base):
    """Append-only event stream; the composite key is the optimistic lock."""

    __tablename__ = "quiz_session_events"
    __table_args__ = (
        CheckConstraint("version > 0", name="ck_quiz_session_events_version_positive"),
        CheckConstraint("event_sequence > 0", name="ck_quiz_session_events_sequence_positive"),
        Index("ix_quiz_session_events_session_version", "session_id", "version"),
    )

    session_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True)
    version: Mapped[int] = mapped_column(Integer, primary_key=True)
    event_sequence: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)

    event_type: Mapped[str] = mapped_column(String(64), index=True)
    payload: Mapped[dict] = mapped_column(JsonDocument)
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)


class QuizSessionSnapshot(Base):
    """Read-side projection used by the expiry sweep and active-session lookup."""

    __tablename__ = "quiz_session_snapshots"
    __table_args__ = (
        Index(
            "ix_quiz_session_snapshots_active_owner",
            "owner_id",
            unique=True,
            postgresql_where=text("state = 'IN_PROGRESS'"),
            sqlite_where=text("state = 'IN_PROGRESS'"),
        ),
        Index("ix_quiz_session_snapshots_state_expires", "state", "expires_at"),
    )

    session_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True)
    owner_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"))

    state: Mapped[QuizStatus] = mapped_column(Enum(QuizStatus, name="quizstatus"), index=True)
    question_count: Mapped[int] = mapped_column(Integer)
    answered_count: Mapped[int] = mapped_column(Integer, default=0)

    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    version: Mapped[int] = mapped_column(Integer)
    config: Mapped[dict] = mapped_column(JsonDocument)
    question_order: Mapped[list] = mapped_column(JsonDocument)

    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
