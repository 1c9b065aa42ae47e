import enum
import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.domain.quiz.exam_types import Category, Difficulty, ExamType


class QuestionStatus(str, enum.Enum):
    active = "active"
    pending = "pending"
    archived = "archived"


class Question(Base):
    __tablename__ = "questions"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    exam_type: Mapped[ExamType] = mapped_column(Enum(ExamType, name="examtype"), index=True)
    category: Mapped[Category | None] = mapped_column(Enum(Category, name="questioncategory"), nullable=True, index=True)
    difficulty: Mapped[Difficulty] = mapped_column(Enum(Difficulty, name="difficulty"), default=Difficulty.INTERMEDIATE)
    status: Mapped[QuestionStatus] = mapped_column(
        Enum(QuestionStatus, name="questionstatus"), default=QuestionStatus.active, index=True
    )

    text: Mapped[str] = mapped_column(String, default="")
    explanation: Mapped[str | None] = mapped_column(String, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)

    options: Mapped[list["QuestionOption"]] = relationship(
        back_populates="question",
        order_by="QuestionOption.position",
        cascade="all, delete-orphan",
    )


class QuestionOption(Base):
    __tablename__ = "question_options"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    question_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("questions.id"), index=True)

    position: Mapped[int] = mapped_column(Integer, default=0)
    text: Mapped[str] = mapped_column(String(500), default="")
    is_correct: Mapped[bool] = mapped_column(Boolean, default=False)

    question: Mapped[Question] = relationship(back_populates="options")
