from __future__ import annotations

import uuid
from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from app.domain.quiz.exam_types import Category, Difficulty, ExamType
from app.domain.quiz.ids import OptionId, QuestionId
from app.domain.quiz.question_reference import QuestionReference
from app.models.quiz import Question, QuestionStatus


@dataclass(frozen=True)
class OptionDetails:
    id: OptionId
    text: str
    is_correct: bool


@dataclass(frozen=True)
class QuestionDetails:
    id: QuestionId
    text: str
    explanation: str | None
    options: tuple[OptionDetails, ...]

    @property
    def correct_option_ids(self) -> list[OptionId]:
        return [o.id for o in self.options if o.is_correct]


def _as_uuid(value) -> uuid.UUID | None:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class QuestionCatalog:
    """Read side of the question bank used by quiz sessions.

    Only `active` questions are ever handed out or resolved.
    """

    def __init__(self, db: Session):
        self.db = db

    def select_question_ids(
        self,
        *,
        exam_type: ExamType,
        category: Category | None,
        difficulty: Difficulty,
        count: int,
    ) -> list[QuestionId]:
        stmt = select(Question.id).where(Question.status == QuestionStatus.active, Question.exam_type == exam_type)
        if category is not None:
            stmt = stmt.where(Question.category == category)
        if difficulty != Difficulty.MIXED:
            stmt = stmt.where(Question.difficulty == difficulty)

        ids = self.db.scalars(stmt.order_by(func.random()).limit(int(count))).all()
        return [QuestionId.of(str(i)) for i in ids]

    def get_question_reference(self, question_id: QuestionId) -> QuestionReference | None:
        qid = _as_uuid(question_id)
        if qid is None:
            return None

        q = self.db.scalar(
            select(Question)
            .options(selectinload(Question.options))
            .where(Question.id == qid, Question.status == QuestionStatus.active)
        )
        if q is None:
            return None
        return QuestionReference(question_id, [OptionId.of(str(o.id)) for o in q.options])

    def get_multiple_question_details(self, question_ids: Sequence[QuestionId]) -> dict[QuestionId, QuestionDetails]:
        # Archived questions still resolve here so finished sessions keep their results.
        uuids = [u for u in (_as_uuid(q) for q in question_ids) if u is not None]
        if not uuids:
            return {}

        rows = self.db.scalars(select(Question).options(selectinload(Question.options)).where(Question.id.in_(uuids))).all()

        out: dict[QuestionId, QuestionDetails] = {}
        for q in rows:
            qid = QuestionId.of(str(q.id))
            out[qid] = QuestionDetails(
                id=qid,
                text=q.text,
                explanation=q.explanation,
                options=tuple(OptionDetails(id=OptionId.of(str(o.id)), text=o.text, is_correct=bool(o.is_correct)) for o in q.options),
            )
        return out
