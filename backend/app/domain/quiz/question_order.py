from __future__ import annotations

from collections.abc import Iterable

from app.domain.quiz.errors import InvalidQuestionOrderError
from app.domain.quiz.ids import QuestionId


class QuestionOrder:
    """Ordered, duplicate-free question ids with O(1) membership and position lookup."""

    __slots__ = ("_ids", "_index")

    def __init__(self, question_ids: tuple[QuestionId, ...]):
        self._ids = question_ids
        self._index = {qid: i for i, qid in enumerate(question_ids)}

    @staticmethod
    def _validated(question_ids: Iterable[QuestionId]) -> tuple[QuestionId, ...]:
        ids = tuple(question_ids)
        if not ids:
            raise InvalidQuestionOrderError("Question order cannot be empty")
        if len(set(ids)) != len(ids):
            raise InvalidQuestionOrderError("Question order contains duplicate IDs")
        return ids

    @classmethod
    def create(cls, question_ids: Iterable[QuestionId]) -> QuestionOrder:
        return cls(cls._validated(question_ids))

    @classmethod
    def from_persistence(cls, question_ids: Iterable[QuestionId]) -> QuestionOrder:
        # Same checks as create(): a violation here means the stored stream is corrupt.
        return cls(cls._validated(question_ids))

    def has(self, question_id: QuestionId) -> bool:
        return question_id in self._index

    def get_index(self, question_id: QuestionId) -> int:
        return self._index.get(question_id, -1)

    def get_all_ids(self) -> list[QuestionId]:
        return list(self._ids)

    def to_persistence(self) -> list[str]:
        return [str(qid) for qid in self._ids]

    @property
    def size(self) -> int:
        return len(self._ids)

    def __len__(self) -> int:
        return len(self._ids)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, QuestionOrder):
            return NotImplemented
        return self._ids == other._ids

    def __hash__(self) -> int:
        return hash(self._ids)

    def __repr__(self) -> str:
        return f"QuestionOrder({[str(q) for q in self._ids]!r})"
