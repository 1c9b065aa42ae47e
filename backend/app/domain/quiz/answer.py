from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from app.domain.quiz.errors import InvalidAnswerError
from app.domain.quiz.ids import AnswerId, OptionId, QuestionId
from app.domain.quiz.result import Err, Ok, Result


class Answer:
    __slots__ = ("_id", "_question_id", "_selected_option_ids", "_answered_at")

    def __init__(
        self,
        answer_id: AnswerId,
        question_id: QuestionId,
        selected_option_ids: Sequence[OptionId],
        answered_at: datetime,
    ):
        self._id = answer_id
        self._question_id = question_id
        self._selected_option_ids = tuple(selected_option_ids)
        self._answered_at = answered_at

    @classmethod
    def create(
        cls,
        question_id: QuestionId,
        selected_option_ids: Sequence[OptionId],
        answered_at: datetime,
    ) -> Result[Answer, InvalidAnswerError]:
        if len(selected_option_ids) == 0:
            return Err(InvalidAnswerError("Answer must include at least one option"))
        if len(set(selected_option_ids)) != len(selected_option_ids):
            return Err(InvalidAnswerError("Answer contains duplicate option selections"))
        return Ok(cls(AnswerId.generate(), question_id, selected_option_ids, answered_at))

    @classmethod
    def from_event_replay(
        cls,
        answer_id: AnswerId,
        question_id: QuestionId,
        selected_option_ids: Sequence[OptionId],
        answered_at: datetime,
    ) -> Answer:
        return cls(answer_id, question_id, selected_option_ids, answered_at)

    @property
    def id(self) -> AnswerId:
        return self._id

    @property
    def question_id(self) -> QuestionId:
        return self._question_id

    @property
    def selected_option_ids(self) -> tuple[OptionId, ...]:
        return self._selected_option_ids

    @property
    def answered_at(self) -> datetime:
        return self._answered_at

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Answer):
            return NotImplemented
        return self._id == other._id

    def __hash__(self) -> int:
        return hash(self._id)

    def __repr__(self) -> str:
        return f"Answer(id={self._id.value!r}, question_id={self._question_id.value!r})"
