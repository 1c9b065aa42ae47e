from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from app.domain.quiz.ids import OptionId, QuestionId


@dataclass(frozen=True)
class QuestionReference:
    """Valid option ids for one question, as supplied by the question catalog.

    Carries no correctness information; it only lets the session reject
    options that do not belong to the question.
    """

    id: QuestionId
    valid_option_ids: frozenset[OptionId]

    def __init__(self, id: QuestionId, valid_option_ids: Iterable[OptionId]):
        object.__setattr__(self, "id", id)
        object.__setattr__(self, "valid_option_ids", frozenset(valid_option_ids))

    def has_option(self, option_id: OptionId) -> bool:
        return option_id in self.valid_option_ids
