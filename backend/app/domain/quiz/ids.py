from __future__ import annotations

import uuid
from dataclasses import dataclass


@dataclass(frozen=True)
class _Identifier:
    """Opaque string identifier.

    Dataclass equality compares the concrete class as well as the value, so a
    QuestionId never equals an OptionId wrapping the same string.
    """

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not self.value.strip():
            raise ValueError(f"{type(self).__name__} cannot be empty")

    @classmethod
    def generate(cls):
        return cls(str(uuid.uuid4()))

    @classmethod
    def of(cls, value: str):
        return cls(str(value))

    def equals(self, other: object) -> bool:
        return self == other

    def __str__(self) -> str:
        return self.value


class QuestionId(_Identifier):
    pass


class OptionId(_Identifier):
    pass


class UserId(_Identifier):
    pass


class QuizSessionId(_Identifier):
    pass


class AnswerId(_Identifier):
    pass
