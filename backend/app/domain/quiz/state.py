from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Union


class QuizStatus(str, enum.Enum):
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    EXPIRED = "EXPIRED"


@dataclass(frozen=True)
class InProgress:
    status = QuizStatus.IN_PROGRESS
    is_terminal = False


@dataclass(frozen=True)
class Completed:
    completed_at: datetime
    status = QuizStatus.COMPLETED
    is_terminal = True


@dataclass(frozen=True)
class Expired:
    expired_at: datetime
    status = QuizStatus.EXPIRED
    is_terminal = True


SessionState = Union[InProgress, Completed, Expired]
