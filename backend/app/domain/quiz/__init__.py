from app.domain.quiz.answer import Answer
from app.domain.quiz.clock import Clock, FixedClock, SystemClock
from app.domain.quiz.config import QuizConfig
from app.domain.quiz.exam_types import Category, Difficulty, ExamType
from app.domain.quiz.ids import AnswerId, OptionId, QuestionId, QuizSessionId, UserId
from app.domain.quiz.question_order import QuestionOrder
from app.domain.quiz.question_reference import QuestionReference
from app.domain.quiz.result import Err, Ok, Result
from app.domain.quiz.session import QuizSession
from app.domain.quiz.state import Completed, Expired, InProgress, QuizStatus

__all__ = [
    "Answer",
    "AnswerId",
    "Category",
    "Clock",
    "Completed",
    "Difficulty",
    "Err",
    "ExamType",
    "Expired",
    "FixedClock",
    "InProgress",
    "Ok",
    "OptionId",
    "QuestionId",
    "QuestionOrder",
    "QuestionReference",
    "QuizConfig",
    "QuizSession",
    "QuizSessionId",
    "QuizStatus",
    "Result",
    "SystemClock",
    "UserId",
]
