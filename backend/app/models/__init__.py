from app.models.user import User, UserRole
from app.models.quiz import Question, QuestionOption, QuestionStatus
from app.models.quiz_session import QuizSessionEvent, QuizSessionSnapshot

__all__ = [
    "User",
    "UserRole",
    "Question",
    "QuestionOption",
    "QuestionStatus",
    "QuizSessionEvent",
    "QuizSessionSnapshot",
]
