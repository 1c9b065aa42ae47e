from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any

from pydantic import BaseModel, Field

from app.domain.quiz.exam_types import Category, Difficulty, ExamType
from app.domain.quiz.state import QuizStatus


class QuizStartRequest(BaseModel):
    exam_type: ExamType
    category: Category | None = None
    question_count: int
    time_limit: int | None = None  # seconds
    difficulty: Difficulty = Difficulty.MIXED
    enforce_sequential_answering: bool = False
    require_all_answers: bool = False
    auto_complete_when_all_answered: bool = True


class QuizStartResponse(BaseModel):
    session_id: str
    config: dict[str, Any]
    question_ids: list[str]
    started_at: datetime
    expires_at: datetime
    state: QuizStatus
    current_question_index: int
    total_questions: int


class QuizAnswerRequest(BaseModel):
    question_id: str = Field(min_length=1)
    selected_option_ids: list[Annotated[str, Field(min_length=1)]]


class ProgressUpdateOut(BaseModel):
    final_score: int
    previous_level: int
    new_level: int
    experience_gained: int


class QuizAnswerResponse(BaseModel):
    session_id: str
    question_id: str
    selected_option_ids: list[str]
    submitted_at: datetime
    state: QuizStatus
    auto_completed: bool
    current_question_index: int
    total_questions: int
    questions_answered: int
    progress_update: ProgressUpdateOut | None = None


class QuizCompleteResponse(BaseModel):
    session_id: str
    final_score: int
    completed_at: datetime
    progress_update: ProgressUpdateOut


class AnswerOptionOut(BaseModel):
    id: str
    text: str
    is_correct: bool
    was_selected: bool


class AnswerResultOut(BaseModel):
    question_id: str
    question_text: str
    selected_option_ids: list[str]
    correct_option_ids: list[str]
    is_correct: bool
    submitted_at: datetime
    options: list[AnswerOptionOut]


class ScoreSummaryOut(BaseModel):
    correct_answers: int
    total_questions: int
    percentage: int
    passed: bool | None = None
    passing_percentage: int | None = None


class QuizResultsResponse(BaseModel):
    session_id: str
    state: QuizStatus
    started_at: datetime
    completed_at: datetime | None
    expired_at: datetime | None
    config: dict[str, Any]
    score: ScoreSummaryOut
    answers: list[AnswerResultOut]
    can_view_results: bool = True
