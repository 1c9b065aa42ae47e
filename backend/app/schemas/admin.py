from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class UserStats(BaseModel):
    total: int
    active: int
    average_level: float


class QuizSessionStats(BaseModel):
    total: int
    active_sessions: int


class QuestionStats(BaseModel):
    total: int
    pending: int


class SystemInfo(BaseModel):
    total_experience: int
    timestamp: datetime


class QuizStatsResponse(BaseModel):
    users: UserStats
    quizzes: QuizSessionStats
    questions: QuestionStats
    system: SystemInfo
