from app.routers import admin, health, quizzes

__all__ = [
    "admin",
    "health",
    "quizzes",
]
