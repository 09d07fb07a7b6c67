"""
Models package for the assessment engine.
"""
from .base import Base, engine, SessionLocal, get_db, build_engine
from .models import (
    Test,
    Question,
    AnswerOption,
    Attempt,
    StudentAnswer,
    QuestionType,
    AttemptStatus,
    AUTO_GRADABLE_TYPES,
    OPEN_STATUSES,
    WindowStatus,
)

__all__ = [
    "Base",
    "engine",
    "SessionLocal",
    "get_db",
    "build_engine",
    "Test",
    "Question",
    "AnswerOption",
    "Attempt",
    "StudentAnswer",
    "QuestionType",
    "AttemptStatus",
    "AUTO_GRADABLE_TYPES",
    "OPEN_STATUSES",
    "WindowStatus",
]
