"""
Pytest configuration and shared fixtures for testing.
"""
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import List, Optional, Sequence

import pytest
from sqlalchemy.orm import sessionmaker

from assessment.models import Base, build_engine
from assessment.models.models import QuestionType, Test
from assessment.schemas.tests import AnswerOptionCreate, QuestionCreate, TestCreate
from assessment.services import test_service

# Use SQLite for tests; path is relative to this file so the .db lands
# inside tests/ regardless of the working directory.
_TEST_DB = Path(__file__).parent / "test.db"
SQLALCHEMY_DATABASE_URL = f"sqlite:///{_TEST_DB}"

engine = build_engine(SQLALCHEMY_DATABASE_URL, echo=False)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Fixed clock used by lifecycle tests
FIXED_NOW = datetime(2026, 3, 2, 9, 0, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    """
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


class QuestionFactory:
    """Builders for valid QuestionCreate payloads of each type."""

    @staticmethod
    def multiple_choice(
        points: str = "2",
        correct: Sequence[int] = (0,),
        option_count: int = 4,
        allow_multiple: bool = False,
        text: str = "Which option is correct?",
    ) -> QuestionCreate:
        return QuestionCreate(
            text=text,
            question_type=QuestionType.MULTIPLE_CHOICE,
            points=Decimal(points),
            allow_multiple=allow_multiple,
            options=[
                AnswerOptionCreate(text=f"Option {i + 1}", is_correct=i in correct)
                for i in range(option_count)
            ],
        )

    @staticmethod
    def true_false(points: str = "1", correct: bool = True) -> QuestionCreate:
        return QuestionCreate(
            text="The earth orbits the sun.",
            question_type=QuestionType.TRUE_FALSE,
            points=Decimal(points),
            correct_answer_boolean=correct,
        )

    @staticmethod
    def short_answer(
        points: str = "1", answer: str = "paris", case_sensitive: bool = False
    ) -> QuestionCreate:
        return QuestionCreate(
            text="What is the capital of France?",
            question_type=QuestionType.SHORT_ANSWER,
            points=Decimal(points),
            correct_answer_text=answer,
            case_sensitive=case_sensitive,
        )

    @staticmethod
    def essay(points: str = "3", word_limit: Optional[int] = None) -> QuestionCreate:
        return QuestionCreate(
            text="Discuss the causes of the French Revolution.",
            question_type=QuestionType.ESSAY,
            points=Decimal(points),
            word_limit=word_limit,
        )


@pytest.fixture
def questions() -> QuestionFactory:
    return QuestionFactory()


@pytest.fixture
def make_test(db_session, now):
    """
    Factory fixture creating a test through the service layer.

    Published by default; pass ``publish=False`` for a draft.
    """

    def _create(
        question_data: Optional[List[QuestionCreate]] = None,
        publish: bool = True,
        **fields,
    ) -> Test:
        if question_data is None:
            question_data = [QuestionFactory.multiple_choice()]
        fields.setdefault("title", "Midterm Exam")
        test = test_service.create_test(
            db_session, TestCreate(questions=question_data, **fields)
        )
        if publish:
            test = test_service.publish_test(db_session, test, now=now)
        return test

    return _create
