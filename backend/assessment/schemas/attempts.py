"""
Pydantic schemas for attempt results and review.
"""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from assessment.models.models import AttemptStatus, QuestionType
from assessment.schemas.responses import AnswerResponse


class AttemptSummary(BaseModel):
    """Score and lifecycle summary of an attempt."""

    id: int = Field(..., description="Attempt ID")
    test_id: int
    student_id: int
    attempt_number: int
    status: AttemptStatus
    started_at: datetime
    submitted_at: Optional[datetime] = None
    graded_at: Optional[datetime] = None
    duration_seconds: Optional[int] = None
    auto_graded_score: Decimal
    manual_graded_score: Decimal
    total_score: Decimal
    max_score: Decimal
    percentage: Optional[Decimal] = None
    passed: Optional[bool] = None
    letter_grade: Optional[str] = None
    numeric_grade: Optional[int] = None
    feedback: Optional[str] = None

    class Config:
        """Pydantic configuration."""

        from_attributes = True


class AttemptResult(AttemptSummary):
    """An attempt as listed in a test's results."""

    requires_manual_grading: bool = Field(
        ..., description="Whether an essay answer still waits for a grader"
    )


class OptionReview(BaseModel):
    """An answer option as shown in a review."""

    id: int
    text: str
    selected: bool = False
    is_correct: Optional[bool] = Field(
        None, description="Only revealed when the test shows correct answers"
    )


class StudentAnswerReview(BaseModel):
    """One question and the student's answer to it."""

    question_id: int
    question_text: str
    question_type: QuestionType
    response: Optional[AnswerResponse] = None
    options: List[OptionReview] = Field(default_factory=list)
    points_earned: Decimal
    points_possible: Decimal
    is_correct: Optional[bool] = None
    manually_graded: bool = False
    feedback: Optional[str] = None
    correct_answer_boolean: Optional[bool] = None
    correct_answer_text: Optional[str] = None
    explanation: Optional[str] = None


class AttemptReview(BaseModel):
    """Full review of a submitted attempt."""

    attempt: AttemptSummary
    answers: List[StudentAnswerReview]
    show_correct_answers: bool = False


class ManualGrade(BaseModel):
    """One grader decision inside a bulk grading request."""

    answer_id: int = Field(..., description="StudentAnswer ID")
    points_earned: Decimal = Field(..., description="Points awarded")
    feedback: Optional[str] = None
