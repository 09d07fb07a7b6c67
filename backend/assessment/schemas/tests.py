"""
Pydantic schemas for test and question management.
"""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Self, Sequence

from pydantic import BaseModel, Field, field_validator, model_validator

from assessment.core.config import settings
from assessment.models.models import QuestionType


def _validate_non_empty(v: Optional[str], field_name: str) -> Optional[str]:
    if v is not None and not v.strip():
        raise ValueError(f"{field_name} cannot be empty")
    return v


def correctness_shape_error(
    question_type: QuestionType,
    *,
    allow_multiple: bool,
    option_flags: Sequence[bool],
    correct_answer_boolean: Optional[bool],
    correct_answer_text: Optional[str],
    word_limit: Optional[int],
) -> Optional[str]:
    """
    Check that a question's correctness configuration matches its type.

    Shared by question creation and every later edit of a question or its
    options.

    Args:
        question_type: The question's type
        allow_multiple: Whether several options may be correct
        option_flags: ``is_correct`` of each active option
        correct_answer_boolean: Expected true/false answer
        correct_answer_text: Expected short answer
        word_limit: Essay word limit

    Returns:
        Why the configuration is invalid, or None when it is valid
    """
    if question_type != QuestionType.MULTIPLE_CHOICE:
        if option_flags:
            return f"{question_type.value} questions cannot have answer options"
        if allow_multiple:
            return "allow_multiple applies to multiple_choice only"
    if question_type != QuestionType.TRUE_FALSE and correct_answer_boolean is not None:
        return "correct_answer_boolean applies to true_false only"
    if question_type != QuestionType.SHORT_ANSWER and correct_answer_text is not None:
        return "correct_answer_text applies to short_answer only"
    if question_type != QuestionType.ESSAY and word_limit is not None:
        return "word_limit applies to essay only"

    if question_type == QuestionType.MULTIPLE_CHOICE:
        if len(option_flags) < 2:
            return "multiple_choice questions need at least two options"
        correct = sum(1 for flag in option_flags if flag)
        if correct == 0:
            return "multiple_choice questions need a correct option"
        if not allow_multiple and correct > 1:
            return "single-select questions need exactly one correct option"
    elif question_type == QuestionType.TRUE_FALSE:
        if correct_answer_boolean is None:
            return "true_false questions need correct_answer_boolean"
    elif question_type == QuestionType.SHORT_ANSWER:
        if correct_answer_text is None or not correct_answer_text.strip():
            return "short_answer questions need correct_answer_text"
    return None



class AnswerOptionCreate(BaseModel):
    """Schema for a new multiple-choice answer option."""

    text: str = Field(..., description="Option text")
    is_correct: bool = Field(False, description="Whether selecting it is correct")
    position: Optional[int] = Field(
        None, ge=0, description="Display position (defaults to list order)"
    )

    @field_validator("text")
    @classmethod
    def validate_text(cls, v: str) -> str:
        return _validate_non_empty(v, "Option text")


class AnswerOptionUpdate(BaseModel):
    """Schema for editing an answer option. Unset fields are left unchanged."""

    text: Optional[str] = None
    is_correct: Optional[bool] = None
    position: Optional[int] = Field(None, ge=0)

    @field_validator("text")
    @classmethod
    def validate_text(cls, v: Optional[str]) -> Optional[str]:
        return _validate_non_empty(v, "Option text")


class QuestionCreate(BaseModel):
    """
    Schema for a new question.

    Exactly one correctness shape must be populated, matching the type:
    options for multiple_choice, correct_answer_boolean for true_false,
    correct_answer_text for short_answer, and none for essay.
    """

    text: str = Field(..., description="Question text")
    question_type: QuestionType = Field(..., description="Question type")
    points: Decimal = Field(Decimal("1"), ge=0, description="Points for a correct answer")
    position: Optional[int] = Field(
        None, ge=0, description="Display position (defaults to the end)"
    )
    is_required: bool = True
    explanation: Optional[str] = None

    allow_multiple: bool = False
    options: List[AnswerOptionCreate] = Field(default_factory=list)
    correct_answer_boolean: Optional[bool] = None
    correct_answer_text: Optional[str] = None
    case_sensitive: bool = False
    word_limit: Optional[int] = Field(None, gt=0)

    @field_validator("text")
    @classmethod
    def validate_text(cls, v: str) -> str:
        return _validate_non_empty(v, "Question text")

    @model_validator(mode="after")
    def validate_correctness_shape(self) -> Self:
        """Ensure the correctness configuration matches the question type."""
        error = correctness_shape_error(
            self.question_type,
            allow_multiple=self.allow_multiple,
            option_flags=[option.is_correct for option in self.options],
            correct_answer_boolean=self.correct_answer_boolean,
            correct_answer_text=self.correct_answer_text,
            word_limit=self.word_limit,
        )
        if error:
            raise ValueError(error)
        return self


class QuestionUpdate(BaseModel):
    """
    Schema for editing a question. Unset fields are left unchanged.

    The question type and options are not editable here; options have their
    own operations.
    """

    text: Optional[str] = None
    points: Optional[Decimal] = Field(None, ge=0)
    is_required: Optional[bool] = None
    explanation: Optional[str] = None
    correct_answer_boolean: Optional[bool] = None
    correct_answer_text: Optional[str] = None
    case_sensitive: Optional[bool] = None
    word_limit: Optional[int] = Field(None, gt=0)

    @field_validator("text", "correct_answer_text")
    @classmethod
    def validate_text(cls, v: Optional[str]) -> Optional[str]:
        return _validate_non_empty(v, "Text")


class _TestFields(BaseModel):
    subject_id: Optional[int] = None
    employee_id: Optional[int] = None
    group_id: Optional[int] = None
    description: Optional[str] = None
    instructions: Optional[str] = None
    duration_seconds: Optional[int] = Field(
        None, gt=0, description="Time limit in seconds (None = unlimited)"
    )
    passing_score: Optional[Decimal] = Field(
        None, ge=0, le=100, description="Passing percentage"
    )
    shuffle_questions: Optional[bool] = None
    shuffle_answers: Optional[bool] = None
    show_correct_answers: Optional[bool] = None
    allow_review: Optional[bool] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @model_validator(mode="after")
    def validate_window(self) -> Self:
        """Ensure the availability window is not inverted."""
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class TestCreate(_TestFields):
    """Schema for a new test. Tests are always created unpublished."""

    __test__ = False  # not a pytest test class

    title: str = Field(..., max_length=255, description="Test title")
    attempt_limit: int = Field(
        default_factory=lambda: settings.DEFAULT_ATTEMPT_LIMIT,
        ge=1,
        description="Maximum submitted attempts per student",
    )
    shuffle_questions: bool = False
    shuffle_answers: bool = False
    show_correct_answers: bool = False
    allow_review: bool = True
    questions: List[QuestionCreate] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return _validate_non_empty(v, "Title")


class TestUpdate(_TestFields):
    """
    Schema for editing a test's non-structural fields.

    Unset fields are left unchanged; publication and questions have their
    own operations.
    """

    __test__ = False  # not a pytest test class

    title: Optional[str] = Field(None, max_length=255)
    attempt_limit: Optional[int] = Field(None, ge=1)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> Optional[str]:
        return _validate_non_empty(v, "Title")
