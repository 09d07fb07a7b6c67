"""
Database models for the assessment engine.

A Test owns its Questions and, through them, the AnswerOptions of
multiple-choice questions. An Attempt is one student's sitting of one Test
and owns one StudentAnswer per question. Attempts and answers reference
tests and questions by id only.
"""
from decimal import Decimal
from datetime import datetime
from typing import FrozenSet, List, Optional
import enum

from sqlalchemy import (
    Column,
    Integer,
    String,
    Boolean,
    DateTime,
    ForeignKey,
    Text,
    Enum,
    Numeric,
    UniqueConstraint,
    Index,
    CheckConstraint,
)
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import relationship

from assessment.core.datetime_utils import (
    ensure_timezone_aware,
    seconds_between,
    utc_now,
)
from assessment.core.grade_scale import letter_grade, numeric_grade
from .base import Base
from .types import IntegerArray

ZERO = Decimal("0")


class QuestionType(str, enum.Enum):
    """Question type enumeration."""

    MULTIPLE_CHOICE = "multiple_choice"
    TRUE_FALSE = "true_false"
    SHORT_ANSWER = "short_answer"
    ESSAY = "essay"


AUTO_GRADABLE_TYPES = frozenset(
    {QuestionType.MULTIPLE_CHOICE, QuestionType.TRUE_FALSE, QuestionType.SHORT_ANSWER}
)


class AttemptStatus(str, enum.Enum):
    """
    Attempt lifecycle status.

    started -> in_progress -> submitted -> graded, or abandoned from either
    open state.
    """

    STARTED = "started"
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    GRADED = "graded"
    ABANDONED = "abandoned"


OPEN_STATUSES = frozenset({AttemptStatus.STARTED, AttemptStatus.IN_PROGRESS})


class WindowStatus(str, enum.Enum):
    """Where ``now`` falls relative to a test's availability window."""

    AVAILABLE = "available"
    UPCOMING = "upcoming"
    EXPIRED = "expired"


class Test(Base):
    """A test (quiz/exam) composed of ordered questions."""

    __tablename__ = "tests"
    __test__ = False  # not a pytest test class

    id = Column(Integer, primary_key=True, index=True)

    # Opaque references owned by other systems
    subject_id = Column(Integer, nullable=True, index=True)
    employee_id = Column(Integer, nullable=True, index=True)
    group_id = Column(Integer, nullable=True, index=True)

    title = Column(String(255), nullable=False)
    description = Column(Text)
    instructions = Column(Text)

    duration_seconds = Column(Integer, nullable=True)  # NULL = unlimited
    passing_score = Column(Numeric(5, 2), nullable=True)  # percentage threshold
    max_score = Column(Numeric(10, 2), default=ZERO, nullable=False)
    question_count = Column(Integer, default=0, nullable=False)
    attempt_limit = Column(Integer, default=1, nullable=False)

    shuffle_questions = Column(Boolean, default=False, nullable=False)
    shuffle_answers = Column(Boolean, default=False, nullable=False)
    show_correct_answers = Column(Boolean, default=False, nullable=False)
    allow_review = Column(Boolean, default=True, nullable=False)

    start_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)

    is_published = Column(Boolean, default=False, nullable=False, index=True)
    published_at = Column(DateTime(timezone=True), nullable=True)
    active = Column(Boolean, default=True, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )

    # Relationships
    questions = relationship(
        "Question",
        back_populates="test",
        cascade="all, delete-orphan",
        order_by="[Question.position, Question.id]",
    )

    __table_args__ = (
        CheckConstraint("attempt_limit >= 1", name="ck_tests_attempt_limit_positive"),
        CheckConstraint(
            "duration_seconds IS NULL OR duration_seconds > 0",
            name="ck_tests_duration_positive",
        ),
    )

    @property
    def active_questions(self) -> List["Question"]:
        """Active questions in display order."""
        return [q for q in self.questions if q.active]

    def calculate_total_score(self) -> Decimal:
        """Sum of the points of all active questions."""
        return sum((Decimal(q.points) for q in self.active_questions), ZERO)

    def is_available(self, now: Optional[datetime] = None) -> bool:
        """Whether ``now`` falls inside the availability window."""
        now = ensure_timezone_aware(now or utc_now())
        after_start = self.start_date is None or ensure_timezone_aware(
            self.start_date
        ) <= now
        before_end = self.end_date is None or ensure_timezone_aware(
            self.end_date
        ) >= now
        return after_start and before_end

    def is_upcoming(self, now: Optional[datetime] = None) -> bool:
        """Whether the availability window has not opened yet."""
        if self.start_date is None:
            return False
        now = ensure_timezone_aware(now or utc_now())
        return ensure_timezone_aware(self.start_date) > now

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Whether the availability window has closed."""
        if self.end_date is None:
            return False
        now = ensure_timezone_aware(now or utc_now())
        return ensure_timezone_aware(self.end_date) < now

    def days_until_end(self, now: Optional[datetime] = None) -> Optional[int]:
        """Whole days until ``end_date`` (negative once expired), or None."""
        if self.end_date is None:
            return None
        now = ensure_timezone_aware(now or utc_now())
        return (ensure_timezone_aware(self.end_date) - now).days

    def __repr__(self) -> str:
        return f"<Test id={self.id} title={self.title!r}>"


class Question(Base):
    """A question belonging to a test."""

    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    test_id = Column(
        Integer, ForeignKey("tests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    text = Column(Text, nullable=False)
    question_type = Column(Enum(QuestionType), nullable=False)
    points = Column(Numeric(10, 2), default=Decimal("1"), nullable=False)
    position = Column(Integer, default=0, nullable=False)
    is_required = Column(Boolean, default=True, nullable=False)
    explanation = Column(Text)

    # Correctness configuration; only the shape matching question_type is set.
    # multiple_choice: allow_multiple + options flagged is_correct
    allow_multiple = Column(Boolean, default=False, nullable=False)
    # true_false
    correct_answer_boolean = Column(Boolean, nullable=True)
    # short_answer
    correct_answer_text = Column(Text, nullable=True)
    case_sensitive = Column(Boolean, default=False, nullable=False)
    # essay
    word_limit = Column(Integer, nullable=True)

    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    # Relationships
    test = relationship("Test", back_populates="questions")
    options = relationship(
        "AnswerOption",
        back_populates="question",
        cascade="all, delete-orphan",
        order_by="[AnswerOption.position, AnswerOption.id]",
    )

    __table_args__ = (
        Index("ix_questions_test_position", "test_id", "position"),
        CheckConstraint("points >= 0", name="ck_questions_points_non_negative"),
    )

    @property
    def can_auto_grade(self) -> bool:
        return self.question_type in AUTO_GRADABLE_TYPES

    @property
    def requires_manual_grading(self) -> bool:
        return self.question_type == QuestionType.ESSAY

    @property
    def active_options(self) -> List["AnswerOption"]:
        return [o for o in self.options if o.active]

    @property
    def correct_option_ids(self) -> FrozenSet[int]:
        """Ids of the active options flagged correct (multiple choice only)."""
        return frozenset(o.id for o in self.active_options if o.is_correct)

    def __repr__(self) -> str:
        return f"<Question id={self.id} type={self.question_type}>"


class AnswerOption(Base):
    """A selectable option of a multiple-choice question."""

    __tablename__ = "answer_options"

    id = Column(Integer, primary_key=True, index=True)
    question_id = Column(
        Integer,
        ForeignKey("questions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    text = Column(Text, nullable=False)
    position = Column(Integer, default=0, nullable=False)
    is_correct = Column(Boolean, default=False, nullable=False)
    active = Column(Boolean, default=True, nullable=False)

    question = relationship("Question", back_populates="options")


class Attempt(Base):
    """
    One student's attempt at one test.

    The score columns are derived state. They are exposed as read-only
    attributes and written only by ``assessment.core.scoring``.
    """

    __tablename__ = "attempts"

    id = Column(Integer, primary_key=True, index=True)
    test_id = Column(Integer, ForeignKey("tests.id"), nullable=False)
    student_id = Column(Integer, nullable=False, index=True)
    attempt_number = Column(Integer, nullable=False)
    status = Column(
        Enum(AttemptStatus), default=AttemptStatus.STARTED, nullable=False, index=True
    )

    started_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    graded_at = Column(DateTime(timezone=True), nullable=True)
    duration_seconds = Column(Integer, nullable=True)

    # Derived by the score aggregator
    _auto_graded_score = Column(
        "auto_graded_score", Numeric(10, 2), default=ZERO, nullable=False
    )
    _manual_graded_score = Column(
        "manual_graded_score", Numeric(10, 2), default=ZERO, nullable=False
    )
    _total_score = Column("total_score", Numeric(10, 2), default=ZERO, nullable=False)
    _max_score = Column("max_score", Numeric(10, 2), default=ZERO, nullable=False)
    _percentage = Column("percentage", Numeric(5, 2), nullable=True)
    _passed = Column("passed", Boolean, nullable=True)

    feedback = Column(Text, nullable=True)  # overall grader comment
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    # Relationships
    test = relationship("Test")
    answers = relationship(
        "StudentAnswer",
        back_populates="attempt",
        cascade="all, delete-orphan",
        order_by="StudentAnswer.id",
    )

    __table_args__ = (
        UniqueConstraint(
            "test_id", "student_id", "attempt_number", name="uq_attempt_number"
        ),
        Index("ix_attempts_test_student", "test_id", "student_id"),
        Index("ix_attempts_test_status", "test_id", "status"),
        CheckConstraint("attempt_number >= 1", name="ck_attempts_number_positive"),
    )

    @hybrid_property
    def auto_graded_score(self):
        return self._auto_graded_score

    @hybrid_property
    def manual_graded_score(self):
        return self._manual_graded_score

    @hybrid_property
    def total_score(self):
        return self._total_score

    @hybrid_property
    def max_score(self):
        return self._max_score

    @hybrid_property
    def percentage(self):
        return self._percentage

    @hybrid_property
    def passed(self):
        return self._passed

    @property
    def letter_grade(self) -> Optional[str]:
        return letter_grade(self._percentage)

    @property
    def numeric_grade(self) -> Optional[int]:
        return numeric_grade(self._percentage)

    @property
    def is_open(self) -> bool:
        """Started or in progress: answers may still be written."""
        return self.status in OPEN_STATUSES

    def time_remaining_seconds(self, now: Optional[datetime] = None) -> Optional[int]:
        """
        Seconds left before the test's duration limit elapses.

        Returns None for unlimited tests and 0 once the attempt is no longer
        open or the limit has passed.
        """
        limit = self.test.duration_seconds if self.test is not None else None
        if not limit:
            return None
        if not self.is_open:
            return 0
        elapsed = seconds_between(self.started_at, now or utc_now())
        return max(0, limit - elapsed)

    def __repr__(self) -> str:
        return (
            f"<Attempt id={self.id} test_id={self.test_id} "
            f"student_id={self.student_id} status={self.status}>"
        )


class StudentAnswer(Base):
    """A student's answer to one question within an attempt."""

    __tablename__ = "student_answers"

    id = Column(Integer, primary_key=True, index=True)
    attempt_id = Column(
        Integer,
        ForeignKey("attempts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    question_id = Column(
        Integer, ForeignKey("questions.id"), nullable=False, index=True
    )

    # Response payload; the column used depends on the question type
    selected_option_ids = Column(IntegerArray(), nullable=True)  # multiple_choice
    answer_boolean = Column(Boolean, nullable=True)  # true_false
    answer_text = Column(Text, nullable=True)  # short_answer, essay

    points_earned = Column(Numeric(10, 2), default=ZERO, nullable=False)
    points_possible = Column(Numeric(10, 2), default=ZERO, nullable=False)
    is_correct = Column(Boolean, nullable=True)  # NULL = not graded yet
    manually_graded = Column(Boolean, default=False, nullable=False)
    graded_by_employee_id = Column(Integer, nullable=True)
    graded_at = Column(DateTime(timezone=True), nullable=True)
    answered_at = Column(DateTime(timezone=True), nullable=True)
    feedback = Column(Text, nullable=True)

    # Relationships
    attempt = relationship("Attempt", back_populates="answers")
    question = relationship("Question")

    __table_args__ = (
        UniqueConstraint("attempt_id", "question_id", name="uq_answer_per_question"),
        CheckConstraint("points_earned >= 0", name="ck_answers_earned_non_negative"),
        CheckConstraint(
            "points_earned <= points_possible", name="ck_answers_earned_le_possible"
        ),
        CheckConstraint(
            "NOT manually_graded OR graded_by_employee_id IS NOT NULL",
            name="ck_answers_manual_grader",
        ),
    )

    @property
    def is_empty(self) -> bool:
        """True when nothing has been answered."""
        return (
            self.answer_text is None
            and self.answer_boolean is None
            and not self.selected_option_ids
        )

    @property
    def is_graded(self) -> bool:
        return self.is_correct is not None

    @property
    def score_percentage(self) -> Optional[Decimal]:
        """Share of possible points earned, as a percentage."""
        if self.points_earned is None or self.points_possible is None:
            return None
        if Decimal(self.points_possible) == ZERO:
            return ZERO
        return round(
            Decimal(self.points_earned) / Decimal(self.points_possible) * 100, 2
        )
