"""
Result summaries for tests and questions.

Only active, submitted attempts are counted.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Union

from sqlalchemy import select
from sqlalchemy.orm import Session

from assessment.core.errors import ValidationError
from assessment.models.models import (
    Attempt,
    AttemptStatus,
    Question,
    StudentAnswer,
    Test,
)

CENT = Decimal("0.01")
HUNDRED = Decimal("100")


@dataclass
class TestResultsSummary:
    """Aggregate results of all submitted attempts at a test."""

    __test__ = False  # not a pytest test class

    total_attempts: int
    graded: int
    pending_grading: int
    average_percentage: Optional[Decimal]
    pass_rate: Optional[Decimal]


@dataclass
class QuestionStatistics:
    """Answer statistics for one question across submitted attempts."""

    total_answers: int
    correct_answers: int
    incorrect_answers: int
    correct_percentage: Decimal
    average_points: Optional[Decimal]


def _round(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def submitted_attempts(
    db: Session,
    test_id: int,
    *,
    student_id: Optional[int] = None,
    status: Optional[Union[AttemptStatus, str]] = None,
    passed: Optional[bool] = None,
) -> List[Attempt]:
    """
    Active submitted attempts at a test, most recent first.

    Args:
        db: Database session
        test_id: Test whose attempts are listed
        student_id: Only this student's attempts
        status: Only attempts in this status (submitted or graded)
        passed: Only attempts that passed (True) or did not (False)
    """
    stmt = select(Attempt).where(
        Attempt.test_id == test_id,
        Attempt.active.is_(True),
        Attempt.submitted_at.isnot(None),
    )
    if student_id is not None:
        stmt = stmt.where(Attempt.student_id == student_id)
    if status is not None:
        try:
            status = AttemptStatus(status)
        except ValueError as e:
            raise ValidationError(f"Unknown attempt status: {status!r}.") from e
        stmt = stmt.where(Attempt.status == status)
    if passed is not None:
        stmt = stmt.where(Attempt.passed == passed)
    stmt = stmt.order_by(Attempt.submitted_at.desc(), Attempt.id.desc())
    return list(db.execute(stmt).scalars().all())


def test_results_summary(
    db: Session,
    test: Test,
    *,
    student_id: Optional[int] = None,
    status: Optional[Union[AttemptStatus, str]] = None,
    passed: Optional[bool] = None,
) -> TestResultsSummary:
    """
    Summarize submitted attempts at a test, narrowed by the same filters
    as ``submitted_attempts``.

    ``pass_rate`` is the percentage of attempts that passed, and is None
    when the test has no passing score. ``average_percentage`` ignores
    attempts without a percentage and is None when none have one.
    """
    attempts = submitted_attempts(
        db, test.id, student_id=student_id, status=status, passed=passed
    )
    total = len(attempts)

    percentages = [Decimal(a.percentage) for a in attempts if a.percentage is not None]
    average = _round(sum(percentages) / len(percentages)) if percentages else None

    pass_rate = None
    if test.passing_score is not None:
        passed = sum(1 for a in attempts if a.passed)
        pass_rate = _round(Decimal(passed) / Decimal(max(total, 1)) * HUNDRED)

    return TestResultsSummary(
        total_attempts=total,
        graded=sum(1 for a in attempts if a.status == AttemptStatus.GRADED),
        pending_grading=sum(1 for a in attempts if a.status == AttemptStatus.SUBMITTED),
        average_percentage=average,
        pass_rate=pass_rate,
    )


# Keep pytest from collecting the module-level function above
test_results_summary.__test__ = False


def question_statistics(db: Session, question: Question) -> QuestionStatistics:
    """Correctness and points statistics for one question."""
    stmt = (
        select(StudentAnswer)
        .join(Attempt, StudentAnswer.attempt_id == Attempt.id)
        .where(
            StudentAnswer.question_id == question.id,
            Attempt.active.is_(True),
            Attempt.submitted_at.isnot(None),
        )
    )
    answers = list(db.execute(stmt).scalars().all())
    total = len(answers)
    correct = sum(1 for a in answers if a.is_correct)

    correct_percentage = (
        _round(Decimal(correct) / Decimal(total) * HUNDRED) if total else Decimal("0")
    )
    average_points = (
        _round(sum(Decimal(a.points_earned) for a in answers) / total) if total else None
    )
    return QuestionStatistics(
        total_answers=total,
        correct_answers=correct,
        incorrect_answers=total - correct,
        correct_percentage=correct_percentage,
        average_points=average_points,
    )


def format_duration(seconds: Optional[int]) -> str:
    """
    Human-readable duration.

    Example:
        >>> format_duration(3725)
        '1h 2m 5s'
        >>> format_duration(None)
        'Unlimited'
    """
    if seconds is None:
        return "Unlimited"
    hours, remainder = divmod(max(0, int(seconds)), 3600)
    minutes, secs = divmod(remainder, 60)
    parts = []
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if secs or not parts:
        parts.append(f"{secs}s")
    return " ".join(parts)
