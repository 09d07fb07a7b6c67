"""
Per-answer grading: automatic checks and manual grades.

These functions mutate one StudentAnswer in memory. They never touch the
attempt totals; callers re-run the score aggregator afterwards
(``assessment.core.scoring.recompute_attempt_score``) inside the same
transaction.
"""
import logging
import math
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, Union

from assessment.core.answer_checker import check_answer, response_from_columns
from assessment.core.config import settings
from assessment.core.datetime_utils import resolve_now
from assessment.core.errors import ErrorMessages, ValidationError
from assessment.models.models import StudentAnswer

logger = logging.getLogger(__name__)

Number = Union[Decimal, float, int, str]

CENT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value: Number) -> Decimal:
    """
    Convert a points or percentage value to a finite Decimal.

    Raises:
        ValidationError: If the value is not a finite number
    """
    if isinstance(value, bool):
        raise ValidationError(ErrorMessages.INVALID_POINTS)
    if isinstance(value, float) and not math.isfinite(value):
        raise ValidationError(ErrorMessages.INVALID_POINTS)
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(ErrorMessages.INVALID_POINTS)
    if not result.is_finite():
        raise ValidationError(ErrorMessages.INVALID_POINTS)
    return result


def quantize_points(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _threshold() -> Decimal:
    return Decimal(str(settings.MANUAL_GRADE_CORRECT_THRESHOLD))


def auto_grade_answer(answer: StudentAnswer, now: Optional[datetime] = None) -> bool:
    """
    Grade an answer automatically.

    Sets ``is_correct``, copies ``points_possible`` from the question, awards
    full points or zero, and clears ``manually_graded``. Leaves the answer
    untouched when its question cannot be auto-graded.

    Args:
        answer: StudentAnswer with its question loaded
        now: Grading time, defaults to the current time

    Returns:
        True if the answer was graded, False if the question type needs
        manual grading.
    """
    question = answer.question
    if not question.can_auto_grade:
        return False

    now = resolve_now(now)
    is_correct = check_answer(question, response_from_columns(question, answer))
    possible = Decimal(question.points)

    answer.is_correct = is_correct
    answer.points_possible = possible
    answer.points_earned = possible if is_correct else ZERO
    answer.manually_graded = False
    answer.graded_by_employee_id = None
    answer.graded_at = now
    if answer.answered_at is None:
        answer.answered_at = now
    return True


def manual_grade_answer(
    answer: StudentAnswer,
    points_earned: Number,
    grader_id: Optional[int],
    feedback: Optional[str] = None,
    now: Optional[datetime] = None,
) -> StudentAnswer:
    """
    Record a grader's score for an answer.

    Points are clamped to ``[0, question.points]``. The answer counts as
    correct when it earns at least MANUAL_GRADE_CORRECT_THRESHOLD of the
    possible points; a zero-point question is never correct.

    Args:
        answer: StudentAnswer with its question loaded
        points_earned: Points awarded by the grader
        grader_id: Employee id of the grader (required)
        feedback: Optional comment for the student; None keeps the old one
        now: Grading time, defaults to the current time

    Raises:
        ValidationError: If grader_id is missing or points are not a number
    """
    if grader_id is None:
        raise ValidationError(ErrorMessages.GRADER_REQUIRED)

    now = resolve_now(now)
    possible = Decimal(answer.question.points)
    earned = quantize_points(min(max(to_decimal(points_earned), ZERO), possible))

    answer.points_possible = possible
    answer.points_earned = earned
    answer.is_correct = possible > ZERO and earned / possible >= _threshold()
    answer.manually_graded = True
    answer.graded_by_employee_id = grader_id
    answer.graded_at = now
    if feedback is not None:
        answer.feedback = feedback
    if answer.answered_at is None:
        answer.answered_at = now

    logger.info(
        f"Answer {answer.id} manually graded: {earned}/{possible}",
        extra={"answer_id": answer.id, "grader_id": grader_id},
    )
    return answer


def award_partial_credit(
    answer: StudentAnswer,
    percentage: Number,
    grader_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> StudentAnswer:
    """
    Award a percentage of the question's points.

    The percentage is clamped to 0-100. Without a grader the award is not
    recorded as a manual grade, so ``manually_graded`` keeps its current
    value. With a grader it is.

    On an essay, an award without a grader still sets ``is_correct``. Once
    every answer has ``is_correct`` the attempt moves to graded, yet it
    keeps reporting ``requires_manual_grading`` until a grader records a
    grade for the essay.

    Raises:
        ValidationError: If percentage is not a number
    """
    now = resolve_now(now)
    pct = min(max(to_decimal(percentage), ZERO), HUNDRED)
    possible = Decimal(answer.question.points)

    answer.points_possible = possible
    answer.points_earned = quantize_points(possible * pct / HUNDRED)
    answer.is_correct = pct >= _threshold() * HUNDRED
    answer.graded_at = now
    if grader_id is not None:
        answer.manually_graded = True
        answer.graded_by_employee_id = grader_id
    if answer.answered_at is None:
        answer.answered_at = now
    return answer
