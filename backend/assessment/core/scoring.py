"""
Attempt score aggregation.

The aggregator is the only writer of an Attempt's derived score fields and
the only trigger of the submitted -> graded transition. It always
recomputes from the full current answer set, so running it twice in a row
gives the same result.

Totals
======
- auto_graded_score: points earned on answers not manually graded
- manual_graded_score: points earned on manually graded answers
- total_score: auto_graded_score + manual_graded_score
- max_score: sum of points possible
- percentage: total / max * 100, rounded to PERCENTAGE_DECIMAL_PLACES,
  None when max is zero
- passed: percentage >= the test's passing score, None when either is absent
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from assessment.core.config import settings
from assessment.core.datetime_utils import resolve_now
from assessment.core.errors import InconsistentStateError
from assessment.core.grade_scale import letter_grade, numeric_grade
from assessment.models.models import Attempt, AttemptStatus, StudentAnswer

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")


@dataclass
class ScoreBreakdown:
    """Result of aggregating an attempt's answers."""

    auto_graded_score: Decimal
    manual_graded_score: Decimal
    total_score: Decimal
    max_score: Decimal
    percentage: Optional[Decimal]
    passed: Optional[bool]

    @property
    def letter_grade(self) -> Optional[str]:
        return letter_grade(self.percentage)

    @property
    def numeric_grade(self) -> Optional[int]:
        return numeric_grade(self.percentage)


def zero_breakdown() -> ScoreBreakdown:
    """Score written for an attempt with nothing to aggregate."""
    return ScoreBreakdown(
        auto_graded_score=ZERO,
        manual_graded_score=ZERO,
        total_score=ZERO,
        max_score=ZERO,
        percentage=None,
        passed=None,
    )


def calculate_percentage(total: Decimal, maximum: Decimal) -> Optional[Decimal]:
    """
    Percentage of ``maximum`` achieved by ``total``.

    Returns:
        Percentage rounded half-up to PERCENTAGE_DECIMAL_PLACES, or None when
        maximum is zero

    Example:
        >>> calculate_percentage(Decimal("4.5"), Decimal("5"))
        Decimal('90.00')
    """
    if maximum == ZERO:
        return None
    exponent = Decimal(1).scaleb(-settings.PERCENTAGE_DECIMAL_PLACES)
    return (total / maximum * HUNDRED).quantize(exponent, rounding=ROUND_HALF_UP)


def determine_passed(
    percentage: Optional[Decimal], passing_score: Optional[Decimal]
) -> Optional[bool]:
    if percentage is None or passing_score is None:
        return None
    return percentage >= Decimal(passing_score)


def aggregate_scores(
    answers: Iterable[StudentAnswer], passing_score: Optional[Decimal] = None
) -> ScoreBreakdown:
    """
    Sum per-answer points into attempt totals.

    Args:
        answers: All answers of one attempt
        passing_score: The test's passing percentage, if any

    Raises:
        InconsistentStateError: If there are no answers to aggregate
    """
    answers = list(answers)
    if not answers:
        raise InconsistentStateError("Attempt has no answers to aggregate.")

    auto = ZERO
    manual = ZERO
    maximum = ZERO
    for answer in answers:
        earned = Decimal(answer.points_earned or 0)
        if answer.manually_graded:
            manual += earned
        else:
            auto += earned
        maximum += Decimal(answer.points_possible or 0)

    total = auto + manual
    percentage = calculate_percentage(total, maximum)
    return ScoreBreakdown(
        auto_graded_score=auto,
        manual_graded_score=manual,
        total_score=total,
        max_score=maximum,
        percentage=percentage,
        passed=determine_passed(percentage, passing_score),
    )


def all_answers_graded(attempt: Attempt) -> bool:
    """True when every answer has ``is_correct`` set; vacuously true for none."""
    return all(answer.is_correct is not None for answer in attempt.answers)


def recompute_attempt_score(
    attempt: Attempt, now: Optional[datetime] = None
) -> ScoreBreakdown:
    """
    Recompute and store an attempt's derived score fields.

    A submitted attempt whose answers are all graded moves to graded with
    ``graded_at = now``. An attempt without answers is inconsistent: the
    condition is logged at WARNING and a zero score is written. A submitted
    one still moves to graded, since it has nothing left to grade.

    Args:
        attempt: Attempt with its answers and test loaded
        now: Time used for ``graded_at``, defaults to the current time

    Returns:
        The breakdown that was written
    """
    passing_score = attempt.test.passing_score if attempt.test is not None else None
    try:
        breakdown = aggregate_scores(attempt.answers, passing_score)
    except InconsistentStateError as e:
        logger.warning(
            f"Inconsistent attempt {attempt.id}: {e.message} Writing zero score.",
            extra={"attempt_id": attempt.id},
        )
        breakdown = zero_breakdown()

    attempt._auto_graded_score = breakdown.auto_graded_score
    attempt._manual_graded_score = breakdown.manual_graded_score
    attempt._total_score = breakdown.total_score
    attempt._max_score = breakdown.max_score
    attempt._percentage = breakdown.percentage
    attempt._passed = breakdown.passed

    if attempt.status == AttemptStatus.SUBMITTED and all_answers_graded(attempt):
        attempt.status = AttemptStatus.GRADED
        attempt.graded_at = resolve_now(now)
        logger.info(
            f"Attempt {attempt.id} graded: {breakdown.total_score}/"
            f"{breakdown.max_score} ({breakdown.percentage}%)",
            extra={"attempt_id": attempt.id, "status": attempt.status.value},
        )

    return breakdown
