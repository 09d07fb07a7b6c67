"""
Eligibility gate for starting attempts.

Checks run in a fixed order and the first failure wins:
1. the test must be published
2. ``now`` must fall inside the availability window
3. the student's active submitted attempts must be below the attempt limit
"""
import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from assessment.core.datetime_utils import resolve_now
from assessment.core.errors import ErrorMessages, NotEligibleError
from assessment.models.models import Attempt, Test


class IneligibilityReason(str, enum.Enum):
    """Why a student may not start an attempt."""

    NOT_PUBLISHED = "NOT_PUBLISHED"
    OUT_OF_WINDOW = "OUT_OF_WINDOW"
    ATTEMPT_LIMIT_REACHED = "ATTEMPT_LIMIT_REACHED"


REASON_MESSAGES = {
    IneligibilityReason.NOT_PUBLISHED: ErrorMessages.TEST_NOT_PUBLISHED,
    IneligibilityReason.OUT_OF_WINDOW: ErrorMessages.TEST_NOT_AVAILABLE,
    IneligibilityReason.ATTEMPT_LIMIT_REACHED: ErrorMessages.ATTEMPT_LIMIT_REACHED,
}


@dataclass
class EligibilityResult:
    """Outcome of an eligibility check."""

    allowed: bool
    reason: Optional[IneligibilityReason] = None
    remaining_attempts: Optional[int] = None

    def raise_if_denied(self) -> None:
        """
        Raises:
            NotEligibleError: If the check failed, carrying the reason
        """
        if not self.allowed:
            raise NotEligibleError(
                REASON_MESSAGES[self.reason],
                reason=self.reason.value,
                remaining_attempts=self.remaining_attempts,
            )


def count_submitted_attempts(db: Session, test_id: int, student_id: int) -> int:
    """Count the student's active attempts at a test that have been submitted."""
    stmt = select(func.count(Attempt.id)).where(
        Attempt.test_id == test_id,
        Attempt.student_id == student_id,
        Attempt.active.is_(True),
        Attempt.submitted_at.isnot(None),
    )
    return db.execute(stmt).scalar_one()


def count_submitted_attempts_for_test(db: Session, test_id: int) -> int:
    """Count active submitted attempts at a test across all students."""
    stmt = select(func.count(Attempt.id)).where(
        Attempt.test_id == test_id,
        Attempt.active.is_(True),
        Attempt.submitted_at.isnot(None),
    )
    return db.execute(stmt).scalar_one()


def check_eligibility(
    db: Session, test: Test, student_id: int, now: Optional[datetime] = None
) -> EligibilityResult:
    """
    Decide whether a student may start a new attempt at ``test``.

    Returns:
        EligibilityResult; ``remaining_attempts`` is set only when allowed
    """
    if not test.is_published:
        return EligibilityResult(False, IneligibilityReason.NOT_PUBLISHED)

    if not test.is_available(resolve_now(now)):
        return EligibilityResult(False, IneligibilityReason.OUT_OF_WINDOW)

    submitted = count_submitted_attempts(db, test.id, student_id)
    if submitted >= test.attempt_limit:
        return EligibilityResult(False, IneligibilityReason.ATTEMPT_LIMIT_REACHED)

    return EligibilityResult(True, remaining_attempts=test.attempt_limit - submitted)


def can_retake(db: Session, test: Test, student_id: int) -> bool:
    """Whether the student has attempts left under the test's limit."""
    return count_submitted_attempts(db, test.id, student_id) < test.attempt_limit
