"""
Attempt lifecycle: start, answer, submit, grade, review.

State machine
=============
started -> in_progress (first answer) -> submitted (submit_attempt)
-> graded (score aggregator, once every answer is graded).
abandoned is terminal and reachable from started or in_progress.

Every operation that changes grading data re-runs the score aggregator in
the same transaction before committing.

Concurrency
===========
- start_attempt locks the Test row and re-checks eligibility inside the
  transaction. The unique (test_id, student_id, attempt_number) constraint
  catches any race the lock does not (e.g. on SQLite, which has no row
  locks); the loser gets AttemptConflictError.
- submit_attempt is a single conditional UPDATE on ``submitted_at IS NULL``,
  so exactly one concurrent submit wins. It then re-counts the student's
  submitted attempts under the Test row lock; a submit that would go past
  the attempt limit is rolled back and the attempt stays open.
- Grading locks the Attempt row so interleaved grades recompute from the
  full current answer set.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from assessment.core.analytics import AnalyticsTracker
from assessment.core.answer_checker import (
    apply_response_columns,
    response_from_columns,
    validate_response,
)
from assessment.core.datetime_utils import resolve_now, seconds_between
from assessment.core.db_error_handling import handle_db_error
from assessment.core.delivery import ordered_options, ordered_questions
from assessment.core.eligibility import (
    EligibilityResult,
    IneligibilityReason,
    count_submitted_attempts,
)
from assessment.core.eligibility import can_retake as _can_retake
from assessment.core.eligibility import check_eligibility as _check_eligibility
from assessment.core.errors import (
    AlreadySubmittedError,
    AttemptConflictError,
    ErrorMessages,
    InvalidStateTransitionError,
    NotEligibleError,
    NotFoundError,
    ValidationError,
)
from assessment.core import grading
from assessment.core.graceful_failure import graceful_failure
from assessment.core.scoring import ScoreBreakdown, recompute_attempt_score
from assessment.core.statistics import submitted_attempts
from assessment.models.models import (
    OPEN_STATUSES,
    Attempt,
    AttemptStatus,
    StudentAnswer,
    Test,
)
from assessment.schemas.attempts import (
    AttemptResult,
    AttemptReview,
    AttemptSummary,
    ManualGrade,
    OptionReview,
    StudentAnswerReview,
)
from assessment.schemas.responses import AnswerResponse, parse_response

logger = logging.getLogger(__name__)

GRADABLE_STATUSES = (AttemptStatus.SUBMITTED, AttemptStatus.GRADED)


# =============================================================================
# Lookups and helpers
# =============================================================================


def get_attempt(db: Session, attempt_id: int) -> Attempt:
    """
    Fetch an active attempt.

    Raises:
        NotFoundError: If the attempt does not exist or was voided
    """
    attempt = (
        db.query(Attempt)
        .filter(Attempt.id == attempt_id, Attempt.active.is_(True))
        .first()
    )
    if attempt is None:
        raise NotFoundError(ErrorMessages.attempt_not_found(attempt_id))
    return attempt


def get_answer(db: Session, answer_id: int) -> StudentAnswer:
    answer = db.query(StudentAnswer).filter(StudentAnswer.id == answer_id).first()
    if answer is None:
        raise NotFoundError(ErrorMessages.answer_not_found(answer_id))
    return answer


def _lock_attempt(db: Session, attempt_id: int) -> Attempt:
    """Re-read an attempt under a row lock, refreshing the in-memory copy."""
    return (
        db.query(Attempt)
        .filter(Attempt.id == attempt_id)
        .with_for_update()
        .populate_existing()
        .one()
    )


def _require_gradable(attempt: Attempt) -> None:
    if attempt.status not in GRADABLE_STATUSES:
        raise InvalidStateTransitionError(
            ErrorMessages.ATTEMPT_NOT_SUBMITTED,
            current=attempt.status.value,
            target=AttemptStatus.GRADED.value,
        )


def _track_if_graded(attempt: Attempt, status_before: AttemptStatus) -> None:
    if status_before != AttemptStatus.GRADED and attempt.status == AttemptStatus.GRADED:
        with graceful_failure("track attempt graded", logger):
            AnalyticsTracker.track_attempt_graded(
                attempt.student_id,
                attempt.id,
                float(attempt.percentage) if attempt.percentage is not None else None,
                attempt.passed,
            )


# =============================================================================
# Eligibility
# =============================================================================


def check_eligibility(
    db: Session, test: Test, student_id: int, now: Optional[datetime] = None
) -> EligibilityResult:
    """Whether a student may start a new attempt at ``test``."""
    return _check_eligibility(db, test, student_id, now)


def can_retake(db: Session, student_id: int, test: Test) -> bool:
    """Whether the student still has attempts left at ``test``."""
    return _can_retake(db, test, student_id)


# =============================================================================
# Lifecycle
# =============================================================================


def start_attempt(
    db: Session, test_id: int, student_id: int, now: Optional[datetime] = None
) -> Attempt:
    """
    Start a new attempt with one empty answer per active question.

    Raises:
        NotFoundError: If the test does not exist
        NotEligibleError: If the eligibility gate refuses the student
        AttemptConflictError: If a concurrent start took the same attempt number
    """
    now = resolve_now(now)
    with handle_db_error(db, "start attempt"):
        test = (
            db.query(Test)
            .filter(Test.id == test_id, Test.active.is_(True))
            .with_for_update()
            .first()
        )
        if test is None:
            raise NotFoundError(ErrorMessages.test_not_found(test_id))

        _check_eligibility(db, test, student_id, now).raise_if_denied()

        last_number = db.execute(
            select(func.max(Attempt.attempt_number)).where(
                Attempt.test_id == test.id, Attempt.student_id == student_id
            )
        ).scalar()

        attempt = Attempt(
            test_id=test.id,
            student_id=student_id,
            attempt_number=(last_number or 0) + 1,
            status=AttemptStatus.STARTED,
            started_at=now,
            active=True,
        )
        attempt.test = test
        attempt.answers = [
            StudentAnswer(
                question_id=question.id,
                points_possible=Decimal(question.points),
                points_earned=Decimal("0"),
                manually_graded=False,
            )
            for question in test.active_questions
        ]
        db.add(attempt)

        try:
            db.flush()
        except IntegrityError as e:
            db.rollback()
            logger.warning(
                f"Race condition detected: student {student_id} started test "
                f"{test_id} concurrently",
                extra={"test_id": test_id, "student_id": student_id},
            )
            raise AttemptConflictError() from e

        recompute_attempt_score(attempt, now)
        db.commit()
        db.refresh(attempt)

    logger.info(
        f"Attempt {attempt.id} started (test {test_id}, student {student_id}, "
        f"number {attempt.attempt_number})",
        extra={"attempt_id": attempt.id, "test_id": test_id, "student_id": student_id},
    )
    with graceful_failure("track attempt started", logger):
        AnalyticsTracker.track_attempt_started(
            student_id, attempt.id, test_id, attempt.attempt_number
        )
    return attempt


def record_answer(
    db: Session,
    attempt: Attempt,
    question_id: int,
    response: Union[AnswerResponse, Dict[str, Any]],
    now: Optional[datetime] = None,
) -> StudentAnswer:
    """
    Store a student's response to one question, replacing any earlier one.

    The first answer moves the attempt from started to in_progress.

    Raises:
        ValidationError: If the payload is malformed or does not fit the question
        InvalidStateTransitionError: If the attempt is no longer open
    """
    try:
        response = parse_response(response)
    except PydanticValidationError as e:
        raise ValidationError(f"Malformed response: {e.error_count()} error(s).") from e

    now = resolve_now(now)
    with handle_db_error(db, "record answer"):
        attempt = _lock_attempt(db, attempt.id)
        if not attempt.is_open:
            raise InvalidStateTransitionError(
                ErrorMessages.ATTEMPT_NOT_OPEN,
                current=attempt.status.value,
                target=AttemptStatus.IN_PROGRESS.value,
            )

        answer = next(
            (a for a in attempt.answers if a.question_id == question_id), None
        )
        if answer is None:
            raise ValidationError(ErrorMessages.ANSWER_OUTSIDE_ATTEMPT)

        validate_response(answer.question, response)
        apply_response_columns(answer, response)
        answer.answered_at = now
        if attempt.status == AttemptStatus.STARTED:
            attempt.status = AttemptStatus.IN_PROGRESS
        db.commit()
        db.refresh(answer)

    with graceful_failure("track answer recorded", logger):
        AnalyticsTracker.track_answer_recorded(
            attempt.student_id, attempt.id, question_id
        )
    return answer


def _auto_grade_answers(attempt: Attempt, now: datetime) -> int:
    graded = 0
    for answer in attempt.answers:
        if answer.manually_graded:
            continue
        if grading.auto_grade_answer(answer, now):
            graded += 1
    return graded


def submit_attempt(
    db: Session, attempt: Attempt, now: Optional[datetime] = None
) -> Attempt:
    """
    Submit an attempt, auto-grade it and aggregate its score.

    Raises:
        AlreadySubmittedError: If the attempt was already submitted
        InvalidStateTransitionError: If the attempt was abandoned
        NotEligibleError: If another attempt of the student's already used
            up the test's attempt limit; this attempt stays open
    """
    now = resolve_now(now)
    with handle_db_error(db, "submit attempt"):
        test = (
            db.query(Test).filter(Test.id == attempt.test_id).with_for_update().one()
        )
        duration = seconds_between(attempt.started_at, now)
        result = db.execute(
            update(Attempt)
            .where(
                Attempt.id == attempt.id,
                Attempt.submitted_at.is_(None),
                Attempt.status.in_(list(OPEN_STATUSES)),
            )
            .values(
                submitted_at=now,
                status=AttemptStatus.SUBMITTED,
                duration_seconds=duration,
            )
            .execution_options(synchronize_session=False)
        )
        db.refresh(attempt)

        if result.rowcount == 0:
            if attempt.submitted_at is not None:
                logger.warning(
                    f"Attempt {attempt.id} already submitted",
                    extra={"attempt_id": attempt.id},
                )
                raise AlreadySubmittedError()
            raise InvalidStateTransitionError(
                current=attempt.status.value, target=AttemptStatus.SUBMITTED.value
            )

        # Includes this attempt
        submitted = count_submitted_attempts(db, test.id, attempt.student_id)
        if submitted > test.attempt_limit:
            logger.warning(
                f"Attempt {attempt.id} refused: student {attempt.student_id} "
                f"is over the attempt limit of test {test.id}",
                extra={"attempt_id": attempt.id, "test_id": test.id},
            )
            raise NotEligibleError(
                ErrorMessages.ATTEMPT_LIMIT_REACHED,
                reason=IneligibilityReason.ATTEMPT_LIMIT_REACHED.value,
            )

        _auto_grade_answers(attempt, now)
        recompute_attempt_score(attempt, now)
        db.commit()
        db.refresh(attempt)

    logger.info(
        f"Attempt {attempt.id} submitted ({attempt.status.value})",
        extra={"attempt_id": attempt.id, "status": attempt.status.value},
    )
    with graceful_failure("track attempt submitted", logger):
        AnalyticsTracker.track_attempt_submitted(
            attempt.student_id,
            attempt.id,
            attempt.duration_seconds,
            sum(1 for a in attempt.answers if not a.is_empty),
        )
    _track_if_graded(attempt, AttemptStatus.SUBMITTED)
    return attempt


def abandon_attempt(
    db: Session, attempt: Attempt, now: Optional[datetime] = None
) -> Attempt:
    """
    Mark an open attempt abandoned.

    Raises:
        InvalidStateTransitionError: If the attempt is not started or in progress
    """
    with handle_db_error(db, "abandon attempt"):
        result = db.execute(
            update(Attempt)
            .where(
                Attempt.id == attempt.id,
                Attempt.submitted_at.is_(None),
                Attempt.status.in_(list(OPEN_STATUSES)),
            )
            .values(status=AttemptStatus.ABANDONED)
            .execution_options(synchronize_session=False)
        )
        db.refresh(attempt)
        if result.rowcount == 0:
            raise InvalidStateTransitionError(
                current=attempt.status.value, target=AttemptStatus.ABANDONED.value
            )
        db.commit()

    logger.info(
        f"Attempt {attempt.id} abandoned", extra={"attempt_id": attempt.id}
    )
    with graceful_failure("track attempt abandoned", logger):
        AnalyticsTracker.track_attempt_abandoned(
            attempt.student_id,
            attempt.id,
            sum(1 for a in attempt.answers if not a.is_empty),
        )
    return attempt


def find_expired_attempts(db: Session, now: Optional[datetime] = None) -> List[Attempt]:
    """Open attempts whose test duration limit has elapsed."""
    now = resolve_now(now)
    candidates = (
        db.query(Attempt)
        .join(Test, Attempt.test_id == Test.id)
        .filter(
            Attempt.active.is_(True),
            Attempt.submitted_at.is_(None),
            Attempt.status.in_(list(OPEN_STATUSES)),
            Test.duration_seconds.isnot(None),
        )
        .order_by(Attempt.id)
        .all()
    )
    return [a for a in candidates if a.time_remaining_seconds(now) == 0]


def sweep_expired_attempts(db: Session, now: Optional[datetime] = None) -> List[int]:
    """
    Abandon every open attempt past its duration limit.

    Intended for an externally scheduled job. Attempts submitted between
    the lookup and the abandon are skipped.

    Returns:
        Ids of the attempts that were abandoned
    """
    now = resolve_now(now)
    abandoned = []
    for attempt in find_expired_attempts(db, now):
        try:
            abandon_attempt(db, attempt, now)
        except InvalidStateTransitionError:
            logger.info(
                f"Skipped attempt {attempt.id}: no longer open",
                extra={"attempt_id": attempt.id},
            )
            continue
        abandoned.append(attempt.id)

    if abandoned:
        logger.info(f"Abandoned {len(abandoned)} expired attempt(s)")
    return abandoned


def void_attempt(db: Session, attempt: Attempt) -> Attempt:
    """Soft-delete an attempt so it no longer counts toward the attempt limit."""
    with handle_db_error(db, "void attempt"):
        attempt.active = False
        db.commit()
        db.refresh(attempt)
    logger.info(f"Attempt {attempt.id} voided", extra={"attempt_id": attempt.id})
    return attempt


# =============================================================================
# Grading
# =============================================================================


def auto_grade_attempt(
    db: Session, attempt: Attempt, now: Optional[datetime] = None
) -> int:
    """
    Re-run automatic grading on every answer not graded by hand.

    Returns:
        Number of answers graded

    Raises:
        InvalidStateTransitionError: If the attempt has not been submitted
    """
    now = resolve_now(now)
    with handle_db_error(db, "auto-grade attempt"):
        attempt = _lock_attempt(db, attempt.id)
        _require_gradable(attempt)
        status_before = attempt.status
        graded = _auto_grade_answers(attempt, now)
        recompute_attempt_score(attempt, now)
        db.commit()
        db.refresh(attempt)

    _track_if_graded(attempt, status_before)
    return graded


def manual_grade_answer(
    db: Session,
    answer: StudentAnswer,
    points_earned: Union[Decimal, float, int],
    grader_id: Optional[int],
    feedback: Optional[str] = None,
    now: Optional[datetime] = None,
) -> StudentAnswer:
    """
    Record a grader's points for one answer and re-aggregate the attempt.

    Raises:
        ValidationError: If grader_id is missing or points are not a number
        InvalidStateTransitionError: If the attempt has not been submitted
    """
    now = resolve_now(now)
    with handle_db_error(db, "grade answer"):
        attempt = _lock_attempt(db, answer.attempt_id)
        _require_gradable(attempt)
        status_before = attempt.status
        grading.manual_grade_answer(answer, points_earned, grader_id, feedback, now)
        recompute_attempt_score(attempt, now)
        db.commit()
        db.refresh(answer)

    with graceful_failure("track answer manually graded", logger):
        AnalyticsTracker.track_answer_manually_graded(
            answer.id, attempt.id, grader_id, float(answer.points_earned)
        )
    _track_if_graded(attempt, status_before)
    return answer


def award_partial_credit(
    db: Session,
    answer: StudentAnswer,
    percentage: Union[Decimal, float, int],
    grader_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> StudentAnswer:
    """
    Award a percentage (0-100) of an answer's points and re-aggregate.

    Raises:
        ValidationError: If percentage is not a number
        InvalidStateTransitionError: If the attempt has not been submitted
    """
    now = resolve_now(now)
    with handle_db_error(db, "award partial credit"):
        attempt = _lock_attempt(db, answer.attempt_id)
        _require_gradable(attempt)
        status_before = attempt.status
        grading.award_partial_credit(answer, percentage, grader_id, now)
        recompute_attempt_score(attempt, now)
        db.commit()
        db.refresh(answer)

    _track_if_graded(attempt, status_before)
    return answer


def grade_attempt(
    db: Session,
    attempt: Attempt,
    grades: Iterable[Union[ManualGrade, Dict[str, Any]]],
    grader_id: Optional[int],
    overall_feedback: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Attempt:
    """
    Apply several manual grades and overall feedback in one transaction.

    Raises:
        ValidationError: If a grade names an answer outside the attempt,
            grader_id is missing, or points are not a number
        InvalidStateTransitionError: If the attempt has not been submitted
    """
    try:
        grades = [
            g if isinstance(g, ManualGrade) else ManualGrade.model_validate(g)
            for g in grades
        ]
    except PydanticValidationError as e:
        raise ValidationError(f"Malformed grade: {e.error_count()} error(s).") from e
    if grader_id is None:
        raise ValidationError(ErrorMessages.GRADER_REQUIRED)

    now = resolve_now(now)
    with handle_db_error(db, "grade attempt"):
        attempt = _lock_attempt(db, attempt.id)
        _require_gradable(attempt)
        status_before = attempt.status

        by_id = {a.id: a for a in attempt.answers}
        for grade in grades:
            answer = by_id.get(grade.answer_id)
            if answer is None:
                raise ValidationError(ErrorMessages.ANSWER_OUTSIDE_ATTEMPT)
            grading.manual_grade_answer(
                answer, grade.points_earned, grader_id, grade.feedback, now
            )
        if overall_feedback is not None:
            attempt.feedback = overall_feedback

        recompute_attempt_score(attempt, now)
        db.commit()
        db.refresh(attempt)

    logger.info(
        f"Attempt {attempt.id} graded by {grader_id}: {len(grades)} answer(s)",
        extra={"attempt_id": attempt.id, "grader_id": grader_id},
    )
    _track_if_graded(attempt, status_before)
    return attempt


def recompute_score(
    db: Session, attempt: Attempt, now: Optional[datetime] = None
) -> ScoreBreakdown:
    """Re-aggregate an attempt's score from its current answers and persist it."""
    with handle_db_error(db, "recompute score"):
        attempt = _lock_attempt(db, attempt.id)
        status_before = attempt.status
        breakdown = recompute_attempt_score(attempt, now)
        db.commit()
    _track_if_graded(attempt, status_before)
    return breakdown


def requires_manual_grading(attempt: Attempt) -> bool:
    """Whether any essay answer still waits for a grader."""
    return any(
        answer.question.requires_manual_grading and not answer.manually_graded
        for answer in attempt.answers
    )


# =============================================================================
# Review
# =============================================================================


def build_attempt_review(attempt: Attempt) -> AttemptReview:
    """
    Per-answer review of an attempt in the order the student saw it.

    Correct answers are included only when the test shows them and the
    attempt has been submitted.

    Raises:
        ValidationError: If the test does not allow review
    """
    test = attempt.test
    if not test.allow_review:
        raise ValidationError(ErrorMessages.REVIEW_NOT_ALLOWED)

    reveal = test.show_correct_answers and attempt.status in GRADABLE_STATUSES
    answers_by_question = {a.question_id: a for a in attempt.answers}

    reviews = []
    for question in ordered_questions(attempt):
        answer = answers_by_question.get(question.id)
        if answer is None:
            continue
        selected = set(answer.selected_option_ids or [])
        reviews.append(
            StudentAnswerReview(
                question_id=question.id,
                question_text=question.text,
                question_type=question.question_type,
                response=response_from_columns(question, answer),
                options=[
                    OptionReview(
                        id=option.id,
                        text=option.text,
                        selected=option.id in selected,
                        is_correct=option.is_correct if reveal else None,
                    )
                    for option in ordered_options(attempt, question)
                ],
                points_earned=answer.points_earned,
                points_possible=answer.points_possible,
                is_correct=answer.is_correct,
                manually_graded=answer.manually_graded,
                feedback=answer.feedback,
                correct_answer_boolean=question.correct_answer_boolean if reveal else None,
                correct_answer_text=question.correct_answer_text if reveal else None,
                explanation=question.explanation if reveal else None,
            )
        )

    return AttemptReview(
        attempt=AttemptSummary.model_validate(attempt),
        answers=reviews,
        show_correct_answers=reveal,
    )


# =============================================================================
# Results
# =============================================================================


def list_results(
    db: Session,
    test: Test,
    *,
    student_id: Optional[int] = None,
    status: Optional[Union[AttemptStatus, str]] = None,
    passed: Optional[bool] = None,
) -> List[AttemptResult]:
    """
    Submitted attempts at a test with their scores, most recent first.

    Each result says whether an essay answer still waits for a grader.

    Raises:
        ValidationError: If ``status`` is not a known attempt status
    """
    attempts = submitted_attempts(
        db, test.id, student_id=student_id, status=status, passed=passed
    )
    return [
        AttemptResult(
            **AttemptSummary.model_validate(attempt).model_dump(),
            requires_manual_grading=requires_manual_grading(attempt),
        )
        for attempt in attempts
    ]
