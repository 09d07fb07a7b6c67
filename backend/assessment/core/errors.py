"""
Domain exceptions and standardized error messages.

Every failure raised by the assessment engine derives from AssessmentError
so callers can catch the whole family at their boundary. Messages are
collected in ErrorMessages to keep wording consistent.

Error Message Format Guidelines:
- Use sentence case (capitalize first letter only)
- End with a period for complete sentences
- Include relevant IDs in parentheses when helpful: "(ID: 123)"

Usage:
    from assessment.core.errors import ErrorMessages, NotFoundError

    if test is None:
        raise NotFoundError(ErrorMessages.test_not_found(test_id))
"""

from typing import Optional


class ErrorMessages:
    """Centralized error message constants and templates.

    Naming Convention:
    - Constants: SCREAMING_SNAKE_CASE for static messages
    - Methods: snake_case for templates that accept parameters
    """

    # ==========================================================================
    # Eligibility
    # ==========================================================================
    TEST_NOT_PUBLISHED = "Test is not published."
    TEST_NOT_AVAILABLE = "Test is not available at this time."
    ATTEMPT_LIMIT_REACHED = "Attempt limit reached for this test."

    # ==========================================================================
    # Attempt lifecycle
    # ==========================================================================
    ATTEMPT_ALREADY_SUBMITTED = "Attempt has already been submitted."
    ATTEMPT_NOT_OPEN = "Attempt is no longer accepting answers."
    ATTEMPT_NOT_SUBMITTED = "Attempt must be submitted before grading."
    ATTEMPT_CONFLICT = (
        "Another attempt was started concurrently. Please try again."
    )
    ANSWER_OUTSIDE_ATTEMPT = "Question does not belong to this attempt."

    # ==========================================================================
    # Validation
    # ==========================================================================
    GRADER_REQUIRED = "A grader is required for manual grading."
    INVALID_POINTS = "Points must be a finite number."
    SINGLE_SELECT_MULTIPLE = "Only one option may be selected for this question."
    UNKNOWN_OPTION = "Selected option does not belong to this question."
    RESPONSE_TYPE_MISMATCH = "Response type does not match the question type."
    PUBLISH_WITHOUT_QUESTIONS = "A test needs at least one active question to be published."
    TEST_HAS_SUBMISSIONS = "Test has submitted attempts and cannot be deleted."
    REORDER_MISMATCH = "Question order must list every active question exactly once."
    REVIEW_NOT_ALLOWED = "Review is not enabled for this test."

    # ==========================================================================
    # Persistence
    # ==========================================================================
    PERSISTENCE_FAILED = "Database operation failed. Please try again later."

    # ==========================================================================
    # Templates
    # ==========================================================================
    @staticmethod
    def test_not_found(test_id: int) -> str:
        return f"Test not found (ID: {test_id})."

    @staticmethod
    def question_not_found(question_id: int) -> str:
        return f"Question not found (ID: {question_id})."

    @staticmethod
    def option_not_found(option_id: int) -> str:
        return f"Answer option not found (ID: {option_id})."

    @staticmethod
    def attempt_not_found(attempt_id: int) -> str:
        return f"Attempt not found (ID: {attempt_id})."

    @staticmethod
    def answer_not_found(answer_id: int) -> str:
        return f"Answer not found (ID: {answer_id})."

    @staticmethod
    def invalid_transition(current: str, target: str) -> str:
        return f"Cannot move attempt from '{current}' to '{target}'."


class AssessmentError(Exception):
    """Base class for all assessment engine errors."""

    default_message = "Assessment operation failed."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AssessmentError):
    """Input violates a precondition (bad ids, wrong payload shape, negative points)."""

    default_message = "Invalid input."


class NotFoundError(AssessmentError):
    """A referenced test, question, option, attempt or answer does not exist."""

    default_message = "Resource not found."


class NotEligibleError(AssessmentError):
    """The student may not start an attempt right now."""

    default_message = "Student is not eligible to take this test."

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        reason: Optional[str] = None,
        remaining_attempts: Optional[int] = None,
    ):
        self.reason = reason
        self.remaining_attempts = remaining_attempts
        super().__init__(message)


class AlreadySubmittedError(AssessmentError):
    """The attempt was submitted before this request reached it."""

    default_message = ErrorMessages.ATTEMPT_ALREADY_SUBMITTED


class InvalidStateTransitionError(AssessmentError):
    """The requested operation is not allowed from the attempt's current status."""

    default_message = "Invalid attempt state transition."

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        current: Optional[str] = None,
        target: Optional[str] = None,
    ):
        self.current = current
        self.target = target
        if message is None and current is not None and target is not None:
            message = ErrorMessages.invalid_transition(current, target)
        super().__init__(message)


class InconsistentStateError(AssessmentError):
    """Stored data contradicts a model invariant."""

    default_message = "Stored assessment data is inconsistent."


class AttemptConflictError(AssessmentError):
    """A concurrent request created the same attempt number first."""

    default_message = ErrorMessages.ATTEMPT_CONFLICT


class PersistenceError(AssessmentError):
    """A database operation failed and the transaction was rolled back.

    Attributes:
        operation_name: Human-readable name of the operation that failed
        original_error: The underlying exception that caused the failure
    """

    default_message = ErrorMessages.PERSISTENCE_FAILED

    def __init__(
        self,
        operation_name: str,
        original_error: Exception,
        message: Optional[str] = None,
    ):
        self.operation_name = operation_name
        self.original_error = original_error
        super().__init__(
            message or f"Failed to {operation_name}: {str(original_error)}"
        )
