"""
Answer correctness checks per question type.

``check_answer`` is pure: it looks only at the question's correctness
configuration and the response payload. ``validate_response`` enforces the
payload shape before an answer is stored, and the ``*_columns`` helpers map
between payload variants and the typed StudentAnswer columns.
"""
import logging
from typing import Optional

from assessment.core.errors import ErrorMessages, ValidationError
from assessment.models.models import Question, QuestionType, StudentAnswer
from assessment.schemas.responses import (
    AnswerResponse,
    EssayResponse,
    MultipleChoiceResponse,
    ShortAnswerResponse,
    TrueFalseResponse,
)

logger = logging.getLogger(__name__)


def normalize_text(text: str, case_sensitive: bool) -> str:
    """Trim surrounding whitespace and fold case unless ``case_sensitive``."""
    text = text.strip()
    return text if case_sensitive else text.lower()


def _check_multiple_choice(question: Question, response: MultipleChoiceResponse) -> bool:
    selected = set(response.option_ids)
    if not selected:
        return False
    correct = question.correct_option_ids
    if question.allow_multiple:
        # All or nothing: the selection must match the correct set exactly
        return selected == correct
    return len(selected) == 1 and next(iter(selected)) in correct


def _check_true_false(question: Question, response: TrueFalseResponse) -> bool:
    if question.correct_answer_boolean is None:
        return False
    return response.value == question.correct_answer_boolean


def _check_short_answer(question: Question, response: ShortAnswerResponse) -> bool:
    if question.correct_answer_text is None:
        return False
    case_sensitive = bool(question.case_sensitive)
    return normalize_text(response.text, case_sensitive) == normalize_text(
        question.correct_answer_text, case_sensitive
    )


def check_answer(question: Question, response: Optional[AnswerResponse]) -> bool:
    """
    Decide whether a response is correct for a question.

    Args:
        question: Question with its correctness configuration loaded
        response: The student's response, or None when unanswered

    Returns:
        True when correct. Essays always return False because they cannot
        be graded automatically. A missing response or one whose variant
        does not match the question type is incorrect.
    """
    if response is None:
        return False

    question_type = question.question_type
    if question_type == QuestionType.MULTIPLE_CHOICE and isinstance(
        response, MultipleChoiceResponse
    ):
        return _check_multiple_choice(question, response)
    if question_type == QuestionType.TRUE_FALSE and isinstance(
        response, TrueFalseResponse
    ):
        return _check_true_false(question, response)
    if question_type == QuestionType.SHORT_ANSWER and isinstance(
        response, ShortAnswerResponse
    ):
        return _check_short_answer(question, response)
    return False


def validate_response(question: Question, response: AnswerResponse) -> None:
    """
    Reject a payload that cannot be stored as an answer to ``question``.

    Raises:
        ValidationError: If the variant does not match the question type, a
            single-select question receives more than one option, or an
            option id does not belong to the question's active options
    """
    if response.type != question.question_type.value:
        raise ValidationError(ErrorMessages.RESPONSE_TYPE_MISMATCH)

    if isinstance(response, MultipleChoiceResponse):
        if not question.allow_multiple and len(response.option_ids) > 1:
            raise ValidationError(ErrorMessages.SINGLE_SELECT_MULTIPLE)
        known = {option.id for option in question.active_options}
        unknown = set(response.option_ids) - known
        if unknown:
            logger.warning(
                f"Rejected unknown option ids {sorted(unknown)} "
                f"for question {question.id}",
                extra={"question_id": question.id},
            )
            raise ValidationError(ErrorMessages.UNKNOWN_OPTION)


def apply_response_columns(answer: StudentAnswer, response: AnswerResponse) -> None:
    """Write a response payload into the answer's typed columns."""
    answer.selected_option_ids = None
    answer.answer_boolean = None
    answer.answer_text = None

    if isinstance(response, MultipleChoiceResponse):
        answer.selected_option_ids = list(response.option_ids)
    elif isinstance(response, TrueFalseResponse):
        answer.answer_boolean = response.value
    elif isinstance(response, (ShortAnswerResponse, EssayResponse)):
        answer.answer_text = response.text


def response_from_columns(
    question: Question, answer: StudentAnswer
) -> Optional[AnswerResponse]:
    """Rebuild the stored response for ``answer``, or None when unanswered."""
    question_type = question.question_type
    if question_type == QuestionType.MULTIPLE_CHOICE:
        if not answer.selected_option_ids:
            return None
        return MultipleChoiceResponse(option_ids=answer.selected_option_ids)
    if question_type == QuestionType.TRUE_FALSE:
        if answer.answer_boolean is None:
            return None
        return TrueFalseResponse(value=answer.answer_boolean)
    if answer.answer_text is None:
        return None
    if question_type == QuestionType.SHORT_ANSWER:
        return ShortAnswerResponse(text=answer.answer_text)
    return EssayResponse(text=answer.answer_text)
