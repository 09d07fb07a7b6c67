"""
Deep copies of tests and questions.

Copies are built in memory and attached to their new parents through the
ORM relationships; the caller adds them to a session and commits. Ids are
assigned on flush, so every copy gets fresh ids and foreign keys point at
the new parents. Soft-deleted questions and options are not copied.
"""
import logging
from typing import Optional

from assessment.core.config import settings
from assessment.models.models import AnswerOption, Question, QuestionType, Test

logger = logging.getLogger(__name__)

# Columns copied verbatim from the source test
TEST_COPY_FIELDS = (
    "subject_id",
    "employee_id",
    "group_id",
    "description",
    "instructions",
    "duration_seconds",
    "passing_score",
    "max_score",
    "question_count",
    "attempt_limit",
    "shuffle_questions",
    "shuffle_answers",
    "show_correct_answers",
    "allow_review",
    "start_date",
    "end_date",
)

QUESTION_COPY_FIELDS = (
    "text",
    "question_type",
    "points",
    "position",
    "is_required",
    "explanation",
    "allow_multiple",
    "correct_answer_boolean",
    "correct_answer_text",
    "case_sensitive",
    "word_limit",
)


def copy_answer_option(option: AnswerOption) -> AnswerOption:
    return AnswerOption(
        text=option.text,
        position=option.position,
        is_correct=option.is_correct,
        active=True,
    )


def copy_question(question: Question, position: Optional[int] = None) -> Question:
    """
    Build an unattached copy of a question and its active options.

    Args:
        question: Source question
        position: Position for the copy; defaults to the source position
    """
    new_question = Question(active=True)
    for field in QUESTION_COPY_FIELDS:
        setattr(new_question, field, getattr(question, field))
    if position is not None:
        new_question.position = position

    if question.question_type == QuestionType.MULTIPLE_CHOICE:
        new_question.options = [
            copy_answer_option(option) for option in question.active_options
        ]
    return new_question


def duplicate_question(question: Question) -> Question:
    """
    Copy a question into its own test, placed after the last question.
    """
    test = question.test
    last_position = max((q.position for q in test.active_questions), default=-1)
    new_question = copy_question(question, position=last_position + 1)
    test.questions.append(new_question)
    return new_question


def duplicate_test(test: Test) -> Test:
    """
    Build a deep copy of a test.

    The copy is unpublished, its title carries DUPLICATE_TITLE_SUFFIX, and
    it holds a copy of every active question with order and correctness
    configuration preserved.
    """
    new_test = Test(
        title=f"{test.title}{settings.DUPLICATE_TITLE_SUFFIX}",
        is_published=False,
        published_at=None,
        active=True,
    )
    for field in TEST_COPY_FIELDS:
        setattr(new_test, field, getattr(test, field))

    new_test.questions = [copy_question(q) for q in test.active_questions]

    logger.debug(
        f"Built copy of test {test.id} with {len(new_test.questions)} questions",
        extra={"test_id": test.id},
    )
    return new_test
