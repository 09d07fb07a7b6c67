"""
Question and option ordering for delivery to a student.

When a test shuffles questions or answers, the order is derived from a
random generator seeded with the attempt id, so the same attempt always
sees the same order across requests.
"""
import random
from typing import List

from assessment.models.models import AnswerOption, Attempt, Question


def _seed(attempt_id: int, salt: int = 0) -> int:
    return attempt_id * 1_000_003 + salt


def ordered_questions(attempt: Attempt) -> List[Question]:
    """Active questions of the attempt's test in the order shown to the student."""
    questions = list(attempt.test.active_questions)
    if attempt.test.shuffle_questions:
        random.Random(_seed(attempt.id)).shuffle(questions)
    return questions


def ordered_options(attempt: Attempt, question: Question) -> List[AnswerOption]:
    """Active options of ``question`` in the order shown for this attempt."""
    options = list(question.active_options)
    if attempt.test.shuffle_answers:
        random.Random(_seed(attempt.id, question.id)).shuffle(options)
    return options
