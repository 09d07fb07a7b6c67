"""
Pydantic schemas for answer payloads, test management and results.
"""
from .responses import (
    AnswerResponse,
    MultipleChoiceResponse,
    TrueFalseResponse,
    ShortAnswerResponse,
    EssayResponse,
    parse_response,
)
from .tests import (
    TestCreate,
    TestUpdate,
    QuestionCreate,
    QuestionUpdate,
    AnswerOptionCreate,
    AnswerOptionUpdate,
)
from .attempts import (
    AttemptSummary,
    AttemptResult,
    AttemptReview,
    StudentAnswerReview,
    OptionReview,
    ManualGrade,
)

__all__ = [
    "AnswerResponse",
    "MultipleChoiceResponse",
    "TrueFalseResponse",
    "ShortAnswerResponse",
    "EssayResponse",
    "parse_response",
    "TestCreate",
    "TestUpdate",
    "QuestionCreate",
    "QuestionUpdate",
    "AnswerOptionCreate",
    "AnswerOptionUpdate",
    "AttemptSummary",
    "AttemptResult",
    "AttemptReview",
    "StudentAnswerReview",
    "OptionReview",
    "ManualGrade",
]
