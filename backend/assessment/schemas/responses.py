"""
Pydantic schemas for student answer payloads.

A response is a tagged union keyed by ``type``, which names the question
type it answers. Storage keeps one nullable column per payload shape on
StudentAnswer; see ``assessment.core.answer_checker`` for the conversion.
"""
from typing import Annotated, Any, List, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator


class MultipleChoiceResponse(BaseModel):
    """Selected answer option ids for a multiple-choice question."""

    type: Literal["multiple_choice"] = "multiple_choice"
    option_ids: List[int] = Field(
        default_factory=list, description="Ids of the selected answer options"
    )

    @field_validator("option_ids")
    @classmethod
    def dedupe_option_ids(cls, v: List[int]) -> List[int]:
        """Selections are a set; keep a stable, duplicate-free order."""
        return sorted(set(v))


class TrueFalseResponse(BaseModel):
    """Boolean answer for a true/false question."""

    type: Literal["true_false"] = "true_false"
    value: bool = Field(..., description="The student's true/false answer")


class ShortAnswerResponse(BaseModel):
    """Free-text answer compared against the expected text."""

    type: Literal["short_answer"] = "short_answer"
    text: str = Field(..., description="The student's answer text")


class EssayResponse(BaseModel):
    """Essay text, graded manually."""

    type: Literal["essay"] = "essay"
    text: str = Field(..., description="The student's essay text")


AnswerResponse = Annotated[
    Union[
        MultipleChoiceResponse,
        TrueFalseResponse,
        ShortAnswerResponse,
        EssayResponse,
    ],
    Field(discriminator="type"),
]

_response_adapter: TypeAdapter = TypeAdapter(AnswerResponse)


def parse_response(data: Any) -> AnswerResponse:
    """
    Validate raw payload data into one of the response variants.

    Args:
        data: A mapping with a ``type`` key, or an already-built response

    Raises:
        pydantic.ValidationError: If the payload does not match any variant
    """
    if isinstance(
        data,
        (MultipleChoiceResponse, TrueFalseResponse, ShortAnswerResponse, EssayResponse),
    ):
        return data
    return _response_adapter.validate_python(data)
