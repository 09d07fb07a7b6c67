"""
Tests for per-type answer correctness checks.

These tests build ORM objects in memory; no database is involved.
"""
from decimal import Decimal

import pytest

from assessment.core.answer_checker import (
    apply_response_columns,
    check_answer,
    normalize_text,
    response_from_columns,
    validate_response,
)
from assessment.core.errors import ValidationError
from assessment.models.models import AnswerOption, Question, QuestionType, StudentAnswer
from assessment.schemas.responses import (
    EssayResponse,
    MultipleChoiceResponse,
    ShortAnswerResponse,
    TrueFalseResponse,
)


def build_mc_question(correct_ids=(1,), allow_multiple=False, option_ids=(1, 2, 3, 4)):
    question = Question(
        id=10,
        text="Pick one",
        question_type=QuestionType.MULTIPLE_CHOICE,
        points=Decimal("2"),
        allow_multiple=allow_multiple,
        active=True,
    )
    question.options = [
        AnswerOption(id=oid, text=f"Option {oid}", is_correct=oid in correct_ids, active=True)
        for oid in option_ids
    ]
    return question


def build_question(question_type, **fields):
    fields.setdefault("points", Decimal("1"))
    return Question(id=20, text="Q", question_type=question_type, active=True, **fields)


class TestMultipleChoice:
    """Tests for single- and multi-select checks."""

    def test_single_select_correct(self):
        question = build_mc_question(correct_ids=(2,))
        assert check_answer(question, MultipleChoiceResponse(option_ids=[2])) is True

    def test_single_select_wrong(self):
        question = build_mc_question(correct_ids=(2,))
        assert check_answer(question, MultipleChoiceResponse(option_ids=[3])) is False

    def test_single_select_with_two_ids_is_incorrect(self):
        """A single-select question never accepts more than one selection."""
        question = build_mc_question(correct_ids=(2,))
        assert check_answer(question, MultipleChoiceResponse(option_ids=[2, 3])) is False

    def test_multi_select_exact_set(self):
        question = build_mc_question(correct_ids=(1, 3), allow_multiple=True)
        assert check_answer(question, MultipleChoiceResponse(option_ids=[3, 1])) is True

    def test_multi_select_superset_scores_zero(self):
        """Selecting {A, B} when only {A} is correct is wrong, not partial."""
        question = build_mc_question(correct_ids=(1,), allow_multiple=True)
        assert check_answer(question, MultipleChoiceResponse(option_ids=[1, 2])) is False

    def test_multi_select_subset_is_wrong(self):
        question = build_mc_question(correct_ids=(1, 3), allow_multiple=True)
        assert check_answer(question, MultipleChoiceResponse(option_ids=[1])) is False

    def test_empty_selection_is_wrong(self):
        question = build_mc_question(correct_ids=(1,), allow_multiple=True)
        assert check_answer(question, MultipleChoiceResponse(option_ids=[])) is False

    def test_inactive_correct_option_is_ignored(self):
        question = build_mc_question(correct_ids=(1, 2), allow_multiple=True)
        question.options[1].active = False
        assert question.correct_option_ids == frozenset({1})
        assert check_answer(question, MultipleChoiceResponse(option_ids=[1])) is True


class TestTrueFalse:
    """Tests for boolean answers."""

    @pytest.mark.parametrize("expected", [True, False])
    def test_matching_value(self, expected):
        question = build_question(QuestionType.TRUE_FALSE, correct_answer_boolean=expected)
        assert check_answer(question, TrueFalseResponse(value=expected)) is True
        assert check_answer(question, TrueFalseResponse(value=not expected)) is False


class TestShortAnswer:
    """Tests for trimmed, optionally case-folded text comparison."""

    def test_case_insensitive_trimmed_match(self):
        """' Paris ' matches 'paris' when case does not matter."""
        question = build_question(
            QuestionType.SHORT_ANSWER, correct_answer_text="paris", case_sensitive=False
        )
        assert check_answer(question, ShortAnswerResponse(text=" Paris ")) is True

    def test_case_sensitive_mismatch(self):
        question = build_question(
            QuestionType.SHORT_ANSWER, correct_answer_text="paris", case_sensitive=True
        )
        assert check_answer(question, ShortAnswerResponse(text="Paris")) is False
        assert check_answer(question, ShortAnswerResponse(text="  paris\n")) is True

    def test_no_partial_matching(self):
        question = build_question(
            QuestionType.SHORT_ANSWER, correct_answer_text="paris", case_sensitive=False
        )
        assert check_answer(question, ShortAnswerResponse(text="paris, france")) is False

    def test_normalize_text(self):
        assert normalize_text("  MiXeD ", case_sensitive=False) == "mixed"
        assert normalize_text("  MiXeD ", case_sensitive=True) == "MiXeD"


class TestUngradable:
    """Tests for responses that are never correct."""

    def test_essay_is_never_auto_correct(self):
        question = build_question(QuestionType.ESSAY)
        assert check_answer(question, EssayResponse(text="A brilliant essay")) is False

    def test_missing_response_is_incorrect(self):
        question = build_question(QuestionType.TRUE_FALSE, correct_answer_boolean=True)
        assert check_answer(question, None) is False

    def test_mismatched_variant_is_incorrect(self):
        question = build_question(QuestionType.TRUE_FALSE, correct_answer_boolean=True)
        assert check_answer(question, ShortAnswerResponse(text="true")) is False


class TestValidateResponse:
    """Tests for payload validation before an answer is stored."""

    def test_type_mismatch(self):
        question = build_question(QuestionType.TRUE_FALSE, correct_answer_boolean=True)
        with pytest.raises(ValidationError):
            validate_response(question, ShortAnswerResponse(text="yes"))

    def test_single_select_rejects_multiple_ids(self):
        question = build_mc_question()
        with pytest.raises(ValidationError, match="Only one option"):
            validate_response(question, MultipleChoiceResponse(option_ids=[1, 2]))

    def test_unknown_option_rejected(self):
        question = build_mc_question()
        with pytest.raises(ValidationError, match="does not belong"):
            validate_response(question, MultipleChoiceResponse(option_ids=[99]))

    def test_valid_multi_select(self):
        question = build_mc_question(correct_ids=(1, 2), allow_multiple=True)
        validate_response(question, MultipleChoiceResponse(option_ids=[1, 2]))


class TestResponseColumns:
    """Tests for mapping payloads onto StudentAnswer columns."""

    def test_apply_clears_other_columns(self):
        answer = StudentAnswer(answer_text="old", answer_boolean=True)
        apply_response_columns(answer, MultipleChoiceResponse(option_ids=[3, 1, 3]))
        assert answer.selected_option_ids == [1, 3]
        assert answer.answer_text is None
        assert answer.answer_boolean is None

    def test_unanswered_reads_back_as_none(self):
        question = build_question(QuestionType.SHORT_ANSWER, correct_answer_text="x")
        assert response_from_columns(question, StudentAnswer()) is None

    def test_essay_reads_back_as_essay(self):
        question = build_question(QuestionType.ESSAY)
        answer = StudentAnswer(answer_text="My essay")
        response = response_from_columns(question, answer)
        assert isinstance(response, EssayResponse)
        assert response.text == "My essay"
