"""
Tests for test, question and answer option management.
"""
from datetime import timedelta
from decimal import Decimal

import pytest

from assessment.core.errors import NotFoundError, ValidationError
from assessment.models.models import QuestionType, WindowStatus
from assessment.schemas.tests import (
    AnswerOptionCreate,
    AnswerOptionUpdate,
    QuestionUpdate,
    TestCreate,
    TestUpdate,
)
from assessment.services import attempt_service, test_service


class TestCreateAndPublish:
    """Tests for creating, publishing and deleting tests."""

    def test_create_computes_totals(self, db_session, make_test, questions):
        test = make_test(
            [questions.multiple_choice(points="2"), questions.essay(points="3.5")],
            publish=False,
        )

        assert test.id is not None
        assert test.is_published is False
        assert test.question_count == 2
        assert test.max_score == Decimal("5.5")
        assert [q.position for q in test.active_questions] == [0, 1]
        assert len(test.active_questions[0].active_options) == 4

    def test_publish_sets_timestamp(self, db_session, make_test, now):
        test = make_test(publish=False)

        test_service.publish_test(db_session, test, now=now)

        assert test.is_published is True
        assert test.published_at is not None

    def test_publish_without_questions_rejected(self, db_session):
        test = test_service.create_test(db_session, TestCreate(title="Empty"))

        with pytest.raises(ValidationError):
            test_service.publish_test(db_session, test)

        db_session.refresh(test)
        assert test.is_published is False

    def test_unpublish(self, db_session, make_test):
        test = make_test()

        test_service.unpublish_test(db_session, test)

        assert test.is_published is False
        assert test.published_at is None

    def test_update_fields(self, db_session, make_test):
        test = make_test()

        test_service.update_test(
            db_session, test, TestUpdate(title="Final Exam", attempt_limit=3)
        )

        assert test.title == "Final Exam"
        assert test.attempt_limit == 3

    def test_update_rejects_inverted_window(self, db_session, make_test, now):
        test = make_test(start_date=now)

        with pytest.raises(ValidationError):
            test_service.update_test(
                db_session, test, TestUpdate(end_date=now - timedelta(days=1))
            )

        db_session.refresh(test)
        assert test.end_date is None

    def test_delete_is_soft(self, db_session, make_test):
        test = make_test()

        test_service.delete_test(db_session, test)

        assert test.active is False
        with pytest.raises(NotFoundError):
            test_service.get_test(db_session, test.id)

    def test_delete_with_submissions_rejected(self, db_session, make_test, now):
        test = make_test()
        attempt = attempt_service.start_attempt(db_session, test.id, 1, now=now)
        attempt_service.submit_attempt(db_session, attempt, now=now)

        with pytest.raises(ValidationError):
            test_service.delete_test(db_session, test)

        assert test_service.get_test(db_session, test.id).active is True


class TestListTests:
    """Tests for test_service.list_tests."""

    def test_filters_by_owner_fields(self, db_session, make_test):
        algebra = make_test(title="Algebra", subject_id=1, employee_id=10, group_id=100)
        make_test(title="Biology", subject_id=2, employee_id=10, group_id=200)
        make_test(title="Chemistry", subject_id=3, employee_id=20, group_id=100)

        assert [t.id for t in test_service.list_tests(db_session, subject_id=1)] == [
            algebra.id
        ]
        assert {t.title for t in test_service.list_tests(db_session, employee_id=10)} == {
            "Algebra",
            "Biology",
        }
        assert {t.title for t in test_service.list_tests(db_session, group_id=100)} == {
            "Algebra",
            "Chemistry",
        }

    def test_newest_first_and_deleted_hidden(self, db_session, make_test):
        first = make_test(title="First")
        second = make_test(title="Second")
        deleted = make_test(title="Deleted")
        test_service.delete_test(db_session, deleted)

        listed = test_service.list_tests(db_session)

        assert [t.id for t in listed] == [second.id, first.id]

    def test_filter_by_published(self, db_session, make_test):
        published = make_test(title="Live")
        draft = make_test(title="Draft", publish=False)

        assert [t.id for t in test_service.list_tests(db_session, is_published=True)] == [
            published.id
        ]
        assert [t.id for t in test_service.list_tests(db_session, is_published=False)] == [
            draft.id
        ]

    def test_filter_by_window_status(self, db_session, make_test, now):
        open_ended = make_test(title="Open ended")
        upcoming = make_test(title="Upcoming", start_date=now + timedelta(days=1))
        expired = make_test(
            title="Expired",
            start_date=now - timedelta(days=7),
            end_date=now - timedelta(days=1),
        )

        def titles(status):
            return {t.title for t in test_service.list_tests(db_session, status=status, now=now)}

        assert titles("available") == {open_ended.title}
        assert titles(WindowStatus.UPCOMING) == {upcoming.title}
        assert titles("expired") == {expired.title}

    def test_unknown_status_rejected(self, db_session):
        with pytest.raises(ValidationError):
            test_service.list_tests(db_session, status="archived")


class TestQuestions:
    """Tests for question management."""

    def test_add_question_appends_and_updates_totals(
        self, db_session, make_test, questions
    ):
        test = make_test(publish=False)

        question = test_service.add_question(db_session, test, questions.true_false(points="4"))

        assert question.position == 1
        assert test.question_count == 2
        assert test.max_score == Decimal("6")

    def test_update_question_points(self, db_session, make_test):
        test = make_test(publish=False)
        question = test.active_questions[0]

        test_service.update_question(db_session, question, QuestionUpdate(points=Decimal("5")))

        assert test.max_score == Decimal("5")

    def test_update_question_rejects_field_of_other_type(self, db_session, make_test):
        test = make_test(publish=False)
        question = test.active_questions[0]

        with pytest.raises(ValidationError, match="correct_answer_text"):
            test_service.update_question(
                db_session, question, QuestionUpdate(correct_answer_text="paris")
            )

    def test_remove_question_is_soft(self, db_session, make_test, questions):
        test = make_test([questions.multiple_choice(), questions.essay(points="3")])
        essay = test.active_questions[1]

        test_service.remove_question(db_session, essay)

        assert essay.active is False
        assert test.question_count == 1
        assert test.max_score == Decimal("2")
        with pytest.raises(NotFoundError):
            test_service.get_question(db_session, essay.id)

    def test_last_question_of_published_test_cannot_be_removed(
        self, db_session, make_test
    ):
        test = make_test()
        only = test.active_questions[0]

        with pytest.raises(ValidationError, match="at least one active question"):
            test_service.remove_question(db_session, only)

        db_session.refresh(test)
        assert test.is_published is True
        assert [q.id for q in test.active_questions] == [only.id]
        assert test.question_count == 1

    def test_last_question_of_draft_can_be_removed(self, db_session, make_test):
        test = make_test(publish=False)

        test_service.remove_question(db_session, test.active_questions[0])

        assert test.active_questions == []
        assert test.question_count == 0

    def test_clearing_short_answer_text_rejected(self, db_session, make_test, questions):
        test = make_test([questions.short_answer(answer="paris")], publish=False)
        question = test.active_questions[0]

        with pytest.raises(ValidationError, match="need correct_answer_text"):
            test_service.update_question(
                db_session, question, QuestionUpdate(correct_answer_text=None)
            )

        db_session.refresh(question)
        assert question.correct_answer_text == "paris"

    def test_clearing_true_false_answer_rejected(self, db_session, make_test, questions):
        test = make_test([questions.true_false(correct=False)], publish=False)
        question = test.active_questions[0]

        with pytest.raises(ValidationError, match="need correct_answer_boolean"):
            test_service.update_question(
                db_session, question, QuestionUpdate(correct_answer_boolean=None)
            )

        db_session.refresh(question)
        assert question.correct_answer_boolean is False

    def test_duplicate_question_goes_last(self, db_session, make_test, questions):
        test = make_test([questions.multiple_choice(), questions.essay()], publish=False)
        source = test.active_questions[0]

        copy = test_service.duplicate_question(db_session, source)

        assert copy.id != source.id
        assert copy.position == 2
        assert copy.text == source.text
        assert [o.text for o in copy.active_options] == [o.text for o in source.active_options]
        assert {o.id for o in copy.options}.isdisjoint({o.id for o in source.options})
        assert test.question_count == 3

    def test_reorder(self, db_session, make_test, questions):
        test = make_test(
            [questions.multiple_choice(), questions.true_false(), questions.essay()],
            publish=False,
        )
        mc, tf, essay = test.active_questions

        ordered = test_service.reorder_questions(db_session, test, [essay.id, mc.id, tf.id])

        assert [q.id for q in ordered] == [essay.id, mc.id, tf.id]
        assert [q.position for q in ordered] == [0, 1, 2]

    def test_reorder_requires_every_question_once(self, db_session, make_test, questions):
        test = make_test([questions.multiple_choice(), questions.true_false()], publish=False)
        mc, _ = test.active_questions

        with pytest.raises(ValidationError):
            test_service.reorder_questions(db_session, test, [mc.id, mc.id])
        with pytest.raises(ValidationError):
            test_service.reorder_questions(db_session, test, [mc.id])


class TestAnswerOptions:
    """Tests for answer option management."""

    def test_add_correct_option_to_single_select_unmarks_others(
        self, db_session, make_test
    ):
        test = make_test(publish=False)
        question = test.active_questions[0]

        option = test_service.add_answer_option(
            db_session, question, AnswerOptionCreate(text="New", is_correct=True)
        )

        assert option.position == 4
        assert question.correct_option_ids == frozenset({option.id})

    def test_multi_select_keeps_other_correct_options(
        self, db_session, make_test, questions
    ):
        test = make_test(
            [questions.multiple_choice(correct=(0, 1), allow_multiple=True)], publish=False
        )
        question = test.active_questions[0]
        third = question.active_options[2]

        test_service.update_answer_option(
            db_session, third, AnswerOptionUpdate(is_correct=True)
        )

        assert len(question.correct_option_ids) == 3

    def test_options_only_for_multiple_choice(self, db_session, make_test, questions):
        test = make_test([questions.true_false()], publish=False)
        question = test.active_questions[0]
        assert question.question_type == QuestionType.TRUE_FALSE

        with pytest.raises(ValidationError):
            test_service.add_answer_option(
                db_session, question, AnswerOptionCreate(text="Maybe")
            )

    def test_remove_option_is_soft(self, db_session, make_test):
        test = make_test(publish=False)
        question = test.active_questions[0]
        option = question.active_options[3]

        test_service.remove_answer_option(db_session, option)

        assert len(question.active_options) == 3
        with pytest.raises(NotFoundError):
            test_service.get_answer_option(db_session, option.id)

    def test_unmarking_only_correct_option_rejected(self, db_session, make_test):
        test = make_test(publish=False)
        question = test.active_questions[0]
        correct = question.active_options[0]

        with pytest.raises(ValidationError, match="need a correct option"):
            test_service.update_answer_option(
                db_session, correct, AnswerOptionUpdate(is_correct=False)
            )

        db_session.refresh(correct)
        assert correct.is_correct is True

    def test_unmarking_one_of_several_correct_options(
        self, db_session, make_test, questions
    ):
        test = make_test(
            [questions.multiple_choice(correct=(0, 1), allow_multiple=True)], publish=False
        )
        question = test.active_questions[0]
        first = question.active_options[0]

        test_service.update_answer_option(
            db_session, first, AnswerOptionUpdate(is_correct=False)
        )

        assert question.correct_option_ids == frozenset({question.active_options[1].id})

    def test_removing_correct_option_rejected(self, db_session, make_test):
        test = make_test(publish=False)
        question = test.active_questions[0]
        correct = question.active_options[0]

        with pytest.raises(ValidationError, match="need a correct option"):
            test_service.remove_answer_option(db_session, correct)

        db_session.refresh(question)
        assert len(question.active_options) == 4

    def test_removing_down_to_one_option_rejected(self, db_session, make_test, questions):
        test = make_test([questions.multiple_choice(option_count=2)], publish=False)
        question = test.active_questions[0]
        wrong = question.active_options[1]

        with pytest.raises(ValidationError, match="at least two options"):
            test_service.remove_answer_option(db_session, wrong)

        assert test_service.get_answer_option(db_session, wrong.id).active is True
