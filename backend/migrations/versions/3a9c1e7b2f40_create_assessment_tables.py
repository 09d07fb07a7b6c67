"""create assessment tables

Revision ID: 3a9c1e7b2f40
Revises:
Create Date: 2026-10-19 09:12:44.215803

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from assessment.models.types import IntegerArray

# revision identifiers, used by Alembic.
revision: str = "3a9c1e7b2f40"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

question_type = sa.Enum(
    "MULTIPLE_CHOICE", "TRUE_FALSE", "SHORT_ANSWER", "ESSAY", name="questiontype"
)
attempt_status = sa.Enum(
    "STARTED", "IN_PROGRESS", "SUBMITTED", "GRADED", "ABANDONED", name="attemptstatus"
)


def upgrade() -> None:
    """Create tests, questions, answer_options, attempts and student_answers."""
    op.create_table(
        "tests",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("subject_id", sa.Integer(), nullable=True),
        sa.Column("employee_id", sa.Integer(), nullable=True),
        sa.Column("group_id", sa.Integer(), nullable=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("instructions", sa.Text(), nullable=True),
        sa.Column("duration_seconds", sa.Integer(), nullable=True),
        sa.Column("passing_score", sa.Numeric(5, 2), nullable=True),
        sa.Column("max_score", sa.Numeric(10, 2), nullable=False),
        sa.Column("question_count", sa.Integer(), nullable=False),
        sa.Column("attempt_limit", sa.Integer(), nullable=False),
        sa.Column("shuffle_questions", sa.Boolean(), nullable=False),
        sa.Column("shuffle_answers", sa.Boolean(), nullable=False),
        sa.Column("show_correct_answers", sa.Boolean(), nullable=False),
        sa.Column("allow_review", sa.Boolean(), nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_published", sa.Boolean(), nullable=False),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("attempt_limit >= 1", name="ck_tests_attempt_limit_positive"),
        sa.CheckConstraint(
            "duration_seconds IS NULL OR duration_seconds > 0",
            name="ck_tests_duration_positive",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_tests_id", "tests", ["id"])
    op.create_index("ix_tests_subject_id", "tests", ["subject_id"])
    op.create_index("ix_tests_employee_id", "tests", ["employee_id"])
    op.create_index("ix_tests_group_id", "tests", ["group_id"])
    op.create_index("ix_tests_is_published", "tests", ["is_published"])
    op.create_index("ix_tests_active", "tests", ["active"])

    op.create_table(
        "questions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("test_id", sa.Integer(), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("question_type", question_type, nullable=False),
        sa.Column("points", sa.Numeric(10, 2), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("is_required", sa.Boolean(), nullable=False),
        sa.Column("explanation", sa.Text(), nullable=True),
        sa.Column("allow_multiple", sa.Boolean(), nullable=False),
        sa.Column("correct_answer_boolean", sa.Boolean(), nullable=True),
        sa.Column("correct_answer_text", sa.Text(), nullable=True),
        sa.Column("case_sensitive", sa.Boolean(), nullable=False),
        sa.Column("word_limit", sa.Integer(), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("points >= 0", name="ck_questions_points_non_negative"),
        sa.ForeignKeyConstraint(["test_id"], ["tests.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_questions_id", "questions", ["id"])
    op.create_index("ix_questions_test_id", "questions", ["test_id"])
    op.create_index("ix_questions_test_position", "questions", ["test_id", "position"])

    op.create_table(
        "answer_options",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("question_id", sa.Integer(), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("is_correct", sa.Boolean(), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(["question_id"], ["questions.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_answer_options_id", "answer_options", ["id"])
    op.create_index("ix_answer_options_question_id", "answer_options", ["question_id"])

    op.create_table(
        "attempts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("test_id", sa.Integer(), nullable=False),
        sa.Column("student_id", sa.Integer(), nullable=False),
        sa.Column("attempt_number", sa.Integer(), nullable=False),
        sa.Column("status", attempt_status, nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("graded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("duration_seconds", sa.Integer(), nullable=True),
        sa.Column("auto_graded_score", sa.Numeric(10, 2), nullable=False),
        sa.Column("manual_graded_score", sa.Numeric(10, 2), nullable=False),
        sa.Column("total_score", sa.Numeric(10, 2), nullable=False),
        sa.Column("max_score", sa.Numeric(10, 2), nullable=False),
        sa.Column("percentage", sa.Numeric(5, 2), nullable=True),
        sa.Column("passed", sa.Boolean(), nullable=True),
        sa.Column("feedback", sa.Text(), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("attempt_number >= 1", name="ck_attempts_number_positive"),
        sa.ForeignKeyConstraint(["test_id"], ["tests.id"]),
        sa.PrimaryKeyConstraint("id"),
        # Last-resort guard against two concurrent starts taking the same number
        sa.UniqueConstraint(
            "test_id", "student_id", "attempt_number", name="uq_attempt_number"
        ),
    )
    op.create_index("ix_attempts_id", "attempts", ["id"])
    op.create_index("ix_attempts_student_id", "attempts", ["student_id"])
    op.create_index("ix_attempts_status", "attempts", ["status"])
    op.create_index("ix_attempts_test_student", "attempts", ["test_id", "student_id"])
    op.create_index("ix_attempts_test_status", "attempts", ["test_id", "status"])

    op.create_table(
        "student_answers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("attempt_id", sa.Integer(), nullable=False),
        sa.Column("question_id", sa.Integer(), nullable=False),
        sa.Column("selected_option_ids", IntegerArray(), nullable=True),
        sa.Column("answer_boolean", sa.Boolean(), nullable=True),
        sa.Column("answer_text", sa.Text(), nullable=True),
        sa.Column("points_earned", sa.Numeric(10, 2), nullable=False),
        sa.Column("points_possible", sa.Numeric(10, 2), nullable=False),
        sa.Column("is_correct", sa.Boolean(), nullable=True),
        sa.Column("manually_graded", sa.Boolean(), nullable=False),
        sa.Column("graded_by_employee_id", sa.Integer(), nullable=True),
        sa.Column("graded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("answered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("feedback", sa.Text(), nullable=True),
        sa.CheckConstraint("points_earned >= 0", name="ck_answers_earned_non_negative"),
        sa.CheckConstraint(
            "points_earned <= points_possible", name="ck_answers_earned_le_possible"
        ),
        sa.CheckConstraint(
            "NOT manually_graded OR graded_by_employee_id IS NOT NULL",
            name="ck_answers_manual_grader",
        ),
        sa.ForeignKeyConstraint(["attempt_id"], ["attempts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["question_id"], ["questions.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("attempt_id", "question_id", name="uq_answer_per_question"),
    )
    op.create_index("ix_student_answers_id", "student_answers", ["id"])
    op.create_index("ix_student_answers_attempt_id", "student_answers", ["attempt_id"])
    op.create_index("ix_student_answers_question_id", "student_answers", ["question_id"])


def downgrade() -> None:
    """Drop all assessment tables and enum types."""
    op.drop_table("student_answers")
    op.drop_table("attempts")
    op.drop_table("answer_options")
    op.drop_table("questions")
    op.drop_table("tests")
    attempt_status.drop(op.get_bind(), checkfirst=True)
    question_type.drop(op.get_bind(), checkfirst=True)
