"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-18 00:00:00

"""
from alembic import op
import sqlalchemy as sa


revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(128), nullable=False),
        sa.Column("role", sa.String(10), nullable=False),
        sa.Column("first_name", sa.String(50), nullable=False),
        sa.Column("last_name", sa.String(50), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("role IN ('student', 'teacher', 'admin')", name="ck_users_role"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "tasks",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("course_id", sa.Integer(), nullable=True),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("max_score", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("max_score > 0", name="ck_tasks_max_score"),
    )
    op.create_index("ix_tasks_course_id", "tasks", ["course_id"])

    op.create_table(
        "task_criteria",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "task_id",
            sa.Integer(),
            sa.ForeignKey("tasks.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("criterion_name", sa.String(100), nullable=False),
        sa.Column("criterion_description", sa.Text(), nullable=False),
        sa.Column("is_mandatory", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("weight", sa.Integer(), nullable=False, server_default="10"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("weight BETWEEN 1 AND 100", name="ck_task_criteria_weight"),
    )
    op.create_index("ix_task_criteria_task_id", "task_criteria", ["task_id"])

    op.create_table(
        "submissions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "student_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "task_id",
            sa.Integer(),
            sa.ForeignKey("tasks.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("submission_type", sa.String(20), nullable=False, server_default="code"),
        sa.Column("code", sa.Text(), nullable=True),
        sa.Column("github_url", sa.String(255), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("score", sa.Numeric(5, 2), nullable=True),
        sa.Column("review_attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_review_error", sa.Text(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint(
            "(submission_type = 'code' AND code IS NOT NULL AND github_url IS NULL) OR "
            "(submission_type = 'github_link' AND github_url IS NOT NULL AND code IS NULL)",
            name="ck_submissions_payload",
        ),
        sa.CheckConstraint(
            "status IN ('pending', 'ai_reviewed', 'teacher_reviewed', 'resubmitted', 'accepted')",
            name="ck_submissions_status",
        ),
    )
    op.create_index("ix_submissions_student_id", "submissions", ["student_id"])
    op.create_index("ix_submissions_task_id", "submissions", ["task_id"])
    op.create_index("ix_submissions_status", "submissions", ["status"])
    op.create_index("ix_submissions_submitted_at", "submissions", ["submitted_at"])

    op.create_table(
        "code_reviews",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "submission_id",
            sa.Integer(),
            sa.ForeignKey("submissions.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("ai_model", sa.String(50), nullable=False),
        sa.Column("overall_status", sa.String(20), nullable=False),
        sa.Column("ai_confidence", sa.Numeric(3, 2), nullable=True),
        sa.Column("execution_time_ms", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint(
            "overall_status IN ('passed', 'failed', 'needs_improvement')",
            name="ck_code_reviews_overall_status",
        ),
        sa.CheckConstraint("ai_confidence BETWEEN 0 AND 1", name="ck_code_reviews_ai_confidence"),
    )

    op.create_table(
        "review_feedback",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "review_id",
            sa.Integer(),
            sa.ForeignKey("code_reviews.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("feedback_type", sa.String(20), nullable=False),
        sa.Column("file_path", sa.String(500), nullable=True),
        sa.Column("line_start", sa.Integer(), nullable=False),
        sa.Column("line_end", sa.Integer(), nullable=True),
        sa.Column("code_snippet", sa.Text(), nullable=False),
        sa.Column("suggested_fix", sa.Text(), nullable=True),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("severity", sa.Integer(), nullable=False, server_default="3"),
        sa.Column("is_resolved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("teacher_comment", sa.Text(), nullable=True),
        sa.Column("teacher_approved", sa.Boolean(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint(
            "feedback_type IN ('critical_error', 'logic_error', 'style_issue', "
            "'performance', 'security_risk', 'improvement')",
            name="ck_review_feedback_type",
        ),
        sa.CheckConstraint("severity BETWEEN 1 AND 5", name="ck_review_feedback_severity"),
        sa.CheckConstraint("line_start > 0", name="ck_review_feedback_line_start"),
        sa.CheckConstraint(
            "line_end IS NULL OR line_end >= line_start", name="ck_review_feedback_line_end"
        ),
    )
    op.create_index("ix_review_feedback_review_id", "review_feedback", ["review_id"])
    op.create_index("ix_review_feedback_severity", "review_feedback", ["severity"])


def downgrade() -> None:
    op.drop_table("review_feedback")
    op.drop_table("code_reviews")
    op.drop_table("submissions")
    op.drop_table("task_criteria")
    op.drop_table("tasks")
    op.drop_table("users")
