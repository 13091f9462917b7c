"""statistics engine tables

Revision ID: 0001
Revises:
Create Date: 2026-10-18 12:00:00

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("username", sa.String(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    op.create_table(
        "profiles",
        sa.Column("id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("first_name", sa.String(100), nullable=False, server_default=""),
        sa.Column("last_name", sa.String(100), nullable=False, server_default=""),
        sa.Column("avatar_url", sa.String(), nullable=True),
        sa.Column("preferences", postgresql.JSONB(), nullable=False, server_default="{}"),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "user_settings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("theme", sa.String(20), nullable=False, server_default="light"),
        sa.Column("language", sa.String(10), nullable=False, server_default="en"),
        sa.Column("notifications_enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("preferences", postgresql.JSONB(), nullable=False, server_default="{}"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_user_settings_id", "user_settings", ["id"])

    op.create_table(
        "task_submissions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("task_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("sheet_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("is_correct", sa.Boolean(), nullable=False),
        sa.Column("score", sa.Numeric(5, 2), nullable=False),
        sa.Column("time_spent", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("user_answer", sa.Text(), nullable=True),
        sa.Column("user_solution", sa.Text(), nullable=True),
        sa.Column("difficulty", sa.String(20), nullable=True),
        sa.Column("topic", sa.String(255), nullable=True),
        sa.Column("question_type", sa.String(50), nullable=True),
        sa.Column("submitted_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_task_submissions_user_id", "task_submissions", ["user_id"])
    op.create_index("ix_task_submissions_task_id", "task_submissions", ["task_id"])

    op.create_table(
        "sheet_submissions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("sheet_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("total_tasks", sa.Integer(), nullable=False),
        sa.Column("correct_tasks", sa.Integer(), nullable=False),
        sa.Column("accuracy", sa.Numeric(5, 2), nullable=False),
        sa.Column("total_time_spent", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("average_time_per_task", sa.Numeric(10, 2), nullable=False),
        sa.Column("submitted_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_sheet_submissions_user_id", "sheet_submissions", ["user_id"])
    op.create_index("ix_sheet_submissions_sheet_id", "sheet_submissions", ["sheet_id"])

    op.create_table(
        "user_statistics",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("solved_tasks", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_task_attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("solved_sheets", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_sheet_attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("success_rate", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("average_score", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("total_time_spent", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "tasks_by_difficulty",
            postgresql.JSONB(),
            nullable=False,
            server_default='{"easy": 0, "medium": 0, "hard": 0}',
        ),
        sa.Column("tasks_by_topic", postgresql.JSONB(), nullable=False, server_default="{}"),
        sa.Column("tasks_by_type", postgresql.JSONB(), nullable=False, server_default="{}"),
        sa.Column("recent_activity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_activity_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "solved_tasks >= 0 AND total_task_attempts >= solved_tasks", name="ck_user_statistics_tasks"
        ),
        sa.CheckConstraint(
            "solved_sheets >= 0 AND total_sheet_attempts >= solved_sheets", name="ck_user_statistics_sheets"
        ),
        sa.CheckConstraint(
            "total_time_spent >= 0 AND recent_activity >= 0", name="ck_user_statistics_activity"
        ),
    )
    op.create_index("ix_user_statistics_id", "user_statistics", ["id"])

    op.create_table(
        "user_progress",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("tasks_completed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("sheets_completed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("time_spent", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("accuracy", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("total_attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("accuracy_points", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.UniqueConstraint("user_id", "date", name="uq_user_progress_user_date"),
        sa.CheckConstraint("accuracy >= 0 AND accuracy <= 100", name="ck_user_progress_accuracy"),
    )
    op.create_index("ix_user_progress_id", "user_progress", ["id"])
    op.create_index("ix_user_progress_user_id", "user_progress", ["user_id"])


def downgrade() -> None:
    op.drop_table("user_progress")
    op.drop_table("user_statistics")
    op.drop_table("sheet_submissions")
    op.drop_table("task_submissions")
    op.drop_table("user_settings")
    op.drop_table("profiles")
    op.drop_table("users")
