"""create quiz schema

Revision ID: 0001
Revises: 
Create Date: 2026-10-18

"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


EXAM_TYPES = ("CCNA", "CCNP_ENCOR", "CCNP_ENARSI", "CCIE")
CATEGORIES = (
    "NETWORK_FUNDAMENTALS",
    "SWITCHING",
    "ROUTING",
    "OSPF",
    "BGP",
    "IP_SERVICES",
    "SECURITY",
    "AUTOMATION",
)
DIFFICULTIES = ("BEGINNER", "INTERMEDIATE", "ADVANCED", "MIXED")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("role", sa.Enum("user", "premium", "admin", name="userrole"), nullable=False),
        sa.Column("xp", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("level", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("quizzes_completed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("study_minutes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_activity_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_users_name", "users", ["name"], unique=True)
    op.create_index("ix_users_role", "users", ["role"], unique=False)

    op.create_table(
        "questions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("exam_type", sa.Enum(*EXAM_TYPES, name="examtype"), nullable=False),
        sa.Column("category", sa.Enum(*CATEGORIES, name="questioncategory"), nullable=True),
        sa.Column("difficulty", sa.Enum(*DIFFICULTIES, name="difficulty"), nullable=False),
        sa.Column(
            "status",
            sa.Enum("active", "pending", "archived", name="questionstatus"),
            nullable=False,
            server_default="active",
        ),
        sa.Column("text", sa.String(), nullable=False, server_default=""),
        sa.Column("explanation", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_questions_exam_type", "questions", ["exam_type"], unique=False)
    op.create_index("ix_questions_category", "questions", ["category"], unique=False)
    op.create_index("ix_questions_status", "questions", ["status"], unique=False)

    op.create_table(
        "question_options",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("question_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("questions.id"), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("text", sa.String(length=500), nullable=False, server_default=""),
        sa.Column("is_correct", sa.Boolean(), nullable=False, server_default=sa.text("false")),
    )
    op.create_index("ix_question_options_question_id", "question_options", ["question_id"], unique=False)

    op.create_table(
        "quiz_session_events",
        sa.Column("session_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("event_sequence", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("event_type", sa.String(length=64), nullable=False),
        sa.Column("payload", postgresql.JSONB(), nullable=False),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("session_id", "version", "event_sequence"),
        sa.CheckConstraint("version > 0", name="ck_quiz_session_events_version_positive"),
        sa.CheckConstraint("event_sequence > 0", name="ck_quiz_session_events_sequence_positive"),
    )
    op.create_index("ix_quiz_session_events_session_version", "quiz_session_events", ["session_id", "version"])
    op.create_index("ix_quiz_session_events_event_type", "quiz_session_events", ["event_type"])
    op.create_index("ix_quiz_session_events_occurred_at", "quiz_session_events", ["occurred_at"])

    op.create_table(
        "quiz_session_snapshots",
        sa.Column("session_id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "owner_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("state", sa.Enum("IN_PROGRESS", "COMPLETED", "EXPIRED", name="quizstatus"), nullable=False),
        sa.Column("question_count", sa.Integer(), nullable=False),
        sa.Column("answered_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("config", postgresql.JSONB(), nullable=False),
        sa.Column("question_order", postgresql.JSONB(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_quiz_session_snapshots_state", "quiz_session_snapshots", ["state"])
    op.create_index("ix_quiz_session_snapshots_state_expires", "quiz_session_snapshots", ["state", "expires_at"])
    op.create_index(
        "ix_quiz_session_snapshots_active_owner",
        "quiz_session_snapshots",
        ["owner_id"],
        unique=True,
        postgresql_where=sa.text("state = 'IN_PROGRESS'"),
    )


def downgrade() -> None:
    op.drop_index("ix_quiz_session_snapshots_active_owner", table_name="quiz_session_snapshots")
    op.drop_index("ix_quiz_session_snapshots_state_expires", table_name="quiz_session_snapshots")
    op.drop_index("ix_quiz_session_snapshots_state", table_name="quiz_session_snapshots")
    op.drop_table("quiz_session_snapshots")

    op.drop_index("ix_quiz_session_events_occurred_at", table_name="quiz_session_events")
    op.drop_index("ix_quiz_session_events_event_type", table_name="quiz_session_events")
    op.drop_index("ix_quiz_session_events_session_version", table_name="quiz_session_events")
    op.drop_table("quiz_session_events")

    op.drop_index("ix_question_options_question_id", table_name="question_options")
    op.drop_table("question_options")

    op.drop_index("ix_questions_status", table_name="questions")
    op.drop_index("ix_questions_category", table_name="questions")
    op.drop_index("ix_questions_exam_type", table_name="questions")
    op.drop_table("questions")

    op.drop_index("ix_users_role", table_name="users")
    op.drop_index("ix_users_name", table_name="users")
    op.drop_table("users")

    for enum_name in ("quizstatus", "questionstatus", "difficulty", "questioncategory", "examtype", "userrole"):
        op.execute(f"DROP TYPE IF EXISTS {enum_name}")
