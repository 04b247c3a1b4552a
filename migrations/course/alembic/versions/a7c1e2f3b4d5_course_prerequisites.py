"""Courses, enrollments and the course prerequisite graph.

Revision ID: a7c1e2f3b4d5
Revises:
Create Date: 2026-10-16
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

revision = "a7c1e2f3b4d5"
down_revision = None
branch_labels = None
depends_on = None

_COURSE_STATUS = ("DRAFT", "PUBLISHED", "ARCHIVED")
_ENROLLMENT_STATUS = ("ENROLLED", "IN_PROGRESS", "COMPLETED", "DROPPED")
_PREREQUISITE_TYPE = (
    "course_completion",
    "course_enrollment",
    "minimum_score",
    "time_requirement",
    "skill_assessment",
    "certification",
    "experience_level",
    "custom_requirement",
)
_EVALUATION_METHOD = ("automatic", "manual_review", "admin_approval", "instructor_approval")


def upgrade() -> None:
    # ── courses ──────────────────────────────────────────────────────────
    op.create_table(
        "courses",
        sa.Column("course_id", sa.Uuid(), primary_key=True),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("slug", sa.String(300), nullable=False, unique=True),
        sa.Column(
            "status",
            sa.Enum(*_COURSE_STATUS, name="course_status"),
            nullable=False,
            server_default="DRAFT",
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_courses_status", "courses", ["status"])

    # ── enrollments ──────────────────────────────────────────────────────
    op.create_table(
        "enrollments",
        sa.Column("enrollment_id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column(
            "course_id",
            sa.Uuid(),
            sa.ForeignKey("courses.course_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "status",
            sa.Enum(*_ENROLLMENT_STATUS, name="enrollment_status"),
            nullable=False,
            server_default="ENROLLED",
        ),
        sa.Column("final_score", sa.Numeric(5, 2), nullable=True),
        sa.Column("enrolled_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("user_id", "course_id", name="uq_enrollments_user_course"),
    )
    op.create_index("ix_enrollments_user_id", "enrollments", ["user_id"])
    op.create_index("ix_enrollments_course_id", "enrollments", ["course_id"])

    # ── course_prerequisites ─────────────────────────────────────────────
    op.create_table(
        "course_prerequisites",
        sa.Column("prerequisite_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "course_id",
            sa.Uuid(),
            sa.ForeignKey("courses.course_id", ondelete="CASCADE"),
            nullable=False,
        ),
        # No FK: dangling targets are reported by chain validation
        sa.Column("prerequisite_course_id", sa.Uuid(), nullable=False),
        sa.Column(
            "prerequisite_type",
            sa.Enum(*_PREREQUISITE_TYPE, name="prerequisite_type"),
            nullable=False,
        ),
        sa.Column("requirement_value", sa.Numeric(10, 2), nullable=True),
        sa.Column(
            "evaluation_method",
            sa.Enum(*_EVALUATION_METHOD, name="evaluation_method"),
            nullable=False,
            server_default="automatic",
        ),
        sa.Column("is_mandatory", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("metadata", JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "course_id <> prerequisite_course_id", name="ck_course_prerequisites_no_self_loop"
        ),
    )
    op.create_index(
        "ix_course_prerequisites_course_id", "course_prerequisites", ["course_id"]
    )
    op.create_index(
        "ix_course_prerequisites_prerequisite_course_id",
        "course_prerequisites",
        ["prerequisite_course_id"],
    )


def downgrade() -> None:
    op.drop_table("course_prerequisites")
    op.drop_table("enrollments")
    op.drop_table("courses")
    op.execute("DROP TYPE IF EXISTS evaluation_method")
    op.execute("DROP TYPE IF EXISTS prerequisite_type")
    op.execute("DROP TYPE IF EXISTS enrollment_status")
    op.execute("DROP TYPE IF EXISTS course_status")
