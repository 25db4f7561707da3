"""Create students, teachers, subjects and association tables

Revision ID: a1c0e5d20001
Revises:
Create Date: 2025-03-02

Enrollment (students) and registry (teachers) codes carry unique constraints;
code allocation relies on them to detect concurrent issues of the same code.
"""
from alembic import op
import sqlalchemy as sa

revision = "a1c0e5d20001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "subjects",
        sa.Column("id", sa.String(length=50), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("credits", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "students",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("enrollment", sa.String(length=20), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("current_year", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("shift", sa.Enum("M", "T", "N", name="student_shift"), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("enrollment", name="uq_students_enrollment"),
    )
    op.create_index("ix_students_shift", "students", ["shift"])

    op.create_table(
        "teachers",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("registry", sa.String(length=20), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("department", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("registry", name="uq_teachers_registry"),
        sa.UniqueConstraint("email", name="uq_teachers_email"),
    )

    op.create_table(
        "student_subjects",
        sa.Column("student_id", sa.Uuid(), sa.ForeignKey("students.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("subject_id", sa.String(length=50), sa.ForeignKey("subjects.id", ondelete="CASCADE"), primary_key=True),
    )

    op.create_table(
        "teacher_subjects",
        sa.Column("teacher_id", sa.Uuid(), sa.ForeignKey("teachers.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("subject_id", sa.String(length=50), sa.ForeignKey("subjects.id", ondelete="CASCADE"), primary_key=True),
    )


def downgrade() -> None:
    op.drop_table("teacher_subjects")
    op.drop_table("student_subjects")
    op.drop_table("teachers")
    op.drop_index("ix_students_shift", table_name="students")
    op.drop_table("students")
    op.drop_table("subjects")
    sa.Enum(name="student_shift").drop(op.get_bind(), checkfirst=True)
