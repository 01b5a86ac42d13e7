"""Initial gradebook schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18

Creates schools, students, exams, grades and audit_logs.
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
    ]


def _school_fk() -> sa.Column:
    return sa.Column(
        "school_id",
        sa.BigInteger(),
        sa.ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "schools",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        "students",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        _school_fk(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("roll_number", sa.String(50), nullable=False, server_default=""),
        sa.Column("class_name", sa.String(50), nullable=False),
        sa.Column("section", sa.String(50), nullable=True),
        sa.Column(
            "status",
            sa.Enum("active", "inactive", "alumni", "suspended", name="student_status"),
            nullable=False,
            server_default="active",
        ),
        *_timestamps(),
    )
    op.create_index("ix_students_school_id", "students", ["school_id"])
    op.create_index("ix_students_class_name", "students", ["class_name"])

    op.create_table(
        "exams",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        _school_fk(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("subject", sa.String(100), nullable=False),
        sa.Column("class_name", sa.String(50), nullable=False),
        sa.Column("section", sa.String(50), nullable=True),
        sa.Column("exam_date", sa.Date(), nullable=False),
        sa.Column("total_marks", sa.Integer(), nullable=False),
        sa.Column("passing_marks", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("duration", sa.String(50), nullable=True),
        sa.Column(
            "status",
            sa.Enum("upcoming", "ongoing", "completed", name="exam_status"),
            nullable=False,
            server_default="upcoming",
        ),
        sa.Column("semester", sa.String(50), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_exams_school_id", "exams", ["school_id"])
    op.create_index("ix_exams_name", "exams", ["name"])
    op.create_index("ix_exams_class_name", "exams", ["class_name"])
    op.create_index("ix_exams_exam_date", "exams", ["exam_date"])

    op.create_table(
        "grades",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        _school_fk(),
        sa.Column("student_id", sa.BigInteger(), sa.ForeignKey("students.id", ondelete="CASCADE"), nullable=False),
        sa.Column("exam_id", sa.BigInteger(), sa.ForeignKey("exams.id", ondelete="CASCADE"), nullable=False),
        sa.Column("marks_obtained", sa.DECIMAL(10, 2), nullable=False),
        sa.Column("percentage", sa.DECIMAL(6, 2), nullable=False),
        sa.Column("letter_grade", sa.String(5), nullable=False),
        sa.Column("gpa", sa.DECIMAL(3, 1), nullable=False),
        sa.Column("exam_date", sa.Date(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("student_id", "exam_id", name="uq_grade_student_exam"),
    )
    op.create_index("ix_grades_school_id", "grades", ["school_id"])
    op.create_index("ix_grades_student_id", "grades", ["student_id"])
    op.create_index("ix_grades_exam_id", "grades", ["exam_id"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("school_id", sa.BigInteger(), sa.ForeignKey("schools.id", ondelete="SET NULL"), nullable=True),
        sa.Column("user_id", sa.BigInteger(), nullable=True),
        sa.Column(
            "action",
            sa.Enum(
                "DATA_CREATED",
                "DATA_UPDATED",
                "DATA_DELETED",
                "BULK_GRADES_SAVED",
                "UPLOAD_COMPLETED",
                name="audit_action",
            ),
            nullable=False,
        ),
        sa.Column("resource_type", sa.String(100), nullable=False),
        sa.Column("resource_id", sa.String(100), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("extra_data", postgresql.JSONB(), nullable=True),
        sa.Column("ip_address", sa.String(50), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_audit_logs_school_id", "audit_logs", ["school_id"])
    op.create_index("ix_audit_logs_user_id", "audit_logs", ["user_id"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])


def downgrade() -> None:
    op.drop_table("audit_logs")
    op.drop_table("grades")
    op.drop_table("exams")
    op.drop_table("students")
    op.drop_table("schools")

    op.execute("DROP TYPE IF EXISTS audit_action")
    op.execute("DROP TYPE IF EXISTS exam_status")
    op.execute("DROP TYPE IF EXISTS student_status")
