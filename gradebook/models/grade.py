"""Grade record model."""

from datetime import date
from decimal import Decimal

from sqlalchemy import DECIMAL, BigInteger, Date, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gradebook.core.database import Base
from gradebook.models.base import IDMixin, SchoolScopedMixin, TimestampMixin


class Grade(Base, IDMixin, TimestampMixin, SchoolScopedMixin):
    """One student's result on one exam."""

    __tablename__ = "grades"

    student_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    exam_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("exams.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    marks_obtained: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), nullable=False)
    percentage: Mapped[Decimal] = mapped_column(DECIMAL(6, 2), nullable=False)
    letter_grade: Mapped[str] = mapped_column(String(5), nullable=False)
    gpa: Mapped[Decimal] = mapped_column(DECIMAL(3, 1), nullable=False)
    exam_date: Mapped[date] = mapped_column(Date, nullable=False)

    # Relationships
    student: Mapped["Student"] = relationship("Student", lazy="selectin")
    exam: Mapped["Exam"] = relationship("Exam", lazy="selectin")

    __table_args__ = (
        UniqueConstraint("student_id", "exam_id", name="uq_grade_student_exam"),
    )

    def __repr__(self) -> str:
        return f"<Grade(student_id={self.student_id}, exam_id={self.exam_id})>"


# Import to avoid circular imports
from gradebook.models.exam import Exam  # noqa: E402
from gradebook.models.student import Student  # noqa: E402
