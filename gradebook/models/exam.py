"""Exam model."""

import enum
from datetime import date

from sqlalchemy import Date, Enum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from gradebook.core.database import Base
from gradebook.models.base import IDMixin, SchoolScopedMixin, TimestampMixin


class ExamStatus(str, enum.Enum):
    """Exam lifecycle status."""

    UPCOMING = "upcoming"
    ONGOING = "ongoing"
    COMPLETED = "completed"


class Exam(Base, IDMixin, TimestampMixin, SchoolScopedMixin):
    """A scheduled assessment for one subject of a class.

    The exam owns the grading scale: every grade recorded against it is
    validated against ``total_marks``.
    """

    __tablename__ = "exams"

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    subject: Mapped[str] = mapped_column(String(100), nullable=False)
    class_name: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    section: Mapped[str | None] = mapped_column(String(50), nullable=True)
    exam_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    total_marks: Mapped[int] = mapped_column(Integer, nullable=False)
    passing_marks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    duration: Mapped[str | None] = mapped_column(String(50), nullable=True)
    status: Mapped[ExamStatus] = mapped_column(
        Enum(
            ExamStatus,
            name="exam_status",
            values_callable=lambda e: [m.value for m in e],
        ),
        default=ExamStatus.UPCOMING,
        nullable=False,
    )
    semester: Mapped[str | None] = mapped_column(String(50), nullable=True)

    def __repr__(self) -> str:
        return f"<Exam(id={self.id}, name={self.name}, subject={self.subject})>"
