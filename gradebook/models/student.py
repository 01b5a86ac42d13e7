"""Student model."""

import enum

from sqlalchemy import Enum, String
from sqlalchemy.orm import Mapped, mapped_column

from gradebook.core.database import Base
from gradebook.models.base import IDMixin, SchoolScopedMixin, TimestampMixin


class StudentStatus(str, enum.Enum):
    """Student enrolment status."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    ALUMNI = "alumni"
    SUSPENDED = "suspended"


class Student(Base, IDMixin, TimestampMixin, SchoolScopedMixin):
    """Student model as consumed by grading."""

    __tablename__ = "students"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    roll_number: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    class_name: Mapped[str] = mapped_column(String(50), nullable=False, index=True)  # 'class' is reserved keyword
    section: Mapped[str | None] = mapped_column(String(50), nullable=True)
    status: Mapped[StudentStatus] = mapped_column(
        Enum(
            StudentStatus,
            name="student_status",
            values_callable=lambda e: [m.value for m in e],
        ),
        default=StudentStatus.ACTIVE,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Student(id={self.id}, name={self.name}, class={self.class_name})>"
