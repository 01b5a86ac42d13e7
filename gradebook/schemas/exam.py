"""Exam schemas."""

from datetime import date, datetime

from pydantic import Field, model_validator

from gradebook.models.exam import ExamStatus
from gradebook.schemas.common import BaseSchema


class ExamBase(BaseSchema):
    """Base exam schema."""

    name: str = Field(..., min_length=1, max_length=255)
    subject: str = Field(..., min_length=1, max_length=100)
    class_name: str = Field(..., min_length=1, max_length=50)
    section: str | None = Field(None, max_length=50)
    exam_date: date
    total_marks: int = Field(..., gt=0)
    passing_marks: int = Field(0, ge=0)
    duration: str | None = Field(None, max_length=50)
    status: ExamStatus = ExamStatus.UPCOMING
    semester: str | None = Field(None, max_length=50)


class ExamCreate(ExamBase):
    """Exam creation schema."""

    @model_validator(mode="after")
    def validate_passing_marks(self) -> "ExamCreate":
        """Passing marks can never exceed the exam ceiling."""
        if self.passing_marks > self.total_marks:
            raise ValueError(
                f"passing_marks ({self.passing_marks}) exceeds total_marks ({self.total_marks})"
            )
        return self


class ExamResponse(ExamBase):
    """Exam response schema."""

    id: int
    school_id: int
    created_at: datetime
    updated_at: datetime


class ExamFilter(BaseSchema):
    """Exam filtering options."""

    class_name: str | None = None
    status: ExamStatus | None = None
    exclude_completed: bool = False
