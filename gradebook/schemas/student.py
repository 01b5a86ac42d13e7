"""Student schemas."""

from datetime import datetime

from pydantic import Field

from gradebook.models.student import StudentStatus
from gradebook.schemas.common import BaseSchema


class StudentBase(BaseSchema):
    """Base student schema."""

    name: str = Field(..., min_length=1, max_length=255)
    roll_number: str = Field("", max_length=50)
    class_name: str = Field(..., min_length=1, max_length=50)
    section: str | None = Field(None, max_length=50)
    status: StudentStatus = StudentStatus.ACTIVE


class StudentCreate(StudentBase):
    """Student creation schema."""

    pass


class StudentResponse(StudentBase):
    """Student response schema."""

    id: int
    school_id: int
    created_at: datetime
    updated_at: datetime


class StudentFilter(BaseSchema):
    """Student filtering options."""

    class_name: str | None = None
    section: str | None = None
    status: StudentStatus | None = None
    search: str | None = None
