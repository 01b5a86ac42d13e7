"""Grade schemas."""

import enum
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import ConfigDict, Field

from gradebook.schemas.common import BaseSchema


# ==========================================
# Grading Policy
# ==========================================

class GradeResult(BaseSchema):
    """Normalized outcome of applying the grading bands to a mark."""

    percentage: Decimal
    gpa: Decimal
    letter_grade: str


# Largest value grades.marks_obtained (DECIMAL(10, 2)) can hold
MAX_MARKS = Decimal("99999999.99")


# ==========================================
# Grade Record Schemas
# ==========================================

class GradeCreate(BaseSchema):
    """Single grade entry.

    Exam and student are optional here so that a missing selection is
    reported with its own error code instead of a generic schema error.
    """

    exam_id: int | None = None
    student_id: int | None = None
    marks_obtained: Decimal = Field(..., ge=0, le=MAX_MARKS)


class GradeUpdate(BaseSchema):
    """Grade update schema. Only the marks of an existing grade can change."""

    marks_obtained: Decimal = Field(..., ge=0, le=MAX_MARKS)


class GradeResponse(BaseSchema):
    """Grade response schema."""

    id: int
    school_id: int
    student_id: int
    student_name: str
    exam_id: int
    exam_name: str
    subject: str
    marks_obtained: Decimal
    total_marks: int
    percentage: Decimal
    letter_grade: str
    gpa: Decimal
    exam_date: date
    semester: str | None
    created_at: datetime
    updated_at: datetime


class GradeSummary(BaseSchema):
    """Summary statistics over a set of grades."""

    total_grades: int
    average_gpa: Decimal
    pass_rate: Decimal
    excellence_rate: Decimal


# ==========================================
# Bulk Reconciliation
# ==========================================

class GradeWritePayload(BaseSchema):
    """One row to be written by a bulk save."""

    record_id: int | None = None
    school_id: int
    student_id: int
    exam_id: int
    marks_obtained: Decimal
    percentage: Decimal
    gpa: Decimal
    letter_grade: str
    exam_date: date

    def to_row(self) -> dict[str, Any]:
        """Map to ``grades`` column values; the id is only set for updates."""
        row = {
            "school_id": self.school_id,
            "student_id": self.student_id,
            "exam_id": self.exam_id,
            "marks_obtained": self.marks_obtained,
            "percentage": self.percentage,
            "gpa": self.gpa,
            "letter_grade": self.letter_grade,
            "exam_date": self.exam_date,
        }
        if self.record_id is not None:
            row["id"] = self.record_id
        return row


class SkipReason(str, enum.Enum):
    """Why an entered mark produced no write."""

    INVALID_NUMBER = "invalid_number"
    NEGATIVE = "negative"
    EXCEEDS_TOTAL = "exceeds_total"
    NOT_ON_ROSTER = "not_on_roster"


class SkippedEntry(BaseSchema):
    """A row left out of a bulk save."""

    student_id: int
    value: str
    reason: SkipReason
    message: str


class ReconciliationResult(BaseSchema):
    """Entered marks partitioned into updates and inserts."""

    updates: list[GradeWritePayload] = []
    inserts: list[GradeWritePayload] = []
    skipped: list[SkippedEntry] = []


class BulkGradeSave(BaseSchema):
    """Marks entered for many students against one exam."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    exam_id: int
    marks: dict[int, str | None] = Field(default_factory=dict, description="student_id -> entered marks")


class BulkGradeResponse(BaseSchema):
    """Response for bulk grade saves."""

    exam_id: int
    total_entries: int
    inserted: int
    updated: int
    skipped: list[SkippedEntry] = []
    message: str


class BulkSheetRow(BaseSchema):
    """One roster line of the bulk entry sheet."""

    student_id: int
    student_name: str
    roll_number: str
    section: str | None
    record_id: int | None
    marks_obtained: Decimal | None
    letter_grade: str | None


class BulkGradeSheet(BaseSchema):
    """Everything a client needs to open bulk entry for an exam."""

    exam_id: int
    exam_name: str
    subject: str
    class_name: str
    section: str | None
    total_marks: int
    students: list[BulkSheetRow]
    marks: dict[int, str]
    existing_grades: dict[int, int]
