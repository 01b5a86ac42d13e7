"""Report schemas."""

from datetime import date
from decimal import Decimal

from gradebook.schemas.common import BaseSchema


class ReportCardRow(BaseSchema):
    """One subject line on a report card."""

    subject: str
    total_marks: int
    marks_obtained: Decimal
    percentage: Decimal
    letter_grade: str
    gpa: Decimal


class ReportCardTotals(BaseSchema):
    """Grand-total line on a report card."""

    marks_obtained: Decimal
    total_marks: int
    percentage: Decimal
    average_gpa: Decimal
    result: str


class ReportCard(BaseSchema):
    """Report card for one student and one exam family."""

    student_id: int
    student_name: str
    roll_number: str
    class_name: str
    section: str | None
    exam_name: str
    semester: str | None
    exam_date: date
    rows: list[ReportCardRow]
    totals: ReportCardTotals


class TabulationCell(BaseSchema):
    """Marks and letter for one subject on a tabulation sheet."""

    marks_obtained: Decimal | None = None
    letter_grade: str | None = None


class TabulationRow(BaseSchema):
    """One student line on a tabulation sheet."""

    rank: int
    student_id: int
    student_name: str
    roll_number: str
    subjects: dict[str, TabulationCell]
    total_obtained: Decimal
    total_max: int
    percentage: Decimal
    result: str


class TabulationSheet(BaseSchema):
    """Class-wide results for one exam family."""

    class_name: str
    section: str | None
    exam_name: str
    subjects: list[str]
    students: list[TabulationRow]


class ClassPerformance(BaseSchema):
    """Aggregated performance of one class-section."""

    class_name: str
    section: str | None
    class_section: str
    student_count: int
    grade_count: int
    average_gpa: Decimal
    subjects: list[str]
