"""Grading policy and bulk grade reconciliation.

Everything in this module is pure: no database access and no exceptions for
individual bad rows. The grade service feeds it data loaded from the store
and executes the writes it plans.
"""

import logging
from collections.abc import Iterable, Mapping
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from gradebook.models.exam import Exam
from gradebook.models.grade import Grade
from gradebook.models.student import Student, StudentStatus
from gradebook.schemas.grade import (
    GradeResult,
    GradeWritePayload,
    ReconciliationResult,
    SkippedEntry,
    SkipReason,
)

logger = logging.getLogger(__name__)


# ==========================================
# Constants
# ==========================================

# (minimum percentage, gpa, letter), highest band first. Lower bounds are inclusive.
GRADE_BANDS: list[tuple[Decimal, Decimal, str]] = [
    (Decimal("90"), Decimal("4.0"), "A+"),
    (Decimal("80"), Decimal("3.5"), "A"),
    (Decimal("70"), Decimal("3.0"), "B+"),
    (Decimal("60"), Decimal("2.5"), "B"),
    (Decimal("50"), Decimal("2.0"), "C+"),
    (Decimal("40"), Decimal("1.5"), "C"),
    (Decimal("33"), Decimal("1.0"), "D"),
]
FAILING_GPA = Decimal("0.0")
FAILING_LETTER = "F"

PERCENT_QUANTUM = Decimal("0.01")
# grades.marks_obtained is DECIMAL(10, 2)
MARKS_QUANTUM = Decimal("0.01")


def to_decimal(value: int | float | str | Decimal) -> Decimal:
    """Convert a numeric value without picking up binary float noise."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def format_marks(value: Decimal) -> str:
    """Render stored marks the way an operator would type them ("85", "72.5")."""
    return format(value.normalize(), "f")


def quantize_marks(value: Decimal) -> Decimal:
    """Round marks to the precision they are stored with."""
    return value.quantize(MARKS_QUANTUM, rounding=ROUND_HALF_UP)


# ==========================================
# Grading Policy
# ==========================================

def compute_grade(
    marks_obtained: int | float | str | Decimal,
    total_marks: int | float | str | Decimal,
) -> GradeResult:
    """Map raw marks to percentage, GPA and letter grade.

    Raises ZeroDivisionError when ``total_marks`` is zero. The band is picked
    from the exact ratio; only the reported percentage is rounded.
    """
    marks = to_decimal(marks_obtained)
    total = to_decimal(total_marks)
    if total == 0:
        raise ZeroDivisionError("total_marks must be greater than zero")

    exact = marks / total * 100
    percentage = exact.quantize(PERCENT_QUANTUM, rounding=ROUND_HALF_UP)

    for minimum, gpa, letter in GRADE_BANDS:
        if exact >= minimum:
            return GradeResult(percentage=percentage, gpa=gpa, letter_grade=letter)
    return GradeResult(percentage=percentage, gpa=FAILING_GPA, letter_grade=FAILING_LETTER)


# ==========================================
# Roster and Pre-fill
# ==========================================

def is_eligible(student: Student, exam: Exam) -> bool:
    """Whether a student may be graded on an exam.

    An exam without a section applies to every section of its class.
    """
    if student.status != StudentStatus.ACTIVE:
        return False
    if student.class_name != exam.class_name:
        return False
    if exam.section:
        return student.section == exam.section
    return True


def eligible_roster(exam: Exam, students: Iterable[Student]) -> list[Student]:
    """Filter students down to the exam's roster."""
    return [s for s in students if is_eligible(s, exam)]


def prefill_marks(grades: Iterable[Grade]) -> tuple[dict[int, str], dict[int, int]]:
    """Build the working set of entered marks from grades already stored.

    Returns ``(marks, existing_grades)`` keyed by student id, so that
    re-submitting the sheet routes those students to updates.
    """
    marks: dict[int, str] = {}
    existing: dict[int, int] = {}
    for grade in grades:
        marks[grade.student_id] = format_marks(grade.marks_obtained)
        existing[grade.student_id] = grade.id
    return marks, existing


# ==========================================
# Reconciliation
# ==========================================

def parse_mark(raw: str | None) -> Decimal | None:
    """Parse an entered mark to two decimals. Returns None for blank or non-numeric input."""
    if raw is None:
        return None
    text = str(raw).strip()
    if not text:
        return None
    try:
        value = Decimal(text)
        if not value.is_finite():
            return None
        return quantize_marks(value)
    except InvalidOperation:
        return None


def reconcile(
    exam: Exam,
    roster: Iterable[Student],
    entered_marks: Mapping[int, str],
    existing_grades: Mapping[int, int],
) -> ReconciliationResult:
    """Split entered marks into grade updates and inserts.

    ``entered_marks`` maps student id to the raw text typed by the operator
    and ``existing_grades`` maps student id to the id of the grade already
    stored for this exam. Rows that cannot be written are reported in
    ``skipped`` and never abort the batch; blank rows are dropped without a
    report.
    """
    roster_ids = {s.id for s in roster}
    total_marks = Decimal(exam.total_marks)
    result = ReconciliationResult()

    for student_id, raw in entered_marks.items():
        raw_text = "" if raw is None else str(raw)
        if not raw_text.strip():
            continue

        mark = parse_mark(raw_text)
        skip: tuple[SkipReason, str] | None = None
        if mark is None:
            skip = (SkipReason.INVALID_NUMBER, f"'{raw_text}' is not a number")
        elif mark < 0:
            skip = (SkipReason.NEGATIVE, f"Marks cannot be negative ({mark})")
        elif mark > total_marks:
            skip = (
                SkipReason.EXCEEDS_TOTAL,
                f"Marks obtained ({mark}) exceeds total marks ({exam.total_marks})",
            )
        elif student_id not in roster_ids:
            skip = (SkipReason.NOT_ON_ROSTER, f"Student {student_id} is not eligible for this exam")

        if skip:
            reason, message = skip
            logger.warning(
                f"[BULK GRADES] exam_id={exam.id} student_id={student_id} skipped: {message}"
            )
            result.skipped.append(SkippedEntry(
                student_id=student_id,
                value=raw_text,
                reason=reason,
                message=message,
            ))
            continue

        graded = compute_grade(mark, total_marks)
        payload = GradeWritePayload(
            record_id=existing_grades.get(student_id),
            school_id=exam.school_id,
            student_id=student_id,
            exam_id=exam.id,
            marks_obtained=mark,
            percentage=graded.percentage,
            gpa=graded.gpa,
            letter_grade=graded.letter_grade,
            exam_date=exam.exam_date,
        )

        if payload.record_id is not None:
            result.updates.append(payload)
        else:
            result.inserts.append(payload)

    return result
