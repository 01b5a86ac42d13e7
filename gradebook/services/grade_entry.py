"""Single grade entry form state.

The form is immutable: every transition returns a new ``GradeEntryForm``.
Editing an existing grade locks its exam and student; only the marks can
change.
"""

from collections.abc import Iterable
from decimal import Decimal

from pydantic import ConfigDict

from gradebook.core.exceptions import (
    ExamRequiredError,
    MarksExceedTotalError,
    StudentRequiredError,
    ValidationError,
)
from gradebook.models.exam import Exam
from gradebook.models.grade import Grade
from gradebook.models.student import Student
from gradebook.schemas.common import BaseSchema
from gradebook.services.grading import quantize_marks


class GradeEntryForm(BaseSchema):
    """Fields of the grade entry form."""

    model_config = ConfigDict(frozen=True)

    grade_id: int | None = None
    exam_id: int | None = None
    student_id: int | None = None
    marks_obtained: Decimal = Decimal("0")

    @classmethod
    def new(cls) -> "GradeEntryForm":
        return cls()

    @classmethod
    def for_edit(cls, grade: Grade) -> "GradeEntryForm":
        return cls(
            grade_id=grade.id,
            exam_id=grade.exam_id,
            student_id=grade.student_id,
            marks_obtained=grade.marks_obtained,
        )

    @property
    def is_editing(self) -> bool:
        return self.grade_id is not None

    def _ensure_unlocked(self) -> None:
        if self.is_editing:
            raise ValidationError(
                "Exam and student cannot be changed on an existing grade",
                code="SELECTION_LOCKED",
            )

    def select_exam(self, exam_id: int | None) -> "GradeEntryForm":
        """Choose an exam. A different exam clears the chosen student."""
        self._ensure_unlocked()
        if exam_id == self.exam_id:
            return self
        return self.model_copy(update={"exam_id": exam_id, "student_id": None})

    def select_student(self, student_id: int | None) -> "GradeEntryForm":
        self._ensure_unlocked()
        return self.model_copy(update={"student_id": student_id})

    def set_marks(self, marks_obtained: Decimal) -> "GradeEntryForm":
        return self.model_copy(update={"marks_obtained": quantize_marks(marks_obtained)})

    def validate_against(self, exam: Exam | None) -> None:
        """Check the form before it is written.

        Order matters: a missing exam is reported before a missing student,
        and both before the marks ceiling.
        """
        if self.exam_id is None or exam is None:
            raise ExamRequiredError()
        if self.student_id is None:
            raise StudentRequiredError()
        if self.marks_obtained > exam.total_marks:
            raise MarksExceedTotalError(exam.total_marks)


def eligible_students(exam: Exam | None, students: Iterable[Student]) -> list[Student]:
    """Students offered for selection once an exam is chosen."""
    if exam is None:
        return []
    return [s for s in students if s.class_name == exam.class_name]
