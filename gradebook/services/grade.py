"""Grade service for single entry and bulk operations."""

import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from io import BytesIO

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from sqlalchemy import insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from gradebook.core.exceptions import (
    ConflictError,
    NotFoundError,
    PersistenceError,
    UploadError,
    ValidationError,
)
from gradebook.models.grade import Grade
from gradebook.schemas.grade import (
    BulkGradeResponse,
    BulkGradeSheet,
    BulkSheetRow,
    GradeCreate,
    GradeResponse,
    GradeSummary,
    GradeUpdate,
)
from gradebook.services.exam import ExamService
from gradebook.services.grade_entry import GradeEntryForm, eligible_students
from gradebook.services.grading import (
    compute_grade,
    format_marks,
    prefill_marks,
    reconcile,
    to_decimal,
)
from gradebook.services.reporting import summarize
from gradebook.services.student import StudentService

logger = logging.getLogger(__name__)


class GradeService:
    """Grade record management service."""

    def __init__(self, db: Session):
        self.db = db
        self.exams = ExamService(db)
        self.students = StudentService(db)

    def _grade_to_response(self, grade: Grade) -> GradeResponse:
        """Convert Grade to its response schema."""
        return GradeResponse(
            id=grade.id,
            school_id=grade.school_id,
            student_id=grade.student_id,
            student_name=grade.student.name if grade.student else "",
            exam_id=grade.exam_id,
            exam_name=grade.exam.name if grade.exam else "",
            subject=grade.exam.subject if grade.exam else "",
            marks_obtained=grade.marks_obtained,
            total_marks=grade.exam.total_marks if grade.exam else 0,
            percentage=grade.percentage,
            letter_grade=grade.letter_grade,
            gpa=grade.gpa,
            exam_date=grade.exam_date,
            semester=grade.exam.semester if grade.exam else None,
            created_at=grade.created_at,
            updated_at=grade.updated_at,
        )

    @contextmanager
    def _persisting(self, action: str) -> Iterator[None]:
        """Turn store failures into PersistenceError with the store's message."""
        try:
            yield
        except SQLAlchemyError as e:
            reason = str(getattr(e, "orig", None) or e)
            logger.error(f"[GRADES] Failed to {action}: {reason}")
            raise PersistenceError(f"Failed to {action}: {reason}") from e

    # ==========================================
    # Single Grade Operations
    # ==========================================

    def get_grade(self, school_id: int, grade_id: int) -> Grade:
        """Get grade by ID."""
        result = self.db.execute(
            select(Grade).where(
                Grade.id == grade_id,
                Grade.school_id == school_id,
            )
        )
        grade = result.scalar_one_or_none()
        if not grade:
            raise NotFoundError("Grade", str(grade_id))
        return grade

    def get_grade_response(self, school_id: int, grade_id: int) -> GradeResponse:
        return self._grade_to_response(self.get_grade(school_id, grade_id))

    def find_grades(
        self,
        school_id: int,
        exam_id: int | None = None,
        student_id: int | None = None,
    ) -> list[Grade]:
        query = select(Grade).where(Grade.school_id == school_id)
        if exam_id:
            query = query.where(Grade.exam_id == exam_id)
        if student_id:
            query = query.where(Grade.student_id == student_id)
        query = query.order_by(Grade.exam_date.desc(), Grade.id.desc())
        return list(self.db.execute(query).scalars().all())

    def list_grades(
        self,
        school_id: int,
        exam_id: int | None = None,
        student_id: int | None = None,
    ) -> list[GradeResponse]:
        """List grades, newest first."""
        return [
            self._grade_to_response(g)
            for g in self.find_grades(school_id, exam_id=exam_id, student_id=student_id)
        ]

    def get_summary(self, school_id: int, exam_id: int | None = None) -> GradeSummary:
        """Summary statistics for an exam, or the whole school.

        When the chosen exam has no grades yet the whole school is summarized.
        """
        grades = self.find_grades(school_id, exam_id=exam_id)
        if exam_id and not grades:
            grades = self.find_grades(school_id)
        return summarize(grades)

    def create_grade(self, school_id: int, request: GradeCreate) -> GradeResponse:
        """Record one student's marks on one exam."""
        form = (
            GradeEntryForm.new()
            .select_exam(request.exam_id)
            .select_student(request.student_id)
            .set_marks(request.marks_obtained)
        )
        exam = self.exams.get_exam(school_id, form.exam_id) if form.exam_id is not None else None
        form.validate_against(exam)

        student = self.students.get_student(school_id, form.student_id)
        if not eligible_students(exam, [student]):
            raise ValidationError(
                f"{student.name} is not in class {exam.class_name}",
                details={"student_id": student.id, "exam_id": exam.id},
            )

        existing = self.db.execute(
            select(Grade.id).where(
                Grade.student_id == student.id,
                Grade.exam_id == exam.id,
            )
        ).scalar_one_or_none()
        if existing is not None:
            raise ConflictError(
                f"Grade already exists for {student.name} - {exam.name} - {exam.subject}",
                details={"grade_id": existing},
            )

        graded = compute_grade(form.marks_obtained, exam.total_marks)
        grade = Grade(
            school_id=school_id,
            student_id=student.id,
            exam_id=exam.id,
            marks_obtained=form.marks_obtained,
            percentage=graded.percentage,
            gpa=graded.gpa,
            letter_grade=graded.letter_grade,
            exam_date=exam.exam_date,
        )
        with self._persisting("save grade"):
            self.db.add(grade)
            self.db.flush()
            self.db.refresh(grade)

        return self._grade_to_response(grade)

    def update_grade(
        self,
        school_id: int,
        grade_id: int,
        request: GradeUpdate,
    ) -> GradeResponse:
        """Re-enter the marks of an existing grade."""
        grade = self.get_grade(school_id, grade_id)
        form = GradeEntryForm.for_edit(grade).set_marks(request.marks_obtained)
        exam = grade.exam
        form.validate_against(exam)

        graded = compute_grade(form.marks_obtained, exam.total_marks)
        grade.marks_obtained = form.marks_obtained
        grade.percentage = graded.percentage
        grade.gpa = graded.gpa
        grade.letter_grade = graded.letter_grade
        grade.exam_date = exam.exam_date

        with self._persisting("update grade"):
            self.db.flush()
            self.db.refresh(grade)

        return self._grade_to_response(grade)

    def delete_grade(self, school_id: int, grade_id: int) -> None:
        """Delete a grade."""
        grade = self.get_grade(school_id, grade_id)
        with self._persisting("delete grade"):
            self.db.delete(grade)
            self.db.flush()

    # ==========================================
    # Bulk Operations
    # ==========================================

    def _existing_grades(self, exam_id: int) -> list[Grade]:
        result = self.db.execute(select(Grade).where(Grade.exam_id == exam_id))
        return list(result.scalars().all())

    def get_bulk_sheet(
        self,
        school_id: int,
        exam_id: int,
        search: str | None = None,
    ) -> BulkGradeSheet:
        """Roster of an exam with the marks already recorded."""
        exam = self.exams.get_exam(school_id, exam_id)
        roster = self.exams.get_roster(school_id, exam)
        existing = self._existing_grades(exam.id)
        marks, existing_ids = prefill_marks(existing)
        by_student = {g.student_id: g for g in existing}

        if search:
            term = search.lower()
            roster = [s for s in roster if term in s.name.lower() or term in s.roll_number.lower()]

        rows = []
        for student in roster:
            grade = by_student.get(student.id)
            rows.append(BulkSheetRow(
                student_id=student.id,
                student_name=student.name,
                roll_number=student.roll_number,
                section=student.section,
                record_id=grade.id if grade else None,
                marks_obtained=grade.marks_obtained if grade else None,
                letter_grade=grade.letter_grade if grade else None,
            ))

        return BulkGradeSheet(
            exam_id=exam.id,
            exam_name=exam.name,
            subject=exam.subject,
            class_name=exam.class_name,
            section=exam.section,
            total_marks=exam.total_marks,
            students=rows,
            marks=marks,
            existing_grades=existing_ids,
        )

    def save_bulk(
        self,
        school_id: int,
        exam_id: int,
        marks: Mapping[int, str],
    ) -> BulkGradeResponse:
        """Save marks entered for many students in one batch.

        Roster and existing grades are always re-read here, so re-running a
        batch after a failure updates what was already written instead of
        inserting it twice. Updates run before inserts; both belong to the
        caller's transaction.
        """
        exam = self.exams.get_exam(school_id, exam_id)
        roster = self.exams.get_roster(school_id, exam)
        _, existing_ids = prefill_marks(self._existing_grades(exam.id))

        plan = reconcile(exam, roster, marks, existing_ids)

        with self._persisting("save grades"):
            if plan.updates:
                self.db.execute(update(Grade), [p.to_row() for p in plan.updates])
            if plan.inserts:
                self.db.execute(insert(Grade), [p.to_row() for p in plan.inserts])
            self.db.flush()

        saved = len(plan.updates) + len(plan.inserts)
        logger.info(
            f"[BULK GRADES] exam_id={exam.id}: {len(plan.inserts)} inserted, "
            f"{len(plan.updates)} updated, {len(plan.skipped)} skipped"
        )

        return BulkGradeResponse(
            exam_id=exam.id,
            total_entries=len(marks),
            inserted=len(plan.inserts),
            updated=len(plan.updates),
            skipped=plan.skipped,
            message=f"Successfully saved grades for {saved} students.",
        )

    # ==========================================
    # Spreadsheet Entry
    # ==========================================

    def generate_bulk_template(self, school_id: int, exam_id: int) -> bytes:
        """Excel sheet with the exam roster and current marks to fill in."""
        sheet = self.get_bulk_sheet(school_id, exam_id)

        wb = Workbook()
        ws = wb.active
        ws.title = "Grades"

        title_font = Font(bold=True, size=14)
        header_font = Font(bold=True, color="FFFFFF")
        header_fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
        thin_border = Border(
            left=Side(style='thin'),
            right=Side(style='thin'),
            top=Side(style='thin'),
            bottom=Side(style='thin')
        )
        center_align = Alignment(horizontal='center', vertical='center')

        section = f"-{sheet.section}" if sheet.section else ""
        ws.merge_cells('A1:E1')
        title_cell = ws.cell(
            row=1,
            column=1,
            value=f"{sheet.exam_name} - {sheet.subject} - Class {sheet.class_name}{section}",
        )
        title_cell.font = title_font
        title_cell.alignment = center_align

        headers = [
            "Student ID",
            "Roll Number",
            "Student Name",
            f"Marks Obtained (Max: {sheet.total_marks})",
            "Grade (Auto)",
        ]
        for col_idx, header in enumerate(headers, start=1):
            cell = ws.cell(row=2, column=col_idx, value=header)
            cell.font = header_font
            cell.fill = header_fill
            cell.border = thin_border
            cell.alignment = center_align

        for row_idx, row in enumerate(sheet.students, start=3):
            values = [
                row.student_id,
                row.roll_number,
                row.student_name,
                float(row.marks_obtained) if row.marks_obtained is not None else None,
                row.letter_grade or "",
            ]
            for col_idx, value in enumerate(values, start=1):
                ws.cell(row=row_idx, column=col_idx, value=value).border = thin_border

        column_widths = {'A': 12, 'B': 14, 'C': 30, 'D': 24, 'E': 14}
        for col, width in column_widths.items():
            ws.column_dimensions[col].width = width

        output = BytesIO()
        wb.save(output)
        output.seek(0)
        return output.getvalue()

    def parse_bulk_upload(self, file_content: bytes) -> dict[int, str]:
        """Read entered marks from a filled-in bulk template."""
        try:
            wb = load_workbook(BytesIO(file_content), data_only=True)
            ws = wb.active
        except Exception as e:
            logger.error(f"[GRADE UPLOAD] Failed to load Excel: {str(e)}")
            raise UploadError(f"Invalid Excel file: {str(e)}")

        header_row = None
        id_col = marks_col = None
        for row_num, row in enumerate(ws.iter_rows(min_row=1, max_row=5, values_only=True), start=1):
            headers = [str(v).strip().lower() if v is not None else "" for v in row]
            if "student id" in headers:
                header_row = row_num
                id_col = headers.index("student id")
                marks_col = next((i for i, h in enumerate(headers) if "marks" in h), None)
                break

        if header_row is None or marks_col is None:
            raise UploadError("Sheet must have 'Student ID' and 'Marks Obtained' columns")

        marks: dict[int, str] = {}
        for row_num, row in enumerate(ws.iter_rows(min_row=header_row + 1, values_only=True), start=header_row + 1):
            if not any(v is not None for v in row):
                continue
            raw_id = row[id_col] if id_col < len(row) else None
            try:
                student_id = int(raw_id)
            except (TypeError, ValueError):
                logger.warning(f"[GRADE UPLOAD] Row {row_num}: invalid student id '{raw_id}'")
                continue

            value = row[marks_col] if marks_col < len(row) else None
            if value is None:
                continue
            if isinstance(value, float):
                value = format_marks(to_decimal(value))
            marks[student_id] = str(value)

        logger.info(f"[GRADE UPLOAD] Read {len(marks)} mark entries")
        return marks
