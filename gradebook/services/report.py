"""Report service: report cards, tabulation sheets and exports."""

import logging
from io import BytesIO

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from gradebook.core.exceptions import NotFoundError, ValidationError
from gradebook.models.exam import Exam
from gradebook.models.grade import Grade
from gradebook.models.student import Student, StudentStatus
from gradebook.schemas.report import ClassPerformance, ReportCard, TabulationSheet
from gradebook.schemas.student import StudentFilter
from gradebook.services.exam import ExamService
from gradebook.services.reporting import (
    PASS,
    build_report_card,
    build_tabulation,
    class_performance,
    class_section_label,
)
from gradebook.services.student import StudentService

logger = logging.getLogger(__name__)

HEADER_FONT = Font(bold=True, color="FFFFFF")
HEADER_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
PASS_FONT = Font(bold=True, color="2E7D32")
FAIL_FONT = Font(bold=True, color="C62828")
THIN_BORDER = Border(
    left=Side(style='thin'),
    right=Side(style='thin'),
    top=Side(style='thin'),
    bottom=Side(style='thin')
)
CENTER = Alignment(horizontal='center', vertical='center')


def _write_header(ws, row: int, headers: list[str]) -> None:
    for col_idx, header in enumerate(headers, start=1):
        cell = ws.cell(row=row, column=col_idx, value=header)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.border = THIN_BORDER
        cell.alignment = CENTER


def _save(wb: Workbook) -> bytes:
    output = BytesIO()
    wb.save(output)
    output.seek(0)
    return output.getvalue()


class ReportService:
    """Read-side aggregation over grades."""

    def __init__(self, db: Session):
        self.db = db
        self.exams = ExamService(db)
        self.students = StudentService(db)

    def get_report_card(self, school_id: int, student_id: int, exam_id: int) -> ReportCard:
        """Report card of a student for every subject of an exam's family."""
        student = self.students.get_student(school_id, student_id)
        exam = self.exams.get_exam(school_id, exam_id)
        family_ids = [e.id for e in self.exams.get_family(school_id, exam)]

        result = self.db.execute(
            select(Grade).where(
                Grade.school_id == school_id,
                Grade.student_id == student.id,
                Grade.exam_id.in_(family_ids),
            )
        )
        return build_report_card(student, exam, result.scalars().all())

    def get_tabulation(
        self,
        school_id: int,
        class_name: str,
        exam_name: str,
        section: str | None = None,
        semester: str | None = None,
    ) -> TabulationSheet:
        """Class-wide results on all subjects of one exam family.

        Without a semester the exams found must all belong to one semester.
        """
        students = self.students.find_students(
            school_id,
            StudentFilter(class_name=class_name, section=section, status=StudentStatus.ACTIVE),
        )

        query = select(Exam).where(
            Exam.school_id == school_id,
            Exam.class_name == class_name,
            Exam.name == exam_name,
        )
        if semester:
            query = query.where(Exam.semester == semester)
        if section:
            query = query.where(or_(Exam.section.is_(None), Exam.section == section))
        exams = list(self.db.execute(query.order_by(Exam.subject)).scalars().all())

        if not exams:
            raise NotFoundError("Exam", exam_name)

        semesters = {e.semester for e in exams}
        if len(semesters) > 1:
            raise ValidationError(
                f"{exam_name} was held in more than one semester; choose a semester",
                details={"semesters": sorted(s or "" for s in semesters)},
            )

        grades = self.db.execute(
            select(Grade).where(
                Grade.exam_id.in_([e.id for e in exams]),
                Grade.student_id.in_([s.id for s in students]),
            )
        ).scalars().all()

        return build_tabulation(class_name, section, exam_name, students, exams, grades)

    def get_class_performance(self, school_id: int) -> list[ClassPerformance]:
        """Average GPA and subjects per class-section."""
        students = self.db.execute(
            select(Student).where(Student.school_id == school_id)
        ).scalars().all()
        grades = self.db.execute(
            select(Grade).where(Grade.school_id == school_id)
        ).scalars().all()
        return class_performance(students, grades)

    # ==========================================
    # Excel Exports
    # ==========================================

    def export_tabulation(self, sheet: TabulationSheet) -> bytes:
        """Tabulation sheet as an Excel workbook."""
        wb = Workbook()
        ws = wb.active
        ws.title = "Tabulation"

        headers = ["Rank", "Roll No", "Student"] + sheet.subjects + ["Total", "Max", "%", "Result"]
        title = f"{sheet.exam_name} - Class {class_section_label(sheet.class_name, sheet.section)}"
        ws.merge_cells(start_row=1, start_column=1, end_row=1, end_column=len(headers))
        title_cell = ws.cell(row=1, column=1, value=title)
        title_cell.font = Font(bold=True, size=14)
        title_cell.alignment = CENTER

        _write_header(ws, 2, headers)

        for row_idx, row in enumerate(sheet.students, start=3):
            subject_values = []
            for subject in sheet.subjects:
                cell = row.subjects.get(subject)
                if cell and cell.marks_obtained is not None:
                    subject_values.append(f"{cell.marks_obtained} ({cell.letter_grade})")
                else:
                    subject_values.append("-")
            values = (
                [row.rank, row.roll_number, row.student_name]
                + subject_values
                + [float(row.total_obtained), row.total_max, float(row.percentage), row.result]
            )
            for col_idx, value in enumerate(values, start=1):
                ws.cell(row=row_idx, column=col_idx, value=value).border = THIN_BORDER
            result_cell = ws.cell(row=row_idx, column=len(values))
            result_cell.font = PASS_FONT if row.result == PASS else FAIL_FONT

        ws.column_dimensions['C'].width = 28
        for col_idx in range(4, len(headers) + 1):
            ws.column_dimensions[get_column_letter(col_idx)].width = 14

        return _save(wb)

    def export_grades(self, school_id: int, exam_id: int | None = None) -> bytes:
        """All grades of a school (or one exam) as an Excel workbook."""
        query = select(Grade).where(Grade.school_id == school_id)
        if exam_id:
            query = query.where(Grade.exam_id == exam_id)
        grades = self.db.execute(query.order_by(Grade.exam_date.desc(), Grade.id)).scalars().all()

        wb = Workbook()
        ws = wb.active
        ws.title = "Grades"

        headers = ["Student", "Exam", "Subject", "Score", "Total", "Percentage", "Grade", "GPA", "Date"]
        _write_header(ws, 1, headers)

        for row_idx, grade in enumerate(grades, start=2):
            values = [
                grade.student.name,
                grade.exam.name,
                grade.exam.subject,
                float(grade.marks_obtained),
                grade.exam.total_marks,
                float(grade.percentage),
                grade.letter_grade,
                float(grade.gpa),
                grade.exam_date.isoformat(),
            ]
            for col_idx, value in enumerate(values, start=1):
                ws.cell(row=row_idx, column=col_idx, value=value).border = THIN_BORDER

        for col_idx, width in enumerate([28, 20, 18, 10, 10, 12, 8, 8, 12], start=1):
            ws.column_dimensions[get_column_letter(col_idx)].width = width

        logger.info(f"[GRADE EXPORT] school_id={school_id}: {len(grades)} grades exported")
        return _save(wb)
