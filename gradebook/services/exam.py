"""Exam lookup service."""

import logging
from datetime import date

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from gradebook.core.exceptions import NotFoundError
from gradebook.models.exam import Exam, ExamStatus
from gradebook.models.student import Student, StudentStatus
from gradebook.schemas.exam import ExamCreate, ExamFilter, ExamResponse
from gradebook.schemas.student import StudentFilter
from gradebook.services.grading import eligible_roster
from gradebook.services.student import StudentService

logger = logging.getLogger(__name__)


class ExamService:
    """Exam management service."""

    def __init__(self, db: Session):
        self.db = db

    def create_exam(self, school_id: int, request: ExamCreate) -> ExamResponse:
        """Schedule a new exam."""
        exam = Exam(school_id=school_id, **request.model_dump())
        self.db.add(exam)
        self.db.flush()
        self.db.refresh(exam)
        return ExamResponse.model_validate(exam)

    def get_exam(self, school_id: int, exam_id: int) -> Exam:
        """Get exam by ID."""
        result = self.db.execute(
            select(Exam).where(
                Exam.id == exam_id,
                Exam.school_id == school_id,
            )
        )
        exam = result.scalar_one_or_none()
        if not exam:
            raise NotFoundError("Exam", str(exam_id))
        return exam

    def list_exams(
        self,
        school_id: int,
        filters: ExamFilter | None = None,
    ) -> list[ExamResponse]:
        """List exams, most recent first."""
        query = select(Exam).where(Exam.school_id == school_id)

        if filters:
            if filters.class_name:
                query = query.where(Exam.class_name == filters.class_name)
            if filters.status:
                query = query.where(Exam.status == filters.status)
            if filters.exclude_completed:
                # Grades are entered only while an exam is upcoming or ongoing
                query = query.where(Exam.status != ExamStatus.COMPLETED)

        query = query.order_by(Exam.exam_date.desc(), Exam.name, Exam.subject)
        result = self.db.execute(query)
        return [ExamResponse.model_validate(e) for e in result.scalars().all()]

    def get_family(self, school_id: int, exam: Exam) -> list[Exam]:
        """All exams sharing this exam's name, class and semester."""
        result = self.db.execute(
            select(Exam).where(
                Exam.school_id == school_id,
                Exam.name == exam.name,
                Exam.class_name == exam.class_name,
                Exam.semester == exam.semester,  # None compiles to IS NULL
            ).order_by(Exam.subject)
        )
        return list(result.scalars().all())

    def get_roster(self, school_id: int, exam: Exam) -> list[Student]:
        """Active students of the exam's class and, if set, its section."""
        students = StudentService(self.db).find_students(
            school_id,
            StudentFilter(
                class_name=exam.class_name,
                section=exam.section or None,
                status=StudentStatus.ACTIVE,
            ),
        )
        return eligible_roster(exam, students)

    def refresh_statuses(self, today: date) -> int:
        """Advance exam statuses across all schools by calendar date.

        Upcoming exams become ongoing on their date; anything not completed
        becomes completed the day after.
        """
        started = self.db.execute(
            update(Exam)
            .where(Exam.exam_date == today, Exam.status == ExamStatus.UPCOMING)
            .values(status=ExamStatus.ONGOING)
        )
        finished = self.db.execute(
            update(Exam)
            .where(Exam.exam_date < today, Exam.status != ExamStatus.COMPLETED)
            .values(status=ExamStatus.COMPLETED)
        )
        self.db.flush()
        changed = (started.rowcount or 0) + (finished.rowcount or 0)
        logger.info(f"[EXAM STATUS] {started.rowcount} started, {finished.rowcount} completed for {today}")
        return changed
