"""Student lookup service."""

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from gradebook.core.exceptions import NotFoundError
from gradebook.models.student import Student
from gradebook.schemas.common import PaginatedResponse
from gradebook.schemas.student import StudentCreate, StudentFilter, StudentResponse


class StudentService:
    """Student management service."""

    def __init__(self, db: Session):
        self.db = db

    def create_student(
        self,
        school_id: int,
        request: StudentCreate,
    ) -> StudentResponse:
        """Create a new student."""
        student = Student(
            school_id=school_id,
            name=request.name,
            roll_number=request.roll_number,
            class_name=request.class_name,
            section=request.section,
            status=request.status,
        )
        self.db.add(student)
        self.db.flush()
        self.db.refresh(student)
        return StudentResponse.model_validate(student)

    def get_student(self, school_id: int, student_id: int) -> Student:
        """Get student by ID."""
        result = self.db.execute(
            select(Student).where(
                Student.id == student_id,
                Student.school_id == school_id,
            )
        )
        student = result.scalar_one_or_none()
        if not student:
            raise NotFoundError("Student", str(student_id))
        return student

    def find_students(
        self,
        school_id: int,
        filters: StudentFilter | None = None,
    ) -> list[Student]:
        """All students matching the filters, ordered by name."""
        query = self._filtered_query(school_id, filters)
        query = query.order_by(Student.name)
        result = self.db.execute(query)
        return list(result.scalars().all())

    def list_students(
        self,
        school_id: int,
        filters: StudentFilter | None = None,
        page: int = 1,
        page_size: int = 50,
    ) -> PaginatedResponse[StudentResponse]:
        """List students with filtering and pagination."""
        query = self._filtered_query(school_id, filters)

        # Get total count
        count_query = select(func.count()).select_from(query.subquery())
        total = self.db.execute(count_query).scalar() or 0

        # Apply pagination
        offset = (page - 1) * page_size
        query = query.order_by(Student.class_name, Student.section, Student.name)
        query = query.offset(offset).limit(page_size)

        students = self.db.execute(query).scalars().all()

        return PaginatedResponse[StudentResponse](
            items=[StudentResponse.model_validate(s) for s in students],
            total=total,
            page=page,
            page_size=page_size,
            total_pages=(total + page_size - 1) // page_size,
        )

    def _filtered_query(self, school_id: int, filters: StudentFilter | None):
        query = select(Student).where(Student.school_id == school_id)
        if filters:
            if filters.class_name:
                query = query.where(Student.class_name == filters.class_name)
            if filters.section:
                query = query.where(Student.section == filters.section)
            if filters.status:
                query = query.where(Student.status == filters.status)
            if filters.search:
                search_term = f"%{filters.search}%"
                query = query.where(
                    or_(
                        Student.name.ilike(search_term),
                        Student.roll_number.ilike(search_term),
                    )
                )
        return query
