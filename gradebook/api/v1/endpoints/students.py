"""Student endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from gradebook.core.database import get_db
from gradebook.core.dependencies import CurrentSchool
from gradebook.models.audit import AuditAction
from gradebook.models.student import StudentStatus
from gradebook.schemas.common import PaginatedResponse
from gradebook.schemas.student import StudentCreate, StudentFilter, StudentResponse
from gradebook.services.audit import AuditService
from gradebook.services.student import StudentService

router = APIRouter()


@router.post("", response_model=StudentResponse)
def create_student(
    request: StudentCreate,
    context: CurrentSchool,
    db: Annotated[Session, Depends(get_db)],
    http_request: Request,
):
    """Create a student in the caller's school."""
    service = StudentService(db)
    student = service.create_student(context.school_id, request)

    audit = AuditService(db)
    audit.log(
        action=AuditAction.DATA_CREATED,
        resource_type="student",
        resource_id=str(student.id),
        school_id=context.school_id,
        user_id=context.user_id,
        description=f"Student created: {student.name}",
        ip_address=http_request.client.host if http_request.client else None,
    )

    return student


@router.get("", response_model=PaginatedResponse[StudentResponse])
def list_students(
    context: CurrentSchool,
    db: Annotated[Session, Depends(get_db)],
    class_name: str | None = None,
    section: str | None = None,
    status: StudentStatus | None = None,
    search: str | None = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
):
    """List students with filtering and pagination."""
    service = StudentService(db)
    filters = StudentFilter(
        class_name=class_name,
        section=section,
        status=status,
        search=search,
    )
    return service.list_students(
        context.school_id,
        filters=filters,
        page=page,
        page_size=page_size,
    )


@router.get("/{student_id}", response_model=StudentResponse)
def get_student(
    student_id: int,
    context: CurrentSchool,
    db: Annotated[Session, Depends(get_db)],
):
    """Get student by ID."""
    service = StudentService(db)
    return service.get_student(context.school_id, student_id)
