"""Exam endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from gradebook.core.database import get_db
from gradebook.core.dependencies import CurrentSchool
from gradebook.models.audit import AuditAction
from gradebook.models.exam import ExamStatus
from gradebook.schemas.exam import ExamCreate, ExamFilter, ExamResponse
from gradebook.schemas.student import StudentResponse
from gradebook.services.audit import AuditService
from gradebook.services.exam import ExamService

router = APIRouter()


@router.post("", response_model=ExamResponse)
def create_exam(
    request: ExamCreate,
    context: CurrentSchool,
    db: Annotated[Session, Depends(get_db)],
    http_request: Request,
):
    """
    Schedule an exam.
    Passing marks may not exceed total marks.
    """
    service = ExamService(db)
    exam = service.create_exam(context.school_id, request)

    audit = AuditService(db)
    audit.log(
        action=AuditAction.DATA_CREATED,
        resource_type="exam",
        resource_id=str(exam.id),
        school_id=context.school_id,
        user_id=context.user_id,
        description=f"Exam created: {exam.name} - {exam.subject} ({exam.class_name})",
        ip_address=http_request.client.host if http_request.client else None,
    )

    return exam


@router.get("", response_model=list[ExamResponse])
def list_exams(
    context: CurrentSchool,
    db: Annotated[Session, Depends(get_db)],
    class_name: str | None = None,
    status: ExamStatus | None = None,
    exclude_completed: bool = False,
):
    """
    List exams, most recent first.
    Pass exclude_completed=true for the exams open to grade entry.
    """
    service = ExamService(db)
    filters = ExamFilter(
        class_name=class_name,
        status=status,
        exclude_completed=exclude_completed,
    )
    return service.list_exams(context.school_id, filters)


@router.get("/{exam_id}", response_model=ExamResponse)
def get_exam(
    exam_id: int,
    context: CurrentSchool,
    db: Annotated[Session, Depends(get_db)],
):
    """Get exam by ID."""
    service = ExamService(db)
    return service.get_exam(context.school_id, exam_id)


@router.get("/{exam_id}/roster", response_model=list[StudentResponse])
def get_exam_roster(
    exam_id: int,
    context: CurrentSchool,
    db: Annotated[Session, Depends(get_db)],
):
    """Active students eligible to be graded on the exam."""
    service = ExamService(db)
    exam = service.get_exam(context.school_id, exam_id)
    return service.get_roster(context.school_id, exam)
