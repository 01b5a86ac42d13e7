"""Grade entry endpoints."""

from io import BytesIO
from typing import Annotated

from fastapi import APIRouter, Depends, File, Request, UploadFile
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from gradebook.core.config import settings
from gradebook.core.database import get_db
from gradebook.core.dependencies import CurrentSchool, SchoolContext
from gradebook.core.exceptions import UploadError
from gradebook.models.audit import AuditAction
from gradebook.schemas.common import MessageResponse
from gradebook.schemas.grade import (
    BulkGradeResponse,
    BulkGradeSave,
    BulkGradeSheet,
    GradeCreate,
    GradeResponse,
    GradeSummary,
    GradeUpdate,
)
from gradebook.services.audit import AuditService
from gradebook.services.grade import GradeService

router = APIRouter()


def _log_bulk_save(
    db: Session,
    context: SchoolContext,
    http_request: Request,
    action: AuditAction,
    result: BulkGradeResponse,
    file_name: str | None = None,
) -> None:
    metadata = {
        "exam_id": result.exam_id,
        "inserted": result.inserted,
        "updated": result.updated,
        "skipped": len(result.skipped),
    }
    if file_name:
        metadata["file_name"] = file_name

    audit = AuditService(db)
    audit.log(
        action=action,
        resource_type="grade_bulk",
        resource_id=str(result.exam_id),
        school_id=context.school_id,
        user_id=context.user_id,
        description=f"Bulk grades for exam {result.exam_id}: {result.inserted + result.updated} saved",
        metadata=metadata,
        ip_address=http_request.client.host if http_request.client else None,
    )


@router.get("", response_model=list[GradeResponse])
def list_grades(
    context: CurrentSchool,
    db: Annotated[Session, Depends(get_db)],
    exam_id: int | None = None,
    student_id: int | None = None,
):
    """List grades, newest exam first."""
    service = GradeService(db)
    return service.list_grades(context.school_id, exam_id=exam_id, student_id=student_id)


@router.get("/summary", response_model=GradeSummary)
def get_grade_summary(
    context: CurrentSchool,
    db: Annotated[Session, Depends(get_db)],
    exam_id: int | None = None,
):
    """
    Average GPA, pass rate and excellence rate.
    Falls back to all of the school's grades when the exam has none.
    """
    service = GradeService(db)
    return service.get_summary(context.school_id, exam_id=exam_id)


@router.post("", response_model=GradeResponse)
def create_grade(
    request: GradeCreate,
    context: CurrentSchool,
    db: Annotated[Session, Depends(get_db)],
    http_request: Request,
):
    """
    Record one student's marks on one exam.
    Marks obtained may not exceed the exam's total marks.
    """
    service = GradeService(db)
    grade = service.create_grade(context.school_id, request)

    audit = AuditService(db)
    audit.log(
        action=AuditAction.DATA_CREATED,
        resource_type="grade",
        resource_id=str(grade.id),
        school_id=context.school_id,
        user_id=context.user_id,
        description=f"Grade recorded for {grade.student_name}: {grade.exam_name} - {grade.subject}",
        ip_address=http_request.client.host if http_request.client else None,
    )

    return grade


# ==========================================
# Bulk Entry
# ==========================================

@router.post("/bulk", response_model=BulkGradeResponse)
def save_bulk_grades(
    request: BulkGradeSave,
    context: CurrentSchool,
    db: Annotated[Session, Depends(get_db)],
    http_request: Request,
):
    """
    Save marks for many students of one exam.
    Students with a grade already are updated, the rest are inserted.
    Rows that cannot be saved are returned under skipped.
    """
    service = GradeService(db)
    result = service.save_bulk(context.school_id, request.exam_id, request.marks)

    if result.inserted or result.updated:
        _log_bulk_save(db, context, http_request, AuditAction.BULK_GRADES_SAVED, result)

    return result


@router.get("/bulk/{exam_id}", response_model=BulkGradeSheet)
def get_bulk_sheet(
    exam_id: int,
    context: CurrentSchool,
    db: Annotated[Session, Depends(get_db)],
    search: str | None = None,
):
    """Exam roster with the marks already recorded, for bulk entry."""
    service = GradeService(db)
    return service.get_bulk_sheet(context.school_id, exam_id, search=search)


@router.get("/bulk/{exam_id}/template")
def download_bulk_template(
    exam_id: int,
    context: CurrentSchool,
    db: Annotated[Session, Depends(get_db)],
):
    """Download the Excel sheet for entering an exam's marks offline."""
    service = GradeService(db)
    content = service.generate_bulk_template(context.school_id, exam_id)

    return StreamingResponse(
        BytesIO(content),
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f"attachment; filename=grades_exam_{exam_id}.xlsx"},
    )


@router.post("/bulk/{exam_id}/upload", response_model=BulkGradeResponse)
def upload_bulk_grades(
    exam_id: int,
    context: CurrentSchool,
    db: Annotated[Session, Depends(get_db)],
    http_request: Request,
    file: UploadFile = File(...),
):
    """
    Save marks from a filled-in bulk template.
    Download the template first to see the expected format.
    """
    if not file.filename:
        raise UploadError("No file provided")

    if not any(file.filename.endswith(ext) for ext in settings.ALLOWED_EXTENSIONS):
        raise UploadError("Only .xlsx files are allowed")

    content = file.file.read()
    if len(content) > settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024:
        raise UploadError(f"File size exceeds {settings.MAX_UPLOAD_SIZE_MB}MB limit")

    service = GradeService(db)
    marks = service.parse_bulk_upload(content)
    result = service.save_bulk(context.school_id, exam_id, marks)

    _log_bulk_save(
        db, context, http_request, AuditAction.UPLOAD_COMPLETED, result, file_name=file.filename
    )

    return result


# ==========================================
# Single Grade
# ==========================================

@router.get("/{grade_id}", response_model=GradeResponse)
def get_grade(
    grade_id: int,
    context: CurrentSchool,
    db: Annotated[Session, Depends(get_db)],
):
    """Get grade by ID."""
    service = GradeService(db)
    return service.get_grade_response(context.school_id, grade_id)


@router.patch("/{grade_id}", response_model=GradeResponse)
def update_grade(
    grade_id: int,
    request: GradeUpdate,
    context: CurrentSchool,
    db: Annotated[Session, Depends(get_db)],
    http_request: Request,
):
    """
    Change the marks of a grade.
    Exam and student of an existing grade are fixed.
    """
    service = GradeService(db)
    grade = service.update_grade(context.school_id, grade_id, request)

    audit = AuditService(db)
    audit.log(
        action=AuditAction.DATA_UPDATED,
        resource_type="grade",
        resource_id=str(grade.id),
        school_id=context.school_id,
        user_id=context.user_id,
        description=f"Grade updated for {grade.student_name}: {grade.marks_obtained}",
        metadata={"marks_obtained": str(grade.marks_obtained)},
        ip_address=http_request.client.host if http_request.client else None,
    )

    return grade


@router.delete("/{grade_id}", response_model=MessageResponse)
def delete_grade(
    grade_id: int,
    context: CurrentSchool,
    db: Annotated[Session, Depends(get_db)],
    http_request: Request,
):
    """Delete a grade."""
    service = GradeService(db)
    service.delete_grade(context.school_id, grade_id)

    audit = AuditService(db)
    audit.log(
        action=AuditAction.DATA_DELETED,
        resource_type="grade",
        resource_id=str(grade_id),
        school_id=context.school_id,
        user_id=context.user_id,
        description=f"Grade {grade_id} deleted",
        ip_address=http_request.client.host if http_request.client else None,
    )

    return MessageResponse(message="Grade deleted successfully")
