"""Result reporting endpoints."""

from io import BytesIO
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from gradebook.core.database import get_db
from gradebook.core.dependencies import CurrentSchool
from gradebook.schemas.report import ClassPerformance, ReportCard, TabulationSheet
from gradebook.services.report import ReportService

router = APIRouter()

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@router.get("/report-card", response_model=ReportCard)
def get_report_card(
    context: CurrentSchool,
    db: Annotated[Session, Depends(get_db)],
    student_id: int = Query(...),
    exam_id: int = Query(..., description="Any exam of the family to report on"),
):
    """
    Report card of a student for every subject of an exam.
    Subjects are the exams sharing the name, class and semester of exam_id.
    """
    service = ReportService(db)
    return service.get_report_card(context.school_id, student_id, exam_id)


@router.get("/tabulation", response_model=TabulationSheet)
def get_tabulation(
    context: CurrentSchool,
    db: Annotated[Session, Depends(get_db)],
    class_name: str = Query(...),
    exam_name: str = Query(...),
    section: str | None = None,
    semester: str | None = None,
):
    """Ranked results of a class across all subjects of one exam."""
    service = ReportService(db)
    return service.get_tabulation(
        context.school_id,
        class_name=class_name,
        exam_name=exam_name,
        section=section,
        semester=semester,
    )


@router.get("/tabulation/export")
def export_tabulation(
    context: CurrentSchool,
    db: Annotated[Session, Depends(get_db)],
    class_name: str = Query(...),
    exam_name: str = Query(...),
    section: str | None = None,
    semester: str | None = None,
):
    """Download the tabulation sheet as Excel."""
    service = ReportService(db)
    sheet = service.get_tabulation(
        context.school_id,
        class_name=class_name,
        exam_name=exam_name,
        section=section,
        semester=semester,
    )
    content = service.export_tabulation(sheet)

    filename = f"tabulation_{exam_name}_{class_name}"
    if section:
        filename += f"_{section}"
    filename = filename.replace(" ", "_") + ".xlsx"

    return StreamingResponse(
        BytesIO(content),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.get("/class-performance", response_model=list[ClassPerformance])
def get_class_performance(
    context: CurrentSchool,
    db: Annotated[Session, Depends(get_db)],
):
    """Average GPA per class-section."""
    service = ReportService(db)
    return service.get_class_performance(context.school_id)


@router.get("/grades/export")
def export_grades(
    context: CurrentSchool,
    db: Annotated[Session, Depends(get_db)],
    exam_id: int | None = None,
):
    """Download grades as Excel, for one exam or the whole school."""
    service = ReportService(db)
    content = service.export_grades(context.school_id, exam_id=exam_id)

    filename = f"grades_exam_{exam_id}.xlsx" if exam_id else "grades.xlsx"
    return StreamingResponse(
        BytesIO(content),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
