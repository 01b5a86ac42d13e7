"""Main API router aggregating all module routers."""

from fastapi import APIRouter

from gradebook.api.v1.endpoints import exams, grades, reports, students

api_router = APIRouter()

# Students (school-scoped)
api_router.include_router(
    students.router,
    prefix="/students",
    tags=["Students"],
)

# Exams (school-scoped)
api_router.include_router(
    exams.router,
    prefix="/exams",
    tags=["Exams"],
)

# Grades (school-scoped)
api_router.include_router(
    grades.router,
    prefix="/grades",
    tags=["Grades"],
)

# Reports (school-scoped)
api_router.include_router(
    reports.router,
    prefix="/reports",
    tags=["Reports"],
)
