"""
Shared fixtures: an in-memory SQLite database, an API client and token helpers.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"

from datetime import date

import pytest
from fastapi.testclient import TestClient

from gradebook.core.database import Base, SessionLocal, engine
from gradebook.core.security import create_access_token
from gradebook.main import app
from gradebook.models import Exam, ExamStatus, School, Student, StudentStatus


@pytest.fixture
def db():
    """Fresh schema per test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    # Not used as a context manager: the lifespan would dispose the shared in-memory engine
    return TestClient(app)


@pytest.fixture
def school(db):
    school = School(name="Green Valley School", is_active=True)
    db.add(school)
    db.commit()
    return school


@pytest.fixture
def auth_headers(school):
    token = create_access_token(user_id=7, school_id=school.id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_student(db, school):
    def _make(name, class_name="5", section="A", status=StudentStatus.ACTIVE, roll_number=""):
        student = Student(
            school_id=school.id,
            name=name,
            roll_number=roll_number,
            class_name=class_name,
            section=section,
            status=status,
        )
        db.add(student)
        db.commit()
        return student

    return _make


@pytest.fixture
def make_exam(db, school):
    def _make(
        subject="Mathematics",
        name="Midterm",
        class_name="5",
        section=None,
        total_marks=100,
        semester="Spring",
        exam_date=date(2026, 3, 10),
        status=ExamStatus.ONGOING,
    ):
        exam = Exam(
            school_id=school.id,
            name=name,
            subject=subject,
            class_name=class_name,
            section=section,
            exam_date=exam_date,
            total_marks=total_marks,
            passing_marks=0,
            status=status,
            semester=semester,
        )
        db.add(exam)
        db.commit()
        return exam

    return _make
