"""Database models package."""

from gradebook.models.audit import AuditAction, AuditLog
from gradebook.models.exam import Exam, ExamStatus
from gradebook.models.grade import Grade
from gradebook.models.school import School
from gradebook.models.student import Student, StudentStatus

__all__ = [
    # School
    "School",
    # Student
    "Student",
    "StudentStatus",
    # Exam
    "Exam",
    "ExamStatus",
    # Grade
    "Grade",
    # Audit
    "AuditLog",
    "AuditAction",
]
