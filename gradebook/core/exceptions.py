"""Custom exception classes and error handling."""

from decimal import Decimal
from typing import Any

from fastapi import HTTPException, status


class AppException(HTTPException):
    """Base application exception."""

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(
            status_code=status_code,
            detail={
                "success": False,
                "error": {
                    "code": code,
                    "message": message,
                    "details": details or {},
                },
            },
        )


class AuthenticationError(AppException):
    """Authentication failed."""

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            code="AUTH_FAILED",
            message=message,
        )


class SchoolInactiveError(AppException):
    """School is deactivated and its data is not reachable."""

    def __init__(self, school_id: str | None = None):
        details = {}
        if school_id:
            details["school_id"] = school_id
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            code="SCHOOL_INACTIVE",
            message="School is inactive. All requests are blocked.",
            details=details,
        )


class ValidationError(AppException):
    """Data validation failed."""

    def __init__(
        self,
        message: str = "Validation error",
        details: dict[str, Any] | None = None,
        code: str = "VALIDATION_ERROR",
    ):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            code=code,
            message=message,
            details=details,
        )


class ExamRequiredError(ValidationError):
    """No exam selected for a grade entry."""

    def __init__(self):
        super().__init__("Please select an exam.", code="EXAM_REQUIRED")


class StudentRequiredError(ValidationError):
    """No student selected for a grade entry."""

    def __init__(self):
        super().__init__("Please select a student.", code="STUDENT_REQUIRED")


class MarksExceedTotalError(ValidationError):
    """Marks obtained are above the exam's total marks."""

    def __init__(self, total_marks: int | Decimal):
        super().__init__(
            f"Marks obtained cannot exceed total marks ({total_marks}).",
            details={"total_marks": str(total_marks)},
            code="MARKS_EXCEED_TOTAL",
        )


class UploadError(AppException):
    """File upload failed."""

    def __init__(
        self,
        message: str = "Upload failed",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            code="UPLOAD_FAILED",
            message=message,
            details=details,
        )


class NotFoundError(AppException):
    """Resource not found."""

    def __init__(
        self,
        resource: str = "Resource",
        identifier: str | None = None,
    ):
        details = {}
        if identifier:
            details["identifier"] = identifier
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            code="NOT_FOUND",
            message=f"{resource} not found",
            details=details,
        )


class ConflictError(AppException):
    """Resource already exists."""

    def __init__(
        self,
        message: str = "Resource already exists",
        code: str = "GRADE_EXISTS",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            code=code,
            message=message,
            details=details,
        )


class PersistenceError(AppException):
    """The record store rejected or failed a write."""

    def __init__(
        self,
        message: str = "Database operation failed",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            code="PERSISTENCE_ERROR",
            message=message,
            details=details,
        )
