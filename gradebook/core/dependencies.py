"""FastAPI dependency injection utilities."""

from typing import Annotated

from fastapi import Depends, Header
from sqlalchemy import select
from sqlalchemy.orm import Session

from gradebook.core.database import get_db
from gradebook.core.exceptions import AuthenticationError, SchoolInactiveError
from gradebook.core.security import verify_access_token
from gradebook.models.school import School


class SchoolContext:
    """Context object containing the calling user and their school."""

    def __init__(self, user_id: int, school: School):
        self.user_id = user_id
        self.school = school

    @property
    def school_id(self) -> int:
        return self.school.id


def get_school_context(
    db: Annotated[Session, Depends(get_db)],
    authorization: str = Header(..., description="Bearer token"),
) -> SchoolContext:
    """Validate the bearer token and resolve the caller's school."""
    if not authorization.startswith("Bearer "):
        raise AuthenticationError("Invalid authorization header format")

    token = authorization[7:]  # Remove "Bearer " prefix
    payload = verify_access_token(token)

    if not payload:
        raise AuthenticationError("Invalid or expired token")

    user_id_str = payload.get("sub")
    school_id = payload.get("school_id")
    if not user_id_str or school_id is None:
        raise AuthenticationError("Invalid token payload")

    try:
        user_id = int(user_id_str)
        school_id = int(school_id)
    except (TypeError, ValueError):
        raise AuthenticationError("Invalid user or school ID in token")

    result = db.execute(select(School).where(School.id == school_id))
    school = result.scalar_one_or_none()

    if not school:
        raise AuthenticationError("School not found")

    if not school.is_active:
        raise SchoolInactiveError(str(school_id))

    return SchoolContext(user_id=user_id, school=school)


# Type alias for dependency injection
CurrentSchool = Annotated[SchoolContext, Depends(get_school_context)]
