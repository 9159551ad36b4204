"""Users API wrappers: the department student listing and single-student profiles."""
from __future__ import annotations

import typing as t

from agenda.models import StudentRecord
from booking_api import config
from booking_api.http import call_api
from booking_api.result import ApiError, ApiResult, Err, ErrorKind
from booking_api.session import SessionContext
from services.shared.models import Classification, Student, StudentCredentials, StudentProfile, StudentsPage

# Friendlier wording for the profile lookup's access failures
PROFILE_ERROR_MESSAGES = {
    "INVALID_CREDENTIALS": "Invalid password. Please try again.",
    "FORBIDDEN_ACCESS": "You do not have permission to access this student.",
    "STUDENT_NOT_FOUND": "Student not found.",
}


async def get_student_classifications(
    ctx: SessionContext,
    classification: t.Optional[Classification] = None,
    is_flagged: t.Optional[bool] = None,
    cursor: t.Optional[str] = None,
    limit: int = config.STUDENT_PAGE_SIZE,
) -> ApiResult[StudentsPage]:
    """
    Fetch one page of classified students (GET /students).

    Args:
        ctx: Session context
        classification: Only students with this classification
        is_flagged: Only flagged (True) or unflagged (False) students
        cursor: ``nextCursor`` from the previous page
        limit: Page size

    Returns:
        ``Ok(StudentsPage)`` or ``Err(ApiError)``
    """
    params: dict[str, t.Any] = {"limit": limit}
    if classification:
        params["classification"] = classification
    if is_flagged is not None:
        params["isFlagged"] = "true" if is_flagged else "false"
    if cursor:
        params["cursor"] = cursor

    return await call_api(
        ctx,
        "GET",
        ctx.users_endpoint("/students"),
        StudentsPage,
        params=params,
        description="fetch students",
    )


async def get_department_students(
    ctx: SessionContext,
    cursor: t.Optional[str] = None,
    limit: int = config.STUDENT_PAGE_SIZE,
) -> ApiResult[StudentsPage]:
    """Fetch one unfiltered page of the department's students."""
    return await get_student_classifications(ctx, cursor=cursor, limit=limit)


async def get_student_profile(
    ctx: SessionContext,
    student_id: str,
    email: str,
    password: str,
) -> ApiResult[StudentProfile]:
    """Fetch one student's profile and mood check-ins (POST /students/{id}).

    The backend re-checks the counselor's login before releasing the profile.
    """
    result = await call_api(
        ctx,
        "POST",
        ctx.users_endpoint(f"/students/{student_id}"),
        StudentProfile,
        json=StudentCredentials(email=email, password=password).model_dump(),
        description="fetch student profile",
    )
    if isinstance(result, Err) and result.error.kind is ErrorKind.ENVELOPE:
        friendly = PROFILE_ERROR_MESSAGES.get(result.error.code)
        if friendly:
            return Err(ApiError(ErrorKind.ENVELOPE, result.error.code, friendly))
    return result


def student_to_record(student: Student) -> StudentRecord:
    """Convert a wire Student to the directory's StudentRecord."""
    return StudentRecord(
        id=student.student_id,
        display_name=student.user_name or student.email,
        email=student.email,
    )
