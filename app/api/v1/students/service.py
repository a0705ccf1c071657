import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import Profile
from app.core import repository
from app.core.exceptions import NotFound, ValidationError
from app.core.models import Course, Semester, Student
from app.core.scope import AccessScope, can_view_student, restrict_students

from .schemas import BatchSemesterAssign, BatchSemesterAssignResponse, StudentResponse, StudentUpdate

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("full_name", "phone")


def _to_response(s: Student, profile: Profile) -> StudentResponse:
    return StudentResponse(
        id=s.id,
        user_id=s.user_id,
        profile_id=s.profile_id,
        roll_number=s.roll_number,
        full_name=profile.full_name,
        email=profile.email,
        phone=profile.phone,
        avatar_url=profile.avatar_url,
        course_id=s.course_id,
        current_semester_id=s.current_semester_id,
        enrollment_year=s.enrollment_year,
        enrollment_date=s.enrollment_date,
        guardian_name=s.guardian_name,
        guardian_phone=s.guardian_phone,
        address=s.address,
        is_active=s.is_active,
        created_at=s.created_at,
    )


async def validate_semester_for_course(
    db: AsyncSession, course_id: UUID, semester_id: Optional[UUID]
) -> None:
    """Course must be active; the semester, when given, must be one of its semesters."""
    course = await repository.get_visible(db, Course, course_id)
    if course is None:
        raise ValidationError("Invalid course")
    if semester_id is None:
        return
    semester = await repository.get_visible(db, Semester, semester_id)
    if semester is None or semester.course_id != course_id:
        raise ValidationError("Semester does not belong to the selected course")


async def _load(db: AsyncSession, student_id: UUID, active_only: bool = True):
    stmt = (
        select(Student, Profile)
        .join(Profile, Profile.id == Student.profile_id)
        .where(Student.id == student_id)
    )
    if active_only:
        stmt = stmt.where(Student.is_active.is_(True))
    row = (await db.execute(stmt)).first()
    if row is None:
        raise NotFound("Student not found")
    return row[0], row[1]


async def list_students(
    db: AsyncSession,
    scope: AccessScope,
    semester_id: Optional[UUID] = None,
) -> List[StudentResponse]:
    stmt = (
        select(Student, Profile)
        .join(Profile, Profile.id == Student.profile_id)
        .where(Student.is_active.is_(True))
    )
    if semester_id is not None:
        stmt = stmt.where(Student.current_semester_id == semester_id)
    stmt = restrict_students(stmt, scope).order_by(Student.roll_number)
    result = await db.execute(stmt)
    return [_to_response(s, p) for s, p in result.all()]


async def get_student(db: AsyncSession, scope: AccessScope, student_id: UUID) -> StudentResponse:
    student, profile = await _load(db, student_id)
    if not can_view_student(scope, student):
        raise NotFound("Student not found")
    return _to_response(student, profile)


async def update_student(db: AsyncSession, student_id: UUID, payload: StudentUpdate) -> StudentResponse:
    student, profile = await _load(db, student_id)
    data = payload.model_dump(exclude_unset=True)
    profile_data = {k: data.pop(k) for k in PROFILE_FIELDS if k in data}
    if "full_name" in profile_data and not (profile_data["full_name"] or "").strip():
        raise ValidationError("full_name cannot be empty")

    course_id = data.get("course_id") or student.course_id
    semester_id = data.get("current_semester_id", student.current_semester_id)
    if "course_id" in data or "current_semester_id" in data:
        await validate_semester_for_course(db, course_id, semester_id)

    roll_number = (data.get("roll_number") or student.roll_number).strip()
    if "roll_number" in data:
        data["roll_number"] = roll_number
    if roll_number != student.roll_number or course_id != student.course_id:
        await repository.ensure_key_free(
            db, Student, {"roll_number": roll_number, "course_id": course_id}, exclude_id=student.id
        )

    repository.apply_updates(profile, profile_data)
    repository.apply_updates(student, data)
    await repository.commit_or_conflict(db, f"Roll number '{roll_number}' already exists in this course")
    return _to_response(student, profile)


async def deactivate_student(db: AsyncSession, student_id: UUID) -> StudentResponse:
    """Attendance and submissions of the student stay in place."""
    student = await repository.deactivate(db, Student, student_id, "Student")
    _, profile = await _load(db, student.id, active_only=False)
    return _to_response(student, profile)


async def batch_assign_semester(db: AsyncSession, payload: BatchSemesterAssign) -> BatchSemesterAssignResponse:
    """Move students to one semester; their course follows the semester's course."""
    semester = await repository.get_visible(db, Semester, payload.semester_id)
    if semester is None:
        raise ValidationError("Invalid semester")
    ids = set(payload.student_ids)
    result = await db.execute(
        select(Student).where(Student.id.in_(ids), Student.is_active.is_(True))
    )
    students = result.scalars().all()
    missing = ids - {s.id for s in students}
    if missing:
        raise NotFound(f"Students not found: {', '.join(sorted(str(m) for m in missing))}")
    for student in students:
        student.current_semester_id = semester.id
        student.course_id = semester.course_id
    await repository.commit_or_conflict(db, "A roll number is already taken in the target course")
    logger.info("Moved %d students to semester %s", len(students), semester.id)
    return BatchSemesterAssignResponse(
        updated=len(students), semester_id=semester.id, course_id=semester.course_id
    )
