import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import Profile
from app.core import repository
from app.core.exceptions import NotFound, ValidationError
from app.core.models import Semester, Subject, Teacher, TeacherSemesterAssignment

from .schemas import (
    SemesterAssignmentCreate,
    SemesterAssignmentResponse,
    TeacherResponse,
    TeacherUpdate,
)

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("full_name", "phone")


def _to_response(
    t: Teacher,
    profile: Profile,
    assignments: Optional[List[SemesterAssignmentResponse]] = None,
) -> TeacherResponse:
    return TeacherResponse(
        id=t.id,
        user_id=t.user_id,
        profile_id=t.profile_id,
        employee_id=t.employee_id,
        full_name=profile.full_name,
        email=profile.email,
        phone=profile.phone,
        avatar_url=profile.avatar_url,
        department=t.department,
        designation=t.designation,
        qualification=t.qualification,
        joining_date=t.joining_date,
        is_active=t.is_active,
        created_at=t.created_at,
        semester_assignments=assignments or [],
    )


async def validate_semester_assignment(
    db: AsyncSession,
    semester_id: UUID,
    subject_id: Optional[UUID],
    subject_name: Optional[str],
) -> dict:
    """Fields for a TeacherSemesterAssignment row; the subject must belong to the semester."""
    semester = await repository.get_visible(db, Semester, semester_id)
    if semester is None:
        raise ValidationError(f"Invalid semester {semester_id}")
    name = (subject_name or "").strip()
    if subject_id is not None:
        subject = await repository.get_visible(db, Subject, subject_id)
        if subject is None or subject.semester_id != semester_id:
            raise ValidationError(f"Subject {subject_id} is not taught in semester {semester_id}")
        name = name or subject.name
    if not name:
        raise ValidationError("subject_name is required")
    return {"semester_id": semester_id, "subject_id": subject_id, "subject_name": name}


async def _load_assignments(db: AsyncSession, teacher_id: UUID) -> List[SemesterAssignmentResponse]:
    result = await db.execute(
        select(TeacherSemesterAssignment, Semester.name)
        .join(Semester, Semester.id == TeacherSemesterAssignment.semester_id)
        .where(
            TeacherSemesterAssignment.teacher_id == teacher_id,
            TeacherSemesterAssignment.is_active.is_(True),
        )
        .order_by(Semester.semester_number, TeacherSemesterAssignment.subject_name)
    )
    out = []
    for a, semester_name in result.all():
        item = SemesterAssignmentResponse.model_validate(a)
        item.semester_name = semester_name
        out.append(item)
    return out


async def _load(db: AsyncSession, teacher_id: UUID, active_only: bool = True):
    stmt = (
        select(Teacher, Profile)
        .join(Profile, Profile.id == Teacher.profile_id)
        .where(Teacher.id == teacher_id)
    )
    if active_only:
        stmt = stmt.where(Teacher.is_active.is_(True))
    row = (await db.execute(stmt)).first()
    if row is None:
        raise NotFound("Teacher not found")
    return row[0], row[1]


async def list_teachers(db: AsyncSession) -> List[TeacherResponse]:
    """Faculty directory: every active teacher, by name."""
    result = await db.execute(
        select(Teacher, Profile)
        .join(Profile, Profile.id == Teacher.profile_id)
        .where(Teacher.is_active.is_(True))
        .order_by(Profile.full_name)
    )
    return [_to_response(t, p) for t, p in result.all()]


async def get_teacher(db: AsyncSession, teacher_id: UUID) -> TeacherResponse:
    teacher, profile = await _load(db, teacher_id)
    return _to_response(teacher, profile, await _load_assignments(db, teacher.id))


async def update_teacher(db: AsyncSession, teacher_id: UUID, payload: TeacherUpdate) -> TeacherResponse:
    teacher, profile = await _load(db, teacher_id)
    data = payload.model_dump(exclude_unset=True)
    profile_data = {k: data.pop(k) for k in PROFILE_FIELDS if k in data}
    if "full_name" in profile_data and not (profile_data["full_name"] or "").strip():
        raise ValidationError("full_name cannot be empty")
    if data.get("employee_id") is not None:
        data["employee_id"] = data["employee_id"].strip()
        if data["employee_id"] != teacher.employee_id:
            await repository.ensure_key_free(db, Teacher, {"employee_id": data["employee_id"]}, exclude_id=teacher.id)
    repository.apply_updates(profile, profile_data)
    repository.apply_updates(teacher, data)
    await repository.commit_or_conflict(db, f"Employee id '{teacher.employee_id}' already exists")
    return await get_teacher(db, teacher_id)


async def deactivate_teacher(db: AsyncSession, teacher_id: UUID) -> TeacherResponse:
    """Assignments, materials and attendance recorded by the teacher are kept."""
    teacher = await repository.deactivate(db, Teacher, teacher_id, "Teacher")
    _, profile = await _load(db, teacher.id, active_only=False)
    return _to_response(teacher, profile)


async def add_semester_assignment(
    db: AsyncSession, teacher_id: UUID, payload: SemesterAssignmentCreate
) -> SemesterAssignmentResponse:
    await _load(db, teacher_id)
    fields = await validate_semester_assignment(db, payload.semester_id, payload.subject_id, payload.subject_name)
    assignment = TeacherSemesterAssignment(teacher_id=teacher_id, is_active=True, **fields)
    db.add(assignment)
    await db.commit()
    await db.refresh(assignment)
    logger.info(
        "Assigned teacher %s to semester %s (%s)", teacher_id, fields["semester_id"], fields["subject_name"]
    )
    return SemesterAssignmentResponse.model_validate(assignment)


async def deactivate_semester_assignment(
    db: AsyncSession, teacher_id: UUID, assignment_id: UUID
) -> SemesterAssignmentResponse:
    assignment = await db.get(TeacherSemesterAssignment, assignment_id)
    if assignment is None or assignment.teacher_id != teacher_id:
        raise NotFound("Semester assignment not found")
    assignment = await repository.deactivate(db, TeacherSemesterAssignment, assignment_id, "Semester assignment")
    return SemesterAssignmentResponse.model_validate(assignment)
