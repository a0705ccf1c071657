import logging
from typing import List
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import repository
from app.core.exceptions import DuplicateKey, NotFound
from app.core.models import Course, Semester
from app.core.scope import AccessScope, restrict_courses, restrict_semesters

from .schemas import CourseCreate, CourseDetailResponse, CourseResponse, CourseUpdate, SemesterResponse

logger = logging.getLogger(__name__)


def _to_response(c: Course, reactivated: bool = False) -> CourseResponse:
    return CourseResponse(
        id=c.id,
        name=c.name,
        code=c.code,
        duration_years=c.duration_years,
        total_semesters=c.total_semesters,
        description=c.description,
        is_active=c.is_active,
        created_at=c.created_at,
        reactivated=reactivated,
    )


async def create_course(db: AsyncSession, payload: CourseCreate) -> CourseResponse:
    """
    Insert a course and its semesters 1..total_semesters ("Semester 1", ...).
    A deactivated course with the same code is reactivated instead; its semesters already exist.
    """
    code = payload.code.strip().upper()
    name = payload.name.strip()
    existing = await repository.find_by_key(db, Course, {"code": code})
    if existing is not None:
        if existing.is_active:
            raise DuplicateKey(f"Course code '{code}' already exists")
        existing.is_active = True
        repository.apply_updates(
            existing,
            {"name": name, "description": payload.description, "duration_years": payload.duration_years},
        )
        await repository.commit_or_conflict(db, f"Course code '{code}' already exists")
        await db.refresh(existing)
        logger.info("Reactivated course %s (%s)", existing.id, code)
        return _to_response(existing, reactivated=True)

    course = Course(
        name=name,
        code=code,
        duration_years=payload.duration_years,
        total_semesters=payload.total_semesters,
        description=payload.description,
        is_active=True,
    )
    db.add(course)
    await db.flush()
    for number in range(1, payload.total_semesters + 1):
        db.add(
            Semester(
                course_id=course.id,
                semester_number=number,
                name=f"Semester {number}",
                is_active=True,
            )
        )
    await repository.commit_or_conflict(db, f"Course code '{code}' already exists")
    await db.refresh(course)
    logger.info("Created course %s (%s) with %d semesters", course.id, code, payload.total_semesters)
    return _to_response(course)


async def list_courses(db: AsyncSession, scope: AccessScope) -> List[CourseResponse]:
    stmt = select(Course).where(Course.is_active.is_(True)).order_by(Course.name)
    result = await db.execute(restrict_courses(stmt, scope))
    return [_to_response(c) for c in result.scalars().all()]


async def _get_scoped_course(db: AsyncSession, scope: AccessScope, course_id: UUID) -> Course:
    stmt = select(Course).where(Course.id == course_id, Course.is_active.is_(True))
    result = await db.execute(restrict_courses(stmt, scope))
    course = result.scalar_one_or_none()
    if course is None:
        raise NotFound("Course not found")
    return course


async def list_semesters(db: AsyncSession, scope: AccessScope, course_id: UUID) -> List[SemesterResponse]:
    await _get_scoped_course(db, scope, course_id)
    stmt = (
        select(Semester)
        .where(Semester.course_id == course_id, Semester.is_active.is_(True))
        .order_by(Semester.semester_number)
    )
    result = await db.execute(restrict_semesters(stmt, scope))
    return [SemesterResponse.model_validate(s) for s in result.scalars().all()]


async def get_course(db: AsyncSession, scope: AccessScope, course_id: UUID) -> CourseDetailResponse:
    course = await _get_scoped_course(db, scope, course_id)
    semesters = await list_semesters(db, scope, course_id)
    return CourseDetailResponse(**_to_response(course).model_dump(), semesters=semesters)


async def update_course(db: AsyncSession, course_id: UUID, payload: CourseUpdate) -> CourseResponse:
    course = await repository.get_or_404(db, Course, course_id, "Course")
    data = payload.model_dump(exclude_unset=True)
    if data.get("code") is not None:
        data["code"] = data["code"].strip().upper()
        if data["code"] != course.code:
            await repository.ensure_key_free(db, Course, {"code": data["code"]}, exclude_id=course.id)
    if data.get("name") is not None:
        data["name"] = data["name"].strip()
    repository.apply_updates(course, data)
    await repository.commit_or_conflict(db, f"Course code '{course.code}' already exists")
    await db.refresh(course)
    return _to_response(course)


async def deactivate_course(db: AsyncSession, course_id: UUID) -> CourseResponse:
    """Semesters, subjects and students of the course are left as they are."""
    course = await repository.deactivate(db, Course, course_id, "Course")
    return _to_response(course)
