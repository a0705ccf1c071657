from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import repository
from app.core.exceptions import DuplicateKey, NotFound, ValidationError
from app.core.models import Semester, Subject
from app.core.scope import AccessScope, restrict_subjects

from .schemas import SubjectCreate, SubjectResponse, SubjectUpdate


def _to_response(s: Subject, semester_name: Optional[str] = None, reactivated: bool = False) -> SubjectResponse:
    return SubjectResponse(
        id=s.id,
        semester_id=s.semester_id,
        name=s.name,
        code=s.code,
        credits=s.credits,
        is_active=s.is_active,
        created_at=s.created_at,
        semester_name=semester_name,
        reactivated=reactivated,
    )


async def _require_semester(db: AsyncSession, semester_id: UUID) -> Semester:
    semester = await repository.get_visible(db, Semester, semester_id)
    if semester is None:
        raise ValidationError("Invalid semester")
    return semester


async def create_subject(db: AsyncSession, payload: SubjectCreate) -> SubjectResponse:
    """Codes are unique across all semesters; a deactivated code is reactivated and moved."""
    await _require_semester(db, payload.semester_id)
    code = payload.code.strip().upper()
    subject, reactivated = await repository.create_or_reactivate(
        db,
        Subject,
        {"code": code},
        {"name": payload.name.strip(), "credits": payload.credits, "semester_id": payload.semester_id},
    )
    await repository.commit_or_conflict(db, f"Subject code '{code}' already exists")
    await db.refresh(subject)
    return _to_response(subject, reactivated=reactivated)


async def list_subjects(
    db: AsyncSession,
    scope: AccessScope,
    semester_id: Optional[UUID] = None,
) -> List[SubjectResponse]:
    stmt = (
        select(Subject, Semester.name)
        .join(Semester, Semester.id == Subject.semester_id)
        .where(Subject.is_active.is_(True))
    )
    if semester_id is not None:
        stmt = stmt.where(Subject.semester_id == semester_id)
    stmt = restrict_subjects(stmt, scope).order_by(Semester.semester_number, Subject.name)
    result = await db.execute(stmt)
    return [_to_response(s, semester_name) for s, semester_name in result.all()]


async def get_subject(db: AsyncSession, scope: AccessScope, subject_id: UUID) -> SubjectResponse:
    stmt = select(Subject).where(Subject.id == subject_id, Subject.is_active.is_(True))
    result = await db.execute(restrict_subjects(stmt, scope))
    subject = result.scalar_one_or_none()
    if subject is None:
        raise NotFound("Subject not found")
    return _to_response(subject)


async def update_subject(db: AsyncSession, subject_id: UUID, payload: SubjectUpdate) -> SubjectResponse:
    subject = await repository.get_or_404(db, Subject, subject_id, "Subject")
    data = payload.model_dump(exclude_unset=True)
    if data.get("semester_id") is not None:
        await _require_semester(db, data["semester_id"])
    if data.get("code") is not None:
        data["code"] = data["code"].strip().upper()
        if data["code"] != subject.code:
            existing = await repository.find_by_key(db, Subject, {"code": data["code"]})
            if existing is not None and existing.id != subject.id:
                raise DuplicateKey(f"Subject code '{data['code']}' already exists")
    if data.get("name") is not None:
        data["name"] = data["name"].strip()
    repository.apply_updates(subject, data)
    await repository.commit_or_conflict(db, f"Subject code '{subject.code}' already exists")
    await db.refresh(subject)
    return _to_response(subject)


async def deactivate_subject(db: AsyncSession, subject_id: UUID) -> SubjectResponse:
    subject = await repository.deactivate(db, Subject, subject_id, "Subject")
    return _to_response(subject)
