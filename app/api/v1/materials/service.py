import logging
from typing import List, Optional
from uuid import UUID

from fastapi import UploadFile
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import repository
from app.core.enums import AppRole, FileKind
from app.core.exceptions import NotFound, Unauthorized, ValidationError
from app.core.models import Material, Semester, Subject, Teacher
from app.core.scope import AccessScope, can_write_subject, owns_teaching_row, restrict_teaching_rows
from app.core.storage import FileStore, store_upload

from .schemas import MaterialCreate, MaterialResponse, MaterialUpdate

logger = logging.getLogger(__name__)

CLEARABLE_FIELDS = ("subject_id", "description")


def _to_response(m: Material, subject_name: Optional[str] = None) -> MaterialResponse:
    item = MaterialResponse.model_validate(m)
    item.subject_name = subject_name
    return item


async def _check_subject(db: AsyncSession, semester_id: UUID, subject_id: Optional[UUID]) -> None:
    if subject_id is None:
        return
    subject = await db.get(Subject, subject_id)
    if subject is None or subject.semester_id != semester_id:
        raise ValidationError("Subject is not taught in this semester")


async def create_material(
    db: AsyncSession,
    scope: AccessScope,
    store: FileStore,
    payload: MaterialCreate,
    file: Optional[UploadFile] = None,
) -> MaterialResponse:
    if not can_write_subject(scope, payload.semester_id, payload.subject_id):
        raise Unauthorized("You can only share materials with your assigned semesters")
    title = payload.title.strip()
    if not title:
        raise ValidationError("Title is required")
    if await repository.get_visible(db, Semester, payload.semester_id) is None:
        raise ValidationError("Invalid semester")
    await _check_subject(db, payload.semester_id, payload.subject_id)

    if scope.role == AppRole.TEACHER:
        teacher_id = scope.teacher_id
    else:
        if payload.teacher_id is None or await repository.get_visible(db, Teacher, payload.teacher_id) is None:
            raise ValidationError("A valid teacher_id is required")
        teacher_id = payload.teacher_id

    material = Material(
        teacher_id=teacher_id,
        semester_id=payload.semester_id,
        subject_id=payload.subject_id,
        title=title,
        description=payload.description,
        is_active=True,
    )
    if file is not None:
        material.file_url = await store_upload(store, FileKind.MATERIALS, teacher_id, file)
        material.file_name = file.filename
        material.file_type = file.content_type
    db.add(material)
    await db.commit()
    await db.refresh(material)
    logger.info("Material %s shared with semester %s", material.id, material.semester_id)
    return _to_response(material)


async def list_materials(
    db: AsyncSession,
    scope: AccessScope,
    semester_id: Optional[UUID] = None,
) -> List[MaterialResponse]:
    stmt = (
        select(Material, Subject.name)
        .outerjoin(Subject, Subject.id == Material.subject_id)
        .where(Material.is_active.is_(True))
    )
    if semester_id is not None:
        stmt = stmt.where(Material.semester_id == semester_id)
    stmt = restrict_teaching_rows(stmt, Material, scope).order_by(Material.created_at.desc())
    result = await db.execute(stmt)
    return [_to_response(m, subject_name) for m, subject_name in result.all()]


async def _get_owned(db: AsyncSession, scope: AccessScope, material_id: UUID) -> Material:
    material = await repository.get_or_404(db, Material, material_id, "Material")
    if not owns_teaching_row(scope, material):
        raise NotFound("Material not found")
    return material


async def update_material(
    db: AsyncSession,
    scope: AccessScope,
    store: FileStore,
    material_id: UUID,
    payload: MaterialUpdate,
    file: Optional[UploadFile] = None,
) -> MaterialResponse:
    material = await _get_owned(db, scope, material_id)
    data = payload.model_dump(exclude_unset=True)
    if "title" in data:
        data["title"] = data["title"].strip()
        if not data["title"]:
            raise ValidationError("Title is required")
    if "subject_id" in data:
        if not can_write_subject(scope, material.semester_id, data["subject_id"]):
            raise Unauthorized("You can only share materials with your assigned semesters")
        await _check_subject(db, material.semester_id, data["subject_id"])
    if file is not None:
        data["file_url"] = await store_upload(store, FileKind.MATERIALS, material.teacher_id, file)
        data["file_name"] = file.filename
        data["file_type"] = file.content_type
    repository.apply_updates(material, data)
    await db.commit()
    await db.refresh(material)
    return _to_response(material)


async def deactivate_material(db: AsyncSession, scope: AccessScope, material_id: UUID) -> MaterialResponse:
    await _get_owned(db, scope, material_id)
    material = await repository.deactivate(db, Material, material_id, "Material")
    return _to_response(material)
