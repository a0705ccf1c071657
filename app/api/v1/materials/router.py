from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rbac import require_roles
from app.core import repository
from app.core.enums import AppRole
from app.core.exceptions import ServiceError
from app.core.scope import AccessScope, get_scope
from app.core.storage import FileStore, get_file_store
from app.db.session import get_db

from .schemas import MaterialCreate, MaterialResponse, MaterialUpdate
from . import service

router = APIRouter(prefix="/api/v1/materials", tags=["materials"])

staff_only = [Depends(require_roles(AppRole.ADMIN, AppRole.TEACHER))]


@router.post(
    "",
    response_model=MaterialResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=staff_only,
)
async def create_material(
    semester_id: UUID = Form(...),
    title: str = Form(...),
    subject_id: Optional[UUID] = Form(None),
    description: Optional[str] = Form(None),
    teacher_id: Optional[UUID] = Form(None),
    file: Optional[UploadFile] = File(None),
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
    store: FileStore = Depends(get_file_store),
):
    payload = MaterialCreate(
        semester_id=semester_id,
        subject_id=subject_id,
        title=title,
        description=description,
        teacher_id=teacher_id,
    )
    try:
        return await service.create_material(db, scope, store, payload, file)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("", response_model=List[MaterialResponse])
async def list_materials(
    semester_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
):
    """Newest first. Students see their current semester only."""
    return await service.list_materials(db, scope, semester_id=semester_id)


@router.put(
    "/{material_id}",
    response_model=MaterialResponse,
    dependencies=staff_only,
)
async def update_material(
    material_id: UUID,
    subject_id: Optional[UUID] = Form(None),
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    clear: Optional[List[str]] = Form(None, description="Fields to reset: subject_id, description"),
    file: Optional[UploadFile] = File(None),
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
    store: FileStore = Depends(get_file_store),
):
    try:
        fields = repository.form_updates(
            {"subject_id": subject_id, "title": title, "description": description},
            clear,
            nullable=service.CLEARABLE_FIELDS,
        )
        payload = MaterialUpdate(**fields)
        return await service.update_material(db, scope, store, material_id, payload, file)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete(
    "/{material_id}",
    response_model=MaterialResponse,
    dependencies=staff_only,
)
async def deactivate_material(
    material_id: UUID,
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
):
    try:
        return await service.deactivate_material(db, scope, material_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
