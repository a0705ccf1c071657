from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rbac import require_admin
from app.core.exceptions import ServiceError
from app.core.scope import AccessScope, get_scope
from app.db.session import get_db

from .schemas import SubjectCreate, SubjectResponse, SubjectUpdate
from . import service

router = APIRouter(prefix="/api/v1/subjects", tags=["subjects"])


@router.post(
    "",
    response_model=SubjectResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_subject(
    payload: SubjectCreate,
    db: AsyncSession = Depends(get_db),
):
    """Create a subject in a semester (or reactivate one with the same code)."""
    try:
        return await service.create_subject(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("", response_model=List[SubjectResponse])
async def list_subjects(
    semester_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
):
    return await service.list_subjects(db, scope, semester_id=semester_id)


@router.get("/{subject_id}", response_model=SubjectResponse)
async def get_subject(
    subject_id: UUID,
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
):
    try:
        return await service.get_subject(db, scope, subject_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put(
    "/{subject_id}",
    response_model=SubjectResponse,
    dependencies=[Depends(require_admin)],
)
async def update_subject(
    subject_id: UUID,
    payload: SubjectUpdate,
    db: AsyncSession = Depends(get_db),
):
    try:
        return await service.update_subject(db, subject_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete(
    "/{subject_id}",
    response_model=SubjectResponse,
    dependencies=[Depends(require_admin)],
)
async def deactivate_subject(
    subject_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    try:
        return await service.deactivate_subject(db, subject_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
