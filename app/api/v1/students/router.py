from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rbac import require_admin
from app.core.exceptions import ServiceError
from app.core.scope import AccessScope, get_scope
from app.db.session import get_db

from .schemas import BatchSemesterAssign, BatchSemesterAssignResponse, StudentResponse, StudentUpdate
from . import service

router = APIRouter(prefix="/api/v1/students", tags=["students"])


@router.get("", response_model=List[StudentResponse])
async def list_students(
    semester_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
):
    """Students visible to the caller, ordered by roll number."""
    return await service.list_students(db, scope, semester_id=semester_id)


@router.post(
    "/batch-assign-semester",
    response_model=BatchSemesterAssignResponse,
    dependencies=[Depends(require_admin)],
)
async def batch_assign_semester(
    payload: BatchSemesterAssign,
    db: AsyncSession = Depends(get_db),
):
    try:
        return await service.batch_assign_semester(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{student_id}", response_model=StudentResponse)
async def get_student(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
):
    try:
        return await service.get_student(db, scope, student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put(
    "/{student_id}",
    response_model=StudentResponse,
    dependencies=[Depends(require_admin)],
)
async def update_student(
    student_id: UUID,
    payload: StudentUpdate,
    db: AsyncSession = Depends(get_db),
):
    try:
        return await service.update_student(db, student_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete(
    "/{student_id}",
    response_model=StudentResponse,
    dependencies=[Depends(require_admin)],
)
async def deactivate_student(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    try:
        return await service.deactivate_student(db, student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
