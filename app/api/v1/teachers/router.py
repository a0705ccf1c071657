from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.rbac import require_admin
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import SemesterAssignmentCreate, SemesterAssignmentResponse, TeacherResponse, TeacherUpdate
from . import service

router = APIRouter(prefix="/api/v1/teachers", tags=["teachers"])


@router.get(
    "",
    response_model=List[TeacherResponse],
    dependencies=[Depends(get_current_user)],
)
async def list_teachers(
    db: AsyncSession = Depends(get_db),
):
    """Faculty directory, visible to every signed-in user."""
    return await service.list_teachers(db)


@router.get(
    "/{teacher_id}",
    response_model=TeacherResponse,
    dependencies=[Depends(get_current_user)],
)
async def get_teacher(
    teacher_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    try:
        return await service.get_teacher(db, teacher_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put(
    "/{teacher_id}",
    response_model=TeacherResponse,
    dependencies=[Depends(require_admin)],
)
async def update_teacher(
    teacher_id: UUID,
    payload: TeacherUpdate,
    db: AsyncSession = Depends(get_db),
):
    try:
        return await service.update_teacher(db, teacher_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete(
    "/{teacher_id}",
    response_model=TeacherResponse,
    dependencies=[Depends(require_admin)],
)
async def deactivate_teacher(
    teacher_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    try:
        return await service.deactivate_teacher(db, teacher_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/{teacher_id}/semester-assignments",
    response_model=SemesterAssignmentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def add_semester_assignment(
    teacher_id: UUID,
    payload: SemesterAssignmentCreate,
    db: AsyncSession = Depends(get_db),
):
    try:
        return await service.add_semester_assignment(db, teacher_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete(
    "/{teacher_id}/semester-assignments/{assignment_id}",
    response_model=SemesterAssignmentResponse,
    dependencies=[Depends(require_admin)],
)
async def deactivate_semester_assignment(
    teacher_id: UUID,
    assignment_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    try:
        return await service.deactivate_semester_assignment(db, teacher_id, assignment_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
