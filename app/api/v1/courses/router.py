from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rbac import require_admin
from app.core.exceptions import ServiceError
from app.core.scope import AccessScope, get_scope
from app.db.session import get_db

from .schemas import CourseCreate, CourseDetailResponse, CourseResponse, CourseUpdate, SemesterResponse
from . import service

router = APIRouter(prefix="/api/v1/courses", tags=["courses"])


@router.post(
    "",
    response_model=CourseResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_course(
    payload: CourseCreate,
    db: AsyncSession = Depends(get_db),
):
    """Create a course with its semesters, or reactivate a deactivated course with the same code."""
    try:
        return await service.create_course(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("", response_model=List[CourseResponse])
async def list_courses(
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
):
    return await service.list_courses(db, scope)


@router.get("/{course_id}", response_model=CourseDetailResponse)
async def get_course(
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
):
    try:
        return await service.get_course(db, scope, course_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{course_id}/semesters", response_model=List[SemesterResponse])
async def list_semesters(
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
):
    try:
        return await service.list_semesters(db, scope, course_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put(
    "/{course_id}",
    response_model=CourseResponse,
    dependencies=[Depends(require_admin)],
)
async def update_course(
    course_id: UUID,
    payload: CourseUpdate,
    db: AsyncSession = Depends(get_db),
):
    try:
        return await service.update_course(db, course_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete(
    "/{course_id}",
    response_model=CourseResponse,
    dependencies=[Depends(require_admin)],
)
async def deactivate_course(
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    try:
        return await service.deactivate_course(db, course_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
