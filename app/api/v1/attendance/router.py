from datetime import date
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rbac import require_roles
from app.core.enums import AppRole
from app.core.exceptions import ServiceError
from app.core.scope import AccessScope, get_scope
from app.db.session import get_db

from .schemas import (
    AttendanceRecord,
    AttendanceSessionResponse,
    AttendanceSessionSave,
    AttendanceSummary,
    StudentAttendanceResponse,
)
from . import service

router = APIRouter(prefix="/api/v1/attendance", tags=["attendance"])


@router.post(
    "/sessions",
    response_model=AttendanceSessionResponse,
    dependencies=[Depends(require_roles(AppRole.ADMIN, AppRole.TEACHER))],
)
async def save_session(
    payload: AttendanceSessionSave,
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
):
    """Save the full roster for a semester subject on a date. An empty map clears it."""
    try:
        return await service.save_session(db, scope, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/sessions",
    response_model=AttendanceSessionResponse,
    dependencies=[Depends(require_roles(AppRole.ADMIN, AppRole.TEACHER))],
)
async def load_session(
    semester_id: UUID = Query(...),
    subject_id: UUID = Query(...),
    on: date = Query(..., alias="date"),
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
):
    try:
        return await service.load_session(db, scope, semester_id, subject_id, on)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/me",
    response_model=StudentAttendanceResponse,
    dependencies=[Depends(require_roles(AppRole.STUDENT))],
)
async def my_attendance(
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
):
    return await service.my_attendance(db, scope)


@router.get("/students/{student_id}", response_model=List[AttendanceRecord])
async def list_student_attendance(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
):
    try:
        return await service.list_student_attendance(db, scope, student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/students/{student_id}/summary", response_model=AttendanceSummary)
async def student_summary(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
):
    try:
        return await service.student_summary(db, scope, student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
