from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rbac import require_roles
from app.core import repository
from app.core.enums import AppRole
from app.core.exceptions import ServiceError
from app.core.scope import AccessScope, get_scope
from app.core.storage import FileStore, get_file_store
from app.db.session import get_db

from .schemas import AssignmentCreate, AssignmentResponse, AssignmentUpdate, GradeRequest, SubmissionResponse
from . import service

router = APIRouter(prefix="/api/v1/assignments", tags=["assignments"])

staff_only = [Depends(require_roles(AppRole.ADMIN, AppRole.TEACHER))]


@router.post(
    "",
    response_model=AssignmentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=staff_only,
)
async def create_assignment(
    semester_id: UUID = Form(...),
    title: str = Form(...),
    due_date: datetime = Form(...),
    subject_id: Optional[UUID] = Form(None),
    description: Optional[str] = Form(None),
    max_marks: int = Form(100),
    teacher_id: Optional[UUID] = Form(None),
    file: Optional[UploadFile] = File(None, description="Optional attachment, uploaded before the assignment is saved"),
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
    store: FileStore = Depends(get_file_store),
):
    payload = AssignmentCreate(
        semester_id=semester_id,
        subject_id=subject_id,
        title=title,
        description=description,
        due_date=due_date,
        max_marks=max_marks,
        teacher_id=teacher_id,
    )
    try:
        return await service.create_assignment(db, scope, store, payload, file)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("", response_model=List[AssignmentResponse])
async def list_assignments(
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
):
    """Students get their current semester's assignments with status pending/submitted/past_due."""
    return await service.list_assignments(db, scope)


@router.get(
    "/submissions/me",
    response_model=List[SubmissionResponse],
    dependencies=[Depends(require_roles(AppRole.STUDENT))],
)
async def my_submissions(
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
):
    return await service.my_submissions(db, scope)


@router.put(
    "/submissions/{submission_id}/grade",
    response_model=SubmissionResponse,
    dependencies=staff_only,
)
async def grade_submission(
    submission_id: UUID,
    payload: GradeRequest,
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
):
    try:
        return await service.grade_submission(db, scope, submission_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{assignment_id}", response_model=AssignmentResponse)
async def get_assignment(
    assignment_id: UUID,
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
):
    try:
        return await service.get_assignment(db, scope, assignment_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put(
    "/{assignment_id}",
    response_model=AssignmentResponse,
    dependencies=staff_only,
)
async def update_assignment(
    assignment_id: UUID,
    semester_id: Optional[UUID] = Form(None),
    subject_id: Optional[UUID] = Form(None),
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    due_date: Optional[datetime] = Form(None),
    max_marks: Optional[int] = Form(None),
    clear: Optional[List[str]] = Form(None, description="Fields to reset: subject_id, description"),
    file: Optional[UploadFile] = File(None),
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
    store: FileStore = Depends(get_file_store),
):
    try:
        fields = repository.form_updates(
            {
                "semester_id": semester_id,
                "subject_id": subject_id,
                "title": title,
                "description": description,
                "due_date": due_date,
                "max_marks": max_marks,
            },
            clear,
            nullable=service.CLEARABLE_FIELDS,
        )
        payload = AssignmentUpdate(**fields)
        return await service.update_assignment(db, scope, store, assignment_id, payload, file)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete(
    "/{assignment_id}",
    response_model=AssignmentResponse,
    dependencies=staff_only,
)
async def deactivate_assignment(
    assignment_id: UUID,
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
):
    try:
        return await service.deactivate_assignment(db, scope, assignment_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/{assignment_id}/submissions",
    response_model=SubmissionResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_roles(AppRole.STUDENT))],
)
async def submit_assignment(
    assignment_id: UUID,
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
    store: FileStore = Depends(get_file_store),
):
    try:
        return await service.submit(db, scope, store, assignment_id, file)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/{assignment_id}/submissions",
    response_model=List[SubmissionResponse],
    dependencies=staff_only,
)
async def list_submissions(
    assignment_id: UUID,
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
):
    """Submissions for grading, most recent first."""
    try:
        return await service.list_submissions(db, scope, assignment_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
