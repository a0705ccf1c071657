from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.enums import AssignmentStatus


class AssignmentCreate(BaseModel):
    semester_id: UUID
    subject_id: Optional[UUID] = None
    title: str
    description: Optional[str] = None
    due_date: datetime
    max_marks: int = 100
    teacher_id: Optional[UUID] = Field(None, description="Owning teacher; required when an admin creates")


class AssignmentUpdate(BaseModel):
    semester_id: Optional[UUID] = None
    subject_id: Optional[UUID] = None
    title: Optional[str] = None
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    max_marks: Optional[int] = None


class AssignmentResponse(BaseModel):
    id: UUID
    teacher_id: UUID
    semester_id: UUID
    subject_id: Optional[UUID] = None
    subject_name: Optional[str] = None
    title: str
    description: Optional[str] = None
    file_url: Optional[str] = None
    file_name: Optional[str] = None
    due_date: datetime
    max_marks: int
    is_active: bool
    created_at: datetime
    status: Optional[AssignmentStatus] = Field(None, description="Calling student's view of the assignment")
    submission_id: Optional[UUID] = None


class SubmissionResponse(BaseModel):
    id: UUID
    assignment_id: UUID
    assignment_title: Optional[str] = None
    student_id: UUID
    student_name: Optional[str] = None
    roll_number: Optional[str] = None
    file_url: Optional[str] = None
    file_name: Optional[str] = None
    submitted_at: datetime
    marks_obtained: Optional[int] = None
    feedback: Optional[str] = None
    graded_at: Optional[datetime] = None
    graded_by: Optional[UUID] = None


class GradeRequest(BaseModel):
    marks_obtained: int = Field(..., ge=0)
    feedback: Optional[str] = None
