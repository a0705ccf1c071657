from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class SemesterAssignmentCreate(BaseModel):
    semester_id: UUID
    subject_id: Optional[UUID] = None
    subject_name: Optional[str] = Field(None, max_length=255, description="Defaults to the subject's name")

    @model_validator(mode="after")
    def require_subject(self) -> "SemesterAssignmentCreate":
        if self.subject_id is None and not (self.subject_name or "").strip():
            raise ValueError("Either subject_id or subject_name is required")
        return self


class SemesterAssignmentResponse(BaseModel):
    id: UUID
    teacher_id: UUID
    semester_id: UUID
    subject_id: Optional[UUID] = None
    subject_name: str
    is_active: bool
    semester_name: Optional[str] = None

    class Config:
        from_attributes = True


class TeacherUpdate(BaseModel):
    full_name: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    employee_id: Optional[str] = Field(None, max_length=50)
    department: Optional[str] = Field(None, max_length=255)
    designation: Optional[str] = Field(None, max_length=255)
    qualification: Optional[str] = Field(None, max_length=255)
    joining_date: Optional[date] = None


class TeacherResponse(BaseModel):
    id: UUID
    user_id: UUID
    profile_id: UUID
    employee_id: str
    full_name: str
    email: str
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    department: Optional[str] = None
    designation: Optional[str] = None
    qualification: Optional[str] = None
    joining_date: Optional[date] = None
    is_active: bool
    created_at: datetime
    semester_assignments: List[SemesterAssignmentResponse] = Field(default_factory=list)
