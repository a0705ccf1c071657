from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class StudentUpdate(BaseModel):
    full_name: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    roll_number: Optional[str] = Field(None, max_length=50)
    course_id: Optional[UUID] = None
    current_semester_id: Optional[UUID] = None
    enrollment_year: Optional[int] = Field(None, ge=1900, le=2100)
    enrollment_date: Optional[date] = None
    guardian_name: Optional[str] = Field(None, max_length=255)
    guardian_phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = None


class StudentResponse(BaseModel):
    id: UUID
    user_id: UUID
    profile_id: UUID
    roll_number: str
    full_name: str
    email: str
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    course_id: UUID
    current_semester_id: Optional[UUID] = None
    enrollment_year: int
    enrollment_date: Optional[date] = None
    guardian_name: Optional[str] = None
    guardian_phone: Optional[str] = None
    address: Optional[str] = None
    is_active: bool
    created_at: datetime


class BatchSemesterAssign(BaseModel):
    student_ids: List[UUID] = Field(..., min_length=1)
    semester_id: UUID


class BatchSemesterAssignResponse(BaseModel):
    updated: int
    semester_id: UUID
    course_id: UUID
