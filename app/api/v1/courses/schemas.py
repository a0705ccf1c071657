from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class CourseCreate(BaseModel):
    name: str = Field(..., max_length=255)
    code: str = Field(..., max_length=50)
    duration_years: int = Field(..., ge=1, le=10)
    total_semesters: int = Field(..., ge=1, le=20)
    description: Optional[str] = None


class CourseUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    code: Optional[str] = Field(None, max_length=50)
    duration_years: Optional[int] = Field(None, ge=1, le=10)
    description: Optional[str] = None


class SemesterResponse(BaseModel):
    id: UUID
    course_id: UUID
    semester_number: int
    name: str
    is_active: bool

    class Config:
        from_attributes = True


class CourseResponse(BaseModel):
    id: UUID
    name: str
    code: str
    duration_years: int
    total_semesters: int
    description: Optional[str] = None
    is_active: bool
    created_at: datetime
    reactivated: bool = Field(False, description="True when create matched a deactivated course code")

    class Config:
        from_attributes = True


class CourseDetailResponse(CourseResponse):
    semesters: List[SemesterResponse] = Field(default_factory=list)
