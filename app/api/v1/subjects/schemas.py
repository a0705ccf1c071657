from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class SubjectCreate(BaseModel):
    semester_id: UUID = Field(..., description="Semester the subject is taught in")
    name: str = Field(..., max_length=255)
    code: str = Field(..., max_length=50)
    credits: int = Field(3, ge=0, le=20)


class SubjectUpdate(BaseModel):
    semester_id: Optional[UUID] = None
    name: Optional[str] = Field(None, max_length=255)
    code: Optional[str] = Field(None, max_length=50)
    credits: Optional[int] = Field(None, ge=0, le=20)


class SubjectResponse(BaseModel):
    id: UUID
    semester_id: UUID
    name: str
    code: str
    credits: int
    is_active: bool
    created_at: datetime
    semester_name: Optional[str] = Field(None, description="Semester name; populated in list response")
    reactivated: bool = False

    class Config:
        from_attributes = True
