from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class MaterialCreate(BaseModel):
    semester_id: UUID
    subject_id: Optional[UUID] = None
    title: str
    description: Optional[str] = None
    teacher_id: Optional[UUID] = None


class MaterialUpdate(BaseModel):
    subject_id: Optional[UUID] = None
    title: Optional[str] = None
    description: Optional[str] = None


class MaterialResponse(BaseModel):
    id: UUID
    teacher_id: UUID
    semester_id: UUID
    subject_id: Optional[UUID] = None
    subject_name: Optional[str] = None
    title: str
    description: Optional[str] = None
    file_url: Optional[str] = None
    file_name: Optional[str] = None
    file_type: Optional[str] = None
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True
