from datetime import date as date_type, datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.enums import AttendanceStatus


class AttendanceSessionSave(BaseModel):
    """Full roster for one (semester, subject, date). Replaces whatever was saved for that key."""

    semester_id: UUID
    subject_id: UUID
    date: date_type
    statuses: Dict[UUID, AttendanceStatus] = Field(default_factory=dict, description="student_id -> status")
    remarks: Dict[UUID, str] = Field(default_factory=dict)
    teacher_id: Optional[UUID] = Field(None, description="Recording teacher; admins only")


class AttendanceSessionResponse(BaseModel):
    semester_id: UUID
    subject_id: UUID
    date: date_type
    teacher_id: Optional[UUID] = None
    statuses: Dict[UUID, AttendanceStatus] = Field(default_factory=dict)
    count: int = 0
    cleared: bool = Field(False, description="True when an empty roster removed the saved session")


class AttendanceRecord(BaseModel):
    id: UUID
    student_id: UUID
    semester_id: UUID
    subject_id: Optional[UUID] = None
    subject_name: Optional[str] = None
    teacher_id: Optional[UUID] = None
    date: date_type
    status: AttendanceStatus
    remarks: Optional[str] = None
    created_at: datetime


class AttendanceSummary(BaseModel):
    student_id: Optional[UUID] = None
    total: int = 0
    present: int = 0
    absent: int = 0
    late: int = 0
    excused: int = 0
    percentage: float = Field(0.0, description="(present + late) / total * 100; 0 when nothing is recorded")


class StudentAttendanceResponse(BaseModel):
    summary: AttendanceSummary
    records: List[AttendanceRecord]
