from datetime import date
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from app.api.v1.students.schemas import StudentResponse
from app.api.v1.teachers.schemas import SemesterAssignmentCreate, TeacherResponse
from app.auth.schemas import ProfileInfo
from app.core.enums import AppRole


class ProvisionUserRequest(BaseModel):
    email: EmailStr
    full_name: str = Field(..., max_length=255)
    role: AppRole
    phone: Optional[str] = Field(None, max_length=50)

    # Teacher
    employee_id: Optional[str] = Field(None, max_length=50)
    department: Optional[str] = Field(None, max_length=255)
    designation: Optional[str] = Field(None, max_length=255)
    qualification: Optional[str] = Field(None, max_length=255)
    joining_date: Optional[date] = None
    semester_assignments: List[SemesterAssignmentCreate] = Field(default_factory=list)

    # Student
    roll_number: Optional[str] = Field(None, max_length=50)
    course_id: Optional[UUID] = None
    current_semester_id: Optional[UUID] = None
    enrollment_year: Optional[int] = Field(None, ge=1900, le=2100)
    enrollment_date: Optional[date] = None
    guardian_name: Optional[str] = Field(None, max_length=255)
    guardian_phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = None


class ProvisionUserResponse(BaseModel):
    success: bool = True
    message: str
    user_id: UUID
    profile: ProfileInfo
    teacher: Optional[TeacherResponse] = None
    student: Optional[StudentResponse] = None
    default_credential: Optional[str] = Field(
        None, description="Initial password of a freshly created account; absent on reactivation"
    )
    reactivated: bool = False


class ProvisionErrorResponse(BaseModel):
    success: bool = False
    error: str
