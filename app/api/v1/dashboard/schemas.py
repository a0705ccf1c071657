from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from app.api.v1.attendance.schemas import AttendanceRecord
from app.core.enums import AppRole


class DashboardResponse(BaseModel):
    role: AppRole
    counts: Dict[str, int] = Field(default_factory=dict)
    attendance_percentage: Optional[float] = Field(None, description="Students only")
    recent_attendance: List[AttendanceRecord] = Field(default_factory=list)
