from enum import Enum


class AppRole(str, Enum):
    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"


class AttendanceStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    EXCUSED = "excused"


# Statuses counted as attended when computing a student's percentage
ATTENDED_STATUSES = (AttendanceStatus.PRESENT.value, AttendanceStatus.LATE.value)


class AssignmentStatus(str, Enum):
    """Derived per student at read time; never stored."""

    PENDING = "pending"
    SUBMITTED = "submitted"
    PAST_DUE = "past_due"


class FileKind(str, Enum):
    """Top-level namespace of an uploaded object path."""

    ASSIGNMENTS = "assignments"
    SUBMISSIONS = "submissions"
    MATERIALS = "materials"
    AVATARS = "avatars"
