# Identity tables must be registered before relationships to Profile resolve.
from app.auth.models import Profile, User, UserRole  # noqa: F401

from app.core.models.course import Course, Semester
from app.core.models.subject import Subject
from app.core.models.teacher import Teacher, TeacherSemesterAssignment
from app.core.models.student import Student
from app.core.models.assignment import Assignment, AssignmentSubmission
from app.core.models.attendance import Attendance
from app.core.models.material import Material

__all__ = [
    "Assignment",
    "AssignmentSubmission",
    "Attendance",
    "Course",
    "Material",
    "Semester",
    "Student",
    "Subject",
    "Teacher",
    "TeacherSemesterAssignment",
]
