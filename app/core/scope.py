"""
Role scoping: who may see and write which rows.

Admin: unrestricted.
Teacher: semesters with an active TeacherSemesterAssignment; students currently in those
semesters; writes to assignments/materials/attendance only for assigned (semester, subject) pairs.
Student: own attendance and submissions; peers in the same current semester; assignments and
materials of the current semester.

A caller whose Teacher/Student record is missing or inactive gets an empty scope: every
restrict_* helper yields no rows and every can_* check is False.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Optional, Tuple
from uuid import UUID

from fastapi import Depends
from sqlalchemy import false, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from app.auth.dependencies import get_current_user
from app.auth.schemas import CurrentUser
from app.core.enums import AppRole
from app.core.models import (
    Assignment,
    AssignmentSubmission,
    Attendance,
    Course,
    Semester,
    Student,
    Subject,
    Teacher,
    TeacherSemesterAssignment,
)
from app.db.session import get_db


@dataclass(frozen=True)
class AccessScope:
    role: AppRole
    user_id: UUID
    teacher_id: Optional[UUID] = None
    student_id: Optional[UUID] = None
    semester_ids: FrozenSet[UUID] = field(default_factory=frozenset)
    subject_pairs: FrozenSet[Tuple[UUID, UUID]] = field(default_factory=frozenset)
    current_semester_id: Optional[UUID] = None
    course_id: Optional[UUID] = None

    @property
    def is_admin(self) -> bool:
        return self.role == AppRole.ADMIN

    @property
    def is_empty(self) -> bool:
        if self.role == AppRole.TEACHER:
            return self.teacher_id is None
        if self.role == AppRole.STUDENT:
            return self.student_id is None
        return False

    def visible_semester_ids(self) -> FrozenSet[UUID]:
        if self.role == AppRole.STUDENT:
            return frozenset([self.current_semester_id]) if self.current_semester_id else frozenset()
        return self.semester_ids


async def resolve_scope(db: AsyncSession, current_user: CurrentUser) -> AccessScope:
    if current_user.role == AppRole.ADMIN:
        return AccessScope(role=AppRole.ADMIN, user_id=current_user.id)

    if current_user.role == AppRole.TEACHER:
        result = await db.execute(
            select(Teacher.id).where(Teacher.user_id == current_user.id, Teacher.is_active.is_(True))
        )
        teacher_id = result.scalar_one_or_none()
        if teacher_id is None:
            return AccessScope(role=AppRole.TEACHER, user_id=current_user.id)
        rows = await db.execute(
            select(TeacherSemesterAssignment.semester_id, TeacherSemesterAssignment.subject_id).where(
                TeacherSemesterAssignment.teacher_id == teacher_id,
                TeacherSemesterAssignment.is_active.is_(True),
            )
        )
        semester_ids = set()
        pairs = set()
        for semester_id, subject_id in rows.all():
            semester_ids.add(semester_id)
            if subject_id is not None:
                pairs.add((semester_id, subject_id))
        return AccessScope(
            role=AppRole.TEACHER,
            user_id=current_user.id,
            teacher_id=teacher_id,
            semester_ids=frozenset(semester_ids),
            subject_pairs=frozenset(pairs),
        )

    result = await db.execute(
        select(Student.id, Student.current_semester_id, Student.course_id).where(
            Student.user_id == current_user.id, Student.is_active.is_(True)
        )
    )
    row = result.first()
    if row is None:
        return AccessScope(role=AppRole.STUDENT, user_id=current_user.id)
    return AccessScope(
        role=AppRole.STUDENT,
        user_id=current_user.id,
        student_id=row.id,
        current_semester_id=row.current_semester_id,
        course_id=row.course_id,
    )


# --- query narrowing ---


def restrict_courses(stmt: Select, scope: AccessScope) -> Select:
    if scope.is_admin:
        return stmt
    if scope.is_empty:
        return stmt.where(false())
    if scope.role == AppRole.STUDENT:
        return stmt.where(Course.id == scope.course_id)
    return stmt.where(
        Course.id.in_(select(Semester.course_id).where(Semester.id.in_(scope.semester_ids)))
    )


def restrict_semesters(stmt: Select, scope: AccessScope) -> Select:
    if scope.is_admin:
        return stmt
    ids = scope.visible_semester_ids()
    if not ids:
        return stmt.where(false())
    return stmt.where(Semester.id.in_(ids))


def restrict_subjects(stmt: Select, scope: AccessScope) -> Select:
    if scope.is_admin:
        return stmt
    ids = scope.visible_semester_ids()
    if not ids:
        return stmt.where(false())
    return stmt.where(Subject.semester_id.in_(ids))


def restrict_students(stmt: Select, scope: AccessScope) -> Select:
    if scope.is_admin:
        return stmt
    ids = scope.visible_semester_ids()
    if not ids:
        return stmt.where(false())
    return stmt.where(Student.current_semester_id.in_(ids))


def restrict_teaching_rows(stmt: Select, model, scope: AccessScope) -> Select:
    """Assignments and materials: teachers see their own, students their current semester's."""
    if scope.is_admin:
        return stmt
    if scope.is_empty:
        return stmt.where(false())
    if scope.role == AppRole.TEACHER:
        return stmt.where(model.teacher_id == scope.teacher_id)
    if scope.current_semester_id is None:
        return stmt.where(false())
    return stmt.where(model.semester_id == scope.current_semester_id)


def restrict_attendance(stmt: Select, scope: AccessScope) -> Select:
    if scope.is_admin:
        return stmt
    if scope.is_empty:
        return stmt.where(false())
    if scope.role == AppRole.TEACHER:
        if not scope.semester_ids:
            return stmt.where(false())
        return stmt.where(Attendance.semester_id.in_(scope.semester_ids))
    return stmt.where(Attendance.student_id == scope.student_id)


def restrict_submissions(stmt: Select, scope: AccessScope) -> Select:
    if scope.is_admin:
        return stmt
    if scope.is_empty:
        return stmt.where(false())
    if scope.role == AppRole.TEACHER:
        return stmt.where(
            AssignmentSubmission.assignment_id.in_(
                select(Assignment.id).where(Assignment.teacher_id == scope.teacher_id)
            )
        )
    return stmt.where(AssignmentSubmission.student_id == scope.student_id)


# --- point checks ---


def can_view_semester(scope: AccessScope, semester_id: UUID) -> bool:
    return scope.is_admin or semester_id in scope.visible_semester_ids()


def can_write_semester(scope: AccessScope, semester_id: UUID) -> bool:
    if scope.is_admin:
        return True
    return scope.role == AppRole.TEACHER and semester_id in scope.semester_ids


def can_write_subject(scope: AccessScope, semester_id: UUID, subject_id: Optional[UUID]) -> bool:
    """Subject-less rows (assignments, materials) only need the semester."""
    if subject_id is None:
        return can_write_semester(scope, semester_id)
    if scope.is_admin:
        return True
    return scope.role == AppRole.TEACHER and (semester_id, subject_id) in scope.subject_pairs


def can_view_student(scope: AccessScope, student: Student) -> bool:
    if scope.is_admin:
        return True
    if scope.role == AppRole.STUDENT and student.id == scope.student_id:
        return True
    return student.current_semester_id is not None and student.current_semester_id in scope.visible_semester_ids()


def owns_teaching_row(scope: AccessScope, row) -> bool:
    return scope.is_admin or (scope.teacher_id is not None and row.teacher_id == scope.teacher_id)


async def get_scope(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> AccessScope:
    return await resolve_scope(db, current_user)
