"""Per-role dashboard counts, each role's numbers fetched in a single SELECT of scalar subqueries."""

from datetime import datetime
from typing import Optional

from sqlalchemy import false, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.attendance.service import summarize, to_record
from app.core.clock import utcnow
from app.core.enums import ATTENDED_STATUSES, AppRole, AttendanceStatus
from app.core.models import Assignment, AssignmentSubmission, Attendance, Course, Material, Student, Subject, Teacher
from app.core.scope import AccessScope

from .schemas import DashboardResponse

RECENT_ATTENDANCE_LIMIT = 5


def _count(model, *criteria):
    return select(func.count(model.id)).where(*criteria).scalar_subquery()


async def _fetch_counts(db: AsyncSession, **subqueries) -> dict:
    stmt = select(*(sq.label(name) for name, sq in subqueries.items()))
    row = (await db.execute(stmt)).one()
    return {name: int(getattr(row, name) or 0) for name in subqueries}


async def _admin(db: AsyncSession, now: datetime) -> DashboardResponse:
    counts = await _fetch_counts(
        db,
        students=_count(Student, Student.is_active.is_(True)),
        teachers=_count(Teacher, Teacher.is_active.is_(True)),
        courses=_count(Course, Course.is_active.is_(True)),
        assignments=_count(Assignment, Assignment.is_active.is_(True)),
        materials=_count(Material, Material.is_active.is_(True)),
        attendance_today=_count(Attendance, Attendance.date == now.date()),
    )
    return DashboardResponse(role=AppRole.ADMIN, counts=counts)


async def _teacher(db: AsyncSession, scope: AccessScope, now: datetime) -> DashboardResponse:
    if scope.teacher_id is None:
        keys = ("students", "assignments", "materials", "attendance_today", "semesters")
        return DashboardResponse(role=AppRole.TEACHER, counts={k: 0 for k in keys})
    in_semesters = (
        Student.current_semester_id.in_(scope.semester_ids) if scope.semester_ids else false()
    )
    counts = await _fetch_counts(
        db,
        students=_count(Student, Student.is_active.is_(True), in_semesters),
        assignments=_count(Assignment, Assignment.is_active.is_(True), Assignment.teacher_id == scope.teacher_id),
        materials=_count(Material, Material.is_active.is_(True), Material.teacher_id == scope.teacher_id),
        attendance_today=_count(Attendance, Attendance.teacher_id == scope.teacher_id, Attendance.date == now.date()),
    )
    counts["semesters"] = len(scope.semester_ids)
    return DashboardResponse(role=AppRole.TEACHER, counts=counts)


async def _student(db: AsyncSession, scope: AccessScope, now: datetime) -> DashboardResponse:
    keys = ("attendance_total", "attendance_attended", "pending_assignments", "materials")
    if scope.student_id is None:
        return DashboardResponse(role=AppRole.STUDENT, counts={k: 0 for k in keys}, attendance_percentage=0.0)
    submitted = select(AssignmentSubmission.assignment_id).where(
        AssignmentSubmission.student_id == scope.student_id
    )
    per_status = {
        status.value: _count(Attendance, Attendance.student_id == scope.student_id, Attendance.status == status.value)
        for status in AttendanceStatus
    }
    fetched = await _fetch_counts(
        db,
        pending_assignments=_count(
            Assignment,
            Assignment.is_active.is_(True),
            Assignment.semester_id == scope.current_semester_id,
            Assignment.due_date >= now,
            Assignment.id.not_in(submitted),
        ),
        materials=_count(
            Material, Material.is_active.is_(True), Material.semester_id == scope.current_semester_id
        ),
        **per_status,
    )
    by_status = {s.value: fetched.pop(s.value) for s in AttendanceStatus}
    summary = summarize(by_status, scope.student_id)
    counts = {
        "attendance_total": summary.total,
        "attendance_attended": sum(by_status[s] for s in ATTENDED_STATUSES),
        **fetched,
    }

    result = await db.execute(
        select(Attendance, Subject.name)
        .outerjoin(Subject, Subject.id == Attendance.subject_id)
        .where(Attendance.student_id == scope.student_id)
        .order_by(Attendance.date.desc(), Attendance.created_at.desc())
        .limit(RECENT_ATTENDANCE_LIMIT)
    )
    return DashboardResponse(
        role=AppRole.STUDENT,
        counts=counts,
        attendance_percentage=summary.percentage,
        recent_attendance=[to_record(a, subject_name) for a, subject_name in result.all()],
    )


async def get_dashboard(db: AsyncSession, scope: AccessScope, now: Optional[datetime] = None) -> DashboardResponse:
    now = now or utcnow()
    if scope.role == AppRole.ADMIN:
        return await _admin(db, now)
    if scope.role == AppRole.TEACHER:
        return await _teacher(db, scope, now)
    return await _student(db, scope, now)
