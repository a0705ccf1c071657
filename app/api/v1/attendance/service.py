import logging
from datetime import date
from typing import Dict, List, Optional, Set
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import repository
from app.core.enums import ATTENDED_STATUSES, AppRole, AttendanceStatus
from app.core.exceptions import NotFound, Unauthorized, UpstreamFailure, ValidationError
from app.core.models import Attendance, Semester, Student, Subject, Teacher
from app.core.scope import (
    AccessScope,
    can_view_semester,
    can_view_student,
    can_write_subject,
    restrict_attendance,
)

from .schemas import (
    AttendanceRecord,
    AttendanceSessionResponse,
    AttendanceSessionSave,
    AttendanceSummary,
    StudentAttendanceResponse,
)

logger = logging.getLogger(__name__)


def _session_key(semester_id: UUID, subject_id: UUID, on: date):
    return (
        Attendance.semester_id == semester_id,
        Attendance.subject_id == subject_id,
        Attendance.date == on,
    )


def summarize(counts: Dict[str, int], student_id: Optional[UUID] = None) -> AttendanceSummary:
    total = sum(counts.values())
    attended = sum(counts.get(s, 0) for s in ATTENDED_STATUSES)
    return AttendanceSummary(
        student_id=student_id,
        total=total,
        present=counts.get(AttendanceStatus.PRESENT.value, 0),
        absent=counts.get(AttendanceStatus.ABSENT.value, 0),
        late=counts.get(AttendanceStatus.LATE.value, 0),
        excused=counts.get(AttendanceStatus.EXCUSED.value, 0),
        percentage=round(attended / total * 100, 2) if total else 0.0,
    )


def to_record(a: Attendance, subject_name: Optional[str] = None) -> AttendanceRecord:
    return AttendanceRecord(
        id=a.id,
        student_id=a.student_id,
        semester_id=a.semester_id,
        subject_id=a.subject_id,
        subject_name=subject_name,
        teacher_id=a.teacher_id,
        date=a.date,
        status=a.status,
        remarks=a.remarks,
        created_at=a.created_at,
    )


async def _validate_session(db: AsyncSession, semester_id: UUID, subject_id: UUID) -> None:
    semester = await repository.get_visible(db, Semester, semester_id)
    if semester is None:
        raise ValidationError("Invalid semester")
    subject = await db.get(Subject, subject_id)
    if subject is None or subject.semester_id != semester_id:
        raise ValidationError("Subject is not taught in this semester")


async def _check_roster(db: AsyncSession, semester_id: UUID, student_ids: Set[UUID]) -> None:
    """Every student must exist, be active and currently be in the session's semester."""
    if not student_ids:
        return
    result = await db.execute(
        select(Student.id, Student.is_active, Student.current_semester_id).where(Student.id.in_(student_ids))
    )
    rows = result.all()
    missing = student_ids - {r.id for r in rows}
    if missing:
        raise NotFound(f"Students not found: {', '.join(sorted(str(m) for m in missing))}")
    outside = [r.id for r in rows if not r.is_active or r.current_semester_id != semester_id]
    if outside:
        raise ValidationError(
            f"Students not enrolled in this semester: {', '.join(sorted(str(s) for s in outside))}"
        )


async def _recording_teacher(db: AsyncSession, scope: AccessScope, payload: AttendanceSessionSave) -> Optional[UUID]:
    if scope.role == AppRole.TEACHER:
        return scope.teacher_id
    if payload.teacher_id is None:
        return None
    teacher = await db.get(Teacher, payload.teacher_id)
    if teacher is None:
        raise ValidationError("Invalid teacher")
    return teacher.id


async def save_session(
    db: AsyncSession,
    scope: AccessScope,
    payload: AttendanceSessionSave,
) -> AttendanceSessionResponse:
    """
    Replace the roster for (semester_id, subject_id, date): delete every row with that key,
    then insert one row per entry. Both steps commit together or not at all.
    """
    if not can_write_subject(scope, payload.semester_id, payload.subject_id):
        raise Unauthorized("You can only record attendance for your assigned semester subjects")
    await _validate_session(db, payload.semester_id, payload.subject_id)
    teacher_id = await _recording_teacher(db, scope, payload)

    await _check_roster(db, payload.semester_id, set(payload.statuses))

    try:
        await db.execute(
            delete(Attendance)
            .where(*_session_key(payload.semester_id, payload.subject_id, payload.date))
            .execution_options(synchronize_session=False)
        )
        for student_id, status in payload.statuses.items():
            db.add(
                Attendance(
                    student_id=student_id,
                    semester_id=payload.semester_id,
                    subject_id=payload.subject_id,
                    teacher_id=teacher_id,
                    date=payload.date,
                    status=status.value,
                    remarks=payload.remarks.get(student_id),
                )
            )
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(
            "Attendance save for semester %s subject %s on %s rolled back",
            payload.semester_id, payload.subject_id, payload.date, exc_info=True,
        )
        raise UpstreamFailure("Failed to save attendance") from e

    cleared = not payload.statuses
    if cleared:
        logger.warning(
            "Attendance cleared for semester %s subject %s on %s",
            payload.semester_id, payload.subject_id, payload.date,
        )
    else:
        logger.info(
            "Saved attendance for %d students (semester %s, subject %s, %s)",
            len(payload.statuses), payload.semester_id, payload.subject_id, payload.date,
        )
    return AttendanceSessionResponse(
        semester_id=payload.semester_id,
        subject_id=payload.subject_id,
        date=payload.date,
        teacher_id=teacher_id,
        statuses=dict(payload.statuses),
        count=len(payload.statuses),
        cleared=cleared,
    )


async def load_session(
    db: AsyncSession,
    scope: AccessScope,
    semester_id: UUID,
    subject_id: UUID,
    on: date,
) -> AttendanceSessionResponse:
    """Last saved roster for the key, for pre-filling the edit form."""
    if scope.role == AppRole.STUDENT or not can_view_semester(scope, semester_id):
        raise Unauthorized("You can only view attendance for your assigned semesters")
    stmt = select(Attendance).where(*_session_key(semester_id, subject_id, on))
    result = await db.execute(restrict_attendance(stmt, scope))
    rows = result.scalars().all()
    return AttendanceSessionResponse(
        semester_id=semester_id,
        subject_id=subject_id,
        date=on,
        teacher_id=rows[0].teacher_id if rows else None,
        statuses={r.student_id: AttendanceStatus(r.status) for r in rows},
        count=len(rows),
    )


async def _require_visible_student(db: AsyncSession, scope: AccessScope, student_id: UUID) -> None:
    student = await db.get(Student, student_id)
    if student is None or not can_view_student(scope, student):
        raise NotFound("Student not found")
    if scope.role == AppRole.STUDENT and student_id != scope.student_id:
        raise NotFound("Student not found")


async def _history(db: AsyncSession, scope: AccessScope, student_id: UUID) -> List[AttendanceRecord]:
    stmt = (
        select(Attendance, Subject.name)
        .outerjoin(Subject, Subject.id == Attendance.subject_id)
        .where(Attendance.student_id == student_id)
    )
    stmt = restrict_attendance(stmt, scope).order_by(Attendance.date.desc(), Attendance.created_at.desc())
    result = await db.execute(stmt)
    return [to_record(a, subject_name) for a, subject_name in result.all()]


async def _summary(db: AsyncSession, scope: AccessScope, student_id: UUID) -> AttendanceSummary:
    stmt = (
        select(Attendance.status, func.count(Attendance.id))
        .where(Attendance.student_id == student_id)
        .group_by(Attendance.status)
    )
    result = await db.execute(restrict_attendance(stmt, scope))
    return summarize({status: count for status, count in result.all()}, student_id)


async def list_student_attendance(db: AsyncSession, scope: AccessScope, student_id: UUID) -> List[AttendanceRecord]:
    await _require_visible_student(db, scope, student_id)
    return await _history(db, scope, student_id)


async def student_summary(db: AsyncSession, scope: AccessScope, student_id: UUID) -> AttendanceSummary:
    await _require_visible_student(db, scope, student_id)
    return await _summary(db, scope, student_id)


async def my_attendance(db: AsyncSession, scope: AccessScope) -> StudentAttendanceResponse:
    if scope.student_id is None:
        return StudentAttendanceResponse(summary=AttendanceSummary(), records=[])
    return StudentAttendanceResponse(
        summary=await _summary(db, scope, scope.student_id),
        records=await _history(db, scope, scope.student_id),
    )
