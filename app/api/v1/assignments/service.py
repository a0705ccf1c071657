"""
Assignment lifecycle.

A student's status is derived at read time, never stored:
submission exists -> SUBMITTED; otherwise now past due_date -> PAST_DUE; otherwise PENDING.
Attachments are uploaded before the row is written so a row never points at a missing file.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from fastapi import UploadFile
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import Profile
from app.core import repository
from app.core.clock import as_utc, utcnow
from app.core.config import settings
from app.core.enums import AppRole, AssignmentStatus, FileKind
from app.core.exceptions import DuplicateKey, NotFound, Unauthorized, ValidationError
from app.core.models import Assignment, AssignmentSubmission, Semester, Student, Subject, Teacher
from app.core.scope import (
    AccessScope,
    can_write_subject,
    owns_teaching_row,
    restrict_submissions,
    restrict_teaching_rows,
)
from app.core.storage import FileStore, store_upload

from .schemas import (
    AssignmentCreate,
    AssignmentResponse,
    AssignmentUpdate,
    GradeRequest,
    SubmissionResponse,
)

logger = logging.getLogger(__name__)

CLEARABLE_FIELDS = ("subject_id", "description")


def derive_status(due_date: datetime, submitted: bool, now: datetime) -> AssignmentStatus:
    if submitted:
        return AssignmentStatus.SUBMITTED
    if as_utc(now) > as_utc(due_date):
        return AssignmentStatus.PAST_DUE
    return AssignmentStatus.PENDING


def _to_response(
    a: Assignment,
    subject_name: Optional[str] = None,
    submission_id: Optional[UUID] = None,
    status: Optional[AssignmentStatus] = None,
) -> AssignmentResponse:
    return AssignmentResponse(
        id=a.id,
        teacher_id=a.teacher_id,
        semester_id=a.semester_id,
        subject_id=a.subject_id,
        subject_name=subject_name,
        title=a.title,
        description=a.description,
        file_url=a.file_url,
        file_name=a.file_name,
        due_date=a.due_date,
        max_marks=a.max_marks,
        is_active=a.is_active,
        created_at=a.created_at,
        status=status,
        submission_id=submission_id,
    )


def _submission_response(
    s: AssignmentSubmission,
    assignment_title: Optional[str] = None,
    student_name: Optional[str] = None,
    roll_number: Optional[str] = None,
) -> SubmissionResponse:
    return SubmissionResponse(
        id=s.id,
        assignment_id=s.assignment_id,
        assignment_title=assignment_title,
        student_id=s.student_id,
        student_name=student_name,
        roll_number=roll_number,
        file_url=s.file_url,
        file_name=s.file_name,
        submitted_at=s.submitted_at,
        marks_obtained=s.marks_obtained,
        feedback=s.feedback,
        graded_at=s.graded_at,
        graded_by=s.graded_by,
    )


async def _validate_target(db: AsyncSession, semester_id: UUID, subject_id: Optional[UUID]) -> None:
    if await repository.get_visible(db, Semester, semester_id) is None:
        raise ValidationError("Invalid semester")
    if subject_id is not None:
        subject = await db.get(Subject, subject_id)
        if subject is None or subject.semester_id != semester_id:
            raise ValidationError("Subject is not taught in this semester")


async def _owning_teacher(db: AsyncSession, scope: AccessScope, teacher_id: Optional[UUID]) -> UUID:
    if scope.role == AppRole.TEACHER:
        return scope.teacher_id
    if teacher_id is None:
        raise ValidationError("teacher_id is required")
    if await repository.get_visible(db, Teacher, teacher_id) is None:
        raise ValidationError("Invalid teacher")
    return teacher_id


async def _get_owned(db: AsyncSession, scope: AccessScope, assignment_id: UUID) -> Assignment:
    assignment = await repository.get_or_404(db, Assignment, assignment_id, "Assignment")
    if not owns_teaching_row(scope, assignment):
        raise Unauthorized("You can only manage your own assignments")
    return assignment


async def create_assignment(
    db: AsyncSession,
    scope: AccessScope,
    store: FileStore,
    payload: AssignmentCreate,
    file: Optional[UploadFile] = None,
) -> AssignmentResponse:
    if not can_write_subject(scope, payload.semester_id, payload.subject_id):
        raise Unauthorized("You can only create assignments for your assigned semesters")
    title = payload.title.strip()
    if not title:
        raise ValidationError("Title is required")
    if payload.max_marks <= 0:
        raise ValidationError("max_marks must be positive")
    await _validate_target(db, payload.semester_id, payload.subject_id)
    teacher_id = await _owning_teacher(db, scope, payload.teacher_id)

    file_url = file_name = None
    if file is not None:
        file_url = await store_upload(store, FileKind.ASSIGNMENTS, teacher_id, file)
        file_name = file.filename

    assignment = Assignment(
        teacher_id=teacher_id,
        semester_id=payload.semester_id,
        subject_id=payload.subject_id,
        title=title,
        description=payload.description,
        due_date=payload.due_date,
        max_marks=payload.max_marks,
        file_url=file_url,
        file_name=file_name,
        is_active=True,
    )
    db.add(assignment)
    await db.commit()
    await db.refresh(assignment)
    logger.info("Assignment %s created by teacher %s", assignment.id, teacher_id)
    return _to_response(assignment)


async def update_assignment(
    db: AsyncSession,
    scope: AccessScope,
    store: FileStore,
    assignment_id: UUID,
    payload: AssignmentUpdate,
    file: Optional[UploadFile] = None,
) -> AssignmentResponse:
    assignment = await _get_owned(db, scope, assignment_id)
    data = payload.model_dump(exclude_unset=True)
    if "title" in data:
        data["title"] = data["title"].strip()
        if not data["title"]:
            raise ValidationError("Title is required")
    if "max_marks" in data and data["max_marks"] <= 0:
        raise ValidationError("max_marks must be positive")
    if "semester_id" in data or "subject_id" in data:
        semester_id = data.get("semester_id", assignment.semester_id)
        subject_id = data.get("subject_id", assignment.subject_id)
        if not can_write_subject(scope, semester_id, subject_id):
            raise Unauthorized("You can only move assignments within your assigned semesters")
        await _validate_target(db, semester_id, subject_id)

    if file is not None:
        data["file_url"] = await store_upload(store, FileKind.ASSIGNMENTS, assignment.teacher_id, file)
        data["file_name"] = file.filename

    repository.apply_updates(assignment, data)
    await db.commit()
    await db.refresh(assignment)
    return _to_response(assignment)


async def deactivate_assignment(db: AsyncSession, scope: AccessScope, assignment_id: UUID) -> AssignmentResponse:
    """Submissions stay queryable."""
    await _get_owned(db, scope, assignment_id)
    assignment = await repository.deactivate(db, Assignment, assignment_id, "Assignment")
    return _to_response(assignment)


async def _submissions_by_assignment(db: AsyncSession, student_id: UUID, assignment_ids: List[UUID]) -> Dict[UUID, UUID]:
    if not assignment_ids:
        return {}
    result = await db.execute(
        select(AssignmentSubmission.assignment_id, AssignmentSubmission.id).where(
            AssignmentSubmission.student_id == student_id,
            AssignmentSubmission.assignment_id.in_(assignment_ids),
        )
    )
    return {assignment_id: submission_id for assignment_id, submission_id in result.all()}


async def list_assignments(
    db: AsyncSession,
    scope: AccessScope,
    now: Optional[datetime] = None,
) -> List[AssignmentResponse]:
    """
    Admin: every active assignment, latest due first. Teacher: own, latest due first.
    Student: current semester, soonest due first, each with its derived status.
    """
    stmt = (
        select(Assignment, Subject.name)
        .outerjoin(Subject, Subject.id == Assignment.subject_id)
        .where(Assignment.is_active.is_(True))
    )
    stmt = restrict_teaching_rows(stmt, Assignment, scope)
    if scope.role == AppRole.STUDENT:
        stmt = stmt.order_by(Assignment.due_date.asc())
    else:
        stmt = stmt.order_by(Assignment.due_date.desc())
    rows = (await db.execute(stmt)).all()

    if scope.role != AppRole.STUDENT or scope.student_id is None:
        return [_to_response(a, subject_name) for a, subject_name in rows]

    now = now or utcnow()
    submitted = await _submissions_by_assignment(db, scope.student_id, [a.id for a, _ in rows])
    return [
        _to_response(
            a,
            subject_name,
            submission_id=submitted.get(a.id),
            status=derive_status(a.due_date, a.id in submitted, now),
        )
        for a, subject_name in rows
    ]


async def get_assignment(db: AsyncSession, scope: AccessScope, assignment_id: UUID) -> AssignmentResponse:
    stmt = (
        select(Assignment, Subject.name)
        .outerjoin(Subject, Subject.id == Assignment.subject_id)
        .where(Assignment.id == assignment_id, Assignment.is_active.is_(True))
    )
    row = (await db.execute(restrict_teaching_rows(stmt, Assignment, scope))).first()
    if row is None:
        raise NotFound("Assignment not found")
    assignment, subject_name = row
    if scope.role != AppRole.STUDENT:
        return _to_response(assignment, subject_name)
    submitted = await _submissions_by_assignment(db, scope.student_id, [assignment.id])
    return _to_response(
        assignment,
        subject_name,
        submission_id=submitted.get(assignment.id),
        status=derive_status(assignment.due_date, assignment.id in submitted, utcnow()),
    )


async def submit(
    db: AsyncSession,
    scope: AccessScope,
    store: FileStore,
    assignment_id: UUID,
    file: UploadFile,
) -> SubmissionResponse:
    """One submission per student and assignment. Late hand-ins need ALLOW_LATE_SUBMISSIONS."""
    if scope.role != AppRole.STUDENT:
        raise Unauthorized("Only students can submit assignments")
    assignment = await repository.get_visible(db, Assignment, assignment_id)
    if (
        assignment is None
        or scope.student_id is None
        or assignment.semester_id != scope.current_semester_id
    ):
        raise NotFound("Assignment not found")

    existing = await db.execute(
        select(AssignmentSubmission.id).where(
            AssignmentSubmission.assignment_id == assignment_id,
            AssignmentSubmission.student_id == scope.student_id,
        )
    )
    if existing.scalar_one_or_none() is not None:
        raise DuplicateKey("You have already submitted this assignment")

    if derive_status(assignment.due_date, False, utcnow()) == AssignmentStatus.PAST_DUE:
        if not settings.allow_late_submissions:
            raise ValidationError("The due date for this assignment has passed")
        logger.info("Accepting late submission for assignment %s from student %s", assignment_id, scope.student_id)

    file_url = await store_upload(store, FileKind.SUBMISSIONS, scope.student_id, file, assignment_id)
    submission = AssignmentSubmission(
        assignment_id=assignment_id,
        student_id=scope.student_id,
        file_url=file_url,
        file_name=file.filename,
        submitted_at=utcnow(),
    )
    db.add(submission)
    await repository.commit_or_conflict(db, "You have already submitted this assignment")
    await db.refresh(submission)
    logger.info("Student %s submitted assignment %s", scope.student_id, assignment_id)
    return _submission_response(submission, assignment_title=assignment.title)


async def list_submissions(db: AsyncSession, scope: AccessScope, assignment_id: UUID) -> List[SubmissionResponse]:
    """For grading review, most recent first. Works on deactivated assignments too."""
    assignment = await db.get(Assignment, assignment_id)
    if assignment is None:
        raise NotFound("Assignment not found")
    if not owns_teaching_row(scope, assignment):
        raise Unauthorized("You can only view submissions for your own assignments")
    result = await db.execute(
        select(AssignmentSubmission, Profile.full_name, Student.roll_number)
        .join(Student, Student.id == AssignmentSubmission.student_id)
        .join(Profile, Profile.id == Student.profile_id)
        .where(AssignmentSubmission.assignment_id == assignment_id)
        .order_by(AssignmentSubmission.submitted_at.desc())
    )
    return [
        _submission_response(s, assignment.title, full_name, roll_number)
        for s, full_name, roll_number in result.all()
    ]


async def grade_submission(
    db: AsyncSession,
    scope: AccessScope,
    submission_id: UUID,
    payload: GradeRequest,
) -> SubmissionResponse:
    submission = await db.get(AssignmentSubmission, submission_id)
    if submission is None:
        raise NotFound("Submission not found")
    assignment = await db.get(Assignment, submission.assignment_id)
    if not owns_teaching_row(scope, assignment):
        raise Unauthorized("You can only grade submissions for your own assignments")
    if payload.marks_obtained > assignment.max_marks:
        raise ValidationError(f"Marks cannot exceed {assignment.max_marks}")
    submission.marks_obtained = payload.marks_obtained
    submission.feedback = payload.feedback
    submission.graded_at = utcnow()
    submission.graded_by = scope.teacher_id
    await db.commit()
    await db.refresh(submission)
    return _submission_response(submission, assignment.title)


async def my_submissions(db: AsyncSession, scope: AccessScope) -> List[SubmissionResponse]:
    stmt = (
        select(AssignmentSubmission, Assignment.title)
        .join(Assignment, Assignment.id == AssignmentSubmission.assignment_id)
        .order_by(AssignmentSubmission.submitted_at.desc())
    )
    result = await db.execute(restrict_submissions(stmt, scope))
    return [_submission_response(s, title) for s, title in result.all()]
