"""
Account provisioning: identity + profile + role grant + teacher/student record in one step.

An existing person is never duplicated: a deactivated Teacher/Student matching the email,
employee_id or (roll_number, course) is reactivated in place and keeps its credential.
A fresh account gets settings.default_password and must change it on first login.
Every write of one call shares a transaction; any failure rolls all of them back.
"""

import logging
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.students import service as student_service
from app.api.v1.teachers import service as teacher_service
from app.api.v1.teachers.schemas import SemesterAssignmentCreate
from app.auth.models import Profile, User, UserRole
from app.auth.schemas import CurrentUser, ProfileInfo
from app.auth.security import hash_password
from app.core import repository
from app.core.config import settings
from app.core.enums import AppRole
from app.core.exceptions import (
    AlreadyExists,
    DuplicateKey,
    ServiceError,
    Unauthorized,
    UpstreamFailure,
    ValidationError,
)
from app.core.models import Student, Teacher, TeacherSemesterAssignment
from app.core.scope import AccessScope

from .schemas import ProvisionUserRequest, ProvisionUserResponse

logger = logging.getLogger(__name__)

TEACHER_FIELDS = ("department", "designation", "qualification", "joining_date")
STUDENT_FIELDS = (
    "roll_number",
    "course_id",
    "current_semester_id",
    "enrollment_year",
    "enrollment_date",
    "guardian_name",
    "guardian_phone",
    "address",
)


async def _validate(db: AsyncSession, payload: ProvisionUserRequest) -> None:
    if not payload.full_name.strip():
        raise ValidationError("Missing required fields: email, full_name, and role are required")
    if payload.role == AppRole.TEACHER:
        if not (payload.employee_id or "").strip():
            raise ValidationError("Employee ID is required for teachers")
    elif payload.role == AppRole.STUDENT:
        if not (
            (payload.roll_number or "").strip()
            and payload.course_id
            and payload.current_semester_id
            and payload.enrollment_year
        ):
            raise ValidationError("Roll number, course, semester, and enrollment year are required for students")
        await student_service.validate_semester_for_course(db, payload.course_id, payload.current_semester_id)
    else:
        raise ValidationError("Only teacher and student accounts can be provisioned")


def _record_fields(payload: ProvisionUserRequest) -> dict:
    if payload.role == AppRole.TEACHER:
        fields = {k: getattr(payload, k) for k in TEACHER_FIELDS}
        fields["employee_id"] = payload.employee_id.strip()
        return fields
    fields = {k: getattr(payload, k) for k in STUDENT_FIELDS}
    fields["roll_number"] = payload.roll_number.strip()
    return fields


def _record_key(payload: ProvisionUserRequest, fields: dict) -> dict:
    if payload.role == AppRole.TEACHER:
        return {"employee_id": fields["employee_id"]}
    return {"roll_number": fields["roll_number"], "course_id": fields["course_id"]}


def _describe(role: AppRole, key: dict) -> str:
    if role == AppRole.TEACHER:
        return f"Employee ID '{key['employee_id']}' is already in use"
    return f"Roll number '{key['roll_number']}' already exists in this course"


async def _add_semester_assignments(
    db: AsyncSession, teacher_id: UUID, items: List[SemesterAssignmentCreate]
) -> int:
    """Invalid entries are skipped, not fatal to the account."""
    added = 0
    for item in items:
        try:
            fields = await teacher_service.validate_semester_assignment(
                db, item.semester_id, item.subject_id, item.subject_name
            )
        except ValidationError as e:
            logger.warning("Skipping semester assignment for teacher %s: %s", teacher_id, e.message)
            continue
        db.add(TeacherSemesterAssignment(teacher_id=teacher_id, is_active=True, **fields))
        added += 1
    if added:
        await db.flush()
    return added


async def _find_reactivation_target(
    db: AsyncSession, payload: ProvisionUserRequest, email: str, key: dict
) -> Optional[Tuple[object, Profile]]:
    """
    Inactive role record to bring back, or None for a fresh account.
    Raises AlreadyExists/DuplicateKey when the email or key belongs to an active record.
    """
    model = Teacher if payload.role == AppRole.TEACHER else Student
    result = await db.execute(select(Profile).where(Profile.email == email))
    profile = result.scalar_one_or_none()

    if profile is not None:
        grant = (
            await db.execute(select(UserRole.role).where(UserRole.user_id == profile.user_id))
        ).scalar_one_or_none()
        record = (
            await db.execute(select(model).where(model.user_id == profile.user_id))
        ).scalar_one_or_none()
        if grant != payload.role.value or record is None:
            raise AlreadyExists(f"A user with email {email} already exists")
        if record.is_active:
            raise AlreadyExists(f"{payload.role.value.capitalize()} with email {email} already exists")
        await repository.ensure_key_free(db, model, key, exclude_id=record.id)
        return record, profile

    record = await repository.find_by_key(db, model, key)
    if record is None:
        return None
    if record.is_active:
        raise DuplicateKey(_describe(payload.role, key))
    profile = await db.get(Profile, record.profile_id)
    return record, profile


async def _reactivate(
    db: AsyncSession, payload: ProvisionUserRequest, email: str, record, profile: Profile, fields: dict
) -> None:
    if profile.email != email:
        # Re-hired under a new address
        user = await db.get(User, profile.user_id)
        user.email = email
        profile.email = email
    profile.full_name = payload.full_name.strip()
    if payload.phone is not None:
        profile.phone = payload.phone
    record.is_active = True
    repository.apply_updates(record, fields)
    await db.flush()
    if payload.role == AppRole.TEACHER:
        await _add_semester_assignments(db, record.id, payload.semester_assignments)


async def _create(db: AsyncSession, payload: ProvisionUserRequest, email: str, fields: dict):
    user = User(email=email, password_hash=hash_password(settings.default_password))
    db.add(user)
    await db.flush()
    logger.info("Auth user created with ID: %s", user.id)

    profile = Profile(
        user_id=user.id,
        email=email,
        full_name=payload.full_name.strip(),
        phone=payload.phone,
        must_change_password=True,
    )
    db.add(profile)
    await db.flush()
    logger.info("Profile created with ID: %s", profile.id)

    db.add(UserRole(user_id=user.id, role=payload.role.value))
    await db.flush()

    model = Teacher if payload.role == AppRole.TEACHER else Student
    record = model(user_id=user.id, profile_id=profile.id, is_active=True, **fields)
    db.add(record)
    await db.flush()
    logger.info("%s record created with ID: %s", model.__name__, record.id)

    if payload.role == AppRole.TEACHER:
        await _add_semester_assignments(db, record.id, payload.semester_assignments)
    return record, profile


async def provision_user(
    db: AsyncSession,
    caller: CurrentUser,
    payload: ProvisionUserRequest,
) -> ProvisionUserResponse:
    if caller.role != AppRole.ADMIN:
        raise Unauthorized("Unauthorized: Only admins can create users")

    email = payload.email.strip().lower()
    await _validate(db, payload)
    fields = _record_fields(payload)
    key = _record_key(payload, fields)
    logger.info("Provisioning %s account for %s", payload.role.value, email)

    try:
        target = await _find_reactivation_target(db, payload, email, key)
        if target is not None:
            record, profile = target
            await _reactivate(db, payload, email, record, profile, fields)
            reactivated = True
        else:
            record, profile = await _create(db, payload, email, fields)
            reactivated = False
        await db.commit()
    except ServiceError:
        await db.rollback()
        raise
    except IntegrityError as e:
        await db.rollback()
        logger.error("Provisioning %s rolled back: %s", email, e.orig, exc_info=True)
        raise DuplicateKey(f"A user with email {email} or the same identifier already exists") from e
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Provisioning %s rolled back", email, exc_info=True)
        raise UpstreamFailure("Failed to create user account") from e

    role_label = payload.role.value.capitalize()
    if reactivated:
        logger.info("%s %s reactivated for %s", role_label, record.id, email)
    await db.refresh(profile)
    admin_scope = AccessScope(role=AppRole.ADMIN, user_id=caller.id)
    response = ProvisionUserResponse(
        message=f"{role_label} {'reactivated' if reactivated else 'created'} successfully",
        user_id=profile.user_id,
        profile=ProfileInfo.model_validate(profile),
        default_credential=None if reactivated else settings.default_password,
        reactivated=reactivated,
    )
    if payload.role == AppRole.TEACHER:
        response.teacher = await teacher_service.get_teacher(db, record.id)
    else:
        response.student = await student_service.get_student(db, admin_scope, record.id)
    return response
