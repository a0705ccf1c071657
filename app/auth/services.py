import logging
from typing import Tuple
from uuid import UUID

from fastapi import status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import Profile, User, UserRole
from app.auth.schemas import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    MeResponse,
    ProfileInfo,
)
from app.auth.security import create_access_token, hash_password, verify_password
from app.core.config import settings
from app.core.enums import AppRole
from app.core.exceptions import ServiceError, UpstreamFailure

logger = logging.getLogger(__name__)


async def _load_profile_and_role(db: AsyncSession, user_id: UUID) -> Tuple[Profile, str]:
    profile = (await db.execute(select(Profile).where(Profile.user_id == user_id))).scalar_one_or_none()
    role = (await db.execute(select(UserRole.role).where(UserRole.user_id == user_id))).scalar_one_or_none()
    if profile is None or role is None:
        raise ServiceError("Account is not fully provisioned", status.HTTP_403_FORBIDDEN)
    return profile, role


async def login_user(db: AsyncSession, payload: LoginRequest) -> LoginResponse:
    result = await db.execute(select(User).where(User.email == payload.email.strip().lower()))
    user = result.scalar_one_or_none()
    if not user or not verify_password(payload.password, user.password_hash):
        raise ServiceError("Invalid email or password", status.HTTP_401_UNAUTHORIZED)

    profile, role = await _load_profile_and_role(db, user.id)

    access_token, issued_at = create_access_token(user.id, role)
    return LoginResponse(
        access_token=access_token,
        role=AppRole(role),
        must_change_password=profile.must_change_password,
        profile=ProfileInfo.model_validate(profile),
        issued_at=issued_at,
    )


async def get_me(db: AsyncSession, user_id: UUID) -> MeResponse:
    profile, role = await _load_profile_and_role(db, user_id)
    return MeResponse(role=AppRole(role), profile=ProfileInfo.model_validate(profile))


async def change_password(db: AsyncSession, user_id: UUID, payload: ChangePasswordRequest) -> None:
    user = await db.get(User, user_id)
    if not user or not verify_password(payload.current_password, user.password_hash):
        raise ServiceError("Current password is incorrect", status.HTTP_400_BAD_REQUEST)
    user.password_hash = hash_password(payload.new_password)
    profile = (await db.execute(select(Profile).where(Profile.user_id == user_id))).scalar_one_or_none()
    if profile is not None:
        profile.must_change_password = False
    await db.commit()
    logger.info("Password changed for user %s", user_id)


async def ensure_admin(db: AsyncSession) -> bool:
    """
    Create the initial admin (settings.admin_email, default credential, must change on first login).
    Returns False without changes when that email already exists.
    """
    existing = await db.execute(select(User.id).where(User.email == settings.admin_email))
    if existing.scalar_one_or_none() is not None:
        logger.info("Admin user %s already exists", settings.admin_email)
        return False
    try:
        user = User(email=settings.admin_email, password_hash=hash_password(settings.default_password))
        db.add(user)
        await db.flush()
        db.add(
            Profile(
                user_id=user.id,
                email=settings.admin_email,
                full_name=settings.admin_full_name,
                must_change_password=True,
            )
        )
        db.add(UserRole(user_id=user.id, role=AppRole.ADMIN.value))
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise UpstreamFailure("Could not create admin user") from e
    logger.info("Created admin user %s", settings.admin_email)
    return True
