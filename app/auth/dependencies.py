from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import Profile, User, UserRole
from app.auth.schemas import CurrentUser
from app.core.config import settings
from app.core.enums import AppRole
from app.db.session import get_db


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login-oauth")


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> CurrentUser:
    """Resolve the authenticated user and their role grant from the access token."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        raise credentials_exception

    user_id_str = payload.get("user_id") or payload.get("sub")
    if not user_id_str:
        raise credentials_exception
    try:
        user_id = UUID(user_id_str)
    except ValueError:
        raise credentials_exception

    user = await db.get(User, user_id)
    if not user:
        raise credentials_exception

    # Role is read from the grant table, not trusted from the token
    role_result = await db.execute(select(UserRole.role).where(UserRole.user_id == user_id))
    role_name = role_result.scalar_one_or_none()
    if not role_name:
        raise credentials_exception

    profile_result = await db.execute(select(Profile.must_change_password).where(Profile.user_id == user_id))
    must_change = profile_result.scalar_one_or_none()

    return CurrentUser(
        id=user.id,
        role=AppRole(role_name),
        must_change_password=bool(must_change),
    )
