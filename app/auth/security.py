from datetime import datetime, timedelta
from typing import Optional, Tuple
from uuid import UUID

import bcrypt
from jose import jwt

from app.core.clock import utcnow
from app.core.config import settings


def hash_password(plain_password: str) -> str:
    hashed = bcrypt.hashpw(plain_password.encode("utf-8"), bcrypt.gensalt())
    return hashed.decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # stored hash is not a bcrypt hash
        return False


def create_access_token(
    user_id: UUID, role: str, expires_minutes: Optional[int] = None
) -> Tuple[str, datetime]:
    """
    Signed token carrying user_id and role. Returns (token, issued_at).

    The role claim is informational; get_current_user re-reads it from user_roles.
    """
    issued_at = utcnow()
    expire = issued_at + timedelta(minutes=expires_minutes or settings.access_token_expire_minutes)
    claims = {"user_id": str(user_id), "role": role, "iat": issued_at, "exp": expire}
    token = jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
    return token, issued_at
