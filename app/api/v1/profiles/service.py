import logging
from uuid import UUID

from fastapi import UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import Profile
from app.auth.schemas import ProfileInfo
from app.core.enums import FileKind
from app.core.exceptions import NotFound, ValidationError
from app.core.storage import FileStore, store_upload

logger = logging.getLogger(__name__)


async def update_avatar(db: AsyncSession, store: FileStore, profile_id: UUID, file: UploadFile) -> ProfileInfo:
    profile = await db.get(Profile, profile_id)
    if profile is None:
        raise NotFound("Profile not found")
    if not (file.content_type or "").startswith("image/"):
        raise ValidationError("Avatar must be an image")
    profile.avatar_url = await store_upload(store, FileKind.AVATARS, profile.id, file)
    await db.commit()
    await db.refresh(profile)
    logger.info("Photo updated for profile %s", profile.id)
    return ProfileInfo.model_validate(profile)
