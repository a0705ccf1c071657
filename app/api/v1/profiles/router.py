from uuid import UUID

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rbac import require_admin
from app.auth.schemas import ProfileInfo
from app.core.exceptions import ServiceError
from app.core.storage import FileStore, get_file_store
from app.db.session import get_db

from . import service

router = APIRouter(prefix="/api/v1/profiles", tags=["profiles"])


@router.post(
    "/{profile_id}/avatar",
    response_model=ProfileInfo,
    dependencies=[Depends(require_admin)],
)
async def upload_avatar(
    profile_id: UUID,
    file: UploadFile = File(..., description="Image file"),
    db: AsyncSession = Depends(get_db),
    store: FileStore = Depends(get_file_store),
):
    try:
        return await service.update_avatar(db, store, profile_id, file)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
