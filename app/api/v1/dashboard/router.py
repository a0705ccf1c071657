from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.scope import AccessScope, get_scope
from app.db.session import get_db

from .schemas import DashboardResponse
from . import service

router = APIRouter(prefix="/api/v1/dashboard", tags=["dashboard"])


@router.get("", response_model=DashboardResponse)
async def get_dashboard(
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
):
    """Counts for the caller's role."""
    return await service.get_dashboard(db, scope)
