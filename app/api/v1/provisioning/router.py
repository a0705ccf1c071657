from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.schemas import CurrentUser
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import ProvisionErrorResponse, ProvisionUserRequest, ProvisionUserResponse
from . import service

router = APIRouter(prefix="/api/v1/provisioning", tags=["provisioning"])


@router.post(
    "/users",
    response_model=ProvisionUserResponse,
    responses={
        400: {"model": ProvisionErrorResponse},
        403: {"model": ProvisionErrorResponse},
        409: {"model": ProvisionErrorResponse},
    },
)
async def provision_user(
    payload: ProvisionUserRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """
    Create a teacher or student account (admin only), or reactivate a deactivated one.
    Errors answer {"success": false, "error": message}.
    """
    try:
        return await service.provision_user(db, current_user, payload)
    except ServiceError as e:
        return JSONResponse(
            status_code=e.status_code,
            content=ProvisionErrorResponse(error=e.message).model_dump(),
        )
