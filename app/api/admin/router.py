from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import services
from app.auth.dependencies import get_current_admin
from app.auth.models import Admin
from app.auth.schemas import AdminProfileUpdate, AdminResponse, ChangePasswordRequest
from app.core.exceptions import ServiceError
from app.core.forms import read_body
from app.core.schemas import MessageResponse
from app.db.session import get_db

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/me", response_model=AdminResponse)
async def get_me(current_admin: Admin = Depends(get_current_admin)) -> AdminResponse:
    return services.admin_to_response(current_admin)


@router.put("/me", response_model=AdminResponse)
async def update_me(
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_admin: Admin = Depends(get_current_admin),
) -> AdminResponse:
    """Update name/email; a multipart `photo` is stored as an embedded data URL."""
    try:
        data, photo = await read_body(request, file_field="photo")
        payload = AdminProfileUpdate.model_validate(
            {k: v for k, v in data.items() if k in ("name", "email") and v not in (None, "")}
        )
        return await services.update_profile(db, current_admin, payload, photo)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/change-password", response_model=MessageResponse)
async def change_password(
    payload: ChangePasswordRequest,
    db: AsyncSession = Depends(get_db),
    current_admin: Admin = Depends(get_current_admin),
) -> MessageResponse:
    try:
        await services.change_password(db, current_admin, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return MessageResponse(message="Password updated successfully")
