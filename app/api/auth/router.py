from fastapi import APIRouter, Depends, HTTPException
from fastapi import status as http_status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_admin
from app.auth.models import Admin
from app.auth.schemas import AdminResponse, LoginRequest, LoginResponse
from app.auth.services import admin_to_response, login_admin
from app.core.exceptions import ServiceError
from app.db.session import get_db

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post(
    "/login",
    response_model=LoginResponse,
    status_code=http_status.HTTP_200_OK,
)
async def login(
    payload: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> LoginResponse:
    try:
        return await login_admin(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/login-oauth")
async def login_oauth(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_db),
):
    """OAuth2 password flow for the interactive API docs."""
    try:
        result = await login_admin(
            db, LoginRequest(email=form_data.username.strip(), password=form_data.password)
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"access_token": result.token, "token_type": "bearer"}


@router.get("/me", response_model=AdminResponse)
async def me(current_admin: Admin = Depends(get_current_admin)) -> AdminResponse:
    return admin_to_response(current_admin)
