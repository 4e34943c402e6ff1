from typing import Optional

from fastapi import UploadFile, status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import Admin
from app.auth.schemas import (
    AdminProfileUpdate,
    AdminResponse,
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
)
from app.auth.security import create_access_token, hash_password, verify_password
from app.core.exceptions import ServiceError
from app.core.logging_config import logger
from app.core.uploads import read_image_upload, to_data_url


def admin_to_response(admin: Admin) -> AdminResponse:
    return AdminResponse(
        id=admin.id,
        name=admin.name,
        email=admin.email,
        photo_image=admin.photo_image or "",
        created_at=admin.created_at,
        updated_at=admin.updated_at,
    )


async def login_admin(db: AsyncSession, payload: LoginRequest) -> LoginResponse:
    result = await db.execute(
        select(Admin).where(func.lower(Admin.email) == payload.email.strip().lower())
    )
    admin: Optional[Admin] = result.scalar_one_or_none()
    if not admin or not verify_password(payload.password, admin.password_hash):
        logger.warning("Failed login attempt for %s", payload.email)
        raise ServiceError("Invalid email or password", status.HTTP_401_UNAUTHORIZED)

    token = create_access_token(subject={"sub": str(admin.id)})
    logger.info("Admin %s logged in", admin.email)
    return LoginResponse(token=token, admin=admin_to_response(admin))


async def create_admin(db: AsyncSession, name: str, email: str, password: str) -> Admin:
    admin = Admin(
        name=name.strip(),
        email=email.strip().lower(),
        password_hash=hash_password(password),
    )
    db.add(admin)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ServiceError("Email already in use", status.HTTP_409_CONFLICT)
    await db.refresh(admin)
    return admin


async def update_profile(
    db: AsyncSession,
    admin: Admin,
    payload: AdminProfileUpdate,
    photo: Optional[UploadFile] = None,
) -> AdminResponse:
    if payload.email is not None:
        email = payload.email.strip().lower()
        if email != admin.email:
            existing = await db.execute(select(Admin.id).where(Admin.email == email, Admin.id != admin.id))
            if existing.scalar_one_or_none() is not None:
                raise ServiceError("Email already in use", status.HTTP_409_CONFLICT)
            admin.email = email
    if payload.name is not None:
        admin.name = payload.name
    if photo is not None:
        content = await read_image_upload(photo)
        admin.photo_image = to_data_url(content, photo.content_type)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ServiceError("Email already in use", status.HTTP_409_CONFLICT)
    await db.refresh(admin)
    return admin_to_response(admin)


async def change_password(db: AsyncSession, admin: Admin, payload: ChangePasswordRequest) -> None:
    if not verify_password(payload.current_password, admin.password_hash):
        raise ServiceError("Current password is incorrect", status.HTTP_401_UNAUTHORIZED)
    admin.password_hash = hash_password(payload.new_password)
    await db.commit()
    logger.info("Admin %s changed password", admin.email)
