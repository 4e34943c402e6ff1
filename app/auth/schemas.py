from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import EmailStr, Field, field_validator

from app.core.schemas import APIModel


class LoginRequest(APIModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class AdminResponse(APIModel):
    id: UUID
    name: str
    email: str
    photo_image: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class LoginResponse(APIModel):
    token: str
    token_type: str = "bearer"
    admin: AdminResponse


class AdminProfileUpdate(APIModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("Name is required")
        return v.strip() if v is not None else v


class ChangePasswordRequest(APIModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, description="At least 6 characters")
