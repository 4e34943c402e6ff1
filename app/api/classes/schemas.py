from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field, field_validator

from app.core.schemas import APIModel, DepartmentRef, required_text


class ClassCreate(APIModel):
    name: str = Field(..., max_length=140)
    department_id: UUID
    description: Optional[str] = Field(None, max_length=2000)

    @field_validator("name")
    @classmethod
    def name_required(cls, v: str) -> str:
        return required_text(v, "Class name is required")


class ClassUpdate(APIModel):
    name: Optional[str] = Field(None, max_length=140)
    department_id: Optional[UUID] = None
    description: Optional[str] = Field(None, max_length=2000)

    @field_validator("name")
    @classmethod
    def name_required(cls, v: Optional[str]) -> Optional[str]:
        return required_text(v, "Class name is required")


class ClassResponse(APIModel):
    id: UUID
    name: str
    description: str = ""
    department_id: UUID
    department: Optional[DepartmentRef] = None
    created_at: datetime
    updated_at: datetime
