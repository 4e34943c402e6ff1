from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field, field_validator

from app.core.schemas import APIModel, FacultyRef, required_text


class DepartmentCreate(APIModel):
    name: str = Field(..., max_length=140)
    faculty_id: UUID
    description: Optional[str] = Field(None, max_length=2000)

    @field_validator("name")
    @classmethod
    def name_required(cls, v: str) -> str:
        return required_text(v, "Department name is required")


class DepartmentUpdate(APIModel):
    """Only fields present in the request are applied."""

    name: Optional[str] = Field(None, max_length=140)
    faculty_id: Optional[UUID] = None
    description: Optional[str] = Field(None, max_length=2000)

    @field_validator("name")
    @classmethod
    def name_required(cls, v: Optional[str]) -> Optional[str]:
        return required_text(v, "Department name is required")


class DepartmentResponse(APIModel):
    id: UUID
    name: str
    description: str = ""
    faculty_id: UUID
    faculty: Optional[FacultyRef] = None
    created_at: datetime
    updated_at: datetime
