from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field, field_validator

from app.core.schemas import APIModel, required_text


class JobCreate(APIModel):
    name: str = Field(..., max_length=140)
    description: Optional[str] = Field(None, max_length=2000)

    @field_validator("name")
    @classmethod
    def name_required(cls, v: str) -> str:
        return required_text(v, "Job name is required")


class JobUpdate(APIModel):
    name: Optional[str] = Field(None, max_length=140)
    description: Optional[str] = Field(None, max_length=2000)

    @field_validator("name")
    @classmethod
    def name_required(cls, v: Optional[str]) -> Optional[str]:
        return required_text(v, "Job name is required")


class JobResponse(APIModel):
    id: UUID
    name: str
    description: str = ""
    created_at: datetime
    updated_at: datetime
