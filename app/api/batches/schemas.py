from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field, field_validator

from app.core.schemas import APIModel, required_text

MIN_YEAR = 1900
MAX_YEAR = 3000


class BatchCreate(APIModel):
    name: str = Field(..., max_length=140)
    year: int = Field(..., ge=MIN_YEAR, le=MAX_YEAR)
    description: Optional[str] = Field(None, max_length=2000)

    @field_validator("name")
    @classmethod
    def name_required(cls, v: str) -> str:
        return required_text(v, "Batch name is required")


class BatchUpdate(APIModel):
    name: Optional[str] = Field(None, max_length=140)
    year: Optional[int] = Field(None, ge=MIN_YEAR, le=MAX_YEAR)
    description: Optional[str] = Field(None, max_length=2000)

    @field_validator("name")
    @classmethod
    def name_required(cls, v: Optional[str]) -> Optional[str]:
        return required_text(v, "Batch name is required")


class BatchResponse(APIModel):
    id: UUID
    name: str
    year: int
    description: str = ""
    created_at: datetime
    updated_at: datetime
