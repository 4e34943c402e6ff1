from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class APIModel(BaseModel):
    """Base for every request/response body: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class MessageResponse(APIModel):
    message: str
    affected: Optional[int] = None


class FacultyRef(APIModel):
    id: UUID
    name: str


class DepartmentRef(APIModel):
    id: UUID
    name: str
    faculty: Optional[FacultyRef] = None


class ClassRef(APIModel):
    id: UUID
    name: str
    department: Optional[DepartmentRef] = None


class BatchRef(APIModel):
    id: UUID
    name: str
    year: int


class JobRef(APIModel):
    id: UUID
    name: str


def clean_text(value: Optional[str]) -> str:
    """Trimmed string; None becomes empty."""
    return str(value).strip() if value is not None else ""


def required_text(value: Optional[str], message: str) -> Optional[str]:
    """Validator body for required names: None passes through (partial patch), blank is rejected."""
    if value is None:
        return None
    value = value.strip()
    if not value:
        raise ValueError(message)
    return value
