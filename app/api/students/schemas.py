from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import Field

from app.core.schemas import APIModel, BatchRef, ClassRef, FacultyRef, JobRef


class StudentResponse(APIModel):
    id: UUID
    student_id: int
    name: str
    gender: str
    email: str = ""
    phone_number: str = ""
    class_id: UUID
    batch_id: UUID
    job_id: Optional[UUID] = None
    academic_class: Optional[ClassRef] = Field(None, alias="class")
    batch: Optional[BatchRef] = None
    job: Optional[JobRef] = None
    photo_image: str = ""
    description: str = ""
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class StudentDetailResponse(StudentResponse):
    """Single student plus up to six others from the same batch or class."""

    related: List[StudentResponse] = Field(default_factory=list)


class StudentListResponse(APIModel):
    items: List[StudentResponse]
    total: int
    page: int
    limit: int
    pages: int


class DepartmentOption(APIModel):
    id: UUID
    name: str
    faculty_id: UUID


class ClassOption(APIModel):
    id: UUID
    name: str
    department_id: UUID


class StudentFiltersResponse(APIModel):
    faculties: List[FacultyRef]
    departments: List[DepartmentOption]
    classes: List[ClassOption]
    batches: List[BatchRef]
    jobs: List[JobRef]


class SkippedRow(APIModel):
    row: int
    reason: str


class ImportSummary(APIModel):
    message: str
    total_rows: int
    imported: int
    skipped: int
    class_name: str = ""
    batch_name: str = ""
    skipped_rows: List[SkippedRow] = Field(default_factory=list)
