from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError
from app.core.logging_config import logger
from app.core.models import Department, Faculty
from app.core.schemas import clean_text

from .schemas import FacultyCreate, FacultyResponse, FacultyUpdate


def _faculty_to_response(f: Faculty) -> FacultyResponse:
    return FacultyResponse(
        id=f.id,
        name=f.name,
        description=f.description or "",
        created_at=f.created_at,
        updated_at=f.updated_at,
    )


async def list_faculties(db: AsyncSession) -> List[FacultyResponse]:
    result = await db.execute(select(Faculty).order_by(Faculty.name))
    return [_faculty_to_response(f) for f in result.scalars().all()]


async def get_faculty(db: AsyncSession, faculty_id: UUID) -> Optional[FacultyResponse]:
    faculty = await db.get(Faculty, faculty_id)
    return _faculty_to_response(faculty) if faculty else None


async def create_faculty(db: AsyncSession, payload: FacultyCreate) -> FacultyResponse:
    faculty = Faculty(name=payload.name, description=clean_text(payload.description))
    db.add(faculty)
    await db.commit()
    await db.refresh(faculty)
    logger.info("Created faculty %s (%s)", faculty.name, faculty.id)
    return _faculty_to_response(faculty)


async def update_faculty(
    db: AsyncSession,
    faculty_id: UUID,
    payload: FacultyUpdate,
) -> Optional[FacultyResponse]:
    faculty = await db.get(Faculty, faculty_id)
    if not faculty:
        return None
    if payload.name is not None:
        faculty.name = payload.name
    if payload.description is not None:
        faculty.description = clean_text(payload.description)
    await db.commit()
    await db.refresh(faculty)
    return _faculty_to_response(faculty)


async def delete_faculty(db: AsyncSession, faculty_id: UUID) -> bool:
    faculty = await db.get(Faculty, faculty_id)
    if not faculty:
        return False
    departments = await db.scalar(
        select(func.count()).select_from(Department).where(Department.faculty_id == faculty_id)
    )
    if departments:
        raise ConflictError("Cannot delete faculty with departments. Delete departments first.")
    await db.delete(faculty)
    await db.commit()
    logger.info("Deleted faculty %s", faculty_id)
    return True
