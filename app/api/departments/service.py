from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import ConflictError, NotFoundError
from app.core.logging_config import logger
from app.core.models import AcademicClass, Department, Faculty
from app.core.schemas import FacultyRef, clean_text

from .schemas import DepartmentCreate, DepartmentResponse, DepartmentUpdate

DUPLICATE_MESSAGE = "Department name already exists in this faculty"


def _department_to_response(d: Department) -> DepartmentResponse:
    return DepartmentResponse(
        id=d.id,
        name=d.name,
        description=d.description or "",
        faculty_id=d.faculty_id,
        faculty=FacultyRef(id=d.faculty.id, name=d.faculty.name) if d.faculty else None,
        created_at=d.created_at,
        updated_at=d.updated_at,
    )


async def _load_department(db: AsyncSession, department_id: UUID) -> Optional[Department]:
    result = await db.execute(
        select(Department)
        .where(Department.id == department_id)
        .options(selectinload(Department.faculty))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _require_faculty(db: AsyncSession, faculty_id: UUID) -> Faculty:
    faculty = await db.get(Faculty, faculty_id)
    if not faculty:
        raise NotFoundError("Faculty not found")
    return faculty


async def list_departments(
    db: AsyncSession,
    faculty_id: Optional[UUID] = None,
) -> List[DepartmentResponse]:
    stmt = select(Department).options(selectinload(Department.faculty))
    if faculty_id is not None:
        stmt = stmt.where(Department.faculty_id == faculty_id)
    stmt = stmt.order_by(Department.name)
    result = await db.execute(stmt)
    return [_department_to_response(d) for d in result.scalars().all()]


async def get_department(db: AsyncSession, department_id: UUID) -> Optional[DepartmentResponse]:
    dept = await _load_department(db, department_id)
    return _department_to_response(dept) if dept else None


async def create_department(db: AsyncSession, payload: DepartmentCreate) -> DepartmentResponse:
    await _require_faculty(db, payload.faculty_id)
    dept = Department(
        name=payload.name,
        faculty_id=payload.faculty_id,
        description=clean_text(payload.description),
    )
    db.add(dept)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(DUPLICATE_MESSAGE)
    logger.info("Created department %s (%s)", dept.name, dept.id)
    return _department_to_response(await _load_department(db, dept.id))


async def update_department(
    db: AsyncSession,
    department_id: UUID,
    payload: DepartmentUpdate,
) -> Optional[DepartmentResponse]:
    dept = await db.get(Department, department_id)
    if not dept:
        return None
    if payload.faculty_id is not None and payload.faculty_id != dept.faculty_id:
        await _require_faculty(db, payload.faculty_id)

    new_name = payload.name if payload.name is not None else dept.name
    new_faculty_id = payload.faculty_id if payload.faculty_id is not None else dept.faculty_id
    if (new_name, new_faculty_id) != (dept.name, dept.faculty_id):
        clash = await db.execute(
            select(Department.id).where(
                Department.faculty_id == new_faculty_id,
                Department.name == new_name,
                Department.id != dept.id,
            )
        )
        if clash.scalar_one_or_none() is not None:
            raise ConflictError(DUPLICATE_MESSAGE)

    dept.name = new_name
    dept.faculty_id = new_faculty_id
    if payload.description is not None:
        dept.description = clean_text(payload.description)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(DUPLICATE_MESSAGE)
    return _department_to_response(await _load_department(db, department_id))


async def delete_department(db: AsyncSession, department_id: UUID) -> bool:
    dept = await db.get(Department, department_id)
    if not dept:
        return False
    classes = await db.scalar(
        select(func.count()).select_from(AcademicClass).where(AcademicClass.department_id == department_id)
    )
    if classes:
        raise ConflictError("Cannot delete department with classes. Delete classes first.")
    await db.delete(dept)
    await db.commit()
    logger.info("Deleted department %s", department_id)
    return True
