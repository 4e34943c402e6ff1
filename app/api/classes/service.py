from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import ConflictError, NotFoundError
from app.core.logging_config import logger
from app.core.models import AcademicClass, Department, Student
from app.core.schemas import DepartmentRef, FacultyRef, clean_text

from .schemas import ClassCreate, ClassResponse, ClassUpdate

DUPLICATE_MESSAGE = "Class name already exists in this department"


def _class_to_response(c: AcademicClass) -> ClassResponse:
    department = None
    if c.department:
        faculty = c.department.faculty
        department = DepartmentRef(
            id=c.department.id,
            name=c.department.name,
            faculty=FacultyRef(id=faculty.id, name=faculty.name) if faculty else None,
        )
    return ClassResponse(
        id=c.id,
        name=c.name,
        description=c.description or "",
        department_id=c.department_id,
        department=department,
        created_at=c.created_at,
        updated_at=c.updated_at,
    )


def _with_department():
    return selectinload(AcademicClass.department).selectinload(Department.faculty)


async def _load_class(db: AsyncSession, class_id: UUID) -> Optional[AcademicClass]:
    result = await db.execute(
        select(AcademicClass)
        .where(AcademicClass.id == class_id)
        .options(_with_department())
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _require_department(db: AsyncSession, department_id: UUID) -> Department:
    dept = await db.get(Department, department_id)
    if not dept:
        raise NotFoundError("Department not found")
    return dept


async def list_classes(
    db: AsyncSession,
    department_id: Optional[UUID] = None,
    faculty_id: Optional[UUID] = None,
) -> List[ClassResponse]:
    stmt = select(AcademicClass).options(_with_department())
    if department_id is not None:
        stmt = stmt.where(AcademicClass.department_id == department_id)
    if faculty_id is not None:
        stmt = stmt.where(
            AcademicClass.department_id.in_(
                select(Department.id).where(Department.faculty_id == faculty_id)
            )
        )
    result = await db.execute(stmt.order_by(AcademicClass.name))
    return [_class_to_response(c) for c in result.scalars().all()]


async def get_class(db: AsyncSession, class_id: UUID) -> Optional[ClassResponse]:
    c = await _load_class(db, class_id)
    return _class_to_response(c) if c else None


async def create_class(db: AsyncSession, payload: ClassCreate) -> ClassResponse:
    await _require_department(db, payload.department_id)
    c = AcademicClass(
        name=payload.name,
        department_id=payload.department_id,
        description=clean_text(payload.description),
    )
    db.add(c)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(DUPLICATE_MESSAGE)
    logger.info("Created class %s (%s)", c.name, c.id)
    return _class_to_response(await _load_class(db, c.id))


async def update_class(
    db: AsyncSession,
    class_id: UUID,
    payload: ClassUpdate,
) -> Optional[ClassResponse]:
    c = await db.get(AcademicClass, class_id)
    if not c:
        return None
    if payload.department_id is not None and payload.department_id != c.department_id:
        await _require_department(db, payload.department_id)
        c.department_id = payload.department_id
    if payload.name is not None:
        c.name = payload.name
    if payload.description is not None:
        c.description = clean_text(payload.description)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(DUPLICATE_MESSAGE)
    return _class_to_response(await _load_class(db, class_id))


async def delete_class(db: AsyncSession, class_id: UUID) -> bool:
    c = await db.get(AcademicClass, class_id)
    if not c:
        return False
    active = await db.scalar(
        select(func.count())
        .select_from(Student)
        .where(Student.class_id == class_id, Student.is_deleted == False)  # noqa: E712
    )
    if active:
        raise ConflictError("Cannot delete class with students. Remove students first.")
    # Soft-deleted students still reference the class
    await db.execute(delete(Student).where(Student.class_id == class_id))
    await db.delete(c)
    await db.commit()
    logger.info("Deleted class %s", class_id)
    return True
