from typing import Any, Dict, Iterable, List

from fastapi.encoders import jsonable_encoder
from pydantic.alias_generators import to_camel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import Admin
from app.core.logging_config import logger
from app.core.models import AcademicClass, Batch, Department, Faculty, Job, Student
from app.core.timeutil import utcnow


def _row_to_dict(obj, exclude: Iterable[str] = ()) -> Dict[str, Any]:
    """Column values keyed by their camelCase wire name."""
    return {
        to_camel(col.key): getattr(obj, col.key)
        for col in obj.__table__.columns
        if col.key not in exclude
    }


async def _dump(db: AsyncSession, stmt, exclude: Iterable[str] = ()) -> List[Dict[str, Any]]:
    result = await db.execute(stmt)
    return [_row_to_dict(obj, exclude) for obj in result.scalars().all()]


async def build_backup(db: AsyncSession) -> Dict[str, Any]:
    """Every reference table, admins without password hashes, and all non-deleted students."""
    payload = {
        "exportedAt": utcnow(),
        "admins": await _dump(db, select(Admin).order_by(Admin.created_at), exclude=("password_hash",)),
        "faculties": await _dump(db, select(Faculty).order_by(Faculty.name)),
        "departments": await _dump(db, select(Department).order_by(Department.name)),
        "classes": await _dump(db, select(AcademicClass).order_by(AcademicClass.name)),
        "batches": await _dump(db, select(Batch).order_by(Batch.year)),
        "jobs": await _dump(db, select(Job).order_by(Job.name)),
        "students": await _dump(
            db,
            select(Student).where(Student.is_deleted == False).order_by(Student.student_id),  # noqa: E712
        ),
    }
    logger.info("Backup generated with %d students", len(payload["students"]))
    return jsonable_encoder(payload)
