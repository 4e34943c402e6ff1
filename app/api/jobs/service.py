from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError
from app.core.logging_config import logger
from app.core.models import Job, Student
from app.core.schemas import clean_text

from .schemas import JobCreate, JobResponse, JobUpdate

DUPLICATE_MESSAGE = "Job name already exists"


def _job_to_response(j: Job) -> JobResponse:
    return JobResponse(
        id=j.id,
        name=j.name,
        description=j.description or "",
        created_at=j.created_at,
        updated_at=j.updated_at,
    )


async def _name_taken(db: AsyncSession, name: str, exclude_id: Optional[UUID] = None) -> bool:
    stmt = select(Job.id).where(Job.name == name)
    if exclude_id is not None:
        stmt = stmt.where(Job.id != exclude_id)
    result = await db.execute(stmt)
    return result.scalar_one_or_none() is not None


async def list_jobs(db: AsyncSession) -> List[JobResponse]:
    result = await db.execute(select(Job).order_by(Job.name))
    return [_job_to_response(j) for j in result.scalars().all()]


async def get_job(db: AsyncSession, job_id: UUID) -> Optional[JobResponse]:
    job = await db.get(Job, job_id)
    return _job_to_response(job) if job else None


async def create_job(db: AsyncSession, payload: JobCreate) -> JobResponse:
    if await _name_taken(db, payload.name):
        raise ConflictError(DUPLICATE_MESSAGE)
    job = Job(name=payload.name, description=clean_text(payload.description))
    db.add(job)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(DUPLICATE_MESSAGE)
    await db.refresh(job)
    logger.info("Created job %s (%s)", job.name, job.id)
    return _job_to_response(job)


async def update_job(
    db: AsyncSession,
    job_id: UUID,
    payload: JobUpdate,
) -> Optional[JobResponse]:
    job = await db.get(Job, job_id)
    if not job:
        return None
    if payload.name is not None and payload.name != job.name:
        if await _name_taken(db, payload.name, exclude_id=job_id):
            raise ConflictError(DUPLICATE_MESSAGE)
        job.name = payload.name
    if payload.description is not None:
        job.description = clean_text(payload.description)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(DUPLICATE_MESSAGE)
    await db.refresh(job)
    return _job_to_response(job)


async def delete_job(db: AsyncSession, job_id: UUID) -> bool:
    job = await db.get(Job, job_id)
    if not job:
        return False
    active = await db.scalar(
        select(func.count())
        .select_from(Student)
        .where(Student.job_id == job_id, Student.is_deleted == False)  # noqa: E712
    )
    if active:
        raise ConflictError("Cannot delete job assigned to students. Reassign students first.")
    await db.execute(update(Student).where(Student.job_id == job_id).values(job_id=None))
    await db.delete(job)
    await db.commit()
    logger.info("Deleted job %s", job_id)
    return True
