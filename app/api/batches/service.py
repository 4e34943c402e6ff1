from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError
from app.core.logging_config import logger
from app.core.models import Batch, Student
from app.core.schemas import clean_text

from .schemas import BatchCreate, BatchResponse, BatchUpdate


def _batch_to_response(b: Batch) -> BatchResponse:
    return BatchResponse(
        id=b.id,
        name=b.name,
        year=b.year,
        description=b.description or "",
        created_at=b.created_at,
        updated_at=b.updated_at,
    )


def _duplicate_year(year: int) -> ConflictError:
    return ConflictError(f"Batch for year {year} already exists")


async def list_batches(db: AsyncSession) -> List[BatchResponse]:
    result = await db.execute(select(Batch).order_by(Batch.year.desc()))
    return [_batch_to_response(b) for b in result.scalars().all()]


async def get_batch(db: AsyncSession, batch_id: UUID) -> Optional[BatchResponse]:
    batch = await db.get(Batch, batch_id)
    return _batch_to_response(batch) if batch else None


async def create_batch(db: AsyncSession, payload: BatchCreate) -> BatchResponse:
    existing = await db.execute(select(Batch.id).where(Batch.year == payload.year))
    if existing.scalar_one_or_none() is not None:
        raise _duplicate_year(payload.year)
    batch = Batch(name=payload.name, year=payload.year, description=clean_text(payload.description))
    db.add(batch)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise _duplicate_year(payload.year)
    await db.refresh(batch)
    logger.info("Created batch %s (%s)", batch.year, batch.id)
    return _batch_to_response(batch)


async def update_batch(
    db: AsyncSession,
    batch_id: UUID,
    payload: BatchUpdate,
) -> Optional[BatchResponse]:
    batch = await db.get(Batch, batch_id)
    if not batch:
        return None
    if payload.year is not None and payload.year != batch.year:
        clash = await db.execute(
            select(Batch.id).where(Batch.year == payload.year, Batch.id != batch_id)
        )
        if clash.scalar_one_or_none() is not None:
            raise _duplicate_year(payload.year)
        batch.year = payload.year
    if payload.name is not None:
        batch.name = payload.name
    if payload.description is not None:
        batch.description = clean_text(payload.description)
    year = batch.year
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise _duplicate_year(year)
    await db.refresh(batch)
    return _batch_to_response(batch)


async def delete_batch(db: AsyncSession, batch_id: UUID) -> bool:
    batch = await db.get(Batch, batch_id)
    if not batch:
        return False
    active = await db.scalar(
        select(func.count())
        .select_from(Student)
        .where(Student.batch_id == batch_id, Student.is_deleted == False)  # noqa: E712
    )
    if active:
        raise ConflictError("Cannot delete batch with students. Remove students first.")
    await db.execute(delete(Student).where(Student.batch_id == batch_id))
    await db.delete(batch)
    await db.commit()
    logger.info("Deleted batch %s", batch_id)
    return True
