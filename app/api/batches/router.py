from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_admin
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import BatchCreate, BatchResponse, BatchUpdate
from . import service

router = APIRouter(
    prefix="/api/batches",
    tags=["batches"],
    dependencies=[Depends(get_current_admin)],
)


@router.get("", response_model=List[BatchResponse])
async def list_batches(db: AsyncSession = Depends(get_db)) -> List[BatchResponse]:
    return await service.list_batches(db)


@router.post("", response_model=BatchResponse, status_code=status.HTTP_201_CREATED)
async def create_batch(
    payload: BatchCreate,
    db: AsyncSession = Depends(get_db),
) -> BatchResponse:
    try:
        return await service.create_batch(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{batch_id}", response_model=BatchResponse)
async def get_batch(batch_id: UUID, db: AsyncSession = Depends(get_db)) -> BatchResponse:
    batch = await service.get_batch(db, batch_id)
    if not batch:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Batch not found")
    return batch


@router.put("/{batch_id}", response_model=BatchResponse)
async def update_batch(
    batch_id: UUID,
    payload: BatchUpdate,
    db: AsyncSession = Depends(get_db),
) -> BatchResponse:
    try:
        batch = await service.update_batch(db, batch_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    if not batch:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Batch not found")
    return batch


@router.delete("/{batch_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_batch(batch_id: UUID, db: AsyncSession = Depends(get_db)) -> None:
    try:
        deleted = await service.delete_batch(db, batch_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Batch not found")
