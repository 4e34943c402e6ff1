from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_admin
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import FacultyCreate, FacultyResponse, FacultyUpdate
from . import service

router = APIRouter(
    prefix="/api/faculties",
    tags=["faculties"],
    dependencies=[Depends(get_current_admin)],
)


@router.get("", response_model=List[FacultyResponse])
async def list_faculties(db: AsyncSession = Depends(get_db)) -> List[FacultyResponse]:
    return await service.list_faculties(db)


@router.post("", response_model=FacultyResponse, status_code=status.HTTP_201_CREATED)
async def create_faculty(
    payload: FacultyCreate,
    db: AsyncSession = Depends(get_db),
) -> FacultyResponse:
    try:
        return await service.create_faculty(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{faculty_id}", response_model=FacultyResponse)
async def get_faculty(faculty_id: UUID, db: AsyncSession = Depends(get_db)) -> FacultyResponse:
    faculty = await service.get_faculty(db, faculty_id)
    if not faculty:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Faculty not found")
    return faculty


@router.put("/{faculty_id}", response_model=FacultyResponse)
async def update_faculty(
    faculty_id: UUID,
    payload: FacultyUpdate,
    db: AsyncSession = Depends(get_db),
) -> FacultyResponse:
    try:
        faculty = await service.update_faculty(db, faculty_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    if not faculty:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Faculty not found")
    return faculty


@router.delete("/{faculty_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_faculty(faculty_id: UUID, db: AsyncSession = Depends(get_db)) -> None:
    try:
        deleted = await service.delete_faculty(db, faculty_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Faculty not found")
