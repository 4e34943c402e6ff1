from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_admin
from app.core.exceptions import ServiceError
from app.core.forms import read_body
from app.core.query_params import parse_bool_param, parse_int_param
from app.core.schemas import MessageResponse
from app.core.uploads import XLSX_MIME, read_import_upload
from app.db.session import get_db

from . import importer, service
from .filters import StudentFilterParams, filter_params_from_mapping, student_filter_params
from .schemas import (
    ImportSummary,
    StudentDetailResponse,
    StudentFiltersResponse,
    StudentListResponse,
    StudentResponse,
)

router = APIRouter(
    prefix="/api/students",
    tags=["students"],
    dependencies=[Depends(get_current_admin)],
)

_FILTER_KEYS = ("facultyIds", "departmentIds", "classIds")


@router.get("", response_model=StudentListResponse)
async def list_students(
    params: StudentFilterParams = Depends(student_filter_params),
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> StudentListResponse:
    """Paginated, newest first. Multi-valued filters accept repeated or comma-joined values."""
    return await service.list_students(
        db,
        params,
        page=parse_int_param(page, 1),
        limit=parse_int_param(limit, service.DEFAULT_PAGE_SIZE),
    )


@router.get("/filters", response_model=StudentFiltersResponse)
async def get_filter_options(db: AsyncSession = Depends(get_db)) -> StudentFiltersResponse:
    return await service.get_filter_options(db)


@router.get("/import-template")
async def download_import_template() -> Response:
    return Response(
        content=importer.build_import_template(),
        media_type=XLSX_MIME,
        headers={"Content-Disposition": f'attachment; filename="{importer.TEMPLATE_FILENAME}"'},
    )


@router.post("/import", response_model=ImportSummary, status_code=status.HTTP_201_CREATED)
async def import_students(request: Request, db: AsyncSession = Depends(get_db)):
    """Multipart `file` (.xlsx) plus facultyId, departmentId, classId and batchId form fields."""
    try:
        data, upload = await read_body(request, file_field="file")
        content = await read_import_upload(upload)
        return await importer.import_students(
            db,
            content,
            faculty_id=data.get("facultyId"),
            department_id=data.get("departmentId"),
            class_id=data.get("classId"),
            batch_id=data.get("batchId"),
        )
    except importer.ImportRejected as e:
        return JSONResponse(
            status_code=e.status_code,
            content=e.summary.model_dump(mode="json", by_alias=True),
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/delete-by-filter", response_model=MessageResponse)
async def delete_students_by_filter(request: Request, db: AsyncSession = Depends(get_db)) -> MessageResponse:
    """Faculty/department/class filters and `force` from the body, falling back to the query string."""
    try:
        body, _ = await read_body(request)
        merged = {}
        for key in _FILTER_KEYS:
            merged[key] = body.get(key) or request.query_params.getlist(key) or None
        force = body.get("force", request.query_params.get("force"))
        return await service.delete_students_by_filter(
            db,
            filter_params_from_mapping(merged),
            force=parse_bool_param(force, False),
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("", response_model=MessageResponse)
async def delete_all_students(
    force: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    return await service.delete_all_students(db, force=parse_bool_param(force, False))


@router.post("", response_model=StudentResponse, status_code=status.HTTP_201_CREATED)
async def create_student(request: Request, db: AsyncSession = Depends(get_db)) -> StudentResponse:
    """JSON or multipart; a multipart `photo` image is stored under /uploads/students."""
    try:
        data, photo = await read_body(request, file_field="photo")
        return await service.create_student(db, data, photo)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{student_id}", response_model=StudentDetailResponse)
async def get_student(student_id: UUID, db: AsyncSession = Depends(get_db)) -> StudentDetailResponse:
    student = await service.get_student(db, student_id)
    if not student:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found")
    return student


@router.put("/{student_id}", response_model=StudentResponse)
async def update_student(
    student_id: UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> StudentResponse:
    try:
        data, photo = await read_body(request, file_field="photo")
        student = await service.update_student(db, student_id, data, photo)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    if not student:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found")
    return student


@router.delete("/{student_id}", response_model=MessageResponse)
async def delete_student(
    student_id: UUID,
    force: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    result = await service.delete_student(db, student_id, force=parse_bool_param(force, False))
    if not result:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found")
    return result


@router.patch("/{student_id}/restore", response_model=MessageResponse)
async def restore_student(student_id: UUID, db: AsyncSession = Depends(get_db)) -> MessageResponse:
    result = await service.restore_student(db, student_id)
    if not result:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found")
    return result
