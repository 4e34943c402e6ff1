from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.students.filters import StudentFilterParams, student_filter_params
from app.auth.dependencies import get_current_admin
from app.core.exceptions import ServiceError
from app.db.session import get_db

from . import service

router = APIRouter(
    prefix="/api/reports",
    tags=["reports"],
    dependencies=[Depends(get_current_admin)],
)


@router.get("/students")
@router.get("/students/export")
async def export_students(
    format: str = Query("csv", description="csv, xlsx (or excel) or pdf"),
    params: StudentFilterParams = Depends(student_filter_params),
    db: AsyncSession = Depends(get_db),
) -> StreamingResponse:
    try:
        result = await service.export_students(db, params, format)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return StreamingResponse(
        result.body,
        media_type=result.media_type,
        headers={"Content-Disposition": f'attachment; filename="{result.filename}"'},
    )
