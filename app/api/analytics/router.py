from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.students.filters import StudentFilterParams, student_filter_params
from app.auth.dependencies import get_current_admin
from app.db.session import get_db

from .schemas import DashboardResponse, HubResponse
from . import service

router = APIRouter(
    prefix="/api/analytics",
    tags=["analytics"],
    dependencies=[Depends(get_current_admin)],
)


def _year(value: Optional[str]) -> Optional[int]:
    if value is None or not value.strip():
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


@router.get("/dashboard", response_model=DashboardResponse)
async def dashboard(
    start_year: Optional[str] = Query(None, alias="startYear"),
    end_year: Optional[str] = Query(None, alias="endYear"),
    params: StudentFilterParams = Depends(student_filter_params),
    db: AsyncSession = Depends(get_db),
) -> DashboardResponse:
    """Totals, per-year series densified over [startYear, endYear] and ranked breakdowns."""
    return await service.get_dashboard(db, params, start_year=_year(start_year), end_year=_year(end_year))


@router.get("/hub", response_model=HubResponse)
async def hub(
    params: StudentFilterParams = Depends(student_filter_params),
    db: AsyncSession = Depends(get_db),
) -> HubResponse:
    return await service.get_hub(db, params)
