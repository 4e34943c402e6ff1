"""Translate student filter parameters into SQLAlchemy conditions.

Hierarchy and batch filters are resolved to concrete id lists first, so a
request naming only malformed ids matches nothing instead of everything.
"""

from typing import Any, List, Mapping, Optional
from uuid import UUID

from fastapi import Query
from pydantic import BaseModel, Field
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.batches.schemas import MAX_YEAR, MIN_YEAR
from app.core.enums import GENDER_VALUES, EmploymentStatus
from app.core.models import AcademicClass, Batch, Department, Student
from app.core.query_params import (
    escape_like,
    parse_array_param,
    parse_bool_param,
    parse_date_boundary,
    parse_int_list,
    parse_student_id,
    parse_uuid_list,
)

_GENDER_LOOKUP = {g.lower(): g for g in GENDER_VALUES}


class StudentFilterParams(BaseModel):
    """Raw (unparsed) filter values. A non-empty list means that level was requested."""

    faculty_ids: List[str] = Field(default_factory=list)
    department_ids: List[str] = Field(default_factory=list)
    class_ids: List[str] = Field(default_factory=list)
    batch_ids: List[str] = Field(default_factory=list)
    batch_years: List[str] = Field(default_factory=list)
    job_ids: List[str] = Field(default_factory=list)
    genders: List[str] = Field(default_factory=list)
    employment_status: str = EmploymentStatus.ALL.value
    search: str = ""
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    include_deleted: bool = False

    @property
    def has_hierarchy_filter(self) -> bool:
        return bool(self.faculty_ids or self.department_ids or self.class_ids)


def filter_params_from_mapping(data: Mapping[str, Any]) -> StudentFilterParams:
    """Build params from a JSON or form body using the camelCase wire names."""

    def values(key: str) -> List[str]:
        return parse_array_param(_as_strings(data.get(key)))

    return StudentFilterParams(
        faculty_ids=values("facultyIds"),
        department_ids=values("departmentIds"),
        class_ids=values("classIds"),
        batch_ids=values("batchIds"),
        batch_years=values("batchYears"),
        job_ids=values("jobIds"),
        genders=values("genders"),
        employment_status=str(data.get("employmentStatus") or EmploymentStatus.ALL.value).strip().lower(),
        search=str(data.get("search") or "").strip(),
        date_from=data.get("dateFrom") or None,
        date_to=data.get("dateTo") or None,
        include_deleted=parse_bool_param(data.get("includeDeleted"), False),
    )


def _as_strings(value):
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return str(value)


def student_filter_params(
    faculty_ids: Optional[List[str]] = Query(None, alias="facultyIds"),
    department_ids: Optional[List[str]] = Query(None, alias="departmentIds"),
    class_ids: Optional[List[str]] = Query(None, alias="classIds"),
    batch_ids: Optional[List[str]] = Query(None, alias="batchIds"),
    batch_years: Optional[List[str]] = Query(None, alias="batchYears"),
    job_ids: Optional[List[str]] = Query(None, alias="jobIds"),
    genders: Optional[List[str]] = Query(None, alias="genders"),
    employment_status: Optional[str] = Query(None, alias="employmentStatus"),
    search: Optional[str] = Query(None),
    date_from: Optional[str] = Query(None, alias="dateFrom"),
    date_to: Optional[str] = Query(None, alias="dateTo"),
    include_deleted: Optional[str] = Query(None, alias="includeDeleted"),
) -> StudentFilterParams:
    """FastAPI dependency: ?facultyIds=a&facultyIds=b and ?facultyIds=a,b are equivalent."""
    return filter_params_from_mapping(
        {
            "facultyIds": faculty_ids,
            "departmentIds": department_ids,
            "classIds": class_ids,
            "batchIds": batch_ids,
            "batchYears": batch_years,
            "jobIds": job_ids,
            "genders": genders,
            "employmentStatus": employment_status,
            "search": search,
            "dateFrom": date_from,
            "dateTo": date_to,
            "includeDeleted": include_deleted,
        }
    )


async def resolve_class_ids(db: AsyncSession, params: StudentFilterParams) -> Optional[List[UUID]]:
    """Classes matching the faculty/department/class cascade; None when no level was requested."""
    if not params.has_hierarchy_filter:
        return None
    stmt = select(AcademicClass.id)
    if params.faculty_ids or params.department_ids:
        dept_q = select(Department.id)
        if params.faculty_ids:
            dept_q = dept_q.where(Department.faculty_id.in_(parse_uuid_list(params.faculty_ids)))
        if params.department_ids:
            dept_q = dept_q.where(Department.id.in_(parse_uuid_list(params.department_ids)))
        stmt = stmt.where(AcademicClass.department_id.in_(dept_q))
    if params.class_ids:
        stmt = stmt.where(AcademicClass.id.in_(parse_uuid_list(params.class_ids)))
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def resolve_batch_ids(db: AsyncSession, params: StudentFilterParams) -> Optional[List[UUID]]:
    """Union of batches named by id and by year; None when neither was requested."""
    if not (params.batch_ids or params.batch_years):
        return None
    clauses = []
    if params.batch_ids:
        clauses.append(Batch.id.in_(parse_uuid_list(params.batch_ids)))
    if params.batch_years:
        clauses.append(Batch.year.in_(parse_int_list(params.batch_years, MIN_YEAR, MAX_YEAR)))
    result = await db.execute(select(Batch.id).where(or_(*clauses)))
    return list(result.scalars().all())


def _date_bounds(params: StudentFilterParams):
    start = parse_date_boundary(params.date_from)
    end = parse_date_boundary(params.date_to, end_of_day=True)
    if start is not None and end is not None and start > end:
        start = parse_date_boundary(params.date_to)
        end = parse_date_boundary(params.date_from, end_of_day=True)
    return start, end


def _search_condition(term: str):
    pattern = f"%{escape_like(term)}%"
    clauses = [
        Student.name.ilike(pattern, escape="\\"),
        Student.email.ilike(pattern, escape="\\"),
    ]
    student_id = parse_student_id(term)
    if student_id is not None:
        clauses.append(Student.student_id == student_id)
    return or_(*clauses)


async def build_student_conditions(db: AsyncSession, params: StudentFilterParams) -> list:
    conditions = []

    class_ids = await resolve_class_ids(db, params)
    if class_ids is not None:
        conditions.append(Student.class_id.in_(class_ids))

    batch_ids = await resolve_batch_ids(db, params)
    if batch_ids is not None:
        conditions.append(Student.batch_id.in_(batch_ids))

    if params.job_ids:
        conditions.append(Student.job_id.in_(parse_uuid_list(params.job_ids)))
    elif params.employment_status == EmploymentStatus.EMPLOYED.value:
        conditions.append(Student.job_id.is_not(None))
    elif params.employment_status == EmploymentStatus.UNEMPLOYED.value:
        conditions.append(Student.job_id.is_(None))

    genders = sorted({_GENDER_LOOKUP[g.lower()] for g in params.genders if g.lower() in _GENDER_LOOKUP})
    if genders:
        conditions.append(Student.gender.in_(genders))

    if params.search:
        conditions.append(_search_condition(params.search))

    start, end = _date_bounds(params)
    if start is not None:
        conditions.append(Student.created_at >= start)
    if end is not None:
        conditions.append(Student.created_at <= end)

    if not params.include_deleted:
        conditions.append(Student.is_deleted == False)  # noqa: E712

    return conditions
