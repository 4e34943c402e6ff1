from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.batches.schemas import MAX_YEAR, MIN_YEAR
from app.api.students.filters import StudentFilterParams, build_student_conditions
from app.core.enums import GENDER_VALUES, UNEMPLOYED_LABEL
from app.core.models import AcademicClass, Batch, Department, Faculty, Job, Student
from app.core.timeutil import utcnow

from .schemas import (
    BatchGenderRatio,
    ClassCount,
    DashboardCharts,
    DashboardMini,
    DashboardResponse,
    DashboardTotals,
    DepartmentCount,
    DepartmentStats,
    FacultyCount,
    FacultyStats,
    GenderCount,
    GenderEmployment,
    HubResponse,
    JobCount,
    JobGenderBreakdown,
    YearCount,
    YearEmployment,
    YearRate,
)
from .shaping import fill_year_series, percentage, top_n

DEFAULT_YEAR_SPAN = 5
_STAT_KEYS = ("total", "employed", "unemployed", "employment_rate")

_employed = func.sum(case((Student.job_id.is_not(None), 1), else_=0))
_unemployed = func.sum(case((Student.job_id.is_(None), 1), else_=0))


def resolve_year_window(start_year: Optional[int], end_year: Optional[int]) -> Tuple[int, int]:
    """Defaults to the last DEFAULT_YEAR_SPAN years up to now; reversed bounds are swapped."""
    end = end_year if end_year is not None else utcnow().year
    start = start_year if start_year is not None else end - DEFAULT_YEAR_SPAN
    start = min(max(start, MIN_YEAR), MAX_YEAR)
    end = min(max(end, MIN_YEAR), MAX_YEAR)
    if start > end:
        start, end = end, start
    return start, end


async def _count(db: AsyncSession, model) -> int:
    return await db.scalar(select(func.count()).select_from(model)) or 0


def _hierarchy_join(stmt, depth: str):
    stmt = stmt.join(AcademicClass, Student.class_id == AcademicClass.id)
    if depth in ("department", "faculty"):
        stmt = stmt.join(Department, AcademicClass.department_id == Department.id)
    if depth == "faculty":
        stmt = stmt.join(Faculty, Department.faculty_id == Faculty.id)
    return stmt


async def _per_year(db: AsyncSession, conditions: list) -> Dict[int, Dict[str, int]]:
    result = await db.execute(
        select(Batch.year, func.count(Student.id), _employed, _unemployed)
        .select_from(Student)
        .join(Batch, Student.batch_id == Batch.id)
        .where(*conditions)
        .group_by(Batch.year)
    )
    return {
        year: {"count": count, "employed": int(employed or 0), "unemployed": int(unemployed or 0)}
        for year, count, employed, unemployed in result.all()
    }


async def _gender_distribution(db: AsyncSession, conditions: list) -> List[GenderCount]:
    result = await db.execute(
        select(Student.gender, func.count(Student.id))
        .where(*conditions, Student.gender.in_(GENDER_VALUES))
        .group_by(Student.gender)
        .order_by(Student.gender)
    )
    return [GenderCount(gender=g, count=c) for g, c in result.all()]


async def _counts_by(db: AsyncSession, conditions: list, depth: str) -> List[Dict[str, Any]]:
    """Student counts grouped by faculty, department or class."""
    model = {"faculty": Faculty, "department": Department, "class": AcademicClass}[depth]
    stmt = _hierarchy_join(select(model.id, model.name, func.count(Student.id)).select_from(Student), depth)
    result = await db.execute(stmt.where(*conditions).group_by(model.id, model.name))
    return [{"id": i, "name": n, "count": c} for i, n, c in result.all()]


async def _stats_by(db: AsyncSession, conditions: list, depth: str) -> List[Dict[str, Any]]:
    """Total/employed/unemployed grouped by faculty or department."""
    model = Faculty if depth == "faculty" else Department
    stmt = _hierarchy_join(
        select(model.id, model.name, func.count(Student.id), _employed, _unemployed).select_from(Student),
        depth,
    )
    result = await db.execute(stmt.where(*conditions).group_by(model.id, model.name))
    rows = [
        {
            "id": i,
            "name": n,
            "total": total,
            "employed": int(employed or 0),
            "unemployed": int(unemployed or 0),
            "employment_rate": percentage(int(employed or 0), total),
        }
        for i, n, total, employed, unemployed in result.all()
    ]
    return top_n(rows, "total", "name", n=None)


async def get_dashboard(
    db: AsyncSession,
    params: StudentFilterParams,
    start_year: Optional[int] = None,
    end_year: Optional[int] = None,
) -> DashboardResponse:
    start, end = resolve_year_window(start_year, end_year)
    conditions = await build_student_conditions(db, params)

    total_students = await db.scalar(select(func.count()).select_from(Student).where(*conditions)) or 0
    total_employed = await db.scalar(
        select(func.count()).select_from(Student).where(*conditions, Student.job_id.is_not(None))
    ) or 0

    per_year = await _per_year(db, conditions)
    students_per_batch = fill_year_series(
        start, end, per_year, lambda year, row: YearCount(year=year, count=row["count"] if row else 0)
    )
    employed_vs_unemployed = fill_year_series(
        start,
        end,
        per_year,
        lambda year, row: YearEmployment(
            year=year,
            employed=row["employed"] if row else 0,
            unemployed=row["unemployed"] if row else 0,
        ),
    )
    employment_trend = [
        YearRate(year=r.year, employed_rate=percentage(r.employed, r.employed + r.unemployed))
        for r in employed_vs_unemployed
    ]

    faculties = top_n(await _counts_by(db, conditions, "faculty"), "count", "name", n=None)
    departments = top_n(await _counts_by(db, conditions, "department"), "count", "name", n=None)
    classes = top_n(await _counts_by(db, conditions, "class"), "count", "name", n=None)

    job_rows = await db.execute(
        select(Student.job_id, Job.name, func.count(Student.id))
        .select_from(Student)
        .outerjoin(Job, Student.job_id == Job.id)
        .where(*conditions)
        .group_by(Student.job_id, Job.name)
    )
    jobs = [
        {"id": job_id, "name": name or UNEMPLOYED_LABEL, "count": count}
        for job_id, name, count in job_rows.all()
    ]

    return DashboardResponse(
        start_year=start,
        end_year=end,
        totals=DashboardTotals(
            total_students=total_students,
            total_employed=total_employed,
            total_unemployed=max(total_students - total_employed, 0),
            employment_rate=percentage(total_employed, total_students),
            total_faculties=await _count(db, Faculty),
            total_departments=await _count(db, Department),
            total_batches=await _count(db, Batch),
            total_classes=await _count(db, AcademicClass),
        ),
        charts=DashboardCharts(
            students_per_batch=students_per_batch,
            gender_distribution=await _gender_distribution(db, conditions),
            employed_vs_unemployed_per_batch=employed_vs_unemployed,
            employment_trend=employment_trend,
        ),
        mini=DashboardMini(
            students_per_faculty=[FacultyCount(faculty_id=r["id"], faculty_name=r["name"], count=r["count"]) for r in faculties],
            students_per_department=[
                DepartmentCount(department_id=r["id"], department_name=r["name"], count=r["count"]) for r in departments
            ],
            class_sizes=[ClassCount(class_id=r["id"], class_name=r["name"], count=r["count"]) for r in classes],
            top_jobs=[JobCount(job_id=r["id"], job_name=r["name"], count=r["count"]) for r in top_n(jobs, "count", "name")],
        ),
    )


async def get_hub(db: AsyncSession, params: StudentFilterParams) -> HubResponse:
    conditions = await build_student_conditions(db, params)
    gendered = [*conditions, Student.gender.in_(GENDER_VALUES)]

    emp_rows = await db.execute(
        select(Student.gender, _employed, _unemployed)
        .where(*gendered)
        .group_by(Student.gender)
        .order_by(Student.gender)
    )
    employment_by_gender = [
        GenderEmployment(gender=g, employed=int(e or 0), unemployed=int(u or 0)) for g, e, u in emp_rows.all()
    ]

    batch_rows = await db.execute(
        select(Batch.year, Student.gender, func.count(Student.id))
        .select_from(Student)
        .join(Batch, Student.batch_id == Batch.id)
        .where(*gendered)
        .group_by(Batch.year, Student.gender)
    )
    by_year: Dict[int, Dict[str, int]] = {}
    for year, gender, count in batch_rows.all():
        by_year.setdefault(year, {g: 0 for g in GENDER_VALUES})[gender] = count
    batch_gender_ratio = [
        BatchGenderRatio(year=year, male=counts["Male"], female=counts["Female"])
        for year, counts in sorted(by_year.items())
    ]

    job_rows = await db.execute(
        select(Job.name, Student.gender, func.count(Student.id))
        .select_from(Student)
        .outerjoin(Job, Student.job_id == Job.id)
        .where(*gendered)
        .group_by(Job.name, Student.gender)
    )
    by_job: Dict[str, Dict[str, Any]] = {}
    for name, gender, count in job_rows.all():
        label = name or UNEMPLOYED_LABEL
        item = by_job.setdefault(label, {"name": label, "Male": 0, "Female": 0, "total": 0})
        item[gender] += count
        item["total"] += count
    jobs_by_gender = [
        JobGenderBreakdown(job_name=item["name"], male=item["Male"], female=item["Female"], total=item["total"])
        for item in top_n(list(by_job.values()), "total", "name")
    ]

    faculty_stats = [
        FacultyStats(faculty_id=r["id"], faculty_name=r["name"], **{k: r[k] for k in _STAT_KEYS})
        for r in await _stats_by(db, conditions, "faculty")
    ]
    department_stats = [
        DepartmentStats(department_id=r["id"], department_name=r["name"], **{k: r[k] for k in _STAT_KEYS})
        for r in await _stats_by(db, conditions, "department")
    ]

    return HubResponse(
        gender_distribution=await _gender_distribution(db, conditions),
        employment_by_gender=employment_by_gender,
        batch_gender_ratio=batch_gender_ratio,
        jobs_by_gender=jobs_by_gender,
        faculty_stats=faculty_stats,
        department_stats=department_stats,
    )

