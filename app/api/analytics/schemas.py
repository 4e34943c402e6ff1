from typing import List, Optional
from uuid import UUID

from pydantic import Field

from app.core.schemas import APIModel


class DashboardTotals(APIModel):
    total_students: int
    total_employed: int
    total_unemployed: int
    employment_rate: float
    total_faculties: int
    total_departments: int
    total_batches: int
    total_classes: int


class YearCount(APIModel):
    year: int
    count: int


class YearEmployment(APIModel):
    year: int
    employed: int
    unemployed: int


class YearRate(APIModel):
    year: int
    employed_rate: float


class GenderCount(APIModel):
    gender: str
    count: int


class DashboardCharts(APIModel):
    students_per_batch: List[YearCount]
    gender_distribution: List[GenderCount]
    employed_vs_unemployed_per_batch: List[YearEmployment]
    employment_trend: List[YearRate]


class FacultyCount(APIModel):
    faculty_id: UUID
    faculty_name: str
    count: int


class DepartmentCount(APIModel):
    department_id: UUID
    department_name: str
    count: int


class ClassCount(APIModel):
    class_id: UUID
    class_name: str
    count: int


class JobCount(APIModel):
    job_id: Optional[UUID] = None
    job_name: str
    count: int


class DashboardMini(APIModel):
    students_per_faculty: List[FacultyCount]
    students_per_department: List[DepartmentCount]
    class_sizes: List[ClassCount]
    top_jobs: List[JobCount]


class DashboardResponse(APIModel):
    start_year: int
    end_year: int
    totals: DashboardTotals
    charts: DashboardCharts
    mini: DashboardMini


class GenderEmployment(APIModel):
    gender: str
    employed: int
    unemployed: int


class BatchGenderRatio(APIModel):
    year: int
    male: int = Field(0, alias="Male")
    female: int = Field(0, alias="Female")


class JobGenderBreakdown(APIModel):
    job_name: str
    male: int = Field(0, alias="Male")
    female: int = Field(0, alias="Female")
    total: int


class FacultyStats(APIModel):
    faculty_id: UUID
    faculty_name: str
    total: int
    employed: int
    unemployed: int
    employment_rate: float


class DepartmentStats(APIModel):
    department_id: UUID
    department_name: str
    total: int
    employed: int
    unemployed: int
    employment_rate: float


class HubResponse(APIModel):
    gender_distribution: List[GenderCount]
    employment_by_gender: List[GenderEmployment]
    batch_gender_ratio: List[BatchGenderRatio]
    jobs_by_gender: List[JobGenderBreakdown]
    faculty_stats: List[FacultyStats]
    department_stats: List[DepartmentStats]
