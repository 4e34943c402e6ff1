from app.core.models.faculty import Faculty
from app.core.models.department import Department
from app.core.models.class_model import AcademicClass
from app.core.models.batch import Batch
from app.core.models.job import Job
from app.core.models.student import Student

__all__ = [
    "AcademicClass",
    "Batch",
    "Department",
    "Faculty",
    "Job",
    "Student",
]
