from enum import Enum


class Gender(str, Enum):
    MALE = "Male"
    FEMALE = "Female"


class EmploymentStatus(str, Enum):
    ALL = "all"
    EMPLOYED = "employed"
    UNEMPLOYED = "unemployed"


class ExportFormat(str, Enum):
    CSV = "csv"
    XLSX = "xlsx"
    PDF = "pdf"


GENDER_VALUES = tuple(g.value for g in Gender)
UNEMPLOYED_LABEL = "Unemployed"
