from dataclasses import dataclass
from typing import Iterator, Union

from sqlalchemy.ext.asyncio import AsyncSession

from app.api.students.filters import StudentFilterParams
from app.api.students.service import fetch_filtered_students
from app.core.enums import ExportFormat
from app.core.exceptions import ValidationFailed
from app.core.logging_config import logger
from app.core.timeutil import utcnow
from app.core.uploads import XLSX_MIME

from .renderers import StudentPdfRenderer, build_xlsx, flatten_student, iter_chunks, iter_csv

_FORMAT_ALIASES = {"excel": ExportFormat.XLSX.value}
_MEDIA_TYPES = {
    ExportFormat.CSV: "text/csv; charset=utf-8",
    ExportFormat.XLSX: XLSX_MIME,
    ExportFormat.PDF: "application/pdf",
}


@dataclass
class ExportResult:
    filename: str
    media_type: str
    body: Iterator[Union[str, bytes]]


def parse_export_format(value: str) -> ExportFormat:
    raw = (value or ExportFormat.CSV.value).strip().lower()
    raw = _FORMAT_ALIASES.get(raw, raw)
    try:
        return ExportFormat(raw)
    except ValueError:
        raise ValidationFailed("Invalid format. Use csv, xlsx, or pdf.")


async def export_students(db: AsyncSession, params: StudentFilterParams, fmt: str) -> ExportResult:
    export_format = parse_export_format(fmt)
    students = await fetch_filtered_students(db, params)
    rows = [flatten_student(s) for s in students]
    now = utcnow()
    filename = f"students-{now.strftime('%Y-%m-%d')}.{export_format.value}"

    if export_format is ExportFormat.CSV:
        body = iter_csv(rows)
    elif export_format is ExportFormat.XLSX:
        body = iter_chunks(build_xlsx(rows, now))
    else:
        body = iter_chunks(StudentPdfRenderer(rows, now).render())

    logger.info("Exported %d students as %s", len(rows), export_format.value)
    return ExportResult(filename=filename, media_type=_MEDIA_TYPES[export_format], body=body)
