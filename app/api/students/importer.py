"""Spreadsheet import of students into one class/batch, plus the downloadable template."""

import io
import zipfile
from typing import Any, Dict, List, Tuple
from uuid import UUID

from fastapi import status
from openpyxl import Workbook, load_workbook
from openpyxl.styles import Font
from openpyxl.utils.exceptions import InvalidFileException
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import is_duplicate_of
from app.core.exceptions import NotFoundError, ServiceError, ValidationFailed
from app.core.logging_config import logger
from app.core.models import AcademicClass, Batch, Department, Faculty, Job, Student
from app.core.query_params import parse_student_id, to_uuid

from .fields import as_text, is_valid_email, normalize_email, normalize_gender
from .schemas import ImportSummary, SkippedRow

TEMPLATE_FILENAME = "students-import-template.xlsx"
TEMPLATE_SHEET_NAME = "Students Import"
TEMPLATE_COLUMNS = (
    ("studentId", 14),
    ("name", 26),
    ("gender", 12),
    ("email", 32),
    ("phoneNumber", 18),
    ("jobName", 24),
    ("description", 42),
)
TEMPLATE_SAMPLE_ROWS = (
    (1001, "Ahmed Ali", "Male", "ahmed.ali@example.com", "+252611234567", "Software Engineer",
     "Batch import sample row 1"),
    (1002, "Amina Hassan", "Female", "amina.hassan@example.com", "+252611112233", "",
     "Leave jobName empty for unemployed"),
)
TEMPLATE_NOTES = (
    "Required fields:",
    "studentId (positive integer, unique)",
    "name",
    "Optional fields:",
    "gender (Male/Female, default Male)",
    "email (must be unique if provided)",
    "phoneNumber",
    "jobName (must match existing Job name; otherwise unemployed)",
    "description",
    "",
    "Class/Batch are selected in the import dialog and applied to every row in this file.",
)

REQUIRED_HEADERS = ("studentid", "name")

REASON_INVALID_ID = "Missing/invalid studentId"
REASON_DUPLICATE_ID = "Duplicate studentId"
REASON_MISSING_NAME = "Missing required name"
REASON_INVALID_GENDER = "Invalid gender"
REASON_INVALID_EMAIL = "Invalid email format"
REASON_DUPLICATE_EMAIL = "Duplicate email"


class ImportRejected(ServiceError):
    """Nothing importable; carries the per-row summary for the 400 body."""

    def __init__(self, summary: ImportSummary) -> None:
        super().__init__(summary.message, status.HTTP_400_BAD_REQUEST)
        self.summary = summary


def build_import_template() -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = TEMPLATE_SHEET_NAME
    ws.append([name for name, _ in TEMPLATE_COLUMNS])
    for row in TEMPLATE_SAMPLE_ROWS:
        ws.append(list(row))
    for idx, (_, width) in enumerate(TEMPLATE_COLUMNS, start=1):
        ws.column_dimensions[ws.cell(row=1, column=idx).column_letter].width = width
        ws.cell(row=1, column=idx).font = Font(bold=True)
    ws.freeze_panes = "A2"

    notes = wb.create_sheet("Notes")
    for line in TEMPLATE_NOTES:
        notes.append([line])
    notes.column_dimensions["A"].width = 110
    notes["A1"].font = Font(bold=True)
    notes["A4"].font = Font(bold=True)

    bio = io.BytesIO()
    wb.save(bio)
    return bio.getvalue()


def normalize_header(value: Any) -> str:
    """'Student ID', 'student_id' and 'student-id' all become 'studentid'."""
    text = as_text(value).lower()
    for ch in (" ", "\t", "_", "-"):
        text = text.replace(ch, "")
    return text


def read_sheet_rows(content: bytes) -> Tuple[Dict[str, int], List[Tuple[int, tuple]]]:
    """Header index map and (sheet row number, values) for every non-blank data row."""
    try:
        wb = load_workbook(filename=io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError, OSError) as e:
        raise ValidationFailed("Invalid Excel file. Please upload a valid .xlsx file") from e

    try:
        ws = wb.worksheets[0] if wb.worksheets else None
        if ws is None:
            raise ValidationFailed("Excel file is empty. Add at least one data row")
        rows_iter = ws.iter_rows(values_only=True)
        header_row = next(rows_iter, None) or ()
        headers: Dict[str, int] = {}
        for idx, cell in enumerate(header_row):
            key = normalize_header(cell)
            if key and key not in headers:
                headers[key] = idx

        rows: List[Tuple[int, tuple]] = []
        for row_num, row in enumerate(rows_iter, start=2):
            if not row or all(c is None or (isinstance(c, str) and not c.strip()) for c in row):
                continue
            rows.append((row_num, row))
    finally:
        wb.close()
    return headers, rows


def _cell(row: tuple, headers: Dict[str, int], key: str) -> str:
    idx = headers.get(key)
    if idx is None or idx >= len(row):
        return ""
    return as_text(row[idx])


async def _load_target(
    db: AsyncSession,
    faculty_id: Any,
    department_id: Any,
    class_id: Any,
    batch_id: Any,
) -> Tuple[AcademicClass, Batch]:
    ids = [to_uuid(v) for v in (faculty_id, department_id, class_id, batch_id)]
    if any(v is None for v in ids):
        raise ValidationFailed("Invalid faculty/department/class/batch selection")
    f_id, d_id, c_id, b_id = ids

    faculty = await db.get(Faculty, f_id)
    if not faculty:
        raise NotFoundError("Faculty not found")
    department = await db.get(Department, d_id)
    if not department:
        raise NotFoundError("Department not found")
    academic_class = await db.get(AcademicClass, c_id)
    if not academic_class:
        raise NotFoundError("Class not found")
    batch = await db.get(Batch, b_id)
    if not batch:
        raise NotFoundError("Batch not found")

    if department.faculty_id != faculty.id:
        raise ValidationFailed("Selected department does not belong to selected faculty")
    if academic_class.department_id != department.id:
        raise ValidationFailed("Selected class does not belong to selected department")
    return academic_class, batch


async def _existing_values(db: AsyncSession, column, values: set) -> set:
    if not values:
        return set()
    result = await db.execute(select(column).where(column.in_(list(values))))
    return set(result.scalars().all())


async def _insert_rows(db: AsyncSession, records: List[Tuple[int, Dict[str, Any]]]) -> List[SkippedRow]:
    """Insert all rows at once; if a concurrent writer wins a unique key, retry row by row."""
    try:
        db.add_all([Student(**data) for _, data in records])
        await db.commit()
        return []
    except IntegrityError:
        await db.rollback()
        logger.warning("Bulk student insert hit a duplicate key; retrying %d rows individually", len(records))

    failed: List[SkippedRow] = []
    for row_num, data in records:
        try:
            async with db.begin_nested():
                db.add(Student(**data))
        except IntegrityError as exc:
            reason = REASON_DUPLICATE_EMAIL if is_duplicate_of(exc, "email") else REASON_DUPLICATE_ID
            failed.append(SkippedRow(row=row_num, reason=reason))
    await db.commit()
    return failed


async def import_students(
    db: AsyncSession,
    content: bytes,
    faculty_id: Any,
    department_id: Any,
    class_id: Any,
    batch_id: Any,
) -> ImportSummary:
    """Validate every row, insert the valid ones into the selected class/batch and report the rest."""
    academic_class, batch = await _load_target(db, faculty_id, department_id, class_id, batch_id)
    headers, rows = read_sheet_rows(content)

    if not all(h in headers for h in REQUIRED_HEADERS):
        raise ValidationFailed('Template error: "studentId" and "name" columns are required')
    if not rows:
        raise ValidationFailed("Excel file is empty. Add at least one data row")

    jobs = (await db.execute(select(Job.id, Job.name))).all()
    job_by_name: Dict[str, UUID] = {name.strip().lower(): jid for jid, name in jobs}

    pending_ids = {sid for sid in (parse_student_id(_cell(r, headers, "studentid")) for _, r in rows) if sid}
    pending_emails = {e for e in (normalize_email(_cell(r, headers, "email")) for _, r in rows) if e}
    used_ids = await _existing_values(db, Student.student_id, pending_ids)
    used_emails = await _existing_values(db, Student.email, pending_emails)

    records: List[Tuple[int, Dict[str, Any]]] = []
    skipped: List[SkippedRow] = []
    for row_num, row in rows:
        student_id = parse_student_id(_cell(row, headers, "studentid"))
        if student_id is None:
            skipped.append(SkippedRow(row=row_num, reason=REASON_INVALID_ID))
            continue
        if student_id in used_ids:
            skipped.append(SkippedRow(row=row_num, reason=REASON_DUPLICATE_ID))
            continue
        used_ids.add(student_id)

        name = _cell(row, headers, "name")
        if not name:
            skipped.append(SkippedRow(row=row_num, reason=REASON_MISSING_NAME))
            continue

        gender = normalize_gender(_cell(row, headers, "gender"))
        if gender is None:
            skipped.append(SkippedRow(row=row_num, reason=REASON_INVALID_GENDER))
            continue

        email = normalize_email(_cell(row, headers, "email"))
        if email:
            if not is_valid_email(email):
                skipped.append(SkippedRow(row=row_num, reason=REASON_INVALID_EMAIL))
                continue
            if email in used_emails:
                skipped.append(SkippedRow(row=row_num, reason=REASON_DUPLICATE_EMAIL))
                continue
            used_emails.add(email)

        job_name = _cell(row, headers, "jobname").lower()
        records.append(
            (
                row_num,
                {
                    "student_id": student_id,
                    "name": name,
                    "gender": gender,
                    "email": email or None,
                    "phone_number": _cell(row, headers, "phonenumber"),
                    "class_id": academic_class.id,
                    "batch_id": batch.id,
                    "job_id": job_by_name.get(job_name) if job_name else None,
                    "description": _cell(row, headers, "description"),
                },
            )
        )

    if not records:
        raise ImportRejected(
            ImportSummary(
                message="No valid rows to import",
                total_rows=len(rows),
                imported=0,
                skipped=len(skipped),
                class_name=academic_class.name,
                batch_name=batch.name,
                skipped_rows=skipped,
            )
        )

    class_name, batch_name = academic_class.name, batch.name
    skipped.extend(await _insert_rows(db, records))
    skipped.sort(key=lambda s: s.row)
    imported = len(rows) - len(skipped)
    logger.info(
        "Imported %d students into class %s / batch %s (%d skipped)",
        imported,
        class_name,
        batch_name,
        len(skipped),
    )
    return ImportSummary(
        message=f"Imported {imported} students",
        total_rows=len(rows),
        imported=imported,
        skipped=len(skipped),
        class_name=class_name,
        batch_name=batch_name,
        skipped_rows=skipped,
    )
