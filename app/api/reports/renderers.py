"""Render flattened student rows as CSV, XLSX or PDF."""

import csv
import io
from datetime import datetime
from typing import Any, Dict, Iterable, Iterator, List, Tuple

from openpyxl import Workbook
from openpyxl.cell import WriteOnlyCell
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from reportlab.lib.pagesizes import A4
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from app.core.enums import UNEMPLOYED_LABEL
from app.core.models import Student

APP_TITLE = "Alumni Management System"
CHUNK_SIZE = 64 * 1024

# (row key, header label, xlsx column width)
EXPORT_COLUMNS: Tuple[Tuple[str, str, int], ...] = (
    ("studentId", "Student ID", 14),
    ("name", "Name", 24),
    ("gender", "Gender", 10),
    ("email", "Email", 28),
    ("phoneNumber", "Phone", 16),
    ("faculty", "Faculty", 18),
    ("department", "Department", 22),
    ("className", "Class", 16),
    ("batch", "Batch", 14),
    ("year", "Year", 8),
    ("job", "Job", 22),
    ("employmentStatus", "Employment Status", 18),
    ("createdAt", "Created At", 22),
)


def flatten_student(s: Student) -> Dict[str, Any]:
    """One flat export row; missing relations and values become ""."""
    cls = s.academic_class
    dept = cls.department if cls else None
    faculty = dept.faculty if dept else None
    return {
        "studentId": s.student_id if s.student_id is not None else "",
        "name": s.name or "",
        "gender": s.gender or "",
        "email": s.email or "",
        "phoneNumber": s.phone_number or "",
        "faculty": faculty.name if faculty else "",
        "department": dept.name if dept else "",
        "className": cls.name if cls else "",
        "batch": s.batch.name if s.batch else "",
        "year": s.batch.year if s.batch else "",
        "job": s.job.name if s.job else "",
        "employmentStatus": "Employed" if s.job_id else UNEMPLOYED_LABEL,
        "createdAt": s.created_at.isoformat() if s.created_at else "",
    }


def summarize(rows: List[Dict[str, Any]]) -> Tuple[int, int, int]:
    employed = sum(1 for r in rows if r["employmentStatus"] == "Employed")
    return len(rows), employed, len(rows) - employed


def iter_csv(rows: Iterable[Dict[str, Any]]) -> Iterator[str]:
    """Header line, then one CSV line per row."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)

    def flush() -> str:
        value = buffer.getvalue()
        buffer.seek(0)
        buffer.truncate(0)
        return value

    writer.writerow([label for _, label, _ in EXPORT_COLUMNS])
    yield flush()
    for row in rows:
        writer.writerow([row[key] for key, _, _ in EXPORT_COLUMNS])
        yield flush()


def iter_chunks(data: bytes, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
    for start in range(0, len(data), chunk_size):
        yield data[start:start + chunk_size]


def build_xlsx(rows: List[Dict[str, Any]], generated_at: datetime) -> bytes:
    """Sheet layout: generated-at row, totals row, blank row, bold header, data."""
    total, employed, unemployed = summarize(rows)
    wb = Workbook(write_only=True)
    ws = wb.create_sheet("Students")
    # Write-only sheets need column widths before the first row
    for idx, (_, _, width) in enumerate(EXPORT_COLUMNS, start=1):
        ws.column_dimensions[get_column_letter(idx)].width = width

    def bold(values: List[Any]) -> List[Any]:
        cells = []
        for value in values:
            cell = WriteOnlyCell(ws, value=value)
            cell.font = Font(bold=True)
            cells.append(cell)
        return cells

    totals = [""] * len(EXPORT_COLUMNS)
    totals[1] = f"Total: {total}"
    totals[11] = f"Employed: {employed} | Unemployed: {unemployed}"
    ws.append(bold(["", f"Report generated: {generated_at.isoformat()}"]))
    ws.append(bold(totals))
    ws.append([])
    ws.append(bold([label for _, label, _ in EXPORT_COLUMNS]))
    for row in rows:
        ws.append([row[key] for key, _, _ in EXPORT_COLUMNS])

    bio = io.BytesIO()
    wb.save(bio)
    return bio.getvalue()


class StudentPdfRenderer:
    """A4 text report: title block, then one line per student with manual pagination."""

    margin = 36
    line_height = 14
    font = "Helvetica"
    entry_font_size = 9

    def __init__(self, rows: List[Dict[str, Any]], generated_at: datetime) -> None:
        self.rows = rows
        self.generated_at = generated_at
        self.page_width, self.page_height = A4
        self.page_count = 0

    def _entry_line(self, r: Dict[str, Any]) -> str:
        return (
            f"{r['studentId'] or '-'} | {r['name']} | {r['gender']} | {r['batch']} ({r['year']}) | "
            f"{r['className']} | {r['job'] or UNEMPLOYED_LABEL}"
        )

    def _fit(self, text: str, size: float) -> str:
        max_width = self.page_width - 2 * self.margin
        if stringWidth(text, self.font, size) <= max_width:
            return text
        while text and stringWidth(text + "...", self.font, size) > max_width:
            text = text[:-1]
        return text + "..."

    def _new_page(self, pdf: canvas.Canvas) -> float:
        if self.page_count:
            pdf.showPage()
        self.page_count += 1
        return self.page_height - self.margin

    def render(self) -> bytes:
        total, employed, unemployed = summarize(self.rows)
        bio = io.BytesIO()
        pdf = canvas.Canvas(bio, pagesize=A4)
        pdf.setTitle("Students Report")
        self.page_count = 0
        y = self._new_page(pdf)

        header = (
            (APP_TITLE, 18, 24),
            ("Students Report", 12, 20),
            (f"Generated: {self.generated_at.isoformat()}", 10, self.line_height),
            (f"Total: {total} | Employed: {employed} | Unemployed: {unemployed}", 10, self.line_height * 2),
            ("Entries:", 10, self.line_height),
        )
        for text, size, advance in header:
            y -= size
            pdf.setFont(self.font, size)
            pdf.drawString(self.margin, y, text)
            y -= advance - size

        pdf.setFont(self.font, self.entry_font_size)
        for row in self.rows:
            if y - self.line_height < self.margin:
                y = self._new_page(pdf)
                pdf.setFont(self.font, self.entry_font_size)
            y -= self.line_height
            pdf.drawString(self.margin, y, self._fit(self._entry_line(row), self.entry_font_size))

        pdf.save()
        return bio.getvalue()
