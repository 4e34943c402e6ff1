import csv
import io
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from httpx import AsyncClient
from openpyxl import load_workbook

from app.api.reports.renderers import EXPORT_COLUMNS, StudentPdfRenderer, flatten_student, iter_csv
from app.core.models import AcademicClass, Batch, Department, Faculty, Job, Student
from app.core.timeutil import utcnow

GENERATED_AT = datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


@pytest.fixture()
async def exported(catalog: SimpleNamespace, make_student) -> SimpleNamespace:
    await make_student(1001, "Ahmed Ali", job_id=catalog.engineer.id, email="ahmed@example.com")
    await make_student(1002, "Amina, Hassan", gender="Female", class_id=catalog.bio1.id,
                       batch_id=catalog.batch_2023.id)
    await make_student(1003, "Gone", is_deleted=True)
    return catalog


def _row(student_id: int, **overrides) -> dict:
    row = {key: "" for key, _, _ in EXPORT_COLUMNS}
    row.update(studentId=student_id, name=f"Student {student_id}", gender="Male",
               batch="Batch 2022", year=2022, className="CE-1", employmentStatus="Unemployed")
    row.update(overrides)
    return row


def test_flatten_student_walks_the_hierarchy() -> None:
    faculty = Faculty(name="Engineering")
    department = Department(name="Computer Engineering", faculty=faculty)
    student = Student(
        student_id=7,
        name="Ahmed Ali",
        gender="Male",
        phone_number="+252",
        academic_class=AcademicClass(name="CE-1", department=department),
        batch=Batch(name="Batch 2022", year=2022),
        job=Job(name="Teacher"),
        job_id=None,
    )
    row = flatten_student(student)
    assert row["faculty"] == "Engineering"
    assert row["department"] == "Computer Engineering"
    assert row["className"] == "CE-1"
    assert row["year"] == 2022
    assert row["job"] == "Teacher"
    assert row["email"] == ""
    assert row["createdAt"] == ""


def test_flatten_student_without_relations() -> None:
    row = flatten_student(Student(student_id=8, name="Orphan", gender="Female"))
    assert row["faculty"] == ""
    assert row["batch"] == ""
    assert row["employmentStatus"] == "Unemployed"


def test_iter_csv_yields_header_then_rows() -> None:
    chunks = list(iter_csv([_row(1), _row(2, name='Quote "Me", Please')]))
    assert len(chunks) == 3
    parsed = list(csv.reader(io.StringIO("".join(chunks))))
    assert parsed[0] == [label for _, label, _ in EXPORT_COLUMNS]
    assert parsed[2][1] == 'Quote "Me", Please'


def test_pdf_paginates_long_reports() -> None:
    rows = [_row(i, name="x" * (200 if i == 5 else 10)) for i in range(1, 121)]
    renderer = StudentPdfRenderer(rows, GENERATED_AT)
    content = renderer.render()
    assert content.startswith(b"%PDF")
    assert renderer.page_count >= 2


def test_pdf_single_page_when_empty() -> None:
    renderer = StudentPdfRenderer([], GENERATED_AT)
    assert renderer.render().startswith(b"%PDF")
    assert renderer.page_count == 1


@pytest.mark.asyncio
async def test_export_csv(client: AsyncClient, auth_headers: dict, exported) -> None:
    response = await client.get("/api/reports/students/export", params={"format": "csv"}, headers=auth_headers)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    today = utcnow().strftime("%Y-%m-%d")
    assert f'filename="students-{today}.csv"' in response.headers["content-disposition"]

    rows = list(csv.DictReader(io.StringIO(response.text)))
    assert len(rows) == 2
    by_id = {r["Student ID"]: r for r in rows}
    assert by_id["1001"]["Job"] == "Software Engineer"
    assert by_id["1001"]["Employment Status"] == "Employed"
    assert by_id["1001"]["Faculty"] == "Engineering"
    assert by_id["1002"]["Name"] == "Amina, Hassan"
    assert by_id["1002"]["Employment Status"] == "Unemployed"
    assert by_id["1002"]["Year"] == "2023"


@pytest.mark.asyncio
async def test_export_honours_filters(client: AsyncClient, auth_headers: dict, exported) -> None:
    response = await client.get(
        "/api/reports/students/export",
        params={"format": "csv", "employmentStatus": "unemployed"},
        headers=auth_headers,
    )
    rows = list(csv.DictReader(io.StringIO(response.text)))
    assert [r["Student ID"] for r in rows] == ["1002"]


@pytest.mark.asyncio
async def test_export_xlsx(client: AsyncClient, auth_headers: dict, exported) -> None:
    response = await client.get("/api/reports/students/export", params={"format": "excel"}, headers=auth_headers)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )
    assert ".xlsx" in response.headers["content-disposition"]

    ws = load_workbook(io.BytesIO(response.content)).active
    assert ws["B1"].value.startswith("Report generated:")
    assert ws["B2"].value == "Total: 2"
    assert ws["L2"].value == "Employed: 1 | Unemployed: 1"
    assert [c.value for c in ws[4]][:2] == ["Student ID", "Name"]
    assert ws.max_row == 6
    assert ws["A4"].font.bold


@pytest.mark.asyncio
async def test_export_pdf(client: AsyncClient, auth_headers: dict, exported) -> None:
    response = await client.get("/api/reports/students/export", params={"format": "PDF"}, headers=auth_headers)
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content.startswith(b"%PDF")


@pytest.mark.asyncio
async def test_export_invalid_format(client: AsyncClient, auth_headers: dict) -> None:
    response = await client.get("/api/reports/students/export", params={"format": "docx"}, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid format. Use csv, xlsx, or pdf."


@pytest.mark.asyncio
async def test_export_served_at_collection_path(client: AsyncClient, auth_headers: dict, exported) -> None:
    response = await client.get("/api/reports/students", params={"format": "csv"}, headers=auth_headers)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert len(list(csv.DictReader(io.StringIO(response.text)))) == 2


@pytest.mark.asyncio
async def test_export_requires_auth(client: AsyncClient) -> None:
    response = await client.get("/api/reports/students")
    assert response.status_code == 401
