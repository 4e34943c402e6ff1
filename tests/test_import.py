import io
from types import SimpleNamespace
from typing import Iterable, Optional, Sequence

import pytest
from httpx import AsyncClient
from openpyxl import Workbook, load_workbook
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.core.models import Student
from app.core.uploads import XLSX_MIME

HEADERS = ("studentId", "name", "gender", "email", "phoneNumber", "jobName", "description")


def _workbook(rows: Iterable[Sequence], headers: Optional[Sequence[str]] = HEADERS) -> bytes:
    wb = Workbook()
    ws = wb.active
    if headers:
        ws.append(list(headers))
    for row in rows:
        ws.append(list(row))
    bio = io.BytesIO()
    wb.save(bio)
    return bio.getvalue()


def _target(c: SimpleNamespace, **overrides) -> dict:
    data = {
        "facultyId": str(c.engineering.id),
        "departmentId": str(c.comp_eng.id),
        "classId": str(c.ce1.id),
        "batchId": str(c.batch_2022.id),
    }
    data.update(overrides)
    return data


async def _upload(client: AsyncClient, headers: dict, content: bytes, form: dict):
    return await client.post(
        "/api/students/import",
        data=form,
        files={"file": ("students.xlsx", content, XLSX_MIME)},
        headers=headers,
    )


@pytest.mark.asyncio
async def test_download_template(client: AsyncClient, auth_headers: dict) -> None:
    response = await client.get("/api/students/import-template", headers=auth_headers)
    assert response.status_code == 200
    assert response.headers["content-type"] == XLSX_MIME
    assert "students-import-template.xlsx" in response.headers["content-disposition"]

    wb = load_workbook(io.BytesIO(response.content))
    assert wb.sheetnames == ["Students Import", "Notes"]
    header = [cell.value for cell in wb["Students Import"][1]]
    assert header[:2] == ["studentId", "name"]
    assert wb["Students Import"].max_row == 3


@pytest.mark.asyncio
async def test_duplicate_against_existing_student(
    client: AsyncClient, auth_headers: dict, catalog: SimpleNamespace, make_student
) -> None:
    await make_student(1002)
    content = _workbook([
        (1001, "First"),
        (1002, "Second"),
        (1003, "Third"),
    ])
    response = await _upload(client, auth_headers, content, _target(catalog))
    assert response.status_code == 201
    data = response.json()
    assert data["imported"] == 2
    assert data["totalRows"] == 3
    assert data["skipped"] == 1
    # Header is sheet row 1, so the second data row is row 3
    assert data["skippedRows"] == [{"row": 3, "reason": "Duplicate studentId"}]
    assert data["className"] == "CE-1"
    assert data["batchName"] == "Batch 2022"
    assert data["message"] == "Imported 2 students"


@pytest.mark.asyncio
async def test_duplicate_within_file(
    client: AsyncClient, auth_headers: dict, catalog: SimpleNamespace, session_maker: async_sessionmaker
) -> None:
    content = _workbook([
        (1001, "First"),
        (1001, "Again"),
        (1003, "Third"),
    ])
    response = await _upload(client, auth_headers, content, _target(catalog))
    assert response.status_code == 201
    assert response.json()["imported"] == 2
    assert response.json()["skippedRows"] == [{"row": 3, "reason": "Duplicate studentId"}]

    async with session_maker() as session:
        rows = (await session.execute(select(Student).order_by(Student.student_id))).scalars().all()
    assert [(s.student_id, s.name) for s in rows] == [(1001, "First"), (1003, "Third")]
    assert {s.class_id for s in rows} == {catalog.ce1.id}
    assert {s.batch_id for s in rows} == {catalog.batch_2022.id}


@pytest.mark.asyncio
async def test_row_reasons_and_field_normalisation(
    client: AsyncClient, auth_headers: dict, catalog: SimpleNamespace, session_maker: async_sessionmaker
) -> None:
    content = _workbook(
        [
            (1001, "Ahmed Ali", "male", "Ahmed@Example.com", "+252611", "software ENGINEER", "ok"),
            (12.5, "Bad Id", "", "", "", "", ""),
            (1003, "", "", "", "", "", ""),
            (1004, "Odd Gender", "robot", "", "", "", ""),
            (1005, "Bad Mail", "Female", "nope", "", "", ""),
            (1006, "Same Mail", "Female", "ahmed@example.com", "", "", ""),
            (None, None, None, None, None, None, None),
            (1007, "No Job Match", "", "", "", "Astronaut", ""),
        ],
        headers=("Student ID", "NAME", "gender", "email", "phone_number", "Job-Name", "description"),
    )
    response = await _upload(client, auth_headers, content, _target(catalog))
    assert response.status_code == 201
    data = response.json()
    assert data["totalRows"] == 7
    assert data["imported"] == 2
    assert data["skippedRows"] == [
        {"row": 3, "reason": "Missing/invalid studentId"},
        {"row": 4, "reason": "Missing required name"},
        {"row": 5, "reason": "Invalid gender"},
        {"row": 6, "reason": "Invalid email format"},
        {"row": 7, "reason": "Duplicate email"},
    ]

    async with session_maker() as session:
        rows = (await session.execute(select(Student).order_by(Student.student_id))).scalars().all()
    ahmed, no_job = rows
    assert ahmed.gender == "Male"
    assert ahmed.email == "ahmed@example.com"
    assert ahmed.phone_number == "+252611"
    assert ahmed.job_id == catalog.engineer.id
    assert no_job.student_id == 1007
    assert no_job.job_id is None


@pytest.mark.asyncio
async def test_nothing_importable_returns_summary(
    client: AsyncClient, auth_headers: dict, catalog: SimpleNamespace
) -> None:
    content = _workbook([("x", "Bad"), (1002, "")])
    response = await _upload(client, auth_headers, content, _target(catalog))
    assert response.status_code == 400
    data = response.json()
    assert data["message"] == "No valid rows to import"
    assert data["imported"] == 0
    assert data["skipped"] == 2
    assert [r["row"] for r in data["skippedRows"]] == [2, 3]


@pytest.mark.asyncio
async def test_missing_required_columns(
    client: AsyncClient, auth_headers: dict, catalog: SimpleNamespace
) -> None:
    content = _workbook([("Ahmed", "Male")], headers=("name", "gender"))
    response = await _upload(client, auth_headers, content, _target(catalog))
    assert response.status_code == 400
    assert response.json()["detail"] == 'Template error: "studentId" and "name" columns are required'


@pytest.mark.asyncio
async def test_sheet_without_data_rows(
    client: AsyncClient, auth_headers: dict, catalog: SimpleNamespace
) -> None:
    response = await _upload(client, auth_headers, _workbook([]), _target(catalog))
    assert response.status_code == 400
    assert response.json()["detail"] == "Excel file is empty. Add at least one data row"


@pytest.mark.asyncio
async def test_not_an_excel_file(client: AsyncClient, auth_headers: dict, catalog: SimpleNamespace) -> None:
    response = await _upload(client, auth_headers, b"definitely not a zip", _target(catalog))
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid Excel file. Please upload a valid .xlsx file"


@pytest.mark.asyncio
async def test_file_is_required(client: AsyncClient, auth_headers: dict, catalog: SimpleNamespace) -> None:
    response = await client.post("/api/students/import", data=_target(catalog), headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Import file is required"


@pytest.mark.asyncio
async def test_wrong_extension_rejected(client: AsyncClient, auth_headers: dict, catalog: SimpleNamespace) -> None:
    response = await client.post(
        "/api/students/import",
        data=_target(catalog),
        files={"file": ("students.csv", b"studentId,name", "text/csv")},
        headers=auth_headers,
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Only Excel .xlsx files are allowed"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "filename,content_type",
    [
        ("data.csv", "application/octet-stream"),
        ("data.csv", XLSX_MIME),
        ("students.xlsx", "text/html"),
    ],
)
async def test_extension_and_mime_both_required(
    client: AsyncClient, auth_headers: dict, catalog: SimpleNamespace, filename: str, content_type: str
) -> None:
    response = await client.post(
        "/api/students/import",
        data=_target(catalog),
        files={"file": (filename, _workbook([(1001, "First")]), content_type)},
        headers=auth_headers,
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Only Excel .xlsx files are allowed"


@pytest.mark.asyncio
async def test_hierarchy_must_be_consistent(
    client: AsyncClient, auth_headers: dict, catalog: SimpleNamespace
) -> None:
    content = _workbook([(1001, "First")])

    wrong_class = await _upload(client, auth_headers, content, _target(catalog, classId=str(catalog.bio1.id)))
    assert wrong_class.status_code == 400
    assert wrong_class.json()["detail"] == "Selected class does not belong to selected department"

    wrong_dept = await _upload(
        client, auth_headers, content, _target(catalog, facultyId=str(catalog.science.id))
    )
    assert wrong_dept.status_code == 400
    assert wrong_dept.json()["detail"] == "Selected department does not belong to selected faculty"

    missing = await _upload(client, auth_headers, content, _target(catalog, batchId=""))
    assert missing.status_code == 400
