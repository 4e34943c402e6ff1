from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from httpx import AsyncClient

from app.api.students.filters import filter_params_from_mapping


async def _ids(client: AsyncClient, headers: dict, **params) -> list:
    response = await client.get("/api/students", params=params, headers=headers)
    assert response.status_code == 200
    return sorted(s["studentId"] for s in response.json()["items"])


@pytest.fixture()
async def population(catalog: SimpleNamespace, make_student) -> SimpleNamespace:
    """Five alumni spread across classes, batches, jobs, genders and creation dates."""
    await make_student(
        1001, "Ahmed Ali", email="ahmed@example.com", job_id=catalog.engineer.id,
        created_at=datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc),
    )
    await make_student(
        1002, "Amina Hassan", gender="Female", class_id=catalog.ce2.id, batch_id=catalog.batch_2023.id,
        email="amina@example.com", job_id=catalog.teacher.id,
        created_at=datetime(2024, 3, 2, 23, 30, tzinfo=timezone.utc),
    )
    await make_student(
        1003, "Omar 100% Farah", class_id=catalog.bio1.id, batch_id=catalog.batch_2023.id,
        created_at=datetime(2024, 3, 5, 8, 0, tzinfo=timezone.utc),
    )
    await make_student(
        1004, "Hodan Nur", gender="Female", class_id=catalog.bio1.id,
        job_id=catalog.teacher.id, created_at=datetime(2024, 4, 1, tzinfo=timezone.utc),
    )
    await make_student(1005, "Deleted Person", is_deleted=True)
    return catalog


@pytest.mark.asyncio
async def test_no_filters_excludes_deleted(client: AsyncClient, auth_headers: dict, population) -> None:
    assert await _ids(client, auth_headers) == [1001, 1002, 1003, 1004]


@pytest.mark.asyncio
async def test_hierarchy_cascade(client: AsyncClient, auth_headers: dict, population) -> None:
    c = population
    assert await _ids(client, auth_headers, facultyIds=str(c.science.id)) == [1003, 1004]
    assert await _ids(client, auth_headers, departmentIds=str(c.comp_eng.id)) == [1001, 1002]
    assert await _ids(client, auth_headers, classIds=f"{c.ce2.id},{c.bio1.id}") == [1002, 1003, 1004]
    # Levels intersect: a class outside the selected faculty matches nothing
    assert await _ids(client, auth_headers, facultyIds=str(c.engineering.id), classIds=str(c.bio1.id)) == []


@pytest.mark.asyncio
async def test_malformed_ids_match_nothing(client: AsyncClient, auth_headers: dict, population) -> None:
    assert await _ids(client, auth_headers, facultyIds="not-a-uuid") == []
    assert await _ids(client, auth_headers, batchIds="junk") == []
    assert await _ids(client, auth_headers, jobIds="junk") == []


@pytest.mark.asyncio
async def test_repeated_and_comma_joined_params(client: AsyncClient, auth_headers: dict, population) -> None:
    c = population
    response = await client.get(
        "/api/students",
        params=[("classIds", str(c.ce1.id)), ("classIds", f"{c.ce2.id}, ")],
        headers=auth_headers,
    )
    assert sorted(s["studentId"] for s in response.json()["items"]) == [1001, 1002]


@pytest.mark.asyncio
async def test_batch_ids_and_years_are_unioned(client: AsyncClient, auth_headers: dict, population) -> None:
    c = population
    assert await _ids(client, auth_headers, batchYears="2023") == [1002, 1003]
    assert await _ids(
        client, auth_headers, batchIds=str(c.batch_2022.id), batchYears="2023"
    ) == [1001, 1002, 1003, 1004]


@pytest.mark.asyncio
async def test_employment_status(client: AsyncClient, auth_headers: dict, population) -> None:
    assert await _ids(client, auth_headers, employmentStatus="employed") == [1001, 1002, 1004]
    assert await _ids(client, auth_headers, employmentStatus="UNEMPLOYED") == [1003]
    assert await _ids(client, auth_headers, employmentStatus="whatever") == [1001, 1002, 1003, 1004]


@pytest.mark.asyncio
async def test_job_ids_take_precedence_over_status(client: AsyncClient, auth_headers: dict, population) -> None:
    assert await _ids(
        client, auth_headers, jobIds=str(population.teacher.id), employmentStatus="unemployed"
    ) == [1002, 1004]


@pytest.mark.asyncio
async def test_gender_filter(client: AsyncClient, auth_headers: dict, population) -> None:
    assert await _ids(client, auth_headers, genders="female") == [1002, 1004]
    assert await _ids(client, auth_headers, genders="MALE,female") == [1001, 1002, 1003, 1004]
    # Unknown values are ignored rather than matching nothing
    assert await _ids(client, auth_headers, genders="other") == [1001, 1002, 1003, 1004]


@pytest.mark.asyncio
async def test_search(client: AsyncClient, auth_headers: dict, population) -> None:
    assert await _ids(client, auth_headers, search="amina") == [1002]
    assert await _ids(client, auth_headers, search="EXAMPLE.com") == [1001, 1002]
    assert await _ids(client, auth_headers, search="1003") == [1003]
    # LIKE wildcards are matched literally
    assert await _ids(client, auth_headers, search="100%") == [1003]
    assert await _ids(client, auth_headers, search="_") == []


@pytest.mark.asyncio
async def test_date_range_inclusive_and_swapped(client: AsyncClient, auth_headers: dict, population) -> None:
    assert await _ids(client, auth_headers, dateFrom="2024-03-01", dateTo="2024-03-02") == [1001, 1002]
    assert await _ids(client, auth_headers, dateFrom="2024-03-02", dateTo="2024-03-01") == [1001, 1002]
    assert await _ids(client, auth_headers, dateFrom="2024-03-05") == [1003, 1004]
    assert await _ids(client, auth_headers, dateTo="2024-03-01") == [1001]
    assert await _ids(client, auth_headers, dateFrom="garbage") == [1001, 1002, 1003, 1004]


@pytest.mark.asyncio
async def test_include_deleted(client: AsyncClient, auth_headers: dict, population) -> None:
    assert await _ids(client, auth_headers, includeDeleted="true") == [1001, 1002, 1003, 1004, 1005]


def test_filter_params_from_json_body() -> None:
    params = filter_params_from_mapping(
        {
            "facultyIds": ["a", "b,c"],
            "classIds": "d",
            "batchYears": [2022, 2023],
            "employmentStatus": " Employed ",
            "search": "  ali ",
            "includeDeleted": "yes",
        }
    )
    assert params.faculty_ids == ["a", "b", "c"]
    assert params.class_ids == ["d"]
    assert params.batch_years == ["2022", "2023"]
    assert params.employment_status == "employed"
    assert params.search == "ali"
    assert params.include_deleted is True
    assert params.has_hierarchy_filter


def test_filter_params_defaults() -> None:
    params = filter_params_from_mapping({})
    assert params.faculty_ids == []
    assert params.employment_status == "all"
    assert params.include_deleted is False
    assert not params.has_hierarchy_filter


@pytest.mark.asyncio
async def test_filter_order_does_not_matter(client: AsyncClient, auth_headers: dict, population) -> None:
    c = population
    forward = [
        ("facultyIds", str(c.engineering.id)),
        ("genders", "Female"),
        ("batchYears", "2023"),
        ("employmentStatus", "employed"),
    ]
    forward_resp = await client.get("/api/students", params=forward, headers=auth_headers)
    reverse_resp = await client.get("/api/students", params=list(reversed(forward)), headers=auth_headers)
    forward_ids = [s["studentId"] for s in forward_resp.json()["items"]]
    assert forward_ids == [1002]
    assert [s["studentId"] for s in reverse_resp.json()["items"]] == forward_ids


@pytest.mark.asyncio
async def test_digit_search_unions_text_and_exact_id(
    client: AsyncClient, auth_headers: dict, population, make_student
) -> None:
    await make_student(7, "Agent Smith")
    await make_student(8, "Room 7 Resident")
    await make_student(77, "Double Seven")
    assert await _ids(client, auth_headers, search="7") == [7, 8]


@pytest.mark.asyncio
async def test_out_of_range_numbers_match_nothing(client: AsyncClient, auth_headers: dict, population) -> None:
    assert await _ids(client, auth_headers, search="3000000000") == []
    assert await _ids(client, auth_headers, search="9223372036854775808") == []
    assert await _ids(client, auth_headers, batchYears="99999999999") == []
    # In-range years survive alongside dropped ones
    assert await _ids(client, auth_headers, batchYears="99999999999,2023") == [1002, 1003]
