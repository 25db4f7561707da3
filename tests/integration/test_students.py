"""Integration tests: Students endpoints."""

from datetime import datetime

import pytest
from httpx import AsyncClient


YEAR = datetime.now().year


async def create_student(client: AsyncClient, api_base: str, **overrides) -> dict:
    payload = {"name": "Ana Souza", "shift": "M"}
    payload.update(overrides)
    resp = await client.post(f"{api_base}/students", json=payload)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


@pytest.mark.asyncio
async def test_create_student_issues_enrollment(async_client: AsyncClient, api_base: str):
    first = await create_student(async_client, api_base, shift="N")
    second = await create_student(async_client, api_base, name="Bruno Lima", shift="N")

    assert first["enrollment"] == f"{YEAR}N0001"
    assert second["enrollment"] == f"{YEAR}N0002"
    assert first["shift"] == "N"
    assert first["current_year"] == 1


@pytest.mark.asyncio
async def test_shift_is_case_insensitive(async_client: AsyncClient, api_base: str):
    student = await create_student(async_client, api_base, shift=" t ")
    assert student["enrollment"] == f"{YEAR}T0001"
    assert student["shift"] == "T"


@pytest.mark.asyncio
async def test_shifts_have_separate_sequences(async_client: AsyncClient, api_base: str):
    await create_student(async_client, api_base, shift="M")
    await create_student(async_client, api_base, shift="M")
    night = await create_student(async_client, api_base, shift="N")
    morning = await create_student(async_client, api_base, shift="M")

    assert night["enrollment"] == f"{YEAR}N0001"
    assert morning["enrollment"] == f"{YEAR}M0003"


@pytest.mark.asyncio
async def test_create_student_invalid_shift(async_client: AsyncClient, api_base: str):
    resp = await async_client.post(f"{api_base}/students", json={"name": "Ana Souza", "shift": "X"})
    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["error"]["code"] == "INVALID_SHIFT"

    resp = await async_client.get(f"{api_base}/students")
    assert resp.json()["meta"]["total"] == 0


@pytest.mark.asyncio
async def test_create_student_with_subjects(async_client: AsyncClient, api_base: str, subject: dict):
    student = await create_student(async_client, api_base, subject_ids=[subject["id"], subject["id"]])
    assert [s["id"] for s in student["subjects"]] == [subject["id"]]


@pytest.mark.asyncio
async def test_create_student_unknown_subject(async_client: AsyncClient, api_base: str):
    resp = await async_client.post(
        f"{api_base}/students",
        json={"name": "Ana Souza", "shift": "M", "subject_ids": ["NOPE999"]},
    )
    assert resp.status_code == 404

    # The failed request must not have consumed a sequence number
    student = await create_student(async_client, api_base)
    assert student["enrollment"] == f"{YEAR}M0001"


@pytest.mark.asyncio
async def test_client_cannot_choose_enrollment(async_client: AsyncClient, api_base: str):
    student = await create_student(async_client, api_base, enrollment="1999M4242")
    assert student["enrollment"] == f"{YEAR}M0001"


@pytest.mark.asyncio
async def test_get_student(async_client: AsyncClient, api_base: str):
    student = await create_student(async_client, api_base)
    resp = await async_client.get(f"{api_base}/students/{student['id']}")
    assert resp.status_code == 200
    assert resp.json()["data"]["enrollment"] == student["enrollment"]


@pytest.mark.asyncio
async def test_get_student_not_found(async_client: AsyncClient, api_base: str):
    resp = await async_client.get(f"{api_base}/students/00000000-0000-0000-0000-000000000000")
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "RESOURCE_NOT_FOUND"


@pytest.mark.asyncio
async def test_list_students_filters(async_client: AsyncClient, api_base: str):
    await create_student(async_client, api_base, shift="M", current_year=1)
    await create_student(async_client, api_base, shift="N", current_year=2)
    await create_student(async_client, api_base, shift="N", current_year=1)

    resp = await async_client.get(f"{api_base}/students", params={"shift": "n"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["meta"]["total"] == 2
    assert [s["enrollment"] for s in data["data"]] == [f"{YEAR}N0001", f"{YEAR}N0002"]

    resp = await async_client.get(f"{api_base}/students", params={"year": 1})
    assert resp.json()["meta"]["total"] == 2

    resp = await async_client.get(f"{api_base}/students", params={"year": 1, "shift": "N"})
    assert resp.json()["meta"]["total"] == 1


@pytest.mark.asyncio
async def test_list_students_pagination(async_client: AsyncClient, api_base: str):
    for i in range(3):
        await create_student(async_client, api_base, name=f"Student {i}")

    resp = await async_client.get(f"{api_base}/students", params={"page": 2, "limit": 2})
    data = resp.json()
    assert [s["enrollment"] for s in data["data"]] == [f"{YEAR}M0003"]
    assert data["meta"]["total_pages"] == 2


@pytest.mark.asyncio
async def test_update_student_keeps_enrollment(async_client: AsyncClient, api_base: str):
    student = await create_student(async_client, api_base, shift="M")

    resp = await async_client.put(
        f"{api_base}/students/{student['id']}",
        json={"name": "Ana S. Souza", "shift": "N", "current_year": 3, "enrollment": "2000N0001"},
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["name"] == "Ana S. Souza"
    assert data["shift"] == "N"
    assert data["current_year"] == 3
    assert data["enrollment"] == student["enrollment"]


@pytest.mark.asyncio
async def test_update_student_invalid_shift(async_client: AsyncClient, api_base: str):
    student = await create_student(async_client, api_base)
    resp = await async_client.put(f"{api_base}/students/{student['id']}", json={"shift": "Z"})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "INVALID_SHIFT"


@pytest.mark.asyncio
async def test_delete_student(async_client: AsyncClient, api_base: str):
    student = await create_student(async_client, api_base)

    resp = await async_client.delete(f"{api_base}/students/{student['id']}")
    assert resp.status_code == 200
    assert resp.json()["success"] is True

    resp = await async_client.get(f"{api_base}/students/{student['id']}")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_student_subject_association(async_client: AsyncClient, api_base: str, subject: dict):
    student = await create_student(async_client, api_base)
    url = f"{api_base}/students/{student['id']}/subjects/{subject['id']}"

    resp = await async_client.post(url)
    assert resp.status_code == 200
    assert [s["id"] for s in resp.json()["data"]["subjects"]] == [subject["id"]]

    # Adding twice is a no-op
    resp = await async_client.post(url)
    assert len(resp.json()["data"]["subjects"]) == 1

    resp = await async_client.delete(url)
    assert resp.status_code == 200
    assert resp.json()["data"]["subjects"] == []

    resp = await async_client.delete(url)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_add_unknown_subject_to_student(async_client: AsyncClient, api_base: str):
    student = await create_student(async_client, api_base)
    resp = await async_client.post(f"{api_base}/students/{student['id']}/subjects/NOPE999")
    assert resp.status_code == 404
